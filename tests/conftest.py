import pathlib
import sys
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi import FastAPI, Request

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from app.app_logging import init_logging
from app.signals.config import reset_signal_settings_cache
from app.signals.models import Message, Sender

BASE_TIME = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def signal_settings(monkeypatch):
    """Run every test against the default thresholds."""

    for name in (
        "SIGNAL_CONFIDENCE_THRESHOLD",
        "SIGNAL_TREND_THRESHOLD",
        "SIGNAL_TIMING_WINDOW_HOURS",
        "SIGNAL_DEFAULT_DELAY_HOURS",
        "SIGNAL_BUSINESS_HOURS_START",
        "SIGNAL_BUSINESS_HOURS_END",
        "SIGNAL_SILENCE_MINUTES",
        "SIGNAL_FREQUENCY_THRESHOLD",
        "DEFAULT_TENANT_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_signal_settings_cache()
    yield
    reset_signal_settings_cache()


@pytest.fixture
def make_messages():
    """Build ordered messages from ``(sender, content, minutes)`` tuples."""

    def _make(*specs: tuple[str, str, float], start: datetime = BASE_TIME) -> list[Message]:
        return [
            Message(
                id=f"m{index}",
                conversation_id="conv-1",
                sender=Sender(sender),
                content=content,
                timestamp=start + timedelta(minutes=minutes),
            )
            for index, (sender, content, minutes) in enumerate(specs)
        ]

    return _make


class FakeGenerator:
    def __init__(self, vector: list[float] | None = None, error: Exception | None = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls: list[str] = []

    def generate(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


class FakeStore:
    def __init__(self, error: Exception | None = None, rows: list[dict[str, Any]] | None = None):
        self.error = error
        self.rows = rows or []
        self.added: list[dict[str, Any]] = []
        self.queries: list[dict[str, Any]] = []

    def add_documents(self, collection, documents, vectors, metadatas, ids):
        if self.error is not None:
            raise self.error
        self.added.append(
            {
                "collection": collection,
                "documents": list(documents),
                "vectors": list(vectors),
                "metadatas": list(metadatas),
                "ids": list(ids),
            }
        )

    def query(self, collection, vector, top_k=10):
        self.queries.append({"collection": collection, "vector": list(vector), "top_k": top_k})
        return list(self.rows)


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str, log_request_bodies: bool = False):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        if log_request_bodies:
            monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return await request.json()

        init_logging(app)
        return app

    return _create_app
