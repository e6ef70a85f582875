"""Tenant-scoped context retrieval from the vector store."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.core.tenant_context import get_current_tenant_id, tenant_collection_name

from .config import get_signal_settings
from .models import RetrievedChunk
from .vectorstore import VectorStore

logger = logging.getLogger(__name__)

PRODUCT_KNOWLEDGE_COLLECTION = "product_knowledge"
CONVERSATIONS_COLLECTION = "conversations"


class ContextRetriever:
    def __init__(self, store: VectorStore, *, tenant_id: str | None = None) -> None:
        self._store = store
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> str:
        return (
            self._tenant_id
            or get_current_tenant_id()
            or get_signal_settings().default_tenant_id
        )

    def retrieve(
        self, collection: str, vector: Sequence[float], top_k: int = 10
    ) -> list[RetrievedChunk]:
        """Return the closest chunks with ``score = 1 / (1 + distance)``.

        A row without a distance gets a score of ``1.0``.
        """

        if top_k <= 0:
            top_k = 10
        scoped = tenant_collection_name(self.tenant_id, collection)
        rows = self._store.query(scoped, vector, top_k)
        chunks: list[RetrievedChunk] = []
        for row in rows:
            distance = row.get("distance")
            score = 1.0 if distance is None else 1.0 / (1.0 + float(distance))
            chunks.append(
                RetrievedChunk(
                    id=str(row.get("id") or ""),
                    text=row.get("document") or "",
                    score=score,
                    metadata=dict(row.get("metadata") or {}),
                )
            )
        logger.debug("retrieved %d chunks from %s", len(chunks), scoped)
        return chunks

    def retrieve_product_knowledge(
        self, vector: Sequence[float], top_k: int = 10
    ) -> list[RetrievedChunk]:
        return self.retrieve(PRODUCT_KNOWLEDGE_COLLECTION, vector, top_k)

    def retrieve_conversations(
        self, vector: Sequence[float], top_k: int = 10
    ) -> list[RetrievedChunk]:
        return self.retrieve(CONVERSATIONS_COLLECTION, vector, top_k)


def context_scores(chunks: Sequence[RetrievedChunk]) -> tuple[float, ...]:
    """Scores of retrieved chunks, ready for ``ConfidenceInputs.context_scores``."""

    return tuple(chunk.score for chunk in chunks)
