"""Pydantic schemas for the signals API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from . import models


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are taken to be UTC."""

    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MessageIn(BaseModel):
    id: str
    conversation_id: str
    sender: models.Sender
    content: str = ""
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def to_domain(self) -> models.Message:
        return models.Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender=self.sender,
            content=self.content,
            timestamp=self.timestamp,
        )


class ConversationMetadataIn(BaseModel):
    conversation_id: str
    intent: str = "unknown"
    intent_score: float = Field(0.0, ge=0.0, le=1.0)
    sentiment: models.Sentiment = models.Sentiment.NEUTRAL
    sentiment_score: float = Field(0.5, ge=0.0, le=1.0)
    emotions: list[str] = Field(default_factory=list)
    objections: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None

    @field_validator("updated_at")
    @classmethod
    def updated_at_as_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def to_domain(self) -> models.ConversationMetadata:
        extra: dict[str, Any] = {}
        if self.updated_at is not None:
            extra["updated_at"] = self.updated_at
        return models.ConversationMetadata(
            conversation_id=self.conversation_id,
            intent=self.intent,
            intent_score=self.intent_score,
            sentiment=self.sentiment,
            sentiment_score=self.sentiment_score,
            emotions=frozenset(self.emotions),
            objections=frozenset(self.objections),
            **extra,
        )


def _sorted_messages(messages: list[MessageIn]) -> list[models.Message]:
    return [m.to_domain() for m in sorted(messages, key=lambda m: m.timestamp)]


class TrendRequest(BaseModel):
    messages: list[MessageIn] = Field(default_factory=list)
    metadata: ConversationMetadataIn | None = None

    def domain_messages(self) -> list[models.Message]:
        return _sorted_messages(self.messages)


class TrendResponse(BaseModel):
    sentiment_trend: models.TrendLabel
    emotion_trend: models.TrendLabel
    sentiment_slope: float
    emotion_slope: float


class TimingRequest(BaseModel):
    messages: list[MessageIn] = Field(default_factory=list)
    now: datetime | None = None

    @field_validator("now")
    @classmethod
    def now_as_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def domain_messages(self) -> list[models.Message]:
        return _sorted_messages(self.messages)


class TimingResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    confidence: float
    reasoning: str


class DisengagementRequest(TimingRequest):
    pass


class DisengagementResponse(BaseModel):
    is_disengaged: bool
    reason: str
    last_message_time: datetime | None = None
    message_count: int = 0


class ConfidenceRequest(BaseModel):
    """Outcome of an AI call to be gated.

    ``confidence`` may be omitted, in which case it is computed from the
    scorer inputs (``analysis``, ``context_scores``, ``rule_results`` and
    ``self_evaluation``).
    """

    conversation_id: str
    error: str | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    analysis: ConversationMetadataIn | None = None
    context_scores: list[float] = Field(default_factory=list)
    rule_results: list[bool] = Field(default_factory=list)
    self_evaluation: float = Field(0.0, ge=0.0, le=1.0)

    def scorer_inputs(self) -> models.ConfidenceInputs:
        return models.ConfidenceInputs(
            analysis=self.analysis.to_domain() if self.analysis else None,
            context_scores=tuple(self.context_scores),
            rule_results=tuple(self.rule_results),
            self_evaluation=self.self_evaluation,
        )


class ConfidenceResponse(BaseModel):
    accept: bool
    reason: str
    confidence: float


class EmbeddingRequest(BaseModel):
    collection: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    content: str = ""
    content_type: str
    metadata: dict[str, Any] | None = None


class EmbeddingResponse(BaseModel):
    accepted: bool
