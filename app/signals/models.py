"""Domain models consumed and produced by the signal layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Sender(str, Enum):
    CUSTOMER = "customer"
    AGENT = "agent"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TrendLabel(str, Enum):
    IMPROVING = "Improving"
    STABLE = "Stable"
    DETERIORATING = "Deteriorating"


class ContentType(str, Enum):
    """Categories of content that may be offered for embedding."""

    PRODUCT_KNOWLEDGE = "product_knowledge"
    CONVERSATION_SUMMARY = "conversation_summary"
    CUSTOMER_PREFERENCE = "customer_preference"
    RAW_MESSAGE = "raw_message"


@dataclass(frozen=True)
class Message:
    """A single chat message, immutable once created."""

    id: str
    conversation_id: str
    sender: Sender
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class ConversationMetadata:
    """Current-state snapshot of the AI analysis for a conversation.

    The record is overwritten on every recomputation upstream, so it carries
    no history. ``emotions`` and ``objections`` are sets of free-form tags
    such as ``"frustration"`` or ``"price"``.
    """

    conversation_id: str
    intent: str = "unknown"
    intent_score: float = 0.0
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_score: float = 0.5
    emotions: frozenset[str] = frozenset()
    objections: frozenset[str] = frozenset()
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TrendAnalysis:
    sentiment_trend: TrendLabel = TrendLabel.STABLE
    emotion_trend: TrendLabel = TrendLabel.STABLE
    sentiment_slope: float = 0.0
    emotion_slope: float = 0.0


@dataclass(frozen=True)
class ConfidenceDecision:
    accept: bool
    reason: str


@dataclass(frozen=True)
class ConfidenceInputs:
    """Signals combined by the confidence scorer."""

    analysis: ConversationMetadata | None = None
    context_scores: tuple[float, ...] = ()
    rule_results: tuple[bool, ...] = ()
    self_evaluation: float = 0.0


@dataclass(frozen=True)
class TimingWindow:
    start_time: datetime
    end_time: datetime
    confidence: float
    reasoning: str


@dataclass(frozen=True)
class DisengagementResult:
    is_disengaged: bool
    reason: str
    last_message_time: datetime | None = None
    message_count: int = 0


@dataclass
class RetrievedChunk:
    id: str
    text: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


def clamp(value: float, lower: float, upper: float) -> float:
    """Bound ``value`` to the closed interval ``[lower, upper]``."""

    return max(lower, min(upper, value))
