"""Signal and decision layer: trends, confidence gating, embedding and timing."""

from .confidence import ConfidenceGate, ConfidenceScorer
from .disengagement import DisengagementDetector
from .embedding import EmbedError, EmbeddingPolicy, FastEmbedGenerator
from .models import (
    ConfidenceDecision,
    ConfidenceInputs,
    ContentType,
    ConversationMetadata,
    DisengagementResult,
    Message,
    RetrievedChunk,
    Sender,
    Sentiment,
    TimingWindow,
    TrendAnalysis,
    TrendLabel,
)
from .retriever import ContextRetriever
from .timing import TimingSuggester
from .trends import TrendAnalyzer

__all__ = [
    "ConfidenceDecision",
    "ConfidenceGate",
    "ConfidenceInputs",
    "ConfidenceScorer",
    "ContentType",
    "ContextRetriever",
    "ConversationMetadata",
    "DisengagementDetector",
    "DisengagementResult",
    "EmbedError",
    "EmbeddingPolicy",
    "FastEmbedGenerator",
    "Message",
    "RetrievedChunk",
    "Sender",
    "Sentiment",
    "TimingSuggester",
    "TimingWindow",
    "TrendAnalysis",
    "TrendAnalyzer",
    "TrendLabel",
]
