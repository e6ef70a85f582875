"""Confidence scoring and the fallback gate for AI outputs.

An AI suggestion is only surfaced when the upstream call succeeded and its
confidence reaches the configured threshold. Everything else goes through
the fallback path, which records an audit entry and lets the chat continue
without AI assistance.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .config import get_signal_settings
from .models import (
    ConfidenceDecision,
    ConfidenceInputs,
    ConversationMetadata,
    Sentiment,
    clamp,
)

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("app.audit.fallback")

ACCEPTED_REASON = "accepted"


class ConfidenceGate:
    """Decide whether an AI output can be trusted."""

    def __init__(self, threshold: float | None = None) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        if self._threshold is not None:
            return self._threshold
        return get_signal_settings().confidence_threshold

    def should_fallback(self, error: BaseException | None, confidence: float) -> bool:
        if error is not None:
            return True
        return confidence < self.threshold

    def decide(
        self, error: BaseException | None, confidence: float
    ) -> ConfidenceDecision:
        if error is not None:
            return ConfidenceDecision(False, error_reason(error))
        if confidence < self.threshold:
            return ConfidenceDecision(False, low_confidence_reason(confidence))
        return ConfidenceDecision(True, ACCEPTED_REASON)

    def evaluate(
        self,
        conversation_id: str,
        error: BaseException | None,
        confidence: float,
    ) -> ConfidenceDecision:
        """Decide and, on rejection, run the matching fallback handler."""

        decision = self.decide(error, confidence)
        if decision.accept:
            return decision
        if error is not None:
            self.handle_error(conversation_id, error)
        else:
            self.handle_low_confidence(conversation_id, confidence)
        return decision

    def handle_fallback(self, conversation_id: str, reason: str) -> None:
        """Record the fallback; no suggestion is shown and the chat continues."""

        audit_logger.warning(
            "fallback triggered conversation=%s reason=%s", conversation_id, reason
        )

    def handle_error(self, conversation_id: str, error: BaseException | None) -> None:
        if error is None:
            return
        self.handle_fallback(conversation_id, error_reason(error))

    def handle_low_confidence(self, conversation_id: str, confidence: float) -> None:
        self.handle_fallback(conversation_id, low_confidence_reason(confidence))


def error_reason(error: BaseException) -> str:
    return f"AI error: {error}"


def low_confidence_reason(confidence: float) -> str:
    return f"low confidence: {confidence:.2f}"


class ConfidenceScorer:
    """Combine retrieval, consistency, rule and self-evaluation signals.

    Weights: context relevance 0.4, signal consistency 0.3, rule validation
    0.2 and the model's self evaluation 0.1. The result is clamped to
    ``[0, 1]`` and is meant to be fed into :class:`ConfidenceGate`.
    """

    CONTEXT_WEIGHT = 0.4
    CONSISTENCY_WEIGHT = 0.3
    RULE_WEIGHT = 0.2
    SELF_EVAL_WEIGHT = 0.1

    LOW_SCORE = 0.3
    NEUTRAL_RULE_SCORE = 0.5

    def calculate(self, inputs: ConfidenceInputs) -> float:
        confidence = (
            self.context_relevance(inputs.context_scores) * self.CONTEXT_WEIGHT
            + self.signal_consistency(inputs.analysis) * self.CONSISTENCY_WEIGHT
            + self.rule_validation(inputs.rule_results) * self.RULE_WEIGHT
            + inputs.self_evaluation * self.SELF_EVAL_WEIGHT
        )
        score = clamp(confidence, 0.0, 1.0)
        logger.debug("calculated confidence %.3f", score)
        return score

    def context_relevance(self, scores: Sequence[float]) -> float:
        if not scores:
            return self.LOW_SCORE
        average = sum(scores) / len(scores)
        return max(average, self.LOW_SCORE)

    def signal_consistency(self, analysis: ConversationMetadata | None) -> float:
        """Penalise contradictory or noisy analysis signals."""

        if analysis is None:
            return 0.0
        score = 1.0
        if len(analysis.objections) > 2:
            score -= 0.2
        if analysis.sentiment == Sentiment.POSITIVE and analysis.intent == "complaint":
            score -= 0.3
        if analysis.sentiment == Sentiment.NEGATIVE and analysis.intent == "buying":
            score -= 0.2
        if len(analysis.emotions) > 3:
            score -= 0.1
        return max(score, 0.0)

    def rule_validation(self, results: Sequence[bool]) -> float:
        if not results:
            return self.NEUTRAL_RULE_SCORE
        ratio = sum(1 for passed in results if passed) / len(results)
        if ratio < 0.5:
            return self.LOW_SCORE
        return ratio


def should_fallback(error: BaseException | None, confidence: float) -> bool:
    """Module-level shortcut using the configured threshold."""

    return ConfidenceGate().should_fallback(error, confidence)
