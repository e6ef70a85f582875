"""Sentiment and emotion trend analysis over a conversation history.

The analyzer compares an *early* and a *recent* window of the message history
so that a single message cannot flip the outcome. Both slopes live in
``[-1, 1]``: positive means the conversation is getting better.

Note that the emotion slope is derived from one metadata snapshot applied to
both windows. It measures how the negative-emotion weight is spread across
the window sizes rather than a change of emotions over time.
"""

from __future__ import annotations

from collections.abc import Sequence

from .config import get_signal_settings
from .models import ConversationMetadata, Message, TrendAnalysis, TrendLabel, clamp

POSITIVE_KEYWORDS = ("great", "good", "excellent", "thanks", "appreciate", "love", "happy")
NEGATIVE_KEYWORDS = ("bad", "terrible", "awful", "disappointed", "frustrated", "hate", "angry")
NEGATIVE_EMOTIONS = frozenset({"frustration", "urgency"})

KEYWORD_WEIGHT = 0.1
NEUTRAL_SCORE = 0.5


class TrendAnalyzer:
    """Compute rolling sentiment/emotion trends for a conversation."""

    def __init__(self, threshold: float | None = None) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        if self._threshold is not None:
            return self._threshold
        return get_signal_settings().trend_threshold

    def analyze_trends(
        self,
        messages: Sequence[Message],
        metadata: ConversationMetadata | None,
    ) -> TrendAnalysis:
        """Return the trend analysis for ``messages``.

        Fewer than two messages is not enough to compare windows, so the
        result is the neutral ``Stable`` analysis with zero slopes.
        """

        if len(messages) < 2:
            return TrendAnalysis()

        early, recent = _split_windows(messages)
        sentiment_slope = self._sentiment_slope(early, recent, metadata)
        emotion_slope = self._emotion_slope(early, recent, metadata)
        return TrendAnalysis(
            sentiment_trend=self.label_trend(sentiment_slope),
            emotion_trend=self.label_trend(emotion_slope),
            sentiment_slope=sentiment_slope,
            emotion_slope=emotion_slope,
        )

    def label_trend(self, slope: float) -> TrendLabel:
        threshold = self.threshold
        if slope > threshold:
            return TrendLabel.IMPROVING
        if slope < -threshold:
            return TrendLabel.DETERIORATING
        return TrendLabel.STABLE

    # ------------------------------------------------------------------
    # Helpers

    def _sentiment_slope(
        self,
        early: Sequence[Message],
        recent: Sequence[Message],
        metadata: ConversationMetadata | None,
    ) -> float:
        early_score = window_sentiment(early, metadata)
        recent_score = window_sentiment(recent, metadata)
        return clamp(recent_score - early_score, -1.0, 1.0)

    def _emotion_slope(
        self,
        early: Sequence[Message],
        recent: Sequence[Message],
        metadata: ConversationMetadata | None,
    ) -> float:
        early_ratio = negative_emotion_weight(early, metadata) / len(early)
        recent_ratio = negative_emotion_weight(recent, metadata) / len(recent)
        # A shrinking share of negative emotion reads as an improvement.
        return clamp((early_ratio - recent_ratio) * 2, -1.0, 1.0)


def _split_windows(
    messages: Sequence[Message],
) -> tuple[Sequence[Message], Sequence[Message]]:
    # The recent window takes the larger half on odd counts.
    midpoint = len(messages) // 2
    return messages[:midpoint], messages[midpoint:]


def window_sentiment(
    messages: Sequence[Message], metadata: ConversationMetadata | None
) -> float:
    """Score a window in ``[0, 1]`` from the snapshot score and keywords."""

    if not messages:
        return NEUTRAL_SCORE
    base = metadata.sentiment_score if metadata is not None else NEUTRAL_SCORE
    positives = 0
    negatives = 0
    for message in messages:
        lowered = message.content.lower()
        positives += sum(1 for keyword in POSITIVE_KEYWORDS if keyword in lowered)
        negatives += sum(1 for keyword in NEGATIVE_KEYWORDS if keyword in lowered)
    adjustment = (positives - negatives) * KEYWORD_WEIGHT / len(messages)
    return clamp(base + adjustment, 0.0, 1.0)


def negative_emotion_weight(
    messages: Sequence[Message], metadata: ConversationMetadata | None
) -> int:
    """Weighted count of negative emotion tags for a window."""

    if metadata is None:
        return 0
    matches = len(NEGATIVE_EMOTIONS & set(metadata.emotions))
    return matches * (len(messages) // 2)


def analyze_trends(
    messages: Sequence[Message], metadata: ConversationMetadata | None
) -> TrendAnalysis:
    """Module-level shortcut using the configured threshold."""

    return TrendAnalyzer().analyze_trends(messages, metadata)
