from datetime import datetime, timezone

import pytest

from app.signals.config import reset_signal_settings_cache
from app.signals.models import (
    ConversationMetadata,
    Message,
    Sender,
    Sentiment,
    TrendAnalysis,
    TrendLabel,
)
from app.signals.trends import TrendAnalyzer, analyze_trends, window_sentiment


def _metadata(score: float = 0.5, emotions=()) -> ConversationMetadata:
    return ConversationMetadata(
        conversation_id="conv-1",
        intent="buying",
        sentiment=Sentiment.NEUTRAL,
        sentiment_score=score,
        emotions=frozenset(emotions),
    )


@pytest.mark.parametrize("count", [0, 1])
def test_short_history_is_stable(make_messages, count):
    messages = make_messages(("customer", "I hate this, terrible", 0))[:count]
    result = analyze_trends(messages, _metadata(emotions={"frustration"}))
    assert result == TrendAnalysis(TrendLabel.STABLE, TrendLabel.STABLE, 0.0, 0.0)


def test_sentiment_improves_when_recent_window_is_positive(make_messages):
    messages = make_messages(
        ("customer", "this is bad", 0),
        ("customer", "terrible service", 5),
        ("customer", "thanks, great", 10),
        ("customer", "love it", 15),
    )
    result = analyze_trends(messages, _metadata(0.5))
    # early: 0.5 - 2 * 0.1 / 2 = 0.4, recent: 0.5 + 3 * 0.1 / 2 = 0.65
    assert result.sentiment_slope == pytest.approx(0.25)
    assert result.sentiment_trend is TrendLabel.IMPROVING
    assert result.emotion_slope == 0.0
    assert result.emotion_trend is TrendLabel.STABLE


def test_sentiment_deteriorates_with_negative_recent_messages(make_messages):
    messages = make_messages(
        ("customer", "Excellent, I appreciate it", 0),
        ("agent", "Happy to help", 1),
        ("customer", "Now I am ANGRY and disappointed", 2),
        ("customer", "awful", 3),
    )
    result = analyze_trends(messages, _metadata(0.6))
    # early: 0.6 + 3 * 0.1 / 2 = 0.75, recent: 0.6 - 3 * 0.1 / 2 = 0.45
    assert result.sentiment_slope == pytest.approx(-0.3)
    assert result.sentiment_trend is TrendLabel.DETERIORATING


def test_keyword_matching_is_case_insensitive_substring():
    message = Message("m", "c", Sender.CUSTOMER, "GOODNESS, a Badge", datetime.now(timezone.utc))
    # "good" and "bad" both match as substrings and cancel out.
    assert window_sentiment([message], _metadata(0.5)) == pytest.approx(0.5)


def test_window_sentiment_is_clamped(make_messages):
    messages = make_messages(("customer", "great good excellent thanks love happy", 0))
    assert window_sentiment(messages, _metadata(0.95)) == 1.0
    messages = make_messages(("customer", "bad terrible awful hate angry", 0))
    assert window_sentiment(messages, _metadata(0.1)) == 0.0


def test_emotion_snapshot_weights_recent_window_on_odd_counts(make_messages):
    messages = make_messages(
        ("customer", "hello", 0),
        ("agent", "hi", 1),
        ("customer", "when will it ship", 2),
    )
    result = analyze_trends(messages, _metadata(emotions={"frustration"}))
    # early window of 1 weighs 1 // 2 = 0, recent window of 2 weighs 1 -> ratio 0.5
    assert result.emotion_slope == -1.0
    assert result.emotion_trend is TrendLabel.DETERIORATING


def test_emotion_snapshot_on_even_windows_is_stable(make_messages):
    messages = make_messages(
        ("customer", "a", 0), ("customer", "b", 1), ("customer", "c", 2), ("customer", "d", 3)
    )
    result = analyze_trends(messages, _metadata(emotions={"frustration", "urgency"}))
    assert result.emotion_slope == 0.0
    assert result.emotion_trend is TrendLabel.STABLE


def test_emotion_ignores_non_negative_tags(make_messages):
    messages = make_messages(
        ("customer", "a", 0),
        ("customer", "b", 1),
        ("customer", "c", 2),
        ("customer", "d", 3),
        ("customer", "e", 4),
    )
    result = analyze_trends(
        messages, _metadata(emotions={"frustration", "urgency", "excitement"})
    )
    # early: 2 tags * (2 // 2) / 2 = 1.0, recent: 2 tags * (3 // 2) / 3 = 2/3
    assert result.emotion_slope == pytest.approx(2 / 3)
    assert result.emotion_trend is TrendLabel.IMPROVING


def test_missing_metadata_uses_neutral_base(make_messages):
    messages = make_messages(("customer", "ok", 0), ("customer", "thanks", 1))
    result = analyze_trends(messages, None)
    assert result.sentiment_slope == pytest.approx(0.1)
    assert result.sentiment_trend is TrendLabel.STABLE
    assert result.emotion_slope == 0.0


@pytest.mark.parametrize(
    "slope, label",
    [
        (0.1, TrendLabel.STABLE),
        (0.1001, TrendLabel.IMPROVING),
        (-0.1, TrendLabel.STABLE),
        (-0.11, TrendLabel.DETERIORATING),
        (0.0, TrendLabel.STABLE),
        (1.0, TrendLabel.IMPROVING),
    ],
)
def test_label_thresholds(slope, label):
    assert TrendAnalyzer().label_trend(slope) is label


def test_threshold_is_configurable(monkeypatch, make_messages):
    monkeypatch.setenv("SIGNAL_TREND_THRESHOLD", "0.3")
    reset_signal_settings_cache()
    messages = make_messages(
        ("customer", "this is bad", 0),
        ("customer", "terrible service", 5),
        ("customer", "thanks, great", 10),
        ("customer", "love it", 15),
    )
    result = analyze_trends(messages, _metadata(0.5))
    assert result.sentiment_slope == pytest.approx(0.25)
    assert result.sentiment_trend is TrendLabel.STABLE
    assert TrendAnalyzer(threshold=0.2).label_trend(0.25) is TrendLabel.IMPROVING


def test_slopes_stay_in_range(make_messages):
    texts = ["great", "awful", "thanks love happy", "hate angry bad", "", "good"]
    messages = make_messages(*[("customer", text, i) for i, text in enumerate(texts)])
    for emotions in ({"frustration"}, {"urgency", "frustration"}, set()):
        for score in (0.0, 0.5, 1.0):
            result = analyze_trends(messages, _metadata(score, emotions))
            assert -1.0 <= result.sentiment_slope <= 1.0
            assert -1.0 <= result.emotion_slope <= 1.0
