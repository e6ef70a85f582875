from datetime import datetime, timedelta, timezone

import pytest

from app.signals.config import SignalSettings
from app.signals.models import Message, Sender
from app.signals.timing import TimingSuggester, suggest_timing

UTC = timezone.utc


def _msg(sender: str, when: datetime, index: int = 0) -> Message:
    return Message(f"m{index}", "conv-1", Sender(sender), "text", when)


def test_default_window_without_messages():
    now = datetime(2024, 5, 6, 14, 30, tzinfo=UTC)
    window = suggest_timing([], now)
    assert window.start_time == now + timedelta(hours=1)
    assert window.end_time - window.start_time == timedelta(hours=2)
    assert window.confidence == 0.5
    assert window.reasoning == "Default timing window"


def test_evening_without_customer_history_keeps_now():
    # Pattern resolves to now (8 PM), engagement to 9 AM next day. The
    # engagement estimate is later, so the pattern estimate wins.
    now = datetime(2024, 5, 6, 20, 0, tzinfo=UTC)
    messages = [_msg("agent", datetime(2024, 5, 6, 19, 0, tzinfo=UTC))]
    window = suggest_timing(messages, now)
    assert window.start_time == datetime(2024, 5, 6, 20, 0, tzinfo=UTC)
    assert window.end_time == datetime(2024, 5, 6, 22, 0, tzinfo=UTC)
    assert window.confidence == 0.7
    assert window.reasoning == "Based on past response patterns and engagement windows"


def test_evening_with_slow_customer_uses_next_morning():
    # Customer answers every 20 hours: pattern = 4 PM next day, engagement =
    # 9 AM next day, which is earlier and therefore chosen.
    now = datetime(2024, 5, 6, 20, 0, tzinfo=UTC)
    messages = [
        _msg("customer", datetime(2024, 5, 4, 0, 0, tzinfo=UTC), 0),
        _msg("customer", datetime(2024, 5, 4, 20, 0, tzinfo=UTC), 1),
    ]
    window = suggest_timing(messages, now)
    assert window.start_time == datetime(2024, 5, 7, 9, 0, tzinfo=UTC)
    assert window.end_time == datetime(2024, 5, 7, 11, 0, tzinfo=UTC)


def test_early_morning_uses_opening_hour_when_earlier():
    now = datetime(2024, 5, 6, 6, 15, tzinfo=UTC)
    messages = [
        _msg("customer", datetime(2024, 5, 5, 10, 0, tzinfo=UTC), 0),
        _msg("customer", datetime(2024, 5, 5, 14, 0, tzinfo=UTC), 1),
    ]
    # pattern = 10:15, engagement = 09:00
    window = suggest_timing(messages, now)
    assert window.start_time == datetime(2024, 5, 6, 9, 0, tzinfo=UTC)


def test_business_hours_start_immediately_for_slower_customer():
    now = datetime(2024, 5, 6, 11, 0, tzinfo=UTC)
    messages = [
        _msg("customer", datetime(2024, 5, 6, 10, 0, tzinfo=UTC), 0),
        _msg("customer", datetime(2024, 5, 6, 10, 30, tzinfo=UTC), 1),
    ]
    # engagement = now, pattern = now + 30 min -> engagement strictly earlier
    window = suggest_timing(messages, now)
    assert window.start_time == now


def test_agent_messages_do_not_reset_customer_tracker():
    base = datetime(2024, 5, 6, 9, 0, tzinfo=UTC)
    messages = [
        _msg("customer", base, 0),
        _msg("agent", base + timedelta(minutes=5), 1),
        _msg("customer", base + timedelta(minutes=30), 2),
        _msg("agent", base + timedelta(minutes=31), 3),
        _msg("customer", base + timedelta(minutes=90), 4),
    ]
    now = datetime(2024, 5, 6, 18, 0, tzinfo=UTC)
    estimate = TimingSuggester().response_pattern_estimate(messages, now)
    # gaps of 30 and 60 minutes average to 45 minutes
    assert estimate == now + timedelta(minutes=45)


@pytest.mark.parametrize(
    "hour, expected",
    [
        (8, datetime(2024, 5, 6, 9, 0, tzinfo=UTC)),
        (9, datetime(2024, 5, 6, 9, 0, tzinfo=UTC)),
        (16, datetime(2024, 5, 6, 16, 0, tzinfo=UTC)),
        (17, datetime(2024, 5, 7, 9, 0, tzinfo=UTC)),
        (23, datetime(2024, 5, 7, 9, 0, tzinfo=UTC)),
    ],
)
def test_engagement_estimate(hour, expected):
    now = datetime(2024, 5, 6, hour, 0, tzinfo=UTC)
    assert TimingSuggester().engagement_estimate(now) == expected


def test_engagement_rolls_over_month_end():
    now = datetime(2024, 1, 31, 22, 45, tzinfo=UTC)
    assert TimingSuggester().engagement_estimate(now) == datetime(2024, 2, 1, 9, 0, tzinfo=UTC)


def test_custom_settings():
    settings = SignalSettings(timing_window_hours=3, business_hours_start=8)
    now = datetime(2024, 5, 6, 7, 0, tzinfo=UTC)
    messages = [
        _msg("customer", datetime(2024, 5, 5, 7, 0, tzinfo=UTC), 0),
        _msg("customer", datetime(2024, 5, 5, 12, 0, tzinfo=UTC), 1),
    ]
    window = TimingSuggester(settings).suggest_timing(messages, now)
    assert window.start_time == datetime(2024, 5, 6, 8, 0, tzinfo=UTC)
    assert window.end_time == datetime(2024, 5, 6, 11, 0, tzinfo=UTC)
