from datetime import datetime, timedelta, timezone

from app.signals.disengagement import DisengagementDetector
from app.signals.models import Message, Sender

NOW = datetime(2024, 5, 6, 15, 0, tzinfo=timezone.utc)


def _messages(*minutes_ago: float) -> list[Message]:
    return [
        Message(f"m{i}", "conv-1", Sender.CUSTOMER, "hello", NOW - timedelta(minutes=m))
        for i, m in enumerate(sorted(minutes_ago, reverse=True))
    ]


def test_no_messages():
    result = DisengagementDetector().check([], NOW)
    assert result.is_disengaged is False
    assert result.reason == "no messages"


def test_silence_over_threshold():
    result = DisengagementDetector().check(_messages(90, 45), NOW)
    assert result.is_disengaged is True
    assert result.reason == "silence"
    assert result.last_message_time == NOW - timedelta(minutes=45)
    assert result.message_count == 2


def test_silence_boundary_is_exclusive():
    result = DisengagementDetector().check(_messages(30), NOW)
    assert result.is_disengaged is False
    assert result.reason == "active"


def test_frequency_drop():
    # Four messages in the hour before, one in the last hour.
    result = DisengagementDetector().check(_messages(110, 100, 90, 80, 10), NOW)
    assert result.is_disengaged is True
    assert result.reason == "frequency_drop"
    assert result.message_count == 5


def test_steady_conversation_is_active():
    result = DisengagementDetector().check(_messages(100, 50, 20, 5), NOW)
    assert result.is_disengaged is False
    assert result.reason == "active"
