"""Silence and frequency-drop detection for live conversations."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from .config import SignalSettings, get_signal_settings
from .models import DisengagementResult, Message


class DisengagementDetector:
    """Flag conversations where the customer appears to have dropped off.

    A conversation is disengaged when nothing was said for longer than the
    silence threshold, or when the last hour carries fewer messages than the
    frequency threshold while the hour before carried more.
    """

    def __init__(self, settings: SignalSettings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> SignalSettings:
        return self._settings or get_signal_settings()

    def check(self, messages: Sequence[Message], now: datetime) -> DisengagementResult:
        if not messages:
            return DisengagementResult(False, "no messages")

        last_time = messages[-1].timestamp
        count = len(messages)
        if now - last_time > timedelta(minutes=self.settings.silence_minutes):
            return DisengagementResult(True, "silence", last_time, count)

        threshold = self.settings.frequency_threshold
        if count >= 3:
            last_hour = _recent(messages, now - timedelta(hours=1))
            if len(last_hour) < threshold:
                hour_before = _between(
                    messages, now - timedelta(hours=2), now - timedelta(hours=1)
                )
                if len(hour_before) > threshold:
                    return DisengagementResult(True, "frequency_drop", last_time, count)

        return DisengagementResult(False, "active", last_time, count)


def _recent(messages: Sequence[Message], cutoff: datetime) -> list[Message]:
    # Messages are ordered, so walk back until the cutoff is crossed.
    recent: list[Message] = []
    for message in reversed(messages):
        if message.timestamp <= cutoff:
            break
        recent.append(message)
    recent.reverse()
    return recent


def _between(
    messages: Sequence[Message], start: datetime, end: datetime
) -> list[Message]:
    return [m for m in messages if start < m.timestamp < end]
