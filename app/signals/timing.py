"""Reply timing suggestions for agents.

Two estimates are combined: one from how quickly the customer usually
answers, one from business-hour engagement windows. The engagement estimate
only wins when it is strictly earlier than the response-pattern estimate.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from .config import SignalSettings, get_signal_settings
from .models import Message, Sender, TimingWindow

DEFAULT_CONFIDENCE = 0.5
PATTERN_CONFIDENCE = 0.7
DEFAULT_REASONING = "Default timing window"
PATTERN_REASONING = "Based on past response patterns and engagement windows"


class TimingSuggester:
    def __init__(self, settings: SignalSettings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> SignalSettings:
        return self._settings or get_signal_settings()

    def suggest_timing(self, messages: Sequence[Message], now: datetime) -> TimingWindow:
        """Suggest when the agent should follow up, relative to ``now``."""

        span = timedelta(hours=self.settings.timing_window_hours)
        if not messages:
            start = now + timedelta(hours=self.settings.default_delay_hours)
            return TimingWindow(start, start + span, DEFAULT_CONFIDENCE, DEFAULT_REASONING)

        pattern = self.response_pattern_estimate(messages, now)
        engagement = self.engagement_estimate(now)
        start = engagement if engagement < pattern else pattern
        return TimingWindow(start, start + span, PATTERN_CONFIDENCE, PATTERN_REASONING)

    def response_pattern_estimate(
        self, messages: Sequence[Message], now: datetime
    ) -> datetime:
        """``now`` plus the average gap between consecutive customer messages.

        Agent messages neither contribute a gap nor move the tracker.
        """

        total = timedelta()
        gaps = 0
        last_customer: datetime | None = None
        for message in messages:
            if message.sender != Sender.CUSTOMER:
                continue
            if last_customer is not None:
                total += message.timestamp - last_customer
                gaps += 1
            last_customer = message.timestamp
        if gaps == 0:
            return now
        return now + total / gaps

    def engagement_estimate(self, now: datetime) -> datetime:
        start_hour = self.settings.business_hours_start
        if start_hour <= now.hour < self.settings.business_hours_end:
            return now
        opening = now.replace(hour=start_hour, minute=0, second=0, microsecond=0)
        if now.hour < start_hour:
            return opening
        return opening + timedelta(days=1)


def suggest_timing(messages: Sequence[Message], now: datetime) -> TimingWindow:
    return TimingSuggester().suggest_timing(messages, now)
