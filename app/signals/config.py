"""Process-wide thresholds for the signal and decision layer.

Every tunable constant used by the trend, confidence, embedding and timing
components is read here once and cached. Override any value with the
matching environment variable; tests call :func:`reset_signal_settings_cache`
after changing the environment.
"""

from __future__ import annotations

import dataclasses
import os
from functools import lru_cache

DEFAULT_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_TREND_THRESHOLD = 0.1
DEFAULT_TIMING_WINDOW_HOURS = 2.0
DEFAULT_DELAY_HOURS = 1.0
DEFAULT_BUSINESS_HOURS_START = 9
DEFAULT_BUSINESS_HOURS_END = 17
DEFAULT_SILENCE_MINUTES = 30.0
DEFAULT_FREQUENCY_THRESHOLD = 2
DEFAULT_TENANT_ID = "default"


@dataclasses.dataclass(frozen=True)
class SignalSettings:
    """Runtime configuration shared by all signal components."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    trend_threshold: float = DEFAULT_TREND_THRESHOLD
    timing_window_hours: float = DEFAULT_TIMING_WINDOW_HOURS
    default_delay_hours: float = DEFAULT_DELAY_HOURS
    business_hours_start: int = DEFAULT_BUSINESS_HOURS_START
    business_hours_end: int = DEFAULT_BUSINESS_HOURS_END
    silence_minutes: float = DEFAULT_SILENCE_MINUTES
    frequency_threshold: int = DEFAULT_FREQUENCY_THRESHOLD
    default_tenant_id: str = DEFAULT_TENANT_ID


@lru_cache(maxsize=1)
def get_signal_settings() -> SignalSettings:
    """Load settings from the environment, falling back to the defaults."""

    start = int(os.getenv("SIGNAL_BUSINESS_HOURS_START", str(DEFAULT_BUSINESS_HOURS_START)))
    end = int(os.getenv("SIGNAL_BUSINESS_HOURS_END", str(DEFAULT_BUSINESS_HOURS_END)))
    if not 0 <= start < end <= 24:
        raise RuntimeError(
            "SIGNAL_BUSINESS_HOURS_START and SIGNAL_BUSINESS_HOURS_END must satisfy 0 <= start < end <= 24."
        )
    return SignalSettings(
        confidence_threshold=float(
            os.getenv("SIGNAL_CONFIDENCE_THRESHOLD", str(DEFAULT_CONFIDENCE_THRESHOLD))
        ),
        trend_threshold=float(
            os.getenv("SIGNAL_TREND_THRESHOLD", str(DEFAULT_TREND_THRESHOLD))
        ),
        timing_window_hours=float(
            os.getenv("SIGNAL_TIMING_WINDOW_HOURS", str(DEFAULT_TIMING_WINDOW_HOURS))
        ),
        default_delay_hours=float(
            os.getenv("SIGNAL_DEFAULT_DELAY_HOURS", str(DEFAULT_DELAY_HOURS))
        ),
        business_hours_start=start,
        business_hours_end=end,
        silence_minutes=float(
            os.getenv("SIGNAL_SILENCE_MINUTES", str(DEFAULT_SILENCE_MINUTES))
        ),
        frequency_threshold=int(
            os.getenv("SIGNAL_FREQUENCY_THRESHOLD", str(DEFAULT_FREQUENCY_THRESHOLD))
        ),
        default_tenant_id=os.getenv("DEFAULT_TENANT_ID", DEFAULT_TENANT_ID),
    )


def reset_signal_settings_cache() -> None:
    """Clear cached settings; useful in tests when env vars change."""

    get_signal_settings.cache_clear()
