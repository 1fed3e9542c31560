from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

# Zero-argument time source; components take one so tests can pin "now".
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """Build a clock that always returns ``moment``."""
    def _clock() -> datetime:
        return moment
    return _clock
