"""
PIN Reissue Rate Limiting
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from .utils import as_utc


class PinRateLimiter:
    """
    Cooldown gate on PIN emails, driven by the member's last_pin_sent_at.

    Read-then-write: two concurrent requests for the same member may both
    pass the check before either records its send.
    """

    def __init__(self, cooldown: timedelta):
        self.cooldown = cooldown

    def remaining_wait(self, last_sent_at: Optional[datetime], now: datetime) -> Optional[timedelta]:
        """
        Returns the time left before another PIN may be sent,
        or None if the member is outside the cooldown window.
        """
        if last_sent_at is None:
            return None

        elapsed = now - as_utc(last_sent_at)
        if elapsed < self.cooldown:
            return self.cooldown - elapsed
        return None

    @staticmethod
    def wait_minutes(remaining: timedelta) -> int:
        """Whole minutes, rounded up"""
        return max(1, math.ceil(remaining.total_seconds() / 60))

    def message(self, remaining: timedelta) -> str:
        minutes = self.wait_minutes(remaining)
        return f"Please wait {minutes} minute{'s' if minutes > 1 else ''} before requesting a new PIN."
