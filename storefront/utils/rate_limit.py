import time
from dataclasses import dataclass
from typing import Callable, Dict

@dataclass
class RateLimitRecord:
    count: int
    reset_time: float

@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float

class FixedWindowRateLimiter:
    """In-memory fixed-window request counter keyed by client identity.

    Process local and reset on restart; it only blunts abuse of the admin
    surface. A window is reset lazily on the first hit after it expires.
    """

    def __init__(self, window_seconds: int = 60, max_requests: int = 60,
                 clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.clock = clock
        self._records: Dict[str, RateLimitRecord] = {}

    def hit(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier"""
        now = self.clock()
        record = self._records.get(identifier)

        if record is None or now > record.reset_time:
            record = RateLimitRecord(count=1, reset_time=now + self.window_seconds)
            self._records[identifier] = record
            return RateLimitResult(True, self.max_requests - 1, record.reset_time)

        if record.count >= self.max_requests:
            return RateLimitResult(False, 0, record.reset_time)

        record.count += 1
        return RateLimitResult(True, self.max_requests - record.count, record.reset_time)

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed"""
        now = self.clock()
        expired = [key for key, record in self._records.items() if now > record.reset_time]
        for key in expired:
            del self._records[key]
        return len(expired)
