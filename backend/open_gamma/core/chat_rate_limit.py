"""Per-user request limiter for the chat endpoint.

Guards the metered model and tool-execution calls behind POST /chat.
Keys are authenticated identities, not IPs; the public auth endpoints use
the slowapi limiter in ``open_gamma.core.rate_limiting`` instead.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class RateLimitRecord:
    """Requests seen for one identity in its current window.

    Attributes:
        count: Requests admitted since window_start.
        window_start: Clock reading when the window opened.
    """

    count: int
    window_start: float


class SlidingWindowRateLimiter:
    """In-memory, per-identity request limiter.

    Technically a resettable fixed window: the first request after a
    window has elapsed opens a new one. Around a window boundary a client
    can therefore get close to ``2 * max_requests`` through in a short
    span. That is accepted; the limiter bounds sustained cost, not bursts.

    State is process-local and lost on restart, which only loosens
    enforcement briefly. Records whose window has expired are swept on
    access at most once per ``sweep_interval_seconds`` so the table does
    not grow with every identity ever seen.

    Thread-safe: ``admit`` holds a lock across check-and-increment and
    never awaits, so it is also atomic under an event loop.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: float | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Requests admitted per identity per window.
            window_seconds: Window length.
            clock: Monotonic time source in seconds.
            sweep_interval_seconds: Minimum time between eviction sweeps.
                Defaults to one window.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sweep_interval = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else window_seconds
        )
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def admit(self, identity: str) -> bool:
        """Record a request for ``identity`` if it is within budget.

        Args:
            identity: Authenticated user identity.

        Returns:
            True if admitted, False if the window's budget is spent.
        """
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            record = self._records.get(identity)
            if record is None or now - record.window_start > self.window_seconds:
                self._records[identity] = RateLimitRecord(count=1, window_start=now)
                return True

            if record.count < self.max_requests:
                record.count += 1
                return True

        logger.info(
            "Chat rate limit exceeded",
            extra={"identity": identity, "limit": self.max_requests},
        )
        return False

    def sweep(self) -> int:
        """Evict every record whose window has expired.

        Returns:
            Number of records removed.
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        self._last_sweep = now
        expired = [
            identity
            for identity, record in self._records.items()
            if now - record.window_start > self.window_seconds
        ]
        for identity in expired:
            del self._records[identity]
        return len(expired)

    def get_record(self, identity: str) -> RateLimitRecord | None:
        """Return a copy of the current record for ``identity``, if any."""
        with self._lock:
            record = self._records.get(identity)
            if record is None:
                return None
            return RateLimitRecord(count=record.count, window_start=record.window_start)

    def reset(self, identity: str) -> None:
        """Forget ``identity``'s window."""
        with self._lock:
            self._records.pop(identity, None)

    def clear(self) -> None:
        """Forget all windows (for testing)."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
