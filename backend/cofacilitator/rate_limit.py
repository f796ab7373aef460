"""Per-client fixed-window request counter.

Each client gets a window of `window_seconds` starting at its first request.
Within a window at most `ceiling` requests are admitted; the first request
after the window expires replaces the record and starts a new window.

Records are kept in window-start order, so expired windows are always at the
front of the store and each admit reaps only what has expired. When
`max_clients` live windows are tracked, a new client evicts the oldest one.

Known limitation: fixed windows let a client burst up to 2x the ceiling
across a window boundary.
"""

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60 * 60
DEFAULT_MAX_CLIENTS = 10_000


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    def __init__(
        self,
        ceiling: int,
        window_seconds: float = WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_clients: int = DEFAULT_MAX_CLIENTS,
    ) -> None:
        if ceiling <= 0:
            raise ValueError("ceiling must be positive")
        if max_clients <= 0:
            raise ValueError("max_clients must be positive")
        self.ceiling = ceiling
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        # Ordered by reset_at: a new window always goes to the end.
        self._records: "OrderedDict[str, RateLimitRecord]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def admit(self, client_id: str, now: Optional[float] = None) -> bool:
        """Count one request for client_id; return False once the ceiling is hit."""
        if now is None:
            now = self._clock()
        with self._lock:
            self._reap_locked(now)
            record = self._records.get(client_id)
            if record is None or now > record.reset_at:
                if record is None and len(self._records) >= self.max_clients:
                    evicted, _ = self._records.popitem(last=False)
                    logger.debug(f"Rate-limit store full, evicted window for {evicted!r}")
                self._records[client_id] = RateLimitRecord(
                    count=1, reset_at=now + self.window_seconds
                )
                self._records.move_to_end(client_id)
                return True
            if record.count < self.ceiling:
                record.count += 1
                return True
            return False

    def retry_after(self, client_id: str, now: Optional[float] = None) -> int:
        """Whole seconds until client_id's current window resets (0 if none)."""
        if now is None:
            now = self._clock()
        with self._lock:
            record = self._records.get(client_id)
            if record is None or now > record.reset_at:
                return 0
            return max(1, math.ceil(record.reset_at - now))

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop expired windows. Returns the number of records removed."""
        if now is None:
            now = self._clock()
        with self._lock:
            return self._reap_locked(now)

    def _reap_locked(self, now: float) -> int:
        removed = 0
        while self._records:
            client_id, record = next(iter(self._records.items()))
            if record.reset_at >= now:
                break
            del self._records[client_id]
            removed += 1
        if removed:
            logger.debug(f"Reaped {removed} expired rate-limit windows")
        return removed
