"""In-memory rate limiter for the chat proxy.

Tracks per-identity request counts using a fixed window that starts at the
identity's first request and rolls over once the current time passes the
window's reset time. The rollover discards the previous count, so a burst
straddling a window boundary can admit up to twice the nominal limit.
"""

import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional

from chat_proxy.errors import RateLimitError

Clock = Callable[[], int]


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class RateDecision(str, Enum):
    """The outcome of an admission check."""

    ALLOWED = "ALLOWED"
    REJECTED = "REJECTED"


@dataclass
class ClientWindowState:
    """Fixed-window counter for a single client identity."""

    identity: str
    count: int
    reset_at_ms: int


class RateLimiter:
    """Per-identity in-memory rate limiter.

    Thread-safe: each admission is a single read-modify-write under a lock.
    Expired entries are swept at most once per window so the table stays
    proportional to the number of clients active in the last window.
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_requests: int = 10,
        clock: Optional[Clock] = None,
    ) -> None:
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock: Clock = clock or _epoch_millis
        self._lock = threading.Lock()
        self._clients: Dict[str, ClientWindowState] = {}
        self._last_sweep_ms: Optional[int] = None

    def admit(self, identity: str, now: Optional[int] = None) -> RateDecision:
        """Decide whether a request from ``identity`` is admitted.

        Args:
            identity: The client-distinguishing key (usually an IP address).
            now: Current time in epoch milliseconds; defaults to the clock.

        Returns:
            RateDecision.ALLOWED or RateDecision.REJECTED.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            self._maybe_sweep(now)

            state = self._clients.get(identity)
            if state is None:
                self._clients[identity] = ClientWindowState(
                    identity=identity, count=1, reset_at_ms=now + self.window_ms
                )
                return RateDecision.ALLOWED

            if now > state.reset_at_ms:
                state.count = 1
                state.reset_at_ms = now + self.window_ms
                return RateDecision.ALLOWED

            if state.count >= self.max_requests:
                return RateDecision.REJECTED

            state.count += 1
            return RateDecision.ALLOWED

    def check(self, identity: str, now: Optional[int] = None) -> None:
        """Admit the request or raise.

        Raises:
            RateLimitError: If the identity has used up its window.
        """
        if self.admit(identity, now) is RateDecision.REJECTED:
            raise RateLimitError(
                identity,
                "Request rate exceeded for {} ({} req per {} ms).".format(
                    identity, self.max_requests, self.window_ms
                ),
            )

    def sweep(self, now: Optional[int] = None) -> int:
        """Drop entries whose window has expired. Returns the number removed."""
        if now is None:
            now = self._clock()
        with self._lock:
            return self._sweep(now)

    def state(self, identity: str) -> Optional[ClientWindowState]:
        """Return a copy of the window state for ``identity``, if tracked."""
        with self._lock:
            state = self._clients.get(identity)
            return replace(state) if state is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def _maybe_sweep(self, now: int) -> None:
        if self._last_sweep_ms is None:
            self._last_sweep_ms = now
        elif now - self._last_sweep_ms >= self.window_ms:
            self._sweep(now)

    def _sweep(self, now: int) -> int:
        # An expired entry behaves exactly like a missing one on the next admit.
        expired = [k for k, s in self._clients.items() if now > s.reset_at_ms]
        for key in expired:
            del self._clients[key]
        self._last_sweep_ms = now
        return len(expired)
