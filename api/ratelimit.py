"""
Rate limiting (simple in-memory sliding window).

Applied by the HTTP layer in front of the forum service. Counters live in the
serving process only, so each serverless instance limits independently.
"""
import threading
import time
from collections import defaultdict


class RateLimiter:
    def __init__(self, max_events: int, window_seconds: float, clock=time.monotonic):
        self.max_events = max_events
        self.window_seconds = window_seconds
        self.clock = clock
        self._events = defaultdict(list)
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._events)

    def hit(self, key: str) -> bool:
        """Record an event for key. False if the key is over its limit."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            recent = [t for t in self._events[key] if now - t < self.window_seconds]
            if len(recent) >= self.max_events:
                self._events[key] = recent
                return False
            recent.append(now)
            self._events[key] = recent
            return True

    def reset(self) -> None:
        with self._lock:
            self._events.clear()

    def _sweep(self, now: float) -> None:
        # Drop keys with no events left in the window. Caller holds the lock.
        stale = [k for k, events in self._events.items() if not events or now - events[-1] >= self.window_seconds]
        for key in stale:
            del self._events[key]
        self._last_sweep = now


class ForumRateLimits:
    """Per-author write limits: new threads and replies are counted separately."""

    def __init__(self, thread_limiter: RateLimiter, reply_limiter: RateLimiter):
        self.threads = thread_limiter
        self.replies = reply_limiter

    @classmethod
    def from_settings(cls, settings) -> "ForumRateLimits":
        return cls(
            RateLimiter(settings.thread_rate, settings.forum_rate_window),
            RateLimiter(settings.reply_rate, settings.forum_rate_window),
        )

    def allow(self, author_id: str, is_reply: bool) -> bool:
        limiter = self.replies if is_reply else self.threads
        return limiter.hit(author_id)
