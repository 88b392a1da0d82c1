"""
Rate-Aware Playback Clock

Provides the time reference a single stream presents frames against.
Unlike a wall clock it can run slightly fast or slow, which is how the
synchronization controller slews a follower.
"""

import time
import threading
from typing import Callable


class RateClock:
    """
    Playback clock with an adjustable rate.

    Position is ``anchor_pts + (now - anchor_time) * rate`` while running.
    Every rate change, seek or resume re-anchors, so position stays
    continuous across rate changes.
    """

    def __init__(self, time_fn: Callable[[], float] = time.perf_counter):
        self._time_fn = time_fn
        self._lock = threading.Lock()
        self._is_running = False
        self._anchor_time = 0.0
        self._anchor_pts = 0.0
        self._paused_at = 0.0
        self._rate = 1.0

    def _position_locked(self) -> float:
        if self._is_running:
            elapsed = self._time_fn() - self._anchor_time
            return self._anchor_pts + elapsed * self._rate
        return self._paused_at

    def start(self, pts: float = 0.0):
        """Start the clock from the given PTS."""
        with self._lock:
            self._anchor_time = self._time_fn()
            self._anchor_pts = pts
            self._paused_at = pts
            self._is_running = True

    def pause(self):
        """Pause the clock."""
        with self._lock:
            if self._is_running:
                self._paused_at = self._position_locked()
                self._is_running = False

    def resume(self):
        """Resume the clock."""
        with self._lock:
            if not self._is_running:
                self._anchor_time = self._time_fn()
                self._anchor_pts = self._paused_at
                self._is_running = True

    def seek(self, pts: float):
        """Jump to a new position."""
        with self._lock:
            self._anchor_pts = pts
            self._anchor_time = self._time_fn()
            self._paused_at = pts

    def set_rate(self, rate: float):
        """Change the playback rate without a position jump."""
        if rate <= 0.0:
            raise ValueError(f"rate must be positive (got {rate})")
        with self._lock:
            if self._is_running:
                self._anchor_pts = self._position_locked()
                self._anchor_time = self._time_fn()
            self._rate = rate

    @property
    def rate(self) -> float:
        with self._lock:
            return self._rate

    def get_time(self) -> float:
        """Get current playback time in seconds."""
        with self._lock:
            return self._position_locked()

    def is_running(self) -> bool:
        """Check if clock is running."""
        with self._lock:
            return self._is_running

    def stop(self):
        """Stop the clock and rewind to zero."""
        with self._lock:
            self._is_running = False
            self._anchor_pts = 0.0
            self._paused_at = 0.0
            self._rate = 1.0
