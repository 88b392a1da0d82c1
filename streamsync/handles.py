"""
Stream Handles

The capability contract the synchronization controller uses to read and
correct one stream, plus a clock-backed implementation used by the
headless simulation.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

from .clock import RateClock
from .errors import CorrectionApplyFailure


class StreamPosition(NamedTuple):
    """Snapshot of a stream's playback position."""
    seconds: float
    ready: bool


class StreamHandle(ABC):
    """
    Per-stream accessor for position, readiness, rate and seek.

    Implementations must be cheap and non-blocking; any real I/O
    happens behind them. ``set_rate`` and ``seek_to`` may raise, and the
    controller treats a raise as a failed correction for that stream only.
    """

    def __init__(self, index: int, stream_id, name: str):
        self.index = index
        self.stream_id = stream_id
        self.name = name

    @abstractmethod
    def position(self) -> StreamPosition:
        """Current position in seconds and whether it can be trusted."""

    @property
    @abstractmethod
    def rate(self) -> float:
        """Current playback rate factor."""

    @abstractmethod
    def set_rate(self, factor: float) -> None:
        """Change the playback rate factor."""

    @abstractmethod
    def seek_to(self, seconds: float) -> None:
        """Jump to an absolute position."""

    def reset_rate(self) -> None:
        """Return to neutral playback rate."""
        self.set_rate(1.0)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(index={self.index}, name={self.name!r})"


class ClockStreamHandle(StreamHandle):
    """
    Stream handle backed by a bare RateClock.

    Stands in for a player whose position advances in real time. The
    ``ready`` flag can be flipped to mimic buffering, and ``fail_seeks``
    makes seeks raise as a player without seekable media would.
    """

    def __init__(
        self,
        index: int,
        stream_id,
        name: str,
        clock: Optional[RateClock] = None,
        ready: bool = True,
    ):
        super().__init__(index, stream_id, name)
        self.clock = clock or RateClock()
        self.ready = ready
        self.fail_seeks = False

    def position(self) -> StreamPosition:
        return StreamPosition(self.clock.get_time(), self.ready)

    @property
    def rate(self) -> float:
        return self.clock.rate

    def set_rate(self, factor: float) -> None:
        try:
            self.clock.set_rate(factor)
        except ValueError as e:
            raise CorrectionApplyFailure(self.name, "set_rate", e) from e

    def seek_to(self, seconds: float) -> None:
        if self.fail_seeks:
            raise CorrectionApplyFailure(self.name, "seek_to")
        self.clock.seek(max(0.0, seconds))
