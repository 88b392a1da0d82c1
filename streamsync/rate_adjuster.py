"""
Rate Adjustment Policy

Maps a follower's timing offset to a single correction action:
small drift is ignored, moderate drift is slewed away by nudging the
playback rate, and large drift is stepped away with a hard seek.
"""

from dataclasses import dataclass
from typing import Union

HARD_DESYNC_THRESHOLD = 0.5  # seconds; beyond this, seek
SOFT_DESYNC_THRESHOLD = 0.08  # seconds; within this, leave alone
RATE_GAIN = 0.5
MAX_RATE_OFFSET = 0.08
NEUTRAL_RATE = 1.0


@dataclass(frozen=True)
class SyncParams:
    """Tuning constants for the correction policy."""
    hard_threshold: float = HARD_DESYNC_THRESHOLD
    soft_threshold: float = SOFT_DESYNC_THRESHOLD
    gain: float = RATE_GAIN
    max_rate_offset: float = MAX_RATE_OFFSET

    def __post_init__(self):
        if not 0.0 < self.soft_threshold <= self.hard_threshold:
            raise ValueError(
                f"thresholds must satisfy 0 < soft <= hard "
                f"(soft={self.soft_threshold}, hard={self.hard_threshold})"
            )
        if self.gain <= 0.0:
            raise ValueError(f"gain must be positive (got {self.gain})")
        if not 0.0 <= self.max_rate_offset < 1.0:
            raise ValueError(
                f"max_rate_offset must be in [0, 1) (got {self.max_rate_offset})"
            )

    @property
    def min_rate(self) -> float:
        return NEUTRAL_RATE - self.max_rate_offset

    @property
    def max_rate(self) -> float:
        return NEUTRAL_RATE + self.max_rate_offset


DEFAULT_PARAMS = SyncParams()


@dataclass(frozen=True)
class NoOp:
    """Follower is close enough; its rate is normalized to 1.0."""

    @property
    def kind(self) -> str:
        return "noop"


@dataclass(frozen=True)
class Slew:
    """Play the follower slightly faster or slower."""
    rate: float

    @property
    def kind(self) -> str:
        return "slew"


@dataclass(frozen=True)
class Step:
    """Seek the follower to the master's position and reset its rate."""
    target: float

    @property
    def kind(self) -> str:
        return "step"


CorrectionAction = Union[NoOp, Slew, Step]


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def adjust(
    offset: float,
    master_position: float,
    params: SyncParams = DEFAULT_PARAMS,
) -> CorrectionAction:
    """
    Choose the correction for one follower.

    Args:
        offset: Follower position minus master position, in seconds.
            Positive means the follower is ahead.
        master_position: The master's position this tick (Step target)
        params: Thresholds and gain

    Returns:
        Exactly one of NoOp, Slew or Step
    """
    magnitude = abs(offset)

    if magnitude > params.hard_threshold:
        return Step(master_position)

    if magnitude > params.soft_threshold:
        rate = clamp(NEUTRAL_RATE - params.gain * offset, params.min_rate, params.max_rate)
        return Slew(rate)

    return NoOp()
