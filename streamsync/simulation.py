"""
Drift Simulation

Clock-backed streams that start out of step and occasionally stall,
for running the controller without any media.
"""

from typing import List, Optional, Sequence

import numpy as np

from .clock import RateClock
from .controller import APPLIED, FAILED, UNREADY, TickReport
from .handles import ClockStreamHandle
from .registry import StreamSpec

DEFAULT_MAX_START_OFFSET = 1.2  # seconds
DEFAULT_STALL_PROBABILITY = 0.05
DEFAULT_STALL_SECONDS = 0.25


class DriftSimulator:
    """
    Owns a set of ClockStreamHandles and perturbs them.

    Each clock starts at ``base + uniform(-max_start_offset, max_start_offset)``
    (the first stream starts exactly at ``base``). ``perturb()`` makes each
    stream independently stall with probability ``stall_probability``:
    it goes unready for one call and its clock loses ``stall_seconds``.
    """

    def __init__(
        self,
        specs: Sequence[StreamSpec],
        base_position: float = 10.0,
        max_start_offset: float = DEFAULT_MAX_START_OFFSET,
        stall_probability: float = DEFAULT_STALL_PROBABILITY,
        stall_seconds: float = DEFAULT_STALL_SECONDS,
        seed: Optional[int] = None,
    ):
        self._rng = np.random.default_rng(seed)
        self.stall_probability = stall_probability
        self.stall_seconds = stall_seconds

        offsets = self._rng.uniform(-max_start_offset, max_start_offset, size=len(specs))
        offsets[0] = 0.0

        self.handles: List[ClockStreamHandle] = []
        for i, spec in enumerate(specs):
            clock = RateClock()
            clock.start(max(0.0, base_position + float(offsets[i])))
            self.handles.append(ClockStreamHandle(i, spec.id, spec.name, clock))

    def perturb(self) -> List[int]:
        """Apply one round of random stalls. Returns the stalled indices."""
        stalled = []
        rolls = self._rng.random(len(self.handles))
        for handle, roll in zip(self.handles, rolls):
            if not handle.ready:
                handle.ready = True
                continue
            if roll < self.stall_probability:
                handle.ready = False
                handle.clock.seek(max(0.0, handle.clock.get_time() - self.stall_seconds))
                stalled.append(handle.index)
        return stalled

    def stop(self):
        for handle in self.handles:
            handle.clock.stop()


def format_report(report: TickReport, names: Sequence[str]) -> str:
    """One-line summary of a tick for the log."""
    master = names[report.master_index]
    if not report.master_ready:
        return f"master {master} not ready, tick skipped"

    parts: List[str] = [f"master {master} @ {report.master_position:.2f}s"]
    for result in report.followers:
        name = names[result.index]
        if result.status == UNREADY:
            parts.append(f"{name}: buffering")
        elif result.status == FAILED:
            parts.append(f"{name}: {result.action.kind} failed")
        elif result.status == APPLIED:
            parts.append(f"{name}: {result.offset * 1000:+.0f}ms {result.action.kind}")
    return " | ".join(parts)
