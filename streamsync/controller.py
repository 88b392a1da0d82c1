"""
Playback Synchronization Controller

Keeps several independently buffering streams aligned to one master
timeline. A QTimer fires a tick every ``tick_interval_ms`` on the Qt
event loop; each tick reads the master position, then slews or steps
every ready follower toward it.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .errors import StreamUnready
from .handles import StreamHandle, StreamPosition
from .master_selector import MasterSelector
from .rate_adjuster import (
    DEFAULT_PARAMS,
    NEUTRAL_RATE,
    CorrectionAction,
    Slew,
    Step,
    SyncParams,
    adjust,
)

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 300

# FollowerResult.status values
APPLIED = "applied"
UNREADY = "unready"
FAILED = "failed"


@dataclass
class FollowerResult:
    """Outcome of one follower's correction in one tick."""
    index: int
    status: str
    offset: Optional[float] = None
    action: Optional[CorrectionAction] = None


@dataclass
class TickReport:
    """What a single tick observed and did. Not kept between ticks."""
    master_index: int
    master_position: float
    master_ready: bool
    followers: List[FollowerResult] = field(default_factory=list)

    def offsets(self) -> dict:
        """Map follower index to offset, for followers that were ready."""
        return {r.index: r.offset for r in self.followers if r.offset is not None}


class SyncSession:
    """
    Handle set and mutable session flags.

    The handle collection is fixed for the session's lifetime. The
    session references the handles but never owns their lifecycle.
    """

    def __init__(
        self,
        handles: Sequence[StreamHandle],
        master_index: int = 0,
        enabled: bool = True,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        params: SyncParams = DEFAULT_PARAMS,
    ):
        if not handles:
            raise ValueError("a sync session needs at least one stream handle")
        if tick_interval_ms <= 0:
            raise ValueError(f"tick interval must be positive (got {tick_interval_ms})")
        self.handles: Tuple[StreamHandle, ...] = tuple(handles)
        self.selector = MasterSelector(len(self.handles), master_index)
        self.enabled = bool(enabled)
        self.tick_interval_ms = int(tick_interval_ms)
        self.params = params
        self.lock = threading.Lock()

    def snapshot(self) -> Tuple[int, bool]:
        """Consistent read of (master_index, enabled)."""
        with self.lock:
            return self.selector.index, self.enabled

    @property
    def master_index(self) -> int:
        return self.selector.index

    def __len__(self) -> int:
        return len(self.handles)


class SyncController(QObject):
    """
    Drives a SyncSession from a periodic QTimer.

    States are Enabled and Disabled. Enabling (re)starts the timer;
    disabling stops it and resets every stream to neutral rate. The
    controller only runs ticks between ``start()`` and ``stop()``.
    """

    enabled_changed = pyqtSignal(bool)
    master_changed = pyqtSignal(int)
    tick_finished = pyqtSignal(object)  # TickReport

    def __init__(self, session: SyncSession, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.session = session
        self._started = False

        self._timer = QTimer(self)
        self._timer.setInterval(session.tick_interval_ms)
        self._timer.timeout.connect(self.tick)

    # -- lifecycle ---------------------------------------------------------

    def start(self):
        """Begin ticking if the session is enabled."""
        if self._started:
            return
        self._started = True
        if self.session.enabled:
            self._timer.start()
        logger.info(
            "Sync session started: %d streams, master=%d, enabled=%s, interval=%dms",
            len(self.session), self.session.master_index,
            self.session.enabled, self.session.tick_interval_ms,
        )

    def stop(self):
        """
        Cancel all further ticks and return streams to neutral rate.

        Ticks run on the thread that owns the timer, so once the timer is
        stopped from that thread no tick can fire afterwards.
        """
        if not self._started:
            return
        self._timer.stop()
        self._started = False
        if self.session.enabled:
            self._reset_all_rates()
        logger.info("Sync session stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    # -- caller-facing state -----------------------------------------------

    @property
    def enabled(self) -> bool:
        return self.session.snapshot()[1]

    @property
    def master_index(self) -> int:
        return self.session.snapshot()[0]

    @property
    def running(self) -> bool:
        """True while ticks are scheduled."""
        return self._timer.isActive()

    def set_enabled(self, enabled: bool):
        """Switch between Enabled and Disabled."""
        enabled = bool(enabled)
        with self.session.lock:
            if self.session.enabled == enabled:
                return
            self.session.enabled = enabled

        if enabled:
            if self._started:
                self._timer.start()
            logger.info("Sync enabled")
        else:
            self._timer.stop()
            self._reset_all_rates()
            logger.info("Sync disabled, rates reset")

        self.enabled_changed.emit(enabled)

    def toggle_enabled(self) -> bool:
        """Flip the enabled flag. Returns the new state."""
        self.set_enabled(not self.enabled)
        return self.enabled

    def set_master_index(self, index: int) -> bool:
        """
        Choose a new master. Takes effect on the next tick.

        Returns False, keeping the current master, if ``index`` is out of
        range.
        """
        with self.session.lock:
            previous = self.session.selector.index
            accepted = self.session.selector.select(index)
        if accepted and index != previous:
            logger.info("Master changed: %d -> %d", previous, index)
            self.master_changed.emit(index)
        return accepted

    # -- tick --------------------------------------------------------------

    def tick(self) -> Optional[TickReport]:
        """Run one synchronization pass over every follower."""
        master_index, enabled = self.session.snapshot()
        if not enabled:
            return None

        handles = self.session.handles
        master_pos = self._read_position(handles[master_index])
        report = TickReport(master_index, master_pos.seconds, master_pos.ready)

        if not master_pos.ready:
            # No follower is corrected against an unready master
            logger.debug("Master %s not ready, tick skipped", handles[master_index].name)
            self.tick_finished.emit(report)
            return report

        for index in self.session.selector.followers(master_index):
            report.followers.append(self._correct(index, handles[index], master_pos.seconds))

        self.tick_finished.emit(report)
        return report

    def _read_position(self, handle: StreamHandle) -> StreamPosition:
        try:
            return handle.position()
        except StreamUnready as e:
            logger.debug("Unready: %s", e)
        except Exception as e:
            logger.debug("%s: position unavailable: %s", handle.name, e)
        return StreamPosition(0.0, False)

    def _correct(self, index: int, handle: StreamHandle, master_position: float) -> FollowerResult:
        pos = self._read_position(handle)
        if not pos.ready:
            return FollowerResult(index, UNREADY)

        offset = pos.seconds - master_position
        action = adjust(offset, master_position, self.session.params)

        try:
            self._apply(handle, action)
        except Exception as e:
            logger.debug("%s: %s correction failed: %s", handle.name, action.kind, e)
            return FollowerResult(index, FAILED, offset, action)

        logger.debug("%s: offset %+.3fs -> %s", handle.name, offset, action)
        return FollowerResult(index, APPLIED, offset, action)

    @staticmethod
    def _apply(handle: StreamHandle, action: CorrectionAction):
        if isinstance(action, Step):
            try:
                handle.seek_to(action.target)
            finally:
                handle.reset_rate()
        elif isinstance(action, Slew):
            handle.set_rate(action.rate)
        elif handle.rate != NEUTRAL_RATE:
            handle.reset_rate()

    def _reset_all_rates(self):
        for handle in self.session.handles:
            try:
                handle.reset_rate()
            except Exception as e:
                logger.debug("%s: rate reset failed: %s", handle.name, e)
