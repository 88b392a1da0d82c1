"""
Stream Player Module

One decoded stream presented against its own rate-aware clock, and the
StreamHandle adapter that lets the sync controller read and correct it.
"""

import logging
import queue
from typing import Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .clock import RateClock
from .errors import CorrectionApplyFailure, StreamUnready
from .handles import StreamHandle, StreamPosition
from .registry import StreamSpec
from .video_decoder import VideoDecoder, VideoFrame

logger = logging.getLogger(__name__)

FRAME_QUEUE_SIZE = 30
DISPLAY_INTERVAL_MS = 10
DEFAULT_MAX_WIDTH = 640

# Player status values
IDLE = "idle"
LOADING = "loading"
PLAYING = "playing"
ENDED = "ended"
ERROR = "error"


class StreamPlayer(QObject):
    """
    Plays one stream into a tile.

    A VideoDecoder thread fills the frame queue; a QTimer on the GUI
    thread pulls every frame whose pts has been reached by the clock and
    emits the newest one. The clock starts at the first decoded frame's
    pts, since live playlists rarely begin at zero.
    """

    frame_ready = pyqtSignal(object)  # np.ndarray RGB image
    status_changed = pyqtSignal(str)

    def __init__(
        self,
        spec: StreamSpec,
        max_width: int = DEFAULT_MAX_WIDTH,
        clock: Optional[RateClock] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.spec = spec
        self.max_width = max_width
        self.clock = clock or RateClock()

        self._frame_queue: queue.Queue = queue.Queue(maxsize=FRAME_QUEUE_SIZE)
        self._decoder: Optional[VideoDecoder] = None
        self._pending_frame: Optional[VideoFrame] = None
        self._status = IDLE

        self._display_timer = QTimer(self)
        self._display_timer.setInterval(DISPLAY_INTERVAL_MS)
        self._display_timer.timeout.connect(self._on_display_tick)

    @property
    def status(self) -> str:
        return self._status

    def _set_status(self, status: str):
        if status != self._status:
            self._status = status
            logger.debug("%s: %s", self.spec.name, status)
            self.status_changed.emit(status)

    def open(self):
        """Prepare a decoder for the source. The decoder thread does the I/O."""
        self._set_status(LOADING)
        self._decoder = VideoDecoder(
            source=self.spec.url,
            frame_queue=self._frame_queue,
            max_width=self.max_width,
        )

    def play(self):
        """Start decoding and presenting frames."""
        if self._decoder is None:
            return
        if not self._decoder.is_alive() and not self._decoder.is_finished:
            self._decoder.start()
        else:
            self._decoder.resume()
            self.clock.resume()
        self._display_timer.start()

    def pause(self):
        self._display_timer.stop()
        self.clock.pause()
        if self._decoder:
            self._decoder.pause()

    def seek(self, position: float):
        """Seek to a position in seconds."""
        if self._decoder is None:
            raise CorrectionApplyFailure(self.spec.name, "seek_to")
        self._decoder.seek(position)
        self._pending_frame = None
        self._drain_queue()
        self.clock.seek(position)

    def set_rate(self, rate: float):
        self.clock.set_rate(rate)

    @property
    def rate(self) -> float:
        return self.clock.rate

    @property
    def position(self) -> float:
        return self.clock.get_time()

    @property
    def has_source(self) -> bool:
        return self._decoder is not None

    @property
    def is_ready(self) -> bool:
        """
        True when the clock is running and a frame for the current
        position is at hand.
        """
        decoder = self._decoder
        if decoder is None or decoder.is_finished or decoder.seek_pending:
            return False
        if not self.clock.is_running():
            return False
        return self._pending_frame is not None or decoder.buffered > 0

    def _on_display_tick(self):
        """Called by timer to present the next due frame."""
        if self._decoder is None:
            return

        if self._decoder.error:
            self._display_timer.stop()
            self._set_status(ERROR)
            return

        # Frames decoded before the seek target must not be presented
        if self._decoder.seek_pending:
            self._pending_frame = None
            return

        if not self.clock.is_running():
            try:
                first = self._frame_queue.get_nowait()
            except queue.Empty:
                return
            self.clock.start(first.pts)
            self._pending_frame = first
            self._set_status(PLAYING)

        current_time = self.clock.get_time()
        frame_to_display = None

        if self._pending_frame is not None:
            if self._pending_frame.pts <= current_time:
                frame_to_display = self._pending_frame
                self._pending_frame = None
            else:
                return

        while True:
            try:
                frame = self._frame_queue.get_nowait()
            except queue.Empty:
                break
            if frame.pts <= current_time:
                frame_to_display = frame
            else:
                self._pending_frame = frame
                break

        if frame_to_display is not None:
            self.frame_ready.emit(frame_to_display.image)
        elif self._decoder.is_finished and self._frame_queue.empty():
            self._display_timer.stop()
            self._set_status(ENDED)

    def _drain_queue(self):
        while not self._frame_queue.empty():
            try:
                self._frame_queue.get_nowait()
            except queue.Empty:
                break

    def stop(self):
        """Stop playback and release the decoder."""
        self._display_timer.stop()
        if self._decoder:
            self._decoder.stop()
            self._decoder = None
        self._drain_queue()
        self._pending_frame = None
        self.clock.stop()
        self._set_status(IDLE)


class PlayerStreamHandle(StreamHandle):
    """StreamHandle over a StreamPlayer."""

    def __init__(self, index: int, player: StreamPlayer):
        super().__init__(index, player.spec.id, player.spec.name)
        self.player = player

    def position(self) -> StreamPosition:
        if not self.player.has_source:
            raise StreamUnready(self.name, "no source")
        return StreamPosition(self.player.position, self.player.is_ready)

    @property
    def rate(self) -> float:
        return self.player.rate

    def set_rate(self, factor: float) -> None:
        if not self.player.has_source:
            raise CorrectionApplyFailure(self.name, "set_rate")
        try:
            self.player.set_rate(factor)
        except ValueError as e:
            raise CorrectionApplyFailure(self.name, "set_rate", e) from e

    def reset_rate(self) -> None:
        # Neutral rate is always applicable, even without a source
        self.player.set_rate(1.0)

    def seek_to(self, seconds: float) -> None:
        self.player.seek(seconds)
