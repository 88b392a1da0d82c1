"""
Video Decoder Module

Decodes one stream (HLS playlist, file or URL) with PyAV in a background
thread and feeds RGB frames to a bounded queue.
"""

import logging
import threading
import time
import queue
from dataclasses import dataclass
from typing import Optional
import av
import numpy as np

logger = logging.getLogger(__name__)

# Constants
PAUSE_POLL_INTERVAL = 0.05  # seconds
QUEUE_PUT_TIMEOUT = 0.02  # seconds
DEFAULT_FPS = 30.0
OPEN_TIMEOUT = 10.0  # seconds, network sources only


@dataclass
class VideoFrame:
    """Container for decoded video frame data."""
    image: np.ndarray  # RGB frame data
    pts: float  # Presentation timestamp in seconds
    frame_number: int


class VideoDecoder(threading.Thread):
    """
    Decodes video frames from a media source using PyAV.

    Runs in a separate thread and feeds frames to a queue for display.
    Seeks are requested from any thread and carried out by the decode loop.
    Unless open() was called first, the thread opens the source itself so
    slow network sources never block the caller.
    """

    def __init__(
        self,
        source: str,
        frame_queue: queue.Queue,
        max_width: int = 0,
    ):
        super().__init__(daemon=True)
        self.source = source
        self.frame_queue = frame_queue
        self.max_width = max_width

        self._running = False
        self._paused = False
        self._finished = False  # Explicit end-of-stream flag
        self._seek_requested = False
        self._seek_target = 0.0
        self._lock = threading.Lock()

        self.container: Optional[av.container.InputContainer] = None
        self.video_stream: Optional[av.video.stream.VideoStream] = None
        self.duration: float = 0.0
        self.fps: float = DEFAULT_FPS
        self.width: int = 0
        self.height: int = 0
        self.error: Optional[str] = None

    @property
    def is_network(self) -> bool:
        return "://" in self.source and not self.source.startswith("file://")

    def open(self) -> bool:
        """Open the source and extract metadata."""
        try:
            if self.is_network:
                self.container = av.open(self.source, timeout=OPEN_TIMEOUT)
            else:
                self.container = av.open(self.source)

            # Find video stream
            for stream in self.container.streams:
                if stream.type == 'video':
                    self.video_stream = stream
                    break

            if self.video_stream is None:
                self.error = "no video stream"
                logger.error("No video stream found in %s", self.source)
                return False

            # Live HLS has no duration
            self.duration = float(self.container.duration / av.time_base) if self.container.duration else 0.0
            self.fps = float(self.video_stream.average_rate) if self.video_stream.average_rate else DEFAULT_FPS
            self.width = self.video_stream.width
            self.height = self.video_stream.height

            # Set thread count for faster decoding
            self.video_stream.thread_type = "AUTO"

            logger.info(
                "Opened %s: %dx%d @ %.2f fps", self.source, self.width, self.height, self.fps
            )
            return True

        except Exception as e:
            self.error = str(e)
            logger.error("Error opening %s: %s", self.source, e)
            return False

    def _to_rgb(self, frame) -> np.ndarray:
        if self.max_width and frame.width > self.max_width:
            height = int(frame.height * self.max_width / frame.width) // 2 * 2
            return frame.to_ndarray(format='rgb24', width=self.max_width, height=height)
        return frame.to_ndarray(format='rgb24')

    def _drain_queue(self):
        while not self.frame_queue.empty():
            try:
                self.frame_queue.get_nowait()
            except queue.Empty:
                break

    def run(self):
        """Main decoding loop."""
        if self.container is None and not self.open():
            self._finished = True
            return

        self._running = True
        self._finished = False
        frame_number = 0

        try:
            while self._running:
                while self._paused and self._running:
                    time.sleep(PAUSE_POLL_INTERVAL)

                if not self._running:
                    break

                with self._lock:
                    if self._seek_requested:
                        self._perform_seek()
                        self._seek_requested = False
                        frame_number = int(self._seek_target * self.fps)
                        self._drain_queue()

                try:
                    for frame in self.container.decode(video=0):
                        if not self._running:
                            break

                        with self._lock:
                            if self._seek_requested:
                                break

                        while self._paused and self._running:
                            time.sleep(PAUSE_POLL_INTERVAL)

                        if not self._running:
                            break

                        pts = float(frame.pts * self.video_stream.time_base) if frame.pts is not None else frame_number / self.fps

                        video_frame = VideoFrame(
                            image=self._to_rgb(frame),
                            pts=pts,
                            frame_number=frame_number
                        )

                        while self._running and not self._seek_requested and not self._paused:
                            try:
                                self.frame_queue.put(video_frame, timeout=QUEUE_PUT_TIMEOUT)
                                break
                            except queue.Full:
                                continue

                        frame_number += 1
                    else:
                        # End of stream reached
                        self._finished = True
                        self._running = False
                        break

                except av.error.EOFError:
                    self._finished = True
                    self._running = False
                    break
                except av.error.FFmpegError as e:
                    logger.warning("Decode error in %s: %s", self.source, e)
                    continue

        finally:
            self._finished = True

    def _perform_seek(self):
        """Perform the actual seek operation."""
        if self.container and self.video_stream:
            target_ts = int(self._seek_target / self.video_stream.time_base)
            try:
                self.container.seek(target_ts, stream=self.video_stream)
            except av.error.FFmpegError as e:
                logger.warning("Seek error in %s: %s", self.source, e)

    def seek(self, position: float):
        """Request a seek to the specified position in seconds."""
        with self._lock:
            target = max(0.0, position)
            if self.duration > 0:
                target = min(target, self.duration)
            self._seek_target = target
            self._seek_requested = True
            self._finished = False

    @property
    def seek_pending(self) -> bool:
        with self._lock:
            return self._seek_requested

    @property
    def is_finished(self) -> bool:
        """Check if decoder has reached end of stream."""
        return self._finished and not self._running

    @property
    def buffered(self) -> int:
        """Number of decoded frames waiting in the queue."""
        return self.frame_queue.qsize()

    def pause(self):
        """Pause video decoding."""
        self._paused = True

    def resume(self):
        """Resume video decoding. Does nothing if at end of stream."""
        if not self._running:
            return
        self._paused = False

    def stop(self):
        """Stop the decoder thread."""
        self._running = False
        self._paused = False  # Unblock if paused
        if self.is_alive():
            self.join(timeout=1.0)
        if self.container:
            self.container.close()
            self.container = None
