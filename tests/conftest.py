import pytest
from PyQt6.QtCore import QCoreApplication

from streamsync.errors import CorrectionApplyFailure, StreamUnready
from streamsync.handles import StreamHandle, StreamPosition


class FakeHandle(StreamHandle):
    """Handle with a fixed position that records every correction."""

    def __init__(self, index, seconds=0.0, ready=True, rate=1.0):
        super().__init__(index, index + 1, f"Stream {index + 1}")
        self.seconds = seconds
        self.ready = ready
        self._rate = rate
        self.calls = []
        self.fail_set_rate = False
        self.fail_seek = False
        self.fail_position = False
        self.no_source = False

    def position(self):
        if self.no_source:
            raise StreamUnready(self.name, "no source")
        if self.fail_position:
            raise RuntimeError("decoder gone")
        return StreamPosition(self.seconds, self.ready)

    @property
    def rate(self):
        return self._rate

    def set_rate(self, factor):
        self.calls.append(("set_rate", factor))
        if self.fail_set_rate:
            raise CorrectionApplyFailure(self.name, "set_rate")
        self._rate = factor

    def seek_to(self, seconds):
        self.calls.append(("seek_to", seconds))
        if self.fail_seek:
            raise CorrectionApplyFailure(self.name, "seek_to")
        self.seconds = seconds


class FakeTime:
    """Manually advanced time source for RateClock."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def make_handles():
    def _make(*positions, ready=True):
        return [FakeHandle(i, seconds, ready) for i, seconds in enumerate(positions)]
    return _make


@pytest.fixture
def fake_time():
    return FakeTime()
