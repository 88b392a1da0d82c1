import pytest

from streamsync.clock import RateClock
from streamsync.errors import CorrectionApplyFailure
from streamsync.handles import ClockStreamHandle, StreamHandle, StreamPosition


def test_stream_handle_is_abstract():
    with pytest.raises(TypeError):
        StreamHandle(0, 1, "Stream 1")


def test_clock_handle_reports_position(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(10.0)
    handle = ClockStreamHandle(0, 1, "Stream 1", clock)

    fake_time.advance(0.5)
    assert handle.position() == StreamPosition(pytest.approx(10.5), True)

    handle.ready = False
    assert handle.position().ready is False


def test_clock_handle_rate_and_seek(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(10.0)
    handle = ClockStreamHandle(2, "cam-3", "Camera 3", clock)

    handle.set_rate(1.08)
    assert handle.rate == 1.08
    handle.reset_rate()
    assert handle.rate == 1.0

    handle.seek_to(4.0)
    assert handle.position().seconds == pytest.approx(4.0)
    handle.seek_to(-2.0)
    assert handle.position().seconds == pytest.approx(0.0)


def test_clock_handle_failures():
    handle = ClockStreamHandle(0, 1, "Stream 1")
    with pytest.raises(CorrectionApplyFailure):
        handle.set_rate(0.0)

    handle.fail_seeks = True
    with pytest.raises(CorrectionApplyFailure) as excinfo:
        handle.seek_to(1.0)
    assert excinfo.value.operation == "seek_to"


def test_repr():
    assert repr(ClockStreamHandle(1, 2, "Stream 2")) == "ClockStreamHandle(index=1, name='Stream 2')"
