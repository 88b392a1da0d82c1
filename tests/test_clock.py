import pytest

from streamsync.clock import RateClock


def test_runs_in_real_time_at_neutral_rate(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(10.0)
    fake_time.advance(1.5)
    assert clock.get_time() == pytest.approx(11.5)
    assert clock.is_running()


def test_rate_change_is_continuous(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(0.0)
    fake_time.advance(2.0)

    clock.set_rate(0.5)
    assert clock.get_time() == pytest.approx(2.0)
    assert clock.rate == 0.5

    fake_time.advance(2.0)
    assert clock.get_time() == pytest.approx(3.0)

    clock.set_rate(1.08)
    fake_time.advance(1.0)
    assert clock.get_time() == pytest.approx(4.08)


def test_pause_and_resume(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(5.0)
    fake_time.advance(1.0)
    clock.pause()
    fake_time.advance(10.0)
    assert clock.get_time() == pytest.approx(6.0)
    assert not clock.is_running()

    clock.resume()
    fake_time.advance(1.0)
    assert clock.get_time() == pytest.approx(7.0)


def test_seek_while_running_and_paused(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(0.0)
    fake_time.advance(3.0)
    clock.seek(20.0)
    assert clock.get_time() == pytest.approx(20.0)
    fake_time.advance(1.0)
    assert clock.get_time() == pytest.approx(21.0)

    clock.pause()
    clock.seek(2.0)
    assert clock.get_time() == pytest.approx(2.0)


def test_rate_set_while_paused_applies_on_resume(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(0.0)
    clock.pause()
    clock.set_rate(2.0)
    clock.resume()
    fake_time.advance(1.0)
    assert clock.get_time() == pytest.approx(2.0)


@pytest.mark.parametrize("rate", [0.0, -1.0])
def test_non_positive_rate_rejected(rate):
    with pytest.raises(ValueError):
        RateClock().set_rate(rate)


def test_stop_rewinds_and_resets_rate(fake_time):
    clock = RateClock(time_fn=fake_time)
    clock.start(4.0)
    clock.set_rate(0.92)
    clock.stop()
    assert clock.get_time() == 0.0
    assert clock.rate == 1.0
    assert not clock.is_running()
