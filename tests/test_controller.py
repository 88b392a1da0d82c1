import pytest
from PyQt6.QtCore import QEventLoop, QTimer

from streamsync.controller import (
    APPLIED,
    FAILED,
    UNREADY,
    SyncController,
    SyncSession,
)
from streamsync.rate_adjuster import NoOp, Slew, Step


@pytest.fixture
def controller_for(qapp):
    created = []

    def _make(handles, **kwargs):
        controller = SyncController(SyncSession(handles, **kwargs))
        created.append(controller)
        return controller

    yield _make
    for controller in created:
        controller.stop()


def spin(ms):
    loop = QEventLoop()
    QTimer.singleShot(ms, loop.quit)
    loop.exec()


def test_end_to_end_scenario(make_handles, controller_for):
    master, near, drifting, far = make_handles(10.00, 10.03, 10.20, 11.00)
    near._rate = 1.04
    controller = controller_for([master, near, drifting, far])

    report = controller.tick()

    assert near.rate == 1.0
    assert drifting.rate == pytest.approx(0.92)
    assert far.seconds == 10.00
    assert far.rate == 1.0
    assert far.calls == [("seek_to", 10.00), ("set_rate", 1.0)]
    assert master.calls == []

    actions = {r.index: r.action for r in report.followers}
    assert actions[1] == NoOp()
    assert isinstance(actions[2], Slew)
    assert actions[3] == Step(10.00)
    assert all(r.status == APPLIED for r in report.followers)


def test_noop_is_idempotent(make_handles, controller_for):
    master, follower = make_handles(5.0, 5.05)
    controller = controller_for([master, follower])
    for _ in range(3):
        controller.tick()
    assert follower.rate == 1.0
    assert follower.calls == []


def test_unready_master_skips_whole_tick(make_handles, controller_for):
    master, a, b = make_handles(10.0, 12.0, 10.3)
    master.ready = False
    controller = controller_for([master, a, b])

    report = controller.tick()

    assert not report.master_ready
    assert report.followers == []
    assert a.calls == [] and b.calls == []
    assert a.seconds == 12.0


def test_failing_master_position_counts_as_unready(make_handles, controller_for):
    master, follower = make_handles(10.0, 12.0)
    master.fail_position = True
    controller = controller_for([master, follower])

    assert not controller.tick().master_ready
    assert follower.calls == []


def test_unready_follower_skipped_only(make_handles, controller_for):
    master, stalled, drifting = make_handles(10.0, 12.0, 10.3)
    stalled.ready = False
    controller = controller_for([master, stalled, drifting])

    report = controller.tick()

    assert stalled.calls == []
    assert drifting.rate == pytest.approx(0.92)
    statuses = {r.index: r.status for r in report.followers}
    assert statuses == {1: UNREADY, 2: APPLIED}


def test_follower_without_source_skipped(make_handles, controller_for):
    master, missing, drifting = make_handles(10.0, 11.0, 10.3)
    missing.no_source = True
    controller = controller_for([master, missing, drifting])

    report = controller.tick()

    assert missing.calls == []
    assert drifting.rate == pytest.approx(0.92)
    statuses = {r.index: r.status for r in report.followers}
    assert statuses == {1: UNREADY, 2: APPLIED}


def test_failed_correction_does_not_stop_tick(make_handles, controller_for):
    master, broken, drifting, broken_rate = make_handles(10.0, 11.0, 9.8, 10.2)
    broken.fail_seek = True
    broken_rate.fail_set_rate = True
    controller = controller_for([master, broken, drifting, broken_rate])

    report = controller.tick()

    assert drifting.rate == pytest.approx(1.08)
    statuses = {r.index: r.status for r in report.followers}
    assert statuses == {1: FAILED, 2: APPLIED, 3: FAILED}
    # step still resets the rate even though the seek was rejected
    assert broken.calls == [("seek_to", 10.0), ("set_rate", 1.0)]
    assert broken.seconds == 11.0


def test_master_rate_never_touched(make_handles, controller_for):
    handles = make_handles(10.0, 10.2, 9.0, 10.05, 13.0)
    for h in handles:
        h._rate = 1.03
    controller = controller_for(handles)

    for master_index in range(len(handles)):
        controller.set_master_index(master_index)
        before = list(handles[master_index].calls)
        controller.tick()
        assert handles[master_index].calls == before


def test_switching_master_is_not_retroactive(make_handles, controller_for):
    old_master, new_master = make_handles(10.0, 10.3)
    new_master._rate = 0.95
    controller = controller_for([old_master, new_master])

    assert controller.set_master_index(1)
    assert old_master.calls == [] and new_master.calls == []
    assert controller.master_index == 1

    controller.tick()

    assert new_master.calls == []
    assert new_master.rate == 0.95
    # old master is now behind by 0.3s, so it speeds up
    assert old_master.rate == pytest.approx(1.08)


def test_invalid_master_index_is_ignored(make_handles, controller_for):
    controller = controller_for(make_handles(1.0, 2.0, 3.0), master_index=1)
    changes = []
    controller.master_changed.connect(changes.append)

    assert not controller.set_master_index(3)
    assert not controller.set_master_index(-1)
    assert controller.master_index == 1
    assert changes == []

    assert controller.set_master_index(2)
    assert changes == [2]


def test_selecting_current_master_emits_nothing(make_handles, controller_for):
    controller = controller_for(make_handles(1.0, 2.0))
    changes = []
    controller.master_changed.connect(changes.append)
    assert controller.set_master_index(0)
    assert changes == []


def test_disable_resets_rates_and_stops_corrections(make_handles, controller_for):
    master, a, b = make_handles(10.0, 10.2, 9.7)
    controller = controller_for([master, a, b])
    states = []
    controller.enabled_changed.connect(states.append)

    controller.tick()
    assert a.rate != 1.0 and b.rate != 1.0

    controller.set_enabled(False)

    assert not controller.enabled
    assert a.rate == 1.0 and b.rate == 1.0
    assert states == [False]

    a.calls.clear()
    b.calls.clear()
    assert controller.tick() is None
    assert a.calls == [] and b.calls == []

    controller.set_enabled(True)
    assert states == [False, True]
    controller.tick()
    assert a.rate == pytest.approx(0.92)


def test_disable_reset_is_best_effort(make_handles, controller_for):
    master, broken, fine = make_handles(10.0, 10.2, 10.2)
    controller = controller_for([master, broken, fine])
    controller.tick()
    broken.fail_set_rate = True

    controller.set_enabled(False)

    assert fine.rate == 1.0
    assert ("set_rate", 1.0) in broken.calls


def test_set_enabled_same_value_is_noop(make_handles, controller_for):
    master, follower = make_handles(10.0, 10.2)
    controller = controller_for([master, follower])
    states = []
    controller.enabled_changed.connect(states.append)

    controller.set_enabled(True)
    assert states == []
    assert follower.calls == []


def test_toggle_enabled(make_handles, controller_for):
    controller = controller_for(make_handles(1.0, 2.0))
    assert controller.toggle_enabled() is False
    assert controller.toggle_enabled() is True


def test_tick_finished_signal(make_handles, controller_for):
    controller = controller_for(make_handles(10.0, 10.2))
    reports = []
    controller.tick_finished.connect(reports.append)

    controller.tick()

    assert len(reports) == 1
    assert reports[0].master_index == 0
    assert reports[0].offsets()[1] == pytest.approx(0.2)


def test_start_and_stop_timer(make_handles, controller_for):
    master, follower = make_handles(10.0, 10.2)
    controller = controller_for([master, follower])

    controller.start()
    assert controller.running

    controller.stop()
    assert not controller.running
    assert follower.calls[-1] == ("set_rate", 1.0)


def test_stop_disabled_session_leaves_rates(make_handles, controller_for):
    master, follower = make_handles(10.0, 10.2)
    controller = controller_for([master, follower], enabled=False)
    controller.start()
    assert not controller.running
    controller.stop()
    assert follower.calls == []


def test_enable_before_start_does_not_schedule(make_handles, controller_for):
    controller = controller_for(make_handles(1.0, 2.0), enabled=False)
    controller.set_enabled(True)
    assert not controller.running
    controller.start()
    assert controller.running


def test_disable_cancels_timer_and_enable_restarts(make_handles, controller_for):
    controller = controller_for(make_handles(1.0, 2.0))
    controller.start()
    controller.set_enabled(False)
    assert not controller.running
    controller.set_enabled(True)
    assert controller.running


def test_context_manager_releases_timer(make_handles, controller_for):
    master, follower = make_handles(10.0, 10.2)
    controller = controller_for([master, follower])

    with pytest.raises(RuntimeError):
        with controller:
            assert controller.running
            raise RuntimeError("boom")

    assert not controller.running
    assert follower.rate == 1.0


def test_ticks_fire_periodically_and_stop(make_handles, controller_for):
    controller = controller_for(make_handles(10.0, 10.2), tick_interval_ms=10)
    reports = []
    controller.tick_finished.connect(reports.append)

    controller.start()
    spin(150)
    controller.stop()
    fired = len(reports)
    assert fired >= 2

    spin(60)
    assert len(reports) == fired


def test_session_validation(make_handles):
    with pytest.raises(ValueError):
        SyncSession([])
    with pytest.raises(ValueError):
        SyncSession(make_handles(1.0), tick_interval_ms=0)


def test_session_defaults(make_handles):
    handles = make_handles(1.0, 2.0, 3.0)
    session = SyncSession(handles)
    assert session.master_index == 0
    assert session.enabled
    assert session.tick_interval_ms == 300
    assert len(session) == 3
    assert session.snapshot() == (0, True)
