import threading

import pytest

from anim_timing import ManualTimerSubstrate, ScheduledOperation, ThreadedTimerSubstrate, TimingEntry


def make_op(op_id, delay_ms, log, label="x"):
    return ScheduledOperation(
        op_id=op_id,
        entry=TimingEntry(label, 0, 1),
        delay_ms=delay_ms,
        body=lambda op: log.append(op.op_id)
    )


def test_manual_substrate_runs_nothing_until_advanced():
    substrate = ManualTimerSubstrate()
    log = []
    substrate.schedule(make_op(0, 0, log))
    assert log == []
    assert substrate.pending() == 1
    assert substrate.advance(0) == 1
    assert log == [0]
    assert substrate.pending() == 0


def test_manual_substrate_orders_by_due_time_then_scheduling_order():
    substrate = ManualTimerSubstrate()
    log = []
    substrate.schedule(make_op(0, 500, log))
    substrate.schedule(make_op(1, 100, log))
    substrate.schedule(make_op(2, 500, log))
    substrate.schedule(make_op(3, 0, log))
    substrate.advance(499)
    assert log == [3, 1]
    substrate.advance(1)
    assert log == [3, 1, 0, 2]
    assert substrate.now_ms() == 500


def test_due_time_is_set_on_schedule():
    substrate = ManualTimerSubstrate(start_ms=1000)
    op = make_op(0, 250, [])
    substrate.schedule(op)
    assert op.due_ms == 1250


def test_clock_is_at_due_time_while_operation_runs():
    substrate = ManualTimerSubstrate()
    seen = []
    op = ScheduledOperation(op_id=0, entry=TimingEntry("x", 0, 1), delay_ms=300,
                            body=lambda o: seen.append(substrate.now_ms()))
    substrate.schedule(op)
    substrate.advance(1000)
    assert seen == [300]
    assert substrate.now_ms() == 1000


def test_cancelled_operation_never_runs():
    substrate = ManualTimerSubstrate()
    log = []
    op = make_op(0, 10, log)
    substrate.schedule(op)
    assert op.cancel() is True
    assert op.cancel() is False
    assert substrate.pending() == 0
    assert substrate.advance(100) == 0
    assert log == []
    assert not op.fired


def test_fired_operation_cannot_be_cancelled():
    substrate = ManualTimerSubstrate()
    log = []
    op = make_op(0, 0, log)
    substrate.schedule(op)
    substrate.advance(0)
    assert op.fired
    assert op.cancel() is False
    assert not op.cancelled


def test_operation_scheduled_from_a_body_runs_in_same_advance():
    substrate = ManualTimerSubstrate()
    log = []

    def chain(op):
        log.append("first")
        substrate.schedule(ScheduledOperation(op_id=1, entry=op.entry, delay_ms=5,
                                              body=lambda o: log.append("second")))

    substrate.schedule(ScheduledOperation(op_id=0, entry=TimingEntry("x", 0, 1), delay_ms=0, body=chain))
    substrate.advance(10)
    assert log == ["first", "second"]


def test_run_all_drains_queue():
    substrate = ManualTimerSubstrate()
    log = []
    for i, delay in enumerate([30, 10, 20]):
        substrate.schedule(make_op(i, delay, log))
    assert substrate.run_all() == 3
    assert log == [1, 2, 0]
    assert substrate.now_ms() == 30


def test_advance_rejects_negative_time():
    with pytest.raises(ValueError):
        ManualTimerSubstrate().advance(-1)


def test_manual_shutdown_drops_queue():
    substrate = ManualTimerSubstrate()
    log = []
    substrate.schedule(make_op(0, 0, log))
    substrate.shutdown()
    substrate.advance(10)
    assert log == []


def test_threaded_substrate_runs_operations_in_order():
    substrate = ThreadedTimerSubstrate()
    log = []
    done = threading.Event()

    def body(op):
        log.append(op.op_id)
        if len(log) == 3:
            done.set()

    try:
        for op_id, delay in [(0, 60), (1, 20), (2, 40)]:
            substrate.schedule(ScheduledOperation(op_id=op_id, entry=TimingEntry("x", 0, 1),
                                                  delay_ms=delay, body=body))
        assert substrate.is_running()
        assert done.wait(timeout=2.0)
        assert log == [1, 2, 0]
    finally:
        substrate.shutdown()
    assert not substrate.is_running()


def test_threaded_substrate_skips_cancelled_operations():
    substrate = ThreadedTimerSubstrate()
    log = []
    done = threading.Event()
    try:
        cancelled = make_op(0, 20, log)
        substrate.schedule(cancelled)
        substrate.schedule(ScheduledOperation(op_id=1, entry=TimingEntry("x", 0, 1), delay_ms=60,
                                              body=lambda op: done.set()))
        cancelled.cancel()
        assert done.wait(timeout=2.0)
        assert log == []
    finally:
        substrate.shutdown()


def test_threaded_substrate_survives_failing_body():
    substrate = ThreadedTimerSubstrate()
    done = threading.Event()

    def boom(op):
        raise RuntimeError("boom")

    try:
        substrate.schedule(ScheduledOperation(op_id=0, entry=TimingEntry("x", 0, 1), delay_ms=0, body=boom))
        substrate.schedule(ScheduledOperation(op_id=1, entry=TimingEntry("x", 0, 1), delay_ms=10,
                                              body=lambda op: done.set()))
        assert done.wait(timeout=2.0)
    finally:
        substrate.shutdown()


def test_purge_cancelled_releases_queued_operations():
    substrate = ManualTimerSubstrate()
    log = []
    ops = [make_op(i, 1000 * (i + 1), log) for i in range(4)]
    for op in ops:
        substrate.schedule(op)
    ops[0].cancel()
    ops[2].cancel()
    assert substrate.queued() == 4
    assert substrate.purge_cancelled() == 2
    assert substrate.queued() == 2
    assert substrate.purge_cancelled() == 0
    substrate.run_all()
    assert log == [1, 3]


def test_threaded_purge_drops_long_delayed_operations():
    substrate = ThreadedTimerSubstrate()
    log = []
    done = threading.Event()
    try:
        far = [make_op(i, 60000, log) for i in range(3)]
        for op in far:
            substrate.schedule(op)
            op.cancel()
        assert substrate.purge_cancelled() == 3
        assert substrate.queued() == 0
        # worker keeps serving new work after a purge
        substrate.schedule(ScheduledOperation(op_id=9, entry=TimingEntry("x", 0, 1), delay_ms=10,
                                              body=lambda op: done.set()))
        assert done.wait(timeout=2.0)
        assert log == []
    finally:
        substrate.shutdown()
