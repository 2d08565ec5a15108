import logging
import os
import signal
import threading
import time

import pytest

from autofan.scheduler import Scheduler


class RecordingController:
    """Counts cycles and stops the scheduler after `limit` of them."""

    def __init__(self, limit, work=0.0, fail=False):
        self.limit = limit
        self.work = work
        self.fail = fail
        self.started = []
        self.finished = []
        self.active = 0
        self.max_active = 0
        self.scheduler = None

    def run_cycle(self):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.append(time.monotonic())
        try:
            if len(self.started) >= self.limit:
                self.scheduler.stop()
            time.sleep(self.work)
            if self.fail:
                raise RuntimeError("boom")
        finally:
            self.finished.append(time.monotonic())
            self.active -= 1


def run(controller, interval):
    scheduler = Scheduler(controller, interval)
    controller.scheduler = scheduler
    t0 = time.monotonic()
    scheduler.run(install_signals=False)
    return scheduler, t0


def test_first_cycle_waits_one_interval():
    controller = RecordingController(limit=1)
    _, t0 = run(controller, 0.05)
    assert controller.started[0] - t0 >= 0.045


def test_runs_cycles_until_stopped():
    controller = RecordingController(limit=3)
    scheduler, _ = run(controller, 0.01)
    assert len(controller.started) == 3
    assert scheduler.cycles == 3
    assert scheduler.stopped


def test_cycles_never_overlap():
    controller = RecordingController(limit=4, work=0.03)
    run(controller, 0.01)
    assert controller.max_active == 1
    for prev_end, start in zip(controller.finished, controller.started[1:]):
        assert start >= prev_end


def test_overrun_does_not_replay_missed_ticks():
    interval = 0.02
    offset = [0.0]

    def clock():
        return time.monotonic() + offset[0]

    class OverrunningController:
        def __init__(self):
            self.started = []

        def run_cycle(self):
            self.started.append(clock())
            if len(self.started) == 1:
                # first cycle runs ten intervals long
                offset[0] += 10 * interval
            if len(self.started) == 4:
                scheduler.stop()

    controller = OverrunningController()
    scheduler = Scheduler(controller, interval, clock=clock)
    scheduler.run(install_signals=False)

    first, queued, *later = controller.started
    # one queued cycle right after the overrun, then back to the regular period
    assert queued - first >= 10 * interval
    assert all(b - a >= interval * 0.9 for a, b in zip([queued] + later, later))
    assert later[-1] - first < 20 * interval


def test_in_flight_cycle_finishes_before_return(caplog):
    caplog.set_level(logging.INFO)
    controller = RecordingController(limit=1, work=0.05)
    run(controller, 0.01)
    assert len(controller.finished) == 1
    assert "signal received. exiting..." in caplog.text


def test_cycle_exceptions_do_not_stop_ticker(caplog):
    controller = RecordingController(limit=3, fail=True)
    run(controller, 0.01)
    assert len(controller.started) == 3
    assert "Unexpected error in control cycle: boom" in caplog.text


def test_signal_stops_scheduler():
    controller = RecordingController(limit=10**6)
    scheduler = Scheduler(controller, 0.01)
    controller.scheduler = scheduler

    def interrupt():
        while not controller.started:
            time.sleep(0.005)
        os.kill(os.getpid(), signal.SIGINT)

    previous = signal.getsignal(signal.SIGINT)
    threading.Thread(target=interrupt).start()
    scheduler.run()
    assert scheduler.stopped
    assert signal.getsignal(signal.SIGINT) is previous


def test_signal_handler_sets_cancellation():
    scheduler = Scheduler(RecordingController(limit=1), 1.0)
    scheduler._signal_handler(signal.SIGTERM, None)
    assert scheduler.stopped


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        Scheduler(RecordingController(limit=1), 0)
