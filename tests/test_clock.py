import pytest

from dtsim.clock import RANK_ARRIVAL, RANK_WINDOW, Process, SimulationClock
from dtsim.errors import LogicViolation


class Recorder(Process):
    def __init__(self, name, log, rank=RANK_ARRIVAL, on_resume=None):
        self.name = name
        self.log = log
        self.rank = rank
        self.on_resume = on_resume

    def resume(self):
        self.log.append(self.name)
        if self.on_resume is not None:
            self.on_resume()


def run_all(clock):
    while not clock.terminated():
        clock.advance()


def test_resumes_in_time_order():
    clock, log = SimulationClock(), []
    clock.sleep_until(Recorder("a", log), 5.0)
    clock.sleep_until(Recorder("b", log), 1.0)
    clock.sleep_until(Recorder("c", log), 3.0)
    run_all(clock)
    assert log == ["b", "c", "a"]
    assert clock.now() == 5.0


def test_windows_resume_before_arrivals_at_same_instant():
    clock, log = SimulationClock(), []
    clock.sleep_until(Recorder("arrival", log, rank=RANK_ARRIVAL), 2.0)
    clock.sleep_until(Recorder("window", log, rank=RANK_WINDOW), 2.0)
    clock.advance()
    assert log == ["window", "arrival"]


def test_same_rank_keeps_registration_order():
    clock, log = SimulationClock(), []
    for name in ("w0", "w1", "w2"):
        clock.sleep_until(Recorder(name, log, rank=RANK_WINDOW), 4.0)
    clock.advance()
    assert log == ["w0", "w1", "w2"]


def test_advance_drains_wakes_registered_for_the_current_instant():
    clock, log = SimulationClock(), []
    late = Recorder("late", log)
    first = Recorder("first", log, on_resume=lambda: clock.sleep_until(late, clock.now()))
    clock.sleep_until(first, 7.0)
    assert clock.advance() is True
    assert log == ["first", "late"]
    assert clock.popped == 2
    assert clock.terminated()


def test_sleep_until_past_target_is_a_logic_violation():
    clock, log = SimulationClock(), []
    clock.sleep_until(Recorder("a", log), 10.0)
    clock.advance()
    proc = Recorder("b", log)
    proc.customer_id = 4
    with pytest.raises(LogicViolation) as info:
        clock.sleep_until(proc, 9.5)
    assert info.value.timestamp == 10.0
    assert info.value.customer_id == 4


def test_empty_clock():
    clock = SimulationClock()
    assert clock.terminated()
    assert clock.peek_time() is None
    assert clock.advance() is False
    assert clock.now() == 0.0


def test_peek_time_reports_earliest_wake():
    clock, log = SimulationClock(), []
    clock.sleep_until(Recorder("a", log), 8.0)
    clock.sleep_until(Recorder("b", log), 3.0)
    assert clock.peek_time() == 3.0
    assert clock.now() == 0.0
