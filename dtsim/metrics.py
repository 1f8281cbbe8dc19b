# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# metrics.py
# -----------------------------------------------------------------------------
# Purpose:
#   Incremental KPIs for one run: waits, service totals, time-weighted queue
#   length and busy servers, maxima, utilization and throughput.
#
# Design notes:
#   - O(1) per event and no event history. Each event carries the queue and
#     busy counts as they stand after the change it reports, so the area up to
#     the event is integrated with the counts held since the previous one.
#   - Areas and totals use compensated (Neumaier) summation so very long
#     horizons with many small increments stay exact to rounding.
#   - summarize() returns a JSON-serializable dict for tabulation.
#
# Usage:
#   acc = StatisticsAccumulator(); acc.observe(ev); acc.finalize(T)
#   summarize(acc.state, T, num_windows)
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from .entities import EventKind, SimEvent
from .errors import LogicViolation


class _CompensatedSum:
    __slots__ = ("total", "comp")
    def __init__(self):
        self.total = 0.0; self.comp = 0.0
    def add(self, x: float):
        t = self.total + x
        if abs(self.total) >= abs(x):
            self.comp += (self.total - t) + x
        else:
            self.comp += (x - t) + self.total
        self.total = t
    @property
    def value(self) -> float:
        return self.total + self.comp


@dataclass
class StatisticsState:
    total_wait: float = 0.0
    total_service: float = 0.0
    customers_completed: int = 0
    queue_area: float = 0.0
    busy_area: float = 0.0
    max_wait: float = 0.0
    max_queue: int = 0
    last_update_time: float = 0.0

    def as_dict(self) -> Dict:
        return asdict(self)


class StatisticsAccumulator:
    def __init__(self):
        self.state = StatisticsState()
        self._queue_len = 0
        self._busy = 0
        self._queue_area = _CompensatedSum()
        self._busy_area = _CompensatedSum()
        self._total_wait = _CompensatedSum()
        self._total_service = _CompensatedSum()

    def _integrate(self, t: float):
        s = self.state
        if t < s.last_update_time:
            raise LogicViolation(
                f"statistics update at {t!r} precedes last update {s.last_update_time!r}", timestamp=t)
        dt = t - s.last_update_time
        if dt > 0:
            self._queue_area.add(dt * self._queue_len)
            self._busy_area.add(dt * self._busy)
            s.queue_area = self._queue_area.value
            s.busy_area = self._busy_area.value
            s.last_update_time = t

    def observe(self, ev: SimEvent):
        self._integrate(ev.time)
        self._queue_len = ev.queue_len
        self._busy = ev.busy_servers
        if ev.queue_len > self.state.max_queue:
            self.state.max_queue = ev.queue_len
        if ev.kind is EventKind.SERVICE_END:
            if ev.wait_time is None or ev.service_duration is None:
                raise LogicViolation("departure without service record", timestamp=ev.time,
                                     customer_id=ev.customer_id)
            self.record_departure(ev.wait_time, ev.service_duration, ev.time, ev.customer_id)

    def record_departure(self, wait_time: float, service_duration: float,
                         t: Optional[float] = None, customer_id: Optional[int] = None):
        if wait_time < 0:
            raise LogicViolation(f"negative wait {wait_time!r}", timestamp=t, customer_id=customer_id)
        s = self.state
        self._total_wait.add(wait_time)
        self._total_service.add(service_duration)
        s.total_wait = self._total_wait.value
        s.total_service = self._total_service.value
        s.customers_completed += 1
        if wait_time > s.max_wait:
            s.max_wait = wait_time

    def finalize(self, end_time: float) -> StatisticsState:
        """Flush the remaining area up to ``end_time`` and return the state."""
        self._integrate(end_time)
        return self.state


def summarize(state: StatisticsState, elapsed: float, num_windows: int) -> Dict:
    """Derived KPIs; every ratio is 0.0 when its denominator is zero."""
    completed = state.customers_completed
    avg_queue = state.queue_area / elapsed if elapsed > 0 else 0.0
    avg_busy = state.busy_area / elapsed if elapsed > 0 else 0.0
    hours = elapsed / 3600.0
    return {
        "elapsed": elapsed,
        "num_windows": num_windows,
        "customers_completed": completed,
        "avg_wait": state.total_wait / completed if completed > 0 else 0.0,
        "max_wait": state.max_wait,
        "avg_service": state.total_service / completed if completed > 0 else 0.0,
        "avg_queue_length": avg_queue,
        "max_queue": state.max_queue,
        "avg_busy_servers": avg_busy,
        "utilization": avg_busy / num_windows if num_windows > 0 else 0.0,
        "throughput_per_hour": completed / hours if hours > 0 else 0.0,
        "queue_area": state.queue_area,
        "busy_area": state.busy_area,
        "total_wait": state.total_wait,
        "total_service": state.total_service,
    }
