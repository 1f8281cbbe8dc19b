# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# clock.py
# -----------------------------------------------------------------------------
# Purpose:
#   Virtual-time authority for the DES: SimulationClock keeps the pending
#   wakes of suspended logical processes in a min-heap and resumes them in
#   strict time order.
#
# Design notes:
#   - Processes are explicit state machines (Process subclasses). Suspending
#     means registering a PendingWake and returning from resume(); there is
#     no generator or coroutine machinery underneath.
#   - Heap key is (time, rank, seq). rank orders process classes sharing an
#     instant (service windows before the arrival generator, so a window
#     freed at t is visible to an arrival at t); seq keeps registration order
#     within a rank.
#   - advance() drains the whole earliest time group synchronously, including
#     wakes registered for that same instant while the group runs.
#
# Usage:
#   clock = SimulationClock()
#   clock.sleep_until(proc, 30.0)
#   while not clock.terminated(): clock.advance()
# -----------------------------------------------------------------------------

from __future__ import annotations
import heapq
import itertools
from typing import List, Optional

from .errors import LogicViolation

# Tie-break ranks at a shared instant: lower resumes first.
RANK_WINDOW = 0
RANK_ARRIVAL = 1


class Process:
    """A logical process driven by the clock.

    Subclasses set ``rank`` and implement ``resume``; the clock calls
    ``resume()`` when a wake registered through ``sleep_until`` comes due.
    """
    rank: int = RANK_ARRIVAL
    name: str = "process"

    def resume(self) -> None:
        raise NotImplementedError("Subclasses must implement resume")


class PendingWake:
    """Entry in the clock's priority structure."""
    __slots__ = ("time", "rank", "seq", "process")
    def __init__(self, time: float, rank: int, seq: int, process: Process):
        self.time = time; self.rank = rank; self.seq = seq; self.process = process
    def key(self):
        return (self.time, self.rank, self.seq)
    def __lt__(self, other: "PendingWake"):
        return self.key() < other.key()
    def __repr__(self):
        return f"PendingWake(t={self.time}, rank={self.rank}, seq={self.seq}, process={self.process.name})"


class SimulationClock:
    """Simulation clock holding virtual time and the pending-wake heap.

    Attributes
    ----------
    wakes : list[PendingWake]
        Min-heap of suspended processes keyed by (time, rank, seq).
    """
    def __init__(self):
        self._now: float = 0.0
        self.wakes: List[PendingWake] = []
        self._seq = itertools.count()
        self.popped = 0

    def now(self) -> float:
        return self._now

    def sleep_until(self, process: Process, target: float) -> PendingWake:
        if target < self._now:
            raise LogicViolation(
                f"{process.name} asked to sleep until {target!r}, which is in the past",
                timestamp=self._now,
                customer_id=getattr(process, "customer_id", None),
            )
        wake = PendingWake(float(target), process.rank, next(self._seq), process)
        heapq.heappush(self.wakes, wake)
        return wake

    def peek_time(self) -> Optional[float]:
        return self.wakes[0].time if self.wakes else None

    def advance(self) -> bool:
        """Resume every process parked at the earliest pending instant.

        Returns False when nothing is parked. Processes run to their next
        suspension point before this call returns.
        """
        if not self.wakes:
            return False
        t = self.wakes[0].time
        self._now = t
        while self.wakes and self.wakes[0].time == t:
            wake = heapq.heappop(self.wakes)
            self.popped += 1
            wake.process.resume()
        return True

    def terminated(self) -> bool:
        return not self.wakes
