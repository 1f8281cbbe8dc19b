# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# processes.py
# -----------------------------------------------------------------------------
# Purpose:
#   Logical processes of the drive-through: the arrival generator (one per
#   run) and the service windows (one per window). Both are small state
#   machines resumed by the SimulationClock.
#
# Design notes:
#   - Arrivals come from a stream of (arrival_time, service_duration) draws:
#     the configured list in fixed mode, exponential/uniform variates in
#     random mode. Customers are created lazily, one ahead of the clock.
#   - An idle window does not poll. It parks outside the clock and is woken
#     by an explicit hand-off through the context (receive()).
#   - After ServiceEnd a window pulls the queue head in the same step, so
#     there is no idle tick between back-to-back customers.
#
# Usage:
#   gen = ArrivalGenerator(ctx, fixed_arrivals(pairs), horizon=None)
#   gen.start()
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import random
from typing import Iterable, Iterator, Optional, Tuple

from .clock import Process, RANK_ARRIVAL, RANK_WINDOW
from .entities import Customer, EventKind
from .errors import LogicViolation

logger = logging.getLogger(__name__)

Draw = Tuple[float, float]


class RandomSource:
    """Exponential and uniform variates backed by a seeded ``random.Random``."""
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = random.Random(seed)

    def exponential(self, rate: float) -> float:
        return self.rng.expovariate(rate)

    def uniform(self, a: float, b: float) -> float:
        return self.rng.uniform(a, b)


def fixed_arrivals(customers: Iterable[Draw]) -> Iterator[Draw]:
    for arrival, service in customers:
        yield float(arrival), float(service)


def random_arrivals(source: RandomSource, avg_arrival_interval: float,
                    min_service: float, max_service: float) -> Iterator[Draw]:
    """Endless stream of Poisson arrivals with uniform service durations."""
    rate = 1.0 / avg_arrival_interval
    t = 0.0
    while True:
        t += source.exponential(rate)
        yield t, source.uniform(min_service, max_service)


class ArrivalGenerator(Process):
    """Produces customers in arrival order and admits them at their arrival time.

    Admission: hand the customer to the longest-idle window if there is one,
    otherwise append it to the queue tail. Either way an Arrival event is
    emitted before any ServiceStart of the same customer.
    """
    rank = RANK_ARRIVAL
    name = "arrivals"

    def __init__(self, ctx, draws: Iterator[Draw], horizon: Optional[float] = None):
        self.ctx = ctx
        self.draws = draws
        self.horizon = horizon
        self.pending: Optional[Customer] = None
        self.generated = 0
        self.exhausted = False

    @property
    def customer_id(self) -> Optional[int]:
        return self.pending.cid if self.pending is not None else None

    def start(self) -> None:
        self._fetch_next()

    def _fetch_next(self) -> None:
        draw = next(self.draws, None)
        if draw is None or (self.horizon is not None and draw[0] > self.horizon):
            self.pending = None
            self.exhausted = True
            logger.debug("arrival source exhausted after %d customers", self.generated)
            return
        arrival, service = draw
        self.pending = Customer(self.generated, arrival, service)
        self.generated += 1
        self.ctx.clock.sleep_until(self, arrival)

    def resume(self) -> None:
        customer = self.pending
        if customer is None:
            raise LogicViolation("arrival generator resumed with no pending customer",
                                 timestamp=self.ctx.clock.now())
        self.pending = None
        store = self.ctx.store
        wid = store.idle_window()
        if wid is None:
            store.enqueue(customer)
            self.ctx.emit(EventKind.ARRIVAL, customer)
        else:
            self.ctx.emit(EventKind.ARRIVAL, customer)
            self.ctx.hand_off(wid, customer)
        self._fetch_next()


class ServiceWindowProcess(Process):
    """One service window: IDLE -> SERVING -> (pull queue head | IDLE)."""
    rank = RANK_WINDOW

    IDLE = "idle"
    SERVING = "serving"

    def __init__(self, ctx, wid: int):
        self.ctx = ctx
        self.wid = wid
        self.name = f"window-{wid}"
        self.state = self.IDLE
        self.customer: Optional[Customer] = None
        self.served = 0

    @property
    def customer_id(self) -> Optional[int]:
        return self.customer.cid if self.customer is not None else None

    def receive(self, customer: Customer) -> None:
        clock, store = self.ctx.clock, self.ctx.store
        now = clock.now()
        if self.state != self.IDLE:
            raise LogicViolation(f"{self.name} received a customer while {self.state}",
                                 timestamp=now, customer_id=customer.cid)
        store.assign(self.wid, customer, now)
        customer.service_start_time = now
        self.customer = customer
        self.state = self.SERVING
        self.ctx.emit(EventKind.SERVICE_START, customer)
        clock.sleep_until(self, now + customer.service_duration)

    def resume(self) -> None:
        clock, store = self.ctx.clock, self.ctx.store
        now = clock.now()
        if self.state != self.SERVING or self.customer is None:
            raise LogicViolation(f"{self.name} woke up without a customer in service", timestamp=now)
        customer = store.free(self.wid, now)
        if customer is not self.customer:
            raise LogicViolation(f"departure at {self.name} for a customer not in service there",
                                 timestamp=now, customer_id=customer.cid)
        customer.departure_time = now
        store.windows[self.wid].busy_duration += customer.service_duration
        self.customer = None
        self.state = self.IDLE
        self.served += 1
        self.ctx.emit(EventKind.SERVICE_END, customer,
                      wait_time=customer.wait_time,
                      service_duration=customer.service_duration)
        self.ctx.retire(customer)
        nxt = store.dequeue_head()
        if nxt is not None:
            self.receive(nxt)
