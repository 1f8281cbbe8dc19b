# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# dispatcher.py
# -----------------------------------------------------------------------------
# Purpose:
#   Wiring for one run. SimulationContext owns the clock, the StateStore and
#   the processes; Dispatcher drives the clock to completion and forwards the
#   ordered event stream to the statistics and to an external EventSink.
#
# Design notes:
#   - One context per run, passed explicitly to every process and discarded
#     at the end; nothing is shared across runs.
#   - The arrival-to-window hand-off goes through SimulationContext.hand_off,
#     so the customer changes owner in exactly one place.
#   - Events are buffered in the context's outbox during clock.advance() and
#     forwarded afterwards in emission order, which is the clock's tie-break
#     order.
#
# Usage:
#   ctx = SimulationContext(sim_input)
#   result = Dispatcher(ctx, sink).run()
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .clock import SimulationClock
from .entities import Customer, EventKind, RandomInput, SimEvent, SimulationInput
from .errors import LogicViolation
from .metrics import StatisticsAccumulator, StatisticsState, summarize
from .processes import (ArrivalGenerator, RandomSource, ServiceWindowProcess,
                        fixed_arrivals, random_arrivals)
from .state import StateStore

logger = logging.getLogger(__name__)


class SimulationContext:
    """Everything a single run shares: clock, state, processes and the outbox.

    Parameters
    ----------
    sim_input : FixedInput | RandomInput
        Validated, normalized input.
    source : RandomSource, optional
        Variate source for random mode; defaults to one seeded from the input.
    """
    def __init__(self, sim_input: SimulationInput, source: Optional[RandomSource] = None):
        self.input = sim_input
        self.clock = SimulationClock()
        self.store = StateStore(sim_input.num_windows)
        self.outbox: List[SimEvent] = []
        self.completed = 0
        self.windows = [ServiceWindowProcess(self, wid) for wid in range(sim_input.num_windows)]
        if isinstance(sim_input, RandomInput):
            self.source = source or RandomSource(sim_input.seed)
            draws = random_arrivals(self.source, sim_input.avg_arrival_interval,
                                    sim_input.min_service_time, sim_input.max_service_time)
        else:
            self.source = None
            draws = fixed_arrivals(sim_input.customers)
        self.arrivals = ArrivalGenerator(self, draws, horizon=sim_input.horizon)

    def emit(self, kind: EventKind, customer: Customer, wait_time: Optional[float] = None,
             service_duration: Optional[float] = None) -> SimEvent:
        ev = SimEvent(
            time=self.clock.now(),
            kind=kind,
            customer_id=customer.cid,
            queue_len=self.store.queue_len(),
            busy_servers=self.store.busy_count(),
            wait_time=wait_time,
            service_duration=service_duration,
        )
        self.outbox.append(ev)
        return ev

    def hand_off(self, wid: int, customer: Customer) -> None:
        self.windows[wid].receive(customer)

    def retire(self, customer: Customer) -> None:
        self.completed += 1

    def pending_arrivals(self) -> int:
        return 1 if self.arrivals.pending is not None else 0


@dataclass
class RunResult:
    stats: StatisticsState
    elapsed: float
    num_windows: int
    customers_generated: int
    customers_completed: int
    still_in_system: int
    in_system_at_horizon: Optional[int] = None
    events_emitted: int = 0
    window_busy: List[float] = field(default_factory=list)

    def summary(self) -> Dict:
        out = summarize(self.stats, self.elapsed, self.num_windows)
        out.update({
            "customers_generated": self.customers_generated,
            "still_in_system": self.still_in_system,
            "in_system_at_horizon": self.in_system_at_horizon,
            "events_emitted": self.events_emitted,
            "window_busy": list(self.window_busy),
        })
        return out


class Dispatcher:
    def __init__(self, ctx: SimulationContext, sink=None, stats: Optional[StatisticsAccumulator] = None):
        self.ctx = ctx
        self.sink = sink
        self.stats = stats or StatisticsAccumulator()
        self.forwarded = 0
        self._last_time = 0.0

    def _forward(self):
        outbox = self.ctx.outbox
        for ev in outbox:
            if ev.time < self._last_time:
                raise LogicViolation(f"{ev.kind} emitted out of time order", timestamp=ev.time,
                                     customer_id=ev.customer_id)
            self._last_time = ev.time
            logger.debug("t=%.3f %s customer=%d queue=%d busy=%d",
                         ev.time, ev.kind, ev.customer_id, ev.queue_len, ev.busy_servers)
            self.stats.observe(ev)
            if self.sink is not None:
                self.sink.emit(ev)
            self.forwarded += 1
        outbox.clear()

    def run(self) -> RunResult:
        ctx = self.ctx
        clock, store = ctx.clock, ctx.store
        horizon = ctx.input.horizon
        drain = ctx.input.drain
        mode = "random" if isinstance(ctx.input, RandomInput) else "fixed"
        logger.info("starting %s run: %d window(s), horizon=%s, drain=%s",
                    mode, store.num_windows, horizon, drain)

        ctx.arrivals.start()
        self._forward()

        at_horizon: Optional[int] = None
        while not clock.terminated():
            if horizon is not None and clock.peek_time() > horizon:
                if at_horizon is None:
                    at_horizon = store.in_system()
                if not drain:
                    break
            clock.advance()
            self._forward()

        if horizon is None:
            elapsed = clock.now()
        else:
            if at_horizon is None:
                at_horizon = store.in_system()
            elapsed = max(clock.now(), horizon) if drain else horizon
        final = self.stats.finalize(elapsed)

        generated = ctx.arrivals.generated
        still = generated - ctx.completed
        if still != store.in_system() + ctx.pending_arrivals() or final.customers_completed != ctx.completed:
            raise LogicViolation(
                f"customer accounting mismatch: generated={generated} completed={ctx.completed} "
                f"queued={store.queue_len()} in_service={store.busy_count()}",
                timestamp=clock.now())

        logger.info("run finished at t=%.3f: %d completed, %d still in system, %d events",
                    elapsed, ctx.completed, still, self.forwarded)
        return RunResult(
            stats=final,
            elapsed=elapsed,
            num_windows=store.num_windows,
            customers_generated=generated,
            customers_completed=ctx.completed,
            still_in_system=still,
            in_system_at_horizon=at_horizon,
            events_emitted=self.forwarded,
            window_busy=[w.busy_duration for w in store.windows],
        )
