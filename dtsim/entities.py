# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# entities.py
# -----------------------------------------------------------------------------
# Purpose:
#   Entity definitions for the drive-through DES: Customer, ServiceWindow,
#   the emitted SimEvent records, and the normalized simulation inputs
#   (FixedInput / RandomInput).
#
# Design notes:
#   - Customer ids are assigned in arrival order by the arrival generator.
#   - Inputs validate themselves; validation raises ConfigurationError so a
#     bad input never reaches the clock.
#
# Usage:
#   from dtsim.entities import Customer, SimEvent, EventKind, FixedInput, RandomInput
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import ConfigurationError


class EventKind(Enum):
    ARRIVAL = "Arrival"
    SERVICE_START = "ServiceStart"
    SERVICE_END = "ServiceEnd"

    def __str__(self) -> str:
        return self.value


@dataclass
class Customer:
    cid: int
    arrival_time: float
    service_duration: float
    service_start_time: Optional[float] = None   # set when a window takes the customer
    departure_time: Optional[float] = None       # set at ServiceEnd

    @property
    def wait_time(self) -> Optional[float]:
        if self.service_start_time is None:
            return None
        return self.service_start_time - self.arrival_time


@dataclass
class ServiceWindow:
    wid: int
    busy: bool = False
    current: Optional[Customer] = None
    busy_duration: float = 0.0   # cumulative time spent serving


@dataclass(frozen=True)
class SimEvent:
    """One record of the ordered event stream.

    ``queue_len`` and ``busy_servers`` are the StateStore snapshot taken when
    the event was emitted. ServiceEnd records also carry the finished
    customer's ``wait_time`` and ``service_duration`` so the statistics can be
    finalized without holding on to the customer.
    """
    time: float
    kind: EventKind
    customer_id: int
    queue_len: int
    busy_servers: int
    wait_time: Optional[float] = None
    service_duration: Optional[float] = None

    def as_row(self) -> Tuple[float, str, int, int, int]:
        return (self.time, str(self.kind), self.customer_id, self.queue_len, self.busy_servers)


def _require_windows(num_windows) -> None:
    if isinstance(num_windows, bool) or not isinstance(num_windows, int) or num_windows < 1:
        raise ConfigurationError(f"num_windows must be an integer >= 1, got {num_windows!r}")


def _require_finite(name: str, value: float) -> None:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {value!r}")


@dataclass
class FixedInput:
    """Fixed mode: an explicit list of (arrival_time, service_duration) pairs."""
    num_windows: int
    customers: List[Tuple[float, float]] = field(default_factory=list)
    max_simulation_time: Optional[float] = None
    drain_after_horizon: bool = True

    def validate(self) -> None:
        _require_windows(self.num_windows)
        for idx, (arrival, service) in enumerate(self.customers):
            _require_finite(f"customers[{idx}].arrival", arrival)
            _require_finite(f"customers[{idx}].service", service)
            if arrival < 0:
                raise ConfigurationError(f"customers[{idx}].arrival must be >= 0, got {arrival}")
            if service <= 0:
                raise ConfigurationError(f"customers[{idx}].service must be > 0, got {service}")
        if self.max_simulation_time is not None:
            _require_finite("max_simulation_time", self.max_simulation_time)
            if self.max_simulation_time <= 0:
                raise ConfigurationError("max_simulation_time must be > 0")

    def normalized(self) -> "FixedInput":
        # Stable sort: equal arrival times keep their configured order.
        ordered = sorted(((float(a), float(s)) for a, s in self.customers), key=lambda pair: pair[0])
        return FixedInput(self.num_windows, ordered, self.max_simulation_time, self.drain_after_horizon)

    @property
    def horizon(self) -> Optional[float]:
        return self.max_simulation_time

    @property
    def drain(self) -> bool:
        return self.drain_after_horizon


@dataclass
class RandomInput:
    """Random mode: exponential inter-arrivals, uniform service durations."""
    num_windows: int
    avg_arrival_interval: float
    min_service_time: float
    max_service_time: float
    max_simulation_time: float
    seed: Optional[int] = None
    drain_after_horizon: bool = True

    def validate(self) -> None:
        _require_windows(self.num_windows)
        for name in ("avg_arrival_interval", "min_service_time", "max_service_time", "max_simulation_time"):
            _require_finite(name, getattr(self, name))
        if self.avg_arrival_interval <= 0:
            raise ConfigurationError("avg_arrival_interval must be > 0")
        if self.min_service_time <= 0:
            raise ConfigurationError("min_service_time must be > 0")
        if self.max_service_time < self.min_service_time:
            raise ConfigurationError("max_service_time must be >= min_service_time")
        if self.max_simulation_time <= 0:
            raise ConfigurationError("max_simulation_time must be > 0")

    def normalized(self) -> "RandomInput":
        return self

    @property
    def horizon(self) -> Optional[float]:
        return self.max_simulation_time

    @property
    def drain(self) -> bool:
        return self.drain_after_horizon

    @property
    def expected_customers(self) -> float:
        return self.max_simulation_time / self.avg_arrival_interval


SimulationInput = Union[FixedInput, RandomInput]
