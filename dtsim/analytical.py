# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# analytical.py
# -----------------------------------------------------------------------------
# Purpose:
#   Closed-form queueing references used to sanity-check random-mode runs:
#   Erlang C for M/M/c and the Allen-Cunneen approximation for M/G/c.
#
# Design notes:
#   - Unstable systems (rho >= 1) report infinite Lq/Wq/W/L and a note.
#   - Rates are per second, matching the simulation clock.
#
# Usage:
#   ref = reference_for(random_input); ref.Wq, ref.utilization
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .entities import RandomInput

INF = float("inf")


@dataclass
class AnalyticalResult:
    arrival_rate: float     # lambda
    service_rate: float     # mu (1 / mean service)
    servers: int
    utilization: float      # rho = lambda / (c * mu)
    Lq: float
    Wq: float
    W: float
    L: float
    note: Optional[str] = None


def erlang_c(lam: float, mu: float, c: int) -> Tuple[float, float]:
    """Return (probability an arrival waits, rho)."""
    if c <= 0:
        raise ValueError("c must be >= 1")
    if lam <= 0 or mu <= 0:
        raise ValueError("lambda and mu must be > 0")
    rho = lam / (c * mu)
    if rho >= 1:
        return 1.0, rho
    a = lam / mu  # offered load
    s = sum(a ** n / math.factorial(n) for n in range(c))
    last = a ** c / math.factorial(c) * (c / (c - a))
    p0 = 1.0 / (s + last)
    return last * p0, rho


def _unstable(lam: float, mu: float, c: int, rho: float) -> AnalyticalResult:
    return AnalyticalResult(lam, mu, c, rho, INF, INF, INF, INF, note="Unstable system (lambda >= c*mu)")


def mmc(lam: float, mu: float, c: int) -> AnalyticalResult:
    pw, rho = erlang_c(lam, mu, c)
    if rho >= 1:
        return _unstable(lam, mu, c, rho)
    wq = pw / (c * mu - lam)
    w = wq + 1.0 / mu
    return AnalyticalResult(lam, mu, c, rho, Lq=lam * wq, Wq=wq, W=w, L=lam * w)


def mgc(lam: float, mean_service: float, var_service: float, c: int) -> AnalyticalResult:
    """M/G/c via Allen-Cunneen: Wq ~= Wq(M/M/c) * (1 + cs^2) / 2."""
    if mean_service <= 0:
        raise ValueError("mean service time must be > 0")
    mu = 1.0 / mean_service
    base = mmc(lam, mu, c)
    if base.utilization >= 1:
        return base
    cs2 = var_service / (mean_service ** 2)
    wq = base.Wq * (1.0 + cs2) / 2.0
    w = wq + mean_service
    return AnalyticalResult(lam, mu, c, base.utilization, Lq=lam * wq, Wq=wq, W=w, L=lam * w,
                            note="Allen-Cunneen approximation")


def reference_for(inp: RandomInput) -> AnalyticalResult:
    """M/G/c reference for a random-mode input (uniform service)."""
    lam = 1.0 / inp.avg_arrival_interval
    a, b = inp.min_service_time, inp.max_service_time
    mean = (a + b) / 2.0
    var = (b - a) ** 2 / 12.0
    return mgc(lam, mean, var, inp.num_windows)
