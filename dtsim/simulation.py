# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# simulation.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulate a single replication: validate the input, build a fresh
#   context, run the dispatcher, and return the RunResult.
#
# Design notes:
#   - Validation happens before the context exists, so an invalid input
#     never emits an event.
#   - Replication loops and reporting live outside, in experiments/.
#
# Usage:
#   from dtsim.simulation import run_simulation
#   result = run_simulation(FixedInput(1, [(0, 30), (25, 120)]))
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import warnings
from typing import Optional

from .config import DEFAULT_ADVISORY_COUNT
from .dispatcher import Dispatcher, RunResult, SimulationContext
from .entities import FixedInput, RandomInput, SimulationInput
from .errors import ConfigurationError, ResourceAdvisory
from .processes import RandomSource

logger = logging.getLogger(__name__)


def check_advisory(sim_input: SimulationInput, threshold: int = DEFAULT_ADVISORY_COUNT) -> bool:
    """Warn (without failing) when a run is expected to create more than ``threshold`` customers."""
    if isinstance(sim_input, FixedInput):
        expected = len(sim_input.customers)
    else:
        expected = sim_input.expected_customers
    if expected > threshold:
        msg = f"run expects about {expected:,.0f} customers (advisory threshold {threshold:,})"
        logger.warning(msg)
        warnings.warn(msg, ResourceAdvisory, stacklevel=3)
        return True
    return False


def run_simulation(sim_input: SimulationInput, sink=None, source: Optional[RandomSource] = None,
                   advisory_threshold: int = DEFAULT_ADVISORY_COUNT) -> RunResult:
    if not isinstance(sim_input, (FixedInput, RandomInput)):
        raise ConfigurationError("no simulation mode given (expected FixedInput or RandomInput)")
    sim_input.validate()
    sim_input = sim_input.normalized()
    check_advisory(sim_input, advisory_threshold)
    ctx = SimulationContext(sim_input, source)
    return Dispatcher(ctx, sink).run()
