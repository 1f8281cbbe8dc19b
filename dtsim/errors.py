# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# errors.py
# -----------------------------------------------------------------------------
# Purpose:
#   Error taxonomy for the drive-through DES: bad configuration, internal
#   invariant breaches, and non-fatal resource advisories.
#
# Design notes:
#   - ConfigurationError is raised before any simulation step executes.
#   - LogicViolation is fail-fast; it is never caught inside the core.
#
# Usage:
#   from dtsim.errors import ConfigurationError, LogicViolation
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Optional


class ConfigurationError(ValueError):
    """Invalid or incomplete simulation input."""


class LogicViolation(RuntimeError):
    """An internal invariant was breached while the simulation was running.

    Attributes
    ----------
    timestamp : float | None
        Virtual time at which the breach was detected.
    customer_id : int | None
        Customer involved in the offending operation, if any.
    """
    def __init__(self, message: str, timestamp: Optional[float] = None, customer_id: Optional[int] = None):
        self.timestamp = timestamp
        self.customer_id = customer_id
        detail = []
        if timestamp is not None:
            detail.append(f"t={timestamp:.6f}")
        if customer_id is not None:
            detail.append(f"customer={customer_id}")
        if detail:
            message = f"{message} ({', '.join(detail)})"
        super().__init__(message)


class ResourceAdvisory(UserWarning):
    """Emitted when a run is expected to hold an unusually large number of customers."""
