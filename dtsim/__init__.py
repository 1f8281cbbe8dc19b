"""
dtsim package initializer.

This package contains the discrete-event simulation engine (virtual clock,
logical processes, state store), the incremental statistics, configuration
loading, event sinks and analytical references used by the drive-through
queueing model.
"""
__all__ = [
    "errors", "entities", "state", "clock", "processes", "metrics",
    "dispatcher", "simulation", "config", "durations", "output", "analytical",
]
