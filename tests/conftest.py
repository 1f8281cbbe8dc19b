"""Shared builders for the dtsim test suite."""

import pytest
import yaml

from dtsim.config import apply_overrides
from dtsim.entities import FixedInput
from dtsim.output import MemorySink
from dtsim.simulation import run_simulation


@pytest.fixture
def scenario_a():
    """One window, three customers; the hand-checked worked example."""
    return FixedInput(num_windows=1, customers=[(0.0, 30.0), (25.0, 120.0), (50.0, 62.0)])


@pytest.fixture
def run_recorded():
    """Run an input and return (RunResult, list of emitted SimEvents)."""
    def _run(sim_input, **kwargs):
        sink = MemorySink()
        result = run_simulation(sim_input, sink, **kwargs)
        return result, sink.events
    return _run


@pytest.fixture
def base_config(tmp_path):
    return {
        "fixed_simulation": {
            "enabled": True,
            "num_windows": 1,
            "history_file": str(tmp_path / "fixed_history.csv"),
            "customers": [
                {"arrival": 0, "service": "30s"},
                {"arrival": "25s", "service": "2m"},
                {"arrival": "50s", "service": "1m 2s"},
            ],
        },
        "random_simulation": {
            "enabled": True,
            "num_windows": 2,
            "avg_arrival_interval": "1m",
            "min_service_time": "30s",
            "max_service_time": "2m",
            "max_simulation_time": "1h",
            "history_file": str(tmp_path / "random_history.csv"),
            "seed": 7,
        },
        "limits": {"advisory_customer_count": 1000000},
        "experiments": {"replications": 3, "confidence_level": 0.95, "base_seed": 100},
    }


@pytest.fixture
def write_config(tmp_path, base_config):
    """Write base_config (with optional overrides merged in) and return its path."""
    def _write(overrides=None, name="config.yaml"):
        cfg = apply_overrides(base_config, overrides or {})
        path = tmp_path / name
        path.write_text(yaml.safe_dump(cfg, sort_keys=False))
        return path
    return _write
