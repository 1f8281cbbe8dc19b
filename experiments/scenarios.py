"""
experiments/scenarios.py

Holds scenario definitions (decision variables) to sweep during experiments.
Each scenario is a set of overrides merged over the loaded config; add window
counts, arrival loads, and horizon policies here.
"""

from __future__ import annotations

BASELINE = {
    "name": "baseline",
    "overrides": {},  # override config keys here per scenario
}

ONE_WINDOW = {
    "name": "one_window",
    "overrides": {
        "random_simulation": {"num_windows": 1},
    },
}

THREE_WINDOWS = {
    "name": "three_windows",
    "overrides": {
        "random_simulation": {"num_windows": 3},
    },
}

RUSH_HOUR = {
    "name": "rush_hour",
    "overrides": {
        "random_simulation": {
            "num_windows": 3,
            "avg_arrival_interval": "30s",
            "max_simulation_time": "3h",
        },
    },
}

RUSH_HOUR_CUTOFF = {
    "name": "rush_hour_cutoff",
    "overrides": {
        "random_simulation": {
            "num_windows": 3,
            "avg_arrival_interval": "30s",
            "max_simulation_time": "3h",
            # Close at the horizon instead of serving the remaining line.
            "drain_after_horizon": False,
        },
    },
}

SCENARIOS = [BASELINE, ONE_WINDOW, THREE_WINDOWS, RUSH_HOUR, RUSH_HOUR_CUTOFF]
