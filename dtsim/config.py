# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# config.py
# -----------------------------------------------------------------------------
# Purpose:
#   Load the YAML configuration, merge APP__* environment overrides, validate
#   it and turn each enabled section into a normalized simulation input.
#
# Design notes:
#   - Durations may be written as seconds or as "1m 30s"-style strings.
#   - Every problem is reported as ConfigurationError before any run starts.
#   - Without an explicit path the file is looked up as ./config/config.yaml,
#     then ./config.yaml, then the copy shipped beside the package sources.
#   - Environment variables use "__" as the nesting separator:
#       APP__RANDOM_SIMULATION__NUM_WINDOWS=3
#
# Usage:
#   cfg = load_config("config/config.yaml")
#   for run in build_runs(cfg): ...
# -----------------------------------------------------------------------------

from __future__ import annotations
import copy
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import yaml

from .durations import parse_duration
from .entities import FixedInput, RandomInput, SimulationInput
from .errors import ConfigurationError

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG_PATH = os.path.join(ROOT, "config", "config.yaml")
ENV_PREFIX = "APP"
ENV_SEPARATOR = "__"
DEFAULT_ADVISORY_COUNT = 1_000_000

_RANDOM_DURATIONS = ("avg_arrival_interval", "min_service_time", "max_service_time", "max_simulation_time")


@dataclass
class RunSpec:
    name: str
    input: SimulationInput
    history_file: Optional[str] = None


def apply_overrides(cfg: Dict, overrides: Dict) -> Dict:
    """Apply overrides (recursive merge) on top of a config, returning a new dict."""
    new = copy.deepcopy(cfg)

    def _merge(dst: Dict, src: Dict):
        for key, val in src.items():
            if isinstance(val, dict) and isinstance(dst.get(key), dict):
                _merge(dst[key], val)
            else:
                dst[key] = copy.deepcopy(val)

    _merge(new, overrides)
    return new


def env_overrides(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> Dict:
    """Collect ``PREFIX__A__B=value`` variables into ``{"a": {"b": value}}``."""
    out: Dict = {}
    lead = prefix + ENV_SEPARATOR
    for name, raw in environ.items():
        if not name.startswith(lead):
            continue
        path = [p.lower() for p in name[len(lead):].split(ENV_SEPARATOR) if p]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        node = out
        for key in path[:-1]:
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                raise ConfigurationError(f"environment override {name} conflicts with a scalar value")
        node[path[-1]] = value
    return out


def _duration(section: str, key: str, value) -> float:
    if value is None:
        raise ConfigurationError(f"{section}.{key} is required")
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ConfigurationError(f"{section}.{key}: {exc}") from exc


def _windows(section: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{section}.num_windows must be an integer, got {value!r}")
    if value < 1:
        raise ConfigurationError(f"{section}.num_windows must be >= 1, got {value}")
    return value


def _flag(section: str, key: str, value, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _integer(name: str, value, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _enabled(cfg: Dict, section: str) -> bool:
    body = cfg.get(section) or {}
    if not isinstance(body, dict):
        raise ConfigurationError(f"{section} must be a mapping")
    return _flag(section, "enabled", body.get("enabled"), False)


def fixed_input_from(section: Dict) -> FixedInput:
    customers = []
    for idx, entry in enumerate(section.get("customers") or []):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"fixed_simulation.customers[{idx}] must be a mapping with arrival/service")
        customers.append((
            _duration("fixed_simulation", f"customers[{idx}].arrival", entry.get("arrival")),
            _duration("fixed_simulation", f"customers[{idx}].service", entry.get("service")),
        ))
    horizon = section.get("max_simulation_time")
    inp = FixedInput(
        num_windows=_windows("fixed_simulation", section.get("num_windows")),
        customers=customers,
        max_simulation_time=None if horizon is None else _duration("fixed_simulation", "max_simulation_time", horizon),
        drain_after_horizon=_flag("fixed_simulation", "drain_after_horizon", section.get("drain_after_horizon"), True),
    )
    inp.validate()
    return inp.normalized()


def random_input_from(section: Dict, seed: Optional[int] = None) -> RandomInput:
    values = {key: _duration("random_simulation", key, section.get(key)) for key in _RANDOM_DURATIONS}
    inp = RandomInput(
        num_windows=_windows("random_simulation", section.get("num_windows")),
        seed=_seed(section.get("seed", seed)),
        drain_after_horizon=_flag("random_simulation", "drain_after_horizon", section.get("drain_after_horizon"), True),
        **values,
    )
    inp.validate()
    return inp


def _seed(value) -> Optional[int]:
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ConfigurationError(f"random_simulation.seed must be an integer, got {value!r}")
    return value


def validate_config(cfg: Dict) -> None:
    if not isinstance(cfg, dict):
        raise ConfigurationError("configuration must be a mapping")
    fixed_on = _enabled(cfg, "fixed_simulation")
    rand_on = _enabled(cfg, "random_simulation")
    if not fixed_on and not rand_on:
        raise ConfigurationError("At least one simulation (fixed or random) must be enabled")
    # Build the inputs once so every field error surfaces here.
    if fixed_on:
        fixed_input_from(cfg["fixed_simulation"])
    if rand_on:
        random_input_from(cfg["random_simulation"])
    advisory_threshold(cfg)
    experiment_settings(cfg)


def advisory_threshold(cfg: Dict) -> int:
    value = (cfg.get("limits") or {}).get("advisory_customer_count", DEFAULT_ADVISORY_COUNT)
    return _integer("limits.advisory_customer_count", value, 1)


def experiment_settings(cfg: Dict) -> Dict:
    """Validated ``experiments`` section: replications, confidence_level, base_seed."""
    section = cfg.get("experiments") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("experiments must be a mapping")
    level = section.get("confidence_level", 0.95)
    if isinstance(level, bool) or not isinstance(level, (int, float)) or not 0 < level < 1:
        raise ConfigurationError(f"experiments.confidence_level must be a number between 0 and 1, got {level!r}")
    return {
        "replications": _integer("experiments.replications", section.get("replications", 1), 1),
        "confidence_level": float(level),
        "base_seed": _integer("experiments.base_seed", section.get("base_seed", 0), 0),
    }


def resolve_config_path(path: Optional[str] = None) -> str:
    """Explicit path, else ./config/config.yaml, ./config.yaml, then the source checkout's copy."""
    if path:
        return path
    cwd = os.getcwd()
    candidates = [os.path.join(cwd, "config", "config.yaml"), os.path.join(cwd, "config.yaml"), DEFAULT_CONFIG_PATH]
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return candidates[0]


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict:
    path = resolve_config_path(path)
    try:
        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"could not parse {path}: {exc}") from exc
    cfg = apply_overrides(cfg, env_overrides(os.environ if environ is None else environ))
    validate_config(cfg)
    return cfg


def build_runs(cfg: Dict) -> List[RunSpec]:
    """Normalized inputs for every enabled section, fixed first."""
    runs: List[RunSpec] = []
    if _enabled(cfg, "fixed_simulation"):
        fixed = cfg["fixed_simulation"]
        runs.append(RunSpec("fixed", fixed_input_from(fixed), fixed.get("history_file")))
    if _enabled(cfg, "random_simulation"):
        rand = cfg["random_simulation"]
        runs.append(RunSpec("random", random_input_from(rand), rand.get("history_file")))
    return runs
