import pytest

from dtsim.config import (DEFAULT_CONFIG_PATH, apply_overrides, advisory_threshold, build_runs,
                          experiment_settings, resolve_config_path,
                          env_overrides, load_config)
from dtsim.entities import FixedInput, RandomInput
from dtsim.errors import ConfigurationError


def test_load_and_build_runs(write_config):
    cfg = load_config(str(write_config()), environ={})
    runs = build_runs(cfg)
    assert [r.name for r in runs] == ["fixed", "random"]
    fixed, rand = runs[0].input, runs[1].input
    assert isinstance(fixed, FixedInput)
    assert fixed.customers == [(0.0, 30.0), (25.0, 120.0), (50.0, 62.0)]
    assert isinstance(rand, RandomInput)
    assert rand.avg_arrival_interval == 60.0
    assert rand.max_simulation_time == 3600.0
    assert rand.seed == 7
    assert rand.drain_after_horizon is True
    assert runs[0].history_file.endswith("fixed_history.csv")


def test_shipped_config_is_valid():
    cfg = load_config(DEFAULT_CONFIG_PATH, environ={})
    assert len(build_runs(cfg)) == 2
    assert advisory_threshold(cfg) == 1000000


def test_environment_overrides_are_merged(write_config):
    environ = {
        "APP__RANDOM_SIMULATION__NUM_WINDOWS": "3",
        "APP__RANDOM_SIMULATION__MAX_SIMULATION_TIME": "2h",
        "APP__FIXED_SIMULATION__ENABLED": "false",
        "OTHER__RANDOM_SIMULATION__NUM_WINDOWS": "9",
    }
    runs = build_runs(load_config(str(write_config()), environ=environ))
    assert [r.name for r in runs] == ["random"]
    assert runs[0].input.num_windows == 3
    assert runs[0].input.max_simulation_time == 7200.0


def test_env_overrides_nesting():
    out = env_overrides({"APP__A__B__C": "1.5", "APP__A__D": "text", "UNRELATED": "x"})
    assert out == {"a": {"b": {"c": 1.5}, "d": "text"}}


def test_apply_overrides_leaves_original_untouched():
    base = {"random_simulation": {"num_windows": 2, "seed": 1}}
    merged = apply_overrides(base, {"random_simulation": {"num_windows": 5}})
    assert merged == {"random_simulation": {"num_windows": 5, "seed": 1}}
    assert base["random_simulation"]["num_windows"] == 2


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"), environ={})


def test_unparseable_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("fixed_simulation: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config(str(path), environ={})


def test_no_mode_enabled(write_config):
    path = write_config({"fixed_simulation": {"enabled": False}, "random_simulation": {"enabled": False}})
    with pytest.raises(ConfigurationError, match="At least one simulation"):
        load_config(str(path), environ={})


@pytest.mark.parametrize("overrides, field", [
    ({"fixed_simulation": {"num_windows": 0}}, "num_windows"),
    ({"random_simulation": {"num_windows": "two"}}, "num_windows"),
    ({"random_simulation": {"avg_arrival_interval": "soon"}}, "avg_arrival_interval"),
    ({"random_simulation": {"min_service_time": "3m"}}, "max_service_time"),
    ({"random_simulation": {"max_simulation_time": 0}}, "max_simulation_time"),
    ({"fixed_simulation": {"customers": [{"arrival": "-5s", "service": 10}]}}, "arrival"),
    ({"fixed_simulation": {"customers": [{"arrival": 0}]}}, "service"),
    ({"limits": {"advisory_customer_count": 0}}, "advisory_customer_count"),
    ({"limits": {"advisory_customer_count": "lots"}}, "advisory_customer_count"),
    ({"limits": {"advisory_customer_count": None}}, "advisory_customer_count"),
    ({"experiments": {"confidence_level": 1.5}}, "confidence_level"),
    ({"experiments": {"confidence_level": "high"}}, "confidence_level"),
    ({"experiments": {"replications": 0}}, "replications"),
    ({"experiments": {"base_seed": "x"}}, "base_seed"),
    ({"random_simulation": {"seed": "abc"}}, "seed"),
    ({"random_simulation": {"drain_after_horizon": "false"}}, "drain_after_horizon"),
    ({"fixed_simulation": {"drain_after_horizon": 0}}, "drain_after_horizon"),
    ({"fixed_simulation": {"enabled": "yes"}}, "enabled"),
    ({"random_simulation": ["not", "a", "mapping"]}, "random_simulation"),
])
def test_invalid_values_name_the_field(write_config, overrides, field):
    with pytest.raises(ConfigurationError, match=field):
        load_config(str(write_config(overrides)), environ={})


def test_fixed_customers_sorted_by_arrival(write_config):
    path = write_config({"fixed_simulation": {"customers": [
        {"arrival": "1m", "service": 5}, {"arrival": 0, "service": 7}, {"arrival": 0, "service": 9}]}})
    fixed = build_runs(load_config(str(path), environ={}))[0].input
    assert fixed.customers == [(0.0, 7.0), (0.0, 9.0), (60.0, 5.0)]


def test_experiment_settings_defaults_and_values(write_config):
    cfg = load_config(str(write_config()), environ={})
    assert experiment_settings(cfg) == {"replications": 3, "confidence_level": 0.95, "base_seed": 100}
    assert experiment_settings({}) == {"replications": 1, "confidence_level": 0.95, "base_seed": 0}


def test_drain_flag_must_be_boolean(write_config):
    path = write_config({"random_simulation": {"drain_after_horizon": False}})
    rand = build_runs(load_config(str(path), environ={}))[1].input
    assert rand.drain_after_horizon is False


def test_default_path_prefers_working_directory(tmp_path, monkeypatch, write_config):
    source = write_config()
    (tmp_path / "config").mkdir()
    local = tmp_path / "config" / "config.yaml"
    local.write_text(source.read_text())
    monkeypatch.chdir(tmp_path)
    assert resolve_config_path() == str(local)
    assert len(build_runs(load_config(environ={}))) == 2


def test_default_path_falls_back_to_bundled_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert resolve_config_path() == DEFAULT_CONFIG_PATH
    assert resolve_config_path("custom.yaml") == "custom.yaml"
