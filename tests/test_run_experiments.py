import os

import pytest

from dtsim.config import DEFAULT_CONFIG_PATH, apply_overrides, load_config, random_input_from
from dtsim.output import MemorySink
from dtsim.simulation import run_simulation
from experiments import run_experiments
from experiments.run_experiments import main, mean_ci, sample_stddev
from experiments.scenarios import SCENARIOS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("APP__"):
            monkeypatch.delenv(name)


def test_mean_ci():
    mu, half = mean_ci([1.0, 2.0, 3.0], 0.95)
    assert mu == pytest.approx(2.0)
    assert half == pytest.approx(2.4841, rel=1e-3)
    assert mean_ci([4.0], 0.95) == (4.0, 0.0)
    assert mean_ci([], 0.95) == (0.0, 0.0)


def test_sample_stddev():
    assert sample_stddev([1.0]) == 0.0
    assert sample_stddev([1.0, 3.0]) == pytest.approx(2 ** 0.5)


def test_every_scenario_builds_a_valid_input():
    cfg = load_config(DEFAULT_CONFIG_PATH, environ={})
    for sc in SCENARIOS:
        inp = random_input_from(apply_overrides(cfg, sc["overrides"])["random_simulation"])
        inp.validate()
        assert inp.num_windows >= 1


def test_cli_runs_enabled_modes(write_config, tmp_path, capsys):
    path = write_config()
    assert main(["--config", str(path), "--quiet"]) == 0
    out = capsys.readouterr().out
    assert "Enabled simulations: fixed, random" in out
    assert "Simulation Statistics (fixed)" in out
    assert "Average waiting time per customer: 35s" in out
    assert "Simulation(s) completed." in out
    assert (tmp_path / "fixed_history.csv").exists()
    assert (tmp_path / "random_history.csv").exists()


def test_cli_prints_event_table(write_config, capsys):
    path = write_config({"random_simulation": {"enabled": False}})
    assert main(["--config", str(path)]) == 0
    out = capsys.readouterr().out
    assert "BusyServers" in out
    assert "ServiceEnd" in out


def test_cli_replication_summary(write_config, capsys):
    path = write_config({"fixed_simulation": {"enabled": False}})
    assert main(["--config", str(path), "--quiet", "--replications", "3"]) == 0
    out = capsys.readouterr().out
    assert "Scenario: configured (replications=3" in out
    assert "seeds 100-102" in out
    assert "M/G/c ref" in out


def test_cli_crn_comparison(write_config, capsys):
    path = write_config({"fixed_simulation": {"enabled": False}})
    argv = ["--config", str(path), "--quiet", "-r", "2", "--compare", "one_window", "three_windows"]
    assert main(argv) == 0
    assert "CRN paired avg-wait comparison (three_windows - one_window)" in capsys.readouterr().out


def test_cli_bad_config_exits_with_status_2(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 2
    err = capsys.readouterr().err
    assert "Failed to load" in err
    assert "Usage:" in err


def test_plot_trace_writes_png(scenario_a, tmp_path, monkeypatch):
    monkeypatch.setattr(run_experiments, "OUTPUT_DIR", str(tmp_path))
    sink = MemorySink()
    run_simulation(scenario_a, sink)
    path = run_experiments.plot_trace(sink.events, 1, "Scenario A")
    assert path == str(tmp_path / "scenario_a_trace.png")
    assert os.path.getsize(path) > 0
    assert run_experiments.plot_trace([], 1, "empty") is None


def test_cli_invalid_limits_exit_with_status_2(write_config, capsys):
    path = write_config({"limits": {"advisory_customer_count": None}})
    assert main(["--config", str(path), "--quiet"]) == 2
    assert "advisory_customer_count" in capsys.readouterr().err


def test_cli_invalid_experiment_settings_exit_with_status_2(write_config, capsys):
    path = write_config({"experiments": {"confidence_level": "high"}})
    assert main(["--config", str(path), "--quiet"]) == 2
    out, err = capsys.readouterr()
    assert "confidence_level" in err
    assert "Drive-Through Simulation" not in out


def test_cli_continues_without_unwritable_history(write_config, tmp_path, capsys):
    missing = tmp_path / "no_such_dir" / "history.csv"
    path = write_config({"fixed_simulation": {"history_file": str(missing)},
                         "random_simulation": {"enabled": False}})
    assert main(["--config", str(path)]) == 0
    out, err = capsys.readouterr()
    assert "Failed to initialize CSV file" in err
    assert "Simulation Statistics (fixed)" in out
    assert "Event history written to" not in out
    assert "ServiceEnd" in out
    assert not missing.exists()


def test_cli_rejects_non_positive_replications(write_config):
    with pytest.raises(SystemExit) as info:
        main(["--config", str(write_config()), "--replications", "0"])
    assert info.value.code == 2
