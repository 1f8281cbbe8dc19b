import math

import pytest

from dtsim.analytical import erlang_c, mgc, mmc, reference_for
from dtsim.entities import RandomInput


def test_erlang_c_single_server_equals_utilization():
    pw, rho = erlang_c(0.5, 1.0, 1)
    assert rho == pytest.approx(0.5)
    assert pw == pytest.approx(0.5)


def test_mm1():
    res = mmc(0.5, 1.0, 1)
    assert res.Wq == pytest.approx(1.0)
    assert res.Lq == pytest.approx(0.5)
    assert res.W == pytest.approx(2.0)
    assert res.L == pytest.approx(res.arrival_rate * res.W)


def test_mm2():
    res = mmc(1.0, 1.0, 2)
    assert res.utilization == pytest.approx(0.5)
    assert res.Wq == pytest.approx(1.0 / 3.0)
    assert res.Lq == pytest.approx(1.0 / 3.0)


def test_unstable_system_reports_infinite_waits():
    res = mmc(2.0, 1.0, 1)
    assert math.isinf(res.Wq) and math.isinf(res.L)
    assert "Unstable" in res.note


def test_mgc_with_exponential_service_matches_mmc():
    exact = mmc(1.0, 0.5, 3)
    approx = mgc(1.0, 2.0, 4.0, 3)
    assert approx.Wq == pytest.approx(exact.Wq)


def test_mgc_with_deterministic_service_halves_the_wait():
    assert mgc(1.0, 2.0, 0.0, 3).Wq == pytest.approx(mmc(1.0, 0.5, 3).Wq / 2.0)


def test_reference_for_uniform_service():
    inp = RandomInput(num_windows=2, avg_arrival_interval=60.0, min_service_time=30.0,
                      max_service_time=120.0, max_simulation_time=28800.0)
    ref = reference_for(inp)
    assert ref.servers == 2
    assert ref.arrival_rate == pytest.approx(1.0 / 60.0)
    assert ref.service_rate == pytest.approx(1.0 / 75.0)
    assert ref.utilization == pytest.approx(0.625)
    assert 0 < ref.Wq < ref.W


@pytest.mark.parametrize("args", [(1.0, 1.0, 0), (0.0, 1.0, 1), (1.0, -1.0, 1)])
def test_erlang_c_rejects_bad_parameters(args):
    with pytest.raises(ValueError):
        erlang_c(*args)
