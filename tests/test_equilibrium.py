import math

import pytest

from steadystate.equilibrium import equilibrium_complex, equilibrium_state
from utils.errors import ConfigurationError, PhysicalInfeasibility


def test_equilibrium_ratio_matches_kd():
    c = equilibrium_complex(10.0, 5.0, 2.0)
    assert 0.0 <= c <= 5.0
    assert c / ((10.0 - c) * (5.0 - c)) == pytest.approx(2.0, rel=1e-3)
    assert c == pytest.approx((31.0 - math.sqrt(161.0)) / 4.0, rel=1e-12)


def test_equilibrium_unit_system():
    c = equilibrium_complex(1.0, 1.0, 1.0)
    assert c == pytest.approx((3.0 - math.sqrt(5.0)) / 2.0, rel=1e-12)


@pytest.mark.parametrize("total_target,total_enzyme", [(0.0, 5.0), (5.0, 0.0), (0.0, 0.0)])
def test_degenerate_totals_give_zero_complex(total_target, total_enzyme):
    assert equilibrium_complex(total_target, total_enzyme, 2.0) == 0.0


def test_equilibrium_state_conserves_totals():
    state = equilibrium_state(10.0, 5.0, 2.0)
    assert state.target + state.complex == pytest.approx(10.0)
    assert state.enzyme + state.complex == pytest.approx(5.0)
    assert min(state) >= 0.0


def test_small_complex_is_not_lost_to_cancellation():
    # kd*T*E << 1: the naive quadratic formula would cancel to zero here.
    c = equilibrium_complex(1e-3, 1e-3, 1e-6)
    assert c > 0.0
    assert c / ((1e-3 - c) * (1e-3 - c)) == pytest.approx(1e-6, rel=1e-6)


@pytest.mark.parametrize("kd", [0.0, -1.0])
def test_non_positive_kd_is_a_configuration_error(kd):
    with pytest.raises(ConfigurationError):
        equilibrium_complex(1.0, 1.0, kd)


@pytest.mark.parametrize("args", [(-1.0, 1.0, 1.0), (1.0, -1.0, 1.0), (float("nan"), 1.0, 1.0),
                                  (1.0, float("inf"), 1.0)])
def test_invalid_totals_are_rejected(args):
    with pytest.raises(ConfigurationError):
        equilibrium_complex(*args)


def test_inconsistent_ratio_raises_physical_infeasibility():
    # Large kd pushes the bound fraction so close to min(T, E) that the
    # free species can no longer reproduce kd within tolerance.
    with pytest.raises(PhysicalInfeasibility) as excinfo:
        equilibrium_complex(1.0, 1.0, 1e30, tolerance=1e-12)
    err = excinfo.value
    assert err.total_target == 1.0
    assert err.kd == 1e30


def test_physical_infeasibility_is_a_value_error():
    assert issubclass(PhysicalInfeasibility, ValueError)
