import pytest
import numpy as np

from models.kinetics import KineticParameters
from sweep.dimensions import Dimension, SweepSpec
from sweep.engine import SweepDefinition
from sweep.runner import run_condition


class CountingRunner:
    """run_condition wrapper counting how many conditions were simulated."""

    def __init__(self):
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        return run_condition(*args, **kwargs)


@pytest.fixture
def unit_params():
    return KineticParameters(k_on=1.0, k_off=1.0, k_cat_max=1.0)


@pytest.fixture
def default_params():
    return KineticParameters(k_on=0.36, k_off=2.4e-4, k_cat_max=8.1e-3)


@pytest.fixture
def short_time_points():
    return np.array([0.0, 60.0, 600.0, 3600.0, 7200.0])


@pytest.fixture
def grid_spec():
    return SweepSpec((
        Dimension("total_target", (1.0, 2.0, 3.0)),
        Dimension("total_enzyme", (0.5, 1.0, 2.0, 4.0)),
        Dimension("efficiency", (0.5, 1.0)),
    ))


@pytest.fixture
def small_definition():
    return SweepDefinition(
        name="small",
        spec=SweepSpec((
            Dimension("total_target", (1.0, 2.0)),
            Dimension("efficiency", (0.5, 1.0)),
        )),
        base={"total_enzyme": 1.0},
    )


@pytest.fixture
def counting_runner():
    return CountingRunner()
