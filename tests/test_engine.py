import pandas as pd
import pytest

from models.ode import SolverSettings
from sweep.conditions import ConditionFactory
from sweep.dimensions import Dimension, SweepSpec
from sweep.engine import build_conditions, run_sweep
from utils.errors import ConfigurationError, IntegrationFailure, SweepFailure


def test_sweep_cardinality(grid_spec, default_params, short_time_points):
    frame = run_sweep(grid_spec, default_params, short_time_points, progress=False)
    assert len(frame) == 3 * 4 * 2 * len(short_time_points) * 3


def test_sweep_rows_follow_enumeration_order(grid_spec, default_params, short_time_points):
    frame = run_sweep(grid_spec, default_params, short_time_points, progress=False)
    names = list(grid_spec.names)
    seen = list(frame[names].drop_duplicates().itertuples(index=False, name=None))
    assert seen == list(grid_spec.combinations())
    block = len(short_time_points) * 3
    first = frame.iloc[:block]
    assert (first["total_target"] == 1.0).all()
    assert (first["total_enzyme"] == 0.5).all()
    assert (first["efficiency"] == 0.5).all()


def test_every_condition_runs_once(grid_spec, default_params, short_time_points, counting_runner):
    run_sweep(grid_spec, default_params, short_time_points, runner=counting_runner, progress=False)
    assert counting_runner.calls == grid_spec.size


def test_unknown_dimension_fails_before_any_simulation(default_params, short_time_points, counting_runner):
    spec = SweepSpec((Dimension("total_target", (1.0,)), Dimension("temperature", (25.0, 37.0))))
    with pytest.raises(ConfigurationError):
        run_sweep(spec, default_params, short_time_points, runner=counting_runner, progress=False)
    assert counting_runner.calls == 0


def test_invalid_condition_fails_before_any_simulation(default_params, short_time_points, counting_runner):
    spec = SweepSpec((
        Dimension("total_target", (1.0, 2.0)),
        Dimension("total_enzyme", (1.0,)),
        Dimension("efficiency", (1.0, 2.0)),
    ))
    with pytest.raises(ConfigurationError):
        run_sweep(spec, default_params, short_time_points, runner=counting_runner, progress=False)
    assert counting_runner.calls == 0


def test_serial_sweep_stops_at_first_failure(unit_params, counting_runner):
    spec = SweepSpec((Dimension("total_target", (1.0, 2.0, 3.0)), Dimension("total_enzyme", (1.0,))))
    with pytest.raises(IntegrationFailure) as excinfo:
        run_sweep(spec, unit_params, [0.0, 1.0e4], solver=SolverSettings(max_steps=1),
                  runner=counting_runner, progress=False)
    assert counting_runner.calls == 1
    assert excinfo.value.condition.total_target == 1.0


def test_parallel_sweep_matches_serial(grid_spec, default_params, short_time_points):
    serial = run_sweep(grid_spec, default_params, short_time_points, progress=False)
    parallel = run_sweep(grid_spec, default_params, short_time_points, workers=2, progress=False)
    pd.testing.assert_frame_equal(serial, parallel)


def test_parallel_sweep_collects_all_failures(unit_params):
    spec = SweepSpec((Dimension("total_target", (1.0, 2.0, 3.0)), Dimension("total_enzyme", (1.0,))))
    with pytest.raises(SweepFailure) as excinfo:
        run_sweep(spec, unit_params, [0.0, 1.0e4], solver=SolverSettings(max_steps=1),
                  workers=2, progress=False)
    failures = excinfo.value.failures
    assert [index for index, _, _ in failures] == [0, 1, 2]
    assert all(isinstance(error, IntegrationFailure) for _, _, error in failures)


def test_robustness_sweep_is_an_ordinary_sweep(default_params, short_time_points):
    spec = SweepSpec((
        Dimension("perturbed_rate", ("k_on", "k_off", "k_cat")),
        Dimension("rate_multiplier", (0.1, 1.0, 10.0)),
    ))
    factory = ConditionFactory(base={"total_target": 10.0, "total_enzyme": 5.0})
    conditions = build_conditions(spec, factory)
    assert len(conditions) == 9
    assert conditions[0].k_on_scale == 0.1
    assert conditions[4].k_off_scale == 1.0
    assert conditions[8].k_cat_scale == 10.0
    frame = run_sweep(spec, default_params, short_time_points, factory=factory, progress=False)
    assert len(frame) == 9 * len(short_time_points) * 3


def test_workers_must_be_positive(grid_spec, default_params, short_time_points):
    with pytest.raises(ConfigurationError):
        run_sweep(grid_spec, default_params, short_time_points, workers=0, progress=False)
