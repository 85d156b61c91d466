from sweep.dimensions import Dimension, SweepSpec, dimension_from_config
from sweep.conditions import ConditionFactory
from sweep.trajectory import Trajectory, TrajectoryRow
from sweep.runner import run_condition
from sweep.engine import SweepDefinition, run_sweep, run_definition, build_conditions
from sweep.cache import SweepKey, ResultCache, cached_sweep

__all__ = [
    "Dimension",
    "SweepSpec",
    "dimension_from_config",
    "ConditionFactory",
    "Trajectory",
    "TrajectoryRow",
    "run_condition",
    "SweepDefinition",
    "run_sweep",
    "run_definition",
    "build_conditions",
    "SweepKey",
    "ResultCache",
    "cached_sweep",
]
