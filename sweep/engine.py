"""
Sweep engine: expands a SweepSpec into Conditions and runs each of them.

Serial runs stop at the first failing condition. Parallel runs
(workers > 1) finish every condition, keep the results in enumeration
order and raise a single SweepFailure listing every failed condition.
"""
from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np
import pandas as pd
from tqdm import tqdm

from config.constants import CELL_TYPES
from config.logconf import TqdmToLogger, setup_logger
from models.kinetics import Condition, KineticParameters
from models.ode import SolverSettings, validate_time_points
from sweep.conditions import ConditionFactory
from sweep.dimensions import SweepSpec
from sweep.runner import run_condition
from utils.errors import ConfigurationError, MirnakinError, SweepFailure

logger = setup_logger()


@dataclass(frozen=True)
class SweepDefinition:
    """A named sweep: its dimensions plus the defaults its conditions start from."""
    name: str
    spec: SweepSpec
    base: Mapping[str, Any] = field(default_factory=dict)
    equilibrium_init: bool = True
    cells: Mapping[str, Mapping] = field(default_factory=lambda: dict(CELL_TYPES))

    def factory(self) -> ConditionFactory:
        return ConditionFactory(self.base, self.cells)


def build_conditions(spec: SweepSpec, factory: ConditionFactory | None = None) -> list[Condition]:
    """
    Every Condition of the sweep, in enumeration order.

    Raises ConfigurationError before anything is simulated if any
    combination is malformed.
    """
    factory = factory or ConditionFactory()
    factory.check_dimensions(spec.names)
    return [factory(dict(zip(spec.names, values))) for values in spec.combinations()]


def _run_indexed(index, runner, condition, time_points, params, equilibrium_init, solver):
    # Worker entry point, failures are returned so the parent can collect them all.
    try:
        return index, runner(condition, time_points, params, equilibrium_init, solver), None
    except MirnakinError as e:
        return index, None, e


def run_sweep(
        spec: SweepSpec,
        params: KineticParameters,
        time_points,
        equilibrium_init: bool = True,
        factory: ConditionFactory | None = None,
        solver: SolverSettings | None = None,
        workers: int = 1,
        runner: Callable = run_condition,
        progress: bool = True,
) -> pd.DataFrame:
    """
    Run every condition of a sweep and concatenate the trajectories.

    Args:
        spec: ordered sweep dimensions.
        params: base kinetic parameters shared by all conditions.
        time_points: output times in seconds, strictly increasing.
        equilibrium_init: start each condition at binding equilibrium.
        factory: maps a combination to a Condition.
        solver: integrator settings.
        workers: number of processes, 1 runs in this process.
        runner: callable with the signature of run_condition.
        progress: show a progress bar routed into the log.

    Returns:
        Long table, rows in enumeration order then time/species order.

    Raises:
        ConfigurationError: malformed sweep, raised before any simulation.
        PhysicalInfeasibility, IntegrationFailure: serial mode, first failure.
        SweepFailure: parallel mode, all failures.
    """
    time_points = validate_time_points(time_points)
    if int(workers) < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers}")
    workers = int(workers)
    conditions = build_conditions(spec, factory)
    n = len(conditions)
    logger.info(f"[Sweep] {n} conditions x {len(time_points)} time points "
                f"({' x '.join(f'{d.name}={len(d)}' for d in spec.dimensions)}), workers={workers}")

    bar = tqdm(total=n, desc="Conditions", unit="cond", file=TqdmToLogger(logger), disable=not progress,
               mininterval=5.0, ncols=90)
    trajectories = [None] * n
    if workers == 1:
        with bar:
            for i, condition in enumerate(conditions):
                trajectories[i] = runner(condition, time_points, params, equilibrium_init, solver)
                bar.update(1)
    else:
        failures = []
        with bar, ProcessPoolExecutor(max_workers=min(workers, n)) as executor:
            futures = [
                executor.submit(_run_indexed, i, runner, c, time_points, params, equilibrium_init, solver)
                for i, c in enumerate(conditions)
            ]
            for fut in as_completed(futures):
                i, trajectory, error = fut.result()
                if error is not None:
                    logger.error(f"[Sweep] condition #{i} failed: {error}")
                    failures.append((i, conditions[i], error))
                else:
                    trajectories[i] = trajectory
                bar.update(1)
        if failures:
            raise SweepFailure(sorted(failures, key=lambda f: f[0]))

    frame = pd.concat([t.to_frame() for t in trajectories], ignore_index=True)
    logger.info(f"[Sweep] done: {len(frame)} rows")
    return frame


def run_definition(definition: SweepDefinition, params: KineticParameters, time_points, **kwargs) -> pd.DataFrame:
    """run_sweep for a named SweepDefinition."""
    logger.info(f"[Sweep] '{definition.name}'")
    return run_sweep(
        definition.spec,
        params,
        np.asarray(time_points, dtype=float),
        equilibrium_init=definition.equilibrium_init,
        factory=definition.factory(),
        **kwargs,
    )
