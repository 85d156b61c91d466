"""
Explicit record type for one condition's simulated time course.

A Trajectory keeps the state matrix in wide form and produces long rows
(time, species, concentration) on demand, tagged with every field of its
Condition.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple

import numpy as np
import pandas as pd

from config.constants import SPECIES
from models.kinetics import Condition
from models.units import seconds_to_hours

RESULT_COLUMNS = ("time", "species", "concentration", "time_in_hours", "initial_target")


class TrajectoryRow(NamedTuple):
    time: float
    species: str
    concentration: float


@dataclass(frozen=True)
class Trajectory:
    condition: Condition
    time: np.ndarray
    states: np.ndarray  # (T, 3) in SPECIES order

    def __post_init__(self):
        if self.states.shape != (self.time.shape[0], len(SPECIES)):
            raise ValueError(
                f"State matrix shape {self.states.shape} does not match "
                f"{self.time.shape[0]} time points x {len(SPECIES)} species"
            )

    @property
    def initial_target(self) -> float:
        """Free target concentration at the first time point."""
        return float(self.states[0, 0])

    def species(self, name: str) -> np.ndarray:
        return self.states[:, SPECIES.index(name)]

    def rows(self) -> Iterator[TrajectoryRow]:
        """Long rows, time-major, species in SPECIES order."""
        for i, t in enumerate(self.time):
            for j, name in enumerate(SPECIES):
                yield TrajectoryRow(float(t), name, float(self.states[i, j]))

    def __len__(self):
        return self.states.size

    def to_frame(self) -> pd.DataFrame:
        """
        Long-format table: condition columns, then time, species,
        concentration, time_in_hours and initial_target.
        """
        n_t = self.time.shape[0]
        n_s = len(SPECIES)
        time_col = np.repeat(self.time, n_s)
        data = {key: [value] * (n_t * n_s) for key, value in self.condition.as_record().items()}
        data["time"] = time_col
        data["species"] = np.tile(np.array(SPECIES, dtype=object), n_t)
        data["concentration"] = self.states.reshape(-1)
        data["time_in_hours"] = seconds_to_hours(time_col)
        data["initial_target"] = np.full(n_t * n_s, self.initial_target)
        return pd.DataFrame(data)
