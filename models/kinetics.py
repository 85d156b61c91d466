"""
Value types of the silencing model.

`KineticParameters` holds the base rate constants shared by a sweep,
`Condition` is one point of a sweep, `SimulationState` is the
(target, enzyme, complex) triple at one time point.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, NamedTuple

from utils.errors import ConfigurationError


def _finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}")
    return value


def _check_efficiency(value: float) -> None:
    if not (0.0 < value <= 1.0):
        raise ConfigurationError(f"efficiency must lie in (0, 1], got {value}")


@dataclass(frozen=True)
class KineticParameters:
    """
    Base rate constants of the binding/cleavage scheme.

    Attributes:
        k_on: association rate constant (1/(nM*s)).
        k_off: dissociation rate constant (1/s).
        k_cat_max: catalytic rate of the reference pathway (1/s).
        efficiency: relative catalytic efficiency coefficient in (0, 1].
    """
    k_on: float
    k_off: float
    k_cat_max: float
    efficiency: float = 1.0

    def __post_init__(self):
        for f in fields(self):
            value = _finite(f.name, getattr(self, f.name))
            object.__setattr__(self, f.name, value)
        for name in ("k_on", "k_off", "k_cat_max"):
            if getattr(self, name) <= 0.0:
                raise ConfigurationError(f"{name} must be > 0, got {getattr(self, name)}")
        _check_efficiency(self.efficiency)

    @property
    def k_cat(self) -> float:
        """Effective catalytic rate, k_cat_max scaled by the efficiency coefficient."""
        return self.k_cat_max * self.efficiency

    @property
    def kd(self) -> float:
        """Dissociation constant k_off / k_on."""
        return self.k_off / self.k_on

    def scaled(self, k_on: float = 1.0, k_off: float = 1.0, k_cat: float = 1.0) -> KineticParameters:
        """Copy with each rate constant multiplied by the given factor."""
        return replace(
            self,
            k_on=self.k_on * k_on,
            k_off=self.k_off * k_off,
            k_cat_max=self.k_cat_max * k_cat,
        )

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Condition:
    """
    One point of a parameter sweep.

    Concentrations are in nM, the synthesis rate in nM/s. The rate multipliers
    perturb the sweep's base kinetic parameters for this condition only.
    An `efficiency` of None inherits the efficiency of the base parameters.
    `labels` keeps the (dimension name, value) pairs the condition was
    enumerated from, in dimension order, so every result row can be traced
    back to its sweep coordinates.
    """
    total_target: float
    total_enzyme: float
    efficiency: float | None = None
    synthesis: float = 0.0
    k_on_scale: float = 1.0
    k_off_scale: float = 1.0
    k_cat_scale: float = 1.0
    labels: tuple[tuple[str, Any], ...] = field(default=())

    def __post_init__(self):
        for f in fields(self):
            if f.name == "labels" or (f.name == "efficiency" and self.efficiency is None):
                continue
            object.__setattr__(self, f.name, _finite(f.name, getattr(self, f.name)))
        if self.total_target < 0.0:
            raise ConfigurationError(f"total_target must be >= 0, got {self.total_target}")
        if self.total_enzyme < 0.0:
            raise ConfigurationError(f"total_enzyme must be >= 0, got {self.total_enzyme}")
        if self.synthesis < 0.0:
            raise ConfigurationError(f"synthesis must be >= 0, got {self.synthesis}")
        if self.efficiency is not None:
            _check_efficiency(self.efficiency)
        for name in ("k_on_scale", "k_off_scale", "k_cat_scale"):
            if getattr(self, name) <= 0.0:
                raise ConfigurationError(f"{name} must be > 0, got {getattr(self, name)}")
        object.__setattr__(self, "labels", tuple((str(k), v) for k, v in self.labels))

    def resolved(self, base: KineticParameters) -> Condition:
        """Copy with an inherited efficiency replaced by the base one."""
        if self.efficiency is not None:
            return self
        return replace(self, efficiency=base.efficiency)

    def kinetics(self, base: KineticParameters) -> KineticParameters:
        """Base parameters perturbed by this condition's multipliers and efficiency."""
        efficiency = self.efficiency if self.efficiency is not None else base.efficiency
        return replace(
            base.scaled(self.k_on_scale, self.k_off_scale, self.k_cat_scale),
            efficiency=efficiency,
        )

    def as_record(self) -> dict[str, Any]:
        """Flat column -> value mapping; labels first, then the physical fields."""
        record = dict(self.labels)
        for f in fields(self):
            if f.name != "labels":
                record[f.name] = getattr(self, f.name)
        return record

    def __str__(self):
        parts = [f"{k}={v}" for k, v in self.as_record().items()]
        return "Condition(" + ", ".join(parts) + ")"


CONDITION_FIELDS = tuple(f.name for f in fields(Condition) if f.name != "labels")


class SimulationState(NamedTuple):
    """Concentrations (nM) of the three species at one time point."""
    target: float
    enzyme: float
    complex: float
