"""
Sweep dimensions and their Cartesian product.

A dimension is a named, ordered, finite sequence of candidate values:
a numeric range sampled linearly or log-uniformly, or a categorical set
such as cell types. A SweepSpec is an ordered list of dimensions, its
combinations are enumerated lexicographically in declaration order.
"""
from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import numpy as np

from utils.errors import ConfigurationError


def _normalise_value(name, value):
    """Plain python scalars so values hash, compare and serialise identically."""
    if isinstance(value, (bool, np.bool_)):
        raise ConfigurationError(f"Dimension '{name}': boolean values are not supported")
    if isinstance(value, (int, float, np.integer, np.floating)):
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError(f"Dimension '{name}': non-finite value {value}")
        return value
    if isinstance(value, str):
        return value
    raise ConfigurationError(f"Dimension '{name}': unsupported value {value!r} ({type(value).__name__})")


@dataclass(frozen=True)
class Dimension:
    name: str
    values: tuple

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(f"Dimension name must be a non-empty string, got {self.name!r}")
        values = tuple(_normalise_value(self.name, v) for v in self.values)
        if not values:
            raise ConfigurationError(f"Dimension '{self.name}' is empty")
        if len(set(values)) != len(values):
            raise ConfigurationError(f"Dimension '{self.name}' has duplicate values: {values}")
        object.__setattr__(self, "values", values)

    def __len__(self):
        return len(self.values)

    @classmethod
    def linear(cls, name: str, start: float, stop: float, num: int) -> Dimension:
        """`num` evenly spaced values from start to stop (inclusive)."""
        if int(num) < 1:
            raise ConfigurationError(f"Dimension '{name}': num must be >= 1, got {num}")
        return cls(name, tuple(np.linspace(float(start), float(stop), int(num))))

    @classmethod
    def log_uniform(cls, name: str, start: float, stop: float, num: int) -> Dimension:
        """`num` values evenly spaced on a log scale from start to stop (inclusive)."""
        if int(num) < 1:
            raise ConfigurationError(f"Dimension '{name}': num must be >= 1, got {num}")
        if not (start > 0 and stop > 0):
            raise ConfigurationError(f"Dimension '{name}': log-uniform bounds must be > 0, got [{start}, {stop}]")
        return cls(name, tuple(np.geomspace(float(start), float(stop), int(num))))

    @classmethod
    def categorical(cls, name: str, values: Sequence[Any]) -> Dimension:
        return cls(name, tuple(values))


def dimension_from_config(name: str, entry) -> Dimension:
    """
    Parse a dimension from its TOML entry.

    Accepted forms:
        name = [v1, v2, ...]
        name = { values = [v1, v2, ...] }
        name = { scale = "linear" | "log", start = a, stop = b, num = n }
    """
    if isinstance(entry, (list, tuple)):
        return Dimension.categorical(name, entry)
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Dimension '{name}': expected a list or a table, got {entry!r}")
    if "values" in entry:
        return Dimension.categorical(name, entry["values"])
    scale = str(entry.get("scale", "linear")).strip().lower()
    try:
        start, stop, num = entry["start"], entry["stop"], entry["num"]
    except KeyError as e:
        raise ConfigurationError(f"Dimension '{name}': missing key {e.args[0]!r}") from e
    if scale == "linear":
        return Dimension.linear(name, start, stop, num)
    if scale in ("log", "log_uniform", "logarithmic"):
        return Dimension.log_uniform(name, start, stop, num)
    raise ConfigurationError(f"Dimension '{name}': unknown scale '{scale}'")


@dataclass(frozen=True)
class SweepSpec:
    dimensions: tuple

    def __post_init__(self):
        dims = tuple(self.dimensions)
        if not dims:
            raise ConfigurationError("A sweep needs at least one dimension")
        for d in dims:
            if not isinstance(d, Dimension):
                raise ConfigurationError(f"Expected a Dimension, got {d!r}")
        names = [d.name for d in dims]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate dimension names: {names}")
        object.__setattr__(self, "dimensions", dims)

    @classmethod
    def from_mapping(cls, mapping) -> SweepSpec:
        """Build from an ordered {name: values} mapping."""
        return cls(tuple(
            v if isinstance(v, Dimension) and v.name == k else Dimension(k, tuple(v))
            for k, v in mapping.items()
        ))

    @property
    def names(self) -> tuple:
        return tuple(d.name for d in self.dimensions)

    @property
    def size(self) -> int:
        return math.prod(len(d) for d in self.dimensions)

    def combinations(self) -> Iterator[tuple]:
        """Value tuples in lexicographic order of the declared dimensions."""
        return itertools.product(*(d.values for d in self.dimensions))
