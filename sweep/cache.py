"""
Persistent cache of sweep results.

An entry is a pickled bundle holding the sweep key it was computed for,
the base kinetic parameters and the long result table. A stored entry is
only reused when all of these still match the requested sweep and the
table has exactly the rows and conditions the sweep enumerates; anything
else is reported as a CacheMismatch and recomputed.
"""
from __future__ import annotations

import hashlib
import itertools
import json
import math
import os
import pickle
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

import pandas as pd

from config.constants import CACHE_DIR, SPECIES
from config.logconf import setup_logger
from models.kinetics import KineticParameters
from models.ode import SolverSettings, validate_time_points
from sweep.engine import SweepDefinition, run_definition
from utils.display import ensure_output_directory
from utils.errors import CacheMismatch

logger = setup_logger()

CACHE_SUFFIX = ".pkl"


def _freeze(mapping) -> tuple:
    """Sorted (key, value) pairs, nested mappings included."""
    return tuple(
        (str(k), _freeze(v) if isinstance(v, dict) else v)
        for k, v in sorted(dict(mapping).items())
    )


def _thaw(pairs) -> dict:
    return {k: _thaw(v) if isinstance(v, tuple) and v and isinstance(v[0], tuple) else v for k, v in pairs}


@dataclass(frozen=True)
class SweepKey:
    """
    Identity of a sweep result: everything that changes its rows.

    Two keys are equal when every field is equal; `digest()` is a stable
    content hash of the same fields.
    """
    dimensions: tuple  # ((name, (values...)), ...) in declared order
    params: KineticParameters
    time_points: tuple
    equilibrium_init: bool = True
    base: tuple = ()
    cells: tuple = ()
    solver: tuple = ()

    @classmethod
    def from_definition(cls, definition: SweepDefinition, params: KineticParameters, time_points,
                        solver: SolverSettings | None = None) -> SweepKey:
        return cls(
            dimensions=tuple((d.name, d.values) for d in definition.spec.dimensions),
            params=params,
            time_points=tuple(float(t) for t in validate_time_points(time_points)),
            equilibrium_init=bool(definition.equilibrium_init),
            base=_freeze(definition.base),
            cells=_freeze({k: dict(v) for k, v in definition.cells.items()}),
            solver=_freeze(asdict(solver or SolverSettings())),
        )

    def to_config(self) -> dict:
        return {
            "dimensions": [[name, list(values)] for name, values in self.dimensions],
            "params": self.params.to_dict(),
            "time_points": list(self.time_points),
            "equilibrium_init": self.equilibrium_init,
            "base": _thaw(self.base),
            "cells": _thaw(self.cells),
            "solver": _thaw(self.solver),
        }

    def digest(self) -> str:
        canonical = json.dumps(self.to_config(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @property
    def dimension_names(self) -> tuple:
        return tuple(name for name, _ in self.dimensions)

    @property
    def n_conditions(self) -> int:
        return math.prod(len(values) for _, values in self.dimensions)

    @property
    def expected_rows(self) -> int:
        return self.n_conditions * len(self.time_points) * len(SPECIES)

    def condition_set(self) -> set:
        return set(itertools.product(*(values for _, values in self.dimensions)))


class ResultCache:
    """
    Directory of pickled sweep results, one file per sweep name.

    Unnamed entries are stored under their key digest.
    """

    def __init__(self, cache_dir=CACHE_DIR):
        self.cache_dir = Path(cache_dir)
        self.stats = {"hits": 0, "misses": 0, "mismatches": 0}
        self.last_status = None

    def path_for(self, name: str) -> Path:
        return self.cache_dir / f"{name}{CACHE_SUFFIX}"

    def _load(self, path: Path) -> dict:
        with path.open("rb") as f:
            return pickle.load(f)

    def _write(self, path: Path, bundle: dict) -> None:
        ensure_output_directory(self.cache_dir)
        fd, tmp = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                pickle.dump(bundle, f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    @staticmethod
    def validate(bundle: dict, key: SweepKey) -> pd.DataFrame:
        """
        Return the stored frame if the bundle matches `key`, else raise
        CacheMismatch naming the first difference found.
        """
        if not isinstance(bundle, dict) or "frame" not in bundle:
            raise CacheMismatch("entry is not a sweep result bundle")
        stored_key = bundle.get("key", {})
        requested = key.to_config()
        for field, value in requested.items():
            if field == "params":
                continue
            if stored_key.get(field) != value:
                raise CacheMismatch(f"'{field}' differs (stored {stored_key.get(field)!r}, requested {value!r})")
        stored_params = bundle.get("params", {})
        for name, value in key.params.to_dict().items():
            if stored_params.get(name) != value:
                raise CacheMismatch(f"base parameter '{name}' differs "
                                    f"(stored {stored_params.get(name)!r}, requested {value!r})")
        if bundle.get("digest") != key.digest():
            raise CacheMismatch("key digest differs")

        frame = bundle["frame"]
        if len(frame) != key.expected_rows:
            raise CacheMismatch(f"{len(frame)} rows stored, {key.expected_rows} expected")
        names = list(key.dimension_names)
        missing = [n for n in names if n not in frame.columns]
        if missing:
            raise CacheMismatch(f"stored frame lacks condition columns {missing}")
        stored_conditions = set(frame[names].drop_duplicates().itertuples(index=False, name=None))
        if stored_conditions != key.condition_set():
            raise CacheMismatch("stored conditions differ from the enumerated sweep")
        return frame

    def get_or_compute(self, key: SweepKey, compute_fn: Callable[[], pd.DataFrame], name: str | None = None) -> pd.DataFrame:
        """
        Return the cached frame for `key`, or compute, persist and return it.

        Args:
            key: identity of the requested sweep.
            compute_fn: no-argument callable producing the result frame.
            name: entry name, defaults to the key digest.
        """
        name = name or key.digest()
        path = self.path_for(name)
        if path.exists():
            try:
                frame = self.validate(self._load(path), key)
            except CacheMismatch as e:
                self.stats["mismatches"] += 1
                self.last_status = "mismatch"
                logger.warning(f"[Cache] {type(e).__name__} for '{name}': {e}; recomputing")
            except Exception as e:
                # Truncated files and pickles of older class layouts fail in arbitrary ways.
                self.stats["mismatches"] += 1
                self.last_status = "mismatch"
                logger.warning(f"[Cache] unreadable entry '{name}' ({type(e).__name__}: {e}); recomputing")
            else:
                self.stats["hits"] += 1
                self.last_status = "hit"
                logger.info(f"[Cache] hit '{name}' ({len(frame)} rows)")
                return frame
        else:
            self.stats["misses"] += 1
            self.last_status = "miss"
            logger.info(f"[Cache] miss '{name}'")

        frame = compute_fn()
        bundle = {
            "digest": key.digest(),
            "key": key.to_config(),
            "params": key.params.to_dict(),
            "frame": frame,
            "created": datetime.now().isoformat(timespec="seconds"),
        }
        self._write(path, bundle)
        logger.info(f"[Cache] stored '{name}' -> {path}")
        return frame

    def entries(self) -> list:
        if not self.cache_dir.exists():
            return []
        return sorted(p.stem for p in self.cache_dir.glob(f"*{CACHE_SUFFIX}"))

    def invalidate(self, name: str | None = None) -> int:
        """Remove one entry, or every entry when `name` is None. Returns the number removed."""
        names = [name] if name is not None else self.entries()
        removed = 0
        for n in names:
            path = self.path_for(n)
            if path.exists():
                path.unlink()
                removed += 1
        logger.info(f"[Cache] removed {removed} entr{'y' if removed == 1 else 'ies'}")
        return removed


def cached_sweep(definition: SweepDefinition, cache: ResultCache | None, params: KineticParameters, time_points,
                 solver: SolverSettings | None = None, **run_kwargs) -> pd.DataFrame:
    """
    Run a named sweep through the cache; `cache=None` always recomputes.
    Extra keyword arguments go to run_sweep (workers, runner, progress).
    """
    def compute():
        return run_definition(definition, params, time_points, solver=solver, **run_kwargs)

    if cache is None:
        return compute()
    key = SweepKey.from_definition(definition, params, time_points, solver)
    return cache.get_or_compute(key, compute, name=definition.name)

