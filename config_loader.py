from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

try:
    import tomllib  # py>=3.11
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<3.11

from config.constants import (
    CELL_TYPES,
    EFFICIENCY,
    K_CAT_MAX,
    K_OFF,
    K_ON,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
    TIME_POINTS,
)
from models.kinetics import KineticParameters
from models.ode import SolverSettings, validate_time_points
from sweep.dimensions import SweepSpec, dimension_from_config
from sweep.engine import SweepDefinition
from utils.errors import ConfigurationError

TIME_UNITS = {"seconds": 1.0, "minutes": SECONDS_PER_MINUTE, "hours": SECONDS_PER_HOUR}

# Environment variables overriding [paths]; see config/env_loader.py
PATH_ENV_VARS = {
    "results_dir": "MIRNAKIN_RESULTS_DIR",
    "cache_dir": "MIRNAKIN_CACHE_DIR",
    "log_dir": "MIRNAKIN_LOG_DIR",
}


def _project_root() -> Path:
    """
    Find repo root by walking upwards until config.toml is found.

    Returns:
        The root directory of the project.
    """
    start = Path(__file__).resolve().parent
    for p in [start, *start.parents]:
        if (p / "config.toml").is_file():
            return p
    return start


def default_config_path() -> Path:
    return _project_root() / "config.toml"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two dictionaries, with override taking precedence.

    Args:
        base (dict[str, Any]): The base dictionary to merge into.
        override (dict[str, Any]): The dictionary containing overrides.

    Returns:
        dict[str, Any]: The merged dictionary.
    """
    out = dict(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


@dataclass(frozen=True)
class MirnakinConfig:
    results_dir: Path
    cache_dir: Path
    log_dir: Path

    kinetics: KineticParameters
    solver: SolverSettings
    time_points: np.ndarray
    cells: dict[str, dict[str, float]]
    sweeps: dict[str, SweepDefinition]

    workers: int = 1
    use_cache: bool = True

    app_name: str = "mirnakin"
    version: str = "0.1.0"
    source: Path | None = field(default=None, compare=False)

    def sweep(self, name: str) -> SweepDefinition:
        try:
            return self.sweeps[name]
        except KeyError:
            raise ConfigurationError(
                f"No sweep named '{name}'; configured: {', '.join(self.sweeps) or '(none)'}"
            ) from None


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"[{name}] must be a table, got {type(value).__name__}")
    return value


def _number(section: str, cfg: dict, key: str, default, kind=float):
    value = cfg.get(key, default)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"[{section}] {key} must be a number, got {value!r}") from e


def _resolve(root: Path, value) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else root / p


def _time_points(cfg: dict) -> np.ndarray:
    """
    [time] accepts explicit `points` or a `start`/`stop`/`step` grid,
    both in `unit` (seconds, minutes or hours; default hours).
    """
    if not cfg:
        return TIME_POINTS.copy()
    unit = str(cfg.get("unit", "hours")).strip().lower()
    if unit not in TIME_UNITS:
        raise ConfigurationError(f"[time] unit must be one of {sorted(TIME_UNITS)}, got '{unit}'")
    if "points" in cfg:
        points = np.asarray(cfg["points"], dtype=float)
    else:
        start = _number("time", cfg, "start", 0.0)
        stop = _number("time", cfg, "stop", 48.0)
        step = _number("time", cfg, "step", 1.0)
        if step <= 0 or stop < start:
            raise ConfigurationError(f"[time] needs step > 0 and stop >= start, got {start}..{stop} by {step}")
        n = int(round((stop - start) / step)) + 1
        points = start + step * np.arange(n, dtype=float)
    return validate_time_points(points * TIME_UNITS[unit])


def _cells(cfg: dict) -> dict[str, dict[str, float]]:
    cells = {k: dict(v) for k, v in CELL_TYPES.items()}
    for name, entry in cfg.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"[cells.{name}] must be a table")
        merged = _deep_merge(cells.get(name, {}), entry)
        for key in ("volume_pl", "mrna_per_cell"):
            if key in merged:
                merged[key] = _number(f"cells.{name}", merged, key, None)
        if merged.get("volume_pl", 0.0) <= 0:
            raise ConfigurationError(f"[cells.{name}] volume_pl must be > 0")
        cells[name] = merged
    return cells


def _sweeps(cfg: dict, defaults: dict, cells: dict) -> dict[str, SweepDefinition]:
    sweeps = {}
    for name, entry in cfg.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"[sweeps.{name}] must be a table")
        dims = entry.get("dimensions", {}) or {}
        if not isinstance(dims, dict) or not dims:
            raise ConfigurationError(f"[sweeps.{name}] needs a non-empty [sweeps.{name}.dimensions] table")
        spec = SweepSpec(tuple(dimension_from_config(d, v) for d, v in dims.items()))
        base = _deep_merge(defaults, entry.get("base", {}) or {})
        definition = SweepDefinition(
            name=name,
            spec=spec,
            base=base,
            equilibrium_init=bool(entry.get("equilibrium_init", True)),
            cells=cells,
        )
        # Reject unknown or conflicting dimension names at load time.
        definition.factory().check_dimensions(spec.names)
        sweeps[name] = definition
    return sweeps


def load_config_toml(path: str | Path | None = None) -> MirnakinConfig:
    """
    Load the project configuration.

    Relative paths in [paths] are resolved against the directory holding the
    config file; MIRNAKIN_*_DIR environment variables override them.

    Raises:
        ConfigurationError: missing file or malformed section.
    """
    path = Path(path) if path is not None else default_config_path()
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    with path.open("rb") as f:
        try:
            full_cfg = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
    root = path.resolve().parent

    # -------------------------
    # 0) Metadata
    # -------------------------
    meta = _section(full_cfg, "project")
    app_name = str(meta.get("app_name", "mirnakin"))
    version = str(meta.get("version", "0.1.0"))

    # -------------------------
    # 1) Paths
    # -------------------------
    paths = _section(full_cfg, "paths")
    results_dir = _resolve(root, os.getenv(PATH_ENV_VARS["results_dir"]) or paths.get("results_dir", "results"))
    cache_dir = _resolve(root, os.getenv(PATH_ENV_VARS["cache_dir"]) or paths.get("cache_dir", results_dir / "cache"))
    log_dir = _resolve(root, os.getenv(PATH_ENV_VARS["log_dir"]) or paths.get("log_dir", results_dir / "logs"))

    # -------------------------
    # 2) Kinetics
    # -------------------------
    kin = _section(full_cfg, "kinetics")
    kinetics = KineticParameters(
        k_on=_number("kinetics", kin, "k_on", K_ON),
        k_off=_number("kinetics", kin, "k_off", K_OFF),
        k_cat_max=_number("kinetics", kin, "k_cat_max", K_CAT_MAX),
        efficiency=_number("kinetics", kin, "efficiency", EFFICIENCY),
    )

    # -------------------------
    # 3) Solver
    # -------------------------
    sol = _section(full_cfg, "solver")
    defaults = SolverSettings()
    solver = SolverSettings(
        rtol=_number("solver", sol, "rtol", defaults.rtol),
        atol=_number("solver", sol, "atol", defaults.atol),
        max_steps=_number("solver", sol, "max_steps", defaults.max_steps, int),
    )
    workers = _number("solver", sol, "workers", 1, int)
    if workers < 1:
        raise ConfigurationError(f"[solver] workers must be >= 1, got {workers}")

    # -------------------------
    # 4) Time grid, cells, sweeps
    # -------------------------
    time_points = _time_points(_section(full_cfg, "time"))
    cells = _cells(_section(full_cfg, "cells"))
    cache_cfg = _section(full_cfg, "cache")
    sweeps = _sweeps(_section(full_cfg, "sweeps"), _section(full_cfg, "condition"), cells)

    return MirnakinConfig(
        results_dir=results_dir,
        cache_dir=cache_dir,
        log_dir=log_dir,

        kinetics=kinetics,
        solver=solver,
        time_points=time_points,
        cells=cells,
        sweeps=sweeps,

        workers=workers,
        use_cache=bool(cache_cfg.get("enabled", True)),

        app_name=app_name,
        version=version,
        source=path,
    )


def ensure_dirs(cfg: MirnakinConfig) -> None:
    """
    Ensure that the output directories of a configuration exist.
    """
    for d in (cfg.results_dir, cfg.cache_dir, cfg.log_dir):
        Path(d).mkdir(parents=True, exist_ok=True)
