"""
Command-line entry point for mirnakin.

Usage
--------------
# list the sweeps configured in config.toml
mirnakin sweeps

# run a configured sweep (cached), write results/<name>.csv and a repression summary
mirnakin sweep cell_type

# run in 4 processes, ignore the cache, custom output file
mirnakin sweep concentration --workers 4 --no-cache --out results/conc.csv

# equilibrium complex of one (target, enzyme, K_D) triple
mirnakin equilibrium --target 10 --enzyme 5 --kd 2

# drop one or all cached sweep results
mirnakin clear-cache robustness
mirnakin clear-cache
"""
from pathlib import Path

import typer

from config.env_loader import load_env_variables
from config.logconf import setup_logger
from config_loader import MirnakinConfig, ensure_dirs, load_config_toml
from steadystate.equilibrium import equilibrium_state
from sweep.analysis import repression_summary
from sweep.cache import ResultCache, cached_sweep
from utils.display import save_frame_csv
from utils.errors import MirnakinError

logger = setup_logger()

app = typer.Typer(help="miRNA silencing kinetics sweeps")


def _load(conf: Path | None) -> MirnakinConfig:
    load_env_variables()
    try:
        return load_config_toml(conf)
    except MirnakinError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


@app.command()
def sweeps(
        conf: Path | None = typer.Option(
            None, "--conf", file_okay=True, dir_okay=False,
            help="Path to TOML config. Uses the project config.toml if omitted."
        ),
):
    """
    List configured sweeps with their dimensions and number of conditions.
    """
    cfg = _load(conf)
    for name, definition in cfg.sweeps.items():
        dims = " x ".join(f"{d.name}[{len(d)}]" for d in definition.spec.dimensions)
        typer.echo(f"{name}: {definition.spec.size} conditions ({dims})")


@app.command()
def sweep(
        name: str = typer.Argument(..., help="Sweep name from [sweeps.<name>]"),
        conf: Path | None = typer.Option(
            None, "--conf", file_okay=True, dir_okay=False,
            help="Path to TOML config. Uses the project config.toml if omitted."
        ),
        workers: int | None = typer.Option(None, help="Worker processes, overrides [solver] workers"),
        no_cache: bool = typer.Option(False, "--no-cache", help="Recompute and do not touch the cache"),
        out: Path | None = typer.Option(None, help="Result CSV, defaults to <results_dir>/<name>.csv"),
        at_hours: float | None = typer.Option(None, help="Read-out time of the repression summary"),
):
    """
    Run a configured sweep and write the result table and its repression summary.
    """
    cfg = _load(conf)
    ensure_dirs(cfg)
    try:
        definition = cfg.sweep(name)
        cache = None if (no_cache or not cfg.use_cache) else ResultCache(cfg.cache_dir)
        frame = cached_sweep(
            definition,
            cache,
            cfg.kinetics,
            cfg.time_points,
            solver=cfg.solver,
            workers=workers or cfg.workers,
        )
        summary = repression_summary(frame, at_hours=at_hours)
    except MirnakinError as e:
        logger.error(f"[CLI] sweep '{name}' failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    out = out or cfg.results_dir / f"{name}.csv"
    written = save_frame_csv(frame, out)
    summary_path = save_frame_csv(summary, written.with_name(f"{written.stem}_summary.csv"))
    typer.echo(f"{len(frame)} rows -> {written}")
    typer.echo(f"{len(summary)} conditions -> {summary_path}")


@app.command()
def equilibrium(
        target: float = typer.Option(..., help="Total target (nM)"),
        enzyme: float = typer.Option(..., help="Total enzyme (nM)"),
        kd: float = typer.Option(..., help="Equilibrium constant"),
):
    """
    Equilibrium (target, enzyme, complex) for the given totals.
    """
    try:
        state = equilibrium_state(target, enzyme, kd)
    except MirnakinError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"target={state.target:.6g} enzyme={state.enzyme:.6g} complex={state.complex:.6g}")


@app.command("clear-cache")
def clear_cache(
        name: str | None = typer.Argument(None, help="Sweep name, all entries if omitted"),
        conf: Path | None = typer.Option(
            None, "--conf", file_okay=True, dir_okay=False,
            help="Path to TOML config. Uses the project config.toml if omitted."
        ),
):
    """
    Remove cached sweep results.
    """
    cfg = _load(conf)
    removed = ResultCache(cfg.cache_dir).invalidate(name)
    typer.echo(f"Removed {removed} cache entr{'y' if removed == 1 else 'ies'}")


if __name__ == "__main__":
    app()
