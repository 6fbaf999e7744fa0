# src/sdof_simulator/cli.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import typer
import yaml

from .config.defaults import get_default_solver_params
from .config.loader import ConfigError, apply_solver_overrides, load_solver_config
from .core.engine import response_diagnostics
from .worker import SolverFailure, run_solver

app = typer.Typer(
    add_completion=False,
    help=(
        "SDOF Newmark simulator CLI\n\n"
        "Nonlinear single-degree-of-freedom response (Newmark-β with\n"
        "Newton-Raphson) against a hysteretic backbone curve.\n"
        "Use 'run' for a configured case or 'example' to write a starter config."
    ),
)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _setup_logger(output_dir: Path, log_stem: str) -> Tuple[logging.Logger, logging.Handler]:
    """
    Set up a per-run log file <output_dir>/<log_stem>.log.

    The handler is attached to the package logger so solver messages end up
    in the same file; detach it with _close_log_handler when the run ends.
    """
    _ensure_output_dir(output_dir)
    logger = logging.getLogger("sdof_simulator")
    logger.setLevel(logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    log_file = output_dir / f"{log_stem}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logging.getLogger(f"sdof_simulator.cli.{log_stem}"), handler


def _close_log_handler(handler: logging.Handler) -> None:
    logging.getLogger("sdof_simulator").removeHandler(handler)
    handler.close()


def _print_and_log(logger: logging.Logger, msg: str) -> None:
    typer.echo(msg)
    logger.info(msg)


def _print_run_metrics(diag: Dict[str, Any], runtime_ms: float, logger: logging.Logger) -> None:
    typer.echo("")
    typer.echo("Run summary:")
    typer.echo(f"  Wall-clock time       : {runtime_ms:.3f} ms")
    typer.echo(f"  Simulated time span   : {diag['t_total']:.6f}")
    typer.echo(f"  Time steps            : {diag['steps']} (dt = {diag['dt']:.6e})")
    typer.echo(f"  Peak displacement     : {diag['u_peak']:.6g} at t = {diag['t_peak']:.4f}")
    typer.echo(f"  Final displacement    : {diag['u_final']:.6g}")
    typer.echo(f"  Restoring force range : {diag['fs_min']:.6g} .. {diag['fs_max']:.6g}")
    typer.echo(f"  Newton iterations     : {diag['n_iterations']}")
    typer.echo(f"  Load reversals        : {diag['n_reversals']}")
    if not diag["converged_all_steps"]:
        typer.echo("  WARNING: some steps did not converge (fail_policy='continue').")

    logger.info("Run summary: %s (runtime %.3f ms)", diag, runtime_ms)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


@app.command()
def run(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        exists=True,
        readable=True,
        help="YAML/JSON configuration file (mass, backbone, force history, solver settings).",
    ),
    output_dir: Path = typer.Option(
        Path("results"),
        "--output-dir",
        "-o",
        help="Directory for result files.",
    ),
    prefix: str = typer.Option(
        "",
        "--prefix",
        "-p",
        help="Optional filename prefix for output files.",
    ),
    total_time: Optional[float] = typer.Option(
        None,
        "--total-time",
        "-t",
        help="Override the simulated duration.",
    ),
    dt: Optional[float] = typer.Option(
        None,
        "--dt",
        help="Override the fixed time step (implies --step-mode fixed unless given).",
    ),
    step_mode: Optional[str] = typer.Option(
        None,
        "--step-mode",
        help="'auto' (fraction of the natural period) or 'fixed' (use dt).",
    ),
    fail_policy: Optional[str] = typer.Option(
        None,
        "--fail-policy",
        help="Newton non-convergence policy: 'raise' (abort) or 'continue' (keep last iterate).",
    ),
) -> None:
    """
    Run a single SDOF simulation.

    Example
    -------
        sdof-sim example --output chopra.yml
        sdof-sim run --config chopra.yml --output-dir results/chopra
    """
    # ------------------------------------------------------------------
    # Setup I/O and logging
    # ------------------------------------------------------------------
    filename_prefix = f"{prefix}_" if prefix else ""
    log_stem = f"{filename_prefix}run"
    logger, log_handler = _setup_logger(output_dir, log_stem)
    try:
        # ------------------------------------------------------------------
        # Load configuration
        # ------------------------------------------------------------------
        _print_and_log(logger, f"Loading config: {config}")
        try:
            params = load_solver_config(config)
        except ConfigError as exc:
            raise typer.BadParameter(str(exc), param_hint="--config") from exc

        auto: Optional[bool] = None
        if step_mode is not None:
            if step_mode not in ("auto", "fixed"):
                raise typer.BadParameter("must be 'auto' or 'fixed'", param_hint="--step-mode")
            auto = step_mode == "auto"
        elif dt is not None:
            auto = False
        if fail_policy is not None and fail_policy not in ("raise", "continue"):
            raise typer.BadParameter("must be 'raise' or 'continue'", param_hint="--fail-policy")
        params = apply_solver_overrides(
            params, t=total_time, dt=dt, auto=auto, fail_policy=fail_policy
        )

        # ------------------------------------------------------------------
        # Run simulation
        # ------------------------------------------------------------------
        _print_and_log(logger, "Running simulation ...")
        result = run_solver(params)

        if isinstance(result, SolverFailure):
            logger.error("Run failed: %s", result.error_message)
            typer.echo(f"Error: {result.error_message}", err=True)
            raise typer.Exit(code=1)

        # ------------------------------------------------------------------
        # Write results
        # ------------------------------------------------------------------
        results_df = result.response.to_dataframe()
        if result.rotation_deg is not None:
            results_df["Rotation_deg"] = result.rotation_deg
        csv_path = output_dir / f"{filename_prefix}results.csv"
        _print_and_log(logger, f"Writing time history to {csv_path}")
        results_df.to_csv(csv_path, index=False)

        _print_run_metrics(response_diagnostics(result.response), result.runtime_ms, logger)

        log_file = output_dir / f"{log_stem}.log"
        typer.echo(f"\nDetailed log written to {log_file}")
        logger.info("Run completed.")
    finally:
        _close_log_handler(log_handler)


@app.command()
def example(
    output: Path = typer.Option(
        Path("sdof_example.yml"),
        "--output",
        "-o",
        help="Where to write the example configuration.",
    ),
) -> None:
    """Write the built-in validation case (elastoplastic SDOF, half-sine pulse) as YAML."""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        yaml.safe_dump(get_default_solver_params(), sort_keys=False),
        encoding="utf-8",
    )
    typer.echo(f"Example configuration written to {output}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
