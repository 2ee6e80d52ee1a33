"""Command-line entry point: ``odjax``.

Runs the simple orbit determination scenario end to end and reports
progress on stdout.  Logging goes to stderr at the level named by the
``ODJAX_LOG_LEVEL`` environment variable (default ``WARNING``).

Usage:
    odjax
    odjax --output-dir results/
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Annotated, Optional

import typer

from odjax.errors import OrbitDeterminationError
from odjax.pipeline import run_orbit_determination
from odjax.scenario import ScenarioConfig

app = typer.Typer(add_completion=False)


def _configure_logging() -> None:
    level = os.environ.get("ODJAX_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def main(
    output_dir: Annotated[
        Optional[Path],
        typer.Option(help="Directory for truth.xyzv and estimation.csv"),
    ] = None,
) -> None:
    """Simulate DSN tracking of a spacecraft and estimate its orbit."""
    _configure_logging()

    try:
        run_orbit_determination(
            ScenarioConfig.simple_orbit_determination(),
            output_dir=output_dir,
            on_measurement_count=lambda n: print(f"Will process {n} measurements"),
            on_ekf_switch=lambda _: print("switched to EKF"),
        )
    except (OrbitDeterminationError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    print("DONE")


if __name__ == "__main__":
    app()
