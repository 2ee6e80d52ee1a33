"""Tests for the odjax command-line entry point."""

import jax.numpy as jnp
import pytest
from typer.testing import CliRunner

from odjax import cli
from odjax.config import get_dtype_eps
from odjax.errors import VisibilityError
from odjax.io import read_estimates
from odjax.pipeline import ESTIMATES_FILENAME

runner = CliRunner()


@pytest.fixture
def fake_run(monkeypatch):
    calls = []

    def run(config, output_dir=None, on_measurement_count=None, on_ekf_switch=None):
        calls.append((config, output_dir))
        on_measurement_count(42)
        on_ekf_switch(16)

    monkeypatch.setattr(cli, "run_orbit_determination", run)
    return calls


class TestCli:
    def test_progress_output(self, fake_run):
        result = runner.invoke(cli.app, [])
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines == ["Will process 42 measurements", "switched to EKF", "DONE"]
        config, output_dir = fake_run[0]
        assert config.step_size == 10.0
        assert output_dir is None

    def test_output_dir_option(self, fake_run, tmp_path):
        result = runner.invoke(cli.app, ["--output-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert fake_run[0][1] == tmp_path

    def test_pipeline_error_exits_nonzero(self, monkeypatch):
        def run(*args, **kwargs):
            raise VisibilityError("no station observes the reference trajectory")

        monkeypatch.setattr(cli, "run_orbit_determination", run)
        result = runner.invoke(cli.app, [])
        assert result.exit_code == 1
        assert "DONE" not in result.stdout
        assert "no station observes" in result.output

    def test_help(self):
        result = runner.invoke(cli.app, ["--help"])
        assert result.exit_code == 0
        assert "--output-dir" in result.stdout


@pytest.mark.ci
def test_simple_orbit_determination_one_day(tmp_path):
    """The one-day DSN scenario runs end to end with a zero deviation."""
    result = runner.invoke(cli.app, ["--output-dir", str(tmp_path)])
    assert result.exit_code == 0

    lines = result.stdout.splitlines()
    announced = [line for line in lines if line.startswith("Will process ")]
    assert len(announced) == 1
    count = int(announced[0].split()[2])
    assert count > 0
    assert lines.count("switched to EKF") == 1
    assert "DONE" in lines

    df = read_estimates(tmp_path / ESTIMATES_FILENAME)
    assert df.filter(~df["predicted"]).height == count
    updates = df.filter(~df["predicted"]).select([f"state_{i}" for i in range(6)])
    deviation_norms = jnp.linalg.norm(jnp.asarray(updates.to_numpy()), axis=1)
    assert float(jnp.max(deviation_norms)) < get_dtype_eps()
