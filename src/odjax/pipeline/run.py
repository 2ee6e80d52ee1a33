"""End-to-end orbit determination run.

Phase 1 propagates the truth trajectory on a producer thread while the
calling thread synthesizes measurements from it.  Phase 2 starts only
once the measurement store is frozen: the reference trajectory and its
STM are propagated on a producer thread in lock step with the filter on
the calling thread.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import NamedTuple

import jax.numpy as jnp

from odjax.config import set_dtype
from odjax.errors import StepSizeMismatchError
from odjax.estimation import Estimate, KalmanFilter
from odjax.io import EstimateWriter, TrajectoryWriter
from odjax.pipeline._channel import Channel
from odjax.pipeline.driver import EstimatorDynamicsDriver
from odjax.pipeline.orchestrator import FilterRun, SequentialFilter
from odjax.pipeline.synthesis import MeasurementStore, MeasurementSynthesizer
from odjax.pipeline.truth import TruthGenerator
from odjax.scenario import ScenarioConfig

logger = logging.getLogger(__name__)

TRUTH_FILENAME = "truth.xyzv"
ESTIMATES_FILENAME = "estimation.csv"


class ODResult(NamedTuple):
    """Outcome of :func:`run_orbit_determination`."""

    store: MeasurementStore
    filter_run: FilterRun


def run_orbit_determination(
    config: ScenarioConfig | None = None,
    output_dir: str | Path | None = None,
    on_measurement_count: Callable[[int], None] | None = None,
    on_ekf_switch: Callable[[int], None] | None = None,
) -> ODResult:
    """Simulate tracking of a spacecraft and estimate its orbit.

    Args:
        config: Scenario. Defaults to
            :meth:`ScenarioConfig.simple_orbit_determination`.
        output_dir: If given, ``truth.xyzv`` and ``estimation.csv`` are
            written there.
        on_measurement_count: Called with the store size before filtering.
        on_ekf_switch: Called once when the filter switches to the EKF.

    Returns:
        ODResult: The measurement store and the filter run summary.

    Raises:
        StepSizeMismatchError: If the truth and estimation steps differ.
            :class:`ScenarioConfig` derives both from its one
            ``step_size``, so this guards configs that override
            ``truth_options`` or ``estimation_options``.
        OrbitDeterminationError: On any fatal pipeline condition.
        OSError: If an output file cannot be written.
    """
    if config is None:
        config = ScenarioConfig.simple_orbit_determination()

    # Must precede the first compilation of any kernel
    set_dtype(jnp.float64)

    truth_options = config.truth_options()
    estimation_options = config.estimation_options()
    if truth_options.step_size != estimation_options.step_size:
        raise StepSizeMismatchError(
            f"Truth step {truth_options.step_size} s differs from estimation "
            f"step {estimation_options.step_size} s"
        )

    start_epoch = config.epoch()
    initial_state = config.initial_state()

    with contextlib.ExitStack() as stack:
        trajectory_sink = None
        estimate_sink = None
        if output_dir is not None:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            trajectory_sink = stack.enter_context(TrajectoryWriter(output_dir / TRUTH_FILENAME))
            estimate_sink = stack.enter_context(EstimateWriter(output_dir / ESTIMATES_FILENAME))

        # Phase 1: truth and measurements
        logger.info("Generating truth trajectory from %s", start_epoch)
        truth_channel = Channel.unbounded("truth")
        truth_thread = TruthGenerator(
            initial_state, truth_options, config.propagation_duration
        ).start(truth_channel)
        synthesizer = MeasurementSynthesizer(
            config.stations, start_epoch, trajectory_sink, config.rng_key()
        )
        store = synthesizer.consume(truth_channel)
        truth_thread.join()
        if trajectory_sink is not None:
            trajectory_sink.close()

        logger.info("Will process %d measurements", len(store))
        if on_measurement_count is not None:
            on_measurement_count(len(store))

        # Phase 2: estimation
        kf = KalmanFilter(
            Estimate.initial(config.initial_covariance()),
            config.measurement_noise(),
        )
        driver = EstimatorDynamicsDriver(
            initial_state, estimation_options, config.propagation_duration
        )
        orchestrator = SequentialFilter(
            kf,
            store,
            config.stations,
            start_epoch,
            estimation_options.step_size,
            ekf_threshold=config.ekf_threshold,
            epoch_tolerance=config.resolved_epoch_tolerance(),
            estimate_sink=estimate_sink,
            on_ekf_switch=on_ekf_switch,
        )
        estimation_channel = Channel.lock_stepped("estimation")
        driver_thread = driver.start(estimation_channel)
        filter_run = orchestrator.run(estimation_channel, driver)
        driver_thread.join()

    logger.info("Orbit determination complete")
    return ODResult(store=store, filter_run=filter_run)
