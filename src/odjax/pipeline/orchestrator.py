"""Sequential filter orchestration over the reference trajectory.

The orchestrator pairs every reference sample with the measurement store:

1. the sample epoch must come exactly one step after the previous one;
2. the filter receives the sample's STM;
3. if the next unconsumed measurement falls on this epoch, a measurement
   update is made against the observation computed on the reference
   trajectory, otherwise a time update;
4. once more than ``ekf_threshold`` measurements have been processed the
   filter switches, once and for good, from linear to extended mode, in
   which every updated deviation is folded back into the reference.

Every filter output is reported with its covariance scaled by three.
The run ends when every stored measurement has been consumed.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from typing import NamedTuple, Protocol

from odjax.config import get_epoch_eq_tolerance
from odjax.epoch import Epoch
from odjax.errors import EpochOrderError, VisibilityError
from odjax.estimation import Estimate, KalmanFilter
from odjax.orbit_measurements import GroundStation, Measurement
from odjax.pipeline._channel import Channel
from odjax.pipeline.driver import EstimatorDynamicsDriver, ReferenceSample
from odjax.pipeline.synthesis import MeasurementStore

logger = logging.getLogger(__name__)

REPORTED_SIGMA_SCALE = 3.0


class EstimateSink(Protocol):
    def write(self, epoch: Epoch, estimate: Estimate) -> None: ...


class FilterMode(enum.Enum):
    LINEAR = "linear"
    EXTENDED = "extended"


class FilterRun(NamedTuple):
    """Summary of one estimation run.

    Attributes:
        measurement_count: Size of the measurement store.
        processed: Measurements processed by the filter.
        ekf_switch_index: Processed-measurement count at which the filter
            switched to extended mode, or ``None``.
        estimate_count: Estimates reported.
        final_estimate: Last internal (unscaled) estimate.
    """

    measurement_count: int
    processed: int
    ekf_switch_index: int | None
    estimate_count: int
    final_estimate: Estimate | None


class SequentialFilter:
    """Drives a :class:`KalmanFilter` from reference samples.

    Args:
        kf: Filter owned by this orchestrator for the whole run.
        store: Frozen measurement store.
        stations: Stations in priority order, used to compute the
            observation on the reference trajectory.
        start_epoch: Epoch of ``t = 0``.
        step_size: Expected spacing of reference samples [s].
        ekf_threshold: Switch to extended mode once more than this many
            measurements have been processed.
        epoch_tolerance: Tolerance for epoch matching [s]. Defaults to
            :func:`~odjax.config.get_epoch_eq_tolerance`.
        estimate_sink: Receives every reported estimate.
        on_ekf_switch: Called once with the processed count on switching.
    """

    def __init__(
        self,
        kf: KalmanFilter,
        store: MeasurementStore,
        stations: Sequence[GroundStation],
        start_epoch: Epoch,
        step_size: float,
        ekf_threshold: int = 15,
        epoch_tolerance: float | None = None,
        estimate_sink: EstimateSink | None = None,
        on_ekf_switch: Callable[[int], None] | None = None,
    ) -> None:
        if ekf_threshold < 0:
            raise ValueError(f"ekf_threshold must be non-negative, got {ekf_threshold}")
        self.kf = kf
        self.store = store
        self.stations = tuple(stations)
        self.start_epoch = start_epoch
        self.step_size = step_size
        self.ekf_threshold = ekf_threshold
        self.epoch_tolerance = (
            epoch_tolerance if epoch_tolerance is not None else get_epoch_eq_tolerance()
        )
        self.estimate_sink = estimate_sink
        self.on_ekf_switch = on_ekf_switch

        self.mode = FilterMode.EXTENDED if kf.ekf else FilterMode.LINEAR
        self.cursor = 0
        self.processed = 0
        self.ekf_switch_index: int | None = None
        self.estimate_count = 0
        self._prev_epoch: Epoch | None = None

    def run(
        self,
        channel: Channel,
        driver: EstimatorDynamicsDriver | None = None,
    ) -> FilterRun:
        """Consume reference samples until every measurement is processed.

        Args:
            channel: Lock-step channel fed by *driver*.
            driver: Receives deviation corrections in extended mode.

        Raises:
            EpochOrderError: On an epoch that is not one step after the
                previous one, or that has passed an unconsumed measurement.
            VisibilityError: If no station observes the reference state at
                a stored measurement epoch.
            FilterError: On a singular or non-finite filter update.
            ChannelError: If the reference producer failed.
        """
        if not self.store.frozen:
            raise RuntimeError("The measurement store must be frozen before filtering")

        samples = channel.receive()
        try:
            if len(self.store) == 0:
                logger.warning("Measurement store is empty; nothing to filter")
            else:
                for sample in samples:
                    self._process(sample, driver)
                    if self.cursor >= len(self.store):
                        break
        finally:
            samples.close()
            channel.cancel()

        if self.cursor < len(self.store):
            raise EpochOrderError(
                f"Reference run ended with {len(self.store) - self.cursor} "
                f"unprocessed measurements"
            )

        logger.info(
            "Filter finished: %d measurements processed, %d estimates",
            self.processed, self.estimate_count,
        )
        return FilterRun(
            measurement_count=len(self.store),
            processed=self.processed,
            ekf_switch_index=self.ekf_switch_index,
            estimate_count=self.estimate_count,
            final_estimate=self.kf.estimate if self.estimate_count else None,
        )

    def _process(self, sample: ReferenceSample, driver: EstimatorDynamicsDriver | None) -> None:
        epoch = self._advance_epoch(sample.t)
        self.kf.update_stm(sample.stm)

        if self._next_measurement_matches(epoch):
            real = self.store[self.cursor]
            self.cursor += 1
            computed = self._reference_observation(sample, epoch)

            self.kf.update_h_tilde(computed.sensitivity)
            estimate = self.kf.measurement_update(real.observation, computed.observation)
            self.processed += 1

            if self.mode is FilterMode.EXTENDED and driver is not None:
                driver.apply_correction(estimate.state)
        else:
            estimate = self.kf.time_update()

        self._report(epoch, estimate)

        if self.mode is FilterMode.LINEAR and self.processed > self.ekf_threshold:
            self.mode = FilterMode.EXTENDED
            self.kf.ekf = True
            self.ekf_switch_index = self.processed
            logger.info("Switched to EKF after %d measurements", self.processed)
            if self.on_ekf_switch is not None:
                self.on_ekf_switch(self.processed)

    def _advance_epoch(self, t: float) -> Epoch:
        epoch = self.start_epoch + t
        prev = self._prev_epoch if self._prev_epoch is not None else self.start_epoch

        if not bool(epoch > prev) or bool(epoch.is_close(prev, self.epoch_tolerance)):
            raise EpochOrderError(f"Reference epoch {epoch} does not follow {prev}")
        advance = float(epoch - prev)
        if abs(advance - self.step_size) > self.epoch_tolerance:
            raise EpochOrderError(
                f"Reference epoch {epoch} is {advance} s after {prev}, "
                f"expected one step of {self.step_size} s"
            )

        self._prev_epoch = epoch
        return epoch

    def _next_measurement_matches(self, epoch: Epoch) -> bool:
        if self.cursor >= len(self.store):
            return False
        pending = self.store[self.cursor].epoch
        if bool(epoch.is_close(pending, self.epoch_tolerance)):
            return True
        if bool(epoch > pending):
            raise EpochOrderError(
                f"Reference epoch {epoch} passed the unprocessed measurement at {pending}"
            )
        return False

    def _reference_observation(self, sample: ReferenceSample, epoch: Epoch) -> Measurement:
        for station in self.stations:
            computed = station.observe(sample.state, epoch)
            if computed is not None:
                return computed
        raise VisibilityError(f"No station observes the reference trajectory at {epoch}")

    def _report(self, epoch: Epoch, estimate: Estimate) -> None:
        self.estimate_count += 1
        if self.estimate_sink is not None:
            self.estimate_sink.write(epoch, estimate.scaled(REPORTED_SIGMA_SCALE))
