"""Measurement synthesis from a truth trajectory.

The synthesizer consumes truth samples on the calling thread, forwards
each state to an optional trajectory sink, and asks the configured
stations, in order, for an observation.  The first valid observation is
kept and the remaining stations are not queried for that epoch; an epoch
with no valid observation is a gap.  The result is a frozen
:class:`MeasurementStore`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Protocol

import jax
from jax import Array

from odjax.epoch import Epoch
from odjax.errors import EpochOrderError
from odjax.orbit_measurements import GroundStation, Measurement
from odjax.pipeline._channel import Channel

logger = logging.getLogger(__name__)


class TrajectorySink(Protocol):
    def write(self, epoch: Epoch, state: Array) -> None: ...


class MeasurementStore:
    """Measurements kept in strictly increasing epoch order.

    At most one measurement exists per epoch.  After :meth:`freeze` the
    store is read-only.
    """

    def __init__(self) -> None:
        self._measurements: list[Measurement] = []
        self._frozen = False

    def append(self, measurement: Measurement) -> None:
        """Add a measurement after every stored one.

        Raises:
            RuntimeError: If the store is frozen.
            EpochOrderError: If the epoch does not come strictly after the
                last stored epoch.
        """
        if self._frozen:
            raise RuntimeError("MeasurementStore is frozen")
        if self._measurements:
            last = self._measurements[-1].epoch
            epoch = measurement.epoch
            if bool(epoch == last) or not bool(epoch > last):
                raise EpochOrderError(
                    f"Measurement at {epoch} does not follow the last stored epoch {last}"
                )
        self._measurements.append(measurement)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def epochs(self) -> list[Epoch]:
        return [m.epoch for m in self._measurements]

    def __len__(self) -> int:
        return len(self._measurements)

    def __getitem__(self, index: int) -> Measurement:
        return self._measurements[index]

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self._measurements)


class MeasurementSynthesizer:
    """Turns truth samples into a :class:`MeasurementStore`.

    Args:
        stations: Stations in priority order.
        start_epoch: Epoch of ``t = 0``.
        trajectory_sink: Receives every truth state, e.g. a
            :class:`~odjax.io.TrajectoryWriter`.
        rng_key: ``jax.random`` key for measurement noise.  Without a key
            observations are noise-free.
    """

    def __init__(
        self,
        stations: Sequence[GroundStation],
        start_epoch: Epoch,
        trajectory_sink: TrajectorySink | None = None,
        rng_key: Array | None = None,
    ) -> None:
        if not stations:
            raise ValueError("At least one ground station is required")
        self.stations = tuple(stations)
        self.start_epoch = start_epoch
        self.trajectory_sink = trajectory_sink
        self.rng_key = rng_key

    def consume(self, channel: Channel) -> MeasurementStore:
        """Read the channel to completion and return the frozen store.

        Raises:
            EpochOrderError: If sample times are not strictly increasing.
            ChannelError: If the truth producer failed.
        """
        store = MeasurementStore()
        prev_t = None
        n_samples = 0

        samples = channel.receive()
        try:
            for sample in samples:
                if prev_t is not None and not sample.t > prev_t:
                    raise EpochOrderError(
                        f"Truth sample at t={sample.t} s does not follow t={prev_t} s"
                    )
                prev_t = sample.t

                epoch = self.start_epoch + sample.t
                if self.trajectory_sink is not None:
                    self.trajectory_sink.write(epoch, sample.state)

                measurement = self._first_observation(sample.state, epoch, n_samples)
                if measurement is not None:
                    store.append(measurement)
                n_samples += 1
        finally:
            samples.close()

        store.freeze()
        logger.info("Synthesized %d measurements from %d truth samples", len(store), n_samples)
        if len(store) == 0:
            logger.warning("No station observed the spacecraft; the measurement store is empty")
        return store

    def _first_observation(self, state: Array, epoch: Epoch, index: int) -> Measurement | None:
        sample_key = None
        if self.rng_key is not None:
            sample_key = jax.random.fold_in(self.rng_key, index)

        for i, station in enumerate(self.stations):
            key = None if sample_key is None else jax.random.fold_in(sample_key, i)
            measurement = station.observe(state, epoch, key)
            if measurement is not None:
                logger.debug("%s: %s observed %s", epoch, station.name, measurement.observation)
                return measurement
        return None
