"""Tests for the two-phase pipeline components.

Tests cover:
- TruthGenerator sample timing
- EstimatorDynamicsDriver per-step STM and deviation corrections
- SequentialFilter: zero deviation on a noise-free run, predicted flags,
  reported covariance scaling, the single EKF switch, epoch matching
  within tolerance, and its fatal epoch, visibility and producer errors
"""

import jax.numpy as jnp
import pytest

from odjax.config import get_dtype_eps
from odjax.coordinates import state_koe_to_eci
from odjax.epoch import Epoch
from odjax.errors import ChannelError, EpochOrderError, VisibilityError
from odjax.estimation import Estimate, KalmanFilter
from odjax.integrators import Propagator, PropagatorOptions
from odjax.orbit_dynamics import (
    augment_state,
    create_two_body_dynamics,
    create_two_body_stm_dynamics,
    split_augmented_state,
)
from odjax.orbit_measurements import GroundStation, Measurement
from odjax.pipeline import (
    REPORTED_SIGMA_SCALE,
    Channel,
    EstimatorDynamicsDriver,
    FilterMode,
    MeasurementStore,
    MeasurementSynthesizer,
    SequentialFilter,
    TruthGenerator,
)

_START = Epoch("2018-02-27T00:00:00Z")
_STEP = 10.0
_JOIN_TIMEOUT = 10.0


def _initial_state():
    return state_koe_to_eci(
        jnp.array([22000e3, 0.01, 30.0, 80.0, 40.0, 0.0]), use_degrees=True
    )


def _all_seeing_station():
    """A station whose mask admits every non-degenerate geometry."""
    return GroundStation.dss65_madrid(elevation_mask=-90.0)


def _filter():
    return KalmanFilter(Estimate.initial(jnp.eye(6)), jnp.diag(jnp.array([1.0, 1e3])))


def _synthesize(duration, stations):
    channel = Channel.unbounded("truth")
    thread = TruthGenerator(_initial_state(), PropagatorOptions(step_size=_STEP), duration).start(
        channel
    )
    store = MeasurementSynthesizer(stations, _START).consume(channel)
    thread.join(_JOIN_TIMEOUT)
    return store


def _subset(store, keep):
    subset = MeasurementStore()
    for k, m in enumerate(store):
        if keep(k):
            subset.append(m)
    subset.freeze()
    return subset


def _drifted(store, seconds):
    """Copy of *store* with every epoch moved by *seconds*."""
    drifted = MeasurementStore()
    for m in store:
        drifted.append(m._replace(epoch=m.epoch + seconds))
    drifted.freeze()
    return drifted


def _placeholder(epoch):
    return Measurement(epoch, "x", jnp.zeros(2), jnp.zeros((2, 6)), True, 10.0)


def _frozen_store(*epochs):
    store = MeasurementStore()
    for epoch in epochs:
        store.append(_placeholder(epoch))
    store.freeze()
    return store


class _RecordingSink:
    def __init__(self):
        self.records = []

    def write(self, epoch, estimate):
        self.records.append((epoch, estimate))


def _run_filter(orchestrator, duration, dynamics=None):
    driver = EstimatorDynamicsDriver(
        _initial_state(), PropagatorOptions(step_size=_STEP), duration, dynamics
    )
    channel = Channel.lock_stepped("estimation")
    thread = driver.start(channel)
    try:
        return orchestrator.run(channel, driver), driver
    finally:
        thread.join(_JOIN_TIMEOUT)
        assert not thread.is_alive()


# ──────────────────────────────────────────────
# Producers
# ──────────────────────────────────────────────


class TestTruthGenerator:
    def test_samples_on_step_grid(self):
        channel = Channel.unbounded()
        TruthGenerator(_initial_state(), PropagatorOptions(step_size=_STEP), 50.0).start(channel)
        samples = list(channel)
        assert [s.t for s in samples] == [10.0, 20.0, 30.0, 40.0, 50.0]

    def test_matches_direct_propagation(self):
        channel = Channel.unbounded()
        TruthGenerator(_initial_state(), PropagatorOptions(step_size=_STEP), 50.0).start(channel)
        last = list(channel)[-1]
        direct = Propagator(
            create_two_body_dynamics(), PropagatorOptions(step_size=_STEP), _initial_state()
        ).until_time_elapsed(50.0)
        assert jnp.array_equal(last.state, direct)


class TestEstimatorDynamicsDriver:
    def test_reference_matches_truth(self):
        truth = Channel.unbounded()
        TruthGenerator(_initial_state(), PropagatorOptions(step_size=_STEP), 30.0).start(truth)
        reference = Channel.lock_stepped()
        EstimatorDynamicsDriver(
            _initial_state(), PropagatorOptions(step_size=_STEP), 30.0
        ).start(reference)

        for t_sample, r_sample in zip(list(truth), list(reference)):
            assert t_sample.t == r_sample.t
            assert jnp.array_equal(t_sample.state, r_sample.state)

    def test_stm_is_per_step(self):
        """Each sample's STM spans one step; their product is the full STM."""
        channel = Channel.lock_stepped()
        EstimatorDynamicsDriver(
            _initial_state(), PropagatorOptions(step_size=_STEP), 20.0
        ).start(channel)
        first, second = list(channel)

        continuous = Propagator(
            create_two_body_stm_dynamics(),
            PropagatorOptions(step_size=_STEP),
            augment_state(_initial_state()),
        )
        continuous.step()
        stm_one = split_augmented_state(continuous.state)[1]
        continuous.step()
        stm_two = split_augmented_state(continuous.state)[1]

        assert jnp.allclose(first.stm, stm_one, rtol=1e-12, atol=1e-15)
        assert jnp.allclose(second.stm @ first.stm, stm_two, rtol=1e-9, atol=1e-12)
        assert not jnp.allclose(second.stm, stm_two, rtol=1e-9, atol=1e-12)

    def test_apply_correction(self):
        driver = EstimatorDynamicsDriver(_initial_state(), PropagatorOptions(), 10.0)
        delta = jnp.array([1.0, -2.0, 3.0, 0.1, 0.0, -0.1])
        driver.apply_correction(delta)
        assert jnp.allclose(driver.reference_state, _initial_state() + delta)
        assert driver.corrections == 1
        assert driver.step_size == 10.0


# ──────────────────────────────────────────────
# SequentialFilter
# ──────────────────────────────────────────────


class TestSequentialFilter:
    def test_noise_free_run_has_zero_deviation(self):
        station = _all_seeing_station()
        full = _synthesize(200.0, [station])
        store = _subset(full, lambda k: k % 2 == 0)
        sink = _RecordingSink()
        switches = []
        orchestrator = SequentialFilter(
            _filter(), store, [station], _START, _STEP,
            ekf_threshold=3, estimate_sink=sink, on_ekf_switch=switches.append,
        )

        run, driver = _run_filter(orchestrator, 200.0)

        assert run.measurement_count == len(store) == 10
        assert run.processed == 10
        # Stops at the last measurement, sample 19
        assert run.estimate_count == 19 == len(sink.records)

        eps = get_dtype_eps()
        updates = [e for _, e in sink.records if not e.predicted]
        assert len(updates) == 10
        for estimate in updates:
            assert float(jnp.linalg.norm(estimate.state)) < eps
        assert float(jnp.linalg.norm(run.final_estimate.state)) < eps

        assert [e.predicted for _, e in sink.records] == [k % 2 == 1 for k in range(19)]

        assert switches == [4]
        assert run.ekf_switch_index == 4
        assert orchestrator.mode is FilterMode.EXTENDED
        assert orchestrator.kf.ekf
        # Corrections are applied from the first update after the switch
        assert driver.corrections == 6

    def test_epoch_drift_within_tolerance_is_matched(self):
        """Stored epochs 0.4 us off the step grid still pair with their samples."""
        station = _all_seeing_station()
        store = _drifted(_synthesize(50.0, [station]), 4e-7)
        sink = _RecordingSink()
        orchestrator = SequentialFilter(
            _filter(), store, [station], _START, _STEP,
            epoch_tolerance=1e-6, estimate_sink=sink,
        )
        run, _ = _run_filter(orchestrator, 50.0)

        assert run.measurement_count == run.processed == 5
        assert not any(e.predicted for _, e in sink.records)

    def test_epoch_drift_beyond_tolerance_raises(self):
        station = _all_seeing_station()
        store = _drifted(_synthesize(50.0, [station]), 4e-6)
        orchestrator = SequentialFilter(
            _filter(), store, [station], _START, _STEP, epoch_tolerance=1e-6
        )
        with pytest.raises(EpochOrderError, match="passed"):
            _run_filter(orchestrator, 50.0)

    def test_reported_covariance_is_scaled(self):
        station = _all_seeing_station()
        store = _synthesize(30.0, [station])
        sink = _RecordingSink()
        orchestrator = SequentialFilter(
            _filter(), store, [station], _START, _STEP, estimate_sink=sink
        )
        run, _ = _run_filter(orchestrator, 30.0)

        epoch, reported = sink.records[-1]
        assert epoch == _START + 30.0
        assert jnp.allclose(reported.covar, REPORTED_SIGMA_SCALE * run.final_estimate.covar)
        assert jnp.array_equal(orchestrator.kf.estimate.covar, run.final_estimate.covar)

    def test_switch_happens_once(self):
        station = _all_seeing_station()
        store = _synthesize(100.0, [station])
        switches = []
        orchestrator = SequentialFilter(
            _filter(), store, [station], _START, _STEP,
            ekf_threshold=0, on_ekf_switch=switches.append,
        )
        run, _ = _run_filter(orchestrator, 100.0)
        assert switches == [1]
        assert run.processed == 10

    def test_no_switch_below_threshold(self):
        station = _all_seeing_station()
        store = _synthesize(50.0, [station])
        orchestrator = SequentialFilter(_filter(), store, [station], _START, _STEP, ekf_threshold=15)
        run, driver = _run_filter(orchestrator, 50.0)
        assert run.ekf_switch_index is None
        assert orchestrator.mode is FilterMode.LINEAR
        assert driver.corrections == 0

    def test_empty_store(self):
        store = MeasurementStore()
        store.freeze()
        orchestrator = SequentialFilter(_filter(), store, [_all_seeing_station()], _START, _STEP)
        run, _ = _run_filter(orchestrator, 100.0)
        assert run.measurement_count == 0
        assert run.estimate_count == 0
        assert run.final_estimate is None

    def test_unfrozen_store_raises(self):
        orchestrator = SequentialFilter(
            _filter(), MeasurementStore(), [_all_seeing_station()], _START, _STEP
        )
        with pytest.raises(RuntimeError, match="frozen"):
            orchestrator.run(Channel.lock_stepped())

    def test_negative_threshold_raises(self):
        with pytest.raises(ValueError):
            SequentialFilter(
                _filter(), MeasurementStore(), [_all_seeing_station()], _START, _STEP,
                ekf_threshold=-1,
            )

    def test_measurement_off_step_grid_raises(self):
        store = _frozen_store(_START + 15.0)
        orchestrator = SequentialFilter(_filter(), store, [_all_seeing_station()], _START, _STEP)
        with pytest.raises(EpochOrderError, match="passed"):
            _run_filter(orchestrator, 100.0)

    def test_step_mismatch_raises(self):
        store = _frozen_store(_START + 20.0)
        orchestrator = SequentialFilter(_filter(), store, [_all_seeing_station()], _START, 20.0)
        with pytest.raises(EpochOrderError, match="expected one step"):
            _run_filter(orchestrator, 100.0)

    def test_unprocessed_measurements_raise(self):
        store = _frozen_store(_START + 1000.0)
        orchestrator = SequentialFilter(_filter(), store, [_all_seeing_station()], _START, _STEP)
        with pytest.raises(EpochOrderError, match="unprocessed"):
            _run_filter(orchestrator, 50.0)

    def test_reference_not_visible_raises(self):
        store = _frozen_store(_START + 10.0)
        blind = GroundStation.dss65_madrid(elevation_mask=90.0)
        orchestrator = SequentialFilter(_filter(), store, [blind], _START, _STEP)
        with pytest.raises(VisibilityError):
            _run_filter(orchestrator, 50.0)

    def test_driver_failure_raises(self):
        def broken(t, aug):
            raise ValueError("bad dynamics")

        store = _frozen_store(_START + 10.0)
        orchestrator = SequentialFilter(_filter(), store, [_all_seeing_station()], _START, _STEP)
        with pytest.raises(ChannelError):
            _run_filter(orchestrator, 50.0, dynamics=broken)
