"""Tests for the odjax.coordinates module.

Tests cover:
- Geodetic to ECEF on the WGS84 ellipsoid
- ECEF to ENZ rotation and azimuth/elevation
- Kepler's equation and Keplerian elements to ECI
"""

import jax.numpy as jnp
import pytest

from odjax.constants import GM_EARTH, R_EARTH, WGS84_a, WGS84_f
from odjax.coordinates import (
    anomaly_mean_to_eccentric,
    position_enz_to_azel,
    position_geodetic_to_ecef,
    rotation_ellipsoid_to_enz,
    state_koe_to_eci,
)

_POS_TOL = 1e-6
_ANG_TOL = 1e-9


# ──────────────────────────────────────────────
# Geodetic
# ──────────────────────────────────────────────


class TestGeodetic:
    def test_equator_prime_meridian(self):
        x = position_geodetic_to_ecef(jnp.array([0.0, 0.0, 0.0]))
        assert jnp.allclose(x, jnp.array([WGS84_a, 0.0, 0.0]), atol=_POS_TOL)

    def test_north_pole(self):
        b = WGS84_a * (1.0 - WGS84_f)
        x = position_geodetic_to_ecef(jnp.array([0.0, 90.0, 0.0]), use_degrees=True)
        assert float(x[2]) == pytest.approx(b, abs=1e-3)
        assert abs(float(x[0])) < 1e-6

    def test_altitude_along_normal(self):
        """On the equator altitude adds radially."""
        x = position_geodetic_to_ecef(jnp.array([90.0, 0.0, 1000.0]), use_degrees=True)
        assert float(x[1]) == pytest.approx(WGS84_a + 1000.0, abs=1e-6)

    def test_degrees_matches_radians(self):
        geod_deg = jnp.array([148.981944, -35.398333, 691.75])
        geod_rad = jnp.array([jnp.deg2rad(geod_deg[0]), jnp.deg2rad(geod_deg[1]), geod_deg[2]])
        assert jnp.allclose(
            position_geodetic_to_ecef(geod_deg, use_degrees=True),
            position_geodetic_to_ecef(geod_rad),
            atol=_POS_TOL,
        )


# ──────────────────────────────────────────────
# Topocentric
# ──────────────────────────────────────────────


class TestTopocentric:
    def test_rotation_at_origin(self):
        """At lon = lat = 0: East is +Y, North is +Z, Zenith is +X."""
        rot = rotation_ellipsoid_to_enz(jnp.array([0.0, 0.0, 0.0]))
        expected = jnp.array([
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0],
        ])
        assert jnp.allclose(rot, expected, atol=1e-12)

    @pytest.mark.parametrize("lon, lat", [(4.25, 40.43), (148.98, -35.4), (243.2, 35.25)])
    def test_rotation_orthonormal(self, lon, lat):
        rot = rotation_ellipsoid_to_enz(jnp.array([lon, lat, 0.0]), use_degrees=True)
        assert jnp.allclose(rot @ rot.T, jnp.eye(3), atol=1e-12)
        assert float(jnp.linalg.det(rot)) == pytest.approx(1.0, abs=1e-12)

    def test_zenith(self):
        az, el, rng = position_enz_to_azel(jnp.array([0.0, 0.0, 100.0]), use_degrees=True)
        assert float(el) == pytest.approx(90.0, abs=_ANG_TOL)
        assert float(az) == 0.0
        assert float(rng) == pytest.approx(100.0)

    def test_east_on_horizon(self):
        az, el, rng = position_enz_to_azel(jnp.array([10.0, 0.0, 0.0]), use_degrees=True)
        assert float(az) == pytest.approx(90.0, abs=_ANG_TOL)
        assert float(el) == pytest.approx(0.0, abs=_ANG_TOL)

    def test_west_azimuth_wraps_positive(self):
        az, _, _ = position_enz_to_azel(jnp.array([-1.0, 0.0, 0.0]), use_degrees=True)
        assert float(az) == pytest.approx(270.0, abs=_ANG_TOL)

    def test_below_horizon(self):
        _, el, _ = position_enz_to_azel(jnp.array([0.0, 1.0, -1.0]), use_degrees=True)
        assert float(el) == pytest.approx(-45.0, abs=_ANG_TOL)

    def test_zero_vector_is_on_horizon(self):
        az, el, rng = position_enz_to_azel(jnp.zeros(3))
        assert float(el) == 0.0
        assert float(az) == 0.0
        assert float(rng) == 0.0


# ──────────────────────────────────────────────
# Keplerian
# ──────────────────────────────────────────────


class TestKeplerian:
    @pytest.mark.parametrize("M", [0.0, 0.5, 2.0, 3.1, 5.5])
    @pytest.mark.parametrize("e", [0.0, 0.01, 0.5, 0.9])
    def test_kepler_equation(self, M, e):
        E = anomaly_mean_to_eccentric(M, e)
        assert float(E - e * jnp.sin(E)) == pytest.approx(M, abs=1e-10)

    def test_circular_equatorial(self):
        a = R_EARTH + 500e3
        state = state_koe_to_eci(jnp.array([a, 0.0, 0.0, 0.0, 0.0, 0.0]))
        v = jnp.sqrt(GM_EARTH / a)
        assert jnp.allclose(state, jnp.array([a, 0.0, 0.0, 0.0, v, 0.0]), atol=1e-6)

    def test_periapsis_radius(self):
        a, e = 22000e3, 0.01
        state = state_koe_to_eci(jnp.array([a, e, 30.0, 80.0, 40.0, 0.0]), use_degrees=True)
        assert float(jnp.linalg.norm(state[:3])) == pytest.approx(a * (1.0 - e), rel=1e-12)

    def test_vis_viva(self):
        a = 22000e3
        state = state_koe_to_eci(jnp.array([a, 0.01, 30.0, 80.0, 40.0, 25.0]), use_degrees=True)
        r = jnp.linalg.norm(state[:3])
        v = jnp.linalg.norm(state[3:])
        assert float(v**2) == pytest.approx(float(GM_EARTH * (2.0 / r - 1.0 / a)), rel=1e-10)

    def test_inclination(self):
        state = state_koe_to_eci(
            jnp.array([22000e3, 0.01, 30.0, 80.0, 40.0, 0.0]), use_degrees=True
        )
        h = jnp.cross(state[:3], state[3:])
        inc = jnp.rad2deg(jnp.arccos(h[2] / jnp.linalg.norm(h)))
        assert float(inc) == pytest.approx(30.0, abs=1e-9)

    def test_custom_gm(self):
        a = 1.0e7
        state = state_koe_to_eci(jnp.array([a, 0.0, 0.0, 0.0, 0.0, 0.0]), gm=1.0e14)
        assert float(state[4]) == pytest.approx(float(jnp.sqrt(1.0e14 / a)))
