"""Instants in time for orbit determination runs.

An :class:`Epoch` is stored as an integer Julian Day number plus the
seconds elapsed since that day began (at noon, as Julian Days do).  A
Kahan compensator rides along with the seconds so that a long chain of
fixed-step advances lands on the same instant as a single offset of the
same total length.

The seconds and compensator use the module-wide float dtype
(:func:`odjax.config.get_dtype`); in float64 a sample epoch resolves to
well below a microsecond over multi-day arcs.

Equality is tolerant: two epochs compare equal when they lie within
:func:`odjax.config.get_epoch_eq_tolerance` of each other.  The filter
orchestrator uses :meth:`Epoch.is_close` with its own, wider tolerance to
pair propagated samples with stored measurements.

Epochs are JAX pytrees and may be passed through ``jax.jit``,
``jax.vmap`` and ``jax.lax.scan``.
"""

from __future__ import annotations

import math
import re

import jax
import jax.numpy as jnp

from .config import get_dtype, get_epoch_eq_tolerance
from .constants import JD_MJD_OFFSET, SECONDS_PER_DAY
from .time import caldate_to_jd, jd_to_caldate

# Julian Day number of J2000.0 (2000-01-01T12:00:00)
_JD_J2000 = 2451545

# Seconds between the start of a Julian Day (noon) and civil midnight
_HALF_DAY = 43200.0

# YYYY-MM-DD, optionally followed by THH:MM:SS[.fff]Z
_ISO_EPOCH = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})'
    r'(?:T(\d{2}):(\d{2}):(\d{2}(?:\.\d+)?)Z)?$'
)


def _wrap_day(jd, seconds):
    """Carry whole days out of ``seconds`` into the day number."""
    dtype = get_dtype()
    days = jnp.int32(jnp.floor(seconds / SECONDS_PER_DAY))
    return jd + days, seconds - dtype(days) * dtype(SECONDS_PER_DAY)


class Epoch:
    """A single instant in time.

    Internally ``_jd`` (``jnp.int32``) holds the Julian Day number and
    ``_seconds``/``_kahan_c`` (active float dtype) hold the seconds into
    that day and their summation compensator.  Read the instant back
    through :meth:`jd`, :meth:`mjd` or :meth:`caldate`, and take elapsed
    time by subtracting two epochs.

    Constructors:
        Epoch(2018, 2, 27)
        Epoch(2018, 2, 27, 12, 0, 0.0)
        Epoch("2018-02-27T12:00:00Z")
        Epoch(other_epoch)
    """

    __slots__ = ('_jd', '_seconds', '_kahan_c')

    def __init__(self, *args: int | float | str | Epoch) -> None:
        """Build an epoch from date components, an ISO 8601 string or an Epoch.

        Args:
            *args: ``(year, month, day[, hour, minute, second])``, a
                string such as ``"2018-02-27T00:00:00Z"``, or an existing
                Epoch to copy.

        Raises:
            ValueError: For any other argument shape, or a string that is
                not one of the accepted ISO 8601 forms.
        """
        if len(args) == 1 and isinstance(args[0], Epoch):
            other = args[0]
            self._jd, self._seconds, self._kahan_c = (
                other._jd, other._seconds, other._kahan_c)
            return

        if len(args) == 1 and isinstance(args[0], str):
            args = self._parse_iso(args[0])
        elif len(args) == 1:
            raise ValueError(f"Cannot construct Epoch from {type(args[0])}")
        elif not 3 <= len(args) <= 6:
            raise ValueError(
                "Epoch requires date components (3-6 args), a string, or an Epoch"
            )

        self._set_components(*args)

    @staticmethod
    def _parse_iso(string):
        m = _ISO_EPOCH.match(string)
        if m is None:
            raise ValueError(
                f'Invalid Epoch string: "{string}" is not ISO 8601 compliant'
            )
        year, month, day, hour, minute, second = m.groups()
        if hour is None:
            return int(year), int(month), int(day)
        return int(year), int(month), int(day), int(hour), int(minute), float(second)

    def _set_components(self, year, month, day, hour=0, minute=0, second=0.0):
        # Midnight is always a half-integer JD, so the split below is exact
        jd_midnight = caldate_to_jd(year, month, day)
        jd_day = math.floor(jd_midnight)
        seconds = ((jd_midnight - jd_day) * SECONDS_PER_DAY
                   + hour * 3600.0 + minute * 60.0 + second)

        dtype = get_dtype()
        self._jd, self._seconds = _wrap_day(jnp.int32(jd_day), dtype(seconds))
        self._kahan_c = dtype(0.0)

    @classmethod
    def _from_internal(cls, jd, seconds, kahan_c):
        obj = object.__new__(cls)
        obj._jd = jd
        obj._seconds = seconds
        obj._kahan_c = kahan_c
        return obj

    def _compensated_seconds(self):
        return self._seconds - self._kahan_c

    # Arithmetic

    def __add__(self, delta: float) -> Epoch:
        """Return a new Epoch ``delta`` seconds later.

        The addition is Kahan-compensated, so stepping an epoch forward
        many times does not drift from the directly offset instant.

        Args:
            delta (float): Seconds to add. May be negative.

        Returns:
            Epoch: The advanced epoch.
        """
        y = get_dtype()(delta) - self._kahan_c
        total = self._seconds + y
        kahan_c = (total - self._seconds) - y
        jd, seconds = _wrap_day(self._jd, total)
        return Epoch._from_internal(jd, seconds, kahan_c)

    def __sub__(self, other: Epoch | float) -> Epoch | jax.Array:
        """Elapsed seconds between two epochs, or an epoch moved back in time.

        Args:
            other: An Epoch to measure from, or a number of seconds to
                subtract.

        Returns:
            jax.Array or Epoch: ``self - other`` in seconds when ``other``
                is an Epoch; otherwise the earlier Epoch.
        """
        if not isinstance(other, Epoch):
            return self + (-get_dtype()(other))
        day_diff = (self._jd - other._jd) * SECONDS_PER_DAY
        return day_diff + (self._compensated_seconds() - other._compensated_seconds())

    # Comparison

    def is_close(self, other: Epoch, tolerance: float | None = None) -> jax.Array:
        """Whether two epochs lie within ``tolerance`` seconds of each other.

        Args:
            other: Epoch to compare against.
            tolerance: Maximum absolute separation in seconds. Defaults to
                :func:`~odjax.config.get_epoch_eq_tolerance`.

        Returns:
            jax.Array: Boolean scalar.
        """
        if tolerance is None:
            tolerance = get_epoch_eq_tolerance()
        return jnp.abs(self - other) <= tolerance

    def _precedes(self, other):
        # Day numbers first; seconds only break ties within the same day
        return jnp.where(
            self._jd == other._jd,
            self._compensated_seconds() < other._compensated_seconds(),
            self._jd < other._jd,
        )

    def __eq__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self.is_close(other)

    def __ne__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return ~self.is_close(other)

    def __lt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._precedes(other)

    def __gt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return other._precedes(self)

    def __le__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return self._precedes(other) | self.is_close(other)

    def __ge__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return other._precedes(self) | self.is_close(other)

    # Representations of the instant

    def caldate(self) -> tuple[int, int, int, int, int, float]:
        """Calendar date and civil time of day.

        Not traceable under ``jax.jit``; intended for reporting.

        Returns:
            tuple: (year, month, day, hour, minute, second), with the
                fractional part kept in ``second``.
        """
        civil_day, time_of_day = divmod(
            float(self._compensated_seconds()) + _HALF_DAY, SECONDS_PER_DAY)
        # JD of the civil midnight that opens the day
        midnight = int(self._jd) + int(civil_day) - 0.5
        year, month, day, _, _, _ = jd_to_caldate(midnight)

        hour, rem = divmod(time_of_day, 3600.0)
        minute, second = divmod(rem, 60.0)
        return year, month, day, int(hour), int(minute), second

    def jd(self) -> jax.Array:
        """Julian Date as a single value in the active float dtype."""
        dtype = get_dtype()
        return dtype(self._jd) + self._compensated_seconds() / dtype(SECONDS_PER_DAY)

    def mjd(self) -> jax.Array:
        """Modified Julian Date in the active float dtype."""
        return self.jd() - get_dtype()(JD_MJD_OFFSET)

    def gmst(self, use_degrees: bool = False) -> jax.Array:
        """Greenwich Mean Sidereal Time, IAU 1982 model.

        UTC stands in for UT1.  Julian centuries are built from the day
        number and the seconds separately so no precision is lost to a
        single large JD value.

        Args:
            use_degrees (bool): Return degrees instead of radians.
                Default: False

        Returns:
            jax.Array: GMST in ``[0, 2*pi)``. Units: rad (or deg if
                use_degrees=True)

        References:

            1. D. Vallado, *Fundamentals of Astrodynamics and Applications
               (4th Ed.)*, 2010, Eq. 3-47.
        """
        dtype = get_dtype()
        days = (dtype(self._jd - jnp.int32(_JD_J2000))
                + self._compensated_seconds() / dtype(SECONDS_PER_DAY))
        t = days / dtype(36525.0)

        # Seconds of sidereal time, Horner form
        coeffs = (dtype(876600.0 * 3600.0 + 8640184.812866),
                  dtype(0.093104), dtype(-6.2e-6))
        gmst_sec = dtype(67310.54841) + t * (coeffs[0] + t * (coeffs[1] + t * coeffs[2]))

        # 240 seconds of time per degree
        angle = jnp.mod(jnp.deg2rad(gmst_sec / dtype(240.0)), dtype(2.0 * math.pi))
        return jnp.where(use_degrees, jnp.rad2deg(angle), angle)

    def __str__(self):
        year, month, day, hour, minute, second = self.caldate()
        return (f'{year:04d}-{month:02d}-{day:02d}T'
                f'{hour:02d}:{minute:02d}:{second:06.3f}Z')

    def __repr__(self):
        return f'Epoch("{self}")'

    def __hash__(self):
        return hash((int(self._jd), round(float(self._seconds), 3)))


jax.tree_util.register_pytree_node(
    Epoch,
    lambda e: ((e._jd, e._seconds, e._kahan_c), None),
    lambda _, children: Epoch._from_internal(*children),
)
