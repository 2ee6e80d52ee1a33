"""Calendar date and Julian Date conversions.

Plain-Python scalar helpers.  :class:`~odjax.epoch.Epoch` calls them only
when it is built from calendar components and when it renders itself as
a string, never inside traced code, so they work on Python numbers and
keep the day count in exact integer arithmetic.

References:
    1. J. Meeus, *Astronomical Algorithms*, 2nd ed., Willmann-Bell, 1998,
       Ch. 7.
"""

from __future__ import annotations

import math

from .constants import JD_MJD_OFFSET, SECONDS_PER_DAY

# First Julian Day of the Gregorian calendar (1582-10-15)
_JD_GREGORIAN = 2299161


def caldate_to_jd(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: float = 0.0,
) -> float:
    """Convert a Gregorian calendar date to Julian Date.

    Args:
        year (int): Year of the calendar date.
        month (int): Month of the calendar date.
        day (int): Day of the calendar date.
        hour (int): Hour of the calendar date. Default: ``0``
        minute (int): Minute of the calendar date. Default: ``0``
        second (float): Second of the calendar date. Default: ``0.0``

    Returns:
        float: Julian Date.  Midnight falls on a half-integer.
    """
    if month <= 2:
        year -= 1
        month += 12

    century = year // 100
    gregorian = 2 - century + century // 4

    jd_midnight = (math.floor(365.25 * (year + 4716))
                   + math.floor(30.6001 * (month + 1))
                   + day + gregorian - 1524.5)
    return jd_midnight + (hour * 3600.0 + minute * 60.0 + second) / SECONDS_PER_DAY


def caldate_to_mjd(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: float = 0.0,
) -> float:
    """Convert a Gregorian calendar date to Modified Julian Date."""
    return caldate_to_jd(year, month, day, hour, minute, second) - JD_MJD_OFFSET


def jd_to_caldate(jd: float) -> tuple[int, int, int, int, int, float]:
    """Convert a Julian Date to calendar date components.

    The time of day is rounded to whole milliseconds before it is split
    into hours, minutes and seconds.

    Args:
        jd (float): Julian Date.

    Returns:
        tuple: (year, month, day, hour, minute, second).
    """
    jd = float(jd) + 0.5
    z = math.floor(jd)
    frac = jd - z

    if z < _JD_GREGORIAN:
        a = z
    else:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - alpha // 4

    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)

    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715

    ms = round(frac * SECONDS_PER_DAY * 1000.0)
    hour, ms = divmod(ms, 3_600_000)
    minute, ms = divmod(ms, 60_000)
    return year, month, day, hour, minute, ms / 1000.0
