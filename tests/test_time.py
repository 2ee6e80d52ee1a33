import pytest

from odjax.time import caldate_to_jd, caldate_to_mjd, jd_to_caldate


def test_caldate_to_mjd():
    assert caldate_to_mjd(2000, 1, 1, 12, 0, 0) == pytest.approx(51544.5, abs=1e-9)


def test_caldate_to_jd():
    assert caldate_to_jd(2000, 1, 1, 12, 0, 0) == pytest.approx(2451545.0, abs=1e-9)


def test_caldate_to_jd_scenario_start():
    assert caldate_to_jd(2018, 2, 27) == pytest.approx(2458176.5, abs=1e-9)


def test_jd_to_caldate_j2000():
    year, month, day, hour, minute, second = jd_to_caldate(2451545.0)
    assert (year, month, day, hour, minute) == (2000, 1, 1, 12, 0)
    assert second == pytest.approx(0.0, abs=1e-6)


def test_jd_to_caldate_midnight():
    year, month, day, hour, minute, second = jd_to_caldate(2458176.5)
    assert (year, month, day, hour, minute) == (2018, 2, 27, 0, 0)
    assert second == pytest.approx(0.0, abs=1e-6)


@pytest.mark.parametrize(
    "date",
    [
        (2018, 2, 27, 6, 30, 15.0),
        (2024, 2, 29, 23, 59, 59.0),
        (1999, 12, 31, 0, 0, 1.0),
    ],
)
def test_jd_caldate_roundtrip(date):
    jd = caldate_to_jd(*date)
    year, month, day, hour, minute, second = jd_to_caldate(jd)
    assert (year, month, day, hour, minute) == date[:5]
    assert second == pytest.approx(date[5], abs=1e-3)
