"""
Calendar utilities that turn a Gregorian birth moment into lunar birth data.

Handles Local Mean Time and true solar time correction, hour-block
selection, and Gregorian -> Chinese lunisolar date conversion.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

import swisseph as swe
from lunar_python import Solar

from ziwei.chart import BirthRecord
from ziwei.cycles import HOUR_KEYS
from ziwei.errors import InvalidInput
from ziwei.settings import EPHE_PATH, LATE_ZI_NEXT_DAY

logger = logging.getLogger(__name__)

# Point Swiss Ephemeris to data files
swe.set_ephe_path(EPHE_PATH)


@dataclass(frozen=True)
class LunarDate:
    year: int
    month: int  # 1-12, leap months carry the number of the month they repeat
    day: int
    is_leap_month: bool = False

    def __str__(self):
        leap = "leap " if self.is_leap_month else ""
        return f"{self.year} {leap}month {self.month} day {self.day}"

    def to_dict(self):
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "is_leap_month": self.is_leap_month,
        }


def lmt_correction(longitude: float, standard_meridian: float = 120.0) -> float:
    """
    Calculate Local Mean Time correction in minutes.

    Four minutes per degree of longitude between the birth place and the
    meridian its standard clock time is based on.

    Args:
        longitude: birth location longitude in degrees (east positive)
        standard_meridian: standard meridian of the birth timezone (UTC offset × 15)

    Returns:
        Correction in minutes (negative = subtract from clock time)
    """
    return (longitude - standard_meridian) * 4.0


def apply_lmt(clock_time: datetime, longitude: float,
              standard_meridian: float = 120.0) -> datetime:
    """Shift standard clock time to Local Mean Time at the birth longitude."""
    correction_minutes = lmt_correction(longitude, standard_meridian)
    return clock_time + timedelta(minutes=correction_minutes)


def equation_of_time(moment_utc: datetime) -> float:
    """
    Equation of time in minutes (apparent solar time minus mean solar time).

    Ranges over roughly -14 minutes (mid February) to +16 minutes
    (early November).
    """
    hour = moment_utc.hour + moment_utc.minute / 60.0 + moment_utc.second / 3600.0
    jd = swe.julday(moment_utc.year, moment_utc.month, moment_utc.day, hour)
    return swe.time_equ(jd) * 1440.0


def apply_true_solar_time(clock_time: datetime, longitude: float,
                          utc_offset: float) -> datetime:
    """
    Convert standard clock time to local apparent (true) solar time.

    Args:
        clock_time: naive datetime in standard (non-DST) clock time
        longitude: birth location longitude (east positive)
        utc_offset: standard UTC offset in hours for clock_time
    """
    lmt = apply_lmt(clock_time, longitude, utc_offset * 15)
    eot = equation_of_time(clock_time - timedelta(hours=utc_offset))
    return lmt + timedelta(minutes=eot)


def hour_key_for(hour: int) -> str:
    """
    Map a 24h clock hour (already solar-corrected) to its hour-block key.

    23:00-00:59 = zi, 01:00-02:59 = chou, ... 21:00-22:59 = hai
    """
    if not 0 <= hour <= 23:
        raise InvalidInput(f"Hour must be 0-23, got {hour}")
    return HOUR_KEYS[((hour + 1) // 2) % 12]


def solar_to_lunar(moment: Union[datetime, str]) -> LunarDate:
    """
    Convert a Gregorian date to the Chinese lunisolar calendar.

    The lunar year changes at the lunar new year, not at Li Chun.
    """
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment)

    lunar = Solar.fromYmd(moment.year, moment.month, moment.day).getLunar()

    # lunar_python reports leap months as negative month numbers
    month = lunar.getMonth()
    return LunarDate(
        year=lunar.getYear(),
        month=abs(month),
        day=lunar.getDay(),
        is_leap_month=month < 0,
    )


def birth_record_from_solar(moment: Union[datetime, str], gender=None,
                            late_zi_next_day: bool = LATE_ZI_NEXT_DAY) -> BirthRecord:
    """
    Build lunar birth data from a Gregorian moment in local solar time.

    Args:
        moment: birth moment, already LMT / true-solar-time corrected
        gender: "male", "female" or None
        late_zi_next_day: count 23:00-23:59 (late zi) as the next lunar day

    Returns:
        BirthRecord ready for compute_chart()
    """
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment)

    hour_key = hour_key_for(moment.hour)
    date_moment = moment
    if late_zi_next_day and moment.hour == 23:
        date_moment = moment + timedelta(days=1)
        logger.debug("Late zi hour at %s, using next day for lunar date", moment.isoformat())

    lunar = solar_to_lunar(date_moment)
    return BirthRecord(
        year=lunar.year,
        month=lunar.month,
        day=lunar.day,
        hour_key=hour_key,
        is_leap_month=lunar.is_leap_month,
        gender=gender,
    )
