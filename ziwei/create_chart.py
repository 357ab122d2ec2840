"""
Chart creation library.
Computes a Zi Wei Dou Shu chart from Gregorian or lunar birth data and
returns a JSON-ready dict.

Timezone is auto-detected from birth coordinates and date (handles historical DST).

Usage from Python:
    from ziwei.create_chart import compute_solar_chart
    compute_solar_chart(
        birth_date="1990-03-15", birth_time="10:30",
        latitude=22.8170, longitude=108.3665, gender="male",
        utc_offset=None  # optional: override auto-detected UTC offset
    )
"""

import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from timezonefinder import TimezoneFinder

from ziwei.astro_calendar import (
    apply_lmt, apply_true_solar_time, birth_record_from_solar, lmt_correction,
)
from ziwei.chart import BirthRecord, compute_chart
from ziwei.errors import InvalidInput
from ziwei.settings import TRUE_SOLAR_TIME

logger = logging.getLogger(__name__)

_tf = TimezoneFinder()


def _parse_date(birth_date):
    if isinstance(birth_date, datetime):
        return birth_date
    try:
        return datetime.strptime(birth_date, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise InvalidInput(f"Birth date must be YYYY-MM-DD, got {birth_date!r}") from None


def _parse_time(birth_time):
    try:
        hour, minute = map(int, birth_time.split(":"))
    except (AttributeError, ValueError):
        raise InvalidInput(f"Birth time must be HH:MM, got {birth_time!r}") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidInput(f"Birth time out of range: {birth_time!r}")
    return hour, minute


def utc_offset_for(latitude, longitude, birth_date, birth_time):
    """
    Resolve the birth timezone from coordinates and read its offset on the
    birth date, including any daylight saving in force then.

    Returns:
        (clock_offset, standard_offset, timezone_name, dst_detected)

        clock_offset:    what the clock was actually set to (includes DST if active)
        standard_offset: the zone's standard (non-DST) offset
        dst_detected:    True if DST was active at birth time

    Solar time is always measured from the standard offset, so DST is
    stripped before any LMT correction.
    """
    tz_name = _tf.timezone_at(lat=latitude, lng=longitude)
    if tz_name is None:
        raise InvalidInput(f"Could not determine timezone for ({latitude}, {longitude})")

    hour, minute = _parse_time(birth_time)
    local_dt = datetime(birth_date.year, birth_date.month, birth_date.day,
                        hour, minute, tzinfo=ZoneInfo(tz_name))
    clock_offset = local_dt.utcoffset().total_seconds() / 3600

    dst_seconds = local_dt.dst()
    dst_detected = dst_seconds is not None and dst_seconds.total_seconds() > 0

    if dst_detected:
        standard_offset = clock_offset - (dst_seconds.total_seconds() / 3600)
    else:
        standard_offset = clock_offset

    return clock_offset, standard_offset, tz_name, dst_detected


def resolve_solar_birth(birth_date, birth_time, latitude, longitude, gender=None,
                        utc_offset=None, true_solar_time=TRUE_SOLAR_TIME):
    """
    Turn Gregorian clock time at a birth location into lunar birth data.

    Args:
        birth_date: str "YYYY-MM-DD" or datetime
        birth_time: str "HH:MM" (24h, local clock time)
        latitude: float (north positive)
        longitude: float (east positive)
        gender: "male", "female" or None
        utc_offset: float or None; if provided, overrides auto-detected offset
            and is taken as a standard (non-DST) offset
        true_solar_time: also apply the equation of time on top of LMT

    Returns:
        (BirthRecord, birth_info dict with times, timezone and lunar date)
    """
    birth_date = _parse_date(birth_date)
    hour, minute = _parse_time(birth_time)
    clock_dt = datetime(birth_date.year, birth_date.month, birth_date.day, hour, minute)

    if utc_offset is not None:
        clock_offset = standard_offset = utc_offset
        tz_name = None
        dst_detected = False
        timezone_source = "manual"
    else:
        clock_offset, standard_offset, tz_name, dst_detected = utc_offset_for(
            latitude, longitude, birth_date, birth_time
        )
        timezone_source = "auto_split" if dst_detected else "auto"

    # When DST is active, convert clock time to standard time first
    standard_dt = clock_dt - timedelta(hours=clock_offset - standard_offset)

    if true_solar_time:
        solar_dt = apply_true_solar_time(standard_dt, longitude, standard_offset)
    else:
        solar_dt = apply_lmt(standard_dt, longitude, standard_offset * 15)

    logger.info("Birth %s %s clock → %s solar (%s)",
                birth_date.strftime("%Y-%m-%d"), birth_time,
                solar_dt.strftime("%Y-%m-%d %H:%M"), tz_name or "manual offset")

    record = birth_record_from_solar(solar_dt, gender=gender)

    tz_sign = "+" if clock_offset >= 0 else ""
    tz_int = int(clock_offset) if clock_offset == int(clock_offset) else clock_offset
    tz_label = f"{tz_name} (UTC{tz_sign}{tz_int})" if tz_name else f"UTC{tz_sign}{tz_int}"

    birth_info = {
        "birth_date": birth_date.strftime("%Y-%m-%d"),
        "birth_time_clock": birth_time,
        "birth_time_solar": solar_dt.strftime("%Y-%m-%d %H:%M"),
        "solar_time_method": "true_solar" if true_solar_time else "lmt",
        "timezone": tz_label,
        "timezone_source": timezone_source,
        "utc_offset": clock_offset,
        "standard_utc_offset": standard_offset,
        "dst_detected": dst_detected,
        "lmt_correction_minutes": round(lmt_correction(longitude, standard_offset * 15)),
        "location": {"latitude": latitude, "longitude": longitude},
        "lunar": record.to_dict(),
    }
    return record, birth_info


def compute_solar_chart(birth_date, birth_time, latitude, longitude, gender=None,
                        utc_offset=None, true_solar_time=TRUE_SOLAR_TIME):
    """
    Compute a chart from Gregorian clock time at a birth location.

    Arguments as for resolve_solar_birth().

    Returns:
        dict with keys: birth (times, timezone, lunar date) and chart
    """
    record, birth_info = resolve_solar_birth(
        birth_date, birth_time, latitude, longitude, gender=gender,
        utc_offset=utc_offset, true_solar_time=true_solar_time,
    )
    return {
        "birth": birth_info,
        "chart": compute_chart(record).to_dict(),
    }


def compute_lunar_chart(year, month, day, hour_key, is_leap_month=False, gender=None):
    """Compute a chart directly from lunar birth data."""
    record = BirthRecord(
        year=year, month=month, day=day, hour_key=hour_key,
        is_leap_month=is_leap_month, gender=gender,
    )
    if record.is_leap_month:
        logger.warning("Leap month flag is recorded but not used by star placement")
    return {
        "birth": {"lunar": record.to_dict()},
        "chart": compute_chart(record).to_dict(),
    }
