"""
CLI wrapper for chart computation.

Usage:
    ziwei-chart --year 1990 --month 1 --day 1 --hour zi [--leap] [--gender male]
    ziwei-chart --birth-date 1990-03-15 --birth-time 10:30 \
        --latitude 22.817 --longitude 108.3665 [--utc-offset 8] [--true-solar-time | --no-true-solar-time]

    Add --context [--target-year 2026] to emit the reading context instead
    of the bare chart.
"""

import argparse
import json
import sys
from pathlib import Path

from ziwei.chart import BirthRecord, compute_chart
from ziwei.create_chart import resolve_solar_birth
from ziwei.cycles import HOUR_KEYS
from ziwei.errors import ChartError
from ziwei.generate_context import generate_reading_context
from ziwei.logger import setup_logger
from ziwei.settings import LOG_LEVEL, TRUE_SOLAR_TIME


def build_parser():
    parser = argparse.ArgumentParser(description="Compute a Zi Wei Dou Shu chart.")

    lunar = parser.add_argument_group("lunar birth data")
    lunar.add_argument("--year", type=int)
    lunar.add_argument("--month", type=int)
    lunar.add_argument("--day", type=int)
    lunar.add_argument("--hour", choices=HOUR_KEYS)
    lunar.add_argument("--leap", action="store_true", help="Birth month is a leap month")

    solar = parser.add_argument_group("gregorian birth data")
    solar.add_argument("--birth-date", dest="birth_date", help="YYYY-MM-DD")
    solar.add_argument("--birth-time", dest="birth_time", help="HH:MM local clock time")
    solar.add_argument("--latitude", type=float)
    solar.add_argument("--longitude", type=float)
    solar.add_argument("--utc-offset", dest="utc_offset", type=float, default=None)
    solar.add_argument("--true-solar-time", dest="true_solar_time",
                       action=argparse.BooleanOptionalAction, default=TRUE_SOLAR_TIME,
                       help="Apply the equation of time on top of LMT")

    parser.add_argument("--gender", choices=["male", "female"], default=None)
    parser.add_argument("--context", action="store_true",
                        help="Emit the reading context payload instead of the chart")
    parser.add_argument("--target-year", dest="target_year", type=int, default=None)
    parser.add_argument("--output", help="Output file path (default: stdout)")
    parser.add_argument("--log-level", dest="log_level", default=LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _record_from_args(args, parser):
    lunar_fields = [args.year, args.month, args.day, args.hour]
    solar_fields = [args.birth_date, args.birth_time, args.latitude, args.longitude]

    if all(v is not None for v in lunar_fields):
        record = BirthRecord(
            year=args.year, month=args.month, day=args.day, hour_key=args.hour,
            is_leap_month=args.leap, gender=args.gender,
        )
        return record, {"lunar": record.to_dict()}

    if all(v is not None for v in solar_fields):
        return resolve_solar_birth(
            args.birth_date, args.birth_time, args.latitude, args.longitude,
            gender=args.gender, utc_offset=args.utc_offset,
            true_solar_time=args.true_solar_time,
        )

    parser.error("give either --year/--month/--day/--hour or "
                 "--birth-date/--birth-time/--latitude/--longitude")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = setup_logger("ziwei", args.log_level)

    try:
        record, birth_info = _record_from_args(args, parser)
        if args.context:
            result = generate_reading_context(record, target_year=args.target_year)
            result["birth"] = birth_info
        else:
            result = {"birth": birth_info, "chart": compute_chart(record).to_dict()}
    except ChartError as e:
        logger.error(str(e))
        return 2

    output = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
