"""
CLI wrapper for the chart calculation.

Usage:
    python -m bazi_chart.run --date YYYY-MM-DD --hour H --gender GENDER \
        [--calendar solar|lunar] [--leap] [--utc-offset OFFSET] \
        [--zi-hour same_day|next_day] [--env-file PATH] [--verbose]
"""

import argparse
import json
import logging
import sys
from dataclasses import replace

from bazi_chart.astro_calendar import set_ephemeris_path
from bazi_chart.config import EngineConfig, ZiHourConvention
from bazi_chart.create_chart import CalendarKind, calculate
from bazi_chart.errors import CalendarError

logger = logging.getLogger("bazi_chart")

EXIT_INVALID_INPUT = 2


def _parse_date(text):
    try:
        year, month, day = (int(part) for part in text.split("-"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}")
    return year, month, day


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute BaZi Four Pillars and Luck Pillars.")
    parser.add_argument("--date", required=True, type=_parse_date,
                        help="birth date, YYYY-MM-DD, in the chosen calendar")
    parser.add_argument("--hour", required=True, type=int, choices=range(24), metavar="0-23")
    parser.add_argument("--gender", required=True, choices=["male", "female"])
    parser.add_argument("--calendar", default="solar", choices=["solar", "lunar"])
    parser.add_argument("--leap", action="store_true", help="lunar date is in the leap month")
    parser.add_argument("--utc-offset", dest="utc_offset", type=float, default=None)
    parser.add_argument("--zi-hour", dest="zi_hour", default=None,
                        choices=[c.value for c in ZiHourConvention])
    parser.add_argument("--env-file", dest="env_file", default=None)
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = EngineConfig.from_env(args.env_file)
    if args.utc_offset is not None:
        try:
            config = replace(config, utc_offset=args.utc_offset)
        except ValueError as exc:
            parser.error(str(exc))
    if args.zi_hour is not None:
        config = replace(config, zi_hour=ZiHourConvention(args.zi_hour))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    set_ephemeris_path(config.ephe_path)

    year, month, day = args.date
    try:
        chart = calculate(
            year, month, day, args.hour, args.gender,
            calendar=CalendarKind(args.calendar),
            is_leap=args.leap,
            config=config,
        )
    except CalendarError as exc:
        logger.warning("Rejected birth moment: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    print(json.dumps(chart.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
