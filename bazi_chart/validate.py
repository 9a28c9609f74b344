"""
Pre-flight checks for calendar input.

Every check is a round trip through the converter: build the moment,
convert it, convert it back and compare. Any failure along the way means
"not valid"; these functions answer False, they never raise.
"""

import logging

from bazi_chart.errors import CalendarError
from bazi_chart.lunar import LunarMoment, MonthKind, SolarMoment, to_lunar, to_solar

logger = logging.getLogger(__name__)


def is_valid_solar(year, month, day) -> bool:
    """True if the Gregorian date exists and lies in the supported era."""
    try:
        moment = SolarMoment(year, month, day)
        back = to_solar(to_lunar(moment))
    except (CalendarError, TypeError) as exc:
        logger.debug("Rejected solar date %s-%s-%s: %s", year, month, day, exc)
        return False
    return (back.year, back.month, back.day) == (year, month, day)


def is_valid_lunar(year, month, day, is_leap: bool = False) -> bool:
    """
    True if the lunar date exists.

    A leap date is only valid when that lunar year's leap month is exactly
    this month.
    """
    kind = MonthKind.LEAP if is_leap else MonthKind.NORMAL
    try:
        back = to_lunar(to_solar(LunarMoment(year, month, day, 0, kind)))
    except (CalendarError, TypeError) as exc:
        logger.debug("Rejected lunar date %s-%s-%s (leap=%s): %s", year, month, day, is_leap, exc)
        return False
    return (back.year, back.month, back.day, back.is_leap) == (year, month, day, bool(is_leap))


def is_valid_hour(hour) -> bool:
    return isinstance(hour, int) and not isinstance(hour, bool) and 0 <= hour <= 23
