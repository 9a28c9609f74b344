"""
Solar (Gregorian) <-> lunar calendar conversion, lunar years 1900-2100.

The lunar calendar cannot be derived by arithmetic alone; month lengths and
leap-month placement come from astronomical new-moon computation. That work
is captured once in LUNAR_YEAR_INFO, a static table in the widely used
Hong Kong Observatory-based encoding, and treated as ground truth here.

Handles:
- SolarMoment / LunarMoment value types
- to_lunar / to_solar (exact inverses across the table era)
- Leap-month lookup, month and year lengths
- Lunar date display strings (己巳年 腊月 初五)
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from itertools import accumulate

from bazi_chart.errors import InvalidMoment, OutOfRange
from bazi_chart.sexagenary import year_stem_branch

logger = logging.getLogger(__name__)


# ============================================================
# LUNAR YEAR TABLE
# ============================================================
#
# One entry per lunar year starting at 1900:
# - bits 3..0:  leap month (0 = no leap month that year)
# - bit 16:     leap month length (1 -> 30 days, 0 -> 29 days)
# - bits 15..4: lengths of months 1..12 (1 -> 30 days, 0 -> 29 days)

LUNAR_YEAR_INFO = (
    0x04BD8, 0x04AE0, 0x0A570, 0x054D5, 0x0D260, 0x0D950, 0x16554, 0x056A0, 0x09AD0, 0x055D2,  # 1900
    0x04AE0, 0x0A5B6, 0x0A4D0, 0x0D250, 0x1D255, 0x0B540, 0x0D6A0, 0x0ADA2, 0x095B0, 0x14977,  # 1910
    0x04970, 0x0A4B0, 0x0B4B5, 0x06A50, 0x06D40, 0x1AB54, 0x02B60, 0x09570, 0x052F2, 0x04970,  # 1920
    0x06566, 0x0D4A0, 0x0EA50, 0x06E95, 0x05AD0, 0x02B60, 0x186E3, 0x092E0, 0x1C8D7, 0x0C950,  # 1930
    0x0D4A0, 0x1D8A6, 0x0B550, 0x056A0, 0x1A5B4, 0x025D0, 0x092D0, 0x0D2B2, 0x0A950, 0x0B557,  # 1940
    0x06CA0, 0x0B550, 0x15355, 0x04DA0, 0x0A5D0, 0x14573, 0x052D0, 0x0A9A8, 0x0E950, 0x06AA0,  # 1950
    0x0AEA6, 0x0AB50, 0x04B60, 0x0AAE4, 0x0A570, 0x05260, 0x0F263, 0x0D950, 0x05B57, 0x056A0,  # 1960
    0x096D0, 0x04DD5, 0x04AD0, 0x0A4D0, 0x0D4D4, 0x0D250, 0x0D558, 0x0B540, 0x0B6A0, 0x195A6,  # 1970
    0x095B0, 0x049B0, 0x0A974, 0x0A4B0, 0x0B27A, 0x06A50, 0x06D40, 0x0AF46, 0x0AB60, 0x09570,  # 1980
    0x04AF5, 0x04970, 0x064B0, 0x074A3, 0x0EA50, 0x06B58, 0x055C0, 0x0AB60, 0x096D5, 0x092E0,  # 1990
    0x0C960, 0x0D954, 0x0D4A0, 0x0DA50, 0x07552, 0x056A0, 0x0ABB7, 0x025D0, 0x092D0, 0x0CAB5,  # 2000
    0x0A950, 0x0B4A0, 0x0BAA4, 0x0AD50, 0x055D9, 0x04BA0, 0x0A5B0, 0x15176, 0x052B0, 0x0A930,  # 2010
    0x07954, 0x06AA0, 0x0AD50, 0x05B52, 0x04B60, 0x0A6E6, 0x0A4E0, 0x0D260, 0x0EA65, 0x0D530,  # 2020
    0x05AA0, 0x076A3, 0x096D0, 0x04BD7, 0x04AD0, 0x0A4D0, 0x1D0B6, 0x0D250, 0x0D520, 0x0DD45,  # 2030
    0x0B5A0, 0x056D0, 0x055B2, 0x049B0, 0x0A577, 0x0A4B0, 0x0AA50, 0x1B255, 0x06D20, 0x0ADA0,  # 2040
    0x14B63, 0x09370, 0x049F8, 0x04970, 0x064B0, 0x168A6, 0x0EA50, 0x06B20, 0x1A6C4, 0x0AAE0,  # 2050
    0x0A2E0, 0x0D2E3, 0x0C960, 0x0D557, 0x0D4A0, 0x0DA50, 0x05D55, 0x056A0, 0x0A6D0, 0x055D4,  # 2060
    0x052D0, 0x0A9B8, 0x0A950, 0x0B4A0, 0x0B6A6, 0x0AD50, 0x055A0, 0x0ABA4, 0x0A5B0, 0x052B0,  # 2070
    0x0B273, 0x06930, 0x07337, 0x06AA0, 0x0AD50, 0x14B55, 0x04B60, 0x0A570, 0x054E4, 0x0D160,  # 2080
    0x0E968, 0x0D520, 0x0DAA0, 0x16AA6, 0x056D0, 0x04AE0, 0x0A9D4, 0x0A2D0, 0x0D150, 0x0F252,  # 2090
    0x0D520,  # 2100
)

MIN_LUNAR_YEAR = 1900
MAX_LUNAR_YEAR = MIN_LUNAR_YEAR + len(LUNAR_YEAR_INFO) - 1

# Lunar 1900-01-01 (正月初一, 庚子年)
LUNAR_EPOCH = date(1900, 1, 31)

LUNAR_MONTH_NAMES = ("正", "二", "三", "四", "五", "六", "七", "八", "九", "十", "冬", "腊")
LUNAR_DAY_NAMES = (
    "初一", "初二", "初三", "初四", "初五", "初六", "初七", "初八", "初九", "初十",
    "十一", "十二", "十三", "十四", "十五", "十六", "十七", "十八", "十九", "二十",
    "廿一", "廿二", "廿三", "廿四", "廿五", "廿六", "廿七", "廿八", "廿九", "三十",
)
LEAP_PREFIX = "閏"


# ============================================================
# VALUE TYPES
# ============================================================

class MonthKind(Enum):
    NORMAL = "normal"
    LEAP = "leap"


@dataclass(frozen=True)
class SolarMoment:
    year: int
    month: int
    day: int
    hour: int = 0

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def __str__(self):
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d} {self.hour:02d}:00"

    def to_dict(self) -> dict:
        return {"year": self.year, "month": self.month, "day": self.day, "hour": self.hour}


@dataclass(frozen=True)
class LunarMoment:
    year: int
    month: int  # 1-12, always positive; leap-ness lives in month_kind
    day: int
    hour: int = 0
    month_kind: MonthKind = MonthKind.NORMAL

    @property
    def is_leap(self) -> bool:
        return self.month_kind is MonthKind.LEAP

    @property
    def signed_month(self) -> int:
        """Month number with the negative-means-leap encoding."""
        return -self.month if self.is_leap else self.month

    def __str__(self):
        return f"{self.year:04d}-{LEAP_PREFIX if self.is_leap else ''}{self.month:02d}-{self.day:02d} {self.hour:02d}:00"

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "is_leap_month": self.is_leap,
        }


# ============================================================
# TABLE ACCESS
# ============================================================

def _year_info(year: int) -> int:
    if not MIN_LUNAR_YEAR <= year <= MAX_LUNAR_YEAR:
        raise OutOfRange(f"Lunar year {year} outside supported range {MIN_LUNAR_YEAR}-{MAX_LUNAR_YEAR}")
    return LUNAR_YEAR_INFO[year - MIN_LUNAR_YEAR]


def leap_month_of(year: int) -> int:
    """Return the leap month of a lunar year, or 0 if it has none."""
    return _year_info(year) & 0xF


def month_days(year: int, month: int, month_kind: MonthKind = MonthKind.NORMAL) -> int:
    """
    Length of a lunar month (29 or 30).

    Raises:
        InvalidMoment: month not in 1..12, or LEAP asked of a month that is
            not that year's leap month
    """
    info = _year_info(year)
    if not 1 <= month <= 12:
        raise InvalidMoment(f"Invalid lunar month: {month}")
    if month_kind is MonthKind.LEAP:
        if info & 0xF != month:
            raise InvalidMoment(f"Lunar year {year} has no leap month {month}")
        return 30 if info & 0x10000 else 29
    return 30 if info & (0x10000 >> month) else 29


def _leap_days(year: int) -> int:
    leap = leap_month_of(year)
    return month_days(year, leap, MonthKind.LEAP) if leap else 0


def year_days(year: int) -> int:
    """Total days in a lunar year, leap month included."""
    return sum(month_days(year, m) for m in range(1, 13)) + _leap_days(year)


# Day offset of each lunar new year from LUNAR_EPOCH; the last entry is the
# first day past the era.
_YEAR_OFFSETS = tuple(accumulate(
    (year_days(y) for y in range(MIN_LUNAR_YEAR, MAX_LUNAR_YEAR + 1)),
    initial=0,
))

MIN_SOLAR_DATE = LUNAR_EPOCH
MAX_SOLAR_DATE = LUNAR_EPOCH + timedelta(days=_YEAR_OFFSETS[-1] - 1)


def _months_in_order(year: int):
    """Yield (month, month_kind, days) in calendar order, leap month after its twin."""
    leap = leap_month_of(year)
    for month in range(1, 13):
        yield month, MonthKind.NORMAL, month_days(year, month)
        if month == leap:
            yield month, MonthKind.LEAP, month_days(year, month, MonthKind.LEAP)


# ============================================================
# CONVERSION
# ============================================================

def solar_moment(year: int, month: int, day: int, hour: int = 0) -> SolarMoment:
    """
    Build a SolarMoment for a Gregorian date that actually exists.

    Raises:
        InvalidMoment: no such date or hour
    """
    try:
        date(year, month, day)
    except (TypeError, ValueError) as exc:
        raise InvalidMoment(f"No such solar date: {year}-{month}-{day}") from exc
    if not isinstance(hour, int) or not 0 <= hour <= 23:
        raise InvalidMoment(f"Invalid hour: {hour!r}")
    return SolarMoment(year, month, day, hour)


def to_lunar(solar: SolarMoment) -> LunarMoment:
    """
    Convert a Gregorian moment to the lunar calendar.

    Raises:
        InvalidMoment: the solar moment does not exist
        OutOfRange: the date falls outside the table era
    """
    solar = solar_moment(solar.year, solar.month, solar.day, solar.hour)
    d = solar.to_date()
    if not MIN_SOLAR_DATE <= d <= MAX_SOLAR_DATE:
        raise OutOfRange(f"Solar date {d} outside supported range {MIN_SOLAR_DATE}..{MAX_SOLAR_DATE}")

    offset = (d - LUNAR_EPOCH).days

    # Largest lunar year whose new year is on or before the date
    lo, hi = 0, len(_YEAR_OFFSETS) - 2
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if _YEAR_OFFSETS[mid] <= offset:
            lo = mid
        else:
            hi = mid - 1
    year = MIN_LUNAR_YEAR + lo
    offset -= _YEAR_OFFSETS[lo]

    for month, kind, days in _months_in_order(year):
        if offset < days:
            return LunarMoment(year, month, offset + 1, solar.hour, kind)
        offset -= days

    # Unreachable while _YEAR_OFFSETS agrees with year_days
    raise AssertionError(f"Lunar table inconsistent for {d}")


def to_solar(lunar: LunarMoment) -> SolarMoment:
    """
    Convert a lunar moment to the Gregorian calendar.

    Raises:
        OutOfRange: lunar year outside the table era
        InvalidMoment: month/day/leap flag not present in that lunar year
    """
    year = lunar.year
    if not isinstance(year, int):
        raise InvalidMoment(f"Invalid lunar year: {year!r}")
    # month_days checks the era, the month number and the leap flag
    length = month_days(year, lunar.month, lunar.month_kind)
    if not isinstance(lunar.day, int) or not 1 <= lunar.day <= length:
        raise InvalidMoment(f"Lunar {year}-{lunar.month} has {length} days, got day {lunar.day}")
    if not isinstance(lunar.hour, int) or not 0 <= lunar.hour <= 23:
        raise InvalidMoment(f"Invalid hour: {lunar.hour!r}")

    offset = _YEAR_OFFSETS[year - MIN_LUNAR_YEAR]
    for month, kind, days in _months_in_order(year):
        if month == lunar.month and kind is lunar.month_kind:
            break
        offset += days
    offset += lunar.day - 1

    d = LUNAR_EPOCH + timedelta(days=offset)
    return SolarMoment(d.year, d.month, d.day, lunar.hour)


def lunar_moment(year: int, month: int, day: int, hour: int = 0, is_leap: bool = False) -> LunarMoment:
    """
    Build a LunarMoment that actually exists.

    Raises:
        InvalidMoment, OutOfRange: as to_solar
    """
    moment = LunarMoment(year, month, day, hour, MonthKind.LEAP if is_leap else MonthKind.NORMAL)
    to_solar(moment)
    return moment


# ============================================================
# DISPLAY
# ============================================================

def month_name(lunar: LunarMoment) -> str:
    return (LEAP_PREFIX if lunar.is_leap else "") + LUNAR_MONTH_NAMES[lunar.month - 1] + "月"


def day_name(lunar: LunarMoment) -> str:
    return LUNAR_DAY_NAMES[lunar.day - 1]


def lunar_date_string(lunar: LunarMoment) -> str:
    """Display form used by charts, e.g. '庚午年 正月 十六'."""
    return f"{year_stem_branch(lunar.year).label}年 {month_name(lunar)} {day_name(lunar)}"
