"""
BaZi (Four Pillars of Destiny) computation engine.

Handles:
- Gregorian birth moment to Four Pillars (year, month, day, hour)
- Luck Pillar (大运 Da Yun) direction, starting age and sequence
- Luck Pillar sequences from manually entered pillars

Design principle: This module COMPUTES. It does not interpret.
All birth moments are local civil time at config.utc_offset.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import swisseph as swe

from bazi_chart.astro_calendar import SolarTerm, find_nearest_jie, li_chun
from bazi_chart.config import DEFAULT_CONFIG, EngineConfig, ZiHourConvention
from bazi_chart.errors import ContractViolation
from bazi_chart.lunar import SolarMoment, solar_moment
from bazi_chart.sexagenary import (
    StemBranch, combine, is_yang, parse_label, step, year_stem_branch,
)

logger = logging.getLogger(__name__)

LUCK_PILLAR_COUNT = 10
LUCK_PILLAR_SPAN = 10  # years per pillar
MAX_ONSET_AGE = 120


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class Direction(Enum):
    FORWARD = "forward"    # 順行
    BACKWARD = "backward"  # 逆行

    @property
    def stride(self) -> int:
        return 1 if self is Direction.FORWARD else -1


@dataclass(frozen=True)
class FourPillars:
    year: StemBranch
    month: StemBranch
    day: StemBranch
    hour: StemBranch

    @classmethod
    def from_labels(cls, year: str, month: str, day: str, hour: str) -> "FourPillars":
        """Build pillars typed by a person. Labels are parsed, never cross-checked."""
        return cls(parse_label(year), parse_label(month), parse_label(day), parse_label(hour))

    def as_tuple(self) -> tuple:
        return (self.year, self.month, self.day, self.hour)

    def labels(self) -> list:
        return [p.label for p in self.as_tuple()]

    def __str__(self):
        return " ".join(self.labels())

    def to_dict(self) -> dict:
        return {
            "year": self.year.to_dict(),
            "month": self.month.to_dict(),
            "day": self.day.to_dict(),
            "hour": self.hour.to_dict(),
        }


@dataclass(frozen=True)
class LuckCycleTerm:
    index: int  # 1-10
    pillar: StemBranch
    start_age: int  # nominal age (虚岁) at which this pillar begins, 1 in the birth year
    start_year: Optional[int] = None  # Gregorian year, unknown on the manual path

    @property
    def end_age(self) -> int:
        return self.start_age + LUCK_PILLAR_SPAN - 1

    def to_dict(self) -> dict:
        return {
            "number": self.index,
            "label": self.pillar.label,
            "pinyin": self.pillar.pinyin,
            "start_age": self.start_age,
            "end_age": self.end_age,
            "start_year": self.start_year,
            "description": f"LP{self.index}: {self.pillar.label} ({self.pillar.pinyin}) ages {self.start_age}-{self.end_age}",
        }


@dataclass(frozen=True)
class Onset:
    """Time from birth to the first Luck Pillar, 3 days = 1 year."""
    years: int
    months: int
    days: int

    def to_dict(self) -> dict:
        return {"years": self.years, "months": self.months, "days": self.days}


@dataclass(frozen=True)
class DaYun:
    direction: Direction
    onset: Onset
    terms: tuple
    term: SolarTerm  # the Jie the onset was counted to or from
    start: datetime  # birth + onset, when the first pillar takes over

    @property
    def onset_age(self) -> int:
        return self.onset.years

    @property
    def first_term(self) -> LuckCycleTerm:
        return self.terms[0]


# ============================================================
# PILLAR COMPUTATION
# ============================================================

# Five Tigers Escape (五虎遁): year stem → stem of the Tiger (寅) month
#   Jia/Ji → Bing, Yi/Geng → Wu, Bing/Xin → Geng, Ding/Ren → Ren, Wu/Gui → Jia
# Five Rats Escape (五鼠遁): day stem → stem of the Rat (子) hour
#   Jia/Ji → Jia, Yi/Geng → Bing, Bing/Xin → Wu, Ding/Ren → Geng, Wu/Gui → Ren
# Both tables are (stem % 5) * 2 plus a fixed start.
TIGER_MONTH_BRANCH = 2

# JDN 11 is a Jia Zi day
JDN_SEXAGENARY_OFFSET = -11


def _birth_datetime(solar: SolarMoment) -> datetime:
    return datetime(solar.year, solar.month, solar.day, solar.hour)


def year_pillar(moment: datetime, utc_offset: float = 8.0) -> StemBranch:
    """
    Compute the Year Pillar.

    The BaZi year starts at the exact Li Chun (Start of Spring) instant,
    usually Feb 3-5. Born before it means the previous year's pillar.
    """
    effective_year = moment.year
    if moment < li_chun(moment.year, utc_offset).moment:
        effective_year -= 1
    return year_stem_branch(effective_year)


def month_pillar(year_stem_index: int, month_branch_index: int) -> StemBranch:
    """
    Compute the Month Pillar using the Five Tigers Escape (Wu Hu Dun) formula.

    Args:
        year_stem_index: index of the year's heavenly stem (0-9)
        month_branch_index: index of the month's earthly branch (0-11),
            Tiger (month 1) is 2
    """
    start_stem = (year_stem_index % 5 * 2 + 2) % 10
    months_from_tiger = (month_branch_index - TIGER_MONTH_BRANCH) % 12
    return combine((start_stem + months_from_tiger) % 10, month_branch_index)


def day_pillar(year: int, month: int, day: int) -> StemBranch:
    """
    Compute the Day Pillar from the Julian Day Number.

    The 60-day cycle runs unbroken, so the pillar is a fixed offset on JDN.
    Verified against 1900-01-01 = Jia Xu, 1949-10-01 = Jia Zi,
    2000-01-01 = Wu Wu.
    """
    # Noon falls exactly on the integer JDN
    jdn = int(swe.julday(year, month, day, 12.0))
    return StemBranch((jdn + JDN_SEXAGENARY_OFFSET) % 60)


def hour_branch_index(hour: int) -> int:
    """
    Chinese hours (shi chen) are 2-hour blocks:
    23:00-00:59 = Zi (Rat) = 0, 01:00-02:59 = Chou (Ox) = 1, ...
    21:00-22:59 = Hai (Pig) = 11
    """
    return ((hour + 1) // 2) % 12


def hour_pillar(day_stem_index: int, hour: int) -> StemBranch:
    """
    Compute the Hour Pillar using the Five Rats Escape (Wu Shu Dun) formula.

    Args:
        day_stem_index: stem of the day the hour belongs to; for 23:00 this
            is the following day's stem
        hour: hour in 24h format
    """
    branch_index = hour_branch_index(hour)
    start_stem = day_stem_index % 5 * 2
    return combine((start_stem + branch_index) % 10, branch_index)


def compute_pillars(solar: SolarMoment, config: EngineConfig = DEFAULT_CONFIG) -> FourPillars:
    """
    Compute the Four Pillars of a birth moment.

    Args:
        solar: Gregorian birth moment, local time at config.utc_offset
        config: engine configuration (time zone, Zi hour convention)

    Raises:
        InvalidMoment: the moment does not exist
        OutOfRange: year outside the supported era
    """
    solar = solar_moment(solar.year, solar.month, solar.day, solar.hour)
    moment = _birth_datetime(solar)

    yp = year_pillar(moment, config.utc_offset)

    # Month branch: the Jie in force at birth
    jie = find_nearest_jie(moment, forward=False, utc_offset=config.utc_offset)
    mp = month_pillar(yp.stem.index, jie.month_branch_index)

    late_zi = solar.hour == 23
    next_day = moment.date() + timedelta(days=1)
    if late_zi and config.zi_hour is ZiHourConvention.NEXT_DAY:
        dp = day_pillar(next_day.year, next_day.month, next_day.day)
    else:
        dp = day_pillar(solar.year, solar.month, solar.day)

    hour_day_stem = day_pillar(next_day.year, next_day.month, next_day.day) if late_zi else dp
    hp = hour_pillar(hour_day_stem.stem.index, solar.hour)

    pillars = FourPillars(yp, mp, dp, hp)
    logger.debug("Pillars for %s: %s", solar, pillars)
    return pillars


# ============================================================
# LUCK PILLAR COMPUTATION
# ============================================================

def luck_direction(year: StemBranch, gender: Gender) -> Direction:
    """
    Direction of count depends on gender + year stem polarity:
    - Yang stem year + Male OR Yin stem year + Female → FORWARD
    - Yang stem year + Female OR Yin stem year + Male → BACKWARD
    """
    year_yang = is_yang(year.stem.index)
    male = Gender(gender) is Gender.MALE
    return Direction.FORWARD if year_yang == male else Direction.BACKWARD


def _block_index(moment: datetime) -> int:
    # 23:00 counts as the last block of its own day here, not the first
    return 11 if moment.hour == 23 else hour_branch_index(moment.hour)


def onset_between(start: datetime, end: datetime) -> Onset:
    """
    Convert the span between two moments into Luck Pillar onset time.

    Traditional rule: 3 days = 1 year, so 1 day = 4 months and one
    2-hour block = 10 days. Spans are counted in whole calendar days plus
    whole blocks; a negative block difference borrows a day.
    """
    day_diff = (end.date() - start.date()).days
    block_diff = _block_index(end) - _block_index(start)
    if block_diff < 0:
        block_diff += 12
        day_diff -= 1

    month_part = block_diff * 10 // 30
    total_months = day_diff * 4 + month_part
    days = block_diff * 10 - month_part * 30
    years, months = divmod(total_months, 12)
    return Onset(years, months, days)


def _shift_months(moment: datetime, months: int) -> datetime:
    # Day of month is clamped, so Jan 31 + 1 month is Feb 28/29
    month_index = moment.month - 1 + months
    year, month = moment.year + month_index // 12, month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def onset_start(birth: datetime, onset: Onset) -> datetime:
    """The moment the first Luck Pillar takes over: birth plus the onset span."""
    return _shift_months(birth, onset.years * 12 + onset.months) + timedelta(days=onset.days)


def luck_sequence(first: StemBranch, direction: Direction, start_age: int,
                  start_year: Optional[int] = None,
                  count: int = LUCK_PILLAR_COUNT) -> tuple:
    """
    Lay out the Luck Pillars from the first one.

    Each subsequent pillar steps the 60 cycle by the direction's stride and
    starts 10 years (and 10 nominal years of age) after the previous one.

    Args:
        first: pillar of the first Luck Pillar
        direction: FORWARD or BACKWARD
        start_age: nominal age (虚岁) at which the first pillar begins
        start_year: Gregorian year the first pillar begins, if known

    Raises:
        ContractViolation: start_age not an integer in 0..120
    """
    if isinstance(start_age, bool) or not isinstance(start_age, int) \
            or not 0 <= start_age <= MAX_ONSET_AGE:
        raise ContractViolation(f"Onset age must be an integer in 0..{MAX_ONSET_AGE}, got {start_age!r}")
    direction = Direction(direction)

    terms = []
    for i in range(count):
        offset = i * LUCK_PILLAR_SPAN
        terms.append(LuckCycleTerm(
            index=i + 1,
            pillar=step(first, i * direction.stride),
            start_age=start_age + offset,
            start_year=None if start_year is None else start_year + offset,
        ))
    return tuple(terms)


def compute_da_yun(pillars: FourPillars, gender: Gender, solar: SolarMoment,
                   config: EngineConfig = DEFAULT_CONFIG) -> DaYun:
    """
    Compute Luck Pillars (大运 Da Yun).

    Starting age is the distance from birth to the next Jie (forward) or
    back to the previous Jie (backward), at 3 days per year. The first
    pillar begins in the Gregorian year of birth + onset; its nominal age
    counts the birth year as 1.

    Args:
        pillars: Four Pillars; only the year and month pillars are read
        gender: Gender.MALE or Gender.FEMALE
        solar: Gregorian birth moment, local time at config.utc_offset

    Returns:
        DaYun with direction, onset and ten LuckCycleTerm
    """
    direction = luck_direction(pillars.year, gender)
    birth = _birth_datetime(solar_moment(solar.year, solar.month, solar.day, solar.hour))

    forward = direction is Direction.FORWARD
    jie = find_nearest_jie(birth, forward=forward, utc_offset=config.utc_offset)
    if forward:
        onset = onset_between(birth, jie.moment)
    else:
        onset = onset_between(jie.moment, birth)
    start = onset_start(birth, onset)
    logger.debug("Da Yun %s from %s %s: onset %s, starts %s", direction.value, jie.chinese,
                 jie.moment, onset, start)

    first = step(pillars.month, direction.stride)
    terms = luck_sequence(first, direction, start.year - birth.year + 1, start_year=start.year)
    return DaYun(direction=direction, onset=onset, terms=terms, term=jie, start=start)
