"""
Chart creation library.
Validates a birth moment, normalizes it to both calendars and computes the
Four Pillars and Luck Pillars in one call.

Usage from Python:
    from bazi_chart.create_chart import calculate_from_solar
    chart = calculate_from_solar(1990, 1, 1, 8, gender="male")
    chart.pillars.labels()   # ['己巳', '丙子', '丙寅', '壬辰']
    chart.to_dict()          # JSON-ready record

Two paths exist:
- auto:   calculate_from_solar / calculate_from_lunar derive everything
- manual: chart_from_pillars takes pillars and Da Yun values typed by a
          person and only derives direction and sequence; the values are
          NOT cross-checked against each other
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bazi_chart.astro_calendar import set_ephemeris_path
from bazi_chart.bazi import (
    DaYun, Direction, FourPillars, Gender, LuckCycleTerm,
    compute_da_yun, compute_pillars, luck_direction, luck_sequence,
)
from bazi_chart.config import DEFAULT_CONFIG, EngineConfig
from bazi_chart.errors import InvalidMoment
from bazi_chart.lunar import (
    LunarMoment, SolarMoment, lunar_date_string, lunar_moment, to_lunar, to_solar,
)
from bazi_chart.sexagenary import parse_label, step
from bazi_chart.validate import is_valid_hour, is_valid_lunar, is_valid_solar

logger = logging.getLogger(__name__)


class CalendarKind(Enum):
    SOLAR = "solar"
    LUNAR = "lunar"


@dataclass(frozen=True)
class BaziChart:
    solar: SolarMoment
    lunar: LunarMoment
    gender: Gender
    pillars: FourPillars
    da_yun: DaYun
    lunar_date_string: str

    @property
    def onset_age(self) -> int:
        return self.da_yun.onset_age

    @property
    def first_luck_term(self) -> LuckCycleTerm:
        return self.da_yun.first_term

    @property
    def direction(self) -> Direction:
        return self.da_yun.direction

    def to_dict(self) -> dict:
        return {
            "solar_date": self.solar.to_dict(),
            "lunar_date": self.lunar.to_dict(),
            "lunar_date_string": self.lunar_date_string,
            "gender": self.gender.value,
            "pillars": {
                "year": self.pillars.year.label,
                "month": self.pillars.month.label,
                "day": self.pillars.day.label,
                "hour": self.pillars.hour.label,
            },
            "pillar_details": self.pillars.to_dict(),
            "start_age": self.onset_age,
            "onset": self.da_yun.onset.to_dict(),
            "onset_term": self.da_yun.term.to_dict(),
            "da_yun_start": self.da_yun.start.isoformat(timespec="hours"),
            "first_da_yun": self.first_luck_term.pillar.label,
            "first_da_yun_age": self.first_luck_term.start_age,
            "da_yun_direction": self.direction.value,
            "luck_pillars": [t.to_dict() for t in self.da_yun.terms],
        }


@dataclass(frozen=True)
class ManualChart:
    """Pillars and Da Yun values as entered by a person."""
    gender: Gender
    pillars: FourPillars
    direction: Direction
    onset_age: int
    terms: tuple

    @property
    def first_luck_term(self) -> LuckCycleTerm:
        return self.terms[0]

    def to_dict(self) -> dict:
        return {
            "gender": self.gender.value,
            "pillars": {
                "year": self.pillars.year.label,
                "month": self.pillars.month.label,
                "day": self.pillars.day.label,
                "hour": self.pillars.hour.label,
            },
            "start_age": self.onset_age,
            "first_da_yun": self.first_luck_term.pillar.label,
            "first_da_yun_age": self.first_luck_term.start_age,
            "da_yun_direction": self.direction.value,
            "luck_pillars": [t.to_dict() for t in self.terms],
        }


# ============================================================
# AUTO PATH
# ============================================================

def _assemble(solar: SolarMoment, lunar: LunarMoment, gender: Gender,
              config: EngineConfig) -> BaziChart:
    set_ephemeris_path(config.ephe_path)
    pillars = compute_pillars(solar, config)
    da_yun = compute_da_yun(pillars, gender, solar, config)
    chart = BaziChart(
        solar=solar,
        lunar=lunar,
        gender=gender,
        pillars=pillars,
        da_yun=da_yun,
        lunar_date_string=lunar_date_string(lunar),
    )
    logger.debug("Chart %s / %s: %s, %s from age %d", solar, chart.lunar_date_string,
                 pillars, da_yun.direction.value, da_yun.onset_age)
    return chart


def calculate_from_solar(year: int, month: int, day: int, hour: int,
                         gender, config: Optional[EngineConfig] = None) -> BaziChart:
    """
    Compute a chart from a Gregorian birth moment.

    Args:
        year, month, day: Gregorian date
        hour: 0-23, local time at config.utc_offset
        gender: Gender or "male"/"female"
        config: engine configuration, DEFAULT_CONFIG when omitted

    Raises:
        InvalidMoment: the date or hour does not exist
        OutOfRange: outside the supported era
    """
    config = config or DEFAULT_CONFIG
    gender = Gender(gender)
    if not is_valid_hour(hour):
        raise InvalidMoment(f"Invalid hour: {hour!r}")

    solar = SolarMoment(year, month, day, hour)
    # to_lunar raises the precise error the validator would only report as False
    lunar = to_lunar(solar)
    if not is_valid_solar(year, month, day):
        raise InvalidMoment(f"Solar date {year}-{month}-{day} failed round trip")
    return _assemble(solar, lunar, gender, config)


def calculate_from_lunar(year: int, month: int, day: int, hour: int, is_leap: bool,
                         gender, config: Optional[EngineConfig] = None) -> BaziChart:
    """
    Compute a chart from a lunar birth moment.

    Args:
        year, month, day: lunar date, month 1-12
        hour: 0-23, local time at config.utc_offset
        is_leap: True if born in the leap month of that year
        gender: Gender or "male"/"female"

    Raises:
        InvalidMoment: the lunar date, leap flag or hour does not exist
        OutOfRange: outside the supported era
    """
    config = config or DEFAULT_CONFIG
    gender = Gender(gender)
    if not is_valid_hour(hour):
        raise InvalidMoment(f"Invalid hour: {hour!r}")

    lunar = lunar_moment(year, month, day, hour, is_leap)
    solar = to_solar(lunar)
    if not is_valid_lunar(year, month, day, is_leap):
        raise InvalidMoment(f"Lunar date {lunar} failed round trip")
    return _assemble(solar, lunar, gender, config)


def calculate(year: int, month: int, day: int, hour: int, gender,
              calendar: CalendarKind = CalendarKind.SOLAR, is_leap: bool = False,
              config: Optional[EngineConfig] = None) -> BaziChart:
    """Dispatch on the calendar the birth date was given in."""
    if CalendarKind(calendar) is CalendarKind.LUNAR:
        return calculate_from_lunar(year, month, day, hour, is_leap, gender, config)
    if is_leap:
        raise InvalidMoment("Leap month flag only applies to lunar dates")
    return calculate_from_solar(year, month, day, hour, gender, config)


# ============================================================
# MANUAL PATH
# ============================================================

def chart_from_pillars(year: str, month: str, day: str, hour: str, gender,
                       onset_age: int, first_da_yun: Optional[str] = None,
                       birth_year: Optional[int] = None) -> ManualChart:
    """
    Build a chart from pillars typed by a person.

    Direction comes from the year stem and gender alone. The Luck Pillar
    sequence starts at first_da_yun when given, otherwise at the month
    pillar stepped one term in that direction.

    onset_age is the nominal age (虚岁) the first pillar begins at, so it
    covers ages onset_age..onset_age+9. With birth_year known it begins in
    birth_year + onset_age - 1, the year that age is reached.

    Raises:
        ContractViolation: a label is not a stem-branch pair, or onset_age
            is not an integer in 0..120
    """
    gender = Gender(gender)
    pillars = FourPillars.from_labels(year, month, day, hour)
    direction = luck_direction(pillars.year, gender)

    if first_da_yun:
        first = parse_label(first_da_yun)
    else:
        first = step(pillars.month, direction.stride)

    start_year = None
    if birth_year is not None and isinstance(onset_age, int):
        start_year = birth_year + onset_age - 1
    terms = luck_sequence(first, direction, onset_age, start_year=start_year)
    return ManualChart(
        gender=gender,
        pillars=pillars,
        direction=direction,
        onset_age=onset_age,
        terms=terms,
    )
