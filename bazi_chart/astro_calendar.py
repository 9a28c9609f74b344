"""
Solar term computation.

The 24 solar terms (节气) are the moments the Sun's apparent ecliptic
longitude crosses a multiple of 15°. Twelve of them, the Jie (节), mark
BaZi month boundaries; the distance from birth to the nearest Jie sets the
Luck Pillar starting age.

Swiss Ephemeris swe.solcross_ut() finds the exact crossing moment. When no
ephemeris files are installed it falls back to its built-in Moshier
ephemeris, which is accurate to well under a minute for the Sun.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Union

import swisseph as swe

from bazi_chart.config import DEFAULT_EPHE_PATH
from bazi_chart.errors import OutOfRange
from bazi_chart.lunar import MAX_SOLAR_DATE, MIN_SOLAR_DATE

logger = logging.getLogger(__name__)

# Point Swiss Ephemeris to data files
_ephe_path = str(DEFAULT_EPHE_PATH)
swe.set_ephe_path(_ephe_path)

# Same Gregorian years the lunar table spans (1900 through 2101)
MIN_TERM_YEAR = MIN_SOLAR_DATE.year
MAX_TERM_YEAR = MAX_SOLAR_DATE.year


# ============================================================
# SOLAR TERM DEFINITIONS
# ============================================================
#
# Listed in calendar order starting from the first term of January.
# Even positions are Jie (month boundaries), odd positions are Qi.
#
# Xiao Han (285°)   → Ox month      Li Qiu (135°)    → Monkey month
# Li Chun (315°)    → Tiger month   Bai Lu (165°)    → Rooster month
# Jing Zhe (345°)   → Rabbit month  Han Lu (195°)    → Dog month
# Qing Ming (15°)   → Dragon month  Li Dong (225°)   → Pig month
# Li Xia (45°)      → Snake month   Da Xue (255°)    → Rat month
# Mang Zhong (75°)  → Horse month
# Xiao Shu (105°)   → Goat month

# (longitude, chinese, pinyin)
SOLAR_TERM_DEFINITIONS = (
    (285, "小寒", "Xiao Han"),
    (300, "大寒", "Da Han"),
    (315, "立春", "Li Chun"),
    (330, "雨水", "Yu Shui"),
    (345, "惊蛰", "Jing Zhe"),
    (0,   "春分", "Chun Fen"),
    (15,  "清明", "Qing Ming"),
    (30,  "谷雨", "Gu Yu"),
    (45,  "立夏", "Li Xia"),
    (60,  "小满", "Xiao Man"),
    (75,  "芒种", "Mang Zhong"),
    (90,  "夏至", "Xia Zhi"),
    (105, "小暑", "Xiao Shu"),
    (120, "大暑", "Da Shu"),
    (135, "立秋", "Li Qiu"),
    (150, "处暑", "Chu Shu"),
    (165, "白露", "Bai Lu"),
    (180, "秋分", "Qiu Fen"),
    (195, "寒露", "Han Lu"),
    (210, "霜降", "Shuang Jiang"),
    (225, "立冬", "Li Dong"),
    (240, "小雪", "Xiao Xue"),
    (255, "大雪", "Da Xue"),
    (270, "冬至", "Dong Zhi"),
)

LI_CHUN_INDEX = 2


@dataclass(frozen=True)
class SolarTerm:
    index: int  # 0-23, position in SOLAR_TERM_DEFINITIONS
    chinese: str
    pinyin: str
    longitude: int
    moment: datetime  # local civil time at the requested UTC offset
    jd_ut: float

    @property
    def is_jie(self) -> bool:
        return self.index % 2 == 0

    @property
    def month_branch_index(self) -> int:
        """Branch of the BaZi month this term opens (Jie only)."""
        return (self.index // 2 + 1) % 12

    def to_dict(self) -> dict:
        return {
            "name": self.chinese,
            "pinyin": self.pinyin,
            "longitude": self.longitude,
            "moment": self.moment.isoformat(timespec="minutes"),
            "is_jie": self.is_jie,
        }


def set_ephemeris_path(path: Union[str, Path]) -> None:
    """Point Swiss Ephemeris at a different data directory and drop cached terms."""
    global _ephe_path
    if str(path) == _ephe_path:
        return
    logger.debug("Ephemeris path %s -> %s", _ephe_path, path)
    _ephe_path = str(path)
    swe.set_ephe_path(_ephe_path)
    _year_terms.cache_clear()


def ephemeris_path() -> str:
    return _ephe_path


def _jd_to_local(jd_ut: float, utc_offset: float) -> datetime:
    """Convert a UT Julian Day to a naive local datetime, rounded to the second."""
    y, m, d, h = swe.revjul(jd_ut + utc_offset / 24.0)
    seconds = round(h * 3600)
    return datetime(y, m, d) + timedelta(seconds=seconds)


@lru_cache(maxsize=256)
def _year_terms(year: int, utc_offset: float) -> tuple:
    logger.debug("Computing solar terms for %d (UTC%+g)", year, utc_offset)
    jd_year_start = swe.julday(year, 1, 1, 0)

    terms = []
    for index, (lon, chinese, pinyin) in enumerate(SOLAR_TERM_DEFINITIONS):
        jd_cross = swe.solcross_ut(float(lon), jd_year_start, 0)
        terms.append(SolarTerm(
            index=index,
            chinese=chinese,
            pinyin=pinyin,
            longitude=lon,
            moment=_jd_to_local(jd_cross, utc_offset),
            jd_ut=jd_cross,
        ))
    return tuple(terms)


def term_boundaries(year: int, utc_offset: float = 8.0) -> tuple:
    """
    Compute all 24 solar terms for a Gregorian year.

    Args:
        year: Gregorian year (1900-2101)
        utc_offset: civil time zone the moments are expressed in

    Returns:
        Tuple of 24 SolarTerm in chronological order, 小寒 first, 冬至 last

    Raises:
        OutOfRange: year outside the supported era
    """
    if not MIN_TERM_YEAR <= year <= MAX_TERM_YEAR:
        raise OutOfRange(f"Solar terms supported for {MIN_TERM_YEAR}-{MAX_TERM_YEAR}, got {year}")
    return _year_terms(year, float(utc_offset))


def jie_boundaries(year: int, utc_offset: float = 8.0) -> tuple:
    """The 12 Jie terms of a year in chronological order."""
    return tuple(t for t in term_boundaries(year, utc_offset) if t.is_jie)


def li_chun(year: int, utc_offset: float = 8.0) -> SolarTerm:
    return term_boundaries(year, utc_offset)[LI_CHUN_INDEX]


def _terms_around(moment: datetime, utc_offset: float, jie_only: bool) -> list:
    # Adjacent years are included so terms near year end resolve; they may
    # sit one year outside the era, which is fine for the ephemeris.
    if not MIN_TERM_YEAR <= moment.year <= MAX_TERM_YEAR:
        raise OutOfRange(f"Solar terms supported for {MIN_TERM_YEAR}-{MAX_TERM_YEAR}, got {moment.year}")
    terms = []
    for y in (moment.year - 1, moment.year, moment.year + 1):
        terms.extend(t for t in _year_terms(y, float(utc_offset)) if t.is_jie or not jie_only)
    return terms


def find_nearest_jie(moment: datetime, forward: bool, utc_offset: float = 8.0) -> SolarTerm:
    """
    Find the nearest Jie solar term in the given direction from a moment.

    Args:
        moment: naive local datetime
        forward: True = first Jie strictly after the moment,
                 False = last Jie at or before it

    Returns:
        The SolarTerm found
    """
    all_jie = _terms_around(moment, utc_offset, jie_only=True)

    if forward:
        for jie in all_jie:
            if jie.moment > moment:
                return jie
    else:
        for jie in reversed(all_jie):
            if jie.moment <= moment:
                return jie

    raise OutOfRange(f"Could not find {'next' if forward else 'previous'} Jie from {moment}")


def find_term(moment: datetime, utc_offset: float = 8.0) -> SolarTerm:
    """Return the solar term (Jie or Qi) in force at a moment."""
    for term in reversed(_terms_around(moment, utc_offset, jie_only=False)):
        if term.moment <= moment:
            return term
    raise OutOfRange(f"No solar term found before {moment}")
