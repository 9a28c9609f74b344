from datetime import date, datetime, timedelta

import pytest

from bazi_chart.bazi import (
    Direction, FourPillars, Gender, Onset, compute_da_yun, compute_pillars,
    day_pillar, hour_branch_index, hour_pillar, luck_direction, luck_sequence,
    month_pillar, onset_between, onset_start,
)
from bazi_chart.config import EngineConfig, ZiHourConvention
from bazi_chart.errors import ContractViolation, InvalidMoment, OutOfRange
from bazi_chart.lunar import SolarMoment
from bazi_chart.sexagenary import combine, parse_label, step

REFERENCE_PILLARS = ["己巳", "丙子", "丙寅", "壬辰"]


# ============================================================
# PILLARS
# ============================================================

@pytest.mark.parametrize("d, label", [
    (date(1900, 1, 1), "甲戌"),
    (date(1949, 10, 1), "甲子"),
    (date(1990, 1, 1), "丙寅"),
    (date(2000, 1, 1), "戊午"),
])
def test_day_pillar_reference_dates(d, label):
    assert day_pillar(d.year, d.month, d.day).label == label


def test_day_pillar_advances_one_step_per_day():
    d = date(1998, 12, 1)
    previous = day_pillar(d.year, d.month, d.day)
    while d < date(2005, 3, 1):
        d += timedelta(days=1)
        current = day_pillar(d.year, d.month, d.day)
        assert current == step(previous, 1), d
        previous = current


@pytest.mark.parametrize("hour, branch", [
    (23, 0), (0, 0), (1, 1), (2, 1), (8, 4), (11, 6), (12, 6), (22, 11),
])
def test_hour_branch_index(hour, branch):
    assert hour_branch_index(hour) == branch


@pytest.mark.parametrize("year_stem, branch, label", [
    (0, 2, "丙寅"),  # Jia year
    (5, 2, "丙寅"),  # Ji year
    (1, 2, "戊寅"),
    (4, 2, "甲寅"),
    (9, 1, "乙丑"),
    (5, 0, "丙子"),
])
def test_month_pillar_five_tigers(year_stem, branch, label):
    assert month_pillar(year_stem, branch).label == label


@pytest.mark.parametrize("day_stem, hour, label", [
    (0, 0, "甲子"),
    (5, 23, "甲子"),
    (1, 0, "丙子"),
    (2, 8, "壬辰"),
    (4, 21, "癸亥"),
])
def test_hour_pillar_five_rats(day_stem, hour, label):
    assert hour_pillar(day_stem, hour).label == label


def test_reference_pillars(reference_pillars):
    assert reference_pillars.labels() == REFERENCE_PILLARS


def test_year_and_month_switch_at_li_chun():
    # 立春 2024 fell at 16:27 China Standard Time
    before = compute_pillars(SolarMoment(2024, 2, 4, 16))
    after = compute_pillars(SolarMoment(2024, 2, 4, 17))
    assert (before.year.label, before.month.label) == ("癸卯", "乙丑")
    assert (after.year.label, after.month.label) == ("甲辰", "丙寅")


def test_late_zi_hour_conventions():
    same_day = compute_pillars(SolarMoment(2000, 1, 1, 23))
    next_day = compute_pillars(SolarMoment(2000, 1, 1, 23),
                               EngineConfig(zi_hour=ZiHourConvention.NEXT_DAY))
    early_zi = compute_pillars(SolarMoment(2000, 1, 2, 0))

    assert same_day.day.label == "戊午"
    assert next_day.day.label == "己未"
    assert same_day.hour.label == next_day.hour.label == early_zi.hour.label == "甲子"


def test_compute_pillars_failures():
    with pytest.raises(InvalidMoment):
        compute_pillars(SolarMoment(2023, 2, 30, 0))
    with pytest.raises(InvalidMoment):
        compute_pillars(SolarMoment(2023, 2, 1, 24))
    with pytest.raises(OutOfRange):
        compute_pillars(SolarMoment(1850, 6, 1, 0))


def test_four_pillars_from_labels_skips_consistency_checks():
    pillars = FourPillars.from_labels("甲子", "甲子", "甲子", "甲子")
    assert str(pillars) == "甲子 甲子 甲子 甲子"
    with pytest.raises(ContractViolation):
        FourPillars.from_labels("甲丑", "甲子", "甲子", "甲子")


# ============================================================
# LUCK PILLARS
# ============================================================

def test_direction_table():
    forward = 0
    for stem in range(10):
        year = combine(stem, stem)
        for gender in Gender:
            direction = luck_direction(year, gender)
            yang = stem % 2 == 0
            expected = Direction.FORWARD if yang == (gender is Gender.MALE) else Direction.BACKWARD
            assert direction is expected
            forward += direction is Direction.FORWARD
    assert forward == 10


def test_direction_accepts_plain_strings():
    assert luck_direction(parse_label("庚午"), "male") is Direction.FORWARD
    assert luck_direction(parse_label("庚午"), "female") is Direction.BACKWARD


def test_onset_between():
    # 4 days and 7 blocks: 16 months + 70 days
    assert onset_between(datetime(1990, 1, 1, 8), datetime(1990, 1, 5, 23)) == Onset(1, 6, 10)
    # negative block difference borrows a day
    assert onset_between(datetime(2000, 1, 1, 8), datetime(2000, 1, 2, 6)) == Onset(0, 3, 20)
    assert onset_between(datetime(2000, 1, 1, 8), datetime(2000, 1, 1, 8)) == Onset(0, 0, 0)
    # 30 days is the full 10 years
    assert onset_between(datetime(2000, 1, 1, 8), datetime(2000, 1, 31, 8)) == Onset(10, 0, 0)


def test_reference_da_yun_male(reference_pillars, reference_birth):
    da_yun = compute_da_yun(reference_pillars, Gender.MALE, reference_birth)
    assert da_yun.direction is Direction.BACKWARD
    assert da_yun.first_term.pillar.label == "乙亥"
    assert da_yun.onset_age == 8
    assert [t.pillar.label for t in da_yun.terms[:3]] == ["乙亥", "甲戌", "癸酉"]
    assert da_yun.first_term.start_age == 9
    assert da_yun.first_term.start_year == 1998
    assert da_yun.start.year == 1998


def test_reference_da_yun_female(reference_pillars, reference_birth):
    da_yun = compute_da_yun(reference_pillars, Gender.FEMALE, reference_birth)
    assert da_yun.direction is Direction.FORWARD
    assert da_yun.first_term.pillar.label == "丁丑"
    assert da_yun.onset_age == 1
    assert [t.pillar.label for t in da_yun.terms[:3]] == ["丁丑", "戊寅", "己卯"]
    assert da_yun.first_term.start_year == 1991
    assert da_yun.first_term.start_age == 2


def test_da_yun_has_ten_evenly_spaced_terms(reference_pillars, reference_birth, gender):
    da_yun = compute_da_yun(reference_pillars, gender, reference_birth)
    assert [t.index for t in da_yun.terms] == list(range(1, 11))
    stride = da_yun.direction.stride
    for a, b in zip(da_yun.terms, da_yun.terms[1:]):
        assert b.pillar == step(a.pillar, stride)
        assert b.start_age - a.start_age == 10
        assert b.start_year - a.start_year == 10
    assert da_yun.first_term.pillar == step(reference_pillars.month, stride)


def test_onset_age_is_bounded(gender):
    for year in range(1950, 2031, 4):
        for month in range(1, 13):
            for day, hour in ((1, 0), (15, 12), (28, 23)):
                birth = SolarMoment(year, month, day, hour)
                da_yun = compute_da_yun(compute_pillars(birth), gender, birth)
                assert 0 <= da_yun.onset_age <= 10, birth
                assert 0 <= da_yun.onset.months < 12
                assert 0 <= da_yun.onset.days < 30


def test_luck_sequence_manual_values():
    terms = luck_sequence(parse_label("戊申"), Direction.BACKWARD, 5)
    assert [t.pillar.label for t in terms[:2]] == ["戊申", "丁未"]
    assert terms[0].start_age == 5
    assert terms[0].end_age == 14
    assert terms[0].start_year is None
    assert len(terms) == 10

    dated = luck_sequence(parse_label("戊申"), Direction.FORWARD, 5, start_year=1994)
    assert [(t.start_age, t.start_year) for t in dated[:2]] == [(5, 1994), (15, 2004)]


def test_onset_start_adds_years_months_days():
    birth = datetime(1999, 12, 25, 8)
    assert onset_start(birth, Onset(0, 0, 0)) == birth
    assert onset_start(birth, Onset(1, 11, 20)) == datetime(2001, 12, 15, 8)
    # day of month is clamped to the target month
    assert onset_start(datetime(2000, 1, 31, 8), Onset(0, 1, 0)) == datetime(2000, 2, 29, 8)
    assert onset_start(datetime(2000, 2, 29, 8), Onset(1, 0, 0)) == datetime(2001, 2, 28, 8)


def test_leftover_onset_months_push_start_into_next_year():
    # forward to 大雪 1990-12-07: 9 years 5 months, so the first pillar
    # takes over in April 2000, not 1999
    birth = SolarMoment(1990, 11, 9, 12)
    da_yun = compute_da_yun(compute_pillars(birth), Gender.MALE, birth)

    assert da_yun.direction is Direction.FORWARD
    assert da_yun.term.chinese == "大雪"
    assert da_yun.onset == Onset(9, 5, 0)
    assert da_yun.start == datetime(2000, 4, 9, 12)
    assert da_yun.first_term.start_year == 2000
    assert da_yun.first_term.start_age == 11
    assert da_yun.terms[1].start_year == 2010


@pytest.mark.parametrize("onset", [-1, 121, True, 3.5, "5"])
def test_luck_sequence_rejects_bad_onset(onset):
    with pytest.raises(ContractViolation):
        luck_sequence(parse_label("戊申"), Direction.FORWARD, onset)
