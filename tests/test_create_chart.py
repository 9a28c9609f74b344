import json
from datetime import date

import pytest

from bazi_chart import (
    BaziChart, CalendarKind, ContractViolation, Direction, Gender, InvalidMoment,
    OutOfRange, calculate, calculate_from_lunar, calculate_from_solar,
    chart_from_pillars,
)
from bazi_chart.astro_calendar import ephemeris_path
from bazi_chart.config import DEFAULT_EPHE_PATH, EngineConfig
from bazi_chart.lunar import MAX_SOLAR_DATE, LunarMoment, MonthKind, SolarMoment
from bazi_chart.validate import is_valid_lunar, is_valid_solar


def test_solar_reference_chart_male():
    chart = calculate_from_solar(1990, 1, 1, 8, "male")

    assert isinstance(chart, BaziChart)
    assert chart.pillars.labels() == ["己巳", "丙子", "丙寅", "壬辰"]
    assert chart.lunar == LunarMoment(1989, 12, 5, 8)
    assert chart.lunar_date_string == "己巳年 腊月 初五"
    assert chart.direction is Direction.BACKWARD
    assert chart.first_luck_term.pillar.label == "乙亥"
    assert chart.onset_age == 8
    assert chart.da_yun.term.chinese == "大雪"


def test_lunar_input_matches_solar_input():
    from_lunar = calculate_from_lunar(1989, 12, 5, 8, False, Gender.FEMALE)
    from_solar = calculate_from_solar(1990, 1, 1, 8, Gender.FEMALE)

    assert from_lunar.solar == SolarMoment(1990, 1, 1, 8)
    assert from_lunar == from_solar
    assert from_lunar.direction is Direction.FORWARD
    assert from_lunar.first_luck_term.pillar.label == "丁丑"
    assert from_lunar.onset_age == 1


def test_leap_month_birth():
    chart = calculate_from_lunar(2023, 2, 1, 12, True, "male")
    assert chart.solar == SolarMoment(2023, 3, 22, 12)
    assert chart.lunar.month_kind is MonthKind.LEAP
    assert chart.lunar_date_string == "癸卯年 閏二月 初一"


def test_calculate_dispatch():
    assert calculate(1990, 1, 1, 8, "male") == calculate_from_solar(1990, 1, 1, 8, "male")
    assert calculate(1989, 12, 5, 8, "male", calendar=CalendarKind.LUNAR) == \
        calculate_from_solar(1990, 1, 1, 8, "male")
    assert calculate(1989, 12, 5, 8, "male", calendar="lunar").solar == SolarMoment(1990, 1, 1, 8)


@pytest.mark.parametrize("call, error", [
    (lambda: calculate_from_solar(2023, 2, 30, 8, "male"), InvalidMoment),
    (lambda: calculate_from_solar(2023, 2, 28, 24, "male"), InvalidMoment),
    (lambda: calculate_from_solar(1850, 2, 28, 8, "male"), OutOfRange),
    (lambda: calculate_from_lunar(2023, 3, 1, 8, True, "male"), InvalidMoment),
    (lambda: calculate_from_lunar(2023, 1, 30, 8, False, "male"), InvalidMoment),
    (lambda: calculate_from_lunar(1850, 1, 1, 8, False, "male"), OutOfRange),
    (lambda: calculate(2023, 2, 1, 8, "male", is_leap=True), InvalidMoment),
])
def test_invalid_input_raises(call, error):
    with pytest.raises(error):
        call()


def test_to_dict_is_json_ready():
    record = calculate_from_solar(1990, 1, 1, 8, "female").to_dict()
    text = json.dumps(record, ensure_ascii=False)

    assert "丁丑" in text
    assert record["pillars"] == {"year": "己巳", "month": "丙子", "day": "丙寅", "hour": "壬辰"}
    assert record["start_age"] == 1
    assert record["first_da_yun"] == "丁丑"
    assert record["first_da_yun_age"] == 2
    assert record["da_yun_start"].startswith("1991-")
    assert record["da_yun_direction"] == "forward"
    assert record["onset_term"]["name"] == "小寒"
    assert record["onset_term"]["moment"].startswith("1990-01-05")
    assert record["lunar_date"]["is_leap_month"] is False
    assert len(record["luck_pillars"]) == 10


def test_manual_pillars_are_taken_as_given():
    # the day pillar does not belong to any date in this year; accepted anyway
    chart = chart_from_pillars("庚午", "戊寅", "甲子", "甲子", "male", 5, "己卯", birth_year=1990)

    assert chart.direction is Direction.FORWARD
    assert [t.pillar.label for t in chart.terms[:3]] == ["己卯", "庚辰", "辛巳"]
    # first pillar covers nominal ages 5-14, reached in 1994
    assert chart.terms[0].start_age == 5
    assert chart.terms[0].end_age == 14
    assert chart.terms[0].start_year == 1994
    assert chart.to_dict()["first_da_yun_age"] == 5
    assert chart.to_dict()["first_da_yun"] == "己卯"


def test_manual_first_da_yun_defaults_to_month_neighbour():
    chart = chart_from_pillars("庚午", "戊寅", "甲子", "甲子", "female", 3)
    assert chart.direction is Direction.BACKWARD
    assert chart.first_luck_term.pillar.label == "丁丑"


def test_manual_path_reproduces_auto_schedule():
    auto = calculate_from_solar(1990, 1, 1, 8, "male")
    manual = chart_from_pillars(*auto.pillars.labels(), "male", auto.first_luck_term.start_age,
                                auto.first_luck_term.pillar.label, birth_year=1990)
    assert manual.terms == auto.da_yun.terms


@pytest.mark.parametrize("kwargs", [
    {"year": "甲丑"},
    {"onset_age": -2},
    {"first_da_yun": "nonsense"},
])
def test_manual_path_rejects_malformed_values(kwargs):
    values = dict(year="庚午", month="戊寅", day="甲子", hour="甲子", gender="male", onset_age=5)
    values.update(kwargs)
    with pytest.raises(ContractViolation):
        chart_from_pillars(**values)


def test_last_lunar_month_of_the_era():
    assert is_valid_lunar(2100, 12, 15, False)
    chart = calculate_from_lunar(2100, 12, 15, 8, False, "female")
    assert chart.solar.year == 2101
    # still before 立春 2101
    assert chart.pillars.year.label == "庚申"


def test_last_solar_day_of_the_era():
    last = MAX_SOLAR_DATE
    assert is_valid_solar(last.year, last.month, last.day)
    chart = calculate_from_solar(last.year, last.month, last.day, 8, "male")
    assert chart.pillars.year.label == "庚申"
    assert len(chart.da_yun.terms) == 10

    beyond = date.fromordinal(last.toordinal() + 1)
    assert not is_valid_solar(beyond.year, beyond.month, beyond.day)
    with pytest.raises(OutOfRange):
        calculate_from_solar(beyond.year, beyond.month, beyond.day, 8, "male")


def test_config_ephemeris_path_is_applied(tmp_path):
    # an empty directory leaves Swiss Ephemeris on its built-in Moshier model
    config = EngineConfig(ephe_path=tmp_path)
    try:
        chart = calculate_from_solar(1990, 1, 1, 8, "male", config=config)
        assert ephemeris_path() == str(tmp_path)
        assert chart.pillars.labels() == ["己巳", "丙子", "丙寅", "壬辰"]
    finally:
        calculate_from_solar(1990, 1, 1, 8, "male")
    assert ephemeris_path() == str(DEFAULT_EPHE_PATH)
