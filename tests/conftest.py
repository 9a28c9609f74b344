"""
Shared fixtures.

The reference scenario is a solar birth on 1990-01-01 at 08:00 China
Standard Time: 己巳 丙子 丙寅 壬辰, lunar 己巳年 腊月 初五.
"""

import pytest

from bazi_chart.bazi import Gender, compute_pillars
from bazi_chart.lunar import SolarMoment

ENV_VARS = ("BAZI_UTC_OFFSET", "BAZI_ZI_HOUR", "BAZI_EPHE_PATH", "BAZI_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep BAZI_* settings from the outer environment (or a loaded .env) out of tests."""
    for name in ENV_VARS:
        # setenv first so monkeypatch restores the original state afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def reference_birth() -> SolarMoment:
    return SolarMoment(1990, 1, 1, 8)


@pytest.fixture
def reference_pillars(reference_birth):
    return compute_pillars(reference_birth)


@pytest.fixture(params=[Gender.MALE, Gender.FEMALE], ids=["male", "female"])
def gender(request) -> Gender:
    return request.param
