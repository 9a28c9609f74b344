"""BaZi Four Pillars and Luck Pillar calculation."""

from bazi_chart.bazi import Direction, FourPillars, Gender, LuckCycleTerm
from bazi_chart.create_chart import (
    BaziChart, CalendarKind, ManualChart,
    calculate, calculate_from_lunar, calculate_from_solar, chart_from_pillars,
)
from bazi_chart.errors import CalendarError, ContractViolation, InvalidMoment, OutOfRange

__version__ = "0.1.0"
