"""
Engine configuration.

Loaded once from environment variables (optionally a .env file) and passed
explicitly to the calculators. Every field has a working default, so the
engine runs with no configuration at all.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_EPHE_PATH = Path(__file__).resolve().parent.parent / "ephe"


class ZiHourConvention(Enum):
    """How a 23:00 birth is attributed.

    SAME_DAY: day pillar stays on the civil date, the hour stem is taken
              from the following day (late Zi hour, 夜子時).
    NEXT_DAY: the day pillar itself advances at 23:00.
    """
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"


@dataclass(frozen=True)
class EngineConfig:
    utc_offset: float = 8.0  # China Standard Time
    zi_hour: ZiHourConvention = ZiHourConvention.SAME_DAY
    ephe_path: Path = field(default_factory=lambda: DEFAULT_EPHE_PATH)
    log_level: str = "WARNING"

    def __post_init__(self):
        if not -12.0 <= self.utc_offset <= 14.0:
            raise ValueError(f"utc_offset out of range: {self.utc_offset}")

    @classmethod
    def from_env(cls, env_path: Optional[Union[str, Path]] = None) -> "EngineConfig":
        """
        Build a config from BAZI_* environment variables.

        Unparseable values fall back to the defaults with a warning rather
        than aborting, since every field has a sensible default.

        Args:
            env_path: optional .env file loaded (with override) before reading
        """
        if env_path:
            load_dotenv(env_path, override=True)

        utc_offset = cls.utc_offset
        raw_offset = os.getenv("BAZI_UTC_OFFSET", "").strip()
        if raw_offset:
            try:
                utc_offset = float(raw_offset)
            except ValueError:
                logger.warning("Ignoring BAZI_UTC_OFFSET=%r, using %s", raw_offset, cls.utc_offset)
            else:
                if not -12.0 <= utc_offset <= 14.0:
                    logger.warning("Ignoring BAZI_UTC_OFFSET=%r, using %s", raw_offset, cls.utc_offset)
                    utc_offset = cls.utc_offset

        zi_hour = ZiHourConvention.SAME_DAY
        raw_zi = os.getenv("BAZI_ZI_HOUR", "").strip().lower()
        if raw_zi:
            try:
                zi_hour = ZiHourConvention(raw_zi)
            except ValueError:
                logger.warning("Ignoring BAZI_ZI_HOUR=%r, using %s", raw_zi, zi_hour.value)

        raw_ephe = os.getenv("BAZI_EPHE_PATH", "").strip()
        ephe_path = Path(raw_ephe).expanduser() if raw_ephe else DEFAULT_EPHE_PATH

        log_level = os.getenv("BAZI_LOG_LEVEL", cls.log_level).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            logger.warning("Ignoring BAZI_LOG_LEVEL=%r, using %s", log_level, cls.log_level)
            log_level = cls.log_level

        return cls(
            utc_offset=utc_offset,
            zi_hour=zi_hour,
            ephe_path=ephe_path,
            log_level=log_level,
        )


DEFAULT_CONFIG = EngineConfig()
