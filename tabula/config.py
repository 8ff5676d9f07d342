"""
Environment configuration.

    TABULA_ENV              development | production (default: development)
    TABULA_DICE_SEED        integer seed for new games' dice (default: random)
    TABULA_CHOICE_TIMEOUT   seconds an adapter may take to choose (default: none)
    TABULA_LOG_LEVEL        logging level name (default: INFO)
    ALLOWED_ORIGINS         comma-separated CORS origins (default: *)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


def _optional_int(value: str | None) -> int | None:
    return int(value) if value not in (None, "") else None


def _optional_float(value: str | None) -> float | None:
    return float(value) if value not in (None, "") else None


@dataclass
class Settings:
    env: str = "development"
    dice_seed: int | None = None
    choice_timeout: float | None = None
    log_level: str = "INFO"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            env=os.getenv("TABULA_ENV", "development"),
            dice_seed=_optional_int(os.getenv("TABULA_DICE_SEED")),
            choice_timeout=_optional_float(os.getenv("TABULA_CHOICE_TIMEOUT")),
            log_level=os.getenv("TABULA_LOG_LEVEL", "INFO").upper(),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        )
