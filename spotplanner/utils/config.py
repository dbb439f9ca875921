"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path

    synthetic_random_seed: int
    synthetic_seed_days: int
    synthetic_show_names: tuple[str, ...]
    synthetic_pre_roll_slots: int
    synthetic_mid_roll_slots: int
    synthetic_post_roll_slots: int
    synthetic_booked_probability: float
    synthetic_hold_probability: float
    synthetic_scheduled_probability: float
    synthetic_base_rate: float

    reservation_active_statuses: tuple[str, ...]

    allocation_default_fallback_strategy: str
    allocation_default_allow_multiple_per_show_per_day: bool
    allocation_default_max_spots_single: int
    allocation_default_max_spots_multiple: int
    allocation_deadline_seconds: Optional[float]

    availability_summary_default_days: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; call `cache_clear()` to re-read env."""
    return Settings(
        app_name=_env_str("SPOTPLANNER_APP_NAME", "Spot Planner"),
        app_version=_env_str("SPOTPLANNER_APP_VERSION", "0.1.0"),
        log_level=_env_str("SPOTPLANNER_LOG_LEVEL", "INFO"),
        database_path=Path(
            _env_str("SPOTPLANNER_DATABASE_PATH", "data/spotplanner.db")
        ),
        synthetic_random_seed=_env_int("SPOTPLANNER_SYNTHETIC_RANDOM_SEED", 42),
        synthetic_seed_days=_env_int("SPOTPLANNER_SYNTHETIC_SEED_DAYS", 60),
        synthetic_show_names=(
            "Morning Brief",
            "Tech Unfiltered",
            "The Long Game",
            "Kitchen Table Money",
            "Night Shift Stories",
        ),
        synthetic_pre_roll_slots=_env_int("SPOTPLANNER_SYNTHETIC_PRE_ROLL_SLOTS", 1),
        synthetic_mid_roll_slots=_env_int("SPOTPLANNER_SYNTHETIC_MID_ROLL_SLOTS", 2),
        synthetic_post_roll_slots=_env_int("SPOTPLANNER_SYNTHETIC_POST_ROLL_SLOTS", 1),
        synthetic_booked_probability=_env_float(
            "SPOTPLANNER_SYNTHETIC_BOOKED_PROBABILITY", 0.25
        ),
        synthetic_hold_probability=_env_float(
            "SPOTPLANNER_SYNTHETIC_HOLD_PROBABILITY", 0.10
        ),
        synthetic_scheduled_probability=_env_float(
            "SPOTPLANNER_SYNTHETIC_SCHEDULED_PROBABILITY", 0.05
        ),
        synthetic_base_rate=_env_float("SPOTPLANNER_SYNTHETIC_BASE_RATE", 250.0),
        reservation_active_statuses=("held", "pending", "confirmed"),
        allocation_default_fallback_strategy=_env_str(
            "SPOTPLANNER_DEFAULT_FALLBACK_STRATEGY", "strict"
        ),
        allocation_default_allow_multiple_per_show_per_day=_env_bool(
            "SPOTPLANNER_DEFAULT_ALLOW_MULTIPLE_PER_SHOW_PER_DAY", False
        ),
        allocation_default_max_spots_single=1,
        allocation_default_max_spots_multiple=_env_int(
            "SPOTPLANNER_DEFAULT_MAX_SPOTS_PER_SHOW_PER_DAY", 3
        ),
        allocation_deadline_seconds=_env_optional_float(
            "SPOTPLANNER_ALLOCATION_DEADLINE_SECONDS"
        ),
        availability_summary_default_days=_env_int(
            "SPOTPLANNER_AVAILABILITY_SUMMARY_DAYS", 30
        ),
    )
