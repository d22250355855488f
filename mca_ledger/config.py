"""Configuration management using Pydantic Settings"""

from datetime import date
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from mca_ledger.domain.rules import EngineConfig, MatchingConfig, StatusConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "mca-ledger"
    log_level: str = "INFO"

    # Processing
    reference_date: Optional[date] = None  # pin "today" for reproducible runs
    max_workers: int = 1
    batch_time_budget_seconds: Optional[float] = None

    # Schedule matching
    max_days_for_match: int = 7
    amount_tolerance: float = 0.10
    catch_up_multiplier: float = 1.5
    recovery_multiplier: float = 2.0
    partial_min_ratio: float = 0.5
    partial_max_ratio: float = 0.9

    # Reversal linking
    reversal_window_days: int = 10
    reversal_extended_window_days: int = 30

    # Status
    partial_accumulation_threshold: float = 0.9


def engine_config_from_settings(config: Settings) -> EngineConfig:
    """Freeze the tunable thresholds into the immutable engine configuration"""
    return EngineConfig(
        matching=MatchingConfig(
            max_days_for_match=config.max_days_for_match,
            amount_tolerance=config.amount_tolerance,
            catch_up_multiplier=config.catch_up_multiplier,
            recovery_multiplier=config.recovery_multiplier,
            partial_min_ratio=config.partial_min_ratio,
            partial_max_ratio=config.partial_max_ratio,
            reversal_window_days=config.reversal_window_days,
            reversal_extended_window_days=config.reversal_extended_window_days,
        ),
        status=StatusConfig(
            partial_accumulation_threshold=config.partial_accumulation_threshold,
        ),
    )


settings = Settings()
