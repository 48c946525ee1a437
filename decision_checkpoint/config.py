"""
Configuration for the decision checkpoint engine.

Two layers:

  Settings      runtime settings read from the environment / .env file
                (analysis service credentials, timeouts, logging).
  EngineConfig  the scoring tables: stage weights, rating bands, adjustment
                thresholds and risk-profile weights. Frozen, built once and
                injected into the pipeline.

The tables hold the hand-tuned values of the checkpoint rubric. They are
kept configurable so a deployment can re-tune them without touching the
scorers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, loaded from CHECKPOINT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHECKPOINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # External analysis service (OpenAI-compatible chat completions endpoint)
    analysis_api_key: Optional[str] = None
    analysis_base_url: str = "https://api.deepseek.com"
    analysis_model: str = "deepseek-chat"

    # Retry policy for each augmentation request
    analysis_timeout_seconds: float = 15.0
    analysis_max_retries: int = 2
    analysis_backoff_seconds: float = 1.0

    default_language: str = "en"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    @property
    def augmentation_enabled(self) -> bool:
        return bool(self.analysis_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class AdjustmentThresholds:
    """Cross-field policy thresholds used by the dynamic adjustment layer."""
    # Short horizon needs a liquidity score of at least this much (0-100)
    short_term_liquidity_min: int = 80
    # Aggressive tolerance needs a risk-management stage score of at least this
    # much (72/100, i.e. 18 of the stage's 25 weighted points)
    aggressive_risk_management_min: int = 72
    # Conservative tolerance with a yield target above this percentage
    conservative_yield_max_pct: float = 5.0


@dataclass(frozen=True)
class RiskProfileConfig:
    """Weights, modifiers and cross-validation thresholds for the risk questionnaire."""
    category_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "financial": 0.4,
        "goal": 0.3,
        "psychological": 0.2,
        "experience": 0.1,
    }))
    # (profile type, lower bound, upper bound), ascending
    bands: Tuple[Tuple[str, int, int], ...] = (
        ("conservative", 0, 35),
        ("steady", 36, 55),
        ("balanced", 56, 70),
        ("progressive", 71, 85),
        ("aggressive", 86, 100),
    )
    low_financial_score: float = 30.0
    aggressive_goal_cap_profile: str = "balanced"
    verification_penalty: float = 5.0
    warning_penalty: float = 3.0


@dataclass(frozen=True)
class EngineConfig:
    """Read-only scoring tables shared by every evaluation."""
    stage_weights: Mapping[int, float] = field(default_factory=lambda: _frozen({
        1: 0.20,  # goals & risk
        2: 0.15,  # investment method
        3: 0.20,  # buy/sell rules
        4: 0.25,  # risk management
        5: 0.10,  # information validation
        6: 0.05,  # cognitive bias
        7: 0.05,  # documentation
    }))
    # (rating value, lower bound, upper bound), ascending
    rating_bands: Tuple[Tuple[str, int, int], ...] = (
        ("high-risk", 0, 54),
        ("cautious", 55, 69),
        ("stable", 70, 84),
        ("system", 85, 100),
    )
    adjustments: AdjustmentThresholds = field(default_factory=AdjustmentThresholds)
    risk_profile: RiskProfileConfig = field(default_factory=RiskProfileConfig)

    # Maximum score change one augmentation kind may cause
    max_augmentation_adjustment: int = 15
    augmentation_neutral_score: float = 5.0
    conflict_points_per_kind: int = 2

    max_recommendations: int = 7
    max_overall_items: int = 10


DEFAULT_CONFIG = EngineConfig()
