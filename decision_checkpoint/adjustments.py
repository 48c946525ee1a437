"""
Dynamic rating adjustments.

Cross-field policies applied after classification, in this fixed order:

  1. Long horizon: a cautious or stable rating moves one band up.
  2. Short horizon with a liquidity score below the threshold: one band down.
  3. Aggressive tolerance with a weak risk-management stage: forced to high-risk.
  4. Conservative tolerance with a yield target above the threshold: a
     stress-test note, and a stable or system rating moves one band down.

Each policy that fires adds an explanatory note. Ratings only ever move
along the four-band ordinal (see rating.shift_rating).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from decision_checkpoint.config import DEFAULT_CONFIG, EngineConfig
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.questions import answer_text
from decision_checkpoint.rating import Rating, shift_rating
from decision_checkpoint.stage_scorers import (
    StageScore,
    clamp_score,
    is_aggressive,
    is_conservative,
    is_long_term,
    is_short_term,
)

logger = get_logger(__name__)

_YIELD_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_HIGH = re.compile(r"\bhigh\b|高", re.I)
_LOW = re.compile(r"\blow\b|低", re.I)
_MEDIUM = re.compile(r"\bmedium\b|中", re.I)
_URGENT = re.compile(r"emergency|urgent|紧急|应急", re.I)


@dataclass(frozen=True)
class RatingAdjustment:
    rating: Rating
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"rating": self.rating.value, "notes": list(self.notes)}


def liquidity_score(liquidity_needs: str) -> int:
    """
    Rough 0-100 liquidity score from the free-text liquidity answer.

    A stated High need scores 30, Medium 70, Low 90; anything else starts
    at 50. Mentioning an emergency or urgent need costs 20.
    """
    text = liquidity_needs or ""
    score = 50
    if _HIGH.search(text):
        score = 30
    elif _LOW.search(text):
        score = 90
    elif _MEDIUM.search(text):
        score = 70
    if _URGENT.search(text):
        score -= 20
    return clamp_score(score)


def target_yield(goals: str) -> Optional[float]:
    """First percentage mentioned in the goals answer, if any."""
    match = _YIELD_PATTERN.search(goals or "")
    return float(match.group(1)) if match else None


# (english, chinese); filled with str.format
NOTES: Dict[str, Tuple[str, str]] = {
    "long_term_cautious": (
        "Adjustment: As a long-term investor, you might tolerate higher short-term volatility.",
        "调整：作为长期投资者，您可以承受更高的短期波动。",
    ),
    "long_term_stable": (
        "Adjustment: Long-term strategy appears robust for market fluctuations.",
        "调整：长期策略足以应对市场波动。",
    ),
    "short_term_liquidity": (
        "Adjustment: Short-term focus requires stronger liquidity ({score}/{minimum} score). "
        "Consider increasing cash reserves.",
        "调整：短期投资需要更强的流动性（评分 {score}/{minimum}），建议增加现金储备。",
    ),
    "aggressive_risk_controls": (
        "Adjustment: Aggressive stance requires stronger risk controls (Score: {score}/{minimum}). "
        "Enhance mitigation measures.",
        "调整：激进策略需要更严格的风险控制（评分 {score}/{minimum}），请加强风险缓解措施。",
    ),
    "conservative_yield": (
        "Adjustment: Target yield ({yield_pct:g}%) is high for a conservative profile. "
        "Recommend stress testing the investment.",
        "调整：目标收益率（{yield_pct:g}%）对保守型投资者偏高，建议对该投资进行压力测试。",
    ),
}


def _note(key: str, language: str, **values: Any) -> str:
    en, zh = NOTES[key]
    return (zh if language == "zh" else en).format(**values)


def adjust_rating(
    answers: Mapping[str, Any],
    rating: Rating,
    stage_scores: Mapping[int, StageScore],
    config: Optional[EngineConfig] = None,
    language: str = "en",
) -> RatingAdjustment:
    thresholds = (config or DEFAULT_CONFIG).adjustments
    horizon = answer_text(answers, "1-2")
    tolerance = answer_text(answers, "1-3")
    notes: List[str] = []
    current = rating

    # 1. Long horizon tolerates more short-term volatility
    if is_long_term(horizon):
        if current == Rating.CAUTIOUS:
            current = shift_rating(current, 1)
            notes.append(_note("long_term_cautious", language))
        elif current == Rating.STABLE:
            current = shift_rating(current, 1)
            notes.append(_note("long_term_stable", language))

    # 2. Short horizon needs liquidity
    if is_short_term(horizon):
        liquidity = liquidity_score(answer_text(answers, "1-4"))
        if liquidity < thresholds.short_term_liquidity_min:
            current = shift_rating(current, -1)
            notes.append(_note(
                "short_term_liquidity", language,
                score=liquidity, minimum=thresholds.short_term_liquidity_min,
            ))

    # 3. Aggressive stance needs strong risk controls
    if is_aggressive(tolerance):
        stage = stage_scores.get(4)
        risk_score = stage.score if stage is not None else 0
        if risk_score < thresholds.aggressive_risk_management_min:
            current = Rating.HIGH_RISK
            notes.append(_note(
                "aggressive_risk_controls", language,
                score=risk_score, minimum=thresholds.aggressive_risk_management_min,
            ))

    # 4. Conservative profile chasing yield
    if is_conservative(tolerance):
        yield_pct = target_yield(answer_text(answers, "1-1"))
        if yield_pct is not None and yield_pct > thresholds.conservative_yield_max_pct:
            notes.append(_note("conservative_yield", language, yield_pct=yield_pct))
            if current in (Rating.STABLE, Rating.SYSTEM):
                current = shift_rating(current, -1)

    if current != rating or notes:
        logger.info(
            "rating_adjusted",
            base_rating=rating.value,
            rating=current.value,
            notes=len(notes),
        )
    return RatingAdjustment(rating=current, notes=tuple(notes))
