"""
Merge augmentation results into stage scores.

Each analysis kind targets one stage (logic -> 3, risk -> 4, bias -> 6).
A consistency score of 5/10 is neutral; every point above or below moves the
stage score by 3, i.e.

    adjustment = round((consistency - 5) / 5 * 15)     bounded to +/-15

The first few conflict points become prefixed weaknesses, and the full
verdict is kept in the stage's augmentation_details for the recommendation
generator. Input stage scores are never modified; new StageScore values are
returned.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Mapping, Optional

from decision_checkpoint.aggregator import round_half_up
from decision_checkpoint.analysis import KIND_STAGE, AugmentationKind, AugmentationResult
from decision_checkpoint.config import DEFAULT_CONFIG, EngineConfig
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.stage_scorers import StageScore, clamp_score

logger = get_logger(__name__)

WEAKNESS_PREFIX: Mapping[AugmentationKind, str] = {
    AugmentationKind.LOGIC_CONSISTENCY: "Logic review: ",
    AugmentationKind.RISK_CONSISTENCY: "Risk review: ",
    AugmentationKind.COGNITIVE_BIAS: "Bias review: ",
}


def score_adjustment(consistency_score: float, config: EngineConfig = DEFAULT_CONFIG) -> int:
    neutral = config.augmentation_neutral_score
    limit = config.max_augmentation_adjustment
    adjustment = round_half_up((consistency_score - neutral) * limit / neutral)
    return max(-limit, min(limit, adjustment))


def apply_augmentation(
    stage_score: StageScore,
    result: AugmentationResult,
    config: EngineConfig = DEFAULT_CONFIG,
) -> StageScore:
    adjustment = score_adjustment(result.consistency_score, config)
    prefix = WEAKNESS_PREFIX[result.kind]
    conflicts = result.conflict_points[:config.conflict_points_per_kind]
    weaknesses = stage_score.weaknesses + tuple(prefix + c for c in conflicts if prefix + c not in stage_score.weaknesses)

    details = {
        "kind": result.kind.value,
        "consistency_score": result.consistency_score,
        "adjustment": adjustment,
        "conflict_points": list(result.conflict_points),
        "suggestions": list(result.suggestions),
        "reasoning_path": result.reasoning_path,
        "source": result.source,
    }
    return replace(
        stage_score,
        score=clamp_score(stage_score.score + adjustment),
        weaknesses=weaknesses,
        augmentation_details=details,
    )


def integrate(
    stage_scores: Mapping[int, StageScore],
    augmentation_results: Mapping[AugmentationKind, AugmentationResult],
    config: Optional[EngineConfig] = None,
) -> Dict[int, StageScore]:
    """
    Return a new stage map with each augmentation applied to its stage.

    Stages without an augmentation (or kinds whose stage is absent from the
    map) pass through unchanged.
    """
    config = config or DEFAULT_CONFIG
    merged = dict(stage_scores)
    for kind, result in augmentation_results.items():
        stage_id = KIND_STAGE[AugmentationKind(kind)]
        if stage_id not in merged:
            continue
        before = merged[stage_id].score
        merged[stage_id] = apply_augmentation(merged[stage_id], result, config)
        logger.debug(
            "augmentation_integrated",
            kind=result.kind.value,
            stage=stage_id,
            before=before,
            after=merged[stage_id].score,
            source=result.source,
        )
    return merged
