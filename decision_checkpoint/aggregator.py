"""
Score aggregation.

total = sum(stage_score * weight) / sum(weights of the stages present)

Dividing by the weights actually present means a partially evaluated
decision is averaged over what was scored instead of treating the missing
stages as zero. With all seven stages present the divisor is 1.0.

Rounding is half-up (74.5 -> 75), then the result is clamped to [0, 100].
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

from decision_checkpoint.config import DEFAULT_CONFIG
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.stage_scorers import StageScore

logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoreAggregator:
    """Combines per-stage scores into one weighted total."""

    def __init__(self, weights: Optional[Mapping[int, float]] = None):
        self.weights = weights if weights is not None else DEFAULT_CONFIG.stage_weights

    def aggregate(self, stage_scores: Mapping[int, StageScore]) -> int:
        if not stage_scores:
            raise ValueError("Cannot aggregate an empty stage map")

        weighted_sum = 0.0
        weight_present = 0.0
        for stage_id, stage_score in stage_scores.items():
            if stage_id not in self.weights:
                raise ValueError(f"No weight configured for stage {stage_id!r}")
            weight = self.weights[stage_id]
            weighted_sum += stage_score.score * weight
            weight_present += weight

        if weight_present <= 0:
            raise ValueError("Stage weights present sum to zero")

        if len(stage_scores) < len(self.weights):
            logger.debug(
                "partial_stage_map_renormalized",
                stages=sorted(stage_scores),
                weight_present=round(weight_present, 4),
            )

        total = round_half_up(weighted_sum / weight_present)
        return max(0, min(100, total))

    def breakdown(self, stage_scores: Mapping[int, StageScore]) -> Dict[int, float]:
        """Weighted contribution of each stage, for auditability."""
        return {
            stage_id: round(stage_score.score * self.weights[stage_id], 4)
            for stage_id, stage_score in stage_scores.items()
        }


def aggregate(stage_scores: Mapping[int, StageScore], weights: Optional[Mapping[int, float]] = None) -> int:
    return ScoreAggregator(weights).aggregate(stage_scores)
