"""
Shared model for external/fallback analyses.

Three analysis kinds exist, each tied to one questionnaire stage:

  logic-consistency  buy/sell/stop-loss rules vs risk management   -> stage 3
  risk-consistency   risk tolerance vs identified risks / max loss -> stage 4
  cognitive-bias     bias self-check answers vs mitigation plan    -> stage 6

An AugmentationResult has the same shape whether it came from the service
or from the local fallback; `source` records which.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from decision_checkpoint.questions import answer_text


class AugmentationKind(str, Enum):
    LOGIC_CONSISTENCY = "logic-consistency"
    RISK_CONSISTENCY = "risk-consistency"
    COGNITIVE_BIAS = "cognitive-bias"


SOURCE_SERVICE = "service"
SOURCE_FALLBACK = "fallback"

KIND_STAGE: Mapping[AugmentationKind, int] = {
    AugmentationKind.LOGIC_CONSISTENCY: 3,
    AugmentationKind.RISK_CONSISTENCY: 4,
    AugmentationKind.COGNITIVE_BIAS: 6,
}


@dataclass(frozen=True)
class AugmentationResult:
    """Outcome of one analysis kind. consistency_score is on a 0-10 scale."""
    kind: AugmentationKind
    consistency_score: float
    conflict_points: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    reasoning_path: Optional[str] = None
    source: str = SOURCE_FALLBACK

    @property
    def from_service(self) -> bool:
        return self.source == SOURCE_SERVICE

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "consistency_score": round(self.consistency_score, 2),
            "conflict_points": list(self.conflict_points),
            "suggestions": list(self.suggestions),
            "reasoning_path": self.reasoning_path,
            "source": self.source,
        }


BIAS_NAMES: Tuple[Tuple[str, str], ...] = (
    ("6-1", "anchoring"),
    ("6-2", "overconfidence"),
    ("6-3", "herding"),
    ("6-4", "loss aversion"),
)
OPPOSING_VIEWS_QUESTION = "6-5"


def _is_yes(answer: str) -> bool:
    return answer.lower() in ("yes", "是")


def build_inputs(kind: AugmentationKind, answers: Mapping[str, Any]) -> Dict[str, str]:
    """Select and flatten the answers one analysis kind looks at."""
    if kind == AugmentationKind.LOGIC_CONSISTENCY:
        risk_parts = [p for p in (answer_text(answers, "4-1"), answer_text(answers, "4-3")) if p]
        return {
            "buy_rules": answer_text(answers, "3-1"),
            "sell_rules": answer_text(answers, "3-2"),
            "stop_loss_rules": answer_text(answers, "3-3"),
            "risk_management": "; ".join(risk_parts),
        }
    if kind == AugmentationKind.RISK_CONSISTENCY:
        return {
            "risk_tolerance": answer_text(answers, "1-3"),
            "risk_identification": answer_text(answers, "4-1"),
            "max_loss": answer_text(answers, "4-4"),
        }
    if kind == AugmentationKind.COGNITIVE_BIAS:
        acknowledged = [name for qid, name in BIAS_NAMES if _is_yes(answer_text(answers, qid))]
        unanswered = sum(1 for qid, _ in BIAS_NAMES if not answer_text(answers, qid))
        opposing = answer_text(answers, OPPOSING_VIEWS_QUESTION) or "not answered"
        awareness = (
            f"Acknowledged biases: {', '.join(acknowledged) or 'none'}; "
            f"unanswered self-checks: {unanswered}; "
            f"opposing viewpoints considered: {opposing}"
        )
        return {
            "bias_checks": awareness,
            "mitigation_plan": answer_text(answers, "6-6"),
        }
    raise ValueError(f"Unknown augmentation kind: {kind!r}")


def build_all_inputs(answers: Mapping[str, Any]) -> Dict[AugmentationKind, Dict[str, str]]:
    return {kind: build_inputs(kind, answers) for kind in AugmentationKind}
