"""
End-to-end decision evaluation pipeline.

Orchestrates: validation → stage scoring → aggregation → rating
→ (optional) external augmentation → re-aggregation → dynamic adjustment
→ recommendations

Usage:
    from decision_checkpoint.pipeline import DecisionEvaluationPipeline
    from decision_checkpoint.samples import load_sample_decision

    pipeline = DecisionEvaluationPipeline()
    result = pipeline.evaluate_sync(load_sample_decision())
    pipeline.print_report(result)

evaluate_sync() never touches the network. evaluate() additionally runs the
augmentation client when one is configured; without one it returns the same
result as evaluate_sync().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from decision_checkpoint.aggregator import ScoreAggregator
from decision_checkpoint.adjustments import adjust_rating
from decision_checkpoint.augmentation import AugmentationClient, RetryPolicy
from decision_checkpoint.config import DEFAULT_CONFIG, EngineConfig, Settings, get_settings
from decision_checkpoint.errors import AnswerValidationError
from decision_checkpoint.insights import DecisionInsights, analyze_decision
from decision_checkpoint.integrator import integrate
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.questions import InvestmentDecision, validate_answer_types, validate_decision
from decision_checkpoint.rating import Rating, classify
from decision_checkpoint.recommendations import dedupe, recommend
from decision_checkpoint.risk_profile import (
    RiskAssessmentResult,
    check_required_risk_answers,
    score_risk_profile,
)
from decision_checkpoint.stage_scorers import StageScore, score_all_stages
from decision_checkpoint.transport import ChatCompletionsTransport

logger = get_logger(__name__)


def normalize_language(language: Optional[str]) -> str:
    return "zh" if (language or "").lower().startswith("zh") else "en"


@dataclass(frozen=True)
class EvaluationResult:
    """Full evaluation of one investment decision."""
    decision_name: str
    total_score: int
    rating: Rating
    base_rating: Rating
    stage_scores: Mapping[int, StageScore]
    overall_strengths: Tuple[str, ...] = ()
    overall_weaknesses: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    augmented: bool = False
    adjustments: Tuple[str, ...] = ()
    language: str = "en"

    def to_dict(self) -> dict:
        return {
            "decision_name": self.decision_name,
            "total_score": self.total_score,
            "rating": self.rating.value,
            "base_rating": self.base_rating.value,
            "stage_scores": {str(k): v.to_dict() for k, v in sorted(self.stage_scores.items())},
            "overall_strengths": list(self.overall_strengths),
            "overall_weaknesses": list(self.overall_weaknesses),
            "recommendations": list(self.recommendations),
            "augmented": self.augmented,
            "adjustments": list(self.adjustments),
            "language": self.language,
        }


class DecisionEvaluationPipeline:
    """
    Scores investment decisions against the checkpoint rubric.

    The pipeline holds only read-only configuration and an optional
    augmentation client, so one instance can serve concurrent evaluations.

    Args:
        config: Scoring tables (defaults to DEFAULT_CONFIG)
        client: Augmentation client; None disables external analysis
        default_language: Used when a call does not pass a language
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        client: Optional[AugmentationClient] = None,
        default_language: str = "en",
    ):
        self.config = config or DEFAULT_CONFIG
        self.client = client
        self.default_language = normalize_language(default_language)
        self.aggregator = ScoreAggregator(self.config.stage_weights)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, config: Optional[EngineConfig] = None):
        """Build a pipeline; augmentation is enabled only when an API key is configured."""
        settings = settings or get_settings()
        client = None
        if settings.augmentation_enabled:
            client = AugmentationClient(
                ChatCompletionsTransport.from_settings(settings),
                RetryPolicy.from_settings(settings),
            )
        logger.info("pipeline_configured", augmentation=client is not None, model=settings.analysis_model)
        return cls(config=config, client=client, default_language=settings.default_language)

    # ─── Validation ───────────────────────────────────────────────────────────

    def validate(self, decision: InvestmentDecision) -> List[str]:
        """Missing required field ids ("name" first). Empty when the decision can be scored."""
        return validate_decision(decision)

    def _check(self, decision: InvestmentDecision) -> None:
        missing = validate_decision(decision)
        if missing:
            logger.info("decision_rejected", decision=decision.name, missing=missing)
            raise AnswerValidationError(missing)
        mismatched = validate_answer_types(decision.answers)
        if mismatched:
            logger.warning("answer_kind_mismatch", decision=decision.name, question_ids=mismatched)

    # ─── Evaluation ───────────────────────────────────────────────────────────

    def _classify(self, stage_scores: Mapping[int, StageScore]) -> Tuple[int, Rating]:
        total = self.aggregator.aggregate(stage_scores)
        return total, classify(total, self.config.rating_bands)

    def _finish(
        self,
        decision: InvestmentDecision,
        stage_scores: Dict[int, StageScore],
        augmented: bool,
        language: str,
    ) -> EvaluationResult:
        total, base_rating = self._classify(stage_scores)
        adjustment = adjust_rating(decision.answers, base_rating, stage_scores, self.config, language)

        strengths: List[str] = []
        weaknesses: List[str] = []
        for stage_id in sorted(stage_scores):
            strengths.extend(stage_scores[stage_id].strengths)
            weaknesses.extend(stage_scores[stage_id].weaknesses)

        recommendations = recommend(
            adjustment.rating,
            stage_scores,
            decision.answers,
            notes=adjustment.notes,
            language=language,
            limit=self.config.max_recommendations,
        )

        result = EvaluationResult(
            decision_name=decision.name,
            total_score=total,
            rating=adjustment.rating,
            base_rating=base_rating,
            stage_scores=stage_scores,
            overall_strengths=tuple(dedupe(strengths, self.config.max_overall_items)),
            overall_weaknesses=tuple(dedupe(weaknesses, self.config.max_overall_items)),
            recommendations=tuple(recommendations),
            augmented=augmented,
            adjustments=adjustment.notes,
            language=language,
        )
        logger.info(
            "decision_evaluated",
            decision=decision.name,
            total_score=total,
            rating=result.rating.value,
            augmented=augmented,
        )
        return result

    def evaluate_sync(self, decision: InvestmentDecision, language: Optional[str] = None) -> EvaluationResult:
        """
        Evaluate with local rules only.

        Raises:
            AnswerValidationError: required answers are missing
        """
        language = normalize_language(language or self.default_language)
        self._check(decision)
        stage_scores = score_all_stages(decision.answers)
        return self._finish(decision, stage_scores, augmented=False, language=language)

    async def evaluate(self, decision: InvestmentDecision, language: Optional[str] = None) -> EvaluationResult:
        """
        Evaluate, enriching stages 3, 4 and 6 with the external analyses when
        a client is configured. Service failures degrade to local fallbacks;
        only AnswerValidationError is ever raised.
        """
        language = normalize_language(language or self.default_language)
        self._check(decision)
        stage_scores = score_all_stages(decision.answers)

        if self.client is None:
            return self._finish(decision, stage_scores, augmented=False, language=language)

        local_total, local_rating = self._classify(stage_scores)
        logger.debug("local_rating", decision=decision.name, total_score=local_total, rating=local_rating.value)

        results = await self.client.augment_all(decision.answers, language)
        augmented = any(r.from_service for r in results.values())
        merged = integrate(stage_scores, results, self.config)
        return self._finish(decision, merged, augmented=augmented, language=language)

    # ─── Companion analyses ───────────────────────────────────────────────────

    def insights(self, decision: InvestmentDecision, language: Optional[str] = None) -> DecisionInsights:
        """Cross-stage consistency insights; informational, not part of the score."""
        return analyze_decision(decision.answers, normalize_language(language or self.default_language))

    def assess_risk_profile(self, answers: Mapping[str, Any], language: Optional[str] = None) -> RiskAssessmentResult:
        """
        Score the risk questionnaire.

        Raises:
            AnswerValidationError: required risk answers are missing
        """
        missing = check_required_risk_answers(answers)
        if missing:
            raise AnswerValidationError(missing)
        return score_risk_profile(
            answers,
            normalize_language(language or self.default_language),
            self.config.risk_profile,
        )

    # ─── Display ──────────────────────────────────────────────────────────────

    def print_report(self, result: EvaluationResult, insights: Optional[DecisionInsights] = None) -> None:
        """Pretty-print an evaluation to stdout."""
        print("\n" + "=" * 80)
        print(f"INVESTMENT DECISION CHECKPOINT: {result.decision_name}")
        print("=" * 80)

        print(f"\nTotal score: {result.total_score}/100")
        rating_line = f"Rating: {result.rating.value.upper()}"
        if result.rating != result.base_rating:
            rating_line += f" (before adjustments: {result.base_rating.value})"
        print(rating_line)
        print(f"External analysis: {'yes' if result.augmented else 'no (local rules only)'}")

        print(f"\n{'─' * 80}")
        print("STAGE SCORES")
        print(f"{'─' * 80}")
        weighted = self.aggregator.breakdown(result.stage_scores)
        for stage_id, stage in sorted(result.stage_scores.items()):
            bar = "█" * (stage.score // 5)
            print(f"  Stage {stage_id}: {stage.score:3d}  (weighted {weighted[stage_id]:4.1f})  {bar}")
            for weakness in stage.weaknesses[:3]:
                print(f"           ✗ {weakness}")

        if result.overall_strengths:
            print(f"\n{'─' * 80}")
            print(f"STRENGTHS ({len(result.overall_strengths)})")
            print(f"{'─' * 80}")
            for s in result.overall_strengths:
                print(f"  ✓ {s}")

        if result.adjustments:
            print(f"\n{'─' * 80}")
            print("ADJUSTMENTS")
            print(f"{'─' * 80}")
            for note in result.adjustments:
                print(f"  ~ {note}")

        print(f"\n{'─' * 80}")
        print("RECOMMENDATIONS")
        print(f"{'─' * 80}")
        for i, rec in enumerate(result.recommendations, 1):
            print(f"  {i}. {rec}")

        if insights is not None:
            print(f"\n{'─' * 80}")
            print(f"INSIGHTS (consistency {insights.consistency_score:.1f}/10)")
            print(f"{'─' * 80}")
            for bias in insights.potential_biases:
                print(f"  ? {bias}")
            for conflict in insights.conflict_points:
                print(f"  ! {conflict}")
            for rec in insights.advanced_recommendations:
                print(f"  → {rec}")
        print("=" * 80 + "\n")

    @staticmethod
    def print_risk_report(result: RiskAssessmentResult) -> None:
        print("\n" + "=" * 80)
        print("RISK PROFILE")
        print("=" * 80)
        print(f"\nScore: {result.score}/100  Profile: {result.name}")
        print(f"  {result.description}")
        print(f"  Suggested allocation: {result.recommendation}")
        if result.needs_verification:
            print("  ! Reaction to drawdowns looks inconsistent with your experience; please confirm your strategy.")
        if result.needs_warning:
            print("  ! High-risk profile at this age: please confirm you accept the potential losses.")
        averages = result.components.get("category_averages", {})
        if averages:
            print("  " + " | ".join(f"{k}: {v:.0f}" for k, v in averages.items()))
        print("=" * 80 + "\n")
