"""Tests for the end-to-end evaluation pipeline."""

import asyncio
import json

import pytest
from decision_checkpoint import pipeline as pipeline_module
from decision_checkpoint.augmentation import AugmentationClient, RetryPolicy
from decision_checkpoint.config import Settings
from decision_checkpoint.errors import AnswerValidationError, TransportError
from decision_checkpoint.pipeline import DecisionEvaluationPipeline, EvaluationResult, normalize_language
from decision_checkpoint.questions import InvestmentDecision
from decision_checkpoint.rating import Rating
from decision_checkpoint.samples import (
    SAMPLE_RISK_ANSWERS,
    SPECULATIVE_ANSWERS,
    SYSTEMATIC_ANSWERS,
    load_sample_decision,
)
from decision_checkpoint.transport import StaticTransport

FAST = RetryPolicy(max_attempts=2, backoff_seconds=0, timeout_seconds=1.0)


def make_client(**responses):
    default = responses.pop("default", None)
    return AugmentationClient(StaticTransport(responses, default=default), FAST)


class TestDecisionEvaluationPipeline:
    def setup_method(self):
        # Local rules only: no augmentation client, no network
        self.pipeline = DecisionEvaluationPipeline()
        self.systematic = InvestmentDecision(name="Quality", answers=SYSTEMATIC_ANSWERS)
        self.speculative = InvestmentDecision(name="Punt", answers=SPECULATIVE_ANSWERS)

    def test_returns_evaluation_result(self):
        assert isinstance(self.pipeline.evaluate_sync(self.systematic), EvaluationResult)

    def test_systematic_plan(self):
        result = self.pipeline.evaluate_sync(self.systematic)
        assert result.total_score == 97
        assert result.rating == Rating.SYSTEM
        assert result.overall_weaknesses == ()
        assert result.augmented is False

    def test_speculative_plan_downgraded(self):
        result = self.pipeline.evaluate_sync(self.speculative)
        assert result.total_score == 60
        assert result.base_rating == Rating.CAUTIOUS
        assert result.rating == Rating.HIGH_RISK
        assert result.adjustments[0].startswith("Adjustment: Short-term focus requires stronger liquidity")

    def test_recommendations_capped_and_unique(self):
        result = self.pipeline.evaluate_sync(self.speculative)
        assert 1 <= len(result.recommendations) <= 7
        assert len(set(result.recommendations)) == len(result.recommendations)

    def test_idempotent(self):
        first = self.pipeline.evaluate_sync(self.speculative).to_dict()
        second = self.pipeline.evaluate_sync(self.speculative).to_dict()
        assert first == second

    def test_to_dict_serializable(self):
        d = self.pipeline.evaluate_sync(self.systematic).to_dict()
        assert list(d["stage_scores"]) == ["1", "2", "3", "4", "5", "6", "7"]
        assert len(json.dumps(d)) > 0

    def test_chinese_output(self):
        result = self.pipeline.evaluate_sync(self.systematic, language="zh-CN")
        assert result.language == "zh"
        assert result.recommendations[0].startswith("策略系统性强")

    def test_chinese_adjustment_notes(self):
        result = self.pipeline.evaluate_sync(self.speculative, language="zh")
        assert result.adjustments[0].startswith("调整：短期投资需要更强的流动性")
        assert result.adjustments[0] in result.recommendations

    def test_name_only_rejected_before_scoring(self, monkeypatch):
        def fail(answers):
            raise AssertionError("scoring must not run")

        monkeypatch.setattr(pipeline_module, "score_all_stages", fail)
        with pytest.raises(AnswerValidationError) as exc_info:
            self.pipeline.evaluate_sync(InvestmentDecision(name="only a name"))
        assert "1-1" in exc_info.value.fields
        assert "name" not in exc_info.value.fields

    def test_blank_name_rejected(self):
        with pytest.raises(AnswerValidationError) as exc_info:
            self.pipeline.evaluate_sync(InvestmentDecision(name="", answers=SYSTEMATIC_ANSWERS))
        assert exc_info.value.fields == ["name"]

    def test_validate(self):
        assert self.pipeline.validate(self.systematic) == []

    def test_async_without_client_matches_sync(self):
        result = asyncio.run(self.pipeline.evaluate(self.speculative))
        assert result == self.pipeline.evaluate_sync(self.speculative)

    def test_run_on_sample(self):
        result = self.pipeline.evaluate_sync(load_sample_decision())
        assert result.decision_name == "Diversified quality portfolio"


class TestAugmentedEvaluation:
    def setup_method(self):
        self.decision = InvestmentDecision(name="Quality", answers=SYSTEMATIC_ANSWERS)

    def test_service_results_integrated(self):
        reply = json.dumps({"consistencyScore": 10, "conflictPoints": [], "suggestions": ["Keep a trade journal"]})
        pipeline = DecisionEvaluationPipeline(client=make_client(default=reply))
        result = asyncio.run(pipeline.evaluate(self.decision))
        assert result.augmented is True
        assert result.stage_scores[6].score == 95
        assert result.total_score == 98
        assert "Logic suggestion: Keep a trade journal" in result.recommendations

    def test_failing_service_falls_back(self):
        pipeline = DecisionEvaluationPipeline(client=make_client(default=TransportError("down")))
        result = asyncio.run(pipeline.evaluate(self.decision))
        assert result.augmented is False
        assert result.stage_scores[6].augmentation_details["source"] == "fallback"
        assert result.stage_scores[6].score == 91
        assert result.rating == Rating.SYSTEM

    def test_unparseable_service_reply_falls_back(self):
        reply = "[" * 100000 + "]" * 100000
        pipeline = DecisionEvaluationPipeline(client=make_client(default=reply))
        result = asyncio.run(pipeline.evaluate(self.decision))
        assert result.augmented is False
        assert result.stage_scores[3].augmentation_details["source"] == "fallback"
        assert result.rating == Rating.SYSTEM

    def test_partial_service_failure(self):
        reply = json.dumps({"consistencyScore": 5})
        pipeline = DecisionEvaluationPipeline(client=make_client(**{
            "logic-consistency": reply,
            "default": TransportError("down"),
        }))
        result = asyncio.run(pipeline.evaluate(self.decision))
        assert result.augmented is True
        assert result.stage_scores[3].augmentation_details["source"] == "service"
        assert result.stage_scores[4].augmentation_details["source"] == "fallback"

    def test_validation_still_raises(self):
        pipeline = DecisionEvaluationPipeline(client=make_client(default="{}"))
        with pytest.raises(AnswerValidationError):
            asyncio.run(pipeline.evaluate(InvestmentDecision(name="x")))


class TestFromSettings:
    def test_no_api_key_disables_augmentation(self):
        pipeline = DecisionEvaluationPipeline.from_settings(Settings(analysis_api_key=None))
        assert pipeline.client is None

    def test_api_key_enables_augmentation(self):
        pipeline = DecisionEvaluationPipeline.from_settings(Settings(analysis_api_key="k", analysis_max_retries=1))
        assert pipeline.client is not None
        assert pipeline.client.policy.max_attempts == 2


class TestCompanionAnalyses:
    def setup_method(self):
        self.pipeline = DecisionEvaluationPipeline()

    def test_insights(self):
        insights = self.pipeline.insights(InvestmentDecision(name="x", answers=SPECULATIVE_ANSWERS))
        assert insights.consistency_score == 5.5

    def test_risk_profile(self):
        assert self.pipeline.assess_risk_profile(SAMPLE_RISK_ANSWERS).profile_type == "balanced"

    def test_risk_profile_missing_answers(self):
        with pytest.raises(AnswerValidationError):
            self.pipeline.assess_risk_profile({"fin-1": "<20% (1 point)"})

    def test_print_report(self, capsys):
        result = self.pipeline.evaluate_sync(InvestmentDecision(name="Quality", answers=SYSTEMATIC_ANSWERS))
        self.pipeline.print_report(result)
        out = capsys.readouterr().out
        assert "Total score: 97/100" in out
        weighted = self.pipeline.aggregator.breakdown(result.stage_scores)
        assert f"(weighted {weighted[4]:4.1f})" in out


class TestNormalizeLanguage:
    def test_values(self):
        assert normalize_language("zh") == "zh"
        assert normalize_language("ZH-tw") == "zh"
        assert normalize_language(None) == "en"
        assert normalize_language("fr") == "en"
