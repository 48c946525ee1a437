"""Tests for analysis inputs and the local fallback analyses."""

import pytest
from decision_checkpoint.analysis import (
    SOURCE_FALLBACK,
    AugmentationKind,
    AugmentationResult,
    build_all_inputs,
    build_inputs,
)
from decision_checkpoint.fallbacks import (
    fallback_bias_analysis,
    fallback_logic_analysis,
    fallback_risk_analysis,
    run_fallback,
)
from decision_checkpoint.samples import SPECULATIVE_ANSWERS, SYSTEMATIC_ANSWERS

LOGIC = AugmentationKind.LOGIC_CONSISTENCY
RISK = AugmentationKind.RISK_CONSISTENCY
BIAS = AugmentationKind.COGNITIVE_BIAS


class TestBuildInputs:
    def test_logic_inputs(self):
        inputs = build_inputs(LOGIC, SYSTEMATIC_ANSWERS)
        assert set(inputs) == {"buy_rules", "sell_rules", "stop_loss_rules", "risk_management"}
        assert "Stop-loss Orders" in inputs["risk_management"]
        assert "interest rate risk" in inputs["risk_management"]

    def test_risk_inputs(self):
        inputs = build_inputs(RISK, SYSTEMATIC_ANSWERS)
        assert inputs == {
            "risk_tolerance": "Moderate (fluctuation 10-25%)",
            "risk_identification": "Market risk, sector concentration, interest rate risk",
            "max_loss": "15%",
        }

    def test_bias_summary_names_acknowledged_biases(self):
        inputs = build_inputs(BIAS, SPECULATIVE_ANSWERS)
        assert "anchoring, overconfidence, herding" in inputs["bias_checks"]
        assert "opposing viewpoints considered: No" in inputs["bias_checks"]

    def test_bias_summary_counts_unanswered(self):
        inputs = build_inputs(BIAS, {"6-1": "No"})
        assert "Acknowledged biases: none" in inputs["bias_checks"]
        assert "unanswered self-checks: 3" in inputs["bias_checks"]

    def test_all_kinds(self):
        assert set(build_all_inputs(SYSTEMATIC_ANSWERS)) == set(AugmentationKind)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_inputs("sentiment", {})


class TestLogicFallback:
    def test_fully_quantified(self):
        result = fallback_logic_analysis(build_inputs(LOGIC, SYSTEMATIC_ANSWERS))
        assert result.consistency_score == 10.0
        assert result.conflict_points == ()
        assert result.source == SOURCE_FALLBACK

    def test_empty_inputs(self):
        result = fallback_logic_analysis({})
        assert result.consistency_score == 6.0
        assert len(result.conflict_points) == 4
        assert len(result.suggestions) == 4

    def test_chinese_messages(self):
        result = fallback_logic_analysis({}, language="zh")
        assert result.conflict_points[0] == "买入规则缺乏具体数值标准"


class TestRiskFallback:
    def test_systematic(self):
        assert fallback_risk_analysis(build_inputs(RISK, SYSTEMATIC_ANSWERS)).consistency_score == 10.0

    def test_speculative(self):
        result = fallback_risk_analysis(build_inputs(RISK, SPECULATIVE_ANSWERS))
        assert result.consistency_score == 7.0
        assert "Maximum acceptable loss is not quantified" in result.conflict_points


class TestBiasFallback:
    def test_systematic(self):
        result = fallback_bias_analysis(build_inputs(BIAS, SYSTEMATIC_ANSWERS))
        # detailed plan (+10) with a checklist (+15), no bias named
        assert result.consistency_score == 8.5
        assert result.conflict_points == ("Specific types of cognitive biases not clearly identified",)

    def test_speculative(self):
        result = fallback_bias_analysis(build_inputs(BIAS, SPECULATIVE_ANSWERS))
        assert result.consistency_score == 7.5


class TestRunFallback:
    def test_dispatch_by_kind(self):
        for kind in AugmentationKind:
            result = run_fallback(kind, {})
            assert isinstance(result, AugmentationResult)
            assert result.kind == kind
            assert 0.0 <= result.consistency_score <= 10.0

    def test_accepts_string_kind(self):
        assert run_fallback("risk-consistency", {}).kind == RISK

    def test_never_raises_on_none_inputs(self):
        assert run_fallback(BIAS, None).consistency_score == 6.0

    def test_to_dict(self):
        d = run_fallback(LOGIC, {}).to_dict()
        assert d["kind"] == "logic-consistency"
        assert d["source"] == "fallback"
        assert d["reasoning_path"]
