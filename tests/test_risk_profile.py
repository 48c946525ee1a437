"""Tests for the risk-profile questionnaire scorer."""

import pytest
from decision_checkpoint.risk_profile import (
    RISK_QUESTIONS,
    RISK_QUESTIONS_BY_ID,
    answer_points,
    category_averages,
    check_required_risk_answers,
    demographic_modifier,
    extract_points,
    profile_for_score,
    score_risk_profile,
)
from decision_checkpoint.samples import SAMPLE_RISK_ANSWERS


def top_answers(**overrides):
    """Highest-scoring option for every question, English labels."""
    answers = {q.id: (q.options_en[-1:] if q.multi else q.options_en[-1]) for q in RISK_QUESTIONS}
    answers["demo-1"] = "<30 years (+3 points)"
    answers["demo-2"] = "Government/Public sector (+2 points)"
    answers.update(overrides)
    return answers


class TestCatalog:
    def test_twelve_questions(self):
        assert len(RISK_QUESTIONS) == 12

    def test_bilingual_options_align(self):
        for q in RISK_QUESTIONS:
            assert len(q.options_en) == len(q.options_zh)
            assert [extract_points(o) for o in q.options_en] == [extract_points(o) for o in q.options_zh]

    def test_to_dict_language(self):
        d = RISK_QUESTIONS_BY_ID["fin-1"].to_dict("zh")
        assert d["options"][0] == "<20%（1分）"


class TestExtractPoints:
    def test_english(self):
        assert extract_points("Return >15%, Loss >20% (Progressive, 9 points)") == 9

    def test_signed(self):
        assert extract_points(">50 years (-2 points)") == -2
        assert extract_points("Corporate employee (+1 point)") == 1

    def test_chinese(self):
        assert extract_points("加仓摊低成本（7分）") == 7

    def test_no_label(self):
        assert extract_points("whatever") is None


class TestAnswerPoints:
    def test_checkbox_takes_max(self):
        q = RISK_QUESTIONS_BY_ID["exp-2"]
        assert answer_points(q, ["P/E Ratio / P/B Ratio (+1 point)", "Factor Investment Models (+4 points)"]) == 4

    def test_bare_option_text_resolved(self):
        assert answer_points(RISK_QUESTIONS_BY_ID["psych-1"], "Maintain current positions") == 5

    def test_bare_option_text_variants(self):
        assert answer_points(RISK_QUESTIONS_BY_ID["fin-1"], "50%-80%") == 5
        assert answer_points(RISK_QUESTIONS_BY_ID["psych-1"], "保持现状") == 5
        assert answer_points(RISK_QUESTIONS_BY_ID["psych-3"], "I accept higher volatility for excess returns") == 6
        assert answer_points(RISK_QUESTIONS_BY_ID["goal-1"], "Return 11-15%, Loss ≤20%") == 7

    @pytest.mark.parametrize("answer", ["5", "50", "Maintain", ">"])
    def test_partial_option_text_not_resolved(self, answer):
        assert answer_points(RISK_QUESTIONS_BY_ID["fin-1"], answer) == 0
        assert answer_points(RISK_QUESTIONS_BY_ID["psych-1"], answer) == 0

    def test_blank(self):
        assert answer_points(RISK_QUESTIONS_BY_ID["fin-1"], "") == 0


class TestComponents:
    def test_demographic_modifier(self):
        assert demographic_modifier(SAMPLE_RISK_ANSWERS) == -1
        assert demographic_modifier(top_answers()) == 5

    def test_category_averages_top(self):
        assert category_averages(top_answers()) == {
            "financial": 100.0, "goal": 100.0, "psychological": 100.0, "experience": 100.0,
        }

    def test_missing_category_is_zero(self):
        assert category_averages({})["financial"] == 0.0

    @pytest.mark.parametrize("score,expected", [
        (0, "conservative"), (35, "conservative"), (36, "steady"), (55, "steady"),
        (56, "balanced"), (70, "balanced"), (71, "progressive"), (85, "progressive"),
        (86, "aggressive"), (100, "aggressive"),
    ])
    def test_profile_bands(self, score, expected):
        assert profile_for_score(score) == expected


class TestScoreRiskProfile:
    def test_sample_scenario(self):
        result = score_risk_profile(SAMPLE_RISK_ANSWERS)
        assert result.needs_verification is True
        assert result.needs_warning is False
        assert result.components["pre_penalty_score"] == pytest.approx(75.31, abs=0.01)
        assert result.score == 70
        assert result.score < result.components["pre_penalty_score"]
        assert result.profile_type == "balanced"
        assert result.name == "Balanced"

    def test_top_answers_aggressive(self):
        result = score_risk_profile(top_answers())
        assert result.score == 100
        assert result.profile_type == "aggressive"
        assert not result.needs_verification

    def test_over_50_high_risk_warning(self):
        result = score_risk_profile(top_answers(**{"demo-1": ">50 years (-2 points)"}))
        assert result.needs_warning is True
        assert result.components["preliminary_profile"] == "aggressive"
        assert result.score == 97

    def test_progressive_goal_low_finances_capped(self):
        answers = top_answers(**{
            "fin-1": "<20% (1 point)",
            "fin-2": "<3 months (1 point)",
            "fin-3": ">50% (1 point)",
        })
        result = score_risk_profile(answers)
        assert result.components["pre_penalty_score"] == 70
        assert result.profile_type == "balanced"
        assert result.components["penalties"][0]["rule"] == "progressive_goal_low_financial"

    def test_chinese_labels(self):
        result = score_risk_profile(SAMPLE_RISK_ANSWERS, language="zh")
        assert result.name == "平衡型"

    def test_to_dict(self):
        d = score_risk_profile(SAMPLE_RISK_ANSWERS).to_dict()
        assert d["profile_type"] == "balanced"
        assert "category_averages" in d["components"]


class TestRequiredAnswers:
    def test_complete(self):
        assert check_required_risk_answers(SAMPLE_RISK_ANSWERS) == []

    def test_missing(self):
        answers = {k: v for k, v in SAMPLE_RISK_ANSWERS.items() if k != "goal-2"}
        assert check_required_risk_answers(answers) == ["goal-2"]
