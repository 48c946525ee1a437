"""Tests for the recommendation generator."""

import pytest
from decision_checkpoint import stage_scorers as s
from decision_checkpoint.recommendations import (
    BASELINE,
    LONG_HORIZON_ADVICE,
    SHORT_HORIZON_ADVICE,
    WEAKNESS_ADVICE,
    augmentation_suggestions,
    contextual_advice,
    dedupe,
    recommend,
)
from decision_checkpoint.rating import Rating
from decision_checkpoint.samples import SPECULATIVE_ANSWERS, SYSTEMATIC_ANSWERS
from decision_checkpoint.stage_scorers import StageScore, score_all_stages


def weakness_constants():
    return [v for k, v in vars(s).items() if k.isupper() and isinstance(v, str) and v.endswith(".")]


class TestLookupTables:
    def test_baseline_for_every_rating(self):
        assert set(BASELINE) == set(Rating)

    def test_every_weakness_has_advice(self):
        for weakness in weakness_constants():
            assert weakness in WEAKNESS_ADVICE, weakness


class TestDedupe:
    def test_first_occurrence_wins(self):
        assert dedupe(["a", "b", "a", "c"]) == ["a", "b", "c"]

    def test_limit(self):
        assert dedupe(["a", "b", "c"], limit=2) == ["a", "b"]


class TestContextualAdvice:
    def test_long_horizon(self):
        assert contextual_advice(SYSTEMATIC_ANSWERS) == [LONG_HORIZON_ADVICE[0]]

    def test_short_horizon_high_liquidity(self):
        advice = contextual_advice(SPECULATIVE_ANSWERS)
        assert advice[0] == SHORT_HORIZON_ADVICE[0]
        assert len(advice) == 2

    def test_chinese(self):
        assert contextual_advice(SYSTEMATIC_ANSWERS, language="zh") == [LONG_HORIZON_ADVICE[1]]


class TestRecommend:
    def test_systematic_plan(self):
        recs = recommend(Rating.SYSTEM, score_all_stages(SYSTEMATIC_ANSWERS), SYSTEMATIC_ANSWERS)
        assert recs == [BASELINE[Rating.SYSTEM][0], LONG_HORIZON_ADVICE[0]]

    def test_baseline_first_then_notes(self):
        recs = recommend(Rating.HIGH_RISK, score_all_stages(SPECULATIVE_ANSWERS), SPECULATIVE_ANSWERS,
                         notes=["Adjustment: test note"])
        assert recs[0] == BASELINE[Rating.HIGH_RISK][0]
        assert recs[1] == "Adjustment: test note"

    def test_capped_and_unique(self):
        recs = recommend(Rating.HIGH_RISK, score_all_stages(SPECULATIVE_ANSWERS), SPECULATIVE_ANSWERS)
        assert len(recs) == 7
        assert len(set(recs)) == len(recs)

    def test_custom_limit(self):
        recs = recommend(Rating.HIGH_RISK, score_all_stages(SPECULATIVE_ANSWERS), SPECULATIVE_ANSWERS, limit=3)
        assert len(recs) == 3

    def test_weakness_advice_included(self):
        stages = {3: StageScore(score=40, weaknesses=(s.STOP_LOSS_MISSING,))}
        recs = recommend(Rating.CAUTIOUS, stages, {})
        assert WEAKNESS_ADVICE[s.STOP_LOSS_MISSING][0] in recs

    def test_duplicate_weaknesses_collapse(self):
        stages = {
            3: StageScore(score=40, weaknesses=(s.STOP_LOSS_MISSING,)),
            4: StageScore(score=40, weaknesses=(s.STOP_LOSS_MISSING,)),
        }
        recs = recommend(Rating.CAUTIOUS, stages, {})
        assert recs.count(WEAKNESS_ADVICE[s.STOP_LOSS_MISSING][0]) == 1

    def test_chinese_baseline(self):
        recs = recommend(Rating.STABLE, {}, {}, language="zh")
        assert recs == [BASELINE[Rating.STABLE][1]]


class TestAugmentationSuggestions:
    def test_prefixed_by_stage(self):
        stages = {
            4: StageScore(score=70, augmentation_details={"suggestions": ["Cap losses at 10%"]}),
            6: StageScore(score=70, augmentation_details={"suggestions": ["Keep a journal"]}),
        }
        assert augmentation_suggestions(stages) == [
            "Risk suggestion: Cap losses at 10%",
            "Bias suggestion: Keep a journal",
        ]

    def test_ignores_unaugmented_stages(self):
        assert augmentation_suggestions({3: StageScore(score=70)}) == []
