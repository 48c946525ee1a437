"""Tests for merging augmentation results into stage scores."""

import pytest
from decision_checkpoint.analysis import SOURCE_SERVICE, AugmentationKind, AugmentationResult
from decision_checkpoint.integrator import apply_augmentation, integrate, score_adjustment
from decision_checkpoint.stage_scorers import StageScore

LOGIC = AugmentationKind.LOGIC_CONSISTENCY
RISK = AugmentationKind.RISK_CONSISTENCY
BIAS = AugmentationKind.COGNITIVE_BIAS


def make_result(kind=RISK, score=5.0, conflicts=(), suggestions=()):
    return AugmentationResult(
        kind=kind,
        consistency_score=score,
        conflict_points=tuple(conflicts),
        suggestions=tuple(suggestions),
        reasoning_path="test",
        source=SOURCE_SERVICE,
    )


class TestScoreAdjustment:
    @pytest.mark.parametrize("consistency,expected", [
        (5.0, 0),
        (10.0, 15),
        (0.0, -15),
        (6.0, 3),
        (4.0, -3),
        (7.5, 8),
        (8.5, 11),
    ])
    def test_linear_mapping(self, consistency, expected):
        assert score_adjustment(consistency) == expected

    def test_bounded(self):
        assert score_adjustment(12.0) == 15
        assert score_adjustment(-4.0) == -15


class TestApplyAugmentation:
    def test_score_moves_and_clamps(self):
        assert apply_augmentation(StageScore(score=95), make_result(score=10.0)).score == 100
        assert apply_augmentation(StageScore(score=10), make_result(score=0.0)).score == 0

    def test_first_two_conflicts_become_weaknesses(self):
        stage = StageScore(score=70, weaknesses=("Existing.",))
        merged = apply_augmentation(stage, make_result(conflicts=["a", "b", "c"]))
        assert merged.weaknesses == ("Existing.", "Risk review: a", "Risk review: b")

    def test_details_recorded(self):
        merged = apply_augmentation(StageScore(score=70), make_result(score=6.0, suggestions=["s"]))
        details = merged.augmentation_details
        assert details["adjustment"] == 3
        assert details["suggestions"] == ["s"]
        assert details["source"] == "service"
        assert details["kind"] == "risk-consistency"

    def test_input_not_modified(self):
        stage = StageScore(score=70)
        apply_augmentation(stage, make_result(score=10.0, conflicts=["a"]))
        assert stage.score == 70
        assert stage.weaknesses == ()
        assert stage.augmentation_details is None


class TestIntegrate:
    def setup_method(self):
        self.stages = {i: StageScore(score=70) for i in range(1, 8)}

    def test_targets_stages_3_4_6(self):
        results = {k: make_result(kind=k, score=10.0) for k in AugmentationKind}
        merged = integrate(self.stages, results)
        assert {k: v.score for k, v in merged.items()} == {1: 70, 2: 70, 3: 85, 4: 85, 5: 70, 6: 85, 7: 70}

    def test_returns_new_map(self):
        merged = integrate(self.stages, {LOGIC: make_result(kind=LOGIC, score=0.0)})
        assert merged is not self.stages
        assert self.stages[3].score == 70
        assert merged[3].score == 55

    def test_skips_absent_stage(self):
        merged = integrate({1: StageScore(score=70)}, {BIAS: make_result(kind=BIAS, score=10.0)})
        assert list(merged) == [1]

    def test_weakness_prefix_per_kind(self):
        merged = integrate(self.stages, {BIAS: make_result(kind=BIAS, conflicts=["herding"])})
        assert merged[6].weaknesses == ("Bias review: herding",)
