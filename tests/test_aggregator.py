"""Tests for score aggregation and rating classification."""

import pytest
from decision_checkpoint.aggregator import ScoreAggregator, aggregate, round_half_up
from decision_checkpoint.rating import RATING_ORDER, Rating, classify, shift_rating
from decision_checkpoint.stage_scorers import StageScore


def make_stages(**scores):
    return {int(k.lstrip("s")): StageScore(score=v) for k, v in scores.items()}


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(74.5) == 75
        assert round_half_up(84.5) == 85

    def test_below_half_rounds_down(self):
        assert round_half_up(74.49) == 74


class TestScoreAggregator:
    def setup_method(self):
        self.agg = ScoreAggregator()

    def test_uniform_scores(self):
        stages = {i: StageScore(score=80) for i in range(1, 8)}
        assert self.agg.aggregate(stages) == 80

    def test_full_weighted_total(self):
        stages = make_stages(s1=95, s2=95, s3=100, s4=100, s5=100, s6=80, s7=100)
        assert self.agg.aggregate(stages) == 97

    def test_partial_map_renormalizes(self):
        # (80 * 0.20 + 60 * 0.15) / 0.35 = 71.43
        assert self.agg.aggregate(make_stages(s1=80, s2=60)) == 71

    def test_single_stage(self):
        assert self.agg.aggregate(make_stages(s4=42)) == 42

    def test_result_in_range(self):
        assert self.agg.aggregate(make_stages(s1=0, s2=0)) == 0
        assert self.agg.aggregate({i: StageScore(score=100) for i in range(1, 8)}) == 100

    def test_empty_map_rejected(self):
        with pytest.raises(ValueError):
            self.agg.aggregate({})

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError):
            self.agg.aggregate({9: StageScore(score=50)})

    def test_custom_weights(self):
        assert aggregate(make_stages(s1=100, s2=0), weights={1: 0.5, 2: 0.5}) == 50

    def test_breakdown(self):
        breakdown = self.agg.breakdown(make_stages(s1=50, s4=100))
        assert breakdown == {1: 10.0, 4: 25.0}


class TestClassify:
    @pytest.mark.parametrize("score,expected", [
        (0, Rating.HIGH_RISK),
        (54, Rating.HIGH_RISK),
        (55, Rating.CAUTIOUS),
        (69, Rating.CAUTIOUS),
        (70, Rating.STABLE),
        (84, Rating.STABLE),
        (85, Rating.SYSTEM),
        (100, Rating.SYSTEM),
    ])
    def test_band_boundaries(self, score, expected):
        assert classify(score) == expected

    def test_every_score_has_a_band(self):
        for score in range(0, 101):
            assert classify(score) in RATING_ORDER

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            classify(101)
        with pytest.raises(ValueError):
            classify(-1)

    def test_rating_values(self):
        assert [r.value for r in RATING_ORDER] == ["high-risk", "cautious", "stable", "system"]


class TestShiftRating:
    def test_up_and_down(self):
        assert shift_rating(Rating.CAUTIOUS, 1) == Rating.STABLE
        assert shift_rating(Rating.STABLE, -1) == Rating.CAUTIOUS

    def test_saturates(self):
        assert shift_rating(Rating.SYSTEM, 1) == Rating.SYSTEM
        assert shift_rating(Rating.HIGH_RISK, -1) == Rating.HIGH_RISK
        assert shift_rating(Rating.HIGH_RISK, 10) == Rating.SYSTEM
