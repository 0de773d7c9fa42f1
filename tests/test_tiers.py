"""Deterministic tests for the confirmation tier state machine."""

import itertools

import pytest

from switchcx.strategy.models import TimeframeCriteria, TimeframeScore
from switchcx.strategy.tiers import calculate_confirmation_tier


TRENDS = ("bullish", "bearish", "ranging")


def _scores(s4h: int, s1h: int, s15m: int, s5m: int) -> list[TimeframeScore]:
    return [
        TimeframeScore(timeframe=tf, score=s, criteria=TimeframeCriteria(), adx_value=0.0)
        for tf, s in zip(("4h", "1h", "15m", "5m"), (s4h, s1h, s15m, s5m))
    ]


class TestStrongTimeframes:
    def test_lower_timeframes_agree_is_tier_3_aggressive(self):
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2), "bullish", "bullish", "bullish", "bullish",
        )
        assert result.tier == 3
        assert result.mode == "aggressive"
        assert result.debug_info.strong_timeframes == 4
        assert result.debug_info.conservative_mode is True
        assert result.debug_info.full_alignment is True

    def test_5m_ranging_is_tier_3_conservative(self):
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2), "bullish", "bullish", "bullish", "ranging",
        )
        assert result.tier == 3
        assert result.mode == "conservative"
        assert result.debug_info.aggressive_mode is False

    def test_5m_opposing_caps_at_tier_2(self):
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2), "bullish", "bullish", "bullish", "bearish",
        )
        assert result.tier == 2
        assert result.mode == "conservative"
        assert result.debug_info.conservative_5m_opposing is True
        assert result.debug_info.full_alignment is False

    def test_strong_without_any_alignment_is_tier_1(self):
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2), "bullish", "bearish", "bullish", "bearish",
        )
        assert result.tier == 1
        assert result.mode == "none"
        assert result.debug_info.partial_alignment is False

    def test_partial_alignment_without_mode_is_tier_1(self):
        # 15m/5m agree but neither mode is aligned
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2), "bullish", "bearish", "bullish", "bullish",
        )
        assert result.tier == 1
        assert result.mode == "none"
        assert result.debug_info.partial_alignment is True

    def test_two_strong_aggressive_is_tier_2(self):
        result = calculate_confirmation_tier(
            _scores(0, 2, 2, 0), "ranging", "bearish", "bearish", "bearish",
        )
        assert result.tier == 2
        assert result.mode == "aggressive"


class TestWeakerScores:
    def test_aligned_mode_with_low_scores_is_tier_2(self):
        result = calculate_confirmation_tier(
            _scores(0, 0, 0, 0), "bullish", "bullish", "ranging", "ranging",
        )
        assert result.tier == 2
        assert result.mode == "conservative"

    def test_aligned_mode_with_relaxed_scores_is_tier_3(self):
        result = calculate_confirmation_tier(
            _scores(3, 1, 1, 1), "bearish", "bearish", "ranging", "ranging",
        )
        assert result.tier == 3
        assert result.mode == "conservative"
        assert result.debug_info.full_alignment is True

    def test_opposing_5m_in_weak_branch(self):
        result = calculate_confirmation_tier(
            _scores(0, 1, 1, 1), "bullish", "bullish", "ranging", "bearish",
        )
        assert result.tier == 2
        assert result.mode == "conservative"

    def test_nothing_aligned_is_tier_0(self):
        result = calculate_confirmation_tier(
            _scores(1, 1, 1, 1), "bullish", "bearish", "ranging", "bullish",
        )
        assert result.tier == 0
        assert result.mode == "none"


class TestInputs:
    def test_missing_score_is_tier_0(self):
        result = calculate_confirmation_tier(
            _scores(3, 2, 2, 2)[:3], "bullish", "bullish", "bullish", "bullish",
        )
        assert result.tier == 0
        assert result.mode == "none"

    def test_accepts_mapping(self):
        scores = {s.timeframe: s for s in _scores(3, 2, 2, 2)}
        result = calculate_confirmation_tier(
            scores, "bullish", "bullish", "bullish", "bullish",
        )
        assert result.tier == 3

    def test_order_of_scores_does_not_matter(self):
        scores = _scores(3, 2, 2, 2)
        a = calculate_confirmation_tier(scores, "bullish", "bullish", "bullish", "ranging")
        b = calculate_confirmation_tier(
            list(reversed(scores)), "bullish", "bullish", "bullish", "ranging",
        )
        assert a == b


class TestTierProperties:
    @pytest.mark.parametrize("trends", list(itertools.product(TRENDS, repeat=4)))
    def test_mode_and_tier_are_consistent(self, trends):
        for score_combo in itertools.product(range(4), repeat=4):
            result = calculate_confirmation_tier(_scores(*score_combo), *trends)
            assert 0 <= result.tier <= 4
            if result.mode == "none":
                assert result.tier <= 1
            if result.tier >= 3:
                assert result.mode != "none"
                assert result.debug_info.full_alignment
            if result.debug_info.conservative_5m_opposing:
                assert result.tier <= 2
