"""Tests for premium-lens propensity scoring."""

import pytest

from app.services.call_insights import CallInsights, get_readiness_label
from app.services.propensity_service import (
    PropensityInputs,
    PropensityTier,
    compute_propensity_score,
    propensity_inputs_from_insights,
    score_glasses,
    score_impact_scale,
    score_lifestyle,
    score_premium_lens,
    score_readiness,
)


def test_no_signals_is_insufficient():
    result = compute_propensity_score(PropensityInputs())

    assert result.tier == PropensityTier.INSUFFICIENT
    assert result.overall_score == 0
    assert result.label == "Insufficient Data"


def test_one_signal_is_insufficient():
    result = compute_propensity_score(PropensityInputs(premium_lens_value="yes"))

    assert result.tier == PropensityTier.INSUFFICIENT
    assert result.overall_score == 0


def test_two_signals_produce_a_tier():
    result = compute_propensity_score(
        PropensityInputs(premium_lens_value="yes", readiness_value="ready")
    )

    assert result.tier != PropensityTier.INSUFFICIENT
    # (95 * 0.30 + 90 * 0.20) / 0.50 = 93
    assert result.overall_score == 93
    assert result.tier == PropensityTier.HIGH


def test_strong_candidate_scores_high():
    result = compute_propensity_score(
        PropensityInputs(
            impact_scale=10,
            premium_lens_value="yes",
            readiness_value="ready",
            glasses_value="no glasses",
            activities_value="golf tennis swim hike run",
        )
    )

    # 28.5 + 18 + 20 + 13.5 + 14.25
    assert result.overall_score == 94
    assert result.overall_score >= 75
    assert result.tier == PropensityTier.HIGH
    assert result.label == "High Likelihood: Premium Candidate"


def test_low_and_moderate_tiers():
    low = compute_propensity_score(
        PropensityInputs(premium_lens_value="not interested", impact_scale=2)
    )
    moderate = compute_propensity_score(
        PropensityInputs(premium_lens_value="cost concerned", impact_scale=5)
    )

    # (15 * 0.30 + 20 * 0.20) / 0.50 = 17
    assert low.overall_score == 17
    assert low.tier == PropensityTier.LOW
    # (55 * 0.30 + 50 * 0.20) / 0.50 = 53
    assert moderate.overall_score == 53
    assert moderate.tier == PropensityTier.MODERATE


def test_factors_report_every_signal():
    result = compute_propensity_score(PropensityInputs(premium_lens_value="yes", impact_scale=7))

    assert [factor.name for factor in result.factors] == [
        "Premium Lens Interest",
        "Surgical Readiness",
        "Vision Impact",
        "Glasses Independence",
        "Lifestyle Match",
    ]
    assert [factor.score for factor in result.factors] == [95, None, 70, None, None]


class TestSubScores:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Highly Interested", 95),
            ("Leaning Interest", 80),
            ("Cost Concerned", 55),
            ("Neutral", 40),
            ("Not Interested", 15),
            ("I want the best lens", 80),
            ("maybe, if insurance helps", 40),
            ("no thanks", 15),
            ("hmm", 50),
            ("unknown", None),
            ("", None),
            (None, None),
        ],
    )
    def test_premium_lens(self, value, expected):
        assert score_premium_lens(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Not ready yet", 90),
            ("Unsure about timing", 30),
            ("Nervous about it", 30),
            ("Wants to postpone", 20),
            ("Ready to go", 90),
            ("Likely in spring", 70),
            ("Still thinking", 50),
            ("no", 20),
            ("depends on work", 50),
            ("  ", None),
        ],
    )
    def test_readiness(self, value, expected):
        assert score_readiness(value) == expected

    @pytest.mark.parametrize(
        "value,label,expected",
        [
            ("Not ready yet", "Ready", 90),
            ("Leaning towards it", "Leaning Yes", 70),
            ("Unsure about timing", "Not Ready", 30),
        ],
    )
    def test_readiness_score_follows_label_priority(self, value, label, expected):
        assert get_readiness_label(value) == label
        assert score_readiness(value) == expected

    def test_impact_scale(self):
        assert score_impact_scale(None) is None
        assert score_impact_scale(3) == 30
        assert score_impact_scale(10) == 100

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Wants to be glasses-free", 90),
            ("Occasional reading glasses", 75),
            ("Don't mind glasses", 40),
            ("Prefer glasses", 30),
            ("Not sure", 50),
            (None, None),
        ],
    )
    def test_glasses(self, value, expected):
        assert score_glasses(value) == expected

    def test_lifestyle_counts_keyword_hits(self):
        assert score_lifestyle(None, None) is None
        assert score_lifestyle("  ", "") is None
        assert score_lifestyle("watching tv", None) == 25
        assert score_lifestyle("golf", None) == 45
        assert score_lifestyle("golf", "travel") == 65
        assert score_lifestyle("golf and tennis", "travel") == 80
        assert score_lifestyle("golf tennis swim hike", "travel") == 95


def test_inputs_from_insights():
    insights = CallInsights(
        premium_lens_value="yes",
        readiness_value="ready",
        impact_scale=6,
        glasses_preference="no glasses",
        activities="golf",
        hobbies="fishing",
    )

    inputs = propensity_inputs_from_insights(insights)

    assert inputs == PropensityInputs(
        premium_lens_value="yes",
        readiness_value="ready",
        impact_scale=6,
        glasses_value="no glasses",
        activities_value="golf",
        hobbies_value="fishing",
    )
