"""Premium-lens propensity scoring.

Turns the free-text answers a patient gave during the call into a 0-100
estimate of how likely they are to choose a premium lens. Each signal is
scored independently; only the signals that are present take part in the
weighted average.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from app.services.call_insights import CallInsights


class PropensityTier(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    INSUFFICIENT = "insufficient"


TIER_LABELS = {
    PropensityTier.HIGH: "High Likelihood: Premium Candidate",
    PropensityTier.MODERATE: "Moderate Interest: Follow Up Recommended",
    PropensityTier.LOW: "Low Propensity: Standard IOL Likely",
    PropensityTier.INSUFFICIENT: "Insufficient Data",
}

PREMIUM_LENS_WEIGHT = 0.30
READINESS_WEIGHT = 0.20
IMPACT_SCALE_WEIGHT = 0.20
GLASSES_WEIGHT = 0.15
LIFESTYLE_WEIGHT = 0.15

MIN_SIGNALS = 2
HIGH_THRESHOLD = 75
MODERATE_THRESHOLD = 45

DEFAULT_SUBSCORE = 50

LIFESTYLE_KEYWORDS = (
    "golf",
    "tennis",
    "swim",
    "hik",
    "run",
    "cycl",
    "travel",
    "driv",
    "read",
    "comput",
    "screen",
    "garden",
    "cook",
    "paint",
    "photograph",
    "fish",
    "yoga",
    "gym",
    "exercise",
    "sport",
    "outdoor",
    "active",
    "craft",
    "sew",
    "knit",
    "bird",
    "hunt",
    "sail",
    "ski",
    "grandchild",
)

# Ordered (pattern, score) rules; the first matching rule wins.
PREMIUM_LENS_BUCKETS = (
    ("highly interested", 95),
    ("leaning interest", 80),
    ("cost concerned", 55),
    ("neutral", 40),
    ("not interested", 15),
)
PREMIUM_LENS_RULES = (
    (re.compile(r"\b(yes|very interested|definitely|absolutely|high)\b"), 95),
    (re.compile(r"\b(interested|want|keen|leaning)\b"), 80),
    (re.compile(r"\b(cost|afford|budget|price|expensive)\b"), 55),
    (re.compile(r"\b(maybe|considering|open|possibly|curious|unsure)\b"), 40),
    (re.compile(r"\b(no|declined|standard|basic)\b"), 15),
)
READINESS_RULES = (
    (re.compile(r"\b(ready|scheduled|decided|yes|asap|immediately)\b"), 90),
    (re.compile(r"\b(leaning|likely|soon|considering surgery|almost)\b"), 70),
    (re.compile(r"\b(thinking|exploring|researching|maybe)\b"), 50),
    (re.compile(r"\b(not ready|undecided|unsure|hesitant|nervous)\b"), 30),
    (re.compile(r"\b(no|refusing|not interested|postpone)\b"), 20),
)
GLASSES_RULES = (
    (re.compile(r"no glasses|glasses[- ]free|without glasses|independen|rid of"), 90),
    (re.compile(r"reading only|minimal|occasional|less|reduce"), 75),
    (re.compile(r"don'?t mind|okay with|ok with|fine with"), 40),
    (re.compile(r"prefer glasses|keep (my |wearing )?glasses|happy with (my )?glasses"), 30),
)


@dataclass(frozen=True)
class PropensityInputs:
    premium_lens_value: str | None = None
    readiness_value: str | None = None
    impact_scale: int | None = None
    glasses_value: str | None = None
    activities_value: str | None = None
    hobbies_value: str | None = None


@dataclass(frozen=True)
class PropensityFactor:
    name: str
    weight: float
    score: int | None


@dataclass(frozen=True)
class PropensityResult:
    overall_score: int
    tier: PropensityTier
    label: str
    factors: list[PropensityFactor] = field(default_factory=list)


def _first_rule(text: str, rules) -> int:
    for pattern, score in rules:
        if pattern.search(text):
            return score
    return DEFAULT_SUBSCORE


def score_premium_lens(value: str | None) -> int | None:
    if not value or not value.strip():
        return None
    lower = value.lower().strip()
    if lower == "unknown":
        return None
    for bucket, score in PREMIUM_LENS_BUCKETS:
        if bucket in lower:
            return score
    return _first_rule(lower, PREMIUM_LENS_RULES)


def score_readiness(value: str | None) -> int | None:
    if not value or not value.strip():
        return None
    return _first_rule(value.lower(), READINESS_RULES)


def score_impact_scale(scale: int | None) -> int | None:
    if scale is None:
        return None
    return min(scale * 10, 100)


def score_glasses(value: str | None) -> int | None:
    if not value or not value.strip():
        return None
    return _first_rule(value.lower(), GLASSES_RULES)


def score_lifestyle(activities: str | None, hobbies: str | None) -> int | None:
    """Count vocabulary hits across activities and hobbies.

    Empty combined text is no signal; text with zero hits still scores 25.
    """
    combined = f"{activities or ''} {hobbies or ''}".lower()
    if not combined.strip():
        return None
    matches = sum(1 for keyword in LIFESTYLE_KEYWORDS if keyword in combined)
    if matches >= 5:
        return 95
    if matches >= 3:
        return 80
    if matches >= 2:
        return 65
    if matches >= 1:
        return 45
    return 25


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _tier_for(score: int) -> PropensityTier:
    if score >= HIGH_THRESHOLD:
        return PropensityTier.HIGH
    if score >= MODERATE_THRESHOLD:
        return PropensityTier.MODERATE
    return PropensityTier.LOW


def compute_propensity_score(inputs: PropensityInputs) -> PropensityResult:
    factors = [
        PropensityFactor(
            "Premium Lens Interest",
            PREMIUM_LENS_WEIGHT,
            score_premium_lens(inputs.premium_lens_value),
        ),
        PropensityFactor("Surgical Readiness", READINESS_WEIGHT, score_readiness(inputs.readiness_value)),
        PropensityFactor("Vision Impact", IMPACT_SCALE_WEIGHT, score_impact_scale(inputs.impact_scale)),
        PropensityFactor("Glasses Independence", GLASSES_WEIGHT, score_glasses(inputs.glasses_value)),
        PropensityFactor(
            "Lifestyle Match",
            LIFESTYLE_WEIGHT,
            score_lifestyle(inputs.activities_value, inputs.hobbies_value),
        ),
    ]

    present = [factor for factor in factors if factor.score is not None]
    if len(present) < MIN_SIGNALS:
        return PropensityResult(
            overall_score=0,
            tier=PropensityTier.INSUFFICIENT,
            label=TIER_LABELS[PropensityTier.INSUFFICIENT],
            factors=factors,
        )

    total_weight = sum(factor.weight for factor in present)
    weighted = sum(factor.score * (factor.weight / total_weight) for factor in present)
    overall = _round_half_up(weighted)
    tier = _tier_for(overall)
    return PropensityResult(overall_score=overall, tier=tier, label=TIER_LABELS[tier], factors=factors)


def propensity_inputs_from_insights(insights: CallInsights) -> PropensityInputs:
    return PropensityInputs(
        premium_lens_value=insights.premium_lens_value,
        readiness_value=insights.readiness_value,
        impact_scale=insights.impact_scale,
        glasses_value=insights.glasses_preference,
        activities_value=insights.activities,
        hobbies_value=insights.hobbies,
    )
