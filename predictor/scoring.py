"""
predictor/scoring.py

Score aggregation and confidence estimation.

Both are pure functions of (FeatureSet, ModelVariant). The aggregate is left
unbounded on purpose; `clamp_score` is the only place a score is bounded.
"""

from __future__ import annotations

import math
from typing import Dict, List

from predictor.features import FeatureSet
from predictor.variants import AttendanceBasis, ModelVariant, StudyTransform


SCORE_MIN = 0.0
SCORE_MAX = 20.0

# Reference points for the confidence variance proxy.
NEUTRAL_SENTIMENT = 0.5
BASELINE_EFFORT = 5.5


def feature_contributions(features: FeatureSet, variant: ModelVariant) -> Dict[str, float]:
    """
    Weighted contribution of every active term, keyed by term name.

    Terms with a zero weight are left out, so the keys also tell you which
    parts of the formula a variant uses. The values sum to the raw score.
    """
    w = variant.weights
    f = features
    out: Dict[str, float] = {}

    def add(name: str, weight: float, value: float) -> None:
        if weight:
            out[name] = weight * value

    # --- academic base
    add("g1", w.g1, f.g1)
    add("g2", w.g2, f.g2)

    # --- study time (log = diminishing returns)
    if w.study_transform is StudyTransform.LOG:
        add("studytime", w.study, math.log1p(f.studytime))
    else:
        add("studytime", w.study, f.studytime)

    # --- attendance
    if w.attendance_basis is AttendanceBasis.RATE:
        add("attendance_rate", w.attendance, f.attendance_rate / 100.0)
    else:
        add("absences", w.attendance, w.absence_reference - f.absences)

    # --- engagement
    add("effort_score", w.effort, f.effort_score ** w.effort_exponent)
    add("emotional_sentiment", w.emotional, f.emotional_sentiment)
    add("participation_index", w.participation, f.participation_index)
    add("motivation_level", w.motivation, f.motivation_level)
    add("stress_level", w.stress, f.stress_level)

    # --- grade trend: fixed bonus / penalty, zero when flat
    if w.trend_bonus or w.trend_penalty:
        if f.g2 > f.g1:
            out["grade_trend"] = w.trend_bonus
        elif f.g2 < f.g1:
            out["grade_trend"] = -w.trend_penalty
        else:
            out["grade_trend"] = 0.0

    add("synergy", w.synergy, f.emotional_sentiment * f.effort_score)

    if w.generic:
        scored = [g.normalized() for g in f.extras]
        scored = [v for v in scored if v is not None]
        if scored:
            out["generic_analytics"] = w.generic * (sum(scored) / len(scored) - 0.5)

    if w.demographics is not None and f.record is not None:
        out.update(_demographic_terms(features, variant))

    return out


def _demographic_terms(features: FeatureSet, variant: ModelVariant) -> Dict[str, float]:
    d = variant.weights.demographics
    record = features.record
    out: Dict[str, float] = {}

    low, high = d.optimal_age
    out["age"] = d.age_bonus if low <= features.age <= high else 0.0

    if record.parent_education is not None:
        out["parent_education"] = d.parent_education * record.parent_education

    # centred on the neutral point of each 1-5 scale
    out["family_support"] = d.family_relationship * (features.family_support - 3.0)
    out["health_score"] = d.health * (features.health_score - 3.0)
    # peaks at a moderate going-out frequency
    out["social_activity"] = d.social_peak - d.social_falloff * abs(features.social_activity - 3.0)
    out["alcohol_consumption"] = d.alcohol * features.alcohol_consumption
    return out


def aggregate(features: FeatureSet, variant: ModelVariant) -> float:
    """Raw (unclamped) predicted score."""
    return sum(feature_contributions(features, variant).values())


def clamp_score(raw: float) -> float:
    return round(max(SCORE_MIN, min(SCORE_MAX, raw)), 2)


def variance_proxy(features: FeatureSet, variant: ModelVariant) -> float:
    """Average of per-feature instability measures (0 = perfectly stable)."""
    f = features
    parts: List[float] = [
        abs(f.g2 - f.g1) / 2.0,
        f.absences / 5.0,
        abs(f.emotional_sentiment - NEUTRAL_SENTIMENT) * 10.0,
        abs(f.effort_score - BASELINE_EFFORT),
        0.0 if f.has_record else variant.confidence.no_record_penalty,
    ]
    return sum(parts) / len(parts)


def confidence_from_variance(
    proxy: float,
    participation_index: float,
    has_record: bool,
    variant: ModelVariant,
) -> float:
    """Confidence in [0, 100]; non-increasing in `proxy` for fixed other inputs."""
    c = variant.confidence
    base = c.base_with_record if has_record else c.base_without_record
    value = base - c.variance_scale * max(0.0, proxy) + c.participation_boost * participation_index
    value = min(c.ceiling, value)
    return round(max(0.0, min(100.0, value)), 2)


def confidence(features: FeatureSet, variant: ModelVariant) -> float:
    return confidence_from_variance(
        variance_proxy(features, variant),
        features.participation_index,
        features.has_record,
        variant,
    )
