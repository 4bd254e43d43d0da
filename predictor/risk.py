"""
predictor/risk.py

Maps a predicted score to a risk tier, then applies escalation overrides.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from predictor.features import FeatureSet
from predictor.variants import Thresholds


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: object) -> "RiskLevel":
        """Case-insensitive parse; raises ValueError for anything else."""
        if isinstance(value, str):
            return cls(value.strip().lower())
        raise ValueError(f"Not a risk level: {value!r}")


def tier_from_score(score: float, thresholds: Thresholds) -> RiskLevel:
    # Cutoffs are exclusive upper bounds: a score equal to a cutoff
    # lands in the lower-risk tier.
    if score < thresholds.high_below:
        return RiskLevel.HIGH
    if score < thresholds.medium_below:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def override_reasons(features: FeatureSet, thresholds: Thresholds) -> List[str]:
    """Every escalation condition that holds for these features."""
    t = thresholds
    reasons: List[str] = []
    if t.override_absences_above is not None and features.absences > t.override_absences_above:
        reasons.append(f"absences above {t.override_absences_above:g}")
    if t.override_sentiment_below is not None and features.emotional_sentiment < t.override_sentiment_below:
        reasons.append(f"emotional sentiment below {t.override_sentiment_below:g}")

    record = features.record
    if record is not None:
        if (
            t.override_record_g2_below is not None
            and record.G2 is not None
            and record.G2 < t.override_record_g2_below
        ):
            reasons.append(f"recorded G2 below {t.override_record_g2_below:g}")
        alcohol = record.alcohol_sum
        if (
            t.override_record_alcohol_above is not None
            and alcohol is not None
            and alcohol > t.override_record_alcohol_above
        ):
            reasons.append(f"recorded alcohol consumption above {t.override_record_alcohol_above:g}")
    return reasons


def classify(score: float, features: FeatureSet, thresholds: Thresholds) -> RiskLevel:
    """
    Score tier, escalated to at least MEDIUM when any override holds.

    Overrides only raise the floor: a score-driven HIGH is never lowered.
    """
    tier = tier_from_score(score, thresholds)
    if tier is RiskLevel.LOW and override_reasons(features, thresholds):
        return RiskLevel.MEDIUM
    return tier
