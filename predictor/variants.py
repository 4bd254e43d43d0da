"""
predictor/variants.py

The scoring formula went through several reformulations. Rather than keep one
copy of the code per version, each version is a frozen table of weights and
thresholds and the scoring functions read whichever table is selected by its
`model_version` tag. Older tables stay available so historical predictions
can be reproduced.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class StudyTransform(str, Enum):
    LINEAR = "linear"
    LOG = "log"


class AttendanceBasis(str, Enum):
    RATE = "attendance_rate"  # rewards a high attendance percentage
    ABSENCES = "absences"     # penalizes absences below a reference count


@dataclass(frozen=True)
class DemographicWeights:
    """Terms that only apply when a real student record backs the features."""
    optimal_age: Tuple[float, float] = (15.0, 18.0)
    age_bonus: float = 0.3
    parent_education: float = 0.15
    family_relationship: float = 0.1
    health: float = 0.08
    social_peak: float = 0.3
    social_falloff: float = 0.15
    alcohol: float = -0.2


@dataclass(frozen=True)
class Weights:
    g1: float
    g2: float
    study: float
    study_transform: StudyTransform
    attendance: float
    attendance_basis: AttendanceBasis
    effort: float
    emotional: float
    participation: float
    absence_reference: float = 10.0
    effort_exponent: float = 1.0
    motivation: float = 0.0
    stress: float = 0.0
    trend_bonus: float = 0.0
    trend_penalty: float = 0.0
    synergy: float = 0.0
    generic: float = 0.0
    demographics: Optional[DemographicWeights] = None


@dataclass(frozen=True)
class Thresholds:
    """Score cutoffs (exclusive upper bounds) and risk override conditions.

    An override set to None is disabled for the variant.
    """
    high_below: float
    medium_below: float
    override_absences_above: Optional[float] = None
    override_sentiment_below: Optional[float] = None
    override_record_g2_below: Optional[float] = None
    override_record_alcohol_above: Optional[float] = None


@dataclass(frozen=True)
class ConfidenceParams:
    base_with_record: float
    base_without_record: float
    variance_scale: float = 0.0
    participation_boost: float = 0.0
    no_record_penalty: float = 0.0
    ceiling: float = 100.0


@dataclass(frozen=True)
class ModelVariant:
    version: str
    description: str
    weights: Weights
    thresholds: Thresholds
    confidence: ConfidenceParams
    alert_on_medium: bool = False


VARIANTS: Dict[str, ModelVariant] = {
    "v1.0": ModelVariant(
        version="v1.0",
        description="Linear form with an absence-based attendance term.",
        weights=Weights(
            g1=0.3, g2=0.35,
            study=1.2, study_transform=StudyTransform.LINEAR,
            attendance=0.4, attendance_basis=AttendanceBasis.ABSENCES, absence_reference=10.0,
            effort=0.8, emotional=5.0, participation=0.6,
        ),
        thresholds=Thresholds(high_below=10.0, medium_below=14.0),
        # The first form drew a random 70-100 "confidence"; fixed at its midpoint.
        confidence=ConfidenceParams(base_with_record=85.0, base_without_record=85.0),
    ),
    "v2.0": ModelVariant(
        version="v2.0",
        description="Log study time, attendance rate, motivation and stress terms.",
        weights=Weights(
            g1=0.3, g2=0.4,
            study=2.5, study_transform=StudyTransform.LOG,
            attendance=3.0, attendance_basis=AttendanceBasis.RATE,
            effort=0.8, emotional=4.0, participation=0.0,
            motivation=0.5, stress=-2.0,
        ),
        thresholds=Thresholds(high_below=8.0, medium_below=12.0),
        confidence=ConfidenceParams(
            base_with_record=70.0, base_without_record=70.0,
            participation_boost=2.0, ceiling=95.0,
        ),
    ),
    "v3.0": ModelVariant(
        version="v3.0",
        description="Adds the grade-trend adjustment and the absence override.",
        weights=Weights(
            g1=0.3, g2=0.4,
            study=2.2, study_transform=StudyTransform.LOG,
            attendance=2.5, attendance_basis=AttendanceBasis.RATE,
            effort=0.6, emotional=3.0, participation=0.2,
            motivation=0.3, stress=-2.0,
            trend_bonus=0.5, trend_penalty=0.5,
        ),
        thresholds=Thresholds(high_below=8.0, medium_below=12.0, override_absences_above=10.0),
        confidence=ConfidenceParams(
            base_with_record=75.0, base_without_record=75.0,
            participation_boost=2.0, ceiling=95.0,
        ),
    ),
    "v4.0": ModelVariant(
        version="v4.0",
        description="Power-law effort, sentiment x effort synergy, variance-based confidence.",
        weights=Weights(
            g1=0.25, g2=0.45,
            study=2.0, study_transform=StudyTransform.LOG,
            attendance=2.0, attendance_basis=AttendanceBasis.RATE,
            effort=0.12, effort_exponent=1.3,
            emotional=2.5, participation=0.15,
            motivation=0.15, stress=-1.5,
            trend_bonus=0.8, trend_penalty=0.8,
            synergy=0.1,
        ),
        thresholds=Thresholds(
            high_below=8.0, medium_below=12.0,
            override_absences_above=8.0, override_sentiment_below=0.3,
        ),
        confidence=ConfidenceParams(
            base_with_record=90.0, base_without_record=85.0,
            variance_scale=3.0, participation_boost=0.5, no_record_penalty=3.0,
        ),
    ),
    "v5.0": ModelVariant(
        version="v5.0",
        description="Adds demographic, family and social terms for record-backed students.",
        weights=Weights(
            g1=0.25, g2=0.45,
            study=1.8, study_transform=StudyTransform.LOG,
            attendance=2.0, attendance_basis=AttendanceBasis.RATE,
            effort=0.12, effort_exponent=1.3,
            emotional=2.0, participation=0.15,
            motivation=0.1, stress=-1.5,
            trend_bonus=0.8, trend_penalty=0.8,
            synergy=0.1,
            demographics=DemographicWeights(),
        ),
        thresholds=Thresholds(
            high_below=8.0, medium_below=12.0,
            override_absences_above=8.0, override_sentiment_below=0.3,
            override_record_g2_below=10.0, override_record_alcohol_above=6.0,
        ),
        confidence=ConfidenceParams(
            base_with_record=95.0, base_without_record=85.0,
            variance_scale=3.0, participation_boost=0.5, no_record_penalty=3.0,
        ),
        alert_on_medium=True,
    ),
    "v6.0": ModelVariant(
        version="v6.0",
        description="v5.0 plus scored generic analytics.",
        weights=Weights(
            g1=0.25, g2=0.45,
            study=1.8, study_transform=StudyTransform.LOG,
            attendance=2.0, attendance_basis=AttendanceBasis.RATE,
            effort=0.12, effort_exponent=1.3,
            emotional=2.0, participation=0.15,
            motivation=0.1, stress=-1.5,
            trend_bonus=0.8, trend_penalty=0.8,
            synergy=0.1,
            generic=1.0,
            demographics=DemographicWeights(),
        ),
        thresholds=Thresholds(
            high_below=8.0, medium_below=12.0,
            override_absences_above=8.0, override_sentiment_below=0.3,
            override_record_g2_below=10.0, override_record_alcohol_above=6.0,
        ),
        confidence=ConfidenceParams(
            base_with_record=95.0, base_without_record=85.0,
            variance_scale=3.0, participation_boost=0.5, no_record_penalty=3.0,
        ),
        alert_on_medium=True,
    ),
}

LATEST_VERSION = "v6.0"


def get_variant(model_version: Optional[str] = None) -> ModelVariant:
    """Look up a variant by tag; None selects the latest."""
    version = model_version or LATEST_VERSION
    try:
        return VARIANTS[version]
    except KeyError:
        raise ValueError(
            f"Unknown model_version '{version}'. Available: {sorted(VARIANTS)}"
        ) from None
