"""
predictor/inference.py

Purpose
-------
Centralizes the local scoring pipeline:

    normalize -> aggregate -> confidence -> classify -> interventions

UI code (Streamlit), the remote dispatcher and the batch evaluation script
all call into this module, so there is exactly one definition of how a
FeatureSet becomes a PredictionResult.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from predictor.features import FEATURE_ORDER, FeatureSet, StudentRecord, normalize, normalize_frame
from predictor.interventions import generate
from predictor.risk import RiskLevel, classify
from predictor.scoring import clamp_score, confidence, feature_contributions
from predictor.variants import ModelVariant, get_variant


logger = logging.getLogger(__name__)

RESULT_COLUMNS: List[str] = [
    "predicted_score",
    "confidence_level",
    "risk_level",
    "intervention_summary",
    "model_version",
    "backend_source",
]


class Provenance(str, Enum):
    LOCAL = "local"        # scored locally on purpose
    REMOTE = "remote"      # returned by the remote backend
    FALLBACK = "fallback"  # scored locally because the remote call failed


@dataclass(frozen=True)
class PredictionResult:
    """
    Output of one scoring call. Immutable; the caller attaches it to a
    persisted prediction row if it wants identity.

    feature_contributions is None when the remote backend produced the score,
    because the remote model does not explain itself.
    """
    predicted_score: float
    confidence_level: float
    risk_level: RiskLevel
    intervention_summary: str
    model_version: str
    provenance: Provenance = Provenance.LOCAL
    feature_contributions: Optional[Dict[str, float]] = field(default=None, compare=False)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "predicted_score": self.predicted_score,
            "confidence_level": self.confidence_level,
            "risk_level": self.risk_level.value,
            "intervention_summary": self.intervention_summary,
            "model_version": self.model_version,
            "backend_source": self.provenance.value,
        }


def predict(
    features: FeatureSet,
    model_version: Optional[str] = None,
    provenance: Provenance = Provenance.LOCAL,
) -> PredictionResult:
    """
    Score a FeatureSet with the local formula.

    Parameters
    ----------
    features : FeatureSet
        Output of `normalize`; already complete and clamped.
    model_version : str, optional
        Variant tag (see predictor.variants.VARIANTS). Defaults to the latest.
    provenance : Provenance
        Tag recorded on the result; the dispatcher passes FALLBACK.

    Returns
    -------
    PredictionResult
        Same input, same output: the local path has no randomness.
    """
    variant = get_variant(model_version)
    return run_pipeline(features, variant, provenance)


def run_pipeline(features: FeatureSet, variant: ModelVariant, provenance: Provenance) -> PredictionResult:
    contributions = feature_contributions(features, variant)
    score = clamp_score(sum(contributions.values()))
    risk = classify(score, features, variant.thresholds)

    return PredictionResult(
        predicted_score=score,
        confidence_level=confidence(features, variant),
        risk_level=risk,
        intervention_summary=generate(features, score, risk, variant.weights.attendance_basis),
        model_version=variant.version,
        provenance=provenance,
        feature_contributions={k: round(v, 4) for k, v in contributions.items()},
    )


def predict_raw(
    raw: Optional[Mapping[str, Any]] = None,
    record: Optional[StudentRecord] = None,
    model_version: Optional[str] = None,
) -> PredictionResult:
    """Convenience: normalize then predict."""
    return predict(normalize(raw, record), model_version)


def score_frame(df: pd.DataFrame, model_version: Optional[str] = None) -> pd.DataFrame:
    """
    Score every row of a student table in real-data mode.

    Parameters
    ----------
    df : pd.DataFrame
        Student table (G1, G2, absences, famrel, ...). Extra columns are fine.
    model_version : str, optional
        Variant tag; defaults to the latest.

    Returns
    -------
    pd.DataFrame
        One row per input row, aligned to df.index, with the normalized
        features followed by the prediction columns.

    Raises
    ------
    ValueError
        If the table lacks the grade columns, or the version is unknown.
    """
    variant = get_variant(model_version)
    clean, warnings = normalize_frame(df)
    for w in warnings:
        logger.warning(w)

    rows: List[Dict[str, Any]] = []
    for _, row in clean.iterrows():
        features = normalize(record=StudentRecord.from_row(row))
        result = run_pipeline(features, variant, Provenance.LOCAL)
        rows.append({**features.as_dict(), **result.as_dict()})

    logger.info("Scored %d students with model %s", len(rows), variant.version)
    return pd.DataFrame(rows, index=df.index, columns=list(FEATURE_ORDER) + RESULT_COLUMNS)
