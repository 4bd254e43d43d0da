"""
predictor/records.py

Payloads for the persistence collaborator: one `predictions` row per scoring
call and, when risk is elevated, one `alerts` row. Building them is the only
part of persistence this package owns; inserting them is up to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from predictor.features import FeatureSet
from predictor.inference import PredictionResult
from predictor.risk import RiskLevel
from predictor.variants import ModelVariant


ALERT_TYPE = "performance_risk"


def prediction_record(student_id: Optional[str], features: FeatureSet, result: PredictionResult) -> Dict[str, Any]:
    """Row for the `predictions` table: features, result and provenance."""
    row: Dict[str, Any] = {"student_id": student_id}
    row.update(features.as_dict())
    row.update(result.as_dict())

    if result.feature_contributions is not None:
        row["shap_explanation"] = {
            "features": dict(result.feature_contributions),
            "total_contribution": round(sum(result.feature_contributions.values()), 4),
        }
    else:
        row["shap_explanation"] = None
    return row


def alert_record(
    student_id: Optional[str],
    result: PredictionResult,
    variant: ModelVariant,
    prediction_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Row for the `alerts` table, or None when no alert is due.

    High risk always alerts; medium risk alerts only for variants that set
    `alert_on_medium`.
    """
    risk = result.risk_level
    if risk is RiskLevel.LOW or (risk is RiskLevel.MEDIUM and not variant.alert_on_medium):
        return None

    message = (
        f"{risk.value.upper()} RISK: Student {student_id or 'unknown'} predicted score "
        f"{result.predicted_score}/20. {result.intervention_summary}"
    )
    return {
        "student_id": student_id,
        "prediction_id": prediction_id,
        "alert_type": ALERT_TYPE,
        "severity": risk.value,
        "message": message,
        "is_resolved": False,
    }
