"""
Tests for the predictions/alerts row builders.
"""

import pytest

from predictor.features import normalize
from predictor.inference import PredictionResult, Provenance, predict
from predictor.records import ALERT_TYPE, alert_record, prediction_record
from predictor.risk import RiskLevel
from predictor.variants import get_variant


def make_result(risk, score=9.0, contributions=None):
    return PredictionResult(
        predicted_score=score,
        confidence_level=80.0,
        risk_level=risk,
        intervention_summary="Immediate attention required.",
        model_version="v6.0",
        provenance=Provenance.LOCAL,
        feature_contributions=contributions,
    )


class TestPredictionRecord:

    def test_local_row_carries_explanation(self):
        features = normalize({"g1": 10, "g2": 12})
        result = predict(features)
        row = prediction_record("S200001", features, result)

        assert row["student_id"] == "S200001"
        assert row["g2"] == 12
        assert row["predicted_score"] == result.predicted_score
        assert row["backend_source"] == "local"
        explanation = row["shap_explanation"]
        assert set(explanation["features"]) == set(result.feature_contributions)
        assert explanation["total_contribution"] == pytest.approx(
            sum(result.feature_contributions.values()), abs=1e-3
        )

    def test_remote_row_has_no_explanation(self):
        row = prediction_record(None, normalize(), make_result(RiskLevel.LOW, 14.0))
        assert row["shap_explanation"] is None
        assert row["student_id"] is None


class TestAlertRecord:

    def test_low_risk_never_alerts(self):
        assert alert_record("S1", make_result(RiskLevel.LOW, 15.0), get_variant("v6.0")) is None

    def test_high_risk_alerts(self):
        alert = alert_record("S1", make_result(RiskLevel.HIGH, 5.5), get_variant("v2.0"), prediction_id="p-1")
        assert alert["alert_type"] == ALERT_TYPE
        assert alert["severity"] == "high"
        assert alert["prediction_id"] == "p-1"
        assert alert["is_resolved"] is False
        assert alert["message"].startswith("HIGH RISK: Student S1 predicted score 5.5/20.")

    def test_medium_alerts_only_when_variant_asks(self):
        result = make_result(RiskLevel.MEDIUM, 10.0)
        assert alert_record("S1", result, get_variant("v2.0")) is None
        assert alert_record("S1", result, get_variant("v6.0"))["severity"] == "medium"

    def test_unknown_student(self):
        alert = alert_record(None, make_result(RiskLevel.HIGH), get_variant())
        assert "Student unknown" in alert["message"]
