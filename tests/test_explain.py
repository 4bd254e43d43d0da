"""
Tests for wrapping contributions in a SHAP explanation.
"""

import numpy as np
import pytest

from predictor.explain import contribution_explanation
from predictor.features import normalize
from predictor.inference import Provenance, PredictionResult, predict
from predictor.risk import RiskLevel


def test_values_follow_contributions():
    result = predict(normalize({"g1": 10, "g2": 12}))
    explanation = contribution_explanation(result)

    assert list(explanation.feature_names) == list(result.feature_contributions)
    assert np.allclose(explanation.values, list(result.feature_contributions.values()))
    assert explanation.base_values == 0.0


def test_remote_result_cannot_be_explained():
    remote = PredictionResult(
        predicted_score=12.0,
        confidence_level=85.0,
        risk_level=RiskLevel.LOW,
        intervention_summary="ok",
        model_version="remote-backend-v1.0",
        provenance=Provenance.REMOTE,
    )
    with pytest.raises(ValueError):
        contribution_explanation(remote)
