"""
predictor/explain.py

The local formula is additive, so its per-term contributions are already an
exact attribution with a base value of zero. Wrapping them in a
shap.Explanation lets the dashboard reuse SHAP's waterfall plot.
"""

from __future__ import annotations

import numpy as np
import shap

from predictor.inference import PredictionResult


def contribution_explanation(result: PredictionResult) -> shap.Explanation:
    """
    Raises
    ------
    ValueError
        If the result came from the remote backend, which returns no
        contributions.
    """
    if not result.feature_contributions:
        raise ValueError("This prediction has no feature contributions to explain.")

    names = list(result.feature_contributions)
    values = np.array([result.feature_contributions[n] for n in names], dtype=float)
    return shap.Explanation(
        values=values,
        base_values=0.0,
        feature_names=names,
    )
