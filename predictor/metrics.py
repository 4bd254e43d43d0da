"""
predictor/metrics.py

Summary numbers for the dashboard panels, computed over a table of
prediction rows (the output of `score_frame` or the session history).
"""

from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd


SCORE_BANDS = ["Poor (0-7)", "Average (8-11)", "Good (12-15)", "Excellent (16-20)"]
CONFIDENCE_BANDS = ["Low (<70%)", "Medium (70-79%)", "Good (80-89%)", "High (90-100%)"]

# label -> column, in display order
FACTORS: Dict[str, str] = {
    "Study Time": "studytime",
    "Attendance": "attendance_rate",
    "Effort": "effort_score",
    "Motivation": "motivation_level",
    "Family Support": "family_support",
    "Health": "health_score",
}

AT_RISK_BELOW = 10.0
HIGH_PERFORMER_FROM = 16.0


def _count(bands: pd.Series, labels) -> pd.Series:
    counts = bands.value_counts()
    counts.index = counts.index.astype(str)
    return counts.reindex(labels, fill_value=0)


def summarize_predictions(df: pd.DataFrame) -> Dict[str, float]:
    """Headline counts and averages. An empty table gives zeros."""
    n = int(len(df))
    if n == 0:
        return {
            "n_predictions": 0,
            "avg_score": 0.0,
            "avg_confidence": 0.0,
            "high_risk": 0,
            "at_risk": 0,
            "high_performers": 0,
            "improving": 0,
        }

    scores = df["predicted_score"].astype(float)
    improving = int((df["g2"] > df["g1"]).sum()) if {"g1", "g2"} <= set(df.columns) else 0
    return {
        "n_predictions": n,
        "avg_score": round(float(scores.mean()), 2),
        "avg_confidence": round(float(df["confidence_level"].fillna(0).mean()), 1),
        "high_risk": int((df["risk_level"] == "high").sum()),
        "at_risk": int((scores < AT_RISK_BELOW).sum()),
        "high_performers": int((scores >= HIGH_PERFORMER_FROM).sum()),
        "improving": improving,
    }


def score_bands(df: pd.DataFrame) -> pd.Series:
    """Count of predictions per score band, all bands present."""
    bands = pd.cut(
        df["predicted_score"].astype(float),
        bins=[-np.inf, 8, 12, 16, np.inf],
        labels=SCORE_BANDS,
        right=False,
    )
    return _count(bands, SCORE_BANDS)


def confidence_bands(df: pd.DataFrame) -> pd.Series:
    bands = pd.cut(
        df["confidence_level"].fillna(0).astype(float),
        bins=[-np.inf, 70, 80, 90, np.inf],
        labels=CONFIDENCE_BANDS,
        right=False,
    )
    return _count(bands, CONFIDENCE_BANDS)


def factor_averages(df: pd.DataFrame) -> pd.Series:
    """Mean of each tracked factor (missing columns count as 0)."""
    out = {
        label: float(df[col].fillna(0).mean()) if col in df.columns and len(df) else 0.0
        for label, col in FACTORS.items()
    }
    return pd.Series(out, name="average")
