"""
predictor/evaluate.py

Scores a student table with each formula variant and compares the predicted
scores against the final grade (G3), so the variants can be judged on the
same data before one is picked for the dashboard.

Saves to artifacts/:
      metrics.json        (per-variant regression + at-risk flag metrics)
      config.json         (run settings)
      scored_sample.csv   (sample rows scored by the selected variant)

Run (default: every variant)
----------------------------
python -m predictor.evaluate

Run (custom)
------------
python -m predictor.evaluate --data data/student_performance_synthetic.csv --model-version v6.0
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import (
    confusion_matrix,
    mean_absolute_error,
    precision_recall_fscore_support,
    r2_score,
)

from predictor.config import settings
from predictor.inference import score_frame
from predictor.logging_config import setup_logging
from predictor.variants import LATEST_VERSION, VARIANTS


logger = logging.getLogger(__name__)

OUTCOME_COL = "G3"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate scoring-formula variants.")
    parser.add_argument(
        "--data",
        type=str,
        default=str(settings.student_data_path),
        help="Path to the student CSV.",
    )
    parser.add_argument(
        "--model-version",
        type=str,
        default=None,
        choices=sorted(VARIANTS),
        help="Evaluate a single variant (default: all).",
    )
    parser.add_argument(
        "--at-risk-grade",
        type=float,
        default=10.0,
        help="A final grade below this counts as an at-risk outcome.",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=str(settings.artifact_dir),
        help="Directory for metrics and the scored sample.",
    )
    parser.add_argument(
        "--sample-size",
        type=int,
        default=300,
        help="Rows written to scored_sample.csv.",
    )
    parser.add_argument(
        "--random-state",
        type=int,
        default=42,
        help="Seed for the sample.",
    )
    return parser.parse_args(argv)


def compute_flag_metrics(y_true: np.ndarray, flagged: np.ndarray) -> Dict:
    """
    Confusion-matrix metrics for the at-risk flag (any non-low tier).
    """
    cm = confusion_matrix(y_true, flagged, labels=[0, 1])
    precision, recall, f1, _ = precision_recall_fscore_support(
        y_true, flagged, average="binary", zero_division=0
    )
    return {
        "confusion_matrix": {
            "tn": int(cm[0, 0]),
            "fp": int(cm[0, 1]),
            "fn": int(cm[1, 0]),
            "tp": int(cm[1, 1]),
        },
        "precision": float(precision),
        "recall": float(recall),
        "f1": float(f1),
    }


def evaluate_variant(df: pd.DataFrame, model_version: str, at_risk_grade: float) -> Dict:
    scored = score_frame(df, model_version)
    metrics: Dict = {
        "n_rows": int(len(scored)),
        "mean_predicted_score": float(scored["predicted_score"].mean()),
        "mean_confidence": float(scored["confidence_level"].mean()),
        "risk_counts": {k: int(v) for k, v in scored["risk_level"].value_counts().items()},
    }

    outcome = pd.to_numeric(df[OUTCOME_COL], errors="coerce") if OUTCOME_COL in df.columns else None
    if outcome is None or outcome.isna().all():
        logger.warning("No usable %s column; skipping outcome metrics.", OUTCOME_COL)
        return metrics

    mask = outcome.notna().to_numpy()
    y = outcome.to_numpy()[mask]
    pred = scored["predicted_score"].to_numpy()[mask]
    metrics["mae"] = float(mean_absolute_error(y, pred))
    metrics["r2"] = float(r2_score(y, pred)) if len(y) > 1 else None

    y_true = (y < at_risk_grade).astype(int)
    flagged = (scored["risk_level"].to_numpy()[mask] != "low").astype(int)
    metrics["at_risk_rate"] = float(y_true.mean())
    metrics.update(compute_flag_metrics(y_true, flagged))
    return metrics


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = parse_args(argv)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    data_path = Path(args.data)
    if not data_path.exists():
        raise FileNotFoundError(
            f"Student data not found at {data_path}. "
            f"Generate it first: python -m predictor.make_synthetic_data"
        )

    df = pd.read_csv(data_path)
    versions = [args.model_version] if args.model_version else sorted(VARIANTS)

    # -----------------------------
    # 1) Score with each variant
    # -----------------------------
    results = {v: evaluate_variant(df, v, args.at_risk_grade) for v in versions}
    for version, m in results.items():
        logger.info(
            "%s | MAE=%s | R2=%s | F1=%s",
            version,
            f"{m['mae']:.3f}" if "mae" in m else "n/a",
            f"{m['r2']:.3f}" if m.get("r2") is not None else "n/a",
            f"{m['f1']:.3f}" if "f1" in m else "n/a",
        )

    # -----------------------------
    # 2) Save artifacts
    # -----------------------------
    (out_dir / "metrics.json").write_text(json.dumps(results, indent=2))

    config = {
        "data_path": str(data_path),
        "model_versions": versions,
        "at_risk_grade": args.at_risk_grade,
        "outcome_col": OUTCOME_COL,
        "random_state": args.random_state,
    }
    (out_dir / "config.json").write_text(json.dumps(config, indent=2))

    sample_version = args.model_version or LATEST_VERSION
    sample = df.sample(n=min(args.sample_size, len(df)), random_state=args.random_state)
    scored = score_frame(sample, sample_version)
    keep = [c for c in ("student_id", OUTCOME_COL) if c in sample.columns]
    pd.concat([sample[keep], scored], axis=1).to_csv(out_dir / "scored_sample.csv", index=False)

    logger.info("Saved artifacts to: %s", out_dir.resolve())


if __name__ == "__main__":
    main()
