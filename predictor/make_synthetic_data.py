"""
predictor/make_synthetic_data.py

Creates a synthetic student table shaped like the student-performance
dataset (G1/G2/G3 on a 0-20 scale, family and lifestyle indices on 1-5).
Useful for demos of "real data" mode and for evaluating formula variants.

Outputs:
  data/student_performance_synthetic.csv
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from predictor.logging_config import setup_logging


logger = logging.getLogger(__name__)


def generate_student_dataset(
    n_students: int = 650,
    random_state: int = 42,
) -> pd.DataFrame:
    rng = np.random.default_rng(random_state)

    # --- Profile
    age = rng.integers(15, 23, size=n_students)
    sex = rng.choice(["F", "M"], size=n_students)
    medu = rng.integers(0, 5, size=n_students)  # mother's education 0-4
    fedu = np.clip(medu + rng.integers(-1, 2, size=n_students), 0, 4)
    failures = np.clip(rng.poisson(0.3, size=n_students), 0, 3)

    # --- Family / lifestyle (1-5 scales)
    famrel = np.clip(rng.normal(4, 0.9, size=n_students).round(), 1, 5)
    goout = rng.integers(1, 6, size=n_students)
    health = rng.integers(1, 6, size=n_students)
    dalc = np.clip(rng.poisson(0.5, size=n_students) + 1, 1, 5)
    walc = np.clip(dalc + rng.poisson(0.8, size=n_students), 1, 5)

    # --- Engagement
    studytime = np.clip(rng.gamma(2.0, 2.0, size=n_students).round(), 1, 15)
    absences = np.clip(rng.poisson(4.5, size=n_students), 0, 75)

    # --- Grades: G1 -> G2 -> G3 with realistic drift
    ability = rng.normal(0, 1, size=n_students)
    g1 = np.clip(
        11
        + 2.4 * ability
        + 0.35 * (medu - 2)
        + 0.25 * np.log1p(studytime)
        - 1.2 * failures
        + rng.normal(0, 1.2, size=n_students),
        0, 20,
    )
    g2 = np.clip(
        g1
        + 0.3 * (famrel - 3)
        - 0.06 * absences
        - 0.25 * (dalc - 1)
        + rng.normal(0, 1.0, size=n_students),
        0, 20,
    )
    g3 = np.clip(
        0.2 * g1
        + 0.8 * g2
        + 0.15 * np.log1p(studytime)
        - 0.04 * absences
        + rng.normal(0, 0.9, size=n_students),
        0, 20,
    )

    df = pd.DataFrame(
        {
            "student_id": [f"S{200000+i}" for i in range(n_students)],
            "age": age,
            "sex": sex,
            "Medu": medu,
            "Fedu": fedu,
            "studytime": studytime.astype(int),
            "failures": failures,
            "famrel": famrel.astype(int),
            "goout": goout,
            "Dalc": dalc,
            "Walc": walc,
            "health": health,
            "absences": absences,
            # G1 is exported as text by the source system
            "G1": np.round(g1).astype(int).astype(str),
            "G2": np.round(g2).astype(int),
            "G3": np.round(g3).astype(int),
        }
    )

    return df


def main() -> None:
    setup_logging()
    out_dir = Path("data")
    out_dir.mkdir(parents=True, exist_ok=True)

    df = generate_student_dataset(n_students=650, random_state=42)
    out_path = out_dir / "student_performance_synthetic.csv"
    df.to_csv(out_path, index=False)

    # Quick quality checks
    logger.info("Wrote %d rows to %s", len(df), out_path)
    logger.info("Share with G3 < 10: %.3f", (df["G3"] < 10).mean())
    logger.info("Columns: %s", list(df.columns))


if __name__ == "__main__":
    main()
