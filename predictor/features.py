"""
predictor/features.py

Purpose
-------
Turns whatever the caller has about a student (form values, a row from the
student table, free-form analytics) into a complete, range-checked FeatureSet.

Normalization is total: missing values get a neutral default and out-of-range
values are clamped, never rejected. The scoring formula downstream relies on
every feature sitting inside its documented range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd


# Order expected by the remote scorer's `features` array.
FEATURE_ORDER: Tuple[str, ...] = (
    "age",
    "studytime",
    "g1",
    "g2",
    "absences",
    "effort_score",
    "emotional_sentiment",
    "participation_index",
    "family_support",
    "health_score",
    "social_activity",
    "alcohol_consumption",
    "attendance_rate",
    "motivation_level",
    "stress_level",
)


@dataclass(frozen=True)
class FeatureRange:
    low: float
    high: float
    default: float

    def clamp(self, value: float) -> float:
        return max(self.low, min(self.high, value))


FEATURE_RANGES: Dict[str, FeatureRange] = {
    "age": FeatureRange(15, 22, 16),
    "studytime": FeatureRange(0, 40, 2),
    "g1": FeatureRange(0, 20, 10),
    "g2": FeatureRange(0, 20, 10),
    "absences": FeatureRange(0, 93, 3),
    "effort_score": FeatureRange(1, 10, 5.5),
    "emotional_sentiment": FeatureRange(0, 1, 0.5),
    "participation_index": FeatureRange(1, 10, 5.5),
    "family_support": FeatureRange(1, 5, 3),
    "health_score": FeatureRange(1, 5, 3),
    "social_activity": FeatureRange(1, 5, 3),
    "alcohol_consumption": FeatureRange(0, 5, 1),
    "attendance_rate": FeatureRange(0, 100, 91),
    "motivation_level": FeatureRange(1, 10, 5.5),
    "stress_level": FeatureRange(0, 1, 0.4),
}

# Each absence costs this many attendance percentage points.
ABSENCE_ATTENDANCE_COST = 3.0


def _as_float(value: Any) -> Optional[float]:
    """Coerce a cell to float; None/NaN/blank/non-numeric become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out):
        return None
    return out


def attendance_from_absences(absences: float) -> float:
    return max(0.0, 100.0 - absences * ABSENCE_ATTENDANCE_COST)


def absences_from_attendance(attendance_rate: float) -> float:
    return max(0.0, round((100.0 - attendance_rate) / ABSENCE_ATTENDANCE_COST))


# ---------------------------------------------------------------------
# Backing student record ("real data" mode)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StudentRecord:
    """
    Read-only view of one row of the student table.

    Column names follow the student-performance dataset (G1/G2/G3, Medu,
    Fedu, famrel, goout, Dalc, Walc, ...). Every numeric field is optional
    because real tables are patchy; G1 is stored as text in some exports.
    """
    student_id: Optional[str] = None
    age: Optional[float] = None
    sex: Optional[str] = None
    studytime: Optional[float] = None
    absences: Optional[float] = None
    G1: Optional[float] = None
    G2: Optional[float] = None
    G3: Optional[float] = None
    Medu: Optional[float] = None
    Fedu: Optional[float] = None
    famrel: Optional[float] = None
    goout: Optional[float] = None
    Dalc: Optional[float] = None
    Walc: Optional[float] = None
    health: Optional[float] = None
    failures: Optional[float] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StudentRecord":
        """Build a record from a dict or a pandas row, ignoring unknown columns."""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = row.get(f.name) if hasattr(row, "get") else None
            if f.name == "student_id":
                raw = raw if raw is not None else row.get("id")
                values[f.name] = None if raw is None or pd.isna(raw) else str(raw)
            elif f.name == "sex":
                values[f.name] = raw if isinstance(raw, str) else None
            else:
                values[f.name] = _as_float(raw)
        return cls(**values)

    @property
    def alcohol_sum(self) -> Optional[float]:
        if self.Dalc is None and self.Walc is None:
            return None
        return (self.Dalc or 0.0) + (self.Walc or 0.0)

    @property
    def parent_education(self) -> Optional[float]:
        present = [v for v in (self.Medu, self.Fedu) if v is not None]
        if not present:
            return None
        return sum(present) / len(present)

    def feature_values(self) -> Dict[str, float]:
        """Feature values this record can supply (absent fields are skipped)."""
        mapped = {
            "age": self.age,
            "studytime": self.studytime,
            "g1": self.G1,
            "g2": self.G2,
            "absences": self.absences,
            "family_support": self.famrel,
            "health_score": self.health,
            "social_activity": self.goout,
        }
        out = {k: v for k, v in mapped.items() if v is not None}
        if self.absences is not None:
            out["attendance_rate"] = attendance_from_absences(self.absences)
        if self.alcohol_sum is not None:
            out["alcohol_consumption"] = self.alcohol_sum / 2
        return out


# ---------------------------------------------------------------------
# Free-form analytics: explicit tagged union instead of name sniffing
# ---------------------------------------------------------------------

class Scale(str, Enum):
    ZERO_TO_TEN = "0-10"
    ZERO_TO_HUNDRED = "0-100"
    RAW = "raw"


@dataclass(frozen=True)
class KnownAnalytic:
    """A value for one of the canonical features."""
    feature: str
    value: float

    def __post_init__(self) -> None:
        if self.feature not in FEATURE_RANGES:
            raise ValueError(
                f"Unknown feature '{self.feature}'. Use GenericAnalytic for "
                f"unclassified inputs; known features: {list(FEATURE_ORDER)}"
            )


@dataclass(frozen=True)
class GenericAnalytic:
    """An unclassified, caller-named analytic with a declared scale."""
    name: str
    value: float
    scale: Scale = Scale.RAW

    def normalized(self) -> Optional[float]:
        """Value mapped onto [0, 1], or None when the scale is raw."""
        value = _as_float(self.value)
        if value is None or self.scale is Scale.RAW:
            return None
        upper = 10.0 if self.scale is Scale.ZERO_TO_TEN else 100.0
        return max(0.0, min(1.0, value / upper))


Analytic = Union[KnownAnalytic, GenericAnalytic]


def fold_analytics(analytics: Iterable[Analytic]) -> Tuple[Dict[str, float], Tuple[GenericAnalytic, ...]]:
    """Split analytics into raw feature values and generic extras (later entries win)."""
    known: Dict[str, float] = {}
    generic: List[GenericAnalytic] = []
    for item in analytics:
        if isinstance(item, KnownAnalytic):
            known[item.feature] = item.value
        elif isinstance(item, GenericAnalytic):
            generic.append(item)
        else:
            raise TypeError(f"Expected KnownAnalytic or GenericAnalytic, got {type(item).__name__}")
    return known, tuple(generic)


# ---------------------------------------------------------------------
# FeatureSet
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class FeatureSet:
    age: float
    studytime: float
    g1: float
    g2: float
    absences: float
    effort_score: float
    emotional_sentiment: float
    participation_index: float
    family_support: float
    health_score: float
    social_activity: float
    alcohol_consumption: float
    attendance_rate: float
    motivation_level: float
    stress_level: float
    record: Optional[StudentRecord] = field(default=None, compare=False)
    extras: Tuple[GenericAnalytic, ...] = ()

    @property
    def has_record(self) -> bool:
        return self.record is not None

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_ORDER}

    def to_vector(self) -> List[float]:
        return [getattr(self, name) for name in FEATURE_ORDER]


def normalize(
    raw: Optional[Mapping[str, Any]] = None,
    record: Optional[StudentRecord] = None,
    analytics: Iterable[Analytic] = (),
) -> FeatureSet:
    """
    Produce a complete, clamped FeatureSet.

    Parameters
    ----------
    raw : Mapping[str, Any], optional
        Caller-supplied feature values (e.g. form sliders). Unknown keys are
        ignored; None/NaN/non-numeric values count as missing.
    record : StudentRecord, optional
        Backing student row. Its values beat defaults but not `raw`.
    analytics : iterable of KnownAnalytic | GenericAnalytic
        Free-form inputs. Known analytics override `raw`; generic ones are
        carried on the result for the aggregator.

    Returns
    -------
    FeatureSet
        Every field populated and inside FEATURE_RANGES.

    Notes
    -----
    Precedence per field: caller value, then record, then a value derived
    from a related field, then the default. g2 defaults to g1 so a missing
    second grade implies no trend; absences and attendance_rate are derived
    from each other when only one is known.
    """
    known, extras = fold_analytics(analytics)

    def _coerce(source: Mapping[str, Any]) -> Dict[str, float]:
        out = {}
        for name, value in source.items():
            coerced = _as_float(value)
            if name in FEATURE_RANGES and coerced is not None:
                out[name] = coerced
        return out

    caller = {**_coerce(raw or {}), **_coerce(known)}
    from_record = _coerce(record.feature_values()) if record else {}
    # a caller-edited absence count invalidates the record's derived attendance
    if "absences" in caller and "attendance_rate" not in caller:
        from_record.pop("attendance_rate", None)
    supplied = {**from_record, **caller}

    values: Dict[str, float] = {}
    for name in FEATURE_ORDER:
        if name in supplied:
            values[name] = FEATURE_RANGES[name].clamp(supplied[name])

    # --- derived fields
    if "g2" not in values and "g1" in values:
        values["g2"] = values["g1"]
    if "attendance_rate" not in values and "absences" in values:
        values["attendance_rate"] = attendance_from_absences(values["absences"])
    if "absences" not in values and "attendance_rate" in values:
        values["absences"] = absences_from_attendance(values["attendance_rate"])

    for name in FEATURE_ORDER:
        rng = FEATURE_RANGES[name]
        values[name] = rng.clamp(values.get(name, rng.default))

    return FeatureSet(record=record, extras=extras, **values)


# ---------------------------------------------------------------------
# Tabular input (student table)
# ---------------------------------------------------------------------

REQUIRED_STUDENT_COLUMNS: List[str] = ["G1", "G2"]
NUMERIC_STUDENT_COLUMNS: List[str] = [
    f.name for f in fields(StudentRecord) if f.name not in ("student_id", "sex")
]


def normalize_frame(df: pd.DataFrame) -> Tuple[pd.DataFrame, List[str]]:
    """
    Validate and coerce a student table before building records from it.

    Returns
    -------
    clean : pd.DataFrame
        Copy of `df` with every known numeric column coerced (bad cells -> NaN,
        which normalization later replaces with defaults).
    warnings : List[str]
        Human-readable notes about non-fatal issues.

    Raises
    ------
    ValueError
        If the grade columns are missing; such a file is almost certainly
        not a student table.
    """
    warnings: List[str] = []

    missing = [c for c in REQUIRED_STUDENT_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    clean = df.copy()
    present = [c for c in NUMERIC_STUDENT_COLUMNS if c in clean.columns]
    n_bad = 0
    for c in present:
        coerced = pd.to_numeric(clean[c], errors="coerce")
        n_bad += int((coerced.isna() & clean[c].notna()).sum())
        clean[c] = coerced

    if n_bad:
        warnings.append(
            f"Found {n_bad} non-numeric values; they will be replaced with neutral defaults."
        )

    absent = [c for c in NUMERIC_STUDENT_COLUMNS if c not in clean.columns]
    if absent:
        warnings.append(f"Columns not present (defaults used): {absent}")

    return clean, warnings
