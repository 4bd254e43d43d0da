"""
predictor/interventions.py

Builds the free-text intervention summary shown to educators and copied into
alert messages.

Rules are evaluated in the fixed order of RULES so the same inputs always give
the same text, word for word.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from predictor.features import FeatureSet
from predictor.risk import RiskLevel
from predictor.variants import AttendanceBasis


PERFORMING_WELL = "Student is performing well. Continue current approach."
URGENCY = {
    RiskLevel.HIGH: "Immediate attention required.",
    RiskLevel.MEDIUM: "Monitor progress closely and review within two weeks.",
}

# Predicted-score bands used by the academic rule (0-20 scale).
TUTORING_BELOW = 10.0
STRONG_SCORE_FROM = 16.0


@dataclass(frozen=True)
class Rule:
    name: str
    needs_help: Callable[[FeatureSet, float], bool]
    intervention: str
    is_strength: Optional[Callable[[FeatureSet, float], bool]] = None
    strength: str = ""


RULES: List[Rule] = [
    Rule("academic", lambda f, s: s < TUTORING_BELOW, "Targeted academic tutoring",
         lambda f, s: s >= STRONG_SCORE_FROM, "strong predicted performance"),
    Rule("studytime", lambda f, s: f.studytime < 3, "Increase study time allocation",
         lambda f, s: f.studytime >= 8, "consistent study habits"),
    Rule("attendance", lambda f, s: f.attendance_rate < 80, "Address attendance issues",
         lambda f, s: f.attendance_rate >= 95, "excellent attendance"),
    Rule("effort", lambda f, s: f.effort_score < 6, "Motivational support needed",
         lambda f, s: f.effort_score >= 8, "high effort"),
    Rule("participation", lambda f, s: f.participation_index < 6, "Encourage class participation",
         lambda f, s: f.participation_index >= 8, "active class participation"),
    Rule("emotional", lambda f, s: f.emotional_sentiment < 0.4, "Emotional support recommended",
         lambda f, s: f.emotional_sentiment >= 0.7, "positive outlook"),
    Rule("motivation", lambda f, s: f.motivation_level < 5, "Goal-setting sessions to build motivation",
         lambda f, s: f.motivation_level >= 8, "strong motivation"),
    Rule("stress", lambda f, s: f.stress_level > 0.7, "Stress management required"),
    Rule("family", lambda f, s: f.family_support <= 2, "Engage family in a support plan",
         lambda f, s: f.family_support >= 4, "supportive family environment"),
    Rule("health", lambda f, s: f.health_score <= 2, "Refer to school health services"),
    Rule("social", lambda f, s: f.social_activity >= 5, "Balance social activities with study time"),
    Rule("alcohol", lambda f, s: f.alcohol_consumption >= 3, "Substance-use counselling referral"),
    Rule("trend", lambda f, s: f.g2 < f.g1, "Review recent coursework to address declining grades",
         lambda f, s: f.g2 > f.g1, "improving grades"),
]

# Variants that score absences directly flag attendance on the raw count.
ABSENCE_ATTENDANCE_RULE = Rule(
    "attendance", lambda f, s: f.absences > 5, "Address attendance issues",
    lambda f, s: f.absences <= 1, "excellent attendance",
)


def rules_for(attendance_basis: AttendanceBasis = AttendanceBasis.RATE) -> List[Rule]:
    if attendance_basis is AttendanceBasis.ABSENCES:
        return [ABSENCE_ATTENDANCE_RULE if r.name == "attendance" else r for r in RULES]
    return RULES


def evaluate(features: FeatureSet, score: float, attendance_basis: AttendanceBasis = AttendanceBasis.RATE):
    """Return (strengths, interventions) in rule order."""
    strengths: List[str] = []
    interventions: List[str] = []
    for rule in rules_for(attendance_basis):
        if rule.needs_help(features, score):
            interventions.append(rule.intervention)
        elif rule.is_strength is not None and rule.is_strength(features, score):
            strengths.append(rule.strength)
    return strengths, interventions


def generate(
    features: FeatureSet,
    score: float,
    risk: RiskLevel,
    attendance_basis: AttendanceBasis = AttendanceBasis.RATE,
) -> str:
    strengths, interventions = evaluate(features, score, attendance_basis)

    parts: List[str] = []
    if strengths:
        parts.append(f"Strengths: {', '.join(strengths)}.")
    if interventions:
        parts.append(f"Recommended interventions: {', '.join(interventions)}.")
    else:
        parts.append(PERFORMING_WELL)

    urgency = URGENCY.get(RiskLevel(risk))
    if urgency:
        parts.append(urgency)
    return " ".join(parts)
