"""
Tests for risk classification.

============================================================
TEST SCENARIOS
============================================================
1. Score cutoffs are inclusive on the lower-risk tier
2. Any single override escalates low -> medium
3. Overrides never lower a score-driven high
4. Legacy variants without overrides use the score alone

============================================================
"""

import pytest

from predictor.features import StudentRecord, normalize
from predictor.risk import RiskLevel, classify, override_reasons, tier_from_score
from predictor.variants import VARIANTS, get_variant


@pytest.fixture
def thresholds():
    return get_variant().thresholds


class TestTiers:

    @pytest.mark.parametrize("score,expected", [
        (0.0, RiskLevel.HIGH),
        (7.99, RiskLevel.HIGH),
        (8.0, RiskLevel.MEDIUM),
        (11.99, RiskLevel.MEDIUM),
        (12.0, RiskLevel.LOW),
        (20.0, RiskLevel.LOW),
    ])
    def test_boundaries(self, thresholds, score, expected):
        assert tier_from_score(score, thresholds) is expected

    def test_v1_cutoffs(self):
        t = VARIANTS["v1.0"].thresholds
        assert tier_from_score(9.99, t) is RiskLevel.HIGH
        assert tier_from_score(10.0, t) is RiskLevel.MEDIUM
        assert tier_from_score(14.0, t) is RiskLevel.LOW


class TestOverrides:

    def test_clean_features_stay_low(self, thresholds):
        f = normalize()
        assert override_reasons(f, thresholds) == []
        assert classify(16.5, f, thresholds) is RiskLevel.LOW

    def test_absences_escalate(self, thresholds):
        assert classify(16.5, normalize({"absences": 9}), thresholds) is RiskLevel.MEDIUM

    def test_absences_at_threshold_do_not_escalate(self, thresholds):
        assert classify(16.5, normalize({"absences": 8}), thresholds) is RiskLevel.LOW

    def test_low_sentiment_escalates(self, thresholds):
        assert classify(18, normalize({"emotional_sentiment": 0.2}), thresholds) is RiskLevel.MEDIUM

    def test_recorded_low_g2_escalates(self, thresholds):
        # caller-edited g2 is fine, but the record itself shows a low G2
        f = normalize({"g2": 15}, StudentRecord(G2=8))
        assert classify(18, f, thresholds) is RiskLevel.MEDIUM

    def test_recorded_alcohol_escalates(self, thresholds):
        f = normalize(record=StudentRecord(G2=14, Dalc=3, Walc=4))
        assert "recorded alcohol consumption above 6" in override_reasons(f, thresholds)
        assert classify(18, f, thresholds) is RiskLevel.MEDIUM

    def test_overrides_never_deescalate_high(self, thresholds):
        f = normalize({"absences": 20, "emotional_sentiment": 0.1})
        assert classify(5, f, thresholds) is RiskLevel.HIGH

    def test_medium_stays_medium(self, thresholds):
        assert classify(10, normalize({"absences": 20}), thresholds) is RiskLevel.MEDIUM

    def test_legacy_variant_has_no_overrides(self):
        t = VARIANTS["v1.0"].thresholds
        assert classify(15, normalize({"absences": 20}), t) is RiskLevel.LOW


class TestParse:

    def test_case_insensitive(self):
        assert RiskLevel.parse(" HIGH ") is RiskLevel.HIGH

    @pytest.mark.parametrize("value", [None, 3, "severe"])
    def test_rejects_other_values(self, value):
        with pytest.raises(ValueError):
            RiskLevel.parse(value)
