"""Unit tests for fairness scoring and recommendations."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bounty_audit.engines.fairness.fairness_scorer import FairnessScorer
from bounty_audit.engines.fairness.recommendations import generate_recommendations
from bounty_audit.schemas.audit import GreenFlag, RecommendationSeverity, RedFlag
from bounty_audit.schemas.challenge import (
    CompositionManifest,
    ContributionRecord,
    ContributionType,
    ManifestEntry,
    PayoutDistribution,
    PayoutEntry,
)


class TestScore:

    def test_formula(self):
        # 1 - 0.3*0.2 - 0.15*1 + 0.05*2
        assert FairnessScorer.score(0.2, 1, 2) == pytest.approx(0.89)

    def test_clamped_to_one(self):
        assert FairnessScorer.score(0.0, 0, 4) == 1.0

    def test_clamped_to_zero(self):
        assert FairnessScorer.score(1.0, 8, 0) == 0.0

    @pytest.mark.parametrize("score,label", [
        (1.0, "EXCELLENT"),
        (0.85, "EXCELLENT"),
        (0.84, "GOOD"),
        (0.7, "GOOD"),
        (0.69, "FAIR"),
        (0.5, "FAIR"),
        (0.49, "POOR"),
        (0.3, "POOR"),
        (0.29, "CRITICAL"),
    ])
    def test_interpretation(self, score, label):
        assert FairnessScorer.interpret(score) == label

    def test_passes_threshold(self):
        assert FairnessScorer.passes_threshold(0.7) is True
        assert FairnessScorer.passes_threshold(0.69) is False
        assert FairnessScorer.passes_threshold(0.5, threshold=0.5) is True


class TestRecommendations:

    def test_one_per_red_flag_in_order(self):
        recs = generate_recommendations(
            [RedFlag.SINGLE_CONTRIBUTOR_DOMINANCE, RedFlag.NO_DIVERSE_ROLES], [], gini=0.2, has_manifest=True,
        )

        assert [r.flag for r in recs] == ["SINGLE_CONTRIBUTOR_DOMINANCE", "NO_DIVERSE_ROLES"]
        assert recs[0].severity == RecommendationSeverity.CRITICAL
        assert recs[0].action_required is True
        assert recs[1].severity == RecommendationSeverity.WARNING
        assert recs[1].action_required is False

    def test_suspicious_timing_is_warning_but_actionable(self):
        (rec,) = generate_recommendations([RedFlag.SUSPICIOUS_TIMING], [], gini=0.1, has_manifest=True)

        assert rec.severity == RecommendationSeverity.WARNING
        assert rec.action_required is True

    def test_extreme_inequality_mentions_gini(self):
        (rec,) = generate_recommendations([RedFlag.EXTREME_INEQUALITY], [], gini=0.8123, has_manifest=True)
        assert "Gini: 0.81" in rec.description

    def test_model_practice_suggestion(self):
        greens = [GreenFlag.DIVERSE_CONTRIBUTION_TYPES, GreenFlag.ALL_CONTRIBUTORS_PAID, GreenFlag.FAIR_DISTRIBUTION]
        recs = generate_recommendations([], greens, gini=0.1, has_manifest=True)

        assert len(recs) == 1
        assert recs[0].severity == RecommendationSeverity.SUGGESTION
        assert recs[0].action_required is False

    def test_no_suggestion_with_red_flags(self):
        greens = list(GreenFlag)
        recs = generate_recommendations([RedFlag.NO_DIVERSE_ROLES], greens, gini=0.1, has_manifest=True)
        assert all(r.severity != RecommendationSeverity.SUGGESTION for r in recs)

    def test_missing_manifest_warning(self):
        recs = generate_recommendations([], [], gini=0.1, has_manifest=False)

        assert len(recs) == 1
        assert recs[0].severity == RecommendationSeverity.WARNING
        assert "No composition manifest" in recs[0].description
        assert recs[0].action_required is True

    @pytest.mark.parametrize("gini,expected", [(0.5, False), (0.55, True), (0.7, True), (0.71, False)])
    def test_moderate_inequality_warning(self, gini, expected):
        recs = generate_recommendations([], [], gini=gini, has_manifest=True)
        assert any("moderate inequality" in r.description for r in recs) is expected

    def test_moderate_warning_suppressed_by_extreme_flag(self):
        recs = generate_recommendations([RedFlag.EXTREME_INEQUALITY], [], gini=0.65, has_manifest=True)
        assert not any("moderate inequality" in r.description for r in recs)


class TestAnalyze:

    def test_full_pipeline(self):
        proposed_at = datetime(2025, 3, 1, tzinfo=timezone.utc)
        contributions = [
            ContributionRecord(challenge_id="c", contributor_id=cid, type=t, token_value=Decimal(w))
            for cid, t, w in [
                ("alice", ContributionType.CODE, "30"),
                ("bob", ContributionType.DESIGN, "25"),
                ("carol", ContributionType.RESEARCH, "20"),
            ]
        ]
        manifest = CompositionManifest(
            challenge_id="c",
            entries=[
                ManifestEntry(contributor_id="alice", type=ContributionType.CODE, weight=0.4),
                ManifestEntry(contributor_id="bob", type=ContributionType.DESIGN, weight=0.333333),
                ManifestEntry(contributor_id="carol", type=ContributionType.RESEARCH, weight=0.266667),
            ],
            signed_at=proposed_at - timedelta(days=2),
        )
        distribution = PayoutDistribution(
            challenge_id="c",
            entries=[
                PayoutEntry(contributor_id="alice", amount=Decimal("400.00")),
                PayoutEntry(contributor_id="bob", amount=Decimal("333.33")),
                PayoutEntry(contributor_id="carol", amount=Decimal("266.67")),
            ],
            created_at=proposed_at,
        )

        analysis = FairnessScorer.analyze(contributions, manifest, distribution)

        assert analysis.red_flags == []
        assert GreenFlag.FAIR_DISTRIBUTION in analysis.green_flags
        assert len(analysis.green_flags) == 4
        assert analysis.fairness_score == 1.0
        assert analysis.score_interpretation == "EXCELLENT"
        assert analysis.passes_threshold is True
        assert analysis.inequality_level == "EXCELLENT"
        assert [r.severity for r in analysis.recommendations] == [RecommendationSeverity.SUGGESTION]
