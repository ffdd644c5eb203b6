"""Unit tests for evidence document assembly and rendering."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bounty_audit.engines.evidence.document import (
    assemble_document,
    build_checklist,
    build_payout_rows,
    build_timeline,
)
from bounty_audit.engines.evidence.pdf_renderer import render_pdf
from bounty_audit.kernel.models.evidence_package import EvidencePackageKind
from bounty_audit.schemas.challenge import (
    ChallengeEvent,
    ChallengeSummary,
    ContributionRecord,
    ContributionType,
    PayoutDistribution,
    PayoutEntry,
)

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)

CONTRIBUTIONS = [
    ContributionRecord(challenge_id="c", contributor_id="alice", type=ContributionType.CODE, token_value=Decimal("3")),
    ContributionRecord(challenge_id="c", contributor_id="bob", type=ContributionType.DESIGN, token_value=Decimal("1")),
]


def test_payout_rows_from_distribution():
    dist = PayoutDistribution(
        challenge_id="c",
        entries=[
            PayoutEntry(contributor_id="alice", amount=Decimal("600")),
            PayoutEntry(contributor_id="bob", amount=Decimal("400")),
        ],
        created_at=T0,
    )

    rows = build_payout_rows(Decimal("1000"), CONTRIBUTIONS, dist)

    assert [(r.contributor_id, r.amount, r.percentage) for r in rows] == [
        ("alice", "600.00", "60.0%"),
        ("bob", "400.00", "40.0%"),
    ]
    assert rows[0].contribution_types == ["CODE"]


def test_payout_rows_fall_back_to_weight_split():
    rows = build_payout_rows(Decimal("1000"), CONTRIBUTIONS, None)

    assert [(r.contributor_id, r.amount) for r in rows] == [("alice", "750.00"), ("bob", "250.00")]


def test_payout_rows_without_weights_are_empty():
    zero = [c.model_copy(update={"token_value": Decimal("0")}) for c in CONTRIBUTIONS]
    assert build_payout_rows(Decimal("1000"), zero, None) == []


def test_checklist_flags_underpayment():
    dist = PayoutDistribution(
        challenge_id="c",
        entries=[PayoutEntry(contributor_id="alice", amount=Decimal("500"))],
        created_at=T0,
    )

    items = {i.label: i for i in build_checklist(Decimal("1000"), CONTRIBUTIONS, dist, None, None)}

    assert items["Composition manifest signed"].passed is False
    assert items["Payout within tolerance"].passed is False
    assert items["All contributors paid"].passed is False


def test_timeline_keeps_most_recent_in_chronological_order():
    events = [
        ChallengeEvent(id=str(i), entity_type="challenge", entity_id="c", action=f"A{i}",
                       created_at=T0 + timedelta(minutes=i))
        for i in (5, 1, 4, 2, 3)
    ]

    rows = build_timeline(events, limit=3)

    assert [r.action for r in rows] == ["A3", "A4", "A5"]


def test_render_produces_pdf_with_escaped_text():
    challenge = ChallengeSummary(
        id="c",
        title="Fix <script> & friends",
        bounty_amount=Decimal("1000"),
        status="COMPLETED",
        created_at=T0,
    )
    doc = assemble_document(
        challenge=challenge,
        kind=EvidencePackageKind.PAYOUT_AUDIT,
        generated_at=T0,
        verification_reference="ab" * 16,
        verification_url="https://audit.example.com/verify/" + "ab" * 16,
        payout_rows=build_payout_rows(Decimal("1000"), CONTRIBUTIONS, None),
        checklist=build_checklist(Decimal("1000"), CONTRIBUTIONS, None, None, None),
        incomplete_sections=["timeline"],
    )

    data = render_pdf(doc)

    assert data.startswith(b"%PDF")
    assert doc.incomplete_sections == ["timeline"]
