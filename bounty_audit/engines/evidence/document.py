"""
Evidence document assembly.

Pure functions that turn gathered upstream data into an EvidenceDocument.
Nothing here performs I/O; the packager fetches and passes the pieces in.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from bounty_audit.engines.fairness.rule_engine import FairnessRuleEngine, payout_share
from bounty_audit.engines.fairness.split_calculator import PayoutSplitCalculator
from bounty_audit.exceptions import ValidationFailure
from bounty_audit.kernel.models.base import as_utc
from bounty_audit.kernel.models.evidence_package import EvidencePackageKind
from bounty_audit.kernel.models.fairness_audit import FairnessAudit
from bounty_audit.schemas.challenge import (
    ChallengeEvent,
    ChallengeSummary,
    CompositionManifest,
    ContributionRecord,
    FileHashRecord,
    PayoutDistribution,
)
from bounty_audit.schemas.evidence import (
    ChecklistItem,
    EvidenceDocument,
    FairnessSection,
    FileHashRow,
    PayoutRow,
    SignatureRow,
    TimelineRow,
)

PAYOUT_TOLERANCE = Decimal("0.01")


def build_payout_rows(
    bounty_amount: Decimal,
    contributions: Sequence[ContributionRecord],
    distribution: Optional[PayoutDistribution],
) -> List[PayoutRow]:
    """
    One row per contributor.

    Amounts come from the distribution when there is one, otherwise from
    a proportional split of the declared weights.
    """
    weights: Dict[str, Decimal] = {}
    types: Dict[str, List[str]] = {}
    for record in contributions:
        weights[record.contributor_id] = weights.get(record.contributor_id, Decimal("0")) + record.token_value
        seen = types.setdefault(record.contributor_id, [])
        if record.type.value not in seen:
            seen.append(record.type.value)

    if distribution is not None:
        for entry in distribution.entries:
            weights.setdefault(entry.contributor_id, Decimal("0"))
            types.setdefault(entry.contributor_id, [])

        rows = []
        for contributor_id, weight in weights.items():
            paid = sum(
                (e.amount for e in distribution.entries if e.contributor_id == contributor_id),
                Decimal("0"),
            )
            share = payout_share(distribution, contributor_id) * 100
            rows.append(PayoutRow(
                contributor_id=contributor_id,
                contribution_types=types[contributor_id],
                declared_weight=str(weight),
                amount=f"{paid:.2f}",
                percentage=f"{share:.1f}%",
            ))
        return rows

    try:
        shares = PayoutSplitCalculator.calculate(bounty_amount, list(weights.items()))
    except ValidationFailure:
        # Nothing to split (no weight recorded yet)
        shares = []

    return [
        PayoutRow(
            contributor_id=share.contributor_id,
            contribution_types=types[share.contributor_id],
            declared_weight=str(share.weight),
            amount=f"{share.amount:.2f}",
            percentage=f"{share.percentage:.1f}%",
        )
        for share in shares
    ]


def build_checklist(
    bounty_amount: Decimal,
    contributions: Optional[Sequence[ContributionRecord]],
    distribution: Optional[PayoutDistribution],
    manifest: Optional[CompositionManifest],
    audit: Optional[FairnessAudit],
) -> List[ChecklistItem]:
    """Compliance checks computed from whatever data was available."""
    items: List[ChecklistItem] = []

    items.append(ChecklistItem(
        label="Composition manifest signed",
        passed=manifest is not None and manifest.signed_at is not None,
        detail=None if manifest is not None else "No manifest on record",
    ))

    if distribution is not None:
        drift = abs(distribution.total - bounty_amount)
        items.append(ChecklistItem(
            label="Payout within tolerance",
            passed=drift <= PAYOUT_TOLERANCE,
            detail=f"Distributed {distribution.total:.2f} of {bounty_amount:.2f}",
        ))

        if contributions is not None:
            unpaid = FairnessRuleEngine.unpaid_contributors(contributions, distribution)
            items.append(ChecklistItem(
                label="All contributors paid",
                passed=not unpaid and bool(contributions),
                detail=f"{len(unpaid)} unpaid" if unpaid else None,
            ))

    if audit is not None:
        passed = not audit.red_flags
        items.append(ChecklistItem(
            label=f"Ethics audit: {'PASS' if passed else 'FAIL'} "
                  f"(fairness score: {audit.fairness_score:.2f})",
            passed=passed,
        ))

    return items


def build_fairness_section(audit: FairnessAudit) -> FairnessSection:
    return FairnessSection(
        audited_at=as_utc(audit.created_at),
        fairness_score=audit.fairness_score,
        gini_coefficient=audit.gini_coefficient,
        red_flags=list(audit.red_flags),
        green_flags=list(audit.green_flags),
        recommendations=[r.get("description", "") for r in audit.recommendations],
    )


def build_timeline(events: Sequence[ChallengeEvent], limit: int) -> List[TimelineRow]:
    """The most recent `limit` events, shown oldest first."""
    recent = sorted(events, key=lambda e: as_utc(e.created_at))[-limit:] if limit > 0 else []
    return [
        TimelineRow(
            timestamp=as_utc(e.created_at),
            action=e.action,
            entity=f"{e.entity_type}:{e.entity_id}",
            actor=e.actor_email,
        )
        for e in recent
    ]


def build_signatures(manifest: Optional[CompositionManifest]) -> List[SignatureRow]:
    if manifest is None:
        return []
    return [
        SignatureRow(
            contributor_id=entry.contributor_id,
            contribution_type=entry.type.value,
            weight=entry.weight,
            reference=entry.reference,
            signed_at=manifest.signed_at,
        )
        for entry in manifest.entries
    ]


def build_file_hashes(files: Sequence[FileHashRecord], limit: int) -> List[FileHashRow]:
    return [FileHashRow(filename=f.filename, sha256=f.sha256) for f in list(files)[:limit]]


def assemble_document(
    *,
    challenge: ChallengeSummary,
    kind: EvidencePackageKind,
    generated_at: datetime,
    verification_reference: str,
    verification_url: str,
    payout_rows: Optional[List[PayoutRow]] = None,
    checklist: Optional[List[ChecklistItem]] = None,
    fairness: Optional[FairnessSection] = None,
    timeline: Optional[List[TimelineRow]] = None,
    file_hashes: Optional[List[FileHashRow]] = None,
    signatures: Optional[List[SignatureRow]] = None,
    incomplete_sections: Optional[List[str]] = None,
) -> EvidenceDocument:
    return EvidenceDocument(
        challenge_id=challenge.id,
        title=challenge.title,
        kind=kind,
        status=challenge.status,
        bounty_amount=f"{challenge.bounty_amount:.2f}",
        project_leader=challenge.project_leader_email or challenge.project_leader_id,
        challenge_created_at=as_utc(challenge.created_at),
        generated_at=as_utc(generated_at),
        payout_rows=payout_rows,
        checklist=checklist or [],
        fairness=fairness,
        timeline=timeline,
        file_hashes=file_hashes,
        signatures=signatures,
        verification_reference=verification_reference,
        verification_url=verification_url,
        incomplete_sections=sorted(set(incomplete_sections or [])),
    )
