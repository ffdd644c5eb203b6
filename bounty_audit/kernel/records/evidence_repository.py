"""
Append-only store for evidence package metadata.
"""

from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_audit.kernel.models.evidence_package import EvidencePackage, EvidencePackageKind


class EvidencePackageRepository:
    """Metadata rows for stored evidence bytes. Insert and read only."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, package: EvidencePackage) -> EvidencePackage:
        self.session.add(package)
        await self.session.flush()
        return package

    async def find_by_reference(self, verification_reference: str) -> Optional[EvidencePackage]:
        result = await self.session.execute(
            select(EvidencePackage).where(
                EvidencePackage.verification_reference == verification_reference
            )
        )
        return result.scalar_one_or_none()

    async def list_for_challenge(self, challenge_id: str) -> List[EvidencePackage]:
        """All packages for a challenge, newest first."""
        result = await self.session.execute(
            select(EvidencePackage)
            .where(EvidencePackage.challenge_id == challenge_id)
            .order_by(desc(EvidencePackage.created_at))
        )
        return list(result.scalars().all())

    async def latest_for_kind(
        self,
        challenge_id: str,
        kind: EvidencePackageKind,
    ) -> Optional[EvidencePackage]:
        """The current package of this kind, i.e. the one a new package supersedes."""
        result = await self.session.execute(
            select(EvidencePackage)
            .where(
                EvidencePackage.challenge_id == challenge_id,
                EvidencePackage.kind == kind.value,
            )
            .order_by(desc(EvidencePackage.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()
