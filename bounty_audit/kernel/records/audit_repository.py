"""
Append-only store for fairness audit records.
"""

from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_audit.kernel.models.fairness_audit import FairnessAudit


class FairnessAuditRepository:
    """
    Records are inserted and read, never updated or deleted.

    Usage:
        repo = FairnessAuditRepository(session)
        audit = await repo.record(FairnessAudit(...))
        await session.commit()
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, audit: FairnessAudit) -> FairnessAudit:
        """Add a new audit record. The caller commits."""
        self.session.add(audit)
        await self.session.flush()
        return audit

    async def list_for_challenge(
        self,
        challenge_id: str,
        limit: Optional[int] = None,
    ) -> List[FairnessAudit]:
        """All audits for a challenge, newest first."""
        query = (
            select(FairnessAudit)
            .where(FairnessAudit.challenge_id == challenge_id)
            .order_by(desc(FairnessAudit.created_at))
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def latest(self, challenge_id: str) -> Optional[FairnessAudit]:
        audits = await self.list_for_challenge(challenge_id, limit=1)
        return audits[0] if audits else None
