"""Single-writer lease so overlapping sync invocations don't interleave."""

import logging
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import upsert_insert
from app.models import SyncLease

logger = logging.getLogger(__name__)


class LeaseLostError(Exception):
    """Another invocation took over the lease while this one was running."""


class LeaseManager:
    """
    Acquire/release an expiring lock row per sync kind.

    A lease left behind by a killed process expires after ``ttl_seconds``
    and can then be taken over.
    """

    def __init__(self, db: AsyncSession, ttl_seconds: int = 900):
        self.db = db
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def new_holder() -> str:
        return uuid.uuid4().hex

    async def acquire(self, kind: str, holder: str) -> bool:
        """
        Take the lease for ``kind`` if it is free, expired, or already ours.

        Returns True when ``holder`` owns the lease afterwards.
        """
        now = datetime.now(UTC)
        insert = upsert_insert(self.db)
        stmt = insert(SyncLease).values(
            kind=kind,
            holder=holder,
            acquired_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["kind"],
            set_={
                "holder": stmt.excluded.holder,
                "acquired_at": stmt.excluded.acquired_at,
                "expires_at": stmt.excluded.expires_at,
            },
            where=or_(SyncLease.expires_at < now, SyncLease.holder == holder),
        )
        await self.db.execute(stmt)
        await self.db.commit()

        result = await self.db.execute(
            select(SyncLease.holder).where(SyncLease.kind == kind)
        )
        acquired = result.scalar_one_or_none() == holder
        if not acquired:
            logger.warning(f"Sync lease {kind} is held by another invocation")
        return acquired

    async def renew(self, kind: str, holder: str) -> bool:
        """
        Push the expiry of a lease ``holder`` still owns.

        Returns False when the row is gone or belongs to someone else.
        """
        expires_at = datetime.now(UTC) + timedelta(seconds=self.ttl_seconds)
        result = await self.db.execute(
            update(SyncLease)
            .where(SyncLease.kind == kind, SyncLease.holder == holder)
            .values(expires_at=expires_at)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def release(self, kind: str, holder: str) -> None:
        """Drop the lease if ``holder`` still owns it."""
        await self.db.execute(
            delete(SyncLease).where(SyncLease.kind == kind, SyncLease.holder == holder)
        )
        await self.db.commit()
