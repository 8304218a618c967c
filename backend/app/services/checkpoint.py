"""Persisted resume cursor for token-range sync pipelines."""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import upsert_insert
from app.models import SyncCheckpoint

logger = logging.getLogger(__name__)


class CheckpointStore:
    """
    Single mutable cursor slot per checkpoint kind.

    Saves are one atomic upsert keyed by kind, so a concurrent reader sees
    either the old or the new cursor, never an empty slot.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, kind: str) -> SyncCheckpoint | None:
        """Get the checkpoint row for a kind."""
        result = await self.db.execute(
            select(SyncCheckpoint).where(SyncCheckpoint.kind == kind)
        )
        return result.scalar_one_or_none()

    async def load_last(self, kind: str) -> int | None:
        """
        Last committed token id for a kind.

        Returns None when nothing was saved yet. Storage faults are logged and
        also return None: the sync restarts from the beginning rather than
        failing outright.
        """
        try:
            checkpoint = await self.get(kind)
        except SQLAlchemyError as e:
            logger.error(f"Error loading checkpoint {kind}: {e}")
            await self.db.rollback()
            return None

        if checkpoint is None:
            return None

        last_token_id = (checkpoint.payload or {}).get("lastTokenId")
        if not isinstance(last_token_id, int):
            logger.error(f"Malformed checkpoint payload for {kind}: {checkpoint.payload}")
            return None

        logger.info(f"Last synced token_id for {kind}: {last_token_id}")
        return last_token_id

    async def save(self, kind: str, last_token_id: int) -> None:
        """Replace the cursor for a kind and commit."""
        now = datetime.now(UTC)
        insert = upsert_insert(self.db)
        stmt = insert(SyncCheckpoint).values(
            kind=kind,
            payload={"lastTokenId": last_token_id},
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["kind"],
            set_={
                "payload": stmt.excluded.payload,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()
        logger.debug(f"Checkpoint {kind} saved at token #{last_token_id}")

    async def clear(self, kind: str) -> bool:
        """Delete the checkpoint for a kind. Returns whether a row existed."""
        result = await self.db.execute(
            delete(SyncCheckpoint).where(SyncCheckpoint.kind == kind)
        )
        await self.db.commit()
        return result.rowcount > 0
