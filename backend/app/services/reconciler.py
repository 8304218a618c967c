"""Reconcile a single on-chain token into its mirrored ``nfts`` row."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Nft
from app.services.ledger import LedgerReader, TokenMetadata

logger = logging.getLogger(__name__)


async def find_nft_by_fid(db: AsyncSession, fid: int) -> Nft | None:
    """Most recently updated row for a FID (older runs may have left duplicates)."""
    result = await db.execute(
        select(Nft)
        .where(Nft.fid == fid)
        .order_by(Nft.updated_at.desc(), Nft.id.desc())
        .limit(1)
    )
    return result.scalars().first()


@dataclass
class ReconcileResult:
    """Outcome for one token id. Per-token faults are data, never raised."""

    success: bool
    updated: bool = False
    not_minted: bool = False
    resolution_failed: bool = False
    error: str | None = None


class TokenReconciler:
    """
    Copies ledger facts for one token id into the database.

    Rows are found-or-created by FID so repeated or overlapping runs never
    produce duplicates.
    """

    def __init__(self, db: AsyncSession, ledger: LedgerReader):
        self.db = db
        self.ledger = ledger

    def _build_values(
        self, token_id: int, owner: str, metadata: TokenMetadata
    ) -> dict:
        return {
            "token_id": token_id,
            "contract_address": self.ledger.contract_address.lower(),
            "owner_address": owner.lower(),
            "minted": True,
            "character_class": metadata.character_class,
            "class_description": metadata.class_description,
            "gender": metadata.gender,
            "background": metadata.background,
            "background_description": metadata.background_description,
            "color_palette": metadata.color_palette,
            "color_vibe": metadata.color_vibe,
            "clothing": metadata.clothing,
            "accessories": metadata.accessories,
            "items": metadata.items,
            "minted_at": metadata.minted_at_datetime,
            "updated_at": datetime.now(UTC),
        }

    async def reconcile(self, token_id: int) -> ReconcileResult:
        """Sync one token id."""
        # Empty slot vs. failed lookup are reported separately
        try:
            fid = await self.ledger.resolve_fid(token_id)
        except Exception as e:
            logger.warning(f"Could not resolve FID for token #{token_id}: {e}")
            return ReconcileResult(
                success=False,
                resolution_failed=True,
                error=f"Token #{token_id}: could not resolve FID: {e}",
            )

        if fid == 0:
            return ReconcileResult(success=True, not_minted=True)

        try:
            owner = await self.ledger.resolve_owner(token_id)
            metadata = await self.ledger.resolve_metadata(token_id)
            # Undecodable contract values (e.g. an out-of-range mintedAt) fail this token only
            values = self._build_values(token_id, owner, metadata)
        except Exception as e:
            return ReconcileResult(
                success=False,
                error=f"FID {fid} (token #{token_id}): {e}",
            )

        try:
            existing = await find_nft_by_fid(self.db, fid)
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
            else:
                self.db.add(Nft(fid=fid, created_at=values["updated_at"], **values))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            return ReconcileResult(
                success=False,
                error=f"FID {fid} (token #{token_id}): {e}",
            )

        return ReconcileResult(success=True, updated=True)
