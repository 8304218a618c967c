"""API routes for mirrored NFTs."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.models import Nft
from app.routers.sync import get_ledger
from app.schemas.nft import NftOut, NftStats
from app.services.ledger import LedgerReader
from app.services.nft_sync import percentage_of
from app.services.reconciler import find_nft_by_fid

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/nfts", tags=["nfts"])


@router.get("/stats", response_model=NftStats)
async def nft_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: Annotated[LedgerReader, Depends(get_ledger)],
) -> NftStats:
    """
    Collection mint stats.

    Minted count comes from the contract's total supply; when the RPC read
    fails it falls back to the number of rows marked minted.
    """
    generated_result = await db.execute(select(func.count(Nft.id)))
    total_generated = generated_result.scalar() or 0

    try:
        minted = await ledger.total_supply()
    except Exception as e:
        logger.error(f"Error reading total supply from contract: {e}")
        minted_result = await db.execute(
            select(func.count(Nft.id)).where(Nft.minted.is_(True))
        )
        minted = minted_result.scalar() or 0

    return NftStats(
        total_generated=total_generated,
        total_minted=minted,
        max_supply=settings.nft_max_supply,
        available_to_mint=max(settings.nft_max_supply - minted, 0),
        percentage=percentage_of(minted, settings.nft_max_supply),
    )


@router.get("/{fid}", response_model=NftOut)
async def get_nft(
    fid: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NftOut:
    """Mirrored NFT for a Farcaster FID."""
    nft = await find_nft_by_fid(db, fid)
    if nft is None:
        raise HTTPException(status_code=404, detail=f"No NFT for FID {fid}")
    return NftOut.model_validate(nft)
