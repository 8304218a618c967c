"""Health and metrics endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.models import Nft, SyncCheckpoint, SyncLease

router = APIRouter(tags=["health"])
settings = get_settings()


class NftSyncStatus(BaseModel):
    """Status of the NFT sync pipeline."""

    last_sync: datetime | None
    last_token_id: int | None
    record_count: int
    minted_count: int
    sync_running: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    nft_sync: NftSyncStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with sync status.

    Returns the checkpoint cursor and mirrored record counts.
    """
    checkpoint_result = await db.execute(
        select(SyncCheckpoint).where(SyncCheckpoint.kind == settings.sync_checkpoint_kind)
    )
    checkpoint = checkpoint_result.scalar_one_or_none()

    count_result = await db.execute(select(func.count(Nft.id)))
    record_count = count_result.scalar() or 0

    minted_result = await db.execute(
        select(func.count(Nft.id)).where(Nft.minted.is_(True))
    )
    minted_count = minted_result.scalar() or 0

    # A crashed run leaves an expired row behind; only a live lease counts
    lease_result = await db.execute(
        select(SyncLease.kind).where(
            SyncLease.kind == settings.sync_checkpoint_kind,
            SyncLease.expires_at > datetime.now(UTC),
        )
    )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        nft_sync=NftSyncStatus(
            last_sync=checkpoint.updated_at if checkpoint else None,
            last_token_id=(checkpoint.payload or {}).get("lastTokenId") if checkpoint else None,
            record_count=record_count,
            minted_count=minted_count,
            sync_running=lease_result.first() is not None,
        ),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
