"""Admin endpoints driving the NFT contract -> database sync."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.database import async_session_maker, get_db
from app.limiter import limiter
from app.schemas.sync import CheckpointOut, MissingTokensOut
from app.services.checkpoint import CheckpointStore
from app.services.coverage import find_missing_tokens
from app.services.ledger import LedgerReader
from app.services.nft_sync import NftSyncService
from app.services.progress import ProgressStream

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/admin", tags=["admin"])


def get_ledger() -> LedgerReader:
    """Dependency providing the contract reader."""
    return LedgerReader()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency providing the session factory used by streaming runs."""
    return async_session_maker


@router.post("/sync-nfts")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def sync_nfts(
    request: Request,
    ledger: Annotated[LedgerReader, Depends(get_ledger)],
    session_factory: Annotated[
        async_sessionmaker[AsyncSession], Depends(get_session_factory)
    ],
    batch_size: int = Query(
        settings.sync_default_batch_size,
        alias="batchSize",
        description="Tokens per invocation (0 = default, capped at the max)",
    ),
    start_token_id: int = Query(
        0, alias="startTokenId", ge=0, description="First token id; 0 = auto-resume"
    ),
    batch_delay_ms: int = Query(
        settings.sync_default_batch_delay_ms,
        alias="batchDelayMs",
        ge=0,
        description="Cool-down before reporting when more tokens remain",
    ),
) -> StreamingResponse:
    """
    Sync one batch of NFTs from the contract, streaming progress.

    The response is newline-delimited JSON: ``progress`` events followed by
    exactly one ``complete`` or ``error``. Call again with the default
    ``startTokenId=0`` to resume where the last batch stopped.
    """

    async def run():
        # The stream outlives the request dependency scope, so it owns a session
        async with session_factory() as db:
            service = NftSyncService(db, ledger)
            async for event in service.run(
                batch_size=batch_size,
                start_token_id=start_token_id,
                batch_delay_ms=batch_delay_ms,
            ):
                yield event

    logger.info(
        f"NFT sync requested: batchSize={batch_size}, "
        f"startTokenId={start_token_id}, batchDelayMs={batch_delay_ms}"
    )
    stream = ProgressStream(run(), maxsize=settings.sync_stream_queue_size)

    return StreamingResponse(
        stream.lines(),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/sync-nfts/checkpoint", response_model=CheckpointOut)
async def get_sync_checkpoint(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CheckpointOut:
    """Return the last synced token id."""
    checkpoint = await CheckpointStore(db).get(settings.sync_checkpoint_kind)
    if checkpoint is None:
        return CheckpointOut(last_token_id=None)

    return CheckpointOut(
        last_token_id=(checkpoint.payload or {}).get("lastTokenId"),
        updated_at=str(checkpoint.updated_at),
    )


@router.delete("/sync-nfts/checkpoint")
async def clear_sync_checkpoint(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Clear the sync checkpoint so the next auto-resume starts from token #1.

    Existing rows are kept; the next pass re-reconciles them in place.
    """
    deleted = await CheckpointStore(db).clear(settings.sync_checkpoint_kind)
    return {
        "message": "NFT sync checkpoint cleared",
        "deleted": deleted,
    }


@router.get("/check-missing-tokens", response_model=MissingTokensOut)
async def check_missing_tokens(
    db: Annotated[AsyncSession, Depends(get_db)],
    max_token_id: int = Query(3000, alias="maxTokenId", ge=1, le=100000),
) -> MissingTokensOut:
    """List token ids 1..maxTokenId with no row in the database."""
    return await find_missing_tokens(db, max_token_id)
