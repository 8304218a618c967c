"""Batch driver syncing NFT contract state into the ``nfts`` table."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.schemas.sync import (
    CompleteData,
    CompleteEvent,
    ErrorEvent,
    ProgressData,
    ProgressEvent,
)
from app.services.checkpoint import CheckpointStore
from app.services.lease import LeaseLostError, LeaseManager
from app.services.ledger import LedgerReader
from app.services.reconciler import TokenReconciler

logger = logging.getLogger(__name__)
settings = get_settings()

Event = ProgressEvent | CompleteEvent | ErrorEvent


def clamp_batch_size(
    batch_size: int | None,
    default: int = settings.sync_default_batch_size,
    maximum: int = settings.sync_max_batch_size,
) -> int:
    """Missing or non-positive sizes fall back to the default; large ones are capped."""
    if not batch_size or batch_size < 1:
        return default
    return min(batch_size, maximum)


def percentage_of(value: int, total: int) -> int:
    """Percentage rounded half up."""
    if total <= 0:
        return 0
    return int(value * 100 / total + 0.5)


class ErrorLog:
    """Keeps the first ``limit`` error messages and counts the rest."""

    def __init__(self, limit: int = settings.sync_max_error_messages):
        self.limit = limit
        self.messages: list[str] = []
        self.dropped = 0

    def add(self, message: str) -> None:
        if len(self.messages) < self.limit:
            self.messages.append(message)
        else:
            self.dropped += 1

    def __len__(self) -> int:
        return len(self.messages) + self.dropped


class NftSyncService:
    """
    Syncs one batch of token ids per invocation.

    Features:
    - Auto-resume from the persisted checkpoint
    - Checkpoint every 10th token id and at batch end
    - Per-token failures collected, never fatal
    - Lease so only one invocation writes at a time, renewed at each checkpoint
    - Progress reported as a stream of events ending in exactly one
      ``complete`` or ``error``
    """

    def __init__(
        self,
        db: AsyncSession,
        ledger: LedgerReader | None = None,
        checkpoint_kind: str = settings.sync_checkpoint_kind,
        checkpoint_interval: int = settings.sync_checkpoint_interval,
        progress_interval: int = settings.sync_progress_interval,
        max_error_messages: int = settings.sync_max_error_messages,
        lease_ttl_seconds: int = settings.sync_lease_ttl_seconds,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.db = db
        self.ledger = ledger or LedgerReader()
        self.checkpoint_kind = checkpoint_kind
        self.checkpoint_interval = checkpoint_interval
        self.progress_interval = progress_interval
        self.max_error_messages = max_error_messages
        self.sleep = sleep

        self.reconciler = TokenReconciler(db, self.ledger)
        self.checkpoints = CheckpointStore(db)
        self.leases = LeaseManager(db, ttl_seconds=lease_ttl_seconds)
        self.holder: str | None = None

    async def run(
        self,
        batch_size: int | None = None,
        start_token_id: int = 0,
        batch_delay_ms: int = settings.sync_default_batch_delay_ms,
    ) -> AsyncIterator[Event]:
        """
        Sync one batch, yielding progress events.

        Args:
            batch_size: Tokens to process (0/None -> default, capped at max)
            start_token_id: First token id; 0 resumes after the checkpoint
            batch_delay_ms: Cool-down before reporting when more batches remain
        """
        holder = LeaseManager.new_holder()
        self.holder = holder
        try:
            acquired = await self.leases.acquire(self.checkpoint_kind, holder)
        except SQLAlchemyError as e:
            logger.error(f"Could not acquire sync lease: {e}")
            yield ErrorEvent(message=f"Fatal error: could not acquire sync lease: {e}")
            return

        if not acquired:
            yield ErrorEvent(
                message="Another sync is already running; try again when it finishes"
            )
            return

        try:
            async for event in self._run_batch(
                clamp_batch_size(batch_size),
                max(start_token_id or 0, 0),
                max(batch_delay_ms or 0, 0),
            ):
                yield event
        except Exception as e:
            logger.error(f"NFT sync failed: {e}", exc_info=True)
            await self.db.rollback()
            yield ErrorEvent(message=f"Fatal error: {e}")
        finally:
            await self._release(holder)

    async def _release(self, holder: str) -> None:
        try:
            await self.leases.release(self.checkpoint_kind, holder)
        except SQLAlchemyError as e:
            # Lease expires on its own
            logger.error(f"Could not release sync lease: {e}")
            await self.db.rollback()

    async def _save_checkpoint(self, token_id: int) -> None:
        # Each checkpoint also extends the lease; a lost lease stops the run
        if not await self.leases.renew(self.checkpoint_kind, self.holder):
            raise LeaseLostError(
                f"Sync lease was taken over by another invocation; "
                f"stopped before checkpointing token #{token_id}"
            )
        try:
            await self.checkpoints.save(self.checkpoint_kind, token_id)
        except SQLAlchemyError as e:
            logger.error(f"Error saving checkpoint at token #{token_id}: {e}")
            await self.db.rollback()

    async def _resolve_start(self, start_token_id: int) -> tuple[int, ProgressEvent | None]:
        """Explicit start, else one past the checkpoint, else token 1."""
        if start_token_id:
            return start_token_id, ProgressEvent(
                message=f"Starting from token #{start_token_id}",
                data=ProgressData(current_id=start_token_id),
            )

        last_token_id = await self.checkpoints.load_last(self.checkpoint_kind)
        if last_token_id is None:
            return 1, None

        start = last_token_id + 1
        return start, ProgressEvent(
            message=f"Auto-resuming from token #{start} (last synced: #{last_token_id})",
            data=ProgressData(current_id=start),
        )

    async def _run_batch(
        self, batch_size: int, start_token_id: int, batch_delay_ms: int
    ) -> AsyncIterator[Event]:
        yield ProgressEvent(message="Reading total supply from blockchain...")
        total_supply = await self.ledger.total_supply()
        logger.info(f"Total supply: {total_supply}")

        if total_supply == 0:
            yield CompleteEvent(
                message="No NFTs minted yet",
                data=CompleteData(total_supply=0, processed=0),
            )
            return

        start, resume_event = await self._resolve_start(start_token_id)
        if resume_event:
            yield resume_event

        last_in_batch = min(start + batch_size - 1, total_supply)
        yield ProgressEvent(
            message=(
                f"Total supply: {total_supply} NFTs. "
                f"Processing tokens {start} to {last_in_batch}..."
            ),
            data=ProgressData(total_supply=total_supply),
        )

        if start > total_supply:
            yield CompleteEvent(
                message=f"All tokens synced! (Total: {total_supply})",
                data=CompleteData(total_supply=total_supply, processed=total_supply),
            )
            return

        end_token = min(start + batch_size, total_supply + 1)

        updated = 0
        skipped = 0
        not_minted = 0
        resolution_failed = 0
        errors = ErrorLog(self.max_error_messages)

        for token_id in range(start, end_token):
            result = await self.reconciler.reconcile(token_id)

            if result.success:
                if result.updated:
                    updated += 1
                elif result.not_minted:
                    not_minted += 1
                else:
                    skipped += 1
            else:
                if result.resolution_failed:
                    resolution_failed += 1
                if result.error:
                    errors.add(result.error)
                    logger.warning(result.error)

            if token_id % self.checkpoint_interval == 0:
                await self._save_checkpoint(token_id)

            processed_in_batch = token_id - start + 1
            if processed_in_batch % self.progress_interval == 0 or token_id == end_token - 1:
                percentage = percentage_of(token_id, total_supply)
                yield ProgressEvent(
                    message=(
                        f"Token #{token_id}/{total_supply} ({percentage}%) - "
                        f"{updated} updated, {not_minted} not minted"
                    ),
                    data=ProgressData(
                        total_supply=total_supply,
                        processed=token_id,
                        updated=updated,
                        skipped=skipped,
                        not_minted=not_minted,
                        percentage=percentage,
                        current_id=token_id,
                    ),
                )

        await self._save_checkpoint(end_token - 1)

        has_more = end_token <= total_supply
        if has_more and batch_delay_ms > 0:
            yield ProgressEvent(
                message=f"Batch complete. Waiting {batch_delay_ms / 1000:g}s before next batch..."
            )
            await self.sleep(batch_delay_ms / 1000)

        if has_more:
            message = (
                f"Batch complete! {updated} updated, {not_minted} not minted. "
                f"Resume from token #{end_token}."
            )
        else:
            message = (
                f"All done! {updated} updated, {not_minted} not minted. "
                f"All {total_supply} tokens synced!"
            )
        logger.info(f"{message} ({len(errors)} errors)")

        yield CompleteEvent(
            message=message,
            data=CompleteData(
                total_supply=total_supply,
                processed=end_token - 1,
                updated=updated,
                skipped=skipped,
                not_minted=not_minted,
                resolution_failed=resolution_failed,
                errors=errors.messages,
                errors_dropped=errors.dropped,
                has_more=has_more,
                next_token_id=end_token if has_more else None,
            ),
        )
