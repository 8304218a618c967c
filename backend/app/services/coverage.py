"""Find token ids that have no mirrored row yet."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Nft
from app.schemas.sync import MissingTokensOut

logger = logging.getLogger(__name__)


def collapse_ranges(token_ids: list[int]) -> list[str]:
    """Render sorted ids as ``#a`` / ``#a-b`` runs, e.g. [1, 2, 3, 7] -> ['#1-3', '#7']."""
    ranges: list[str] = []
    if not token_ids:
        return ranges

    range_start = range_end = token_ids[0]
    for token_id in token_ids[1:]:
        if token_id == range_end + 1:
            range_end = token_id
            continue
        ranges.append(f"#{range_start}" if range_start == range_end else f"#{range_start}-{range_end}")
        range_start = range_end = token_id

    ranges.append(f"#{range_start}" if range_start == range_end else f"#{range_start}-{range_end}")
    return ranges


async def find_missing_tokens(db: AsyncSession, max_token_id: int) -> MissingTokensOut:
    """Compare token ids 1..max_token_id with the ids present in ``nfts``."""
    result = await db.execute(select(Nft.token_id).where(Nft.token_id.is_not(None)))
    existing = {token_id for token_id in result.scalars().all()}
    logger.info(f"Found {len(existing)} tokens in database")

    missing = [token_id for token_id in range(1, max_token_id + 1) if token_id not in existing]
    ranges = collapse_ranges(missing)
    logger.info(f"Missing ranges: {', '.join(ranges) or 'None'}")

    percent = (len(existing) / max_token_id * 100) if max_token_id else 0.0

    return MissingTokensOut(
        total_checked=max_token_id,
        existing_count=len(existing),
        missing_count=len(missing),
        missing_token_ids=missing,
        missing_ranges=ranges,
        first_missing=missing[0] if missing else None,
        percent_complete=f"{percent:.2f}",
    )
