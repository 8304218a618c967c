"""SyncCheckpoint model holding the resumable cursor of each sync pipeline."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SyncCheckpoint(Base):
    """
    Last durably processed cursor for a sync pipeline.

    One row per kind; the payload carries at least ``lastTokenId``.
    """

    __tablename__ = "sync_checkpoints"

    # e.g. 'nft_sync_token_progress'
    kind: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<SyncCheckpoint {self.kind}: {self.payload}>"
