"""Nft model mirroring one minted avatar token per Farcaster user."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Nft(Base):
    """
    Database copy of the on-chain facts about one FID's avatar NFT.

    Keyed by FID, not token id: the contract maps each token to exactly one
    FID and the sync pipeline finds-or-creates by that key.
    """

    __tablename__ = "nfts"

    id: Mapped[int] = mapped_column(primary_key=True)
    fid: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)

    # Chain facts
    token_id: Mapped[int | None] = mapped_column(Integer, index=True)
    contract_address: Mapped[str | None] = mapped_column(String(42))
    owner_address: Mapped[str | None] = mapped_column(String(42), index=True)
    minted: Mapped[bool] = mapped_column(Boolean, server_default=false(), nullable=False)
    minted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Traits stored by getMetadata()
    character_class: Mapped[str | None] = mapped_column(String(100))
    class_description: Mapped[str | None] = mapped_column(Text)
    gender: Mapped[str | None] = mapped_column(String(50))
    background: Mapped[str | None] = mapped_column(String(100))
    background_description: Mapped[str | None] = mapped_column(Text)
    color_palette: Mapped[str | None] = mapped_column(String(255))
    color_vibe: Mapped[str | None] = mapped_column(String(255))
    clothing: Mapped[str | None] = mapped_column(Text)
    accessories: Mapped[str | None] = mapped_column(Text)
    items: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_nfts_minted", minted),
    )

    def __repr__(self) -> str:
        return f"<Nft fid={self.fid} token={self.token_id}>"
