"""Pydantic schemas for mirrored NFTs."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NftOut(BaseModel):
    """Mirrored NFT response schema."""

    model_config = ConfigDict(from_attributes=True)

    fid: int
    token_id: int | None = None
    contract_address: str | None = None
    owner_address: str | None = None
    minted: bool = False
    minted_at: datetime | None = None

    character_class: str | None = None
    class_description: str | None = None
    gender: str | None = None
    background: str | None = None
    background_description: str | None = None
    color_palette: str | None = None
    color_vibe: str | None = None
    clothing: str | None = None
    accessories: str | None = None
    items: str | None = None

    updated_at: datetime | None = None


class NftStats(BaseModel):
    """Collection mint stats."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_generated: int
    total_minted: int
    max_supply: int
    available_to_mint: int
    percentage: int
