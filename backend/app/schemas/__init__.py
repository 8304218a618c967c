"""Pydantic schemas for API request/response validation."""

from app.schemas.nft import NftOut, NftStats
from app.schemas.sync import (
    CheckpointOut,
    CompleteData,
    CompleteEvent,
    ErrorEvent,
    MissingTokensOut,
    ProgressData,
    ProgressEvent,
    SyncEvent,
)

__all__ = [
    "CheckpointOut",
    "CompleteData",
    "CompleteEvent",
    "ErrorEvent",
    "MissingTokensOut",
    "NftOut",
    "NftStats",
    "ProgressData",
    "ProgressEvent",
    "SyncEvent",
]
