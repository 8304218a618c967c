"""Database models."""

from app.models.nft import Nft
from app.models.sync_checkpoint import SyncCheckpoint
from app.models.sync_lease import SyncLease

__all__ = [
    "Nft",
    "SyncCheckpoint",
    "SyncLease",
]
