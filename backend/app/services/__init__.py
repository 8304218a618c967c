"""Services for NFT sync and business logic."""

from app.services.checkpoint import CheckpointStore
from app.services.ledger import LedgerReader
from app.services.nft_sync import NftSyncService
from app.services.progress import ProgressStream
from app.services.reconciler import TokenReconciler

__all__ = [
    "CheckpointStore",
    "LedgerReader",
    "NftSyncService",
    "ProgressStream",
    "TokenReconciler",
]
