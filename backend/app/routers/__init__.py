"""API routers."""

from app.routers.health import router as health_router
from app.routers.nfts import router as nfts_router
from app.routers.sync import router as sync_router

__all__ = ["health_router", "nfts_router", "sync_router"]
