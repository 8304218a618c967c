"""Pytest fixtures for NFT sync backend tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.database import Base, get_db
from app.main import app
from app.routers.sync import get_ledger, get_session_factory
from app.services.ledger import TokenMetadata

CONTRACT_ADDRESS = "0x1111111111111111111111111111111111111111"


class FakeLedger:
    """
    In-memory stand-in for LedgerReader.

    Tokens map to FIDs via ``fids``; missing ids read as unminted (FID 0).
    ``failures`` maps (method, token_id) to an exception raised on that read;
    ``minted_at`` overrides the raw mint timestamp per token.
    """

    def __init__(
        self,
        total_supply: int = 0,
        fids: dict[int, int] | None = None,
        failures: dict[tuple[str, int], Exception] | None = None,
        minted_at: dict[int, int] | None = None,
    ):
        self.contract_address = CONTRACT_ADDRESS
        self._total_supply = total_supply
        self.fids = fids or {}
        self.failures = failures or {}
        self.minted_at = minted_at or {}
        self.total_supply_error: Exception | None = None
        self.fid_calls: list[int] = []

    def _maybe_fail(self, method: str, token_id: int) -> None:
        error = self.failures.get((method, token_id))
        if error:
            raise error

    async def total_supply(self) -> int:
        if self.total_supply_error:
            raise self.total_supply_error
        return self._total_supply

    async def resolve_fid(self, token_id: int) -> int:
        self.fid_calls.append(token_id)
        self._maybe_fail("fid", token_id)
        return self.fids.get(token_id, 0)

    async def resolve_owner(self, token_id: int) -> str:
        self._maybe_fail("owner", token_id)
        return f"0xABCDEF{token_id:034X}"

    async def resolve_metadata(self, token_id: int) -> TokenMetadata:
        self._maybe_fail("metadata", token_id)
        return TokenMetadata(
            fid=self.fids.get(token_id, 0),
            character_class="Wizard",
            class_description="Keeper of the purple flame",
            gender="Female",
            background="Castle",
            color_palette="#6A0DAD,#FFD700",
            clothing="Robe",
            minted_at=self.minted_at.get(token_id, 1_735_689_600),  # 2025-01-01T00:00:00Z
        )


def dense_fids(count: int, offset: int = 1000) -> dict[int, int]:
    """Token ids 1..count each minted for FID offset + token id."""
    return {token_id: offset + token_id for token_id in range(1, count + 1)}


async def collect(events) -> list:
    """Drain an async iterator of events into a list."""
    return [event async for event in events]


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create async engine backed by a per-test SQLite file."""
    # A file (not :memory:) so streaming runs can open their own connections
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_ledger() -> FakeLedger:
    """Ledger with ten minted tokens."""
    return FakeLedger(total_supply=10, fids=dense_fids(10))


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    fake_ledger: FakeLedger,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and ledger overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ledger] = lambda: fake_ledger

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_metadata_tuple() -> tuple[Any, ...]:
    """getMetadata() result as decoded by web3 (struct -> tuple)."""
    return (
        4242,
        "Knight",
        "Sworn protector of the realm",
        "Male",
        "Forest",
        "Misty pines at dawn",
        "#228B22,#C0C0C0",
        "Earthy",
        "Plate armor",
        "Shield",
        "Longsword",
        1_735_689_600,
    )


@pytest.fixture
def sample_datetime() -> datetime:
    """Sample datetime for testing."""
    return datetime(2025, 1, 1, 0, 0, 0, tzinfo=UTC)
