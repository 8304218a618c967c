"""Contract reads against the avatar NFT collection, with retry on rate limits."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3

from app.config import get_settings
from app.services.retry import retry_with_backoff

logger = logging.getLogger(__name__)
settings = get_settings()

_METADATA_FIELDS = (
    "fid",
    "characterClass",
    "classDescription",
    "gender",
    "background",
    "backgroundDescription",
    "colorPalette",
    "colorVibe",
    "clothing",
    "accessories",
    "items",
    "mintedAt",
)

# Only the view functions the sync pipeline calls
NFT_CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "name": "totalSupply",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "tokenIdToFid",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "ownerOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "getMetadata",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": name, "type": "uint256" if name in ("fid", "mintedAt") else "string"}
                    for name in _METADATA_FIELDS
                ],
            }
        ],
    },
]


class LedgerError(Exception):
    """Base exception for contract read errors."""

    pass


@dataclass(frozen=True)
class TokenMetadata:
    """Traits the contract stores for a minted token."""

    fid: int
    character_class: str = ""
    class_description: str = ""
    gender: str = ""
    background: str = ""
    background_description: str = ""
    color_palette: str = ""
    color_vibe: str = ""
    clothing: str = ""
    accessories: str = ""
    items: str = ""
    minted_at: int = 0  # Unix seconds

    @classmethod
    def from_contract(cls, value: Any) -> "TokenMetadata":
        """Build from a decoded ``getMetadata`` struct (tuple or mapping)."""
        if isinstance(value, dict):
            raw = value
        elif hasattr(value, "_asdict"):
            raw = value._asdict()
        elif isinstance(value, (list, tuple)) and len(value) == len(_METADATA_FIELDS):
            raw = dict(zip(_METADATA_FIELDS, value))
        else:
            raise LedgerError(f"Unexpected getMetadata result: {value!r}")

        return cls(
            fid=int(raw.get("fid") or 0),
            character_class=raw.get("characterClass") or "",
            class_description=raw.get("classDescription") or "",
            gender=raw.get("gender") or "",
            background=raw.get("background") or "",
            background_description=raw.get("backgroundDescription") or "",
            color_palette=raw.get("colorPalette") or "",
            color_vibe=raw.get("colorVibe") or "",
            clothing=raw.get("clothing") or "",
            accessories=raw.get("accessories") or "",
            items=raw.get("items") or "",
            minted_at=int(raw.get("mintedAt") or 0),
        )

    @property
    def minted_at_datetime(self) -> datetime | None:
        if not self.minted_at:
            return None
        try:
            return datetime.fromtimestamp(self.minted_at, tz=UTC)
        except (ValueError, OverflowError, OSError) as e:
            raise LedgerError(f"Invalid mintedAt {self.minted_at}: {e}") from e


class LedgerReader:
    """
    Read-only view of the NFT contract.

    Every read goes through ``retry_with_backoff`` so throttled RPC calls
    (HTTP 429 from public endpoints) back off instead of failing the token.
    """

    def __init__(
        self,
        rpc_url: str = settings.rpc_url,
        contract_address: str = settings.nft_contract_address,
        max_attempts: int = settings.sync_retry_max_attempts,
        base_delay_ms: int = settings.sync_retry_base_delay_ms,
    ):
        self.rpc_url = rpc_url
        self.contract_address = AsyncWeb3.to_checksum_address(contract_address)
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms

        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=self.contract_address,
            abi=NFT_CONTRACT_ABI,
        )

    async def _read(self, function_name: str, *args: Any) -> Any:
        """Call a view function with retry."""

        async def call() -> Any:
            return await getattr(self.contract.functions, function_name)(*args).call()

        return await retry_with_backoff(
            call,
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
        )

    async def total_supply(self) -> int:
        """Number of tokens minted so far; ids run densely from 1."""
        return int(await self._read("totalSupply"))

    async def resolve_fid(self, token_id: int) -> int:
        """FID a token was minted for, 0 when the slot is empty."""
        return int(await self._read("tokenIdToFid", token_id))

    async def resolve_owner(self, token_id: int) -> str:
        """Current owner address, lower-cased."""
        owner = await self._read("ownerOf", token_id)
        return str(owner).lower()

    async def resolve_metadata(self, token_id: int) -> TokenMetadata:
        """Traits stored on-chain for the token."""
        value = await self._read("getMetadata", token_id)
        return TokenMetadata.from_contract(value)
