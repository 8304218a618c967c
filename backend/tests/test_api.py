"""Tests for API endpoints."""

import json

import pytest
from sqlalchemy import text

from app.models import Nft
from app.services.checkpoint import CheckpointStore
from app.services.lease import LeaseManager

KIND = "nft_sync_token_progress"


async def insert_null_payload_checkpoint(db_session) -> None:
    await db_session.execute(
        text(
            "INSERT INTO sync_checkpoints (kind, payload, created_at, updated_at) "
            "VALUES (:kind, 'null', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
        ),
        {"kind": KIND},
    )
    await db_session.commit()


def parse_ndjson(body: str) -> list[dict]:
    return [json.loads(line) for line in body.splitlines() if line.strip()]


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client):
        """Test health endpoint returns status."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["nft_sync"]["record_count"] == 0
        assert data["nft_sync"]["last_token_id"] is None

    @pytest.mark.asyncio
    async def test_sync_running_reflects_live_lease(self, client, db_session):
        """Test an active lease reports a running sync."""
        await LeaseManager(db_session).acquire(KIND, "worker-a")

        response = await client.get("/health")

        assert response.json()["nft_sync"]["sync_running"] is True

    @pytest.mark.asyncio
    async def test_expired_lease_is_not_running(self, client, db_session):
        """Test a lease left behind by a crashed run doesn't count as running."""
        await LeaseManager(db_session, ttl_seconds=-60).acquire(KIND, "crashed-worker")

        response = await client.get("/health")

        assert response.json()["nft_sync"]["sync_running"] is False

    @pytest.mark.asyncio
    async def test_null_checkpoint_payload(self, client, db_session):
        """Test a checkpoint row with a null payload reports no cursor."""
        await insert_null_payload_checkpoint(db_session)

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["nft_sync"]["last_token_id"] is None

    @pytest.mark.asyncio
    async def test_probes(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "NFT Sync API"
        assert "version" in data
        assert "docs" in data


class TestSyncEndpoints:
    """Tests for the admin sync endpoints."""

    @pytest.mark.asyncio
    async def test_sync_streams_events(self, client, db_session):
        """Test a full batch streams progress then one complete event."""
        response = await client.post(
            "/api/v1/admin/sync-nfts", params={"batchSize": 100, "batchDelayMs": 0}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")

        events = parse_ndjson(response.text)
        assert all(event["type"] == "progress" for event in events[:-1])
        assert events[-1]["type"] == "complete"
        assert events[-1]["data"]["totalSupply"] == 10
        assert events[-1]["data"]["updated"] == 10
        assert events[-1]["data"]["errors"] == []

        assert await CheckpointStore(db_session).load_last(KIND) == 10

    @pytest.mark.asyncio
    async def test_sync_batch_size_clamped(self, client, fake_ledger):
        """Test batchSize=0 falls back to the default batch."""
        response = await client.post(
            "/api/v1/admin/sync-nfts", params={"batchSize": 0, "batchDelayMs": 0}
        )

        events = parse_ndjson(response.text)
        assert events[-1]["data"]["processed"] == 10
        assert fake_ledger.fid_calls == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_sync_fatal_error_event(self, client, fake_ledger):
        """Test a total supply failure streams a single error event."""
        fake_ledger.total_supply_error = Exception("429 Too Many Requests")

        response = await client.post("/api/v1/admin/sync-nfts")

        events = parse_ndjson(response.text)
        assert events[-1]["type"] == "error"
        assert "429" in events[-1]["message"]
        assert [event["type"] for event in events].count("error") == 1

    @pytest.mark.asyncio
    async def test_checkpoint_roundtrip(self, client, db_session):
        """Test reading and clearing the checkpoint over HTTP."""
        response = await client.get("/api/v1/admin/sync-nfts/checkpoint")
        assert response.json()["lastTokenId"] is None

        await CheckpointStore(db_session).save(KIND, 250)

        response = await client.get("/api/v1/admin/sync-nfts/checkpoint")
        assert response.json()["lastTokenId"] == 250

        response = await client.delete("/api/v1/admin/sync-nfts/checkpoint")
        assert response.json()["deleted"] is True

        response = await client.get("/api/v1/admin/sync-nfts/checkpoint")
        assert response.json()["lastTokenId"] is None

    @pytest.mark.asyncio
    async def test_checkpoint_with_null_payload(self, client, db_session):
        await insert_null_payload_checkpoint(db_session)

        response = await client.get("/api/v1/admin/sync-nfts/checkpoint")

        assert response.status_code == 200
        assert response.json()["lastTokenId"] is None

    @pytest.mark.asyncio
    async def test_check_missing_tokens(self, client, db_session):
        db_session.add(Nft(fid=11, token_id=1, minted=True))
        db_session.add(Nft(fid=13, token_id=3, minted=True))
        await db_session.commit()

        response = await client.get(
            "/api/v1/admin/check-missing-tokens", params={"maxTokenId": 5}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["missingTokenIds"] == [2, 4, 5]
        assert data["missingRanges"] == ["#2", "#4-5"]
        assert data["firstMissing"] == 2


class TestNftEndpoints:
    """Tests for mirrored NFT endpoints."""

    @pytest.mark.asyncio
    async def test_get_nft_not_found(self, client):
        response = await client.get("/api/v1/nfts/999")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_nft(self, client, db_session):
        db_session.add(Nft(fid=321, token_id=7, minted=True, character_class="Bard"))
        await db_session.commit()

        response = await client.get("/api/v1/nfts/321")

        assert response.status_code == 200
        data = response.json()
        assert data["token_id"] == 7
        assert data["character_class"] == "Bard"

    @pytest.mark.asyncio
    async def test_stats_from_contract(self, client):
        response = await client.get("/api/v1/nfts/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["totalMinted"] == 10
        assert data["maxSupply"] == 10000
        assert data["availableToMint"] == 9990

    @pytest.mark.asyncio
    async def test_stats_fall_back_to_database(self, client, db_session, fake_ledger):
        fake_ledger.total_supply_error = Exception("RPC unavailable")
        db_session.add(Nft(fid=1, token_id=1, minted=True))
        db_session.add(Nft(fid=2, minted=False))
        await db_session.commit()

        response = await client.get("/api/v1/nfts/stats")

        data = response.json()
        assert data["totalGenerated"] == 2
        assert data["totalMinted"] == 1
