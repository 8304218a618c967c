#!/usr/bin/env python3
"""
Drive the NFT sync endpoint until the whole collection is mirrored.

Each POST processes one batch and ends with a ``complete`` event saying
whether more tokens remain; this script keeps re-invoking with auto-resume.

Usage: python scripts/run_sync.py [--batch-size 100] [--start-token-id 0]
"""

import argparse
import asyncio
import json
import os
import sys

import httpx
from dotenv import load_dotenv

load_dotenv()

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")
SYNC_PATH = "/api/v1/admin/sync-nfts"

# No event for this long means the server process died mid-batch
WATCHDOG_SECONDS = 300.0
MAX_BATCHES = 1000


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


async def run_batch(
    client: httpx.AsyncClient,
    batch_size: int,
    start_token_id: int,
    batch_delay_ms: int,
) -> dict | None:
    """Run one batch, returning its terminal event (None if the stream broke)."""
    params = {
        "batchSize": batch_size,
        "startTokenId": start_token_id,
        "batchDelayMs": batch_delay_ms,
    }
    async with client.stream("POST", SYNC_PATH, params=params) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            if not line.strip():
                continue
            event = json.loads(line)
            log(f"[{event['type']}] {event['message']}")
            if event["type"] in ("complete", "error"):
                return event
    return None


async def main(batch_size: int, start_token_id: int, batch_delay_ms: int) -> int:
    timeout = httpx.Timeout(10.0, read=WATCHDOG_SECONDS)
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=timeout) as client:
        for batch_number in range(1, MAX_BATCHES + 1):
            log(f"\n=== Batch {batch_number} ===")
            try:
                event = await run_batch(client, batch_size, start_token_id, batch_delay_ms)
            except httpx.HTTPError as e:
                log(f"Request failed: {e}")
                return 1

            if event is None:
                log("Stream ended without a final status; re-run to resume from the checkpoint")
                return 1
            if event["type"] == "error":
                return 1

            data = event.get("data", {})
            errors = data.get("errors", [])
            if errors:
                log(f"{len(errors)} token errors in this batch:")
                for error in errors:
                    log(f"  - {error}")

            if not data.get("hasMore"):
                log("\nAll tokens synced!")
                return 0

            # Later batches resume from the checkpoint
            start_token_id = 0

    log(f"Stopped after {MAX_BATCHES} batches")
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--batch-size", type=int, default=100)
    parser.add_argument("--start-token-id", type=int, default=0)
    parser.add_argument("--batch-delay-ms", type=int, default=3000)
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.batch_size, args.start_token_id, args.batch_delay_ms)))
