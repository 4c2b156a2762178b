"""Contenthash change scanner.

Pages through ``contenthashChanged`` events on the ENS subgraph and records
one ``metadata.json`` per (name, block) under ``/archive``. Progress is
persisted in ``/state.json`` after every page so an interrupted scan resumes
where it stopped.
"""
import hashlib
import logging
import re
import time
from typing import Any, Optional

import httpx

from ..config.constants import DappRankConstants
from ..exceptions import StoreError, SubgraphError
from ..storage.base import ContentStore

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000
HEX_LABEL_PATTERN = re.compile(r"\[[0-9a-f]{16,}\]")

CONTENTHASH_QUERY = """
query ($first: Int, $orderBy: ContenthashChanged_orderBy, $orderDirection: OrderDirection, $blockNumberGte: Int) {
  contenthashChangeds(
    first: $first
    orderBy: $orderBy
    orderDirection: $orderDirection
    where: { blockNumber_gte: $blockNumberGte }
  ) {
    hash
    blockNumber
    id
    resolver {
      domain {
        name
      }
    }
    transactionID
  }
}
"""


def safe_archive_name(name: str) -> str:
    """Names too long for a path component are replaced by a short hash."""
    if len(name) <= DappRankConstants.MAX_NAME_LENGTH:
        return name
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:16]
    return f"[{digest}].long-name"


class ScanManager:

    def __init__(
        self,
        store: ContentStore,
        subgraph_url: str = DappRankConstants.DEFAULT_ENS_SUBGRAPH_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.store = store
        self.subgraph_url = subgraph_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def initialize(self) -> None:
        await self.store.ensure_directory(DappRankConstants.ARCHIVE_DIR)
        if not await self.store.exists(DappRankConstants.STATE_FILE):
            await self.save_scan_height(0)

    async def get_last_scan_height(self) -> int:
        try:
            state = await self.store.read_json(DappRankConstants.STATE_FILE)
        except (StoreError, ValueError) as e:
            logger.warning("Could not read scan height, starting from 0: %s", e)
            return 0
        return int(state.get("scannedUntil", 0))

    async def save_scan_height(self, block_number: int) -> None:
        try:
            state = await self.store.read_json(DappRankConstants.STATE_FILE)
        except (StoreError, ValueError):
            state = {}
        state["scannedUntil"] = block_number
        await self.store.write_json(DappRankConstants.STATE_FILE, state)

    async def fetch_changes(self, from_block: int) -> list[dict[str, Any]]:
        variables: dict[str, Any] = {
            "first": PAGE_SIZE,
            "orderBy": "blockNumber",
            "orderDirection": "asc",
        }
        if from_block > 0:
            variables["blockNumberGte"] = from_block
        try:
            response = await self._client.post(
                self.subgraph_url, json={"query": CONTENTHASH_QUERY, "variables": variables}
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SubgraphError(f"Subgraph request failed: {e}") from e
        if payload.get("errors"):
            raise SubgraphError(f"Subgraph returned errors: {payload['errors']}")
        return payload.get("data", {}).get("contenthashChangeds", [])

    async def save_change(self, change: dict[str, Any]) -> bool:
        domain = (change.get("resolver") or {}).get("domain") or {}
        name = domain.get("name")
        if not name:
            logger.debug("Skipping entry with missing domain data: %s", change.get("id"))
            return False
        if HEX_LABEL_PATTERN.search(name):
            logger.debug("Skipping ENS name with [<hex>] label: %s", name)
            return False

        archive_name = safe_archive_name(name)
        if archive_name != name:
            logger.info('Truncated long ENS name "%s..." to "%s"', name[:50], archive_name)
        metadata = {"contenthash": change.get("hash"), "tx": change.get("transactionID")}
        if archive_name != name:
            metadata["originalName"] = name

        path = f"{DappRankConstants.ARCHIVE_DIR}/{archive_name}/{change['blockNumber']}/metadata.json"
        try:
            await self.store.write_json(path, metadata)
        except StoreError as e:
            logger.error("Error saving contenthash change for %s: %s", archive_name, e)
            return False
        logger.info("Saved: %s at block %s", archive_name, change["blockNumber"])
        return True

    async def scan(self, from_block: Optional[int] = None) -> dict[str, int]:
        """Scan forward from ``from_block`` (default: the persisted height)."""
        await self.initialize()
        if from_block is None:
            from_block = await self.get_last_scan_height()
        started = time.monotonic()
        logger.info("Scanning for contenthash changes from block %d...", from_block)

        last_block = from_block
        total = 0
        while True:
            try:
                changes = await self.fetch_changes(from_block)
            except SubgraphError as e:
                logger.error("Error fetching contenthash changes: %s", e)
                break
            if not changes:
                break
            logger.info("Found %d contenthash changes", len(changes))
            for change in changes:
                await self.save_change(change)
                last_block = max(last_block, int(change["blockNumber"]))
                total += 1
            if last_block > from_block:
                await self.save_scan_height(last_block)
                await self.store.flush()
                logger.info("Progress saved: scan height updated to block %d", last_block)
            if len(changes) < PAGE_SIZE:
                break
            from_block = last_block + 1

        elapsed = time.monotonic() - started
        logger.info("Scan complete. Processed %d changes up to block %d in %.1fs", total, last_block, elapsed)
        return {"totalChanges": total, "lastBlockNumber": last_block}

    async def aclose(self) -> None:
        await self._client.aclose()
