"""Persistent cache of script classifications.

Entries live at ``<cache_dir>/<prompt_hash>/<key>.json``. A new prompt
hash starts an empty generation, so stale results are never reused after
the prompt changes. Nothing is evicted.
"""
import base64
import binascii
import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..exceptions import ContenthashError
from ..ipfs.contenthash import multihash_digest

logger = logging.getLogger(__name__)


def cache_key(content_ref: str) -> str:
    """Filesystem-safe key for a content reference.

    CIDs map to the base64 of their multihash digest, so the CIDv0 and CIDv1
    spellings of the same content share one entry. Other references fall
    back to their sha256.
    """
    try:
        digest = multihash_digest(content_ref)
    except (ContenthashError, ValueError, binascii.Error, IndexError):
        digest = b""
    if not digest:
        return hashlib.sha256(content_ref.encode("utf-8")).hexdigest()
    return base64.b64encode(digest).decode("ascii").replace("/", "_").replace("=", "-")


class CacheManager:

    def __init__(self, cache_dir: str | Path):
        self.cache_dir = Path(cache_dir)

    def _entry_path(self, prompt_hash: str, content_ref: str) -> Path:
        return self.cache_dir / prompt_hash / f"{cache_key(content_ref)}.json"

    def get(self, prompt_hash: str, content_ref: str) -> dict[str, Any] | None:
        path = self._entry_path(prompt_hash, content_ref)
        if not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache entry %s: %s", path, e)
            return None
        return entry.get("result")

    def set(self, prompt_hash: str, content_ref: str, value: dict[str, Any]) -> None:
        path = self._entry_path(prompt_hash, content_ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = {"timestamp": datetime.now(timezone.utc).isoformat(), "result": value}
        path.write_text(json.dumps(entry, indent=2), encoding="utf-8")
