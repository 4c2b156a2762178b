"""Flatten a content-addressed directory tree into file entries."""
import logging

from ..exceptions import StoreError
from ..models import FileEntry
from ..utils.file_utils import sniff_mime_type
from .client import DIRECTORY_ERROR, KuboClient

logger = logging.getLogger(__name__)

ROOT_FILE_NAME = "index.html"
SNIFF_LENGTH = 512


def _is_sharded(entries: list[dict]) -> bool:
    return bool(entries) and all(e["type"] == "file" and e["name"] == "" for e in entries)


async def list_files(kubo: KuboClient, cid: str, path_carry: str = "") -> list[FileEntry]:
    """Walk ``cid`` depth-first and return every file with a path relative to the root.

    Store errors propagate so that unavailable content aborts the report.
    """
    entries = await kubo.ls(cid)
    if not entries and not path_carry:
        stats = await kubo.stat(cid)
        return [FileEntry(path=ROOT_FILE_NAME, size=int(stats.get("Size") or 0), cid=cid)]
    if _is_sharded(entries):
        size = sum(e["size"] for e in entries)
        return [FileEntry(path=path_carry or ROOT_FILE_NAME, size=size, cid=cid)]

    files: list[FileEntry] = []
    for entry in entries:
        path = f"{path_carry}/{entry['name']}" if path_carry else entry["name"]
        if entry["type"] == "dir":
            files.extend(await list_files(kubo, entry["cid"], path))
        else:
            files.append(FileEntry(path=path or ROOT_FILE_NAME, size=entry["size"], cid=entry["cid"]))
    return files


async def detect_mime_type(kubo: KuboClient, cid: str) -> str:
    try:
        head = await kubo.cat(cid, length=SNIFF_LENGTH)
    except StoreError as e:
        if DIRECTORY_ERROR in str(e):
            return "inode/directory"
        logger.debug("Could not read %s for MIME detection: %s", cid, e)
        return "application/octet-stream"
    return sniff_mime_type(head)
