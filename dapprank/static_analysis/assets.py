"""Web manifest and favicon extraction from a dapp's file tree."""
import base64
import json
import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote_to_bytes

from ..config.constants import DappRankConstants
from ..ipfs.client import KuboClient
from ..utils.file_utils import get_file_extension, normalize_tree_path
from .html_analyzer import find_link_hrefs

logger = logging.getLogger(__name__)

MANIFEST_FALLBACK_PATHS = ("manifest.json", "manifest.webmanifest", "site.webmanifest")
DATA_URL = re.compile(r"^data:([^;,]+)((?:;[^;,]+)*),(.*)$", re.DOTALL)


@dataclass
class Webmanifest:
    data: bytes | None = None
    icons: list[tuple[str, bytes]] = field(default_factory=list)
    screenshots: list[tuple[str, bytes]] = field(default_factory=list)


@dataclass
class Favicon:
    path: str = ""
    data: bytes | None = None
    priority: int = -1
    cid: str | None = None


def favicon_priority(ext: str) -> int:
    return DappRankConstants.FAVICON_PRIORITIES.get(ext.lower(), 0)


def _mime_extension(mime: str) -> str:
    ext = mime.split("/")[-1].lower() if "/" in mime else "ico"
    return "svg" if ext == "svg+xml" else ext


def _files_by_path(files: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {f["path"]: f for f in files}


async def _read_index(kubo: KuboClient, files: list[dict[str, Any]]) -> str | None:
    index = _files_by_path(files).get("index.html")
    if index is None:
        return None
    return await kubo.cat_text(index["cid"])


def decode_data_url(href: str) -> tuple[str, bytes] | None:
    match = DATA_URL.match(href)
    if not match:
        return None
    mime, params, payload = match.groups()
    if ";base64" in params.lower():
        try:
            return mime, base64.b64decode(payload)
        except ValueError:
            return None
    return mime, unquote_to_bytes(payload)


async def get_webmanifest(kubo: KuboClient, files: list[dict[str, Any]]) -> Webmanifest:
    by_path = _files_by_path(files)
    html = await _read_index(kubo, files)
    candidates = []
    if html:
        candidates = [normalize_tree_path(href) for href, _ in find_link_hrefs(html, lambda rel: "manifest" in rel)]
    candidates.extend(MANIFEST_FALLBACK_PATHS)
    manifest_path = next((p for p in candidates if p in by_path), None)
    if manifest_path is None:
        return Webmanifest()

    data = await kubo.cat(by_path[manifest_path]["cid"])
    result = Webmanifest(data=data)
    try:
        manifest = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Web manifest %s is not valid JSON: %s", manifest_path, e)
        return result
    if not isinstance(manifest, dict):
        return result

    base_dir = posixpath.dirname(manifest_path)
    for key, target in (("icons", result.icons), ("screenshots", result.screenshots)):
        entries = manifest.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            src = entry.get("src") if isinstance(entry, dict) else None
            if not isinstance(src, str) or not src or src.startswith(("http", "data:")):
                continue
            path = normalize_tree_path(src, base_dir)
            if path in by_path:
                target.append((path, await kubo.cat(by_path[path]["cid"])))
    return result


async def get_favicon(kubo: KuboClient, files: list[dict[str, Any]]) -> Favicon:
    """Pick the highest priority favicon declared by index.html.

    Falls back to a ``favicon.ico`` in the tree.
    """
    by_path = _files_by_path(files)
    best = Favicon()
    html = await _read_index(kubo, files)
    links = find_link_hrefs(html, lambda rel: any("icon" in r or "shortcut" in r for r in rel)) if html else []
    for href, attrs in links:
        if href.startswith("data:"):
            decoded = decode_data_url(href)
            if decoded is None:
                continue
            mime, data = decoded
            ext = _mime_extension(mime)
            candidate = Favicon(path=f"favicon.{ext}", data=data, priority=favicon_priority(ext))
        else:
            path = normalize_tree_path(href)
            entry = by_path.get(path)
            if entry is None:
                continue
            type_attr = attrs.get("type")
            if type_attr:
                ext = _mime_extension(type_attr)
                name = f"favicon.{ext}"
            else:
                ext = get_file_extension(path)
                name = posixpath.basename(path)
            candidate = Favicon(path=name, priority=favicon_priority(ext), cid=entry["cid"])
        if candidate.priority > best.priority:
            best = candidate

    if best.priority < 0 and "favicon.ico" in by_path:
        best = Favicon(path="favicon.ico", priority=favicon_priority("ico"), cid=by_path["favicon.ico"]["cid"])
    if best.cid is not None:
        best.data = await kubo.cat(best.cid)
    return best
