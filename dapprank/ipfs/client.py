"""Async client for the Kubo (go-ipfs) RPC API."""
import json
import logging
from typing import Any

import httpx

from ..exceptions import StoreError

logger = logging.getLogger(__name__)

DIRECTORY_ERROR = "this dag node is a directory"
NOT_FOUND_ERROR = "does not exist"


class KuboClient:
    """Thin wrapper over ``/api/v0`` commands used by the crawler and the MFS store.

    Every transport failure or non-200 answer is raised as :class:`StoreError`
    carrying the node's error message, with the original exception chained.
    """

    def __init__(self, url: str = "http://localhost:5001", timeout: float = 120.0, client: httpx.AsyncClient | None = None):
        self.url = url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=f"{self.url}/api/v0", timeout=timeout)

    async def _post(self, command: str, params: list[tuple[str, str]] | None = None, files: dict | None = None) -> httpx.Response:
        try:
            response = await self._client.post(f"/{command}", params=params or [], files=files)
        except httpx.HTTPError as e:
            raise StoreError(f"IPFS request '{command}' failed: {e}") from e
        if response.status_code != 200:
            message = response.text
            try:
                message = response.json().get("Message", message)
            except (ValueError, AttributeError):
                pass
            raise StoreError(f"IPFS '{command}' error: {message}")
        return response

    async def _post_json(self, command: str, params: list[tuple[str, str]] | None = None) -> dict[str, Any]:
        response = await self._post(command, params)
        text = response.text.strip()
        if not text:
            return {}
        try:
            return json.loads(text.splitlines()[-1])
        except json.JSONDecodeError as e:
            raise StoreError(f"IPFS '{command}' returned invalid JSON") from e

    async def ls(self, cid: str) -> list[dict[str, Any]]:
        """List the links of a node as ``{name, cid, size, type}`` with type ``dir`` or ``file``."""
        data = await self._post_json("ls", [("arg", cid), ("resolve-type", "true"), ("size", "true")])
        entries = []
        for obj in data.get("Objects") or []:
            for link in obj.get("Links") or []:
                entries.append({
                    "name": link.get("Name", ""),
                    "cid": link.get("Hash", ""),
                    "size": int(link.get("Size") or 0),
                    "type": "dir" if link.get("Type") == 1 else "file",
                })
        return entries

    async def cat(self, cid: str, length: int | None = None) -> bytes:
        params = [("arg", cid)]
        if length is not None:
            params.append(("length", str(length)))
        response = await self._post("cat", params)
        return response.content

    async def cat_text(self, cid: str) -> str:
        return (await self.cat(cid)).decode("utf-8", errors="replace")

    async def stat(self, cid: str) -> dict[str, Any]:
        return await self.files_stat(f"/ipfs/{cid}")

    async def name_resolve(self, name: str) -> str:
        data = await self._post_json("name/resolve", [("arg", name), ("recursive", "true")])
        path = data.get("Path", "")
        if not path:
            raise StoreError(f"IPNS name {name} did not resolve")
        return path

    async def files_stat(self, path: str) -> dict[str, Any]:
        return await self._post_json("files/stat", [("arg", path)])

    async def files_mkdir(self, path: str, parents: bool = True) -> None:
        await self._post("files/mkdir", [("arg", path), ("parents", str(parents).lower())])

    async def files_write(self, path: str, data: bytes) -> None:
        params = [("arg", path), ("create", "true"), ("truncate", "true"), ("parents", "true")]
        await self._post("files/write", params, files={"file": ("data", data)})

    async def files_read(self, path: str) -> bytes:
        response = await self._post("files/read", [("arg", path)])
        return response.content

    async def files_ls(self, path: str) -> list[dict[str, Any]]:
        data = await self._post_json("files/ls", [("arg", path), ("long", "true")])
        return [
            {
                "name": entry.get("Name", ""),
                "type": "directory" if entry.get("Type") == 1 else "file",
                "size": int(entry.get("Size") or 0),
                "cid": entry.get("Hash", ""),
            }
            for entry in data.get("Entries") or []
        ]

    async def files_cp(self, source: str, dest: str) -> None:
        await self._post("files/cp", [("arg", source), ("arg", dest), ("parents", "true")])

    async def files_rm(self, path: str, recursive: bool = False) -> None:
        await self._post("files/rm", [("arg", path), ("recursive", str(recursive).lower()), ("force", "true")])

    async def files_flush(self, path: str = "/") -> str:
        data = await self._post_json("files/flush", [("arg", path)])
        return data.get("Cid", "")

    async def aclose(self) -> None:
        await self._client.aclose()
