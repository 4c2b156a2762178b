"""Content store interface shared by the filesystem and MFS backends.

Paths are store-absolute and slash separated (``/archive/name/1/report.json``).
Only the MFS backend has a content reference for its root, so ``flush`` and
``get_root_cid`` return ``None`` on the filesystem backend.
"""
import json
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ContentStore(Protocol):

    async def ensure_directory(self, path: str) -> None: ...

    async def write_file(self, path: str, data: bytes | str) -> None: ...

    async def copy_file(self, source: str, dest: str) -> None: ...

    async def read_file(self, path: str) -> bytes: ...

    async def read_file_string(self, path: str) -> str: ...

    async def read_json(self, path: str) -> Any: ...

    async def write_json(self, path: str, data: Any) -> None: ...

    async def list_directory(self, path: str) -> list[dict[str, Any]]: ...

    async def get_stats(self, path: str) -> dict[str, Any]: ...

    async def remove_file(self, path: str, recursive: bool = False) -> None: ...

    async def flush(self) -> str | None: ...

    async def get_root_cid(self) -> str | None: ...

    async def exists(self, path: str) -> bool: ...


class StoreMixin:
    """JSON helpers layered over the raw byte operations."""

    async def read_file_string(self, path: str) -> str:
        return (await self.read_file(path)).decode("utf-8")

    async def read_json(self, path: str) -> Any:
        return json.loads(await self.read_file_string(path))

    async def write_json(self, path: str, data: Any) -> None:
        await self.write_file(path, json.dumps(data, indent=2))

    @staticmethod
    def _encode(data: bytes | str) -> bytes:
        return data.encode("utf-8") if isinstance(data, str) else data
