import logging
import os
import shutil
from pathlib import Path
from typing import Any
from ..exceptions import StoreError
from .base import StoreMixin
logger = logging.getLogger(__name__)

class FilesystemStore(StoreMixin):
    """Content store rooted at a local directory. Copies are relative symlinks."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root / path.lstrip('/')

    async def ensure_directory(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    async def write_file(self, path: str, data: bytes | str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.is_symlink():
                target.unlink()
            target.write_bytes(self._encode(data))
        except OSError as e:
            raise StoreError(f'Failed to write {path}: {e}') from e

    async def copy_file(self, source: str, dest: str) -> None:
        src = self._resolve(source)
        dst = self._resolve(dest)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            if dst.is_symlink() or dst.exists():
                dst.unlink()
            os.symlink(os.path.relpath(src, dst.parent), dst)
        except OSError as e:
            raise StoreError(f'Failed to link {source} -> {dest}: {e}') from e

    async def read_file(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as e:
            raise StoreError(f'Failed to read {path}: {e}') from e

    async def list_directory(self, path: str) -> list[dict[str, Any]]:
        directory = self._resolve(path)
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StoreError(f'Failed to list {path}: {e}') from e
        entries = []
        for child in children:
            is_dir = child.is_dir()
            entries.append({'name': child.name, 'type': 'directory' if is_dir else 'file', 'size': 0 if is_dir else child.stat().st_size})
        return entries

    async def get_stats(self, path: str) -> dict[str, Any]:
        target = self._resolve(path)
        try:
            stat = target.stat()
        except OSError as e:
            raise StoreError(f'Failed to stat {path}: {e}') from e
        return {'size': stat.st_size, 'type': 'directory' if target.is_dir() else 'file', 'cid': None}

    async def remove_file(self, path: str, recursive: bool=False) -> None:
        target = self._resolve(path)
        try:
            if target.is_symlink() or target.is_file():
                target.unlink()
            elif target.is_dir():
                if recursive:
                    shutil.rmtree(target)
                else:
                    target.rmdir()
        except OSError as e:
            raise StoreError(f'Failed to remove {path}: {e}') from e

    async def flush(self) -> str | None:
        return None

    async def get_root_cid(self) -> str | None:
        return None

    async def exists(self, path: str) -> bool:
        target = self._resolve(path)
        return target.exists() or target.is_symlink()
