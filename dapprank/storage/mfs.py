import logging
from pathlib import Path
from typing import Any
from ..exceptions import StoreError
from ..ipfs.client import NOT_FOUND_ERROR, KuboClient
from .base import StoreMixin
logger = logging.getLogger(__name__)

class MfsStore(StoreMixin):
    """Content store kept in the IPFS node's mutable file system.

    After each flush the root CID is written to ``data_pointer_path`` so the
    published dataset can be located without the node.
    """

    def __init__(self, kubo: KuboClient, data_pointer_path: str | Path, root_path: str='/dapprank-data'):
        if not data_pointer_path:
            raise ValueError('MFS storage requires a data pointer path')
        self.kubo = kubo
        self.root_path = root_path.rstrip('/')
        self.data_pointer_path = Path(data_pointer_path)

    def _resolve(self, path: str) -> str:
        return f"{self.root_path}/{path.lstrip('/')}".rstrip('/') or '/'

    async def ensure_directory(self, path: str) -> None:
        await self.kubo.files_mkdir(self._resolve(path), parents=True)

    async def write_file(self, path: str, data: bytes | str) -> None:
        await self.kubo.files_write(self._resolve(path), self._encode(data))

    async def copy_file(self, source: str, dest: str) -> None:
        stats = await self.kubo.files_stat(self._resolve(source))
        target = self._resolve(dest)
        if await self.exists(dest):
            await self.kubo.files_rm(target, recursive=True)
        await self.kubo.files_cp(f"/ipfs/{stats['Hash']}", target)

    async def read_file(self, path: str) -> bytes:
        return await self.kubo.files_read(self._resolve(path))

    async def list_directory(self, path: str) -> list[dict[str, Any]]:
        entries = await self.kubo.files_ls(self._resolve(path))
        return sorted(({'name': e['name'], 'type': e['type'], 'size': e['size']} for e in entries), key=lambda e: e['name'])

    async def get_stats(self, path: str) -> dict[str, Any]:
        stats = await self.kubo.files_stat(self._resolve(path))
        return {'size': int(stats.get('Size') or 0), 'type': stats.get('Type', 'file'), 'cid': stats.get('Hash')}

    async def remove_file(self, path: str, recursive: bool=False) -> None:
        await self.kubo.files_rm(self._resolve(path), recursive=recursive)

    async def flush(self) -> str | None:
        cid = await self.kubo.files_flush(self.root_path)
        try:
            self.data_pointer_path.write_text(f'{cid}\n', encoding='utf-8')
        except OSError as e:
            logger.warning('Failed to update data pointer %s: %s', self.data_pointer_path, e)
        return cid

    async def get_root_cid(self) -> str | None:
        try:
            stats = await self.kubo.files_stat(self.root_path)
        except StoreError as e:
            logger.warning('Could not read MFS root CID: %s', e)
            return None
        return stats.get('Hash')

    async def restore_root(self, cid: str) -> None:
        """Point the MFS root back at ``cid``, discarding newer writes."""
        await self.kubo.files_rm(self.root_path, recursive=True)
        await self.kubo.files_cp(f'/ipfs/{cid}', self.root_path)
        await self.flush()

    async def exists(self, path: str) -> bool:
        try:
            await self.kubo.files_stat(self._resolve(path))
        except StoreError as e:
            if NOT_FOUND_ERROR in str(e):
                return False
            raise
        return True
