import os
# Use litellm's bundled model cost map; its import-time remote fetch deadlocks offline.
os.environ.setdefault('LITELLM_LOCAL_MODEL_COST_MAP', 'True')
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock
import pytest
from dotenv import load_dotenv
from dapprank.exceptions import StoreError
from dapprank.ipfs.client import DIRECTORY_ERROR
from dapprank.storage.filesystem import FilesystemStore
project_root = Path(__file__).parent.parent
env_file = project_root / '.env'
if env_file.exists():
    load_dotenv(env_file)
    print(f'[OK] Loaded environment variables from {env_file}')
else:
    print(f'[WARNING] No .env file found at {env_file}')

class FakeKubo:
    """In-memory stand-in for the Kubo RPC client, keyed by CID."""

    def __init__(self):
        self.blobs = {}
        self.links = {}
        self.names = {}

    def add_file(self, cid, data):
        self.blobs[cid] = data.encode('utf-8') if isinstance(data, str) else data
        return cid

    def add_dir(self, cid, entries):
        self.links[cid] = entries
        return cid

    def add_tree(self, root_cid, tree, prefix='cid'):
        """Register a nested ``{name: bytes | str | dict}`` tree under ``root_cid``."""
        entries = []
        for name, value in tree.items():
            child_cid = f'{prefix}-{name}'
            if isinstance(value, dict):
                self.add_tree(child_cid, value, prefix=child_cid)
                entries.append({'name': name, 'cid': child_cid, 'size': 0, 'type': 'dir'})
            else:
                self.add_file(child_cid, value)
                entries.append({'name': name, 'cid': child_cid, 'size': len(self.blobs[child_cid]), 'type': 'file'})
        return self.add_dir(root_cid, entries)

    async def ls(self, cid):
        if cid in self.links:
            return list(self.links[cid])
        if cid in self.blobs:
            return []
        raise StoreError(f"IPFS 'ls' error: {cid} not found")

    async def cat(self, cid, length=None):
        if cid in self.links:
            raise StoreError(f"IPFS 'cat' error: {DIRECTORY_ERROR}")
        if cid not in self.blobs:
            raise StoreError(f"IPFS 'cat' error: {cid} not found")
        data = self.blobs[cid]
        return data[:length] if length is not None else data

    async def cat_text(self, cid):
        return (await self.cat(cid)).decode('utf-8')

    async def stat(self, cid):
        return {'Hash': cid, 'Size': len(self.blobs.get(cid, b''))}

    async def name_resolve(self, name):
        return self.names[name]

@pytest.fixture
def fake_kubo():
    return FakeKubo()

@pytest.fixture
def store(tmp_path):
    return FilesystemStore(tmp_path / 'data')

@pytest.fixture
def fake_classifier():
    classifier = MagicMock()
    classifier.prompt_hash = 'test0001'
    classifier.classify = AsyncMock(return_value={'windowEthereum': False, 'networking': [], 'fallbacks': [], 'dynamicResourceLoading': []})
    return classifier
