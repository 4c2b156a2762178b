import itertools
import logging
from typing import Any
import httpx
from ..exceptions import GovernanceError
logger = logging.getLogger(__name__)

class RpcError(GovernanceError):
    """The node answered with a JSON-RPC error, e.g. a reverted call."""
    pass

class EthRpcClient:
    """Minimal async Ethereum JSON-RPC client."""

    def __init__(self, url: str, timeout: float=30.0, client: httpx.AsyncClient | None=None):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any]) -> Any:
        payload = {'jsonrpc': '2.0', 'id': next(self._ids), 'method': method, 'params': params}
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GovernanceError(f'RPC request {method} to {self.url} failed: {e}') from e
        if body.get('error'):
            error = body['error']
            raise RpcError(f"{method} error {error.get('code')}: {error.get('message')}")
        return body.get('result')

    async def block_number(self) -> int:
        return int(await self.request('eth_blockNumber', []), 16)

    async def get_code(self, address: str) -> str:
        return await self.request('eth_getCode', [address, 'latest']) or '0x'

    async def call(self, to: str, data: str) -> str:
        return await self.request('eth_call', [{'to': to, 'data': data}, 'latest']) or '0x'

    async def aclose(self) -> None:
        await self._client.aclose()
