from .owner import OwnerAnalyzer, namehash
from .rpc import EthRpcClient, RpcError

__all__ = ['OwnerAnalyzer', 'namehash', 'EthRpcClient', 'RpcError']
