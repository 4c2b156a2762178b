"""ENS owner resolution and owner classification."""
import logging
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from ..config.constants import DappRankConstants
from ..exceptions import GovernanceError
from ..models import OwnerAnalysis, OwnerType
from .rpc import EthRpcClient, RpcError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


def namehash(name: str) -> bytes:
    node = b"\x00" * 32
    if name:
        for label in reversed(name.lower().split(".")):
            node = keccak(node + keccak(text=label))
    return node


def encode_call(signature: str, types: list[str] | None = None, args: list[Any] | None = None) -> str:
    data = function_signature_to_4byte_selector(signature)
    if types:
        data += encode(types, args or [])
    return "0x" + data.hex()


def decode_result(types: list[str], result: str) -> tuple:
    return decode(types, bytes.fromhex(result[2:] if result.startswith("0x") else result))


class OwnerAnalyzer:
    """Resolves who controls an ENS name and what kind of account it is.

    Contract owners are probed in a fixed order (Safe, Governor, Baal,
    single owner). The first probe that does not revert decides the type.
    """

    def __init__(self, rpc: EthRpcClient):
        self.rpc = rpc

    async def _read(self, address: str, signature: str, output_types: list[str], types: list[str] | None = None, args: list[Any] | None = None) -> tuple:
        result = await self.rpc.call(address, encode_call(signature, types, args))
        return decode_result(output_types, result)

    async def resolve_owner(self, name: str) -> str | None:
        node = namehash(name)
        (owner,) = await self._read(
            DappRankConstants.ENS_REGISTRY_ADDRESS, "owner(bytes32)", ["address"], ["bytes32"], [node]
        )
        if to_checksum_address(owner) == to_checksum_address(DappRankConstants.ENS_NAME_WRAPPER_ADDRESS):
            (owner,) = await self._read(
                DappRankConstants.ENS_NAME_WRAPPER_ADDRESS, "ownerOf(uint256)", ["address"], ["uint256"],
                [int.from_bytes(node, "big")],
            )
        if owner.lower() == ZERO_ADDRESS:
            return None
        return to_checksum_address(owner)

    async def classify_address(self, address: str) -> OwnerAnalysis:
        address = to_checksum_address(address)
        analysis = OwnerAnalysis(type=OwnerType.CONTRACT_UNKNOWN, owner_address=address)
        try:
            code = (await self.rpc.get_code(address)).lower()
            if not code or code == "0x":
                analysis.type = OwnerType.EOA
                return analysis
            if code.startswith(DappRankConstants.EIP7702_CODE_PREFIX[:6]):
                delegate = code[8:]
                analysis.type = OwnerType.EIP7702
                if len(delegate) == 40:
                    analysis.add_config("delegatedTo", to_checksum_address("0x" + delegate))
                else:
                    analysis.add_config("delegatedTo", "0x" + delegate.rjust(40, "0") if delegate else "")
                return analysis
            return await self._probe_contract(address, analysis)
        except GovernanceError as e:
            logger.error("Error classifying address %s: %s", address, e)
            analysis.type = OwnerType.ERROR
            analysis.add_config("error", str(e))
            return analysis

    async def _probe_contract(self, address: str, analysis: OwnerAnalysis) -> OwnerAnalysis:
        try:
            (owners,) = await self._read(address, "getOwners()", ["address[]"])
            (threshold,) = await self._read(address, "getThreshold()", ["uint256"])
            analysis.type = OwnerType.SAFE
            analysis.add_config("totalOwners", len(owners))
            analysis.add_config("threshold", int(threshold))
            analysis.add_config("owners", [to_checksum_address(o) for o in owners])
            return analysis
        except (RpcError, DecodingError) as e:
            logger.debug("Not a Safe contract at %s: %s", address, e)

        probes = (
            ("quorum(uint256)", ["uint256"], ["uint256"], [0], OwnerType.DAO_GOVERNOR),
            ("sharesToken()", ["address"], None, None, OwnerType.DAO_MOLOCH_BAAL),
        )
        for signature, output_types, types, args, owner_type in probes:
            try:
                await self._read(address, signature, output_types, types, args)
                analysis.type = owner_type
                return analysis
            except (RpcError, DecodingError) as e:
                logger.debug("Probe %s failed at %s: %s", signature, address, e)

        try:
            (owner,) = await self._read(address, "owner()", ["address"])
            analysis.type = OwnerType.CONTRACT_WALLET_SINGLE_OWNER
            analysis.add_config("owner", to_checksum_address(owner))
            return analysis
        except (RpcError, DecodingError) as e:
            logger.debug("Not a single-owner contract at %s: %s", address, e)

        analysis.type = OwnerType.CONTRACT_UNKNOWN
        return analysis

    async def analyze(self, name: str) -> OwnerAnalysis:
        """Classify the owner of ``name``. Raises GovernanceError if the RPC is unreachable."""
        try:
            block = await self.rpc.block_number()
        except GovernanceError as e:
            raise GovernanceError(
                f"RPC endpoint {self.rpc.url} is not reachable or timed out. "
                "Try a different endpoint with --rpc <url>"
            ) from e
        logger.debug("RPC connection ok, current block %d", block)

        try:
            owner = await self.resolve_owner(name)
        except (RpcError, DecodingError) as e:
            logger.error("Error resolving owner of %s: %s", name, e)
            analysis = OwnerAnalysis(type=OwnerType.ERROR)
            analysis.add_config("error", str(e))
            return analysis
        if owner is None:
            return OwnerAnalysis(type=OwnerType.NO_OWNER_FOUND)
        return await self.classify_address(owner)
