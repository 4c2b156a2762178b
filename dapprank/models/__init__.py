"""Core data models for DappRank.

Defines the values exchanged between the walker, the script analysis
engine, the governance probe and the rank scorer. The report itself is a
plain JSON document owned by :class:`dapprank.report.Report`; these models
serialize into its file entries and fields.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NetworkingType(str, Enum):
    """Classification of a networking call's endpoint."""
    RPC = "rpc"
    BUNDLER = "bundler"
    CCIP_READ = "ccip-read"
    AUXILIARY = "auxiliary"
    SELF = "self"


class FallbackType(str, Enum):
    """Dappspec fallback mechanisms a script can support."""
    RPC = "rpc"
    BUNDLER = "bundler"
    DSERVICE_EXTERNAL = "dservice-external"


class OwnerType(str, Enum):
    """Classification of the on-chain owner of an ENS name."""
    EOA = "EOA"
    SAFE = "Safe"
    DAO_GOVERNOR = "DAO_Governor"
    DAO_MOLOCH_BAAL = "DAO_MolochBaal"
    CONTRACT_WALLET_SINGLE_OWNER = "ContractWallet_SingleOwner"
    CONTRACT_UNKNOWN = "Contract_Unknown"
    EIP7702 = "EIP7702"
    NO_OWNER_FOUND = "No_Owner_Found"
    ERROR = "Error"


SCRIPT_LIKE_RESOURCE_TYPES = ("script", "stylesheet")


@dataclass
class FileEntry:
    """A file produced by the tree walk."""
    path: str
    size: int
    cid: str

    def serialize(self) -> dict[str, Any]:
        return {"path": self.path, "size": self.size, "cid": self.cid}


@dataclass
class NetworkingFinding:
    """A networking call detected in a script."""
    method: str
    urls: list[str]
    type: str
    motivation: str = ""
    http_method: str | None = None
    library: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkingFinding":
        return cls(
            method=str(data.get("method", "")),
            urls=[str(u) for u in data.get("urls") or []],
            type=str(data.get("type", NetworkingType.AUXILIARY.value)),
            motivation=str(data.get("motivation", "")),
            http_method=data.get("httpMethod"),
            library=data.get("library"),
        )

    def dedup_key(self) -> str:
        return f"{self.method}:{'|'.join(sorted(self.urls))}:{self.type}"

    def serialize(self) -> dict[str, Any]:
        result: dict[str, Any] = {"method": self.method}
        if self.http_method:
            result["httpMethod"] = self.http_method
        result["urls"] = list(self.urls)
        if self.library:
            result["library"] = self.library
        result["type"] = self.type
        result["motivation"] = self.motivation
        return result


@dataclass
class FallbackFinding:
    """A dappspec fallback supported by a script."""
    type: str
    motivation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FallbackFinding":
        return cls(type=str(data.get("type", "")), motivation=str(data.get("motivation", "")))

    def serialize(self) -> dict[str, Any]:
        return {"type": self.type, "motivation": self.motivation}


@dataclass
class DynamicLoadingFinding:
    """A resource a script loads at runtime."""
    method: str
    urls: list[str]
    type: str
    motivation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DynamicLoadingFinding":
        return cls(
            method=str(data.get("method", "")),
            urls=[str(u) for u in data.get("urls") or []],
            type=str(data.get("type", "other")),
            motivation=str(data.get("motivation", "")),
        )

    @property
    def is_script_like(self) -> bool:
        return self.type in SCRIPT_LIKE_RESOURCE_TYPES

    def dedup_key(self) -> str:
        return f"{self.method}:{'|'.join(sorted(self.urls))}:{self.type}"

    def serialize(self) -> dict[str, Any]:
        return {"method": self.method, "urls": list(self.urls), "type": self.type, "motivation": self.motivation}


@dataclass
class ScriptAnalysis:
    """Validated classification of one script unit."""
    window_ethereum: bool = False
    networking: list[NetworkingFinding] = field(default_factory=list)
    fallbacks: list[FallbackFinding] = field(default_factory=list)
    dynamic_resource_loading: list[DynamicLoadingFinding] = field(default_factory=list)
    invalid_dynamic_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScriptAnalysis":
        return cls(
            window_ethereum=bool(data.get("windowEthereum", False)),
            networking=[NetworkingFinding.from_dict(n) for n in data.get("networking") or []],
            fallbacks=[FallbackFinding.from_dict(f) for f in data.get("fallbacks") or []],
            dynamic_resource_loading=[
                DynamicLoadingFinding.from_dict(d) for d in data.get("dynamicResourceLoading") or []
            ],
            invalid_dynamic_urls=[str(u) for u in data.get("invalidDynamicUrls") or []],
        )

    def serialize(self) -> dict[str, Any]:
        return {
            "windowEthereum": self.window_ethereum,
            "networking": [n.serialize() for n in self.networking],
            "fallbacks": [f.serialize() for f in self.fallbacks],
            "dynamicResourceLoading": [d.serialize() for d in self.dynamic_resource_loading],
            "invalidDynamicUrls": list(self.invalid_dynamic_urls),
        }


@dataclass
class OwnerAnalysis:
    """Result of classifying the owner of an ENS name."""
    type: OwnerType
    owner_address: str = ""
    config: list[dict[str, Any]] = field(default_factory=list)

    def add_config(self, key: str, value: Any) -> None:
        self.config.append({"key": key, "value": value})

    def serialize(self) -> dict[str, Any]:
        return {"type": self.type.value, "ownerAddress": self.owner_address, "config": list(self.config)}


@dataclass
class CategoryScore:
    score: int
    max_score: int

    def serialize(self) -> dict[str, int]:
        return {"score": self.score, "maxScore": self.max_score}


@dataclass
class RankScore:
    """Deterministic score derived from a report. Never persisted inside it."""
    rank_version: int
    overall_score: int
    categories: dict[str, CategoryScore]
    max_score: int = 100

    def category(self, name: str) -> CategoryScore:
        return self.categories[name]

    def serialize(self) -> dict[str, Any]:
        return {
            "rankVersion": self.rank_version,
            "overallScore": self.overall_score,
            "maxScore": self.max_score,
            "categories": {name: c.serialize() for name, c in self.categories.items()},
        }
