"""The versioned report aggregate and its persistence."""
import copy
import json
import logging
from types import MappingProxyType
from typing import Any, Mapping

from ..config.constants import DappRankConstants
from ..exceptions import ReportExistsError, ReportSchemaError, StoreError
from ..storage.base import ContentStore
from .schema import new_report_content, validate_field

logger = logging.getLogger(__name__)


class Report:
    """Report for one ``(name, blockNumber)`` pair.

    Fields change only through :meth:`set`, which validates the whole value
    before storing it. Binary assets queued with :meth:`put_file` are written
    next to ``report.json`` by :meth:`write`.
    """

    def __init__(self, store: ContentStore, name: str, block_number: int):
        self.store = store
        self.name = name
        self._content: dict[str, Any] = new_report_content()
        self._assets: dict[str, bytes] = {}
        self.set("blockNumber", int(block_number))

    @property
    def block_number(self) -> int:
        return self._content["blockNumber"]

    @property
    def base_path(self) -> str:
        return f"{DappRankConstants.ARCHIVE_DIR}/{self.name}/{self.block_number}"

    @property
    def report_path(self) -> str:
        return f"{self.base_path}/report.json"

    @property
    def content(self) -> Mapping[str, Any]:
        return MappingProxyType(self._content)

    @property
    def assets(self) -> Mapping[str, bytes]:
        return MappingProxyType(self._assets)

    def set(self, field: str, value: Any) -> None:
        validate_field(field, value)
        self._content[field] = copy.deepcopy(value)

    def put_file(self, path: str, data: bytes | str) -> None:
        self._assets[path] = data.encode("utf-8") if isinstance(data, str) else data

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._content)

    def to_json(self) -> str:
        return json.dumps(self._content, indent=2)

    async def exists(self) -> bool:
        return await self.store.exists(self.report_path)

    async def write(self, force: bool = False) -> None:
        if not force and await self.exists():
            raise ReportExistsError(f"Can't overwrite existing report.json at {self.report_path}")
        await self.store.ensure_directory(self.base_path)
        await self.store.write_file(self.report_path, self.to_json())
        for path, data in self._assets.items():
            asset_path = f"{self.base_path}/assets/{path}"
            try:
                await self.store.write_file(asset_path, data)
            except StoreError as e:
                logger.warning("Failed to write asset %s: %s", asset_path, e)

    async def load(self) -> "Report":
        """Read the stored report back, checking every field like :meth:`set`."""
        stored = await self.store.read_json(self.report_path)
        if not isinstance(stored, dict):
            raise ReportSchemaError(f"Report at {self.report_path} is not an object")
        for field, value in stored.items():
            self.set(field, value)
        return self

    async def read_metadata(self) -> dict[str, Any]:
        return await self.store.read_json(f"{self.base_path}/metadata.json")
