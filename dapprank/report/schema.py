"""Declarative shape of the version 4 report document.

The schema is a tree of shapes walked by :func:`validate_shape`. Structs
demand an exact key set at every level; arrays are opaque once the value is
known to be a list, and their element shape is never inspected.
"""
import copy
from dataclasses import dataclass, field
from typing import Any

from ..config.constants import DappRankConstants
from ..exceptions import ReportSchemaError

TYPE_NAMES = {int: "number", float: "number", str: "string", bool: "boolean"}


class Shape:
    def default(self) -> Any:
        raise NotImplementedError

    def validate(self, value: Any, field_name: str) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Primitive(Shape):
    types: tuple[type, ...]
    default_value: Any

    def default(self) -> Any:
        return self.default_value

    def validate(self, value: Any, field_name: str) -> None:
        # bool is a subclass of int, so compare exact types
        if type(value) not in self.types:
            expected = TYPE_NAMES.get(self.types[0], self.types[0].__name__)
            actual = TYPE_NAMES.get(type(value), type(value).__name__)
            raise ReportSchemaError(f"Field '{field_name}' expects type {expected}, got {actual}")


@dataclass(frozen=True)
class OpaqueArray(Shape):
    def default(self) -> Any:
        return []

    def validate(self, value: Any, field_name: str) -> None:
        if not isinstance(value, list):
            raise ReportSchemaError(f"Field '{field_name}' expects an array, got {type(value).__name__}")


@dataclass(frozen=True)
class Struct(Shape):
    fields: dict[str, Shape] = field(default_factory=dict)

    def default(self) -> Any:
        return {key: shape.default() for key, shape in self.fields.items()}

    def validate(self, value: Any, field_name: str) -> None:
        if not isinstance(value, dict):
            raise ReportSchemaError(f"Field '{field_name}' expects an object, got {type(value).__name__}")
        for key in self.fields:
            if key not in value:
                raise ReportSchemaError(f"Field '{field_name}' is missing required key '{key}'")
        for key in value:
            if key not in self.fields:
                raise ReportSchemaError(f"Field '{field_name}' has unexpected key '{key}'")
        for key, shape in self.fields.items():
            validate_shape(shape, value[key], f"{field_name}.{key}")


def Number(default: int = 0) -> Primitive:
    return Primitive((int, float), default)


def String(default: str = "") -> Primitive:
    return Primitive((str,), default)


REPORT_SCHEMA = Struct({
    "version": Number(DappRankConstants.ANALYSIS_VERSION),
    "blockNumber": Number(),
    "decodedContenthash": Struct({"codec": String(), "value": String()}),
    "analyzedCid": String(),
    "rootMimeType": String(),
    "files": OpaqueArray(),
    "totalSize": Number(),
    "webmanifest": String(),
    "favicon": String(),
    "failedScriptAnalysis": OpaqueArray(),
    "ownerAnalysis": Struct({"type": String(), "ownerAddress": String(), "config": OpaqueArray()}),
})


def validate_shape(shape: Shape, value: Any, field_name: str) -> None:
    if value is None:
        raise ReportSchemaError(f"Field '{field_name}' cannot be null or undefined")
    shape.validate(value, field_name)


def validate_field(field_name: str, value: Any) -> None:
    """Check ``value`` against the top-level report field ``field_name``."""
    if field_name not in REPORT_SCHEMA.fields:
        raise ReportSchemaError(f"Field '{field_name}' is not defined in the report structure")
    validate_shape(REPORT_SCHEMA.fields[field_name], value, field_name)


def new_report_content() -> dict[str, Any]:
    return copy.deepcopy(REPORT_SCHEMA.default())
