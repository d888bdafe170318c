"""Optional request parameters for rawrepo services.

Each parameter struct is a plain dataclass whose fields are all optional.
A field left at (or reset to) ``None`` is absent from the request. Every
field maps to exactly one wire key, declared in the field metadata, and
parameters are emitted in field declaration order.

Examples:
    params = RecordParams(allow_deleted=True, mode=Mode.MERGED)
    params.to_query()
    # [("allow-deleted", "true"), ("mode", "merged")]

    params.allow_deleted = None
    params.to_query()
    # [("mode", "merged")]
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "Mode",
    "RecordType",
    "RecordStatus",
    "OutputFormat",
    "RecordParams",
    "AgencyDumpParams",
    "RecordDumpParams",
    "EnqueueParams",
    "encode_query_value",
]


def _wire(key: str) -> Any:
    return field(default=None, metadata={"wire": key})


class Mode(Enum):
    """Content mode of a returned record."""

    RAW = "raw"
    MERGED = "merged"
    EXPANDED = "expanded"


class RecordType(Enum):
    """Record types selectable in an agency dump."""

    LOCAL = "LOCAL"
    ENRICHMENT = "ENRICHMENT"
    HOLDINGS = "HOLDINGS"


class RecordStatus(Enum):
    """Record status filter for an agency dump."""

    ACTIVE = "ACTIVE"
    ALL = "ALL"
    DELETED = "DELETED"


class OutputFormat(Enum):
    """Output formats supported by the dump service."""

    LINE = "LINE"
    XML = "XML"
    JSON = "JSON"
    ISO = "ISO"
    LINE_XML = "LINE_XML"


def encode_query_value(value: Any) -> str:
    """Render a single parameter value the way the services expect it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class _WireParams:
    """Shared wire encoding for the parameter dataclasses."""

    def items(self) -> List[Tuple[str, Any]]:
        """Present (non-None) parameters as (wire key, value) in declaration order."""
        result = []
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            result.append((f.metadata["wire"], value))
        return result

    def to_query(self) -> List[Tuple[str, str]]:
        """Encode as query parameters; list values become repeated keys."""
        query: List[Tuple[str, str]] = []
        for key, value in self.items():
            if isinstance(value, (list, tuple)):
                query.extend((key, encode_query_value(v)) for v in value)
            else:
                query.append((key, encode_query_value(value)))
        return query

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.items())

    def get(self, key: str) -> Any:
        """Look up a value by its wire key, None when unset."""
        for f in fields(self):  # type: ignore[arg-type]
            if f.metadata["wire"] == key:
                return getattr(self, f.name)
        raise KeyError(f"Unknown parameter key: {key}")


@dataclass
class RecordParams(_WireParams):
    """Query options for record service lookups.

    Attributes:
        allow_deleted: Return deleted records instead of treating them as absent
        exclude_dbc_fields: Strip DBC internal fields from the content
        exclude_aut_records: Leave authority records out of collections
        keep_aut_fields: Keep authority link fields when expanding
        mode: raw, merged or expanded content
        use_parent_agency: Resolve enrichments against the parent agency
        expand: Expand authority references in addition to merging
        for_corepo: Shape the content for the corepo indexer
        handle_control_records: Follow control record links
    """

    allow_deleted: Optional[bool] = _wire("allow-deleted")
    exclude_dbc_fields: Optional[bool] = _wire("exclude-dbc-fields")
    exclude_aut_records: Optional[bool] = _wire("exclude-aut-records")
    keep_aut_fields: Optional[bool] = _wire("keep-aut-fields")
    mode: Optional[Mode] = _wire("mode")
    use_parent_agency: Optional[bool] = _wire("use-parent-agency")
    expand: Optional[bool] = _wire("expand")
    for_corepo: Optional[bool] = _wire("for-corepo")
    handle_control_records: Optional[bool] = _wire("handle-control-records")


@dataclass
class AgencyDumpParams(_WireParams):
    """JSON body of an agency dump request.

    Enum values are sent by upper-case name and ``record_type`` as a list.
    """

    agencies: Optional[List[int]] = _wire("agencies")
    record_status: Optional[RecordStatus] = _wire("recordStatus")
    record_type: Optional[List[RecordType]] = _wire("recordType")
    created_from: Optional[str] = _wire("createdFrom")
    created_to: Optional[str] = _wire("createdTo")
    modified_from: Optional[str] = _wire("modifiedFrom")
    modified_to: Optional[str] = _wire("modifiedTo")
    output_format: Optional[OutputFormat] = _wire("outputFormat")
    output_encoding: Optional[str] = _wire("outputEncoding")
    mode: Optional[Mode] = _wire("mode")

    def to_json(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for key, value in self.items():
            if isinstance(value, (list, tuple)):
                body[key] = [_dump_enum(v) for v in value]
            else:
                body[key] = _dump_enum(value)
        return body


@dataclass
class RecordDumpParams(_WireParams):
    """Query options for dumping an explicit list of records."""

    output_format: Optional[OutputFormat] = _wire("output-format")
    output_encoding: Optional[str] = _wire("output-encoding")
    mode: Optional[Mode] = _wire("mode")

    def to_query(self) -> List[Tuple[str, str]]:
        return [(key, _dump_enum(value)) for key, value in self.items()]


@dataclass
class EnqueueParams(_WireParams):
    """Query options for queue service enqueue calls."""

    enqueue_as: Optional[int] = _wire("enqueue-as")
    priority: Optional[int] = _wire("priority")
    changed: Optional[bool] = _wire("changed")
    leaf: Optional[bool] = _wire("leaf")


def _dump_enum(value: Any) -> Any:
    # The dump service expects enum names, including for Mode
    if isinstance(value, Enum):
        return value.name
    return value
