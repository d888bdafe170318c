"""Data shapes returned by rawrepo services.

All models decode from the service JSON with a ``from_dict`` classmethod.
Decoding is strict about structure (wrong container types raise
``ValueError``) and lenient about absent optional fields.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any, Dict, Iterable, List, Optional, Sequence

__all__ = [
    "RecordId",
    "RecordIdCollection",
    "Record",
    "RecordCollection",
    "RecordHistoryEntry",
    "RecordHistoryCollection",
    "FetchResult",
    "split_fetch_result",
    "MarcSubfield",
    "MarcField",
    "MarcJson",
    "RecordEntry",
    "QueueRule",
    "QueueStat",
    "EnqueueResult",
]


def _require_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object for {what}, got {type(data).__name__}")
    return data


def _require_list(data: Any, what: str) -> List[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array for {what}, got {type(data).__name__}")
    return data


def _decode_content(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Record content is not valid base64: {e}") from e


def _decode_marc_json(value: Any) -> Optional["MarcJson"]:
    return MarcJson.from_dict(value) if value is not None else None


@total_ordering
@dataclass(frozen=True)
class RecordId:
    """Identity of a record: bibliographic record id scoped by agency.

    Ordered by agency id first, then bibliographic record id.
    """

    bibliographic_record_id: str
    agency_id: int

    def _key(self) -> tuple:
        return (self.agency_id, self.bibliographic_record_id)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RecordId):
            return NotImplemented
        return self._key() < other._key()

    @classmethod
    def from_dict(cls, data: Any) -> "RecordId":
        data = _require_dict(data, "record id")
        try:
            return cls(
                bibliographic_record_id=str(data["bibliographicRecordId"]),
                agency_id=int(data["agencyId"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed record id {data!r}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bibliographicRecordId": self.bibliographic_record_id,
            "agencyId": self.agency_id,
        }

    def __str__(self) -> str:
        return f"{self.bibliographic_record_id}:{self.agency_id}"


@dataclass
class RecordIdCollection:
    """Record ids as received; the order of ``record_ids`` is not meaningful."""

    record_ids: List[RecordId] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "RecordIdCollection":
        data = _require_dict(data, "record id collection")
        items = _require_list(data.get("recordIds"), "recordIds")
        return cls(record_ids=[RecordId.from_dict(item) for item in items])

    def to_sorted(self) -> List[RecordId]:
        """A new sorted list on every call."""
        return sorted(self.record_ids)

    def __len__(self) -> int:
        return len(self.record_ids)


@dataclass
class Record:
    """A record as returned by the data, meta and historic lookups.

    ``content`` is None for meta lookups. ``parsed_content`` is the same
    record as MarcJson, present only when the service sends ``contentJSON``.
    The content bytes are shared with the caller; replace them rather than
    mutating in place.
    """

    record_id: RecordId
    deleted: bool = False
    mimetype: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    tracking_id: Optional[str] = None
    enrichment_trail: Optional[str] = None
    content: Optional[bytes] = None
    parsed_content: Optional[MarcJson] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Record":
        data = _require_dict(data, "record")
        return cls(
            record_id=RecordId.from_dict(data.get("recordId")),
            deleted=bool(data.get("deleted", False)),
            mimetype=data.get("mimetype"),
            created=data.get("created"),
            modified=data.get("modified"),
            tracking_id=data.get("trackingId"),
            enrichment_trail=data.get("enrichmentTrail"),
            content=_decode_content(data.get("content")),
            parsed_content=_decode_marc_json(data.get("contentJSON")),
        )

    @property
    def bibliographic_record_id(self) -> str:
        return self.record_id.bibliographic_record_id

    @property
    def agency_id(self) -> int:
        return self.record_id.agency_id


@dataclass
class RecordCollection:
    """Records in wire order."""

    records: List[Record] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "RecordCollection":
        data = _require_dict(data, "record collection")
        items = _require_list(data.get("records"), "records")
        return cls(records=[Record.from_dict(item) for item in items])

    def to_map(self) -> Dict[str, Record]:
        """Key by bibliographic record id; a later duplicate replaces an earlier one."""
        result: Dict[str, Record] = {}
        for record in self.records:
            result[record.bibliographic_record_id] = record
        return result


@dataclass
class RecordHistoryEntry:
    id: RecordId
    deleted: bool = False
    mime_type: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    tracking_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RecordHistoryEntry":
        data = _require_dict(data, "history entry")
        return cls(
            id=RecordId.from_dict(data.get("id")),
            deleted=bool(data.get("deleted", False)),
            mime_type=data.get("mimeType"),
            created=data.get("created"),
            modified=data.get("modified"),
            tracking_id=data.get("trackingId"),
        )


@dataclass
class RecordHistoryCollection:
    """History entries in the order the service sent them (newest first)."""

    entries: List[RecordHistoryEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "RecordHistoryCollection":
        data = _require_dict(data, "history collection")
        items = _require_list(data.get("recordHistoryList"), "recordHistoryList")
        return cls(entries=[RecordHistoryEntry.from_dict(item) for item in items])

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class FetchResult:
    """Outcome of a bulk fetch: every requested id lands in exactly one bucket."""

    found: List[Record] = field(default_factory=list)
    missing: List[RecordId] = field(default_factory=list)


def split_fetch_result(requested: Sequence[RecordId], records: Iterable[Record]) -> FetchResult:
    """Partition requested ids by whether the service returned a record.

    Found records follow the requested order. Deleted records count as found.
    A requested id repeated in the input is reported once.
    """
    by_id: Dict[RecordId, Record] = {}
    for record in records:
        by_id[record.record_id] = record

    result = FetchResult()
    seen = set()
    for record_id in requested:
        if record_id in seen:
            continue
        seen.add(record_id)
        record = by_id.get(record_id)
        if record is None:
            result.missing.append(record_id)
        else:
            result.found.append(record)
    return result


@dataclass
class MarcSubfield:
    name: str
    value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "MarcSubfield":
        data = _require_dict(data, "subfield")
        return cls(name=data.get("name", ""), value=data.get("value"))


@dataclass
class MarcField:
    name: str
    indicators: Optional[str] = None
    subfields: List[MarcSubfield] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "MarcField":
        data = _require_dict(data, "field")
        return cls(
            name=data.get("name", ""),
            indicators=data.get("indicators"),
            subfields=[
                MarcSubfield.from_dict(s)
                for s in _require_list(data.get("subfields"), "subfields")
            ],
        )


@dataclass
class MarcJson:
    """MARC record in the service's JSON form."""

    leader: Optional[str] = None
    fields: List[MarcField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "MarcJson":
        data = _require_dict(data, "marc json")
        return cls(
            leader=data.get("leader"),
            fields=[MarcField.from_dict(f) for f in _require_list(data.get("fields"), "fields")],
        )

    def get_fields(self, name: str) -> List[MarcField]:
        return [f for f in self.fields if f.name == name]

    def subfield_values(self, field_name: str, subfield_name: str) -> List[str]:
        return [
            s.value
            for f in self.get_fields(field_name)
            for s in f.subfields
            if s.name == subfield_name and s.value is not None
        ]


@dataclass
class RecordEntry:
    """A raw record row with its content as MarcJson."""

    record_id: RecordId
    deleted: bool = False
    mimetype: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    tracking_id: Optional[str] = None
    enrichment_trail: Optional[str] = None
    content: Optional[MarcJson] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RecordEntry":
        data = _require_dict(data, "record entry")
        content = data.get("content")
        return cls(
            record_id=RecordId.from_dict(data.get("recordId")),
            deleted=bool(data.get("deleted", False)),
            mimetype=data.get("mimetype"),
            created=data.get("created"),
            modified=data.get("modified"),
            tracking_id=data.get("trackingId"),
            enrichment_trail=data.get("enrichmentTrail"),
            content=MarcJson.from_dict(content) if content is not None else None,
        )


@dataclass
class QueueRule:
    provider: str
    worker: str
    changed: Optional[str] = None
    leaf: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "QueueRule":
        data = _require_dict(data, "queue rule")
        return cls(
            provider=data.get("provider", ""),
            worker=data.get("worker", ""),
            changed=data.get("changed"),
            leaf=data.get("leaf"),
            description=data.get("description"),
        )


@dataclass
class QueueStat:
    text: str
    count: int = 0
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "QueueStat":
        data = _require_dict(data, "queue stat")
        return cls(
            text=data.get("text", ""),
            count=int(data.get("count") or 0),
            date=data.get("date"),
        )


@dataclass
class EnqueueResult:
    bibliographic_record_id: str
    agency_id: int
    worker: str
    queued: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "EnqueueResult":
        data = _require_dict(data, "enqueue result")
        return cls(
            bibliographic_record_id=str(data.get("bibliographicRecordId", "")),
            agency_id=int(data.get("agencyId", 0)),
            worker=data.get("worker", ""),
            queued=bool(data.get("queued", False)),
        )
