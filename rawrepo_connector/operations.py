"""Operation descriptors for every rawrepo service endpoint.

A descriptor holds everything that differs between endpoints: method, path
template, retry policy family, how the response body is read and how the
decoded JSON is shaped. The connectors run every call through one generic
``execute`` and look the descriptor up in ``OPERATIONS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from rawrepo_connector.classifier import ResultKind
from rawrepo_connector.models import (
    EnqueueResult,
    QueueRule,
    QueueStat,
    Record,
    RecordCollection,
    RecordEntry,
    RecordHistoryCollection,
    RecordIdCollection,
)

__all__ = [
    "PolicyFamily",
    "Operation",
    "OPERATIONS",
    "get_operation",
]

JSON = "application/json"
TEXT_PLAIN = "text/plain"


class PolicyFamily(Enum):
    """Which retry policy a connector applies to an operation."""

    LOOKUP = "lookup"
    DUMP = "dump"
    QUEUE = "queue"


@dataclass(frozen=True)
class Operation:
    """Static description of one endpoint."""

    name: str
    method: str
    path: str
    family: PolicyFamily = PolicyFamily.LOOKUP
    result: ResultKind = ResultKind.JSON
    decoder: Optional[Callable[[Any], Any]] = None
    entity_name: str = "response"
    accept: str = JSON
    content_type: Optional[str] = None
    expected_status: int = 200


def _value(data: Any) -> bool:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return bool(data.get("value"))


def _sorted_ids(data: Any) -> List[Any]:
    return RecordIdCollection.from_dict(data).to_sorted()


def _record_map(data: Any) -> Dict[str, Record]:
    return RecordCollection.from_dict(data).to_map()


def _found_records(data: Any) -> List[Record]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    items = data.get("found")
    if items is None:
        items = data.get("records") or []
    if not isinstance(items, list):
        raise ValueError("'found' must be a list")
    return [Record.from_dict(item) for item in items]


def _list_of(key: str, item: Callable[[Any], Any]) -> Callable[[Any], List[Any]]:
    def decode(data: Any) -> List[Any]:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        items = data.get(key) or []
        if not isinstance(items, list):
            raise ValueError(f"'{key}' must be a list")
        return [item(i) for i in items]

    return decode


def _count(data: Any) -> int:
    if not isinstance(data, dict) or "count" not in data:
        raise ValueError("Expected a JSON object with 'count'")
    return int(data["count"])


_RECORD = "/api/v1/record/{agencyId}/{bibliographicRecordId}"
_RECORDS = "/api/v1/records/{agencyId}/{bibliographicRecordId}"

_ALL = [
    # Record service
    Operation("record_exists", "GET", f"{_RECORD}/exists", decoder=_value, entity_name="RecordExists"),
    Operation("get_record_content", "GET", f"{_RECORD}/content", result=ResultKind.BYTES,
              accept="application/xml"),
    Operation("get_record_content_collection", "GET", f"{_RECORDS}/content", result=ResultKind.BYTES,
              accept="application/xml"),
    Operation("get_record_data", "GET", _RECORD, decoder=Record.from_dict, entity_name="Record"),
    Operation("get_record_meta", "GET", f"{_RECORD}/meta", decoder=Record.from_dict, entity_name="Record"),
    Operation("record_fetch", "GET", f"{_RECORD}/fetch", decoder=Record.from_dict, entity_name="Record"),
    Operation("get_record_data_collection", "GET", _RECORDS, decoder=_record_map,
              entity_name="RecordCollection"),
    Operation("get_record_data_collection_dataio", "GET", f"{_RECORDS}/dataio", decoder=_record_map,
              entity_name="RecordCollection"),
    Operation("fetch_record_list", "POST", "/api/v1/records/fetch/", decoder=_found_records,
              entity_name="RecordCollection", content_type=JSON),
    Operation("get_raw_record_entry", "GET", "/api/v1/record-entries/{agencyId}/{bibliographicRecordId}/raw",
              result=ResultKind.BYTES),
    Operation("get_raw_record_entry_parsed", "GET",
              "/api/v1/record-entries/{agencyId}/{bibliographicRecordId}/raw",
              decoder=RecordEntry.from_dict, entity_name="RecordEntry"),
    Operation("get_record_parents", "GET", f"{_RECORD}/parents", decoder=_sorted_ids,
              entity_name="RecordIdCollection"),
    Operation("get_record_children", "GET", f"{_RECORD}/children", decoder=_sorted_ids,
              entity_name="RecordIdCollection"),
    Operation("get_record_siblings_from", "GET", f"{_RECORD}/siblings-from", decoder=_sorted_ids,
              entity_name="RecordIdCollection"),
    Operation("get_record_siblings_to", "GET", f"{_RECORD}/siblings-to", decoder=_sorted_ids,
              entity_name="RecordIdCollection"),
    Operation("get_all_agencies_for_bibliographic_record_id", "GET",
              "/api/v1/record/{bibliographicRecordId}/all-agencies-for",
              decoder=_list_of("agencies", int), entity_name="AgencyCollection"),
    Operation("get_record_history", "GET", f"{_RECORD}/history", decoder=RecordHistoryCollection.from_dict,
              entity_name="RecordHistoryCollection"),
    Operation("get_historic_record", "GET", f"{_RECORD}/{{modifiedDate}}", decoder=Record.from_dict,
              entity_name="Record"),
    # Agency service
    Operation("get_all_agencies", "GET", "/api/v1/agencies", decoder=_list_of("agencies", int),
              entity_name="AgencyCollection"),
    Operation("get_bibliographic_record_ids_for_agency_id", "GET", "/api/v1/agency/{agencyId}/recordids",
              decoder=RecordIdCollection.from_dict, entity_name="RecordIdCollection"),
    # Dump service
    Operation("dump_agencies", "POST", "/api/v1/dump", family=PolicyFamily.DUMP,
              result=ResultKind.BYTES, accept=TEXT_PLAIN, content_type=JSON),
    Operation("dump_agencies_dry_run", "POST", "/api/v1/dump/dryrun", family=PolicyFamily.DUMP,
              result=ResultKind.BYTES, accept=TEXT_PLAIN, content_type=JSON),
    Operation("dump_records", "POST", "/api/v1/dump/record", family=PolicyFamily.DUMP,
              result=ResultKind.BYTES, accept=TEXT_PLAIN, content_type=TEXT_PLAIN),
    # Queue service
    Operation("get_queue_rules", "GET", "/api/v1/queue/rules", family=PolicyFamily.QUEUE,
              decoder=_list_of("queueRules", QueueRule.from_dict), entity_name="QueueRuleCollection"),
    Operation("get_queue_providers", "GET", "/api/v1/queue/providers", family=PolicyFamily.QUEUE,
              decoder=_list_of("providers", str), entity_name="QueueProviderCollection"),
    Operation("get_queue_workers", "GET", "/api/v1/queue/workers", family=PolicyFamily.QUEUE,
              decoder=_list_of("workers", str), entity_name="QueueWorkerCollection"),
    Operation("get_queue_worker_stats", "GET", "/api/v1/queue/stats/workers", family=PolicyFamily.QUEUE,
              decoder=_list_of("stats", QueueStat.from_dict), entity_name="QueueStat"),
    Operation("get_queue_agency_stats", "GET", "/api/v1/queue/stats/agency", family=PolicyFamily.QUEUE,
              decoder=_list_of("stats", QueueStat.from_dict), entity_name="QueueStat"),
    Operation("enqueue_agency", "POST", "/api/v1/queue/{agencyId}/{worker}", family=PolicyFamily.QUEUE,
              decoder=_count, entity_name="EnqueueAgencyResponse"),
    Operation("enqueue_record", "POST", "/api/v1/queue/{agencyId}/{bibliographicRecordId}/{provider}",
              family=PolicyFamily.QUEUE, decoder=_list_of("enqueueResults", EnqueueResult.from_dict),
              entity_name="EnqueueResultCollection"),
]

OPERATIONS: Dict[str, Operation] = {op.name: op for op in _ALL}


def get_operation(name: str) -> Operation:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise KeyError(f"Unknown operation '{name}'") from None
