"""Record service connector.

Single record lookups, relation traversal (parents, children, siblings),
history, and bulk fetch against the rawrepo record service.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from rawrepo_connector.connector import BaseConnector
from rawrepo_connector.errors import ConnectorError, ErrorKind
from rawrepo_connector.models import (
    FetchResult,
    Record,
    RecordEntry,
    RecordHistoryCollection,
    RecordId,
    split_fetch_result,
)
from rawrepo_connector.operations import PolicyFamily
from rawrepo_connector.params import RecordParams

logger = logging.getLogger(__name__)

__all__ = ["RecordServiceConnector"]


def _ids(agency_id: Any, bibliographic_record_id: Any) -> Dict[str, Any]:
    return {"agencyId": agency_id, "bibliographicRecordId": bibliographic_record_id}


def _query(params: Optional[RecordParams]):
    return params.to_query() if params is not None else None


class RecordServiceConnector(BaseConnector):
    """Client for the rawrepo record service.

    Agency ids may be given as int or str. ``params`` are optional on every
    lookup that accepts them.

    Example:
        connector = RecordServiceConnector("http://rawrepo-record-service:8080")
        record = connector.get_record_data(
            870970, "52880645", RecordParams(mode=Mode.MERGED, allow_deleted=True)
        )
    """

    default_family = PolicyFamily.LOOKUP

    def record_exists(
        self,
        agency_id: Any,
        bibliographic_record_id: str,
        params: Optional[RecordParams] = None,
        *,
        deadline: Optional[float] = None,
    ) -> bool:
        """Whether the record exists; a 204 answer counts as absent."""
        try:
            return self.execute(
                "record_exists",
                _ids(agency_id, bibliographic_record_id),
                _query(params),
                operands=(agency_id, bibliographic_record_id),
                deadline=deadline,
            )
        except ConnectorError as e:
            if e.kind is ErrorKind.NOT_FOUND_OR_NO_CONTENT:
                return False
            raise

    def get_record_content(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> bytes:
        """Record content as MarcXchange XML."""
        return self.execute(
            "get_record_content", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_content_collection(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> bytes:
        """The record and its related records as a MarcXchange collection."""
        return self.execute(
            "get_record_content_collection", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_data(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> Record:
        return self.execute(
            "get_record_data", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_meta(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> Record:
        """Record without content."""
        return self.execute(
            "get_record_meta", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def record_fetch(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> Record:
        return self.execute(
            "record_fetch", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_data_collection(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> Dict[str, Record]:
        """The record and its related records keyed by bibliographic record id."""
        return self.execute(
            "get_record_data_collection", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_data_collection_dataio(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> Dict[str, Record]:
        return self.execute(
            "get_record_data_collection_dataio", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def fetch_record_list(
        self,
        record_ids: Sequence[RecordId],
        params: Optional[RecordParams] = None,
        *,
        deadline: Optional[float] = None,
    ) -> FetchResult:
        """Fetch many records in one request.

        Every requested id ends up in exactly one of ``found`` (in requested
        order, deleted records included) or ``missing``.
        """
        body = {"recordIds": [record_id.to_dict() for record_id in record_ids]}
        records = self.execute(
            "fetch_record_list", None, _query(params), body,
            operands=(len(record_ids),), deadline=deadline,
        )
        return split_fetch_result(record_ids, records)

    def get_raw_record_entry(
        self, agency_id: Any, bibliographic_record_id: str, *, deadline: Optional[float] = None,
    ) -> bytes:
        """The stored record row, unparsed."""
        return self.execute(
            "get_raw_record_entry", _ids(agency_id, bibliographic_record_id),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_raw_record_entry_parsed(
        self, agency_id: Any, bibliographic_record_id: str, *, deadline: Optional[float] = None,
    ) -> RecordEntry:
        """The stored record row with its content as MarcJson."""
        return self.execute(
            "get_raw_record_entry_parsed", _ids(agency_id, bibliographic_record_id),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_parents(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> List[RecordId]:
        """Ids of the records this record points to, sorted."""
        return self.execute(
            "get_record_parents", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_children(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> List[RecordId]:
        """Ids of the records pointing to this record, sorted."""
        return self.execute(
            "get_record_children", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_siblings_from(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> List[RecordId]:
        """Ids of the sibling records this record points to, sorted."""
        return self.execute(
            "get_record_siblings_from", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_record_siblings_to(
        self, agency_id: Any, bibliographic_record_id: str, params: Optional[RecordParams] = None,
        *, deadline: Optional[float] = None,
    ) -> List[RecordId]:
        """Ids of the sibling records pointing to this record, sorted."""
        return self.execute(
            "get_record_siblings_to", _ids(agency_id, bibliographic_record_id), _query(params),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_all_agencies_for_bibliographic_record_id(
        self, bibliographic_record_id: str, *, deadline: Optional[float] = None,
    ) -> List[int]:
        return self.execute(
            "get_all_agencies_for_bibliographic_record_id",
            {"bibliographicRecordId": bibliographic_record_id},
            operands=(bibliographic_record_id,), deadline=deadline,
        )

    def get_record_history(
        self, agency_id: Any, bibliographic_record_id: str, *, deadline: Optional[float] = None,
    ) -> RecordHistoryCollection:
        """History entries, newest first as the service orders them."""
        return self.execute(
            "get_record_history", _ids(agency_id, bibliographic_record_id),
            operands=(agency_id, bibliographic_record_id), deadline=deadline,
        )

    def get_historic_record(
        self,
        agency_id: Any,
        bibliographic_record_id: str,
        modified_date: str,
        *,
        deadline: Optional[float] = None,
    ) -> Record:
        """The record as it was at ``modified_date`` (a history entry's ``modified``)."""
        path_params = _ids(agency_id, bibliographic_record_id)
        path_params["modifiedDate"] = modified_date
        return self.execute(
            "get_historic_record", path_params,
            operands=(agency_id, bibliographic_record_id, modified_date), deadline=deadline,
        )
