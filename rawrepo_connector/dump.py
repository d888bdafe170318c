"""Dump service connector.

Dumps are expensive on the service side, so the default policy retries
once and only on 404. Results are returned as the raw dump bytes.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from rawrepo_connector.connector import BaseConnector
from rawrepo_connector.models import RecordId
from rawrepo_connector.operations import PolicyFamily
from rawrepo_connector.params import AgencyDumpParams, RecordDumpParams

logger = logging.getLogger(__name__)

__all__ = ["RecordDumpServiceConnector", "record_lines"]


def record_lines(record_ids: Iterable[RecordId]) -> str:
    """Body for ``dump_records``: one ``id:agency`` line per record."""
    return "\n".join(f"{r.bibliographic_record_id}:{r.agency_id}" for r in record_ids)


class RecordDumpServiceConnector(BaseConnector):
    """Client for the rawrepo dump service."""

    default_family = PolicyFamily.DUMP
    settings_url_field = "dump_service_url"

    def dump_agencies(
        self, params: AgencyDumpParams, *, deadline: Optional[float] = None
    ) -> bytes:
        """Dump every record of the agencies selected by ``params``."""
        body = params.to_json()
        logger.debug("POST /api/v1/dump with data %s", body)
        return self.execute(
            "dump_agencies", body=body, operands=(params.agencies,), deadline=deadline
        )

    def dump_agencies_dry_run(
        self, params: AgencyDumpParams, *, deadline: Optional[float] = None
    ) -> bytes:
        """The number of records ``dump_agencies`` would return, as text."""
        body = params.to_json()
        logger.debug("POST /api/v1/dump/dryrun with data %s", body)
        return self.execute(
            "dump_agencies_dry_run", body=body, operands=(params.agencies,), deadline=deadline
        )

    def dump_records(
        self,
        records: Union[str, Iterable[RecordId]],
        params: Optional[RecordDumpParams] = None,
        *,
        deadline: Optional[float] = None,
    ) -> bytes:
        """Dump an explicit list of records.

        Args:
            records: ``id:agency`` lines, or record ids to render as such
            params: Output format, encoding and mode
            deadline: Overall seconds allowed for all attempts and delays
        """
        body = records if isinstance(records, str) else record_lines(records)
        return self.execute(
            "dump_records",
            query=params.to_query() if params is not None else None,
            body=body,
            operands=(body.count("\n") + 1 if body else 0,),
            deadline=deadline,
        )
