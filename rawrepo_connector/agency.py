"""Agency lookups served by the rawrepo record service."""

from __future__ import annotations

from typing import Any, List, Optional

from rawrepo_connector.connector import BaseConnector
from rawrepo_connector.models import RecordIdCollection
from rawrepo_connector.operations import PolicyFamily

__all__ = ["RecordAgencyServiceConnector"]


class RecordAgencyServiceConnector(BaseConnector):
    """Client for agency enumeration on the record service."""

    default_family = PolicyFamily.LOOKUP
    settings_url_field = "record_service_url"

    def get_all_agencies(self, *, deadline: Optional[float] = None) -> List[int]:
        """Every agency id known to rawrepo, in service order."""
        return self.execute("get_all_agencies", deadline=deadline)

    def get_bibliographic_record_ids_for_agency_id(
        self, agency_id: Any, *, deadline: Optional[float] = None
    ) -> RecordIdCollection:
        return self.execute(
            "get_bibliographic_record_ids_for_agency_id",
            {"agencyId": agency_id},
            operands=(agency_id,),
            deadline=deadline,
        )
