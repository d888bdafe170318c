"""Queue service connector: queue rules, statistics and enqueueing."""

from __future__ import annotations

from typing import Any, List, Optional

from rawrepo_connector.connector import BaseConnector
from rawrepo_connector.models import EnqueueResult, QueueRule, QueueStat
from rawrepo_connector.operations import PolicyFamily
from rawrepo_connector.params import EnqueueParams

__all__ = ["QueueServiceConnector"]


class QueueServiceConnector(BaseConnector):
    """Client for the rawrepo queue service.

    Enqueue calls are POSTs and are retried under the queue policy like the
    read calls.
    """

    default_family = PolicyFamily.QUEUE
    settings_url_field = "queue_service_url"

    def get_queue_rules(self, *, deadline: Optional[float] = None) -> List[QueueRule]:
        return self.execute("get_queue_rules", deadline=deadline)

    def get_queue_providers(self, *, deadline: Optional[float] = None) -> List[str]:
        return self.execute("get_queue_providers", deadline=deadline)

    def get_queue_workers(self, *, deadline: Optional[float] = None) -> List[str]:
        return self.execute("get_queue_workers", deadline=deadline)

    def get_queue_worker_stats(self, *, deadline: Optional[float] = None) -> List[QueueStat]:
        return self.execute("get_queue_worker_stats", deadline=deadline)

    def get_queue_agency_stats(self, *, deadline: Optional[float] = None) -> List[QueueStat]:
        return self.execute("get_queue_agency_stats", deadline=deadline)

    def enqueue_agency(
        self,
        agency_id: Any,
        worker: str,
        params: Optional[EnqueueParams] = None,
        *,
        deadline: Optional[float] = None,
    ) -> int:
        """Queue every record of an agency for ``worker``; returns the count queued."""
        return self.execute(
            "enqueue_agency",
            {"agencyId": agency_id, "worker": worker},
            params.to_query() if params is not None else None,
            operands=(agency_id, worker),
            deadline=deadline,
        )

    def enqueue_record(
        self,
        agency_id: Any,
        bibliographic_record_id: str,
        provider: str,
        params: Optional[EnqueueParams] = None,
        *,
        deadline: Optional[float] = None,
    ) -> List[EnqueueResult]:
        """Queue one record through ``provider``; one result per worker."""
        return self.execute(
            "enqueue_record",
            {
                "agencyId": agency_id,
                "bibliographicRecordId": bibliographic_record_id,
                "provider": provider,
            },
            params.to_query() if params is not None else None,
            operands=(agency_id, bibliographic_record_id, provider),
            deadline=deadline,
        )
