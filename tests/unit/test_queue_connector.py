"""Tests for QueueServiceConnector."""

import httpx
import pytest

from rawrepo_connector import ConnectorError, EnqueueParams, ErrorKind
from rawrepo_connector.models import EnqueueResult, QueueRule, QueueStat


class TestQueueInformation:
    """Tests for rules, providers, workers and statistics."""

    def test_get_queue_rules(self, fake_service, queue_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/queue/rules",
            {
                "queueRules": [
                    {
                        "provider": "agency-maintain",
                        "worker": "broend-sync",
                        "changed": "Y",
                        "leaf": "A",
                        "description": "Queue all records",
                    },
                    {"provider": "dataio-bulk", "worker": "solr-sync-bulk", "changed": "A", "leaf": "Y"},
                ]
            },
        )

        rules = queue_connector.get_queue_rules()

        assert rules[0] == QueueRule(
            provider="agency-maintain",
            worker="broend-sync",
            changed="Y",
            leaf="A",
            description="Queue all records",
        )
        assert rules[1].description is None

    def test_get_queue_providers(self, fake_service, queue_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/queue/providers",
            {"providers": ["agency-maintain", "dataio-bulk", "opencataloging-update"]},
        )

        assert queue_connector.get_queue_providers() == [
            "agency-maintain",
            "dataio-bulk",
            "opencataloging-update",
        ]

    def test_get_queue_workers(self, fake_service, queue_connector) -> None:
        fake_service.json("GET", "/api/v1/queue/workers", {"workers": ["broend-sync"]})

        assert queue_connector.get_queue_workers() == ["broend-sync"]

    def test_get_queue_worker_stats(self, fake_service, queue_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/queue/stats/workers",
            {"stats": [{"text": "broend-sync", "count": 42, "date": "2020-01-02T03:04:05Z"}]},
        )

        assert queue_connector.get_queue_worker_stats() == [
            QueueStat(text="broend-sync", count=42, date="2020-01-02T03:04:05Z")
        ]

    def test_get_queue_agency_stats_empty(self, fake_service, queue_connector) -> None:
        fake_service.json("GET", "/api/v1/queue/stats/agency", {"stats": []})

        assert queue_connector.get_queue_agency_stats() == []


class TestEnqueue:
    """Tests for enqueue operations."""

    def test_enqueue_agency(self, fake_service, queue_connector) -> None:
        fake_service.json("POST", "/api/v1/queue/870970/broend-sync", {"count": 10})

        count = queue_connector.enqueue_agency(
            870970, "broend-sync", EnqueueParams(enqueue_as=191919, priority=1000)
        )

        assert count == 10
        request = fake_service.requests[-1]
        assert request.method == "POST"
        assert request.url.query == b"enqueue-as=191919&priority=1000"

    def test_enqueue_record(self, fake_service, queue_connector) -> None:
        fake_service.json(
            "POST",
            "/api/v1/queue/870970/44816687/agency-maintain",
            {
                "enqueueResults": [
                    {
                        "bibliographicRecordId": "44816687",
                        "agencyId": 870970,
                        "worker": "broend-sync",
                        "queued": True,
                    },
                    {
                        "bibliographicRecordId": "44816687",
                        "agencyId": 870970,
                        "worker": "solr-sync",
                        "queued": False,
                    },
                ]
            },
        )

        results = queue_connector.enqueue_record(
            870970, "44816687", "agency-maintain", EnqueueParams(changed=True, leaf=False)
        )

        assert results == [
            EnqueueResult("44816687", 870970, "broend-sync", True),
            EnqueueResult("44816687", 870970, "solr-sync", False),
        ]
        assert fake_service.requests[-1].url.query == b"changed=true&leaf=false"

    def test_enqueue_agency_missing_count(self, fake_service, queue_connector) -> None:
        fake_service.json("POST", "/api/v1/queue/870970/broend-sync", {})

        with pytest.raises(ConnectorError) as exc_info:
            queue_connector.enqueue_agency(870970, "broend-sync")

        assert exc_info.value.kind is ErrorKind.DECODE_FAILED

    def test_worker_required(self, fake_service, queue_connector) -> None:
        with pytest.raises(ConnectorError) as exc_info:
            queue_connector.enqueue_agency(870970, "")

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
        assert fake_service.requests == []

    def test_enqueue_retried_on_502(self, fake_service, queue_connector) -> None:
        path = "/api/v1/queue/870970/broend-sync"
        fake_service.add("POST", path, httpx.Response(502), httpx.Response(200, json={"count": 3}))

        assert queue_connector.enqueue_agency(870970, "broend-sync") == 3
        assert len(fake_service.calls(path)) == 2
