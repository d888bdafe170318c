"""Tests for RecordServiceConnector against a fake record service."""

import json
import logging

import httpx
import pytest

from rawrepo_connector import (
    ConnectorError,
    ErrorKind,
    Mode,
    RecordId,
    RecordParams,
    RecordServiceConnector,
    RetryPolicy,
)
from tests.fakes import BASE_URL, body_json, record_dto, record_ids_payload

RECORD = "/api/v1/record/870970/44816687"


class TestRelations:
    """Tests for parent, child and sibling lookups."""

    def test_get_record_parents(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD + "/parents", record_ids_payload(("44783851", 870970)))

        parents = record_connector.get_record_parents(870970, "44816687")

        assert parents == [RecordId("44783851", 870970)]

    def test_get_record_children_sorted(self, fake_service, record_connector) -> None:
        children = ["45015920", "44816660", "44741172", "44871106", "44816687", "44816679"]
        fake_service.json(
            "GET",
            "/api/v1/record/870970/44783851/children",
            record_ids_payload(*[(c, 870970) for c in children]),
        )

        result = record_connector.get_record_children("870970", "44783851")

        assert [r.bibliographic_record_id for r in result] == sorted(children)

    def test_siblings_sorted_by_agency_first(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/record/191919/50129691/siblings-to",
            record_ids_payload(("50129691", 870970), ("50129691", 191919)),
        )

        result = record_connector.get_record_siblings_to(191919, "50129691")

        assert result == [RecordId("50129691", 191919), RecordId("50129691", 870970)]

    def test_siblings_from_empty(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD + "/siblings-from", {"recordIds": []})

        assert record_connector.get_record_siblings_from(870970, "44816687") == []


class TestRecordExists:
    """Tests for record_exists."""

    def test_exists(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD + "/exists", {"value": True})

        assert record_connector.record_exists(870970, "44816687") is True

    def test_missing_record_with_allow_deleted(self, fake_service, record_connector) -> None:
        fake_service.json("GET", "/api/v1/record/870979/NoSuchRecord/exists", {"value": False})

        result = record_connector.record_exists(
            "870979", "NoSuchRecord", RecordParams(allow_deleted=True)
        )

        assert result is False
        request = fake_service.requests[-1]
        assert request.url.params["allow-deleted"] == "true"

    def test_no_content_reads_as_absent(self, fake_service, record_connector) -> None:
        fake_service.add("GET", RECORD + "/exists", httpx.Response(204))

        assert record_connector.record_exists(870970, "44816687") is False

    def test_other_failures_propagate(self, fake_service, record_connector) -> None:
        fake_service.add("GET", RECORD + "/exists", httpx.Response(503, text="down"))

        with pytest.raises(ConnectorError) as exc_info:
            record_connector.record_exists(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.UNEXPECTED_STATUS
        assert exc_info.value.operation == "record_exists"


class TestRecordLookups:
    """Tests for single record and collection lookups."""

    def test_get_record_data_sends_params_in_order(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD, record_dto("44816687", 870970, content=b"<x/>"))

        record = record_connector.get_record_data(
            870970,
            "44816687",
            RecordParams(use_parent_agency=True, mode=Mode.MERGED, allow_deleted=True),
        )

        assert record.content == b"<x/>"
        request = fake_service.requests[-1]
        assert request.url.query == b"allow-deleted=true&mode=merged&use-parent-agency=true"
        assert request.headers["Accept"] == "application/json"

    def test_get_record_meta(self, fake_service, record_connector) -> None:
        dto = record_dto("44816687", 870970)
        del dto["content"]
        fake_service.json("GET", RECORD + "/meta", dto)

        assert record_connector.get_record_meta(870970, "44816687").content is None

    def test_record_fetch(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD + "/fetch", record_dto("44816687", 870970))

        record = record_connector.record_fetch(870970, "44816687")

        assert record.record_id == RecordId("44816687", 870970)

    def test_get_record_content(self, fake_service, record_connector) -> None:
        fake_service.add("GET", RECORD + "/content", httpx.Response(200, content=b"<marcx:record/>"))

        assert record_connector.get_record_content(870970, "44816687") == b"<marcx:record/>"

    def test_get_record_content_collection(self, fake_service, record_connector) -> None:
        fake_service.add(
            "GET",
            "/api/v1/records/870970/44816687/content",
            httpx.Response(200, content=b"<marcx:collection/>"),
        )

        assert record_connector.get_record_content_collection(870970, "44816687") == b"<marcx:collection/>"

    def test_get_record_data_collection(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/records/870970/44816687",
            {
                "records": [
                    record_dto("44816687", 870970),
                    record_dto("44783851", 870970, content=b"first"),
                    record_dto("44783851", 870970, content=b"second"),
                ]
            },
        )

        result = record_connector.get_record_data_collection(
            870970, "44816687", RecordParams(expand=True)
        )

        assert sorted(result) == ["44783851", "44816687"]
        assert result["44783851"].content == b"second"

    def test_get_record_data_collection_dataio(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/records/870970/44816687/dataio",
            {"records": [record_dto("44816687", 870970)]},
        )

        result = record_connector.get_record_data_collection_dataio(870970, "44816687")

        assert list(result) == ["44816687"]

    def test_get_all_agencies_for_bibliographic_record_id(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET", "/api/v1/record/50129691/all-agencies-for", {"agencies": [191919, 870970]}
        )

        assert record_connector.get_all_agencies_for_bibliographic_record_id("50129691") == [
            191919,
            870970,
        ]

    def test_raw_record_entry(self, fake_service, record_connector) -> None:
        payload = {
            "recordId": {"bibliographicRecordId": "44816687", "agencyId": 870970},
            "deleted": False,
            "mimetype": "text/marcxchange",
            "content": {
                "leader": "00000n",
                "fields": [{"name": "001", "indicators": "00", "subfields": [{"name": "a", "value": "44816687"}]}],
            },
        }
        fake_service.json("GET", "/api/v1/record-entries/870970/44816687/raw", payload)

        entry = record_connector.get_raw_record_entry_parsed(870970, "44816687")
        raw = record_connector.get_raw_record_entry(870970, "44816687")

        assert entry.content.subfield_values("001", "a") == ["44816687"]
        assert json.loads(raw) == payload


class TestHistory:
    """Tests for history and historic record lookups."""

    def test_history_keeps_service_order(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET",
            "/api/v1/record/870970/44783851/history",
            {
                "recordHistoryList": [
                    {
                        "id": {"bibliographicRecordId": "44783851", "agencyId": 870970},
                        "deleted": False,
                        "mimeType": "text/marcxchange",
                        "created": "2015-03-16T23:35:30.467032Z",
                        "modified": "2016-06-15T08:58:06.640Z",
                        "trackingId": "",
                    },
                    {
                        "id": {"bibliographicRecordId": "44783851", "agencyId": 870970},
                        "deleted": False,
                        "mimeType": "text/marcxchange",
                        "created": "2015-03-16T23:35:30.467032Z",
                        "modified": "2015-03-16T23:35:30.467032Z",
                        "trackingId": "",
                    },
                ]
            },
        )

        history = record_connector.get_record_history(870970, "44783851")

        assert [e.modified for e in history] == [
            "2016-06-15T08:58:06.640Z",
            "2015-03-16T23:35:30.467032Z",
        ]

    def test_get_historic_record(self, fake_service, record_connector) -> None:
        path = "/api/v1/record/870970/44783851/2016-06-15T08:58:06.640Z"
        fake_service.json("GET", path, record_dto("44783851", 870970, content=b"old"))

        record = record_connector.get_historic_record(870970, "44783851", "2016-06-15T08:58:06.640Z")

        assert record.content == b"old"

    def test_historic_record_requires_modified_date(self, fake_service, record_connector) -> None:
        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_historic_record(870970, "44783851", "")

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
        assert fake_service.requests == []


class TestFetchRecordList:
    """Tests for the bulk fetch."""

    def test_found_and_missing(self, fake_service, record_connector) -> None:
        fake_service.json(
            "POST",
            "/api/v1/records/fetch/",
            {
                "found": [
                    record_dto("54936931", 870970),
                    record_dto("55103461", 870970, deleted=True),
                ],
                "missing": [{"bibliographicRecordId": "missing", "agencyId": 123456}],
            },
        )
        requested = [
            RecordId("55103461", 870970),
            RecordId("missing", 123456),
            RecordId("54936931", 870970),
        ]

        result = record_connector.fetch_record_list(requested, RecordParams(mode=Mode.EXPANDED))

        assert [r.bibliographic_record_id for r in result.found] == ["55103461", "54936931"]
        assert result.found[0].deleted is True
        assert result.missing == [RecordId("missing", 123456)]

        request = fake_service.requests[-1]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert request.url.params["mode"] == "expanded"
        assert body_json(request) == {
            "recordIds": [
                {"bibliographicRecordId": "55103461", "agencyId": 870970},
                {"bibliographicRecordId": "missing", "agencyId": 123456},
                {"bibliographicRecordId": "54936931", "agencyId": 870970},
            ]
        }


class TestArgumentChecks:
    """Local argument checks never reach the network."""

    @pytest.mark.parametrize("agency_id,bib_id", ((None, "1"), ("", "1"), (870970, None), (870970, "")))
    def test_rejects_missing_ids(self, fake_service, record_connector, agency_id, bib_id) -> None:
        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_record_data(agency_id, bib_id)

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
        assert exc_info.value.operation == "get_record_data"
        assert fake_service.requests == []

    def test_rejects_empty_base_url(self) -> None:
        with pytest.raises(ConnectorError) as exc_info:
            RecordServiceConnector("  ")

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


class TestResilience:
    """Tests for retry and classification through the connector."""

    def test_404_retried_until_success(self, fake_service, record_connector) -> None:
        path = RECORD + "/parents"
        fake_service.add(
            "GET",
            path,
            httpx.Response(404),
            httpx.Response(502),
            httpx.Response(200, json=record_ids_payload(("44783851", 870970))),
        )

        assert record_connector.get_record_parents(870970, "44816687") == [RecordId("44783851", 870970)]
        assert len(fake_service.calls(path)) == 3

    def test_persistent_500_exhausts_budget(self, fake_service, record_connector) -> None:
        fake_service.add("GET", RECORD, httpx.Response(500, text="Internal error"))

        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_record_data(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.UNEXPECTED_STATUS
        assert exc_info.value.status_code == 500
        assert len(fake_service.calls(RECORD)) == 7

    def test_connection_errors_exhaust_to_transport_failure(self, fake_service) -> None:
        fake_service.add("GET", RECORD, httpx.ConnectError("connection refused"))
        connector = RecordServiceConnector(
            BASE_URL,
            retry_policy=RetryPolicy(max_retries=2, delay_seconds=0),
            transport=fake_service.transport,
        )

        with pytest.raises(ConnectorError) as exc_info:
            connector.get_record_data(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.TRANSPORT_FAILURE
        assert exc_info.value.operation == "get_record_data"
        assert len(fake_service.calls(RECORD)) == 3

    def test_malformed_validation_body(self, fake_service, record_connector) -> None:
        fake_service.json("GET", RECORD, {"errors": ["bad"]}, status=400)

        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_record_data(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.UNEXPECTED_STATUS
        assert exc_info.value.operation == "get_record_data"
        assert exc_info.value.status_code == 400

    def test_validation_failure_not_retried(self, fake_service, record_connector) -> None:
        fake_service.json(
            "GET", RECORD, {"errors": [{"parameter": "mode", "message": "bad"}]}, status=400
        )

        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_record_data(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.VALIDATION_FAILED
        assert len(fake_service.calls(RECORD)) == 1

    def test_empty_payload(self, fake_service, record_connector) -> None:
        fake_service.add("GET", RECORD, httpx.Response(200, content=b"null"))

        with pytest.raises(ConnectorError) as exc_info:
            record_connector.get_record_data(870970, "44816687")

        assert exc_info.value.kind is ErrorKind.EMPTY_PAYLOAD


class TestTimingLog:
    """Tests for per call timing records."""

    def test_logs_operation_and_operands(self, fake_service, record_connector, caplog) -> None:
        fake_service.json("GET", RECORD + "/parents", {"recordIds": []})

        with caplog.at_level(logging.INFO, logger="rawrepo_connector.timing"):
            record_connector.get_record_parents(870970, "44816687")

        messages = [r.getMessage() for r in caplog.records if r.name == "rawrepo_connector.timing"]
        assert len(messages) == 1
        assert messages[0].startswith("get_record_parents(870970, 44816687) took ")
        assert messages[0].endswith(" milliseconds")

    def test_logs_on_failure_too(self, fake_service, record_connector, caplog) -> None:
        fake_service.add("GET", RECORD, httpx.Response(204))

        with caplog.at_level(logging.INFO, logger="rawrepo_connector.timing"):
            with pytest.raises(ConnectorError):
                record_connector.get_record_data(870970, "44816687")

        assert any(
            r.getMessage().startswith("get_record_data(870970, 44816687) took")
            for r in caplog.records
        )


def test_context_manager_closes_owned_client(fake_service):
    with RecordServiceConnector(BASE_URL, transport=fake_service.transport) as connector:
        client = connector._client

    assert client.is_closed


def test_shared_client_left_open(fake_service):
    client = httpx.Client(base_url=BASE_URL, transport=fake_service.transport)
    with RecordServiceConnector(BASE_URL, client=client):
        pass

    assert not client.is_closed
    client.close()


def test_user_agent_header(fake_service, record_connector):
    fake_service.json("GET", "/api/v1/record/870970/1/exists", {"value": True})

    record_connector.record_exists(870970, "1")

    assert fake_service.requests[-1].headers["User-Agent"].startswith("rawrepo-connector/")


def test_fake_service_unknown_route_is_unexpected(record_connector):
    with pytest.raises(ConnectorError) as exc_info:
        record_connector.get_record_meta(1, "nope")

    assert exc_info.value.kind is ErrorKind.UNEXPECTED_STATUS
