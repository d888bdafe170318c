"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Ensure project root is importable when running tests directly
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from rawrepo_connector import (  # noqa: E402
    QueueServiceConnector,
    RecordAgencyServiceConnector,
    RecordDumpServiceConnector,
    RecordServiceConnector,
    RetryPolicy,
)
from tests.fakes import BASE_URL, FakeService, fast  # noqa: E402


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def record_connector(fake_service: FakeService):
    connector = RecordServiceConnector(
        BASE_URL,
        retry_policy=fast(RetryPolicy.lookup()),
        transport=fake_service.transport,
    )
    yield connector
    connector.close()


@pytest.fixture
def agency_connector(fake_service: FakeService):
    connector = RecordAgencyServiceConnector(
        BASE_URL,
        retry_policy=fast(RetryPolicy.lookup()),
        transport=fake_service.transport,
    )
    yield connector
    connector.close()


@pytest.fixture
def dump_connector(fake_service: FakeService):
    connector = RecordDumpServiceConnector(
        BASE_URL,
        retry_policy=fast(RetryPolicy.dump()),
        transport=fake_service.transport,
    )
    yield connector
    connector.close()


@pytest.fixture
def queue_connector(fake_service: FakeService):
    connector = QueueServiceConnector(
        BASE_URL,
        retry_policy=fast(RetryPolicy.queue()),
        transport=fake_service.transport,
    )
    yield connector
    connector.close()
