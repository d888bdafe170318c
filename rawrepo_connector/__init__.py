"""Python connectors for the rawrepo record, agency, dump and queue services.

Quick start:
    from rawrepo_connector import RecordServiceConnector, RecordParams, Mode

    with RecordServiceConnector("http://rawrepo-record-service:8080") as connector:
        parents = connector.get_record_parents(870970, "44816687")
        record = connector.get_record_data(
            870970, "44816687", RecordParams(mode=Mode.MERGED)
        )

All failures raise ``ConnectorError``; inspect ``error.kind`` to decide what
to do with them.
"""

__version__ = "1.0.0"

from rawrepo_connector.agency import RecordAgencyServiceConnector
from rawrepo_connector.config import ConnectorSettings, load_env_file, load_settings
from rawrepo_connector.connector import BaseConnector
from rawrepo_connector.dump import RecordDumpServiceConnector
from rawrepo_connector.errors import (
    ConnectorError,
    ErrorKind,
    ParamsValidation,
    ParamsValidationItem,
)
from rawrepo_connector.logging import JSONFormatter, TimingLogger, setup_logging
from rawrepo_connector.models import (
    EnqueueResult,
    FetchResult,
    MarcField,
    MarcJson,
    MarcSubfield,
    QueueRule,
    QueueStat,
    Record,
    RecordCollection,
    RecordEntry,
    RecordHistoryCollection,
    RecordHistoryEntry,
    RecordId,
    RecordIdCollection,
    split_fetch_result,
)
from rawrepo_connector.params import (
    AgencyDumpParams,
    EnqueueParams,
    Mode,
    OutputFormat,
    RecordDumpParams,
    RecordParams,
    RecordStatus,
    RecordType,
)
from rawrepo_connector.queue import QueueServiceConnector
from rawrepo_connector.record import RecordServiceConnector
from rawrepo_connector.retry import RetryPolicy

__all__ = [
    "__version__",
    # Connectors
    "BaseConnector",
    "RecordServiceConnector",
    "RecordAgencyServiceConnector",
    "RecordDumpServiceConnector",
    "QueueServiceConnector",
    # Configuration
    "ConnectorSettings",
    "RetryPolicy",
    "load_settings",
    "load_env_file",
    # Errors
    "ConnectorError",
    "ErrorKind",
    "ParamsValidation",
    "ParamsValidationItem",
    # Parameters
    "RecordParams",
    "AgencyDumpParams",
    "RecordDumpParams",
    "EnqueueParams",
    "Mode",
    "OutputFormat",
    "RecordStatus",
    "RecordType",
    # Models
    "RecordId",
    "RecordIdCollection",
    "Record",
    "RecordCollection",
    "RecordHistoryEntry",
    "RecordHistoryCollection",
    "RecordEntry",
    "MarcJson",
    "MarcField",
    "MarcSubfield",
    "FetchResult",
    "split_fetch_result",
    "QueueRule",
    "QueueStat",
    "EnqueueResult",
    # Logging
    "setup_logging",
    "JSONFormatter",
    "TimingLogger",
]
