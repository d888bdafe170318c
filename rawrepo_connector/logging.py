"""Logging utilities for rawrepo connectors.

Provides the call timing capability the connectors log through, and a
``setup_logging`` helper with an optional JSON output format.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

__all__ = [
    "TIMING_LOGGER_NAME",
    "setup_logging",
    "JSONFormatter",
    "TimingLogger",
    "parse_level",
]

TIMING_LOGGER_NAME = "rawrepo_connector.timing"

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}


def parse_level(level: Union[int, str]) -> int:
    """Resolve a level name such as ``"INFO"`` to its numeric value."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "rawrepo_connector.connector",
         "message": "get_record_parents(870970, 44816687) took 12 milliseconds",
         "extra": {"operation": "get_record_parents", "elapsed_ms": 12}}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_attrs = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS
        }
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


class TimingLogger:
    """Emits ``<operation>(<operands>) took <n> milliseconds`` records.

    A connector is handed one of these at construction; the level is fixed
    for the connector's lifetime.

    Example:
        timing = TimingLogger(level="DEBUG")
        with timing.timed("get_record_data", 870970, "52880645"):
            ...
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        level: Union[int, str] = logging.INFO,
    ):
        self.logger = logger or logging.getLogger(TIMING_LOGGER_NAME)
        self.level = parse_level(level)

    def log(self, operation: str, operands: tuple, elapsed_ms: int) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        self.logger.log(
            self.level,
            "%s(%s) took %d milliseconds",
            operation,
            ", ".join(str(o) for o in operands),
            elapsed_ms,
            extra={"operation": operation, "elapsed_ms": elapsed_ms},
        )

    @contextmanager
    def timed(self, operation: str, *operands: Any) -> Iterator[None]:
        """Log the duration of the block, whether it returns or raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.log(operation, operands, int((time.perf_counter() - start) * 1000))


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
    timing_level: Optional[Union[int, str]] = None,
) -> None:
    """Configure the root logger for applications using the connectors.

    Args:
        verbose: Enable debug-level logging
        json_format: Emit ``JSONFormatter`` records instead of plain text
        log_file: Also write records to this file
        timing_level: Threshold for the per call timing records; set it to
            WARNING to silence them without touching other loggers
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter: logging.Formatter = (
        JSONFormatter()
        if json_format
        else logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if timing_level is not None:
        logging.getLogger(TIMING_LOGGER_NAME).setLevel(parse_level(timing_level))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
