"""Error taxonomy for rawrepo connectors.

Every failure surfaced by a connector is a ``ConnectorError`` tagged with an
``ErrorKind``. Callers dispatch on the kind instead of on a class hierarchy:

    try:
        record = connector.get_record_data(870970, "52880645")
    except ConnectorError as exc:
        if exc.kind is ErrorKind.NOT_FOUND_OR_NO_CONTENT:
            record = None
        else:
            raise
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "ConnectorError",
    "ErrorKind",
    "ParamsValidation",
    "ParamsValidationItem",
]


class ErrorKind(Enum):
    """Kinds of connector failures."""

    INVALID_ARGUMENT = "invalid_argument"  # Local precondition, never sent
    TRANSPORT_FAILURE = "transport_failure"  # Network level, retried per policy
    NOT_FOUND_OR_NO_CONTENT = "not_found_or_no_content"  # HTTP 204
    VALIDATION_FAILED = "validation_failed"  # HTTP 400 with validation body
    UNEXPECTED_STATUS = "unexpected_status"
    EMPTY_PAYLOAD = "empty_payload"  # Success status with a null body
    DECODE_FAILED = "decode_failed"  # Success status with an undecodable body

    @property
    def retryable(self) -> bool:
        """Whether a higher level may reasonably try the call again."""
        return self is ErrorKind.TRANSPORT_FAILURE


@dataclass(frozen=True)
class ParamsValidationItem:
    """A single rejected request parameter."""

    parameter: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ParamsValidationItem":
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a JSON object for validation item, got {type(data).__name__}"
            )
        return cls(parameter=data.get("parameter"), message=data.get("message"))


@dataclass(frozen=True)
class ParamsValidation:
    """Validation document returned by the services on HTTP 400."""

    errors: List[ParamsValidationItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ParamsValidation":
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a JSON object for validation body, got {type(data).__name__}"
            )
        items = data.get("errors") or []
        if not isinstance(items, list):
            raise ValueError("Validation body 'errors' must be a list")
        return cls(errors=[ParamsValidationItem.from_dict(item) for item in items])

    def messages(self) -> List[str]:
        return [
            f"{item.parameter}: {item.message}" if item.parameter else str(item.message)
            for item in self.errors
        ]


class ConnectorError(Exception):
    """Failure raised by every connector operation.

    Carries the error kind plus kind specific payload, and renders a
    readable message with the same context/details layout used across the
    package's log output.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
        validation: Optional[ParamsValidation] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.detail = detail
        self.validation = validation
        self.operation = operation
        self.cause = cause

        # Build full message
        parts = [f"[{operation}] {message}" if operation else message]

        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if detail:
            details["detail"] = detail
        if validation is not None and validation.errors:
            details["validation"] = "; ".join(validation.messages())
        if cause is not None:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        if details:
            parts.append("\nDetails:")
            parts.extend(f"  {k}: {v}" for k, v in details.items())

        super().__init__("\n".join(parts) if len(parts) > 1 else parts[0])

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def with_operation(self, operation: str) -> "ConnectorError":
        """Return a copy of this error tagged with the failing operation."""
        if self.operation:
            return self
        err = ConnectorError(
            self.kind,
            self.message,
            status_code=self.status_code,
            detail=self.detail,
            validation=self.validation,
            operation=operation,
            cause=self.cause,
        )
        err.__cause__ = self.__cause__
        return err

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "operation": self.operation,
            "status_code": self.status_code,
            "detail": self.detail,
            "validation": [
                {"parameter": item.parameter, "message": item.message}
                for item in self.validation.errors
            ]
            if self.validation is not None
            else None,
            "cause": str(self.cause) if self.cause is not None else None,
        }

    @classmethod
    def invalid_argument(cls, name: str, value: Any = None) -> "ConnectorError":
        return cls(
            ErrorKind.INVALID_ARGUMENT,
            f"{name} must be non-null and non-empty",
            detail=f"{name}={value!r}",
        )
