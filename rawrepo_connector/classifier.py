"""Response classification for rawrepo services.

Turns a completed HTTP exchange into either a decoded payload or a
``ConnectorError``. Status handling is an ordered decision list; each
step assumes the earlier ones did not match:

1. expected status -> decode the body (EMPTY_PAYLOAD / DECODE_FAILED on trouble)
2. 204 -> NOT_FOUND_OR_NO_CONTENT
3. 400 with a validation document -> VALIDATION_FAILED
4. 400 with an undecodable body -> UNEXPECTED_STATUS naming the decode error
5. body carries the MARC reader exception marker -> UNEXPECTED_STATUS with
   only the text after the marker
6. anything else -> UNEXPECTED_STATUS
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from rawrepo_connector.errors import ConnectorError, ErrorKind, ParamsValidation

logger = logging.getLogger(__name__)

__all__ = [
    "MARC_READER_EXCEPTION_MARKER",
    "ResultKind",
    "check_status",
    "classify",
    "decode_payload",
]

MARC_READER_EXCEPTION_MARKER = "dk.dbc.marc.reader.MarcReaderException: "


class ResultKind(Enum):
    """How a successful response body is read."""

    JSON = "json"  # Decoded JSON, then shaped by the operation's decoder
    BYTES = "bytes"  # Raw body bytes
    TEXT = "text"  # Body decoded as text


def _status_text(status_code: int) -> str:
    return f"{status_code} {httpx.codes.get_reason_phrase(status_code)}".strip()


def _read_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (UnicodeDecodeError, LookupError):
        return response.content.decode("utf-8", errors="replace")


def check_status(response: httpx.Response, expected_status: int = 200) -> None:
    """Raise the matching ConnectorError unless the status is the expected one."""
    status = response.status_code
    if status == expected_status:
        return

    if status == httpx.codes.NO_CONTENT:
        raise ConnectorError(
            ErrorKind.NOT_FOUND_OR_NO_CONTENT,
            "No content",
            status_code=status,
        )

    if status == httpx.codes.BAD_REQUEST:
        try:
            validation = ParamsValidation.from_dict(json.loads(response.content))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            raise ConnectorError(
                ErrorKind.UNEXPECTED_STATUS,
                f"Got error code {_status_text(status)} but while reading the "
                f"message got error {e}",
                status_code=status,
                cause=e,
            ) from e
        raise ConnectorError(
            ErrorKind.VALIDATION_FAILED,
            "Record service rejected the request parameters",
            status_code=status,
            validation=validation,
        )

    body = _read_text(response)
    if MARC_READER_EXCEPTION_MARKER in body:
        detail = body[body.index(MARC_READER_EXCEPTION_MARKER) + len(MARC_READER_EXCEPTION_MARKER):]
        raise ConnectorError(
            ErrorKind.UNEXPECTED_STATUS,
            f"Error from Record service: {detail}",
            status_code=status,
            detail=detail,
        )

    raise ConnectorError(
        ErrorKind.UNEXPECTED_STATUS,
        f"Record service returned with unexpected status code: {_status_text(status)}",
        status_code=status,
        detail=body or None,
    )


def decode_payload(
    response: httpx.Response,
    result_kind: ResultKind,
    decoder: Optional[Callable[[Any], Any]] = None,
    entity_name: str = "response",
) -> Any:
    """Read the body of a successful response into the requested shape."""
    if result_kind is ResultKind.BYTES:
        return response.content
    if result_kind is ResultKind.TEXT:
        return _read_text(response)

    if not response.content.strip():
        raise ConnectorError(
            ErrorKind.EMPTY_PAYLOAD,
            f"Record service returned with null-valued {entity_name} entity",
            status_code=response.status_code,
        )
    try:
        data = json.loads(response.content)
    except ValueError as e:
        raise ConnectorError(
            ErrorKind.DECODE_FAILED,
            f"Could not decode {entity_name} entity: {e}",
            status_code=response.status_code,
            cause=e,
        ) from e

    if data is None:
        raise ConnectorError(
            ErrorKind.EMPTY_PAYLOAD,
            f"Record service returned with null-valued {entity_name} entity",
            status_code=response.status_code,
        )
    if decoder is None:
        return data
    try:
        return decoder(data)
    except (ValueError, TypeError, KeyError) as e:
        raise ConnectorError(
            ErrorKind.DECODE_FAILED,
            f"Could not decode {entity_name} entity: {e}",
            status_code=response.status_code,
            cause=e,
        ) from e


def classify(
    response: httpx.Response,
    result_kind: ResultKind = ResultKind.JSON,
    decoder: Optional[Callable[[Any], Any]] = None,
    expected_status: int = 200,
    entity_name: str = "response",
) -> Any:
    """Check the status, then decode the payload."""
    check_status(response, expected_status)
    return decode_payload(response, result_kind, decoder, entity_name)
