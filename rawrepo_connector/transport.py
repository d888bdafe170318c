"""HTTP transport for the connectors: a pooled httpx client per connector."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
import requests_toolbelt
import tenacity
from requests_toolbelt.utils.user_agent import user_agent

from rawrepo_connector import __version__
from rawrepo_connector.errors import ConnectorError, ErrorKind

logger = logging.getLogger(__name__)

__all__ = ["USER_AGENT", "create_http_client", "normalize_base_url"]

USER_AGENT = user_agent(
    "rawrepo-connector",
    __version__,
    extras=[
        ("httpx", getattr(httpx, "__version__", "unknown")),
        ("tenacity", getattr(tenacity, "__version__", "unknown")),
        ("requests-toolbelt", getattr(requests_toolbelt, "__version__", "unknown")),
    ],
)


def normalize_base_url(base_url: Optional[str], name: str = "base_url") -> str:
    if base_url is None or not str(base_url).strip():
        raise ConnectorError(
            ErrorKind.INVALID_ARGUMENT,
            f"{name} must be non-null and non-empty",
            detail=f"{name}={base_url!r}",
        )
    return str(base_url).strip().rstrip("/")


def create_http_client(
    base_url: str,
    *,
    timeout: float = 30.0,
    pool_connections: int = 10,
    pool_maxsize: int = 10,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build the pooled client a connector sends its requests through.

    Args:
        base_url: Service base URL, e.g. http://rawrepo-record-service:8080
        timeout: Per request timeout in seconds
        pool_connections: Keep-alive connections kept in the pool
        pool_maxsize: Maximum concurrent connections
        transport: Optional transport override (httpx.MockTransport in tests)
    """
    limits = httpx.Limits(
        max_connections=pool_maxsize,
        max_keepalive_connections=pool_connections,
    )
    logger.debug("Creating HTTP client for %s (timeout=%ss)", base_url, timeout)
    return httpx.Client(
        base_url=normalize_base_url(base_url),
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )
