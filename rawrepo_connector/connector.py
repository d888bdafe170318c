"""Generic request execution shared by all rawrepo connectors.

Every public connector method is one call to ``BaseConnector.execute``:
build the request target, send it under the operation's retry policy,
classify the response and shape the payload.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import httpx

from rawrepo_connector.classifier import classify
from rawrepo_connector.config import ConnectorSettings
from rawrepo_connector.errors import ConnectorError
from rawrepo_connector.logging import TimingLogger
from rawrepo_connector.operations import Operation, PolicyFamily, get_operation
from rawrepo_connector.paths import build_target
from rawrepo_connector.retry import RetryPolicy, execute_with_retry
from rawrepo_connector.transport import create_http_client, normalize_base_url

logger = logging.getLogger(__name__)

__all__ = ["BaseConnector"]

Query = Sequence[Tuple[str, str]]
Body = Union[None, bytes, str, Dict[str, Any], list]


class BaseConnector:
    """Holds the HTTP client, retry policy and timing logger of a connector.

    Subclasses set ``default_family`` and expose one thin method per
    service operation. Connectors are safe to share between threads as long
    as the underlying httpx client is.

    Example:
        with RecordServiceConnector("http://rawrepo-record-service:8080") as connector:
            parents = connector.get_record_parents(870970, "44816687")
    """

    default_family: PolicyFamily = PolicyFamily.LOOKUP
    settings_url_field: str = "record_service_url"

    def __init__(
        self,
        base_url: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        timing: Optional[TimingLogger] = None,
        client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
    ):
        """Initialize the connector.

        Args:
            base_url: Service base URL
            retry_policy: Policy for every call, defaults to the family's policy
            timeout: Per request timeout in seconds
            timing: Where per call timings are logged
            client: Pre-built httpx client; the connector will not close it
            transport: Transport for the client the connector builds itself
            pool_connections: Keep-alive connections in the pool
            pool_maxsize: Maximum concurrent connections

        Raises:
            ConnectorError: INVALID_ARGUMENT if base_url is empty
        """
        self.base_url = normalize_base_url(base_url)
        self.retry_policy = retry_policy or self._family_policy(self.default_family)
        self.timeout = timeout
        self.timing = timing or TimingLogger()
        self._owns_client = client is None
        self._client = client or create_http_client(
            self.base_url,
            timeout=timeout,
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ConnectorSettings, **kwargs: Any) -> "BaseConnector":
        """Build a connector from loaded settings; ``kwargs`` override them."""
        policies = {
            PolicyFamily.LOOKUP: settings.lookup_policy,
            PolicyFamily.DUMP: settings.dump_policy,
            PolicyFamily.QUEUE: settings.queue_policy,
        }
        options: Dict[str, Any] = {
            "retry_policy": policies[cls.default_family](),
            "timeout": settings.timeout_seconds,
            "timing": TimingLogger(level=settings.timing_log_level),
            "pool_connections": settings.pool_connections,
            "pool_maxsize": settings.pool_maxsize,
        }
        options.update(kwargs)
        return cls(getattr(settings, cls.settings_url_field), **options)

    @staticmethod
    def _family_policy(family: PolicyFamily) -> RetryPolicy:
        if family is PolicyFamily.DUMP:
            return RetryPolicy.dump()
        if family is PolicyFamily.QUEUE:
            return RetryPolicy.queue()
        return RetryPolicy.lookup()

    def __enter__(self) -> "BaseConnector":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.base_url!r}, retry_policy={self.retry_policy!r})"

    def _build_request(
        self,
        operation: Operation,
        target: str,
        body: Body,
        timeout: Optional[float],
    ) -> httpx.Request:
        headers = {"Accept": operation.accept}
        content: Optional[bytes] = None
        if body is not None:
            if isinstance(body, (dict, list)):
                content = json.dumps(body).encode("utf-8")
            elif isinstance(body, str):
                content = body.encode("utf-8")
            else:
                content = body
            if operation.content_type:
                headers["Content-Type"] = operation.content_type
        return self._client.build_request(
            operation.method,
            target,
            headers=headers,
            content=content,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )

    def execute(
        self,
        operation: Union[str, Operation],
        path_params: Optional[Dict[str, Any]] = None,
        query: Optional[Query] = None,
        body: Body = None,
        *,
        operands: Tuple[Any, ...] = (),
        deadline: Optional[float] = None,
    ) -> Any:
        """Run one service operation end to end.

        Args:
            operation: Operation descriptor or its name
            path_params: Values for the path template placeholders
            query: Encoded query parameters in the order they are sent
            body: JSON-able object, text or bytes sent as the request body
            operands: Values shown in the timing log record
            deadline: Overall seconds allowed for all attempts and delays

        Returns:
            The decoded payload shaped by the operation's decoder

        Raises:
            ConnectorError: For every failure; see ErrorKind
        """
        if isinstance(operation, str):
            operation = get_operation(operation)

        with self.timing.timed(operation.name, *operands):
            try:
                target = build_target(operation.path, path_params, query)
                logger.debug("%s %s%s", operation.method, self.base_url, target)

                def send(remaining: Optional[float]) -> httpx.Response:
                    timeout = self.timeout if remaining is None else min(self.timeout, remaining)
                    request = self._build_request(operation, target, body, timeout)
                    return self._client.send(request)

                response = execute_with_retry(
                    send,
                    self.retry_policy,
                    operation_name=operation.name,
                    deadline=deadline,
                )
                return classify(
                    response,
                    result_kind=operation.result,
                    decoder=operation.decoder,
                    expected_status=operation.expected_status,
                    entity_name=operation.entity_name,
                )
            except ConnectorError as e:
                raise e.with_operation(operation.name) from e.cause
