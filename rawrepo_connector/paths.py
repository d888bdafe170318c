"""Request target construction: bound path plus encoded query string."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

from rawrepo_connector.errors import ConnectorError

__all__ = ["PathBuilder", "build_target", "placeholders"]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

# RFC 3986 pchar minus the percent sign
_SAFE_PATH_CHARS = "-._~!$&'()*+,;=:@"


def placeholders(template: str) -> List[str]:
    """Names of the ``{name}`` placeholders in a template, in order."""
    return _PLACEHOLDER.findall(template)


class PathBuilder:
    """Binds ``{name}`` placeholders in a URL path template.

    Every placeholder is required. A missing, None or empty value fails with
    an INVALID_ARGUMENT error before any request is made.

    Example:
        PathBuilder("/api/v1/record/{agencyId}/{bibliographicRecordId}")
            .bind("agencyId", 870970)
            .bind("bibliographicRecordId", "44816687")
            .build()
        # "/api/v1/record/870970/44816687"
    """

    def __init__(self, template: str) -> None:
        self.template = template
        self._values: Dict[str, Any] = {}

    def bind(self, name: str, value: Any) -> "PathBuilder":
        self._values[name] = value
        return self

    def bind_all(self, values: Optional[Dict[str, Any]]) -> "PathBuilder":
        for name, value in (values or {}).items():
            self.bind(name, value)
        return self

    def build(self) -> str:
        path = self.template
        for name in placeholders(self.template):
            value = self._values.get(name)
            if value is None or str(value).strip() == "":
                raise ConnectorError.invalid_argument(name, value)
            path = path.replace(f"{{{name}}}", quote(str(value), safe=_SAFE_PATH_CHARS))
        return path


def build_target(
    template: str,
    path_params: Optional[Dict[str, Any]] = None,
    query: Optional[Sequence[Tuple[str, str]]] = None,
) -> str:
    """Bound path with the query string appended, keys kept in given order."""
    path = PathBuilder(template).bind_all(path_params).build()
    if query:
        return f"{path}?{urlencode(list(query))}"
    return path
