"""Connector configuration.

Settings come from ``RAWREPO_`` prefixed environment variables (and a
``.env`` file), optionally overlaid by a YAML file:

    rawrepo:
      record_service_url: http://rawrepo-record-service:8080
      dump_service_url: ${DUMP_SERVICE_URL}
      timing_log_level: DEBUG
      lookup_max_retries: 3

``${VAR}`` references in YAML string values are expanded from the
environment.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rawrepo_connector.retry import DUMP_RETRY_STATUSES, RetryPolicy

logger = logging.getLogger(__name__)

__all__ = [
    "ConnectorSettings",
    "expand_env_vars",
    "load_env_file",
    "load_settings",
]

# Pattern for ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


class ConnectorSettings(BaseSettings):
    """Environment-based connector settings using pydantic-settings.

    Example:
        >>> # RAWREPO_RECORD_SERVICE_URL=http://rawrepo-record-service:8080
        >>> # RAWREPO_TIMING_LOG_LEVEL=DEBUG
        >>> settings = ConnectorSettings()
        >>> connector = RecordServiceConnector.from_settings(settings)
    """

    record_service_url: Optional[str] = Field(default=None, description="Record service base URL, also used for agency lookups")
    dump_service_url: Optional[str] = Field(default=None, description="Dump service base URL")
    queue_service_url: Optional[str] = Field(default=None, description="Queue service base URL")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per request timeout in seconds")
    lookup_max_retries: int = Field(default=6, ge=0, description="Retries for record and agency lookups")
    lookup_retry_delay: float = Field(default=10.0, ge=0, description="Seconds between lookup retries")
    dump_max_retries: int = Field(default=1, ge=0, description="Retries for dump requests")
    dump_retry_delay: float = Field(default=10.0, ge=0, description="Seconds between dump retries")
    queue_max_retries: int = Field(default=6, ge=0, description="Retries for queue requests")
    queue_retry_delay: float = Field(default=10.0, ge=0, description="Seconds between queue retries")
    timing_log_level: str = Field(default="INFO", description="Level of the per call timing records")
    pool_connections: int = Field(default=10, ge=1, description="Keep-alive connections per connector")
    pool_maxsize: int = Field(default=10, ge=1, description="Maximum connections per connector")

    model_config = SettingsConfigDict(
        env_prefix="RAWREPO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("timing_log_level")
    @classmethod
    def validate_timing_log_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"timing_log_level must be one of: {VALID_LOG_LEVELS}")
        return v.upper()

    def lookup_policy(self) -> RetryPolicy:
        return RetryPolicy.lookup().replace(self.lookup_max_retries, self.lookup_retry_delay)

    def dump_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.dump_max_retries,
            delay_seconds=self.dump_retry_delay,
            retry_statuses=DUMP_RETRY_STATUSES,
        )

    def queue_policy(self) -> RetryPolicy:
        return RetryPolicy.queue().replace(self.queue_max_retries, self.queue_retry_delay)


def load_env_file(path: Union[str, Path], *, override: bool = False) -> bool:
    """Export a .env file into ``os.environ``.

    ``ConnectorSettings`` reads its own ``RAWREPO_`` keys from ``.env``; this
    is for the other variables a YAML file refers to as ``${VAR}``.

    Returns:
        True if the file exists and set at least one variable
    """
    path = Path(path)
    if not path.is_file():
        return False
    loaded = load_dotenv(dotenv_path=path, override=override)
    logger.debug("Loaded environment from %s", path)
    return loaded


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand ${VAR_NAME} and $VAR_NAME references in a string.

    Unset variables are left as written unless ``strict`` is set, in which
    case they raise KeyError.
    """

    def replacer(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            if strict:
                raise KeyError(f"Environment variable not set: {var_name}")
            return str(match.group(0))
        return env_value

    return ENV_VAR_PATTERN.sub(replacer, value)


def _read_yaml_section(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    section = config.get("rawrepo", {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'rawrepo' must be a mapping")
    return {
        key: expand_env_vars(value) if isinstance(value, str) else value
        for key, value in section.items()
    }


def load_settings(
    path: Optional[Union[str, Path]] = None,
    *,
    env_file: Optional[Union[str, Path]] = None,
) -> ConnectorSettings:
    """Build settings from the environment, overlaid by a YAML file if given.

    ``env_file`` is exported before the YAML is read. Without it, a ``.env``
    next to the YAML file is used when present.

    Raises:
        FileNotFoundError: If ``path`` or ``env_file`` does not exist
        pydantic.ValidationError: If a value fails validation
    """
    if env_file is not None:
        if not Path(env_file).is_file():
            raise FileNotFoundError(f"Environment file not found: {env_file}")
        load_env_file(env_file)

    if path is None:
        return ConnectorSettings()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    if env_file is None:
        load_env_file(path.parent / ".env")

    overrides = _read_yaml_section(path)
    logger.debug("Loaded %d connector settings from %s", len(overrides), path)
    return ConnectorSettings(**overrides)
