"""Connector client configuration.

ClientConfiguration is immutable: setters on the client build a new instance
with ``dataclasses.replace`` and each call reads the instance that was current
when it started.

Configuration can also be loaded from a YAML file:

    connector:
      base_url: ${CONNECTOR_BASE_URL:-https://api.botframework.com}
      accept_language: en-GB
      generate_client_request_id: true
      long_running_operation_timeout: 60
      lro_poll_interval: 2
      retry:
        max_attempts: 5
        base_delay: 0.5
        max_delay: 20
      transport:
        request_timeout: 30
        proxy: ${HTTPS_PROXY:-}
        verify_ssl: true

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from connector.pipeline.language import DEFAULT_ACCEPT_LANGUAGE
from connector.pipeline.user_agent import build_user_agent
from connector.resilience.retry import ExponentialBackoffRetryPolicy, RetryPolicy
from connector.transport import TransportSettings
from connector.types import BuildMetadataProvider, CredentialProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.botframework.com"
DEFAULT_LONG_RUNNING_OPERATION_TIMEOUT = 30


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class ClientConfiguration:
    """
    Settings shared by every call a ConnectorClient issues.

    Attributes:
        credentials: Provider attaching authentication to each request
        base_url: Service endpoint, one per client
        accept_language: Preferred response language
        generate_client_request_id: Attach x-ms-client-request-id to each call
        long_running_operation_timeout: Seconds allowed for a long-running operation
        retry_policy: Decides re-dispatch of failed calls
        transport: Settings for the default aiohttp transport
        lro_poll_interval: Seconds between polls when the server sends no
            Retry-After (None derives it from the timeout)
        build_metadata: Source of the client version for the User-Agent
        user_agent: Computed once at construction when left empty
    """

    credentials: CredentialProvider
    base_url: str = DEFAULT_BASE_URL
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    generate_client_request_id: bool = True
    long_running_operation_timeout: int = DEFAULT_LONG_RUNNING_OPERATION_TIMEOUT
    retry_policy: RetryPolicy = field(default_factory=ExponentialBackoffRetryPolicy)
    transport: TransportSettings = field(default_factory=TransportSettings)
    lro_poll_interval: float | None = None
    build_metadata: BuildMetadataProvider | None = field(default=None, repr=False)
    user_agent: str = ""

    def __post_init__(self):
        if self.credentials is None:
            raise ValueError("credentials are required")
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.long_running_operation_timeout <= 0:
            raise ValueError(
                "long_running_operation_timeout must be positive, "
                f"got {self.long_running_operation_timeout}"
            )
        if self.lro_poll_interval is not None and self.lro_poll_interval <= 0:
            raise ValueError(f"lro_poll_interval must be positive, got {self.lro_poll_interval}")
        if not hasattr(self.retry_policy, "evaluate"):
            raise TypeError(
                f"retry_policy must provide evaluate(), got {type(self.retry_policy).__name__}"
            )

        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if not self.user_agent:
            object.__setattr__(self, "user_agent", build_user_agent(self.build_metadata))

    def with_changes(self, **changes: Any) -> "ClientConfiguration":
        """Return a copy with ``changes`` applied; the user agent is kept."""
        return dataclasses.replace(self, **changes)


def _build_retry_policy(section: dict[str, Any]) -> ExponentialBackoffRetryPolicy:
    allowed = {f.name for f in dataclasses.fields(ExponentialBackoffRetryPolicy)} - {
        "always_retry",
        "never_retry",
    }
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown retry settings in connector.retry: {sorted(unknown)}")
    return ExponentialBackoffRetryPolicy(**section)


def _build_transport_settings(section: dict[str, Any]) -> TransportSettings:
    allowed = {f.name for f in dataclasses.fields(TransportSettings)}
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown transport settings in connector.transport: {sorted(unknown)}")

    values = dict(section)
    for key in ("request_timeout", "connect_timeout"):
        if values.get(key) is not None:
            values[key] = float(values[key])
    if "max_connections" in values:
        values["max_connections"] = int(values["max_connections"])
    if "verify_ssl" in values:
        values["verify_ssl"] = _coerce_bool(values["verify_ssl"])
    # Empty strings come from ${VAR:-} expansions
    for key in ("proxy", "proxy_username", "proxy_password"):
        if key in values and not values[key]:
            values[key] = None
    return TransportSettings(**values)


def configuration_from_dict(
    data: dict[str, Any],
    credentials: CredentialProvider,
    build_metadata: BuildMetadataProvider | None = None,
) -> ClientConfiguration:
    """Build a ClientConfiguration from the contents of a ``connector:`` section."""
    kwargs: dict[str, Any] = {}
    if data.get("base_url"):
        kwargs["base_url"] = str(data["base_url"])
    if data.get("accept_language"):
        kwargs["accept_language"] = str(data["accept_language"])
    if "generate_client_request_id" in data:
        kwargs["generate_client_request_id"] = _coerce_bool(data["generate_client_request_id"])
    if data.get("long_running_operation_timeout") is not None:
        kwargs["long_running_operation_timeout"] = int(data["long_running_operation_timeout"])
    if data.get("lro_poll_interval") is not None:
        kwargs["lro_poll_interval"] = float(data["lro_poll_interval"])
    if data.get("retry"):
        kwargs["retry_policy"] = _build_retry_policy(data["retry"])
    if data.get("transport"):
        kwargs["transport"] = _build_transport_settings(data["transport"])

    return ClientConfiguration(credentials=credentials, build_metadata=build_metadata, **kwargs)


def load_configuration(
    config_path: Path,
    credentials: CredentialProvider,
    build_metadata: BuildMetadataProvider | None = None,
) -> ClientConfiguration:
    """Load connector configuration from the ``connector:`` section of a YAML file.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info("Loading configuration from file: %s", config_path)
    yaml_data = _expand_env_vars(load_yaml(config_path))

    if "connector" not in yaml_data:
        raise ValueError(f"Invalid config file: missing 'connector:' section in {config_path}")

    return configuration_from_dict(yaml_data["connector"] or {}, credentials, build_metadata)


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_LONG_RUNNING_OPERATION_TIMEOUT",
    "ClientConfiguration",
    "configuration_from_dict",
    "load_configuration",
    "load_yaml",
]
