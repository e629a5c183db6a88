"""Logify configuration settings and loaders."""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

from logify.config.environment import ENV_FIELDS, read_environment
from logify.core.errors import ConfigFileError, ConfigValidationError


__all__ = [
    "LOG_LEVELS",
    "LogLevel",
    "LogifySettings",
    "LokiSettings",
    "TransportKind",
    "load_config",
    "load_config_from_file",
    "load_config_from_object",
]

LogLevel = Literal["debug", "info", "warn", "error"]
TransportKind = Literal["console", "json", "loki"]

LOG_LEVELS: tuple[LogLevel, ...] = ("debug", "info", "warn", "error")

# camelCase spellings accepted in configuration mappings and files
_KEY_ALIASES = {
    "logLevel": "log_level",
    "requestIdHeader": "request_id_header",
    "ctidHeader": "ctid_header",
    "autoModule": "auto_module",
    "tenantId": "tenant_id",
    "basicAuth": "basic_auth",
}

class LokiSettings(BaseModel):
    """Loki push API settings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: StrictStr = Field(
        min_length=1,
        description="Base URL of the Loki instance; the push path is appended",
    )
    tenant_id: StrictStr | None = Field(
        default=None,
        description="Sent as X-Scope-OrgID for multi-tenant Loki",
    )
    basic_auth: StrictStr | None = Field(
        default=None,
        description="Base64 encoded 'user:password', sent verbatim",
    )
    labels: dict[str, StrictStr] = Field(
        default_factory=dict,
        description="Stream labels added to every push",
    )
    timeout: float = Field(
        default=5.0,
        gt=0,
        description="Per-push request timeout in seconds",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject URLs that are not absolute http(s) URLs."""
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid URL format: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("Invalid URL format")
        return v


class LogifySettings(BaseModel):
    """Validated logify configuration."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    log_level: LogLevel = Field(
        default="info",
        description="Minimum level that is emitted",
    )
    request_id_header: StrictStr = Field(
        default="x-request-id",
        min_length=1,
        description="Header carrying the per-request identifier",
    )
    ctid_header: StrictStr = Field(
        default="x-correlation-id",
        min_length=1,
        description="Header carrying the cross-service correlation identifier",
    )
    transport: TransportKind = Field(
        default="console",
        description="Sink for records: console/json write stdout, loki pushes remotely",
    )
    auto_module: StrictBool = Field(
        default=False,
        description="Infer the module of each record from the call stack",
    )
    loki: LokiSettings | None = Field(
        default=None,
        description="Loki settings, required when transport is 'loki'",
    )

    @field_validator("log_level", "transport", mode="before")
    @classmethod
    def normalize_choice(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    def model_dump_safe(self) -> dict[str, Any]:
        """
        Dump model data with sensitive information masked.

        Returns:
            dict: Configuration with credentials masked
        """
        data = self.model_dump(mode="json")
        loki = data.get("loki")
        if loki and loki.get("basic_auth"):
            loki["basic_auth"] = "***"
        return data


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    normalized = {_KEY_ALIASES.get(k, k): v for k, v in data.items()}
    loki = normalized.get("loki")
    if isinstance(loki, Mapping):
        normalized["loki"] = {_KEY_ALIASES.get(k, k): v for k, v in loki.items()}
    return normalized


def _to_config_error(exc: ValidationError) -> ConfigValidationError:
    error = exc.errors()[0]
    loc = [str(part) for part in error["loc"]]
    if loc and loc[0] in ENV_FIELDS:
        loc[0] = ENV_FIELDS[loc[0]]
    field = ".".join(loc) or None
    value = None if error["type"] == "missing" else error.get("input")
    return ConfigValidationError(
        f"Invalid {field or 'configuration'}: {error['msg']}",
        field=field,
        value=value,
        cause=exc,
    )


def load_config_from_object(data: Mapping[str, Any]) -> LogifySettings:
    """
    Validate a partial configuration mapping and apply defaults.

    Args:
        data: Configuration keys in snake_case or camelCase

    Returns:
        Validated settings

    Raises:
        ConfigValidationError: If a value is invalid; carries field and value
    """
    if not isinstance(data, Mapping):
        raise ConfigValidationError(
            "Configuration must be a mapping", field=None, value=data
        )

    normalized = _normalize_keys(data)
    transport = normalized.get("transport")
    if (
        isinstance(transport, str)
        and transport.lower() == "loki"
        and normalized.get("loki") is None
    ):
        raise ConfigValidationError(
            'Loki configuration is required when transport is "loki"',
            field="loki",
            value=None,
        )

    try:
        return LogifySettings.model_validate(normalized)
    except ValidationError as e:
        raise _to_config_error(e) from e


def load_config(env: Mapping[str, str] | None = None) -> LogifySettings:
    """
    Load and validate configuration from environment variables.

    Reads LOG_LEVEL, REQUEST_ID_HEADER, CTID_HEADER, LOG_TRANSPORT and
    LOG_AUTO_MODULE, plus LOKI_URL, LOKI_TENANT_ID, LOKI_BASIC_AUTH and
    LOKI_LABELS when the loki transport is selected. Empty values count as
    unset.

    Args:
        env: Environment mapping (defaults to ``os.environ``), read through
            :class:`~logify.config.environment.LogifyEnvironment`

    Raises:
        ConfigValidationError: If a value is invalid or LOKI_URL is missing
    """
    try:
        environment = read_environment(env)
    except ValidationError as e:
        raise _to_config_error(e) from e
    return load_config_from_object(environment.to_config())


def load_config_from_file(path: str | Path) -> LogifySettings:
    """
    Load and validate configuration from a JSON or TOML file.

    Relative paths are resolved against the current directory; ``.toml`` files
    are parsed with ``tomllib``, everything else as JSON.

    Raises:
        ConfigFileError: If the file is missing or cannot be parsed
        ConfigValidationError: If a value is invalid
    """
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigFileError(f"Config file not found: {path}", str(path), e) from e
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file {path}: {e}", str(path), e) from e

    try:
        if file_path.suffix.lower() == ".toml":
            data = tomllib.loads(raw)
        else:
            data = json.loads(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(
            f"Invalid {file_path.suffix.lstrip('.').upper() or 'JSON'} in config file {path}: {e}",
            str(path),
            e,
        ) from e

    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Config file {path} must contain an object at the top level", str(path)
        )

    return load_config_from_object(data)
