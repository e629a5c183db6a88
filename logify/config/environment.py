"""Environment variable source for logify configuration.

Variables are read with pydantic-settings; values stay raw strings here and
are validated by :class:`logify.config.settings.LogifySettings` afterwards.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from logify.core.errors import ConfigValidationError


# Dotted configuration field for each variable, used in validation errors
ENV_FIELDS = {
    "LOG_LEVEL": "log_level",
    "REQUEST_ID_HEADER": "request_id_header",
    "CTID_HEADER": "ctid_header",
    "LOG_TRANSPORT": "transport",
    "LOG_AUTO_MODULE": "auto_module",
    "LOKI_URL": "loki.url",
    "LOKI_TENANT_ID": "loki.tenant_id",
    "LOKI_BASIC_AUTH": "loki.basic_auth",
    "LOKI_LABELS": "loki.labels",
}

_environ_override: ContextVar[Mapping[str, str] | None] = ContextVar(
    "logify_environ_override", default=None
)


class MappingEnvSettingsSource(EnvSettingsSource):
    """Environment source reading an explicit mapping instead of ``os.environ``."""

    def __init__(
        self, settings_cls: type[BaseSettings], environ: Mapping[str, str]
    ) -> None:
        self.environ = environ
        super().__init__(settings_cls)

    def _load_env_vars(self) -> Mapping[str, str | None]:
        return {
            (key if self.case_sensitive else key.lower()): value
            for key, value in self.environ.items()
            if not (self.env_ignore_empty and value == "")
        }


@contextmanager
def environ_scope(environ: Mapping[str, str]) -> Iterator[None]:
    """Make :class:`LogifyEnvironment` read ``environ`` within the block."""
    token = _environ_override.set(environ)
    try:
        yield
    finally:
        _environ_override.reset(token)


def parse_labels(raw: str) -> dict[str, str]:
    """Parse ``"k=v,k2=v2"`` into a label mapping."""
    labels: dict[str, str] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError("Loki labels must be comma separated key=value pairs")
        labels[key.strip()] = value.strip()
    return labels


class LogifyEnvironment(BaseSettings):
    """Logify settings as found in environment variables.

    Empty values count as unset. ``LOKI_*`` variables are only turned into a
    ``loki`` section when ``LOG_TRANSPORT`` selects the loki transport.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    log_level: str | None = Field(default=None, validation_alias="LOG_LEVEL")
    request_id_header: str | None = Field(
        default=None, validation_alias="REQUEST_ID_HEADER"
    )
    ctid_header: str | None = Field(default=None, validation_alias="CTID_HEADER")
    transport: str | None = Field(default=None, validation_alias="LOG_TRANSPORT")
    auto_module: bool | None = Field(
        default=None,
        validation_alias="LOG_AUTO_MODULE",
        description="Only 'true' or 'false'; anything else keeps the default",
    )

    loki_url: str | None = Field(default=None, validation_alias="LOKI_URL")
    loki_tenant_id: str | None = Field(default=None, validation_alias="LOKI_TENANT_ID")
    loki_basic_auth: str | None = Field(
        default=None, validation_alias="LOKI_BASIC_AUTH"
    )
    # A JSON object is decoded by the source; plain strings reach the validator
    loki_labels: dict[str, str] | str | None = Field(
        default=None, validation_alias="LOKI_LABELS"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        environ = _environ_override.get()
        if environ is None:
            return (init_settings, env_settings)
        return (init_settings, MappingEnvSettingsSource(settings_cls, environ))

    @field_validator("auto_module", mode="before")
    @classmethod
    def parse_auto_module(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"true": True, "false": False}.get(v.strip().lower())
        return v

    @field_validator("loki_labels", mode="before")
    @classmethod
    def parse_loki_labels(cls, v: Any, info: ValidationInfo) -> Any:
        if (info.data.get("transport") or "").lower() != "loki":
            return None
        return parse_labels(v) if isinstance(v, str) else v

    def to_config(self) -> dict[str, Any]:
        """
        Build the configuration mapping for ``load_config_from_object``.

        Raises:
            ConfigValidationError: If the loki transport is selected without
                LOKI_URL
        """
        data: dict[str, Any] = {
            key: value
            for key, value in (
                ("log_level", self.log_level),
                ("request_id_header", self.request_id_header),
                ("ctid_header", self.ctid_header),
                ("transport", self.transport),
                ("auto_module", self.auto_module),
            )
            if value is not None
        }

        if (self.transport or "").lower() != "loki":
            return data

        if self.loki_url is None:
            raise ConfigValidationError(
                'LOKI_URL is required when transport is "loki"',
                field="loki.url",
                value=None,
            )
        loki: dict[str, Any] = {"url": self.loki_url}
        if self.loki_tenant_id is not None:
            loki["tenant_id"] = self.loki_tenant_id
        if self.loki_basic_auth is not None:
            loki["basic_auth"] = self.loki_basic_auth
        if self.loki_labels is not None:
            loki["labels"] = self.loki_labels
        data["loki"] = loki
        return data


def read_environment(environ: Mapping[str, str] | None = None) -> LogifyEnvironment:
    """Read logify variables from ``environ`` (``os.environ`` if omitted)."""
    if environ is None or environ is os.environ:
        return LogifyEnvironment()
    with environ_scope(environ):
        return LogifyEnvironment()
