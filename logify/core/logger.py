"""
Logger core: record emission and child loggers.

A :class:`Logger` is an immutable value. It wraps a structlog filtering bound
logger whose processor chain (see :mod:`logify.core.processors`) composes the
record, and a :class:`LineSink` that writes the rendered line to stdout and/or
hands it to the Loki transport.

Usage:
    logger = create_logger(load_config())
    orders = logger.child({"service": "orders", "module": "orders.api"})
    orders.info("order placed", order_id=7)
    orders.error("payment failed", error=exc)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, TextIO

import structlog
from structlog.typing import FilteringBoundLogger

from logify.config.settings import LogifySettings, load_config
from logify.core.errors import TransportConfigurationError
from logify.core.logging import get_logger
from logify.core.processors import (
    FIELDS_KEY,
    OPTIONS_KEY,
    DetailsComposer,
    ModuleResolver,
    add_record_level,
    add_request_context,
    add_timestamp,
    render_record,
    unpack_call_options,
)
from logify.transports.loki import LokiTransport
from logify.utils.headers import build_propagation_headers


diagnostics = get_logger(__name__)

# Thresholds expressed in stdlib levels for structlog's filtering loggers
LEVEL_THRESHOLDS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LineSink:
    """Final destination of rendered lines, one method per level."""

    def __init__(
        self,
        stream: TextIO | None = None,
        transport: LokiTransport | None = None,
        write_local: bool = True,
    ) -> None:
        self._stream = stream
        self.transport = transport
        self.write_local = write_local

    def _emit(self, level: str, line: str) -> None:
        if self.write_local:
            stream = self._stream if self._stream is not None else sys.stdout
            stream.write(line + "\n")
        if self.transport is not None:
            self.transport.dispatch(line, {"level": level})

    def debug(self, line: str) -> None:
        self._emit("debug", line)

    def info(self, line: str) -> None:
        self._emit("info", line)

    def warning(self, line: str) -> None:
        self._emit("warn", line)

    def error(self, line: str) -> None:
        self._emit("error", line)


class Logger:
    """Structured logger stamping records with request context."""

    __slots__ = ("_bindings", "_bound", "_module", "_settings", "_sink")

    def __init__(
        self,
        settings: LogifySettings,
        sink: LineSink,
        bindings: Mapping[str, Any] | None = None,
        module: str | None = None,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._bindings: Mapping[str, Any] = MappingProxyType(dict(bindings or {}))
        self._module = module
        wrapper_class = structlog.make_filtering_bound_logger(
            LEVEL_THRESHOLDS[settings.log_level]
        )
        self._bound: FilteringBoundLogger = wrapper_class(
            sink,
            [
                unpack_call_options,
                add_request_context,
                ModuleResolver(settings.auto_module, module),
                DetailsComposer(self._bindings),
                add_timestamp,
                add_record_level,
                render_record,
                structlog.processors.JSONRenderer(ensure_ascii=False),
            ],
            {},
        )

    @property
    def settings(self) -> LogifySettings:
        return self._settings

    @property
    def bindings(self) -> Mapping[str, Any]:
        return self._bindings

    @property
    def module(self) -> str | None:
        return self._module

    @property
    def transport(self) -> LokiTransport | None:
        return self._sink.transport

    def debug(
        self, message: str, options: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Log at debug level.

        ``options`` and keyword ``fields`` are merged (keywords win). The
        ``module`` key overrides the record module for this call, ``error``
        is extracted into ``details.error``; everything else goes to
        ``details``.
        """
        self._bound.debug(message, **{OPTIONS_KEY: options, FIELDS_KEY: fields})

    def info(
        self, message: str, options: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Log at info level. See :meth:`debug` for the options."""
        self._bound.info(message, **{OPTIONS_KEY: options, FIELDS_KEY: fields})

    def warn(
        self, message: str, options: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Log at warn level. See :meth:`debug` for the options."""
        self._bound.warning(message, **{OPTIONS_KEY: options, FIELDS_KEY: fields})

    warning = warn

    def error(
        self, message: str, options: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Log at error level. See :meth:`debug` for the options."""
        self._bound.error(message, **{OPTIONS_KEY: options, FIELDS_KEY: fields})

    def child(
        self, bindings: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> Logger:
        """
        Derive a logger with additional bound fields.

        A ``module`` key becomes the child's module; other keys are merged
        over this logger's bindings. The child shares this logger's sink and
        transport.
        """
        extra = {**(bindings or {}), **fields}
        module = extra.pop("module", None)
        return Logger(
            self._settings,
            self._sink,
            bindings={**self._bindings, **extra},
            module=module if isinstance(module, str) else self._module,
        )

    def propagation_headers(self) -> dict[str, str]:
        """Headers carrying the active identifiers to downstream services."""
        return build_propagation_headers(
            self._settings.request_id_header, self._settings.ctid_header
        )

    async def aclose(self, timeout: float = 5.0) -> None:
        """Wait for remote pushes started from the current loop."""
        if self._sink.transport is not None:
            await self._sink.transport.drain(timeout)

    def __repr__(self) -> str:
        return (
            f"Logger(level={self._settings.log_level!r}, module={self._module!r}, "
            f"bindings={dict(self._bindings)!r})"
        )


def _build_transport(settings: LogifySettings) -> LokiTransport | None:
    if settings.transport != "loki":
        return None
    try:
        return LokiTransport(settings.loki)
    except TransportConfigurationError as e:
        diagnostics.warning(
            "loki_transport_unavailable",
            error=str(e),
            fallback="stdout",
        )
        return None


def create_logger(
    settings: LogifySettings | None = None, *, stream: TextIO | None = None
) -> Logger:
    """
    Create a root logger.

    With ``transport="loki"`` records are pushed to Loki instead of written to
    the local stream. If the transport cannot be built, the failure is
    reported on the diagnostic logger and records go to the local stream.

    Args:
        settings: Validated settings (loaded from the environment if omitted)
        stream: Local output stream (``sys.stdout`` at write time if omitted)
    """
    if settings is None:
        settings = load_config()
    transport = _build_transport(settings)
    sink = LineSink(stream=stream, transport=transport, write_local=transport is None)
    return Logger(settings, sink)
