"""
logify - structured logging with request and correlation identifiers.

Every record carries the per-request ``requestId`` and the cross-service
``ctid`` of the scope it was emitted in, plus bound and call-site details, and
is written as one JSON line to stdout or pushed to Loki.

Usage:
    from logify import create_logger, load_config, run_with_context, RequestContext

    logger = create_logger(load_config())
    run_with_context(
        RequestContext(request_id="r1", ctid="c1"),
        lambda: logger.info("hello", foo="bar"),
    )
"""

from logify.api.middleware.request_context import RequestContextMiddleware
from logify.config.settings import (
    LogifySettings,
    LogLevel,
    LokiSettings,
    load_config,
    load_config_from_file,
    load_config_from_object,
)
from logify.core.context import (
    RequestContext,
    context_scope,
    get_context,
    run_with_context,
    set_context,
)
from logify.core.errors import (
    ConfigFileError,
    ConfigurationError,
    ConfigValidationError,
    LogifyError,
    LokiConnectionError,
    LokiStatusError,
    LokiTimeoutError,
    LokiTransportError,
    TransportConfigurationError,
)
from logify.core.logger import Logger, create_logger
from logify.core.logging import configure_diagnostics
from logify.core.processors import LogRecord
from logify.transports.loki import LokiStream, LokiTransport
from logify.utils.headers import build_propagation_headers, propagation_event_hook


__version__ = "0.1.0"

__all__ = [
    # Configuration
    "LogLevel",
    "LogifySettings",
    "LokiSettings",
    "load_config",
    "load_config_from_file",
    "load_config_from_object",
    # Logger
    "LogRecord",
    "Logger",
    "configure_diagnostics",
    "create_logger",
    # Context
    "RequestContext",
    "context_scope",
    "get_context",
    "run_with_context",
    "set_context",
    # Middleware and propagation
    "RequestContextMiddleware",
    "build_propagation_headers",
    "propagation_event_hook",
    # Transports
    "LokiStream",
    "LokiTransport",
    # Errors
    "ConfigFileError",
    "ConfigValidationError",
    "ConfigurationError",
    "LogifyError",
    "LokiConnectionError",
    "LokiStatusError",
    "LokiTimeoutError",
    "LokiTransportError",
    "TransportConfigurationError",
]
