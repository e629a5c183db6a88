"""Core abstractions for logify."""

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


__all__ = [
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
