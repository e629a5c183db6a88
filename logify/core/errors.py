"""Core error types for logify."""

from typing import Any


class LogifyError(Exception):
    """Base exception for all logify errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
        if cause:
            self.__cause__ = cause


class ConfigurationError(LogifyError):
    """Raised when configuration loading or validation fails."""


class ConfigValidationError(ConfigurationError):
    """Configuration value rejected during validation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        cause: Exception | None = None,
    ):
        """Initialize with a message, the offending field and its value.

        Args:
            message: The error message
            field: Dotted name of the rejected field (e.g. ``loki.url``)
            value: The value that was rejected
            cause: The underlying exception
        """
        super().__init__(message, cause)
        self.field = field
        self.value = value


class ConfigFileError(ConfigurationError):
    """Configuration file is missing or cannot be parsed."""

    def __init__(self, message: str, path: str, cause: Exception | None = None):
        super().__init__(message, cause)
        self.path = path


class TransportConfigurationError(LogifyError):
    """Remote transport cannot be built from the given configuration."""


class LokiTransportError(LogifyError):
    """Base exception for failed pushes to Loki."""

    kind = "unknown"

    def __init__(
        self, message: str, url: str | None = None, cause: Exception | None = None
    ):
        super().__init__(message, cause)
        self.url = url


class LokiStatusError(LokiTransportError):
    """Loki answered with a non-2xx status."""

    kind = "status"

    def __init__(
        self,
        message: str,
        status_code: int,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, url, cause)
        self.status_code = status_code


class LokiConnectionError(LokiTransportError):
    """Push failed at the network level."""

    kind = "connection"


class LokiTimeoutError(LokiTransportError):
    """Push did not complete in time."""

    kind = "timeout"

    def __init__(
        self,
        message: str,
        timeout: float | None = None,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, url, cause)
        self.timeout = timeout
