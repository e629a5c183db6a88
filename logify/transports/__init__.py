"""Remote transports for logify records."""

from .loki import APP_LABEL, PUSH_PATH, LokiStream, LokiTransport


__all__ = ["APP_LABEL", "PUSH_PATH", "LokiStream", "LokiTransport"]
