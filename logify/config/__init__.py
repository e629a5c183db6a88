"""Configuration for logify."""

from .environment import LogifyEnvironment, read_environment
from .settings import (
    LOG_LEVELS,
    LogifySettings,
    LogLevel,
    LokiSettings,
    TransportKind,
    load_config,
    load_config_from_file,
    load_config_from_object,
)


__all__ = [
    "LOG_LEVELS",
    "LogifyEnvironment",
    "LogLevel",
    "LogifySettings",
    "LokiSettings",
    "TransportKind",
    "load_config",
    "load_config_from_file",
    "load_config_from_object",
    "read_environment",
]
