"""Shared test fixtures for logify tests.

Loggers under test write to an in-memory stream; remote pushes are captured
with pytest-httpx so no network access happens.
"""

import io
import json
import logging
from collections.abc import Callable, Generator
from typing import Any

import pytest

from logify.config.settings import LogifySettings, load_config_from_object
from logify.core.logger import Logger, create_logger
from logify.core.module_inference import get_inference_cache


LOKI_URL = "https://loki.example.com"
LOKI_PUSH_URL = f"{LOKI_URL}/loki/api/v1/push"


def read_records(stream: io.StringIO) -> list[dict[str, Any]]:
    """Parse every JSON line written to ``stream``."""
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_logger(stream: io.StringIO) -> Callable[..., Logger]:
    """Factory creating loggers that write to the ``stream`` fixture.

    Keyword arguments override configuration keys; the level defaults to debug.
    """

    def factory(**overrides: Any) -> Logger:
        settings = load_config_from_object({"log_level": "debug", **overrides})
        return create_logger(settings, stream=stream)

    return factory


@pytest.fixture
def loki_settings() -> LogifySettings:
    return load_config_from_object(
        {
            "log_level": "debug",
            "transport": "loki",
            "loki": {"url": LOKI_URL, "labels": {"service": "x"}},
        }
    )


@pytest.fixture(autouse=True)
def reset_inference_cache() -> Generator[None, None, None]:
    get_inference_cache().clear()
    yield
    get_inference_cache().clear()


@pytest.fixture(autouse=True)
def restore_diagnostics_logger() -> Generator[None, None, None]:
    """Undo handler changes made by configure_diagnostics during a test."""
    diagnostics = logging.getLogger("logify")
    handlers, level, propagate = (
        list(diagnostics.handlers),
        diagnostics.level,
        diagnostics.propagate,
    )
    httpx_level = logging.getLogger("httpx").level
    yield
    diagnostics.handlers = handlers
    diagnostics.setLevel(level)
    diagnostics.propagate = propagate
    logging.getLogger("httpx").setLevel(httpx_level)
