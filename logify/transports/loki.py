"""Loki push API transport.

Each record becomes its own push request:

    POST <url>/loki/api/v1/push
    {"streams": [{"stream": {...labels}, "values": [["<unix ns>", "<line>"]]}]}
"""

from __future__ import annotations

import json
import time
from asyncio import Task
from concurrent.futures import Future
from typing import Any, TypedDict

import httpx

from logify.config.settings import LokiSettings
from logify.core.async_runtime import BackgroundDispatcher
from logify.core.errors import (
    LokiConnectionError,
    LokiStatusError,
    LokiTimeoutError,
    LokiTransportError,
    TransportConfigurationError,
)
from logify.core.logging import get_logger


logger = get_logger(__name__)

PUSH_PATH = "/loki/api/v1/push"
APP_LABEL = "logify"


class LokiStream(TypedDict):
    stream: dict[str, str]
    values: list[list[str]]


class LokiTransport:
    """Pushes rendered log lines to a Loki instance."""

    def __init__(
        self,
        settings: LokiSettings | None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Loki settings; ``url`` is required
            client: Optional shared client; a short-lived client is used per
                push otherwise

        Raises:
            TransportConfigurationError: If the URL is missing or unusable
        """
        if settings is None or not settings.url:
            raise TransportConfigurationError(
                "loki.url is required for the loki transport"
            )

        try:
            base = httpx.URL(settings.url)
        except httpx.InvalidURL as e:
            raise TransportConfigurationError(
                f"Invalid Loki URL {settings.url!r}: {e}", e
            ) from e
        if base.scheme not in ("http", "https") or not base.host:
            raise TransportConfigurationError(f"Invalid Loki URL {settings.url!r}")

        self.settings = settings
        self.endpoint = base.join(PUSH_PATH)
        self.timeout = settings.timeout
        self.headers: dict[str, str] = {"content-type": "application/json"}
        if settings.basic_auth:
            self.headers["authorization"] = f"Basic {settings.basic_auth}"
        if settings.tenant_id:
            self.headers["x-scope-orgid"] = settings.tenant_id
        self.base_labels: dict[str, str] = {"app": APP_LABEL, **settings.labels}

        self._client = client
        self._dispatcher = BackgroundDispatcher()

    def build_stream(
        self,
        line: str,
        labels: dict[str, str] | None = None,
        timestamp_ns: int | None = None,
    ) -> LokiStream:
        """Build the single-value stream for one line.

        Call labels override the transport's base labels. ``timestamp_ns``
        defaults to now.
        """
        if timestamp_ns is None:
            timestamp_ns = time.time_ns()
        timestamp = str(timestamp_ns)
        return {
            "stream": {**self.base_labels, **(labels or {})},
            "values": [[timestamp, line]],
        }

    async def push(self, stream: LokiStream) -> None:
        """Push one stream.

        Raises:
            LokiStatusError: Loki answered with a non-2xx status
            LokiConnectionError: The request failed at the network level
            LokiTimeoutError: The request timed out
        """
        body = json.dumps(
            {"streams": [stream]}, separators=(",", ":"), ensure_ascii=False
        ).encode()
        headers = {**self.headers, "content-length": str(len(body))}
        url = str(self.endpoint)

        try:
            if self._client is not None:
                response = await self._client.post(
                    url, content=body, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as e:
            raise LokiTimeoutError(
                f"Loki push timed out: {e}", timeout=self.timeout, url=url, cause=e
            ) from e
        except httpx.TransportError as e:
            raise LokiConnectionError(
                f"Loki push connection failed: {e}", url=url, cause=e
            ) from e

        if not response.is_success:
            raise LokiStatusError(
                f"Loki push failed: {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

    async def log(
        self,
        line: str,
        labels: dict[str, str] | None = None,
        timestamp_ns: int | None = None,
    ) -> None:
        """Push ``line`` with the given extra labels."""
        await self.push(self.build_stream(line, labels, timestamp_ns))

    async def _log_reporting_failures(
        self, line: str, labels: dict[str, str] | None, timestamp_ns: int
    ) -> None:
        try:
            await self.log(line, labels, timestamp_ns)
        except LokiTransportError as e:
            extra: dict[str, Any] = {}
            if isinstance(e, LokiStatusError):
                extra["status_code"] = e.status_code
            logger.warning(
                "loki_push_failed",
                kind=e.kind,
                url=e.url,
                error=str(e),
                **extra,
            )
        except Exception as e:
            logger.error(
                "loki_push_error",
                url=str(self.endpoint),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    def dispatch(
        self, line: str, labels: dict[str, str] | None = None
    ) -> Task[Any] | Future[Any]:
        """Push ``line`` without waiting for the result.

        The Loki timestamp is taken now, not when the push runs. Failures are
        reported on the ``logify`` diagnostic logger and never raised to the
        caller.

        Returns:
            Handle of the scheduled push
        """
        return self._dispatcher.submit(
            self._log_reporting_failures(line, labels, time.time_ns()),
            name="loki_push",
        )

    @property
    def pending(self) -> int:
        """Number of pushes still in flight on the current loop."""
        return self._dispatcher.pending

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight pushes started from the current loop."""
        await self._dispatcher.drain(timeout)
