"""Outbound propagation of request and correlation identifiers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import httpx

from logify.core.context import get_context


if TYPE_CHECKING:
    from logify.config.settings import LogifySettings


DEFAULT_REQUEST_ID_HEADER = "x-request-id"
DEFAULT_CTID_HEADER = "x-correlation-id"


def build_propagation_headers(
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
    ctid_header: str = DEFAULT_CTID_HEADER,
) -> dict[str, str]:
    """Return headers for the identifiers present in the active context."""
    ctx = get_context()
    headers: dict[str, str] = {}
    if ctx.request_id:
        headers[request_id_header] = ctx.request_id
    if ctx.ctid:
        headers[ctid_header] = ctx.ctid
    return headers


def propagation_event_hook(
    settings: LogifySettings | None = None,
) -> Callable[[httpx.Request], Awaitable[None]]:
    """Build an httpx request hook that forwards the active identifiers.

    Headers already set on the request are left alone.

    Example:
        client = httpx.AsyncClient(
            event_hooks={"request": [propagation_event_hook(settings)]}
        )
    """
    request_id_header = (
        settings.request_id_header if settings else DEFAULT_REQUEST_ID_HEADER
    )
    ctid_header = settings.ctid_header if settings else DEFAULT_CTID_HEADER

    async def add_propagation_headers(request: httpx.Request) -> None:
        for name, value in build_propagation_headers(
            request_id_header, ctid_header
        ).items():
            request.headers.setdefault(name, value)

    return add_propagation_headers
