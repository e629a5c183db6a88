"""Tests for outbound identifier propagation."""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from logify.config.settings import load_config_from_object
from logify.core.context import RequestContext, context_scope, run_with_context
from logify.utils.headers import build_propagation_headers, propagation_event_hook


class TestBuildPropagationHeaders:
    def test_default_header_names(self) -> None:
        with context_scope(RequestContext(request_id="r1", ctid="c1")):
            headers = build_propagation_headers()

        assert headers == {"x-request-id": "r1", "x-correlation-id": "c1"}

    def test_only_present_identifiers(self) -> None:
        with context_scope(RequestContext(ctid="c1")):
            assert build_propagation_headers() == {"x-correlation-id": "c1"}

    def test_outside_scope(self) -> None:
        assert build_propagation_headers() == {}


class TestPropagationEventHook:
    @pytest.mark.asyncio
    async def test_adds_headers_to_outbound_requests(
        self, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url="https://downstream.example.com/orders")
        settings = load_config_from_object({"ctid_header": "x-corr"})

        async def call_downstream() -> None:
            async with httpx.AsyncClient(
                event_hooks={"request": [propagation_event_hook(settings)]}
            ) as client:
                await client.get("https://downstream.example.com/orders")

        await run_with_context(
            RequestContext(request_id="r1", ctid="c1"), call_downstream
        )

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["x-request-id"] == "r1"
        assert request.headers["x-corr"] == "c1"

    @pytest.mark.asyncio
    async def test_existing_headers_win(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="https://downstream.example.com/")

        async def call_downstream() -> None:
            async with httpx.AsyncClient(
                event_hooks={"request": [propagation_event_hook()]}
            ) as client:
                await client.get(
                    "https://downstream.example.com/",
                    headers={"x-request-id": "explicit"},
                )

        await run_with_context(RequestContext(request_id="r1"), call_downstream)

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["x-request-id"] == "explicit"
        assert "x-correlation-id" not in request.headers
