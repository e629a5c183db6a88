"""End-to-end tests across context, logger and transport."""

import asyncio
import io
import json
import re

import pytest
from pytest_httpx import HTTPXMock

from conftest import LOKI_PUSH_URL, read_records
from logify.config.settings import LogifySettings, load_config_from_object
from logify.core.context import RequestContext, run_with_context, set_context
from logify.core.logger import create_logger


pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_interleaved_requests_keep_their_identifiers(
    stream: io.StringIO,
) -> None:
    logger = create_logger(load_config_from_object({}), stream=stream)

    async def handle(name: str) -> None:
        request_logger = logger.child({"handler": name})
        for step in range(3):
            request_logger.info("step", step=step)
            await asyncio.sleep(0)

    await asyncio.gather(
        run_with_context(RequestContext(request_id="r-a", ctid="c-a"), handle, "a"),
        run_with_context(RequestContext(request_id="r-b", ctid="c-b"), handle, "b"),
    )

    records = read_records(stream)
    assert len(records) == 6
    for record in records:
        suffix = record["details"]["handler"]
        assert record["requestId"] == f"r-{suffix}"
        assert record["ctid"] == f"c-{suffix}"


@pytest.mark.asyncio
async def test_nested_tasks_and_context_updates(stream: io.StringIO) -> None:
    logger = create_logger(load_config_from_object({}), stream=stream)

    async def background_job() -> None:
        await asyncio.sleep(0)
        logger.info("job")

    async def handle() -> None:
        set_context(ctid="c-updated")
        await asyncio.create_task(background_job())
        logger.info("done")

    await run_with_context(RequestContext(request_id="r1", ctid="c1"), handle)
    logger.info("outside")

    job, done, outside = read_records(stream)
    assert (job["requestId"], job["ctid"]) == ("r1", "c-updated")
    assert (done["requestId"], done["ctid"]) == ("r1", "c-updated")
    assert "requestId" not in outside
    assert "ctid" not in outside


@pytest.mark.asyncio
async def test_remote_records_carry_context(
    loki_settings: LogifySettings, httpx_mock: HTTPXMock
) -> None:
    for _ in range(2):
        httpx_mock.add_response(url=LOKI_PUSH_URL, status_code=204)
    logger = create_logger(loki_settings).child({"module": "billing"})

    async def handle(request_id: str) -> None:
        logger.info("charged", amount=10)

    await asyncio.gather(
        run_with_context(RequestContext(request_id="r1", ctid="c1"), handle, "r1"),
        run_with_context(RequestContext(request_id="r2", ctid="c2"), handle, "r2"),
    )
    await logger.aclose()

    requests = httpx_mock.get_requests()
    assert len(requests) == 2
    lines = [
        json.loads(json.loads(request.content)["streams"][0]["values"][0][1])
        for request in requests
    ]
    assert sorted(line["requestId"] for line in lines) == ["r1", "r2"]
    for line in lines:
        assert line["module"] == "billing"
        assert line["ctid"] == line["requestId"].replace("r", "c")


def test_console_record_inside_scope(stream: io.StringIO) -> None:
    settings = load_config_from_object(
        {"logLevel": "debug", "transport": "console", "autoModule": False}
    )
    logger = create_logger(settings, stream=stream)

    run_with_context(
        RequestContext(request_id="r1", ctid="c1"),
        lambda: logger.info("hello", {"foo": "bar"}),
    )

    [record] = read_records(stream)
    timestamp = record.pop("timestamp")
    assert record == {
        "level": "info",
        "message": "hello",
        "requestId": "r1",
        "ctid": "c1",
        "details": {"foo": "bar"},
    }
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", timestamp)
