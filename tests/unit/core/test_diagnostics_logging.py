"""Tests for the diagnostic logging channel."""

import logging

import pytest

from logify.core.logging import configure_diagnostics, get_logger


def test_fields_arrive_as_extra(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="logify"):
        get_logger("logify.test").warning("push_failed", kind="status")

    record = caplog.records[0]
    assert record.name == "logify.test"
    assert record.msg == "push_failed"
    assert record.kind == "status"  # type: ignore[attr-defined]


def test_filtered_level_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="logify"):
        get_logger("logify.test").debug("noise")

    assert caplog.records == []


def test_default_logger_name() -> None:
    bound = get_logger()
    assert bound._logger.name == "logify"


class TestConfigureDiagnostics:
    def test_writes_to_stderr_not_stdout(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_diagnostics("INFO")
        get_logger("logify.test").warning("loki_push_failed", kind="timeout")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "loki_push_failed" in captured.err
        assert "timeout" in captured.err

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_diagnostics("WARNING", json_logs=True)
        get_logger("logify.test").warning("degraded", fallback="stdout")

        err = capsys.readouterr().err
        assert '"event": "degraded"' in err
        assert '"fallback": "stdout"' in err

    def test_reconfiguring_replaces_handler(self) -> None:
        configure_diagnostics()
        handler = configure_diagnostics("DEBUG")

        named = [
            h
            for h in logging.getLogger("logify").handlers
            if h.get_name() == "logify-diagnostics"
        ]
        assert named == [handler]
        assert logging.getLogger("logify").level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.INFO
