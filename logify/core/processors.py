"""
Structlog processors making up the record emission pipeline.

A call such as ``logger.info("saved", {"order": 7}, module="orders")`` enters
the chain as ``{"event": "saved", "options": {...}, "fields": {...}}`` and
leaves it as an ordered record mapping ready for ``JSONRenderer``:

    unpack_call_options -> add_request_context -> ModuleResolver
    -> DetailsComposer -> add_timestamp -> add_record_level -> render_record

Level filtering happens before this chain runs, in the filtering bound logger
wrapping it, so none of these processors execute for suppressed levels.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from structlog.typing import EventDict, WrappedLogger

from logify.core.context import get_context
from logify.core.module_inference import infer_module


OPTIONS_KEY = "options"
FIELDS_KEY = "fields"

# Pipeline-internal keys, removed again by render_record
_EXPLICIT_MODULE = "_explicit_module"
_ERROR = "_error"
_CALL_FIELDS = "_call_fields"

_METHOD_TO_LEVEL = {"warning": "warn", "critical": "error", "exception": "error"}

# Guards cycles such as an exception whose __cause__ chain loops back
_MAX_CAUSE_DEPTH = 8


@dataclass(frozen=True, slots=True)
class LogRecord:
    """A composed record; lives for one emission call."""

    timestamp: str
    level: str
    message: str
    requestId: str | None = None  # noqa: N815
    ctid: str | None = None
    module: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the record with absent fields left out."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
        }
        for key in ("requestId", "ctid", "module", "details"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


def extract_error(error: Any, _depth: int = 0) -> Any:
    """Turn an exception into ``{name, message, stack, cause?}``.

    Values that are not exceptions are returned unchanged.
    """
    if not isinstance(error, BaseException):
        return error

    extracted: dict[str, Any] = {
        "name": type(error).__name__,
        "message": str(error),
        "stack": "".join(traceback.format_exception(error, chain=False)).rstrip(),
    }
    if error.__cause__ is not None and _depth < _MAX_CAUSE_DEPTH:
        extracted["cause"] = extract_error(error.__cause__, _depth + 1)
    return extracted


def unpack_call_options(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Split the caller's options into explicit module, error and fields."""
    options: Mapping[str, Any] | None = event_dict.pop(OPTIONS_KEY, None)
    fields: dict[str, Any] = event_dict.pop(FIELDS_KEY, None) or {}
    call = {**options, **fields} if options else fields

    module = call.pop("module", None)
    event_dict[_EXPLICIT_MODULE] = module if isinstance(module, str) else None
    if "error" in call:
        event_dict[_ERROR] = call.pop("error")
    event_dict[_CALL_FIELDS] = call
    return event_dict


def add_request_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the active request and correlation identifiers."""
    ctx = get_context()
    if ctx.request_id is not None:
        event_dict["requestId"] = ctx.request_id
    if ctx.ctid is not None:
        event_dict["ctid"] = ctx.ctid
    return event_dict


class ModuleResolver:
    """Resolve the record's module.

    Priority: explicit call module, then the inferred call site (only with
    ``auto_module`` and no base module), then the base module.
    """

    def __init__(self, auto_module: bool, base_module: str | None) -> None:
        self.auto_module = auto_module
        self.base_module = base_module

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        module = event_dict.pop(_EXPLICIT_MODULE, None)
        if module is None and self.auto_module and self.base_module is None:
            module = infer_module()
        if module is None:
            module = self.base_module
        if module is not None:
            event_dict["module"] = module
        return event_dict


class DetailsComposer:
    """Merge bound fields with call fields; the call wins on collisions."""

    def __init__(self, bindings: Mapping[str, Any]) -> None:
        self.bindings = bindings

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        details = {**self.bindings, **event_dict.pop(_CALL_FIELDS, {})}
        if _ERROR in event_dict:
            details["error"] = extract_error(event_dict.pop(_ERROR))
        if details:
            event_dict["details"] = details
        return event_dict


def add_timestamp(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add an ISO-8601 UTC timestamp with millisecond precision."""
    now = datetime.now(UTC)
    event_dict["timestamp"] = now.isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )
    return event_dict


def add_record_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the record level; structlog's ``warning`` is reported as ``warn``."""
    event_dict["level"] = _METHOD_TO_LEVEL.get(method_name, method_name)
    return event_dict


def render_record(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Freeze the event into a :class:`LogRecord` and return its ordered dict."""
    record = LogRecord(
        timestamp=event_dict["timestamp"],
        level=event_dict["level"],
        message=str(event_dict["event"]),
        requestId=event_dict.get("requestId"),
        ctid=event_dict.get("ctid"),
        module=event_dict.get("module"),
        details=event_dict.get("details"),
    )
    return record.to_dict()
