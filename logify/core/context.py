"""
Request context propagation using contextvars.

The active :class:`RequestContext` follows the asynchronous call graph rather
than threads: every ``asyncio.Task`` starts from a copy of the context of the
code that created it, and every thread has its own. Two interleaved requests
on the same event loop therefore never observe each other's identifiers,
while everything a request spawns inherits them without parameter threading.

Usage:
    ctx = RequestContext(request_id="r1", ctid="c1")
    run_with_context(ctx, handle)              # sync callable
    await run_with_context(ctx, handle_async)  # coroutine function

    with context_scope(ctx):
        do_work()
"""

from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from inspect import isawaitable
from typing import Any, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Identifiers attached to every record emitted within a scope."""

    request_id: str | None = None
    ctid: str | None = None

    def merge(self, **changes: str | None) -> "RequestContext":
        """Return a new context with ``changes`` applied."""
        return replace(self, **changes)


_EMPTY_CONTEXT = RequestContext()

_request_context: ContextVar[RequestContext] = ContextVar(  # noqa: B039
    "logify_request_context"
)


def get_context() -> RequestContext:
    """Get the active request context, empty outside of any scope."""
    return _request_context.get(_EMPTY_CONTEXT)


@contextmanager
def context_scope(ctx: RequestContext) -> Iterator[RequestContext]:
    """Install ``ctx`` for the duration of the ``with`` block."""
    token = _request_context.set(ctx)
    try:
        yield ctx
    finally:
        _request_context.reset(token)


async def _scoped(ctx: RequestContext, awaitable: Awaitable[T]) -> T:
    with context_scope(ctx):
        return await awaitable


def run_with_context(
    ctx: RequestContext, fn: Callable[..., T], /, *args: Any, **kwargs: Any
) -> T:
    """
    Run ``fn`` with ``ctx`` as the active request context.

    The enclosing context is restored once ``fn`` returns. If ``fn`` returns
    an awaitable, the returned awaitable installs ``ctx`` while it runs, so
    coroutine functions can be scoped with ``await run_with_context(...)``.

    Returns:
        Whatever ``fn`` returns (wrapped when it is awaitable)
    """
    with context_scope(ctx):
        result = fn(*args, **kwargs)
    if isawaitable(result):
        return _scoped(ctx, result)  # type: ignore[return-value]
    return result


def set_context(
    partial: Mapping[str, str | None] | None = None, /, **changes: str | None
) -> RequestContext:
    """
    Merge values into the active scope.

    Unlike :func:`run_with_context` this does not open a nested scope: the
    change stays visible for the rest of the current scope (or task) and to
    everything it spawns afterwards.

    Returns:
        The updated context
    """
    updates = {**(partial or {}), **changes}
    updated = get_context().merge(**updates)
    _request_context.set(updated)
    return updated
