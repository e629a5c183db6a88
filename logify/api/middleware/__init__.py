"""ASGI middleware for logify."""

from .request_context import CTID_PATTERN, RequestContextMiddleware, generate_ctid


__all__ = ["CTID_PATTERN", "RequestContextMiddleware", "generate_ctid"]
