"""Request context middleware establishing a logging scope per request."""

import re
import secrets
import string
import uuid
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from logify.config.settings import LogifySettings
from logify.core.context import RequestContext, run_with_context
from logify.core.logging import get_logger


logger = get_logger(__name__)

CTID_PATTERN = re.compile(r"^[a-z0-9]{32}$")
_CTID_ALPHABET = string.ascii_lowercase + string.digits


def generate_ctid() -> str:
    """Generate a 32 character lowercase alphanumeric correlation id."""
    return "".join(secrets.choice(_CTID_ALPHABET) for _ in range(32))


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware running each request inside a fresh request context."""

    def __init__(self, app: ASGIApp, settings: LogifySettings | None = None):
        """Initialize the request context middleware.

        Args:
            app: The ASGI application
            settings: Settings naming the identifier headers
        """
        super().__init__(app)
        self.settings = settings or LogifySettings()

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        """Process the request inside its own request context.

        A fresh request id is generated for every request. The correlation id
        is taken from the inbound header when well formed and generated
        otherwise. Both are echoed on the response.
        """
        request_id = str(uuid.uuid4())
        inbound_ctid = request.headers.get(self.settings.ctid_header)
        if inbound_ctid and CTID_PATTERN.match(inbound_ctid):
            ctid = inbound_ctid
        else:
            if inbound_ctid:
                logger.debug("inbound_ctid_rejected", ctid=inbound_ctid)
            ctid = generate_ctid()

        request.state.request_id = request_id
        request.state.ctid = ctid

        response: Response = await run_with_context(
            RequestContext(request_id=request_id, ctid=ctid), call_next, request
        )

        response.headers[self.settings.request_id_header] = request_id
        response.headers[self.settings.ctid_header] = ctid
        return response
