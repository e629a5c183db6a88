"""Diagnostic logging for logify itself.

Records emitted by :class:`logify.core.logger.Logger` are the product; this
module covers the secondary channel the library uses to report on its own
health (failed pushes, degraded transports). It goes through stdlib
``logging`` under the ``logify`` namespace so host applications decide where
it ends up, and never writes to stdout.
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger


_DIAGNOSTIC_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.render_to_log_kwargs,
]


def get_logger(name: str | None = None) -> BoundLogger:
    """Get a structlog logger bound to the stdlib logger ``name``."""
    return structlog.wrap_logger(  # type: ignore[no-any-return]
        logging.getLogger(name or "logify"),
        processors=_DIAGNOSTIC_PROCESSORS,
        wrapper_class=BoundLogger,
        context_class=dict,
    )


def configure_diagnostics(
    level: str = "WARNING", json_logs: bool = False
) -> logging.Handler:
    """
    Route logify diagnostics to stderr.

    Replaces any handler previously installed by this function and returns the
    new one. Field values passed to diagnostic loggers arrive as ``extra``
    attributes and are folded back into the rendered line.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.ExtraAdder(),
                structlog.processors.TimeStamper(fmt="iso", utc=True),
            ],
        )
    )
    handler.set_name("logify-diagnostics")

    diagnostics = logging.getLogger("logify")
    diagnostics.handlers = [
        h for h in diagnostics.handlers if h.get_name() != "logify-diagnostics"
    ]
    diagnostics.addHandler(handler)
    diagnostics.setLevel(getattr(logging, level.upper(), logging.WARNING))
    diagnostics.propagate = False

    # httpx logs every request at INFO; keep it quiet unless we are debugging
    logging.getLogger("httpx").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )
    return handler
