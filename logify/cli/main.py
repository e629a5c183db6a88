"""Command line entry point for logify.

Provides two commands: ``config`` validates and prints the effective
configuration, ``emit`` sends a single record through a configured logger.
"""

import json
from pathlib import Path
from typing import Annotated, Any, NoReturn

import anyio
import typer

from logify.config.settings import (
    LOG_LEVELS,
    LogifySettings,
    load_config,
    load_config_from_file,
)
from logify.core.context import RequestContext, context_scope
from logify.core.errors import ConfigurationError, ConfigValidationError
from logify.core.logger import create_logger
from logify.core.logging import configure_diagnostics


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
    help="Structured logging with request and correlation identifiers.",
)

ConfigFileOption = Annotated[
    Path | None,
    typer.Option(
        "--file",
        "-f",
        help="JSON or TOML configuration file (environment variables otherwise)",
    ),
]


def _fail(error: ConfigurationError) -> NoReturn:
    typer.echo(f"Configuration error: {error}", err=True)
    if isinstance(error, ConfigValidationError):
        typer.echo(f"  field: {error.field}", err=True)
        typer.echo(f"  value: {error.value!r}", err=True)
    raise typer.Exit(code=1)


def _load_settings(file: Path | None) -> LogifySettings:
    try:
        return load_config_from_file(file) if file else load_config()
    except ConfigurationError as e:
        _fail(e)


def _parse_fields(pairs: list[str]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(
                f"expected key=value, got {pair!r}", param_hint="--field"
            )
        try:
            fields[key] = json.loads(raw)
        except json.JSONDecodeError:
            fields[key] = raw
    return fields


@app.command("config")
def show_config(file: ConfigFileOption = None) -> None:
    """Validate the configuration and print it as JSON."""
    settings = _load_settings(file)
    typer.echo(json.dumps(settings.model_dump_safe(), indent=2))


@app.command()
def emit(
    message: Annotated[str, typer.Argument(help="Message of the record")],
    level: Annotated[
        str, typer.Option("--level", "-l", help="debug, info, warn or error")
    ] = "info",
    module: Annotated[
        str | None, typer.Option("--module", "-m", help="Module of the record")
    ] = None,
    field: Annotated[
        list[str] | None,
        typer.Option("--field", help="Detail field as key=value, repeatable"),
    ] = None,
    request_id: Annotated[
        str | None, typer.Option("--request-id", help="Request id for the scope")
    ] = None,
    ctid: Annotated[
        str | None, typer.Option("--ctid", help="Correlation id for the scope")
    ] = None,
    file: ConfigFileOption = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show transport diagnostics")
    ] = False,
) -> None:
    """Emit one record using the configured transport."""
    level = level.lower()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(
            f"must be one of {', '.join(LOG_LEVELS)}", param_hint="--level"
        )

    configure_diagnostics("DEBUG" if verbose else "WARNING")
    settings = _load_settings(file)
    fields = _parse_fields(field or [])
    if module:
        fields["module"] = module

    logger = create_logger(settings)

    async def _emit() -> None:
        with context_scope(RequestContext(request_id=request_id, ctid=ctid)):
            getattr(logger, level)(message, fields)
        await logger.aclose()

    anyio.run(_emit)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
