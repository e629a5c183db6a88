"""Command line interface for logify."""

from .main import app, main


__all__ = ["app", "main"]
