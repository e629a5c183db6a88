"""Utility helpers for logify."""

from .headers import build_propagation_headers, propagation_event_hook


__all__ = ["build_propagation_headers", "propagation_event_hook"]
