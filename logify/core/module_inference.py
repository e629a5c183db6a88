"""
Call-site module inference.

Produces ``"<file stem>.<function>"`` labels for the code that called the
logger, e.g. ``"orders.OrderService.submit"``. Frames that belong to the
logging pipeline (``logify.core`` and ``structlog``) are skipped, the same way
structlog's own callsite processors skip their internals.

Labels are cached by a cheap fingerprint of the leading application frames
(file and line of the first few frames). Distinct call sites that share those
frames share a cache entry; this is a precision/performance trade-off, not a
uniqueness guarantee.
"""

import re
import sys
import threading
from collections import OrderedDict
from pathlib import Path
from types import CodeType, FrameType


CACHE_CAPACITY = 100
FINGERPRINT_DEPTH = 3

_IGNORED_MODULES = ("logify.core", "structlog")

_LOCALS_SEGMENT = re.compile(r"<locals>\.?")
_WHITESPACE = re.compile(r"\s+")

Fingerprint = tuple[tuple[str, int], ...]


class ModuleInferenceCache:
    """Bounded mapping of stack fingerprints to inferred labels.

    Eviction drops the oldest inserted entry; reads do not refresh entries.
    """

    def __init__(self, capacity: int = CACHE_CAPACITY) -> None:
        self.capacity = capacity
        self._entries: OrderedDict[Fingerprint, str] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Fingerprint) -> str | None:
        return self._entries.get(key)

    def put(self, key: Fingerprint, label: str) -> None:
        with self._lock:
            if key in self._entries:
                return
            self._entries[key] = label
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


_cache = ModuleInferenceCache()


def get_inference_cache() -> ModuleInferenceCache:
    """Get the process-wide inference cache."""
    return _cache


def _is_internal(frame: FrameType) -> bool:
    module = frame.f_globals.get("__name__") or ""
    return any(
        module == prefix or module.startswith(prefix + ".")
        for prefix in _IGNORED_MODULES
    )


def _first_app_frame(frame: FrameType | None) -> FrameType | None:
    while frame is not None and _is_internal(frame):
        frame = frame.f_back
    return frame


def _fingerprint(frame: FrameType) -> Fingerprint:
    parts: list[tuple[str, int]] = []
    current: FrameType | None = frame
    while current is not None and len(parts) < FINGERPRINT_DEPTH:
        parts.append((current.f_code.co_filename, current.f_lineno))
        current = current.f_back
    return tuple(parts)


def clean_function_name(name: str) -> str:
    """Strip namespacing artifacts from a qualified function name.

    ``"handler.<locals>.inner"`` becomes ``"handler.inner"`` and
    ``"<module>"`` becomes ``"module"``.
    """
    name = _LOCALS_SEGMENT.sub("", name)
    name = name.replace("<", "").replace(">", "")
    name = _WHITESPACE.sub(".", name.strip())
    return name.strip(".") or "func"


def label_for(code: CodeType) -> str | None:
    """Build the ``"<file stem>.<function>"`` label for a code object."""
    stem = Path(code.co_filename).stem
    if not stem or stem.startswith("<"):
        stem = "root"
    return f"{stem}.{clean_function_name(code.co_qualname)}"


def infer_module(cache: ModuleInferenceCache | None = None) -> str | None:
    """
    Infer the module label of the first non-logging frame on the stack.

    Never raises: any failure to locate or parse a frame yields ``None``.
    """
    cache = _cache if cache is None else cache
    try:
        frame = _first_app_frame(sys._getframe(1))
        if frame is None:
            return None

        key = _fingerprint(frame)
        cached = cache.get(key)
        if cached is not None:
            return cached

        label = label_for(frame.f_code)
        if label is not None:
            cache.put(key, label)
        return label
    except Exception:
        return None
