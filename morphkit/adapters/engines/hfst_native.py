# morphkit/adapters/engines/hfst_native.py
"""
ctypes binding to the native HFST optimized-lookup shim.

The shim exports a C ABI:

    int  loadTransducer(const char* path);    // also load_transducer / hfst_load
    int  loadGenerator(const char* path);
    int  applyUp(const char* in, char* out, int out_cap);
    int  applyDown(const char* in, char* out, int out_cap);
    void unloadTransducer(void);

applyUp/applyDown follow a probe-then-fill convention: with a NULL buffer
they return the number of bytes needed, with a buffer they fill it. Buffer
handling is kept inside this module; `apply_two_phase` is the only entry
the worker host uses.
"""
from __future__ import annotations

import ctypes
import threading
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple
from urllib.parse import unquote, urlparse

import structlog

from morphkit.core.domain.exceptions import EngineLoadFailed
from morphkit.core.ports import TransducerEngine

logger = structlog.get_logger()

UP = "up"
DOWN = "down"

_APPLY_SYMBOLS = {UP: "applyUp", DOWN: "applyDown"}

# Tried in order until one returns 0.
TRANSDUCER_ENTRYPOINTS: Tuple[str, ...] = ("loadTransducer", "load_transducer", "hfst_load")
GENERATOR_ENTRYPOINTS: Tuple[str, ...] = ("loadGenerator",)


def url_to_path(url: str) -> Path:
    """Accept a bare path or a file:// URL."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(url)


class HfstNativeEngine(TransducerEngine):
    """TransducerEngine backed by a shared library loaded with ctypes."""

    def __init__(self, library_path: str):
        path = url_to_path(library_path)
        try:
            self._lib = ctypes.CDLL(str(path))
        except OSError as e:
            raise EngineLoadFailed(f"Cannot load engine library {path}: {e}") from e

        self._lock = threading.Lock()
        self.library_path = str(path)

        for symbol in _APPLY_SYMBOLS.values():
            fn = getattr(self._lib, symbol, None)
            if fn is None:
                raise EngineLoadFailed(f"Engine library {path} does not export {symbol}")
            fn.argtypes = [ctypes.c_char_p, ctypes.c_char_p, ctypes.c_int]
            fn.restype = ctypes.c_int

        logger.info("engine_library_loaded", path=str(path))

    def _apply_fn(self, direction: str):
        return getattr(self._lib, _APPLY_SYMBOLS[direction])

    def size_of(self, direction: str, text: str) -> int:
        return int(self._apply_fn(direction)(text.encode("utf-8"), None, 0))

    def fill(self, direction: str, text: str, buffer: Any, capacity: int) -> int:
        return int(self._apply_fn(direction)(text.encode("utf-8"), buffer, capacity))

    def allocate(self, size: int) -> Any:
        return ctypes.create_string_buffer(size)

    def release(self, buffer: Any) -> None:
        # create_string_buffer memory is owned by Python; wipe it so a stale
        # result can never be decoded twice.
        ctypes.memset(buffer, 0, ctypes.sizeof(buffer))

    def decode(self, buffer: Any) -> str:
        return buffer.value.decode("utf-8", errors="replace")

    def call_loader(self, entrypoint: str, path: str) -> int:
        fn = getattr(self._lib, entrypoint, None)
        if fn is None:
            raise AttributeError(f"entrypoint {entrypoint} not exported")
        fn.argtypes = [ctypes.c_char_p]
        fn.restype = ctypes.c_int
        with self._lock:
            return int(fn(path.encode("utf-8")))

    def unload(self) -> None:
        fn = getattr(self._lib, "unloadTransducer", None)
        if fn is not None:
            fn.restype = None
            fn()


def apply_two_phase(engine: TransducerEngine, direction: str, text: str) -> Optional[str]:
    """
    Probe for the result size, then fill a buffer of that size.

    Returns None when the probe reports nothing (<= 0), i.e. no analysis or
    no generation for `text`.
    """
    needed = engine.size_of(direction, text)
    if needed <= 0:
        return None

    capacity = needed + 1
    buffer = engine.allocate(capacity)
    try:
        engine.fill(direction, text, buffer, capacity)
        return engine.decode(buffer)
    finally:
        engine.release(buffer)


def load_with_fallbacks(engine: TransducerEngine, entrypoints: Sequence[str], path: str) -> str:
    """
    Call each load entrypoint in order until one returns 0.

    Returns the name of the entrypoint that succeeded.
    Raises EngineLoadFailed once every candidate failed or was missing.
    """
    attempts = []
    for name in entrypoints:
        try:
            code = engine.call_loader(name, path)
        except AttributeError:
            logger.info("engine_entrypoint_missing", entrypoint=name)
            attempts.append(f"{name}=missing")
            continue
        logger.info("engine_entrypoint_called", entrypoint=name, path=path, code=code)
        if code == 0:
            return name
        attempts.append(f"{name}={code}")

    raise EngineLoadFailed(f"All load entrypoints failed for {path}: {', '.join(attempts)}")


__all__ = [
    "UP",
    "DOWN",
    "TRANSDUCER_ENTRYPOINTS",
    "GENERATOR_ENTRYPOINTS",
    "HfstNativeEngine",
    "apply_two_phase",
    "load_with_fallbacks",
    "url_to_path",
]
