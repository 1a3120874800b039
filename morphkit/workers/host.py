"""
TransducerHost: the worker-side owner of the foreign engine.

One host lives inside the worker process. It receives protocol request dicts,
answers with response dicts, and is the only place that touches the engine
handle or its loaded flags. No handler fault escapes `handle()`: every
exception becomes an `error` response or a sentinel output line.
"""
from __future__ import annotations

import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse

import structlog
from pydantic import ValidationError

from morphkit.adapters.engines.hfst_native import (
    DOWN,
    GENERATOR_ENTRYPOINTS,
    TRANSDUCER_ENTRYPOINTS,
    UP,
    HfstNativeEngine,
    apply_two_phase,
    load_with_fallbacks,
)
from morphkit.adapters.engines.output_format import parse_analyses
from morphkit.adapters.packs.cache import PackCache
from morphkit.adapters.packs.loader import PackLoader, mount_name, parse_pack_url
from morphkit.core.domain.exceptions import (
    EngineLoadFailed,
    IntegrityMismatch,
    ResourceLoadFailed,
    UnknownMessage,
)
from morphkit.core.domain.messages import (
    ApplyDownRequest,
    ApplyJoinRequest,
    ApplyUpRequest,
    DownResponse,
    ErrorResponse,
    InitRequest,
    JoinResponse,
    LoadPackRequest,
    ReadyResponse,
    UpResponse,
    parse_request,
    to_wire,
)
from morphkit.core.ports import TransducerEngine
from morphkit.morphology.joiner import decide
from morphkit.shared.config import settings

logger = structlog.get_logger()

ENGINE_NOT_LOADED = "HFST_ENGINE_NOT_LOADED"
TRANSDUCER_NOT_LOADED = "HFST_TRANSDUCER_NOT_LOADED"
ENGINE_ERROR = "HFST_ENGINE_ERROR"

_KNOWN_TYPES = {"init", "load_pack", "apply_up", "apply_down", "apply_join"}

EngineFactory = Callable[[str], TransducerEngine]


class TransducerHost:
    """
    Protocol handler around one TransducerEngine.

    Args:
        engine_factory: Builds an engine from a local library path.
        loader: PackLoader used for packs (and for remote engine libraries).
        mount_dir: Directory packs are written to before loading; a private
            temporary directory by default.
    """

    def __init__(
        self,
        engine_factory: EngineFactory = HfstNativeEngine,
        loader: Optional[PackLoader] = None,
        mount_dir: Optional[str] = None,
    ):
        self.engine_factory = engine_factory
        self.loader = loader or PackLoader(cache=PackCache(settings.PACK_CACHE_DIR))
        self._owns_mount_dir = mount_dir is None
        self.mount_dir = Path(mount_dir) if mount_dir else Path(tempfile.mkdtemp(prefix="morphkit-"))
        self.mount_dir.mkdir(parents=True, exist_ok=True)

        self.engine: Optional[TransducerEngine] = None
        self.engine_url: str = ""
        self.ready = False
        self.transducer_loaded = False
        self.generator_loaded = False

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, payload: dict) -> dict:
        """Answer one request dict with one response dict."""
        try:
            message = self._parse(payload)
            logger.debug("worker_message_received", type=message.type)

            if isinstance(message, InitRequest):
                response = self.init(message.engine_url, message.pack_url)
            elif isinstance(message, LoadPackRequest):
                response = self.load_pack(message.pack_url)
            elif isinstance(message, ApplyUpRequest):
                response = UpResponse(outputs=self.apply_up(message.input))
            elif isinstance(message, ApplyDownRequest):
                response = DownResponse(outputs=self.apply_down(message.input))
            elif isinstance(message, ApplyJoinRequest):
                response = self.apply_join(message.prev, message.next, message.lang)
            else:
                raise UnknownMessage(f"unhandled message {message!r}")
        except UnknownMessage as e:
            logger.warning("worker_unknown_message", error=str(e))
            response = ErrorResponse(message="unknown message")
        except Exception as e:
            logger.error("worker_handler_failed", error=str(e), exc_info=True)
            response = ErrorResponse(message=str(e) or e.__class__.__name__)

        return to_wire(response)

    def _parse(self, payload: dict):
        kind = payload.get("type") if isinstance(payload, dict) else None
        if kind not in _KNOWN_TYPES:
            raise UnknownMessage(f"unknown message type {kind!r}")
        try:
            return parse_request(payload)
        except ValidationError as e:
            raise ValueError(f"malformed {kind} message: {e.error_count()} validation error(s)") from e

    # ------------------------------------------------------------------
    # init / load_pack
    # ------------------------------------------------------------------

    def init(self, engine_url: str, pack_url: Optional[str] = None) -> ReadyResponse:
        self.engine_url = engine_url or ""
        if self.engine is None:
            self.engine = self._load_engine(self.engine_url)
        self.ready = True
        logger.info("worker_engine_ready", engine_url=self.engine_url)

        if pack_url:
            self._load_pack(pack_url)
        return ReadyResponse()

    def _load_engine(self, engine_url: str) -> TransducerEngine:
        source = engine_url or settings.ENGINE_LIB_PATH
        if urlparse(source).scheme in ("http", "https"):
            # Remote library: fetch the bytes and load them from the mount dir.
            data = self.loader.fetch(source)
            local = self.mount_dir / Path(urlparse(source).path).name
            local.write_bytes(data)
            source = str(local)
        return self.engine_factory(source)

    def load_pack(self, pack_url: str) -> ReadyResponse:
        """
        Mount and load a pack. Load failures are logged and leave the flags
        down; the reply is `ready` either way.
        """
        if self.engine is None:
            self.init(self.engine_url)
        self._load_pack(pack_url)
        return ReadyResponse()

    def _load_pack(self, pack_url: str) -> None:
        request = parse_pack_url(pack_url)
        logger.info("pack_load_started", url=request.url, verified=bool(request.sha256), gen=request.gen_url)

        loaded = self._mount_and_load(
            request.url, request.sha256, "analysis", TRANSDUCER_ENTRYPOINTS
        )
        if loaded is not None:
            self.transducer_loaded = loaded
            logger.info("pack_transducer_status", url=request.url, loaded=loaded)

        if request.gen_url:
            gen_url = urljoin(request.url, request.gen_url)
            gen_loaded = self._mount_and_load(
                gen_url, request.gen_sha256, "generate", GENERATOR_ENTRYPOINTS
            )
            if gen_loaded is not None:
                self.generator_loaded = gen_loaded
                logger.info("pack_generator_status", url=gen_url, loaded=gen_loaded)

    def _mount_and_load(
        self,
        url: str,
        expected_sha256: Optional[str],
        role: str,
        entrypoints,
    ) -> Optional[bool]:
        """
        Fetch → verify → decompress → mount → load.

        Returns True/False for the engine load result, or None when the
        resource never reached the mount step (fetch or integrity failure),
        in which case no state changes.
        """
        try:
            data = self.loader.load(url, expected_sha256)
        except IntegrityMismatch as e:
            logger.error("pack_integrity_mismatch", url=url, role=role, expected=e.expected, actual=e.actual)
            return None
        except ResourceLoadFailed as e:
            logger.error("pack_fetch_failed", url=url, role=role, error=str(e))
            return None

        path = self.mount_dir / mount_name(url, role)
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error("pack_mount_failed", url=url, role=role, path=str(path), error=str(e))
            return False
        self._verify_mount(path, len(data))

        try:
            entrypoint = load_with_fallbacks(self.engine, entrypoints, str(path))
        except EngineLoadFailed as e:
            logger.error("pack_engine_load_failed", url=url, role=role, error=str(e))
            return False

        logger.info("pack_engine_loaded", url=url, role=role, entrypoint=entrypoint, path=str(path))
        return True

    def _verify_mount(self, path: Path, expected_size: int) -> None:
        try:
            size = path.stat().st_size
            with path.open("rb") as fh:
                head = fh.read(10)
        except OSError as e:
            logger.warning("pack_mount_verify_failed", path=str(path), error=str(e))
            return
        if size != expected_size:
            logger.warning("pack_mount_size_mismatch", path=str(path), size=size, expected=expected_size)
        logger.debug("pack_mounted", path=str(path), size=size, head=list(head))

    # ------------------------------------------------------------------
    # apply_up / apply_down / apply_join
    # ------------------------------------------------------------------

    def _precondition_sentinel(self, text: str) -> Optional[str]:
        if not self.ready or self.engine is None:
            return f"{ENGINE_NOT_LOADED}:{text}"
        if not self.transducer_loaded:
            return f"{TRANSDUCER_NOT_LOADED}:{text}"
        return None

    def _apply(self, direction: str, text: str) -> List[str]:
        sentinel = self._precondition_sentinel(text)
        if sentinel:
            return [sentinel]
        try:
            result = apply_two_phase(self.engine, direction, text)
        except Exception as e:
            logger.warning("engine_apply_failed", direction=direction, input=text, error=str(e))
            return [f"{ENGINE_ERROR}:{text}"]
        if result is None:
            return []
        return [line for line in result.split("\n") if line.strip()]

    def apply_up(self, text: str) -> List[str]:
        return self._apply(UP, text)

    def apply_down(self, text: str) -> List[str]:
        lines = self._apply(DOWN, text)
        if lines and lines[0].startswith((ENGINE_NOT_LOADED, TRANSDUCER_NOT_LOADED, ENGINE_ERROR)):
            return lines
        # The engine separates output symbols with spaces.
        return [cleaned for cleaned in (re.sub(r"\s+", "", line) for line in lines) if cleaned]

    def apply_join(self, prev: str, next: str, lang: str) -> JoinResponse:
        prev_analyses = parse_analyses(self.apply_up(prev), prev)
        next_analyses = parse_analyses(self.apply_up(next), next)
        logger.debug(
            "worker_join_analyses",
            prev=prev,
            prev_count=len(prev_analyses),
            next=next,
            next_count=len(next_analyses),
        )
        decision = decide(prev, next, lang, prev_analyses, next_analyses)
        return JoinResponse(decision=decision)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        unload = getattr(self.engine, "unload", None)
        if callable(unload):
            try:
                unload()
            except Exception as e:
                logger.warning("engine_unload_failed", error=str(e))
        self.engine = None
        self.ready = False
        self.transducer_loaded = False
        self.generator_loaded = False
        if self._owns_mount_dir:
            shutil.rmtree(self.mount_dir, ignore_errors=True)


__all__ = [
    "TransducerHost",
    "ENGINE_NOT_LOADED",
    "TRANSDUCER_NOT_LOADED",
    "ENGINE_ERROR",
]
