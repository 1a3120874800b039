# morphkit/adapters/transport.py
"""
Process transport: the host side of the worker boundary.

The worker runs in a separate process (spawn context) connected by a duplex
Pipe. Replies are read on a daemon thread and handed to the registered
callback; the callback is responsible for crossing into its own event loop.
"""
from __future__ import annotations

import multiprocessing
import threading
from typing import Callable, Optional

import structlog

from morphkit.core.domain.exceptions import TransportUnavailable
from morphkit.core.ports import Transport
from morphkit.shared.config import TransportKind
from morphkit.workers.worker import run_worker

logger = structlog.get_logger()

WORKER_EXITED = {"type": "error", "message": "worker exited"}


class ProcessTransport(Transport):
    def __init__(self, target: Callable = run_worker, start_method: str = "spawn", join_timeout: float = 2.0):
        ctx = multiprocessing.get_context(start_method)
        self._conn, child_conn = ctx.Pipe(duplex=True)
        self._process = ctx.Process(
            target=target,
            args=(child_conn,),
            name="morphkit-transducer-host",
            daemon=True,
        )
        try:
            self._process.start()
        except (OSError, RuntimeError) as e:
            self._conn.close()
            child_conn.close()
            raise TransportUnavailable(f"Could not start worker process: {e}") from e
        child_conn.close()

        self._callback: Optional[Callable[[dict], None]] = None
        self._closed = False
        self._join_timeout = join_timeout
        self._reaper: Optional[threading.Thread] = None
        self._reader = threading.Thread(target=self._read_loop, name="morphkit-reply-reader", daemon=True)
        self._reader.start()
        logger.info("transport_started", pid=self._process.pid)

    def on_message(self, callback: Callable[[dict], None]) -> None:
        self._callback = callback

    def post(self, message: dict) -> None:
        if self._closed:
            raise TransportUnavailable("transport closed")
        try:
            self._conn.send(message)
        except (BrokenPipeError, OSError) as e:
            logger.error("transport_post_failed", error=str(e))
            self._deliver(dict(WORKER_EXITED))

    def _deliver(self, payload: dict) -> None:
        if self._callback is None:
            logger.warning("transport_reply_dropped", type=payload.get("type"))
            return
        self._callback(payload)

    def _read_loop(self) -> None:
        while True:
            try:
                payload = self._conn.recv()
            except (EOFError, OSError):
                if not self._closed:
                    logger.error("transport_worker_exited", exitcode=self._process.exitcode)
                    self._deliver(dict(WORKER_EXITED))
                return
            self._deliver(payload)

    def close(self) -> None:
        """
        Ask the worker to exit and return at once. Idempotent.

        Joining (and killing a worker that ignores the request) happens on a
        reaper thread so the caller's event loop never blocks on it.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.send(None)
        except (BrokenPipeError, OSError):
            pass
        self._reaper = threading.Thread(target=self._reap, name="morphkit-worker-reaper", daemon=True)
        self._reaper.start()

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Block until the reaper has finished; True once the worker is gone."""
        if self._reaper is None:
            return False
        self._reaper.join(timeout)
        return not self._reaper.is_alive()

    def _reap(self) -> None:
        self._process.join(self._join_timeout)
        if self._process.is_alive():
            logger.warning("transport_worker_killed", pid=self._process.pid)
            self._process.terminate()
            self._process.join(self._join_timeout)
        self._conn.close()
        logger.info("transport_closed", exitcode=self._process.exitcode)


def create_transport(kind: TransportKind = TransportKind.PROCESS) -> Optional[Transport]:
    """
    Build the configured transport, or None when background execution is
    disabled or cannot be started (the caller degrades to stub mode).
    """
    if kind == TransportKind.NONE:
        logger.info("transport_disabled")
        return None
    try:
        return ProcessTransport()
    except TransportUnavailable as e:
        logger.warning("transport_unavailable", error=str(e))
        return None


__all__ = ["ProcessTransport", "create_transport", "WORKER_EXITED"]
