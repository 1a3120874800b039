# tests/conftest.py
import gzip
import hashlib
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from morphkit.adapters.packs.loader import PackLoader
from morphkit.core.ports import TransducerEngine, Transport
from morphkit.workers.host import TransducerHost


class FakeEngine(TransducerEngine):
    """
    In-memory TransducerEngine.

    `up` / `down` map an input string to the raw text the native call would
    produce. `loader_codes` maps entrypoint names to return codes; a name
    that is absent behaves like a symbol the library does not export.
    """

    def __init__(
        self,
        up: Optional[Dict[str, str]] = None,
        down: Optional[Dict[str, str]] = None,
        loader_codes: Optional[Dict[str, int]] = None,
    ):
        self.up = up or {}
        self.down = down or {}
        self.loader_codes = (
            loader_codes if loader_codes is not None else {"loadTransducer": 0, "loadGenerator": 0}
        )
        self.loader_calls: List[tuple] = []
        self.allocated: List[int] = []
        self.released = 0
        self.unloaded = False
        self.fail_with: Optional[Exception] = None

    def _table(self, direction: str) -> Dict[str, str]:
        return self.up if direction == "up" else self.down

    def size_of(self, direction, text):
        if self.fail_with is not None:
            raise self.fail_with
        out = self._table(direction).get(text)
        return len(out.encode("utf-8")) if out else 0

    def fill(self, direction, text, buffer, capacity):
        data = self._table(direction)[text].encode("utf-8")[: capacity - 1]
        buffer[: len(data)] = data
        return len(data)

    def allocate(self, size):
        self.allocated.append(size)
        return bytearray(size)

    def release(self, buffer):
        self.released += 1
        buffer[:] = bytes(len(buffer))

    def decode(self, buffer):
        return bytes(buffer).split(b"\0", 1)[0].decode("utf-8")

    def call_loader(self, entrypoint, path):
        if entrypoint not in self.loader_codes:
            raise AttributeError(entrypoint)
        self.loader_calls.append((entrypoint, path))
        return self.loader_codes[entrypoint]

    def unload(self):
        self.unloaded = True


class FakeTransport(Transport):
    """
    Records posted requests. Replies are pushed with `reply()`, or produced
    automatically by `responder(request) -> Optional[dict]`.
    """

    def __init__(self, responder: Optional[Callable[[dict], Optional[dict]]] = None):
        self.responder = responder
        self.posted: List[dict] = []
        self.callback = None
        self.closed = False

    def on_message(self, callback):
        self.callback = callback

    def post(self, message):
        self.posted.append(message)
        if self.responder is not None:
            reply = self.responder(message)
            if reply is not None:
                self.callback(reply)

    def reply(self, payload: dict) -> None:
        self.callback(payload)

    def close(self):
        self.closed = True


def ready_on_init(message: dict) -> Optional[dict]:
    """Responder that only answers the init handshake."""
    if message["type"] == "init":
        return {"type": "ready"}
    return None


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def fake_engine():
    return FakeEngine(up={"chats": "chat+N+Pl\n"}, down={"chat+N+Pl": "c h a t s"})


@pytest.fixture
def host(tmp_path, fake_engine):
    """TransducerHost wired to the fake engine, reading packs from disk."""
    mount = tmp_path / "mnt"
    h = TransducerHost(
        engine_factory=lambda path: fake_engine,
        loader=PackLoader(),
        mount_dir=str(mount),
    )
    yield h
    h.close()


@pytest.fixture
def pack_file(tmp_path) -> Callable[..., Path]:
    """Writes a pack resource under tmp_path/packs and returns its path."""

    def _write(name: str, payload: bytes, compress: bool = False) -> Path:
        directory = tmp_path / "packs"
        directory.mkdir(exist_ok=True)
        path = directory / name
        path.write_bytes(gzip.compress(payload) if compress else payload)
        return path

    return _write
