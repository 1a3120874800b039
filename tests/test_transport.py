# tests/test_transport.py
import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest

from morphkit.adapters.packs.loader import PackLoader
from morphkit.adapters.transport import ProcessTransport, create_transport
from morphkit.core.domain.exceptions import TransportUnavailable
from morphkit.core.domain.messages import ApplyUpRequest, ErrorResponse
from morphkit.services.channel import WorkerChannel
from morphkit.shared.config import TransportKind
from morphkit.workers.host import TransducerHost
from morphkit.workers.worker import run_worker
from tests.conftest import FakeEngine


class TestCreateTransport:
    def test_disabled_transport(self):
        assert create_transport(TransportKind.NONE) is None

    def test_spawn_failure_degrades_to_none(self):
        with patch(
            "morphkit.adapters.transport.ProcessTransport",
            side_effect=TransportUnavailable("fork bomb protection"),
        ):
            assert create_transport(TransportKind.PROCESS) is None

    def test_process_transport_is_built(self):
        with patch("morphkit.adapters.transport.ProcessTransport") as mock_cls:
            assert create_transport(TransportKind.PROCESS) is mock_cls.return_value


class TestWorkerLoop:
    def test_replies_in_order_until_sentinel(self):
        conn = MagicMock()
        conn.recv.side_effect = [{"type": "apply_up", "input": "a"}, {"type": "apply_up", "input": "b"}, None]
        host = MagicMock()
        host.handle.side_effect = lambda m: {"type": "up", "outputs": [m["input"]]}

        run_worker(conn, host)

        assert [c.args[0] for c in conn.send.call_args_list] == [
            {"type": "up", "outputs": ["a"]},
            {"type": "up", "outputs": ["b"]},
        ]
        host.close.assert_called_once_with()
        conn.close.assert_called_once_with()

    def test_exits_on_eof(self):
        conn = MagicMock()
        conn.recv.side_effect = EOFError()
        host = MagicMock()

        run_worker(conn, host)

        host.handle.assert_not_called()
        host.close.assert_called_once_with()

    def test_stops_when_reply_cannot_be_sent(self):
        conn = MagicMock()
        conn.recv.side_effect = [{"type": "init"}, {"type": "init"}]
        conn.send.side_effect = BrokenPipeError()
        host = MagicMock()
        host.handle.return_value = {"type": "ready"}

        run_worker(conn, host)

        assert host.handle.call_count == 1
        host.close.assert_called_once_with()


class _SlowEngine(FakeEngine):
    """Hangs on the word "slow" so a request can be caught in flight."""

    def size_of(self, direction, text):
        if text == "slow":
            time.sleep(60)
        return super().size_of(direction, text)


def _serve_fake_analyser(conn):
    engine = _SlowEngine(up={"chats": "chat+N+Pl\n", "chiens": "chien+N+Pl\n"})
    run_worker(conn, TransducerHost(engine_factory=lambda path: engine, loader=PackLoader()))


@pytest.fixture
def spawned(tmp_path):
    """A WorkerChannel talking to a real spawned worker backed by a fake engine."""
    pack = tmp_path / "fr.hfstol"
    pack.write_bytes(b"fake analyser")
    transports = []

    def _factory():
        transports.append(ProcessTransport(target=_serve_fake_analyser, join_timeout=1.0))
        return transports[-1]

    channel = WorkerChannel(_factory)
    yield channel, transports, str(pack)
    channel.terminate()
    for transport in transports:
        transport.wait_closed(10)


@pytest.mark.asyncio
class TestSpawnedWorker:
    async def test_replies_cross_the_process_boundary_in_order(self, spawned):
        channel, transports, pack = spawned
        await asyncio.wait_for(channel.init("", pack), timeout=30)
        assert channel.available is True

        outputs = await asyncio.wait_for(
            asyncio.gather(channel.apply_up("chats"), channel.apply_up("chiens"), channel.apply_up("chats")),
            timeout=10,
        )
        assert outputs == [["chat+N+Pl"], ["chien+N+Pl"], ["chat+N+Pl"]]

        decision = await asyncio.wait_for(channel.apply_join("je", "aime", "fr-FR"), timeout=10)
        assert decision.render() == "j’aime"
        assert len(transports) == 1

    async def test_killed_worker_fails_the_request_in_flight(self, spawned):
        channel, transports, pack = spawned
        await asyncio.wait_for(channel.init("", pack), timeout=30)

        in_flight = asyncio.create_task(channel.request(ApplyUpRequest(input="slow")))
        await asyncio.sleep(0.2)
        assert channel.pending == 1

        transports[0]._process.kill()
        reply = await asyncio.wait_for(in_flight, timeout=10)

        assert reply == ErrorResponse(message="worker exited")
        assert channel.pending == 0

    async def test_close_is_idempotent_and_reaps_the_worker(self, spawned):
        channel, transports, pack = spawned
        await asyncio.wait_for(channel.init("", pack), timeout=30)
        transport = transports[0]

        transport.close()
        transport.close()

        assert transport.wait_closed(10) is True
        assert transport._process.is_alive() is False
        with pytest.raises(TransportUnavailable):
            transport.post({"type": "apply_up", "input": "chats"})


def _ignore_shutdown(conn):
    time.sleep(60)


class TestClose:
    def test_close_does_not_wait_for_a_stuck_worker(self):
        transport = ProcessTransport(target=_ignore_shutdown, join_timeout=1.0)

        started = time.monotonic()
        transport.close()
        assert time.monotonic() - started < 0.5

        assert transport.wait_closed(15) is True
        assert transport._process.is_alive() is False

    def test_wait_closed_before_close(self):
        transport = ProcessTransport(target=_ignore_shutdown, join_timeout=0.5)
        try:
            assert transport.wait_closed(0) is False
        finally:
            transport.close()
            transport.wait_closed(15)
