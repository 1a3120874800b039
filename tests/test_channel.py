# tests/test_channel.py
import asyncio

import pytest

from morphkit.core.domain.exceptions import TransportUnavailable
from morphkit.core.domain.messages import ApplyUpRequest, ErrorResponse, UpResponse
from morphkit.services.channel import WorkerChannel
from tests.conftest import FakeTransport, ready_on_init


async def _drain(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
class TestHandshake:
    async def test_init_sends_handshake_once(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)

        await channel.init("/opt/libhfst_shim.so", None)
        await channel.init("/opt/libhfst_shim.so", None)

        assert channel.initialized is True
        assert channel.available is True
        assert transport.posted == [{"type": "init", "engine_url": "/opt/libhfst_shim.so", "pack_url": None}]

    async def test_no_transport_runs_in_stub_mode(self):
        channel = WorkerChannel(lambda: None)
        await channel.init()

        assert channel.initialized is True
        assert channel.available is False
        assert await channel.request(ApplyUpRequest(input="chats")) == ErrorResponse(message="no transport")
        assert await channel.apply_up("chats") == []
        assert await channel.apply_down("chat+N+Pl") == []
        assert await channel.apply_join("je", "aime", "fr-FR") is None
        assert await channel.load_pack("fr.hfstol") is False

    async def test_transport_factory_error_runs_in_stub_mode(self):
        def _factory():
            raise TransportUnavailable("no processes here")

        channel = WorkerChannel(_factory)
        await channel.init()

        assert channel.initialized is True
        assert channel.available is False

    async def test_failed_handshake_tears_down_worker(self):
        transport = FakeTransport(responder=lambda m: {"type": "error", "message": "Cannot load engine library"})
        channel = WorkerChannel(lambda: transport)

        await channel.init()

        assert channel.initialized is True
        assert channel.available is False
        assert transport.closed is True
        assert await channel.apply_up("chats") == []

    async def test_concurrent_init_starts_one_worker(self):
        created = []

        def _factory():
            created.append(FakeTransport())
            return created[-1]

        channel = WorkerChannel(_factory)
        first = asyncio.create_task(channel.init("fr"))
        second = asyncio.create_task(channel.init("en"))
        await _drain()

        assert len(created) == 1
        created[0].reply({"type": "ready"})
        await asyncio.gather(first, second)

        assert channel.initialized is True
        assert [m["type"] for m in created[0].posted] == ["init"]

        channel.terminate()
        assert [t.closed for t in created] == [True]

    async def test_terminate_during_handshake_wins(self):
        created = []

        def _factory():
            created.append(FakeTransport())
            return created[-1]

        channel = WorkerChannel(_factory)
        pending_init = asyncio.create_task(channel.init())
        await _drain()

        channel.terminate()
        await pending_init

        assert channel.initialized is False
        assert channel.available is False
        assert created[0].closed is True

        # The next init starts a fresh worker.
        restart = asyncio.create_task(channel.init())
        await _drain()
        created[1].reply({"type": "ready"})
        await restart

        assert len(created) == 2
        assert channel.initialized is True
        assert channel.available is True


@pytest.mark.asyncio
class TestQueue:
    async def test_requests_are_answered_in_fifo_order(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)
        await channel.init()

        tasks = [asyncio.create_task(channel.apply_up(word)) for word in ("r1", "r2", "r3")]
        await _drain()

        # Only one request is in flight at a time.
        assert [m.get("input") for m in transport.posted[1:]] == ["r1"]
        assert channel.pending == 3

        for expected in ("r1", "r2", "r3"):
            assert transport.posted[-1]["input"] == expected
            transport.reply({"type": "up", "outputs": [f"{expected}+N"]})
            await _drain()

        results = await asyncio.gather(*tasks)
        assert results == [["r1+N"], ["r2+N"], ["r3+N"]]
        assert channel.pending == 0

    async def test_replies_are_attributed_to_the_oldest_request(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)
        await channel.init()

        first = asyncio.create_task(channel.request(ApplyUpRequest(input="a")))
        second = asyncio.create_task(channel.request(ApplyUpRequest(input="b")))
        await _drain()

        transport.reply({"type": "error", "message": "boom"})
        await _drain()
        transport.reply({"type": "up", "outputs": ["b"]})

        assert await first == ErrorResponse(message="boom")
        assert await second == UpResponse(outputs=["b"])

    async def test_malformed_reply_becomes_error(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)
        await channel.init()

        task = asyncio.create_task(channel.request(ApplyUpRequest(input="a")))
        await _drain()
        transport.reply({"type": "up", "outputs": "not-a-list"})

        assert await task == ErrorResponse(message="malformed reply")

    async def test_post_failure_settles_request(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)
        await channel.init()

        def _broken(message):
            raise BrokenPipeError("pipe closed")

        transport.post = _broken
        response = await channel.request(ApplyUpRequest(input="a"))

        assert isinstance(response, ErrorResponse)
        assert "pipe closed" in response.message

    async def test_terminate_fails_pending_requests(self):
        transport = FakeTransport(responder=ready_on_init)
        channel = WorkerChannel(lambda: transport)
        await channel.init()

        tasks = [asyncio.create_task(channel.request(ApplyUpRequest(input=w))) for w in ("a", "b")]
        await _drain()
        channel.terminate()

        results = await asyncio.gather(*tasks)
        assert results == [ErrorResponse(message="terminated")] * 2
        assert transport.closed is True
        assert channel.initialized is False
        assert channel.pending == 0

    async def test_terminate_is_idempotent_and_allows_restart(self):
        transports = []

        def _factory():
            transports.append(FakeTransport(responder=ready_on_init))
            return transports[-1]

        channel = WorkerChannel(_factory)
        await channel.init()
        channel.terminate()
        channel.terminate()
        await channel.init()

        assert len(transports) == 2
        assert channel.available is True


@pytest.mark.asyncio
class TestJoinAdapter:
    async def test_apply_join_returns_decision(self):
        def _responder(message):
            if message["type"] == "init":
                return {"type": "ready"}
            return {
                "type": "join",
                "decision": {
                    "surfacePrev": "j’",
                    "surfaceNext": "aime",
                    "joiner": "",
                    "noSpace": True,
                    "reason": "French elision: je + aime → j’aime",
                },
            }

        channel = WorkerChannel(lambda: FakeTransport(responder=_responder))
        await channel.init()

        decision = await channel.apply_join("je", "aime", "fr-FR")

        assert decision.surface_prev == "j’"
        assert decision.no_space is True

    async def test_apply_join_error_reply_returns_none(self):
        def _responder(message):
            if message["type"] == "init":
                return {"type": "ready"}
            return {"type": "error", "message": "worker exited"}

        channel = WorkerChannel(lambda: FakeTransport(responder=_responder))
        await channel.init()

        assert await channel.apply_join("je", "aime", "fr-FR") is None
