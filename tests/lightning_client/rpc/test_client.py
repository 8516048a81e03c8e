"""
LightningClient call facade tests

Uses an in-memory transport; the socket-level round trips live in
tests/lightning_client/transport.
"""
import asyncio
import json
import weakref

import pytest

from lightning_client import create_client
from lightning_client.config import ClientConfig, ReconnectConfig
from lightning_client.connection.controller import ConnectionState
from lightning_client.exceptions import (
    ClientClosedError,
    ConfigurationError,
    ConnectionLostError,
    LightningError,
)
from lightning_client.rpc import client as client_module
from lightning_client.rpc.client import LightningClient
from lightning_client.rpc.methods import METHODS, camel_case


FAST_RECONNECT = ReconnectConfig(initial_delay=0.02, max_delay=0.1, reset_delay=0.02)


async def settle(rounds: int = 5):
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_client(transport, **config):
    config.setdefault("reconnect", FAST_RECONNECT)
    config.setdefault("enable_telemetry", False)
    return LightningClient("/tmp/lightning", config=ClientConfig(**config), transport=transport)


def sent(transport):
    return [json.loads(data) for data in transport.written]


class TestRoundTrip:
    """Request envelopes and response correlation"""

    @pytest.mark.asyncio
    async def test_getinfo_round_trip(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        call = asyncio.ensure_future(client.getinfo())
        await settle()

        assert transport.written == [b'{"method":"getinfo","params":[],"id":"1"}']

        transport.receive(b'{"id":"1","result":{"version":"x"}}')
        assert await call == {"version": "x"}
        assert len(client.registry) == 0
        client.shutdown()

    @pytest.mark.asyncio
    async def test_error_response_rejects_call(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        call = asyncio.ensure_future(client.call("getinfo"))
        await settle()
        transport.receive(b'{"id":"1","error":{"code":-1,"message":"boom"}}')

        with pytest.raises(LightningError) as exc_info:
            await call
        assert exc_info.value.code == -1
        assert exc_info.value.message == "boom"
        assert exc_info.value.payload == {"code": -1, "message": "boom"}
        client.shutdown()

    @pytest.mark.asyncio
    async def test_ids_increment_and_are_strings(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        calls = [asyncio.ensure_future(client.call("ping", [i])) for i in range(3)]
        await settle()

        assert [request["id"] for request in sent(transport)] == ["1", "2", "3"]
        assert [request["params"] for request in sent(transport)] == [[0], [1], [2]]
        client.shutdown()
        await asyncio.gather(*calls, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_concurrent_calls_resolved_by_matching_id(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        calls = [asyncio.ensure_future(client.call("echo", [i])) for i in range(10)]
        await settle()

        responses = [{"id": request["id"], "result": request["params"][0]} for request in sent(transport)]
        responses.reverse()
        transport.receive(b"".join(json.dumps(response).encode() for response in responses))

        assert await asyncio.gather(*calls) == list(range(10))
        client.shutdown()

    @pytest.mark.asyncio
    async def test_one_error_does_not_affect_other_calls(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        good = asyncio.ensure_future(client.call("getinfo"))
        bad = asyncio.ensure_future(client.call("pay", ["lnbc1"]))
        await settle()
        transport.receive(b'{"id":"2","error":{"code":205,"message":"no route"}}')
        transport.receive(b'{"id":"1","result":{"id":"node"}}')

        assert await good == {"id": "node"}
        with pytest.raises(LightningError):
            await bad
        assert client.state is ConnectionState.CONNECTED
        client.shutdown()

    @pytest.mark.asyncio
    async def test_unmatched_response_dropped(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        call = asyncio.ensure_future(client.call("getinfo"))
        await settle()
        transport.receive(b'{"id":"42","result":"stale"}')
        await settle()
        assert not call.done()

        transport.receive(b'{"id":"1","result":"fresh"}')
        assert await call == "fresh"
        client.shutdown()


class TestConnectionGate:
    """Calls issued while the daemon is unreachable"""

    @pytest.mark.asyncio
    async def test_call_while_disconnected_writes_once_after_connect(self, transport_factory):
        transport = transport_factory(auto_connect=False)
        client = make_client(transport)

        call = asyncio.ensure_future(client.getinfo())
        await settle()
        assert transport.written == []

        transport.complete_connect()
        await settle()
        assert len(transport.written) == 1

        transport.receive(b'{"id":"1","result":{}}')
        assert await call == {}
        client.shutdown()

    @pytest.mark.asyncio
    async def test_pending_call_survives_reconnect_by_default(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        call = asyncio.ensure_future(client.getinfo())
        await settle()
        transport.drop(OSError("daemon restarted"))
        await asyncio.sleep(0.1)

        assert client.state is ConnectionState.CONNECTED
        assert not call.done()

        transport.receive(b'{"id":"1","result":"late"}')
        assert await call == "late"
        client.shutdown()

    @pytest.mark.asyncio
    async def test_fail_pending_on_disconnect(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport, fail_pending_on_disconnect=True)

        call = asyncio.ensure_future(client.getinfo())
        await settle()
        transport.drop(OSError("daemon restarted"))

        with pytest.raises(ConnectionLostError):
            await call
        assert len(client.registry) == 0
        client.shutdown()

    @pytest.mark.asyncio
    async def test_failed_call_is_not_written_after_flaps(self, transport_factory):
        transport = transport_factory(auto_connect=False)
        client = make_client(transport, fail_pending_on_disconnect=True)

        call = asyncio.ensure_future(client.pay("lnbc1"))
        await settle()
        for _ in range(2):
            transport.complete_connect()
            transport.drop()
            await settle(10)

        transport.complete_connect()
        await settle()

        with pytest.raises(ConnectionLostError):
            await call
        assert transport.written == []
        assert len(client.registry) == 0
        client.shutdown()


class TestLifecycle:
    """Construction, events and shutdown"""

    def test_construction_without_loop_defers_connect(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)
        assert client.state is ConnectionState.DISCONNECTED
        assert not client.controller.started
        assert transport.connect_calls == 0

    def test_relative_path_rejected(self):
        with pytest.raises(ConfigurationError):
            LightningClient("relative/path")

    def test_create_client_tcp_target(self):
        client = create_client("127.0.0.1", "9835")
        assert client.target.is_tcp
        assert client.target.port == 9835

    def test_config_supplies_target(self):
        client = LightningClient(config=ClientConfig(rpc_path="/srv/ln"))
        assert client.target.path == "/srv/ln/lightning-rpc"

    @pytest.mark.asyncio
    async def test_connect_and_error_events(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)
        connects, errors = [], []
        client.on("connect", lambda: connects.append(True))
        client.on("error", errors.append)

        # Listeners attached after construction still see the first connect
        await settle()
        transport.drop(OSError("reset"))
        await asyncio.sleep(0.1)

        assert len(connects) == 2
        assert [str(error) for error in errors] == ["reset"]
        client.shutdown()

    @pytest.mark.asyncio
    async def test_context_manager_shuts_down(self, transport_factory):
        transport = transport_factory(auto_connect=False)
        async with make_client(transport) as client:
            call = asyncio.ensure_future(client.getinfo())
            await settle()

        assert client.state is ConnectionState.CLOSED
        with pytest.raises(ClientClosedError):
            await call
        with pytest.raises(ClientClosedError):
            await client.getinfo()

    @pytest.mark.asyncio
    async def test_call_timeout(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport, call_timeout=0.05)

        with pytest.raises(asyncio.TimeoutError):
            await client.getinfo()

        assert len(client.registry) == 0
        # A response arriving after the timeout is dropped
        transport.receive(b'{"id":"1","result":{}}')
        client.shutdown()

    @pytest.mark.asyncio
    async def test_call_timeout_while_unreachable(self, transport_factory):
        transport = transport_factory(auto_connect=False)
        client = make_client(transport, call_timeout=0.05)

        call = asyncio.ensure_future(client.getinfo())
        await asyncio.sleep(0.3)

        assert call.done()
        with pytest.raises(asyncio.TimeoutError):
            await call
        assert transport.written == []
        assert len(client.registry) == 0
        client.shutdown()

    @pytest.mark.asyncio
    async def test_pending_gauge_registered_once(self, transport_factory, monkeypatch):
        registered = []
        monkeypatch.setattr(client_module, "_pending_gauge", None)
        monkeypatch.setattr(client_module, "_pending_registries", weakref.WeakSet())
        monkeypatch.setattr(client_module, "add_gauge_callback",
                            lambda name, value_fn, description: registered.append(name) or value_fn)

        first = make_client(transport_factory(), enable_telemetry=True)
        second = make_client(transport_factory(), enable_telemetry=True)
        untracked = make_client(transport_factory())

        assert registered == ["rpc.client.pending"]
        futures = [
            first.registry.register("1", "getinfo"),
            second.registry.register("1", "listpeers"),
            second.registry.register("2", "listfunds"),
        ]
        assert client_module.pending_calls() == 3

        first.shutdown()
        second.shutdown()
        untracked.shutdown()
        assert client_module.pending_calls() == 0
        assert all(isinstance(future.exception(), ClientClosedError) for future in futures)

    @pytest.mark.asyncio
    async def test_telemetry_enabled_path(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport, enable_telemetry=True)

        call = asyncio.ensure_future(client.call("getinfo"))
        await settle()
        transport.receive(b'{"id":"1","result":1}')
        assert await call == 1
        client.shutdown()


class TestConvenienceMethods:
    """Per-method coroutines built from the catalog"""

    def test_camel_case(self):
        assert camel_case("getinfo") == "getinfo"
        assert camel_case("dev-rhash") == "devRhash"
        assert camel_case("dev-rescan-outputs") == "devRescanOutputs"
        assert camel_case("fundchannel_start") == "fundchannel_start"

    def test_every_method_attached(self):
        for method in METHODS:
            assert callable(getattr(LightningClient, camel_case(method)))

    def test_lifecycle_methods_not_shadowed(self):
        assert LightningClient.call.__name__ == "call"
        assert LightningClient.shutdown.__name__ == "shutdown"

    @pytest.mark.asyncio
    async def test_positional_args_forwarded(self, transport_factory):
        transport = transport_factory()
        client = make_client(transport)

        call = asyncio.ensure_future(client.devRhash("00" * 32))
        other = asyncio.ensure_future(client.listpeers("02abc", "debug"))
        await settle()

        assert sent(transport) == [
            {"method": "dev-rhash", "params": ["00" * 32], "id": "1"},
            {"method": "listpeers", "params": ["02abc", "debug"], "id": "2"},
        ]
        client.shutdown()
        await asyncio.gather(call, other, return_exceptions=True)
