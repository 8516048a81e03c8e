"""
Shared fixtures for lightning_client tests
"""
import pytest

from lightning_client.transport.base import Transport


class FakeTransport(Transport):
    """In-memory transport recording writes and driven by the test"""

    def __init__(self, fail_connects: int = 0, auto_connect: bool = True):
        super().__init__()
        self.fail_connects = fail_connects
        self.auto_connect = auto_connect
        self.connect_calls = 0
        self.written = []
        self.connected = False
        self.aborted = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise ConnectionRefusedError("connection refused")
        if self.auto_connect:
            self.complete_connect()

    def complete_connect(self) -> None:
        self.connected = True
        self.listener.on_connect()

    def write(self, data: bytes) -> None:
        if not self.connected:
            raise ConnectionError("not connected")
        self.written.append(data)

    def close(self) -> None:
        self.connected = False

    def abort(self) -> None:
        self.connected = False
        self.aborted += 1

    # Test drivers

    def receive(self, data: bytes) -> None:
        self.listener.on_data(data)

    def drop(self, error: Exception = None) -> None:
        self.connected = False
        if error is not None:
            self.listener.on_error(error)
        else:
            self.listener.on_close()


@pytest.fixture
def transport_factory():
    return FakeTransport
