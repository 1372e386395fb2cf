"""Tests for the TCP connection manager against an in-process server."""

import asyncio
import socket

import pytest

from agentworld.connection import ConnectError, ConnectionManager, StreamClosed, TransportError


class EchoServer:
    """Tiny server that records what it reads and replays scripted chunks."""

    def __init__(self, chunks=()):
        self.chunks = list(chunks)
        self.received = bytearray()
        self.server = None
        self.port = None
        self.done = asyncio.Event()

    async def _handle(self, reader, writer):
        for chunk in self.chunks:
            writer.write(chunk)
            await writer.drain()
            await asyncio.sleep(0.01)
        data = await reader.read(65536)
        self.received.extend(data)
        self.done.set()
        writer.close()
        await writer.wait_closed()

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info):
        self.server.close()
        await self.server.wait_closed()


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_receive_and_send_round_trip():
    async with EchoServer(chunks=[b'{"timeStep": 1}']) as server:
        async with ConnectionManager("127.0.0.1", server.port) as connection:
            assert connection.is_connected
            assert await connection.receive() == b'{"timeStep": 1}'

            await connection.send(b'{"action":"move"}')
            await asyncio.wait_for(server.done.wait(), timeout=2)

        assert bytes(server.received) == b'{"action":"move"}'
        assert not connection.is_connected


@pytest.mark.asyncio
async def test_newline_framing_appends_terminator():
    async with EchoServer() as server:
        async with ConnectionManager("127.0.0.1", server.port, newline_framing=True) as connection:
            await connection.send(b'{"action":"move"}')
            await asyncio.wait_for(server.done.wait(), timeout=2)

    assert bytes(server.received) == b'{"action":"move"}\n'


@pytest.mark.asyncio
async def test_peer_close_raises_stream_closed():
    async with EchoServer() as server:
        connection = ConnectionManager("127.0.0.1", server.port)
        await connection.connect()
        await connection.send(b"{}")

        with pytest.raises(StreamClosed):
            await connection.receive()
        await connection.disconnect()


@pytest.mark.asyncio
async def test_read_timeout_raises_transport_error():
    async with EchoServer() as server:
        connection = ConnectionManager("127.0.0.1", server.port, read_timeout=0.05)
        await connection.connect()

        with pytest.raises(TransportError):
            await connection.receive()
        await connection.disconnect()


@pytest.mark.asyncio
async def test_connect_refused_raises_connect_error():
    connection = ConnectionManager("127.0.0.1", unused_port())

    with pytest.raises(ConnectError):
        await connection.connect()
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_connect_retries_until_success(monkeypatch):
    async with EchoServer() as server:
        connection = ConnectionManager("127.0.0.1", server.port, connect_attempts=3)
        real_open = connection._open_once
        attempts = []

        async def flaky_open():
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectError("first attempt fails")
            await real_open()

        monkeypatch.setattr(connection, "_open_once", flaky_open)

        await connection.connect()

        assert len(attempts) == 2
        assert connection.is_connected
        await connection.disconnect()


@pytest.mark.asyncio
async def test_operations_without_connection_raise_stream_closed():
    connection = ConnectionManager("127.0.0.1", 1)

    with pytest.raises(StreamClosed):
        await connection.receive()
    with pytest.raises(StreamClosed):
        await connection.send(b"{}")


@pytest.mark.asyncio
async def test_disconnect_is_idempotent():
    async with EchoServer() as server:
        connection = ConnectionManager("127.0.0.1", server.port)
        await connection.connect()

        await connection.disconnect()
        await connection.disconnect()

    assert not connection.is_connected


def test_connect_attempts_must_be_positive():
    with pytest.raises(ValueError):
        ConnectionManager("localhost", 8000, connect_attempts=0)
