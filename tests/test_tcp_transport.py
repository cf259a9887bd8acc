"""Tests for AsyncTcpTransport against a local server."""

import asyncio
import socket

import pytest

from phidgetnet.exceptions import TransportError
from phidgetnet.transport.tcp_async import AsyncTcpTransport


def free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestAsyncTcpTransport:
    """Tests for AsyncTcpTransport class."""

    @pytest.mark.asyncio
    async def test_write_and_read(self):
        received = asyncio.Queue()

        async def handle(reader, writer):
            received.put_nowait(await reader.readline())
            writer.write(b"996 No need to authenticate\r\n")
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            async with AsyncTcpTransport("127.0.0.1", port) as transport:
                assert transport.is_open
                await transport.write(b"995 authenticate, version=1.0.10\r\n")
                assert await asyncio.wait_for(received.get(), 1.0) == b"995 authenticate, version=1.0.10\r\n"

                data = b""
                while True:
                    chunk = await asyncio.wait_for(transport.read_chunk(), 1.0)
                    if not chunk:
                        break
                    data += chunk
                assert data == b"996 No need to authenticate\r\n"
            assert not transport.is_open
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        transport = AsyncTcpTransport("127.0.0.1", free_port(), connect_timeout=1.0)
        with pytest.raises(TransportError):
            await transport.open()
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_write_when_closed_raises(self):
        transport = AsyncTcpTransport("127.0.0.1", 5001)
        with pytest.raises(TransportError):
            await transport.write(b"quit\r\n")
        with pytest.raises(TransportError):
            await transport.read_chunk()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        transport = AsyncTcpTransport()
        await transport.close()
        await transport.close()
        assert not transport.is_open

    def test_endpoint_and_repr(self):
        transport = AsyncTcpTransport("10.0.0.2", 5002)
        assert transport.endpoint == "10.0.0.2:5002"
        assert repr(transport) == "AsyncTcpTransport(10.0.0.2:5002, closed)"
