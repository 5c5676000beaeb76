import asyncio
import socket
import struct

import pytest

from xfr.counters import Flag, StreamStats
from xfr.tcp_config import TcpConfig
from xfr.tcp_receive import drain_after_cancel, receive_data


async def _start(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


@pytest.mark.asyncio
async def test_drain_counts_bytes_until_eof():
    reader = asyncio.StreamReader()
    reader.feed_data(b"x" * 1000)
    reader.feed_eof()
    assert await drain_after_cancel(reader, 0) == 1000


@pytest.mark.asyncio
async def test_drain_on_empty_eof_returns_zero():
    reader = asyncio.StreamReader()
    reader.feed_eof()
    assert await drain_after_cancel(reader, 0) == 0


@pytest.mark.asyncio
async def test_drain_stops_after_grace_window():
    reader = asyncio.StreamReader()
    reader.feed_data(b"y" * 500)
    loop = asyncio.get_running_loop()
    start = loop.time()
    drained = await drain_after_cancel(reader, 1)
    elapsed = loop.time() - start
    assert drained == 500
    assert 0.15 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_receive_counts_all_bytes_until_eof():
    async def handler(reader, writer):
        writer.write(b"z" * 5000)
        await writer.drain()
        writer.close()

    server, port = await _start(handler)
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        stats = StreamStats(2)
        await asyncio.wait_for(receive_data(reader, writer, stats, Flag(), TcpConfig()), 3.0)
        assert stats.bytes_received == 5000
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_receive_returns_promptly_on_cancel():
    release = asyncio.Event()

    async def handler(reader, writer):
        await release.wait()
        writer.close()

    server, port = await _start(handler)
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        stats = StreamStats(0)
        cancel = Flag()
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, cancel.set, True)
        start = loop.time()
        await asyncio.wait_for(receive_data(reader, writer, stats, cancel, TcpConfig()), 3.0)
        assert loop.time() - start < 1.5
        assert stats.bytes_received == 0
    finally:
        release.set()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_receive_raises_on_reset_before_cancel():
    async def handler(reader, writer):
        await asyncio.sleep(0.05)
        writer.get_extra_info("socket").setsockopt(
            socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0)
        )
        writer.transport.abort()

    server, port = await _start(handler)
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        stats = StreamStats(0)
        with pytest.raises(ConnectionError):
            await asyncio.wait_for(
                receive_data(reader, writer, stats, Flag(), TcpConfig()), 3.0
            )
    finally:
        server.close()
        await server.wait_closed()