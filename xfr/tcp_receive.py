"""Bulk TCP receiving for bandwidth tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional, Tuple

from xfr.counters import Flag, StreamStats
from xfr.tcp_config import (
    RECEIVE_CANCEL_DRAIN_GRACE,
    TcpConfig,
    is_peer_closed_error,
)
from xfr.tcp_info import TcpInfoSnapshot, get_tcp_info
from xfr.tcp_socket import configure_stream

log = logging.getLogger(__name__)

_DRAIN_CHUNK = 16 * 1024


async def _race_read(
    aw: Awaitable[Any], cancel: Flag
) -> Tuple[bool, Any, bool]:
    """Run ``aw`` until it finishes or ``cancel`` changes.

    Returns ``(finished, value, signalled)``.
    """
    main = asyncio.ensure_future(aw)
    watcher = asyncio.ensure_future(cancel.wait_changed())
    try:
        done, _ = await asyncio.wait({main, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [task for task in (main, watcher) if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    signalled = watcher in done
    if main in done:
        exc = main.exception()
        if exc is not None:
            if signalled and cancel.is_set():
                return False, None, True
            raise exc
        return True, main.result(), signalled
    return False, None, signalled


def _snapshot(sock) -> Optional[TcpInfoSnapshot]:
    if sock is None:
        return None
    try:
        return get_tcp_info(sock)
    except OSError:
        return None


async def drain_after_cancel(reader: asyncio.StreamReader, stream_id: int) -> int:
    """Keep reading briefly after a cancel so the peer can stop cleanly.

    Closing a socket with unread data sends a reset; this gives the peer's own
    cancel a short window to take effect. Returns the number of bytes thrown
    away, which are not counted in the stream statistics.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + RECEIVE_CANCEL_DRAIN_GRACE
    drained = 0
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        try:
            chunk = await asyncio.wait_for(reader.read(_DRAIN_CHUNK), remaining)
        except asyncio.TimeoutError:
            break
        except BlockingIOError:
            continue
        except OSError:
            break
        if not chunk:
            break
        drained += len(chunk)
    if drained:
        log.debug("Stream %d drained %d bytes after cancel before close", stream_id, drained)
    return drained


async def _receive_loop(
    reader: asyncio.StreamReader, stats: StreamStats, cancel: Flag, buffer_size: int
) -> Tuple[bool, int]:
    suppressed = 0
    while True:
        if cancel.is_set():
            log.debug("Receive cancelled for stream %d", stats.stream_id)
            return True, suppressed
        try:
            finished, data, signalled = await _race_read(reader.read(buffer_size), cancel)
        except BlockingIOError:
            continue
        except OSError as exc:
            if cancel.is_set():
                if is_peer_closed_error(exc):
                    suppressed += 1
                return True, suppressed
            raise
        if finished:
            if not data:
                log.debug("Stream %d EOF", stats.stream_id)
                return False, suppressed
            stats.add_bytes_received(len(data))
        if signalled and cancel.is_set():
            log.debug("Receive cancelled for stream %d", stats.stream_id)
            return True, suppressed


async def receive_data(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    stats: StreamStats,
    cancel: Flag,
    config: TcpConfig,
) -> Optional[TcpInfoSnapshot]:
    """Read and count bytes until EOF or cancel, then close the connection.

    Returns the final TCP statistics snapshot, or None where the kernel offers
    none. A connection error before cancel is raised.
    """
    sock = writer.get_extra_info("socket")
    if sock is not None:
        configure_stream(sock, config)
    try:
        cancelled, suppressed = await _receive_loop(reader, stats, cancel, config.buffer_size)
        if cancelled:
            await drain_after_cancel(reader, stats.stream_id)
        info = _snapshot(sock)
        if info is not None:
            stats.add_retransmits(info.retransmits)
    finally:
        writer.close()

    log.debug("Stream %d receive complete: %d bytes", stats.stream_id, stats.bytes_received)
    if suppressed:
        log.debug(
            "Stream %d suppressed %d expected teardown receive errors",
            stats.stream_id,
            suppressed,
        )
    return info