"""Paced UDP sending and receiver-side jitter and loss accounting (RFC 3550)."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import struct
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from xfr.counters import Flag, StreamStats, wait_while_paused

log = logging.getLogger(__name__)

UDP_PAYLOAD_SIZE = 1400  # leaves room for IP and UDP headers
UDP_HEADER_SIZE = 16  # sequence (8) + timestamp_us (8)
UDP_INACTIVITY_TIMEOUT = 30.0  # seconds without packets before a receiver gives up
HIGH_PPS_THRESHOLD = 100_000.0  # above this, packets are sent in bursts
BURST_SIZE = 100  # packets per burst in high-rate and unlimited modes

_RECV_POLL = 0.1
_HEADER = struct.Struct(">QQ")

Address = Tuple[str, int]


@dataclass(frozen=True)
class UdpPacketHeader:
    """Header at the front of every test datagram.

    ``timestamp_us`` is relative to the sender's test start, so no clock
    synchronisation between the two hosts is needed.
    """

    sequence: int
    timestamp_us: int

    def encode(self) -> bytes:
        """Big-endian sequence followed by big-endian timestamp."""
        return _HEADER.pack(self.sequence, self.timestamp_us)

    @classmethod
    def decode(cls, data: bytes) -> "UdpPacketHeader":
        """Read a header from the start of ``data``.

        Raises ValueError if ``data`` is shorter than a header.
        """
        if len(data) < UDP_HEADER_SIZE:
            raise ValueError(
                f"UDP packet too short for header: {len(data)} < {UDP_HEADER_SIZE} bytes"
            )
        sequence, timestamp_us = _HEADER.unpack_from(data)
        return cls(sequence=sequence, timestamp_us=timestamp_us)


@dataclass(frozen=True)
class UdpSendStats:
    """Totals reported by a UDP sender."""

    packets_sent: int
    bytes_sent: int


@dataclass(frozen=True)
class UdpStats:
    """Final receiver-side UDP statistics for a stream."""

    packets_sent: int
    packets_received: int
    lost: int
    lost_percent: float
    jitter_ms: float
    out_of_order: int
    jitter_max_ms: Optional[float] = None
    packet_size: Optional[int] = None


class JitterCalculator:
    """Interarrival jitter estimate as defined by RFC 3550."""

    def __init__(self) -> None:
        self._last_send_us: Optional[int] = None
        self._last_recv: Optional[float] = None
        self._jitter = 0.0
        self._jitter_max = 0.0

    def update(self, send_time_us: int, recv_time: float) -> float:
        """Add a packet and return the current jitter in microseconds.

        ``send_time_us`` is the sender's timestamp, ``recv_time`` a monotonic
        arrival time in seconds.

        D(i) = (R(i) - R(i-1)) - (S(i) - S(i-1));  J(i) = J(i-1) + (|D(i)| - J(i-1)) / 16
        """
        if self._last_send_us is not None and self._last_recv is not None:
            recv_diff = max(0, round((recv_time - self._last_recv) * 1_000_000))
            send_diff = send_time_us - self._last_send_us
            d = float(abs(recv_diff - send_diff))
            self._jitter += (d - self._jitter) / 16.0
            self._jitter_max = max(self._jitter_max, self._jitter)
        self._last_send_us = send_time_us
        self._last_recv = recv_time
        return self._jitter

    def jitter_ms(self) -> float:
        """Current jitter in milliseconds."""
        return self._jitter / 1000.0

    def jitter_max_ms(self) -> float:
        """Highest jitter seen so far, in milliseconds."""
        return self._jitter_max / 1000.0


@dataclass
class PacketTracker:
    """Loss and reordering detection from packet sequence numbers."""

    expected_sequence: int = 0
    received: int = 0
    lost: int = 0
    out_of_order: int = 0
    highest_seen: int = 0

    def record(self, sequence: int) -> None:
        self.received += 1
        if sequence < self.expected_sequence:
            self.out_of_order += 1
        else:
            if sequence > self.expected_sequence:
                self.lost += sequence - self.expected_sequence
            self.expected_sequence = sequence + 1
        self.highest_seen = max(self.highest_seen, sequence)

    def stats(self, packets_sent: int) -> Tuple[int, int, float]:
        """Return ``(lost, out_of_order, loss_percent)``."""
        loss_percent = self.lost / packets_sent * 100.0 if packets_sent > 0 else 0.0
        return self.lost, self.out_of_order, loss_percent


def pacing_plan(target_bitrate: int) -> Tuple[float, int]:
    """Return ``(interval_seconds, packets_per_tick)`` for a target bitrate.

    Above HIGH_PPS_THRESHOLD packets per second, BURST_SIZE packets are sent
    per tick to keep timer overhead down. Raises ValueError for a zero or
    negative bitrate, which means unlimited and is not paced.
    """
    if target_bitrate <= 0:
        raise ValueError("pacing needs a positive target bitrate")
    packets_per_sec = target_bitrate / (UDP_PAYLOAD_SIZE * 8)
    if packets_per_sec > HIGH_PPS_THRESHOLD:
        return BURST_SIZE / packets_per_sec, BURST_SIZE
    return 1.0 / packets_per_sec, 1


async def _wait_fd(sock: socket.socket, readable: bool) -> None:
    loop = asyncio.get_running_loop()
    fut = loop.create_future()

    def ready() -> None:
        if not fut.done():
            fut.set_result(None)

    fd = sock.fileno()
    if readable:
        loop.add_reader(fd, ready)
    else:
        loop.add_writer(fd, ready)
    try:
        await fut
    finally:
        if readable:
            loop.remove_reader(fd)
        else:
            loop.remove_writer(fd)


async def _send(sock: socket.socket, data, target: Optional[Address]) -> int:
    while True:
        try:
            return sock.sendto(data, target) if target is not None else sock.send(data)
        except (BlockingIOError, InterruptedError):
            await _wait_fd(sock, readable=False)


async def _recvfrom(sock: socket.socket, size: int) -> Tuple[bytes, Address]:
    while True:
        try:
            return sock.recvfrom(size)
        except (BlockingIOError, InterruptedError):
            await _wait_fd(sock, readable=True)


async def _sleep_unless_signalled(delay: float, flags: Iterable[Flag]) -> bool:
    """Sleep for ``delay``; return False early if any flag changes first."""
    sleeper = asyncio.ensure_future(asyncio.sleep(delay))
    watchers = [asyncio.ensure_future(flag.wait_changed()) for flag in flags]
    try:
        done, _ = await asyncio.wait({sleeper, *watchers}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [task for task in (sleeper, *watchers) if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    return sleeper in done and not any(watcher in done for watcher in watchers)


@dataclass
class _PacketSender:
    sock: socket.socket
    target: Optional[Address]
    stats: StreamStats
    packet: bytearray
    start: float
    sequence: int = 0

    async def send_one(self, now: float) -> None:
        timestamp_us = max(0, int((now - self.start) * 1_000_000))
        _HEADER.pack_into(self.packet, 0, self.sequence, timestamp_us)
        try:
            sent = await _send(self.sock, self.packet, self.target)
        except OSError as exc:
            # UDP is best effort: keep going.
            log.warning("UDP send error: %s", exc)
            return
        self.stats.add_bytes_sent(sent)
        self.sequence += 1

    async def burst(
        self, count: int, cancel: Flag, pause: Flag, deadline: Optional[float]
    ) -> None:
        loop = asyncio.get_running_loop()
        for _ in range(count):
            if cancel.is_set() or pause.is_set():
                return
            now = loop.time()
            if deadline is not None and now >= deadline:
                return
            await self.send_one(now)

    def result(self) -> UdpSendStats:
        return UdpSendStats(
            packets_sent=self.sequence,
            bytes_sent=self.sequence * len(self.packet),
        )


def _new_packet(random_payload: bool) -> bytearray:
    packet = bytearray(UDP_PAYLOAD_SIZE)
    if random_payload:
        packet[UDP_HEADER_SIZE:] = os.urandom(UDP_PAYLOAD_SIZE - UDP_HEADER_SIZE)
    return packet


async def send_udp_paced(
    sock: socket.socket,
    target: Optional[Address],
    target_bitrate: int,
    duration: float,
    stats: StreamStats,
    cancel: Flag,
    pause: Flag,
    random_payload: bool,
) -> UdpSendStats:
    """Send test datagrams at ``target_bitrate`` bits per second for ``duration`` seconds.

    A bitrate of 0 sends as fast as possible; a duration of 0 runs until
    cancelled. With ``target`` set, datagrams go to that address
    (unconnected socket); otherwise the socket must be connected. The socket
    is switched to non-blocking mode.
    """
    sock.setblocking(False)
    loop = asyncio.get_running_loop()
    start = loop.time()
    deadline = None if duration <= 0 else start + duration
    sender = _PacketSender(sock, target, stats, _new_packet(random_payload), start)

    if target_bitrate == 0:
        log.debug("UDP unlimited mode: sending as fast as possible")
        while True:
            if cancel.is_set():
                log.debug("UDP send cancelled")
                break
            if pause.is_set():
                if await wait_while_paused(pause, cancel):
                    break
                continue
            if deadline is not None and loop.time() >= deadline:
                break
            await sender.burst(BURST_SIZE, cancel, pause, deadline)
            await asyncio.sleep(0)
        return sender.result()

    interval, per_tick = pacing_plan(target_bitrate)
    log.debug(
        "UDP pacing: %.0f packets/sec, interval %.6fs, %d packets/tick",
        target_bitrate / (UDP_PAYLOAD_SIZE * 8),
        interval,
        per_tick,
    )
    next_tick = start
    while True:
        if cancel.is_set():
            log.debug("UDP send cancelled")
            break
        if pause.is_set():
            if await wait_while_paused(pause, cancel):
                break
            continue
        delay = max(next_tick - loop.time(), 0.0)
        if not await _sleep_unless_signalled(delay, (cancel, pause)):
            continue
        next_tick += interval
        if deadline is not None and loop.time() >= deadline:
            break
        await sender.burst(per_tick, cancel, pause, deadline)
    return sender.result()


async def receive_udp(
    sock: socket.socket, stats: StreamStats, cancel: Flag, pause: Flag
) -> Tuple[UdpStats, int]:
    """Receive test datagrams until cancelled or the sender goes quiet.

    Returns the final statistics and the inferred number of packets sent
    (received plus lost). The socket is switched to non-blocking mode.
    """
    sock.setblocking(False)
    jitter = JitterCalculator()
    tracker = PacketTracker()
    packets_received = 0
    last_recv = time.monotonic()

    while True:
        if cancel.is_set():
            log.debug("UDP receive cancelled")
            break
        if pause.is_set():
            if await wait_while_paused(pause, cancel):
                break
            last_recv = time.monotonic()
            continue
        if time.monotonic() - last_recv > UDP_INACTIVITY_TIMEOUT:
            log.debug("UDP receive timeout: no packets for %.0fs", UDP_INACTIVITY_TIMEOUT)
            break
        try:
            data, _ = await asyncio.wait_for(
                _recvfrom(sock, UDP_PAYLOAD_SIZE + 100), _RECV_POLL
            )
        except asyncio.TimeoutError:
            continue
        except OSError as exc:
            log.warning("UDP receive error: %s", exc)
            continue

        recv_time = time.monotonic()
        last_recv = recv_time
        stats.add_bytes_received(len(data))
        packets_received += 1
        try:
            header = UdpPacketHeader.decode(data)
        except ValueError:
            continue
        old_lost = tracker.lost
        tracker.record(header.sequence)
        jitter_us = jitter.update(header.timestamp_us, recv_time)
        stats.set_udp_jitter_us(int(jitter_us))
        if tracker.lost > old_lost:
            stats.add_udp_lost(tracker.lost - old_lost)

    lost, out_of_order, _ = tracker.stats(packets_received + tracker.lost)
    packets_sent = packets_received + lost
    lost_percent = lost / packets_sent * 100.0 if packets_sent > 0 else 0.0
    result = UdpStats(
        packets_sent=packets_sent,
        packets_received=packets_received,
        lost=lost,
        lost_percent=lost_percent,
        jitter_ms=jitter.jitter_ms(),
        out_of_order=out_of_order,
        jitter_max_ms=jitter.jitter_max_ms(),
        packet_size=UDP_PAYLOAD_SIZE,
    )
    return result, packets_sent


async def wait_for_client(sock: socket.socket, timeout: float) -> Address:
    """Wait for the first datagram and return the sender's address.

    Raises TimeoutError if nothing arrives within ``timeout`` seconds and
    OSError if receiving fails.
    """
    sock.setblocking(False)
    try:
        _, addr = await asyncio.wait_for(_recvfrom(sock, 64), timeout)
    except asyncio.TimeoutError:
        raise TimeoutError("Timeout waiting for UDP client") from None
    except OSError as exc:
        raise OSError(f"Failed to receive from client: {exc}") from exc
    log.debug("UDP client connected from %s", addr)
    return addr