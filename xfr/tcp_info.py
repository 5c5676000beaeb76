"""Kernel TCP statistics (RTT, congestion window, retransmits) for a socket."""

from __future__ import annotations

import socket
import struct
import sys
from dataclasses import dataclass
from typing import Optional

# Linux struct tcp_info prefix: 8 u8 fields, 24 u32 fields, then
# pacing_rate, max_pacing_rate and bytes_acked as u64.
_LINUX_LAYOUT = struct.Struct("=8B24I3Q")
_LINUX_TCP_INFO = getattr(socket, "TCP_INFO", 11)
_LINUX_RTT, _LINUX_RTTVAR, _LINUX_CWND, _LINUX_TOTAL_RETRANS = 15, 16, 18, 23

# macOS struct tcp_connection_info: 4 u8, 24 u32, 4 bytes padding, 7 u64.
_MACOS_LAYOUT = struct.Struct("=4B24I4x7Q")
_MACOS_TCP_CONNECTION_INFO = 0x106


@dataclass(frozen=True)
class TcpInfoSnapshot:
    """Connection-level TCP counters read from the kernel."""

    retransmits: int
    rtt_us: int
    rtt_var_us: int
    cwnd: int
    bytes_acked: Optional[int] = None


def parse_linux_tcp_info(data: bytes) -> TcpInfoSnapshot:
    """Decode a Linux ``TCP_INFO`` buffer.

    Older kernels return a shorter struct; missing fields read as zero, and
    ``bytes_acked`` is reported only when the buffer covers it.
    """
    padded = bytes(data[: _LINUX_LAYOUT.size]).ljust(_LINUX_LAYOUT.size, b"\0")
    values = _LINUX_LAYOUT.unpack(padded)
    words = values[8:32]
    bytes_acked = values[34] if len(data) >= _LINUX_LAYOUT.size else None
    return TcpInfoSnapshot(
        retransmits=words[_LINUX_TOTAL_RETRANS],
        rtt_us=words[_LINUX_RTT],
        rtt_var_us=words[_LINUX_RTTVAR],
        cwnd=words[_LINUX_CWND],
        bytes_acked=bytes_acked,
    )


def _parse_macos_connection_info(data: bytes) -> TcpInfoSnapshot:
    padded = bytes(data[: _MACOS_LAYOUT.size]).ljust(_MACOS_LAYOUT.size, b"\0")
    values = _MACOS_LAYOUT.unpack(padded)
    words = values[4:28]
    wide = values[28:]
    return TcpInfoSnapshot(
        retransmits=wide[6],
        rtt_us=words[10],
        rtt_var_us=words[11],
        cwnd=words[5],
        bytes_acked=None,
    )


def get_tcp_info_from_fd(fd: int) -> TcpInfoSnapshot:
    """Read TCP statistics for the socket behind a raw file descriptor.

    Raises OSError if the kernel query fails.
    """
    if sys.platform.startswith("linux"):
        level, option, size, parse = (
            socket.IPPROTO_TCP, _LINUX_TCP_INFO, _LINUX_LAYOUT.size, parse_linux_tcp_info,
        )
    elif sys.platform == "darwin":
        level, option, size, parse = (
            socket.IPPROTO_TCP,
            _MACOS_TCP_CONNECTION_INFO,
            _MACOS_LAYOUT.size,
            _parse_macos_connection_info,
        )
    else:
        return TcpInfoSnapshot(retransmits=0, rtt_us=0, rtt_var_us=0, cwnd=0)

    with socket.fromfd(fd, socket.AF_INET, socket.SOCK_STREAM) as dup:
        data = dup.getsockopt(level, option, size)
    return parse(data)


def get_tcp_info(sock: socket.socket) -> TcpInfoSnapshot:
    """Read TCP statistics for a socket object."""
    return get_tcp_info_from_fd(sock.fileno())