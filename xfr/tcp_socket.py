"""Socket options for TCP data streams: buffers, congestion control, pacing."""

from __future__ import annotations

import logging
import socket
import struct
import sys
from pathlib import Path

from xfr.tcp_config import TcpConfig, pacing_rate_bytes_per_sec

log = logging.getLogger(__name__)

_INT_MAX = 2**31 - 1
_ULONG = struct.Struct("L")
_ULONG_MAX = 2 ** (8 * _ULONG.size) - 1
_TCP_CONGESTION = getattr(socket, "TCP_CONGESTION", 13)
_SO_MAX_PACING_RATE = getattr(socket, "SO_MAX_PACING_RATE", 47)
_AVAILABLE_CONGESTION = Path("/proc/sys/net/ipv4/tcp_available_congestion_control")


def _is_linux() -> bool:
    return sys.platform.startswith("linux")


def configure_socket_buffers(sock, buffer_size: int) -> None:
    """Set SO_SNDBUF and SO_RCVBUF to ``buffer_size``.

    Raises ValueError for sizes that do not fit a C int or are not positive.
    A kernel refusing the option is only logged.
    """
    if buffer_size > _INT_MAX:
        raise ValueError(
            f"window size {buffer_size} exceeds platform maximum ({_INT_MAX} bytes)"
        )
    if buffer_size <= 0:
        raise ValueError("window size must be greater than zero")
    for option, name in ((socket.SO_SNDBUF, "SO_SNDBUF"), (socket.SO_RCVBUF, "SO_RCVBUF")):
        try:
            sock.setsockopt(socket.SOL_SOCKET, option, buffer_size)
        except OSError as exc:
            log.debug("Failed to set %s to %d: %s", name, buffer_size, exc)


def set_tcp_congestion(sock, algo: str) -> None:
    """Select the congestion control algorithm (Linux only; a no-op elsewhere).

    Raises OSError if the kernel rejects the algorithm.
    """
    if not _is_linux():
        return
    sock.setsockopt(socket.IPPROTO_TCP, _TCP_CONGESTION, algo.encode())


def try_set_pacing_rate(sock, bitrate_bps: int) -> bool:
    """Ask the kernel to pace the socket at ``bitrate_bps``.

    Returns True if kernel pacing is active, False if the caller must pace in
    user space.
    """
    if not _is_linux():
        return False
    rate = min(pacing_rate_bytes_per_sec(bitrate_bps), _ULONG_MAX)
    try:
        sock.setsockopt(socket.SOL_SOCKET, _SO_MAX_PACING_RATE, _ULONG.pack(rate))
    except OSError as exc:
        log.warning("SO_MAX_PACING_RATE failed, using userspace pacing: %s", exc)
        return False
    return True


def validate_congestion(algo: str) -> None:
    """Check that a congestion control algorithm is available.

    Raises ValueError describing the problem; always passes off Linux.
    """
    if not _is_linux():
        return
    try:
        probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        raise ValueError(f"failed to create test socket: {exc}") from exc
    with probe:
        try:
            probe.setsockopt(socket.IPPROTO_TCP, _TCP_CONGESTION, algo.encode())
        except OSError as exc:
            message = "not available on this kernel"
            try:
                available = _AVAILABLE_CONGESTION.read_text()
            except OSError:
                pass
            else:
                message = f"not available (available: {available.strip()})"
            raise ValueError(message) from exc


def configure_stream(sock, config: TcpConfig) -> None:
    """Apply nodelay, window size and congestion settings from ``config``."""
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, int(config.nodelay))
    if config.window_size is not None:
        configure_socket_buffers(sock, config.window_size)
    if config.congestion is not None:
        set_tcp_congestion(sock, config.congestion)