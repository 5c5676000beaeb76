"""TCP transfer settings and the pure accounting rules used by the data paths."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from xfr.counters import StreamStats
from xfr.tcp_info import TcpInfoSnapshot

DEFAULT_BUFFER_SIZE = 128 * 1024
# Write errors this close to the deadline count as normal teardown.
SEND_TEARDOWN_GRACE = 0.25
# How long a cancelled receiver keeps reading so the peer can stop cleanly
# before the socket is dropped; drained bytes are not counted.
RECEIVE_CANCEL_DRAIN_GRACE = 0.2

_U64_MAX = 2**64 - 1


@dataclass
class TcpConfig:
    """Buffer and socket tuning for one TCP data stream.

    ``window_size`` of None leaves SO_SNDBUF/SO_RCVBUF to kernel autotuning.
    """

    buffer_size: int = DEFAULT_BUFFER_SIZE
    nodelay: bool = False
    window_size: Optional[int] = None
    congestion: Optional[str] = None
    random_payload: bool = False


def is_peer_closed_error(err: BaseException) -> bool:
    """True for errors meaning the peer reset or closed the connection."""
    return isinstance(
        err, (ConnectionResetError, BrokenPipeError, ConnectionAbortedError)
    )


def clamp_bytes_sent_to_acked(stats: StreamStats, info: TcpInfoSnapshot) -> None:
    """Lower ``stats.bytes_sent`` to the acknowledged byte count, if known.

    An abortive close discards unacknowledged send-buffer data, so counting it
    as sent would overstate throughput. The counter is never raised.
    """
    acked = info.bytes_acked
    if acked is not None and acked < stats.bytes_sent:
        stats.bytes_sent = acked


def pacing_rate_bytes_per_sec(bitrate_bps: int) -> int:
    """Convert a bitrate to a kernel pacing rate in bytes per second.

    Rounds up so that tiny nonzero bitrates still give a nonzero rate;
    zero stays zero (pacing disabled).
    """
    if bitrate_bps == 0:
        return 0
    return min(bitrate_bps + 7, _U64_MAX) // 8


def send_buffer_size(config: TcpConfig, bitrate: Optional[int]) -> int:
    """Size of each write, capped for rate-limited sends.

    With a target bitrate the buffer aims at ten or more writes a second, so the
    first write does not burst far past the budget.
    """
    if bitrate:
        bytes_per_sec = bitrate // 8
        return min(config.buffer_size, max(bytes_per_sec // 10, 1))
    return config.buffer_size