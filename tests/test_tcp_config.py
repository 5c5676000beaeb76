import pytest

from xfr.counters import StreamStats
from xfr.tcp_config import (
    DEFAULT_BUFFER_SIZE,
    TcpConfig,
    clamp_bytes_sent_to_acked,
    is_peer_closed_error,
    pacing_rate_bytes_per_sec,
    send_buffer_size,
)
from xfr.tcp_info import TcpInfoSnapshot


def _info(bytes_acked):
    return TcpInfoSnapshot(
        retransmits=0, rtt_us=1000, rtt_var_us=100, cwnd=10, bytes_acked=bytes_acked
    )


def test_default_config_leaves_kernel_autotune_alone():
    config = TcpConfig()
    assert config.buffer_size == DEFAULT_BUFFER_SIZE == 128 * 1024
    assert config.nodelay is False
    assert config.window_size is None
    assert config.congestion is None
    assert config.random_payload is False


def test_clamp_bytes_sent_to_acked_reduces_overcount():
    stats = StreamStats(0)
    stats.add_bytes_sent(1000)
    clamp_bytes_sent_to_acked(stats, _info(800))
    assert stats.bytes_sent == 800


def test_clamp_bytes_sent_to_acked_no_change_when_acked_exceeds_sent():
    stats = StreamStats(0)
    stats.add_bytes_sent(500)
    clamp_bytes_sent_to_acked(stats, _info(999))
    assert stats.bytes_sent == 500


def test_clamp_bytes_sent_to_acked_none_is_noop():
    stats = StreamStats(0)
    stats.add_bytes_sent(1000)
    clamp_bytes_sent_to_acked(stats, _info(None))
    assert stats.bytes_sent == 1000


def test_clamp_to_zero_acked():
    stats = StreamStats(3)
    stats.add_bytes_sent(4096)
    clamp_bytes_sent_to_acked(stats, _info(0))
    assert stats.bytes_sent == 0


@pytest.mark.parametrize(
    "bitrate,expected",
    [(0, 0), (1, 1), (7, 1), (8, 1), (9, 2), (100_000_000, 12_500_000)],
)
def test_pacing_rate_bytes_per_sec_conversion(bitrate, expected):
    assert pacing_rate_bytes_per_sec(bitrate) == expected


def test_pacing_rate_saturates_at_u64_max():
    assert pacing_rate_bytes_per_sec(2**64 - 1) == 2305843009213693951


@pytest.mark.parametrize(
    "err,expected",
    [
        (ConnectionResetError(), True),
        (BrokenPipeError(), True),
        (ConnectionAbortedError(), True),
        (ConnectionRefusedError(), False),
        (TimeoutError(), False),
        (OSError("other"), False),
    ],
)
def test_is_peer_closed_error(err, expected):
    assert is_peer_closed_error(err) is expected


def test_send_buffer_size_without_bitrate_uses_config():
    config = TcpConfig(buffer_size=64 * 1024)
    assert send_buffer_size(config, None) == 64 * 1024
    assert send_buffer_size(config, 0) == 64 * 1024


def test_send_buffer_size_caps_for_low_bitrate():
    config = TcpConfig()
    # 1 Mbps -> 125000 B/s -> 12500 bytes per write
    assert send_buffer_size(config, 1_000_000) == 12_500


def test_send_buffer_size_never_exceeds_config_or_drops_below_one():
    config = TcpConfig(buffer_size=1000)
    assert send_buffer_size(config, 10_000_000_000) == 1000
    assert send_buffer_size(config, 8) == 1