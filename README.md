# xfr

Building blocks for network bandwidth testing on asyncio: a bulk TCP receive
loop with socket tuning, paced UDP sending and receiving with RFC 3550 jitter
and loss tracking, kernel TCP statistics, colour themes, and small value types
for a client display.

## Install

```
pip install .
```

Python 3.10 or later. No third-party dependencies.

## Modules

- `xfr.counters`
  - `StreamStats`: per-stream counters (`bytes_sent`, `bytes_received`,
    `retransmits`, `udp_jitter_us`, `udp_lost`) with `add_bytes_sent`,
    `add_bytes_received`, `add_retransmits`, `set_udp_jitter_us`, `add_udp_lost`.
  - `Flag`: an awaitable boolean used for cancel and pause signals
    (`set`, `is_set`, `wait_changed`).
  - `wait_while_paused(pause, cancel)`: waits while `pause` is set; returns
    True if `cancel` was set first.
- `xfr.tcp_info`
  - `TcpInfoSnapshot`: retransmits, RTT, RTT variance, congestion window and,
    where the kernel reports it, bytes acknowledged.
  - `get_tcp_info(sock)` / `get_tcp_info_from_fd(fd)`: read these from the
    kernel on Linux and macOS (zeros on other platforms); raise `OSError`
    if the query fails.
  - `parse_linux_tcp_info(data)`: decode a raw Linux `TCP_INFO` buffer,
    including short buffers from older kernels.
- `xfr.tcp_config`
  - `TcpConfig`: 128 KiB buffers by default, `nodelay` off, and
    `window_size=None` so kernel buffer auto-tuning is left alone.
  - `is_peer_closed_error`, `clamp_bytes_sent_to_acked`,
    `pacing_rate_bytes_per_sec` (bits to bytes, rounded up) and
    `send_buffer_size` (caps writes to about a tenth of a second at a target
    bitrate).
- `xfr.tcp_socket`
  - `configure_socket_buffers` (raises `ValueError` for sizes that are not
    positive or do not fit a C int), `set_tcp_congestion`,
    `try_set_pacing_rate`, `validate_congestion` (raises `ValueError`,
    listing the kernel's available algorithms when it can) and
    `configure_stream`. Congestion control and kernel pacing act on Linux only.
- `xfr.tcp_receive`
  - `receive_data(reader, writer, stats, cancel, config)`: counts received
    bytes until EOF or cancel, drains briefly after a cancel, closes the
    connection and returns the final `TcpInfoSnapshot` (or None).
  - `drain_after_cancel(reader, stream_id)`: reads for up to 200 ms without
    counting, returning the number of bytes discarded.
- `xfr.udp`
  - `UdpPacketHeader`: 16-byte header, big-endian sequence and timestamp in
    microseconds relative to the sender's start; `decode` raises `ValueError`
    on short data.
  - `JitterCalculator` (`update`, `jitter_ms`, `jitter_max_ms`),
    `PacketTracker` (`record`, `stats`), `UdpSendStats`, `UdpStats`.
  - `pacing_plan(target_bitrate)`: interval and packets per tick; above
    100,000 packets per second, 100 packets go out per tick.
  - `send_udp_paced(...)`: sends 1400-byte datagrams at a target bitrate
    (0 means unlimited) for a duration (0 means until cancelled).
  - `receive_udp(sock, stats, cancel, pause)`: stops on cancel or after 30 s
    without packets; returns `(UdpStats, packets_sent)`.
  - `wait_for_client(sock, timeout)`: address of the first datagram; raises
    `TimeoutError`.
- `xfr.theme`
  - `Theme` with eleven built-in themes; `Theme.by_name` is case-insensitive,
    accepts aliases such as `mono` or `tokyo`, and falls back to the default;
    `Theme.names()` lists them in display order.
- `xfr.app_model`
  - `AppState`, `StreamData`, `LogEntry`, `JitterDisplay`, and
    `sanitize_server_version`, which strips control characters, keeps at most
    32 characters and turns an empty result into `(unknown)`.

## Examples

```python
from xfr.udp import UdpPacketHeader, PacketTracker

header = UdpPacketHeader(sequence=12345, timestamp_us=67890)
assert UdpPacketHeader.decode(header.encode()) == header

tracker = PacketTracker()
for seq in (0, 1, 2, 4, 3):
    tracker.record(seq)
lost, out_of_order, loss_percent = tracker.stats(5)  # (1, 1, 20.0)
```

```python
from xfr.app_model import sanitize_server_version

sanitize_server_version("xfr/0.9.9\x1b[31m")  # "xfr/0.9.9[31m"
```

## What this package does not do

- There is no TCP sending loop. `send_buffer_size`,
  `pacing_rate_bytes_per_sec`, `try_set_pacing_rate` and
  `clamp_bytes_sent_to_acked` are the pieces one would be built from.
- There is no control protocol, client or server, and no command-line
  program: the caller opens sockets and drives the loops.
- There is no terminal interface. `Theme` and the types in `xfr.app_model`
  describe what a display would show, but nothing here draws a screen,
  holds a settings menu or tracks a running test for display.
- There is no check for newer releases.

## Tests

```
pip install .[test]
pytest
```