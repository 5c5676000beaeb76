"""Plain value types shown by the client interface."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_MAX_SERVER_VERSION_LEN = 32
_UNKNOWN_VERSION = "(unknown)"


class AppState(Enum):
    CONNECTING = "connecting"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class StreamData:
    """Latest per-stream figures for display."""

    id: int
    bytes: int = 0
    throughput_mbps: float = 0.0
    retransmits: int = 0
    jitter_ms: Optional[float] = None


@dataclass(frozen=True)
class LogEntry:
    """One line of the history panel."""

    timestamp: str
    message: str


@dataclass(frozen=True)
class JitterDisplay:
    """Jitter values for the UDP stats panel.

    ``primary`` is the latest aggregate while running, or the final value once
    complete; ``smoothed`` is the rolling mean, present only while running.
    """

    primary: float
    smoothed: Optional[float] = None


def sanitize_server_version(raw: str) -> str:
    """Make a server-advertised version string safe to show in a terminal.

    Control characters are removed, the result is cut to 32 characters, and
    an empty result becomes ``(unknown)``.
    """
    cleaned = "".join(ch for ch in raw if unicodedata.category(ch) != "Cc")
    cleaned = cleaned[:_MAX_SERVER_VERSION_LEN]
    return cleaned or _UNKNOWN_VERSION