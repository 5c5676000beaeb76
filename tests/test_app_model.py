import pytest

from xfr.app_model import (
    AppState,
    JitterDisplay,
    LogEntry,
    StreamData,
    sanitize_server_version,
)


def test_sanitize_server_version_strips_control_bytes():
    dirty = "xfr/\x1b[2J\x1b[Hmalicious\r\n\x00"
    assert sanitize_server_version(dirty) == "xfr/[2J[Hmalicious"


def test_sanitize_server_version_caps_length():
    cleaned = sanitize_server_version("x" * 10_000)
    assert len(cleaned) <= 32
    assert cleaned.startswith("xxxxx")


def test_sanitize_server_version_falls_back_for_empty_or_all_control():
    assert sanitize_server_version("") == "(unknown)"
    assert sanitize_server_version("\x1b\x00\r\n") == "(unknown)"


def test_sanitize_keeps_clean_version():
    assert sanitize_server_version("xfr/0.9.8") == "xfr/0.9.8"


def test_sanitize_strips_escape_suffix():
    assert sanitize_server_version("xfr/0.9.9\x1b[31m") == "xfr/0.9.9[31m"


def test_sanitize_keeps_printable_unicode_and_strips_delete():
    assert sanitize_server_version("xfr ↔ é\x7f") == "xfr ↔ é"


def test_sanitize_cap_applies_after_filtering():
    raw = "\x1b" * 40 + "v" * 40
    cleaned = sanitize_server_version(raw)
    assert cleaned == "v" * 32


def test_stream_data_defaults_and_mutation():
    stream = StreamData(id=3)
    assert (stream.bytes, stream.retransmits, stream.jitter_ms) == (0, 0, None)
    stream.bytes = 1000
    assert stream.bytes == 1000


def test_jitter_display_equality_and_immutability():
    assert JitterDisplay(primary=1.5) == JitterDisplay(primary=1.5, smoothed=None)
    assert JitterDisplay(1.0, 2.0) != JitterDisplay(1.0, None)
    with pytest.raises(AttributeError):
        JitterDisplay(1.0).primary = 2.0  # type: ignore[misc]


def test_log_entry_is_frozen():
    entry = LogEntry(timestamp="00:00:00", message="Connected to server.")
    assert entry.message == "Connected to server."
    with pytest.raises(AttributeError):
        entry.message = "x"  # type: ignore[misc]


def test_app_states_are_distinct():
    assert len(set(AppState)) == 5
    assert AppState("paused") is AppState.PAUSED