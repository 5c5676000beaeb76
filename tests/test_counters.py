import asyncio

import pytest

from xfr.counters import Flag, StreamStats, wait_while_paused


def test_stream_stats_starts_at_zero():
    stats = StreamStats(3)
    assert stats.stream_id == 3
    assert (stats.bytes_sent, stats.bytes_received, stats.retransmits) == (0, 0, 0)
    assert (stats.udp_jitter_us, stats.udp_lost) == (0, 0)


def test_stream_stats_accumulates():
    stats = StreamStats(0)
    stats.add_bytes_sent(1000)
    stats.add_bytes_sent(500)
    stats.add_bytes_received(200)
    stats.add_retransmits(4)
    stats.add_udp_lost(2)
    stats.add_udp_lost(3)
    assert stats.bytes_sent == 1500
    assert stats.bytes_received == 200
    assert stats.retransmits == 4
    assert stats.udp_lost == 5


def test_set_udp_jitter_replaces_value():
    stats = StreamStats(0)
    stats.set_udp_jitter_us(120)
    stats.set_udp_jitter_us(80)
    assert stats.udp_jitter_us == 80


def test_flag_set_and_read():
    flag = Flag()
    assert flag.is_set() is False
    flag.set(True)
    assert flag.is_set() is True
    assert bool(flag) is True


@pytest.mark.asyncio
async def test_flag_wait_changed_returns_new_value():
    flag = Flag()

    async def setter():
        await asyncio.sleep(0.01)
        flag.set(True)

    task = asyncio.ensure_future(setter())
    value = await asyncio.wait_for(flag.wait_changed(), timeout=1)
    await task
    assert value is True


@pytest.mark.asyncio
async def test_wait_while_paused_returns_false_when_not_paused():
    assert await wait_while_paused(Flag(False), Flag(False)) is False


@pytest.mark.asyncio
async def test_wait_while_paused_returns_true_when_already_cancelled():
    assert await wait_while_paused(Flag(True), Flag(True)) is True


@pytest.mark.asyncio
async def test_wait_while_paused_resumes():
    pause, cancel = Flag(True), Flag(False)

    async def resume():
        await asyncio.sleep(0.01)
        pause.set(False)

    task = asyncio.ensure_future(resume())
    result = await asyncio.wait_for(wait_while_paused(pause, cancel), timeout=1)
    await task
    assert result is False


@pytest.mark.asyncio
async def test_wait_while_paused_cancelled_during_pause():
    pause, cancel = Flag(True), Flag(False)

    async def stop():
        await asyncio.sleep(0.01)
        cancel.set(True)

    task = asyncio.ensure_future(stop())
    result = await asyncio.wait_for(wait_while_paused(pause, cancel), timeout=1)
    await task
    assert result is True