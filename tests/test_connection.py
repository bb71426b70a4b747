"""Tests for the link session supervisor."""

import asyncio

import pytest

from pystealthtech.connection import ConnectionManager
from pystealthtech.exceptions import CommunicationError
from pystealthtech.protocol import StealthTechProtocol
from tests.helpers import DEVICE_ADDRESS, settle


def _volume(value):
    return StealthTechProtocol.command_set_volume(value)


async def test_queued_commands_share_one_connect_and_keep_order(transport, connection):
    transport.connect_delay = 0.01
    await asyncio.gather(
        connection.enqueue(_volume(1)),
        connection.enqueue(_volume(2)),
        connection.enqueue(_volume(3)),
    )
    assert len(transport.connect_calls) == 1
    assert [data[-1] for data in transport.payloads] == [1, 2, 3]
    assert connection.is_connected


async def test_concurrent_connect_requests_are_coalesced(transport, connection):
    transport.connect_delay = 0.02
    await asyncio.gather(connection.ensure_connected(), connection.ensure_connected())
    assert len(transport.connect_calls) == 1


async def test_connected_link_is_reused(transport, connection):
    await connection.enqueue(_volume(1))
    await connection.enqueue(_volume(2))
    assert len(transport.connect_calls) == 1
    assert transport.subscribe_calls == 1


async def test_failed_write_is_retried_once_after_reconnect(transport, connection):
    await connection.ensure_connected()
    transport.write_failures = 1

    await connection.enqueue(_volume(10))

    assert transport.disconnect_calls == 1
    assert len(transport.connect_calls) == 2
    assert transport.payloads == [_volume(10).data]


async def test_second_failure_raises_and_queue_keeps_running(transport, connection):
    await connection.ensure_connected()
    transport.write_failures = 2

    with pytest.raises(CommunicationError) as exc_info:
        await connection.enqueue(_volume(10))
    assert exc_info.value.__cause__ is not None
    assert transport.disconnect_calls == 1

    await connection.enqueue(_volume(11))
    assert transport.payloads == [_volume(11).data]


async def test_connect_failure_is_reported_and_not_left_half_open(transport, connection):
    transport.connect_failures = 2
    with pytest.raises(CommunicationError):
        await connection.enqueue(_volume(5))
    assert not connection.is_connected

    await connection.enqueue(_volume(6))
    assert connection.is_connected
    assert transport.payloads == [_volume(6).data]


async def test_dropped_link_reconnects_on_next_command(transport, connection):
    await connection.enqueue(_volume(1))
    transport.drop()
    assert not connection.is_connected

    await connection.enqueue(_volume(2))
    assert len(transport.connect_calls) == 2
    assert transport.subscribe_calls == 2


async def test_auto_discovered_address_is_pinned(transport, connection):
    assert connection.resolved_address == ""
    await connection.enqueue(_volume(1))
    assert connection.resolved_address == DEVICE_ADDRESS

    await connection.disconnect()
    await connection.enqueue(_volume(2))
    assert transport.connect_calls == [None, DEVICE_ADDRESS]


async def test_configured_address_is_always_used(transport):
    connection = ConnectionManager(transport, address="11:22:33:44:55:66", idle_timeout=0)
    try:
        await connection.enqueue(_volume(1))
        await connection.disconnect()
        await connection.enqueue(_volume(2))
    finally:
        await connection.close()
    assert transport.connect_calls == ["11:22:33:44:55:66", "11:22:33:44:55:66"]


async def test_reconnect_callback_fires_once_per_connect(transport, connection):
    calls = []
    connection.on_reconnect(lambda: calls.append("connected"))

    await connection.enqueue(_volume(1))
    await connection.enqueue(_volume(2))
    assert calls == ["connected"]

    await connection.disconnect()
    await connection.enqueue(_volume(3))
    assert calls == ["connected", "connected"]


async def test_reconnect_callback_errors_do_not_break_commands(transport, connection):
    def broken():
        raise RuntimeError("boom")

    connection.on_reconnect(broken)
    await connection.enqueue(_volume(1))
    assert transport.payloads == [_volume(1).data]


async def test_disconnect_callback_only_for_established_links(transport, connection):
    calls = []
    connection.on_disconnect(lambda: calls.append("disconnected"))

    await connection.disconnect()
    assert calls == []

    await connection.ensure_connected()
    await connection.disconnect()
    await connection.disconnect()
    assert calls == ["disconnected"]


async def test_disconnect_when_never_connected_is_safe(connection):
    await connection.disconnect()
    await connection.disconnect()
    assert not connection.is_connected


async def test_notifications_are_forwarded(transport, connection):
    received = []
    connection.set_notification_handler(received.append)
    await connection.ensure_connected()

    transport.notify(b"\xcc\x05\xaa\x02\x01\x14")
    assert received == [b"\xcc\x05\xaa\x02\x01\x14"]


async def test_idle_link_is_released(transport):
    connection = ConnectionManager(transport, idle_timeout=0.05)
    try:
        await connection.enqueue(_volume(1))
        assert connection.is_connected
        await settle(0.15)
        assert not connection.is_connected
        assert transport.disconnect_calls == 1
    finally:
        await connection.close()


async def test_notifications_keep_the_link_alive(transport):
    connection = ConnectionManager(transport, idle_timeout=0.1)
    try:
        await connection.enqueue(_volume(1))
        for _ in range(4):
            await settle(0.05)
            transport.notify(b"\xcc\x05\xaa\x02\x01\x14")
        assert connection.is_connected

        await settle(0.25)
        assert not connection.is_connected
    finally:
        await connection.close()


async def test_zero_idle_timeout_keeps_link_open(transport, connection):
    await connection.enqueue(_volume(1))
    await settle(0.05)
    assert connection.is_connected
    assert transport.disconnect_calls == 0


async def test_close_disconnects(transport, connection):
    await connection.enqueue(_volume(1))
    await connection.close()
    assert not connection.is_connected
    assert transport.disconnect_calls == 1


async def test_dropped_link_is_reported_before_reconnect(transport, connection):
    events = []
    connection.on_reconnect(lambda: events.append("connected"))
    connection.on_disconnect(lambda: events.append("disconnected"))

    await connection.enqueue(_volume(1))
    transport.drop()
    await connection.enqueue(_volume(2))

    assert events == ["connected", "disconnected", "connected"]


async def test_idle_disconnect_skipped_when_link_becomes_active(transport):
    connection = ConnectionManager(transport, idle_timeout=0.05)
    try:
        await connection.enqueue(_volume(1))
        connection._cancel_idle_timer()
        connection._on_idle_timeout()
        # A notification arrives before the disconnect task runs
        transport.notify(b"\xcc\x05\xaa\x02\x01\x14")
        await settle(0.01)

        assert connection.is_connected
        assert transport.disconnect_calls == 0
    finally:
        await connection.close()


async def test_close_cancels_pending_idle_disconnect(transport):
    connection = ConnectionManager(transport, idle_timeout=0.05)
    await connection.enqueue(_volume(1))
    connection._cancel_idle_timer()
    connection._on_idle_timeout()

    await connection.close()
    await settle(0.01)

    assert connection._idle_disconnect_task is None
    assert transport.disconnect_calls == 1
