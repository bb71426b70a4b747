"""Tests for the bleak-backed transport, with bleak mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pystealthtech.const import SERVICE_UUID, Endpoint
from pystealthtech.exceptions import DeviceNotFoundError, TransportError
from pystealthtech.transport import BleTransport, discover_devices


def _client():
    client = MagicMock()
    client.is_connected = True
    client.services.get_characteristic.return_value = object()
    client.start_notify = AsyncMock()
    client.write_gatt_char = AsyncMock()
    client.disconnect = AsyncMock()
    return client


def _ble_device(address="AA:BB:CC:DD:EE:FF"):
    device = MagicMock()
    device.address = address
    device.name = "StealthTech"
    return device


async def test_connect_returns_discovered_address():
    transport = BleTransport()
    client = _client()
    with patch(
        "pystealthtech.transport.BleakScanner.find_device_by_filter",
        AsyncMock(return_value=_ble_device()),
    ), patch("pystealthtech.transport.establish_connection", AsyncMock(return_value=client)):
        address = await transport.connect()
    assert address == "AA:BB:CC:DD:EE:FF"
    assert transport.is_connected


async def test_connect_raises_when_nothing_found():
    transport = BleTransport()
    with patch("pystealthtech.transport.BleakScanner.find_device_by_filter", AsyncMock(return_value=None)):
        with pytest.raises(DeviceNotFoundError):
            await transport.connect("AA:BB:CC:DD:EE:FF")
    assert not transport.is_connected


async def test_device_not_found_is_a_transport_error():
    assert issubclass(DeviceNotFoundError, TransportError)


async def test_write_without_response():
    transport = BleTransport()
    transport._client = _client()
    await transport.write(Endpoint.EQ_CONTROL, b"\xaa\x03\x02\x01\x14")
    transport._client.write_gatt_char.assert_awaited_once_with(
        Endpoint.EQ_CONTROL, b"\xaa\x03\x02\x01\x14", response=False
    )


async def test_write_when_disconnected_raises():
    transport = BleTransport()
    with pytest.raises(TransportError):
        await transport.write(Endpoint.EQ_CONTROL, b"\xaa")


async def test_write_to_missing_characteristic_raises():
    transport = BleTransport()
    transport._client = _client()
    transport._client.services.get_characteristic.return_value = None
    with pytest.raises(TransportError):
        await transport.write(Endpoint.EQ_CONTROL, b"\xaa")


async def test_resubscribe_replaces_handler_without_stacking():
    transport = BleTransport()
    transport._client = _client()
    first, second = [], []

    await transport.subscribe_notifications(first.append)
    await transport.subscribe_notifications(second.append)
    transport._on_notification(None, bytearray(b"\xcc\x05"))

    transport._client.start_notify.assert_awaited_once()
    assert first == []
    assert second == [b"\xcc\x05"]


async def test_handler_errors_are_contained():
    transport = BleTransport()
    transport._client = _client()

    def broken(data):
        raise RuntimeError("boom")

    await transport.subscribe_notifications(broken)
    transport._on_notification(None, bytearray(b"\xcc\x05"))


async def test_disconnect_is_idempotent():
    transport = BleTransport()
    client = _client()
    transport._client = client
    await transport.disconnect()
    await transport.disconnect()
    client.disconnect.assert_awaited_once()
    assert not transport.is_connected


async def test_discover_devices_filters_on_service():
    sofa = _ble_device("AA:BB:CC:DD:EE:FF")
    sofa_adv = MagicMock(service_uuids=[SERVICE_UUID.upper()])
    other = _ble_device("11:22:33:44:55:66")
    other_adv = MagicMock(service_uuids=[])
    found = {sofa.address: (sofa, sofa_adv), other.address: (other, other_adv)}

    with patch("pystealthtech.transport.BleakScanner.discover", AsyncMock(return_value=found)):
        result = await discover_devices(1)

    assert result == [(sofa, sofa_adv)]
