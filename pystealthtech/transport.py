"""BLE transport for the StealthTech sound bar.

The transport only knows how to find the device, open one GATT connection,
write to a characteristic and deliver UpStream notifications. Queueing,
retries and idle release live in ConnectionManager.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from pystealthtech.const import DEFAULT_NAME, DEFAULT_SCAN_TIMEOUT, SERVICE_UUID, Endpoint
from pystealthtech.exceptions import DeviceNotFoundError, TransportError

NotificationHandler = Callable[[bytes], None]

_LOGGER = logging.getLogger(__name__)


def _normalize_address(address: str) -> str:
    return address.lower().replace(":", "").replace("-", "")


def _advertises_sofa_service(device: BLEDevice, advertisement: AdvertisementData) -> bool:
    return SERVICE_UUID in [uuid.lower() for uuid in advertisement.service_uuids]


async def discover_devices(timeout: float = DEFAULT_SCAN_TIMEOUT) -> list[tuple[BLEDevice, AdvertisementData]]:
    """Scan for every device advertising the StealthTech service."""
    found = await BleakScanner.discover(timeout=timeout, service_uuids=[SERVICE_UUID], return_adv=True)
    matches = [
        (device, advertisement)
        for device, advertisement in found.values()
        if _advertises_sofa_service(device, advertisement)
    ]
    _LOGGER.debug(f"BLE: Scan found {len(found)} devices, {len(matches)} StealthTech")
    return matches


class Transport(ABC):
    """Link capability consumed by ConnectionManager."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self, address: Optional[str] = None) -> str:
        """Connect to the given address, or to the first device found. Returns the resolved address."""

    @abstractmethod
    async def disconnect(self):
        pass

    @abstractmethod
    async def write(self, endpoint: str, data: bytes):
        pass

    @abstractmethod
    async def subscribe_notifications(self, handler: NotificationHandler):
        """Deliver UpStream notifications to handler, replacing any earlier handler."""


class BleTransport(Transport):
    """Transport backed by bleak and bleak-retry-connector."""

    def __init__(self, name: str = DEFAULT_NAME, scan_timeout: float = DEFAULT_SCAN_TIMEOUT):
        self._logger = logging.getLogger(__name__)
        self._name = name
        self._scan_timeout = scan_timeout
        self._client: Optional[BleakClient] = None
        self._ble_device: Optional[BLEDevice] = None
        self._handler: Optional[NotificationHandler] = None
        self._subscribed_client: Optional[BleakClient] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    async def connect(self, address: Optional[str] = None) -> str:
        if self.is_connected:
            return self._ble_device.address

        if address:
            self._logger.debug(f"BLE: Scanning for {address}...")
            ble_device = await BleakScanner.find_device_by_filter(
                lambda device, adv: _normalize_address(device.address) == _normalize_address(address),
                timeout=self._scan_timeout,
            )
            if ble_device is None:
                raise DeviceNotFoundError(f"Device {address} not found")
        else:
            self._logger.debug("BLE: Starting auto-discovery scan...")
            ble_device = await BleakScanner.find_device_by_filter(
                _advertises_sofa_service, timeout=self._scan_timeout
            )
            if ble_device is None:
                raise DeviceNotFoundError("No Lovesac StealthTech device found")

        self._logger.info(f"BLE: Discovered device: {ble_device.name or '(unnamed)'} [{ble_device.address}]")
        self._ble_device = ble_device
        self._client = await establish_connection(
            BleakClientWithServiceCache,
            ble_device,
            self._name,
            disconnected_callback=self._on_disconnected,
            ble_device_callback=lambda: self._ble_device,
        )
        self._logger.debug(f"BLE: Connected to {ble_device.address}")
        return ble_device.address

    async def disconnect(self):
        client = self._client
        self._client = None
        self._subscribed_client = None
        if client is None:
            return
        try:
            await client.disconnect()
        except BleakError as e:
            # Already gone
            self._logger.debug(f"BLE: Error while disconnecting: {e}")

    async def write(self, endpoint: str, data: bytes):
        client = self._client
        if client is None or not client.is_connected:
            raise TransportError("Not connected")
        if client.services.get_characteristic(endpoint) is None:
            raise TransportError(f"Characteristic {endpoint} not found")
        # Write without response, as the sound bar expects
        await client.write_gatt_char(endpoint, data, response=False)

    async def subscribe_notifications(self, handler: NotificationHandler):
        self._handler = handler
        client = self._client
        if client is None or not client.is_connected:
            raise TransportError("Not connected")
        if self._subscribed_client is client:
            # Already subscribed on this connection; the new handler replaces the old one
            return
        if client.services.get_characteristic(Endpoint.UP_STREAM) is None:
            raise TransportError("UpStream characteristic not found")
        await client.start_notify(Endpoint.UP_STREAM, self._on_notification)
        self._subscribed_client = client
        self._logger.debug("BLE: Subscribed to UpStream notifications")

    def _on_notification(self, sender, data: bytearray):
        if self._handler is None:
            return
        try:
            self._handler(bytes(data))
        except Exception as e:
            self._logger.error(f"BLE: Notification handler error: {e}", exc_info=True)

    def _on_disconnected(self, client: BleakClient):
        if client is not self._client:
            return
        self._logger.debug("BLE: Disconnected")
        self._client = None
        self._subscribed_client = None
