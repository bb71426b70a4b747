"""Test doubles and frame builders shared by the test modules."""

import asyncio
from typing import Optional

from pystealthtech.exceptions import TransportError
from pystealthtech.transport import NotificationHandler, Transport

DEVICE_ADDRESS = "AA:BB:CC:DD:EE:FF"


class FakeTransport(Transport):
    """In-memory link that records every call."""

    def __init__(self, address: str = DEVICE_ADDRESS):
        self.address = address
        self.connected = False
        self.connect_calls: list[Optional[str]] = []
        self.disconnect_calls = 0
        self.subscribe_calls = 0
        self.writes: list[tuple[str, bytes]] = []
        self.handler: Optional[NotificationHandler] = None
        self.write_failures = 0
        self.connect_failures = 0
        self.connect_delay = 0.0

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self, address: Optional[str] = None) -> str:
        self.connect_calls.append(address)
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_failures:
            self.connect_failures -= 1
            raise TransportError("Device not found")
        self.connected = True
        return address or self.address

    async def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    async def write(self, endpoint: str, data: bytes):
        if not self.connected:
            raise TransportError("Not connected")
        if self.write_failures:
            self.write_failures -= 1
            raise TransportError("Write failed")
        self.writes.append((endpoint, bytes(data)))

    async def subscribe_notifications(self, handler: NotificationHandler):
        self.subscribe_calls += 1
        self.handler = handler

    def notify(self, data: bytes):
        self.handler(bytes(data))

    def drop(self):
        """Simulate the device going away without us asking."""
        self.connected = False

    @property
    def payloads(self) -> list[bytes]:
        return [data for _, data in self.writes]


def status_frame(code: int, value: int) -> bytes:
    """A status notification as the sound bar sends it: CC 05 AA .. <code> <value>."""
    return bytes([0xCC, 0x05, 0xAA, 0x02, code, value])


def version_frame(kind: int, major: int, minor: int) -> bytes:
    return bytes([0xCC, 0x06, 0xAA, 0x01, 0x03, kind, major, minor])


async def settle(seconds: float = 0.02):
    """Let queued tasks (worker, refresh) run."""
    await asyncio.sleep(seconds)

