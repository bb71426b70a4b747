import pytest

from pystealthtech.connection import ConnectionManager
from pystealthtech.device import StealthTechDevice
from tests.helpers import FakeTransport


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
async def connection(transport):
    manager = ConnectionManager(transport, idle_timeout=0)
    yield manager
    await manager.close()


@pytest.fixture
async def device(connection):
    stealthtech = StealthTechDevice(connection)
    yield stealthtech
    await stealthtech.close()
