"""pystealthtech Python Package

Python library for controlling a Lovesac StealthTech sound bar over Bluetooth LE.
"""

from pystealthtech.config import DeviceConfig
from pystealthtech.connection import ConnectionManager
from pystealthtech.const import Preset, PresetWrite, ResponseCode, Source
from pystealthtech.device import StealthTechDevice
from pystealthtech.exceptions import CommunicationError, DeviceNotFoundError, StealthTechError, TransportError
from pystealthtech.listener import DeviceListener

__all__ = [
    "CommunicationError",
    "ConnectionManager",
    "DeviceConfig",
    "DeviceListener",
    "DeviceNotFoundError",
    "Preset",
    "PresetWrite",
    "ResponseCode",
    "Source",
    "StealthTechDevice",
    "StealthTechError",
    "TransportError",
]
