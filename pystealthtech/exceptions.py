"""Exceptions raised by pystealthtech."""


class StealthTechError(Exception):
    """Base class for all pystealthtech errors."""


class TransportError(StealthTechError):
    """The BLE link could not carry out a request."""


class DeviceNotFoundError(TransportError):
    """No matching device was seen while scanning."""


class CommunicationError(StealthTechError):
    """A command could not be delivered, even after reconnecting and retrying once."""
