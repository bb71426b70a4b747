from abc import ABC, abstractmethod
import logging
from typing import Callable, List

from pystealthtech.const import CODE_NAMES
from pystealthtech.state import format_state_value


class DeviceListener(ABC):

    @abstractmethod
    def state_changed(self, code: int, value: int):
        """Called when a status value changes. value is the raw wire value."""
        pass

    def version_resolved(self, version: str):
        """Called once when the main controller firmware version is first reported."""
        pass

    def connected(self):
        # By default, do nothing but can be overwritten to be notified of these events.
        pass

    def disconnected(self):
        # By default, do nothing but can be overwritten to be notified of these events.
        pass


class CallbackListener(DeviceListener):
    """Adapts plain callables to the listener interface."""

    def __init__(self, state_callback: Callable[[int, int], None] = None,
                 version_callback: Callable[[str], None] = None):
        self._state_callback = state_callback
        self._version_callback = version_callback

    def state_changed(self, code: int, value: int):
        if self._state_callback:
            self._state_callback(code, value)

    def version_resolved(self, version: str):
        if self._version_callback:
            self._version_callback(version)


class MultiplexingListener(DeviceListener):
    """Fans events out to every registered listener, in registration order.

    A listener that raises is logged and skipped; the remaining listeners
    are still called.
    """

    _listeners: List[DeviceListener]

    def __init__(self):
        self._logger = logging.getLogger(__name__)
        self._listeners = []

    def _dispatch(self, event: str, *args):
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception as e:
                self._logger.error(f"Listener error in {event}: {e}", exc_info=True)

    def state_changed(self, code: int, value: int):
        self._dispatch("state_changed", code, value)

    def version_resolved(self, version: str):
        self._dispatch("version_resolved", version)

    def connected(self):
        self._dispatch("connected")

    def disconnected(self):
        self._dispatch("disconnected")

    def register_listener(self, listener: DeviceListener):
        self._listeners.append(listener)

    def unregister_listener(self, listener: DeviceListener):
        if listener in self._listeners:
            self._listeners.remove(listener)
        else:
            self._logger.info("Listener isn't registered")


class LoggingListener(DeviceListener):

    def __init__(self, logger=logging):
        self.logger = logger

    def connected(self):
        self.logger.info("Connected")

    def disconnected(self):
        self.logger.info("Disconnected")

    def state_changed(self, code: int, value: int):
        name = CODE_NAMES.get(code, f"0x{code:02x}")
        self.logger.info(f"{name} changed to: {format_state_value(code, value)}")

    def version_resolved(self, version: str):
        self.logger.info(f"Firmware version: {version}")
