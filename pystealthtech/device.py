"""StealthTech device - high-level control of the sound bar.

This module contains the device abstraction with:
- Device verbs (power, volume, mute, source, preset, quiet mode, EQ, balance)
- The canonical DeviceState, updated from inbound notifications
- Change broadcast to registered listeners
- Background polling and a state refresh after every reconnect
- Optimistic preset updates for immediate UI feedback

All writes go through ConnectionManager, which owns the BLE link.
"""

import asyncio
import logging
import math
from asyncio import Task
from typing import Any, Callable, Iterable, Optional

from pystealthtech.config import DeviceConfig
from pystealthtech.connection import ConnectionManager
from pystealthtech.const import (
    CODE_NAMES,
    MAX_VOLUME,
    SOURCE_NAMES,
    Preset,
    PresetWrite,
    Source,
)
from pystealthtech.listener import CallbackListener, DeviceListener, MultiplexingListener
from pystealthtech.protocol import StealthTechProtocol, preset_read_to_write, preset_write_to_read
from pystealthtech.state import ApplyResult, DeviceState, apply_response, format_state_value
from pystealthtech.transport import BleTransport


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class StealthTechDevice:
    """High-level sound bar control.

    This class:
    - Encodes device verbs and queues them through the ConnectionManager
    - Applies status notifications to `state` and broadcasts changes
    - Reports the main controller firmware version once
    - Polls the device periodically and after every reconnect, which is how
      changes made by another client (e.g. the phone app) are picked up

    Verbs raise CommunicationError when the command could not be delivered.
    """

    def __init__(self, connection: ConnectionManager):
        self._logger = logging.getLogger(__name__)
        self._connection = connection

        self.state = DeviceState()
        self.mcu_version: str = ""

        self._poll_interval: float = 0
        self._poll_task: Optional[Task[Any]] = None
        self._refresh_tasks: set[Task[Any]] = set()

        # Create multiplexing listener for external listeners
        self._multiplex_callback = MultiplexingListener()

        self._connection.set_notification_handler(self._handle_notification)
        self._connection.on_reconnect(self._on_connected)
        self._connection.on_disconnect(self._on_disconnected)

    @classmethod
    def from_config(cls, config: DeviceConfig) -> "StealthTechDevice":
        """Build the BLE transport, connection manager and device for a config."""
        transport = BleTransport(name=config.name, scan_timeout=config.scan_timeout)
        connection = ConnectionManager(transport, address=config.address, idle_timeout=config.idle_timeout)
        return cls(connection)

    # ========== Connection lifecycle handlers ==========

    def _on_connected(self):
        """Called by ConnectionManager after every successful (re)connect."""
        self._multiplex_callback.connected()
        self._schedule_refresh("Reconnect state refresh failed")

    def _on_disconnected(self):
        self._multiplex_callback.disconnected()

    # ========== Public API ==========

    @property
    def resolved_address(self) -> str:
        return self._connection.resolved_address

    @property
    def state_initialized(self) -> bool:
        return self.state.initialized

    def register_listener(self, listener: DeviceListener):
        """Register external listener for device events."""
        self._multiplex_callback.register_listener(listener)

    def unregister_listener(self, listener: DeviceListener):
        """Unregister external listener."""
        self._multiplex_callback.unregister_listener(listener)

    def on_state_change(self, callback: Callable[[int, int], None]) -> DeviceListener:
        """Register a callable receiving (code, raw value) for every changed status."""
        listener = CallbackListener(state_callback=callback)
        self.register_listener(listener)
        return listener

    def on_version_resolved(self, callback: Callable[[str], None]) -> DeviceListener:
        """Register a callable receiving the firmware version once it is known."""
        listener = CallbackListener(version_callback=callback)
        self.register_listener(listener)
        return listener

    async def close(self):
        """Stop polling and release the link."""
        self.stop_polling()
        for task in list(self._refresh_tasks):
            task.cancel()
        await self._connection.close()

    # ========== Power ==========

    async def set_power(self, on: bool):
        self._logger.info(f"Setting power {'ON' if on else 'OFF'}")
        await self._connection.enqueue(StealthTechProtocol.command_set_power(on))

    # ========== Volume ==========

    async def set_volume(self, volume: int):
        self._logger.info(f"Setting volume to {volume}")
        await self._connection.enqueue(StealthTechProtocol.command_set_volume(volume))

    async def volume_up(self, step: int):
        current = self.state.volume or 0
        await self.set_volume(min(MAX_VOLUME, current + step))

    async def volume_down(self, step: int):
        current = self.state.volume or 0
        await self.set_volume(max(0, current - step))

    @staticmethod
    def volume_to_percent(volume: int) -> int:
        """Device volume 0-36 to a 0-100 percentage."""
        return _round_half_up(volume / MAX_VOLUME * 100)

    @staticmethod
    def percent_to_volume(percent: float) -> int:
        """0-100 percentage to device volume 0-36. Not an exact inverse of volume_to_percent."""
        return _round_half_up(percent / 100 * MAX_VOLUME)

    # ========== Mute ==========

    async def set_mute(self, muted: bool):
        self._logger.info(f"Setting mute {'ON' if muted else 'OFF'}")
        await self._connection.enqueue(StealthTechProtocol.command_set_mute(muted))

    async def toggle_mute(self):
        await self.set_mute(not self.state.mute)

    # ========== Quiet mode ==========

    async def set_quiet_mode(self, on: bool):
        self._logger.info(f"Setting quiet mode {'ON' if on else 'OFF'}")
        await self._connection.enqueue(StealthTechProtocol.command_set_quiet_mode(on))

    # ========== Source ==========

    async def set_source(self, source: Source):
        self._logger.info(f"Setting source to {SOURCE_NAMES.get(source, source)}")
        await self._connection.enqueue(StealthTechProtocol.command_set_source(source))

    # ========== Preset ==========

    async def set_preset(self, preset: PresetWrite):
        """Select a preset.

        The cached preset is updated before the write so paired toggles can
        reflect the choice immediately. It is not rolled back if the write
        fails; the next refresh reports the real value.
        """
        self._logger.info(f"Setting preset to {preset}")
        read_value = preset_write_to_read(preset)
        if read_value is not None:
            self.state.preset = read_value
        await self._connection.enqueue(StealthTechProtocol.command_set_preset(preset))

    def is_preset_active(self, preset: Preset) -> bool:
        return self.state.preset == preset

    async def cycle_preset(self, enabled: Optional[Iterable[Preset]] = None):
        """Select the preset after the current one among the enabled presets."""
        presets = list(enabled) if enabled is not None else list(Preset)
        if not presets:
            return
        if self.state.preset in presets:
            next_index = (presets.index(self.state.preset) + 1) % len(presets)
        else:
            next_index = 0
        await self.set_preset(preset_read_to_write(presets[next_index]))

    # ========== EQ and balance ==========

    async def set_bass(self, bass: int):
        self._logger.info(f"Setting bass to {bass}")
        await self._connection.enqueue(StealthTechProtocol.command_set_bass(bass))

    async def set_treble(self, treble: int):
        self._logger.info(f"Setting treble to {treble}")
        await self._connection.enqueue(StealthTechProtocol.command_set_treble(treble))

    async def set_center_volume(self, center: int):
        self._logger.info(f"Setting center volume to {center}")
        await self._connection.enqueue(StealthTechProtocol.command_set_center_volume(center))

    async def set_rear_volume(self, rear: int):
        self._logger.info(f"Setting rear volume to {rear}")
        await self._connection.enqueue(StealthTechProtocol.command_set_rear_volume(rear))

    async def set_balance(self, balance: int):
        self._logger.info(f"Setting balance to {balance}")
        await self._connection.enqueue(StealthTechProtocol.command_set_balance(balance))

    # ========== Player (Bluetooth source) ==========

    async def play_pause(self, value: int = 1):
        await self._connection.enqueue(StealthTechProtocol.command_play_pause(value))

    async def skip(self, value: int = 1):
        await self._connection.enqueue(StealthTechProtocol.command_skip(value))

    # ========== Polling ==========

    async def request_state_refresh(self):
        """Ask for a full state dump followed by the firmware versions."""
        await self._connection.enqueue(StealthTechProtocol.command_query_device_info())
        await self._connection.enqueue(StealthTechProtocol.command_query_version())

    def start_polling(self, interval: float):
        """Refresh now and then every `interval` seconds. An interval of 0 disables polling."""
        if interval <= 0:
            self._logger.info("Background polling disabled")
            return
        self.stop_polling()
        self._poll_interval = interval
        self._logger.info(f"Starting background poll every {interval}s")
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def stop_polling(self):
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None

    async def _poll(self):
        """Periodically refresh state to pick up changes made by other clients."""
        await self._refresh_logged("Initial state refresh failed (will retry on next poll)")
        while True:
            await asyncio.sleep(self._poll_interval)
            await self._refresh_logged("Background poll failed")

    async def _refresh_logged(self, failure_message: str):
        try:
            await self.request_state_refresh()
        except Exception as e:
            self._logger.warning(f"{failure_message}: {e}")

    def _schedule_refresh(self, failure_message: str):
        task = asyncio.get_running_loop().create_task(self._refresh_logged(failure_message))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    # ========== Notifications ==========

    def _handle_notification(self, data: bytes):
        version = StealthTechProtocol.parse_version(data)
        if version is not None:
            if StealthTechProtocol.is_mcu_version(version) and not self.mcu_version:
                self.mcu_version = version.version
                self._logger.info(f"Firmware version: {self.mcu_version}")
                self._multiplex_callback.version_resolved(self.mcu_version)
            return

        parsed = StealthTechProtocol.parse_notification(data)
        if parsed is None:
            self._logger.debug(f"Ignoring non-status notification: {data.hex()}")
            return

        code, value = parsed
        name = CODE_NAMES.get(code, f"0x{code:02x}")
        result = apply_response(self.state, code, value)
        if result is ApplyResult.OUT_OF_RANGE:
            self._logger.warning(f"Out-of-range value for {name}: {value} (ignored)")
            return
        if result is ApplyResult.CHANGED:
            self._logger.debug(f"State: {name} = {format_state_value(code, value)}")
            self._multiplex_callback.state_changed(code, value)
