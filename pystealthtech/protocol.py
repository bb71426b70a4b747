"""Encoding and decoding of the StealthTech binary protocol.

Outbound commands use one of two frame shapes:

    Format A: AA <group> <sub> 01 <value>   addressed sub-parameters
    Format B: AA <group> <value> 00         coarse single-parameter settings

Inbound notifications arrive on the UpStream characteristic as
CC 05/06 AA ... <code> <value>; the last two bytes of a status frame are
always the response code and its value. Version reports share the prefix
but carry AA 01 03 <kind> <major> <minor> instead.

Nothing in this module performs I/O or holds state.
"""

from dataclasses import dataclass
from typing import Optional

from pystealthtech.const import (
    MAX_BALANCE,
    MAX_CHANNEL_VOLUME,
    MAX_TONE,
    MAX_VOLUME,
    Endpoint,
    Preset,
    PresetWrite,
    ResponseCode,
    Source,
    VersionKind,
)

FRAME_START = 0xAA

# Command groups
GROUP_DEVICE_INFO = 0x01
GROUP_EQ = 0x03
GROUP_AUDIO_PATH = 0x04
GROUP_PLAYER = 0x05
GROUP_SOURCE = 0x07

# EQ sub-commands (Format A, group 0x03)
EQ_TREBLE = 0x00
EQ_BASS = 0x01
EQ_VOLUME = 0x02
EQ_CENTER = 0x03
EQ_QUIET_MODE = 0x04
EQ_MUTE = 0x09
EQ_REAR = 0x0A

# Audio path sub-commands (Format A, group 0x04)
AUDIO_PATH_BALANCE = 0x00
AUDIO_PATH_POWER = 0x01

# Player sub-commands (Format A, group 0x05)
PLAYER_PLAY_PAUSE = 0x00
PLAYER_SKIP = 0x01

# Version response: <prefix> <prefix> AA 01 03 <kind> <major> <minor>
VERSION_MARKER_OFFSET = 2
VERSION_MARKER = bytes([FRAME_START, 0x01, 0x03])
VERSION_FRAME_LENGTH = 8

MIN_NOTIFICATION_LENGTH = 4


@dataclass(frozen=True)
class Command:
    """A single outbound write: target characteristic plus payload."""
    endpoint: str
    data: bytes

    def __str__(self) -> str:
        return f"{self.data.hex(' ')} -> {self.endpoint[-4:]}"


@dataclass(frozen=True)
class VersionInfo:
    """Firmware version reported by the device."""
    kind: int
    major: int
    minor: int

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def _has_version_marker(data: bytes) -> bool:
    start = VERSION_MARKER_OFFSET
    return data[start:start + len(VERSION_MARKER)] == VERSION_MARKER


def preset_read_to_write(preset: Preset) -> PresetWrite:
    """Map a reported preset to the value used to select it."""
    return PresetWrite[Preset(preset).name]


def preset_write_to_read(preset: PresetWrite) -> Optional[Preset]:
    """Map a preset write value to the value the device reports.

    MANUAL and values outside PresetWrite have no reported counterpart.
    """
    try:
        name = PresetWrite(preset).name
    except ValueError:
        return None
    if name not in Preset.__members__:
        return None
    return Preset[name]


class StealthTechProtocol:
    """Command builders and notification parsers for the StealthTech sound bar."""

    @staticmethod
    def format_a(group: int, sub: int, value: int) -> bytes:
        return bytes([FRAME_START, group, sub, 0x01, value])

    @staticmethod
    def format_b(group: int, value: int) -> bytes:
        return bytes([FRAME_START, group, value, 0x00])

    @staticmethod
    def _eq_command(sub: int, value: int) -> Command:
        return Command(Endpoint.EQ_CONTROL, StealthTechProtocol.format_a(GROUP_EQ, sub, value))

    # ========== EQ endpoint ==========

    @staticmethod
    def command_set_volume(volume: int) -> Command:
        """Volume 0-36."""
        return StealthTechProtocol._eq_command(EQ_VOLUME, _clamp(volume, 0, MAX_VOLUME))

    @staticmethod
    def command_set_bass(bass: int) -> Command:
        """Bass 0-20."""
        return StealthTechProtocol._eq_command(EQ_BASS, _clamp(bass, 0, MAX_TONE))

    @staticmethod
    def command_set_treble(treble: int) -> Command:
        """Treble 0-20."""
        return StealthTechProtocol._eq_command(EQ_TREBLE, _clamp(treble, 0, MAX_TONE))

    @staticmethod
    def command_set_center_volume(center: int) -> Command:
        """Center channel volume 0-30."""
        return StealthTechProtocol._eq_command(EQ_CENTER, _clamp(center, 0, MAX_CHANNEL_VOLUME))

    @staticmethod
    def command_set_rear_volume(rear: int) -> Command:
        """Rear channel volume 0-30."""
        return StealthTechProtocol._eq_command(EQ_REAR, _clamp(rear, 0, MAX_CHANNEL_VOLUME))

    @staticmethod
    def command_set_mute(muted: bool) -> Command:
        return StealthTechProtocol._eq_command(EQ_MUTE, 1 if muted else 0)

    @staticmethod
    def command_set_quiet_mode(on: bool) -> Command:
        return StealthTechProtocol._eq_command(EQ_QUIET_MODE, 1 if on else 0)

    @staticmethod
    def command_set_preset(preset: PresetWrite) -> Command:
        return Command(Endpoint.EQ_CONTROL, StealthTechProtocol.format_b(GROUP_EQ, int(preset)))

    # ========== Audio path endpoint ==========

    @staticmethod
    def command_set_balance(balance: int) -> Command:
        """Balance 0-100, 50 is centered."""
        data = StealthTechProtocol.format_a(GROUP_AUDIO_PATH, AUDIO_PATH_BALANCE, _clamp(balance, 0, MAX_BALANCE))
        return Command(Endpoint.AUDIO_PATH, data)

    @staticmethod
    def command_set_power(on: bool) -> Command:
        """Power on or standby. Writes use 1=on even though status reports are inverted."""
        data = StealthTechProtocol.format_a(GROUP_AUDIO_PATH, AUDIO_PATH_POWER, 1 if on else 0)
        return Command(Endpoint.AUDIO_PATH, data)

    # ========== Source endpoint ==========

    @staticmethod
    def command_set_source(source: Source) -> Command:
        return Command(Endpoint.SOURCE, StealthTechProtocol.format_b(GROUP_SOURCE, int(source)))

    # ========== Player endpoint (Bluetooth source) ==========

    @staticmethod
    def command_play_pause(value: int) -> Command:
        data = StealthTechProtocol.format_a(GROUP_PLAYER, PLAYER_PLAY_PAUSE, _clamp(value, 0, 0xFF))
        return Command(Endpoint.PLAYER_CONTROL, data)

    @staticmethod
    def command_skip(value: int) -> Command:
        data = StealthTechProtocol.format_a(GROUP_PLAYER, PLAYER_SKIP, _clamp(value, 0, 0xFF))
        return Command(Endpoint.PLAYER_CONTROL, data)

    # ========== Device info endpoint ==========

    @staticmethod
    def command_query_device_info() -> Command:
        """Ask the device to dump every status value."""
        return Command(Endpoint.DEVICE_INFO, StealthTechProtocol.format_b(GROUP_DEVICE_INFO, 0x01))

    @staticmethod
    def command_query_version() -> Command:
        """Ask for firmware versions. The trailing 01 distinguishes it from the state dump."""
        return Command(Endpoint.DEVICE_INFO, bytes([FRAME_START, GROUP_DEVICE_INFO, 0x01, 0x01]))

    # ========== Notifications ==========

    @staticmethod
    def parse_version(data: bytes) -> Optional[VersionInfo]:
        """Return the version carried by a version report, or None for any other frame."""
        if len(data) < VERSION_FRAME_LENGTH or not _has_version_marker(data):
            return None
        kind, major, minor = data[5], data[6], data[7]
        return VersionInfo(kind, major, minor)

    @staticmethod
    def parse_notification(data: bytes) -> Optional[tuple[ResponseCode, int]]:
        """Parse a status notification into (code, value).

        Returns None for frames that are too short, version reports and
        unknown codes. Version payloads end in bytes that look like a valid
        status (MCU v1.71 ends with 01 47, i.e. Volume=71), so they are
        filtered here as well as by the caller.
        """
        if len(data) < MIN_NOTIFICATION_LENGTH:
            return None
        if len(data) >= VERSION_MARKER_OFFSET + len(VERSION_MARKER) and _has_version_marker(data):
            return None
        code = data[-2]
        value = data[-1]
        if not (ResponseCode.VOLUME <= code <= ResponseCode.REAR_VOLUME):
            return None
        return ResponseCode(code), value

    @staticmethod
    def is_mcu_version(info: VersionInfo) -> bool:
        return info.kind == VersionKind.MCU
