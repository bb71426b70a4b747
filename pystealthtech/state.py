"""Canonical snapshot of the sound bar's observable settings."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional

from pystealthtech.const import (
    MAX_BALANCE,
    MAX_CHANNEL_VOLUME,
    MAX_TONE,
    MAX_VOLUME,
    PRESET_NAMES,
    SOURCE_NAMES,
    Preset,
    ResponseCode,
    Source,
)


class ApplyResult(Enum):
    """Outcome of applying one status value to the state."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    OUT_OF_RANGE = "out_of_range"
    IGNORED = "ignored"


@dataclass
class DeviceState:
    """Last known device settings.

    Every field starts as None, meaning "never observed". None is outside
    the domain of every field, so the first real value of each field is
    always reported as a change and listeners get a full initial sync.
    """
    power: Optional[bool] = None
    volume: Optional[int] = None
    mute: Optional[bool] = None
    source: Optional[Source] = None
    preset: Optional[Preset] = None
    quiet_mode: Optional[bool] = None
    bass: Optional[int] = None
    treble: Optional[int] = None
    center_volume: Optional[int] = None
    rear_volume: Optional[int] = None
    balance: Optional[int] = None
    subwoofer_connected: Optional[bool] = None

    @property
    def initialized(self) -> bool:
        """Whether at least one field has been reported by the device."""
        return any(getattr(self, f.name) is not None for f in fields(self))

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# code -> (attribute, min, max, converter from wire value)
_FIELDS = {
    ResponseCode.VOLUME: ("volume", 0, MAX_VOLUME, int),
    ResponseCode.CENTER_VOLUME: ("center_volume", 0, MAX_CHANNEL_VOLUME, int),
    ResponseCode.TREBLE: ("treble", 0, MAX_TONE, int),
    ResponseCode.BASS: ("bass", 0, MAX_TONE, int),
    ResponseCode.MUTE: ("mute", 0, 1, lambda v: v == 1),
    ResponseCode.QUIET_MODE: ("quiet_mode", 0, 1, lambda v: v == 1),
    ResponseCode.BALANCE: ("balance", 0, MAX_BALANCE, int),
    ResponseCode.SOURCE: ("source", 0, 3, Source),
    # INVERTED: 0x00 = ON, 0x01 = OFF
    ResponseCode.POWER: ("power", 0, 1, lambda v: v == 0),
    ResponseCode.PRESET: ("preset", 0, 3, Preset),
    ResponseCode.SUBWOOFER: ("subwoofer_connected", 0, 1, lambda v: v == 1),
    ResponseCode.REAR_VOLUME: ("rear_volume", 0, MAX_CHANNEL_VOLUME, int),
}


def apply_response(state: DeviceState, code: int, value: int) -> ApplyResult:
    """Apply a decoded (code, value) pair to the state.

    Out-of-range values leave the state untouched so a firmware glitch
    cannot corrupt the snapshot. Codes the state does not track (layout,
    covering, arm type) are IGNORED.
    """
    spec = _FIELDS.get(code)
    if spec is None:
        return ApplyResult.IGNORED
    attribute, low, high, convert = spec
    if not (low <= value <= high):
        return ApplyResult.OUT_OF_RANGE
    new_value = convert(value)
    if getattr(state, attribute) == new_value:
        return ApplyResult.UNCHANGED
    setattr(state, attribute, new_value)
    return ApplyResult.CHANGED


def format_state_value(code: int, value: int) -> str:
    """Human readable rendering of a raw status value for logs."""
    if code == ResponseCode.POWER:
        return "On" if value == 0 else "Off"
    if code in (ResponseCode.MUTE, ResponseCode.QUIET_MODE, ResponseCode.SUBWOOFER):
        return "Yes" if value == 1 else "No"
    if code == ResponseCode.SOURCE and value in SOURCE_NAMES:
        return SOURCE_NAMES[value]
    if code == ResponseCode.PRESET and value in PRESET_NAMES:
        return PRESET_NAMES[value]
    return str(value)
