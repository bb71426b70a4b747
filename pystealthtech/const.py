"""Constants for the Lovesac StealthTech BLE protocol."""

from enum import IntEnum

# The custom GATT service encodes "excelpoint.com" in ASCII
SERVICE_UUID = "65786365-6c70-6f69-6e74-2e636f6d0000"


class Endpoint:
    """GATT characteristics used to route commands and notifications."""
    UP_STREAM = "65786365-6c70-6f69-6e74-2e636f6d0001"
    DEVICE_INFO = "65786365-6c70-6f69-6e74-2e636f6d0002"
    EQ_CONTROL = "65786365-6c70-6f69-6e74-2e636f6d0003"
    AUDIO_PATH = "65786365-6c70-6f69-6e74-2e636f6d0004"
    PLAYER_CONTROL = "65786365-6c70-6f69-6e74-2e636f6d0005"
    SYSTEM_LAYOUT = "65786365-6c70-6f69-6e74-2e636f6d0006"
    SOURCE = "65786365-6c70-6f69-6e74-2e636f6d0007"
    COVERING = "65786365-6c70-6f69-6e74-2e636f6d0008"
    USER_SETTING = "65786365-6c70-6f69-6e74-2e636f6d0009"
    OTA = "65786365-6c70-6f69-6e74-2e636f6d000a"


class ResponseCode(IntEnum):
    """Status codes carried in the last two bytes of an UpStream notification: <code> <value>."""
    VOLUME = 0x01
    CENTER_VOLUME = 0x02
    TREBLE = 0x03
    BASS = 0x04
    MUTE = 0x05
    QUIET_MODE = 0x06
    BALANCE = 0x07
    LAYOUT = 0x08
    SOURCE = 0x09
    POWER = 0x0A
    PRESET = 0x0B
    COVERING = 0x0C
    ARM_TYPE = 0x0D
    SUBWOOFER = 0x0E
    REAR_VOLUME = 0x0F


class Preset(IntEnum):
    """Preset values as reported by the device."""
    MOVIES = 0
    MUSIC = 1
    TV = 2
    NEWS = 3


class PresetWrite(IntEnum):
    """Preset values as written to the device. These differ from the reported values."""
    TV = 5
    NEWS = 6
    MOVIES = 7
    MUSIC = 8
    MANUAL = 9


class Source(IntEnum):
    """Input source, same value for read and write."""
    HDMI = 0
    BLUETOOTH = 1
    AUX = 2
    OPTICAL = 3


class VersionKind(IntEnum):
    """Firmware component named in a version report."""
    MCU = 0x01
    DSP = 0x02
    EQ = 0x03


PRESET_NAMES = {
    Preset.MOVIES: "Movies",
    Preset.MUSIC: "Music",
    Preset.TV: "TV",
    Preset.NEWS: "News",
}

SOURCE_NAMES = {
    Source.HDMI: "HDMI-ARC",
    Source.BLUETOOTH: "Bluetooth",
    Source.AUX: "AUX",
    Source.OPTICAL: "Optical",
}

CODE_NAMES = {
    ResponseCode.VOLUME: "Volume",
    ResponseCode.CENTER_VOLUME: "Center",
    ResponseCode.TREBLE: "Treble",
    ResponseCode.BASS: "Bass",
    ResponseCode.MUTE: "Mute",
    ResponseCode.QUIET_MODE: "Quiet Mode",
    ResponseCode.BALANCE: "Balance",
    ResponseCode.LAYOUT: "Layout",
    ResponseCode.SOURCE: "Source",
    ResponseCode.POWER: "Power",
    ResponseCode.PRESET: "Preset",
    ResponseCode.COVERING: "Covering",
    ResponseCode.ARM_TYPE: "Arm Type",
    ResponseCode.SUBWOOFER: "Subwoofer",
    ResponseCode.REAR_VOLUME: "Rear",
}

# Value ranges (inclusive)
MAX_VOLUME = 36
MAX_TONE = 20  # bass and treble
MAX_CHANNEL_VOLUME = 30  # center and rear
MAX_BALANCE = 100

# Defaults
DEFAULT_NAME = "Lovesac StealthTech"
DEFAULT_IDLE_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 90.0
DEFAULT_VOLUME_STEP = 2
DEFAULT_SCAN_TIMEOUT = 15.0
