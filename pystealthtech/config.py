"""Device configuration with defaults."""

from dataclasses import dataclass, field
from typing import Any

from pystealthtech.const import (
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_NAME,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SCAN_TIMEOUT,
    DEFAULT_VOLUME_STEP,
    Preset,
)


@dataclass
class DeviceConfig:
    """Settings for one sound bar.

    An empty address means the first device advertising the StealthTech
    service is used, and its address is kept for every later reconnect.
    """
    name: str = DEFAULT_NAME
    address: str = ""
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    volume_step: int = DEFAULT_VOLUME_STEP
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    presets: dict[Preset, bool] = field(default_factory=lambda: {preset: True for preset in Preset})

    def __post_init__(self):
        if self.idle_timeout < 0:
            raise ValueError(f"idle_timeout must be >= 0, got {self.idle_timeout}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")
        if self.scan_timeout <= 0:
            raise ValueError(f"scan_timeout must be > 0, got {self.scan_timeout}")
        if self.volume_step < 1:
            raise ValueError(f"volume_step must be >= 1, got {self.volume_step}")

    @property
    def enabled_presets(self) -> list[Preset]:
        return [preset for preset in Preset if self.presets.get(preset, True)]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DeviceConfig":
        """Build a config from a partial mapping, e.g. parsed JSON.

        Missing keys take their defaults. Presets are given by name:
        {"presets": {"movies": true, "news": false}}.
        """
        raw_presets = raw.get("presets") or {}
        presets = {
            preset: bool(raw_presets.get(preset.name.lower(), True))
            for preset in Preset
        }
        return cls(
            name=raw.get("name") or DEFAULT_NAME,
            address=raw.get("address") or "",
            idle_timeout=float(raw.get("idle_timeout", DEFAULT_IDLE_TIMEOUT)),
            poll_interval=float(raw.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            volume_step=int(raw.get("volume_step", DEFAULT_VOLUME_STEP)),
            scan_timeout=float(raw.get("scan_timeout", DEFAULT_SCAN_TIMEOUT)),
            presets=presets,
        )
