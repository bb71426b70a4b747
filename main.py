"""
Main command-line interface for pystealthtech.

This script provides a CLI to interact with a Lovesac StealthTech sound bar.
"""

import argparse
import asyncio
import logging

from pystealthtech.config import DeviceConfig
from pystealthtech.const import PRESET_NAMES, SOURCE_NAMES, Preset, Source
from pystealthtech.device import StealthTechDevice
from pystealthtech.exceptions import StealthTechError
from pystealthtech.protocol import preset_read_to_write
from pystealthtech.transport import discover_devices


async def scan(timeout: float):
    """List every StealthTech device in range."""
    print(f"Scanning for Lovesac StealthTech devices ({timeout:.0f}s)...")
    print("Make sure the soundbar is powered on and no other app is connected.\n")

    found = await discover_devices(timeout)
    for device, advertisement in found:
        name = advertisement.local_name or device.name or "(unnamed)"
        print(f"  Found: {name} [{device.address}] RSSI={advertisement.rssi}")

    print("\nScan complete.")
    if not found:
        print("No Lovesac devices found.")
    else:
        print(f"\nUse --address {found[0][0].address} to connect to it directly.")


async def show_status(config: DeviceConfig):
    """Query and display the current device state."""
    device = StealthTechDevice.from_config(config)
    print(f"Connecting to {config.address or 'the first StealthTech found'}...")

    try:
        await device.request_state_refresh()
        # The state dump arrives as a burst of notifications after the request
        await asyncio.sleep(2)
    finally:
        await device.close()

    state = device.state
    print(f"\nDevice: {device.resolved_address}  firmware: {device.mcu_version or 'unknown'}")
    print("-" * 50)
    print(f"{'Power:':22s} {_on_off(state.power)}")
    print(f"{'Volume:':22s} {_value(state.volume)}")
    print(f"{'Mute:':22s} {_on_off(state.mute)}")
    print(f"{'Source:':22s} {SOURCE_NAMES.get(state.source, 'unknown')}")
    print(f"{'Preset:':22s} {PRESET_NAMES.get(state.preset, 'unknown')}")
    print(f"{'Quiet mode:':22s} {_on_off(state.quiet_mode)}")
    print(f"{'Bass / Treble:':22s} {_value(state.bass)} / {_value(state.treble)}")
    print(f"{'Center / Rear volume:':22s} {_value(state.center_volume)} / {_value(state.rear_volume)}")
    print(f"{'Balance:':22s} {_value(state.balance)}")
    print(f"{'Subwoofer:':22s} {'connected' if state.subwoofer_connected else 'not connected'}")
    print("-" * 50)


async def run_command(config: DeviceConfig, command: str, argument):
    """Send a single verb to the device."""
    device = StealthTechDevice.from_config(config)
    try:
        if command == "power":
            await device.set_power(_parse_on_off(argument))
        elif command == "volume":
            await device.set_volume(argument)
        elif command == "mute":
            await device.set_mute(_parse_on_off(argument))
        elif command == "quiet":
            await device.set_quiet_mode(_parse_on_off(argument))
        elif command == "source":
            await device.set_source(Source[argument.upper()])
        elif command == "preset":
            await device.set_preset(preset_read_to_write(Preset[argument.upper()]))
        print("Done")
    finally:
        await device.close()


def _on_off(value):
    if value is None:
        return "unknown"
    return "on" if value else "off"


def _value(value):
    return "unknown" if value is None else str(value)


def _parse_on_off(value: str) -> bool:
    return value.lower() in ("on", "true", "1", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Control a Lovesac StealthTech sound bar")
    parser.add_argument("--address", default="", help="BLE address of the sound bar (default: auto-discover)")
    parser.add_argument("--idle-timeout", type=float, default=60, help="Seconds before an idle link is released (default: 60)")
    parser.add_argument("--scan-timeout", type=float, default=15, help="Seconds to scan for the device (default: 15)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("scan", help="Find StealthTech devices in range")
    subparsers.add_parser("status", help="Show the current device state")

    power_parser = subparsers.add_parser("power", help="Turn the sound bar on or off")
    power_parser.add_argument("value", choices=["on", "off"])

    volume_parser = subparsers.add_parser("volume", help="Set volume level")
    volume_parser.add_argument("value", type=int, help="Volume level (0-36)")

    mute_parser = subparsers.add_parser("mute", help="Mute or unmute")
    mute_parser.add_argument("value", choices=["on", "off"])

    quiet_parser = subparsers.add_parser("quiet", help="Quiet (night) mode on or off")
    quiet_parser.add_argument("value", choices=["on", "off"])

    source_parser = subparsers.add_parser("source", help="Select input source")
    source_parser.add_argument("value", choices=[source.name.lower() for source in Source])

    preset_parser = subparsers.add_parser("preset", help="Select sound preset")
    preset_parser.add_argument("value", choices=[preset.name.lower() for preset in Preset])

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    config = DeviceConfig(address=args.address, idle_timeout=args.idle_timeout, scan_timeout=args.scan_timeout)

    try:
        if args.command == "scan":
            asyncio.run(scan(args.scan_timeout))
        elif args.command == "status":
            asyncio.run(show_status(config))
        elif args.command in ("power", "volume", "mute", "quiet", "source", "preset"):
            asyncio.run(run_command(config, args.command, args.value))
        else:
            parser.print_help()
    except StealthTechError as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    main()
