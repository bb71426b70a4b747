"""Tests for the command-line entry point."""

from unittest.mock import patch

import pytest

import main
from pystealthtech.config import DeviceConfig
from pystealthtech.connection import ConnectionManager
from pystealthtech.device import StealthTechDevice
from pystealthtech.protocol import StealthTechProtocol
from tests.helpers import FakeTransport


def test_volume_argument_is_parsed_as_int():
    args = main.build_parser().parse_args(["volume", "12"])
    assert args.command == "volume"
    assert args.value == 12


def test_non_numeric_volume_is_rejected_by_the_parser():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["volume", "loud"])


def test_global_options():
    args = main.build_parser().parse_args(["--address", "AA:BB:CC:DD:EE:FF", "--idle-timeout", "5", "status"])
    assert args.address == "AA:BB:CC:DD:EE:FF"
    assert args.idle_timeout == 5
    assert args.command == "status"


async def test_run_command_sends_volume():
    transport = FakeTransport()
    device = StealthTechDevice(ConnectionManager(transport, idle_timeout=0))
    with patch.object(main.StealthTechDevice, "from_config", return_value=device):
        await main.run_command(DeviceConfig(), "volume", 12)
    assert StealthTechProtocol.command_set_volume(12).data in transport.payloads
