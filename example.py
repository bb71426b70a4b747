"""
Example usage of pystealthtech library.

Connects to the first StealthTech sound bar found, logs every state change
for a minute, and nudges the volume up one step.
"""

import asyncio
import logging

from pystealthtech.config import DeviceConfig
from pystealthtech.device import StealthTechDevice
from pystealthtech.listener import LoggingListener


async def main():
    logging.basicConfig(level=logging.INFO)
    config = DeviceConfig()
    device = StealthTechDevice.from_config(config)
    device.register_listener(LoggingListener(logging.getLogger("example")))
    device.start_polling(config.poll_interval)

    await asyncio.sleep(5)
    await device.volume_up(config.volume_step)
    await asyncio.sleep(55)
    await device.close()


if __name__ == "__main__":
    asyncio.run(main())
