"""
Miscellaneous device interactions: reboots, process control and file
transfer. These are thin orchestrations over the DeviceTransport port.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .domain import DeviceTransport
from .exceptions import DeviceTimeError

_DEVICE_TIME_COMMAND = "echo $EPOCHREALTIME"


class DeviceUtilService:
    """Utilities for driving a single device."""

    def __init__(self, transport: DeviceTransport):
        """Initializes the service with a transport bound to one device."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.transport = transport

    async def _device_time(self) -> float:
        """Reads the device clock in milliseconds since the epoch."""
        stdout = await self.transport.shell(_DEVICE_TIME_COMMAND)
        try:
            # EPOCHREALTIME is in seconds
            return float(stdout.strip()) * 1000
        except ValueError as e:
            raise DeviceTimeError(
                f"Unexpected device time output: {stdout!r}"
            ) from e

    async def execute_with_device_time(self, *adb_args: str) -> float:
        """
        Runs an adb command and returns the device time at which it started.

        The device clock is read immediately before the command is issued,
        and the call only returns once the device is reachable again.

        Args:
            adb_args: The adb command and its arguments, e.g. ("reboot",).

        Returns:
            The device time in milliseconds.

        Raises:
            TransportError: If any of the adb invocations fails.
            DeviceTimeError: If the device clock cannot be read.
        """

        device_time = await self._device_time()
        await self.transport.adb(*adb_args)
        await self.transport.adb("wait-for-device")
        return device_time

    async def reboot(self) -> float:
        """Reboots the device."""
        self.logger.info("Rebooting")
        return await self.execute_with_device_time("reboot")

    async def restart_b2g(self) -> float:
        """Stops and starts the B2G process."""
        self.logger.info("Restarting B2G")
        return await self.execute_with_device_time(
            "shell", "stop b2g && start b2g"
        )

    async def kill(self, pid: Union[int, str]) -> str:
        """Kills a process or application with the specified PID."""
        self.logger.info(f"Killing process {pid}")
        return await self.transport.shell(f"kill {pid}")

    async def push(self, local: Path, remote: str) -> str:
        """Pushes a local file to a remote destination on the device."""
        return await self.transport.push(Path(local), remote)

    async def pull(self, remote: str, local: Optional[Path] = None) -> str:
        """Pulls a remote file, into the working directory by default."""
        return await self.transport.pull(remote, Path(local or Path.cwd()))
