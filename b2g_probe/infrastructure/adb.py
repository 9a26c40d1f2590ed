"""adb implementation of the DeviceTransport port."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..application.domain import DeviceTransport
from ..application.exceptions import (
    ConfigurationError,
    DeviceUnavailableError,
    TransportError,
)

from .decorators import retry_on_device_unavailable

_SERIAL_VARIABLE = "ANDROID_SERIAL"

# stderr fragments adb prints when it cannot reach the device at all
_UNAVAILABLE_MARKERS = (
    "device offline",
    "no devices/emulators found",
    "device still connecting",
)


def _is_device_unavailable(stderr: str) -> bool:
    lowered = stderr.lower()
    if any(marker in lowered for marker in _UNAVAILABLE_MARKERS):
        return True
    # "error: device 'SERIAL' not found"
    return lowered.startswith("error: device") and "not found" in lowered


class AdbTransport(DeviceTransport):
    """A transport that drives a device through the `adb` executable."""

    def __init__(
        self,
        adb_path: str,
        serial: Optional[str] = None,
        timeout: float = 120,
    ):
        """
        Initializes the transport.

        Args:
            adb_path: The adb executable, either a name on PATH or a path.
            serial: The device serial, exported as ANDROID_SERIAL for every
                    adb process. Empty means adb picks the device.
            timeout: Seconds allowed per adb invocation.

        Raises:
            ConfigurationError: If no adb executable is configured.
        """

        if not adb_path:
            raise ConfigurationError(
                f"No adb executable configured for {self.__class__.__name__}. "
                f"Please check your config files."
            )

        self.adb_path = adb_path
        self.serial = serial or None
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def _environment(self) -> Dict[str, str]:
        """Builds the environment for exactly one adb process."""
        env = dict(os.environ)
        if self.serial:
            env[_SERIAL_VARIABLE] = self.serial
        return env

    async def _communicate(
        self, process: asyncio.subprocess.Process, command: List[str]
    ):
        """Waits for the process within the timeout, killing it otherwise."""
        try:
            return await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise TransportError(
                f"`{' '.join(command)}` timed out after {self.timeout}s",
                command,
            ) from e

    @retry_on_device_unavailable
    async def _execute(self, *args: str) -> str:
        """Runs adb with `args` and returns its decoded standard output."""

        command = [self.adb_path, *args]
        self.logger.debug(f"Running {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(),
            )
        except OSError as e:
            raise TransportError(
                f"Unable to run {self.adb_path}: {e}", command
            ) from e

        stdout, stderr = await self._communicate(process, command)
        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            error_class = (
                DeviceUnavailableError
                if _is_device_unavailable(errors)
                else TransportError
            )
            raise error_class(
                f"`adb {' '.join(args)}` exited with {process.returncode}: "
                f"{errors.strip()}",
                command,
                process.returncode,
                errors,
            )

        return output

    async def adb(self, *args: str) -> str:
        return await self._execute(*args)

    async def shell(self, command: str) -> str:
        return await self._execute("shell", command)

    async def pull(self, remote: str, local: Path) -> str:
        self.logger.debug(f"Pulling {remote} to {local}")
        return await self._execute("pull", remote, str(local))

    async def push(self, local: Path, remote: str) -> str:
        self.logger.debug(f"Pushing {local} to {remote}")
        return await self._execute("push", str(local), remote)
