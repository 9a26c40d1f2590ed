"""Line-oriented implementation of the IniKeyScanner port."""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from ..application.domain import IniKeyScanner
from ..application.exceptions import ScanError, ValueNotFoundError


class ChunkedIniKeyScanner(IniKeyScanner):
    """
    Reads a text file in fixed-size chunks, reassembles lines across chunk
    boundaries, and returns the value of the first `key=value` line whose
    text contains the key. Lines containing the key but no '=' separator,
    or an empty value, are skipped.
    """

    def __init__(self, chunk_size: int = 65536):
        """Initializes the scanner."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.chunk_size = chunk_size

    @staticmethod
    def _value_of(lines: Iterable[str], key: str) -> Optional[str]:
        for line in lines:
            if key not in line:
                continue
            _, separator, value = line.partition("=")
            if separator and value.strip():
                return value.strip()
        return None

    def _blocking_scan(self, file_path: Path, key: str) -> str:
        """Performs the blocking chunked read."""

        pending = ""
        try:
            with open(file_path, encoding="utf-8", errors="replace") as f:
                while chunk := f.read(self.chunk_size):
                    *lines, pending = (pending + chunk).split("\n")
                    value = self._value_of(lines, key)
                    if value is not None:
                        return value
        except OSError as e:
            raise ScanError(f"Unable to read {file_path.name}: {e}") from e

        value = self._value_of([pending], key)
        if value is None:
            raise ValueNotFoundError(
                f"Unable to find {key} in {file_path.name}"
            )
        return value

    async def scan_for_key(self, file_path: Path, key: str) -> str:
        """
        Returns the value of the first line containing `key`.

        Raises:
            ValueNotFoundError: If no such line exists.
            ScanError: If the file is unreadable.
        """
        self.logger.debug(f"Scanning {file_path.name} for {key}...")
        return await asyncio.to_thread(self._blocking_scan, file_path, key)
