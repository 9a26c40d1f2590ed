"""
Zip implementation of the ArchiveExtractor port.

Entries are walked in archive order through an explicit scan state machine:
NOT_STARTED -> SCANNING -> FOUND | EXHAUSTED. The scan refuses to advance
while the current entry is unsettled, i.e. neither claimed nor discarded,
so no entry other than the claimed one is ever read into memory.
"""

import asyncio
import contextlib
import enum
import logging
import zipfile
import zlib
from pathlib import Path
from typing import IO, AsyncIterator, Iterator, Optional

from ..application.domain import ArchiveExtractor, EntryStream
from ..application.exceptions import (
    ArchiveStateError,
    EntryNotFoundError,
    ExtractionError,
)


class ScanState(enum.Enum):
    NOT_STARTED = "not started"
    SCANNING = "scanning"
    FOUND = "found"
    EXHAUSTED = "exhausted"


class ArchiveEntry:
    """One entry of an archive, with a reader that is opened on demand."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo):
        self._archive = archive
        self._info = info
        self._settled = False

    @property
    def path(self) -> str:
        return self._info.filename

    @property
    def settled(self) -> bool:
        return self._settled

    def open(self) -> IO[bytes]:
        self._settled = True
        return self._archive.open(self._info)

    def discard(self):
        # Compressed data is skipped via the central directory, never read.
        self._settled = True


class ArchiveScan:
    """A single forward pass over the entries of an open archive."""

    def __init__(self, archive: zipfile.ZipFile):
        self._archive = archive
        self._current: Optional[ArchiveEntry] = None
        self.state = ScanState.NOT_STARTED
        self.entries_scanned = 0

    def _ensure_settled(self):
        if self._current is not None and not self._current.settled:
            raise ArchiveStateError(
                f"Entry {self._current.path} was neither claimed nor "
                f"discarded before advancing"
            )

    def entries(self) -> Iterator[ArchiveEntry]:
        """Yields entries in archive order until one is claimed."""

        if self.state is not ScanState.NOT_STARTED:
            raise ArchiveStateError(f"Scan is already {self.state.value}")
        self.state = ScanState.SCANNING

        for info in self._archive.infolist():
            self._ensure_settled()
            self._current = ArchiveEntry(self._archive, info)
            self.entries_scanned += 1
            yield self._current
            if self.state is ScanState.FOUND:
                return

        self._ensure_settled()
        self.state = ScanState.EXHAUSTED

    def claim(self, entry: ArchiveEntry) -> IO[bytes]:
        """Opens the current entry's reader and ends the scan."""

        if self.state is not ScanState.SCANNING or entry is not self._current:
            raise ArchiveStateError(
                f"Cannot claim {entry.path} while scan is {self.state.value}"
            )
        reader = entry.open()
        self.state = ScanState.FOUND
        return reader


class ZipEntryStream(EntryStream):
    """Async view of a blocking archive entry reader."""

    def __init__(self, reader: IO[bytes]):
        self._reader = reader

    async def _call(self, method, *args) -> bytes:
        try:
            return await asyncio.to_thread(method, *args)
        except (zipfile.BadZipFile, zlib.error, OSError) as e:
            raise ExtractionError(f"Corrupt archive entry: {e}") from e

    async def read(self, size: int = -1) -> bytes:
        return await self._call(self._reader.read, size)

    async def readline(self, limit: Optional[int] = None) -> bytes:
        return await self._call(
            self._reader.readline, -1 if limit is None else limit
        )


class ZipArchiveExtractor(ArchiveExtractor):
    """An adapter that implements the ArchiveExtractor port for zip files."""

    def __init__(self):
        """Initializes the extractor."""
        self.logger = logging.getLogger(self.__class__.__name__)

    def _open_archive(self, archive_path: Path) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(archive_path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(
                f"Failed to open archive {archive_path.name}: {e}"
            ) from e

    def _locate(
        self, archive: zipfile.ZipFile, archive_name: str, internal_path: str
    ) -> IO[bytes]:
        """Scans for `internal_path`, discarding every other entry."""

        scan = ArchiveScan(archive)
        for entry in scan.entries():
            if entry.path != internal_path:
                entry.discard()
                continue

            self.logger.debug(
                f"Found {internal_path} in {archive_name} after "
                f"{scan.entries_scanned} entries"
            )
            try:
                return scan.claim(entry)
            except (zipfile.BadZipFile, OSError) as e:
                raise ExtractionError(
                    f"Failed to read {internal_path} from {archive_name}: {e}"
                ) from e

        raise EntryNotFoundError(
            f"{internal_path} not found in {archive_name} "
            f"({scan.entries_scanned} entries scanned)",
            entries_scanned=scan.entries_scanned,
        )

    @contextlib.asynccontextmanager
    async def extract_entry(
        self, archive_path: Path, internal_path: str
    ) -> AsyncIterator[EntryStream]:
        """
        Yields a lazy byte stream over one entry of a zip archive.

        This public method fulfills the ArchiveExtractor port contract. The
        blocking zip work runs in a separate thread; the archive and the
        entry reader are closed when the `async with` block exits.

        Args:
            archive_path: Local path of the archive.
            internal_path: Path of the wanted entry inside the archive.

        Yields:
            An EntryStream over the entry's uncompressed content.

        Raises:
            EntryNotFoundError: If the archive has no such entry.
            ExtractionError: If the archive cannot be read.
        """

        archive = await asyncio.to_thread(self._open_archive, archive_path)
        try:
            reader = await asyncio.to_thread(
                self._locate, archive, archive_path.name, internal_path
            )
            try:
                yield ZipEntryStream(reader)
            finally:
                reader.close()
        finally:
            archive.close()
