"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the revision resolution logic operates on, the fixed
device-side locations it consults, and the ports its adapters implement.
"""

import dataclasses
import enum
import posixpath
from pathlib import Path

from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional, Sequence


# --- Device Paths ---

SYSTEM = "/system"
SYSTEM_B2G = posixpath.join(SYSTEM, "b2g")
SETTINGS = "webapps/settings.gaiamobile.org"
B2G_SETTINGS = posixpath.join(SYSTEM_B2G, SETTINGS)
DATA_LOCAL_SETTINGS = posixpath.join("/data/local", SETTINGS)
APPLICATION_INI = "application.ini"
PLATFORM_INI = "platform.ini"
APPLICATION_ZIP = "application.zip"
SOURCES_XML = "sources.xml"
GAIA_COMMIT = "resources/gaia_commit.txt"


# --- Domain Models ---

class RevisionKind(enum.Enum):
    """The two source-control identifiers a device build carries."""

    GECKO = "gecko"
    GAIA = "gaia"


@dataclasses.dataclass(frozen=True)
class CandidateLocation:
    """One (remote directory, filename) pair tried during a fallback search."""

    directory: str
    filename: str

    @property
    def remote_path(self) -> str:
        return posixpath.join(self.directory, self.filename)


@dataclasses.dataclass(frozen=True)
class RetrievedFile:
    """
    A remote file copied into a local temporary directory.

    Only valid inside the scope that produced it; the directory is removed
    when that scope exits.
    """

    directory: Path
    filename: str

    @property
    def path(self) -> Path:
        return self.directory / self.filename


SOURCES_MANIFEST_LOCATION = CandidateLocation(SYSTEM, SOURCES_XML)

B2G_DESCRIPTOR_LOCATIONS = (
    CandidateLocation(SYSTEM_B2G, APPLICATION_INI),
    CandidateLocation(SYSTEM_B2G, PLATFORM_INI),
)

SETTINGS_ARCHIVE_LOCATIONS = (
    CandidateLocation(B2G_SETTINGS, APPLICATION_ZIP),
    CandidateLocation(DATA_LOCAL_SETTINGS, APPLICATION_ZIP),
)


# --- Ports (Interfaces) ---

class DeviceTransport(ABC):
    """A port for issuing commands against a single device."""

    @abstractmethod
    async def adb(self, *args: str) -> str:
        """Runs an adb command and returns its standard output."""
        pass

    @abstractmethod
    async def shell(self, command: str) -> str:
        """Runs a shell command on the device and returns its output."""
        pass

    @abstractmethod
    async def pull(self, remote: str, local: Path) -> str:
        """Copies a remote file to a local path."""
        pass

    @abstractmethod
    async def push(self, local: Path, remote: str) -> str:
        """Copies a local file to a remote path."""
        pass


class Retriever(ABC):
    """A port for copying remote files into scoped temporary directories."""

    @abstractmethod
    def retrieve(
        self, location: CandidateLocation
    ) -> AsyncContextManager[RetrievedFile]:
        """
        Copies one remote file into a fresh temporary directory.
        Raises RetrievalError on entry if the file could not be copied.
        """
        pass

    @abstractmethod
    def retrieve_first(
        self, candidates: Sequence[CandidateLocation]
    ) -> AsyncContextManager[RetrievedFile]:
        """
        Retrieves the first candidate that can be copied, in order.
        Raises FallbackExhaustedError on entry if none could.
        """
        pass


class EntryStream(ABC):
    """A forward-only byte reader bound to one archive entry."""

    @abstractmethod
    async def read(self, size: int = -1) -> bytes:
        pass

    @abstractmethod
    async def readline(self, limit: Optional[int] = None) -> bytes:
        pass


class ArchiveExtractor(ABC):
    """A port for reading a single entry out of an archive."""

    @abstractmethod
    def extract_entry(
        self, archive_path: Path, internal_path: str
    ) -> AsyncContextManager[EntryStream]:
        """
        Scans the archive for `internal_path` and yields its content stream.
        Raises EntryNotFoundError on entry if the archive has no such entry.
        """
        pass


class XmlAttributeScanner(ABC):
    """A port for pulling one attribute value out of an XML document."""

    @abstractmethod
    async def scan_for_attribute(
        self,
        xml_path: Path,
        tag_name: str,
        attribute_name: str,
        filter_name: str,
        filter_value: str,
    ) -> str:
        """
        Returns `attribute_name` of the first `tag_name` element whose
        `filter_name` attribute equals `filter_value`.
        Raises ValueNotFoundError if no element matches.
        """
        pass


class IniKeyScanner(ABC):
    """A port for pulling one value out of an INI-style text file."""

    @abstractmethod
    async def scan_for_key(self, file_path: Path, key: str) -> str:
        """
        Returns the value of the first line containing `key`.
        Raises ValueNotFoundError if no line matches.
        """
        pass
