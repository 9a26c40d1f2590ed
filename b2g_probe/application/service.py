"""
The core application services, containing pure business logic.

This module defines the revision resolution pipeline (RevisionResolver),
which searches the device for the Gecko and Gaia revisions, and the
orchestrator (ProbeService) that resolves several kinds concurrently for
reporting.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from tqdm.contrib.logging import logging_redirect_tqdm
from tqdm.asyncio import tqdm_asyncio

from .cache import RevisionCache
from .domain import *
from .exceptions import (
    ProbeError,
    RevisionUnavailableError,
    ScanError,
    ValueNotFoundError,
)
from .fallback import RECOVERABLE_ERRORS, first_success

logger = logging.getLogger(__name__)

_MANIFEST_TAG = "PROJECT"
_MANIFEST_FILTER_ATTRIBUTE = "NAME"
_MANIFEST_FILTER_VALUE = "gecko"
_MANIFEST_REVISION_ATTRIBUTE = "REVISION"
_SOURCE_STAMP_KEY = "SourceStamp"
_MAX_REVISION_LINE = 4096


class RevisionResolver:
    """Resolves the Gecko and Gaia revisions installed on a device."""

    def __init__(
        self,
        retriever: Retriever,
        archive_extractor: ArchiveExtractor,
        xml_scanner: XmlAttributeScanner,
        ini_scanner: IniKeyScanner,
        cache: RevisionCache,
    ):
        """Initializes the resolver with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.retriever = retriever
        self.archive_extractor = archive_extractor
        self.xml_scanner = xml_scanner
        self.ini_scanner = ini_scanner
        self.cache = cache

    async def _gecko_from_manifest(self) -> str:
        """Reads the gecko project revision from the sources manifest."""
        async with self.retriever.retrieve(SOURCES_MANIFEST_LOCATION) as xml:
            return await self.xml_scanner.scan_for_attribute(
                xml.path,
                _MANIFEST_TAG,
                _MANIFEST_REVISION_ATTRIBUTE,
                _MANIFEST_FILTER_ATTRIBUTE,
                _MANIFEST_FILTER_VALUE,
            )

    async def _gecko_from_descriptor(self) -> str:
        """Reads the source stamp from application.ini or platform.ini."""
        async with self.retriever.retrieve_first(
            B2G_DESCRIPTOR_LOCATIONS
        ) as ini:
            return await self.ini_scanner.scan_for_key(
                ini.path, _SOURCE_STAMP_KEY
            )

    async def _gaia_from_settings_archive(self) -> str:
        """Reads the first line of the commit marker in the Settings app."""
        async with self.retriever.retrieve_first(
            SETTINGS_ARCHIVE_LOCATIONS
        ) as archive:
            async with self.archive_extractor.extract_entry(
                archive.path, GAIA_COMMIT
            ) as stream:
                first_line = await stream.readline(_MAX_REVISION_LINE)
                if not first_line.endswith(b"\n") and await stream.read(1):
                    raise ScanError(
                        f"First line of {GAIA_COMMIT} is longer than "
                        f"{_MAX_REVISION_LINE} bytes"
                    )

        revision = first_line.decode("utf-8", errors="replace").rstrip("\r\n")
        if not revision:
            raise ValueNotFoundError(
                f"{GAIA_COMMIT} in {archive.filename} is empty"
            )
        return revision

    async def _resolve(
        self, kind: RevisionKind, flow: Callable[[], Awaitable[str]]
    ) -> str:
        """Consults the cache, runs the flow and caches its result."""

        cached = self.cache.get(kind)
        if cached is not None:
            self.logger.debug(f"Using cached {kind.value} revision {cached}")
            return cached

        try:
            revision = await flow()
        except RECOVERABLE_ERRORS as e:
            raise RevisionUnavailableError(
                f"Unable to resolve the {kind.value} revision: {e}"
            ) from e

        self.logger.info(
            f"{kind.value.capitalize()} revision for device: {revision}"
        )
        self.cache.store(kind, revision)
        return revision

    async def _gecko_flow(self) -> str:
        return await first_success(
            [self._gecko_from_manifest, self._gecko_from_descriptor],
            description="Gecko revision sources",
        )

    async def gecko_revision(self) -> str:
        """
        Fetches the revision of Gecko currently installed on the device.

        The sources manifest is consulted first; if it cannot be retrieved
        or does not list the gecko project, the B2G descriptor INI file is
        searched for its source stamp instead.

        Returns:
            The Gecko revision string, unvalidated.

        Raises:
            RevisionUnavailableError: If no source yielded a revision.
        """
        return await self._resolve(RevisionKind.GECKO, self._gecko_flow)

    async def gaia_revision(self) -> str:
        """
        Fetches the revision of Gaia currently installed on the device.

        Returns:
            The first line of the commit marker inside the Settings archive.

        Raises:
            RevisionUnavailableError: If the archive or marker is missing.
        """
        return await self._resolve(
            RevisionKind.GAIA, self._gaia_from_settings_archive
        )

    async def revision(self, kind: RevisionKind) -> str:
        """Dispatches to the resolution flow for `kind`."""
        if kind is RevisionKind.GECKO:
            return await self.gecko_revision()
        return await self.gaia_revision()


class ProbeService:
    """Orchestrates resolution of several revision kinds for a report."""

    def __init__(self, resolver: RevisionResolver):
        """Initializes the service around a shared resolver."""
        self.resolver = resolver

    async def _resolve_or_error(
        self, kind: RevisionKind
    ) -> Tuple[RevisionKind, Optional[str], Optional[str]]:
        """Wrapper turning a failed resolution into an error message."""
        try:
            return kind, await self.resolver.revision(kind), None
        except ProbeError as e:
            logger.error(f"Failed to resolve {kind.value} revision: {e}")
            return kind, None, str(e)

    async def run(
        self, kinds: List[RevisionKind]
    ) -> Tuple[Dict[RevisionKind, str], Dict[RevisionKind, str]]:
        """Resolves all requested kinds concurrently.

        Returns:
            A pair of mappings: resolved revisions and error messages,
            both keyed by revision kind.
        """

        logger.info(
            f"Resolving revisions: {[kind.value for kind in kinds]}"
        )

        tasks = [
            asyncio.create_task(self._resolve_or_error(kind))
            for kind in kinds
        ]

        with logging_redirect_tqdm():
            outcomes = await tqdm_asyncio.gather(
                *tasks, desc="Resolving revisions", unit="revision"
            )

        revisions = {
            kind: revision
            for kind, revision, _ in outcomes
            if revision is not None
        }
        errors = {
            kind: error
            for kind, _, error in outcomes
            if error is not None
        }

        logger.info(
            f"Resolved {len(revisions)} of {len(kinds)} revisions."
        )

        return revisions, errors
