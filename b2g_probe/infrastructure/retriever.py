"""Temporary-directory implementation of the Retriever port."""

import asyncio
import contextlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import AsyncIterator, Sequence

from ..application.domain import (
    CandidateLocation,
    DeviceTransport,
    RetrievedFile,
    Retriever,
)
from ..application.exceptions import RetrievalError, TransportError
from ..application.fallback import first_success


class TempDirRetriever(Retriever):
    """
    Copies remote files into freshly allocated temporary directories.

    Every directory is removed when the scope that created it exits,
    whether the retrieval succeeded, failed, or the consumer raised.
    """

    def __init__(self, transport: DeviceTransport, temp_prefix: str):
        """Initializes the retriever adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.transport = transport
        self.temp_prefix = temp_prefix

    async def _copy(self, location: CandidateLocation, temp_dir: Path):
        """Pulls the remote file and confirms it landed locally."""

        local = temp_dir / location.filename

        try:
            await self.transport.pull(location.remote_path, local)
        except TransportError as e:
            raise RetrievalError(
                f"Failed to pull {location.remote_path}: {e}"
            ) from e

        # adb may report success without having written anything
        exists = await asyncio.to_thread(local.is_file)
        if not exists:
            raise RetrievalError(
                f"Failed to pull {location.remote_path}: "
                f"{local.name} missing after copy"
            )

    @contextlib.asynccontextmanager
    async def retrieve(
        self, location: CandidateLocation
    ) -> AsyncIterator[RetrievedFile]:
        """
        Copies one remote file into a scoped temporary directory.

        This is the public method that fulfills the Retriever port contract.
        A temporary directory is allocated on every call, and released on
        exit from the `async with` block or as soon as the copy fails.

        Args:
            location: The remote directory and filename to copy.

        Yields:
            A RetrievedFile pointing at the local copy.

        Raises:
            RetrievalError: If the copy failed or produced no file.
        """

        temp_dir = Path(
            await asyncio.to_thread(tempfile.mkdtemp, prefix=self.temp_prefix)
        )
        self.logger.debug(f"Retrieving {location.remote_path} into {temp_dir}")

        try:
            await self._copy(location, temp_dir)
            yield RetrievedFile(directory=temp_dir, filename=location.filename)
        finally:
            await asyncio.to_thread(shutil.rmtree, temp_dir, ignore_errors=True)

    @contextlib.asynccontextmanager
    async def retrieve_first(
        self, candidates: Sequence[CandidateLocation]
    ) -> AsyncIterator[RetrievedFile]:
        """
        Retrieves the first candidate that can be copied, strictly in order.

        Args:
            candidates: Locations in priority order.

        Yields:
            The RetrievedFile of the first successful candidate.

        Raises:
            FallbackExhaustedError: If no candidate could be retrieved.
        """

        async with contextlib.AsyncExitStack() as stack:

            def attempt(location: CandidateLocation):
                return lambda: stack.enter_async_context(
                    self.retrieve(location)
                )

            retrieved = await first_success(
                [attempt(location) for location in candidates],
                description="candidate locations",
            )
            self.logger.info(
                f"Retrieved {retrieved.filename} into {retrieved.directory}"
            )
            yield retrieved
