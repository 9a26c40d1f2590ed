"""
Core business exceptions for the revision probe.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Fallback chains
swallow infrastructure and domain errors only; configuration errors always
reach the caller.
"""

from typing import List, Optional


class ProbeError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(ProbeError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(ProbeError):
    """Base class for errors related to external systems (adb, filesystem)."""
    pass


class TransportError(InfrastructureError):
    """Raised when an adb invocation fails."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class DeviceUnavailableError(TransportError):
    """Raised when adb reports the device as offline or missing."""
    pass


class RetrievalError(InfrastructureError):
    """Raised when a remote file could not be copied to a local directory."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(ProbeError):
    """Base class for errors related to business logic failures."""
    pass


class FallbackExhaustedError(DomainError):
    """Raised when every candidate of an ordered fallback chain failed."""

    def __init__(self, description: str, errors: List[Exception]):
        self.description = description
        self.errors = list(errors)
        if self.errors:
            last = self.errors[-1]
            message = (
                f"All {len(self.errors)} {description} failed; "
                f"last error: {type(last).__name__}: {last}"
            )
        else:
            message = f"No {description} to attempt"
        super().__init__(message)


class ExtractionError(DomainError):
    """Raised when an archive cannot be read."""
    pass


class EntryNotFoundError(ExtractionError):
    """Raised when an archive was scanned to its end without a match."""

    def __init__(self, message: str, entries_scanned: int = 0):
        super().__init__(message)
        self.entries_scanned = entries_scanned


class ArchiveStateError(ExtractionError):
    """Raised when an archive scan is advanced past an unsettled entry."""
    pass


class ScanError(DomainError):
    """Raised when a document cannot be scanned (e.g., malformed XML)."""
    pass


class ValueNotFoundError(ScanError):
    """Raised when a document was scanned to its end without a match."""
    pass


class RevisionUnavailableError(DomainError):
    """Raised when a revision could not be resolved from any source."""
    pass


class DeviceTimeError(DomainError):
    """Raised when the device clock reading cannot be interpreted."""
    pass
