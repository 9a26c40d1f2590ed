"""Memoization of resolved revisions for the lifetime of one device image."""

import logging
from typing import Dict, Optional

from .domain import RevisionKind

logger = logging.getLogger(__name__)


class RevisionCache:
    """
    Holds at most one revision string per RevisionKind.

    Entries are never invalidated, so a cache must only be shared by
    resolvers talking to the same, unchanging device image.
    """

    def __init__(self):
        self._revisions: Dict[RevisionKind, str] = {}

    def get(self, kind: RevisionKind) -> Optional[str]:
        return self._revisions.get(kind)

    def store(self, kind: RevisionKind, revision: str):
        logger.debug(f"Caching {kind.value} revision {revision}")
        self._revisions[kind] = revision

    def __contains__(self, kind: RevisionKind) -> bool:
        return kind in self._revisions
