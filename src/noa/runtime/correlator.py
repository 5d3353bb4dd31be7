"""Pending query bookkeeping for the device acknowledgment round trip.

A finished transcription is not sent to the chat service right away. The
host stores it under a fresh id, sends the id to the device (``pin:``) and
only issues the chat request once the device echoes it back (``pon:``).
Hosts that forbid back-to-back network requests while backgrounded accept
a request that follows device traffic, so the echo is the serialization point.
"""

from __future__ import annotations

import logging
import uuid

_LOGGER = logging.getLogger(__name__)


class QueryCorrelator:
    """Maps correlation ids to the query text awaiting acknowledgment."""

    def __init__(self) -> None:
        self._pending_by_id: dict[str, str] = {}

    def register(self, query: str) -> str:
        """Store a query and return its new correlation id."""
        query_id = str(uuid.uuid4()).upper()
        self._pending_by_id[query_id] = query
        _LOGGER.debug("Registered query %s", query_id)
        return query_id

    def resolve(self, query_id: str) -> str | None:
        """Remove and return the query for an id, or None if unknown."""
        query = self._pending_by_id.pop(query_id.strip(), None)
        if query is None:
            _LOGGER.debug("No pending query for id %r", query_id)
        return query

    def clear(self) -> None:
        self._pending_by_id.clear()

    def __len__(self) -> int:
        return len(self._pending_by_id)

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._pending_by_id
