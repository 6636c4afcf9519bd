"""
Result cache — memoized payloads keyed by document content and request.

Entries are keyed by (source, document_id, request_key).  The request key
is whatever distinguishes one answer from another for the same content:
the dispatcher passes the request fingerprint (capability, content hash,
range, position), so a hover at another column never reuses a payload.

The cache also remembers the last revision it saw for each document; a
request carrying a different revision drops every entry of that document,
across all sources.  Coarse invalidation, but an entry can never outlive
the content it was computed against.

Only successful outcomes are stored.  Failures and timeouts always
recompute.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Hashable
from typing import Any, Callable

from toolbridge.core.models.outcome import ExecutionOutcome

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, Hashable]


class ResultCache:
    """Process-lifetime, in-memory payload cache."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, Any] = {}
        self._revisions: dict[str, Hashable] = {}
        # Per-key lock: two concurrent misses for the same key compute once.
        self._locks: dict[CacheKey, asyncio.Lock] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _observe(self, document_id: str, revision: Hashable) -> None:
        """Drop the document's entries if its revision changed."""
        previous = self._revisions.get(document_id)
        if previous is not None and previous != revision:
            self.invalidate(document_id)
        self._revisions[document_id] = revision

    def get(self, source: str, document_id: str, request_key: Hashable) -> Any | None:
        """Return a cached payload or None."""
        return self._entries.get((source, document_id, request_key))

    async def get_or_compute(
        self,
        source: str,
        document_id: str,
        request_key: Hashable,
        compute_fn: Callable[[], Awaitable[ExecutionOutcome]],
        *,
        revision: str | None = None,
    ) -> ExecutionOutcome:
        """Return the cached payload as an outcome, or compute and store it.

        Args:
            source: Source name.
            document_id: Document identity.
            request_key: Identifies the answer within the document.  A bare
                content hash works when the answer depends on content alone.
            compute_fn: Produces the outcome on a miss.
            revision: Hash of the live document.  Defaults to
                ``request_key``; differs inside a formatting chain, where
                intermediate content must not invalidate the document.
        """
        self._observe(document_id, revision or request_key)
        key = (source, document_id, request_key)

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._entries:
                self.hits += 1
                logger.debug("Cache hit: %s %s", source, document_id)
                return ExecutionOutcome.success(
                    source, self._entries[key], metadata={"cached": True}
                )

            self.misses += 1
            outcome = await compute_fn()
            # Document may have moved on while computing.
            if outcome.ok and self._revisions.get(document_id) == (revision or request_key):
                self._entries[key] = outcome.payload
            return outcome

    def invalidate(self, document_id: str) -> None:
        """Drop every entry for ``document_id``."""
        stale = [key for key in self._entries if key[1] == document_id]
        for key in stale:
            del self._entries[key]
        for key in [key for key in self._locks if key[1] == document_id]:
            if not self._locks[key].locked():
                del self._locks[key]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), document_id)

    def clear(self) -> None:
        """Drop everything."""
        self._entries.clear()
        self._revisions.clear()
        self._locks.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}
