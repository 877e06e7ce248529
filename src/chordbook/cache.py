"""
Entity cache - last-known-good snapshot per document, with a time-to-live

- Fresh snapshot: returned as-is, no fetch
- Expired or missing: one refresh task per document; concurrent callers all
  await the same task
- Refresh failure with a snapshot on hand: the old snapshot is served and the
  failure is only logged
- Refresh failure with nothing cached: DocumentUnavailable (or an empty list
  when the document itself is empty)

Snapshots are replaced wholesale, so readers see either the old list or the
new one, never a mix.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .errors import DocumentUnavailable, EmptyDocument, FetchFailed

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60  # seconds

Loader = Callable[[str], Awaitable[list]]


@dataclass(frozen=True)
class Snapshot:
    entities: tuple
    fetched_at: float


class EntityCache:
    """Owns the parsed entity snapshots for every known document"""

    def __init__(self, loader: Loader, ttl: float = DEFAULT_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self.loader = loader
        self.ttl = ttl
        self.clock = clock
        self._snapshots: dict[str, Snapshot] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    def snapshot(self, document_id: str) -> Optional[Snapshot]:
        return self._snapshots.get(document_id)

    def is_fresh(self, document_id: str) -> bool:
        snap = self._snapshots.get(document_id)
        return snap is not None and (self.clock() - snap.fetched_at) < self.ttl

    def invalidate(self, document_id: Optional[str] = None) -> None:
        """Expire one snapshot (or all); the data stays as a stale fallback"""
        ids = [document_id] if document_id is not None else list(self._snapshots)
        for doc in ids:
            snap = self._snapshots.get(doc)
            if snap is not None:
                self._snapshots[doc] = Snapshot(snap.entities, float('-inf'))

    def clear(self) -> None:
        """Drop every snapshot, including stale fallbacks"""
        self._snapshots.clear()

    async def get(self, document_id: str) -> list:
        snap = self._snapshots.get(document_id)
        if snap is not None and (self.clock() - snap.fetched_at) < self.ttl:
            return list(snap.entities)
        return await self.refresh(document_id)

    async def refresh(self, document_id: str) -> list:
        """Refresh now, joining a refresh that is already running"""
        task = self._inflight.get(document_id)
        if task is None:
            task = asyncio.ensure_future(self._refresh(document_id))
            self._inflight[document_id] = task
            task.add_done_callback(lambda _t, doc=document_id: self._inflight.pop(doc, None))
        # A caller giving up must not cancel the shared refresh
        return list(await asyncio.shield(task))

    async def _refresh(self, document_id: str) -> tuple:
        try:
            entities = await self.loader(document_id)
        except (FetchFailed, EmptyDocument) as e:
            previous = self._snapshots.get(document_id)
            if previous is not None:
                logger.warning("Refresh of %s failed, serving cached copy: %s", document_id, e)
                return previous.entities
            if isinstance(e, EmptyDocument):
                logger.warning("Document %s is empty: %s", document_id, e)
                return ()
            raise DocumentUnavailable(document_id, str(e)) from e

        snap = Snapshot(tuple(entities), self.clock())
        self._snapshots[document_id] = snap
        logger.info("Cached %d entities for %s", len(snap.entities), document_id)
        return snap.entities
