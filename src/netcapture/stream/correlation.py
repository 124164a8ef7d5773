"""Correlation table linking response metadata to loading completion."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from netcapture.models import CorrelationRecord

logger = logging.getLogger(__name__)


class CorrelationTable:
    """Request id -> CorrelationRecord mapping shared by both listeners.

    Every critical section is a single insert, a single removal, or
    (with a TTL) one eviction pass. Records for requests that never
    complete stay forever unless ``ttl`` is set.

    Attributes:
        ttl: Seconds a record may wait for its completion, or None
        evicted_count: Number of records dropped by TTL eviction
    """

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty table.

        Args:
            ttl: Seconds after which an uncompleted record is evicted
            clock: Monotonic time source (seconds)
        """
        self.ttl = ttl
        self.evicted_count = 0
        self._clock = clock
        self._records: dict[str, tuple[CorrelationRecord, float]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._records

    async def insert(self, request_id: str, record: CorrelationRecord) -> None:
        """Store a record, replacing any earlier record for the same id."""
        async with self._lock:
            self._records[request_id] = (record, self._clock())

        if self.ttl is not None:
            await self.evict_expired()

    async def remove(self, request_id: str) -> CorrelationRecord | None:
        """Take the record for a request id out of the table.

        Returns:
            The record, or None if the id is not tracked or its record expired
        """
        async with self._lock:
            entry = self._records.pop(request_id, None)

        if entry is None:
            return None
        record, inserted_at = entry
        if self._is_expired(inserted_at):
            self.evicted_count += 1
            logger.debug(f"Dropped expired record for request {request_id}")
            return None
        return record

    async def evict_expired(self) -> int:
        """Drop every record older than the TTL.

        Returns:
            Number of records evicted
        """
        if self.ttl is None:
            return 0

        async with self._lock:
            expired = [rid for rid, (_, inserted_at) in self._records.items() if self._is_expired(inserted_at)]
            for rid in expired:
                del self._records[rid]

        if expired:
            self.evicted_count += len(expired)
            logger.debug(f"Evicted {len(expired)} orphaned correlation record(s)")
        return len(expired)

    def _is_expired(self, inserted_at: float) -> bool:
        return self.ttl is not None and self._clock() - inserted_at > self.ttl
