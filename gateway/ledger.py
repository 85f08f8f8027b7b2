"""
Session Ledger
==============
Process-wide map of session id → SessionRecord (message count + timestamps).

Every read-modify-write on a record happens inside `async with ledger.lock(id)`,
so two concurrent requests for the same session cannot both pass the
message-limit check before either increments. The periodic sweep takes the
same locks before deleting anything.

Locks are sharded: a fixed pool of asyncio.Lock objects, picked by hashing the
session id. Memory stays bounded no matter how many session ids clients invent,
and a lock is never discarded while a waiter is queued on it.

Timestamps are epoch seconds from an injectable clock — tests pass a fake
clock instead of sleeping.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_SHARDS = 64


@dataclass
class SessionRecord:
    message_count: int
    start_time: float
    last_activity: float


class SessionLedger:
    """In-memory, per-key serialized session store. Nothing survives the process."""

    def __init__(self, clock: Callable[[], float] = time.time, shards: int = DEFAULT_SHARDS):
        self._clock   = clock
        self._records: dict[str, SessionRecord] = {}
        self._locks   = [asyncio.Lock() for _ in range(max(1, shards))]

    def now(self) -> float:
        return self._clock()

    # ── Locking ─────────────────────────────────────────────────────────────

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks[hash(session_id) % len(self._locks)]

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        async with self._lock_for(session_id):
            yield

    # ── Records (callers hold the key's lock) ───────────────────────────────

    def get(self, session_id: str) -> SessionRecord | None:
        return self._records.get(session_id)

    def create(self, session_id: str) -> SessionRecord:
        now = self.now()
        record = SessionRecord(message_count=1, start_time=now, last_activity=now)
        self._records[session_id] = record
        return record

    def delete(self, session_id: str) -> bool:
        return self._records.pop(session_id, None) is not None

    def age_minutes(self, record: SessionRecord, now: float | None = None) -> float:
        now = self.now() if now is None else now
        return (now - record.start_time) / 60.0

    def items(self) -> Iterator[tuple[str, SessionRecord]]:
        """Snapshot iteration — safe while other tasks mutate the ledger."""
        return iter(list(self._records.items()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    # ── Maintenance ─────────────────────────────────────────────────────────

    async def sweep(self, max_age_minutes: float) -> list[str]:
        """
        Delete every session older than `max_age_minutes`.

        Each candidate is re-checked under its lock, so a record that a
        concurrent request just recreated is not removed by mistake.
        """
        removed: list[str] = []
        candidates = [sid for sid, rec in self.items() if self.age_minutes(rec) > max_age_minutes]
        for session_id in candidates:
            async with self.lock(session_id):
                record = self._records.get(session_id)
                if record is not None and self.age_minutes(record) > max_age_minutes:
                    del self._records[session_id]
                    removed.append(session_id)
        if removed:
            logger.info("[ledger] Swept %d expired session(s)", len(removed))
        return removed
