"""
Per-client usage limiting over a rolling window.

The limiter checks and increments in two separate steps so a request that
fails validation never consumes quota. The two steps are not atomic: under
concurrent load from a single client, a few more requests than the limit may
be admitted. InMemoryUsageStore is a single-process approximation; back the
limiter with a shared atomic store when a hard multi-process limit is needed.
Expired records are removed when their key is next seen and by a periodic
sweep.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FREE_TIER_LIMIT = 10
USAGE_WINDOW = timedelta(hours=24)
SWEEP_INTERVAL = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UsageRecord(BaseModel):
    count: int
    last_reset: datetime


class LimitStatus(BaseModel):
    allowed: bool
    remaining: int


class UsageStore(ABC):
    """Mapping of client key -> UsageRecord."""

    @abstractmethod
    def get(self, key: str) -> Optional[UsageRecord]:
        ...

    @abstractmethod
    def set(self, key: str, record: UsageRecord) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def purge(self, cutoff: datetime) -> int:
        """Drop records whose window started before cutoff. Returns the number removed.

        Stores that expire keys on their own can keep this no-op.
        """
        return 0


class InMemoryUsageStore(UsageStore):
    def __init__(self):
        self._records: Dict[str, UsageRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[UsageRecord]:
        with self._lock:
            record = self._records.get(key)
            return record.model_copy() if record is not None else None

    def set(self, key: str, record: UsageRecord) -> None:
        with self._lock:
            self._records[key] = record.model_copy()

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def purge(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [key for key, record in self._records.items() if record.last_reset < cutoff]
            for key in stale:
                del self._records[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._records)


class UsageLimiter:
    """Bounds the number of requests per client key within a rolling window.

    Every `sweep_interval` increments the store is asked to purge records
    whose window has elapsed, so keys of clients that never return do not
    accumulate forever.
    """

    def __init__(
        self,
        store: Optional[UsageStore] = None,
        limit: int = FREE_TIER_LIMIT,
        window: timedelta = USAGE_WINDOW,
        clock: Optional[Callable[[], datetime]] = None,
        sweep_interval: int = SWEEP_INTERVAL,
    ):
        self.store = store if store is not None else InMemoryUsageStore()
        self.limit = limit
        self.window = window
        self.clock = clock or utc_now
        self.sweep_interval = sweep_interval
        self._increments = 0
        self._sweep_lock = threading.Lock()

    def sweep(self) -> int:
        removed = self.store.purge(self.clock() - self.window)
        if removed:
            logger.info(f"Purged {removed} expired usage records")
        return removed

    def _current_record(self, key: str) -> Optional[UsageRecord]:
        record = self.store.get(key)
        if record is not None and self.clock() - record.last_reset > self.window:
            logger.info(f"Usage window elapsed for {key}, resetting")
            self.store.delete(key)
            return None
        return record

    def check_limit(self, key: str) -> LimitStatus:
        record = self._current_record(key)
        count = record.count if record is not None else 0
        return LimitStatus(allowed=count < self.limit, remaining=max(0, self.limit - count))

    def increment(self, key: str) -> None:
        record = self._current_record(key)
        if record is None:
            record = UsageRecord(count=1, last_reset=self.clock())
        else:
            record.count += 1
        self.store.set(key, record)

        with self._sweep_lock:
            self._increments += 1
            due = self.sweep_interval > 0 and self._increments % self.sweep_interval == 0
        if due:
            self.sweep()
