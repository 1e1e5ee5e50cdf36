from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from reflink.config import settings
from reflink.models.references import AnnotationResult, ReferenceEntry
from reflink.services.logger import log_cache_event, logger
from reflink.tools import annotation_store

ComputeFn = Callable[[], Awaitable[Sequence[ReferenceEntry]]]


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    joins: int = 0
    evictions: int = 0
    size: int = 0
    pending: int = 0


class AnnotationCache:
    """Content-addressed store of ranked references with single-flight extraction.

    Two maps are the only shared state: finished results and in-flight
    extractions, both keyed by the answer's content key. Every check-then-insert
    on them runs without an intervening await, so one event loop needs no lock.
    Failures are never stored; the next request for the same key retries.
    """

    def __init__(
        self,
        *,
        max_entries: int = 0,
        ttl_seconds: float = 0,
        persist_dir: str | Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max(int(max_entries), 0)
        self.ttl_seconds = max(float(ttl_seconds), 0.0)
        self.persist_dir = Path(persist_dir) if persist_dir else None
        self._clock = clock
        self._results: OrderedDict[str, tuple[AnnotationResult, float]] = OrderedDict()
        self._pending: dict[str, asyncio.Task[AnnotationResult]] = {}
        self._stats = CacheStats()

    def get(self, key: str) -> AnnotationResult | None:
        cached = self._results.get(key)
        if cached is not None:
            result, stored_at = cached
            if self.ttl_seconds and self._clock() - stored_at > self.ttl_seconds:
                del self._results[key]
                log_cache_event(key, "expired")
            else:
                self._results.move_to_end(key)
                return result

        if self.persist_dir is None:
            return None
        result = annotation_store.load(
            key, cache_dir=self.persist_dir, ttl_seconds=int(self.ttl_seconds)
        )
        if result is not None:
            # Age the in-memory copy from when it was computed, not when it was read.
            age = (datetime.now(timezone.utc) - result.computed_at).total_seconds()
            self._remember(result, stored_at=self._clock() - max(age, 0.0))
        return result

    def is_pending(self, key: str) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    async def get_or_compute(self, key: str, compute: ComputeFn) -> tuple[ReferenceEntry, ...]:
        """Cached entries for `key`, joining or starting the single extraction for it.

        Every caller that joins one extraction gets the same tuple, or the same
        exception when it fails.
        """
        cached = self.get(key)
        if cached is not None:
            self._stats.hits += 1
            log_cache_event(key, "hit")
            return cached.entries

        task = self._pending.get(key)
        if task is not None and not task.done():
            self._stats.joins += 1
            log_cache_event(key, "joined")
        else:
            self._stats.misses += 1
            log_cache_event(key, "miss")
            task = asyncio.ensure_future(self._compute_and_store(key, compute))
            self._pending[key] = task
            task.add_done_callback(lambda done: self._settle(key, done))

        # Shielded so a cancelled caller does not abort the shared extraction.
        result = await asyncio.shield(task)
        return result.entries

    async def _compute_and_store(self, key: str, compute: ComputeFn) -> AnnotationResult:
        entries = await compute()
        result = AnnotationResult(key=key, entries=tuple(entries))
        self._remember(result)
        log_cache_event(key, "stored")
        if self.persist_dir is not None:
            try:
                annotation_store.save(result, cache_dir=self.persist_dir)
            except OSError as e:
                logger.warning(f"Could not persist annotation cache entry {key[:16]}: {e}")
        return result

    def _settle(self, key: str, task: asyncio.Task[AnnotationResult]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Extraction for {key[:16]} failed, not cached: {error!r}")

    def _remember(self, result: AnnotationResult, stored_at: float | None = None) -> None:
        self._results[result.key] = (result, self._clock() if stored_at is None else stored_at)
        self._results.move_to_end(result.key)
        while self.max_entries and len(self._results) > self.max_entries:
            evicted_key, _ = self._results.popitem(last=False)
            self._stats.evictions += 1
            log_cache_event(evicted_key, "evicted")

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._stats.hits,
            misses=self._stats.misses,
            joins=self._stats.joins,
            evictions=self._stats.evictions,
            size=len(self._results),
            pending=sum(1 for task in self._pending.values() if not task.done()),
        )

    def clear(self) -> None:
        """Drop finished results; in-flight extractions keep running."""
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)


_cache: AnnotationCache | None = None


def get_annotation_cache() -> AnnotationCache:
    global _cache
    if _cache is None:
        _cache = AnnotationCache(
            max_entries=int(settings.annotation_cache_max_entries),
            ttl_seconds=int(settings.annotation_cache_ttl_seconds),
            persist_dir=settings.annotation_cache_dir if settings.annotation_cache_persist else None,
        )
    return _cache
