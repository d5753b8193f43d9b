from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Hashable

from .models import Graph


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    graph: Graph
    built_at: float
    generation: int


class GraphCache:
    """Memoizes built graphs per key (normally a GraphOptions value).

    Readers never see a partially built graph: snapshots are immutable and the
    entry table is replaced wholesale under a lock when a build is published.
    `invalidate()` marks every entry stale but keeps it as a fallback;
    `clear()` drops everything (use it when the underlying vault changes).

    With `build_timeout_s` set, a rebuild that overruns the timeout keeps
    running in the background while the caller gets the stale snapshot. The
    first build for a key always blocks.
    """

    def __init__(
        self,
        *,
        ttl_s: float = 300.0,
        build_timeout_s: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = float(ttl_s)
        self.build_timeout_s = build_timeout_s
        self._clock = clock

        self._lock = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}
        self._generation = 0
        self._inflight: dict[tuple[Hashable, int], Future] = {}
        self._executor: ThreadPoolExecutor | None = None

        self.hits = 0
        self.misses = 0
        self.fallbacks = 0

    def get(self, key: Hashable, build: Callable[[], Graph]) -> Graph:
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            self.hits += 1
            logger.debug("Graph cache hit for %r", key)
            return entry.graph

        self.misses += 1
        generation = self._generation

        if self.build_timeout_s is None or entry is None:
            graph = build()
            self._publish(key, graph, generation)
            return graph

        fut = self._submit(key, build, generation)
        try:
            return fut.result(timeout=self.build_timeout_s)
        except FutureTimeout:
            self.fallbacks += 1
            logger.warning(
                "Graph build for %r exceeded %.1fs; serving previous snapshot",
                key,
                self.build_timeout_s,
            )
            return entry.graph

    def peek(self, key: Hashable) -> Graph | None:
        """Last published snapshot for `key`, fresh or not."""
        entry = self._entries.get(key)
        return entry.graph if entry is not None else None

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
        logger.debug("Graph cache invalidated (generation %d)", self._generation)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries = {}

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def stats(self) -> dict[str, Any]:
        entries = self._entries
        return {
            "entries": len(entries),
            "fresh_entries": sum(1 for e in entries.values() if self._is_fresh(e)),
            "hits": self.hits,
            "misses": self.misses,
            "fallbacks": self.fallbacks,
            "generation": self._generation,
            "ttl_s": self.ttl_s,
        }

    def _is_fresh(self, entry: _Entry) -> bool:
        if entry.generation != self._generation:
            return False
        if self.ttl_s <= 0:
            return True
        return (self._clock() - entry.built_at) < self.ttl_s

    def _publish(self, key: Hashable, graph: Graph, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                # Invalidated while building; the result may predate the change.
                return
            entries = dict(self._entries)
            entries[key] = _Entry(graph=graph, built_at=self._clock(), generation=generation)
            self._entries = entries

    def _submit(self, key: Hashable, build: Callable[[], Graph], generation: int) -> Future:
        with self._lock:
            fut = self._inflight.get((key, generation))
            if fut is not None:
                return fut
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vaultgraph-build")
            fut = self._executor.submit(build)
            self._inflight[(key, generation)] = fut

        def done(f: Future) -> None:
            with self._lock:
                self._inflight.pop((key, generation), None)
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                logger.warning("Background graph build for %r failed: %s", key, exc)
                return
            self._publish(key, f.result(), generation)

        fut.add_done_callback(done)
        return fut
