"""Two-tier cache for generated ad copy.

Tier 1 is an in-process dict (short TTL, small). Tier 2 is a SQLite file
(longer TTL, larger). A tier-2 hit is promoted back into tier 1.

Keys are short fingerprints of the request parameters that shape the
output (industry, first three keywords, model name, persona present)::

    from adcopy.cache import CacheManager, DurableCacheStore, make_cache_key

    cache = CacheManager(cfg.cache, DurableCacheStore(cfg.cache.path))
    key = make_cache_key(request)
    content = cache.get(key)
    if content is None:
        # ... generate ...
        cache.set(key, content)

Caching is an optimisation only: any SQLite failure is logged and
treated as a miss.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from adcopy.config import CacheConfig
from adcopy.schema import GeneratedContent, GenerationRequest

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


# ─────────────────────────────────────────────────────────────────────────────
# Key helpers
# ─────────────────────────────────────────────────────────────────────────────


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def rolling_hash(text: str) -> int:
    """32-bit signed ``h * 31 + c`` string hash."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return h


def cache_key_base(request: GenerationRequest) -> str:
    _, _, model_name = request.model.partition(":")
    parts = [
        request.effective_industry or "default",
        "-".join(sorted(request.ad_group.keywords[:3])),
        model_name or request.model,
        "persona" if request.effective_persona else "no-persona",
    ]
    return "|".join(parts).lower()


def make_cache_key(request: GenerationRequest) -> str:
    """Return a short stable key such as ``cache_1x3kq9``."""
    return "cache_" + _to_base36(abs(rolling_hash(cache_key_base(request))))


# ─────────────────────────────────────────────────────────────────────────────
# Durable tier
# ─────────────────────────────────────────────────────────────────────────────


class DurableCacheStore:
    """SQLite-backed store of serialised cache entries."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS content_cache (
                    key       TEXT PRIMARY KEY,
                    value     TEXT NOT NULL,
                    timestamp REAL NOT NULL,
                    ttl       REAL NOT NULL
                )
            """)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, check_same_thread=False)

    def get(self, key: str) -> Optional[Tuple[str, float, float]]:
        """Return ``(value, timestamp, ttl)`` or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value, timestamp, ttl FROM content_cache WHERE key = ?", (key,)
            ).fetchone()
        return (row[0], row[1], row[2]) if row else None

    def put(
        self,
        key: str,
        value: str,
        timestamp: float,
        ttl: float,
        max_entries: int,
    ) -> None:
        """Upsert one entry, drop expired ones, keep the newest *max_entries*."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO content_cache (key, value, timestamp, ttl) "
                "VALUES (?, ?, ?, ?)",
                (key, value, timestamp, ttl),
            )
            conn.execute(
                "DELETE FROM content_cache WHERE ? - timestamp >= ttl", (timestamp,)
            )
            conn.execute(
                """
                DELETE FROM content_cache WHERE key NOT IN (
                    SELECT key FROM content_cache ORDER BY timestamp DESC LIMIT ?
                )
                """,
                (max_entries,),
            )
            conn.commit()

    def count(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM content_cache").fetchone()[0]

    def clear(self) -> int:
        """Delete all entries; returns number of rows removed."""
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM content_cache")
            conn.commit()
        return cur.rowcount


# ─────────────────────────────────────────────────────────────────────────────
# Cache manager
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class CacheEntry:
    key: str
    data: GeneratedContent
    timestamp: float
    ttl: float
    access_count: int = 1
    last_accessed: float = 0.0

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class CacheManager:
    def __init__(
        self,
        cfg: Optional[CacheConfig] = None,
        durable: Optional[DurableCacheStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cfg = cfg or CacheConfig()
        self.durable = durable
        self._clock = clock
        self._memory: Dict[str, CacheEntry] = {}
        self._total = 0
        self._hits = 0
        self._misses = 0

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[GeneratedContent]:
        if not self.cfg.enabled:
            return None
        self._total += 1
        now = self._clock()

        entry = self._memory.get(key)
        if entry is not None and entry.is_valid(now):
            entry.access_count += 1
            entry.last_accessed = now
            self._hits += 1
            logger.debug("cache hit (memory) %s", key)
            return entry.data

        stored = self._durable_get(key)
        if stored is not None:
            value, timestamp, ttl = stored
            if now - timestamp < self.cfg.durable_ttl_seconds:
                try:
                    data = GeneratedContent.from_dict(json.loads(value))
                except (ValueError, TypeError) as exc:
                    logger.warning("corrupt durable cache entry %s: %s", key, exc)
                else:
                    self._set_in_memory(key, data, ttl, now)
                    self._hits += 1
                    logger.debug("cache hit (durable) %s", key)
                    return data

        self._misses += 1
        logger.debug("cache miss %s", key)
        return None

    def set(self, key: str, data: GeneratedContent, ttl: Optional[float] = None) -> None:
        if not self.cfg.enabled:
            return
        now = self._clock()
        self._set_in_memory(key, data, ttl or self.cfg.memory_ttl_seconds, now)
        if self.durable is None:
            return
        try:
            self.durable.put(
                key,
                json.dumps(data.to_dict(), ensure_ascii=False),
                now,
                self.cfg.durable_ttl_seconds,
                self.cfg.durable_max_entries,
            )
        except sqlite3.Error as exc:
            logger.warning("durable cache write failed for %s: %s", key, exc)

    def _durable_get(self, key: str) -> Optional[Tuple[str, float, float]]:
        if self.durable is None:
            return None
        try:
            return self.durable.get(key)
        except sqlite3.Error as exc:
            logger.warning("durable cache read failed for %s: %s", key, exc)
            return None

    # ── Memory tier ───────────────────────────────────────────────────────────

    def _set_in_memory(self, key: str, data: GeneratedContent, ttl: float, now: float) -> None:
        if key not in self._memory and len(self._memory) >= self.cfg.memory_max_entries:
            self._evict_memory(now)
        self._memory[key] = CacheEntry(
            key=key, data=data, timestamp=now, ttl=ttl, last_accessed=now
        )

    def _evict_memory(self, now: float) -> None:
        for key in [k for k, e in self._memory.items() if not e.is_valid(now)]:
            del self._memory[key]

        if len(self._memory) >= self.cfg.memory_max_entries:
            oldest = sorted(self._memory.values(), key=lambda e: e.last_accessed)
            for entry in oldest[: max(1, int(len(oldest) * 0.2))]:
                del self._memory[entry.key]
        logger.debug("memory cache cleaned, %d entries left", len(self._memory))

    # ── Stats / maintenance ───────────────────────────────────────────────────

    def stats(self) -> dict:
        storage_size = 0
        if self.durable is not None:
            try:
                storage_size = self.durable.count()
            except sqlite3.Error as exc:
                logger.warning("durable cache count failed: %s", exc)
        return {
            "total_requests": self._total,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / self._total * 100) if self._total else 0.0,
            "memory_size": len(self._memory),
            "storage_size": storage_size,
        }

    def clear_memory(self) -> None:
        self._memory.clear()
        logger.info("memory cache cleared")

    def clear_durable(self) -> int:
        if self.durable is None:
            return 0
        try:
            removed = self.durable.clear()
        except sqlite3.Error as exc:
            logger.warning("durable cache clear failed: %s", exc)
            return 0
        logger.info("durable cache cleared (%d entries)", removed)
        return removed

    def clear_all(self) -> None:
        self.clear_memory()
        self.clear_durable()
        self._total = self._hits = self._misses = 0
