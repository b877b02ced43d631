"""
TTL caches for e-Gov API results.

``LawCache`` keeps one JSON file per key on disk; ``MemoryCache`` offers the
same interface in-process. Cache failures never reach the caller: reads
degrade to a miss and writes to a no-op.
"""

import json
import logging
import os
import re
import tempfile
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

LAW_LIST = "law_list"
LAW_TEXT = "law_text"
UPDATE_LIST = "update_list"
CATEGORIES = (LAW_LIST, LAW_TEXT, UPDATE_LIST)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "egov-law-mcp"

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9_\-]')

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    """ISO-8601 timestamp; one without an offset is taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sanitize_id(raw_id: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with '_'."""
    return _UNSAFE_CHARS.sub('_', raw_id)


def cache_key(category: str, raw_id: str) -> str:
    return f"{category}_{sanitize_id(raw_id)}"


@dataclass(frozen=True)
class CacheConfig:
    """Per-category TTLs in seconds."""

    law_list_ttl: int = 24 * 60 * 60       # 24 hours
    law_text_ttl: int = 7 * 24 * 60 * 60   # 7 days
    update_list_ttl: int = 60 * 60         # 1 hour

    def __post_init__(self):
        for category in CATEGORIES:
            if getattr(self, f"{category}_ttl") <= 0:
                raise ValueError(f"TTL for {category} must be positive")

    def ttl(self, category: str) -> timedelta:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown cache category: {category}")
        return timedelta(seconds=getattr(self, f"{category}_ttl"))


@dataclass(frozen=True)
class CacheEntry:
    key: str
    data: Any
    cached_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "data": self.data,
            "cachedAt": self.cached_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=raw["key"],
            data=raw["data"],
            cached_at=_parse_timestamp(raw["cachedAt"]),
            expires_at=_parse_timestamp(raw["expiresAt"]),
        )


@dataclass(frozen=True)
class CacheStats:
    count: int
    total_bytes: int
    oldest: Optional[datetime]
    newest: Optional[datetime]

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_bytes": self.total_bytes,
            "oldest": self.oldest.isoformat() if self.oldest else None,
            "newest": self.newest.isoformat() if self.newest else None,
        }


class LawCache:
    """Disk-based TTL cache, one JSON file per (category, id)."""

    def __init__(self, cache_dir: Optional[str] = None,
                 config: Optional[CacheConfig] = None,
                 clock: Optional[Clock] = None):
        self.cache_dir = Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self.config = config or CacheConfig()
        self._clock = clock or _utcnow
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._initialized = True
        except OSError as e:
            logger.warning(f"Cannot create cache directory {self.cache_dir}: {e}")

    def _path(self, category: str, raw_id: str) -> Path:
        return self.cache_dir / f"{cache_key(category, raw_id)}.json"

    def get(self, category: str, raw_id: str) -> Optional[Any]:
        """Return the cached payload, or None on miss, expiry or any read failure."""
        self._ensure_initialized()
        path = self._path(category, raw_id)
        try:
            with open(path, encoding="utf-8") as f:
                entry = CacheEntry.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Disk cache read failed for {path.name}: {e}")
            return None

        if entry.key != raw_id:
            logger.debug(f"Cache key collision on {path.name}: {entry.key!r} != {raw_id!r}")
            return None
        if entry.is_expired(self._clock()):
            logger.debug(f"Cache expired: {path.name}")
            return None

        logger.debug(f"Cache hit: {path.name}")
        return entry.data

    def set(self, category: str, raw_id: str, value: Any) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=raw_id,
            data=value,
            cached_at=now,
            expires_at=now + self.config.ttl(category),
        )
        self._ensure_initialized()
        path = self._path(category, raw_id)
        tmp_path = None
        try:
            # Serialize first so a bad payload never touches the existing entry
            payload = json.dumps(entry.to_dict(), ensure_ascii=False, indent=2)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.cache_dir, suffix=".tmp", delete=False
            ) as f:
                tmp_path = f.name
                f.write(payload)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Disk cache write failed: {e}")
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

    def delete(self, category: str, raw_id: str) -> None:
        self._ensure_initialized()
        try:
            self._path(category, raw_id).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Disk cache delete failed: {e}")

    def _files(self) -> list[Path]:
        try:
            return sorted(self.cache_dir.glob("*.json"))
        except OSError as e:
            logger.warning(f"Cannot list cache directory {self.cache_dir}: {e}")
            return []

    def clear(self) -> None:
        self._ensure_initialized()
        for path in self._files():
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove {path.name}: {e}")

    def stats(self) -> CacheStats:
        self._ensure_initialized()
        total_bytes = 0
        count = 0
        oldest = newest = None
        for path in self._files():
            try:
                st = path.stat()
            except OSError:
                continue
            count += 1
            total_bytes += st.st_size
            mtime = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
            if oldest is None or mtime < oldest:
                oldest = mtime
            if newest is None or mtime > newest:
                newest = mtime
        return CacheStats(count=count, total_bytes=total_bytes, oldest=oldest, newest=newest)


class MemoryCache:
    """Thread-safe in-process LRU cache with the same interface as LawCache."""

    def __init__(self, max_size: int = 500,
                 config: Optional[CacheConfig] = None,
                 clock: Optional[Clock] = None):
        self.max_size = max_size
        self.config = config or CacheConfig()
        self._clock = clock or _utcnow
        self.entries: OrderedDict[tuple[str, str], CacheEntry] = OrderedDict()
        self.lock = threading.RLock()

    def get(self, category: str, raw_id: str) -> Optional[Any]:
        with self.lock:
            entry = self.entries.get((category, raw_id))
            if entry is None or entry.is_expired(self._clock()):
                return None
            # Move to end (most recently used)
            self.entries.move_to_end((category, raw_id))
            return entry.data

    def set(self, category: str, raw_id: str, value: Any) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=raw_id,
            data=value,
            cached_at=now,
            expires_at=now + self.config.ttl(category),
        )
        with self.lock:
            key = (category, raw_id)
            if key not in self.entries and len(self.entries) >= self.max_size:
                # Remove least recently used
                self.entries.popitem(last=False)
            self.entries[key] = entry
            self.entries.move_to_end(key)

    def delete(self, category: str, raw_id: str) -> None:
        with self.lock:
            self.entries.pop((category, raw_id), None)

    def clear(self) -> None:
        with self.lock:
            self.entries.clear()

    def stats(self) -> CacheStats:
        with self.lock:
            entries = list(self.entries.values())
        if not entries:
            return CacheStats(count=0, total_bytes=0, oldest=None, newest=None)
        total_bytes = sum(
            len(json.dumps(e.data, ensure_ascii=False, default=str).encode("utf-8"))
            for e in entries
        )
        return CacheStats(
            count=len(entries),
            total_bytes=total_bytes,
            oldest=min(e.cached_at for e in entries),
            newest=max(e.cached_at for e in entries),
        )
