"""Tests for the disk and in-memory TTL caches."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from egov_law_mcp.cache import (
    LAW_LIST,
    LAW_TEXT,
    UPDATE_LIST,
    CacheConfig,
    CacheEntry,
    LawCache,
    MemoryCache,
    cache_key,
    sanitize_id,
)


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 4, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestKeys:
    def test_sanitize(self):
        assert sanitize_id("129AC0000000089") == "129AC0000000089"
        assert sanitize_id("a/b c.d") == "a_b_c_d"
        assert sanitize_id("民法") == "__"

    def test_cache_key(self):
        assert cache_key(LAW_TEXT, "415AC0000000057_1") == "law_text_415AC0000000057_1"


class TestCacheConfig:
    def test_defaults(self):
        config = CacheConfig()
        assert config.ttl(LAW_LIST) == timedelta(hours=24)
        assert config.ttl(LAW_TEXT) == timedelta(days=7)
        assert config.ttl(UPDATE_LIST) == timedelta(hours=1)

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            CacheConfig(law_text_ttl=0)

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            CacheConfig().ttl("articles")


class TestLawCache:
    def test_set_and_get(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path / "cache"))
        cache.set(LAW_TEXT, "129AC0000000089", {"law_name": "民法"})
        assert cache.get(LAW_TEXT, "129AC0000000089") == {"law_name": "民法"}

    def test_miss(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path / "cache"))
        assert cache.get(LAW_TEXT, "nonexistent") is None

    def test_file_layout(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_LIST, "search_民法_all", {"total_count": 0})
        path = tmp_path / "law_list_search____all.json"
        assert path.exists()
        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["key"] == "search_民法_all"
        assert raw["data"] == {"total_count": 0}
        assert set(raw) == {"key", "data", "cachedAt", "expiresAt"}

    def test_category_ttl_expiry(self, tmp_path):
        clock = FakeClock()
        cache = LawCache(cache_dir=str(tmp_path), clock=clock)
        cache.set(UPDATE_LIST, "20240401", {"total_count": 1})
        cache.set(LAW_TEXT, "129AC0000000089", {"law_name": "民法"})

        clock.advance(minutes=59)
        assert cache.get(UPDATE_LIST, "20240401") is not None

        clock.advance(minutes=1)
        assert cache.get(UPDATE_LIST, "20240401") is None
        assert cache.get(LAW_TEXT, "129AC0000000089") == {"law_name": "民法"}

        clock.advance(days=7)
        assert cache.get(LAW_TEXT, "129AC0000000089") is None

    def test_expired_file_is_kept(self, tmp_path):
        clock = FakeClock()
        cache = LawCache(cache_dir=str(tmp_path), clock=clock)
        cache.set(UPDATE_LIST, "20240401", {})
        clock.advance(hours=2)
        assert cache.get(UPDATE_LIST, "20240401") is None
        assert (tmp_path / "update_list_20240401.json").exists()

    def test_overwrite(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_TEXT, "k", {"v": 1})
        cache.set(LAW_TEXT, "k", {"v": 2})
        assert cache.get(LAW_TEXT, "k") == {"v": 2}

    def test_corrupt_file_is_a_miss(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        (tmp_path / "law_text_broken.json").write_text("{not json", encoding="utf-8")
        assert cache.get(LAW_TEXT, "broken") is None

    def test_incomplete_entry_is_a_miss(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        (tmp_path / "law_text_partial.json").write_text('{"data": 1}', encoding="utf-8")
        assert cache.get(LAW_TEXT, "partial") is None

    def test_naive_timestamps_read_as_utc(self, tmp_path):
        clock = FakeClock()
        cache = LawCache(cache_dir=str(tmp_path), clock=clock)
        raw = {"key": "k", "data": {"v": 1},
               "cachedAt": "2024-03-31T00:00:00", "expiresAt": "2024-04-02T00:00:00"}
        (tmp_path / "law_text_k.json").write_text(json.dumps(raw), encoding="utf-8")
        assert cache.get(LAW_TEXT, "k") == {"v": 1}

        clock.advance(days=1)
        assert cache.get(LAW_TEXT, "k") is None

    def test_unparseable_timestamp_is_a_miss(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        raw = {"key": "k", "data": 1, "cachedAt": "yesterday", "expiresAt": "tomorrow"}
        (tmp_path / "law_text_k.json").write_text(json.dumps(raw), encoding="utf-8")
        assert cache.get(LAW_TEXT, "k") is None

    def test_failed_write_keeps_previous_entry(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_TEXT, "k", {"v": 1})
        cache.set(LAW_TEXT, "k", {"v": object()})
        assert cache.get(LAW_TEXT, "k") == {"v": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["law_text_k.json"]

    def test_sanitized_collision_is_a_miss(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_TEXT, "129AC0000000089_第一条", {"article": 1})
        # Same sanitized filename, different raw key
        assert cache.get(LAW_TEXT, "129AC0000000089_第二条") is None
        assert cache.get(LAW_TEXT, "129AC0000000089_第一条") == {"article": 1}

    def test_categories_do_not_collide(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_LIST, "x", {"from": "list"})
        cache.set(LAW_TEXT, "x", {"from": "text"})
        assert cache.get(LAW_LIST, "x") == {"from": "list"}
        assert cache.get(LAW_TEXT, "x") == {"from": "text"}

    def test_delete(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        cache.set(LAW_TEXT, "k", {"v": 1})
        cache.delete(LAW_TEXT, "k")
        assert cache.get(LAW_TEXT, "k") is None
        cache.delete(LAW_TEXT, "k")

    def test_clear_and_stats(self, tmp_path):
        cache = LawCache(cache_dir=str(tmp_path))
        assert cache.stats().count == 0
        assert cache.stats().oldest is None

        cache.set(LAW_TEXT, "a", {"v": 1})
        cache.set(LAW_LIST, "b", {"v": 2})
        stats = cache.stats()
        assert stats.count == 2
        assert stats.total_bytes > 0
        assert stats.oldest <= stats.newest

        cache.clear()
        assert cache.stats().count == 0
        assert cache.get(LAW_TEXT, "a") is None

    def test_directory_created_lazily(self, tmp_path):
        cache_dir = tmp_path / "nested" / "cache"
        cache = LawCache(cache_dir=str(cache_dir))
        assert not cache_dir.exists()
        cache.set(LAW_TEXT, "k", {})
        assert cache_dir.exists()

    def test_unwritable_directory_degrades(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        cache = LawCache(cache_dir=str(blocker / "cache"))
        cache.set(LAW_TEXT, "k", {"v": 1})
        assert cache.get(LAW_TEXT, "k") is None


class TestCacheEntry:
    def test_dict_round_trip(self):
        now = datetime(2024, 4, 1, tzinfo=timezone.utc)
        entry = CacheEntry(key="k", data={"a": 1}, cached_at=now, expires_at=now + timedelta(hours=1))
        assert CacheEntry.from_dict(entry.to_dict()) == entry

    def test_expiry_boundary(self):
        now = datetime(2024, 4, 1, tzinfo=timezone.utc)
        entry = CacheEntry(key="k", data=None, cached_at=now, expires_at=now + timedelta(seconds=1))
        assert not entry.is_expired(now)
        assert entry.is_expired(now + timedelta(seconds=1))


class TestMemoryCache:
    def test_set_and_get(self):
        cache = MemoryCache()
        cache.set(LAW_TEXT, "k", {"v": 1})
        assert cache.get(LAW_TEXT, "k") == {"v": 1}
        assert cache.get(LAW_LIST, "k") is None

    def test_lru_eviction(self):
        cache = MemoryCache(max_size=2)
        cache.set(LAW_TEXT, "a", 1)
        cache.set(LAW_TEXT, "b", 2)
        cache.get(LAW_TEXT, "a")
        cache.set(LAW_TEXT, "c", 3)
        assert cache.get(LAW_TEXT, "a") == 1
        assert cache.get(LAW_TEXT, "b") is None
        assert cache.get(LAW_TEXT, "c") == 3

    def test_expiry(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.set(LAW_LIST, "k", {"v": 1})
        clock.advance(hours=24)
        assert cache.get(LAW_LIST, "k") is None

    def test_stats_and_clear(self):
        cache = MemoryCache()
        cache.set(LAW_TEXT, "a", {"v": 1})
        assert cache.stats().count == 1
        cache.clear()
        assert cache.stats().count == 0
