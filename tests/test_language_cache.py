"""
Tests for the domain language cache and its JSON persistence.
"""

import json
import logging
import threading

from language_cache import CacheEntry, LanguageCache


class TestInMemoryCache:
    """Tests for a cache without a backing file"""

    def test_set_and_get(self, cache):
        assert not cache.has("SunTV.in")
        assert cache.get("SunTV.in") is None

        cache.set("SunTV.in", "tamil", "pattern")

        assert cache.has("SunTV.in")
        entry = cache.get("SunTV.in")
        assert entry.language == "tamil"
        assert entry.source == "pattern"
        assert entry.timestamp > 0
        assert len(cache) == 1

    def test_last_write_wins(self, cache):
        cache.set("SunTV.in", "tamil", "pattern")
        cache.set("SunTV.in", "ta", "web")
        assert cache.get("SunTV.in").language == "ta"
        assert cache.get("SunTV.in").source == "web"

    def test_flush_without_file(self, cache):
        cache.set("SunTV.in", "tamil", "pattern")
        cache.flush()

    def test_concurrent_writes(self, cache):
        def writer(prefix):
            for i in range(200):
                cache.set(f"{prefix}{i}.in", "hindi", "pattern")

        threads = [threading.Thread(target=writer, args=(f"t{n}-",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 800


class TestPersistentCache:
    """Tests for loading and saving the cache file"""

    def test_saves_every_interval(self, tmp_path):
        cache_file = tmp_path / "cache.json"
        cache = LanguageCache(str(cache_file), save_interval=2)

        cache.set("a.in", "tamil", "pattern")
        assert not cache_file.exists()

        cache.set("b.in", "ta", "web")
        saved = json.loads(cache_file.read_text(encoding="utf-8"))
        assert saved["a.in"]["language"] == "tamil"
        assert saved["b.in"] == {"language": "ta", "source": "web", "timestamp": saved["b.in"]["timestamp"]}

    def test_flush_writes_pending_entries(self, tmp_path):
        cache_file = tmp_path / "nested" / "cache.json"
        cache = LanguageCache(str(cache_file), save_interval=100)
        cache.set("a.in", "telugu", "name-explicit")
        cache.flush()

        reloaded = LanguageCache(str(cache_file))
        assert reloaded.get("a.in") == CacheEntry(
            language="telugu", source="name-explicit", timestamp=cache.get("a.in").timestamp
        )

    def test_flush_skips_clean_cache(self, tmp_path):
        cache_file = tmp_path / "cache.json"
        LanguageCache(str(cache_file)).flush()
        assert not cache_file.exists()

    def test_missing_file_starts_empty(self, tmp_path):
        assert len(LanguageCache(str(tmp_path / "absent.json"))) == 0

    def test_corrupt_file_starts_empty(self, tmp_path, caplog):
        cache_file = tmp_path / "cache.json"
        cache_file.write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            cache = LanguageCache(str(cache_file))

        assert len(cache) == 0
        assert "Failed to load cache" in caplog.text

    def test_non_object_file_starts_empty(self, tmp_path):
        cache_file = tmp_path / "cache.json"
        cache_file.write_text("[1, 2, 3]", encoding="utf-8")
        assert len(LanguageCache(str(cache_file))) == 0

    def test_malformed_entry_is_skipped(self, tmp_path):
        cache_file = tmp_path / "cache.json"
        cache_file.write_text(json.dumps({
            "good.in": {"language": "kannada", "source": "pattern", "timestamp": 1700000000000},
            "bad.in": {"source": "web"},
            "worse.in": "tamil",
        }), encoding="utf-8")

        cache = LanguageCache(str(cache_file))

        assert cache.get("good.in").language == "kannada"
        assert not cache.has("bad.in")
        assert not cache.has("worse.in")
