"""
Tests for the diagnostics API.
"""

import json
import os
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from conftest import FakeFetcher, FakeRequestContext, FakeResponse, TAMIL_PAGE, success
from language_cache import LanguageCache
from main import app, get_cache, get_fetcher_opener
from site_fetcher import SiteFetcher


class FakeOpener:
    """Stands in for open_site_fetcher and counts how often it is opened"""

    def __init__(self, fetcher):
        self.fetcher = fetcher
        self.opened = 0

    def __call__(self):
        self.opened += 1
        return self._session()

    @asynccontextmanager
    async def _session(self):
        yield self.fetcher


@pytest.fixture
def fetcher():
    return FakeFetcher({"7SMusic.in": success("7SMusic.in", TAMIL_PAGE)})


@pytest.fixture
def opener(fetcher):
    return FakeOpener(fetcher)


@pytest.fixture
def client(opener):
    cache = LanguageCache()
    cache.set("SunTV.in", "ta", "web")
    app.dependency_overrides[get_fetcher_opener] = lambda: opener
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestDetectEndpoint:
    """Tests for /detect"""

    def test_pattern_only(self, client, fetcher, opener):
        response = client.get("/detect", params={"name": "Sun TV", "tvg_id": "SunTV.in@HD", "skip_web": True})

        assert response.status_code == 200
        assert response.json() == {
            "name": "Sun TV",
            "tvg_id": "SunTV.in@HD",
            "domain": "SunTV.in",
            "explicit_language": None,
            "pattern_language": "tamil",
            "language": "tamil",
            "language_name": "tamil",
            "source": "pattern",
        }
        assert fetcher.calls == []
        assert opener.opened == 0

    def test_with_website(self, client, fetcher, opener):
        data = client.get("/detect", params={"name": "7S Music", "tvg_id": "7SMusic.in@SD"}).json()

        assert data["language"] == "ta"
        assert data["language_name"] == "tamil"
        assert data["source"] == "web"
        assert data["pattern_language"] == "unknown"
        assert fetcher.calls == ["7SMusic.in"]
        assert opener.opened == 1

    def test_name_is_required(self, client):
        assert client.get("/detect").status_code == 422

    def test_without_domain_skips_playwright(self, client, opener):
        data = client.get("/detect", params={"name": "Sun TV", "tvg_id": "not a domain"}).json()
        assert data["source"] == "pattern"
        assert opener.opened == 0


class TestPageEndpoints:
    """Tests for the endpoints that fetch a website"""

    def test_metadata(self, client):
        data = client.get("/metadata", params={"domain": "7SMusic.in"}).json()

        assert data["url"] == "https://www.7SMusic.in"
        assert data["language"] == "en"
        assert data["confidence"] == "high"
        assert {"source": "html-lang", "value": "en", "weight": 10} in data["signals"]
        assert data["metadata"]["title"] == "Sun TV"

    def test_body_text(self, client):
        data = client.get("/body-text", params={"domain": "7SMusic.in"}).json()

        assert data["html_size"] == len(TAMIL_PAGE)
        assert data["text_length"] > 0
        assert set(data["scripts"]) == {"tamil"}
        assert data["scripts"]["tamil"]["percentage"] > 50
        assert data["result"]["language"] == "tamil"
        assert data["result"]["method"] == "script-detection"

    def test_html_language(self, client):
        data = client.get("/html-language", params={"domain": "7SMusic.in"}).json()
        assert data["language"] == "ta"
        assert data["language_name"] == "tamil"
        assert data["metadata_only"] is False

    def test_html_language_metadata_only(self, client):
        data = client.get("/html-language", params={"domain": "7SMusic.in", "metadata_only": True}).json()
        assert data["language"] == "en"

    def test_unreachable_domain(self, client):
        response = client.get("/metadata", params={"domain": "down.example.in"})
        assert response.status_code == 502
        assert "after 6 attempts" in response.json()["detail"]

    def test_non_utf8_page(self, client, recorded_sleeps):
        """A latin-1 page is analyzed instead of failing the request"""
        page = "<html lang=\"fr\"><body><p>T\N{LATIN SMALL LETTER E WITH ACUTE}l\N{LATIN SMALL LETTER E WITH ACUTE}vision</p></body></html>".encode("latin-1")
        context = FakeRequestContext({"https://www.site.in": [FakeResponse(200, page)]})
        app.dependency_overrides[get_fetcher_opener] = lambda: FakeOpener(SiteFetcher(context, sleep=recorded_sleeps))

        response = client.get("/html-language", params={"domain": "site.in", "metadata_only": True})

        assert response.status_code == 200
        assert response.json()["language"] == "fr"

    def test_invalid_domain(self, client, fetcher):
        response = client.get("/html-language", params={"domain": "not a domain"})
        assert response.status_code == 422
        assert fetcher.calls == []


class TestCacheEndpoint:
    """Tests for /cache/{domain}"""

    def test_cached_domain(self, client):
        data = client.get("/cache/SunTV.in").json()
        assert data["language"] == "ta"
        assert data["source"] == "web"

    def test_unknown_domain(self, client):
        assert client.get("/cache/Nowhere.in").status_code == 404


class TestCacheReload:
    """Tests for get_cache picking up rewritten cache files"""

    def write_cache(self, path, language, mtime):
        path.write_text(json.dumps({"SunTV.in": {"language": language, "source": "web", "timestamp": 1}}), encoding="utf-8")
        os.utime(path, (mtime, mtime))

    def test_rewritten_file_is_reloaded(self, tmp_path, monkeypatch):
        cache_file = tmp_path / ".language-cache.json"
        monkeypatch.setenv("LANGUAGE_CACHE_FILE", str(cache_file))

        self.write_cache(cache_file, "tamil", 1_700_000_000)
        assert get_cache().get("SunTV.in").language == "tamil"
        assert get_cache() is get_cache()

        self.write_cache(cache_file, "ta", 1_700_000_100)
        assert get_cache().get("SunTV.in").language == "ta"

    def test_cache_created_after_start(self, tmp_path, monkeypatch):
        cache_file = tmp_path / ".language-cache.json"
        monkeypatch.setenv("LANGUAGE_CACHE_FILE", str(cache_file))

        assert get_cache().get("SunTV.in") is None

        self.write_cache(cache_file, "ta", 1_700_000_000)
        assert get_cache().get("SunTV.in").language == "ta"
