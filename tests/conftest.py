"""
Pytest configuration and shared fixtures for the test suite

Provides fake fetchers, a scripted Playwright request context and sample
HTML pages so no test touches the network.
"""
import pytest

from language_cache import LanguageCache
from site_fetcher import FetchExhausted, FetchSuccess

TAMIL_SENTENCE = "சன் டிவி தமிழ் தொலைக்காட்சி நிகழ்ச்சிகள் செய்திகள் திரைப்படங்கள் பாடல்கள் "

TAMIL_PAGE = (
    '<html lang="en"><head><title>Sun TV</title>'
    '<meta property="og:locale" content="en_US"></head>'
    f"<body><h1>{TAMIL_SENTENCE}</h1><p>{TAMIL_SENTENCE * 3}</p></body></html>"
)


class FakeFetcher:
    """Returns canned fetch results per domain and records every call"""

    def __init__(self, results=None, error=None):
        self.results = results or {}
        self.error = error
        self.calls = []

    async def fetch(self, domain):
        self.calls.append(domain)
        if self.error is not None:
            raise self.error
        result = self.results.get(domain)
        if result is None:
            return FetchExhausted(domain=domain, attempts=6, last_error="HTTP 404")
        return result


class FakeResponse:
    """Mirrors playwright's APIResponse: raw bytes, strict UTF-8 text()"""

    def __init__(self, status=200, body="", content_type="text/html"):
        self.status = status
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.headers = {"content-type": content_type}

    async def body(self):
        return self.content

    async def text(self):
        return self.content.decode()


class FakeRequestContext:
    """Stands in for playwright's APIRequestContext.

    ``outcomes`` maps a URL to a list of responses or exceptions consumed in
    order; URLs without outcomes answer with a 404 response.
    """

    def __init__(self, outcomes=None):
        self.outcomes = {url: list(items) for url, items in (outcomes or {}).items()}
        self.calls = []

    async def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        queue = self.outcomes.get(url)
        if not queue:
            return FakeResponse(status=404)
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def success(domain, html, url=None):
    return FetchSuccess(domain=domain, url=url or f"https://www.{domain}", html=html, status=200)


@pytest.fixture
def cache():
    """In-memory cache, never written to disk"""
    return LanguageCache()


@pytest.fixture
def tamil_page():
    return TAMIL_PAGE


@pytest.fixture
def recorded_sleeps():
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    fake_sleep.calls = sleeps
    return fake_sleep
