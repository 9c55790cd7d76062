from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from playwright.async_api import APIRequestContext, Error as PlaywrightError, async_playwright

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; LanguageDetectorBot/1.0)"

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

DEFAULT_TIMEOUT = 8.0
DEFAULT_RETRIES = 1
RETRY_DELAY = 0.3
MAX_REDIRECTS = 5

_CHARSET_RE = re.compile(r'charset=["\']?([\w.:-]+)', re.IGNORECASE)


@dataclass(frozen=True)
class FetchSuccess:
    domain: str
    url: str
    html: str
    status: int


@dataclass(frozen=True)
class FetchExhausted:
    """Every URL variant and retry failed for the domain"""
    domain: str
    attempts: int
    last_error: Optional[str] = None


FetchResult = Union[FetchSuccess, FetchExhausted]


def build_candidate_urls(domain: str) -> List[str]:
    """HTTPS first, www first"""
    return [
        f"https://www.{domain}",
        f"https://{domain}",
        f"http://www.{domain}",
    ]


def decode_body(body: bytes, content_type: Optional[str] = None) -> str:
    """Decode with the declared charset (UTF-8 otherwise); bad bytes become U+FFFD"""
    charset_match = _CHARSET_RE.search(content_type or "")
    encoding = charset_match.group(1) if charset_match else "utf-8"
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset {encoding!r}, decoding as utf-8")
        return body.decode("utf-8", errors="replace")


class SiteFetcher:
    """Fetch a channel website's HTML through a Playwright request context."""

    def __init__(
        self,
        request_context: APIRequestContext,
        retries: int = DEFAULT_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delay: float = RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.request_context = request_context
        self.retries = retries
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def _get(self, url: str) -> tuple[int | None, str]:
        resp = await self.request_context.get(
            url,
            headers=DEFAULT_HEADERS,
            timeout=self.timeout * 1000,
            max_redirects=MAX_REDIRECTS,
            fail_on_status_code=False,
        )
        if resp.status >= 400:
            return resp.status, ""
        return resp.status, decode_body(await resp.body(), resp.headers.get("content-type"))

    async def fetch(self, domain: str) -> FetchResult:
        attempts = 0
        last_error = None

        for url in build_candidate_urls(domain):
            for attempt in range(self.retries + 1):
                attempts += 1
                try:
                    status, html = await self._get(url)
                    if html:
                        return FetchSuccess(domain=domain, url=url, html=html, status=status)
                    last_error = f"HTTP {status}" if status and status >= 400 else "empty response"
                except PlaywrightError as e:
                    last_error = str(e)
                except Exception as e:
                    last_error = f"{type(e).__name__}: {e}"

                logger.debug(f"Fetch attempt {attempt + 1} failed for {url}: {last_error}")
                if attempt < self.retries:
                    await self._sleep(self.retry_delay)

        return FetchExhausted(domain=domain, attempts=attempts, last_error=last_error)


@asynccontextmanager
async def open_site_fetcher(
    retries: int = DEFAULT_RETRIES,
    timeout: float = DEFAULT_TIMEOUT,
) -> AsyncIterator[SiteFetcher]:
    """Start Playwright and yield a fetcher sharing one request context."""
    async with async_playwright() as p:
        request_context = await p.request.new_context(user_agent=USER_AGENT)
        try:
            yield SiteFetcher(request_context, retries=retries, timeout=timeout)
        finally:
            await request_context.dispose()
