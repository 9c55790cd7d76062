from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from channel_patterns import detect_explicit_language_in_name, detect_language_by_pattern, extract_domain
from language_cache import LanguageCacheProtocol
from language_detection import language_detector
from site_fetcher import FetchExhausted, FetchResult, FetchSuccess

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, domain: str) -> FetchResult: ...


@dataclass(frozen=True)
class ChannelLanguage:
    language: str
    source: str  # 'name-explicit', 'cached-<source>', 'web' or 'pattern'


async def detect_channel_language(
    channel: Mapping[str, Any],
    cache: LanguageCacheProtocol,
    fetcher: Optional[Fetcher] = None,
) -> ChannelLanguage:
    """Assign a language to one channel record. Never raises.

    Strategies, first success wins:
      1. language named in the channel name (checked before the cache)
      2. cached result for the website domain
      3. website detection, when a fetcher is available
      4. channel-brand patterns, worst case 'unknown'
    """
    name = channel.get("name")
    domain = extract_domain(channel.get("tvgId"))

    explicit_language = detect_explicit_language_in_name(name)
    if explicit_language:
        if domain:
            cache.set(domain, explicit_language, "name-explicit")
        return ChannelLanguage(explicit_language, "name-explicit")

    if domain and cache.has(domain):
        cached = cache.get(domain)
        if cached is not None:
            return ChannelLanguage(cached.language, f"cached-{cached.source}")

    if domain and fetcher is not None:
        web_language = await _detect_from_website(domain, fetcher)
        if web_language and web_language != "unknown":
            cache.set(domain, web_language, "web")
            return ChannelLanguage(web_language, "web")

    pattern_language = detect_language_by_pattern(name)
    if domain:
        cache.set(domain, pattern_language, "pattern")
    return ChannelLanguage(pattern_language, "pattern")


async def _detect_from_website(domain: str, fetcher: Fetcher) -> Optional[str]:
    try:
        result = await fetcher.fetch(domain)
    except Exception as e:
        logger.warning(f"Fetching {domain} failed: {e}")
        return None

    if isinstance(result, FetchExhausted):
        logger.debug(f"No reachable URL for {domain} after {result.attempts} attempts: {result.last_error}")
        return None

    if isinstance(result, FetchSuccess):
        try:
            return language_detector.detect_from_html(result.html)
        except Exception as e:
            logger.warning(f"Language analysis failed for {result.url}: {e}")
    return None
