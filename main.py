import os
from functools import partial
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from channel_detection import detect_channel_language
from channel_patterns import detect_explicit_language_in_name, detect_language_by_pattern, extract_domain
from config import load_config
from language_cache import LanguageCache
from language_detection import SAMPLE_LENGTH, count_scripts, language_detector, language_name
from site_fetcher import FetchExhausted, FetchSuccess, SiteFetcher, open_site_fetcher

FetcherOpener = Callable[[], AsyncContextManager[SiteFetcher]]

app = FastAPI(title="Channel Language API", description="Diagnostics for TV channel language detection")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cache loaded from disk, keyed by (cache file, mtime)
_loaded_cache: Dict[str, Any] = {"key": None, "cache": None}


def get_fetcher_opener() -> FetcherOpener:
    """Opens a Playwright-backed fetcher on demand"""
    config = load_config()
    return partial(open_site_fetcher, retries=config.fetch_retries, timeout=config.fetch_timeout)


async def get_fetcher(open_fetcher: FetcherOpener = Depends(get_fetcher_opener)) -> AsyncIterator[SiteFetcher]:
    async with open_fetcher() as fetcher:
        yield fetcher


def get_cache() -> LanguageCache:
    """The persistent cache written by enrichment runs (read-only here).

    Reloaded whenever the file's modification time changes.
    """
    cache_file = load_config().cache_file
    mtime: Optional[float] = os.path.getmtime(cache_file) if os.path.exists(cache_file) else None
    key: Tuple[str, Optional[float]] = (cache_file, mtime)
    if _loaded_cache["key"] != key:
        _loaded_cache["cache"] = LanguageCache(cache_file)
        _loaded_cache["key"] = key
    return _loaded_cache["cache"]


def _validated_domain(domain: str) -> str:
    validated = extract_domain(f"{domain}@")
    if not validated:
        raise HTTPException(status_code=422, detail=f"Invalid domain: {domain}")
    return validated


async def _fetch_html(domain: str, fetcher: SiteFetcher) -> FetchSuccess:
    result = await fetcher.fetch(_validated_domain(domain))
    if isinstance(result, FetchExhausted):
        raise HTTPException(
            status_code=502,
            detail=f"Failed to fetch any URL for domain {result.domain} after {result.attempts} attempts: {result.last_error}",
        )
    return result


@app.get("/detect")
async def detect(
    name: str = Query(..., description="Channel display name"),
    tvg_id: str = Query("", description="tvgId in the form <domain>@<quality>"),
    skip_web: bool = Query(False, description="Skip website detection (pattern matching only)"),
    open_fetcher: FetcherOpener = Depends(get_fetcher_opener),
):
    """
    Run the full per-channel decision against a fresh in-memory cache.

    Also reports the explicit-name and brand-pattern results on their own,
    which is handy when checking why a channel got its language. Playwright
    is only started when the website is actually consulted.
    """
    cache = LanguageCache()
    channel = {"name": name, "tvgId": tvg_id}
    if skip_web or not extract_domain(tvg_id):
        result = await detect_channel_language(channel, cache)
    else:
        async with open_fetcher() as fetcher:
            result = await detect_channel_language(channel, cache, fetcher)
    pattern_language = detect_language_by_pattern(name)
    return {
        "name": name,
        "tvg_id": tvg_id,
        "domain": extract_domain(tvg_id),
        "explicit_language": detect_explicit_language_in_name(name),
        "pattern_language": pattern_language,
        "language": result.language,
        "language_name": language_name(result.language),
        "source": result.source,
    }


@app.get("/metadata")
async def metadata(
    domain: str = Query(..., description="Website domain, e.g. 7SMusic.in"),
    fetcher: SiteFetcher = Depends(get_fetcher),
):
    """Metadata-only detection: head signals, confidence tier and extracted fields."""
    fetched = await _fetch_html(domain, fetcher)
    result = language_detector.detect_from_metadata(fetched.html)
    return {"url": fetched.url, **result.to_dict()}


@app.get("/body-text")
async def body_text(
    domain: str = Query(..., description="Website domain, e.g. 7SMusic.in"),
    fetcher: SiteFetcher = Depends(get_fetcher),
):
    """Extracted visible text, its script breakdown and the body-text result."""
    fetched = await _fetch_html(domain, fetcher)
    text = language_detector.extract_text_content(fetched.html)
    sample = text[:SAMPLE_LENGTH]
    scripts: Dict[str, Any] = {
        script: {"count": count, "percentage": round(count / len(sample) * 100, 2) if sample else 0.0}
        for script, count in count_scripts(sample).items()
        if count > 0
    }
    return {
        "url": fetched.url,
        "html_size": len(fetched.html),
        "text_length": len(text),
        "sample": text[:500],
        "scripts": scripts,
        "result": language_detector.detect_from_body_text(fetched.html).to_dict(),
    }


@app.get("/html-language")
async def html_language(
    domain: str = Query(..., description="Website domain, e.g. 7SMusic.in"),
    metadata_only: bool = Query(False, description="Use head metadata only"),
    fetcher: SiteFetcher = Depends(get_fetcher),
):
    """Resolve the page language from metadata and body text combined."""
    fetched = await _fetch_html(domain, fetcher)
    language = language_detector.detect_from_html(fetched.html, metadata_only=metadata_only)
    return {
        "url": fetched.url,
        "language": language,
        "language_name": language_name(language),
        "metadata_only": metadata_only,
    }


@app.get("/cache/{domain}")
async def cached_language(domain: str, cache: LanguageCache = Depends(get_cache)):
    entry = cache.get(domain)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No cache entry for {domain}")
    return {"domain": domain, "language": entry.language, "source": entry.source, "timestamp": entry.timestamp}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
