from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from channel_detection import Fetcher, detect_channel_language
from config import EnrichmentConfig, configure_logging, load_config
from language_cache import LanguageCache
from language_detection import language_name
from site_fetcher import open_site_fetcher

logger = logging.getLogger(__name__)

CACHE_FLUSH_EVERY = 100


class DatasetError(Exception):
    """The input dataset is missing or unreadable"""


@dataclass
class EnrichmentStats:
    total: int = 0
    enriched: int = 0
    skipped: int = 0
    errors: int = 0
    sources: Counter = field(default_factory=Counter)
    languages: Counter = field(default_factory=Counter)
    total_processing_ms: float = 0.0

    @property
    def processed(self) -> int:
        return self.enriched + self.skipped

    @property
    def average_ms(self) -> float:
        return self.total_processing_ms / self.enriched if self.enriched else 0.0


def load_channels(data_file: str) -> List[Dict[str, Any]]:
    try:
        with open(data_file, "r", encoding="utf-8") as f:
            channels = json.load(f)
    except FileNotFoundError:
        raise DatasetError(f"{data_file} file not found")
    except (OSError, json.JSONDecodeError) as e:
        raise DatasetError(f"Could not read {data_file}: {e}")
    if not isinstance(channels, list):
        raise DatasetError(f"{data_file} must contain a JSON array of channels")
    return channels


def write_json(path: str, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def needs_language(channel: Dict[str, Any]) -> bool:
    language = channel.get("language")
    return not language or language == "unknown"


def update_channel_file(tv_dir: str, channel: Dict[str, Any], language: str) -> None:
    channel_file = os.path.join(tv_dir, f"{channel.get('id')}.json")
    if not os.path.exists(channel_file):
        return
    try:
        with open(channel_file, "r", encoding="utf-8") as f:
            file_channel = json.load(f)
        file_channel["language"] = language
        write_json(channel_file, file_channel)
    except (OSError, json.JSONDecodeError) as e:
        logger.debug(f"Error updating individual file {channel_file}: {e}")


async def enrich_channel(
    channel: Dict[str, Any],
    tv_dir: str,
    cache: LanguageCache,
    fetcher: Optional[Fetcher],
    stats: EnrichmentStats,
) -> None:
    if not needs_language(channel):
        stats.skipped += 1
        return

    try:
        start = time.monotonic()
        result = await detect_channel_language(channel, cache, fetcher)
        duration_ms = (time.monotonic() - start) * 1000

        channel["language"] = result.language
        update_channel_file(tv_dir, channel, result.language)

        stats.enriched += 1
        stats.sources[result.source] += 1
        stats.languages[result.language] += 1
        stats.total_processing_ms += duration_ms

        percentage = stats.processed / stats.total * 100 if stats.total else 100.0
        remaining = stats.total - stats.processed
        eta_minutes = remaining * stats.average_ms / 1000 / 60
        logger.info(
            f"[{percentage:.1f}%] Enriched {channel.get('name')}: {language_name(result.language)} "
            f"via {result.source} ({duration_ms:.0f}ms, {stats.processed}/{stats.total}, eta {eta_minutes:.1f}min)"
        )
    except Exception as e:
        logger.error(f"Error processing channel {channel.get('id')}: {e}")
        stats.errors += 1


async def process_batches(
    channels: List[Dict[str, Any]],
    config: EnrichmentConfig,
    cache: LanguageCache,
    fetcher: Optional[Fetcher],
    stats: EnrichmentStats,
) -> None:
    """Run channels in order, ``max_concurrent`` at a time, pausing between batches"""
    batch_size = config.max_concurrent
    started = time.monotonic()

    for start in range(0, len(channels), batch_size):
        batch = channels[start:start + batch_size]
        await asyncio.gather(*(enrich_channel(channel, config.tv_dir, cache, fetcher, stats) for channel in batch))

        done = start + len(batch)
        if done // CACHE_FLUSH_EVERY > start // CACHE_FLUSH_EVERY:
            cache.flush()

        if done < len(channels):
            await asyncio.sleep(config.rate_limit_delay)
            elapsed = time.monotonic() - started
            rate = stats.processed / elapsed if elapsed else 0.0
            logger.info(f"Batch progress: {stats.processed}/{len(channels)} in {elapsed / 60:.1f}min ({rate:.1f} channels/sec)")


async def run_enrichment(config: EnrichmentConfig, fetcher: Optional[Fetcher] = None) -> EnrichmentStats:
    """Enrich the dataset in place and return run statistics.

    Opens a Playwright request context for the run unless a fetcher is
    supplied.
    """
    channels = load_channels(config.data_file)
    cache = LanguageCache(config.cache_file, save_interval=config.cache_save_interval)
    stats = EnrichmentStats(total=len(channels))

    logger.info(f"Loaded {len(channels)} channels, {len(cache)} cached domains")
    logger.info(
        f"Processing with {config.max_concurrent} concurrent workers "
        f"(timeout={config.fetch_timeout}s, retries={config.fetch_retries}, delay={config.rate_limit_delay}s)"
    )

    try:
        if fetcher is not None:
            await process_batches(channels, config, cache, fetcher, stats)
        else:
            async with open_site_fetcher(retries=config.fetch_retries, timeout=config.fetch_timeout) as site_fetcher:
                await process_batches(channels, config, cache, site_fetcher, stats)
    finally:
        cache.flush()

    logger.info(f"Saving enriched data to {config.data_file}")
    write_json(config.data_file, channels)

    logger.info(
        f"Enrichment complete: {stats.enriched} enriched, {stats.skipped} skipped, {stats.errors} errors, "
        f"{stats.total} total, avg {stats.average_ms:.0f}ms per channel"
    )
    logger.info(f"Sources: {dict(stats.sources)}")
    logger.info(f"Languages: {dict(stats.languages)}")
    logger.info(f"Cache {config.cache_file} holds {len(cache)} entries")
    return stats


def main() -> None:
    config = load_config()
    configure_logging(config.log_level)
    logger.info("Starting TV channel language enrichment")
    try:
        asyncio.run(run_enrichment(config))
    except DatasetError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
