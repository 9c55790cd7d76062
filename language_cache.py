import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_SAVE_INTERVAL = 20


@dataclass
class CacheEntry:
    language: str
    source: str     # 'web', 'pattern' or 'name-explicit'
    timestamp: int  # epoch milliseconds


class LanguageCacheProtocol(Protocol):
    def has(self, domain: str) -> bool: ...

    def get(self, domain: str) -> Optional[CacheEntry]: ...

    def set(self, domain: str, language: str, source: str) -> None: ...


class LanguageCache:
    """Domain -> detected language cache, optionally backed by a JSON file.

    All reads and writes go through one lock so concurrent detections never
    lose updates. Writes are last-write-wins. With a file path, the cache is
    saved every ``save_interval`` writes and on ``flush()``.
    """

    def __init__(self, cache_file: Optional[str] = None, save_interval: int = DEFAULT_SAVE_INTERVAL):
        self.cache_file = cache_file
        self.save_interval = save_interval
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = self._load()
        self._pending_writes = 0
        self._dirty = False

    def _load(self) -> Dict[str, CacheEntry]:
        if not self.cache_file or not os.path.exists(self.cache_file):
            return {}
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load cache {self.cache_file}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache {self.cache_file}: expected an object")
            return {}

        entries = {}
        for domain, value in data.items():
            try:
                entries[domain] = CacheEntry(
                    language=value['language'],
                    source=value['source'],
                    timestamp=int(value.get('timestamp', 0)),
                )
            except (TypeError, KeyError, ValueError, AttributeError):
                logger.warning(f"Skipping malformed cache entry for {domain}")
        return entries

    def save(self) -> None:
        if not self.cache_file:
            return
        with self._lock:
            payload = {domain: asdict(entry) for domain, entry in self._entries.items()}
            try:
                directory = os.path.dirname(self.cache_file)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self.cache_file, 'w', encoding='utf-8') as f:
                    json.dump(payload, f, indent=2)
                self._dirty = False
            except OSError as e:
                logger.error(f"Failed to save cache {self.cache_file}: {e}")

    def has(self, domain: str) -> bool:
        with self._lock:
            return domain in self._entries

    def get(self, domain: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(domain)

    def set(self, domain: str, language: str, source: str) -> None:
        with self._lock:
            self._entries[domain] = CacheEntry(language=language, source=source, timestamp=int(time.time() * 1000))
            self._dirty = True
            self._pending_writes += 1
            if self._pending_writes >= self.save_interval:
                self.save()
                self._pending_writes = 0

    def flush(self) -> None:
        """Save if anything changed since the last save"""
        with self._lock:
            if self._dirty:
                self.save()
                self._pending_writes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
