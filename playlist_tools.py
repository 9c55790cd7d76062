"""
Playlist and dataset maintenance for the channel catalogue.

    python playlist_tools.py m3u-to-json data/iptv/streams/in.m3u data/in.json
    python playlist_tools.py split data/in.json tv
    python playlist_tools.py group tv
    python playlist_tools.py reset --clear-cache
"""

import argparse
import glob
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from config import configure_logging, load_config

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "unknown"

_ATTR_RE = re.compile(r'(\w+(?:-\w+)*)="([^"]*)"')
_QUALITY_RE = re.compile(r'\((\d+p)\)')
_BRACKET_TAG_RE = re.compile(r'\[.*?\]')
_SLUG_RE = re.compile(r'[^a-z0-9]+')

CATEGORY_PATTERNS = {
    "news": re.compile(r"news|aaj tak|abp|ndtv|zee news|india today|times now", re.IGNORECASE),
    "entertainment": re.compile(r"tv|zee|star|sony|colors|&tv|sab|rishtey|dangal", re.IGNORECASE),
    "music": re.compile(r"music|mtv|bindass|9xm|jalwa|jhakaas|tashan", re.IGNORECASE),
    "movies": re.compile(r"movies|cinema|film|flix|pictures|bollywood", re.IGNORECASE),
    "devotional": re.compile(r"aastha|god|bhajan|dharm|sanskar|shubh", re.IGNORECASE),
    "sports": re.compile(r"sports|cricket|football|tennis|fifa|espn|star sports", re.IGNORECASE),
    "kids": re.compile(r"kids|cartoon|pogo|nick|disney|hungama", re.IGNORECASE),
    "documentary": re.compile(r"discovery|national geographic|animal planet|history|nat geo", re.IGNORECASE),
    "lifestyle": re.compile(r"food|travel|lifestyle|fashion|living", re.IGNORECASE),
}

# Fields dropped from per-language listings
_GROUP_DROPPED_FIELDS = ("streamUrl", "language", "isActive", "tvgId", "categoryId", "quality")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def parse_m3u(content: str) -> List[Dict[str, Any]]:
    """Parse an extended M3U playlist into channel records"""
    channels = []
    current: Optional[Dict[str, Any]] = None
    vlc_opts: List[str] = []

    for raw_line in content.split("\n"):
        line = raw_line.strip()

        if line.startswith("#EXTM3U"):
            continue

        if line.startswith("#EXTINF:"):
            attributes = dict(_ATTR_RE.findall(line))
            comma_index = line.find(",")
            name_and_info = line[comma_index + 1:] if comma_index != -1 else ""
            quality_match = _QUALITY_RE.search(name_and_info)
            name = _BRACKET_TAG_RE.sub("", _QUALITY_RE.sub("", name_and_info)).strip()

            current = {
                "id": "",
                "name": name,
                "tvgId": attributes.get("tvg-id", ""),
                "quality": quality_match.group(1) if quality_match else "",
                "streamUrl": "",
                "attributes": attributes,
            }
            vlc_opts = []

        if line.startswith("#EXTVLCOPT:"):
            vlc_opts.append(line[len("#EXTVLCOPT:"):])

        if line and not line.startswith("#") and current is not None:
            current["streamUrl"] = line
            current["id"] = slugify(current["name"])
            if vlc_opts:
                current["attributes"]["vlc-opts"] = "; ".join(vlc_opts)
            channels.append(current)
            current = None
            vlc_opts = []

    return channels


def _write_json(path: str, data: Any) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def m3u_to_json(m3u_file: str, output_files: List[str]) -> List[Dict[str, Any]]:
    with open(m3u_file, "r", encoding="utf-8") as f:
        channels = parse_m3u(f.read())
    logger.info(f"Found {len(channels)} channels in {m3u_file}")
    for output_file in output_files:
        _write_json(output_file, channels)
        logger.info(f"Written to {output_file}")
    return channels


def determine_category(channel_name: str) -> str:
    name = (channel_name or "").lower()
    for category, pattern in CATEGORY_PATTERNS.items():
        if pattern.search(name):
            return category
    return "general"


def to_tv_format(channel: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": channel.get("id"),
        "name": channel.get("name"),
        "categoryId": determine_category(channel.get("name", "")),
        "streamUrl": channel.get("streamUrl"),
        "tvgId": channel.get("tvgId"),
        "isActive": True,
    }


def write_channel_files(channels: List[Dict[str, Any]], tv_dir: str) -> Tuple[int, int]:
    """Write one ``<id>.json`` per channel, never overwriting. Returns (created, skipped)."""
    os.makedirs(tv_dir, exist_ok=True)
    created = skipped = 0
    for channel in channels:
        output_file = os.path.join(tv_dir, f"{channel.get('id')}.json")
        if os.path.exists(output_file):
            logger.debug(f"Skipped {channel.get('name')}: {output_file} already exists")
            skipped += 1
            continue
        _write_json(output_file, to_tv_format(channel))
        created += 1
    logger.info(f"Created {created} channel files, skipped {skipped} in {tv_dir}")
    return created, skipped


def _channel_files(tv_dir: str) -> List[str]:
    return sorted(
        path for path in glob.glob(os.path.join(tv_dir, "*.json"))
        if os.path.basename(path) != "_meta.json"
    )


def group_by_language(tv_dir: str) -> Dict[str, int]:
    """Write active channels to ``<tv_dir>/language/<language>.json``"""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for path in _channel_files(tv_dir):
        try:
            channel = _read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error reading {path}: {e}")
            continue
        if not isinstance(channel, dict):
            logger.warning(f"Skipping {path}: expected a channel object")
            continue
        language = channel.get("language")
        if not language or not isinstance(language, str):
            continue
        groups.setdefault(language.lower(), []).append(channel)

    language_dir = os.path.join(tv_dir, "language")
    os.makedirs(language_dir, exist_ok=True)

    summary = {}
    for language, channels in groups.items():
        listing = [
            {key: value for key, value in channel.items() if key not in _GROUP_DROPPED_FIELDS}
            for channel in channels
            if channel.get("isActive") is True
        ]
        _write_json(os.path.join(language_dir, f"{language}.json"), listing)
        summary[language] = len(listing)

    for language in sorted(summary):
        logger.info(f"{language}: {summary[language]} channels")
    logger.info(f"Total languages: {len(summary)}")
    return summary


def _reset_channel(channel: Any) -> bool:
    if not isinstance(channel, dict):
        return False
    if channel.get("language") and channel["language"] != DEFAULT_LANGUAGE:
        channel["language"] = DEFAULT_LANGUAGE
        return True
    return False


def reset_language(data_file: str, tv_dir: str, cache_file: Optional[str] = None, clear_cache: bool = False) -> Dict[str, Any]:
    """Set every detected language back to 'unknown' so the next run re-detects it"""
    data_reset = 0
    try:
        channels = _read_json(data_file)
        if isinstance(channels, list):
            data_reset = sum(_reset_channel(channel) for channel in channels)
            _write_json(data_file, channels)
        else:
            logger.error(f"Error resetting {data_file}: expected a JSON array of channels")
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error resetting {data_file}: {e}")

    files_reset = 0
    for path in _channel_files(tv_dir):
        try:
            channel = _read_json(path)
            if _reset_channel(channel):
                _write_json(path, channel)
                files_reset += 1
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error processing {path}: {e}")

    cache_cleared = False
    if clear_cache and cache_file:
        if os.path.exists(cache_file):
            os.remove(cache_file)
            cache_cleared = True
            logger.info(f"Deleted cache file {cache_file}")
        else:
            logger.info("No cache file found")

    logger.info(f"Reset {data_reset} channels in {data_file} and {files_reset} files in {tv_dir}")
    return {"data_reset": data_reset, "files_reset": files_reset, "cache_cleared": cache_cleared}


def build_parser() -> argparse.ArgumentParser:
    config = load_config()
    parser = argparse.ArgumentParser(description="Channel playlist and dataset tools")
    commands = parser.add_subparsers(dest="command", required=True)

    m3u = commands.add_parser("m3u-to-json", help="Convert an M3U playlist to the JSON dataset")
    m3u.add_argument("m3u_file")
    m3u.add_argument("outputs", nargs="*", default=[config.data_file])

    split = commands.add_parser("split", help="Write one file per channel")
    split.add_argument("data_file", nargs="?", default=config.data_file)
    split.add_argument("tv_dir", nargs="?", default=config.tv_dir)

    group = commands.add_parser("group", help="Group channel files by language")
    group.add_argument("tv_dir", nargs="?", default=config.tv_dir)

    reset = commands.add_parser("reset", help="Reset detected languages to 'unknown'")
    reset.add_argument("--data-file", default=config.data_file)
    reset.add_argument("--tv-dir", default=config.tv_dir)
    reset.add_argument("--cache-file", default=config.cache_file)
    reset.add_argument("--clear-cache", action="store_true")

    parser.set_defaults(log_level=config.log_level)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "m3u-to-json":
        m3u_to_json(args.m3u_file, args.outputs)
    elif args.command == "split":
        write_channel_files(_read_json(args.data_file), args.tv_dir)
    elif args.command == "group":
        group_by_language(args.tv_dir)
    elif args.command == "reset":
        reset_language(args.data_file, args.tv_dir, args.cache_file, args.clear_cache)


if __name__ == "__main__":
    main()
