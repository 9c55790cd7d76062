import re
from typing import Dict, Optional, Pattern

_DOMAIN_RE = re.compile(r'(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,}', re.IGNORECASE)

def extract_domain(tvg_id) -> Optional[str]:
    """Return the validated domain from a ``<domain>@<quality>`` tvgId, or None."""
    if not tvg_id or not isinstance(tvg_id, str):
        return None
    if '@' not in tvg_id:
        return None
    domain = tvg_id.split('@', 1)[0].strip()
    if domain and _DOMAIN_RE.fullmatch(domain):
        return domain
    return None

# Whole-word language names in channel names ("6 TV Telugu", "Zee Hindi").
# Iteration order decides which language wins when a name mentions two.
EXPLICIT_NAME_PATTERNS: Dict[str, Pattern[str]] = {
    'tamil': re.compile(r'\btamil\b|\btamizh\b', re.IGNORECASE),
    'telugu': re.compile(r'\btelugu\b', re.IGNORECASE),
    'kannada': re.compile(r'\bkannada\b', re.IGNORECASE),
    'malayalam': re.compile(r'\bmalayalam\b', re.IGNORECASE),
    'hindi': re.compile(r'\bhindi\b', re.IGNORECASE),
    'bengali': re.compile(r'\bbengali\b|\bbangla\b', re.IGNORECASE),
    'marathi': re.compile(r'\bmarathi\b', re.IGNORECASE),
    'punjabi': re.compile(r'\bpunjabi\b|\bpunjab\b', re.IGNORECASE),
    'gujarati': re.compile(r'\bgujarati\b', re.IGNORECASE),
    'english': re.compile(r'\benglish\b', re.IGNORECASE),
    'urdu': re.compile(r'\burdu\b', re.IGNORECASE),
    'bhojpuri': re.compile(r'\bbhojpuri\b', re.IGNORECASE),
}

# Channel-brand keywords per language, first match wins.
LANGUAGE_PATTERNS: Dict[str, Pattern[str]] = {
    'tamil': re.compile(
        r'tamil|sun tv|raj tv|raj musix|kalaignar|vijay|puthiya|thanthi|polimer|news ?7 tamil|jaya|vasanth|'
        r'makkal|captain|aaseervatham|dd tamil|tamilan|blessing.*tamil|naaptol.*tamil|aastha.*tamil',
        re.IGNORECASE,
    ),
    'telugu': re.compile(
        r'telugu|gemini|etv|maa|10 ?tv|6 ?tv|4 ?tv|ntv|v6|abn|sakshi|t ?news|vanitha|zee telugu|star maa|'
        r'aastha.*telugu',
        re.IGNORECASE,
    ),
    'kannada': re.compile(
        r'kannada|udaya|suvarna|zee kannada|colors kannada|kasturi|dd chandana|public.*tv.*kannada|'
        r'raj.*news.*kannada|aastha.*kannada',
        re.IGNORECASE,
    ),
    'malayalam': re.compile(
        r'malayalam|asianet|mazhavil|surya|kairali|manorama|amrita|jaihind|media ?one|mathrubhumi|safari|'
        r'flowers|kaumudy|zee keralam|jeevan',
        re.IGNORECASE,
    ),
    'hindi': re.compile(
        r'hindi|zee(?!.*tamil|.*telugu|.*kannada|.*malayalam|.*bengali|.*marathi|.*punjabi|.*gujarati)|'
        r'star plus|sony|colors|&tv|sab tv|rishtey|dangal|aaj tak|abp news|ndtv|india tv|news18|republic|'
        r'times now|india today|dd india|dd national|dd bharati|news ?24|epic|big magic|zing|dd rajasthan|'
        r'dd uttar|dd madhya|dd bihar|dd jharkhand|dd delhi|dhakad|aastha|sanskar|ishara|manoranjan|'
        r'9x.*(?:jalwa|jhakaas|m\b)|music india',
        re.IGNORECASE,
    ),
    'marathi': re.compile(r'marathi|zee marathi|star pravah|colors marathi|fakt marathi', re.IGNORECASE),
    'bengali': re.compile(
        r'bengali|bangla|jalsha|zee bangla|colors bangla|aakaash|amar.*bangla|calcutta|akd|ananda',
        re.IGNORECASE,
    ),
    'punjabi': re.compile(r'punjab|ptc|mh1|zee punjabi|9x tashan', re.IGNORECASE),
    'gujarati': re.compile(
        r'gujarati|sandesh|tv9 gujarati|abp asmita|zee 24 kalak|colors gujarati', re.IGNORECASE
    ),
    'urdu': re.compile(r'urdu|salaam', re.IGNORECASE),
    'bhojpuri': re.compile(r'bhojpuri|b4u bhojpuri', re.IGNORECASE),
    'assamese': re.compile(r'assam|pratidin|news.*live.*assam|prag', re.IGNORECASE),
    'odia': re.compile(r'odia|oriya|alankar|mbc', re.IGNORECASE),
    'english': re.compile(
        r'discovery|national geographic|nat geo|animal planet|bbc|cnn|fox|history|sony pix|&flix|&prive|'
        r'movies now|romedy|mtv|vh1|comedy central|nick|cartoon|pogo|disney|hungama|sony yay|travel xp|'
        r'fashion|food|tlc|living|espn|star sports|sony.*sports|eurosport|dd sports|mirror now|wion|zoom',
        re.IGNORECASE,
    ),
}

# Generic broadcast terms; unmatched Indian channels default to Hindi.
_GENERIC_BROADCAST_RE = re.compile(r'tv|channel|news|bharat|india|desi')

def _as_name(channel_name) -> str:
    if channel_name is None:
        return ''
    return str(channel_name).lower()

def detect_explicit_language_in_name(channel_name) -> Optional[str]:
    """Return the language named outright in the channel name, or None."""
    name = _as_name(channel_name)
    for language, pattern in EXPLICIT_NAME_PATTERNS.items():
        if pattern.search(name):
            return language
    return None

def detect_language_by_pattern(channel_name) -> str:
    """Brand-keyword fallback. Always returns a language name or 'unknown'."""
    name = _as_name(channel_name)
    for language, pattern in LANGUAGE_PATTERNS.items():
        if pattern.search(name):
            return language
    if _GENERIC_BROADCAST_RE.search(name):
        return 'hindi'
    return 'unknown'
