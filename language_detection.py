import re
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any, Iterable, Pattern
from dataclasses import dataclass, field, replace

from bs4 import BeautifulSoup
from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

logger = logging.getLogger(__name__)

# Seed langdetect so the same text always classifies the same way
DetectorFactory.seed = 0

# ISO 639-1 codes for the supported languages
LANGUAGE_CODES: Dict[str, str] = {
    'tamil': 'ta',
    'telugu': 'te',
    'hindi': 'hi',
    'kannada': 'kn',
    'malayalam': 'ml',
    'english': 'en',
    'bengali': 'bn',
    'marathi': 'mr',
    'punjabi': 'pa',
    'gujarati': 'gu',
    'urdu': 'ur',
    'bhojpuri': 'bh',
    'assamese': 'as',
    'odia': 'or',
    'unknown': 'unknown',
}

ISO_TO_LANGUAGE: Dict[str, str] = {code: name for name, code in LANGUAGE_CODES.items()}

# Full names accepted by normalize_language_code, including common alternates
_LANGUAGE_NAME_TO_CODE: Dict[str, str] = {
    'tamil': 'ta',
    'telugu': 'te',
    'hindi': 'hi',
    'kannada': 'kn',
    'malayalam': 'ml',
    'english': 'en',
    'bengali': 'bn',
    'bangla': 'bn',
    'marathi': 'mr',
    'punjabi': 'pa',
    'gujarati': 'gu',
    'urdu': 'ur',
    'bhojpuri': 'bh',
    'assamese': 'as',
    'odia': 'or',
    'oriya': 'or',
}

# langdetect output codes that map onto supported languages
_STATISTICAL_TO_LANGUAGE: Dict[str, str] = {
    'ta': 'tamil',
    'te': 'telugu',
    'hi': 'hindi',
    'kn': 'kannada',
    'ml': 'malayalam',
    'en': 'english',
    'bn': 'bengali',
    'mr': 'marathi',
    'pa': 'punjabi',
    'gu': 'gujarati',
    'ur': 'urdu',
}

# Unicode blocks counted by script detection, in tie-break order
SCRIPT_RANGES: Tuple[Tuple[str, Pattern[str], str], ...] = (
    ('tamil', re.compile(r'[\u0B80-\u0BFF]'), 'tamil'),
    ('telugu', re.compile(r'[\u0C00-\u0C7F]'), 'telugu'),
    ('kannada', re.compile(r'[\u0C80-\u0CFF]'), 'kannada'),
    ('malayalam', re.compile(r'[\u0D00-\u0D7F]'), 'malayalam'),
    ('devanagari', re.compile(r'[\u0900-\u097F]'), 'hindi'),
    ('bengali', re.compile(r'[\u0980-\u09FF]'), 'bengali'),
    ('gujarati', re.compile(r'[\u0A80-\u0AFF]'), 'gujarati'),
    ('punjabi', re.compile(r'[\u0A00-\u0A7F]'), 'punjabi'),
    ('latin', re.compile(r'[a-zA-Z]'), 'english'),
)

_SCRIPT_TO_LANGUAGE: Dict[str, str] = {script: language for script, _, language in SCRIPT_RANGES}

_MENTION_KEYWORDS = r'(?:language|channel|tv|music|news|cinema|movies|satellite)'

# "Tamil language channel", "Hindi news", ... in descriptive text
LANGUAGE_MENTION_PATTERNS: Dict[str, Pattern[str]] = {
    'tamil': re.compile(rf'\b(?:tamil|tamizh)\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'telugu': re.compile(rf'\btelugu\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'hindi': re.compile(rf'\bhindi\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'kannada': re.compile(rf'\bkannada\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'malayalam': re.compile(rf'\bmalayalam\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'bengali': re.compile(rf'\b(?:bengali|bangla)\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'marathi': re.compile(rf'\bmarathi\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'gujarati': re.compile(rf'\bgujarati\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
    'punjabi': re.compile(rf'\bpunjabi\s+{_MENTION_KEYWORDS}\b', re.IGNORECASE),
}

# Locale fragments in script/stylesheet URLs
RESOURCE_PATTERNS: Dict[str, Pattern[str]] = {
    'ta': re.compile(r'tamil|ta[-_]in', re.IGNORECASE),
    'te': re.compile(r'telugu|te[-_]in', re.IGNORECASE),
    'hi': re.compile(r'hindi|hi[-_]in', re.IGNORECASE),
    'kn': re.compile(r'kannada|kn[-_]in', re.IGNORECASE),
    'ml': re.compile(r'malayalam|ml[-_]in', re.IGNORECASE),
    'bn': re.compile(r'bengali|bangla|bn[-_]in', re.IGNORECASE),
    'mr': re.compile(r'marathi|mr[-_]in', re.IGNORECASE),
    'gu': re.compile(r'gujarati|gu[-_]in', re.IGNORECASE),
    'pa': re.compile(r'punjabi|pa[-_]in', re.IGNORECASE),
    'en': re.compile(r'en[-_]us|en[-_]gb|english', re.IGNORECASE),
}

# Elements whose content is never visible text
SKIPPED_TEXT_TAGS = ['script', 'style', 'noscript', 'iframe', 'svg', 'img']

_WHITESPACE_RE = re.compile(r'\s+')
_ISO_CODE_RE = re.compile(r'[a-z]{2}')
_LOCALE_RE = re.compile(r'([a-z]{2})[-_]')
_CONTENT_LANGUAGE_RE = re.compile(r'^content-language$', re.IGNORECASE)

MIN_TEXT_LENGTH = 50
MIN_STATISTICAL_LENGTH = 100
SAMPLE_LENGTH = 5000


class SignalSource(str, Enum):
    """Origin of a language signal"""
    DESCRIPTION_HINT = 'description-hint'
    HTML_LANG = 'html-lang'
    META_CONTENT_LANGUAGE = 'meta-content-language'
    OG_LOCALE = 'og-locale'
    META_LANGUAGE = 'meta-language'
    RESOURCE_ANALYSIS = 'resource-analysis'
    BODY_TEXT = 'body-text'


# Structural head signals that make a metadata result "high" confidence
STRONG_SIGNAL_SOURCES = frozenset({
    SignalSource.HTML_LANG,
    SignalSource.META_CONTENT_LANGUAGE,
    SignalSource.OG_LOCALE,
    SignalSource.META_LANGUAGE,
})


@dataclass(frozen=True)
class LanguageSignal:
    """One weighted piece of evidence about a page's language"""
    source: SignalSource
    value: str
    weight: float

    def scaled(self, factor: float) -> 'LanguageSignal':
        return replace(self, weight=self.weight * factor)

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source.value, 'value': self.value, 'weight': self.weight}


@dataclass(frozen=True)
class DetectionResult:
    """Structured result from text analysis"""
    language: Optional[str]  # full language name, e.g. 'tamil'
    confidence: float        # 0.0 to 1.0
    method: str              # analyzer that produced the value

    def __post_init__(self):
        if self.language is None and self.confidence != 0:
            raise ValueError('A result without a language must have zero confidence')

    def to_dict(self) -> Dict[str, Any]:
        return {'language': self.language, 'confidence': self.confidence, 'method': self.method}


@dataclass
class MetadataResult:
    """Language signals extracted from the HTML head"""
    language: Optional[str]  # ISO-639-1 code
    confidence: str          # 'high' or 'low'
    signals: List[LanguageSignal] = field(default_factory=list)
    metadata: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'language': self.language,
            'confidence': self.confidence,
            'signals': [signal.to_dict() for signal in self.signals],
            'metadata': self.metadata,
        }


UNDETERMINED = DetectionResult(None, 0, 'undetermined')
INSUFFICIENT_TEXT = DetectionResult(None, 0, 'insufficient-text')


def language_name(value: Optional[str]) -> Optional[str]:
    """Human-readable name for an ISO code; other values pass through."""
    if value is None:
        return None
    return ISO_TO_LANGUAGE.get(value, value)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text).strip()


def count_scripts(sample: str) -> Dict[str, int]:
    """Character count per Unicode script block"""
    return {script: len(pattern.findall(sample)) for script, pattern, _ in SCRIPT_RANGES}


class LanguageDetector:
    """Multi-signal language detection for TV channel websites.

    Visible body text is the primary signal; HTML metadata is a secondary
    hint because many Indian media sites serve regional content from
    English templates.
    """

    def normalize_language_code(self, value) -> Optional[str]:
        """Normalize a code, locale or language name to ISO-639-1"""
        if not value or not isinstance(value, str):
            return None

        normalized = value.lower().strip()

        if _ISO_CODE_RE.fullmatch(normalized):
            return normalized

        # Locale such as "en-US" or "ta_IN"
        locale_match = _LOCALE_RE.match(normalized)
        if locale_match:
            return locale_match.group(1)

        return _LANGUAGE_NAME_TO_CODE.get(normalized)

    def aggregate_signals(self, signals: Iterable[LanguageSignal]) -> Optional[str]:
        """Sum weights per normalized code and return the strict winner.

        Ties go to the code seen first. Signals that do not normalize are
        ignored.
        """
        scores: Dict[str, float] = {}
        for signal in signals:
            code = self.normalize_language_code(signal.value)
            if code:
                scores[code] = scores.get(code, 0) + signal.weight

        best_code = None
        best_score = None
        for code, score in scores.items():
            if best_score is None or score > best_score:
                best_code, best_score = code, score
        return best_code

    def detect_from_description(self, description) -> Optional[str]:
        """Find an explicit "<language> channel/news/..." mention"""
        if not description or not isinstance(description, str):
            return None
        text = description.lower()
        for language, pattern in LANGUAGE_MENTION_PATTERNS.items():
            if pattern.search(text):
                return language
        return None

    def detect_from_resources(self, resources: str) -> Optional[str]:
        """Match script/link URLs against per-language locale fragments"""
        if not resources:
            return None
        for code, pattern in RESOURCE_PATTERNS.items():
            if pattern.search(resources):
                return code
        return None

    def _classify_statistically(self, text: str) -> Optional[str]:
        try:
            detected = detect(text)
        except LangDetectException as e:
            logger.debug(f"Statistical detection undetermined: {e}")
            return None
        return _STATISTICAL_TO_LANGUAGE.get(detected)

    def analyze_text_language(self, text: str) -> DetectionResult:
        """Classify plain text by Unicode script, then statistically.

        Script counts over the first 5000 characters decide non-Latin
        languages; langdetect handles the rest; a lower script threshold is
        the last resort.
        """
        clean_text = collapse_whitespace(text or '')
        if len(clean_text) < MIN_TEXT_LENGTH:
            return INSUFFICIENT_TEXT

        sample = clean_text[:SAMPLE_LENGTH]
        scripts = count_scripts(sample)

        top_script = None
        top_count = 0
        for script, count in scripts.items():
            if count > top_count:
                top_script, top_count = script, count

        script_ratio = top_count / len(sample)
        script_language = _SCRIPT_TO_LANGUAGE.get(top_script)

        if top_count > 50 and script_ratio > 0.05 and script_language and script_language != 'english':
            return DetectionResult(
                language=script_language,
                confidence=min(0.95, script_ratio * 10),
                method='script-detection',
            )

        if len(clean_text) >= MIN_STATISTICAL_LENGTH:
            language = self._classify_statistically(clean_text)
            if language and language != 'english':
                return DetectionResult(language=language, confidence=0.7, method='franc-statistical')
            if language == 'english' and script_ratio > 0.3 and top_script == 'latin':
                return DetectionResult(language='english', confidence=0.6, method='franc-english')

        if top_count > 20 and script_language:
            return DetectionResult(language=script_language, confidence=0.4, method='script-fallback')

        return UNDETERMINED

    def extract_text_content(self, html: str) -> str:
        """Visible text of the page body as a single whitespace-collapsed line"""
        soup = BeautifulSoup(html or '', 'html.parser')
        root = soup.body or soup
        for tag in root.find_all(SKIPPED_TEXT_TAGS):
            # already gone if nested inside another skipped element
            if not tag.decomposed:
                tag.decompose()
        return collapse_whitespace(root.get_text(separator=' '))

    def _meta_content(self, soup: BeautifulSoup, **attrs) -> Optional[str]:
        tag = soup.find('meta', attrs=attrs)
        if tag is None:
            return None
        content = (tag.get('content') or '').strip()
        return content or None

    def extract_metadata(self, soup: BeautifulSoup) -> Dict[str, Optional[str]]:
        """Descriptive fields and raw language hints from the document head"""
        title = soup.title.get_text(strip=True) if soup.title else ''
        html_tag = soup.find('html')
        html_lang = (html_tag.get('lang') or '').strip() if html_tag else ''

        scripts = [tag.get('src', '') for tag in soup.find_all('script', src=True)]
        links = [tag.get('href', '') for tag in soup.find_all('link', href=True)]

        return {
            'title': title or None,
            'description': self._meta_content(soup, name='description'),
            'og_title': self._meta_content(soup, property='og:title'),
            'og_description': self._meta_content(soup, property='og:description'),
            'og_site_name': self._meta_content(soup, property='og:site_name'),
            'html_lang': html_lang or None,
            'content_language': self._meta_content(soup, **{'http-equiv': _CONTENT_LANGUAGE_RE}),
            'og_locale': self._meta_content(soup, property='og:locale'),
            'meta_language': self._meta_content(soup, name='language'),
            'resources': (' '.join(scripts) + ' ' + ' '.join(links)).lower(),
        }

    def detect_from_metadata(self, html: str) -> MetadataResult:
        """Metadata-only detection from the HTML head"""
        soup = BeautifulSoup(html or '', 'html.parser')
        metadata = self.extract_metadata(soup)
        signals: List[LanguageSignal] = []

        description_text = ' '.join([
            metadata['description'] or '',
            metadata['og_description'] or '',
            metadata['title'] or '',
        ])
        language_hint = self.detect_from_description(description_text)
        if language_hint:
            signals.append(LanguageSignal(SignalSource.DESCRIPTION_HINT, language_hint, 9))

        structural_hints = (
            (SignalSource.HTML_LANG, metadata['html_lang'], 10),
            (SignalSource.META_CONTENT_LANGUAGE, metadata['content_language'], 8),
            (SignalSource.OG_LOCALE, metadata['og_locale'], 7),
            (SignalSource.META_LANGUAGE, metadata['meta_language'], 7),
        )
        for source, value, weight in structural_hints:
            if value:
                signals.append(LanguageSignal(source, value, weight))

        resource_language = self.detect_from_resources(metadata['resources'])
        if resource_language:
            signals.append(LanguageSignal(SignalSource.RESOURCE_ANALYSIS, resource_language, 3))

        has_strong_signal = any(signal.source in STRONG_SIGNAL_SOURCES for signal in signals)
        return MetadataResult(
            language=self.aggregate_signals(signals),
            confidence='high' if has_strong_signal else 'low',
            signals=signals,
            metadata=metadata,
        )

    def detect_from_body_text(self, html: str) -> DetectionResult:
        """Body text analysis, the primary signal for TV/media sites"""
        body_text = self.extract_text_content(html)

        # "7smusic is a famous Tamil language music channel"
        language_hint = self.detect_from_description(body_text)
        if language_hint:
            return DetectionResult(language=language_hint, confidence=0.85, method='body-language-mention')

        return self.analyze_text_language(body_text)

    def detect_from_html(self, html: str, metadata_only: bool = False) -> Optional[str]:
        """Resolve a page's language from metadata and body text.

        Metadata weights are halved since they often describe the site
        template rather than its content. Non-English body text overrides
        English metadata, and body text with confidence >= 0.7 wins outright.
        """
        metadata_result = self.detect_from_metadata(html)
        if metadata_only:
            return metadata_result.language

        signals = [signal.scaled(0.5) for signal in metadata_result.signals]

        body_result = self.detect_from_body_text(html)
        body_code = self.normalize_language_code(body_result.language)
        if body_code:
            signals.append(LanguageSignal(SignalSource.BODY_TEXT, body_result.language, 8 if body_code == 'en' else 15))

            if metadata_result.language == 'en' and body_code != 'en' and body_result.confidence >= 0.5:
                logger.info(f"Body text ({body_code}) overrides English metadata")
                return body_code

            if body_result.confidence >= 0.7:
                return body_code

        return self.aggregate_signals(signals)


# Global instance
language_detector = LanguageDetector()
