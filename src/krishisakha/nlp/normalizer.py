"""Query cleaning, script-based language detection and Hinglish handling."""

from __future__ import annotations

import re
from typing import Callable, Mapping, Sequence

from krishisakha.models import Query


class InvalidQuery(ValueError):
    """Raised when a submission cannot be turned into a farming question."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


INVALID_QUERY_MESSAGE = "Please enter a valid farming question (minimum 3 characters with letters)"
MIN_QUERY_LENGTH = 3

# Devanagari through Malayalam.
_INDIC_RANGE = r"\u0900-\u0D7F"

_DISALLOWED_CHARS = re.compile(rf"[^a-zA-Z0-9_\s{_INDIC_RANGE}.,!?]")
_REPEATED_PUNCTUATION = re.compile(r"([.!?])[.!?]+")
_REPEATED_CHARS = re.compile(r"(\D)\1{3,}")
_WHITESPACE = re.compile(r"\s+")
_LETTER = re.compile(rf"[a-zA-Z{_INDIC_RANGE}]")

LANGUAGE_NAMES: Mapping[str, str] = {
    "eng": "English",
    "hin": "Hindi",
    "hin-rom": "Hindi (Roman script)",
    "ben": "Bengali",
    "guj": "Gujarati",
    "ori": "Odia",
}

HINGLISH_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(
        r"\b(kaise|kaisa|kya|kahan|kyun|kab|koi|hai|hain|kar|karne|ke|ki|ka|mein|main|se|pe|par|aur|ya|jo|jab|agar|lekin|phir)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(pani|paani|khad|khaad|keet|kisan|fasal|bijli|barish|mitti|zameen|bagwani|pashu|gaay|bhains)\b",
        re.IGNORECASE,
    ),
)


def contains_hinglish(text: str) -> bool:
    return any(pattern.search(text) for pattern in HINGLISH_PATTERNS)


def _script(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


# Evaluated in order; first predicate that holds decides the language.
LANGUAGE_RULES: Sequence[tuple[Callable[[str], bool], str]] = (
    (_script(r"[\u0900-\u097F]"), "hin"),
    (_script(r"[\u0980-\u09FF]"), "ben"),
    (_script(r"[\u0A80-\u0AFF]"), "guj"),
    (_script(r"[\u0B00-\u0B7F]"), "ori"),
    (contains_hinglish, "hin-rom"),
)
DEFAULT_LANGUAGE = "eng"

HINGLISH_TO_DEVANAGARI: Mapping[str, str] = {
    "pani": "पानी",
    "paani": "पानी",
    "khad": "खाद",
    "khaad": "खाद",
    "keet": "कीट",
    "kisan": "किसान",
    "fasal": "फसल",
    "mitti": "मिट्टी",
    "zameen": "ज़मीन",
    "gaay": "गाय",
    "bhains": "भैंस",
    "kaise": "कैसे",
    "kya": "क्या",
    "hai": "है",
    "kar": "कर",
    "ke": "के",
    "ki": "की",
    "ka": "का",
    "mein": "में",
    "se": "से",
}

SPELLING_CORRECTIONS: Mapping[str, str] = {
    "fertlizer": "fertilizer",
    "fertliser": "fertilizer",
    "fertilizr": "fertilizer",
    "pestcide": "pesticide",
    "pestiside": "pesticide",
    "irigation": "irrigation",
    "irigashun": "irrigation",
    "cropp": "crop",
    "soyl": "soil",
    "watr": "water",
    "wheet": "wheat",
    "weathr": "weather",
    "subsidi": "subsidy",
    "pani": "water",
    "khad": "fertilizer",
    "keet": "pest",
    "beej": "seed",
    "fasal": "crop",
}


def detect_language(text: str) -> str:
    for predicate, language in LANGUAGE_RULES:
        if predicate(text):
            return language
    return DEFAULT_LANGUAGE


def clean_text(text: str) -> str:
    cleaned = _WHITESPACE.sub(" ", text).strip().lower()
    cleaned = _DISALLOWED_CHARS.sub("", cleaned)
    cleaned = _REPEATED_PUNCTUATION.sub(r"\1", cleaned)
    cleaned = _REPEATED_CHARS.sub(r"\1\1", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned


def _substitute_words(text: str, mapping: Mapping[str, str]) -> str:
    for source, target in mapping.items():
        text = re.sub(rf"\b{re.escape(source)}\b", target, text, flags=re.IGNORECASE)
    return text


def transliterate_hinglish(text: str) -> str:
    """Swap known romanized Hindi words for Devanagari; unknown words are kept."""

    return _substitute_words(text, HINGLISH_TO_DEVANAGARI)


def correct_spelling(text: str) -> str:
    return _substitute_words(text, SPELLING_CORRECTIONS)


def is_valid_text(text: str) -> bool:
    return len(text) >= MIN_QUERY_LENGTH and _LETTER.search(text) is not None


def preprocess_query(text: str) -> Query:
    """Clean raw input and detect its language. Pure; never raises."""

    original = text or ""
    cleaned = clean_text(original)
    language = detect_language(cleaned)
    if language == "hin-rom":
        cleaned = transliterate_hinglish(cleaned)
    cleaned = correct_spelling(cleaned)
    valid = is_valid_text(cleaned)
    return Query(
        original_text=original,
        cleaned_text=cleaned,
        detected_language=language,
        is_valid=valid,
        error=None if valid else INVALID_QUERY_MESSAGE,
    )


def require_valid(query: Query) -> Query:
    if not query.is_valid:
        raise InvalidQuery(query.error or INVALID_QUERY_MESSAGE)
    return query
