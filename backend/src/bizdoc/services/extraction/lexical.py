"""
Lexical extraction: language, document type, sentences, entities, dates, tone.

All functions are pure: text (and config) in, typed values out. Sparse or
malformed text degrades to empty results rather than raising.
"""

import logging
import re
from functools import lru_cache

from bizdoc.domain.models import EntityRoles, KeyEntities, ROLE_NAMES, Tone
from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig

logger = logging.getLogger(__name__)


ARABIC_RE = re.compile(r"[\u0600-\u06FF]")
ARABIC_LETTER_RE = re.compile(r"[\u0621-\u064A]")

# A capitalized name: up to six capitalized words, joined by spaces or small connectors
NAME_PATTERN = (
    r"[A-Z\u0621-\u064A][\w&'\-]*"
    r"(?:[ \t]+(?:(?:of|and|for|&)[ \t]+)?[A-Z\u0621-\u064A][\w&'\-]*){0,5}"
)

# Fallback signal for the "other" role: runs of all-caps words
CAPS_PHRASE_RE = re.compile(r"\b[A-Z][A-Z&]+(?:[ \t]+[A-Z][A-Z&]+){0,4}\b")

_MONTHS = r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"

DATE_PATTERNS = [
    # ISO-like: 2024-01-05, 2024/1/5
    re.compile(r"\b\d{4}[-/]\d{1,2}[-/]\d{1,2}\b"),
    # DD/MM/YYYY-like: 05/01/2024, 5.1.24
    re.compile(r"\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}\b"),
    # Month YYYY: March 2025, 15 March 2025, Mar 15, 2025
    re.compile(rf"\b(?:\d{{1,2}}\s+)?{_MONTHS}\.?\s+(?:\d{{1,2}},?\s+)?\d{{4}}\b", re.IGNORECASE),
]


def detect_language(text: str) -> str:
    """Return 'ara' if any Arabic-script character is present, else 'eng'."""
    return "ara" if ARABIC_RE.search(text) else "eng"


def guess_doc_type(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    """Ordered keyword checks; the first matching document type wins."""
    for doc_type, pattern in config.doc_type_patterns:
        if re.search(pattern, text, re.IGNORECASE):
            return doc_type
    return "document"


def _starts_sentence(char: str) -> bool:
    return ("A" <= char <= "Z") or bool(ARABIC_LETTER_RE.match(char))


def split_sentences(text: str) -> list[str]:
    """
    Split text into sentences.

    A boundary is '.', '!' or '?' followed by whitespace and then an
    uppercase Latin or Arabic letter. When that yields fewer than two
    sentences (abbreviation-heavy text, bullet lists) the text is split on
    newlines instead.
    """
    sentences: list[str] = []
    start = 0
    i = 0
    n = len(text)

    while i < n:
        if text[i] in ".!?":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j > i + 1 and j < n and _starts_sentence(text[j]):
                sentence = text[start:i + 1].strip()
                if sentence:
                    sentences.append(sentence)
                start = j
                i = j
                continue
        i += 1

    tail = text[start:].strip()
    if tail:
        sentences.append(tail)

    if len(sentences) < 2:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if len(lines) > len(sentences):
            return lines
    return sentences


@lru_cache(maxsize=32)
def _role_regex(keywords: str) -> re.Pattern:
    return re.compile(
        rf"\b(?i:{keywords})\b[ \t]*(?:[:\-–]|\bis\b|\bwas\b|\bnamed\b)?[ \t]*({NAME_PATTERN})"
    )


def clean_name(raw: str) -> str:
    """Collapse whitespace and strip trailing punctuation from a matched name."""
    return " ".join(raw.split()).strip(" .,;:-'")


def _is_stop_name(name: str, config: AnalysisConfig) -> bool:
    tokens = name.upper().split()
    if not tokens:
        return True
    return name.upper() in config.stop_words or tokens[0] in config.stop_words


def _dedupe(names: list[str], cap: int) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(name)
        if len(result) >= cap:
            break
    return tuple(result)


def extract_entities(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> EntityRoles:
    """
    Extract named counterparties per role.

    Each role has a keyword-anchored pattern capturing the capitalized
    phrase that follows ("Client: Acme Corp"). Acronyms in the stop-set are
    never names. All-caps phrases feed the "other" role.
    """
    found: dict[str, list[str]] = {role: [] for role in ROLE_NAMES}

    for role, keywords in config.role_keywords:
        for match in _role_regex(keywords).finditer(text):
            name = clean_name(match.group(1))
            if 2 <= len(name) <= 60 and not _is_stop_name(name, config):
                found[role].append(name)

    for match in CAPS_PHRASE_RE.finditer(text):
        name = clean_name(match.group(0))
        if 2 <= len(name) <= 60 and not _is_stop_name(name, config):
            found["other"].append(name)

    roles = EntityRoles(**{role: _dedupe(names, config.max_role_entries) for role, names in found.items()})
    logger.debug(f"Entities: {roles.to_dict()}")
    return roles


def build_key_entities(
    roles: EntityRoles,
    currencies: list[str] | tuple[str, ...] = (),
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> KeyEntities:
    """Flatten client + supplier + other roles into the party list."""
    parties = _dedupe(list(roles.client) + list(roles.supplier) + list(roles.other), config.max_parties)
    return KeyEntities(roles=roles, parties=parties, currencies=tuple(dict.fromkeys(currencies)))


def date_spans(text: str) -> list[tuple[int, int]]:
    """Character spans of all date-shaped tokens, non-overlapping, in text order."""
    spans: list[tuple[int, int]] = []
    for pattern in DATE_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span()
            if any(start < s_end and end > s_start for s_start, s_end in spans):
                continue
            spans.append((start, end))
    return sorted(spans)


def extract_dates(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[str, ...]:
    """Date strings in text order, deduplicated and capped."""
    raw = [" ".join(text[start:end].split()) for start, end in date_spans(text)]
    return tuple(dict.fromkeys(raw))[:config.max_dates]


@lru_cache(maxsize=8)
def _word_regex(words: tuple[str, ...]) -> re.Pattern:
    alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


def measure_tone(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> Tone:
    """Count positive and negative signal words."""
    positive = len(_word_regex(config.positive_words).findall(text))
    negative = len(_word_regex(config.negative_words).findall(text))
    return Tone(positive=positive, negative=negative)
