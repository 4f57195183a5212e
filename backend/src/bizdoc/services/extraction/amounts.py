"""
Monetary amount extraction using regex + local-context classification.

This module finds money in free text:
1. A numeric-token regex finds every candidate number
2. Adjacency rules reject numbers that are really quarters, percentages,
   ratios, years or day counts
3. A keyword window around each survivor decides its label
   (Revenue, Cost, Tax, ...) and an attached symbol/code its currency

The context classifiers (detect_currency, classify_amount_label,
has_time_context) are plain functions of (text, position) so they can be
tested without running the whole extractor.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from functools import lru_cache

from bizdoc.domain.models import Amount, AmountLabel
from bizdoc.domain.rules import (
    DEFAULT_CONFIG,
    DSO_PREFIX_PATTERN,
    TIME_UNIT_PATTERN,
    AnalysisConfig,
)

from .lexical import date_spans

logger = logging.getLogger(__name__)


# Thousands-grouped (1,234,567.89) or plain (1234.5) numbers
NUMBER_RE = re.compile(r"(?<![\d.,])(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)(?!\d)")

# Suffixes that make a number a percentage or ratio: 12%, 12 %, 1.6x
RATIO_SUFFIX_RE = re.compile(r"^(?:[%٪x×X]| [%٪])")

TIME_AFTER_RE = re.compile(rf"^\s{{0,3}}{TIME_UNIT_PATTERN}", re.IGNORECASE)
DSO_BEFORE_RE = re.compile(rf"{DSO_PREFIX_PATTERN}[^\d]{{0,12}}$", re.IGNORECASE)


@lru_cache(maxsize=8)
def _currency_regexes(patterns: tuple[tuple[str, str], ...]) -> tuple[re.Pattern, re.Pattern]:
    alternation = "|".join(f"(?P<{code}>{fragment})" for code, fragment in patterns)
    before = re.compile(rf"(?:{alternation})\s?[-−]?$")
    after = re.compile(rf"^\s?(?:{alternation})(?![A-Za-z])")
    return before, after


def detect_currency(
    text: str,
    start: int,
    end: int,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> str | None:
    """Return the currency code attached directly before or after text[start:end]."""
    before_re, after_re = _currency_regexes(config.currency_patterns)

    match = before_re.search(text[max(0, start - 8):start])
    if match:
        return match.lastgroup
    match = after_re.match(text[end:end + 8])
    if match:
        return match.lastgroup
    return None


def has_time_context(text: str, start: int, end: int) -> bool:
    """True for day/week/month/quarter counts and DSO figures ("45 days", "DSO of 62")."""
    if TIME_AFTER_RE.match(text[end:end + 16]):
        return True
    return bool(DSO_BEFORE_RE.search(text[max(0, start - 30):start]))


def _keyword_positions(window: str, keyword: str) -> list[int]:
    return [m.start() for m in re.finditer(rf"\b{re.escape(keyword)}\b", window)]


def classify_amount_label(
    text: str,
    start: int,
    end: int,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> AmountLabel:
    """
    Infer an amount's label from the nearest keyword in a fixed window.

    Keywords before the number are preferred over keywords after it
    ("Revenue of AED 5,000" beats "AED 5,000 in costs" at equal distance).
    """
    window_start = max(0, start - config.label_window)
    window_end = min(len(text), end + config.label_window // 2)
    before = text[window_start:start].lower()
    after = text[end:window_end].lower()

    best: tuple[int, int] | None = None  # (distance, table order)
    best_label = AmountLabel.AMOUNT

    for order, (label, keywords) in enumerate(config.amount_label_keywords):
        for keyword in keywords:
            for pos in _keyword_positions(before, keyword):
                distance = len(before) - (pos + len(keyword))
                if best is None or (distance, order) < best:
                    best = (distance, order)
                    best_label = AmountLabel(label)
            for pos in _keyword_positions(after, keyword):
                distance = pos + 10
                if best is None or (distance, order) < best:
                    best = (distance, order)
                    best_label = AmountLabel(label)

    return best_label


def _has_finance_keyword(text: str, start: int, end: int, config: AnalysisConfig) -> bool:
    window = text[max(0, start - config.finance_window):end + config.finance_window // 2].lower()
    return any(re.search(rf"\b{re.escape(kw)}", window) for kw in config.finance_keywords)


def _parse(raw: str) -> Decimal | None:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def is_year(raw: str, value: Decimal) -> bool:
    return len(raw) == 4 and raw.isdigit() and 1900 <= value <= 2100


def extract_amounts(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[Amount, ...]:
    """
    Extract labeled monetary amounts.

    A candidate is rejected when it is glued to a letter ("Q2", "FY2025")
    unless that letter belongs to a currency code, when it is followed by
    %/x, when it sits inside a date, or when it is a bare year. Numbers in
    a time-unit or DSO context are rejected unless a currency is attached.

    A survivor is accepted if ANY of these hold:
    - a currency token is attached
    - it has thousands grouping (1,250)
    - its magnitude is at least 1000
    - a finance keyword is nearby and its magnitude is at least 10

    Returns at most config.max_amounts amounts, in text order.
    """
    dates = date_spans(text)
    amounts: list[Amount] = []
    seen: set[tuple[str, Decimal, str | None]] = set()

    for match in NUMBER_RE.finditer(text):
        if len(amounts) >= config.max_amounts:
            logger.debug(f"Amount cap reached ({config.max_amounts}), ignoring the rest")
            break

        raw = match.group(1)
        start, end = match.span(1)

        if any(d_start <= start < d_end for d_start, d_end in dates):
            continue
        if RATIO_SUFFIX_RE.match(text[end:end + 2]):
            continue

        currency = detect_currency(text, start, end, config)

        if currency is None:
            if start > 0 and text[start - 1].isalpha():
                continue
            if end < len(text) and text[end].isalpha():
                continue

        value = _parse(raw)
        if value is None:
            continue

        if currency is None:
            if has_time_context(text, start, end) or is_year(raw, value):
                continue
            grouped = "," in raw
            if not (grouped or value >= 1000 or (value >= 10 and _has_finance_keyword(text, start, end, config))):
                continue

        # A minus sign glued to the number, not a range like 2020-2021
        if start > 0 and text[start - 1] in "-−" and (start < 2 or not text[start - 2].isalnum()):
            value = -value

        label = classify_amount_label(text, start, end, config)
        key = (label.value, value, currency)
        if key in seen:
            continue
        seen.add(key)
        amounts.append(Amount(label=label, value=value, currency=currency))

    return tuple(amounts)
