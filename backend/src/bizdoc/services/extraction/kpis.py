"""
KPI derivation from direct phrase matches and extracted amounts.

Explicit phrases always beat proximity guesses: "revenue grew 12%" wins
over a percentage that merely sits near the word "growth".
"""

import logging
import re
from decimal import Decimal

from bizdoc.domain.models import (
    KPI_COST,
    KPI_DSO,
    KPI_GROWTH,
    KPI_LIQUIDITY,
    KPI_MARGIN,
    KPI_ORDER,
    KPI_REVENUE,
    KPI_TOTAL,
    Amount,
    AmountLabel,
    KpiEntry,
)
from bizdoc.domain.rules import DEFAULT_CONFIG, GROWTH_KEYWORDS, AnalysisConfig

from .amounts import is_year
from .lexical import date_spans

logger = logging.getLogger(__name__)


_NUM = r"(\d+(?:\.\d+)?)"

GROWTH_UP_RE = re.compile(rf"\b(?:grew|increased|rose|up|growth\s+of)\s+(?:by\s+)?{_NUM}\s?%", re.IGNORECASE)
GROWTH_DOWN_RE = re.compile(rf"\b(?:declined|decreased|fell|dropped|down)\s+(?:by\s+)?{_NUM}\s?%", re.IGNORECASE)
GROWTH_KEYWORD_RE = re.compile(GROWTH_KEYWORDS, re.IGNORECASE)
PERCENT_RE = re.compile(rf"(?<![\w.]){_NUM}\s?%")

MARGIN_EXPLICIT_RE = re.compile(rf"{_NUM}\s?%\s+(?:[a-z]+\s+){{0,3}}?margins?\b", re.IGNORECASE)
MARGIN_LOOSE_RE = re.compile(rf"\bmargins?\b[^%\d.]{{0,40}}{_NUM}\s?%", re.IGNORECASE)

LIQUIDITY_EXPLICIT_RE = re.compile(
    rf"\b(?:current|quick)\s+ratio\s*(?:of|was|is|at|stood\s+at|:|=)?\s*{_NUM}\s*x?\b",
    re.IGNORECASE,
)
LIQUIDITY_HINT_RE = re.compile(rf"\bliquidity\b[^.\d]{{0,40}}{_NUM}\s?x\b", re.IGNORECASE)

DSO_KEYWORD_RE = re.compile(
    r"\b(?:DSO|days\s+sales\s+outstanding|receivables?\s+days|collection\s+period)\b",
    re.IGNORECASE,
)
# Possessive so "12.5%" or "1.5x" cannot backtrack into "12" or "1"
PLAIN_NUMBER_RE = re.compile(r"(?<![\w.,])(\d++(?:\.\d++)?+)(?!,?\d|\s?(?:[%٪×]|x\b))")


def _nearest(values: list[tuple[int, float]], anchors: list[int], limit: int) -> float | None:
    """Value whose position is closest to any anchor, within limit characters."""
    best: tuple[int, int] | None = None
    best_value: float | None = None
    for pos, value in values:
        for anchor in anchors:
            distance = abs(pos - anchor)
            if distance <= limit and (best is None or (distance, pos) < best):
                best = (distance, pos)
                best_value = value
    return best_value


def find_growth(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> float | None:
    """Revenue growth %: explicit grew/increased/rose/up N% first, then proximity."""
    explicit: list[tuple[int, float]] = []
    for match in GROWTH_UP_RE.finditer(text):
        explicit.append((match.start(), float(match.group(1))))
    for match in GROWTH_DOWN_RE.finditer(text):
        explicit.append((match.start(), -float(match.group(1))))
    if explicit:
        return min(explicit)[1]

    percents = [(m.start(), float(m.group(1))) for m in PERCENT_RE.finditer(text)]
    anchors = [m.start() for m in GROWTH_KEYWORD_RE.finditer(text)]
    return _nearest(percents, anchors, config.growth_proximity)


def find_margin(text: str) -> float | None:
    """Margin %: "N% ... margin" first, then "margin ... N%"."""
    match = MARGIN_EXPLICIT_RE.search(text) or MARGIN_LOOSE_RE.search(text)
    return float(match.group(1)) if match else None


def find_liquidity(text: str) -> float | None:
    """Liquidity ratio: "current/quick ratio N" first, then "liquidity ... Nx"."""
    match = LIQUIDITY_EXPLICIT_RE.search(text) or LIQUIDITY_HINT_RE.search(text)
    return float(match.group(1)) if match else None


def find_dso(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> float | None:
    """
    Days sales outstanding: the number closest to a DSO/receivables keyword.

    Numbers before the keyword carry a 10-character penalty, so "ratio 1.5.
    DSO of 55" reads as 55. Years, date parts, percentages and ratios are
    never day counts.
    """
    anchors = [(m.start(), m.end()) for m in DSO_KEYWORD_RE.finditer(text)]
    if not anchors:
        return None

    dates = date_spans(text)
    best: tuple[int, int] | None = None
    best_value: float | None = None
    for match in PLAIN_NUMBER_RE.finditer(text):
        pos = match.start()
        raw = match.group(1)
        if is_year(raw, Decimal(raw)) or any(s <= pos < e for s, e in dates):
            continue
        for start, end in anchors:
            distance = pos - end if pos >= end else start - match.end() + 10
            if distance <= config.dso_proximity and (best is None or (distance, pos) < best):
                best = (distance, pos)
                best_value = float(match.group(1))
    return best_value


def _largest(amounts: tuple[Amount, ...], label: AmountLabel) -> Amount | None:
    matching = [a for a in amounts if a.label == label]
    if not matching:
        return None
    return max(matching, key=lambda a: a.magnitude)


def dedupe_kpis(kpis: list[KpiEntry], cap: int) -> tuple[KpiEntry, ...]:
    """Keep the first entry per case-insensitive label."""
    seen: set[str] = set()
    result: list[KpiEntry] = []
    for entry in kpis:
        key = entry.label.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(entry)
    return tuple(result[:cap])


def sort_kpis(kpis: list[KpiEntry] | tuple[KpiEntry, ...]) -> list[KpiEntry]:
    """Canonical display order; unknown labels go last in input order."""
    rank = {label.lower(): i for i, label in enumerate(KPI_ORDER)}
    return sorted(kpis, key=lambda k: rank.get(k.label.lower(), len(rank)))


def derive_kpis(
    text: str,
    amounts: tuple[Amount, ...],
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> tuple[KpiEntry, ...]:
    """
    Build the KPI list for one block of text.

    Direct phrase matches come first; a derivation pass then backfills
    Revenue/Cost from the largest matching amounts and computes Margin %
    as Profit / Revenue x 100 when no margin was stated.
    """
    kpis: list[KpiEntry] = []

    growth = find_growth(text, config)
    if growth is not None:
        kpis.append(KpiEntry(KPI_GROWTH, growth, "%"))

    margin = find_margin(text)
    if margin is not None:
        kpis.append(KpiEntry(KPI_MARGIN, margin, "%"))

    liquidity = find_liquidity(text)
    if liquidity is not None:
        kpis.append(KpiEntry(KPI_LIQUIDITY, liquidity, "x"))

    dso = find_dso(text, config)
    if dso is not None:
        kpis.append(KpiEntry(KPI_DSO, dso, "d"))

    totals = [a for a in amounts if a.label == AmountLabel.TOTAL]
    if totals:
        total = sum((a.value for a in totals), Decimal(0))
        kpis.append(KpiEntry(KPI_TOTAL, float(total), totals[0].currency))

    revenue = _largest(amounts, AmountLabel.REVENUE)
    if revenue is not None:
        kpis.append(KpiEntry(KPI_REVENUE, float(revenue.value), revenue.currency))

    cost = _largest(amounts, AmountLabel.COST)
    if cost is not None:
        kpis.append(KpiEntry(KPI_COST, float(cost.value), cost.currency))

    profit = _largest(amounts, AmountLabel.PROFIT)
    if margin is None and profit is not None and revenue is not None and revenue.value > 0:
        derived = round(float(profit.value / revenue.value * 100), 1)
        kpis.append(KpiEntry(KPI_MARGIN, derived, "%"))
        logger.debug(f"Margin derived from profit/revenue: {derived}%")

    return dedupe_kpis(sort_kpis(kpis), config.max_kpis)
