"""
Merge of partial (per-chunk) analyses into one Analysis.

Each field is merged with a rule that gives the same answer whether the
chunks were analysed sequentially or in parallel:
- unions (roles, dates, flags) are taken in chunk order and capped
- amounts and KPIs keep the larger magnitude per key, ties broken by value
- tone counts are summed
- health scores are averaged (profitability, liquidity) or maxed
  (concentration)
- charts, summary, insights and trend are regenerated from the merged values
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from bizdoc.domain.generators import dedupe_actions, generate_insights
from bizdoc.domain.models import (
    KPI_DSO,
    KPI_GROWTH,
    KPI_LIQUIDITY,
    KPI_MARGIN,
    Amount,
    Analysis,
    EntityRoles,
    FinancialHealth,
    KpiEntry,
    ROLE_NAMES,
    Tone,
)
from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig
from bizdoc.domain.scoring import effective_growth, health_rationale, order_flags, resolve_inputs, round_score
from bizdoc.domain.synthesis import build_charts, build_summary, build_trend

from .extraction.kpis import sort_kpis
from .extraction.lexical import build_key_entities

logger = logging.getLogger(__name__)


KPI_UNITS = {
    KPI_GROWTH.lower(): "%",
    KPI_MARGIN.lower(): "%",
    KPI_LIQUIDITY.lower(): "x",
    KPI_DSO.lower(): "d",
}


def _unique(items: Iterable[Any], cap: int, key: Callable[[Any], Any] = lambda item: item) -> tuple:
    seen = set()
    result = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
        if len(result) >= cap:
            break
    return tuple(result)


def merge_roles(partials: list[Analysis], config: AnalysisConfig) -> EntityRoles:
    return EntityRoles(**{
        role: _unique(
            (name for p in partials for name in p.key_entities.roles.get(role)),
            config.max_role_entries,
            key=str.lower,
        )
        for role in ROLE_NAMES
    })


def merge_amounts(partials: list[Analysis], config: AnalysisConfig) -> tuple[Amount, ...]:
    """
    One amount per (label, currency): the larger magnitude wins, and on
    equal magnitude the positive value.

    Output is sorted by magnitude (descending), then label and currency,
    so the result does not depend on chunk order.
    """
    best: dict[tuple[str, str | None], Amount] = {}
    for partial in partials:
        for amount in partial.amounts:
            key = (amount.label.value, amount.currency)
            current = best.get(key)
            if current is None or (amount.magnitude, amount.value) > (current.magnitude, current.value):
                best[key] = amount
    ranked = sorted(
        best.values(),
        key=lambda a: (-a.magnitude, a.label.value, a.currency or ""),
    )
    return tuple(ranked[:config.max_amounts])


def _kpi_rank(entry: KpiEntry) -> tuple[float, float, str]:
    return abs(entry.value), entry.value, entry.unit or ""


def merge_kpis(partials: list[Analysis], config: AnalysisConfig) -> tuple[KpiEntry, ...]:
    """
    One KPI per case-insensitive label with units normalized.

    The larger magnitude wins; equal magnitudes fall back to the larger
    value, then the unit.
    """
    best: dict[str, KpiEntry] = {}
    for partial in partials:
        for entry in partial.kpis:
            key = entry.label.lower()
            current = best.get(key)
            if current is None or _kpi_rank(entry) > _kpi_rank(current):
                best[key] = entry
    normalized = [
        KpiEntry(entry.label, entry.value, KPI_UNITS.get(key, entry.unit))
        for key, entry in best.items()
    ]
    return tuple(sort_kpis(normalized)[:config.max_merged_kpis])


def merge_doc_type(partials: list[Analysis], config: AnalysisConfig) -> str:
    """Strongest doc type by fixed priority; "document" only if nothing else."""
    priority = config.doc_type_priority
    fallback_rank = len(priority) - 1

    def rank(doc_type: str) -> int:
        return priority.index(doc_type) if doc_type in priority else fallback_rank

    return min((p.doc_type for p in partials), key=lambda t: (rank(t), t == "document", t))


def merge_health(
    partials: list[Analysis],
    kpis: tuple[KpiEntry, ...],
    tone: Tone,
    party_count: int,
) -> FinancialHealth:
    count = len(partials)
    profitability = sum(p.financial_health.profitability_score for p in partials) / count
    liquidity = sum(p.financial_health.liquidity_score for p in partials) / count
    concentration = max(p.financial_health.concentration_risk_score for p in partials)
    flags = order_flags({f for p in partials for f in p.financial_health.anomaly_flags})

    inputs = resolve_inputs("", kpis, tone, party_count)
    return FinancialHealth(
        profitability_score=round_score(profitability),
        liquidity_score=round_score(liquidity),
        concentration_risk_score=concentration,
        anomaly_flags=flags,
        rationale=health_rationale(inputs.growth, inputs.margin, inputs.liquidity, party_count, flags),
    )


def merge_analyses(
    partials: list[Analysis],
    config: AnalysisConfig = DEFAULT_CONFIG,
    language_out: str = "eng",
) -> Analysis:
    """
    Combine per-chunk analyses into one.

    Raises:
        ValueError: If partials is empty
    """
    if not partials:
        raise ValueError("Nothing to merge")
    if len(partials) == 1:
        return partials[0]

    roles = merge_roles(partials, config)
    amounts = merge_amounts(partials, config)
    currencies = [c for p in partials for c in p.key_entities.currencies]
    key_entities = build_key_entities(roles, currencies, config)
    kpis = merge_kpis(partials, config)

    tone = Tone()
    for partial in partials:
        tone = tone + partial.tone

    health = merge_health(partials, kpis, tone, len(key_entities.parties))
    doc_type = merge_doc_type(partials, config)
    growth = effective_growth(kpis, tone)
    charts = build_charts(amounts, growth, config)

    confidence = round(sum(p.confidence for p in partials) / len(partials), 2)

    logger.info(
        f"Merged {len(partials)} partial analyses: {len(amounts)} amounts, "
        f"{len(kpis)} kpis, flags={list(health.anomaly_flags)}"
    )

    return Analysis(
        detected_language="ara" if any(p.detected_language == "ara" for p in partials) else "eng",
        doc_type=doc_type,
        summary=build_summary(doc_type, kpis, health, tone, roles, language_out),
        insights=generate_insights(kpis, roles, language_out, config),
        key_entities=key_entities,
        dates=_unique((d for p in partials for d in p.dates), config.max_dates),
        amounts=amounts,
        kpis=kpis,
        tone=tone,
        financial_health=health,
        risk_matrix=_unique((r for p in partials for r in p.risk_matrix), config.max_risks, key=lambda r: r.risk),
        actions=dedupe_actions([a for p in partials for a in p.actions], config.max_actions),
        charts=charts,
        trend_interpretation=build_trend(charts.lines, growth, language_out),
        confidence=confidence,
    )
