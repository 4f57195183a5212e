"""
Chart, summary and trend synthesis.

Reduces amounts, KPIs and health into chart-ready series and a templated
narrative. Charts carry money only; percentages, ratios and day counts
never reach a bar or pie.
"""

from collections import defaultdict
from decimal import Decimal

from .models import (
    KPI_GROWTH,
    KPI_LIQUIDITY,
    KPI_MARGIN,
    Amount,
    ChartBundle,
    ChartPoint,
    EntityRoles,
    FinancialHealth,
    KpiEntry,
    LinePoint,
    Tone,
)
from .rules import DEFAULT_CONFIG, MONTH_ABBREVIATIONS, AnalysisConfig


# Revenue/Cost/Profit split used when no amounts were found
PIE_FALLBACK = (ChartPoint("Revenue", 60.0), ChartPoint("Cost", 30.0), ChartPoint("Profit", 10.0))

# Growth within this band (%) reads as flat
FLAT_BAND = 0.5


def is_money(amount: Amount) -> bool:
    return amount.currency is not None or amount.magnitude >= 10


def build_bars(amounts: tuple[Amount, ...], config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[ChartPoint, ...]:
    """Top amounts by absolute value; stable for equal magnitudes."""
    money = [a for a in amounts if is_money(a)]
    ranked = sorted(money, key=lambda a: a.magnitude, reverse=True)[:config.max_bars]
    return tuple(
        ChartPoint(f"{a.label.value} ({a.currency})" if a.currency else a.label.value, float(a.value))
        for a in ranked
    )


def month_label(index: int) -> str:
    """Calendar-month abbreviation, cycling after December."""
    return MONTH_ABBREVIATIONS[index % len(MONTH_ABBREVIATIONS)]


def build_lines(
    bars: tuple[ChartPoint, ...],
    growth: float,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> tuple[LinePoint, ...]:
    """
    Synthetic compounding series seeded from the largest bar.

    Each point grows by growth/5 percent over the previous one. Without a
    seed there is nothing to project and the series is empty.
    """
    if not bars:
        return ()
    seed = max(abs(b.value) for b in bars)
    step = 1 + growth / 500
    return tuple(
        LinePoint(month_label(i), round(seed * step ** i, 2))
        for i in range(config.line_points)
    )


def build_pie(amounts: tuple[Amount, ...], config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[ChartPoint, ...]:
    if not amounts:
        return PIE_FALLBACK
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for amount in amounts:
        if is_money(amount):
            totals[amount.currency or "UNK"] += amount.magnitude
    if not totals:
        return PIE_FALLBACK
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:config.max_pie_slices]
    return tuple(ChartPoint(code, float(total)) for code, total in ranked)


def build_charts(
    amounts: tuple[Amount, ...],
    growth: float,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> ChartBundle:
    bars = build_bars(amounts, config)
    return ChartBundle(bars=bars, lines=build_lines(bars, growth, config), pie=build_pie(amounts, config))


_DOC_TITLES = {
    "eng": {
        "invoice": "Invoice",
        "receipt": "Receipt",
        "purchase_order": "Purchase order",
        "financials": "Financial statements",
        "contract": "Contract",
        "document": "Business document",
    },
    "ara": {
        "invoice": "فاتورة",
        "receipt": "إيصال",
        "purchase_order": "أمر شراء",
        "financials": "قوائم مالية",
        "contract": "عقد",
        "document": "مستند أعمال",
    },
}

_SUMMARY_TEMPLATES = {
    "eng": {
        "header": "{title} analysis with a {tone} tone.",
        "parties": "Counterparties: {names}.",
        "growth": "Revenue growth of {value:g}%.",
        "margin": "Margin of {value:g}%.",
        "liquidity": "Liquidity ratio of {value:g}x.",
        "health": "Health scores: profitability {p}/5, liquidity {l}/5, concentration risk {c}/5.",
        "flags": "Flags: {flags}.",
    },
    "ara": {
        "header": "تحليل {title} بنبرة {tone}.",
        "parties": "الأطراف: {names}.",
        "growth": "نمو الإيرادات {value:g}%.",
        "margin": "هامش الربح {value:g}%.",
        "liquidity": "نسبة السيولة {value:g} مرة.",
        "health": "مؤشرات الصحة المالية: الربحية {p}/5، السيولة {l}/5، مخاطر التركز {c}/5.",
        "flags": "تنبيهات: {flags}.",
    },
}

_TONE_NAMES = {
    "eng": {"positive": "positive", "negative": "negative", "mixed": "mixed"},
    "ara": {"positive": "إيجابية", "negative": "سلبية", "mixed": "متباينة"},
}

_TREND_TEMPLATES = {
    "eng": {
        "rising": "Projected trend is rising: {start:,.0f} to {end:,.0f} over {n} periods.",
        "declining": "Projected trend is declining: {start:,.0f} to {end:,.0f} over {n} periods.",
        "flat": "Projected trend is flat around {start:,.0f}.",
        "none": "No monetary baseline found; no trend projected.",
        "basis": "Projection assumes {growth:g}% growth spread evenly across periods.",
    },
    "ara": {
        "rising": "الاتجاه المتوقع صاعد: من {start:,.0f} إلى {end:,.0f} خلال {n} فترات.",
        "declining": "الاتجاه المتوقع هابط: من {start:,.0f} إلى {end:,.0f} خلال {n} فترات.",
        "flat": "الاتجاه المتوقع مستقر حول {start:,.0f}.",
        "none": "لا يوجد أساس نقدي؛ لم يتم إسقاط اتجاه.",
        "basis": "يفترض الإسقاط نموًا بنسبة {growth:g}% موزعًا على الفترات.",
    },
}


def _lang(language_out: str) -> str:
    return "ara" if language_out == "ara" else "eng"


def build_summary(
    doc_type: str,
    kpis: tuple[KpiEntry, ...],
    health: FinancialHealth,
    tone: Tone,
    roles: EntityRoles,
    language_out: str = "eng",
) -> str:
    """Templated paragraph: header, KPI clauses when present, health clause."""
    lang = _lang(language_out)
    t = _SUMMARY_TEMPLATES[lang]
    title = _DOC_TITLES[lang].get(doc_type, _DOC_TITLES[lang]["document"])
    by_label = {k.label.lower(): k.value for k in kpis}

    parts = [t["header"].format(title=title, tone=_TONE_NAMES[lang][tone.label])]
    names = list(roles.client[:2]) + list(roles.supplier[:1])
    if names:
        parts.append(t["parties"].format(names=", ".join(names)))
    for key, label in (("growth", KPI_GROWTH), ("margin", KPI_MARGIN), ("liquidity", KPI_LIQUIDITY)):
        value = by_label.get(label.lower())
        if value is not None:
            parts.append(t[key].format(value=value))
    parts.append(t["health"].format(
        p=health.profitability_score,
        l=health.liquidity_score,
        c=health.concentration_risk_score,
    ))
    if health.anomaly_flags:
        parts.append(t["flags"].format(flags=", ".join(health.anomaly_flags)))
    return " ".join(parts)


def build_trend(lines: tuple[LinePoint, ...], growth: float, language_out: str = "eng") -> tuple[str, ...]:
    t = _TREND_TEMPLATES[_lang(language_out)]
    if not lines:
        return (t["none"],)
    start, end = lines[0].y, lines[-1].y
    if growth > FLAT_BAND:
        direction = t["rising"].format(start=start, end=end, n=len(lines))
    elif growth < -FLAT_BAND:
        direction = t["declining"].format(start=start, end=end, n=len(lines))
    else:
        direction = t["flat"].format(start=start)
    return (direction, t["basis"].format(growth=round(growth, 1)))


def compute_confidence(
    amounts: tuple[Amount, ...],
    kpis: tuple[KpiEntry, ...],
    roles: EntityRoles,
    dates: tuple[str, ...],
) -> float:
    """Deterministic 0-1 confidence from how much signal was extracted."""
    score = 0.3 + 0.05 * min(len(amounts), 4) + 0.05 * min(len(kpis), 4)
    if any(roles.get(role) for role in ("client", "supplier", "bank", "investor", "regulator")):
        score += 0.1
    if dates:
        score += 0.05
    return round(min(1.0, score), 2)
