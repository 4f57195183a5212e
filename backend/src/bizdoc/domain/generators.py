"""
Rule tables that turn health flags and keyword hits into risks, actions
and insight bullets.

Design Decisions:
- Every entry comes from a fixed table row; there is no free-form text
- Risk evidence is the first source sentence that triggered the rule
- Narrative templates exist in English and Arabic; extraction is unaffected
  by the output language
"""

import re

from .models import (
    KPI_DSO,
    KPI_GROWTH,
    KPI_LIQUIDITY,
    KPI_MARGIN,
    ActionEntry,
    EntityRoles,
    FinancialHealth,
    KpiEntry,
    RiskEntry,
    Severity,
)
from .rules import DEFAULT_CONFIG, AnalysisConfig
from .scoring import (
    COMPLIANCE_RE,
    COST_PRESSURE_RE,
    FLAG_COMPLIANCE,
    FLAG_COST_PRESSURE,
    FLAG_ELEVATED_DSO,
    FLAG_NEGATIVE_GROWTH,
)


RISK_RECEIVABLES = "Receivables collection delays"
RISK_COST = "Cost inflation pressure"
RISK_COMPLIANCE = "Compliance/credit issues"
RISK_CONCENTRATION = "Counterparty concentration"

MITIGATIONS = {
    RISK_RECEIVABLES: "Tighten credit terms, automate reminders and escalate invoices past 60 days.",
    RISK_COST: "Renegotiate supplier contracts and review pricing to protect margin.",
    RISK_COMPLIANCE: "Audit overdue obligations, agree payment plans and document remediation.",
    RISK_CONCENTRATION: "Broaden the customer and supplier base to reduce single-party exposure.",
}

# DSO above this many days makes the receivables risk high
DSO_HIGH_THRESHOLD = 75.0

DSO_SENTENCE_RE = re.compile(r"\b(?:DSO|receivables?|days\s+sales\s+outstanding|collections?)\b", re.IGNORECASE)

BASELINE_ACTION = ActionEntry(1, "Build a 13-week cash flow forecast", "Finance", 7)
COLLECTIONS_ACTION = ActionEntry(2, "Run a collections sprint on overdue receivables", "Credit Control", 14)
PRICING_ACTION = ActionEntry(2, "Review pricing and supplier costs", "Procurement", 30)
DIVERSIFICATION_ACTION = ActionEntry(3, "Draft a counterparty diversification plan", "Commercial", 45)
PIPELINE_ACTION = ActionEntry(2, "Review the sales pipeline to reverse revenue decline", "Sales", 30)


def first_sentence_matching(sentences: list[str], pattern: re.Pattern) -> str | None:
    for sentence in sentences:
        if pattern.search(sentence):
            return sentence[:240]
    return None


def generate_risks(
    sentences: list[str],
    health: FinancialHealth,
    kpis: tuple[KpiEntry, ...],
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> tuple[RiskEntry, ...]:
    """Emit one risk per triggered rule, in fixed rule order."""
    flags = set(health.anomaly_flags)
    risks: list[RiskEntry] = []

    if FLAG_ELEVATED_DSO in flags:
        dso = next((k.value for k in kpis if k.label.lower() == KPI_DSO.lower()), 0.0)
        risks.append(RiskEntry(
            risk=RISK_RECEIVABLES,
            severity=Severity.HIGH if dso > DSO_HIGH_THRESHOLD else Severity.MEDIUM,
            mitigation=MITIGATIONS[RISK_RECEIVABLES],
            evidence=first_sentence_matching(sentences, DSO_SENTENCE_RE),
        ))

    if FLAG_COST_PRESSURE in flags:
        risks.append(RiskEntry(
            risk=RISK_COST,
            severity=Severity.MEDIUM,
            mitigation=MITIGATIONS[RISK_COST],
            evidence=first_sentence_matching(sentences, COST_PRESSURE_RE),
        ))

    if FLAG_COMPLIANCE in flags:
        risks.append(RiskEntry(
            risk=RISK_COMPLIANCE,
            severity=Severity.HIGH,
            mitigation=MITIGATIONS[RISK_COMPLIANCE],
            evidence=first_sentence_matching(sentences, COMPLIANCE_RE),
        ))

    if health.concentration_risk_score >= 4:
        risks.append(RiskEntry(
            risk=RISK_CONCENTRATION,
            severity=Severity.HIGH if health.concentration_risk_score == 5 else Severity.MEDIUM,
            mitigation=MITIGATIONS[RISK_CONCENTRATION],
        ))

    return tuple(risks[:config.max_risks])


def dedupe_actions(actions: list[ActionEntry], cap: int) -> tuple[ActionEntry, ...]:
    """Drop actions whose text was already seen; keep the first occurrence."""
    seen: set[str] = set()
    result: list[ActionEntry] = []
    for action in actions:
        key = action.action.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(action)
    return tuple(result[:cap])


def generate_actions(health: FinancialHealth, config: AnalysisConfig = DEFAULT_CONFIG) -> tuple[ActionEntry, ...]:
    flags = set(health.anomaly_flags)
    actions = [BASELINE_ACTION]
    if FLAG_ELEVATED_DSO in flags or FLAG_COMPLIANCE in flags:
        actions.append(COLLECTIONS_ACTION)
    if FLAG_COST_PRESSURE in flags:
        actions.append(PRICING_ACTION)
    if FLAG_NEGATIVE_GROWTH in flags:
        actions.append(PIPELINE_ACTION)
    if health.concentration_risk_score >= 4:
        actions.append(DIVERSIFICATION_ACTION)
    return dedupe_actions(actions, config.max_actions)


_INSIGHT_TEMPLATES = {
    "eng": {
        "growth_up": "Revenue grew {value:g}%.",
        "growth_down": "Revenue declined {value:g}%.",
        "margin": "Margin stands at {value:g}%.",
        "liquidity": "Liquidity ratio is {value:g}x.",
        "client": "Key client: {name}.",
        "supplier": "Key supplier: {name}.",
        "fallback": "Limited quantitative signal; review the source document for details.",
    },
    "ara": {
        "growth_up": "نمت الإيرادات بنسبة {value:g}%.",
        "growth_down": "تراجعت الإيرادات بنسبة {value:g}%.",
        "margin": "هامش الربح {value:g}%.",
        "liquidity": "نسبة السيولة {value:g} مرة.",
        "client": "العميل الرئيسي: {name}.",
        "supplier": "المورد الرئيسي: {name}.",
        "fallback": "إشارات كمية محدودة؛ راجع المستند الأصلي للتفاصيل.",
    },
}


def templates_for(language_out: str) -> dict[str, str]:
    return _INSIGHT_TEMPLATES["ara" if language_out == "ara" else "eng"]


def generate_insights(
    kpis: tuple[KpiEntry, ...],
    roles: EntityRoles,
    language_out: str = "eng",
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> tuple[str, ...]:
    """Short templated bullets; a generic bullet when nothing was found."""
    t = templates_for(language_out)
    by_label = {k.label.lower(): k.value for k in kpis}
    insights: list[str] = []

    growth = by_label.get(KPI_GROWTH.lower())
    if growth is not None:
        key = "growth_down" if growth < 0 else "growth_up"
        insights.append(t[key].format(value=abs(growth)))
    margin = by_label.get(KPI_MARGIN.lower())
    if margin is not None:
        insights.append(t["margin"].format(value=margin))
    liquidity = by_label.get(KPI_LIQUIDITY.lower())
    if liquidity is not None:
        insights.append(t["liquidity"].format(value=liquidity))
    if roles.client:
        insights.append(t["client"].format(name=roles.client[0]))
    if roles.supplier:
        insights.append(t["supplier"].format(name=roles.supplier[0]))

    if not insights:
        insights.append(t["fallback"])
    return tuple(insights[:config.max_insights])
