from __future__ import annotations

from bizdoc.domain.generators import (
    RISK_COMPLIANCE,
    RISK_CONCENTRATION,
    RISK_COST,
    RISK_RECEIVABLES,
    dedupe_actions,
    generate_actions,
    generate_insights,
    generate_risks,
)
from bizdoc.domain.models import (
    KPI_DSO,
    KPI_GROWTH,
    KPI_MARGIN,
    ActionEntry,
    EntityRoles,
    FinancialHealth,
    KpiEntry,
    Severity,
)
from bizdoc.domain.scoring import FLAG_COMPLIANCE, FLAG_COST_PRESSURE, FLAG_ELEVATED_DSO, FLAG_NEGATIVE_GROWTH


def _health(flags: tuple[str, ...] = (), concentration: int = 1) -> FinancialHealth:
    return FinancialHealth(
        profitability_score=3,
        liquidity_score=3,
        concentration_risk_score=concentration,
        anomaly_flags=flags,
    )


def test_risks_follow_flags_with_evidence() -> None:
    sentences = [
        "Revenue was flat.",
        "Inflation pushed input prices up.",
        "Two invoices are overdue.",
        "DSO reached 80 days.",
    ]
    kpis = (KpiEntry(KPI_DSO, 80.0, "d"),)
    health = _health((FLAG_ELEVATED_DSO, FLAG_COST_PRESSURE, FLAG_COMPLIANCE), concentration=5)

    risks = {r.risk: r for r in generate_risks(sentences, health, kpis)}

    assert risks[RISK_RECEIVABLES].severity == Severity.HIGH
    assert risks[RISK_RECEIVABLES].evidence == "DSO reached 80 days."
    assert risks[RISK_COST].severity == Severity.MEDIUM
    assert risks[RISK_COST].evidence == "Inflation pushed input prices up."
    assert risks[RISK_COMPLIANCE].severity == Severity.HIGH
    assert risks[RISK_COMPLIANCE].evidence == "Two invoices are overdue."
    assert risks[RISK_CONCENTRATION].severity == Severity.HIGH
    assert all(r.mitigation for r in risks.values())


def test_moderate_dso_is_medium_risk() -> None:
    risks = generate_risks([], _health((FLAG_ELEVATED_DSO,)), (KpiEntry(KPI_DSO, 60.0, "d"),))
    assert [(r.risk, r.severity) for r in risks] == [(RISK_RECEIVABLES, Severity.MEDIUM)]


def test_no_flags_no_risks() -> None:
    assert generate_risks(["All good."], _health(), ()) == ()


def test_actions_always_start_with_cash_flow_forecast() -> None:
    actions = generate_actions(_health())

    assert len(actions) == 1
    assert actions[0].priority == 1
    assert "13-week cash flow forecast" in actions[0].action


def test_actions_keyed_to_flags() -> None:
    health = _health((FLAG_ELEVATED_DSO, FLAG_COMPLIANCE, FLAG_COST_PRESSURE, FLAG_NEGATIVE_GROWTH), concentration=4)
    actions = generate_actions(health)
    texts = [a.action for a in actions]

    assert len(texts) == len(set(texts)) == 5
    assert any("collections sprint" in t for t in texts)
    assert any("pricing" in t for t in texts)
    assert any("diversification" in t for t in texts)


def test_dedupe_actions_by_text() -> None:
    actions = [ActionEntry(1, "Call the bank"), ActionEntry(2, "call the bank "), ActionEntry(3, "Chase invoices")]
    assert [a.priority for a in dedupe_actions(actions, cap=12)] == [1, 3]


def test_insights_templates() -> None:
    kpis = (KpiEntry(KPI_GROWTH, -4.0, "%"), KpiEntry(KPI_MARGIN, 18.0, "%"))
    roles = EntityRoles(client=("Acme Corp",), supplier=("Gulf Steel",))

    insights = generate_insights(kpis, roles)

    assert insights == (
        "Revenue declined 4%.",
        "Margin stands at 18%.",
        "Key client: Acme Corp.",
        "Key supplier: Gulf Steel.",
    )


def test_insights_fallback_and_arabic() -> None:
    english = generate_insights((), EntityRoles())
    arabic = generate_insights((KpiEntry(KPI_GROWTH, 5.0, "%"),), EntityRoles(), language_out="ara")

    assert len(english) == 1
    assert "Limited quantitative signal" in english[0]
    assert arabic == ("نمت الإيرادات بنسبة 5%.",)
