from __future__ import annotations

from decimal import Decimal

from bizdoc.domain.models import Amount, AmountLabel, Severity
from bizdoc.services.analyzer import DocumentAnalyzer


def test_scenario(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    analysis = analyzer.analyze(scenario_text)

    assert analysis.doc_type == "document"
    assert analysis.detected_language == "eng"
    assert analysis.kpi("Revenue Growth %").value == 15
    assert analysis.kpi("Margin %").value == 20
    assert Amount(AmountLabel.REVENUE, Decimal("2500000"), "AED") in analysis.amounts
    assert "Acme Corp" in analysis.key_entities.roles.client
    assert analysis.key_entities.currencies == ("AED",)

    compliance = [r for r in analysis.risk_matrix if r.risk == "Compliance/credit issues"]
    assert len(compliance) == 1
    assert compliance[0].severity == Severity.HIGH
    assert compliance[0].evidence == "Payment overdue."


def test_scenario_health_and_actions(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    analysis = analyzer.analyze(scenario_text)
    health = analysis.financial_health

    assert health.profitability_score == 4
    assert health.liquidity_score == 3
    assert health.concentration_risk_score == 4
    assert health.anomaly_flags == ("Compliance/credit risk",)
    assert analysis.actions[0].priority == 1
    assert analysis.tone.label == "mixed"
    assert analysis.confidence == 0.6


def test_scenario_charts(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    charts = analyzer.analyze(scenario_text).charts

    assert [(b.label, b.value) for b in charts.bars] == [("Revenue (AED)", 2_500_000.0)]
    assert len(charts.lines) == 6
    assert charts.lines[0].y == 2_500_000.0
    assert [(p.label, p.value) for p in charts.pie] == [("AED", 2_500_000.0)]


def test_idempotent(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    first = analyzer.analyze(scenario_text)
    second = analyzer.analyze(scenario_text)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_doc_type_hint_overrides_guess(analyzer: DocumentAnalyzer) -> None:
    analysis = analyzer.analyze("Tax invoice total AED 1,050", doc_type="receipt")
    assert analysis.doc_type == "receipt"


def test_sparse_text_degrades_to_defaults(analyzer: DocumentAnalyzer) -> None:
    analysis = analyzer.analyze("hello")

    assert analysis.amounts == ()
    assert analysis.kpis == ()
    assert analysis.dates == ()
    assert analysis.charts.bars == ()
    assert len(analysis.charts.pie) == 3
    assert analysis.insights
    assert analysis.summary
    assert analysis.actions[0].action == "Build a 13-week cash flow forecast"


def test_arabic_narrative_only(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    """languageOut changes narrative text, never extraction."""
    english = analyzer.analyze(scenario_text)
    arabic = analyzer.analyze(scenario_text, language_out="ara")

    assert arabic.amounts == english.amounts
    assert arabic.kpis == english.kpis
    assert arabic.financial_health == english.financial_health
    assert arabic.summary != english.summary
    assert arabic.summary.startswith("تحليل")


def test_wire_shape(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    data = analyzer.analyze(scenario_text).to_dict()

    assert set(data) == {
        "detectedLanguage", "docType", "summary", "insights", "keyEntities", "dates",
        "amounts", "kpis", "tone", "financialHealth", "riskMatrix", "actions", "charts",
        "trendInterpretation", "confidence",
    }
    assert data["amounts"] == [{"label": "Revenue", "value": 2500000, "currency": "AED"}]
    assert data["financialHealth"]["anomalyFlags"] == ["Compliance/credit risk"]
    assert data["keyEntities"]["roles"]["client"] == ["Acme Corp"]


def test_year_near_dso_is_not_a_day_count(analyzer: DocumentAnalyzer) -> None:
    analysis = analyzer.analyze("DSO in 2024 rose to 48 days. Revenue of AED 10,000.")

    assert analysis.kpi("DSO (days)").value == 48
    assert "Elevated DSO" not in analysis.financial_health.anomaly_flags
    assert all(r.risk != "Receivables collection delays" for r in analysis.risk_matrix)
