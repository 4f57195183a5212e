from __future__ import annotations

import dataclasses
from decimal import Decimal

import pytest

from bizdoc.domain.models import Amount, AmountLabel, KpiEntry
from bizdoc.domain.rules import AnalysisConfig
from bizdoc.services.aggregate import merge_analyses, merge_doc_type
from bizdoc.services.analyzer import DocumentAnalyzer
from bizdoc.services.chunking import split_into_chunks
from bizdoc.services.engine import AnalysisEngine


@pytest.fixture
def partials(analyzer: DocumentAnalyzer):
    return [
        analyzer.analyze("Revenue of AED 10,000 grew 5%. Client: Acme Corp. Current ratio 1.2."),
        analyzer.analyze("Tax invoice. Revenue of AED 50,000 grew 3%. Supplier: Beta Supplies. Costs USD 7,000."),
        analyzer.analyze("Payment overdue. Revenue declined 9%. Client: Gamma Retail. Rising costs noted."),
    ]


def test_single_partial_returned_unchanged(analyzer: DocumentAnalyzer, scenario_text: str) -> None:
    partial = analyzer.analyze(scenario_text)
    assert merge_analyses([partial]) is partial


def test_empty_merge_rejected() -> None:
    with pytest.raises(ValueError):
        merge_analyses([])


def test_amounts_keep_larger_magnitude(partials) -> None:
    merged = merge_analyses(partials)

    revenue = [a for a in merged.amounts if a.label == AmountLabel.REVENUE and a.currency == "AED"]
    assert revenue == [Amount(AmountLabel.REVENUE, Decimal("50000"), "AED")]
    assert Amount(AmountLabel.COST, Decimal("7000"), "USD") in merged.amounts


def test_kpis_larger_magnitude_and_units(partials) -> None:
    merged = merge_analyses(partials)

    assert merged.kpi("Revenue Growth %").value == -9.0
    assert merged.kpi("Revenue Growth %").unit == "%"
    assert merged.kpi("Liquidity Ratio").unit == "x"
    labels = [k.label.lower() for k in merged.kpis]
    assert len(labels) == len(set(labels))


def test_merge_is_order_independent(partials) -> None:
    forward = merge_analyses(partials)
    backward = merge_analyses(list(reversed(partials)))

    assert forward.amounts == backward.amounts
    assert forward.kpis == backward.kpis
    assert forward.tone == backward.tone
    assert forward.financial_health.anomaly_flags == backward.financial_health.anomaly_flags
    assert forward.financial_health.concentration_risk_score == backward.financial_health.concentration_risk_score
    assert forward.doc_type == backward.doc_type == "invoice"


def test_tone_summed_and_health_merged(partials) -> None:
    merged = merge_analyses(partials)

    assert merged.tone.positive == sum(p.tone.positive for p in partials)
    assert merged.tone.negative == sum(p.tone.negative for p in partials)
    assert merged.financial_health.concentration_risk_score == max(
        p.financial_health.concentration_risk_score for p in partials
    )
    flags = set(merged.financial_health.anomaly_flags)
    assert flags == {f for p in partials for f in p.financial_health.anomaly_flags}


def test_roles_union(partials) -> None:
    merged = merge_analyses(partials)

    assert merged.key_entities.roles.client == ("Acme Corp", "Gamma Retail")
    assert merged.key_entities.roles.supplier == ("Beta Supplies",)
    assert set(merged.key_entities.parties) == {"Acme Corp", "Gamma Retail", "Beta Supplies"}


def test_charts_regenerated_from_merged_amounts(partials) -> None:
    merged = merge_analyses(partials)

    assert merged.charts.bars[0].value == 50000.0
    assert merged.charts.lines[0].y == 50000.0


def test_doc_type_priority(analyzer: DocumentAnalyzer) -> None:
    contract = analyzer.analyze("This agreement covers services.")
    plain = analyzer.analyze("Quarterly notes for the team.")
    receipt = analyzer.analyze("Receipt for cash paid.")

    assert merge_doc_type([plain, contract], AnalysisConfig()) == "contract"
    assert merge_doc_type([contract, receipt, plain], AnalysisConfig()) == "receipt"


def test_oversized_document() -> None:
    """200k characters: chunked, amounts capped, concentration is the chunk maximum."""
    config = AnalysisConfig()
    block = (
        "Client: Company{i} Holdings paid AED {amount:,} for services. "
        "Supplier: Vendor{i} Trading delivered on time.\n\n"
    )
    parts: list[str] = []
    i = 0
    while sum(len(p) for p in parts) < 200_000:
        parts.append(block.format(i=i, amount=1000 + i * 10))
        i += 1
    text = "".join(parts)[:200_000]

    result = AnalysisEngine(config).draft(text)
    chunks = split_into_chunks(text, config)
    analyzer = DocumentAnalyzer(config)
    chunk_scores = [analyzer.analyze(c).financial_health.concentration_risk_score for c in chunks]

    assert result.chunks == len(chunks) > 1
    assert len(result.analysis.amounts) <= config.max_amounts
    assert result.analysis.financial_health.concentration_risk_score == max(chunk_scores)


def test_equal_magnitude_ties_do_not_depend_on_order(analyzer: DocumentAnalyzer) -> None:
    credit = analyzer.analyze("Balance of AED 5,000 outstanding.")
    debit = analyzer.analyze("Balance of AED -5,000 outstanding.")
    credit = dataclasses.replace(credit, kpis=(KpiEntry("Revenue Growth %", -4.0, "%"),))
    debit = dataclasses.replace(debit, kpis=(KpiEntry("Revenue Growth %", 4.0, "%"),))

    forward = merge_analyses([credit, debit])
    backward = merge_analyses([debit, credit])

    assert forward.amounts == backward.amounts
    assert Amount(AmountLabel.BALANCE, Decimal("5000"), "AED") in forward.amounts
    assert forward.kpis == backward.kpis
    assert forward.kpi("Revenue Growth %").value == 4.0


def test_insights_rebuilt_from_merged_values(analyzer: DocumentAnalyzer) -> None:
    empty = analyzer.analyze("Team notes from the weekly sync.")
    rich = analyzer.analyze("Revenue grew 12%. Client: Acme Corp.")
    assert empty.insights[0].startswith("Limited quantitative signal")

    merged = merge_analyses([empty, rich])

    assert merged.insights == ("Revenue grew 12%.", "Key client: Acme Corp.")
    assert not any(i.startswith("Limited quantitative signal") for i in merged.insights)
