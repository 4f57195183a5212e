from __future__ import annotations

from bizdoc.domain.models import KpiEntry
from bizdoc.services.extraction.amounts import extract_amounts
from bizdoc.services.extraction.kpis import (
    dedupe_kpis,
    derive_kpis,
    find_dso,
    find_growth,
    find_liquidity,
    find_margin,
)


def _kpis(text: str) -> dict[str, KpiEntry]:
    return {k.label: k for k in derive_kpis(text, extract_amounts(text))}


def test_growth_explicit_phrase() -> None:
    assert find_growth("Sales increased by 9.5% year over year") == 9.5
    assert find_growth("Revenue rose 4 % in H1") == 4.0


def test_growth_negative_phrase() -> None:
    assert find_growth("Revenue declined 7% after the contract ended") == -7.0


def test_growth_explicit_beats_proximity() -> None:
    """A stated 'grew N%' wins even when another percentage sits nearer the keyword."""
    text = "Growth outlook 30% probability. Revenue grew 12% overall."
    assert find_growth(text) == 12.0


def test_growth_proximity_fallback() -> None:
    assert find_growth("YoY growth came in at 11% for the group") == 11.0


def test_growth_proximity_limit() -> None:
    text = "Growth " + "x" * 120 + " 40%"
    assert find_growth(text) is None


def test_margin_phrases() -> None:
    assert find_margin("We kept an 18% gross margin") == 18.0
    assert find_margin("Operating margin held at 22.5% this year") == 22.5
    assert find_margin("No margin data") is None


def test_liquidity_phrases() -> None:
    assert find_liquidity("The current ratio of 1.6x is healthy") == 1.6
    assert find_liquidity("Liquidity improved to 2.1x") == 2.1
    assert find_liquidity("Quick ratio: 0.9") == 0.9


def test_dso_closest_number() -> None:
    assert find_dso("DSO of 62 days, up from 48") == 62.0
    assert find_dso("No receivable metrics here") is None


def test_dso_ignores_years_and_dates() -> None:
    assert find_dso("DSO in 2024 rose to 48 days.") == 48.0
    assert find_dso("DSO as of 15/03/2024 stood at 41 days") == 41.0


def test_dso_ignores_percentages_and_ratios() -> None:
    assert find_dso("Gross margin 12.5% and DSO was not reported.") is None
    assert find_dso("Current ratio 1.5x, DSO pending.") is None
    assert find_dso("DSO of 48, against 40 last year") == 48.0


def test_scenario_kpis() -> None:
    kpis = _kpis("Revenue grew 15% to AED 2,500,000 with a 20% margin.")

    assert kpis["Revenue Growth %"].value == 15
    assert kpis["Margin %"].value == 20
    assert kpis["Revenue"].value == 2_500_000
    assert kpis["Revenue"].unit == "AED"


def test_margin_derived_from_profit_and_revenue() -> None:
    kpis = _kpis("Revenue of AED 1,000,000 and net profit of AED 150,000.")

    assert kpis["Margin %"].value == 15.0
    assert kpis["Margin %"].unit == "%"


def test_total_kpi_sums_total_amounts() -> None:
    kpis = _kpis("Subtotal. Total USD 1,000. Later, total USD 2,500.")

    assert kpis["Total"].value == 3500
    assert kpis["Total"].unit == "USD"


def test_kpi_order_and_unique_labels() -> None:
    text = (
        "Revenue grew 10% with an 18% margin. Current ratio 1.5. "
        "DSO of 55 days. Revenue AED 900,000 and costs AED 400,000."
    )
    labels = [k.label for k in derive_kpis(text, extract_amounts(text))]

    assert labels == ["Revenue Growth %", "Margin %", "Liquidity Ratio", "DSO (days)", "Revenue", "Cost"]
    assert len({label.lower() for label in labels}) == len(labels)


def test_dedupe_kpis_first_wins() -> None:
    kpis = [KpiEntry("Margin %", 20.0, "%"), KpiEntry("margin %", 30.0, "%")]
    assert dedupe_kpis(kpis, cap=16) == (KpiEntry("Margin %", 20.0, "%"),)
