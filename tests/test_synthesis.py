from __future__ import annotations

from decimal import Decimal

from bizdoc.domain.models import (
    KPI_GROWTH,
    KPI_MARGIN,
    Amount,
    AmountLabel,
    ChartPoint,
    EntityRoles,
    FinancialHealth,
    KpiEntry,
    Tone,
)
from bizdoc.domain.synthesis import (
    PIE_FALLBACK,
    build_bars,
    build_charts,
    build_lines,
    build_pie,
    build_summary,
    build_trend,
    compute_confidence,
    month_label,
)


def _amount(label: AmountLabel, value: str, currency: str | None = None) -> Amount:
    return Amount(label, Decimal(value), currency)


def test_bars_are_money_only_and_capped() -> None:
    amounts = tuple(_amount(AmountLabel.COST, str(1000 * (i + 1)), "AED") for i in range(8)) + (
        _amount(AmountLabel.AMOUNT, "5"),
    )
    bars = build_bars(amounts)

    assert len(bars) == 6
    assert bars[0] == ChartPoint("Cost (AED)", 8000.0)
    assert all(b.value >= 10 for b in bars)


def test_small_currency_amount_is_still_money() -> None:
    bars = build_bars((_amount(AmountLabel.TAX, "5", "USD"),))
    assert bars == (ChartPoint("Tax (USD)", 5.0),)


def test_lines_compound_from_largest_bar() -> None:
    lines = build_lines((ChartPoint("Revenue", 100.0), ChartPoint("Cost", 40.0)), growth=10.0)

    assert [p.x for p in lines] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert lines[0].y == 100.0
    assert lines[1].y == 102.0
    assert lines[2].y == 104.04


def test_lines_empty_without_seed() -> None:
    assert build_lines((), growth=12.0) == ()


def test_month_label_cycles() -> None:
    assert month_label(0) == "Jan"
    assert month_label(12) == "Jan"
    assert month_label(13) == "Feb"


def test_pie_groups_by_currency() -> None:
    amounts = (
        _amount(AmountLabel.REVENUE, "5000", "AED"),
        _amount(AmountLabel.COST, "-2000", "AED"),
        _amount(AmountLabel.TOTAL, "9000", "USD"),
        _amount(AmountLabel.AMOUNT, "1500"),
    )
    pie = build_pie(amounts)

    assert pie == (ChartPoint("USD", 9000.0), ChartPoint("AED", 7000.0), ChartPoint("UNK", 1500.0))


def test_pie_fallback_without_amounts() -> None:
    assert build_pie(()) == PIE_FALLBACK


def test_charts_never_include_ratios() -> None:
    """KPI values (percent, ratios, days) never reach bars or pie."""
    charts = build_charts((_amount(AmountLabel.REVENUE, "45000", "AED"),), growth=12.0)

    assert [b.value for b in charts.bars] == [45000.0]
    assert [p.value for p in charts.pie] == [45000.0]


def test_summary_template() -> None:
    health = FinancialHealth(4, 3, 4, ("Compliance/credit risk",))
    kpis = (KpiEntry(KPI_GROWTH, 15.0, "%"), KpiEntry(KPI_MARGIN, 20.0, "%"))
    summary = build_summary("invoice", kpis, health, Tone(1, 1), EntityRoles(client=("Acme Corp",)))

    assert summary.startswith("Invoice analysis with a mixed tone.")
    assert "Counterparties: Acme Corp." in summary
    assert "Revenue growth of 15%." in summary
    assert "Margin of 20%." in summary
    assert "Liquidity ratio" not in summary
    assert "profitability 4/5, liquidity 3/5, concentration risk 4/5" in summary
    assert summary.endswith("Flags: Compliance/credit risk.")


def test_summary_arabic() -> None:
    health = FinancialHealth(2, 2, 2)
    summary = build_summary("contract", (), health, Tone(), EntityRoles(), language_out="ara")

    assert summary.startswith("تحليل عقد")


def test_trend_direction() -> None:
    rising = build_lines((ChartPoint("Revenue", 1000.0),), growth=10.0)
    falling = build_lines((ChartPoint("Revenue", 1000.0),), growth=-10.0)

    assert build_trend(rising, 10.0)[0].startswith("Projected trend is rising")
    assert build_trend(falling, -10.0)[0].startswith("Projected trend is declining")
    assert build_trend(rising, 0.0)[0].startswith("Projected trend is flat")
    assert build_trend((), 5.0) == ("No monetary baseline found; no trend projected.",)


def test_confidence_is_deterministic_and_bounded() -> None:
    amounts = (_amount(AmountLabel.REVENUE, "1000", "AED"),)
    kpis = (KpiEntry(KPI_GROWTH, 15.0, "%"),) * 3
    roles = EntityRoles(client=("Acme Corp",))

    assert compute_confidence(amounts, kpis, roles, ()) == 0.6
    assert compute_confidence((), (), EntityRoles(), ()) == 0.3
    assert compute_confidence(amounts * 9, kpis * 9, roles, ("2024-01-01",)) <= 1.0
