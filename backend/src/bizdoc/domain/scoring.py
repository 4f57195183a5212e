"""
Financial health scoring rules.

Pure functions that turn KPI values, tone and party counts into the
(profitability, liquidity, concentration-risk) score triple plus anomaly
flags. No I/O, no randomness: identical inputs give identical scores.

Design Decisions:
- Missing KPIs fall back to tone-based defaults instead of zero, so a
  document without numbers still gets a neutral-ish score
- Scores round half-up and clamp to 0-5 (Python's round() is banker's)
- Flags are kept in a fixed canonical order so merged flag sets compare equal
"""

import math
import re
from dataclasses import dataclass

from .models import KPI_DSO, KPI_GROWTH, KPI_LIQUIDITY, KPI_MARGIN, FinancialHealth, KpiEntry, Tone
from .rules import COMPLIANCE_PATTERN, COST_PRESSURE_PATTERN


FLAG_ELEVATED_DSO = "Elevated DSO"
FLAG_COST_PRESSURE = "Cost pressure"
FLAG_COMPLIANCE = "Compliance/credit risk"
FLAG_NEGATIVE_GROWTH = "Negative growth"

FLAG_ORDER = (FLAG_ELEVATED_DSO, FLAG_COST_PRESSURE, FLAG_COMPLIANCE, FLAG_NEGATIVE_GROWTH)

# DSO above this many days is flagged
DSO_THRESHOLD = 50.0

# Margin (%) and liquidity (x) at which the score saturates at 5
MARGIN_CEILING = 25.0
LIQUIDITY_CEILING = 2.0

COST_PRESSURE_RE = re.compile(COST_PRESSURE_PATTERN, re.IGNORECASE)
COMPLIANCE_RE = re.compile(COMPLIANCE_PATTERN, re.IGNORECASE)


@dataclass(frozen=True)
class HealthInputs:
    """Resolved scorer inputs, with defaults already applied."""
    growth: float
    margin: float
    liquidity: float
    dso: float | None
    party_count: int
    cost_pressure: bool
    compliance_issue: bool


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def round_score(value: float) -> int:
    """Round half-up and clamp to the 0-5 score range."""
    return max(0, min(5, math.floor(value + 0.5)))


def order_flags(flags: set[str] | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Canonical flag order; unknown flags follow alphabetically."""
    known = [f for f in FLAG_ORDER if f in flags]
    extra = sorted(f for f in flags if f not in FLAG_ORDER)
    return tuple(known + extra)


def kpi_value(kpis: tuple[KpiEntry, ...], label: str) -> float | None:
    for entry in kpis:
        if entry.label.lower() == label.lower():
            return entry.value
    return None


def default_growth(tone: Tone) -> float:
    return 8.0 if tone.score > 0 else -6.0 if tone.score < 0 else 0.0


def effective_growth(kpis: tuple[KpiEntry, ...], tone: Tone) -> float:
    """Growth KPI if present, else the tone-based default."""
    growth = kpi_value(kpis, KPI_GROWTH)
    return default_growth(tone) if growth is None else growth


def resolve_inputs(text: str, kpis: tuple[KpiEntry, ...], tone: Tone, party_count: int) -> HealthInputs:
    """
    Collect scorer inputs from KPIs, applying defaults when missing.

    Defaults follow the tone: growth +8 / -6 / 0 for positive / negative /
    neutral net score; margin 20 vs 12 and liquidity 1.4 vs 1.1 for
    positive vs non-positive.
    """
    growth = effective_growth(kpis, tone)

    margin = kpi_value(kpis, KPI_MARGIN)
    if margin is None:
        margin = 20.0 if tone.score > 0 else 12.0

    liquidity = kpi_value(kpis, KPI_LIQUIDITY)
    if liquidity is None:
        liquidity = 1.4 if tone.score > 0 else 1.1

    return HealthInputs(
        growth=growth,
        margin=margin,
        liquidity=liquidity,
        dso=kpi_value(kpis, KPI_DSO),
        party_count=party_count,
        cost_pressure=bool(COST_PRESSURE_RE.search(text)),
        compliance_issue=bool(COMPLIANCE_RE.search(text)),
    )


def concentration_score(party_count: int) -> int:
    """Fewer distinct counterparties means higher concentration risk."""
    # Risk share of the scale in percent: 70 / 45 / 20
    if party_count <= 2:
        risk = 70
    elif party_count <= 4:
        risk = 45
    else:
        risk = 20
    return round_score(5 * risk / 100)


def anomaly_flags(inputs: HealthInputs) -> tuple[str, ...]:
    flags: set[str] = set()
    if inputs.dso is not None and inputs.dso > DSO_THRESHOLD:
        flags.add(FLAG_ELEVATED_DSO)
    if inputs.cost_pressure:
        flags.add(FLAG_COST_PRESSURE)
    if inputs.compliance_issue:
        flags.add(FLAG_COMPLIANCE)
    if inputs.growth < 0:
        flags.add(FLAG_NEGATIVE_GROWTH)
    return order_flags(flags)


def health_rationale(
    growth: float,
    margin: float,
    liquidity: float,
    party_count: int,
    flags: tuple[str, ...],
) -> str:
    return (
        f"Growth {growth:.1f}%, margin {margin:.1f}%, liquidity {liquidity:.2f}x "
        f"across {party_count} {'party' if party_count == 1 else 'parties'}; "
        f"flags: {', '.join(flags) if flags else 'none'}."
    )


def score_health(inputs: HealthInputs) -> FinancialHealth:
    """Map resolved inputs onto the three 0-5 scores."""
    flags = anomaly_flags(inputs)
    return FinancialHealth(
        profitability_score=round_score(5 * clamp01(inputs.margin / MARGIN_CEILING)),
        liquidity_score=round_score(5 * clamp01(inputs.liquidity / LIQUIDITY_CEILING)),
        concentration_risk_score=concentration_score(inputs.party_count),
        anomaly_flags=flags,
        rationale=health_rationale(
            inputs.growth, inputs.margin, inputs.liquidity, inputs.party_count, flags
        ),
    )
