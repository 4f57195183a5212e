"""
Domain models for business document analysis.

These records are the output of the analysis pipeline. They are created
once per document (or per chunk) and never mutated afterwards; the merge
step builds new records instead of editing partial ones.

Design Decisions:
- Frozen dataclasses with tuple fields so an Analysis is fully immutable
- Decimal for all monetary values to avoid floating-point drift when summing
- KPI values, scores and chart points are plain numbers (they are ratios,
  percentages or display values, not money)
- to_dict/from_dict speak the camelCase wire shape used by the HTTP API,
  the report renderer and the external refiner
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class AmountLabel(Enum):
    """Semantic label inferred for a monetary amount."""
    TOTAL = "Total"
    REVENUE = "Revenue"
    COST = "Cost"
    PROFIT = "Profit"
    TAX = "Tax"
    PAYMENT = "Payment"
    BALANCE = "Balance"
    AMOUNT = "Amount"


class Severity(Enum):
    """Risk severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Canonical KPI labels, in display order
KPI_GROWTH = "Revenue Growth %"
KPI_MARGIN = "Margin %"
KPI_LIQUIDITY = "Liquidity Ratio"
KPI_DSO = "DSO (days)"
KPI_TOTAL = "Total"
KPI_REVENUE = "Revenue"
KPI_COST = "Cost"

KPI_ORDER = (KPI_GROWTH, KPI_MARGIN, KPI_LIQUIDITY, KPI_DSO, KPI_TOTAL, KPI_REVENUE, KPI_COST)

ROLE_NAMES = ("client", "supplier", "bank", "investor", "regulator", "other")


def _number(value: Decimal | float) -> int | float:
    """Render a number for JSON: integral values as int, others as float."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if float(value).is_integer():
        return int(value)
    return float(value)


def _to_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"Not a number: {raw!r}")
    try:
        return Decimal(str(raw).replace(",", ""))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {raw!r}") from e


def _to_float(raw: Any) -> float:
    return float(_to_decimal(raw))


def _str_tuple(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Expected a list, got {type(raw).__name__}")
    return tuple(str(item) for item in raw if str(item).strip())


def _dict_list(raw: Any) -> list[dict[str, Any]]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)) or not all(isinstance(item, dict) for item in raw):
        raise ValueError("Expected a list of objects")
    return list(raw)


@dataclass(frozen=True)
class Amount:
    """
    A monetary value found in the text.

    The label comes from keywords in a fixed window around the match and
    the currency from an attached symbol or code, if any.
    """
    label: AmountLabel
    value: Decimal
    currency: str | None = None

    @property
    def magnitude(self) -> Decimal:
        return abs(self.value)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"label": self.label.value, "value": _number(self.value)}
        if self.currency:
            data["currency"] = self.currency
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Amount":
        try:
            label = AmountLabel(str(data.get("label", "Amount")).strip().title())
        except ValueError:
            label = AmountLabel.AMOUNT
        currency = data.get("currency") or None
        return cls(label=label, value=_to_decimal(data.get("value")), currency=currency)


@dataclass(frozen=True)
class KpiEntry:
    """A labeled performance indicator (%, x, days, or a currency amount)."""
    label: str
    value: float
    unit: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "value": _number(self.value), "unit": self.unit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KpiEntry":
        label = data.get("label") or data.get("name")
        if not label:
            raise ValueError("KPI entry without a label")
        return cls(label=str(label), value=_to_float(data.get("value")), unit=data.get("unit") or None)


@dataclass(frozen=True)
class EntityRoles:
    """Matched names per counterparty role, deduplicated and capped."""
    client: tuple[str, ...] = ()
    supplier: tuple[str, ...] = ()
    bank: tuple[str, ...] = ()
    investor: tuple[str, ...] = ()
    regulator: tuple[str, ...] = ()
    other: tuple[str, ...] = ()

    def get(self, role: str) -> tuple[str, ...]:
        return getattr(self, role)

    def to_dict(self) -> dict[str, list[str]]:
        return {role: list(self.get(role)) for role in ROLE_NAMES}


@dataclass(frozen=True)
class KeyEntities:
    """Entity roles plus the flattened party list and detected currencies."""
    roles: EntityRoles = field(default_factory=EntityRoles)
    parties: tuple[str, ...] = ()
    currencies: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "parties": list(self.parties),
            "roles": self.roles.to_dict(),
            "currencies": list(self.currencies),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeyEntities":
        roles_raw = data.get("roles") or {}
        if not isinstance(roles_raw, dict):
            raise ValueError("keyEntities.roles must be an object")
        roles = EntityRoles(**{role: _str_tuple(roles_raw.get(role)) for role in ROLE_NAMES})
        return cls(
            roles=roles,
            parties=_str_tuple(data.get("parties")),
            currencies=_str_tuple(data.get("currencies")),
        )


@dataclass(frozen=True)
class Tone:
    """
    Sentiment signal counts.

    Counts (not the label) are stored so partial tones can be summed
    across chunks and the label re-derived from the aggregate.
    """
    positive: int = 0
    negative: int = 0

    @property
    def score(self) -> int:
        return self.positive - self.negative

    @property
    def label(self) -> str:
        if self.score > 1:
            return "positive"
        if self.score < -1:
            return "negative"
        return "mixed"

    def __add__(self, other: "Tone") -> "Tone":
        return Tone(positive=self.positive + other.positive, negative=self.negative + other.negative)

    def to_dict(self) -> dict[str, Any]:
        return {
            "positive": self.positive,
            "negative": self.negative,
            "score": self.score,
            "label": self.label,
        }


@dataclass(frozen=True)
class FinancialHealth:
    """
    Three 0-5 scores plus anomaly flags.

    Scores are integers; anything fractional is rounded before it gets here.
    """
    profitability_score: int
    liquidity_score: int
    concentration_risk_score: int
    anomaly_flags: tuple[str, ...] = ()
    rationale: str = ""

    def __post_init__(self) -> None:
        """Validate score ranges."""
        for name in ("profitability_score", "liquidity_score", "concentration_risk_score"):
            score = getattr(self, name)
            if not isinstance(score, int) or not 0 <= score <= 5:
                raise ValueError(f"{name} must be an integer 0-5, got {score!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "profitabilityScore": self.profitability_score,
            "liquidityScore": self.liquidity_score,
            "concentrationRiskScore": self.concentration_risk_score,
            "anomalyFlags": list(self.anomaly_flags),
            "rationale": self.rationale,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FinancialHealth":
        def score(key: str) -> int:
            value = _to_float(data.get(key, 0))
            return max(0, min(5, int(value + 0.5)))

        return cls(
            profitability_score=score("profitabilityScore"),
            liquidity_score=score("liquidityScore"),
            concentration_risk_score=score("concentrationRiskScore"),
            anomaly_flags=_str_tuple(data.get("anomalyFlags")),
            rationale=str(data.get("rationale", "")),
        )


@dataclass(frozen=True)
class RiskEntry:
    """A risk with severity, optional source evidence, and a mitigation."""
    risk: str
    severity: Severity
    mitigation: str
    evidence: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk": self.risk,
            "severity": self.severity.value,
            "evidence": self.evidence,
            "mitigation": self.mitigation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RiskEntry":
        if not data.get("risk"):
            raise ValueError("Risk entry without a description")
        return cls(
            risk=str(data["risk"]),
            severity=Severity(str(data.get("severity", "medium")).lower()),
            mitigation=str(data.get("mitigation", "")),
            evidence=data.get("evidence") or None,
        )


@dataclass(frozen=True)
class ActionEntry:
    """A prioritized recommended action (priority 1 is most urgent)."""
    priority: int
    action: str
    owner: str | None = None
    due_days: int | None = None

    def __post_init__(self) -> None:
        if self.priority < 1:
            raise ValueError(f"Priority must be positive, got {self.priority}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority,
            "action": self.action,
            "owner": self.owner,
            "dueDays": self.due_days,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionEntry":
        if not data.get("action"):
            raise ValueError("Action entry without text")
        due = data.get("dueDays")
        return cls(
            priority=int(_to_float(data.get("priority", 1))),
            action=str(data["action"]),
            owner=data.get("owner") or None,
            due_days=int(_to_float(due)) if due is not None else None,
        )


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float


@dataclass(frozen=True)
class LinePoint:
    x: str
    y: float


@dataclass(frozen=True)
class ChartBundle:
    """Chart-ready series. Bars and pie carry money only."""
    bars: tuple[ChartPoint, ...] = ()
    lines: tuple[LinePoint, ...] = ()
    pie: tuple[ChartPoint, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "bars": [{"label": p.label, "value": _number(p.value)} for p in self.bars],
            "lines": [{"x": p.x, "y": _number(p.y)} for p in self.lines],
            "pie": [{"label": p.label, "value": _number(p.value)} for p in self.pie],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChartBundle":
        return cls(
            bars=tuple(ChartPoint(str(p["label"]), _to_float(p["value"])) for p in _dict_list(data.get("bars"))),
            lines=tuple(LinePoint(str(p["x"]), _to_float(p["y"])) for p in _dict_list(data.get("lines"))),
            pie=tuple(ChartPoint(str(p["label"]), _to_float(p["value"])) for p in _dict_list(data.get("pie"))),
        )


@dataclass(frozen=True)
class Analysis:
    """
    The complete structured analysis of one document.

    This is the engine's only output type. It is handed to the caller,
    the report renderer, or the external refiner as-is.
    """
    detected_language: str
    doc_type: str
    summary: str
    insights: tuple[str, ...]
    key_entities: KeyEntities
    dates: tuple[str, ...]
    amounts: tuple[Amount, ...]
    kpis: tuple[KpiEntry, ...]
    tone: Tone
    financial_health: FinancialHealth
    risk_matrix: tuple[RiskEntry, ...]
    actions: tuple[ActionEntry, ...]
    charts: ChartBundle
    trend_interpretation: tuple[str, ...]
    confidence: float

    @classmethod
    def empty(
        cls,
        summary: str,
        doc_type: str = "document",
        actions: tuple[ActionEntry, ...] = (),
    ) -> "Analysis":
        """A valid analysis with nothing extracted and all scores at zero."""
        return cls(
            detected_language="eng",
            doc_type=doc_type,
            summary=summary,
            insights=(),
            key_entities=KeyEntities(),
            dates=(),
            amounts=(),
            kpis=(),
            tone=Tone(),
            financial_health=FinancialHealth(0, 0, 0),
            risk_matrix=(),
            actions=actions,
            charts=ChartBundle(),
            trend_interpretation=(),
            confidence=0.0,
        )

    def kpi(self, label: str) -> KpiEntry | None:
        """Look up a KPI by label (case-insensitive)."""
        wanted = label.lower()
        for entry in self.kpis:
            if entry.label.lower() == wanted:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return {
            "detectedLanguage": self.detected_language,
            "docType": self.doc_type,
            "summary": self.summary,
            "insights": list(self.insights),
            "keyEntities": self.key_entities.to_dict(),
            "dates": list(self.dates),
            "amounts": [a.to_dict() for a in self.amounts],
            "kpis": [k.to_dict() for k in self.kpis],
            "tone": self.tone.to_dict(),
            "financialHealth": self.financial_health.to_dict(),
            "riskMatrix": [r.to_dict() for r in self.risk_matrix],
            "actions": [a.to_dict() for a in self.actions],
            "charts": self.charts.to_dict(),
            "trendInterpretation": list(self.trend_interpretation),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Analysis":
        """
        Parse a wire-shape payload (e.g. from the external refiner).

        Raises:
            ValueError: If the payload is not a usable analysis
        """
        if not isinstance(data, dict):
            raise ValueError(f"Analysis payload must be an object, got {type(data).__name__}")

        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise ValueError("Analysis payload has no summary")

        health = data.get("financialHealth")
        if not isinstance(health, dict):
            raise ValueError("Analysis payload has no financialHealth object")

        tone_raw = data.get("tone") or {}
        entities_raw = data.get("keyEntities") or {}
        charts_raw = data.get("charts") or {}
        if not isinstance(tone_raw, dict) or not isinstance(entities_raw, dict) or not isinstance(charts_raw, dict):
            raise ValueError("Malformed nested objects in analysis payload")

        try:
            confidence = _to_float(data.get("confidence", 0.0))
            return cls(
                detected_language=str(data.get("detectedLanguage", "eng")),
                doc_type=str(data.get("docType", "document")),
                summary=summary.strip(),
                insights=_str_tuple(data.get("insights", data.get("executiveInsights"))),
                key_entities=KeyEntities.from_dict(entities_raw),
                dates=_str_tuple(data.get("dates")),
                amounts=tuple(Amount.from_dict(a) for a in _dict_list(data.get("amounts"))),
                kpis=tuple(KpiEntry.from_dict(k) for k in _dict_list(data.get("kpis"))),
                tone=Tone(
                    positive=int(_to_float(tone_raw.get("positive", 0))),
                    negative=int(_to_float(tone_raw.get("negative", 0))),
                ),
                financial_health=FinancialHealth.from_dict(health),
                risk_matrix=tuple(
                    RiskEntry.from_dict(r) for r in _dict_list(data.get("riskMatrix", data.get("risks")))
                ),
                actions=tuple(ActionEntry.from_dict(a) for a in _dict_list(data.get("actions"))),
                charts=ChartBundle.from_dict(charts_raw),
                trend_interpretation=_str_tuple(data.get("trendInterpretation")),
                confidence=max(0.0, min(1.0, confidence)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed analysis payload: {e}") from e
