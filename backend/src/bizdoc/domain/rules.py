"""
Immutable rule tables and budgets for the analysis pipeline.

Every keyword list, pattern and cap the extractors use lives on
AnalysisConfig, which is passed into the pipeline explicitly. Tests build
their own instance (e.g. with a tiny chunk budget) instead of patching
module globals.

Design Decisions:
- Frozen dataclass so one config can be shared across parallel chunk runs
- Tuples of pairs instead of dicts to keep the dataclass hashable
- Regex fragments are stored uncompiled; extractors compile what they need
"""

from dataclasses import dataclass


# Currency code -> regex fragment for its symbols/codes (Arabic variants included)
CURRENCY_PATTERNS: tuple[tuple[str, str], ...] = (
    ("AED", r"AED|Dhs?\.?|د\.إ|درهم"),
    ("USD", r"USD|US\$|\$"),
    ("EUR", r"EUR|€"),
    ("GBP", r"GBP|£"),
    ("SAR", r"SAR|ر\.س|ريال"),
)

# Acronyms that look like names to an all-caps scan
STOP_WORDS = frozenset({
    "DSO", "AED", "USD", "EUR", "GBP", "SAR", "VAT", "PO", "Q1", "Q2", "Q3", "Q4",
    "KPI", "KPIS", "ROI", "IRR", "EBITDA", "YOY", "FY", "CEO", "CFO", "COO", "LLC",
    "LTD", "INC", "TRN", "IBAN", "SWIFT", "NPV", "CAGR", "COGS", "P&L", "H1", "H2",
    "THE", "AND", "FOR", "TOTAL", "INVOICE", "DATE", "NOTE", "NOTES", "PAGE",
})

# Label -> keywords that mark an amount with that label
AMOUNT_LABEL_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Total", ("grand total", "total", "sum")),
    ("Profit", ("net profit", "net income", "profit", "ebitda", "earnings")),
    ("Revenue", ("revenue", "sales", "turnover", "income")),
    ("Cost", ("cost", "costs", "expense", "expenses", "expenditure", "cogs", "spend")),
    ("Tax", ("tax", "vat")),
    ("Payment", ("payment", "paid", "pay", "deposit", "installment")),
    ("Balance", ("balance", "outstanding", "due")),
)

FINANCE_KEYWORDS: tuple[str, ...] = (
    "total", "revenue", "sales", "cost", "expense", "tax", "vat", "profit", "payment",
    "paid", "balance", "amount", "price", "invoice", "income", "fee", "budget", "capex",
)

TIME_UNIT_PATTERN = r"\b(?:days?|weeks?|months?|quarters?|years?|yrs?|hours?|DSO)\b"
DSO_PREFIX_PATTERN = r"\b(?:DSO|days\s+sales\s+outstanding)\b"

# Ordered document-type checks; the first match wins
DOC_TYPE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("invoice", r"\b(?:tax\s+)?invoice\b|فاتورة"),
    ("receipt", r"\breceipt\b|إيصال"),
    ("purchase_order", r"\bpurchase\s+order\b|\bP\.O\.(?=\s|$)|أمر\s+شراء"),
    ("financials", r"\b(?:balance\s+sheet|income\s+statement|cash\s+flow\s+statement|"
                   r"profit\s+and\s+loss|financial\s+statements?)\b|\bP&L\b|قائمة\s+الدخل"),
    ("contract", r"\b(?:agreement|contract|hereinafter|terms\s+and\s+conditions)\b|عقد"),
)

# Role -> keyword alternation that anchors a following capitalized name
ROLE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("client", r"clients?|customers?|buyers?|bill(?:ed)?\s+to|sold\s+to"),
    ("supplier", r"suppliers?|vendors?|sellers?|contractors?|providers?"),
    ("bank", r"banks?|lenders?|financiers?|banking\s+partner"),
    ("investor", r"investors?|shareholders?|backed\s+by|funded\s+by"),
    ("regulator", r"regulators?|regulatory\s+authority|authority|ministry"),
)

POSITIVE_WORDS: tuple[str, ...] = (
    "growth", "grew", "increase", "increased", "improved", "improvement", "strong",
    "record", "gain", "gains", "exceeded", "robust", "expansion", "profitable",
    "surplus", "upside", "success", "successful", "نمو", "أرباح",
)
NEGATIVE_WORDS: tuple[str, ...] = (
    "decline", "declined", "decrease", "decreased", "loss", "losses", "overdue",
    "default", "penalty", "weak", "delay", "delayed", "inflation", "shortfall",
    "deficit", "dispute", "downturn", "fell", "late", "خسارة", "تأخير",
)

GROWTH_KEYWORDS = r"\b(?:growth|grew|yoy|year[-\s]on[-\s]year|increase[sd]?|cagr)\b"
COST_PRESSURE_PATTERN = (
    r"\b(?:inflation(?:ary)?|cost\s+pressures?|rising\s+costs?|cost\s+increases?|"
    r"higher\s+costs?|price\s+increases?)\b"
)
COMPLIANCE_PATTERN = (
    r"\b(?:overdue|default(?:ed|s)?|penalt(?:y|ies)|late\s+payments?|non[-\s]?compliance|"
    r"breach(?:es|ed)?)\b"
)

MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Budgets, caps and rule tables for one engine instance.

    Defaults mirror production values; override fields for tests.
    """
    # Size budgets
    pass_char_budget: int = 80_000
    max_chunks: int = 24
    evidence_char_budget: int = 12_000

    # Output caps
    max_amounts: int = 40
    max_dates: int = 12
    max_role_entries: int = 6
    max_parties: int = 8
    max_kpis: int = 16
    max_merged_kpis: int = 24
    max_risks: int = 10
    max_actions: int = 12
    max_insights: int = 6
    max_bars: int = 6
    max_pie_slices: int = 8
    line_points: int = 6

    # Context windows (characters)
    label_window: int = 40
    finance_window: int = 40
    growth_proximity: int = 80
    dso_proximity: int = 60

    # Rule tables
    currency_patterns: tuple[tuple[str, str], ...] = CURRENCY_PATTERNS
    stop_words: frozenset[str] = STOP_WORDS
    amount_label_keywords: tuple[tuple[str, tuple[str, ...]], ...] = AMOUNT_LABEL_KEYWORDS
    finance_keywords: tuple[str, ...] = FINANCE_KEYWORDS
    doc_type_patterns: tuple[tuple[str, str], ...] = DOC_TYPE_PATTERNS
    role_keywords: tuple[tuple[str, str], ...] = ROLE_KEYWORDS
    positive_words: tuple[str, ...] = POSITIVE_WORDS
    negative_words: tuple[str, ...] = NEGATIVE_WORDS

    def __post_init__(self) -> None:
        """Validate budgets."""
        if self.pass_char_budget < 1:
            raise ValueError(f"pass_char_budget must be positive, got {self.pass_char_budget}")
        if self.max_chunks < 1:
            raise ValueError(f"max_chunks must be positive, got {self.max_chunks}")

    @property
    def doc_type_priority(self) -> tuple[str, ...]:
        """Doc types from strongest to weakest signal, ending with the fallback."""
        return tuple(name for name, _ in self.doc_type_patterns) + ("document",)


DEFAULT_CONFIG = AnalysisConfig()
