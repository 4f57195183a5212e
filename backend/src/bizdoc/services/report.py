"""
PDF report renderer.

Lays an Analysis out as a simple paginated text report: header, summary,
KPIs, amounts, health scores, risks and actions. The renderer only reads
the analysis; it has no dependency on the extraction pipeline.
"""

import io
import logging

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from bizdoc.domain.models import Analysis

logger = logging.getLogger(__name__)


BODY_FONT = ("Helvetica", 10)
H1_FONT = ("Helvetica-Bold", 16)
H2_FONT = ("Helvetica-Bold", 12)


def _fmt(value: float) -> str:
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def report_lines(analysis: Analysis, title: str) -> list[str]:
    """
    Flatten an analysis into marked-up lines.

    "# " is a title, "## " a section heading, "---" a rule; anything else
    is body text.
    """
    health = analysis.financial_health
    lines = [
        f"# {title}",
        f"Document type: {analysis.doc_type}    Language: {analysis.detected_language}    "
        f"Confidence: {analysis.confidence:.0%}",
        "---",
        "## Summary",
        analysis.summary,
    ]

    if analysis.insights:
        lines.append("## Insights")
        lines.extend(f"- {insight}" for insight in analysis.insights)

    if analysis.kpis:
        lines.append("## KPIs")
        lines.extend(f"{k.label}: {_fmt(k.value)} {k.unit or ''}".rstrip() for k in analysis.kpis)

    if analysis.amounts:
        lines.append("## Amounts")
        lines.extend(
            f"{a.label.value}: {a.currency + ' ' if a.currency else ''}{_fmt(float(a.value))}"
            for a in analysis.amounts
        )

    lines.extend([
        "## Financial health",
        f"Profitability {health.profitability_score}/5    Liquidity {health.liquidity_score}/5    "
        f"Concentration risk {health.concentration_risk_score}/5",
        health.rationale,
    ])

    if analysis.risk_matrix:
        lines.append("## Risks")
        for risk in analysis.risk_matrix:
            lines.append(f"[{risk.severity.value.upper()}] {risk.risk}: {risk.mitigation}")
            if risk.evidence:
                lines.append(f"    Evidence: {risk.evidence}")

    if analysis.actions:
        lines.append("## Actions")
        for action in analysis.actions:
            owner = f" ({action.owner})" if action.owner else ""
            due = f", due in {action.due_days} days" if action.due_days is not None else ""
            lines.append(f"P{action.priority}: {action.action}{owner}{due}")

    if analysis.trend_interpretation:
        lines.append("## Trend")
        lines.extend(f"- {t}" for t in analysis.trend_interpretation)

    return lines


class ReportRenderer:
    """Renders an Analysis to PDF bytes with the reportlab canvas."""

    def __init__(self, pagesize: tuple[float, float] = letter, margin: float = inch) -> None:
        self.pagesize = pagesize
        self.margin = margin

    def render(self, analysis: Analysis, title: str = "Business Document Analysis") -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=self.pagesize)
        c.setTitle(title)
        width, height = self.pagesize
        text_width = width - 2 * self.margin

        y = height - self.margin
        pages = 1
        for line in report_lines(analysis, title):
            if line.startswith("# "):
                font, text, step = H1_FONT, line[2:], 24
            elif line.startswith("## "):
                font, text, step = H2_FONT, line[3:], 18
                y -= 6
            elif line == "---":
                c.line(self.margin, y, width - self.margin, y)
                y -= 12
                continue
            else:
                font, text, step = BODY_FONT, line, 14

            c.setFont(*font)
            for segment in simpleSplit(text, font[0], font[1], text_width) or [""]:
                c.drawString(self.margin, y, segment)
                y -= step
                if y < self.margin:
                    c.showPage()
                    pages += 1
                    y = height - self.margin
                    c.setFont(*font)

        c.save()
        data = buffer.getvalue()
        logger.info(f"Rendered report: {pages} page(s), {len(data)} bytes")
        return data
