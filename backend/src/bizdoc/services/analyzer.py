"""
Single-pass document analyzer.

Composes the extractors, KPI deriver, health scorer, generators and
synthesizers over one block of text that fits the per-pass budget. This is
the unit the engine re-runs per chunk for oversized documents.
"""

import logging

from bizdoc.domain.generators import generate_actions, generate_insights, generate_risks
from bizdoc.domain.models import Analysis
from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig
from bizdoc.domain.scoring import resolve_inputs, score_health
from bizdoc.domain.synthesis import build_charts, build_summary, build_trend, compute_confidence

from .extraction import (
    build_key_entities,
    derive_kpis,
    detect_language,
    extract_amounts,
    extract_dates,
    extract_entities,
    guess_doc_type,
    measure_tone,
    split_sentences,
)

logger = logging.getLogger(__name__)


class DocumentAnalyzer:
    """
    Deterministic analyzer for text within the per-pass budget.

    Running it twice on the same text yields equal Analysis records: no
    clock, no randomness, no shared mutable state.

    Example:
        analyzer = DocumentAnalyzer()
        analysis = analyzer.analyze("Revenue grew 15% to AED 2,500,000.")
        analysis.kpi("Revenue Growth %").value  # 15.0
    """

    def __init__(self, config: AnalysisConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def analyze(self, text: str, doc_type: str | None = None, language_out: str = "eng") -> Analysis:
        """
        Analyze one block of text.

        Args:
            text: Raw document text (at most config.pass_char_budget chars
                are read; the engine chunks anything longer)
            doc_type: Declared document type; overrides the guess
            language_out: "ara" for Arabic narrative, anything else English

        Returns:
            A complete Analysis; sparse text yields empty lists and defaults
        """
        config = self.config
        if len(text) > config.pass_char_budget:
            logger.warning(
                f"Single pass received {len(text)} chars, reading the first {config.pass_char_budget}"
            )
            text = text[:config.pass_char_budget]

        sentences = split_sentences(text)
        amounts = extract_amounts(text, config)
        kpis = derive_kpis(text, amounts, config)
        roles = extract_entities(text, config)
        currencies = [a.currency for a in amounts if a.currency]
        key_entities = build_key_entities(roles, currencies, config)
        dates = extract_dates(text, config)
        tone = measure_tone(text, config)

        inputs = resolve_inputs(text, kpis, tone, len(key_entities.parties))
        health = score_health(inputs)
        resolved_type = doc_type or guess_doc_type(text, config)

        charts = build_charts(amounts, inputs.growth, config)

        logger.debug(
            f"Single pass: {len(amounts)} amounts, {len(kpis)} kpis, "
            f"{len(key_entities.parties)} parties, flags={list(health.anomaly_flags)}"
        )

        return Analysis(
            detected_language=detect_language(text),
            doc_type=resolved_type,
            summary=build_summary(resolved_type, kpis, health, tone, roles, language_out),
            insights=generate_insights(kpis, roles, language_out, config),
            key_entities=key_entities,
            dates=dates,
            amounts=amounts,
            kpis=kpis,
            tone=tone,
            financial_health=health,
            risk_matrix=generate_risks(sentences, health, kpis, config),
            actions=generate_actions(health, config),
            charts=charts,
            trend_interpretation=build_trend(charts.lines, inputs.growth, language_out),
            confidence=compute_confidence(amounts, kpis, roles, dates),
        )
