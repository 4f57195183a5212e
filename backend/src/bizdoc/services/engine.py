"""
Analysis engine - the public entry point.

Coordinates the full pipeline:
1. Single pass when the text fits the budget
2. Otherwise chunk, analyse each chunk, and merge the partials
3. Optionally hand the draft plus an evidence excerpt to a refiner

The engine never raises for malformed or sparse text; the worst outcome is
a degraded but valid Analysis.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass

from bizdoc.domain.generators import BASELINE_ACTION
from bizdoc.domain.models import Analysis
from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig

from .aggregate import merge_analyses
from .analyzer import DocumentAnalyzer
from .chunking import split_into_chunks
from .evidence import build_evidence
from .refine import Refiner, refine_with_fallback

logger = logging.getLogger(__name__)


EMPTY_SUMMARY = "No analysable content could be extracted from this document."


def empty_analysis(doc_type: str | None = None) -> Analysis:
    """Default result used when no part of a document could be analysed."""
    return Analysis.empty(EMPTY_SUMMARY, doc_type=doc_type or "document", actions=(BASELINE_ACTION,))


@dataclass
class EngineResult:
    """An analysis plus how it was produced."""
    analysis: Analysis
    chunks: int = 1
    refined: bool = False


class AnalysisEngine:
    """
    Runs single-pass or chunked analysis with optional refinement.

    Example:
        engine = AnalysisEngine(config, refiner=OpenAIRefiner(api_key="sk-..."))
        result = engine.analyze(text, refine=True)
        result.analysis.financial_health.liquidity_score
    """

    def __init__(
        self,
        config: AnalysisConfig = DEFAULT_CONFIG,
        refiner: Refiner | None = None,
        refine_timeout: float = 18.0,
        executor: Executor | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Budgets, caps and rule tables
            refiner: External refiner (refinement is skipped if None)
            refine_timeout: Hard timeout for the single refinement attempt
            executor: Optional pool to analyse chunks in parallel
        """
        self.config = config
        self.analyzer = DocumentAnalyzer(config)
        self.refiner = refiner
        self.refine_timeout = refine_timeout
        self.executor = executor

    def _analyze_chunk(self, args: tuple[int, str, str | None, str]) -> Analysis | None:
        index, chunk, doc_type, language_out = args
        try:
            return self.analyzer.analyze(chunk, doc_type=doc_type, language_out=language_out)
        except Exception:
            logger.exception(f"Analysis of chunk {index} failed, skipping it")
            return None

    def draft(self, text: str, doc_type: str | None = None, language_out: str = "eng") -> EngineResult:
        """Rule-based analysis only: single pass or chunk + merge."""
        chunks = split_into_chunks(text, self.config)
        jobs = [(i, chunk, doc_type, language_out) for i, chunk in enumerate(chunks)]

        if len(jobs) > 1 and self.executor is not None:
            outcomes = list(self.executor.map(self._analyze_chunk, jobs))
        else:
            outcomes = [self._analyze_chunk(job) for job in jobs]

        partials = [a for a in outcomes if a is not None]
        if not partials:
            logger.error(f"All {len(chunks)} chunk analyses failed, returning an empty analysis")
            return EngineResult(analysis=empty_analysis(doc_type), chunks=len(chunks))

        analysis = merge_analyses(partials, self.config, language_out)
        return EngineResult(analysis=analysis, chunks=len(chunks))

    def analyze(
        self,
        text: str,
        doc_type: str | None = None,
        language_out: str = "eng",
        refine: bool = False,
    ) -> EngineResult:
        """
        Analyse a document end to end.

        Args:
            text: Already-extracted document text
            doc_type: Declared document type hint
            language_out: Narrative language ("eng" or "ara")
            refine: Try the external refiner on the draft

        Returns:
            EngineResult with the (possibly refined) analysis
        """
        result = self.draft(text, doc_type=doc_type, language_out=language_out)
        logger.info(
            f"Draft ready: {len(text)} chars, {result.chunks} chunk(s), "
            f"docType={result.analysis.doc_type}"
        )

        if not refine:
            return result
        if self.refiner is None:
            logger.info("Refinement requested but no refiner configured, using draft")
            return result

        evidence = build_evidence(text, self.config)
        analysis, refined = refine_with_fallback(self.refiner, evidence, result.analysis, self.refine_timeout)
        return EngineResult(analysis=analysis, chunks=result.chunks, refined=refined)
