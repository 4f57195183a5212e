"""
Document analysis endpoints.

Handles text analysis and evidence excerpts. Text extraction from PDFs,
DOCX or images happens upstream; these endpoints take plain text.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from bizdoc.api.schemas import AnalyzeRequest, AnalyzeResponse, EvidenceRequest, EvidenceResponse
from bizdoc.config import Settings, get_settings
from bizdoc.services.engine import AnalysisEngine
from bizdoc.services.evidence import build_evidence
from bizdoc.services.refine import OpenAIRefiner

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


# Service instance (overridden in tests via app.dependency_overrides)
_engine: AnalysisEngine | None = None


def get_engine() -> AnalysisEngine:
    """Get or create the analysis engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        refiner = None
        if settings.openai_api_key:
            refiner = OpenAIRefiner(
                api_key=settings.openai_api_key,
                model=settings.refine_model,
                timeout=settings.refine_timeout_seconds,
            )
        _engine = AnalysisEngine(
            config=settings.analysis_config(),
            refiner=refiner,
            refine_timeout=settings.refine_timeout_seconds,
        )
    return _engine


def require_text(text: str | None, settings: Settings) -> str:
    """Reject missing or too-short text before the engine is invoked."""
    text = (text or "").strip()
    if len(text) < settings.min_text_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or too-short 'text'",
        )
    return text


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"description": "Missing or too-short text"}},
)
def analyze_document(
    request: AnalyzeRequest,
    engine: Annotated[AnalysisEngine, Depends(get_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AnalyzeResponse:
    """
    Analyse document text.

    Runs the rule-based pipeline (chunked for large documents) and, when
    requested and configured, one refinement attempt with fallback to the
    rule-based draft.
    """
    text = require_text(request.text, settings)
    refine = settings.refine_by_default if request.refine is None else request.refine

    result = engine.analyze(
        text,
        doc_type=request.doc_type,
        language_out=request.language_out,
        refine=refine,
    )
    logger.info(
        f"Analyzed {len(text)} chars: docType={result.analysis.doc_type}, "
        f"chunks={result.chunks}, refined={result.refined}"
    )

    return AnalyzeResponse(
        ok=True,
        analysis=result.analysis.to_dict(),
        chunks=result.chunks,
        refined=result.refined,
    )


@router.post(
    "/evidence",
    response_model=EvidenceResponse,
    responses={400: {"description": "Missing or too-short text"}},
)
def evidence_excerpt(
    request: EvidenceRequest,
    engine: Annotated[AnalysisEngine, Depends(get_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EvidenceResponse:
    """Return the keyword-ranked excerpt that would be sent to the refiner."""
    text = require_text(request.text, settings)
    excerpt = build_evidence(text, engine.config)
    return EvidenceResponse(evidence=excerpt, length=len(excerpt), source_length=len(text))
