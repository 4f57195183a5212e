"""
PDF report endpoint.

Renders a supplied analysis, or analyses supplied text first, and returns
the report as a PDF attachment.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from bizdoc.api.routes.analysis import get_engine, require_text
from bizdoc.api.schemas import ReportRequest
from bizdoc.config import Settings, get_settings
from bizdoc.domain.models import Analysis
from bizdoc.services.engine import AnalysisEngine
from bizdoc.services.report import ReportRenderer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["report"])

REPORT_FILENAME = "bizdoc_report.pdf"


def get_renderer() -> ReportRenderer:
    return ReportRenderer()


@router.post(
    "/report",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "PDF report"},
        400: {"description": "Missing text and analysis, or malformed analysis"},
    },
)
def render_report(
    request: ReportRequest,
    engine: Annotated[AnalysisEngine, Depends(get_engine)],
    renderer: Annotated[ReportRenderer, Depends(get_renderer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """
    Build a PDF report.

    A supplied analysis is rendered as-is; otherwise the text is analysed
    (with optional refinement) and the result rendered.
    """
    if request.analysis is not None:
        try:
            analysis = Analysis.from_dict(request.analysis)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid analysis: {e}",
            )
    elif request.text is not None:
        text = require_text(request.text, settings)
        refine = settings.refine_by_default if request.refine is None else request.refine
        analysis = engine.analyze(
            text,
            doc_type=request.doc_type,
            language_out=request.language_out,
            refine=refine,
        ).analysis
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide 'text' or 'analysis'",
        )

    pdf = renderer.render(analysis, title=request.title)
    logger.info(f"Report generated: {len(pdf)} bytes, docType={analysis.doc_type}")

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{REPORT_FILENAME}"'},
    )
