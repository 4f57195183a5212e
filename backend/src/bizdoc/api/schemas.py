"""
Pydantic schemas for API request/response validation.

These schemas define the contract between frontend and backend.
Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Accepts both camelCase aliases and Python field names."""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================

class AnalyzeRequest(CamelModel):
    """Request to analyse already-extracted document text."""
    text: str = Field(
        default="",
        description="Document text (UTF-8), e.g. from a PDF/DOCX/OCR extractor",
    )
    doc_type: str | None = Field(
        default=None,
        alias="docType",
        description="Declared document type; overrides the guess",
    )
    language_out: Literal["eng", "ara"] = Field(
        default="eng",
        alias="languageOut",
        description="Narrative language for summary, insights and trend",
    )
    refine: bool | None = Field(
        default=None,
        description="Try the external refiner (server default when omitted)",
    )


class EvidenceRequest(CamelModel):
    """Request to build an evidence excerpt."""
    text: str = Field(default="", description="Document text")


class ReportRequest(CamelModel):
    """Request to render a PDF report from text or a finished analysis."""
    text: str | None = Field(default=None, description="Document text to analyse")
    analysis: dict[str, Any] | None = Field(
        default=None,
        description="A previously returned analysis (camelCase shape)",
    )
    doc_type: str | None = Field(default=None, alias="docType")
    language_out: Literal["eng", "ara"] = Field(default="eng", alias="languageOut")
    refine: bool | None = None
    title: str = Field(default="Business Document Analysis", max_length=120)


# =============================================================================
# Response Schemas
# =============================================================================

class AnalyzeResponse(BaseModel):
    """Analysis result with pipeline metadata."""
    ok: bool = True
    analysis: dict[str, Any]
    chunks: int
    refined: bool


class EvidenceResponse(BaseModel):
    """Evidence excerpt for external refinement."""
    evidence: str
    length: int
    source_length: int = Field(serialization_alias="sourceLength")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    refinement: str = "disabled"


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | None = None
