"""
Services package - Analysis pipeline, refinement and report rendering.
"""

from .analyzer import DocumentAnalyzer
from .engine import AnalysisEngine, EngineResult
from .refine import IdentityRefiner, OpenAIRefiner, Refiner
from .report import ReportRenderer

__all__ = [
    "AnalysisEngine",
    "DocumentAnalyzer",
    "EngineResult",
    "IdentityRefiner",
    "OpenAIRefiner",
    "Refiner",
    "ReportRenderer",
]
