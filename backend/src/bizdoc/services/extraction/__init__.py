"""
Extraction subpackage - Pattern and keyword-window extractors over raw text.
"""

from .amounts import classify_amount_label, detect_currency, extract_amounts
from .kpis import derive_kpis
from .lexical import (
    build_key_entities,
    detect_language,
    extract_dates,
    extract_entities,
    guess_doc_type,
    measure_tone,
    split_sentences,
)

__all__ = [
    "build_key_entities",
    "classify_amount_label",
    "derive_kpis",
    "detect_currency",
    "detect_language",
    "extract_amounts",
    "extract_dates",
    "extract_entities",
    "guess_doc_type",
    "measure_tone",
    "split_sentences",
]
