"""
Boundary-respecting chunker for oversized documents.

Splits text into pieces no longer than the per-pass budget, preferring
paragraph breaks, then sentence breaks, then hard character slices.

Design Decisions:
- The chunk count is a hard cap; trailing text past it is dropped and logged
- Text within the budget is returned as a single chunk, unchanged, so the
  chunked and single-pass paths agree for short documents
"""

import logging
import re

from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig

from .extraction import split_sentences

logger = logging.getLogger(__name__)


PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")


def _hard_slices(text: str, budget: int) -> list[str]:
    return [text[i:i + budget] for i in range(0, len(text), budget)]


def _pieces(paragraph: str, budget: int) -> list[str]:
    """Break one paragraph into parts that each fit the budget."""
    if len(paragraph) <= budget:
        return [paragraph]
    parts: list[str] = []
    for sentence in split_sentences(paragraph):
        if len(sentence) <= budget:
            parts.append(sentence)
        else:
            parts.extend(_hard_slices(sentence, budget))
    return parts


def _pack(parts: list[str], budget: int, separator: str) -> list[str]:
    """Greedily join consecutive parts while the result stays within budget."""
    chunks: list[str] = []
    current = ""
    for part in parts:
        if not current:
            current = part
        elif len(current) + len(separator) + len(part) <= budget:
            current = f"{current}{separator}{part}"
        else:
            chunks.append(current)
            current = part
    if current:
        chunks.append(current)
    return chunks


def split_into_chunks(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> list[str]:
    """
    Split text into at most config.max_chunks chunks of at most
    config.pass_char_budget characters each.

    Returns:
        [text] when it already fits; otherwise the packed chunks, truncated
        to the chunk cap
    """
    budget = config.pass_char_budget
    if len(text) <= budget:
        return [text]

    chunks: list[str] = []
    for paragraph in PARAGRAPH_BREAK_RE.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        # Sentences of one paragraph pack with a space, paragraphs with a blank line
        chunks.extend(_pack(_pieces(paragraph, budget), budget, " "))

    chunks = _pack(chunks, budget, "\n\n")

    if len(chunks) > config.max_chunks:
        dropped = sum(len(c) for c in chunks[config.max_chunks:])
        logger.warning(
            f"Document needs {len(chunks)} chunks, analysing the first {config.max_chunks} "
            f"and dropping ~{dropped} trailing chars"
        )
        chunks = chunks[:config.max_chunks]

    logger.info(f"Split {len(text)} chars into {len(chunks)} chunks (budget {budget})")
    return chunks
