"""
Evidence excerpt builder.

Picks the highest-signal sentences of a document, up to a small character
budget, for hand-off to an external refiner. Sentences with no finance
signal are left out, so the excerpt is a ranked subset of the document
rather than a copy of it.
"""

import logging
import re
from functools import lru_cache

from bizdoc.domain.rules import DEFAULT_CONFIG, AnalysisConfig

from .chunking import split_into_chunks
from .extraction import split_sentences

logger = logging.getLogger(__name__)


PERCENT_RE = re.compile(r"\d\s?[%٪]")


@lru_cache(maxsize=8)
def _keyword_regex(keywords: tuple[str, ...]) -> re.Pattern:
    return re.compile(rf"\b(?:{'|'.join(re.escape(k) for k in keywords)})", re.IGNORECASE)


@lru_cache(maxsize=8)
def _currency_regex(patterns: tuple[tuple[str, str], ...]) -> re.Pattern:
    return re.compile("|".join(f"(?:{fragment})" for _, fragment in patterns))


def score_passage(passage: str, config: AnalysisConfig = DEFAULT_CONFIG) -> int:
    """Finance keywords + 2x currency tokens + percentages."""
    return (
        len(_keyword_regex(config.finance_keywords).findall(passage))
        + 2 * len(_currency_regex(config.currency_patterns).findall(passage))
        + len(PERCENT_RE.findall(passage))
    )


def _select(passages: list[str], budget: int, config: AnalysisConfig, separator: str) -> str:
    """Top-scoring passages that fit the budget, re-emitted in document order."""
    ranked = sorted(
        ((score_passage(p, config), i) for i, p in enumerate(passages)),
        key=lambda item: (-item[0], item[1]),
    )
    chosen: list[int] = []
    used = 0
    for score, index in ranked:
        if score <= 0:
            break
        cost = len(passages[index]) + (len(separator) if chosen else 0)
        if used + cost > budget:
            continue
        chosen.append(index)
        used += cost
    return separator.join(passages[i] for i in sorted(chosen))


def build_evidence(text: str, config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    """
    Build a compact, keyword-ranked excerpt of text.

    The best-scoring sentences are packed up to
    config.evidence_char_budget and re-emitted in document order. When no
    sentence carries signal or fits, chunks ranked by keyword density are
    used, and as a last resort the head of the document.
    """
    budget = config.evidence_char_budget
    sentences = [s for s in split_sentences(text) if len(s) <= budget]
    excerpt = _select(sentences, budget, config, " ")

    if not excerpt:
        small = AnalysisConfig(pass_char_budget=max(1, budget // 4), max_chunks=10_000)
        chunks = split_into_chunks(text, small)
        scored = sorted(
            range(len(chunks)),
            key=lambda i: (-score_passage(chunks[i], config) / max(1, len(chunks[i])), i),
        )
        picked: list[int] = []
        used = 0
        for index in scored:
            if used + len(chunks[index]) + 2 > budget:
                continue
            picked.append(index)
            used += len(chunks[index]) + 2
        excerpt = "\n\n".join(chunks[i] for i in sorted(picked))

    if not excerpt:
        excerpt = text[:budget]

    logger.info(f"Evidence excerpt: {len(excerpt)} of {len(text)} chars")
    return excerpt
