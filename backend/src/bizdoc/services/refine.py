"""
Optional refinement of a draft analysis by an external model.

The refiner is an unreliable collaborator: it may be slow, unavailable, or
return something that is not an analysis. refine_with_fallback gives it one
attempt under a hard timeout and returns the draft on any failure.

Design Decisions:
- Refiner is a Protocol so tests can inject identity / failing / slow fakes
- No retries: a single attempt with immediate fallback
- The timed-out call is abandoned, never awaited, so it cannot delay the
  already-computed draft
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Protocol

from openai import OpenAI

from bizdoc.domain.models import Analysis

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a senior financial reviewer. Tighten accuracy, fix misclassifications, "
    "and polish language."
)

SCHEMA_NOTE = """
Return strict JSON with:
{
  "detectedLanguage": "eng|ara",
  "docType": "invoice|receipt|purchase_order|financials|contract|document",
  "summary": "one or two crisp sentences",
  "insights": ["bullet", ...],
  "keyEntities": {
    "parties": [...], "currencies": [...],
    "roles": {"client": [], "supplier": [], "bank": [], "investor": [], "regulator": [], "other": []}
  },
  "dates": [...],
  "amounts": [{"label": "Total|Revenue|Cost|Profit|Tax|Payment|Balance|Amount", "value": number, "currency": "AED|USD|EUR|GBP|SAR"}],
  "kpis": [{"label": "Revenue Growth %|Margin %|Liquidity Ratio|DSO (days)|Total|Revenue|Cost", "value": number, "unit": "%|x|d|AED|USD|..."}],
  "tone": {"positive": number, "negative": number},
  "financialHealth": {
    "profitabilityScore": 0-5, "liquidityScore": 0-5, "concentrationRiskScore": 0-5,
    "anomalyFlags": [...], "rationale": "short sentence"
  },
  "riskMatrix": [{"risk": "...", "severity": "low|medium|high|critical", "evidence": "...", "mitigation": "..."}],
  "actions": [{"priority": 1, "action": "...", "owner": "...", "dueDays": 7}],
  "charts": {"bars": [{"label": "...", "value": number}], "lines": [{"x": "Jan", "y": number}], "pie": [{"label": "AED", "value": number}]},
  "trendInterpretation": [...],
  "confidence": number
}
Rules:
- Do NOT include small incidental numbers (quarters, days, ratios like 1.6x) in amounts.
- Money-only in bars/pie. DSO and ratios are never money.
- Include growth % if the text says "grew/increased/rose/up 12%".
- Normalize KPI labels/units and sort: Growth %, Margin %, Liquidity Ratio, DSO, Total, Revenue, Cost.
- Never invent currencies or entities; if unsure, omit.
"""


class Refiner(Protocol):
    """Anything that can turn (source text, draft) into an improved Analysis."""

    def refine(self, text: str, draft: Analysis) -> Analysis:
        ...


class IdentityRefiner:
    """Returns the draft unchanged."""

    def refine(self, text: str, draft: Analysis) -> Analysis:
        return draft


class OpenAIRefiner:
    """
    Refiner backed by the OpenAI chat completions API.

    Example:
        refiner = OpenAIRefiner(api_key="sk-...", model="gpt-4o-mini")
        refined = refine_with_fallback(refiner, evidence, draft, timeout=18)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 18.0,
        temperature: float = 0.2,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI API key not set. Set OPENAI_API_KEY environment variable.")
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.temperature = temperature

    def build_prompt(self, text: str, draft: Analysis) -> str:
        return (
            f'Text:\n"""{text}"""\n\n'
            f"Draft Analysis:\n{json.dumps(draft.to_dict(), ensure_ascii=False)}\n\n"
            "Task:\n"
            "- Correct misclassified amounts (exclude quarters/days/ratios).\n"
            "- Recover missing growth %/margin if directly stated.\n"
            "- Keep charts money-only; group the pie by currency if amounts are present.\n"
            "- Keep the summary crisp and executive.\n"
            f"Return strict JSON only, schema below.\n{SCHEMA_NOTE}"
        )

    def refine(self, text: str, draft: Analysis) -> Analysis:
        """
        Ask the model for a corrected analysis.

        Raises:
            ValueError: If the response is not a usable analysis JSON
            openai.OpenAIError: On transport or API errors
        """
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(text, draft)},
            ],
        )
        content = (response.choices[0].message.content or "").strip()
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Refiner returned invalid JSON: {e}") from e
        return Analysis.from_dict(payload)


def refine_with_fallback(
    refiner: Refiner,
    text: str,
    draft: Analysis,
    timeout: float,
) -> tuple[Analysis, bool]:
    """
    Run one refinement attempt under a hard timeout.

    Returns:
        (analysis, refined) where refined is False whenever the draft was
        returned because the refiner failed, timed out, or returned junk
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="refiner")
    future = executor.submit(refiner.refine, text, draft)
    try:
        result = future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning(f"Refiner timed out after {timeout}s, using draft")
        return draft, False
    except Exception as e:
        logger.warning(f"Refiner failed ({type(e).__name__}: {e}), using draft")
        return draft, False
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if not isinstance(result, Analysis):
        logger.warning(f"Refiner returned {type(result).__name__}, using draft")
        return draft, False

    logger.info("Refinement applied")
    return result, True
