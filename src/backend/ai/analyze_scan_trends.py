# src/backend/ai/analyze_scan_trends.py
"""
AI-powered analysis of scan activity across the Monopoly board.

- analyze_scan_trends: validated input -> prompt -> hosted model -> validated output
- perform_analysis: UI/API boundary returning {"success": ..., "data"|"error": ...}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from src.backend.ai.model import TextModel, get_model
from src.backend.schemas.analysis import AnalyzeScanTrendsInput, AnalyzeScanTrendsOutput

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to perform analysis."

PROMPT_TEMPLATE = """You are an expert Monopoly game analyst.

You are provided with historical scan data and current scan data from a Monopoly game.
Your task is to analyze the data, identify any unusual scan activities, and suggest areas for game improvements.

Historical Scan Data: {historical_scan_data}
Current Scan Data: {current_scan_data}

Analyze the data and provide a summary of the scan trend analysis, as well as suggestions for game improvements.

Answer with a single JSON object holding exactly two string fields:
"analysisSummary" (the summary) and "suggestedImprovements" (the suggestions).
"""


class AnalysisError(Exception):
    """The model call failed or its output did not match the output schema."""


def render_prompt(data: AnalyzeScanTrendsInput) -> str:
    # Blobs go in verbatim; str.format does not re-scan substituted values.
    return PROMPT_TEMPLATE.format(
        historical_scan_data=data.historical_scan_data,
        current_scan_data=data.current_scan_data,
    )


def _strip_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid input"


async def analyze_scan_trends(
    payload: Union[AnalyzeScanTrendsInput, Dict[str, Any]],
    model: Optional[TextModel] = None,
) -> AnalyzeScanTrendsOutput:
    """
    Raises pydantic.ValidationError for bad input (before any model call)
    and AnalysisError for a failed or malformed model response.
    """
    data = (
        payload
        if isinstance(payload, AnalyzeScanTrendsInput)
        else AnalyzeScanTrendsInput.model_validate(payload)
    )
    model = model or get_model()

    try:
        raw = await model.generate_json(render_prompt(data))
    except Exception as e:
        raise AnalysisError(f"Model call failed: {e}") from e

    if not raw or not raw.strip():
        raise AnalysisError("Model returned no output")

    try:
        return AnalyzeScanTrendsOutput.model_validate_json(_strip_fences(raw))
    except ValidationError as e:
        raise AnalysisError("Model output did not match the expected schema") from e


async def perform_analysis(
    payload: Dict[str, Any],
    model: Optional[TextModel] = None,
) -> Dict[str, Any]:
    try:
        data = AnalyzeScanTrendsInput.model_validate(payload)
    except ValidationError as e:
        logger.warning("Analysis input rejected: %s", e.errors())
        return {"success": False, "error": validation_message(e)}

    try:
        result = await analyze_scan_trends(data, model=model)
    except Exception:
        logger.exception("Analysis failed")
        return {"success": False, "error": GENERIC_FAILURE}

    return {"success": True, "data": result.model_dump(by_alias=True)}
