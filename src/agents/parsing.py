"""Decode and validate the vision model's page extraction response."""
import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from errors import InvalidExtractionResponse
from schemas.extraction import ExtractionResponse
from schemas.takeoff import PageExtraction
from schemas.transform import transform_response_to_page

logger = logging.getLogger(__name__)


def _strip_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and its closing fence."""
    stripped = text.strip()
    if stripped.startswith("```"):
        first_newline = stripped.find("\n")
        stripped = stripped[first_newline + 1:] if first_newline != -1 else stripped[3:]
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def extract_json_from_response(response: str) -> Dict[str, Any]:
    """
    Extract a JSON object from model output, handling markdown code blocks.

    Tries, in order: the whole text (with fences stripped), the first fenced
    block that decodes, and the outermost {...} span.

    Args:
        response: Raw model response text

    Returns:
        Parsed JSON dict

    Raises:
        ValueError: If no valid JSON object found
    """
    try:
        data = json.loads(_strip_fences(response))
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    # Fenced blocks inside surrounding prose
    lines = response.split('\n')
    in_code_block = False
    json_lines = []

    for line in lines:
        if line.strip().startswith('```'):
            if in_code_block:
                try:
                    data = json.loads('\n'.join(json_lines))
                    if isinstance(data, dict):
                        return data
                except json.JSONDecodeError:
                    pass
                json_lines = []
            in_code_block = not in_code_block
        elif in_code_block:
            json_lines.append(line)

    # Last resort: outermost {...}
    start = response.find('{')
    end = response.rfind('}')
    if start != -1 and end > start:
        try:
            return json.loads(response[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise ValueError("No valid JSON object found in model response")


def parse_extraction_response(
    content: str,
    plan_id: str,
    page_number: int,
) -> PageExtraction:
    """
    Decode, validate and normalize one page's model output.

    Args:
        content: Raw model response text
        plan_id: Plan the page belongs to
        page_number: 1-based page number

    Returns:
        PageExtraction for the page

    Raises:
        InvalidExtractionResponse: If the text is not JSON or fails schema validation
    """
    if not content or not content.strip():
        raise InvalidExtractionResponse("Empty model response", content or "", page_number)

    try:
        data = extract_json_from_response(content)
    except ValueError as e:
        logger.error(f"Page {page_number}: could not decode model response")
        raise InvalidExtractionResponse(str(e), content, page_number) from e

    response = validate_extraction(data, content, page_number)
    page = transform_response_to_page(response, plan_id, page_number)
    logger.info(
        f"Page {page_number}: {len(page.segments)} walls, {len(page.legend)} legend entries, "
        f"{len(page.clarifications)} clarifications"
    )
    return page


def validate_extraction(
    data: Dict[str, Any],
    content: str = "",
    page_number: Optional[int] = None,
) -> ExtractionResponse:
    """Validate decoded JSON against ExtractionResponse, raising InvalidExtractionResponse."""
    try:
        return ExtractionResponse.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        logger.error(f"Page {page_number}: schema validation failed at {location or '<root>'}")
        raise InvalidExtractionResponse(
            f"Response failed schema validation ({e.error_count()} errors, first at {location or '<root>'})",
            content or json.dumps(data)[:InvalidExtractionResponse.SAMPLE_LENGTH],
            page_number,
        ) from e
