"""Page extractor agent - one vision call per drawing page."""
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import anthropic
from anthropic import Anthropic

from errors import UpstreamExtractionFailed
from schemas.enums import ExtractionCategory
from schemas.takeoff import PageExtraction
from agents.extractors.base import image_source, load_instructions, retry_with_backoff
from agents.parsing import parse_extraction_response

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
MAX_TOKENS = 16000
MAX_ATTEMPTS = 3

INSTRUCTIONS_DIR = Path(__file__).parent / "instructions" / "page-extractor"


def build_page_prompt(
    scale: Optional[str] = None,
    focus: Optional[Sequence[ExtractionCategory]] = None,
) -> str:
    """
    Build the extraction prompt for one page.

    Args:
        scale: Drawing scale as printed, if the caller knows it
        focus: Categories to concentrate on; all categories when empty

    Returns:
        Prompt text
    """
    instructions = load_instructions(INSTRUCTIONS_DIR, "instructions.md")
    extras = []
    if scale:
        extras.append(f"Drawing scale provided: {scale}")
    if focus:
        names = ", ".join(ExtractionCategory(c).value for c in focus)
        extras.append(f"Focus on these categories: {names}. Return empty arrays for the others.")
    if extras:
        instructions = f"{instructions}\n\n" + "\n".join(extras)
    return instructions


class VisionExtractor:
    """Extracts takeoff data from page images with the Anthropic Messages API.

    Upstream failures are mapped onto UpstreamExtractionFailed and retried
    with exponential backoff when retryable; undecodable output raises
    InvalidExtractionResponse without a retry.
    """

    def __init__(
        self,
        client: Optional[Anthropic] = None,
        model: str = DEFAULT_MODEL,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client or Anthropic()
        self.model = model
        self.max_attempts = max_attempts
        self.sleep = sleep

    def request_page(
        self,
        image: Union[str, Path],
        prompt: str,
        page_number: Optional[int] = None,
    ) -> str:
        """
        Make one upstream call and return the response text.

        Raises:
            UpstreamExtractionFailed: On HTTP or connection failure
        """
        content = [
            {"type": "image", "source": image_source(image)},
            {"type": "text", "text": prompt},
        ]
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIStatusError as e:
            raise UpstreamExtractionFailed(
                f"Vision API returned an error: {e.message}",
                status_code=e.status_code,
                page_number=page_number,
            ) from e
        except anthropic.APIConnectionError as e:
            raise UpstreamExtractionFailed(
                f"Could not reach vision API: {e}",
                page_number=page_number,
            ) from e

        texts: List[str] = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        return "\n".join(texts)

    def extract_page(
        self,
        image: Union[str, Path],
        plan_id: str,
        page_number: int,
        scale: Optional[str] = None,
        focus: Optional[Sequence[ExtractionCategory]] = None,
    ) -> PageExtraction:
        """
        Extract one page into a PageExtraction.

        Args:
            image: Local path or URL of the rendered page
            plan_id: Plan the page belongs to
            page_number: 1-based page number
            scale: Optional drawing scale
            focus: Optional category focus

        Returns:
            Validated, normalized PageExtraction

        Raises:
            UpstreamExtractionFailed: If the call still fails after retries
            InvalidExtractionResponse: If the output cannot be decoded or validated
        """
        prompt = build_page_prompt(scale, focus)
        request = retry_with_backoff(self.max_attempts, sleep=self.sleep)(self.request_page)

        logger.info(f"Extracting page {page_number} of plan {plan_id} with {self.model}")
        text = request(image, prompt, page_number)
        return parse_extraction_response(text, plan_id, page_number)
