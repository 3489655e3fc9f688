"""Common utilities for extractor agents."""
import base64
import mimetypes
import time
import logging
from pathlib import Path
from typing import Callable, TypeVar, Any, Dict, Union
from functools import wraps

from errors import UpstreamExtractionFailed

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Base delay in seconds; attempt n waits BASE_BACKOFF_SECONDS * 2**n
BASE_BACKOFF_SECONDS = 2.0


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = BASE_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for exponential backoff retry logic on upstream failures.

    Only retryable UpstreamExtractionFailed errors (connection failures, 429,
    5xx) are retried. Anything else propagates on the first attempt, and the
    last retryable failure is re-raised unchanged once attempts run out.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Delay before the second attempt, doubled after each failure
        sleep: Sleep function (injected by tests)

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except UpstreamExtractionFailed as e:
                    if not e.retryable or attempt == max_retries - 1:
                        logger.error(f"{func.__name__} failed after {attempt + 1} attempt(s): {e}")
                        raise
                    wait_time = base_delay * 2 ** attempt
                    logger.warning(f"{func.__name__} attempt {attempt + 1} failed: {e}. Retrying in {wait_time}s...")
                    sleep(wait_time)
            raise RuntimeError(f"{func.__name__} exhausted retries")  # Should never reach here
        return wrapper
    return decorator


def image_source(image: Union[str, Path]) -> Dict[str, Any]:
    """
    Build a Messages API image source for a page image.

    Local files are sent base64-encoded; http(s) references are sent as URLs.

    Args:
        image: Local path or URL of the page image

    Returns:
        Image source block for the Messages API

    Raises:
        FileNotFoundError: If a local image does not exist
    """
    text = str(image)
    if text.startswith(("http://", "https://")):
        return {"type": "url", "url": text}

    path = Path(image)
    if not path.exists():
        raise FileNotFoundError(f"Page image not found: {path}")

    media_type = mimetypes.guess_type(path.name)[0] or "image/png"
    data = base64.standard_b64encode(path.read_bytes()).decode("ascii")
    logger.debug(f"Encoded {path.name} ({media_type}, {len(data)} chars)")
    return {"type": "base64", "media_type": media_type, "data": data}


def load_instructions(instructions_dir: Path, *filenames: str) -> str:
    """
    Load and concatenate instruction files.

    Args:
        instructions_dir: Base directory for instructions
        filenames: Instruction file names to load

    Returns:
        Concatenated instruction text

    Raises:
        FileNotFoundError: If instruction file missing
    """
    parts = []
    for filename in filenames:
        filepath = instructions_dir / filename
        if not filepath.exists():
            raise FileNotFoundError(f"Instruction file not found: {filepath}")
        parts.append(filepath.read_text())
    return "\n\n---\n\n".join(parts)
