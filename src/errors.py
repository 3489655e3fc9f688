"""Error taxonomy for the extraction-to-quantity pipeline.

Extraction and export errors propagate to the caller with enough context to
retry or hand to a human. Aggregation never raises: an unknown wall type is
resolved with the default spec and recorded as an UnrecognizedWallType.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


class TakeoffError(Exception):
    """Base class for pipeline failures."""


class UpstreamExtractionFailed(TakeoffError):
    """Network or HTTP failure calling the vision model."""

    def __init__(self, message: str, status_code: Optional[int] = None, page_number: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.page_number = page_number

    @property
    def retryable(self) -> bool:
        """Connection failures, rate limits and server errors are worth retrying."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500

    def __str__(self) -> str:
        base = super().__str__()
        parts = []
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.page_number is not None:
            parts.append(f"page={self.page_number}")
        return f"{base} ({', '.join(parts)})" if parts else base


class InvalidExtractionResponse(TakeoffError):
    """Model output could not be decoded into the extraction schema."""

    SAMPLE_LENGTH = 200

    def __init__(self, message: str, content: str = "", page_number: Optional[int] = None):
        super().__init__(message)
        self.sample = (content or "")[:self.SAMPLE_LENGTH]
        self.page_number = page_number


class InvalidCalculatorInput(TakeoffError, ValueError):
    """Non-positive deck height or stud spacing handed to the calculator."""


class ExportFailure(TakeoffError):
    """An export artifact could not be serialized or written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


@dataclass
class UnrecognizedWallType:
    """A wall type with footage but no legend entry.

    Not an exception: the aggregator substitutes the default spec and keeps
    one of these per substituted code so reports can show what was assumed.
    """
    type_code: str
    total_lf: float
    resolution: str = "default_spec"
