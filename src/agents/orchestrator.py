"""Orchestrator - batch page extraction with a cool-down between upstream calls.

Batch Extraction:
    Pages of a plan are extracted one upstream call per page. Consecutive
    call starts are spaced by a CooldownScheduler so a batch never bursts
    the vision API, and batches larger than the cap are rejected before any
    call is made.

    A failed page is recorded and the batch moves on. Setting the cancel
    event stops the batch between pages: finished pages stay finished and
    the rest are reported as skipped, so a cancelled batch is a partial
    result rather than an error.

    run_batch runs pages sequentially; run_batch_async runs them
    concurrently behind a semaphore while still honoring the cool-down.
"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from errors import TakeoffError
from schemas.takeoff import PageExtraction
from telemetry import Telemetry

logger = logging.getLogger(__name__)

# Pause between consecutive upstream call starts
DEFAULT_COOLDOWN_SECONDS = 0.5

# Largest batch accepted in one run
MAX_BATCH_PAGES = 50

# Concurrent upstream calls in the async variant
MAX_CONCURRENT_PAGES = 4

PageImage = Union[str, Path]
ExtractFn = Callable[[PageImage, str, int], PageExtraction]
PageCallback = Callable[["PageOutcome"], None]


class PageStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PageOutcome:
    """What happened to one page of a batch."""
    page_number: int
    image: str
    status: PageStatus
    page: Optional[PageExtraction] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_seconds: Optional[float] = None


@dataclass
class BatchResult:
    """Outcome of a batch; partial completion is a valid end state."""
    plan_id: str
    outcomes: List[PageOutcome] = field(default_factory=list)
    cancelled: bool = False
    timing: Dict[str, Any] = field(default_factory=dict)

    def _with_status(self, status: PageStatus) -> List[PageOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[PageOutcome]:
        return self._with_status(PageStatus.SUCCESS)

    @property
    def failed(self) -> List[PageOutcome]:
        return self._with_status(PageStatus.FAILED)

    @property
    def skipped(self) -> List[PageOutcome]:
        return self._with_status(PageStatus.SKIPPED)

    @property
    def pages(self) -> List[PageExtraction]:
        """Successful extractions in page order."""
        return [o.page for o in sorted(self.succeeded, key=lambda o: o.page_number) if o.page is not None]

    @property
    def is_partial(self) -> bool:
        return bool(self.failed or self.skipped)


class CooldownScheduler:
    """Minimum-interval scheduler for upstream call starts.

    Each caller reserves the next free start slot under a lock, so the gap
    between any two starts is at least min_interval whether callers are
    threads or asyncio tasks.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_start: Optional[float] = None

    def reserve(self) -> float:
        """Claim the next start slot and return how long to wait for it."""
        with self._lock:
            now = self._clock()
            start = now if self._next_start is None else max(now, self._next_start)
            self._next_start = start + self.min_interval
            return start - now

    def wait(self) -> float:
        """Block until this caller's slot; returns the delay waited."""
        delay = self.reserve()
        if delay > 0:
            self._sleep(delay)
        return delay

    async def wait_async(self) -> float:
        """Async counterpart of wait()."""
        delay = self.reserve()
        if delay > 0:
            await asyncio.sleep(delay)
        return delay


def number_pages(images: Sequence[PageImage], first_page: int = 1) -> List[Tuple[int, PageImage]]:
    """Pair images with 1-based page numbers in the order given."""
    return [(first_page + i, image) for i, image in enumerate(images)]


def _check_batch_size(pages: Sequence[Tuple[int, PageImage]], max_batch: int) -> None:
    if len(pages) > max_batch:
        raise ValueError(f"Batch of {len(pages)} pages exceeds the limit of {max_batch}")
    numbers = [n for n, _ in pages]
    if len(set(numbers)) != len(numbers):
        raise ValueError("Page numbers in a batch must be unique")


def _failed(page_number: int, image: PageImage, error: Exception, duration: float) -> PageOutcome:
    if isinstance(error, TakeoffError):
        logger.error(f"Page {page_number} failed: {error}")
    else:
        logger.exception(f"Page {page_number} failed with unexpected error")
    return PageOutcome(
        page_number=page_number,
        image=str(image),
        status=PageStatus.FAILED,
        error=str(error),
        error_type=type(error).__name__,
        duration_seconds=duration,
    )


def _skipped(page_number: int, image: PageImage) -> PageOutcome:
    return PageOutcome(page_number=page_number, image=str(image), status=PageStatus.SKIPPED)


def run_batch(
    extract: ExtractFn,
    pages: Sequence[Tuple[int, PageImage]],
    plan_id: str,
    cooldown: float = DEFAULT_COOLDOWN_SECONDS,
    max_batch: int = MAX_BATCH_PAGES,
    cancel_event: Optional[threading.Event] = None,
    on_page: Optional[PageCallback] = None,
    scheduler: Optional[CooldownScheduler] = None,
    telemetry: Optional[Telemetry] = None,
) -> BatchResult:
    """
    Extract a batch of pages sequentially.

    Args:
        extract: Callable (image, plan_id, page_number) -> PageExtraction
        pages: (page_number, image) pairs
        plan_id: Plan the pages belong to
        cooldown: Minimum seconds between consecutive call starts
        max_batch: Largest batch accepted
        cancel_event: Set to stop the batch before the next page
        on_page: Called with each PageOutcome as it completes
        scheduler: Scheduler to share across batches (built from cooldown if omitted)
        telemetry: Telemetry to record page spans into

    Returns:
        BatchResult with one outcome per page

    Raises:
        ValueError: If the batch exceeds max_batch or repeats a page number
    """
    _check_batch_size(pages, max_batch)
    scheduler = scheduler or CooldownScheduler(cooldown)
    tel = telemetry or Telemetry()
    result = BatchResult(plan_id=plan_id)

    logger.info(f"Extracting {len(pages)} pages for plan {plan_id} (cooldown {scheduler.min_interval}s)")

    with tel.span("batch"):
        for index, (page_number, image) in enumerate(pages):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Batch cancelled; skipping {len(pages) - index} remaining pages")
                result.cancelled = True
                result.outcomes.extend(_skipped(n, img) for n, img in pages[index:])
                break

            scheduler.wait()
            with tel.span(f"page-{page_number}") as span:
                try:
                    page = extract(image, plan_id, page_number)
                    error = None
                except Exception as e:
                    page = None
                    error = e
            duration = span["duration"]

            if error is None:
                outcome = PageOutcome(
                    page_number=page_number,
                    image=str(image),
                    status=PageStatus.SUCCESS,
                    page=page,
                    duration_seconds=duration,
                )
            else:
                outcome = _failed(page_number, image, error, duration)

            result.outcomes.append(outcome)
            if on_page is not None:
                on_page(outcome)

    result.timing = tel.to_dict()
    logger.info(
        f"Batch done: {len(result.succeeded)} succeeded, {len(result.failed)} failed, "
        f"{len(result.skipped)} skipped"
    )
    return result


async def run_batch_async(
    extract: ExtractFn,
    pages: Sequence[Tuple[int, PageImage]],
    plan_id: str,
    cooldown: float = DEFAULT_COOLDOWN_SECONDS,
    max_batch: int = MAX_BATCH_PAGES,
    max_concurrent: int = MAX_CONCURRENT_PAGES,
    cancel_event: Optional[threading.Event] = None,
    on_page: Optional[PageCallback] = None,
    scheduler: Optional[CooldownScheduler] = None,
    telemetry: Optional[Telemetry] = None,
) -> BatchResult:
    """
    Extract a batch of pages concurrently.

    Blocking extract calls run via asyncio.to_thread behind a semaphore;
    call starts still go through the cool-down scheduler. Outcomes are
    returned in page order.

    Raises:
        ValueError: If the batch exceeds max_batch or repeats a page number
    """
    _check_batch_size(pages, max_batch)
    scheduler = scheduler or CooldownScheduler(cooldown)
    tel = telemetry or Telemetry()
    semaphore = asyncio.Semaphore(max_concurrent)
    result = BatchResult(plan_id=plan_id)

    async def _run_page(page_number: int, image: PageImage) -> PageOutcome:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                outcome = _skipped(page_number, image)
            else:
                await scheduler.wait_async()
                with tel.span(f"page-{page_number}") as span:
                    try:
                        page = await asyncio.to_thread(extract, image, plan_id, page_number)
                        error = None
                    except Exception as e:
                        page = None
                        error = e
                if error is None:
                    outcome = PageOutcome(
                        page_number=page_number,
                        image=str(image),
                        status=PageStatus.SUCCESS,
                        page=page,
                        duration_seconds=span["duration"],
                    )
                else:
                    outcome = _failed(page_number, image, error, span["duration"])
        if on_page is not None and outcome.status != PageStatus.SKIPPED:
            on_page(outcome)
        return outcome

    logger.info(f"Extracting {len(pages)} pages for plan {plan_id} ({max_concurrent} concurrent)")
    with tel.span("batch"):
        outcomes = await asyncio.gather(*(_run_page(n, img) for n, img in pages))

    result.outcomes = sorted(outcomes, key=lambda o: o.page_number)
    result.cancelled = bool(result.skipped)
    result.timing = tel.to_dict()
    logger.info(
        f"Batch done: {len(result.succeeded)} succeeded, {len(result.failed)} failed, "
        f"{len(result.skipped)} skipped"
    )
    return result
