"""CLI for page extraction."""
import concurrent.futures
import json
import logging
import sys
import threading
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
from tqdm import tqdm

from errors import TakeoffError
from schemas.enums import ExtractionCategory
from schemas.takeoff import PageExtraction
from schemas.transform import to_takeoff_rows
from telemetry import Telemetry
from agents.extractors.vision import DEFAULT_MODEL, VisionExtractor
from agents.orchestrator import (
    DEFAULT_COOLDOWN_SECONDS,
    MAX_BATCH_PAGES,
    BatchResult,
    PageOutcome,
    PageStatus,
    number_pages,
    run_batch,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def parse_focus(focus: Optional[str]) -> Optional[List[ExtractionCategory]]:
    """Parse a comma-separated category list, exiting on unknown names."""
    if not focus:
        return None
    names = [f.strip() for f in focus.split(",") if f.strip()]
    valid = [c.value for c in ExtractionCategory]
    invalid = [n for n in names if n not in valid]
    if invalid:
        click.echo(f"Error: Invalid category(s): {', '.join(invalid)}. Valid: {', '.join(valid)}", err=True)
        sys.exit(1)
    return [ExtractionCategory(n) for n in names]


def write_page(page: PageExtraction, output_dir: Path, rows: bool = False) -> Path:
    """Write one page's extraction (and optionally its store rows) as JSON."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"page-{page.page_number:03d}.json"
    with open(path, "w") as f:
        json.dump(page.model_dump(mode="json"), f, indent=2)
    if rows:
        with open(output_dir / f"page-{page.page_number:03d}.rows.json", "w") as f:
            json.dump(to_takeoff_rows(page), f, indent=2)
    return path


def show_page_summary(page: PageExtraction):
    """Print counts for one extracted page."""
    info = page.drawing_info
    click.echo(f"  Sheet: {info.sheet_number or '?'} {info.title or ''}".rstrip())
    click.echo(
        f"  Walls: {len(page.segments)}  Legend: {len(page.legend)}  "
        f"Ceilings: {len(page.ceilings)}  Doors: {len(page.doors)}  Windows: {len(page.windows)}"
    )
    if page.clarifications:
        click.echo(f"  Clarifications: {len(page.clarifications)}")
    for warning in page.warnings:
        click.echo(f"  Warning: {warning}")


def batch_summary(result: BatchResult) -> Dict[str, Any]:
    """JSON-serializable summary of a batch."""
    return {
        "plan_id": result.plan_id,
        "cancelled": result.cancelled,
        "is_partial": result.is_partial,
        "pages": [
            {
                "page_number": o.page_number,
                "image": o.image,
                "status": o.status.value,
                "error": o.error,
                "error_type": o.error_type,
                "duration_seconds": round(o.duration_seconds, 3) if o.duration_seconds is not None else None,
            }
            for o in result.outcomes
        ],
        "timing": result.timing,
    }


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Page extraction CLI for drywall takeoffs."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


@cli.command()
@click.argument("image")
@click.option("--plan-id", required=True, help="Plan identifier")
@click.option("--page", "page_number", type=int, default=1, show_default=True, help="1-based page number")
@click.option("--scale", default=None, help="Drawing scale, e.g. 1/8\" = 1'-0\"")
@click.option("--focus", default=None, help="Comma-separated categories (walls,ceilings,doors,windows,specifications)")
@click.option("--model", default=DEFAULT_MODEL, show_default=True, help="Vision model")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for the page JSON (default: page-NNN.json in the current directory)"
)
@click.option("--rows", is_flag=True, help="Also write takeoff store rows")
def page(image: str, plan_id: str, page_number: int, scale: Optional[str], focus: Optional[str],
         model: str, output: Optional[Path], rows: bool):
    """
    Extract one page image.

    IMAGE is a local image path or an http(s) URL.
    """
    categories = parse_focus(focus)
    try:
        extractor = VisionExtractor(model=model)
        result = extractor.extract_page(image, plan_id, page_number, scale=scale, focus=categories)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except TakeoffError as e:
        click.echo(f"Extraction failed: {e}", err=True)
        sys.exit(1)

    if output is None:
        path = write_page(result, Path("."), rows)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(result.model_dump(mode="json"), f, indent=2)
        if rows:
            with open(output.with_suffix(".rows.json"), "w") as f:
                json.dump(to_takeoff_rows(result), f, indent=2)
        path = output

    click.echo(f"Success! Page {page_number} saved to: {path}")
    show_page_summary(result)


@cli.command()
@click.argument("images", nargs=-1, required=True)
@click.option("--plan-id", required=True, help="Plan identifier")
@click.option("--first-page", type=int, default=1, show_default=True, help="Page number of the first image")
@click.option("--scale", default=None, help="Drawing scale applied to every page")
@click.option("--focus", default=None, help="Comma-separated categories (walls,ceilings,doors,windows,specifications)")
@click.option("--model", default=DEFAULT_MODEL, show_default=True, help="Vision model")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("extracted"),
    show_default=True,
    help="Directory for page JSON files and batch.json"
)
@click.option("--cooldown", type=float, default=DEFAULT_COOLDOWN_SECONDS, show_default=True,
              help="Minimum seconds between upstream calls")
@click.option("--max-batch", type=int, default=MAX_BATCH_PAGES, show_default=True, help="Largest batch accepted")
@click.option("--rows", is_flag=True, help="Also write takeoff store rows per page")
def batch(images: Tuple[str, ...], plan_id: str, first_page: int, scale: Optional[str], focus: Optional[str],
          model: str, output_dir: Path, cooldown: float, max_batch: int, rows: bool):
    """
    Extract a batch of page images in order.

    Each page is written as soon as it finishes, so an interrupted batch
    keeps its completed pages. Ctrl-C stops the batch after the current page.
    """
    categories = parse_focus(focus)
    pages = number_pages(list(images), first_page)
    if len(pages) > max_batch:
        click.echo(f"Error: {len(pages)} pages exceeds the batch limit of {max_batch}", err=True)
        sys.exit(1)

    extractor = VisionExtractor(model=model)
    extract = partial(extractor.extract_page, scale=scale, focus=categories)
    cancel = threading.Event()
    tel = Telemetry()
    progress = tqdm(total=len(pages), desc="Extracting pages")

    def on_page(outcome: PageOutcome):
        if outcome.status == PageStatus.SUCCESS and outcome.page is not None:
            write_page(outcome.page, output_dir, rows)
        progress.update(1)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(
            run_batch, extract, pages, plan_id,
            cooldown=cooldown, max_batch=max_batch, cancel_event=cancel, on_page=on_page, telemetry=tel,
        )
        try:
            result = future.result()
        except KeyboardInterrupt:
            click.echo("\nCancelling after the current page...", err=True)
            cancel.set()
            result = future.result()
    progress.close()

    output_dir.mkdir(parents=True, exist_ok=True)
    with open(output_dir / "batch.json", "w") as f:
        json.dump(batch_summary(result), f, indent=2)

    click.echo(tel.summary())
    click.echo(f"Pages: {len(result.succeeded)} succeeded, {len(result.failed)} failed, {len(result.skipped)} skipped")
    for outcome in result.failed:
        click.echo(f"  Page {outcome.page_number} ({outcome.error_type}): {outcome.error}", err=True)
    click.echo(f"Results saved to: {output_dir}")

    if result.failed and not result.succeeded:
        sys.exit(1)


if __name__ == "__main__":
    cli()
