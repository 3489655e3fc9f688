"""CLI for material reports, condition lists and clarification answers."""
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from errors import TakeoffError
from schemas.takeoff import PageExtraction, UserInputs
from estimator.aggregate import aggregate_walls, merge_wall_spec
from estimator.clarifications import ClarificationLog, apply_answers, collect_clarifications
from estimator.rates import load_rates
from reports.assemble import assemble_report
from reports.conditions import build_conditions
from reports.delimited import write_conditions_csv, write_materials_csv
from reports.html import MaterialReportPage
from reports.naming import conditions_filename, takeoff_filename
from reports.workbook import write_conditions_workbook, write_takeoff_workbook

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_pages(paths: Tuple[Path, ...]) -> List[PageExtraction]:
    """Load page extraction JSON files written by takeoff-extract."""
    pages = []
    for path in paths:
        with open(path) as f:
            pages.append(PageExtraction.model_validate(json.load(f)))
    logger.info(f"Loaded {len(pages)} page extractions")
    return pages


def load_settings(path: Optional[Path]) -> Tuple[UserInputs, dict]:
    """
    Load user inputs and per-type overrides from a YAML settings file.

    The file holds UserInputs fields at the top level and an optional
    wall_types mapping of type code to spec field overrides. Each override
    is checked against WallTypeSpec here so a bad value fails at load time.

    Raises:
        ValueError: If wall_types is not a mapping of type code to fields
        ValidationError: If inputs or an override do not validate
    """
    if path is None:
        return UserInputs(), {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must hold a mapping")
    overrides = data.pop("wall_types", None) or {}
    if not isinstance(overrides, dict):
        raise ValueError("wall_types must map wall type codes to spec fields")
    for code, fields in overrides.items():
        if not isinstance(fields, dict):
            raise ValueError(f"wall_types.{code} must be a mapping of spec fields")
        merge_wall_spec(str(code), override=fields)
    return UserInputs.model_validate(data), overrides


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Material quantity CLI for drywall takeoffs."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


@cli.command()
@click.argument("extractions", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "project_name", required=True, help="Project name used in the report and file name")
@click.option("--settings", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="YAML file with user inputs and per-type overrides")
@click.option("--rates", "rates_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Alternate coverage rates YAML")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."),
              show_default=True, help="Directory for the report")
@click.option("--format", "fmt", type=click.Choice(["xlsx", "csv", "html"]), default="xlsx", show_default=True)
@click.option("--store", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Clarification store directory; answered questions feed the estimate")
@click.option("--deck-height", type=float, default=None, help="Deck height in feet")
@click.option("--finish-level", type=click.IntRange(0, 5), default=None, help="Drywall finish level 0-5")
@click.option("--waste", type=click.FloatRange(min=0), default=None, help="Waste factor in percent")
@click.option("--paint-coats", type=click.IntRange(min=1), default=None, help="Finish coats of paint")
def report(extractions: Tuple[Path, ...], project_name: str, settings: Optional[Path], rates_path: Optional[Path],
           output_dir: Path, fmt: str, store: Optional[Path], deck_height: Optional[float],
           finish_level: Optional[int], waste: Optional[float], paint_coats: Optional[int]):
    """
    Build the wall material report from page extraction files.

    EXTRACTIONS are page-NNN.json files from takeoff-extract. Inputs come
    from --settings, then answered clarifications, then the options below.
    """
    try:
        pages = load_pages(extractions)
        inputs, overrides = load_settings(settings)
        rates = load_rates(rates_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    takeoff = aggregate_walls(pages, overrides)
    questions = collect_clarifications(pages, takeoff)

    if store is not None:
        log = ClarificationLog.load(store)
        added = log.record(questions)
        log.save()
        questions = list(log.questions.values())
        click.echo(f"Clarifications: {added} new, {len(log.pending())} open (store: {log.path})")
        inputs = apply_answers(inputs, questions)

    updates = {
        "deck_height_ft": deck_height,
        "finish_level": finish_level,
        "waste_factor_percent": waste,
        "paint_coats": paint_coats,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    try:
        inputs = UserInputs.model_validate({**inputs.model_dump(), **updates})
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        material_report = assemble_report(takeoff, inputs, project_name, questions, rates)
        path = output_dir / takeoff_filename(project_name, extension=fmt)
        if fmt == "xlsx":
            write_takeoff_workbook(material_report, takeoff, path)
        elif fmt == "csv":
            write_materials_csv(material_report, path)
        else:
            pending = [q for q in questions if not q.is_answered]
            MaterialReportPage(material_report, takeoff, pending).save_html(path)
    except TakeoffError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    totals = material_report.project_totals
    click.echo(f"Wall types: {len(material_report.by_wall_type)}  Linear ft: {totals.linear_ft:.1f}  "
               f"Sheets: {totals.drywall_sheets}  Studs: {totals.studs}")
    if material_report.defaulted_type_codes:
        click.echo(f"Default spec used for: {', '.join(material_report.defaulted_type_codes)}")
    if material_report.open_clarifications:
        click.echo(f"Open clarifications: {material_report.open_clarifications}")
    click.echo(f"Report saved to: {path}")


@cli.command()
@click.argument("extractions", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "project_name", required=True, help="Project name used in the file name")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."),
              show_default=True, help="Directory for the condition list")
@click.option("--format", "fmt", type=click.Choice(["xlsx", "csv"]), default="xlsx", show_default=True)
def conditions(extractions: Tuple[Path, ...], project_name: str, output_dir: Path, fmt: str):
    """Export the condition list for a bidding tool."""
    try:
        pages = load_pages(extractions)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    takeoff = aggregate_walls(pages)
    items = build_conditions(takeoff, pages)
    path = output_dir / conditions_filename(project_name, extension=fmt)
    try:
        if fmt == "xlsx":
            write_conditions_workbook(items, takeoff, path)
        else:
            write_conditions_csv(items, path)
    except TakeoffError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Conditions: {len(items)} saved to: {path}")


@cli.command()
@click.argument("store", type=click.Path(file_okay=False, path_type=Path))
@click.option("--answer", nargs=2, type=str, default=None, metavar="ID TEXT", help="Answer one question")
@click.option("--all", "show_all", is_flag=True, help="Also list answered questions")
def clarifications(store: Path, answer: Optional[Tuple[str, str]], show_all: bool):
    """
    List or answer clarification questions in STORE.
    """
    log = ClarificationLog.load(store)

    if answer:
        question_id, text = answer
        try:
            question = log.answer(question_id, text)
        except (KeyError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        log.save()
        click.echo(f"Answered [{question.question_type.value}] {question.text} -> {question.answer_text}")
        return

    pending = log.pending()
    if not pending and not show_all:
        click.echo("No open clarification questions")
        return

    for q in pending:
        affects = ", ".join(sorted(q.affected_type_codes)) or "-"
        click.echo(f"{q.id}  [{q.question_type.value}] {q.text}  (affects: {affects})")
        if q.context:
            click.echo(f"    {q.context}")
    if show_all:
        for q in log.answered():
            click.echo(f"{q.id}  [{q.question_type.value}] {q.text} -> {q.answer_text}")


if __name__ == "__main__":
    cli()
