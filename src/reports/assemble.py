"""Report assembly - material bills per wall type folded into project totals."""
import logging
import math
from enum import Enum
from typing import Iterable, List, Optional

from schemas.takeoff import (
    ClarificationQuestion,
    MaterialQuantities,
    ProjectTotals,
    UserInputs,
    WallMaterialReport,
    WallTakeoff,
)
from estimator.calculator import calculate_wall_materials
from estimator.rates import CoverageRates

logger = logging.getLogger(__name__)

# Integer quantities summed into ProjectTotals
_COUNT_FIELDS = (
    "studs", "top_track_lf", "bottom_track_lf", "drywall_sheets", "joint_compound_boxes",
    "tape_rolls", "screws_lbs", "corner_bead_lf", "paint_gallons", "primer_gallons",
)


def calculate_takeoff(
    takeoff: WallTakeoff,
    inputs: UserInputs,
    rates: Optional[CoverageRates] = None,
) -> List[MaterialQuantities]:
    """Material bill for every wall type with footage, in type code order."""
    return [
        calculate_wall_materials(total, takeoff.specs[total.type_code], inputs, rates)
        for total in takeoff.totals
    ]


def sum_totals(quantities: Iterable[MaterialQuantities]) -> ProjectTotals:
    """Elementwise sums across wall types."""
    quantities = list(quantities)
    fields = {name: sum(getattr(q, name) for q in quantities) for name in _COUNT_FIELDS}
    return ProjectTotals(
        linear_ft=math.fsum(q.linear_ft for q in quantities),
        square_ft=math.fsum(q.square_ft for q in quantities),
        insulation_sf=sum(q.insulation_sf or 0 for q in quantities),
        **fields,
    )


def assemble_report(
    takeoff: WallTakeoff,
    inputs: UserInputs,
    project_name: str,
    clarifications: Optional[Iterable[ClarificationQuestion]] = None,
    rates: Optional[CoverageRates] = None,
) -> WallMaterialReport:
    """
    Build the material report for a project.

    Args:
        takeoff: Aggregated walls
        inputs: Project-wide user inputs
        project_name: Project name shown on the report
        clarifications: Questions for the plan; unanswered ones are counted
        rates: Coverage rates (default: rates.yaml shipped with the package)

    Returns:
        WallMaterialReport

    Raises:
        InvalidCalculatorInput: If deck height or a stud spacing is not positive
    """
    by_type = calculate_takeoff(takeoff, inputs, rates)
    open_count = sum(1 for q in (clarifications or []) if not q.is_answered)

    report = WallMaterialReport(
        project_name=project_name,
        project_totals=sum_totals(by_type),
        by_wall_type=by_type,
        user_inputs=inputs,
        open_clarifications=open_count,
        defaulted_type_codes=list(takeoff.defaulted_type_codes),
    )
    logger.info(
        f"Report for {project_name}: {len(by_type)} wall types, "
        f"{report.project_totals.linear_ft:.1f} LF, {open_count} open clarifications"
    )
    return report


# ============================================================================
# Tabular Views
# ============================================================================

MATERIAL_COLUMNS = [
    ("Wall Type", "type_code"),
    ("Linear Ft", "linear_ft"),
    ("Square Ft", "square_ft"),
    ("Deck Height", "deck_height_ft"),
    ("Studs (EA)", "studs"),
    ("Stud Size", "stud_size"),
    ("Stud Gauge", "stud_gauge"),
    ("Top Track (LF)", "top_track_lf"),
    ("Bottom Track (LF)", "bottom_track_lf"),
    ("Drywall Sheets", "drywall_sheets"),
    ("Sheet Size", "sheet_size"),
    ("Drywall Type", "drywall_type"),
    ("Drywall Thickness", "drywall_thickness"),
    ("Layers/Side", "layers_each_side"),
    ("Joint Compound (boxes)", "joint_compound_boxes"),
    ("Finish Level", "finish_level"),
    ("Tape (rolls)", "tape_rolls"),
    ("Screws (lbs)", "screws_lbs"),
    ("Corner Bead (LF)", "corner_bead_lf"),
    ("Primer (gal)", "primer_gallons"),
    ("Paint (gal)", "paint_gallons"),
    ("Paint Type", "paint_type"),
    ("Paint Coats", "paint_coats"),
    ("Insulation (SF)", "insulation_sf"),
    ("Spec Source", "spec_source"),
]


def _cell(value):
    return value.value if isinstance(value, Enum) else value


def material_rows(report: WallMaterialReport) -> List[dict]:
    """One row per wall type keyed by MATERIAL_COLUMNS headers."""
    return [
        {header: _cell(getattr(q, attr)) for header, attr in MATERIAL_COLUMNS}
        for q in report.by_wall_type
    ]


def totals_rows(report: WallMaterialReport) -> List[dict]:
    """Project totals as Item / Quantity / Unit rows."""
    t = report.project_totals
    items = [
        ("Total Linear Footage", round(t.linear_ft, 2), "LF"),
        ("Total Square Footage", round(t.square_ft, 2), "SF"),
        ("Total Studs", t.studs, "EA"),
        ("Total Track", t.top_track_lf + t.bottom_track_lf, "LF"),
        ("Total Drywall Sheets", t.drywall_sheets, "sheets"),
        ("Total Joint Compound", t.joint_compound_boxes, "boxes"),
        ("Total Tape", t.tape_rolls, "rolls"),
        ("Total Screws", t.screws_lbs, "lbs"),
        ("Total Corner Bead", t.corner_bead_lf, "LF"),
        ("Total Primer", t.primer_gallons, "gallons"),
        ("Total Paint", t.paint_gallons, "gallons"),
        ("Total Insulation", t.insulation_sf, "SF"),
    ]
    return [{"Item": item, "Quantity": qty, "Unit": unit} for item, qty, unit in items]


def settings_rows(report: WallMaterialReport) -> List[dict]:
    """User inputs and report metadata as Setting / Value / Unit rows."""
    i = report.user_inputs
    items = [
        ("Deck Height", i.deck_height_ft, "feet"),
        ("Stud Gauge", i.stud_gauge, "ga"),
        ("Drywall Type", i.drywall_type, ""),
        ("Drywall Thickness", i.drywall_thickness, ""),
        ("Finish Level", i.finish_level, "(0-5)"),
        ("Paint Type", i.paint_type, ""),
        ("Paint Coats", i.paint_coats, "coats"),
        ("Waste Factor", i.waste_factor_percent, "%"),
        ("Insulation Type", i.insulation_type or "", ""),
        ("Open Clarifications", report.open_clarifications, ""),
        ("Default Spec Used For", ", ".join(report.defaulted_type_codes), ""),
        ("Generated At", report.generated_at.isoformat(), ""),
    ]
    return [{"Setting": name, "Value": value, "Unit": unit} for name, value, unit in items]
