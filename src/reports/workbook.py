"""Excel workbook export for material takeoffs and condition lists."""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from errors import ExportFailure
from schemas.takeoff import WallMaterialReport, WallTakeoff
from reports.assemble import MATERIAL_COLUMNS, material_rows, settings_rows, totals_rows
from reports.conditions import (
    CONDITION_COLUMNS,
    MATERIALS_LIST_COLUMNS,
    SUMMARY_COLUMNS,
    Condition,
    materials_list,
    wall_type_summary,
)

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1A2332", end_color="1A2332", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)


# ============================================================================
# Sheet Helpers
# ============================================================================

def add_sheet(
    wb: Workbook,
    title: str,
    rows: List[Dict[str, Any]],
    columns: Sequence[str],
    widths: Optional[Sequence[int]] = None,
):
    """Append a sheet with a styled header row followed by one row per dict."""
    ws = wb.create_sheet(title)
    ws.append(list(columns))
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append([row.get(col, "") for col in columns])

    for index, column in enumerate(columns, start=1):
        width = widths[index - 1] if widths and index <= len(widths) else max(12, len(column) + 2)
        ws.column_dimensions[get_column_letter(index)].width = width
    return ws


def save_workbook(wb: Workbook, path: Path) -> Path:
    """Save, raising ExportFailure naming the artifact on any write error."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(path)
    except OSError as e:
        raise ExportFailure(f"Could not write workbook {path.name}: {e}", path) from e
    logger.info(f"Wrote {path}")
    return path


# ============================================================================
# Takeoff Workbook
# ============================================================================

def _summary_rows(takeoff: WallTakeoff) -> List[Dict[str, Any]]:
    rows = []
    for total in takeoff.totals:
        spec = takeoff.specs.get(total.type_code)
        rows.append({
            "Wall Type": total.type_code,
            "Description": spec.description if spec else "",
            "Total Linear Ft": round(total.total_lf, 2),
            "Wall Count": total.segment_count,
            "Stud Size": spec.stud_size if spec else "TBD",
            "Stud Spacing": f"{spec.stud_spacing_inches:g}\" o.c." if spec else "TBD",
            "Fire Rating": (spec.fire_rating if spec else None) or "N/A",
            "Layers/Side": spec.layers_each_side if spec else 1,
            "Drywall Type": spec.drywall_type if spec else "TBD",
            "Spec Source": spec.spec_source.value if spec else "",
        })
    return rows


def _legend_rows(takeoff: WallTakeoff) -> List[Dict[str, Any]]:
    return [
        {
            "Type Code": spec.type_code,
            "Description": spec.description,
            "Stud Size": spec.stud_size,
            "Stud Gauge": spec.stud_gauge,
            "Stud Spacing": f"{spec.stud_spacing_inches:g}\" o.c.",
            "Fire Rating": spec.fire_rating or "",
            "Layers/Side": spec.layers_each_side,
            "Drywall Type": spec.drywall_type,
            "Drywall Thickness": spec.drywall_thickness,
            "Insulation": spec.insulation_type or ("Yes" if spec.insulation else "No"),
            "Spec Source": spec.spec_source.value,
        }
        for spec in takeoff.specs.values()
    ]


def _detail_rows(takeoff: WallTakeoff) -> List[Dict[str, Any]]:
    return [
        {
            "Wall Type": s.wall_type_code,
            "Room/Location": s.room_name or "",
            "Linear Footage": s.length_ft,
            "Floor": s.floor_level or "",
            "Page": s.page_number,
            "Exterior": "Yes" if s.is_exterior else "",
            "Existing": "Yes" if s.is_existing else "",
            "Confidence": s.confidence if s.confidence_reported else "",
            "Notes": s.notes or "",
        }
        for s in takeoff.segments
    ]


def build_takeoff_workbook(report: WallMaterialReport, takeoff: WallTakeoff) -> Workbook:
    """
    Build the material takeoff workbook.

    Sheets: Wall Type Summary, Wall Type Legend, Wall Details,
    Material Quantities, Project Totals, Estimate Settings.
    """
    wb = Workbook()
    wb.remove(wb.active)

    add_sheet(wb, "Wall Type Summary", _summary_rows(takeoff),
              ["Wall Type", "Description", "Total Linear Ft", "Wall Count", "Stud Size", "Stud Spacing",
               "Fire Rating", "Layers/Side", "Drywall Type", "Spec Source"],
              [12, 40, 15, 12, 12, 12, 12, 12, 15, 12])
    add_sheet(wb, "Wall Type Legend", _legend_rows(takeoff),
              ["Type Code", "Description", "Stud Size", "Stud Gauge", "Stud Spacing", "Fire Rating",
               "Layers/Side", "Drywall Type", "Drywall Thickness", "Insulation", "Spec Source"],
              [12, 50, 12, 12, 12, 12, 12, 15, 15, 20, 12])
    add_sheet(wb, "Wall Details", _detail_rows(takeoff),
              ["Wall Type", "Room/Location", "Linear Footage", "Floor", "Page", "Exterior", "Existing",
               "Confidence", "Notes"],
              [12, 25, 15, 12, 8, 10, 10, 12, 40])

    add_sheet(wb, "Material Quantities", material_rows(report), [h for h, _ in MATERIAL_COLUMNS])
    add_sheet(wb, "Project Totals", totals_rows(report), ["Item", "Quantity", "Unit"], [25, 15, 10])
    add_sheet(wb, "Estimate Settings", settings_rows(report), ["Setting", "Value", "Unit"], [22, 30, 10])
    return wb


def write_takeoff_workbook(report: WallMaterialReport, takeoff: WallTakeoff, path: Path) -> Path:
    """Build and save the material takeoff workbook."""
    return save_workbook(build_takeoff_workbook(report, takeoff), path)


# ============================================================================
# Condition Workbook
# ============================================================================

def build_conditions_workbook(conditions: List[Condition], takeoff: WallTakeoff) -> Workbook:
    """Condition list workbook: Conditions, Wall Type Summary and Materials sheets."""
    wb = Workbook()
    wb.remove(wb.active)
    add_sheet(wb, "Conditions", [c.as_row() for c in conditions], CONDITION_COLUMNS,
              [30, 15, 12, 15, 50, 25, 8])
    add_sheet(wb, "Wall Type Summary", wall_type_summary(takeoff), SUMMARY_COLUMNS,
              [20, 15, 12, 40, 30, 20])
    add_sheet(wb, "Materials", materials_list(takeoff), MATERIALS_LIST_COLUMNS, [20, 15, 60, 40])
    return wb


def write_conditions_workbook(conditions: List[Condition], takeoff: WallTakeoff, path: Path) -> Path:
    """Build and save the condition list workbook."""
    return save_workbook(build_conditions_workbook(conditions, takeoff), path)
