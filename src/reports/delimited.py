"""CSV export, for tools that cannot read workbooks."""
import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from errors import ExportFailure
from schemas.takeoff import WallMaterialReport
from reports.assemble import MATERIAL_COLUMNS, material_rows
from reports.conditions import CONDITION_COLUMNS, Condition

logger = logging.getLogger(__name__)


def write_rows(path: Path, columns: Sequence[str], rows: List[Dict[str, Any]]) -> Path:
    """
    Write dict rows as CSV with a header line.

    Raises:
        ExportFailure: If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(columns), extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({k: "" if v is None else v for k, v in row.items()})
    except OSError as e:
        raise ExportFailure(f"Could not write {path.name}: {e}", path) from e
    logger.info(f"Wrote {len(rows)} rows to {path}")
    return path


def write_materials_csv(report: WallMaterialReport, path: Path) -> Path:
    """Material quantities per wall type as CSV."""
    return write_rows(path, [h for h, _ in MATERIAL_COLUMNS], material_rows(report))


def write_conditions_csv(conditions: List[Condition], path: Path) -> Path:
    """Condition list as CSV."""
    return write_rows(path, CONDITION_COLUMNS, [c.as_row() for c in conditions])
