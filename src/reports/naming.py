"""Deterministic export file names."""
import re
from datetime import date
from typing import Optional

_UNSAFE = re.compile(r"[^A-Za-z0-9]")


def sanitize_project_name(name: str) -> str:
    """Replace every non-alphanumeric character with '_' ("Tower A" -> "Tower_A")."""
    return _UNSAFE.sub("_", name or "") or "Project"


def takeoff_filename(project_name: str, on: Optional[date] = None, extension: str = "xlsx") -> str:
    """Material takeoff artifact, e.g. Tower_A_Wall_Takeoff_2026-10-19.xlsx."""
    on = on or date.today()
    return f"{sanitize_project_name(project_name)}_Wall_Takeoff_{on.isoformat()}.{extension}"


def conditions_filename(project_name: str, on: Optional[date] = None, extension: str = "xlsx") -> str:
    """Condition list artifact, e.g. Conditions_Tower_A_2026-10-19.xlsx."""
    on = on or date.today()
    return f"Conditions_{sanitize_project_name(project_name)}_{on.isoformat()}.{extension}"
