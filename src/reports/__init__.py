"""Report assembly and export."""
from reports.assemble import assemble_report
from reports.conditions import build_conditions, condition_type_for
from reports.naming import conditions_filename, takeoff_filename

__all__ = [
    "assemble_report",
    "build_conditions",
    "condition_type_for",
    "conditions_filename",
    "takeoff_filename",
]
