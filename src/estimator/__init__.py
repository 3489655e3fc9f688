"""Takeoff aggregation, clarifications and material quantity calculation."""
from estimator.aggregate import aggregate_walls, merge_wall_spec
from estimator.calculator import calculate_wall_materials
from estimator.clarifications import ClarificationLog, generate_clarifications

__all__ = [
    "ClarificationLog",
    "aggregate_walls",
    "calculate_wall_materials",
    "generate_clarifications",
    "merge_wall_spec",
]
