"""Shared enums used across extraction, takeoff and report schemas."""
from enum import Enum


class QuestionType(str, Enum):
    """Project-level parameter a clarification question asks about."""
    DECK_HEIGHT = "deck_height"
    STUD_GAUGE = "stud_gauge"
    DRYWALL_TYPE = "drywall_type"
    FINISH_LEVEL = "finish_level"
    PAINT_TYPE = "paint_type"
    INSULATION = "insulation"
    OTHER = "other"


class QuestionSource(str, Enum):
    """Who raised a clarification question."""
    MODEL = "model"          # Returned in clarifications_needed
    GENERATED = "generated"  # Raised by the clarification generator


class SpecSource(str, Enum):
    """Where a wall type's assembly spec came from."""
    LEGEND = "legend"
    DEFAULT = "default"


class ItemType(str, Enum):
    """Row types handed to the persistence boundary."""
    SHEET_INFO = "sheet_info"
    WALL = "wall"
    WALL_TYPE_LEGEND = "wall_type_legend"
    WALL_TYPE_TOTAL = "wall_type_total"
    CLARIFICATION = "clarification_needed"
    CEILING = "ceiling"
    DOOR = "door"
    WINDOW = "window"
    SPECIFICATION = "specification"


class ConditionType(str, Enum):
    """Estimating condition types understood by downstream bidding tools."""
    LINEAR = "Linear"
    AREA = "Area"
    COUNT = "Count"
    LUMP_SUM = "Lump Sum"


class SheetSize(str, Enum):
    """Drywall sheet sizes, chosen by deck height."""
    FOUR_BY_EIGHT = "4x8"
    FOUR_BY_TEN = "4x10"
    FOUR_BY_TWELVE = "4x12"


class ExtractionCategory(str, Enum):
    """Target categories the extraction prompt can focus on."""
    WALLS = "walls"
    CEILINGS = "ceilings"
    DOORS = "doors"
    WINDOWS = "windows"
    SPECIFICATIONS = "specifications"


# Finish levels for drywall (0 = none, 5 = skim coat)
FINISH_LEVELS = (0, 1, 2, 3, 4, 5)

# Fixed canvas all stored coordinates are normalized to
COORDINATE_CANVAS = 1000.0
