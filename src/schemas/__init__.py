"""Takeoff Schemas - Pydantic models for extraction output and estimating."""
from .enums import (
    ConditionType,
    ExtractionCategory,
    ItemType,
    QuestionSource,
    QuestionType,
    SheetSize,
    SpecSource,
)
from .extraction import (
    ClarificationEntry,
    DrawingInfo,
    ExtractionResponse,
    WallEntry,
    WallTypeLegendEntry,
)
from .takeoff import (
    ClarificationQuestion,
    MaterialQuantities,
    PageExtraction,
    ProjectTotals,
    UserInputs,
    WallMaterialReport,
    WallSegment,
    WallTakeoff,
    WallTypeSpec,
    WallTypeTotal,
)
from .transform import to_takeoff_rows, transform_response_to_page

__all__ = [
    # Enums
    "ConditionType",
    "ExtractionCategory",
    "ItemType",
    "QuestionSource",
    "QuestionType",
    "SheetSize",
    "SpecSource",
    # Model response
    "ClarificationEntry",
    "DrawingInfo",
    "ExtractionResponse",
    "WallEntry",
    "WallTypeLegendEntry",
    # Takeoff domain
    "ClarificationQuestion",
    "MaterialQuantities",
    "PageExtraction",
    "ProjectTotals",
    "UserInputs",
    "WallMaterialReport",
    "WallSegment",
    "WallTakeoff",
    "WallTypeSpec",
    "WallTypeTotal",
    # Transformation
    "to_takeoff_rows",
    "transform_response_to_page",
]
