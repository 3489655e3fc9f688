"""Tagged schema for the vision model's page extraction response.

ExtractionResponse mirrors the JSON contract the extraction prompt asks for:
wall_types_legend[], walls[], wall_type_totals[], clarifications_needed[],
ceilings[], doors[], windows[], specifications[] plus drawing metadata.

Validation happens once, here. Dimension strings are coerced with the
helpers in schemas.units; a payload that still fails validation is rejected
as a whole rather than trusted field by field downstream.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .enums import COORDINATE_CANVAS
from .units import is_blank, parse_feet, parse_int, parse_number


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _blank_to_none(value: Any) -> Any:
    return None if is_blank(value) else value


# ============================================================================
# Drawing Metadata
# ============================================================================

class DrawingInfo(BaseModel):
    """Title block information for the page."""
    sheet_number: Optional[str] = Field(default=None, description="Sheet number, e.g. A1.01")
    title: Optional[str] = Field(default=None, description="Sheet title")
    sheet_type: Optional[str] = Field(default=None, description="Floor plan, RCP, schedule, etc.")
    scale: Optional[str] = Field(default=None, description="Drawing scale as printed")
    floor_level: Optional[str] = Field(default=None, description="Level 1, Level 2, etc.")
    phase: Optional[str] = Field(default=None, description="Construction phase if noted")
    revision: Optional[str] = Field(default=None, description="Revision number")
    coordinate_extent: float = Field(
        default=COORDINATE_CANVAS, gt=0,
        description="Extent of the coordinate space the model reported in (0..extent)",
    )

    @field_validator("coordinate_extent", mode="before")
    @classmethod
    def _default_extent(cls, value: Any) -> Any:
        return COORDINATE_CANVAS if value is None else value


class ProjectParameters(BaseModel):
    """Project-wide parameters readable from general notes or schedules."""
    deck_height_ft: Optional[float] = Field(default=None, gt=0, description="Deck height in feet")
    finish_level: Optional[int] = Field(default=None, ge=0, le=5, description="Drywall finish level 0-5")
    paint_type: Optional[str] = Field(default=None, description="Paint product / sheen")
    stud_gauge: Optional[int] = Field(default=None, gt=0, description="Project-wide stud gauge")
    drywall_type: Optional[str] = Field(default=None, description="Project-wide board type")

    @field_validator("deck_height_ft", mode="before")
    @classmethod
    def _parse_height(cls, value: Any) -> Any:
        return parse_feet(value)

    @field_validator("finish_level", "stud_gauge", mode="before")
    @classmethod
    def _parse_ints(cls, value: Any) -> Any:
        return parse_int(value)

    @field_validator("paint_type", "drywall_type", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


# ============================================================================
# Walls
# ============================================================================

class SegmentCoordinates(BaseModel):
    """Wall endpoints in the model's coordinate space."""
    start_x: float
    start_y: float
    end_x: float
    end_y: float


class PointCoordinates(BaseModel):
    """Center point of a door or window tag."""
    x: float
    y: float


class WallEntry(BaseModel):
    """One wall segment as reported by the model."""
    wall_type_code: str = Field(default="", description="Wall type tag, e.g. A, WP-1")
    length_ft: float = Field(ge=0, description="Segment length in feet")
    height_ft: Optional[float] = Field(default=None, gt=0, description="Wall height if dimensioned")
    room_name: Optional[str] = Field(default=None, description="Room or location")
    floor_level: Optional[str] = Field(default=None, description="Floor level")
    is_existing: bool = Field(default=False, description="Existing wall, not new work")
    is_exterior: bool = Field(default=False, description="Exterior wall")
    notes: Optional[str] = Field(default=None, description="Free-text notes")
    confidence: Optional[float] = Field(default=None, ge=0, le=100, description="Confidence 0-100")
    coordinates: Optional[SegmentCoordinates] = Field(default=None, description="Segment endpoints")

    @field_validator("wall_type_code", mode="before")
    @classmethod
    def _code(cls, value: Any) -> Any:
        return "" if value is None else str(value).strip()

    @field_validator("length_ft", mode="before")
    @classmethod
    def _length(cls, value: Any) -> Any:
        parsed = parse_feet(value)
        # Leave unparseable values in place so validation reports them
        return value if parsed is None else parsed

    @field_validator("height_ft", mode="before")
    @classmethod
    def _height(cls, value: Any) -> Any:
        parsed = parse_feet(value)
        return parsed if parsed else None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> Any:
        return parse_number(value)

    @field_validator("is_existing", "is_exterior", mode="before")
    @classmethod
    def _flags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return not is_blank(value) and value.strip() != "0"
        return bool(value) if value is not None else False


class WallTypeLegendEntry(BaseModel):
    """Partition type definition read from a wall type legend or schedule."""
    type_code: str = Field(min_length=1, description="Wall type tag")
    description: Optional[str] = Field(default=None, description="Assembly description")
    stud_size: Optional[str] = Field(default=None, description='Stud depth, e.g. 3-5/8"')
    stud_gauge: Optional[int] = Field(default=None, gt=0, description="Stud gauge")
    stud_spacing: Optional[float] = Field(default=None, gt=0, description="Stud spacing in inches o.c.")
    max_height: Optional[str] = Field(default=None, description="Limiting height as printed")
    drywall_layers_each_side: Optional[int] = Field(default=None, ge=1, description="Board layers per face")
    drywall_type: Optional[str] = Field(default=None, description="Regular, type X, moisture resistant, ...")
    drywall_thickness: Optional[str] = Field(default=None, description='Board thickness, e.g. 5/8"')
    sheathing: Optional[str] = Field(default=None, description="Sheathing if any")
    fire_rating: Optional[str] = Field(default=None, description="Fire rating, e.g. 1 HR")
    ul_number: Optional[str] = Field(default=None, description="UL design number")
    stc_rating: Optional[int] = Field(default=None, ge=0, description="STC rating")
    insulation: Optional[str] = Field(default=None, description="Insulation as printed")
    insulation_r_value: Optional[str] = Field(default=None, description="Insulation R-value")
    confidence: Optional[float] = Field(default=None, ge=0, le=100, description="Confidence 0-100")

    @field_validator("type_code", mode="before")
    @classmethod
    def _code(cls, value: Any) -> Any:
        return str(value).strip() if value is not None else value

    @field_validator("stud_gauge", "drywall_layers_each_side", "stc_rating", mode="before")
    @classmethod
    def _ints(cls, value: Any) -> Any:
        return parse_int(value)

    @field_validator("stud_spacing", "confidence", mode="before")
    @classmethod
    def _numbers(cls, value: Any) -> Any:
        return parse_number(value)

    @field_validator("insulation", mode="before")
    @classmethod
    def _insulation(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "yes" if value else "none"
        return value

    @field_validator(
        "stud_size", "drywall_type", "drywall_thickness", "fire_rating",
        "ul_number", "max_height", "sheathing", "insulation_r_value", "description",
        mode="before",
    )
    @classmethod
    def _blank(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return str(value) if value is not None else None

    @property
    def has_insulation(self) -> Optional[bool]:
        """None when the legend is silent, otherwise whether insulation is called for."""
        if self.insulation is None:
            return None
        return not is_blank(self.insulation)


class WallTypeTotalEntry(BaseModel):
    """Per-type total the model computed itself (used only as a cross-check)."""
    type_code: str
    total_linear_ft: float = Field(ge=0)
    wall_count: Optional[int] = Field(default=None, ge=0)
    floor_level: Optional[str] = None

    @field_validator("total_linear_ft", mode="before")
    @classmethod
    def _total(cls, value: Any) -> Any:
        parsed = parse_feet(value)
        return value if parsed is None else parsed

    @field_validator("wall_count", mode="before")
    @classmethod
    def _count(cls, value: Any) -> Any:
        return parse_int(value)


class DeckHeightEntry(BaseModel):
    """Deck height callout from a section or general note."""
    floor_level: Optional[str] = None
    height_ft_in: Optional[str] = None
    area: Optional[str] = None

    @field_validator("height_ft_in", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @property
    def height_ft(self) -> Optional[float]:
        return parse_feet(self.height_ft_in)


# ============================================================================
# Clarifications
# ============================================================================

class ClarificationEntry(BaseModel):
    """Question the model could not answer from the page."""
    question_type: Optional[str] = Field(default=None, description="deck_height, stud_gauge, ...")
    question: str = Field(min_length=1, description="Question text")
    context: Optional[str] = Field(default=None, description="Why the question was raised")
    affects: Optional[Union[str, List[str]]] = Field(default=None, description="Affected wall types")
    affects_wall_types: List[str] = Field(default_factory=list, description="Affected wall types")

    @field_validator("affects_wall_types", mode="before")
    @classmethod
    def _list(cls, value: Any) -> Any:
        return _none_to_list(value)


# ============================================================================
# Ceilings / Openings / Specifications
# ============================================================================

class CeilingEntry(BaseModel):
    """Ceiling area for a room."""
    room_name: Optional[str] = None
    room_number: Optional[str] = None
    area_sqft: float = Field(default=0.0, ge=0)
    perimeter_lf: Optional[float] = Field(default=None, ge=0)
    ceiling_height: Optional[str] = None
    ceiling_category: Optional[str] = Field(default=None, description="drywall, act, specialty, exposed")
    material: Optional[str] = None
    fire_rating: Optional[str] = None
    floor_level: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("area_sqft", mode="before")
    @classmethod
    def _area(cls, value: Any) -> Any:
        parsed = parse_number(value)
        return 0.0 if parsed is None else parsed

    @field_validator("perimeter_lf", mode="before")
    @classmethod
    def _perimeter(cls, value: Any) -> Any:
        return parse_feet(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> Any:
        return parse_number(value)

    @field_validator("ceiling_height", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return None if value is None else str(value)


class DoorEntry(BaseModel):
    """Door from a schedule or plan tag."""
    mark: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    door_type: Optional[str] = None
    material: Optional[str] = None
    fire_rating: Optional[str] = None
    frame_type: Optional[str] = None
    hardware_set: Optional[str] = None
    room_name: Optional[str] = None
    floor_level: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    confidence: Optional[float] = Field(default=None, ge=0, le=100)
    coordinates: Optional[PointCoordinates] = None

    @field_validator("mark", "width", "height", "hardware_set", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> Any:
        parsed = parse_int(value)
        return parsed if parsed else 1

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> Any:
        return parse_number(value)


class WindowEntry(BaseModel):
    """Window from a schedule or elevation."""
    mark: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    window_type: Optional[str] = Field(default=None, alias="type")
    material: Optional[str] = None
    glass_type: Optional[str] = None
    room_name: Optional[str] = None
    floor_level: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    confidence: Optional[float] = Field(default=None, ge=0, le=100)
    coordinates: Optional[PointCoordinates] = None

    model_config = {"populate_by_name": True}

    @field_validator("mark", "width", "height", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> Any:
        parsed = parse_int(value)
        return parsed if parsed else 1

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> Any:
        return parse_number(value)


class SpecificationEntry(BaseModel):
    """Specification section item read from a spec sheet."""
    division: Optional[str] = None
    section: Optional[str] = None
    item: str = Field(min_length=1)
    specification: Optional[str] = None
    quantity: Optional[str] = None
    standards: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("division", "section", "quantity", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("standards", mode="before")
    @classmethod
    def _list(cls, value: Any) -> Any:
        return _none_to_list(value)


# ============================================================================
# Complete Response
# ============================================================================

class ExtractionResponse(BaseModel):
    """Complete structured output for one page."""
    sheet_type: Optional[str] = None
    drawing_info: DrawingInfo = Field(default_factory=DrawingInfo)

    walls: List[WallEntry] = Field(default_factory=list)
    wall_types_legend: List[WallTypeLegendEntry] = Field(default_factory=list)
    wall_type_totals: List[WallTypeTotalEntry] = Field(default_factory=list)
    deck_heights: List[DeckHeightEntry] = Field(default_factory=list)
    project_parameters: ProjectParameters = Field(default_factory=ProjectParameters)

    clarifications_needed: List[ClarificationEntry] = Field(default_factory=list)

    ceilings: List[CeilingEntry] = Field(default_factory=list)
    doors: List[DoorEntry] = Field(default_factory=list)
    windows: List[WindowEntry] = Field(default_factory=list)
    specifications: List[SpecificationEntry] = Field(default_factory=list)

    general_notes: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    extraction_warnings: List[str] = Field(default_factory=list)

    @field_validator(
        "walls", "wall_types_legend", "wall_type_totals", "deck_heights",
        "clarifications_needed", "ceilings", "doors", "windows", "specifications",
        "general_notes", "extraction_warnings",
        mode="before",
    )
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("drawing_info", "project_parameters", mode="before")
    @classmethod
    def _objects(cls, value: Any) -> Any:
        return {} if value is None else value
