"""Pydantic models for the takeoff domain.

PageExtraction is the typed result of one page. WallTakeoff is what the
aggregator produces across pages, and WallMaterialReport is what the report
assembler produces from it. Quantities are derived values, regenerated from
the takeoff and user inputs whenever either changes.
"""
import math
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_serializer

from .enums import COORDINATE_CANVAS, QuestionSource, QuestionType, SheetSize, SpecSource
from .extraction import (
    CeilingEntry,
    DeckHeightEntry,
    DoorEntry,
    DrawingInfo,
    ProjectParameters,
    SpecificationEntry,
    WallTypeLegendEntry,
    WallTypeTotalEntry,
    WindowEntry,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Wall Types & Segments
# ============================================================================

class WallTypeSpec(BaseModel):
    """Partition assembly for one wall type code."""
    type_code: str = Field(description="Wall type tag")
    description: str = Field(default="", description="Assembly description")
    stud_size: str = Field(default='3-5/8"', description="Stud depth")
    stud_spacing_inches: float = Field(default=16.0, description="Stud spacing in inches o.c.")
    stud_gauge: int = Field(default=25, gt=0, description="Stud gauge")
    layers_each_side: int = Field(default=1, ge=1, description="Board layers per face")
    drywall_type: str = Field(default="regular", description="Board type")
    drywall_thickness: str = Field(default='5/8"', description="Board thickness")
    fire_rating: Optional[str] = Field(default=None, description="Fire rating")
    insulation: bool = Field(default=False, description="Cavity insulation required")
    insulation_type: Optional[str] = Field(default=None, description="Insulation product")
    spec_source: SpecSource = Field(default=SpecSource.DEFAULT, description="legend or default")


class NormalizedCoordinates(BaseModel):
    """Segment endpoints on the fixed 0..1000 canvas."""
    start_x: float = Field(ge=0, le=COORDINATE_CANVAS)
    start_y: float = Field(ge=0, le=COORDINATE_CANVAS)
    end_x: float = Field(ge=0, le=COORDINATE_CANVAS)
    end_y: float = Field(ge=0, le=COORDINATE_CANVAS)


class WallSegment(BaseModel):
    """One measured wall run on one page."""
    wall_type_code: str
    length_ft: float = Field(ge=0)
    room_name: Optional[str] = None
    page_number: int = Field(ge=1)
    floor_level: Optional[str] = None
    height_ft: Optional[float] = Field(default=None, gt=0)
    is_exterior: bool = False
    is_existing: bool = False
    notes: Optional[str] = None
    coordinates: Optional[NormalizedCoordinates] = None
    confidence: float = Field(default=0.0, ge=0, le=100)
    confidence_reported: bool = Field(default=True, description="False when 0 was substituted")


class WallTypeTotal(BaseModel):
    """Linear footage summed across every segment of one type."""
    type_code: str
    total_lf: float = Field(ge=0)
    segment_count: int = Field(ge=0)
    rooms: List[str] = Field(default_factory=list)
    pages: List[int] = Field(default_factory=list)


# ============================================================================
# Clarifications
# ============================================================================

class ClarificationQuestion(BaseModel):
    """Open question that blocks an accurate estimate."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    question_type: QuestionType = QuestionType.OTHER
    text: str = Field(min_length=1)
    context: Optional[str] = None
    affected_type_codes: Set[str] = Field(default_factory=set)
    page_number: Optional[int] = None
    source: QuestionSource = QuestionSource.MODEL
    created_at: datetime = Field(default_factory=_utcnow)
    answer_text: Optional[str] = None
    answered_at: Optional[datetime] = None

    @field_serializer("affected_type_codes")
    def _sorted_codes(self, codes: Set[str]) -> List[str]:
        return sorted(codes)

    @property
    def is_answered(self) -> bool:
        return self.answer_text is not None


# ============================================================================
# Estimating Inputs & Outputs
# ============================================================================

class UserInputs(BaseModel):
    """Project-wide assumptions the estimator supplies.

    deck_height_ft is checked by the calculator rather than here so that a
    bad value surfaces as InvalidCalculatorInput at calculation time.
    """
    deck_height_ft: float = Field(default=10.0, description="Floor to deck height in feet")
    stud_gauge: int = Field(default=25, gt=0, description="Stud gauge")
    drywall_type: str = Field(default="regular", description="Board type")
    drywall_thickness: str = Field(default='5/8"', description="Board thickness")
    finish_level: int = Field(default=4, ge=0, le=5, description="Drywall finish level 0-5")
    paint_type: str = Field(default="eggshell", description="Paint sheen / product")
    paint_coats: int = Field(default=2, ge=1, description="Finish coats of paint")
    waste_factor_percent: float = Field(default=10.0, ge=0, description="Waste buffer in percent")
    insulation_type: Optional[str] = Field(default=None, description="Insulation product")


class MaterialQuantities(BaseModel):
    """Material bill for one wall type."""
    type_code: str
    description: str = ""
    linear_ft: float
    square_ft: float
    deck_height_ft: float
    stud_size: str
    stud_gauge: int
    studs: int
    top_track_lf: int
    bottom_track_lf: int
    drywall_sheets: int
    sheet_size: SheetSize
    layers_each_side: int
    drywall_type: str
    drywall_thickness: str
    joint_compound_boxes: int
    tape_rolls: int
    screws_lbs: int
    corner_bead_lf: int
    finish_level: int
    paint_gallons: int
    primer_gallons: int
    paint_type: str
    paint_coats: int
    insulation_sf: Optional[int] = None
    spec_source: SpecSource = SpecSource.DEFAULT


class ProjectTotals(BaseModel):
    """Elementwise sums across wall types."""
    linear_ft: float = 0.0
    square_ft: float = 0.0
    studs: int = 0
    top_track_lf: int = 0
    bottom_track_lf: int = 0
    drywall_sheets: int = 0
    joint_compound_boxes: int = 0
    tape_rolls: int = 0
    screws_lbs: int = 0
    corner_bead_lf: int = 0
    paint_gallons: int = 0
    primer_gallons: int = 0
    insulation_sf: int = 0


class WallMaterialReport(BaseModel):
    """Material report for a project, generated on demand."""
    project_name: str
    project_totals: ProjectTotals
    by_wall_type: List[MaterialQuantities] = Field(default_factory=list)
    user_inputs: UserInputs
    generated_at: datetime = Field(default_factory=_utcnow)
    open_clarifications: int = Field(default=0, ge=0)
    defaulted_type_codes: List[str] = Field(default_factory=list)


# ============================================================================
# Page & Project Level
# ============================================================================

class PageExtraction(BaseModel):
    """Typed extraction result for one page."""
    plan_id: str
    page_number: int = Field(ge=1)
    drawing_info: DrawingInfo = Field(default_factory=DrawingInfo)
    legend: List[WallTypeLegendEntry] = Field(default_factory=list)
    segments: List[WallSegment] = Field(default_factory=list)
    reported_totals: List[WallTypeTotalEntry] = Field(default_factory=list)
    deck_heights: List[DeckHeightEntry] = Field(default_factory=list)
    project_parameters: ProjectParameters = Field(default_factory=ProjectParameters)
    clarifications: List[ClarificationQuestion] = Field(default_factory=list)
    ceilings: List[CeilingEntry] = Field(default_factory=list)
    doors: List[DoorEntry] = Field(default_factory=list)
    windows: List[WindowEntry] = Field(default_factory=list)
    specifications: List[SpecificationEntry] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class WallTakeoff(BaseModel):
    """Aggregated walls for a plan: totals, merged specs and segment detail."""
    totals: List[WallTypeTotal] = Field(default_factory=list)
    specs: Dict[str, WallTypeSpec] = Field(default_factory=dict)
    segments: List[WallSegment] = Field(default_factory=list)
    defaulted_type_codes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def total_lf(self) -> float:
        return math.fsum(t.total_lf for t in self.totals)

    def total_for(self, type_code: str) -> Optional[WallTypeTotal]:
        for total in self.totals:
            if total.type_code == type_code:
                return total
        return None
