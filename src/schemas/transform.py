"""Transform a validated ExtractionResponse into a PageExtraction, and a
PageExtraction into rows for the takeoff store.

ExtractionResponse → PageExtraction:
- walls[] → segments[] with coordinates rescaled to the 0..1000 canvas
- walls[].confidence missing → 0 with confidence_reported=False and a page warning
- walls[].wall_type_code blank → "UNTYPED" so the footage still totals
- clarifications_needed[] → ClarificationQuestion with question_type mapped onto the enum

PageExtraction → rows:
- one row per record, keyed by (plan_id, page_number, item_type)
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .enums import COORDINATE_CANVAS, ItemType, QuestionSource, QuestionType
from .extraction import ClarificationEntry, ExtractionResponse, SegmentCoordinates, WallEntry
from .takeoff import ClarificationQuestion, NormalizedCoordinates, PageExtraction, WallSegment

logger = logging.getLogger(__name__)

UNTYPED_CODE = "UNTYPED"


# ============================================================================
# Question Type Mapping
# ============================================================================

# Free-text question types the model uses, mapped onto QuestionType
QUESTION_TYPE_ALIASES = {
    "deck_height": QuestionType.DECK_HEIGHT,
    "deck height": QuestionType.DECK_HEIGHT,
    "ceiling_height": QuestionType.DECK_HEIGHT,
    "wall_height": QuestionType.DECK_HEIGHT,
    "stud_gauge": QuestionType.STUD_GAUGE,
    "gauge": QuestionType.STUD_GAUGE,
    "stud_size": QuestionType.STUD_GAUGE,
    "drywall_type": QuestionType.DRYWALL_TYPE,
    "board_type": QuestionType.DRYWALL_TYPE,
    "gypsum_type": QuestionType.DRYWALL_TYPE,
    "finish_level": QuestionType.FINISH_LEVEL,
    "finish": QuestionType.FINISH_LEVEL,
    "paint_type": QuestionType.PAINT_TYPE,
    "paint": QuestionType.PAINT_TYPE,
    "insulation": QuestionType.INSULATION,
    "insulation_type": QuestionType.INSULATION,
}


def map_question_type(raw: Optional[str]) -> QuestionType:
    """Map a model-supplied question type onto QuestionType; unknown → OTHER."""
    if not raw:
        return QuestionType.OTHER
    key = raw.strip().lower().replace("-", "_")
    if key in QUESTION_TYPE_ALIASES:
        return QUESTION_TYPE_ALIASES[key]
    return QUESTION_TYPE_ALIASES.get(key.replace("_", " "), QuestionType.OTHER)


def _split_codes(affects: Union[str, List[str], None]) -> Set[str]:
    """Turn 'A, B / C' or ['A', 'B'] into {'A', 'B', 'C'}."""
    if affects is None:
        return set()
    items: Iterable[str] = affects if isinstance(affects, list) else [affects]
    codes = set()
    for item in items:
        for part in str(item).replace("/", ",").replace(";", ",").split(","):
            part = part.strip()
            if part and part.lower() not in ("all", "all walls", "n/a"):
                codes.add(part)
    return codes


def question_from_entry(entry: ClarificationEntry, page_number: Optional[int] = None) -> ClarificationQuestion:
    """Convert a model-supplied clarification into a ClarificationQuestion."""
    codes = _split_codes(entry.affects) | set(entry.affects_wall_types)
    return ClarificationQuestion(
        question_type=map_question_type(entry.question_type),
        text=entry.question,
        context=entry.context,
        affected_type_codes=codes,
        page_number=page_number,
        source=QuestionSource.MODEL,
    )


# ============================================================================
# Wall Transformation
# ============================================================================

def _clamp(value: float) -> float:
    return min(max(value, 0.0), COORDINATE_CANVAS)


def normalize_coordinates(coords: SegmentCoordinates, extent: float) -> NormalizedCoordinates:
    """Rescale coordinates reported on a 0..extent space to the 0..1000 canvas."""
    scale = COORDINATE_CANVAS / extent
    return NormalizedCoordinates(
        start_x=_clamp(coords.start_x * scale),
        start_y=_clamp(coords.start_y * scale),
        end_x=_clamp(coords.end_x * scale),
        end_y=_clamp(coords.end_y * scale),
    )


def _transform_wall(
    wall: WallEntry,
    page_number: int,
    extent: float,
    default_floor: Optional[str],
) -> WallSegment:
    """Transform a WallEntry into a WallSegment."""
    confidence_reported = wall.confidence is not None
    return WallSegment(
        wall_type_code=wall.wall_type_code or UNTYPED_CODE,
        length_ft=wall.length_ft,
        room_name=wall.room_name,
        page_number=page_number,
        floor_level=wall.floor_level or default_floor,
        height_ft=wall.height_ft,
        is_exterior=wall.is_exterior,
        is_existing=wall.is_existing,
        notes=wall.notes,
        coordinates=normalize_coordinates(wall.coordinates, extent) if wall.coordinates else None,
        confidence=wall.confidence if confidence_reported else 0.0,
        confidence_reported=confidence_reported,
    )


def _transform_walls(response: ExtractionResponse, page_number: int) -> List[WallSegment]:
    """Transform all walls on the page."""
    extent = response.drawing_info.coordinate_extent
    default_floor = response.drawing_info.floor_level
    return [_transform_wall(w, page_number, extent, default_floor) for w in response.walls]


def _page_warnings(response: ExtractionResponse, segments: List[WallSegment]) -> List[str]:
    """Warnings worth showing next to the page's results."""
    warnings = list(response.extraction_warnings)

    missing = sum(1 for s in segments if not s.confidence_reported)
    if missing:
        warnings.append(f"{missing} wall segment(s) had no confidence reported; 0 substituted")

    untyped = [s for s in segments if s.wall_type_code == UNTYPED_CODE]
    if untyped:
        warnings.append(f"{len(untyped)} wall segment(s) had no wall type code; grouped as {UNTYPED_CODE}")

    return warnings


# ============================================================================
# Main Transformation
# ============================================================================

def transform_response_to_page(
    response: ExtractionResponse,
    plan_id: str,
    page_number: int,
) -> PageExtraction:
    """
    Transform a validated ExtractionResponse into a PageExtraction.

    Args:
        response: Validated model response for one page
        plan_id: Plan the page belongs to
        page_number: 1-based page number

    Returns:
        PageExtraction with normalized segments and typed clarifications
    """
    segments = _transform_walls(response, page_number)
    warnings = _page_warnings(response, segments)
    for warning in warnings:
        logger.warning(f"Page {page_number}: {warning}")

    return PageExtraction(
        plan_id=plan_id,
        page_number=page_number,
        drawing_info=response.drawing_info,
        legend=response.wall_types_legend,
        segments=segments,
        reported_totals=response.wall_type_totals,
        deck_heights=response.deck_heights,
        project_parameters=response.project_parameters,
        clarifications=[question_from_entry(c, page_number) for c in response.clarifications_needed],
        ceilings=response.ceilings,
        doors=response.doors,
        windows=response.windows,
        specifications=response.specifications,
        warnings=warnings,
    )


# ============================================================================
# Persistence Rows
# ============================================================================

def _row(page: PageExtraction, item_type: ItemType, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "plan_id": page.plan_id,
        "page_number": page.page_number,
        "item_type": item_type.value,
        "data": data,
    }


def to_takeoff_rows(page: PageExtraction) -> List[Dict[str, Any]]:
    """
    Flatten a PageExtraction into rows for the takeoff store.

    Every row carries plan_id, page_number and item_type; the record itself
    goes under "data" as JSON-ready values.

    Returns:
        Rows in a stable order: sheet info first, then walls, legend,
        reported totals, clarifications, ceilings, doors, windows, specifications
    """
    rows = [_row(page, ItemType.SHEET_INFO, {
        **page.drawing_info.model_dump(mode="json"),
        "project_parameters": page.project_parameters.model_dump(mode="json"),
        "deck_heights": [d.model_dump(mode="json") for d in page.deck_heights],
        "warnings": list(page.warnings),
    })]

    groups = [
        (ItemType.WALL, page.segments),
        (ItemType.WALL_TYPE_LEGEND, page.legend),
        (ItemType.WALL_TYPE_TOTAL, page.reported_totals),
        (ItemType.CLARIFICATION, page.clarifications),
        (ItemType.CEILING, page.ceilings),
        (ItemType.DOOR, page.doors),
        (ItemType.WINDOW, page.windows),
        (ItemType.SPECIFICATION, page.specifications),
    ]
    for item_type, records in groups:
        for record in records:
            rows.append(_row(page, item_type, record.model_dump(mode="json")))

    return rows
