"""Takeoff aggregation - per-type wall totals and merged assembly specs.

Segments from every page are grouped by wall type code and their lengths
summed exactly. Each type gets one WallTypeSpec, merged with a fixed
precedence:

    per-type override  >  legend entry  >  built-in default

A type with footage but no legend entry is not an error: it is estimated
with the default spec and reported as an UnrecognizedWallType.
"""
import logging
import math
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from errors import UnrecognizedWallType
from schemas.enums import SpecSource
from schemas.extraction import WallTypeLegendEntry
from schemas.takeoff import PageExtraction, WallSegment, WallTakeoff, WallTypeSpec, WallTypeTotal

logger = logging.getLogger(__name__)

# Assembly assumed for a wall type nobody defined
DEFAULT_WALL_SPEC: Dict[str, Any] = {
    "description": "Default partition (no legend entry)",
    "stud_size": '3-5/8"',
    "stud_spacing_inches": 16.0,
    "stud_gauge": 25,
    "layers_each_side": 1,
    "drywall_type": "regular",
    "drywall_thickness": '5/8"',
    "fire_rating": None,
    "insulation": False,
    "insulation_type": None,
}

# Reported totals further than this from the segment sum are flagged
TOTAL_MISMATCH_TOLERANCE_LF = 0.5

# Legend fields compared when a type code is defined twice
_CONFLICT_FIELDS = (
    "stud_size", "stud_gauge", "stud_spacing", "drywall_layers_each_side",
    "drywall_type", "drywall_thickness", "fire_rating", "insulation",
)


# ============================================================================
# Spec Merge
# ============================================================================

def legend_fields(entry: WallTypeLegendEntry) -> Dict[str, Any]:
    """Spec fields a legend entry actually states."""
    fields: Dict[str, Any] = {}
    if entry.description:
        fields["description"] = entry.description
    if entry.stud_size:
        fields["stud_size"] = entry.stud_size
    if entry.stud_spacing is not None:
        fields["stud_spacing_inches"] = entry.stud_spacing
    if entry.stud_gauge is not None:
        fields["stud_gauge"] = entry.stud_gauge
    if entry.drywall_layers_each_side is not None:
        fields["layers_each_side"] = entry.drywall_layers_each_side
    if entry.drywall_type:
        fields["drywall_type"] = entry.drywall_type
    if entry.drywall_thickness:
        fields["drywall_thickness"] = entry.drywall_thickness
    if entry.fire_rating:
        fields["fire_rating"] = entry.fire_rating
    if entry.has_insulation is not None:
        fields["insulation"] = entry.has_insulation
        if entry.has_insulation:
            parts = [p for p in (entry.insulation, entry.insulation_r_value) if p]
            fields["insulation_type"] = " ".join(parts)
    return fields


def merge_wall_spec(
    type_code: str,
    legend: Optional[WallTypeLegendEntry] = None,
    override: Optional[Mapping[str, Any]] = None,
) -> WallTypeSpec:
    """
    Build the spec for one wall type.

    Each field comes from the override if it sets it, else from the legend
    entry if it states it, else from DEFAULT_WALL_SPEC.

    Args:
        type_code: Wall type code
        legend: Legend entry for the code, if any
        override: Per-type field overrides, if any

    Returns:
        Merged WallTypeSpec; spec_source is "legend" when a legend entry was used
    """
    fields = dict(DEFAULT_WALL_SPEC)
    if legend is not None:
        fields.update(legend_fields(legend))
    if override:
        fields.update({k: v for k, v in override.items() if v is not None})
    fields["type_code"] = type_code
    fields["spec_source"] = SpecSource.LEGEND if legend is not None else SpecSource.DEFAULT
    return WallTypeSpec(**fields)


def _conflicting_fields(first: WallTypeLegendEntry, other: WallTypeLegendEntry) -> List[str]:
    return [
        name for name in _CONFLICT_FIELDS
        if getattr(other, name) is not None and getattr(first, name) != getattr(other, name)
    ]


def collect_legend(pages: Iterable[PageExtraction]) -> Dict[str, WallTypeLegendEntry]:
    """First legend entry per type code wins; later conflicting entries are logged."""
    legend: Dict[str, WallTypeLegendEntry] = {}
    for page in sorted(pages, key=lambda p: p.page_number):
        for entry in page.legend:
            existing = legend.get(entry.type_code)
            if existing is None:
                legend[entry.type_code] = entry
                continue
            conflicts = _conflicting_fields(existing, entry)
            if conflicts:
                logger.warning(
                    f"Wall type {entry.type_code} redefined on page {page.page_number} "
                    f"with different {', '.join(conflicts)}; keeping first definition"
                )
    return legend


# ============================================================================
# Totals
# ============================================================================

def total_by_type(segments: Iterable[WallSegment]) -> List[WallTypeTotal]:
    """Sum segment lengths per type code, sorted by code."""
    groups: Dict[str, List[WallSegment]] = defaultdict(list)
    for segment in segments:
        groups[segment.wall_type_code].append(segment)

    totals = []
    for code in sorted(groups):
        members = groups[code]
        totals.append(WallTypeTotal(
            type_code=code,
            total_lf=math.fsum(s.length_ft for s in members),
            segment_count=len(members),
            rooms=sorted({s.room_name for s in members if s.room_name}),
            pages=sorted({s.page_number for s in members}),
        ))
    return totals


def cross_check_totals(pages: Iterable[PageExtraction], totals: List[WallTypeTotal]) -> List[str]:
    """Compare model-reported per-type totals with the segment sums."""
    reported: Dict[str, List[float]] = defaultdict(list)
    for page in pages:
        for entry in page.reported_totals:
            reported[entry.type_code].append(entry.total_linear_ft)

    measured = {t.type_code: t.total_lf for t in totals}
    warnings = []
    for code in sorted(reported):
        claimed = math.fsum(reported[code])
        actual = measured.get(code, 0.0)
        if abs(claimed - actual) > TOTAL_MISMATCH_TOLERANCE_LF:
            message = f"Wall type {code}: reported total {claimed:.1f} LF differs from measured {actual:.1f} LF"
            logger.warning(message)
            warnings.append(message)
    return warnings


# ============================================================================
# Aggregation
# ============================================================================

def aggregate_walls(
    pages: Iterable[PageExtraction],
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> WallTakeoff:
    """
    Aggregate wall segments and legends from all pages of a plan.

    Args:
        pages: Page extractions (any order)
        overrides: Optional per-type field overrides keyed by type code

    Returns:
        WallTakeoff with totals, one spec per type code, segment detail
        and the codes estimated with the default spec
    """
    pages = sorted(pages, key=lambda p: p.page_number)
    overrides = overrides or {}

    segments = [s for page in pages for s in page.segments]
    totals = total_by_type(segments)
    legend = collect_legend(pages)

    specs: Dict[str, WallTypeSpec] = {}
    unrecognized: List[UnrecognizedWallType] = []
    for code in sorted(set(legend) | {t.type_code for t in totals}):
        specs[code] = merge_wall_spec(code, legend.get(code), overrides.get(code))

    for total in totals:
        if total.type_code not in legend:
            unrecognized.append(UnrecognizedWallType(total.type_code, total.total_lf))
            logger.warning(
                f"Wall type {total.type_code} has {total.total_lf:.1f} LF but no legend entry; "
                f"using default spec"
            )

    warnings = cross_check_totals(pages, totals)

    logger.info(
        f"Aggregated {len(segments)} segments into {len(totals)} wall types "
        f"({math.fsum(t.total_lf for t in totals):.1f} LF)"
    )
    return WallTakeoff(
        totals=totals,
        specs=specs,
        segments=segments,
        defaulted_type_codes=[u.type_code for u in unrecognized],
        warnings=warnings,
    )
