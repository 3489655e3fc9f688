"""Condition list - takeoff items as estimating line items.

Every item type maps onto a closed set of condition types:

    wall, wall_type_legend, wall_type_total -> Linear  (Linear Feet)
    ceiling                                  -> Area    (Square Feet)
    door, window                             -> Count   (Each)
    specification                            -> Lump Sum

Rows come out in a fixed order: one aggregated condition per wall type,
then every wall segment, then ceilings, doors, windows and specifications.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from schemas.enums import ConditionType, ItemType, SpecSource
from schemas.takeoff import PageExtraction, WallTakeoff, WallTypeSpec

CONDITION_TYPES = {
    ItemType.WALL: ConditionType.LINEAR,
    ItemType.WALL_TYPE_LEGEND: ConditionType.LINEAR,
    ItemType.WALL_TYPE_TOTAL: ConditionType.LINEAR,
    ItemType.CEILING: ConditionType.AREA,
    ItemType.DOOR: ConditionType.COUNT,
    ItemType.WINDOW: ConditionType.COUNT,
    ItemType.SPECIFICATION: ConditionType.LUMP_SUM,
}

UNIT_NAMES = {
    "LF": "Linear Feet",
    "SF": "Square Feet",
    "EA": "Each",
    "LS": "Lump Sum",
}

CONDITION_UNITS = {
    ConditionType.LINEAR: UNIT_NAMES["LF"],
    ConditionType.AREA: UNIT_NAMES["SF"],
    ConditionType.COUNT: UNIT_NAMES["EA"],
    ConditionType.LUMP_SUM: UNIT_NAMES["LS"],
}

CONDITION_COLUMNS = ["Condition Name", "Condition Type", "Quantity", "Unit", "Notes", "Location/Room", "Page"]
SUMMARY_COLUMNS = ["Wall Type", "Total LF", "Wall Count", "Materials/Assembly", "Rooms", "Pages"]
MATERIALS_LIST_COLUMNS = ["Wall Type", "Total LF", "Material Specification", "Notes"]

# Page value for a condition that spans several pages
MULTI_PAGE = 0


def condition_type_for(item_type: Union[str, ItemType]) -> ConditionType:
    """
    Condition type for a takeoff item type.

    Raises:
        ValueError: If the item type has no condition mapping
    """
    try:
        return CONDITION_TYPES[ItemType(item_type)]
    except (KeyError, ValueError):
        raise ValueError(f"No condition type for item type {item_type!r}") from None


@dataclass
class Condition:
    """One estimating line item."""
    name: str
    condition_type: ConditionType
    quantity: float
    notes: str = ""
    location: str = ""
    page: int = MULTI_PAGE

    @property
    def unit(self) -> str:
        return CONDITION_UNITS[self.condition_type]

    def as_row(self) -> Dict[str, Any]:
        """Row keyed by CONDITION_COLUMNS."""
        return {
            "Condition Name": self.name,
            "Condition Type": self.condition_type.value,
            "Quantity": self.quantity,
            "Unit": self.unit,
            "Notes": self.notes,
            "Location/Room": self.location,
            "Page": self.page,
        }


def describe_assembly(spec: Optional[WallTypeSpec]) -> str:
    """One-line assembly description used in notes and summaries."""
    if spec is None:
        return ""
    parts = [spec.description] if spec.description else []
    parts.append(f"Studs: {spec.stud_size} {spec.stud_gauge} ga @ {spec.stud_spacing_inches:g}\" o.c.")
    parts.append(f"{spec.layers_each_side} layer(s) {spec.drywall_thickness} {spec.drywall_type} each side")
    if spec.fire_rating:
        parts.append(f"Fire: {spec.fire_rating}")
    if spec.insulation:
        parts.append(f"Insulation: {spec.insulation_type or 'yes'}")
    return " | ".join(parts)


def _item(item_type: ItemType, **kwargs: Any) -> Condition:
    return Condition(condition_type=condition_type_for(item_type), **kwargs)


def build_conditions(takeoff: WallTakeoff, pages: Iterable[PageExtraction]) -> List[Condition]:
    """
    Build the condition list for a plan.

    Args:
        takeoff: Aggregated walls
        pages: Page extractions (ceilings, doors, windows, specifications)

    Returns:
        Conditions in export order
    """
    pages = sorted(pages, key=lambda p: p.page_number)
    conditions: List[Condition] = []

    for total in takeoff.totals:
        notes = f"{total.segment_count} wall segments"
        assembly = describe_assembly(takeoff.specs.get(total.type_code))
        if assembly:
            notes = f"{notes} | {assembly}"
        conditions.append(_item(
            ItemType.WALL_TYPE_TOTAL,
            name=f"Wall Type {total.type_code}",
            quantity=round(total.total_lf, 2),
            notes=notes,
            location=", ".join(total.rooms) or "Various",
            page=total.pages[0] if len(total.pages) == 1 else MULTI_PAGE,
        ))

    for total in takeoff.totals:
        for segment in (s for s in takeoff.segments if s.wall_type_code == total.type_code):
            conditions.append(_item(
                ItemType.WALL,
                name=f"Wall {segment.wall_type_code} - {segment.room_name or 'Segment'}",
                quantity=segment.length_ft,
                notes=segment.notes or "",
                location=segment.room_name or "",
                page=segment.page_number,
            ))

    for page in pages:
        for ceiling in page.ceilings:
            conditions.append(_item(
                ItemType.CEILING,
                name=f"Ceiling - {ceiling.room_name or 'Area'}",
                quantity=ceiling.area_sqft,
                notes=" | ".join(p for p in (ceiling.ceiling_category, ceiling.material, ceiling.ceiling_height) if p),
                location=ceiling.room_name or "",
                page=page.page_number,
            ))

    for page in pages:
        for door in page.doors:
            conditions.append(_item(
                ItemType.DOOR,
                name=f"Door {door.mark} - {door.room_name or 'Opening'}" if door.mark else f"Door - {door.room_name or 'Opening'}",
                quantity=door.quantity,
                notes=" | ".join(p for p in (door.door_type, door.fire_rating, door.hardware_set) if p),
                location=door.room_name or "",
                page=page.page_number,
            ))

    for page in pages:
        for window in page.windows:
            conditions.append(_item(
                ItemType.WINDOW,
                name=f"Window {window.mark} - {window.room_name or 'Opening'}" if window.mark else f"Window - {window.room_name or 'Opening'}",
                quantity=window.quantity,
                notes=" | ".join(p for p in (window.window_type, window.glass_type) if p),
                location=window.room_name or "",
                page=page.page_number,
            ))

    for page in pages:
        for spec in page.specifications:
            conditions.append(_item(
                ItemType.SPECIFICATION,
                name=f"Spec {spec.section} - {spec.item}" if spec.section else f"Spec - {spec.item}",
                quantity=1,
                notes=spec.specification or spec.notes or "",
                page=page.page_number,
            ))

    return conditions


def wall_type_summary(takeoff: WallTakeoff) -> List[Dict[str, Any]]:
    """Rows keyed by SUMMARY_COLUMNS, one per wall type with footage."""
    return [
        {
            "Wall Type": total.type_code,
            "Total LF": round(total.total_lf, 2),
            "Wall Count": total.segment_count,
            "Materials/Assembly": describe_assembly(takeoff.specs.get(total.type_code)) or "See specifications",
            "Rooms": ", ".join(total.rooms) or "Various",
            "Pages": ", ".join(str(p) for p in total.pages),
        }
        for total in takeoff.totals
    ]


def materials_list(takeoff: WallTakeoff) -> List[Dict[str, Any]]:
    """Ordering list keyed by MATERIALS_LIST_COLUMNS, one row per wall type with footage."""
    rows = []
    for total in takeoff.totals:
        spec = takeoff.specs.get(total.type_code)
        defaulted = spec is None or spec.spec_source == SpecSource.DEFAULT
        rows.append({
            "Wall Type": total.type_code,
            "Total LF": round(total.total_lf, 2),
            "Material Specification": describe_assembly(spec) or "See partition schedule",
            "Notes": "Default assembly, confirm against partition schedule" if defaulted else "",
        })
    return rows
