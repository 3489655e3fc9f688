"""Shared test fixtures and configuration."""
import pytest
from pathlib import Path

from schemas.extraction import DeckHeightEntry, ProjectParameters, WallTypeLegendEntry
from schemas.takeoff import PageExtraction, WallSegment


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_response():
    """Model response for a floor plan page with a legend and two wall types."""
    return {
        "sheet_type": "floor_plan",
        "drawing_info": {
            "sheet_number": "A1.01",
            "title": "Level 1 Floor Plan",
            "scale": "1/8\" = 1'-0\"",
            "floor_level": "Level 1",
            "coordinate_extent": 1000,
        },
        "wall_types_legend": [
            {
                "type_code": "A",
                "description": "Interior partition",
                "stud_size": "3-5/8\"",
                "stud_gauge": "20 GA",
                "stud_spacing": "16\" O.C.",
                "drywall_layers_each_side": 1,
                "drywall_type": "Type X",
                "drywall_thickness": "5/8\"",
                "fire_rating": "1 HR",
                "insulation": "Sound batt",
                "confidence": 90,
            },
        ],
        "walls": [
            {
                "wall_type_code": "A",
                "length_ft": "12'-6\"",
                "room_name": "Office 101",
                "confidence": 85,
                "coordinates": {"start_x": 100, "start_y": 200, "end_x": 300, "end_y": 200},
            },
            {"wall_type_code": "A", "length_ft": 20.0, "room_name": "Office 102", "confidence": "90%"},
            {"wall_type_code": "B", "length_ft": 8, "room_name": "Storage"},
        ],
        "wall_type_totals": [
            {"type_code": "A", "total_linear_ft": 32.5, "wall_count": 2},
        ],
        "deck_heights": [{"floor_level": "Level 1", "height_ft_in": "12'-0\""}],
        "clarifications_needed": [
            {
                "question_type": "stud_gauge",
                "question": "What gauge are the type B studs?",
                "affects": "B",
            },
        ],
        "ceilings": [
            {"room_name": "Office 101", "area_sqft": 150, "ceiling_category": "act", "ceiling_height": "9'-0\""},
        ],
        "doors": [{"mark": "101", "door_type": "HM", "room_name": "Office 101"}],
        "windows": [{"mark": "W1", "type": "Fixed", "quantity": 2}],
        "specifications": [{"section": "09 21 16", "item": "Gypsum board", "specification": "ASTM C1396"}],
    }


@pytest.fixture
def make_segment():
    """Build a WallSegment with sensible defaults."""
    def _make(code="A", length=10.0, page=1, room=None, **kwargs):
        return WallSegment(wall_type_code=code, length_ft=length, page_number=page, room_name=room, **kwargs)
    return _make


@pytest.fixture
def make_page():
    """Build a PageExtraction from segments, legend entries and parameters."""
    def _make(page_number=1, segments=None, legend=None, deck_heights=None, plan_id="plan-1", **params):
        return PageExtraction(
            plan_id=plan_id,
            page_number=page_number,
            segments=segments or [],
            legend=[WallTypeLegendEntry(**entry) for entry in (legend or [])],
            deck_heights=[DeckHeightEntry(**entry) for entry in (deck_heights or [])],
            project_parameters=ProjectParameters(**params),
        )
    return _make
