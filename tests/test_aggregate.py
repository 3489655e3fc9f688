"""Tests for wall aggregation and spec merging."""
import logging
import math

from schemas.enums import SpecSource
from schemas.extraction import WallTypeLegendEntry, WallTypeTotalEntry
from schemas.takeoff import PageExtraction
from estimator.aggregate import (
    DEFAULT_WALL_SPEC,
    aggregate_walls,
    collect_legend,
    cross_check_totals,
    merge_wall_spec,
    total_by_type,
)


class TestTotalByType:
    def test_sums_without_rounding(self, make_segment):
        lengths = [0.1] * 10 + [12.345, 7.005]
        segments = [make_segment("A", length) for length in lengths]
        totals = total_by_type(segments)
        assert totals[0].total_lf == math.fsum(lengths)
        assert totals[0].segment_count == 12

    def test_sorted_by_code_with_rooms_and_pages(self, make_segment):
        segments = [
            make_segment("B", 5, page=2, room="Lobby"),
            make_segment("A", 3, page=1, room="Office"),
            make_segment("B", 4, page=1, room="Corridor"),
            make_segment("B", 1, page=2),
        ]
        totals = total_by_type(segments)
        assert [t.type_code for t in totals] == ["A", "B"]
        assert totals[1].total_lf == 10
        assert totals[1].rooms == ["Corridor", "Lobby"]
        assert totals[1].pages == [1, 2]

    def test_empty(self):
        assert total_by_type([]) == []


class TestMergeWallSpec:
    def test_default_when_no_legend(self):
        spec = merge_wall_spec("X")
        assert spec.type_code == "X"
        assert spec.stud_size == DEFAULT_WALL_SPEC["stud_size"]
        assert spec.stud_spacing_inches == 16.0
        assert spec.stud_gauge == 25
        assert spec.layers_each_side == 1
        assert spec.drywall_type == "regular"
        assert spec.drywall_thickness == '5/8"'
        assert spec.fire_rating is None
        assert spec.spec_source == SpecSource.DEFAULT

    def test_legend_fields_win_over_default(self):
        legend = WallTypeLegendEntry(type_code="A", stud_gauge=20, drywall_layers_each_side=2, fire_rating="1 HR")
        spec = merge_wall_spec("A", legend)
        assert spec.stud_gauge == 20
        assert spec.layers_each_side == 2
        assert spec.fire_rating == "1 HR"
        # Silent legend fields fall back to the default
        assert spec.stud_spacing_inches == 16.0
        assert spec.spec_source == SpecSource.LEGEND

    def test_override_wins_over_legend(self):
        legend = WallTypeLegendEntry(type_code="A", stud_gauge=20, drywall_type="Type X")
        spec = merge_wall_spec("A", legend, {"stud_gauge": 18, "drywall_type": None})
        assert spec.stud_gauge == 18
        assert spec.drywall_type == "Type X"

    def test_insulation_from_legend(self):
        legend = WallTypeLegendEntry(type_code="A", insulation="Mineral wool", insulation_r_value="R-15")
        spec = merge_wall_spec("A", legend)
        assert spec.insulation is True
        assert spec.insulation_type == "Mineral wool R-15"


class TestCollectLegend:
    def test_first_definition_wins(self, make_page, caplog):
        pages = [
            make_page(2, legend=[{"type_code": "A", "stud_gauge": 18}]),
            make_page(1, legend=[{"type_code": "A", "stud_gauge": 20}]),
        ]
        with caplog.at_level(logging.WARNING):
            legend = collect_legend(pages)
        assert legend["A"].stud_gauge == 20
        assert "redefined" in caplog.text

    def test_identical_redefinition_is_quiet(self, make_page, caplog):
        pages = [
            make_page(1, legend=[{"type_code": "A", "stud_gauge": 20}]),
            make_page(2, legend=[{"type_code": "A", "stud_gauge": 20}]),
        ]
        with caplog.at_level(logging.WARNING):
            collect_legend(pages)
        assert "redefined" not in caplog.text


class TestCrossCheck:
    def test_mismatch_reported(self, make_page, make_segment):
        page = make_page(1, segments=[make_segment("A", 10)])
        page.reported_totals.append(WallTypeTotalEntry(type_code="A", total_linear_ft=15))
        totals = total_by_type(page.segments)
        warnings = cross_check_totals([page], totals)
        assert len(warnings) == 1
        assert "A" in warnings[0]

    def test_within_tolerance(self, make_page, make_segment):
        page = make_page(1, segments=[make_segment("A", 10)])
        page.reported_totals.append(WallTypeTotalEntry(type_code="A", total_linear_ft=10.3))
        assert cross_check_totals([page], total_by_type(page.segments)) == []


class TestAggregateWalls:
    def test_across_pages(self, make_page, make_segment):
        pages = [
            make_page(1, segments=[make_segment("A", 10, page=1), make_segment("B", 4, page=1)],
                      legend=[{"type_code": "A", "stud_gauge": 20}]),
            make_page(2, segments=[make_segment("A", 2.5, page=2)]),
        ]
        takeoff = aggregate_walls(pages)
        assert takeoff.total_for("A").total_lf == 12.5
        assert takeoff.total_for("B").total_lf == 4
        assert takeoff.total_lf == 16.5
        assert len(takeoff.segments) == 3
        assert takeoff.specs["A"].spec_source == SpecSource.LEGEND
        assert takeoff.specs["B"].spec_source == SpecSource.DEFAULT
        assert takeoff.defaulted_type_codes == ["B"]

    def test_page_order_does_not_change_result(self, make_page, make_segment):
        first = make_page(1, segments=[make_segment("A", 1.1, page=1)])
        second = make_page(2, segments=[make_segment("A", 2.2, page=2)])
        assert aggregate_walls([first, second]).totals == aggregate_walls([second, first]).totals

    def test_legend_only_type_has_spec_but_no_total(self, make_page):
        takeoff = aggregate_walls([make_page(1, legend=[{"type_code": "C"}])])
        assert "C" in takeoff.specs
        assert takeoff.totals == []
        assert takeoff.defaulted_type_codes == []

    def test_overrides(self, make_page, make_segment):
        pages = [make_page(1, segments=[make_segment("A", 10)])]
        takeoff = aggregate_walls(pages, overrides={"A": {"stud_spacing_inches": 24}})
        assert takeoff.specs["A"].stud_spacing_inches == 24

    def test_no_pages(self):
        takeoff = aggregate_walls([])
        assert takeoff.totals == []
        assert takeoff.total_lf == 0

    def test_mismatch_warning_kept(self, make_segment):
        page = PageExtraction(
            plan_id="p", page_number=1,
            segments=[make_segment("A", 10)],
            reported_totals=[WallTypeTotalEntry(type_code="A", total_linear_ft=20)],
        )
        takeoff = aggregate_walls([page])
        assert len(takeoff.warnings) == 1
