"""Tests for report assembly and export artifacts."""
import csv
from datetime import date

import pytest
from openpyxl import load_workbook

from errors import ExportFailure
from schemas.takeoff import ClarificationQuestion, UserInputs
from estimator.aggregate import aggregate_walls
from reports.assemble import assemble_report, material_rows, settings_rows, totals_rows
from reports.conditions import CONDITION_COLUMNS, MATERIALS_LIST_COLUMNS, build_conditions
from reports.delimited import write_conditions_csv, write_materials_csv
from reports.html import MaterialReportPage
from reports.naming import conditions_filename, sanitize_project_name, takeoff_filename
from reports.workbook import (
    build_conditions_workbook,
    build_takeoff_workbook,
    write_conditions_workbook,
    write_takeoff_workbook,
)


@pytest.fixture
def pages(make_page, make_segment):
    return [
        make_page(
            1,
            segments=[make_segment("A", 60, room="Office"), make_segment("B", 40, room="Storage")],
            legend=[{"type_code": "A", "description": "Rated partition", "fire_rating": "1 HR",
                     "insulation": "Sound batt"}],
        ),
    ]


@pytest.fixture
def takeoff(pages):
    return aggregate_walls(pages)


@pytest.fixture
def report(takeoff):
    questions = [
        ClarificationQuestion(text="Deck height?"),
        ClarificationQuestion(text="Gauge?", answer_text="20"),
    ]
    return assemble_report(takeoff, UserInputs(deck_height_ft=10, waste_factor_percent=10), "Tower A", questions)


class TestAssembleReport:
    def test_project_totals_are_sums(self, report):
        totals = report.project_totals
        assert totals.linear_ft == 100
        assert totals.studs == sum(q.studs for q in report.by_wall_type)
        assert totals.drywall_sheets == sum(q.drywall_sheets for q in report.by_wall_type)
        assert totals.paint_gallons == sum(q.paint_gallons for q in report.by_wall_type)

    def test_insulation_only_for_insulated_types(self, report):
        by_code = {q.type_code: q for q in report.by_wall_type}
        assert by_code["A"].insulation_sf == 660
        assert by_code["B"].insulation_sf is None
        assert report.project_totals.insulation_sf == 660

    def test_open_clarifications_and_defaults(self, report):
        assert report.open_clarifications == 1
        assert report.defaulted_type_codes == ["B"]

    def test_echoes_inputs(self, report):
        assert report.user_inputs.deck_height_ft == 10

    def test_rows(self, report):
        rows = material_rows(report)
        assert rows[0]["Wall Type"] == "A"
        assert rows[0]["Sheet Size"] == "4x10"
        assert rows[1]["Spec Source"] == "default"
        assert totals_rows(report)[0] == {"Item": "Total Linear Footage", "Quantity": 100, "Unit": "LF"}
        settings = {r["Setting"]: r["Value"] for r in settings_rows(report)}
        assert settings["Open Clarifications"] == 1
        assert settings["Default Spec Used For"] == "B"


class TestNaming:
    def test_sanitize(self):
        assert sanitize_project_name("Tower A / Phase 2") == "Tower_A___Phase_2"
        assert sanitize_project_name("") == "Project"

    def test_takeoff_filename(self):
        assert takeoff_filename("Tower A", date(2026, 10, 19)) == "Tower_A_Wall_Takeoff_2026-10-19.xlsx"
        assert takeoff_filename("Tower A", date(2026, 10, 19), "csv") == "Tower_A_Wall_Takeoff_2026-10-19.csv"

    def test_conditions_filename(self):
        assert conditions_filename("Tower A", date(2026, 10, 19)) == "Conditions_Tower_A_2026-10-19.xlsx"


class TestWorkbooks:
    def test_takeoff_sheets(self, report, takeoff):
        wb = build_takeoff_workbook(report, takeoff)
        assert wb.sheetnames == [
            "Wall Type Summary",
            "Wall Type Legend",
            "Wall Details",
            "Material Quantities",
            "Project Totals",
            "Estimate Settings",
        ]

    def test_takeoff_round_trip(self, report, takeoff, tmp_path):
        path = write_takeoff_workbook(report, takeoff, tmp_path / "out" / "takeoff.xlsx")
        wb = load_workbook(path)
        ws = wb["Material Quantities"]
        assert ws["A1"].value == "Wall Type"
        assert ws["A2"].value == "A"
        assert ws.max_row == 3
        assert wb["Wall Details"].max_row == 3

    def test_conditions_workbook(self, pages, takeoff, tmp_path):
        conditions = build_conditions(takeoff, pages)
        assert build_conditions_workbook(conditions, takeoff).sheetnames == ["Conditions", "Wall Type Summary", "Materials"]

        path = write_conditions_workbook(conditions, takeoff, tmp_path / "conditions.xlsx")
        ws = load_workbook(path)["Conditions"]
        assert [c.value for c in ws[1]] == CONDITION_COLUMNS
        assert ws.max_row == len(conditions) + 1

    def test_conditions_materials_sheet(self, pages, takeoff, tmp_path):
        path = write_conditions_workbook(build_conditions(takeoff, pages), takeoff, tmp_path / "conditions.xlsx")
        ws = load_workbook(path)["Materials"]
        assert [c.value for c in ws[1]] == MATERIALS_LIST_COLUMNS
        rows = {row[0]: row for row in ws.iter_rows(min_row=2, values_only=True)}
        assert rows["A"][1] == 60
        assert "Fire: 1 HR" in rows["A"][2]
        assert not rows["A"][3]
        assert rows["B"][1] == 40
        assert rows["B"][3].startswith("Default assembly")

    def test_unwritable_path(self, report, takeoff, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ExportFailure) as exc:
            write_takeoff_workbook(report, takeoff, blocker / "takeoff.xlsx")
        assert exc.value.path.name == "takeoff.xlsx"


class TestDelimited:
    def test_materials_csv(self, report, tmp_path):
        path = write_materials_csv(report, tmp_path / "materials.csv")
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert [r["Wall Type"] for r in rows] == ["A", "B"]
        assert rows[1]["Insulation (SF)"] == ""

    def test_conditions_csv(self, pages, takeoff, tmp_path):
        conditions = build_conditions(takeoff, pages)
        path = write_conditions_csv(conditions, tmp_path / "conditions.csv")
        with open(path, newline="") as f:
            reader = csv.DictReader(f)
            assert reader.fieldnames == CONDITION_COLUMNS
            rows = list(reader)
        assert rows[0]["Condition Name"] == "Wall Type A"
        assert rows[0]["Unit"] == "Linear Feet"

    def test_unwritable_path(self, report, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ExportFailure):
            write_materials_csv(report, blocker / "materials.csv")


class TestHtmlReport:
    def test_render(self, report, takeoff):
        pending = [ClarificationQuestion(text="Deck <height>?", affected_type_codes={"A"})]
        html = MaterialReportPage(report, takeoff, pending).render_html()
        assert "Tower A" in html
        assert "Material Quantities" in html
        assert "Deck &lt;height&gt;?" in html
        assert "Rated partition" in html

    def test_save(self, report, takeoff, tmp_path):
        path = MaterialReportPage(report, takeoff).save_html(tmp_path / "report.html")
        assert path.read_text().startswith("<!DOCTYPE html>")
