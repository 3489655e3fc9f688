"""Tests for the estimator CLI."""
import json

import pytest
import yaml
from click.testing import CliRunner

from estimator.cli import cli
from estimator.clarifications import ClarificationLog


@pytest.fixture
def extraction_file(tmp_path, make_page, make_segment):
    page = make_page(
        1,
        segments=[make_segment("A", 60, room="Office"), make_segment("B", 40)],
        legend=[{"type_code": "A", "stud_gauge": 20}],
    )
    path = tmp_path / "page-001.json"
    path.write_text(json.dumps(page.model_dump(mode="json")))
    return path


class TestReportCommand:
    def test_xlsx_report(self, tmp_path, extraction_file):
        out = tmp_path / "out"
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(out)])
        assert result.exit_code == 0, result.output
        files = list(out.glob("Tower_A_Wall_Takeoff_*.xlsx"))
        assert len(files) == 1
        assert "Default spec used for: B" in result.output

    @pytest.mark.parametrize("fmt", ["csv", "html"])
    def test_other_formats(self, tmp_path, extraction_file, fmt):
        out = tmp_path / "out"
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(out), "--format", fmt])
        assert result.exit_code == 0, result.output
        assert len(list(out.glob(f"*.{fmt}"))) == 1

    def test_settings_file(self, tmp_path, extraction_file):
        settings = tmp_path / "settings.yaml"
        settings.write_text(yaml.safe_dump({"deck_height_ft": 0}))
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(tmp_path), "--settings", str(settings)])
        assert result.exit_code == 1
        assert "Deck height must be positive" in result.output

    def test_option_overrides_settings(self, tmp_path, extraction_file):
        settings = tmp_path / "settings.yaml"
        settings.write_text(yaml.safe_dump({"deck_height_ft": 12}))
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(tmp_path), "--settings", str(settings),
                                          "--deck-height", "0"])
        assert result.exit_code == 1
        assert "Deck height must be positive" in result.output

    @pytest.mark.parametrize("option", ["--waste=-150", "--paint-coats=-2", "--paint-coats=0"])
    def test_out_of_range_option_rejected(self, tmp_path, extraction_file, option):
        out = tmp_path / "out"
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(out), "--format", "csv", option])
        assert result.exit_code != 0
        assert not out.exists()

    @pytest.mark.parametrize("setting", [{"waste_factor_percent": -150}, {"paint_coats": -2}])
    def test_out_of_range_setting_rejected(self, tmp_path, extraction_file, setting):
        settings = tmp_path / "settings.yaml"
        settings.write_text(yaml.safe_dump(setting))
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(tmp_path / "out"), "--settings", str(settings)])
        assert result.exit_code == 1
        assert "Error:" in result.output

    @pytest.mark.parametrize("wall_types", [
        {"A": {"stud_gauge": "heavy"}},
        {"A": {"layers_each_side": 0}},
        {"A": "20 ga"},
        ["A"],
    ])
    def test_bad_wall_type_override_rejected(self, tmp_path, extraction_file, wall_types):
        settings = tmp_path / "settings.yaml"
        settings.write_text(yaml.safe_dump({"wall_types": wall_types}))
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(tmp_path / "out"), "--settings", str(settings)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error:" in result.output

    def test_wall_type_override_applied(self, tmp_path, extraction_file):
        settings = tmp_path / "settings.yaml"
        settings.write_text(yaml.safe_dump({"wall_types": {"B": {"stud_spacing_inches": 24}}}))
        out = tmp_path / "out"
        result = CliRunner().invoke(cli, ["report", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(out), "--format", "csv", "--settings", str(settings)])
        assert result.exit_code == 0, result.output

    def test_store_records_and_applies_answers(self, tmp_path, extraction_file):
        store = tmp_path / "store"
        runner = CliRunner()
        args = ["report", str(extraction_file), "--project", "Tower A", "--output-dir", str(tmp_path / "out"),
                "--format", "csv", "--store", str(store)]

        assert runner.invoke(cli, args).exit_code == 0
        log = ClarificationLog.load(store)
        pending = len(log.pending())
        assert pending > 0

        result = runner.invoke(cli, args)
        assert "0 new" in result.output
        assert len(ClarificationLog.load(store).questions) == pending


class TestConditionsCommand:
    def test_conditions_csv(self, tmp_path, extraction_file):
        result = CliRunner().invoke(cli, ["conditions", str(extraction_file), "--project", "Tower A",
                                          "--output-dir", str(tmp_path), "--format", "csv"])
        assert result.exit_code == 0, result.output
        assert len(list(tmp_path.glob("Conditions_Tower_A_*.csv"))) == 1


class TestClarificationsCommand:
    def test_list_and_answer(self, tmp_path, extraction_file):
        store = tmp_path / "store"
        runner = CliRunner()
        runner.invoke(cli, ["report", str(extraction_file), "--project", "P", "--output-dir", str(tmp_path),
                            "--format", "csv", "--store", str(store)])
        question = ClarificationLog.load(store).pending()[0]

        listed = runner.invoke(cli, ["clarifications", str(store)])
        assert question.id in listed.output

        answered = runner.invoke(cli, ["clarifications", str(store), "--answer", question.id, "12 ft"])
        assert answered.exit_code == 0, answered.output
        assert ClarificationLog.load(store).get(question.id).answer_text == "12 ft"

    def test_unknown_id(self, tmp_path):
        result = CliRunner().invoke(cli, ["clarifications", str(tmp_path), "--answer", "nope", "12"])
        assert result.exit_code == 1

    def test_empty_store(self, tmp_path):
        result = CliRunner().invoke(cli, ["clarifications", str(tmp_path)])
        assert "No open clarification questions" in result.output
