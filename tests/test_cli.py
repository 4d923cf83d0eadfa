"""Tests for CLI commands."""

from __future__ import annotations

import json
from datetime import date

import pytest
from typer.testing import CliRunner

from mealtrack.cli import app
from mealtrack.db import set_db

runner = CliRunner()

ALL_DAYS = "mon,tue,wed,thu,fri,sat,sun"


@pytest.fixture
def cli_db(temp_db):
    """Point the CLI at the temporary database."""
    set_db(temp_db)
    yield temp_db
    set_db(None)


def invoke_json(args):
    result = runner.invoke(app, args + ["--json"])
    return result, json.loads(result.stdout)


class TestMainCommands:
    """Tests for main CLI commands."""

    def test_help(self):
        """Test that --help works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "schedule" in result.output.lower()

    @pytest.mark.parametrize(
        "group", ["foods", "plan", "schedule", "meals", "consume", "entries", "goals"]
    )
    def test_group_help(self, group):
        result = runner.invoke(app, [group, "--help"])
        assert result.exit_code == 0

    def test_consume_log_requires_args(self):
        result = runner.invoke(app, ["consume", "log"])
        assert result.exit_code != 0

    def test_init_missing_catalog(self, cli_db, tmp_path):
        result = runner.invoke(app, ["init", str(tmp_path / "missing.csv")])
        assert result.exit_code == 1


class TestFoodsCommands:
    """Tests for foods subcommands."""

    def test_import_and_list(self, cli_db, tmp_path):
        csv_path = tmp_path / "catalog.csv"
        csv_path.write_text(
            "name,serving_size,serving_unit,calories,protein,carbs,fat\n"
            "Rolled oats,100,gram,379,13.2,67.7,6.5\n"
        )
        result = runner.invoke(app, ["foods", "import", str(csv_path)])
        assert result.exit_code == 0
        assert "Imported 1" in result.output

        result, data = invoke_json(["foods", "list", "--search", "oats"])
        assert result.exit_code == 0
        assert data["data"]["foods"][0]["name"] == "Rolled oats"


class TestScheduleFlow:
    """Apply, log, report and deactivate through the CLI."""

    def test_full_flow(self, cli_db, sample_template):
        today = date.today().isoformat()

        result, data = invoke_json(["plan", "list"])
        assert result.exit_code == 0
        assert data["data"]["meal_plans"][0]["daily_plans_count"] == 2

        result, data = invoke_json(
            ["schedule", "apply", str(sample_template.meal_plan_id),
             "--days", ALL_DAYS, "--weeks", "1"]
        )
        assert result.exit_code == 0, result.output
        # 7 dates cycling day1 (2 meals) and day2 (3 meals)
        assert data["data"]["scheduled_meals_count"] == 17
        applied_id = data["data"]["applied_plan"]["id"]

        result, data = invoke_json(["meals", "list", "--from", today, "--to", today])
        meals = data["data"]["scheduled_meals"]
        assert [m["meal_time_name"] for m in meals] == ["Breakfast", "Lunch"]
        breakfast_id = meals[0]["id"]

        result, data = invoke_json(["meals", "show", str(breakfast_id)])
        item_id = data["data"]["planned_foods"][0]["id"]

        result, data = invoke_json(["consume", "complete", str(breakfast_id), str(item_id)])
        assert result.exit_code == 0
        assert data["data"]["completion_percentage"] == 100.0

        result, data = invoke_json(["meals", "list", "--status", "completed"])
        assert [m["id"] for m in data["data"]["scheduled_meals"]] == [breakfast_id]

        result, data = invoke_json(["daily", "--date", today])
        assert result.exit_code == 0
        assert data["data"]["totals"]["total"]["calories"] == 379.0

        result, data = invoke_json(["goals", "set", "--calories", "2000"])
        assert result.exit_code == 0

        result, data = invoke_json(["report", "--from", today, "--to", today])
        assert data["data"]["goal_adherence"]["calories"]["adherence_percentage"] == 18.95
        assert data["data"]["daily_totals"][today]["total"]["calories"] == 379.0

        result, data = invoke_json(["schedule", "deactivate", str(applied_id)])
        assert data["data"]["deleted"] is True

        result, data = invoke_json(["meals", "list"])
        assert {m["scheduled_date"] for m in data["data"]["scheduled_meals"]} == {today}

    def test_error_envelope(self, cli_db, sample_template):
        result, data = invoke_json(["meals", "show", "9999"])
        assert result.exit_code == 1
        assert data["success"] is False
        assert data["error_type"] == "NotFoundError"

    def test_bad_weekday(self, cli_db, sample_template):
        result, data = invoke_json(
            ["schedule", "apply", str(sample_template.meal_plan_id), "--days", "funday"]
        )
        assert result.exit_code == 1
        assert data["error_type"] == "ValidationError"

    def test_bad_status_filter(self, cli_db):
        result = runner.invoke(app, ["meals", "list", "--status", "half"])
        assert result.exit_code == 1
        assert "--status" in result.output


class TestEntriesCommands:
    """Tests for the manual food log commands."""

    def test_quick_add_and_list(self, cli_db):
        result, data = invoke_json(
            ["entries", "quick", "Latte", "--calories", "190", "--meal-type", "breakfast"]
        )
        assert result.exit_code == 0
        assert data["data"]["calories"] == 190.0

        result, data = invoke_json(["entries", "list"])
        assert len(data["data"]["entries"]) == 1

        entry_id = data["data"]["entries"][0]["id"]
        result, data = invoke_json(["entries", "delete", str(entry_id)])
        assert data["data"]["deleted"] is True


class TestReportFormats:
    """Tests for report output formats."""

    def test_markdown_to_file(self, cli_db, tmp_path):
        out = tmp_path / "report.md"
        result = runner.invoke(app, ["report", "--format", "markdown", "--output", str(out)])
        assert result.exit_code == 0
        text = out.read_text()
        assert text.startswith("# Nutrition Report")
        assert "| breakfast | 0 | 0 |" in text
        assert "## Daily Totals" not in text

    def test_json_format_is_bare_report(self, cli_db):
        runner.invoke(app, ["goals", "set", "--calories", "2000"])
        result = runner.invoke(app, ["report", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["total_days"] == 7
        assert data["goal_adherence"]["calories"]["adherence_percentage"] == 0.0
        assert "generated_at" in data

    def test_unknown_format(self, cli_db):
        result = runner.invoke(app, ["report", "--format", "pdf"])
        assert result.exit_code == 1

    def test_foods_list_unknown_kind(self, cli_db):
        result = runner.invoke(app, ["foods", "list", "--kind", "frozen"])
        assert result.exit_code == 1


class TestPlanImport:
    """Tests for template import through the CLI."""

    @pytest.mark.parametrize(
        "document",
        [
            "title: X\ndays:\n  - day1\n",
            "title: X\ndays:\n  - meal_times:\n      - name: Lunch\n"
            "        foods:\n          - food: Egg\n            amount: lots\n",
            "title: [unclosed\n",
        ],
    )
    def test_malformed_template_reports_error(self, cli_db, tmp_path, document):
        path = tmp_path / "plan.yaml"
        path.write_text(document)
        result, data = invoke_json(["plan", "import", str(path)])
        assert result.exit_code == 1
        assert data["error_type"] == "ValidationError"
