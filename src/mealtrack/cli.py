"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mealtrack.agent import create_response, error_from_exception
from mealtrack.config import get_settings
from mealtrack.db import get_db
from mealtrack.errors import MealTrackError, ValidationError
from mealtrack.export import JSONFormatter, MarkdownFormatter, TableFormatter
from mealtrack.export import serialization as ser
from mealtrack.nutrition.models import Nutrition
from mealtrack.reporting.goals import CalorieGoal
from mealtrack.reporting.reporter import GoalAdherenceReporter
from mealtrack.scheduling.models import RecurrenceRequest, Weekday
from mealtrack.scheduling.service import ScheduleService
from mealtrack.session import SessionContext, local_session
from mealtrack.templates.models import FOOD_KINDS
from mealtrack.templates.queries import FoodQueries, TemplateQueries
from mealtrack.tracking.food_log import FoodLog
from mealtrack.tracking.tracker import ConsumptionTracker

app = typer.Typer(
    help="Meal-plan scheduling and consumption tracking",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

STATUS_FILTERS: dict[str, Optional[bool]] = {"all": None, "completed": True, "open": False}
REPORT_FORMATS = ("table", "json", "markdown")

# Subcommand groups
foods_app = typer.Typer(help="Manage the food catalog")
plan_app = typer.Typer(help="Import and inspect meal-plan templates")
schedule_app = typer.Typer(help="Apply templates to the calendar")
meals_app = typer.Typer(help="Browse scheduled meals")
consume_app = typer.Typer(help="Log what was eaten from scheduled meals")
entries_app = typer.Typer(help="Manual food log")
goals_app = typer.Typer(help="Daily nutrition goals")

app.add_typer(foods_app, name="foods")
app.add_typer(plan_app, name="plan")
app.add_typer(schedule_app, name="schedule")
app.add_typer(meals_app, name="meals")
app.add_typer(consume_app, name="consume")
app.add_typer(entries_app, name="entries")
app.add_typer(goals_app, name="goals")


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def ensure_tables() -> None:
    """Ensure all tables exist (idempotent)."""
    get_db().initialize_schema()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def session_for(user_id: Optional[int]) -> SessionContext:
    """Local session for the given user, or the configured default user."""
    return local_session(user_id if user_id is not None else get_settings().defaults.user_id)


@contextmanager
def handle_errors(command: str, json_output: bool) -> Iterator[None]:
    """Report engine errors as a JSON envelope or a red message, then exit 1."""
    try:
        yield
    except MealTrackError as e:
        if json_output:
            output_json(error_from_exception(command, e).to_dict())
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def parse_days(value: str) -> frozenset[Weekday]:
    try:
        return frozenset(Weekday.parse(d) for d in value.split(",") if d.strip())
    except ValueError as e:
        raise ValidationError(str(e)) from e


def parse_optional_date(value: Optional[str], name: str, default: date) -> date:
    return ser.parse_date(value, name) if value else default


# Callbacks for sub-apps to auto-create tables on first use
@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Meal-plan scheduling and consumption tracking."""
    configure_logging("DEBUG" if verbose else get_settings().logging.level)


@foods_app.callback()
def foods_callback() -> None:
    """Ensure tables exist before any foods command."""
    ensure_tables()


@plan_app.callback()
def plan_callback() -> None:
    """Ensure tables exist before any plan command."""
    ensure_tables()


@schedule_app.callback()
def schedule_callback() -> None:
    """Ensure tables exist before any schedule command."""
    ensure_tables()


@meals_app.callback()
def meals_callback() -> None:
    """Ensure tables exist before any meals command."""
    ensure_tables()


@consume_app.callback()
def consume_callback() -> None:
    """Ensure tables exist before any consume command."""
    ensure_tables()


@entries_app.callback()
def entries_callback() -> None:
    """Ensure tables exist before any entries command."""
    ensure_tables()


@goals_app.callback()
def goals_callback() -> None:
    """Ensure tables exist before any goals command."""
    ensure_tables()


# ============================================================================
# Main Commands
# ============================================================================


@app.command()
def init(
    catalog_csv: Optional[Path] = typer.Argument(
        None, help="Optional catalog CSV to import"
    ),
) -> None:
    """Create the database and optionally import a food catalog."""
    from mealtrack.data.catalog_loader import CatalogLoader

    db = get_db()
    db.initialize_schema()
    console.print(f"[green]Database ready:[/green] {db.db_path}")
    for table in ("foods", "meal_plans", "applied_meal_plans"):
        console.print(f"  {table}: {db.get_table_count(table)} rows")

    if catalog_csv is None:
        return
    if not catalog_csv.exists():
        console.print(f"[red]File not found: {catalog_csv}[/red]")
        raise typer.Exit(1)

    with db.get_connection() as conn:
        counts = CatalogLoader(conn).load_from_csv(catalog_csv)
    console.print(f"[green]Imported {counts['loaded']} catalog foods[/green]")


@app.command()
def report(
    date_from: Optional[str] = typer.Option(None, "--from", help="First day (default: 6 days ago)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last day (default: today)"),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="table, json or markdown"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write json/markdown output to a file"
    ),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Totals, averages and goal adherence over a date range."""
    ensure_tables()
    fmt = output_format or get_settings().defaults.output_format

    with handle_errors("report", json_output):
        if fmt not in REPORT_FORMATS:
            raise ValidationError(f"--format must be table, json or markdown, got '{fmt}'")
        end = parse_optional_date(date_to, "--to", date.today())
        start = parse_optional_date(date_from, "--from", end - timedelta(days=6))
        result = GoalAdherenceReporter(get_db(), get_settings()).report(
            session_for(user_id), start, end
        )

    if json_output:
        output_json(
            create_response(
                "report",
                data=ser.report_to_dict(result),
                human_summary=(
                    f"{result.total_days} days, "
                    f"{result.averages.calories:.0f} kcal/day average"
                ),
            ).to_dict()
        )
        return

    if fmt == "table":
        TableFormatter(console).format_report(result)
        return

    text = JSONFormatter().format(result) if fmt == "json" else MarkdownFormatter().format(result)
    if output:
        output.write_text(text)
        console.print(f"[green]Report written to {output}[/green]")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


@app.command()
def stats(
    date_from: Optional[str] = typer.Option(None, "--from", help="First day (default: 6 days ago)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last day (default: today)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Scheduled-meal completion and consumed vs planned nutrition."""
    ensure_tables()
    with handle_errors("stats", json_output):
        end = parse_optional_date(date_to, "--to", date.today())
        start = parse_optional_date(date_from, "--from", end - timedelta(days=6))
        result = GoalAdherenceReporter(get_db(), get_settings()).tracking_stats(
            session_for(user_id), start, end
        )

    if json_output:
        output_json(
            create_response(
                "stats",
                data=ser.tracking_stats_to_dict(result),
                human_summary=(
                    f"{result.completed_meals}/{result.total_meals} meals completed"
                ),
            ).to_dict()
        )
    else:
        TableFormatter(console).format_stats(result)


@app.command()
def daily(
    day_str: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """One day's meals, food log, totals and goal progress."""
    ensure_tables()
    with handle_errors("daily", json_output):
        day = parse_optional_date(day_str, "--date", date.today())
        log = GoalAdherenceReporter(get_db(), get_settings()).daily_log(
            session_for(user_id), day
        )

    if json_output:
        output_json(
            create_response(
                "daily",
                data=ser.daily_log_to_dict(log),
                human_summary=f"{log.totals.total.calories:.0f} kcal on {day.isoformat()}",
            ).to_dict()
        )
    else:
        TableFormatter(console).format_daily_log(log)


# ============================================================================
# Foods
# ============================================================================


@foods_app.command("import")
def foods_import(
    csv_path: Path = typer.Argument(..., help="Path to catalog CSV file"),
) -> None:
    """Import catalog foods from CSV file."""
    from mealtrack.data.catalog_loader import CatalogLoader

    if not csv_path.exists():
        console.print(f"[red]File not found: {csv_path}[/red]")
        raise typer.Exit(1)

    with get_db().get_connection() as conn:
        try:
            counts = CatalogLoader(conn).load_from_csv(csv_path)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]Imported {counts['loaded']} foods[/green]")
    if counts["updated"]:
        console.print(f"Updated {counts['updated']} existing foods")
    if counts["skipped_missing_nutrition"]:
        console.print(
            f"[yellow]Skipped {counts['skipped_missing_nutrition']} "
            f"rows with missing nutrition[/yellow]"
        )
    if counts["skipped_invalid_unit"]:
        console.print(
            f"[yellow]Skipped {counts['skipped_invalid_unit']} "
            f"rows with unknown units[/yellow]"
        )


@foods_app.command("template")
def foods_template(
    output: Path = typer.Argument(..., help="CSV file to write"),
    empty: bool = typer.Option(False, "--empty", help="Header only, no foods"),
) -> None:
    """Export the catalog (or a blank template) in the import format."""
    from mealtrack.data.catalog_loader import CatalogLoader

    with get_db().get_connection() as conn:
        count = CatalogLoader(conn).export_template(output, include_foods=not empty)
    console.print(f"[green]Wrote {count} foods to {output}[/green]")


@foods_app.command("list")
def foods_list(
    search: str = typer.Option("", "--search", "-s", help="Name contains"),
    kind: Optional[str] = typer.Option(None, "--kind", help="catalog, custom or adhoc"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum results"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List foods."""
    if kind is not None and kind not in FOOD_KINDS:
        console.print(f"[red]--kind must be one of {', '.join(FOOD_KINDS)}[/red]")
        raise typer.Exit(1)

    with get_db().get_connection() as conn:
        foods = FoodQueries.search_foods(conn, search, kind=kind, limit=limit)

    if json_output:
        output_json(
            create_response(
                "foods list",
                data={
                    "foods": [
                        {
                            "id": f.food_id,
                            "name": f.name,
                            "kind": f.kind,
                            "serving_size": f.serving_size,
                            "serving_unit": f.serving_unit.value,
                            **f.per_serving.to_dict(),
                        }
                        for f in foods
                    ]
                },
                human_summary=f"{len(foods)} foods",
            ).to_dict()
        )
        return

    if not foods:
        console.print("No foods found")
        return

    table = Table(title="Foods")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Kind")
    table.add_column("Serving", justify="right")
    table.add_column("kcal", justify="right")
    table.add_column("P", justify="right")
    table.add_column("C", justify="right")
    table.add_column("F", justify="right")
    for f in foods:
        n = f.per_serving
        table.add_row(
            str(f.food_id),
            f.name[:40],
            f.kind,
            f"{f.serving_size:g} {f.serving_unit.value}",
            f"{n.calories:.0f}",
            f"{n.protein:.1f}",
            f"{n.carbs:.1f}",
            f"{n.fat:.1f}",
        )
    console.print(table)


# ============================================================================
# Templates
# ============================================================================


@plan_app.command("import")
def plan_import(
    yaml_path: Path = typer.Argument(..., help="Template YAML file"),
    user_id: Optional[int] = typer.Option(None, "--user", help="Author user ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Import a meal-plan template from YAML."""
    from mealtrack.templates.loader import import_template

    if not yaml_path.exists():
        console.print(f"[red]File not found: {yaml_path}[/red]")
        raise typer.Exit(1)

    with handle_errors("plan import", json_output):
        with get_db().get_connection() as conn:
            plan = import_template(conn, yaml_path, created_by=session_for(user_id).user_id)

    if json_output:
        output_json(
            create_response(
                "plan import",
                data=ser.meal_plan_to_dict(plan),
                human_summary=f"Imported '{plan.title}' as plan {plan.meal_plan_id}",
            ).to_dict()
        )
    else:
        console.print(
            f"[green]Imported[/green] '{plan.title}' as plan {plan.meal_plan_id} "
            f"({len(plan.daily_plans)} days)"
        )


@plan_app.command("show")
def plan_show(
    meal_plan_id: int = typer.Argument(..., help="Meal plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show a template with nutrition totals per meal and day."""
    with get_db().get_connection() as conn:
        plan = TemplateQueries.get_meal_plan(conn, meal_plan_id)

    if plan is None:
        if json_output:
            output_json(
                create_response(
                    "plan show", success=False, errors=[f"Meal plan {meal_plan_id} not found"]
                ).to_dict()
            )
        else:
            console.print(f"[red]Meal plan {meal_plan_id} not found[/red]")
        raise typer.Exit(1)

    if json_output:
        output_json(create_response("plan show", data=ser.meal_plan_to_dict(plan)).to_dict())
    else:
        TableFormatter(console).format_plan(plan)


@plan_app.command("list")
def plan_list(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List templates."""
    with get_db().get_connection() as conn:
        rows = TemplateQueries.list_meal_plans(conn)

    if json_output:
        output_json(
            create_response(
                "plan list",
                data={"meal_plans": [dict(r) for r in rows]},
                human_summary=f"{len(rows)} meal plans",
            ).to_dict()
        )
        return

    if not rows:
        console.print("No meal plans. Import one with: [cyan]mealtrack plan import <yaml>[/cyan]")
        return

    table = Table(title="Meal Plans")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Goal")
    table.add_column("Status")
    table.add_column("Days", justify="right")
    for r in rows:
        table.add_row(
            str(r["meal_plan_id"]),
            r["title"],
            r["goal"] or "-",
            r["status"],
            str(r["daily_plans_count"]),
        )
    console.print(table)


# ============================================================================
# Scheduling
# ============================================================================


def _print_applied(command: str, result, json_output: bool) -> None:
    plan = result.applied_plan
    if json_output:
        data = ser.applied_plan_to_dict(plan)
        data["scheduled_meals_count"] = len(result.scheduled_meals)
        output_json(
            create_response(
                command,
                data=data,
                human_summary=(
                    f"Scheduled {len(result.scheduled_meals)} meals "
                    f"from {plan.start_date.isoformat()} to {plan.end_date.isoformat()}"
                ),
            ).to_dict()
        )
    else:
        console.print(
            f"[green]Applied plan {plan.applied_plan_id}:[/green] "
            f"{len(result.scheduled_meals)} meals scheduled "
            f"({plan.start_date.isoformat()} to {plan.end_date.isoformat()})"
        )


@schedule_app.command("apply")
def schedule_apply(
    meal_plan_id: int = typer.Argument(..., help="Template to apply"),
    days: str = typer.Option(..., "--days", help="Weekdays, e.g. mon,wed,fri"),
    weeks: int = typer.Option(1, "--weeks", "-w", help="Number of weeks (1-52)"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date (default: today)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Apply a template to your calendar."""
    with handle_errors("schedule apply", json_output):
        request = RecurrenceRequest(
            meal_plan_id=meal_plan_id,
            selected_days=parse_days(days),
            weeks_count=weeks,
            start_date=parse_optional_date(start, "--start", date.today()),
        )
        result = ScheduleService(get_db(), get_settings()).apply_meal_plan(
            session_for(user_id), request
        )
    _print_applied("schedule apply", result, json_output)


@schedule_app.command("assign")
def schedule_assign(
    meal_plan_id: int = typer.Argument(..., help="Template to assign"),
    client_id: int = typer.Option(..., "--client", help="Client user ID"),
    days: str = typer.Option(..., "--days", help="Weekdays, e.g. mon,wed,fri"),
    weeks: int = typer.Option(1, "--weeks", "-w", help="Number of weeks (1-52)"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date (default: today)"),
    coach_id: Optional[int] = typer.Option(None, "--user", help="Coach user ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Assign a template to a client's calendar."""
    with handle_errors("schedule assign", json_output):
        request = RecurrenceRequest(
            meal_plan_id=meal_plan_id,
            selected_days=parse_days(days),
            weeks_count=weeks,
            start_date=parse_optional_date(start, "--start", date.today()),
        )
        coach = local_session(session_for(coach_id).user_id, role="coach")
        result = ScheduleService(get_db(), get_settings()).assign_meal_plan(
            coach, client_id, request
        )
    _print_applied("schedule assign", result, json_output)


@schedule_app.command("list")
def schedule_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include deactivated plans"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List applied plans."""
    with handle_errors("schedule list", json_output):
        plans = ScheduleService(get_db(), get_settings()).list_applied_plans(
            session_for(user_id), active_only=not show_all
        )

    if json_output:
        output_json(
            create_response(
                "schedule list",
                data={"applied_plans": [ser.applied_plan_to_dict(p)["applied_plan"] for p in plans]},
                human_summary=f"{len(plans)} applied plans",
            ).to_dict()
        )
        return

    if not plans:
        console.print("No applied plans")
        return

    table = Table(title="Applied Plans")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Template", style="cyan")
    table.add_column("Days")
    table.add_column("Weeks", justify="right")
    table.add_column("Window")
    table.add_column("Source")
    table.add_column("Active", justify="center")
    for p in plans:
        table.add_row(
            str(p.applied_plan_id),
            p.meal_plan_title or str(p.meal_plan_id),
            ",".join(d.value[:3] for d in p.selected_days),
            str(p.weeks_count),
            f"{p.start_date.isoformat()} - {p.end_date.isoformat()}",
            p.source.value,
            "[green]yes[/green]" if p.is_active else f"[dim]ended {p.deactivated_on}[/dim]",
        )
    console.print(table)


@schedule_app.command("deactivate")
def schedule_deactivate(
    applied_plan_id: int = typer.Argument(..., help="Applied plan ID"),
    on_date: Optional[str] = typer.Option(None, "--on", help="Last kept day (default: today)"),
    key: Optional[str] = typer.Option(None, "--key", help="Idempotency key"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Stop an applied plan; meals after the given day are dropped."""
    with handle_errors("schedule deactivate", json_output):
        on = ser.parse_date(on_date, "--on") if on_date else None
        result = ScheduleService(get_db(), get_settings()).deactivate_applied_plan(
            session_for(user_id), applied_plan_id, idempotency_key=key, on_date=on
        )

    summary = (
        f"Deactivated applied plan {applied_plan_id}"
        if result.deleted
        else f"Applied plan {applied_plan_id} was already inactive"
    )
    if json_output:
        output_json(
            create_response(
                "schedule deactivate",
                data=ser.delete_result_to_dict(result),
                human_summary=summary,
            ).to_dict()
        )
    else:
        console.print(f"[green]{summary}[/green]" if result.deleted else f"[yellow]{summary}[/yellow]")


# ============================================================================
# Scheduled meals
# ============================================================================


@meals_app.command("list")
def meals_list(
    date_from: Optional[str] = typer.Option(None, "--from", help="First day"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last day"),
    status: str = typer.Option("all", "--status", help="all, completed or open"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Meals to skip"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List scheduled meals with completion."""
    with handle_errors("meals list", json_output):
        if status not in STATUS_FILTERS:
            raise ValidationError(f"--status must be all, completed or open, got '{status}'")
        summaries = ScheduleService(get_db(), get_settings()).get_scheduled_meals(
            session_for(user_id),
            date_from=ser.parse_date(date_from, "--from") if date_from else None,
            date_to=ser.parse_date(date_to, "--to") if date_to else None,
            is_completed=STATUS_FILTERS[status],
            limit=limit,
            offset=offset,
        )

    if json_output:
        output_json(
            create_response(
                "meals list",
                data={"scheduled_meals": [ser.scheduled_meal_to_dict(s) for s in summaries]},
                human_summary=f"{len(summaries)} scheduled meals",
            ).to_dict()
        )
        return

    if not summaries:
        console.print("No scheduled meals")
        return
    TableFormatter(console).format_meals(summaries)


@meals_app.command("show")
def meals_show(
    scheduled_meal_id: int = typer.Argument(..., help="Scheduled meal ID"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show planned and consumed foods of a scheduled meal."""
    with handle_errors("meals show", json_output):
        summary = ScheduleService(get_db(), get_settings()).get_scheduled_meal_detail(
            session_for(user_id), scheduled_meal_id
        )

    if json_output:
        output_json(
            create_response(
                "meals show", data=ser.scheduled_meal_detail_to_dict(summary)
            ).to_dict()
        )
    else:
        TableFormatter(console).format_meal_detail(summary)


# ============================================================================
# Consumption
# ============================================================================


def _print_consumed(command: str, tracker: ConsumptionTracker, session, consumed_food_id: int,
                    json_output: bool) -> None:
    item = tracker.get_consumption(session, consumed_food_id)
    data = ser.consumed_food_to_dict(item)
    summary = (
        f"{item.planned.food.name}: {item.consumed.consumed_amount:g} "
        f"{item.consumed.consumed_unit.value} ({item.completion.completion_percentage:.0f}%)"
    )
    if json_output:
        output_json(create_response(command, data=data, human_summary=summary).to_dict())
    else:
        console.print(f"[green]Logged[/green] {summary}")


@consume_app.command("log")
def consume_log(
    scheduled_meal_id: int = typer.Argument(..., help="Scheduled meal ID"),
    planned_food_item_id: int = typer.Argument(..., help="Planned food item ID"),
    amount: float = typer.Argument(..., help="Amount eaten"),
    unit: str = typer.Option("gram", "--unit", "-u", help="Unit"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Optional notes"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log how much of a planned food was eaten."""
    session = session_for(user_id)
    tracker = ConsumptionTracker(get_db(), get_settings())
    with handle_errors("consume log", json_output):
        record = tracker.log_consumption(
            session, scheduled_meal_id, planned_food_item_id, amount, unit, notes
        )
        _print_consumed("consume log", tracker, session, record.consumed_food_id, json_output)


@consume_app.command("update")
def consume_update(
    consumed_food_id: int = typer.Argument(..., help="Consumption record ID"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="New amount"),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="New unit"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="New notes"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Change a consumption record."""
    session = session_for(user_id)
    tracker = ConsumptionTracker(get_db(), get_settings())
    with handle_errors("consume update", json_output):
        tracker.update_consumption(session, consumed_food_id, amount, unit, notes)
        _print_consumed("consume update", tracker, session, consumed_food_id, json_output)


def _print_delete(command: str, result, json_output: bool) -> None:
    summary = (
        f"Deleted {result.resource} {result.resource_id}"
        if result.deleted
        else f"Nothing to delete for {result.resource} {result.resource_id}"
    )
    if json_output:
        output_json(
            create_response(
                command, data=ser.delete_result_to_dict(result), human_summary=summary
            ).to_dict()
        )
    else:
        console.print(f"[green]{summary}[/green]" if result.deleted else f"[yellow]{summary}[/yellow]")


@consume_app.command("delete")
def consume_delete(
    consumed_food_id: int = typer.Argument(..., help="Consumption record ID"),
    key: Optional[str] = typer.Option(None, "--key", help="Idempotency key"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a consumption record."""
    with handle_errors("consume delete", json_output):
        result = ConsumptionTracker(get_db(), get_settings()).delete_consumption(
            session_for(user_id), consumed_food_id, idempotency_key=key
        )
    _print_delete("consume delete", result, json_output)


@consume_app.command("complete")
def consume_complete(
    scheduled_meal_id: int = typer.Argument(..., help="Scheduled meal ID"),
    planned_food_item_id: int = typer.Argument(..., help="Planned food item ID"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Mark a planned food as eaten in full."""
    session = session_for(user_id)
    tracker = ConsumptionTracker(get_db(), get_settings())
    with handle_errors("consume complete", json_output):
        record = tracker.quick_complete(session, scheduled_meal_id, planned_food_item_id)
        _print_consumed(
            "consume complete", tracker, session, record.consumed_food_id, json_output
        )


@consume_app.command("uncomplete")
def consume_uncomplete(
    scheduled_meal_id: int = typer.Argument(..., help="Scheduled meal ID"),
    planned_food_item_id: int = typer.Argument(..., help="Planned food item ID"),
    key: Optional[str] = typer.Option(None, "--key", help="Idempotency key"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Remove what was logged for a planned food."""
    with handle_errors("consume uncomplete", json_output):
        result = ConsumptionTracker(get_db(), get_settings()).quick_uncomplete(
            session_for(user_id), scheduled_meal_id, planned_food_item_id, idempotency_key=key
        )
    _print_delete("consume uncomplete", result, json_output)


# ============================================================================
# Manual food log
# ============================================================================


def _print_entry(command: str, entry, json_output: bool) -> None:
    summary = (
        f"{entry.food.name} ({entry.meal_type.value}, {entry.consumed_on.isoformat()}): "
        f"{entry.nutrition.calories:.0f} kcal"
    )
    if json_output:
        output_json(
            create_response(
                command, data=ser.food_entry_to_dict(entry), human_summary=summary
            ).to_dict()
        )
    else:
        console.print(f"[green]Logged[/green] {summary}")


@entries_app.command("add")
def entries_add(
    food_id: int = typer.Argument(..., help="Food ID"),
    amount: float = typer.Argument(..., help="Amount eaten"),
    unit: str = typer.Option("gram", "--unit", "-u", help="Unit"),
    meal_type: str = typer.Option("snack", "--meal-type", "-m", help="breakfast, lunch, dinner, snack, other"),
    day_str: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Optional notes"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log a food outside any scheduled meal."""
    with handle_errors("entries add", json_output):
        entry = FoodLog(get_db(), get_settings()).add_entry(
            session_for(user_id),
            food_id,
            amount,
            unit,
            meal_type,
            parse_optional_date(day_str, "--date", date.today()),
            notes=notes,
        )
    _print_entry("entries add", entry, json_output)


@entries_app.command("quick")
def entries_quick(
    name: str = typer.Argument(..., help="What was eaten"),
    calories: float = typer.Option(..., "--calories", "-c", help="Calories"),
    protein: float = typer.Option(0.0, "--protein", "-p", help="Protein (g)"),
    carbs: float = typer.Option(0.0, "--carbs", help="Carbs (g)"),
    fat: float = typer.Option(0.0, "--fat", "-f", help="Fat (g)"),
    meal_type: str = typer.Option("snack", "--meal-type", "-m", help="breakfast, lunch, dinner, snack, other"),
    day_str: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Quick add: log calories and macros without a stored food."""
    with handle_errors("entries quick", json_output):
        entry = FoodLog(get_db(), get_settings()).quick_add(
            session_for(user_id),
            name,
            Nutrition(calories=calories, protein=protein, carbs=carbs, fat=fat),
            meal_type,
            parse_optional_date(day_str, "--date", date.today()),
        )
    _print_entry("entries quick", entry, json_output)


@entries_app.command("list")
def entries_list(
    date_from: Optional[str] = typer.Option(None, "--from", help="First day (default: today)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last day (default: today)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List manual food-log entries."""
    with handle_errors("entries list", json_output):
        end = parse_optional_date(date_to, "--to", date.today())
        start = parse_optional_date(date_from, "--from", end)
        entries = FoodLog(get_db(), get_settings()).list_entries(
            session_for(user_id), start, end
        )

    if json_output:
        output_json(
            create_response(
                "entries list",
                data={"entries": [ser.food_entry_to_dict(e) for e in entries]},
                human_summary=f"{len(entries)} entries",
            ).to_dict()
        )
        return

    if not entries:
        console.print("No entries")
        return

    table = Table(title="Food Log")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Date")
    table.add_column("Meal type")
    table.add_column("Food", style="cyan", max_width=40)
    table.add_column("Amount", justify="right")
    table.add_column("kcal", justify="right")
    for e in entries:
        table.add_row(
            str(e.entry_id),
            e.consumed_on.isoformat(),
            e.meal_type.value,
            e.food.name[:40],
            f"{e.amount:g} {e.unit.value}",
            f"{e.nutrition.calories:.0f}",
        )
    console.print(table)


@entries_app.command("delete")
def entries_delete(
    entry_id: int = typer.Argument(..., help="Entry ID"),
    key: Optional[str] = typer.Option(None, "--key", help="Idempotency key"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a manual food-log entry."""
    with handle_errors("entries delete", json_output):
        result = FoodLog(get_db(), get_settings()).delete_entry(
            session_for(user_id), entry_id, idempotency_key=key
        )
    _print_delete("entries delete", result, json_output)


# ============================================================================
# Goals
# ============================================================================


@goals_app.command("set")
def goals_set(
    calories: Optional[float] = typer.Option(None, "--calories", "-c", help="Daily calories"),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Daily protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="Daily carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="Daily fat (g)"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Set the daily nutrition goal (replaces the active one)."""
    session = session_for(user_id)
    with handle_errors("goals set", json_output):
        try:
            goal = CalorieGoal(
                goal_id=None,
                user_id=session.user_id,
                daily_calories=calories,
                daily_protein=protein,
                daily_carbs=carbs,
                daily_fat=fat,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e
        stored = GoalAdherenceReporter(get_db(), get_settings()).set_goal(session, goal)

    if json_output:
        output_json(
            create_response(
                "goals set", data=ser.goal_to_dict(stored), human_summary="Goal updated"
            ).to_dict()
        )
    else:
        console.print("[green]Goal updated[/green]")


@goals_app.command("show")
def goals_show(
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the active nutrition goal."""
    with handle_errors("goals show", json_output):
        goal = GoalAdherenceReporter(get_db(), get_settings()).get_goal(session_for(user_id))

    if json_output:
        output_json(
            create_response(
                "goals show",
                data={"goal": ser.goal_to_dict(goal) if goal else None},
                human_summary="Active goal" if goal else "No active goal",
            ).to_dict()
        )
        return

    if goal is None:
        console.print("No active goal. Set one with: [cyan]mealtrack goals set --calories 2000[/cyan]")
        return

    table = Table(title="Daily Goal")
    table.add_column("Macro")
    table.add_column("Target", justify="right")
    for macro, target in goal.targets().items():
        table.add_row(macro, f"{target:g}")
    console.print(table)


if __name__ == "__main__":
    app()
