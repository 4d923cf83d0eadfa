"""Output formatters for schedules, meals and reports."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mealtrack.export.serialization import report_to_dict
from mealtrack.nutrition.aggregator import MealSummary
from mealtrack.nutrition.models import MACROS, Nutrition
from mealtrack.reporting.models import DailyLog, PeriodReport, TrackingStats
from mealtrack.templates.models import MealPlan

_MACRO_UNITS = {"calories": "kcal", "protein": "g", "carbs": "g", "fat": "g"}


def _completion_style(percentage: float) -> str:
    if percentage >= 90:
        return "green"
    if percentage >= 75:
        return "yellow"
    return "red"


def _nutrition_cells(n: Nutrition) -> list[str]:
    return [f"{n.calories:.0f}", f"{n.protein:.1f}", f"{n.carbs:.1f}", f"{n.fat:.1f}"]


class TableFormatter:
    """Format engine results as Rich tables for terminal display."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize the formatter.

        Args:
            console: Rich console for output. If None, creates a new one.
        """
        self.console = console or Console()

    def format_meals(self, summaries: list[MealSummary], title: str = "Scheduled Meals") -> None:
        table = Table(title=title)
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Date")
        table.add_column("Week", justify="right")
        table.add_column("Day")
        table.add_column("Meal", style="cyan")
        table.add_column("Time")
        table.add_column("Foods", justify="right")
        table.add_column("Complete", justify="right")

        for s in summaries:
            meal = s.scheduled_meal
            style = _completion_style(s.completion_percentage)
            table.add_row(
                str(meal.scheduled_meal_id),
                meal.scheduled_date.strftime("%a %Y-%m-%d"),
                str(meal.week_number),
                meal.daily_plan_day,
                s.meal_time.name,
                s.meal_time.time_of_day.strftime("%H:%M") if s.meal_time.time_of_day else "-",
                f"{s.consumed_foods_count}/{s.total_foods_count}",
                f"[{style}]{s.completion_percentage:.0f}%[/{style}]",
            )

        self.console.print(table)

    def format_meal_detail(self, summary: MealSummary) -> None:
        meal = summary.scheduled_meal
        status = "[green]COMPLETED[/green]" if summary.is_completed else "[yellow]OPEN[/yellow]"
        header = [
            f"[bold]{summary.meal_time.name}[/bold] - {meal.scheduled_date.isoformat()} "
            f"({meal.daily_plan_day}, week {meal.week_number})",
            f"Status: {status}  {summary.completion_percentage:.0f}% "
            f"({summary.fully_consumed_count}/{summary.total_foods_count} foods fully eaten)",
        ]
        self.console.print(Panel("\n".join(header), title=f"Scheduled Meal {meal.scheduled_meal_id}"))

        logged = {i.planned.planned_food_item_id: i for i in summary.items}
        table = Table(title="Foods")
        table.add_column("Item", justify="right", style="dim")
        table.add_column("Food", style="cyan", max_width=40)
        table.add_column("Planned", justify="right")
        table.add_column("Consumed", justify="right")
        table.add_column("%", justify="right")
        table.add_column("kcal", justify="right")

        for item in summary.meal_time.food_items:
            entry = logged.get(item.planned_food_item_id)
            if entry is None:
                consumed, pct, kcal = "-", "-", "-"
            else:
                style = _completion_style(entry.completion.completion_percentage)
                consumed = f"{entry.consumed.consumed_amount:g} {entry.consumed.consumed_unit.value}"
                pct = f"[{style}]{entry.completion.completion_percentage:.0f}%[/{style}]"
                kcal = f"{entry.nutrition.calories:.0f}"
            table.add_row(
                str(item.planned_food_item_id),
                item.food.name[:40],
                f"{item.amount:g} {item.unit.value}",
                consumed,
                pct,
                kcal,
            )
        self.console.print(table)
        self._nutrition_table(
            "Nutrition",
            [("Planned", summary.planned_nutrition), ("Consumed", summary.consumed_nutrition)],
        )

    def format_plan(self, plan: MealPlan) -> None:
        header = [f"[bold]{plan.title}[/bold]", f"Status: {plan.status.value}"]
        if plan.goal:
            header.append(f"Goal: {plan.goal}")
        if plan.description:
            header.append(plan.description)
        self.console.print(Panel("\n".join(header), title=f"Meal Plan {plan.meal_plan_id}"))

        table = Table(title="Template")
        table.add_column("Day")
        table.add_column("Meal", style="cyan")
        table.add_column("Food", max_width=40)
        table.add_column("Amount", justify="right")
        for macro in MACROS:
            table.add_column(macro.title(), justify="right")

        for dp in plan.ordered_daily_plans:
            for mt in dp.meal_times:
                for item in mt.food_items:
                    table.add_row(
                        dp.day,
                        mt.name,
                        item.food.name[:40],
                        f"{item.amount:g} {item.unit.value}",
                        *_nutrition_cells(item.nutrition),
                    )
                table.add_row(
                    dp.day, f"[bold]{mt.name} total[/bold]", "", "",
                    *_nutrition_cells(mt.nutrition), style="dim",
                )
            table.add_row(
                f"[bold]{dp.day} total[/bold]", "", "", "",
                *_nutrition_cells(dp.nutrition), style="bold",
            )

        self.console.print(table)

    def format_report(self, report: PeriodReport) -> None:
        self.console.print(
            Panel(
                f"[bold]GOAL ADHERENCE[/bold] - {report.date_from.isoformat()} to "
                f"{report.date_to.isoformat()} ({report.total_days} days)",
                title="Report",
            )
        )
        self._nutrition_table(
            "Totals and Daily Averages",
            [("Total", report.totals), ("Daily average", report.averages)],
        )
        if report.daily_totals:
            self._nutrition_table(
                "Days with Intake",
                [(day.isoformat(), t.total) for day, t in report.daily_totals.items()],
            )

        if report.goal_adherence:
            table = Table(title="Goal Adherence")
            table.add_column("Macro")
            table.add_column("Goal", justify="right")
            table.add_column("Average", justify="right")
            table.add_column("Adherence", justify="right")
            for macro, a in report.goal_adherence.items():
                style = _completion_style(a.adherence_percentage)
                table.add_row(
                    macro,
                    f"{a.goal:g} {_MACRO_UNITS[macro]}",
                    f"{a.average_consumed:.1f}",
                    f"[{style}]{a.adherence_percentage:.1f}%[/{style}]",
                )
            self.console.print(table)
        else:
            self.console.print("[dim]No active goal; adherence not computed.[/dim]")

        table = Table(title="Manual Entries by Meal Type")
        table.add_column("Meal type")
        table.add_column("Entries", justify="right")
        for macro in MACROS:
            table.add_column(macro.title(), justify="right")
        for meal_type, b in report.meal_type_breakdown.items():
            table.add_row(meal_type, str(b.count), *_nutrition_cells(b.nutrition))
        self.console.print(table)

    def format_stats(self, stats: TrackingStats) -> None:
        self.console.print(
            f"Meals completed: [bold]{stats.completed_meals}/{stats.total_meals}[/bold] "
            f"({stats.completion_rate:.1f}%)"
        )
        self._nutrition_table(
            "Consumed vs Planned",
            [("Consumed", stats.consumed), ("Planned", stats.planned)],
        )

    def format_daily_log(self, log: DailyLog) -> None:
        self.console.print(Panel(f"[bold]{log.day.strftime('%A %Y-%m-%d')}[/bold]", title="Daily Log"))
        if log.meals:
            self.format_meals(log.meals, title="Scheduled Meals")
        if log.entries:
            table = Table(title="Food Log")
            table.add_column("ID", justify="right", style="dim")
            table.add_column("Meal type")
            table.add_column("Food", style="cyan", max_width=40)
            table.add_column("Amount", justify="right")
            table.add_column("kcal", justify="right")
            for e in log.entries:
                table.add_row(
                    str(e.entry_id),
                    e.meal_type.value,
                    e.food.name[:40],
                    f"{e.amount:g} {e.unit.value}",
                    f"{e.nutrition.calories:.0f}",
                )
            self.console.print(table)

        self._nutrition_table("Day Totals", [("Total", log.totals.total)])

        if log.goal_progress:
            table = Table(title="Goal Progress")
            table.add_column("Macro")
            table.add_column("Consumed", justify="right")
            table.add_column("Goal", justify="right")
            table.add_column("Remaining", justify="right")
            table.add_column("%", justify="right")
            for macro, p in log.goal_progress.items():
                style = _completion_style(p.percentage)
                table.add_row(
                    macro,
                    f"{p.consumed:.1f}",
                    f"{p.goal:g}",
                    f"{p.remaining:.1f}",
                    f"[{style}]{p.percentage:.0f}%[/{style}]",
                )
            self.console.print(table)

    def _nutrition_table(self, title: str, rows: list[tuple[str, Nutrition]]) -> None:
        table = Table(title=title)
        table.add_column("")
        for macro in MACROS:
            table.add_column(f"{macro.title()} ({_MACRO_UNITS[macro]})", justify="right")
        for label, n in rows:
            table.add_row(label, *_nutrition_cells(n))
        self.console.print(table)


class JSONFormatter:
    """Format results as JSON for programmatic use."""

    def format(self, report: PeriodReport) -> str:
        data = report_to_dict(report)
        data["generated_at"] = datetime.now().isoformat()
        return json.dumps(data, indent=2)


class MarkdownFormatter:
    """Format reports as Markdown for sharing with a coach."""

    def format(self, report: PeriodReport) -> str:
        lines = [
            "# Nutrition Report",
            "",
            f"**Period:** {report.date_from.isoformat()} to {report.date_to.isoformat()} "
            f"({report.total_days} days)",
            "",
            "## Daily Averages",
            "",
            "| Macro | Total | Daily average |",
            "|-------|------:|--------------:|",
        ]
        for macro in MACROS:
            lines.append(
                f"| {macro} | {report.totals.get(macro):.1f} | {report.averages.get(macro):.1f} |"
            )

        if report.goal_adherence:
            lines.extend(
                [
                    "",
                    "## Goal Adherence",
                    "",
                    "| Macro | Goal | Average | Adherence |",
                    "|-------|-----:|--------:|----------:|",
                ]
            )
            for macro, a in report.goal_adherence.items():
                lines.append(
                    f"| {macro} | {a.goal:g} | {a.average_consumed:.1f} | "
                    f"{a.adherence_percentage:.1f}% |"
                )

        lines.extend(
            [
                "",
                "## Manual Entries by Meal Type",
                "",
                "| Meal type | Entries | Calories |",
                "|-----------|--------:|---------:|",
            ]
        )
        for meal_type, b in report.meal_type_breakdown.items():
            lines.append(f"| {meal_type} | {b.count} | {b.nutrition.calories:.0f} |")

        if report.daily_totals:
            lines.extend(
                [
                    "",
                    "## Daily Totals",
                    "",
                    "| Day | Calories | Meals | Entries |",
                    "|-----|---------:|------:|--------:|",
                ]
            )
            for day, t in report.daily_totals.items():
                lines.append(
                    f"| {day.isoformat()} | {t.total.calories:.0f} | "
                    f"{t.meals_count} | {t.entries_count} |"
                )

        return "\n".join(lines) + "\n"
