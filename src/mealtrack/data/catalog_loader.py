"""Load and validate catalog foods from CSV files."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import pandas as pd

from mealtrack.templates.models import Unit

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Handles importing catalog foods from CSV files."""

    REQUIRED_COLUMNS = ["name", "serving_size", "serving_unit", "calories"]
    OPTIONAL_COLUMNS = ["protein", "carbs", "fat"]

    def __init__(self, conn: sqlite3.Connection):
        """Initialize the catalog loader.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn

    def load_from_csv(self, csv_path: Path) -> dict[str, int]:
        """Load catalog foods from a CSV file.

        CSV format:
            name,serving_size,serving_unit,calories,protein,carbs,fat
            Rolled oats,100,gram,379,13.2,67.7,6.5

        A row whose name is already in the catalog updates that food.

        Args:
            csv_path: Path to the CSV file

        Returns:
            Dict with counts: {'loaded', 'updated', 'skipped_missing_nutrition',
            'skipped_invalid_unit'}

        Raises:
            ValueError: If required columns are missing
        """
        df = pd.read_csv(csv_path)

        missing = set(self.REQUIRED_COLUMNS) - set(df.columns)
        if missing:
            raise ValueError(
                f"Missing required columns: {sorted(missing)}. "
                f"Required columns are: {self.REQUIRED_COLUMNS}"
            )

        existing = self._get_catalog_ids()
        valid_units = {u.value for u in Unit}

        loaded = 0
        updated = 0
        skipped_missing_nutrition = 0
        skipped_invalid_unit = 0

        for _, row in df.iterrows():
            if pd.isna(row["name"]) or pd.isna(row["calories"]) or pd.isna(row["serving_size"]):
                skipped_missing_nutrition += 1
                continue

            unit = str(row["serving_unit"]).strip().lower()
            if unit not in valid_units:
                skipped_invalid_unit += 1
                logger.warning("Skipping '%s': unknown unit '%s'", row["name"], unit)
                continue

            name = str(row["name"]).strip()
            values = (
                float(row["serving_size"]),
                unit,
                float(row["calories"]),
                self._optional(row, "protein"),
                self._optional(row, "carbs"),
                self._optional(row, "fat"),
            )
            if name in existing:
                self.conn.execute(
                    """
                    UPDATE foods
                    SET serving_size = ?, serving_unit = ?, calories = ?,
                        protein = ?, carbs = ?, fat = ?
                    WHERE food_id = ?
                    """,
                    (*values, existing[name]),
                )
                updated += 1
            else:
                cursor = self.conn.execute(
                    """
                    INSERT INTO foods
                        (kind, name, serving_size, serving_unit, calories, protein, carbs, fat)
                    VALUES ('catalog', ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (name, *values),
                )
                existing[name] = cursor.lastrowid
                loaded += 1

        logger.info("Catalog import from %s: %d new, %d updated", csv_path, loaded, updated)
        return {
            "loaded": loaded,
            "updated": updated,
            "skipped_missing_nutrition": skipped_missing_nutrition,
            "skipped_invalid_unit": skipped_invalid_unit,
        }

    def _get_catalog_ids(self) -> dict[str, int]:
        cursor = self.conn.execute("SELECT name, food_id FROM foods WHERE kind = 'catalog'")
        return {row[0]: row[1] for row in cursor.fetchall()}

    @staticmethod
    def _optional(row: pd.Series, column: str) -> float:
        value = row.get(column)
        if value is None or pd.isna(value):
            return 0.0
        return float(value)

    def export_template(self, output_path: Path, include_foods: bool = True) -> int:
        """Export a CSV in the import format.

        Args:
            output_path: Path to write the CSV
            include_foods: If True, include every catalog food for editing;
                otherwise write the header only

        Returns:
            Number of foods written
        """
        query = """
            SELECT name, serving_size, serving_unit, calories, protein, carbs, fat
            FROM foods WHERE kind = 'catalog'
            ORDER BY name
        """
        if not include_foods:
            query += " LIMIT 0"

        df = pd.read_sql_query(query, self.conn)
        df.to_csv(output_path, index=False)
        return len(df)


def load_catalog_from_csv(csv_path: Path, conn: sqlite3.Connection) -> dict[str, int]:
    """Convenience function to load catalog foods from CSV.

    Args:
        csv_path: Path to catalog CSV
        conn: Database connection

    Returns:
        Dict with load statistics
    """
    return CatalogLoader(conn).load_from_csv(csv_path)
