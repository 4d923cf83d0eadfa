"""Tests for catalog CSV import and export."""

from __future__ import annotations

import pandas as pd
import pytest

from mealtrack.data.catalog_loader import CatalogLoader, load_catalog_from_csv
from mealtrack.templates.queries import FoodQueries


@pytest.fixture
def catalog_csv(tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text(
        "name,serving_size,serving_unit,calories,protein,carbs,fat\n"
        "Rolled oats,100,gram,379,13.2,67.7,6.5\n"
        "Banana,1,piece,105,1.3,27,\n"
        "Mystery,1,handful,50,1,1,1\n"
        "No calories,100,gram,,1,1,1\n"
    )
    return path


class TestCatalogLoader:
    """Tests for CSV import."""

    def test_load(self, temp_db, catalog_csv):
        with temp_db.get_connection() as conn:
            counts = CatalogLoader(conn).load_from_csv(catalog_csv)
            foods = FoodQueries.search_foods(conn, kind="catalog")

        assert counts == {
            "loaded": 2,
            "updated": 0,
            "skipped_missing_nutrition": 1,
            "skipped_invalid_unit": 1,
        }
        banana = next(f for f in foods if f.name == "Banana")
        assert banana.serving_unit.value == "piece"
        assert banana.per_serving.fat == 0.0

    def test_reimport_updates(self, temp_db, catalog_csv):
        with temp_db.get_connection() as conn:
            load_catalog_from_csv(catalog_csv, conn)
            counts = load_catalog_from_csv(catalog_csv, conn)
            names = FoodQueries.get_catalog_names(conn)

        assert counts["loaded"] == 0
        assert counts["updated"] == 2
        assert names == {"Rolled oats", "Banana"}

    def test_missing_columns(self, temp_db, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("name,calories\nOats,379\n")
        with temp_db.get_connection() as conn:
            with pytest.raises(ValueError, match="serving_size"):
                CatalogLoader(conn).load_from_csv(path)

    def test_export_round_trip(self, temp_db, catalog_csv, tmp_path):
        out = tmp_path / "export.csv"
        with temp_db.get_connection() as conn:
            loader = CatalogLoader(conn)
            loader.load_from_csv(catalog_csv)
            written = loader.export_template(out)

        assert written == 2
        df = pd.read_csv(out)
        assert list(df["name"]) == ["Banana", "Rolled oats"]
        assert set(CatalogLoader.REQUIRED_COLUMNS) <= set(df.columns)

    def test_export_header_only(self, temp_db, catalog_csv, tmp_path):
        out = tmp_path / "blank.csv"
        with temp_db.get_connection() as conn:
            loader = CatalogLoader(conn)
            loader.load_from_csv(catalog_csv)
            assert loader.export_template(out, include_foods=False) == 0
        assert out.read_text().startswith("name,serving_size,serving_unit")
