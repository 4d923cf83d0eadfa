"""Reference data ingestion."""

from mealtrack.data.catalog_loader import CatalogLoader, load_catalog_from_csv

__all__ = ["CatalogLoader", "load_catalog_from_csv"]
