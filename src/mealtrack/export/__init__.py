"""Output formatters and JSON field contracts."""

from mealtrack.export.formatters import JSONFormatter, MarkdownFormatter, TableFormatter

__all__ = ["TableFormatter", "JSONFormatter", "MarkdownFormatter"]
