"""Derived pull request metrics."""

from repo_digest.metrics.changes import (
    SizeClass,
    Subdirectory,
    classify_size,
    format_number,
    sort_by_total_changes,
    subdirectory_breakdown,
    total_changes,
)
from repo_digest.metrics.monthly import bucket_index, empty_counts, month_boundaries

__all__ = [
    "SizeClass",
    "Subdirectory",
    "bucket_index",
    "classify_size",
    "empty_counts",
    "format_number",
    "month_boundaries",
    "sort_by_total_changes",
    "subdirectory_breakdown",
    "total_changes",
]
