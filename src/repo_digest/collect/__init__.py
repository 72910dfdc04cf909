"""Pull request collection from the GitHub API."""

from repo_digest.collect.monthly import count_monthly
from repo_digest.collect.orchestrator import (
    DigestData,
    collect_digest,
    collect_monthly_counts,
    next_since,
)
from repo_digest.collect.progress import ProgressTracker, PullProgress
from repo_digest.collect.pulls import (
    collect_pulls,
    fetch_pull_details,
    is_ignored_file,
    list_repo_pulls,
)

__all__ = [
    "DigestData",
    "ProgressTracker",
    "PullProgress",
    "collect_digest",
    "collect_monthly_counts",
    "collect_pulls",
    "count_monthly",
    "fetch_pull_details",
    "is_ignored_file",
    "list_repo_pulls",
    "next_since",
]
