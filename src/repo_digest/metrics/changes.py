"""Change-size metrics for pull requests.

Pure functions over already-filtered file lists: total change volume, a
five-step size class, and the attribution of changes to the directories they
touch.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repo_digest.models import PullRequest, PullRequestFile

# Upper bounds (exclusive) of additions plus deletions for each size class
TINY_PR = 20
SMALL_PR = 100
MEDIUM_PR = 500
LARGE_PR = 1000

# Subdirectories are listed until they account for more than this share
SUBDIRECTORY_COVERAGE = 0.80

ROOT_DIRECTORY = "/"


class SizeClass(IntEnum):
    """Ordinal size of a pull request, used for display only."""

    TINY = 1
    SMALL = 2
    MEDIUM = 3
    LARGE = 4
    HUGE = 5

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass
class Subdirectory:
    """Changed files of one pull request that share a parent directory."""

    name: str
    files: list[PullRequestFile] = field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return total_changes(self.files)


def total_changes(files: Iterable[PullRequestFile]) -> int:
    """Sum of additions and deletions over ``files``; 0 when there are none."""
    return sum(f.changes for f in files)


def classify_size(total: int) -> SizeClass:
    """Map a change total to its size class.

    Args:
        total: Additions plus deletions across the pull request.

    Returns:
        TINY below 20, SMALL below 100, MEDIUM below 500, LARGE below 1000,
        HUGE otherwise.
    """
    if total < TINY_PR:
        return SizeClass.TINY
    if total < SMALL_PR:
        return SizeClass.SMALL
    if total < MEDIUM_PR:
        return SizeClass.MEDIUM
    if total < LARGE_PR:
        return SizeClass.LARGE
    return SizeClass.HUGE


def subdirectory_breakdown(files: Sequence[PullRequestFile]) -> list[Subdirectory]:
    """Group changed files by parent directory, biggest first.

    Groups are sorted by their change total, descending, with ties kept in
    the order the directory was first seen. The list is cut after the first
    group that takes the running total above 80% of all changes, so at least
    one group is returned whenever there is any change at all.

    Args:
        files: Changed files, with ignored paths already removed.

    Returns:
        Leading subdirectories, or an empty list when nothing changed.
    """
    total = total_changes(files)
    if total == 0:
        return []

    groups: dict[str, Subdirectory] = {}
    for f in files:
        name = posixpath.dirname(f.filename) or ROOT_DIRECTORY
        if name not in groups:
            groups[name] = Subdirectory(name=name)
        groups[name].files.append(f)

    ordered = sorted(groups.values(), key=lambda sd: sd.total_changes, reverse=True)

    running = 0
    for i, subdir in enumerate(ordered):
        running += subdir.total_changes
        if running / total > SUBDIRECTORY_COVERAGE:
            return ordered[: i + 1]
    return ordered


def sort_by_total_changes(pulls: Iterable[PullRequest]) -> list[PullRequest]:
    """Return ``pulls`` ordered by total changes, largest first.

    The sort is stable: pull requests with equal totals keep their relative
    order.
    """
    return sorted(pulls, key=lambda pr: pr.total_changes, reverse=True)


def format_number(n: int | None) -> str:
    """Format an integer with thousands separators, e.g. 12345 -> "12,345"."""
    if n is None:
        return "0"
    return f"{int(n):,}"
