"""Progress tracking and display for pull request collection.

``PullProgress`` holds the running counts of a collection run and notifies
subscribers on every change; ``ProgressTracker`` is a subscriber that renders
those counts live in the terminal using the rich library.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.live import Live
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from repo_digest.metrics.changes import format_number

if TYPE_CHECKING:
    from types import TracebackType

ProgressListener = Callable[["PullProgress"], None]


@dataclass
class PullProgress:
    """Running counts of a collection run.

    All counts only ever grow during a run.
    """

    open: int = 0
    closed: int = 0
    listed: int = 0
    details_completed: int = 0
    details_total: int = 0
    current_repo: str = ""
    phase: str = ""
    _listeners: list[ProgressListener] = field(default_factory=list, repr=False)

    def subscribe(self, listener: ProgressListener) -> None:
        """Call ``listener`` with this object after every update."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def set_repo(self, repo: str) -> None:
        self.current_repo = repo
        self.phase = "listing"
        self._notify()

    def record_listed(self, count: int) -> None:
        """Add a fetched page of ``count`` records to the listed total."""
        self.listed += count
        self._notify()

    def record_open(self) -> None:
        self.open += 1
        self._notify()

    def record_closed(self) -> None:
        self.closed += 1
        self._notify()

    def start_details(self, total: int) -> None:
        """Announce ``total`` more pull requests awaiting detail fetches."""
        self.phase = "details"
        self.details_total += total
        self._notify()

    def record_detail(self) -> None:
        self.details_completed += 1
        self._notify()

    def summary(self) -> str:
        return (
            f"{format_number(self.open)} open {format_number(self.closed)} closed, "
            f"{format_number(self.listed)} total pull requests"
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "open": self.open,
            "closed": self.closed,
            "listed": self.listed,
            "details_completed": self.details_completed,
            "details_total": self.details_total,
        }


class ProgressTracker:
    """Displays collection progress in the terminal.

    Subscribes to a PullProgress and shows:
    - Listing counts (open, closed, total)
    - Detail fetch progress bar
    - Current repository
    """

    def __init__(
        self,
        progress: PullProgress,
        quiet: bool = False,
        console: Console | None = None,
    ) -> None:
        """Initialize progress tracker.

        Args:
            progress: Counts to display; the tracker subscribes to them.
            quiet: Disable the live display.
            console: Console to render to; defaults to stderr.
        """
        self.progress = progress
        self.quiet = quiet
        self.console = console or Console(stderr=True)
        self.start_time = time.time()
        self._live: Live | None = None
        self._bar: Progress | None = None
        self._details_task: TaskID | None = None

        progress.subscribe(self._on_update)

    def start(self) -> None:
        """Start progress display."""
        if self.quiet:
            return

        self._bar = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )
        self._details_task = self._bar.add_task("Detailed info", total=0)

        self._live = Live(
            self._create_display(),
            console=self.console,
            refresh_per_second=4,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop progress display."""
        if self._live:
            self._live.stop()
            self._live = None
        self._bar = None

    def _create_display(self) -> Table:
        table = Table(show_header=False, box=None, padding=(0, 1))

        if self.progress.current_repo:
            table.add_row(
                f"[bold cyan]Repo:[/] {self.progress.current_repo} [dim]({self.progress.phase})[/]"
            )

        table.add_row(f"[bold cyan]Listed:[/] {self.progress.summary()}")

        if self._bar and self.progress.details_total:
            table.add_row(self._bar)

        return table

    def _on_update(self, progress: PullProgress) -> None:
        if self._bar is not None and self._details_task is not None:
            self._bar.update(
                self._details_task,
                total=progress.details_total,
                completed=progress.details_completed,
            )
        if self._live:
            self._live.update(self._create_display())

    def get_summary(self) -> dict[str, Any]:
        """Get progress summary as a dictionary."""
        return {
            "elapsed_seconds": round(time.time() - self.start_time, 2),
            **self.progress.as_dict(),
        }

    def __enter__(self) -> ProgressTracker:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        self.stop()
