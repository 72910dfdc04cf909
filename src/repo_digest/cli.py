"""CLI entry point for repo-digest.

Commands:
- digest: Fetch pull request activity and write an HTML digest
- monthly: Print pull request counts per calendar month
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console

from repo_digest import __version__
from repo_digest.collect.orchestrator import collect_digest, collect_monthly_counts, next_since
from repo_digest.collect.progress import ProgressTracker, PullProgress
from repo_digest.config import ConfigError, DigestConfig, build_config
from repo_digest.github.auth import AuthenticationError
from repo_digest.github.http import GitHubHTTPError
from repo_digest.logging import setup_logging
from repo_digest.metrics.monthly import month_labels
from repo_digest.report.build import ReportError, render_digest, write_digest
from repo_digest.timeutil import TimeParseError, format_rfc3339

logger = logging.getLogger(__name__)

console = Console(stderr=True)

FATAL_ERRORS = (
    AuthenticationError,
    ConfigError,
    GitHubHTTPError,
    ReportError,
    TimeParseError,
)


def _default_since() -> str:
    """Local midnight of the current day."""
    now = datetime.now().astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0).isoformat()


def _config_from_options(config_path: Path | None, **options: Any) -> DigestConfig:
    repos = options.pop("repos")
    values = {"repos": list(repos) if repos else None, **options}
    return build_config(values, config_path, defaults={"since": _default_since()})


def _fail(ctx: click.Context, error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}", highlight=False)
    if ctx.obj.get("verbose"):
        import traceback

        console.print("\n[dim]Traceback:[/dim]")
        console.print(traceback.format_exc())
    raise click.Abort() from error


def common_options(func: Any) -> Any:
    """Options shared by every command that talks to GitHub."""
    options = [
        click.option(
            "--config",
            "-c",
            "config_path",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="YAML file with default values for any option",
        ),
        click.option(
            "--repo",
            "-r",
            "repos",
            multiple=True,
            help="GitHub owner and repository, formatted as :owner/:repo (repeatable)",
        ),
        click.option(
            "--since",
            "-s",
            default=None,
            help="Include pull requests opened or closed after this RFC 3339 time "
            "(default: midnight today)",
        ),
        click.option(
            "--before",
            "-b",
            default=None,
            help="Exclude pull requests opened or closed at or after this RFC 3339 time",
        ),
        click.option(
            "--token",
            "-t",
            default=None,
            help="GitHub access token for authorized rate limits (default: $GITHUB_TOKEN)",
        ),
        click.option(
            "--host",
            default=None,
            help="API base URL for GitHub Enterprise (default: https://api.github.com/)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="repo-digest")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Generate HTML digests of GitHub pull request activity.

    The digest has two sections: pull requests opened since the --since
    time, and pull requests merged since then. Each entry shows the title,
    author, size and the subdirectories most affected, and entries are
    ordered by total modification size (additions + deletions).

    Without a token GitHub allows only 60 requests per hour. Create a token
    with the public_repo scope for 5000 requests per hour.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose)


@main.command()
@common_options
@click.option(
    "--template",
    "-p",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Jinja2 HTML template file (see repo_digest/report/templates/)",
)
@click.option(
    "--outdir",
    "-o",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory",
)
@click.option(
    "--inline-styles/--no-inline-styles",
    default=None,
    help="Inline CSS into style attributes for email clients",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Hide the progress display")
@click.pass_context
def digest(
    ctx: click.Context,
    config_path: Path | None,
    quiet: bool,
    **options: Any,
) -> None:
    """Fetch pull request activity and write an HTML digest.

    Prints the digest path and the --since value to use for the next run.

    \b
    Example:
        repo-digest digest --repo=cockroachdb/cockroach \\
            --template=digest.html --since=2016-05-04T00:00:00Z
    """
    try:
        cfg = _config_from_options(config_path, **options)
        template = cfg.require_template()

        console.print(f"[bold]Fetching GitHub data for {', '.join(cfg.repos)}[/bold]")
        progress = PullProgress()
        with ProgressTracker(progress, quiet=quiet, console=console) as tracker:
            data = asyncio.run(collect_digest(cfg, progress))
        logger.info("Collection finished: %s", tracker.get_summary())

        console.print(f"[bold cyan]Creating digest:[/bold cyan] {progress.summary()}")
        html = render_digest(data, template, inline_styles=cfg.inline_styles)
        path = write_digest(html, cfg.out_dir)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise click.Abort() from None
    except FATAL_ERRORS as e:
        _fail(ctx, e)

    click.echo(f"digest: {path}")
    click.echo(f"nextsince: {format_rfc3339(next_since(data.open, data.closed))}")


@main.command()
@common_options
@click.pass_context
def monthly(ctx: click.Context, config_path: Path | None, **options: Any) -> None:
    """Print the number of pull requests created per calendar month.

    Months are counted back from --before (or now) to --since, newest first.
    """
    try:
        cfg = _config_from_options(config_path, **options)
        now = cfg.now
        counts = asyncio.run(collect_monthly_counts(cfg, now=now))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise click.Abort() from None
    except FATAL_ERRORS as e:
        _fail(ctx, e)

    for label, count in zip(month_labels(now, len(counts)), counts, strict=True):
        click.echo(f"{label}  {count}")


if __name__ == "__main__":
    main()
