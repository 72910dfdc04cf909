"""Collection orchestrator for digest runs.

Opens the GitHub client for a run, drives the collectors in order and hands
the sorted result to the renderer.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from repo_digest.collect.monthly import count_monthly
from repo_digest.collect.progress import PullProgress
from repo_digest.collect.pulls import collect_pulls
from repo_digest.config import DigestConfig
from repo_digest.github.auth import GitHubAuth, gh_hostname
from repo_digest.github.http import GitHubClient
from repo_digest.github.rest import RestClient
from repo_digest.metrics.changes import sort_by_total_changes
from repo_digest.models import PullRequest
from repo_digest.timeutil import TimeParseError, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class DigestData:
    """Everything the renderer needs for one digest."""

    repos: list[str]
    since: datetime
    before: datetime | None
    open: list[PullRequest] = field(default_factory=list)
    closed: list[PullRequest] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def repo(self) -> str:
        return ", ".join(self.repos)


def create_client(
    config: DigestConfig, transport: httpx.AsyncBaseTransport | None = None
) -> GitHubClient:
    """Build the HTTP client for a run from its configuration."""
    auth = GitHubAuth(token=config.token, hostname=gh_hostname(config.host))
    return GitHubClient(
        auth=auth,
        timeout=config.timeout,
        base_url=config.host,
        transport=transport,
    )


async def collect_digest(
    config: DigestConfig,
    progress: PullProgress | None = None,
    http_client: GitHubClient | None = None,
) -> DigestData:
    """Collect and sort the pull requests of a digest.

    Args:
        config: Run configuration.
        progress: Optional progress counts to update.
        http_client: Client to use instead of one built from ``config``.

    Returns:
        DigestData with both sets sorted by total changes, largest first.

    Raises:
        GitHubHTTPError: If any request fails.
        TimeParseError: If a required timestamp is malformed.
    """
    client = http_client or create_client(config)
    async with client:
        logger.info("Collecting pull requests from %s", client.base_url)
        rest_client = RestClient(client)
        open_pulls, closed_pulls = await collect_pulls(rest_client, config, progress)
        logger.debug("Made %d API requests", client.rate_limit_state.requests_made)

    return DigestData(
        repos=list(config.repos),
        since=config.since,
        before=config.before,
        open=sort_by_total_changes(open_pulls),
        closed=sort_by_total_changes(closed_pulls),
    )


async def collect_monthly_counts(
    config: DigestConfig,
    now: datetime | None = None,
    http_client: GitHubClient | None = None,
) -> list[int]:
    """Count pull requests per calendar month between ``since`` and ``now``."""
    client = http_client or create_client(config)
    async with client:
        return await count_monthly(RestClient(client), config, now=now)


def next_since(
    open_pulls: list[PullRequest],
    closed_pulls: list[PullRequest],
    now: datetime | None = None,
) -> datetime:
    """Compute the ``since`` value for the next run.

    This is the latest creation time of an opened pull request or closing
    time of a merged one. The value is informational, so a malformed
    timestamp logs a warning and falls back to ``now`` instead of failing.

    Args:
        open_pulls: Opened pull requests of this run.
        closed_pulls: Merged pull requests of this run.
        now: Fallback instant; defaults to the current time.

    Returns:
        Aware UTC datetime.
    """
    now = now or datetime.now(UTC)
    if not open_pulls and not closed_pulls:
        return now

    try:
        stamps = [parse_timestamp(pr.created_at, "created_at") for pr in open_pulls]
        stamps += [parse_timestamp(pr.closed_at, "closed_at") for pr in closed_pulls]
    except TimeParseError as e:
        logger.warning("Cannot compute next since value, using current time: %s", e)
        return now

    return max(stamps)
