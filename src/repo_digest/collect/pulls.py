"""Pull request collector for GitHub repositories.

Lists pull requests for every configured repository, most recently updated
first, and partitions them into newly opened and recently merged sets. A
second pass then fetches the full record, commits and changed files of each
selected pull request.
"""

import logging
import re
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from repo_digest.collect.progress import PullProgress
from repo_digest.config import DigestConfig
from repo_digest.github.http import DecodeError, GitHubHTTPError
from repo_digest.github.rest import RestClient
from repo_digest.models import CommitMessage, PullRequest, PullRequestFile
from repo_digest.timeutil import TimeParseError, parse_timestamp

logger = logging.getLogger(__name__)

# Generated protobuf code and stylesheets never count towards change metrics
IGNORE_PATTERNS = [
    re.compile(r".*\.pb\.(go|cc|h)$"),
    re.compile(r".*\.css$"),
]


def is_ignored_file(filename: str) -> bool:
    """Check whether a changed file is excluded from all metrics."""
    return any(pattern.match(filename) for pattern in IGNORE_PATTERNS)


def _decode(model: type[Any], data: dict[str, Any], url: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodeError(url, str(e)) from e


def _in_window(ts: datetime, since: datetime, before: datetime | None) -> bool:
    return since < ts and (before is None or ts < before)


async def list_repo_pulls(
    rest_client: RestClient,
    config: DigestConfig,
    repo: str,
    progress: PullProgress | None = None,
) -> tuple[list[PullRequest], list[PullRequest]]:
    """List the opened and merged pull requests of one repository.

    Pages are requested in descending ``updated_at`` order. As soon as a
    record was last updated at or before ``since`` no further pages are
    requested, since every later record is older still.

    Args:
        rest_client: RestClient for GitHub API access.
        config: Run configuration with the time window.
        repo: Repository as owner/name.
        progress: Optional progress counts to update.

    Returns:
        Tuple of (open, closed) pull requests in listing order. Closed only
        holds merged pull requests.

    Raises:
        GitHubHTTPError: If a page cannot be fetched or decoded.
        TimeParseError: If a timestamp the selection depends on is malformed.
    """
    since = config.since
    before = config.before
    open_pulls: list[PullRequest] = []
    closed_pulls: list[PullRequest] = []
    seen: set[str] = set()

    logger.info("Querying pull requests from %s opened or closed after %s", repo, since.isoformat())
    if progress:
        progress.set_repo(repo)

    pages = rest_client.list_pulls(repo, sort="updated")
    done = False
    async for page in pages:
        if progress:
            progress.record_listed(len(page))

        for record in page:
            pr = _decode(PullRequest, record, f"repos/{repo}/pulls")

            updated_at = parse_timestamp(pr.updated_at, "updated_at")
            if updated_at <= since:
                done = True
                break

            if pr.url in seen:
                logger.debug("Skipping duplicate listing of %s", pr.url)
                continue
            seen.add(pr.url)

            if pr.state == "open":
                if _in_window(parse_timestamp(pr.created_at, "created_at"), since, before):
                    open_pulls.append(pr)
                    if progress:
                        progress.record_open()
            elif pr.state == "closed":
                if not pr.is_merged:
                    continue
                if _in_window(parse_timestamp(pr.closed_at, "closed_at"), since, before):
                    closed_pulls.append(pr)
                    if progress:
                        progress.record_closed()
            else:
                logger.debug("Skipping %s with unknown state %r", pr.url, pr.state)

        if done:
            logger.debug("Reached pull requests updated before %s, stopping pagination", since)
            break

    logger.info(
        "Found %d opened and %d merged pull requests in %s",
        len(open_pulls),
        len(closed_pulls),
        repo,
    )
    return open_pulls, closed_pulls


async def fetch_pull_details(
    rest_client: RestClient,
    pulls: list[PullRequest],
    progress: PullProgress | None = None,
) -> list[PullRequest]:
    """Fetch the full record, commits and changed files of each pull request.

    Requests run strictly one after the other. The first failure aborts the
    whole pass.

    Args:
        rest_client: RestClient for GitHub API access.
        pulls: Pull requests from the listing pass.
        progress: Optional progress counts to update.

    Returns:
        New PullRequest objects, in the same order, with authoritative fields,
        commit messages and non-ignored files.

    Raises:
        GitHubHTTPError: If any request fails.
    """
    logger.info("Querying detailed info for each of %d pull requests", len(pulls))
    if progress:
        progress.start_details(len(pulls))

    detailed: list[PullRequest] = []
    for pr in pulls:
        record = await rest_client.get_pull(pr.url)
        summary = pr.model_dump(exclude={"commit_messages", "files"})
        full = _decode(PullRequest, {**summary, **record}, pr.url)

        commits = await rest_client.list_pull_commits(pr.url)
        files = await rest_client.list_pull_files(pr.url)

        full.commit_messages = [_decode(CommitMessage, c, f"{pr.url}/commits") for c in commits]
        kept = []
        for data in files:
            f = _decode(PullRequestFile, data, f"{pr.url}/files")
            if is_ignored_file(f.filename):
                logger.debug("Ignoring %s in %s", f.filename, pr.url)
                continue
            kept.append(f)
        full.files = kept

        detailed.append(full)
        if progress:
            progress.record_detail()

    return detailed


async def collect_pulls(
    rest_client: RestClient,
    config: DigestConfig,
    progress: PullProgress | None = None,
) -> tuple[list[PullRequest], list[PullRequest]]:
    """Collect fully detailed opened and merged pull requests.

    Every repository is listed before any detail is fetched. Any error aborts
    the collection.

    Args:
        rest_client: RestClient for GitHub API access.
        config: Run configuration.
        progress: Optional progress counts to update.

    Returns:
        Tuple of (open, closed) pull requests, unsorted.

    Raises:
        GitHubHTTPError: If any request fails.
        TimeParseError: If a required timestamp is malformed.
    """
    open_pulls: list[PullRequest] = []
    closed_pulls: list[PullRequest] = []

    for repo in config.repos:
        try:
            repo_open, repo_closed = await list_repo_pulls(rest_client, config, repo, progress)
        except (GitHubHTTPError, TimeParseError) as e:
            logger.error("Failed to list pull requests from %s: %s", repo, e)
            raise
        open_pulls.extend(repo_open)
        closed_pulls.extend(repo_closed)

    try:
        open_pulls = await fetch_pull_details(rest_client, open_pulls, progress)
        closed_pulls = await fetch_pull_details(rest_client, closed_pulls, progress)
    except GitHubHTTPError as e:
        logger.error("Failed to fetch pull request details: %s", e)
        raise

    return open_pulls, closed_pulls
