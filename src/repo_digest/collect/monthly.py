"""Monthly pull request counts.

Independent of the digest's detail pass: lists pull requests by creation date
and counts how many were created in each calendar month of the window.
"""

import logging
from datetime import datetime

from repo_digest.config import DigestConfig
from repo_digest.github.rest import RestClient
from repo_digest.metrics.monthly import bucket_index, empty_counts
from repo_digest.timeutil import parse_timestamp

logger = logging.getLogger(__name__)


async def count_repo_monthly(
    rest_client: RestClient,
    config: DigestConfig,
    repo: str,
    counts: list[int],
    now: datetime,
) -> int:
    """Add one repository's pull requests to ``counts``.

    Pagination stops at the first pull request created before ``since``.

    Args:
        rest_client: RestClient for GitHub API access.
        config: Run configuration.
        repo: Repository as owner/name.
        counts: Month slots to increment in place.
        now: Upper boundary of slot 0.

    Returns:
        Number of pull requests counted.

    Raises:
        GitHubHTTPError: If a page cannot be fetched.
        TimeParseError: If a created_at value is malformed.
    """
    since = config.since
    counted = 0

    logger.info("Counting monthly pull requests from %s after %s", repo, since.isoformat())

    done = False
    async for page in rest_client.list_pulls(repo, sort="created"):
        for record in page:
            created = parse_timestamp(record.get("created_at"), "created_at")
            if created < since:
                done = True
                break
            # An explicit before bound is exclusive, as in the digest window
            if config.before is not None and created >= now:
                continue
            counts[bucket_index(created, now, len(counts))] += 1
            counted += 1
        if done:
            break

    return counted


async def count_monthly(
    rest_client: RestClient,
    config: DigestConfig,
    now: datetime | None = None,
) -> list[int]:
    """Count pull requests created per calendar month across all repositories.

    Args:
        rest_client: RestClient for GitHub API access.
        config: Run configuration.
        now: Upper boundary of the window; defaults to ``config.now``.

    Returns:
        One count per month, newest month first.
    """
    now = now or config.now
    counts = empty_counts(now, config.since)
    if not counts:
        return counts

    for repo in config.repos:
        counted = await count_repo_monthly(rest_client, config, repo, counts, now)
        logger.info("Counted %d pull requests in %s", counted, repo)

    return counts
