"""GitHub REST API client with pagination.

Provides list and single-record fetches that follow ``Link`` headers, plus the
handful of pull request endpoints the digest needs.
"""

import logging
import re
from collections.abc import AsyncIterator
from typing import Any

from repo_digest.github.http import DecodeError, GitHubClient

logger = logging.getLogger(__name__)

PER_PAGE = 100

LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


def parse_link_header(link_header: str | None) -> dict[str, str]:
    """Parse Link header to extract pagination URLs.

    Args:
        link_header: Link header value from response.

    Returns:
        Dict mapping rel type to URL (e.g., {"next": "url", "last": "url"}).
    """
    if not link_header:
        return {}

    links = {}
    # Link header format: <url>; rel="next", <url>; rel="last"
    for part in link_header.split(","):
        match = LINK_PATTERN.match(part.strip())
        if match:
            url, rel = match.groups()
            links[rel] = url

    return links


class RestClient:
    """GitHub REST API client.

    Wraps GitHubClient to provide:
    - Explicit list and single-record fetches with shape checks
    - Pagination following Link headers, one page at a time
    - Pull request endpoints
    """

    def __init__(self, http_client: GitHubClient) -> None:
        """Initialize REST API client.

        Args:
            http_client: GitHubClient instance for HTTP requests.
        """
        self._http = http_client

    async def fetch_list(
        self, url: str, params: dict[str, Any] | None = None
    ) -> tuple[list[dict[str, Any]], str]:
        """Fetch one page of a collection resource.

        Args:
            url: Absolute URL or path of the collection page.
            params: Query parameters for the request.

        Returns:
            Tuple of (records, next page URL or "" when this is the last page).

        Raises:
            DecodeError: If the body is not a JSON array of objects.
        """
        response = await self._http.get(url, params=params)
        data = response.data if response.data is not None else []
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise DecodeError(url, f"expected a JSON array of objects, got {type(data).__name__}")

        links = parse_link_header(response.headers.get("link"))
        return data, links.get("next", "")

    async def fetch_one(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Fetch a single-record resource.

        Args:
            url: Absolute URL or path of the record.
            params: Query parameters for the request.

        Returns:
            The decoded JSON object.

        Raises:
            DecodeError: If the body is not a JSON object.
        """
        response = await self._http.get(url, params=params)
        if not isinstance(response.data, dict):
            raise DecodeError(
                url, f"expected a JSON object, got {type(response.data).__name__}"
            )
        return response.data

    async def iter_pages(
        self, url: str, params: dict[str, Any] | None = None
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield each page of a collection until the Link header runs out.

        The next page is only requested when the consumer asks for it, so
        breaking out of the iteration stops pagination.

        Args:
            url: URL or path of the first page.
            params: Query parameters for the first page; later pages carry
                their own query string in the Link URL.

        Yields:
            The records of each page.
        """
        current_url = url
        current_params = params
        page_num = 1

        while current_url:
            items, next_url = await self.fetch_list(current_url, params=current_params)
            logger.debug("Fetched page %d of %s: %d records", page_num, url, len(items))
            yield items

            current_url = next_url
            current_params = None
            page_num += 1

    async def fetch_all(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Fetch every page of a collection and concatenate the records."""
        records: list[dict[str, Any]] = []
        async for items in self.iter_pages(url, params=params):
            records.extend(items)
        return records

    def list_pulls(self, repo: str, sort: str = "updated") -> AsyncIterator[list[dict[str, Any]]]:
        """List pull requests of a repository, newest first.

        Args:
            repo: Repository as owner/name.
            sort: "updated" or "created".

        Returns:
            Async iterator over pages of pull request records.
        """
        params = {
            "state": "all",
            "sort": sort,
            "direction": "desc",
            "per_page": PER_PAGE,
        }
        logger.debug("Listing pull requests for %s (sort=%s)", repo, sort)
        return self.iter_pages(f"repos/{repo}/pulls", params=params)

    async def get_pull(self, pull_url: str) -> dict[str, Any]:
        """Fetch the full record of a pull request."""
        return await self.fetch_one(pull_url)

    async def list_pull_commits(self, pull_url: str) -> list[dict[str, Any]]:
        """Fetch every commit of a pull request."""
        return await self.fetch_all(f"{pull_url}/commits", params={"per_page": PER_PAGE})

    async def list_pull_files(self, pull_url: str) -> list[dict[str, Any]]:
        """Fetch every changed file of a pull request."""
        return await self.fetch_all(f"{pull_url}/files", params={"per_page": PER_PAGE})
