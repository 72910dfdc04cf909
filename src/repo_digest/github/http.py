"""Async client for the GitHub REST API.

Requests are issued one at a time. Any failure ends the run: nothing is
retried, and the raised error names the URL and, for HTTP failures, carries
the status code and response body.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from repo_digest import __version__
from repo_digest.config import DEFAULT_HOST
from repo_digest.github.auth import GitHubAuth

logger = logging.getLogger(__name__)

# Longest body excerpt included in an error message
MAX_ERROR_BODY = 500

MEDIA_TYPE = "application/vnd.github+json"


class RateLimitInfo(BaseModel):
    """Snapshot of the x-ratelimit-* headers of one response."""

    limit: int
    remaining: int
    reset: datetime
    used: int
    resource: str = "core"

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Optional["RateLimitInfo"]:
        """Read the rate limit headers, or return None when the server sent none."""
        if "x-ratelimit-limit" not in headers:
            return None

        def number(name: str) -> int:
            return int(headers.get(f"x-ratelimit-{name}", "0"))

        return cls(
            limit=number("limit"),
            remaining=number("remaining"),
            reset=datetime.fromtimestamp(number("reset"), tz=UTC),
            used=number("used"),
            resource=headers.get("x-ratelimit-resource", "core"),
        )

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0


@dataclass
class GitHubResponse:
    """Decoded body of a successful request together with its headers."""

    status_code: int
    data: Any
    headers: httpx.Headers
    rate_limit: RateLimitInfo | None = None
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class HTTPRateLimitState:
    """Request count and latest rate limit seen by one client."""

    last_rate_limit: RateLimitInfo | None = None
    requests_made: int = 0

    def update(self, rate_limit: RateLimitInfo | None) -> None:
        """Count a request and remember its rate limit headers."""
        self.requests_made += 1
        if rate_limit is None:
            return

        self.last_rate_limit = rate_limit
        if rate_limit.exhausted:
            logger.warning(
                "Rate limit reached after %d of %d requests; it resets at %s",
                rate_limit.used,
                rate_limit.limit,
                rate_limit.reset.isoformat(),
            )


class GitHubHTTPError(Exception):
    """Base exception for GitHub fetch errors."""


class TransportError(GitHubHTTPError):
    """Raised when the request could not be completed at the network level."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"GET {url} failed: {message}")


class HTTPError(GitHubHTTPError):
    """Raised for a non-2xx response; carries the status code and body."""

    def __init__(self, status_code: int, url: str, body: str) -> None:
        self.status_code = status_code
        self.url = url
        self.body = body
        snippet = body[:MAX_ERROR_BODY]
        super().__init__(f"GET {url} returned HTTP {status_code}: {snippet}")


class RateLimitExceeded(HTTPError):
    """Raised when GitHub rejects a request because the rate limit is spent."""

    def __init__(
        self, status_code: int, url: str, body: str, reset_at: datetime | None = None
    ) -> None:
        super().__init__(status_code, url, body)
        self.reset_at = reset_at
        if reset_at is not None:
            self.args = (f"{self.args[0]} (rate limit resets at {reset_at.isoformat()})",)


class DecodeError(GitHubHTTPError):
    """Raised when a response body is not the JSON shape we expect."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"Failed to decode response from {url}: {message}")


def _error_for(response: httpx.Response, url: str) -> HTTPError:
    """Map a non-2xx response to the matching error.

    A 403 or 429 counts as a rate limit rejection when the quota is spent or
    GitHub asks the client to back off with Retry-After.
    """
    rate_limit = RateLimitInfo.from_headers(response.headers)
    throttled = (rate_limit is not None and rate_limit.exhausted) or (
        "retry-after" in response.headers
    )
    if response.status_code in (403, 429) and throttled:
        return RateLimitExceeded(
            response.status_code,
            url,
            response.text,
            reset_at=rate_limit.reset if rate_limit else None,
        )
    return HTTPError(response.status_code, url, response.text)


class GitHubClient:
    """Sequential GET client bound to one API host.

    Relative paths resolve against `base_url`, so the same code serves
    github.com and GitHub Enterprise (`https://host/api/v3/`). Pagination
    URLs from `Link` headers are absolute and are passed through as given.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        auth: GitHubAuth | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = DEFAULT_HOST,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Set up the client; the connection pool opens on first use.

        Args:
            auth: Credentials. Resolved from the environment when omitted.
            timeout: Per-request timeout in seconds.
            base_url: API root; a trailing slash is added when missing.
            transport: Replacement httpx transport, used by tests.
        """
        self._auth = auth or GitHubAuth()
        self._timeout = timeout
        self._base_url = base_url.rstrip("/") + "/"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._rate_limit_state = HTTPRateLimitState()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def rate_limit_state(self) -> HTTPRateLimitState:
        return self._rate_limit_state

    def _open(self) -> httpx.AsyncClient:
        if self._client is None:
            logger.debug(
                "Opening %s client for %s",
                "anonymous" if self._auth.is_anonymous else "authenticated",
                self._base_url,
            )
            headers = {"Accept": MEDIA_TYPE, "User-Agent": f"repo-digest/{__version__}"}
            headers.update(self._auth.get_authorization_header())
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def get(self, url: str, **kwargs: Any) -> GitHubResponse:
        """GET a URL and decode its JSON body.

        Args:
            url: Absolute URL, or a path relative to the base URL.
            **kwargs: Passed to httpx, typically `params`.

        Returns:
            The decoded response. An empty body decodes to None.

        Raises:
            TransportError: On network failure or timeout.
            HTTPError: On a non-2xx status.
            RateLimitExceeded: When GitHub refuses the request for rate limiting.
            DecodeError: When the body is not valid JSON.
        """
        client = self._open()
        logger.debug("GET %s", url)

        try:
            response = await client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(url, f"request timed out after {self._timeout}s") from e
        except httpx.TransportError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        rate_limit = RateLimitInfo.from_headers(response.headers)
        self._rate_limit_state.update(rate_limit)

        if not response.is_success:
            logger.error("HTTP %d for GET %s", response.status_code, url)
            raise _error_for(response, url)

        try:
            data = response.json() if response.content else None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(url, str(e)) from e

        return GitHubResponse(
            status_code=response.status_code,
            data=data,
            headers=response.headers,
            rate_limit=rate_limit,
            url=str(response.url),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        self._open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
