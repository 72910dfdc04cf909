"""GitHub API clients and utilities."""

from repo_digest.github.auth import AuthenticationError, GitHubAuth
from repo_digest.github.http import (
    DecodeError,
    GitHubClient,
    GitHubHTTPError,
    GitHubResponse,
    HTTPError,
    HTTPRateLimitState,
    RateLimitExceeded,
    RateLimitInfo,
    TransportError,
)
from repo_digest.github.rest import RestClient, parse_link_header

__all__ = [
    # Auth
    "AuthenticationError",
    "DecodeError",
    "GitHubAuth",
    # HTTP Client
    "GitHubClient",
    "GitHubHTTPError",
    "GitHubResponse",
    "HTTPError",
    "HTTPRateLimitState",
    "RateLimitExceeded",
    "RateLimitInfo",
    # REST API Client
    "RestClient",
    "TransportError",
    "parse_link_header",
]
