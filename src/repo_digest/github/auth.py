"""Access token resolution for the GitHub API.

A token is optional. Authenticated requests may make 5000 requests per hour,
anonymous ones only 60 per hour per IP address, which still covers a digest
of a quiet repository.
"""

import logging
import os
import re
import subprocess

import httpx

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"

GITHUB_HOSTNAME = "github.com"

TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "github_pat_")

# Tokens issued before prefixes were introduced are bare 40-character hex strings
LEGACY_TOKEN = re.compile(r"^[a-f0-9]{40}$")

MIN_PREFIXED_LENGTH = 20


class AuthenticationError(Exception):
    """Raised when a supplied token is malformed."""


def gh_hostname(api_url: str) -> str:
    """Host name the GitHub CLI files the credentials for ``api_url`` under.

    github.com is served from api.github.com; Enterprise servers use their
    own host name for both.
    """
    host = httpx.URL(api_url).host
    if host in ("api.github.com", GITHUB_HOSTNAME):
        return GITHUB_HOSTNAME
    return host


def _get_gh_cli_token(hostname: str = GITHUB_HOSTNAME) -> str | None:
    """Ask the GitHub CLI for the token of its account on ``hostname``.

    Returns:
        The token, or None when gh is missing, logged out or hangs.
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token", "--hostname", hostname],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except FileNotFoundError:
        logger.debug("gh CLI not found")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("gh CLI did not answer within 5 seconds")
        return None

    token = result.stdout.strip()
    if result.returncode != 0 or not token:
        logger.debug("gh CLI has no token (exit code %d)", result.returncode)
        return None
    return token


def check_token_format(token: str) -> None:
    """Reject strings that cannot be GitHub access tokens.

    Args:
        token: Candidate token.

    Raises:
        AuthenticationError: If the token has neither a known prefix nor the
            legacy 40-character hex form, or is too short for its prefix.
    """
    if token.startswith(TOKEN_PREFIXES):
        if len(token) < MIN_PREFIXED_LENGTH:
            raise AuthenticationError("Token appears too short to be valid")
        return

    if not LEGACY_TOKEN.match(token):
        raise AuthenticationError(
            f"Invalid token format. Expected one of the prefixes {', '.join(TOKEN_PREFIXES)} "
            "or a 40-character hex token"
        )


class GitHubAuth:
    """Credentials for one run.

    The token comes from the first source that has one: the explicit
    argument, the GITHUB_TOKEN environment variable, then `gh auth token`
    for the API host. When none does the client runs anonymously.
    """

    def __init__(
        self,
        token: str | None = None,
        use_gh_cli: bool = True,
        hostname: str = GITHUB_HOSTNAME,
    ) -> None:
        """Resolve the token.

        Args:
            token: Token from the command line or config file.
            use_gh_cli: Whether to ask the GitHub CLI as a last resort.
            hostname: Host whose gh CLI credentials may be used.

        Raises:
            AuthenticationError: If a token was found but is malformed.
        """
        self.source = "anonymous"
        if token:
            self.source = "--token"
        elif os.environ.get(TOKEN_ENV_VAR):
            token = os.environ[TOKEN_ENV_VAR]
            self.source = TOKEN_ENV_VAR
        elif use_gh_cli:
            token = _get_gh_cli_token(hostname)
            if token:
                self.source = f"gh CLI ({hostname})"

        self._token = token or None
        if self._token is None:
            logger.warning(
                "No GitHub token configured; anonymous requests are limited to 60 per hour"
            )
            return

        check_token_format(self._token)
        logger.info("Using GitHub token from %s", self.source)

    @property
    def is_anonymous(self) -> bool:
        return self._token is None

    def get_authorization_header(self) -> dict[str, str]:
        """Header that authenticates a request; empty when anonymous."""
        if self._token is None:
            return {}
        return {"Authorization": f"token {self._token}"}
