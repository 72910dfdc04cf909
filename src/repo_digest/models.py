"""Pull request records decoded from the GitHub REST API.

Only the fields the digest reads are declared; anything else GitHub sends is
ignored, and absent or null fields fall back to empty defaults.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from repo_digest.metrics.changes import (
    SizeClass,
    Subdirectory,
    classify_size,
    subdirectory_breakdown,
    total_changes,
)


class GitHubModel(BaseModel):
    """Base model tolerant of extra and null fields."""

    model_config = ConfigDict(extra="ignore")


class User(GitHubModel):
    """Author of a pull request."""

    login: str = ""
    id: int = 0
    avatar_url: str = ""
    html_url: str = ""

    @field_validator("login", "avatar_url", "html_url", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class PullRequestFile(GitHubModel):
    """One changed file of a pull request."""

    filename: str
    status: str = ""
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class CommitDetail(GitHubModel):
    message: str = ""
    url: str = ""


class CommitMessage(GitHubModel):
    """Entry of a pull request's commit list."""

    sha: str = ""
    commit: CommitDetail = Field(default_factory=CommitDetail)

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.commit.message.split("\n", 1)[0]


class PullRequest(GitHubModel):
    """A pull request plus the commits and files fetched for it."""

    url: str
    id: int = 0
    html_url: str = ""
    number: int = 0
    state: str = ""
    title: str = ""
    user: User = Field(default_factory=User)
    body: str = ""
    created_at: str = ""
    updated_at: str = ""
    closed_at: str = ""
    merged_at: str = ""
    comments: int = 0
    review_comments: int = 0
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0

    commit_messages: list[CommitMessage] = Field(default_factory=list)
    files: list[PullRequestFile] = Field(default_factory=list)

    @field_validator("body", "created_at", "updated_at", "closed_at", "merged_at", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("user", mode="before")
    @classmethod
    def null_user(cls, v: Any) -> Any:
        # Deleted accounts come back as null
        return {} if v is None else v

    @field_validator(
        "comments", "review_comments", "commits", "additions", "deletions", "changed_files",
        mode="before",
    )
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @property
    def repo(self) -> str:
        """Repository (owner/name) parsed from the API URL."""
        marker = "/repos/"
        if marker not in self.url:
            return ""
        path = self.url.split(marker, 1)[1]
        return "/".join(path.split("/")[:2])

    @property
    def is_merged(self) -> bool:
        return bool(self.merged_at)

    @property
    def total_changes(self) -> int:
        return total_changes(self.files)

    @property
    def size_class(self) -> SizeClass:
        return classify_size(self.total_changes)

    @property
    def subdirectories(self) -> list[Subdirectory]:
        return subdirectory_breakdown(self.files)
