"""Configuration loading and validation."""

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from repo_digest.timeutil import ensure_utc

DEFAULT_HOST = "https://api.github.com/"

REPO_PATTERN = re.compile(r"^[^/\s]+/[^/\s]+$")


class ConfigError(Exception):
    """Raised when the run configuration is missing or invalid."""


class DigestConfig(BaseModel):
    """Run configuration shared, read-only, by every fetch operation."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    repos: list[str] = Field(min_length=1)
    token: str | None = None
    since: datetime
    before: datetime | None = None
    template: Path | None = None
    out_dir: Path = Field(default=Path("."))
    inline_styles: bool = False
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("host")
    @classmethod
    def normalize_host(cls, v: str) -> str:
        """Require an http(s) URL and make sure it ends with a slash."""
        if not v.startswith(("http://", "https://")):
            msg = f"host must be an http(s) URL, got {v!r}"
            raise ValueError(msg)
        return v if v.endswith("/") else v + "/"

    @field_validator("repos", mode="before")
    @classmethod
    def split_repos(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, (list, tuple)):
            repos: list[str] = []
            for item in v:
                if isinstance(item, str):
                    repos.extend(part.strip() for part in item.split(",") if part.strip())
                else:
                    repos.append(item)
            return repos
        return v

    @field_validator("repos")
    @classmethod
    def validate_repos(cls, v: list[str]) -> list[str]:
        """Each repository must be formatted as owner/name."""
        for repo in v:
            if not REPO_PATTERN.match(repo):
                msg = f"repository {repo!r} must be formatted as :owner/:repo"
                raise ValueError(msg)
        return v

    @field_validator("since", "before")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive datetimes as UTC."""
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_window(self) -> "DigestConfig":
        """Validate that since is not after before."""
        if self.before is not None and self.since > self.before:
            msg = "since must be before or equal to before"
            raise ValueError(msg)
        return self

    @property
    def now(self) -> datetime:
        """Upper bound of the window: ``before`` when set, else the current instant."""
        return self.before if self.before is not None else datetime.now(UTC)

    def require_template(self) -> Path:
        """Return the template path or fail before any network activity.

        Raises:
            ConfigError: If no template was configured or it does not exist.
        """
        if self.template is None:
            raise ConfigError("template not specified; use --template=:html_template")
        if not self.template.is_file():
            raise ConfigError(f"template file not found: {self.template}")
        return self.template


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or "config"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load raw configuration values from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Mapping of configuration keys to values.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open() as f:
            raw_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return raw_config


def build_config(
    values: dict[str, Any],
    path: Path | None = None,
    defaults: dict[str, Any] | None = None,
) -> DigestConfig:
    """Build a validated config from defaults, an optional file and explicit values.

    File values override defaults; explicit values that are not None override both.

    Args:
        values: Values from the command line.
        path: Optional YAML configuration file.
        defaults: Lowest-priority values.

    Returns:
        Validated DigestConfig.

    Raises:
        ConfigError: If the merged configuration is invalid.
    """
    raw: dict[str, Any] = dict(defaults or {})
    if path is not None:
        raw.update(load_config_file(path))
    raw.update({key: value for key, value in values.items() if value is not None})

    if not raw.get("repos"):
        raise ConfigError("repository not specified; use --repo=:owner/:repo")
    if raw.get("since") is None:
        raise ConfigError("since not specified; use --since=:rfc3339_time")

    try:
        return DigestConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e
