"""Digest rendering.

Renders collected pull requests through a Jinja2 HTML template, optionally
inlines the stylesheet for email clients, and writes the digest file.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import markdown
import nh3
import premailer
from jinja2 import Environment, FileSystemLoader, TemplateError
from markupsafe import Markup

from repo_digest.collect.orchestrator import DigestData
from repo_digest.metrics.changes import SizeClass, format_number
from repo_digest.timeutil import TimeParseError, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = Path(__file__).parent / "templates" / "digest.html"

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


class ReportError(Exception):
    """Raised when the digest cannot be rendered or written."""


def render_markdown(text: str | None) -> Markup:
    """Render a pull request body from Markdown to HTML.

    The HTML is reduced to an allow-list of tags and attributes before it is
    marked safe; scripts and event handler attributes are dropped.
    """
    if not text:
        return Markup("")
    html = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    return Markup(nh3.clean(html))


def format_timestamp(value: str | None) -> str:
    """Show a GitHub timestamp in local time, e.g. "Mon Jan  2 15:04:05".

    Values that do not parse are returned unchanged.
    """
    if not value:
        return ""
    try:
        dt = parse_timestamp(value).astimezone()
    except TimeParseError:
        return str(value)
    return f"{dt:%a %b} {dt.day:2d} {dt:%H:%M:%S}"


def size_dots(size_class: SizeClass) -> str:
    """One filled circle per size step."""
    return "●" * int(size_class)


def create_environment(template_dir: Path) -> Environment:
    """Create the Jinja2 environment with the digest filters registered."""
    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["markdown"] = render_markdown
    env.filters["format_number"] = format_number
    env.filters["format_timestamp"] = format_timestamp
    env.filters["size_dots"] = size_dots
    return env


def render_digest(data: DigestData, template_path: Path, inline_styles: bool = False) -> str:
    """Render the digest HTML.

    Args:
        data: Sorted pull requests and run parameters.
        template_path: Jinja2 HTML template file.
        inline_styles: Move <style> rules into style attributes for email.

    Returns:
        The rendered HTML document.

    Raises:
        ReportError: If the template cannot be loaded or rendered.
    """
    env = create_environment(template_path.parent)
    context: dict[str, Any] = {
        "repo": data.repo,
        "repos": data.repos,
        "since": data.since,
        "before": data.before,
        "open": data.open,
        "closed": data.closed,
        "generated_at": data.generated_at,
    }

    try:
        template = env.get_template(template_path.name)
        html = template.render(**context)
    except TemplateError as e:
        raise ReportError(f"failed to render template {template_path}: {e}") from e

    if inline_styles:
        html = inline_css(html)

    return html


def inline_css(html: str) -> str:
    """Move stylesheet rules into style attributes for email clients.

    Raises:
        ReportError: If a linked stylesheet cannot be loaded or the CSS is
            rejected.
    """
    logger.debug("Inlining CSS styles")
    try:
        return premailer.Premailer(
            html,
            disable_validation=True,
            cssutils_logging_level=logging.CRITICAL,
        ).transform()
    except Exception as e:
        raise ReportError(f"failed to inline styles: {e}") from e


def digest_filename(when: datetime) -> str:
    """Name of the digest file for a run on ``when``, e.g. digest-05-04-2016.html."""
    return f"digest-{when:%m-%d-%Y}.html"


def write_digest(html: str, out_dir: Path, when: datetime | None = None) -> Path:
    """Write the digest into ``out_dir``.

    Args:
        html: Rendered digest.
        out_dir: Output directory; created if missing.
        when: Date used in the file name; defaults to now.

    Returns:
        Path of the written file.

    Raises:
        ReportError: If the file cannot be written.
    """
    when = when or datetime.now(UTC).astimezone()
    path = out_dir / digest_filename(when)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise ReportError(f"failed to write digest {path}: {e}") from e

    logger.info("Wrote HTML digest to %s", path)
    return path
