"""HTML digest rendering."""

from repo_digest.report.build import (
    DEFAULT_TEMPLATE,
    ReportError,
    render_digest,
    write_digest,
)

__all__ = ["DEFAULT_TEMPLATE", "ReportError", "render_digest", "write_digest"]
