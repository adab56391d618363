"""Exceptions raised across the audit pipeline."""

from typing import Optional


class AuditError(Exception):
    """Base class for errors that abort an audit."""


class FetchError(AuditError):
    """The page under audit could not be fetched.

    This is the only fatal condition of an audit: DNS failures, timeouts
    and TLS errors that survive the fetcher's own retry end up here.
    """

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to fetch {url}{detail}")


class ReportRenderError(AuditError):
    """A finished report could not be rendered (e.g. an empty PDF)."""
