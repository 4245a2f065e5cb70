"""Exception hierarchy for configuration, fetch, and render failures."""

from __future__ import annotations


class TimespentError(Exception):
    """Base class for report errors."""


class ConfigurationError(TimespentError):
    """Missing credentials or an unusable setting; raised before any fetch."""


class JiraFetchError(TimespentError):
    """A single request to Jira failed (request, transport, or JSON decode)."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class RenderError(TimespentError):
    """Writing the report to the output sink failed."""
