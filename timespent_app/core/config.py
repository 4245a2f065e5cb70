"""Central configuration, constants, default field labels, and the report config object."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import pytz

from .errors import ConfigurationError
from .jql import parse_year_month

# =============================================================================
# Jira Connection Settings
# =============================================================================
DEFAULT_JIRA_URL = "https://your-jira.atlassian.net"
DEFAULT_API_VERSION = "3"
TIMEZONE = "UTC"

# Credential environment variables, first match wins
AUTH_USER_VARS: Sequence[str] = ("AUTH_USER", "JIRA_EMAIL")
AUTH_TOKEN_VARS: Sequence[str] = ("AUTH_TOKEN", "JIRA_API_TOKEN")

# =============================================================================
# Search Defaults
# =============================================================================
DEFAULT_QUERY = "status = Closed AND updated >= startOfMonth(-1) AND updated <= endOfMonth(-1)"
DEFAULT_FIELD_NAMES = (
    "summary,status,timespent,timeoriginalestimate,aggregatetimespent,aggregatetimeoriginalestimate"
)
DEFAULT_MAX_RESULT: int = 50  # page size requested from the search endpoint
DEFAULT_TIME_UNIT = "dd"
DEFAULT_HOURS_PER_DAY: int = 8
DEFAULT_DAYS_PER_MONTH: int = 24

# Fan-out tuning
# Threads, because every fetch is a blocking HTTP call. The ceiling applies to
# both the page fan-out and the per-issue worklog fan-out.
MAX_WORKER_SIZE: int = 10

# The worklog endpoint is asked for everything in one page
WORKLOG_PAGE_SIZE: int = 1048576

# Fields rendered in worklog mode (replaces the configured field list)
WORKLOG_FIELDS: Sequence[str] = (
    "started",
    "author.displayname",
    "author.emailaddress",
    "timespentseconds",
)

# =============================================================================
# Report Labels
# =============================================================================
KEY_LABEL = "Key"

# Header labels keyed by lowercase field name; unknown fields use the raw name
DEFAULT_FIELD_LABELS: dict[str, str] = {
    "summary": "Summary",
    "status": "Status",
    "timeoriginalestimate": "Original Estimate",
    "timespent": "Time Spent",
    "aggregatetimeoriginalestimate": "Σ Original Estimate",
    "aggregatetimespent": "Σ Time Spent",
    "started": "Started",
    "author.displayname": "Display Name",
    "author.emailaddress": "Email Address",
    "timespentseconds": "Time Spent",
}

# Canonical time unit codes, in selector order
TIME_UNITS: Sequence[str] = ("hh", "dd", "mm")

# Accepted time unit codes -> canonical code
_UNIT_ALIASES: dict[str, str] = {
    "h": "hh",
    "hh": "hh",
    "d": "dd",
    "dd": "dd",
    "m": "mm",
    "mm": "mm",
}

_TRUE_VALUES = frozenset({"1", "t", "true"})
_FALSE_VALUES = frozenset({"0", "f", "false"})


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


def _parse_bool(value: str) -> bool | None:
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


@dataclass(slots=True)
class ReportConfig:
    base_url: str = DEFAULT_JIRA_URL
    query: str = DEFAULT_QUERY
    filter_id: str = ""
    field_names: str = DEFAULT_FIELD_NAMES
    max_result: int = DEFAULT_MAX_RESULT
    api_version: str = DEFAULT_API_VERSION
    time_unit: str = DEFAULT_TIME_UNIT
    hours_per_day: int = DEFAULT_HOURS_PER_DAY
    days_per_month: int = DEFAULT_DAYS_PER_MONTH
    worklog: bool = False
    target_year_month: str = ""
    timezone: str = TIMEZONE
    labels_path: str | None = None
    clock: Callable[[], datetime] = _utc_now

    def fields(self) -> list[str]:
        """Requested field names, in output column order."""
        if self.worklog:
            return list(WORKLOG_FIELDS)
        return [name.strip() for name in self.field_names.split(",") if name.strip()]

    def tzinfo(self):
        try:
            return pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ConfigurationError(f"Unknown timezone: {self.timezone!r}") from exc

    def now(self) -> datetime:
        """Current time from the injected clock, expressed in the configured timezone."""
        tz = self.tzinfo()
        current = self.clock()
        if current.tzinfo is None:
            return tz.localize(current)
        return current.astimezone(tz)

    def canonical_unit(self) -> str | None:
        """``hh``, ``dd`` or ``mm`` for any accepted spelling, None when unknown."""
        return _UNIT_ALIASES.get(self.time_unit.strip().lower())

    def seconds_per_unit(self) -> int | None:
        unit = self.canonical_unit()
        if unit == "hh":
            return 60 * 60
        if unit == "dd":
            return 60 * 60 * self.hours_per_day
        if unit == "mm":
            return 60 * 60 * self.hours_per_day * self.days_per_month
        return None

    def convert_seconds(self, seconds: int | float | None) -> float:
        """Convert a duration to the display unit; unknown units give 0.0."""
        per_unit = self.seconds_per_unit()
        if not per_unit:
            return 0.0
        return float(seconds or 0) / per_unit

    def with_query_params(self, params: Mapping[str, Any]) -> ReportConfig:
        """Return a copy overridden by web query parameters.

        Keys are matched case-insensitively. List values (as produced by
        ``parse_qs``) use their first element. Numeric and boolean values
        that do not parse leave the current setting untouched.
        """
        changes: dict[str, Any] = {}
        for raw_key, raw_value in params.items():
            if isinstance(raw_value, list | tuple):
                if not raw_value:
                    continue
                raw_value = raw_value[0]
            value = "" if raw_value is None else str(raw_value)
            key = str(raw_key).lower()
            if key == "baseurl":
                changes["base_url"] = value
            elif key == "query":
                changes["query"] = value
            elif key == "filter":
                changes["filter_id"] = value
            elif key == "fieldnames":
                changes["field_names"] = value
            elif key == "apiversion":
                changes["api_version"] = value
            elif key == "timeunit":
                changes["time_unit"] = value
            elif key == "targetyearmonth":
                changes["target_year_month"] = value
            elif key in ("maxresult", "hoursperday", "dayspermonth"):
                parsed = _parse_int(value)
                if parsed is not None:
                    attr = {
                        "maxresult": "max_result",
                        "hoursperday": "hours_per_day",
                        "dayspermonth": "days_per_month",
                    }[key]
                    changes[attr] = parsed
            elif key == "worklog":
                flag = _parse_bool(value)
                if flag is not None:
                    changes["worklog"] = flag
        return replace(self, **changes)

    def validate(self) -> None:
        parsed = urlparse(self.base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Unparsable base URL: {self.base_url!r}")
        if self.max_result <= 0:
            raise ConfigurationError(f"Page size must be positive, got {self.max_result}")
        if self.hours_per_day <= 0 or self.days_per_month <= 0:
            raise ConfigurationError(
                f"hours_per_day and days_per_month must be positive "
                f"(got {self.hours_per_day}, {self.days_per_month})"
            )
        if self.target_year_month and parse_year_month(self.target_year_month) is None:
            raise ConfigurationError(f"Target month must be YYYY-MM, got {self.target_year_month!r}")
        self.tzinfo()
        if not self.fields():
            raise ConfigurationError("No fields requested")


@dataclass(frozen=True, slots=True)
class Credentials:
    user: str
    token: str


def load_credentials(environ: Mapping[str, str] | None = None) -> Credentials:
    """Read Jira credentials from the environment; both values are required."""
    env = os.environ if environ is None else environ
    user = next((env[name] for name in AUTH_USER_VARS if env.get(name)), "")
    token = next((env[name] for name in AUTH_TOKEN_VARS if env.get(name)), "")
    if not user or not token:
        raise ConfigurationError("Environment variables AUTH_USER/AUTH_TOKEN are not set")
    return Credentials(user=user, token=token)
