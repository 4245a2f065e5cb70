"""Mapping raw Jira JSON into models, and models into flat report records."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .config import ReportConfig
from .models import Author, Issue, SearchPage, Status, Worklog, WorklogPage


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def map_issue(raw: Mapping[str, Any]) -> Issue:
    fields = raw.get("fields") or {}
    status = fields.get("status") or {}
    return Issue(
        key=_as_str(raw.get("key")),
        id=_as_str(raw.get("id")),
        summary=_as_str(fields.get("summary")),
        status=Status(
            name=_as_str(status.get("name")),
            description=_as_str(status.get("description")),
        ),
        timespent=_as_int(fields.get("timespent")),
        timeoriginalestimate=_as_int(fields.get("timeoriginalestimate")),
        aggregatetimespent=_as_int(fields.get("aggregatetimespent")),
        aggregatetimeoriginalestimate=_as_int(fields.get("aggregatetimeoriginalestimate")),
        attributes=dict(fields),
    )


def map_search_page(raw: Mapping[str, Any]) -> SearchPage:
    return SearchPage(
        start_at=_as_int(raw.get("startAt")) or 0,
        total=_as_int(raw.get("total")) or 0,
        max_results=_as_int(raw.get("maxResults")) or 0,
        issues=tuple(map_issue(i) for i in raw.get("issues") or []),
    )


def map_worklog(raw: Mapping[str, Any], issue_key: str) -> Worklog:
    author = raw.get("author") or {}
    return Worklog(
        key=issue_key,
        id=_as_str(raw.get("id")),
        started=_as_str(raw.get("started")),
        time_spent_seconds=_as_int(raw.get("timeSpentSeconds")),
        author=Author(
            display_name=_as_str(author.get("displayName")),
            email_address=_as_str(author.get("emailAddress")),
        ),
        attributes=dict(raw),
    )


def map_worklog_page(raw: Mapping[str, Any], issue_key: str) -> WorklogPage:
    """Map a worklog response, stamping ``issue_key`` onto every worklog."""
    return WorklogPage(
        issue_key=issue_key,
        start_at=_as_int(raw.get("startAt")) or 0,
        total=_as_int(raw.get("total")) or 0,
        max_results=_as_int(raw.get("maxResults")) or 0,
        worklogs=tuple(map_worklog(w, issue_key) for w in raw.get("worklogs") or []),
    )


# ------------------ Field Projection ------------------


def format_duration(seconds: int | None, config: ReportConfig) -> str:
    return f"{config.convert_seconds(seconds):.2f}"


def format_scalar(value: Any) -> str:
    # bool is an int subclass but has no natural column form here
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:f}"
    return ""


def lookup_attribute(attributes: Mapping[str, Any], name: str) -> Any:
    """Case-insensitive lookup; dotted names walk nested objects."""
    node: Any = attributes
    for part in name.split("."):
        if not isinstance(node, Mapping):
            return None
        wanted = part.lower()
        node = next((v for k, v in node.items() if str(k).lower() == wanted), None)
    return node


Accessor = Callable[[Any, ReportConfig], str]

ISSUE_ACCESSORS: dict[str, Accessor] = {
    "summary": lambda issue, _: issue.summary,
    "status": lambda issue, _: issue.status.name,
    "timespent": lambda issue, cfg: format_duration(issue.timespent, cfg),
    "timeoriginalestimate": lambda issue, cfg: format_duration(issue.timeoriginalestimate, cfg),
    "aggregatetimespent": lambda issue, cfg: format_duration(issue.aggregatetimespent, cfg),
    "aggregatetimeoriginalestimate": lambda issue, cfg: format_duration(
        issue.aggregatetimeoriginalestimate, cfg
    ),
}

WORKLOG_ACCESSORS: dict[str, Accessor] = {
    "started": lambda wl, _: wl.started,
    "timespentseconds": lambda wl, cfg: format_duration(wl.time_spent_seconds, cfg),
    "author.displayname": lambda wl, _: wl.author.display_name,
    "author.emailaddress": lambda wl, _: wl.author.email_address,
}


def project_fields(
    entity: Issue | Worklog,
    fields: Iterable[str],
    config: ReportConfig,
    accessors: Mapping[str, Accessor],
) -> list[str]:
    """One formatted value per requested field; unresolved fields give ''."""
    values: list[str] = []
    for name in fields:
        accessor = accessors.get(name.lower())
        if accessor is not None:
            values.append(accessor(entity, config))
        else:
            values.append(format_scalar(lookup_attribute(entity.attributes, name)))
    return values


def issue_to_record(issue: Issue, fields: Iterable[str], config: ReportConfig) -> list[str]:
    return [issue.key, *project_fields(issue, fields, config, ISSUE_ACCESSORS)]


def worklog_to_record(worklog: Worklog, fields: Iterable[str], config: ReportConfig) -> list[str]:
    return [worklog.key, *project_fields(worklog, fields, config, WORKLOG_ACCESSORS)]
