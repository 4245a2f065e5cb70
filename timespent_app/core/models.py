"""Domain data models for search pages, issues, worklogs, and fetch outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Status:
    name: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class Author:
    display_name: str = ""
    email_address: str = ""


@dataclass(frozen=True, slots=True)
class Issue:
    key: str
    id: str = ""
    summary: str = ""
    status: Status = field(default_factory=Status)
    timespent: int | None = None
    timeoriginalestimate: int | None = None
    aggregatetimespent: int | None = None
    aggregatetimeoriginalestimate: int | None = None
    # Raw ``fields`` object as returned by Jira
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Worklog:
    # Owning issue key; the worklog endpoint does not return it
    key: str
    id: str = ""
    started: str = ""
    time_spent_seconds: int | None = None
    author: Author = field(default_factory=Author)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SearchPage:
    """One page of the issue search endpoint."""

    start_at: int
    total: int
    max_results: int
    issues: tuple[Issue, ...] = ()

    def is_empty(self) -> bool:
        return self.total <= 0 or not self.issues


@dataclass(frozen=True, slots=True)
class WorklogPage:
    """Worklogs of a single issue."""

    issue_key: str
    start_at: int
    total: int
    max_results: int
    worklogs: tuple[Worklog, ...] = ()

    def is_empty(self) -> bool:
        return self.total <= 0 or not self.worklogs


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """A failed unit of fan-out work: what was fetched, by which worker, and why."""

    label: str
    item: Any
    worker: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.label} error: {self.error} (worker={self.worker}, item={self.item!r})"


@dataclass(slots=True)
class SearchOutcome(Generic[T]):
    """Merged results of one search wave plus every failure collected on the way."""

    results: list[T] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)
