"""ReportService: orchestrates query composition, paginated search, worklog fan-out, and rendering."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import IO, Any

import pandas as pd

from timespent_app.visual.report import issues_frame, render_csv, worklogs_frame

from .cache import MemoCache
from .config import WORKLOG_PAGE_SIZE, Credentials, ReportConfig
from .errors import JiraFetchError
from .fanout import ProgressCallback, bounded_map, page_offsets, rest_pages
from .field_labels import load_field_labels
from .jira_client import JiraAPI
from .jql import compose_jql, date_condition, started_after_millis
from .models import FetchFailure, SearchOutcome, SearchPage, WorklogPage

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, api: JiraAPI, config: ReportConfig):
        self.api = api
        self.config = config

    @classmethod
    def connect(
        cls, config: ReportConfig, credentials: Credentials, *, cache: MemoCache | None = None
    ) -> ReportService:
        """Validate ``config`` and build a service; a new response cache unless one is given."""
        config.validate()
        api = JiraAPI(
            config.base_url,
            credentials.user,
            credentials.token,
            api_version=config.api_version,
            cache=cache if cache is not None else MemoCache(),
        )
        return cls(api, config)

    @property
    def cache(self) -> MemoCache:
        return self.api.cache

    # ------------------ Query ------------------
    def effective_jql(self) -> str:
        """Configured query, narrowed to the target month, unless a filter replaces it."""
        cfg = self.config
        jql = cfg.query
        if cfg.target_year_month:
            condition, applicable = date_condition(cfg.target_year_month, cfg.worklog, cfg.now().date())
            if applicable:
                jql = compose_jql(jql, condition)
            else:
                logger.info("Target month %s ignored (future or malformed)", cfg.target_year_month)
        if cfg.filter_id:
            try:
                jql = self.api.filter_jql(cfg.filter_id)
            except JiraFetchError as exc:
                logger.warning("Filter %s lookup failed, using composed query: %s", cfg.filter_id, exc)
        return jql

    def search_payload(self, start_at: int, jql: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fields": self.config.fields(),
            "startAt": start_at,
            "maxResults": self.config.max_result,
        }
        if jql:
            payload["jql"] = jql
        return payload

    # ------------------ Fetch Methods ------------------
    def search_issues(self, *, progress: ProgressCallback | None = None) -> SearchOutcome[SearchPage]:
        """Fetch page one, then every remaining page concurrently.

        Page order in the result is not meaningful. Empty pages are dropped,
        failures are collected alongside whatever pages did arrive.
        """
        outcome: SearchOutcome[SearchPage] = SearchOutcome()
        jql = self.effective_jql()
        logger.info("search: query=[%s]", jql)
        if progress:
            progress("Fetching first page of issues", None, None)
        try:
            first = self.api.search_page(self.search_payload(0, jql))
        except JiraFetchError as exc:
            failure = FetchFailure(label="search", item=0, worker=threading.current_thread().name, error=exc)
            logger.warning("%s", failure)
            outcome.failures.append(failure)
            return outcome
        if first.is_empty():
            logger.info("search: no issues matched")
            return outcome
        outcome.results.append(first)

        offsets = page_offsets(rest_pages(first), first.max_results)
        logger.debug("search: total=%d, remaining offsets=%s", first.total, offsets)
        pages, failures = bounded_map(
            offsets,
            lambda start_at: self.api.search_page(self.search_payload(start_at, jql)),
            label="search",
            progress=progress,
        )
        outcome.results.extend(page for page in pages if not page.is_empty())
        outcome.failures.extend(failures)
        logger.info(
            "search: %d page(s), %d issue(s), %d failure(s)",
            len(outcome.results),
            sum(len(page.issues) for page in outcome.results),
            len(outcome.failures),
        )
        return outcome

    def worklog_params(self) -> dict[str, Any]:
        cfg = self.config
        return {
            "startAt": 0,
            "maxResults": WORKLOG_PAGE_SIZE,
            "startedAfter": started_after_millis(cfg.target_year_month, cfg.now(), cfg.tzinfo()),
        }

    def search_worklogs(
        self,
        pages: Sequence[SearchPage],
        *,
        progress: ProgressCallback | None = None,
    ) -> SearchOutcome[WorklogPage]:
        """Fetch the worklogs of every issue in ``pages``, one request per issue."""
        keys = [issue.key for page in pages for issue in page.issues]
        params = self.worklog_params()
        if progress:
            progress("Fetching worklogs", 0, len(keys))
        results, failures = bounded_map(
            keys,
            lambda key: self.api.worklogs(key, params),
            label="worklog",
            progress=progress,
        )
        outcome: SearchOutcome[WorklogPage] = SearchOutcome(
            results=[page for page in results if not page.is_empty()],
            failures=failures,
        )
        logger.info(
            "worklog: %d issue(s) with worklogs, %d failure(s)", len(outcome.results), len(outcome.failures)
        )
        return outcome

    def search(
        self, *, progress: ProgressCallback | None = None
    ) -> tuple[list[SearchPage], list[WorklogPage], list[FetchFailure]]:
        issues = self.search_issues(progress=progress)
        if not self.config.worklog:
            return issues.results, [], issues.failures
        worklogs = self.search_worklogs(issues.results, progress=progress)
        return issues.results, worklogs.results, issues.failures + worklogs.failures

    # ------------------ Rendering ------------------
    def frame(self, issue_pages: Sequence[SearchPage], worklog_pages: Sequence[WorklogPage]) -> pd.DataFrame:
        fields = self.config.fields()
        labels = load_field_labels(self.config.labels_path)
        if self.config.worklog:
            return worklogs_frame(worklog_pages, fields, self.config, labels)
        return issues_frame(issue_pages, fields, self.config, labels)

    def report(
        self,
        sink: IO[str],
        issue_pages: Sequence[SearchPage],
        worklog_pages: Sequence[WorklogPage] = (),
    ) -> int:
        """Render worklogs in worklog mode, issues otherwise. Raises ``RenderError``."""
        return render_csv(self.frame(issue_pages, worklog_pages), sink)
