"""Sort merged search results and render them as a CSV report."""

from __future__ import annotations

from collections.abc import Iterable
from typing import IO

import pandas as pd

from timespent_app.core.config import ReportConfig
from timespent_app.core.errors import RenderError
from timespent_app.core.field_labels import header_labels
from timespent_app.core.mappers import issue_to_record, worklog_to_record
from timespent_app.core.models import Issue, SearchPage, Worklog, WorklogPage


def sorted_issues(pages: Iterable[SearchPage]) -> list[Issue]:
    # Plain string order: "A-10" sorts before "A-2"
    return sorted((issue for page in pages for issue in page.issues), key=lambda i: i.key)


def sorted_worklogs(pages: Iterable[WorklogPage]) -> list[Worklog]:
    return sorted(
        (wl for page in pages for wl in page.worklogs),
        key=lambda wl: (wl.key, wl.started),
    )


def issues_frame(
    pages: Iterable[SearchPage],
    fields: list[str],
    config: ReportConfig,
    labels: dict[str, str] | None = None,
) -> pd.DataFrame:
    rows = [issue_to_record(issue, fields, config) for issue in sorted_issues(pages)]
    return pd.DataFrame(rows, columns=header_labels(fields, labels), dtype=object)


def worklogs_frame(
    pages: Iterable[WorklogPage],
    fields: list[str],
    config: ReportConfig,
    labels: dict[str, str] | None = None,
) -> pd.DataFrame:
    rows = [worklog_to_record(wl, fields, config) for wl in sorted_worklogs(pages)]
    return pd.DataFrame(rows, columns=header_labels(fields, labels), dtype=object)


def render_csv(frame: pd.DataFrame, sink: IO[str]) -> int:
    """Write header and rows to ``sink``; returns the number of data rows."""
    try:
        frame.to_csv(sink, index=False, lineterminator="\n")
        flush = getattr(sink, "flush", None)
        if flush is not None:
            flush()
    except (OSError, ValueError) as exc:
        raise RenderError(f"Writing report failed: {exc}") from exc
    return len(frame)
