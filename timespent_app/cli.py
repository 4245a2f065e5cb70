"""Command-line entry point: search Jira and write the timespent CSV report.

Usage::

    AUTH_USER=you@example.com AUTH_TOKEN=xxxx jira-timespent-report \\
        --url https://your-jira.atlassian.net --maxresult 10 --unit dd \\
        --query "status = Closed" --targetym 2020-08
"""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import AbstractContextManager, nullcontext
from typing import IO

from dotenv import load_dotenv

from timespent_app.core.config import (
    DEFAULT_API_VERSION,
    DEFAULT_DAYS_PER_MONTH,
    DEFAULT_FIELD_NAMES,
    DEFAULT_HOURS_PER_DAY,
    DEFAULT_JIRA_URL,
    DEFAULT_MAX_RESULT,
    DEFAULT_QUERY,
    DEFAULT_TIME_UNIT,
    TIMEZONE,
    ReportConfig,
    load_credentials,
)
from timespent_app.core.errors import ConfigurationError, RenderError
from timespent_app.core.service import ReportService

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)-15s [%(funcName)25s:%(lineno)-5s] %(levelname)-8s %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jira-timespent-report",
        description="Report time spent on Jira issues (or their worklogs) as CSV.",
    )
    parser.add_argument("--url", default=DEFAULT_JIRA_URL, help="Jira base URL")
    parser.add_argument("--query", default=DEFAULT_QUERY, help="JQL expression")
    parser.add_argument("--filter", default="", help="saved filter id; its JQL replaces --query")
    parser.add_argument("--fields", default=DEFAULT_FIELD_NAMES, help="comma separated issue fields")
    parser.add_argument("--maxresult", type=int, default=DEFAULT_MAX_RESULT, help="page size")
    parser.add_argument("--api", default=DEFAULT_API_VERSION, help="Jira REST API version")
    parser.add_argument("--unit", default=DEFAULT_TIME_UNIT, help="time unit: hh, dd or mm")
    parser.add_argument("--hours", type=int, default=DEFAULT_HOURS_PER_DAY, help="work hours per day")
    parser.add_argument("--days", type=int, default=DEFAULT_DAYS_PER_MONTH, help="work days per month")
    parser.add_argument("--worklog", action="store_true", help="report worklogs instead of issues")
    parser.add_argument("--targetym", default="", help="target year-month (YYYY-MM)")
    parser.add_argument("--timezone", default=TIMEZONE, help="timezone for month boundaries")
    parser.add_argument("--labels", default=None, help="YAML file overriding header labels")
    parser.add_argument("--output", default="-", help="CSV destination file (default: stdout)")
    parser.add_argument("--env", default=None, help="load environment variables from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> ReportConfig:
    return ReportConfig(
        base_url=args.url,
        query=args.query,
        filter_id=args.filter,
        field_names=args.fields,
        max_result=args.maxresult,
        api_version=args.api,
        time_unit=args.unit,
        hours_per_day=args.hours,
        days_per_month=args.days,
        worklog=args.worklog,
        target_year_month=args.targetym,
        timezone=args.timezone,
        labels_path=args.labels,
    )


def open_output(path: str) -> AbstractContextManager[IO[str]]:
    """Sink for the report; ``-`` is stdout, which is left open."""
    if path == "-":
        return nullcontext(sys.stdout)
    return open(path, "w", encoding="utf-8", newline="")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    # Real process environment wins over the .env file
    if args.env:
        load_dotenv(args.env, override=False)
    else:
        load_dotenv(override=False)

    log.info("start")
    try:
        config = config_from_args(args)
        service = ReportService.connect(config, load_credentials())
    except ConfigurationError as exc:
        log.error("%s", exc)
        return 2

    # Each failure is already logged where it was collected
    issues, worklogs, failures = service.search()

    try:
        with open_output(args.output) as sink:
            rows = service.report(sink, issues, worklogs)
    except OSError as exc:
        log.error("Cannot write %s: %s", args.output, exc)
        return 1
    except RenderError as exc:
        log.error("%s", exc)
        return 1
    log.info("end: %d row(s), %d fetch failure(s)", rows, len(failures))
    return 0


if __name__ == "__main__":
    sys.exit(main())
