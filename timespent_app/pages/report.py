"""Timespent report page.

Inputs can be prefilled from the page URL, e.g.
``?baseurl=https://your-jira.atlassian.net&query=status+%3D+Closed&targetyearmonth=2020-08&worklog=true``.
"""

from __future__ import annotations

from dataclasses import replace

import streamlit as st

from timespent_app.app import register_page
from timespent_app.core.cache import MemoCache
from timespent_app.core.config import DEFAULT_TIME_UNIT, TIME_UNITS, ReportConfig
from timespent_app.core.errors import ConfigurationError
from timespent_app.core.service import ReportService
from timespent_app.visual.progress import FetchProgress

MAX_PAGE_SIZE = 1000


def _initial_config() -> ReportConfig:
    base = ReportConfig()
    server = st.session_state.get("jira_server")
    if server:
        base = replace(base, base_url=server)
    return base.with_query_params(st.query_params.to_dict())


def unit_options(config: ReportConfig) -> tuple[list[str], int]:
    """Selector options and the preselected index for ``config.time_unit``."""
    options = list(TIME_UNITS)
    unit = config.canonical_unit()
    if unit is not None:
        return options, options.index(unit)
    raw = config.time_unit.strip()
    if not raw:
        return options, options.index(DEFAULT_TIME_UNIT)
    # Unknown codes stay selectable so the report shows what was asked for
    options.append(raw)
    return options, len(options) - 1


def clamp_prefill(value: int, low: int, high: int | None = None) -> int:
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def _number_prefill(label: str, value: int, low: int, high: int | None = None) -> int:
    clamped = clamp_prefill(value, low, high)
    if clamped != value:
        st.warning(f"{label}: {value} is out of range, using {clamped}.")
    return clamped


def _session_cache() -> MemoCache:
    # One cache per browser session, reused across reruns
    if "memo_cache" not in st.session_state:
        st.session_state["memo_cache"] = MemoCache()
    return st.session_state["memo_cache"]


@register_page("Timespent Report")
def report_page():
    st.title("Timespent Report")
    credentials = st.session_state.get("jira_credentials")
    if credentials is None:
        st.warning("Initialize connection on Setup page first.")
        return

    initial = _initial_config()
    col1, col2 = st.columns(2)
    with col1:
        base_url = st.text_input("Jira URL", value=initial.base_url)
        query = st.text_area("JQL", value=initial.query)
        filter_id = st.text_input("Filter id (replaces JQL)", value=initial.filter_id)
        field_names = st.text_input("Fields", value=initial.field_names, disabled=initial.worklog)
    with col2:
        target = st.text_input("Target month (YYYY-MM)", value=initial.target_year_month)
        worklog = st.checkbox("Worklogs", value=initial.worklog)
        units, unit_index = unit_options(initial)
        unit = st.selectbox("Time unit", units, index=unit_index)
        hours = st.number_input(
            "Hours per day",
            min_value=1,
            value=_number_prefill("Hours per day", initial.hours_per_day, 1),
        )
        days = st.number_input(
            "Days per month",
            min_value=1,
            value=_number_prefill("Days per month", initial.days_per_month, 1),
        )
        page_size = st.number_input(
            "Page size",
            min_value=1,
            max_value=MAX_PAGE_SIZE,
            value=_number_prefill("Page size", initial.max_result, 1, MAX_PAGE_SIZE),
        )

    if not st.button("Run Report", type="primary"):
        return

    config = replace(
        initial,
        base_url=base_url,
        query=query,
        filter_id=filter_id,
        field_names=field_names,
        target_year_month=target,
        worklog=worklog,
        time_unit=unit,
        hours_per_day=int(hours),
        days_per_month=int(days),
        max_result=int(page_size),
    )
    try:
        service = ReportService.connect(config, credentials, cache=_session_cache())
    except ConfigurationError as exc:
        st.error(str(exc))
        return

    progress = FetchProgress("Fetching from Jira")
    issues, worklogs, failures = service.search(progress=progress.callback)
    frame = service.frame(issues, worklogs)
    progress.finish(len(frame), failures)
    st.dataframe(frame, hide_index=True)
    if not failures:
        csv = frame.to_csv(index=False, lineterminator="\n").encode("utf-8")
        st.download_button(
            "Download CSV",
            data=csv,
            file_name=f"jira_timespent_{config.target_year_month or 'report'}.csv",
            mime="text/csv",
        )
