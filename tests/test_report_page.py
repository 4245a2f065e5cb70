import pytest
from streamlit.testing.v1 import AppTest

from timespent_app.core.config import ReportConfig
from timespent_app.pages.report import MAX_PAGE_SIZE, clamp_prefill, unit_options


def _report_script():
    import streamlit as st

    from timespent_app.core.config import Credentials
    from timespent_app.pages.report import report_page

    st.session_state.setdefault("jira_credentials", Credentials(user="me@example.com", token="secret"))
    report_page()


def _run_page(**params):
    at = AppTest.from_function(_report_script)
    for key, value in params.items():
        at.query_params[key] = value
    at.run()
    assert not at.exception
    return at


@pytest.mark.parametrize(
    "unit, expected",
    [("h", "hh"), ("D", "dd"), ("m", "mm"), ("mm", "mm"), ("", "dd")],
)
def test_unit_aliases_preselect_canonical_code(unit, expected):
    options, index = unit_options(ReportConfig(time_unit=unit))
    assert options[index] == expected


def test_unknown_unit_stays_selected():
    options, index = unit_options(ReportConfig(time_unit="ww"))
    assert options == ["hh", "dd", "mm", "ww"]
    assert index == 3


def test_clamp_prefill():
    assert clamp_prefill(0, 1) == 1
    assert clamp_prefill(5, 1) == 5
    assert clamp_prefill(2000, 1, MAX_PAGE_SIZE) == MAX_PAGE_SIZE


def test_page_preselects_unit_alias_from_url():
    at = _run_page(timeunit="h")
    assert at.selectbox[0].value == "hh"


def test_page_clamps_out_of_range_numbers_from_url():
    at = _run_page(maxresult="2000", hoursperday="0")
    hours, days, page_size = (widget.value for widget in at.number_input)
    assert hours == 1
    assert days == 24
    assert page_size == MAX_PAGE_SIZE
    warnings = [w.value for w in at.warning]
    assert "Page size: 2000 is out of range, using 1000." in warnings
    assert "Hours per day: 0 is out of range, using 1." in warnings


def test_page_without_credentials_asks_for_setup():
    at = AppTest.from_function(_render_without_credentials)
    at.run()
    assert not at.exception
    assert at.warning[0].value == "Initialize connection on Setup page first."


def _render_without_credentials():
    from timespent_app.pages.report import report_page

    report_page()
