import io
from datetime import UTC, datetime

import pytest

from conftest import FakeResponse, search_json, worklog_json
from timespent_app.core.config import ReportConfig
from timespent_app.core.errors import JiraFetchError
from timespent_app.core.service import ReportService


def _config(**kwargs):
    kwargs.setdefault("query", "project = ABC")
    kwargs.setdefault("clock", lambda: datetime(2020, 10, 15, 12, 0, tzinfo=UTC))
    return ReportConfig(**kwargs)


def _keys(prefix, start, count):
    return [f"{prefix}-{n}" for n in range(start, start + count)]


def test_single_page_search_renders_header_and_rows(make_api):
    api, session = make_api(search_pages={0: search_json(0, 3, 50, ["ABC-3", "ABC-1", "ABC-2"])})
    service = ReportService(api, _config(time_unit="hh"))
    issues, worklogs, failures = service.search()
    assert failures == []
    assert worklogs == []
    assert len(session.posts) == 1

    sink = io.StringIO()
    assert service.report(sink, issues, worklogs) == 3
    lines = sink.getvalue().splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("Key,Summary,Status,Time Spent")
    assert [line.split(",")[0] for line in lines[1:]] == ["ABC-1", "ABC-2", "ABC-3"]


def test_remaining_pages_are_fetched_concurrently(make_api):
    api, session = make_api(
        search_pages={
            0: search_json(0, 125, 50, _keys("ABC", 0, 50)),
            50: search_json(50, 125, 50, _keys("ABC", 50, 50)),
            100: search_json(100, 125, 50, _keys("ABC", 100, 25)),
        }
    )
    outcome = ReportService(api, _config()).search_issues()
    assert outcome.failures == []
    assert session.search_offsets() == [0, 50, 100]
    assert sorted(p.start_at for p in outcome.results) == [0, 50, 100]
    assert sum(len(p.issues) for p in outcome.results) == 125
    assert all(payload["maxResults"] == 50 for _, payload in session.posts)


def test_empty_first_page_ends_search(make_api):
    api, session = make_api(search_pages={0: search_json(0, 0, 50, [])})
    outcome = ReportService(api, _config()).search_issues()
    assert outcome.results == []
    assert outcome.failures == []
    assert len(session.posts) == 1


def test_first_page_failure_is_collected(make_api):
    api, session = make_api(search_pages={0: FakeResponse(401, None, text="Unauthorized")})
    outcome = ReportService(api, _config()).search_issues()
    assert outcome.results == []
    assert len(outcome.failures) == 1
    assert outcome.failures[0].item == 0
    assert len(session.posts) == 1


def test_failed_page_does_not_abort_siblings(make_api):
    api, _ = make_api(
        search_pages={
            0: search_json(0, 150, 50, _keys("ABC", 0, 50)),
            50: FakeResponse(500, None, text="boom"),
            100: search_json(100, 150, 50, _keys("ABC", 100, 50)),
        }
    )
    outcome = ReportService(api, _config()).search_issues()
    assert sorted(p.start_at for p in outcome.results) == [0, 100]
    assert [f.item for f in outcome.failures] == [50]
    assert "boom" in str(outcome.failures[0])


def test_trailing_empty_page_is_dropped_silently(make_api):
    api, session = make_api(search_pages={0: search_json(0, 50, 50, _keys("ABC", 0, 50))})
    outcome = ReportService(api, _config()).search_issues()
    # total/maxResults + 1 asks for one page past the end
    assert session.search_offsets() == [0, 50]
    assert len(outcome.results) == 1
    assert outcome.failures == []


def test_repeat_search_hits_cache(make_api):
    api, session = make_api(
        search_pages={
            0: search_json(0, 60, 50, _keys("ABC", 0, 50)),
            50: search_json(50, 60, 50, _keys("ABC", 50, 10)),
        }
    )
    service = ReportService(api, _config())
    service.search_issues()
    service.search_issues()
    assert len(session.posts) == 2


def test_payload_carries_fields_and_query(make_api):
    api, session = make_api(search_pages={0: search_json(0, 1, 50, ["ABC-1"])})
    ReportService(api, _config(field_names="summary,timespent", max_result=20)).search_issues()
    _, payload = session.posts[0]
    assert payload == {"fields": ["summary", "timespent"], "startAt": 0, "maxResults": 20, "jql": "project = ABC"}


def test_empty_query_omits_jql(make_api):
    api, session = make_api(search_pages={0: search_json(0, 1, 50, ["ABC-1"])})
    ReportService(api, _config(query="")).search_issues()
    assert "jql" not in session.posts[0][1]


def test_effective_jql_adds_target_month(make_api):
    api, _ = make_api()
    service = ReportService(api, _config(target_year_month="2020-08"))
    assert service.effective_jql() == (
        "project = ABC AND (updated >= startOfMonth(-2) AND updated <= endOfMonth(-2))"
    )
    service = ReportService(api, _config(target_year_month="2020-08", worklog=True))
    assert "worklogDate >= startOfMonth(-2)" in service.effective_jql()


def test_effective_jql_ignores_future_month(make_api):
    api, _ = make_api()
    service = ReportService(api, _config(target_year_month="2020-11"))
    assert service.effective_jql() == "project = ABC"


def test_filter_replaces_composed_query(make_api):
    api, session = make_api(filters={"10001": "project = XYZ ORDER BY key"})
    service = ReportService(api, _config(filter_id="10001", target_year_month="2020-08"))
    assert service.effective_jql() == "project = XYZ ORDER BY key"
    service.effective_jql()
    assert len(session.gets) == 1


def test_filter_failure_falls_back_to_composed_query(make_api):
    api, _ = make_api()
    service = ReportService(api, _config(filter_id="404"))
    assert service.effective_jql() == "project = ABC"


def test_worklog_search_stamps_keys_and_drops_empty(make_api):
    api, session = make_api(
        search_pages={0: search_json(0, 3, 50, ["ABC-1", "ABC-2", "ABC-3"])},
        worklogs={
            "ABC-1": [worklog_json("2020-09-02T10:00", 3600), worklog_json("2020-09-01T10:00", 1800)],
            "ABC-2": [],
            "ABC-3": FakeResponse(404, None, text="Issue does not exist"),
        },
    )
    service = ReportService(api, _config(worklog=True, target_year_month="2020-09", time_unit="hh"))
    issues, worklogs, failures = service.search()
    assert len(issues) == 1
    assert [p.issue_key for p in worklogs] == ["ABC-1"]
    assert all(wl.key == "ABC-1" for wl in worklogs[0].worklogs)
    assert [f.item for f in failures] == ["ABC-3"]
    assert failures[0].label == "worklog"

    params = [p for url, p in session.gets if url.endswith("/worklog")]
    assert len(params) == 3
    assert params[0] == {"startAt": 0, "maxResults": 1048576, "startedAfter": 1598918400000}

    sink = io.StringIO()
    service.report(sink, issues, worklogs)
    assert sink.getvalue().splitlines() == [
        "Key,Started,Display Name,Email Address,Time Spent",
        "ABC-1,2020-09-01T10:00,Alice,alice@example.com,0.50",
        "ABC-1,2020-09-02T10:00,Alice,alice@example.com,1.00",
    ]


def test_worklog_mode_sends_worklog_fields(make_api):
    api, session = make_api(search_pages={0: search_json(0, 0, 50, [])})
    ReportService(api, _config(worklog=True)).search()
    assert session.posts[0][1]["fields"] == ["started", "author.displayname", "author.emailaddress", "timespentseconds"]


def test_issue_failures_and_worklog_failures_are_merged(make_api):
    api, _ = make_api(
        search_pages={
            0: search_json(0, 60, 50, _keys("ABC", 0, 50)),
            50: FakeResponse(500, None, text="page boom"),
        },
        worklogs={"ABC-0": FakeResponse(500, None, text="worklog boom")},
    )
    _, _, failures = ReportService(api, _config(worklog=True)).search()
    assert sorted(f.label for f in failures) == ["search", "worklog"]


def test_report_uses_label_file(make_api, tmp_path):
    labels = tmp_path / "labels.yaml"
    labels.write_text("labels:\n  summary: 概要\n", encoding="utf-8")
    api, _ = make_api(search_pages={0: search_json(0, 1, 50, ["ABC-1"])})
    service = ReportService(api, _config(field_names="summary", labels_path=str(labels)))
    issues, worklogs, _ = service.search()
    sink = io.StringIO()
    service.report(sink, issues, worklogs)
    assert sink.getvalue().splitlines()[0] == "Key,概要"


def test_connect_validates_config():
    from timespent_app.core.config import Credentials
    from timespent_app.core.errors import ConfigurationError

    with pytest.raises(ConfigurationError):
        ReportService.connect(_config(base_url="nowhere"), Credentials("u", "t"))


def test_malformed_first_page_is_collected(make_api):
    api, session = make_api(search_pages={0: {"startAt": 0, "total": 1, "maxResults": 50, "issues": [None]}})
    outcome = ReportService(api, _config()).search_issues()
    assert outcome.results == []
    assert len(outcome.failures) == 1
    assert outcome.failures[0].item == 0
    assert isinstance(outcome.failures[0].error, JiraFetchError)
    assert len(session.posts) == 1


def test_malformed_later_page_is_collected_the_same_way(make_api):
    api, _ = make_api(
        search_pages={
            0: search_json(0, 60, 50, _keys("ABC", 0, 50)),
            50: {"startAt": 50, "total": 60, "maxResults": 50, "issues": [None]},
        }
    )
    outcome = ReportService(api, _config()).search_issues()
    assert [p.start_at for p in outcome.results] == [0]
    assert [f.item for f in outcome.failures] == [50]
    assert isinstance(outcome.failures[0].error, JiraFetchError)
