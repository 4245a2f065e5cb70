"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import timespent_app` works.

Also provides an in-memory stand-in for the Jira HTTP session so no test
touches the network.
"""

from __future__ import annotations

import json
import sys
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timespent_app.core.cache import MemoCache  # noqa: E402
from timespent_app.core.jira_client import JiraAPI  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


def issue_json(key, summary="", timespent=None, status="Closed"):
    return {
        "id": key.split("-")[-1],
        "key": key,
        "fields": {
            "summary": summary or f"Summary of {key}",
            "timespent": timespent,
            "timeoriginalestimate": None,
            "aggregatetimespent": timespent,
            "aggregatetimeoriginalestimate": None,
            "status": {"name": status, "description": f"{status} issues"},
        },
    }


def search_json(start_at, total, max_results, keys):
    return {
        "startAt": start_at,
        "total": total,
        "maxResults": max_results,
        "issues": [issue_json(k, timespent=3600) for k in keys],
    }


def worklog_json(started, seconds, name="Alice", email="alice@example.com"):
    return {
        "id": started,
        "started": started,
        "timeSpentSeconds": seconds,
        "author": {"displayName": name, "emailAddress": email},
    }


class FakeJiraSession:
    """Routes Jira REST calls to canned responses and records every call.

    ``search_pages`` maps startAt -> response (FakeResponse or JSON dict),
    ``filters`` maps filter id -> JQL, ``worklogs`` maps issue key -> list of
    worklog dicts (or a FakeResponse).
    """

    def __init__(self, search_pages=None, filters=None, worklogs=None):
        self.search_pages = search_pages or {}
        self.filters = filters or {}
        self.worklogs = worklogs or {}
        self.posts = []
        self.gets = []
        self._lock = threading.Lock()

    def post(self, url, data=None, headers=None, **kwargs):
        payload = json.loads(data)
        with self._lock:
            self.posts.append((url, payload))
        response = self.search_pages.get(payload["startAt"])
        if response is None:
            return FakeResponse(200, search_json(payload["startAt"], 0, payload["maxResults"], []))
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(200, response)

    def get(self, url, params=None, headers=None, **kwargs):
        with self._lock:
            self.gets.append((url, params))
        if "/filter/" in url:
            filter_id = url.rsplit("/", 1)[-1]
            if filter_id not in self.filters:
                return FakeResponse(404, None, text="filter not found")
            return FakeResponse(200, {"id": filter_id, "jql": self.filters[filter_id]})
        if url.endswith("/worklog"):
            key = url.rsplit("/", 2)[-2]
            items = self.worklogs.get(key, [])
            if isinstance(items, FakeResponse):
                return items
            return FakeResponse(
                200, {"startAt": 0, "maxResults": 1048576, "total": len(items), "worklogs": items}
            )
        return FakeResponse(404, None, text="not found")

    def search_offsets(self):
        return sorted(payload["startAt"] for _, payload in self.posts)


class DummyAPI(JiraAPI):
    def __init__(self, session, cache=None):
        self.server = "https://example.atlassian.net"
        self.api_version = "3"
        self.client = SimpleNamespace(_session=session)
        self.cache = cache if cache is not None else MemoCache()


@pytest.fixture
def make_api():
    def _make(**kwargs):
        cache = kwargs.pop("cache", None)
        session = FakeJiraSession(**kwargs)
        return DummyAPI(session, cache=cache), session

    return _make
