"""Jira API client wrapper (search, filter, and worklog REST endpoints)."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import requests
from jira import JIRA, JIRAError

from .cache import MemoCache, filter_cache_key, search_cache_key
from .config import DEFAULT_API_VERSION
from .errors import JiraFetchError
from .mappers import map_search_page, map_worklog_page
from .models import SearchPage, WorklogPage

logger = logging.getLogger(__name__)


class JiraAPI:
    def __init__(
        self,
        server: str,
        user: str,
        token: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        cache: MemoCache | None = None,
    ):
        self.server = server.rstrip("/")
        self.api_version = api_version
        # No retries: a failed request is reported, never replayed
        self.client = JIRA(
            basic_auth=(user, token),
            options={"server": self.server, "rest_api_version": api_version},
            get_server_info=False,
            max_retries=0,
        )
        self.cache = cache if cache is not None else MemoCache()

    def rest_url(self, path: str) -> str:
        return f"{self.server}/rest/api/{self.api_version}/{path.lstrip('/')}"

    def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        session = getattr(self.client, "_session", None)
        if session is None:
            raise JiraFetchError("JIRA session unavailable", url=url)
        try:
            resp = getattr(session, method)(url, **kwargs)
        except JIRAError as exc:
            raise JiraFetchError(
                f"{method.upper()} {url} failed {exc.status_code}: {exc.text}",
                url=url,
                status=exc.status_code,
            ) from exc
        except requests.RequestException as exc:
            raise JiraFetchError(f"{method.upper()} {url} failed: {exc}", url=url) from exc
        if resp.status_code >= 400:
            raise JiraFetchError(
                f"{method.upper()} {url} failed {resp.status_code}: {resp.text[:200]}",
                url=url,
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise JiraFetchError(f"Non-JSON response from {url}: {resp.text[:200]}", url=url) from exc
        if not isinstance(data, dict):
            raise JiraFetchError(f"Unexpected payload type from {url}: {type(data)!r}", url=url)
        return data

    @staticmethod
    def _map(mapper, data, *args: Any, url: str):
        """Apply ``mapper``; a body of the wrong shape is a failed fetch."""
        try:
            return mapper(data, *args)
        except (AttributeError, TypeError, ValueError) as exc:
            raise JiraFetchError(f"Malformed response from {url}: {exc}", url=url) from exc

    def search_page(self, payload: Mapping[str, Any]) -> SearchPage:
        """POST one search request; identical payloads are answered from the cache."""
        body = json.dumps(payload).encode("utf-8")
        key = search_cache_key(body)
        cached, found = self.cache.get(key)
        if found:
            logger.debug("cache hit: %s", key)
            return cached
        data = self._request_json(
            "post",
            self.rest_url("search"),
            data=body,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        page = self._map(map_search_page, data, url=self.rest_url("search"))
        self.cache.put(key, page)
        return page

    def filter_jql(self, filter_id: str) -> str:
        key = filter_cache_key(filter_id)
        cached, found = self.cache.get(key)
        if found:
            logger.debug("cache hit: %s", key)
            return cached
        data = self._request_json(
            "get", self.rest_url(f"filter/{filter_id}"), headers={"Accept": "application/json"}
        )
        jql = data.get("jql")
        if not isinstance(jql, str):
            raise JiraFetchError(f"Filter {filter_id} has no JQL", url=self.rest_url(f"filter/{filter_id}"))
        self.cache.put(key, jql)
        return jql

    def worklogs(self, issue_key: str, params: Mapping[str, Any]) -> WorklogPage:
        url = self.rest_url(f"issue/{issue_key}/worklog")
        data = self._request_json("get", url, params=dict(params), headers={"Accept": "application/json"})
        return self._map(map_worklog_page, data, issue_key, url=url)
