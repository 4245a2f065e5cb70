"""Process-scoped memo of Jira responses shared by fan-out workers."""

from __future__ import annotations

import hashlib
import threading
from typing import Any


class MemoCache:
    """Thread-safe key/value memo with no eviction and no expiry.

    One lock guards the whole mapping; a run touches at most a few hundred
    keys, so contention is not a concern.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._memo: dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._memo[key] = value

    def get(self, key: str) -> tuple[Any, bool]:
        with self._lock:
            if key in self._memo:
                return self._memo[key], True
            return None, False

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._memo

    def __len__(self) -> int:
        with self._lock:
            return len(self._memo)


def search_cache_key(body: bytes) -> str:
    return "search:" + hashlib.sha256(body).hexdigest()


def filter_cache_key(filter_id: str) -> str:
    return f"filter:{filter_id}"
