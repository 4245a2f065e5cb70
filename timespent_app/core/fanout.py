"""Bounded-concurrency fan-out shared by page and worklog fetching."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

from .config import MAX_WORKER_SIZE
from .models import FetchFailure, SearchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[str, int | None, int | None], None]


def rest_pages(page: SearchPage) -> list[int]:
    """1-based page numbers still to fetch after ``page``."""
    if page.is_empty() or page.max_results <= 0:
        return []
    current = page.start_at // page.max_results + 1
    last = page.total // page.max_results + 1
    return list(range(current + 1, last + 1))


def page_offsets(pages: Sequence[int], page_size: int) -> list[int]:
    return [(number - 1) * page_size for number in pages]


def bounded_map(
    items: Sequence[T],
    fn: Callable[[T], R],
    *,
    max_workers: int = MAX_WORKER_SIZE,
    label: str = "fetch",
    progress: ProgressCallback | None = None,
) -> tuple[list[R], list[FetchFailure]]:
    """Run ``fn`` over ``items`` on at most ``max_workers`` threads.

    Results come back in completion order. A failing item is recorded as a
    ``FetchFailure`` and does not stop its siblings. Returns once every item
    has been processed.
    """
    if not items:
        return [], []

    def _task(item: T) -> tuple[str, R | None, Exception | None]:
        worker = threading.current_thread().name
        try:
            return worker, fn(item), None
        except Exception as exc:
            return worker, None, exc

    results: list[R] = []
    failures: list[FetchFailure] = []
    worker_count = min(len(items), max_workers)
    logger.debug("%s: dispatching %d item(s) on %d worker(s)", label, len(items), worker_count)
    completed = 0
    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix=label) as pool:
        futures = {pool.submit(_task, item): item for item in items}
        for fut in as_completed(futures):
            worker, result, error = fut.result()
            if error is not None:
                failure = FetchFailure(label=label, item=futures[fut], worker=worker, error=error)
                logger.warning("%s", failure)
                failures.append(failure)
            else:
                results.append(result)
            completed += 1
            if progress:
                progress(f"{label}: {completed}/{len(items)}", completed, len(items))
    return results, failures
