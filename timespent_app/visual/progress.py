"""Streamlit progress banner driven by the fan-out progress callbacks."""

from __future__ import annotations

import streamlit as st

from timespent_app.core.models import FetchFailure


class FetchProgress:
    """Banner, message line and progress bar for one report run.

    Each fan-out phase (pages, then worklogs) reports its own total, so the
    bar restarts whenever a new total arrives.
    """

    def __init__(self, title: str):
        self._container = st.container()
        self._container.info(title)
        self._message = self._container.empty()
        self._bar = self._container.progress(0.0)
        self._total: int | None = None
        self._done = False

    def callback(self, message: str, current: int | None = None, total: int | None = None) -> None:
        if self._done:
            return
        self._message.write(message)
        if total:
            self._total = total
        if current is None or not self._total:
            self._bar.progress(0.0)
            return
        self._bar.progress(min(max(current / self._total, 0.0), 1.0))

    def finish(self, rows: int, failures: list[FetchFailure]) -> None:
        if self._done:
            return
        self._done = True
        self._bar.progress(1.0)
        if failures:
            for failure in failures:
                self._container.error(str(failure))
            self._container.warning(
                f"{len(failures)} request(s) failed; the report below is incomplete and cannot be downloaded."
            )
        else:
            self._container.success(f"Fetched {rows} row(s).")
