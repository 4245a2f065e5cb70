"""JQL composition: date-range conditions and merging them into a base query."""

from __future__ import annotations

from datetime import date, datetime

from .errors import ConfigurationError

# Predicates that already constrain time; a query containing one is left alone
_TIME_PREDICATES = ("worklogdate", "updated")
_ORDER_BY = "order by"


def compose_jql(base_query: str, condition: str) -> str:
    """Merge ``condition`` into ``base_query`` with AND.

    The condition is dropped when the base query already carries a time
    predicate. An ``ORDER BY`` clause stays at the end of the query.
    """
    if not condition:
        return base_query
    lowered = base_query.lower()
    if any(predicate in lowered for predicate in _TIME_PREDICATES):
        return base_query
    idx = lowered.find(_ORDER_BY)
    head, tail = (base_query[:idx].rstrip(), base_query[idx:]) if idx >= 0 else (base_query.strip(), "")
    # A query with no predicates takes the condition as its only predicate
    merged = f"{head} AND ({condition})" if head else condition
    return f"{merged} {tail}" if tail else merged


def parse_year_month(value: str) -> date | None:
    try:
        return datetime.strptime(f"{value.strip()}-01", "%Y-%m-%d").date()
    except ValueError:
        return None


def month_offset(target: date, now: date) -> int:
    """Calendar months from ``now`` to ``target`` (negative for past months)."""
    return (target.year - now.year) * 12 + (target.month - now.month)


def date_condition(target_year_month: str, worklog: bool, now: date) -> tuple[str, bool]:
    """Relative month predicate for ``target_year_month`` (``YYYY-MM``).

    Returns ``("", False)`` for unparsable input and for months after the
    current one.
    """
    target = parse_year_month(target_year_month)
    if target is None:
        return "", False
    offset = month_offset(target, now)
    if offset > 0:
        return "", False
    field = "worklogDate" if worklog else "updated"
    return f"{field} >= startOfMonth({offset}) AND {field} <= endOfMonth({offset})", True


def target_month(target_year_month: str, now: date) -> date:
    """First day of the target month, or of the previous month when unset."""
    if target_year_month:
        target = parse_year_month(target_year_month)
        if target is None:
            raise ConfigurationError(f"Target month must be YYYY-MM, got {target_year_month!r}")
        return target
    if now.month == 1:
        return date(now.year - 1, 12, 1)
    return date(now.year, now.month - 1, 1)


def started_after_millis(target_year_month: str, now: datetime, tz) -> int:
    """Epoch milliseconds of local midnight on the first day of the target month."""
    first = target_month(target_year_month, now.date())
    start = tz.localize(datetime(first.year, first.month, 1))
    return int(start.timestamp() * 1000)
