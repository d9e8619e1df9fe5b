"""In-process evaluation of predicates and pipelines over plain dicts.

Shared by the in-memory store and the SQL document store.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from tablekit.persistence.predicates import (
    Accumulator,
    And,
    Count,
    Eq,
    Exists,
    Group,
    In,
    IsEmpty,
    Limit,
    Match,
    MatchAll,
    Ne,
    NotIn,
    Or,
    Predicate,
    Project,
    Range,
    SetSize,
    Skip,
    Sort,
    SortKey,
    Stage,
    TextMatch,
    Unwind,
)

_MISSING = object()


def get_value(document: dict[str, Any], path: str) -> Any:
    """Read a possibly dotted field path. Missing fields read as None."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part, _MISSING)
        if value is _MISSING:
            return None
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(left: Any, right: Any, op: str) -> bool:
    if left is None or right is None:
        return False
    try:
        if op == "gt":
            return left > right
        if op == "gte":
            return left >= right
        if op == "lt":
            return left < right
        return left <= right
    except TypeError:
        return False


def _equals(value: Any, operand: Any) -> bool:
    if isinstance(value, list) and not isinstance(operand, list):
        return operand in value
    return value == operand


def matches(predicate: Predicate, document: dict[str, Any]) -> bool:
    """Return True if the document satisfies the predicate."""
    if isinstance(predicate, MatchAll):
        return True
    if isinstance(predicate, And):
        return all(matches(p, document) for p in predicate.items)
    if isinstance(predicate, Or):
        return any(matches(p, document) for p in predicate.items)

    value = get_value(document, getattr(predicate, "field", ""))

    if isinstance(predicate, Eq):
        return _equals(value, predicate.value)
    if isinstance(predicate, Ne):
        return not _equals(value, predicate.value)
    if isinstance(predicate, In):
        if isinstance(value, list):
            return any(v in predicate.values for v in value)
        return value in predicate.values
    if isinstance(predicate, NotIn):
        if isinstance(value, list):
            return not any(v in predicate.values for v in value)
        return value not in predicate.values
    if isinstance(predicate, Range):
        bounds = (
            ("gt", predicate.gt),
            ("gte", predicate.gte),
            ("lt", predicate.lt),
            ("lte", predicate.lte),
        )
        return all(
            _compare(value, bound, op) for op, bound in bounds if bound is not None
        )
    if isinstance(predicate, Exists):
        return (value is not None) == predicate.exists
    if isinstance(predicate, IsEmpty):
        empty = value is None or value == "" or value == []
        return empty == predicate.empty
    if isinstance(predicate, TextMatch):
        return _text_match(value, predicate) != predicate.negate

    raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")


def _text_match(value: Any, predicate: TextMatch) -> bool:
    if value is None:
        return False
    candidates = value if isinstance(value, list) else [value]
    needle = predicate.text.lower()
    for candidate in candidates:
        text = str(candidate).lower()
        if predicate.mode == "starts_with" and text.startswith(needle):
            return True
        if predicate.mode == "ends_with" and text.endswith(needle):
            return True
        if predicate.mode == "contains" and needle in text:
            return True
    return False


# =============================================================================
# Sorting
# =============================================================================


def _sort_rank(value: Any) -> tuple[int, Any]:
    """Total order across mixed types: None < numbers < strings < dates < other."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if _is_number(value):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.isoformat())
    if isinstance(value, date):
        return (3, value.isoformat())
    return (4, repr(value))


def sort_documents(
    documents: list[dict[str, Any]], keys: Iterable[SortKey]
) -> list[dict[str, Any]]:
    """Stable multi-key sort; the first key has the highest priority."""
    result = list(documents)
    for key in reversed(list(keys)):
        result.sort(
            key=lambda d, f=key.field: _sort_rank(get_value(d, f)),
            reverse=key.descending,
        )
    return result


# =============================================================================
# Pipelines
# =============================================================================


def _freeze(value: Any) -> Any:
    """Hashable stand-in for a group key value."""
    if isinstance(value, list):
        return ("__list__", tuple(_freeze(v) for v in value))
    if isinstance(value, dict):
        return ("__dict__", tuple(sorted((k, _freeze(v)) for k, v in value.items())))
    return value


def _accumulate(acc: Accumulator, rows: list[dict[str, Any]]) -> Any:
    if acc.op == "count":
        return len(rows)

    values = [get_value(r, acc.field) for r in rows] if acc.field else []

    if acc.op == "sum":
        return sum(v for v in values if _is_number(v))
    if acc.op == "avg":
        numbers = [v for v in values if _is_number(v)]
        return sum(numbers) / len(numbers) if numbers else None
    if acc.op in ("min", "max"):
        present = [v for v in values if v is not None]
        if not present:
            return None
        pick = min if acc.op == "min" else max
        return pick(present, key=_sort_rank)
    if acc.op == "add_to_set":
        distinct: list[Any] = []
        seen: set[Any] = set()
        for v in values:
            marker = _freeze(v)
            if marker not in seen:
                seen.add(marker)
                distinct.append(v)
        return distinct

    raise ValueError(f"Unsupported accumulator '{acc.op}'")


def _group(stage: Group, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    buckets: dict[Any, list[dict[str, Any]]] = {}
    key_values: dict[Any, tuple] = {}
    for row in rows:
        values = tuple(get_value(row, k) for k in stage.keys)
        marker = tuple(_freeze(v) for v in values)
        buckets.setdefault(marker, []).append(row)
        key_values.setdefault(marker, values)

    result = []
    for marker, members in buckets.items():
        out = dict(zip(stage.keys, key_values[marker]))
        for acc in stage.accumulators:
            out[acc.name] = _accumulate(acc, members)
        result.append(out)
    return result


def _unwind(stage: Unwind, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    result = []
    for row in rows:
        value = get_value(row, stage.field)
        if isinstance(value, list):
            for item in value:
                result.append({**row, stage.field: item})
        elif value is not None:
            result.append(row)
    return result


def run_pipeline(
    documents: Iterable[dict[str, Any]], stages: Iterable[Stage]
) -> list[dict[str, Any]]:
    """Run a pipeline over documents and return the output rows."""
    rows = list(documents)
    for stage in stages:
        if isinstance(stage, Match):
            rows = [r for r in rows if matches(stage.predicate, r)]
        elif isinstance(stage, Group):
            rows = _group(stage, rows)
        elif isinstance(stage, SetSize):
            rows = [
                {
                    **r,
                    **{f: len(r[f]) if isinstance(r.get(f), list) else 0 for f in stage.fields},
                }
                for r in rows
            ]
        elif isinstance(stage, Unwind):
            rows = _unwind(stage, rows)
        elif isinstance(stage, Sort):
            rows = sort_documents(rows, stage.keys)
        elif isinstance(stage, Skip):
            rows = rows[stage.count:]
        elif isinstance(stage, Limit):
            rows = rows[: stage.count]
        elif isinstance(stage, Count):
            rows = [{stage.name: len(rows)}]
        elif isinstance(stage, Project):
            rows = [project(r, stage.fields) for r in rows]
        else:
            raise TypeError(f"Unsupported pipeline stage: {type(stage).__name__}")
    return rows


def project(document: dict[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    return {f: document[f] for f in fields if f in document}


def select(
    documents: Iterable[dict[str, Any]],
    predicate: Predicate,
    sort: Iterable[SortKey] | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Filter, sort and slice documents for the flat read path."""
    rows = [d for d in documents if matches(predicate, d)]
    if sort:
        rows = sort_documents(rows, sort)
    if skip:
        rows = rows[skip:]
    if limit is not None:
        rows = rows[:limit]
    return rows
