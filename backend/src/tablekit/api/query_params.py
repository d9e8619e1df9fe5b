"""Parse list-request query parameters into QueryOptions.

filters, sorts and aggregations are JSON; sorts also accepts "col:dir,col2".
columns, groupBy, searchColumns and populate are comma-separated.
"""

import json
from collections.abc import Mapping
from typing import Any

from tablekit.config.types import AggregationSpec, FilterPredicate, QueryOptions, SortSpec
from tablekit.errors import ValidationFailedError
from tablekit.validation.types import ValidationIssue


def _invalid(param: str, message: str) -> ValidationFailedError:
    return ValidationFailedError(
        f"Invalid query parameter '{param}'",
        issues=[ValidationIssue(field=param, code="INVALID_PARAMETER", message=message)],
    )


def _int(params: Mapping[str, Any], name: str) -> int | None:
    raw = params.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise _invalid(name, f"{name} must be an integer")


def _csv(params: Mapping[str, Any], name: str) -> list[str] | None:
    raw = params.get(name)
    if not raw:
        return None
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def _json(params: Mapping[str, Any], name: str) -> Any:
    raw = params.get(name)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise _invalid(name, f"{name} is not valid JSON: {e.msg}")


def _objects(params: Mapping[str, Any], name: str) -> list[dict[str, Any]]:
    value = _json(params, name)
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise _invalid(name, f"{name} must be an object or a list of objects")
    return value


def _sorts(params: Mapping[str, Any]) -> list[SortSpec]:
    raw = params.get("sorts") or params.get("sort")
    if not raw:
        return []
    raw = str(raw).strip()
    if raw.startswith(("[", "{")):
        return [SortSpec.from_dict(s) for s in _objects({"sorts": raw}, "sorts")]

    result = []
    for part in raw.split(","):
        column, _, direction = part.strip().partition(":")
        if column:
            result.append(SortSpec(column=column, direction=direction.lower() or "asc"))
    return result


def _bool(params: Mapping[str, Any], name: str) -> bool:
    return str(params.get(name, "")).lower() in ("1", "true", "yes")


def parse_query_options(params: Mapping[str, Any]) -> QueryOptions:
    """Build QueryOptions from request query parameters.

    Raises:
        ValidationFailedError: For malformed integers or JSON
    """
    try:
        filters = [FilterPredicate.from_dict(f) for f in _objects(params, "filters")]
    except KeyError as e:
        raise _invalid("filters", f"missing key {e}")
    try:
        sorts = _sorts(params)
    except KeyError as e:
        raise _invalid("sorts", f"missing key {e}")
    try:
        aggregations = [
            AggregationSpec.from_dict(a) for a in _objects(params, "aggregations")
        ]
    except KeyError as e:
        raise _invalid("aggregations", f"missing key {e}")

    return QueryOptions(
        page=_int(params, "page") or 1,
        limit=_int(params, "limit"),
        search=params.get("search") or None,
        search_columns=_csv(params, "searchColumns"),
        filters=filters,
        sorts=sorts,
        view=params.get("view") or None,
        columns=_csv(params, "columns"),
        group_by=_csv(params, "groupBy") or [],
        aggregations=aggregations,
        include_deleted=_bool(params, "includeDeleted"),
        populate=_csv(params, "populate") or [],
    )
