"""Column aggregations and facet counts over a permission-scoped filter."""

import logging
from typing import Any

from tablekit.config.types import AggregationSpec
from tablekit.persistence.adapter import RecordStore
from tablekit.persistence.predicates import (
    Accumulator,
    Count,
    Exists,
    Group,
    Match,
    Predicate,
    Sort,
    SortKey,
    Unwind,
    and_,
)

logger = logging.getLogger(__name__)

_REDUCERS = ("sum", "avg", "min", "max")
_EMPTY_DEFAULTS = {"count": 0, "sum": 0, "distinct_count": 0}


async def aggregate_column(
    store: RecordStore, base_filter: Predicate, agg: AggregationSpec
) -> Any:
    """Run one isolated aggregation. Unknown functions return None."""
    if agg.function == "count":
        return await store.count(base_filter)

    if agg.function in _REDUCERS:
        rows = await store.aggregate([
            Match(base_filter),
            Group(keys=(), accumulators=(Accumulator("value", agg.function, agg.column),)),
        ])
    elif agg.function == "distinct_count":
        rows = await store.aggregate([
            Match(base_filter),
            Group(keys=(agg.column,)),
            Count("value"),
        ])
    else:
        logger.debug("Ignoring unknown aggregation function %r", agg.function)
        return None

    if rows and rows[0].get("value") is not None:
        return rows[0]["value"]
    return _EMPTY_DEFAULTS.get(agg.function)


async def calculate_aggregations(
    store: RecordStore,
    base_filter: Predicate,
    aggregations: list[AggregationSpec] | tuple[AggregationSpec, ...],
) -> dict[str, Any]:
    """Compute each requested aggregation independently.

    Returns:
        Results keyed "{column}_{function}"
    """
    results: dict[str, Any] = {}
    for agg in aggregations:
        if agg.function not in _REDUCERS and agg.function not in _EMPTY_DEFAULTS:
            logger.debug("Ignoring unknown aggregation function %r", agg.function)
            continue
        results[agg.output_name] = await aggregate_column(store, base_filter, agg)
    return results


async def facet_counts(
    store: RecordStore,
    base_filter: Predicate,
    column: str,
    multi: bool = False,
) -> list[dict[str, Any]]:
    """Frequency of each value of a column, most frequent first.

    Multi-valued columns are unwound so each option is counted once per record.
    Missing values are not counted.
    """
    pipeline = [Match(and_(base_filter, Exists(column)))]
    if multi:
        pipeline.append(Unwind(column))
    pipeline.extend([
        Group(keys=(column,), accumulators=(Accumulator("count", "count"),)),
        Sort((SortKey("count", descending=True), SortKey(column))),
    ])
    rows = await store.aggregate(pipeline)
    return [{"value": r[column], "count": r["count"]} for r in rows]
