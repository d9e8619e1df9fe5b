"""Query compiler.

Turns a table configuration, the per-request QueryOptions and the caller into
the predicate, sort and paging a RecordStore executes. Grouped reads compile
to an aggregation pipeline instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from tablekit.auth.permissions import SYSTEM_FIELDS, can_read_field, scope_to_owner
from tablekit.auth.types import Caller
from tablekit.config.types import (
    AGGREGATE_FUNCTIONS,
    AggregationSpec,
    FilterPredicate,
    QueryOptions,
    TableConfiguration,
    TableView,
)
from tablekit.hooks.service import HookRunner
from tablekit.persistence.predicates import (
    Accumulator,
    Count,
    Eq,
    Exists,
    Group,
    In,
    IsEmpty,
    Limit,
    Match,
    Ne,
    NotIn,
    Predicate,
    Range,
    SetSize,
    Skip,
    Sort,
    SortKey,
    Stage,
    TextMatch,
    and_,
    or_,
)

logger = logging.getLogger(__name__)

MAX_LIMIT = 1000
DEFAULT_LIMIT = 50
DEFAULT_SORT = (SortKey("createdAt", descending=True),)

_TEXT_MODES = {
    "contains": ("contains", False),
    "not_contains": ("contains", True),
    "starts_with": ("starts_with", False),
    "ends_with": ("ends_with", False),
}

_RANGE_BOUNDS = {
    "greater_than": "gt",
    "greater_than_or_equal": "gte",
    "less_than": "lt",
    "less_than_or_equal": "lte",
}


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested page size to [1, MAX_LIMIT]; None means DEFAULT_LIMIT."""
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(int(limit), MAX_LIMIT))


def clamp_page(page: int | None) -> int:
    return max(1, int(page or 1))


def _values(f: FilterPredicate) -> tuple:
    if f.values is not None:
        return tuple(f.values)
    if isinstance(f.value, (list, tuple)):
        return tuple(f.value)
    return () if f.value is None else (f.value,)


def translate_filter(f: FilterPredicate) -> Predicate | None:
    """Translate one filter predicate; None if the operator isn't supported."""
    op = f.operator
    if op == "equals":
        return Eq(f.column, f.value)
    if op == "not_equals":
        return Ne(f.column, f.value)
    if op in _TEXT_MODES:
        if f.value is None:
            return None
        mode, negate = _TEXT_MODES[op]
        return TextMatch(f.column, str(f.value), mode=mode, negate=negate)
    if op in _RANGE_BOUNDS:
        return Range(f.column, **{_RANGE_BOUNDS[op]: f.value})
    if op == "in":
        return In(f.column, _values(f))
    if op == "not_in":
        return NotIn(f.column, _values(f))
    if op == "is_empty":
        return IsEmpty(f.column)
    if op == "is_not_empty":
        return IsEmpty(f.column, empty=False)
    if op == "between":
        bounds = _values(f)
        if len(bounds) != 2:
            return None
        return Range(f.column, gte=bounds[0], lte=bounds[1])
    return None


@dataclass
class CompiledQuery:
    """Everything a store needs to execute one list read.

    pipeline/count_pipeline are set only for grouped reads; flat reads use
    filter, sort, skip and limit directly.
    """

    filter: Predicate
    sort: tuple[SortKey, ...]
    skip: int
    limit: int
    page: int
    view: TableView | None = None
    visible_columns: list[str] = field(default_factory=list)
    group_by: tuple[str, ...] = ()
    aggregations: tuple[AggregationSpec, ...] = ()
    pipeline: list[Stage] | None = None
    count_pipeline: list[Stage] | None = None

    @property
    def grouped(self) -> bool:
        return self.pipeline is not None


class QueryCompiler:
    """Compiles QueryOptions against a caller-scoped table configuration."""

    def __init__(self, hook_runner: HookRunner | None = None):
        self._hooks = hook_runner or HookRunner()

    async def compile(
        self,
        config: TableConfiguration,
        options: QueryOptions,
        caller: Caller | None,
    ) -> CompiledQuery:
        view = config.get_view(options.view)
        if options.view and view is None:
            logger.debug("Ignoring unknown view %r on %s", options.view, config.entity_key)

        limit = clamp_limit(
            options.limit if options.limit is not None else (view.page_size if view else None)
        )
        page = clamp_page(options.page)

        predicate = and_(
            *self._view_predicates(config, view),
            *self._filter_predicates(config, options.filters),
            self._search_predicate(config, options),
        )
        predicate = await self._hooks.transform(
            "beforeQuery", config.hooks, config.entity_key, predicate, caller
        )

        # Applied after beforeQuery so a hook can't lift soft-delete or row isolation
        soft_delete = None if options.include_deleted else Exists("deletedAt", exists=False)
        final = scope_to_owner(config, and_(predicate, soft_delete), caller, "view")

        group_by = () if options.flat else self._group_by(config, options, view)
        aggregations = self._aggregations(config, options, view)

        compiled = CompiledQuery(
            filter=final,
            sort=self._sort(config, options, view),
            skip=(page - 1) * limit,
            limit=limit,
            page=page,
            view=view,
            visible_columns=self._visible_columns(config, options, view),
            group_by=group_by,
            aggregations=aggregations,
        )
        if group_by:
            self._compile_grouping(compiled, options)
        return compiled

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @staticmethod
    def _readable(config: TableConfiguration, key: str) -> bool:
        """A caller-visible column whose values fieldPermissions don't hide."""
        return config.get_column(key) is not None and can_read_field(config, key)

    def _view_predicates(
        self, config: TableConfiguration, view: TableView | None
    ) -> list[Predicate]:
        if view is None:
            return []
        result = []
        for f in view.filters:
            p = translate_filter(f)
            if p is None:
                logger.debug(
                    "Ignoring view filter %s %r on %s", f.column, f.operator, config.entity_key
                )
                continue
            result.append(p)
        return result

    def _filter_predicates(
        self, config: TableConfiguration, filters: list[FilterPredicate]
    ) -> list[Predicate]:
        result = []
        for f in filters:
            column = config.get_column(f.column)
            if column is None or not column.filterable or not can_read_field(config, f.column):
                logger.debug("Ignoring filter on column %r of %s", f.column, config.entity_key)
                continue
            p = translate_filter(f)
            if p is None:
                logger.debug(
                    "Ignoring unsupported filter operator %r on %s", f.operator, config.entity_key
                )
                continue
            result.append(p)
        return result

    def _search_predicate(
        self, config: TableConfiguration, options: QueryOptions
    ) -> Predicate | None:
        text = (options.search or "").strip()
        if not text:
            return None
        if options.search_columns:
            keys = [k for k in options.search_columns if self._readable(config, k)]
        else:
            keys = [
                c.key for c in config.columns
                if c.searchable and can_read_field(config, c.key)
            ]
        if not keys:
            return None
        return or_(*(TextMatch(k, text) for k in keys))

    # ------------------------------------------------------------------
    # Sort, columns, aggregations
    # ------------------------------------------------------------------

    def _sort(
        self, config: TableConfiguration, options: QueryOptions, view: TableView | None
    ) -> tuple[SortKey, ...]:
        requested = []
        for s in options.sorts:
            column = config.get_column(s.column)
            if column is not None and column.sortable and can_read_field(config, s.column):
                requested.append(SortKey(s.column, s.descending))
            else:
                logger.debug("Ignoring sort on column %r of %s", s.column, config.entity_key)
        if requested:
            return tuple(requested)
        if view and view.sorts:
            # System fields aren't columns but are always sortable
            system = {config.primary_key, *SYSTEM_FIELDS}
            from_view = tuple(
                SortKey(s.column, s.descending)
                for s in view.sorts
                if s.column in system or self._readable(config, s.column)
            )
            if from_view:
                return from_view
        return DEFAULT_SORT

    def _group_by(
        self, config: TableConfiguration, options: QueryOptions, view: TableView | None
    ) -> tuple[str, ...]:
        requested = options.group_by or list(view.group_by if view else ())
        result = []
        for key in requested:
            if not self._readable(config, key):
                logger.debug("Ignoring groupBy column %r of %s", key, config.entity_key)
                continue
            result.append(key)
        return tuple(result)

    def _visible_columns(
        self, config: TableConfiguration, options: QueryOptions, view: TableView | None
    ) -> list[str]:
        known = [c.key for c in config.columns]
        if view and view.columns:
            return [k for k in view.columns if k in known]
        if options.columns:
            return [k for k in options.columns if k in known]
        return known

    def _aggregations(
        self, config: TableConfiguration, options: QueryOptions, view: TableView | None
    ) -> tuple[AggregationSpec, ...]:
        requested = options.aggregations or list(view.aggregations if view else ())
        result = []
        for agg in requested:
            if agg.function not in AGGREGATE_FUNCTIONS:
                logger.debug("Ignoring unknown aggregation %r", agg.function)
                continue
            # count never reads the column's values
            if agg.function != "count" and not self._readable(config, agg.column):
                logger.debug(
                    "Ignoring aggregation on column %r of %s", agg.column, config.entity_key
                )
                continue
            result.append(agg)
        return tuple(result)

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    def _compile_grouping(self, compiled: CompiledQuery, options: QueryOptions) -> None:
        accumulators = []
        distinct = []
        for agg in compiled.aggregations:
            name = agg.output_name
            if agg.function == "count":
                accumulators.append(Accumulator(name, "count"))
            elif agg.function == "distinct_count":
                accumulators.append(Accumulator(name, "add_to_set", agg.column))
                distinct.append(name)
            else:
                accumulators.append(Accumulator(name, agg.function, agg.column))

        group = Group(keys=compiled.group_by, accumulators=tuple(accumulators))
        sortable = set(compiled.group_by) | {a.name for a in accumulators}
        sort = tuple(
            SortKey(s.column, s.descending) for s in options.sorts if s.column in sortable
        ) or tuple(SortKey(k) for k in compiled.group_by)

        pipeline: list[Stage] = [Match(compiled.filter), group]
        if distinct:
            pipeline.append(SetSize(tuple(distinct)))
        pipeline.extend([Sort(sort), Skip(compiled.skip), Limit(compiled.limit)])

        compiled.sort = sort
        compiled.pipeline = pipeline
        compiled.count_pipeline = [
            Match(compiled.filter),
            Group(keys=compiled.group_by),
            Count("total"),
        ]


def describe(compiled: CompiledQuery) -> dict[str, Any]:
    """Loggable summary of a compiled query."""
    return {
        "filter": repr(compiled.filter),
        "sort": [(k.field, "desc" if k.descending else "asc") for k in compiled.sort],
        "skip": compiled.skip,
        "limit": compiled.limit,
        "grouped": compiled.grouped,
    }
