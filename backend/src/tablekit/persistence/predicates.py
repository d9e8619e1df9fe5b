"""Predicate algebra, merge patches and aggregation pipeline stages.

These are the only query/update shapes the engine hands to a RecordStore.
Each store adapter maps them onto its own backend.
"""

from dataclasses import dataclass, field
from typing import Any


class Predicate:
    """Base class for filter predicates."""


@dataclass(frozen=True)
class MatchAll(Predicate):
    pass


@dataclass(frozen=True)
class Eq(Predicate):
    """field == value. A list-valued field matches when it contains value."""

    field: str
    value: Any


@dataclass(frozen=True)
class Ne(Predicate):
    field: str
    value: Any


@dataclass(frozen=True)
class In(Predicate):
    """field is one of values. A list-valued field matches on any overlap."""

    field: str
    values: tuple


@dataclass(frozen=True)
class NotIn(Predicate):
    field: str
    values: tuple


@dataclass(frozen=True)
class Range(Predicate):
    field: str
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None


@dataclass(frozen=True)
class Exists(Predicate):
    """The field is present and not None (or, with exists=False, the opposite)."""

    field: str
    exists: bool = True


@dataclass(frozen=True)
class IsEmpty(Predicate):
    """The field is missing, None, "" or []."""

    field: str
    empty: bool = True


@dataclass(frozen=True)
class TextMatch(Predicate):
    """Case-insensitive literal text match.

    mode is one of "contains", "starts_with", "ends_with".
    """

    field: str
    text: str
    mode: str = "contains"
    negate: bool = False


@dataclass(frozen=True)
class And(Predicate):
    items: tuple[Predicate, ...]


@dataclass(frozen=True)
class Or(Predicate):
    items: tuple[Predicate, ...]


def and_(*predicates: Predicate | None) -> Predicate:
    """AND predicates together, flattening nested Ands and dropping None/MatchAll."""
    items: list[Predicate] = []
    for p in predicates:
        if p is None or isinstance(p, MatchAll):
            continue
        if isinstance(p, And):
            items.extend(p.items)
        else:
            items.append(p)
    if not items:
        return MatchAll()
    if len(items) == 1:
        return items[0]
    return And(tuple(items))


def or_(*predicates: Predicate) -> Predicate:
    items = tuple(p for p in predicates if p is not None)
    if len(items) == 1:
        return items[0]
    return Or(items)


@dataclass
class MergePatch:
    """Field-level update: set some fields, remove others. Never a full replace."""

    set: dict[str, Any] = field(default_factory=dict)
    unset: tuple[str, ...] = ()

    def apply(self, document: dict[str, Any]) -> dict[str, Any]:
        """Return a new document with the patch applied."""
        result = dict(document)
        result.update(self.set)
        for name in self.unset:
            result.pop(name, None)
        return result


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


# =============================================================================
# Pipeline stages
# =============================================================================


class Stage:
    """Base class for aggregation pipeline stages."""


@dataclass(frozen=True)
class Match(Stage):
    predicate: Predicate


@dataclass(frozen=True)
class Accumulator:
    """One derived field of a Group stage.

    op is one of "count", "sum", "avg", "min", "max", "add_to_set".
    """

    name: str
    op: str
    field: str | None = None


@dataclass(frozen=True)
class Group(Stage):
    """Group by the tuple of key fields.

    Output rows are flat: one entry per key field plus one per accumulator.
    """

    keys: tuple[str, ...]
    accumulators: tuple[Accumulator, ...] = ()


@dataclass(frozen=True)
class SetSize(Stage):
    """Replace each listed set-valued field with its size."""

    fields: tuple[str, ...]


@dataclass(frozen=True)
class Unwind(Stage):
    """Emit one row per element of a list-valued field."""

    field: str


@dataclass(frozen=True)
class Sort(Stage):
    keys: tuple[SortKey, ...]


@dataclass(frozen=True)
class Skip(Stage):
    count: int


@dataclass(frozen=True)
class Limit(Stage):
    count: int


@dataclass(frozen=True)
class Count(Stage):
    """Collapse the stream to a single {name: n} row."""

    name: str = "count"


@dataclass(frozen=True)
class Project(Stage):
    fields: tuple[str, ...]
