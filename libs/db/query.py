"""Query model shared by every document store implementation.

Queries are plain values (filters, an optional order and an optional limit)
so the same spec can be evaluated in memory, compiled to SQL, or re-run by
the subscription hub after every write.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

OPERATORS = ("==", "!=", "in", "array_contains", ">=", "<=")

_MISSING = object()


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class QuerySpec:
    filters: tuple[Filter, ...] = field(default_factory=tuple)
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = None

    def where(self, field_name: str, op: str, value: Any) -> "QuerySpec":
        return QuerySpec(
            filters=self.filters + (Filter(field_name, op, value),),
            order_by=self.order_by,
            limit=self.limit,
        )

    def ordered(self, field_name: str, descending: bool = False) -> "QuerySpec":
        return QuerySpec(self.filters, OrderBy(field_name, descending), self.limit)

    def limited(self, limit: Optional[int]) -> "QuerySpec":
        return QuerySpec(self.filters, self.order_by, limit)


def lookup(doc: dict[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted field path ("stats.goals") inside a document."""
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _matches_filter(doc: dict[str, Any], f: Filter) -> bool:
    value = lookup(doc, f.field, _MISSING)
    if f.op == "==":
        return value is not _MISSING and value == f.value
    if f.op == "!=":
        return value is _MISSING or value != f.value
    if f.op == "in":
        return value is not _MISSING and value in f.value
    if f.op == "array_contains":
        return isinstance(value, list) and f.value in value
    if value is _MISSING or value is None:
        return False
    try:
        if f.op == ">=":
            return value >= f.value
        return value <= f.value
    except TypeError:
        return False


def matches(doc: dict[str, Any], filters: Iterable[Filter]) -> bool:
    return all(_matches_filter(doc, f) for f in filters)


def sort_documents(
    docs: list[dict[str, Any]], field_name: str, descending: bool = False
) -> list[dict[str, Any]]:
    """Stable sort on a field; documents missing the field go last."""
    present = [d for d in docs if lookup(d, field_name) is not None]
    missing = [d for d in docs if lookup(d, field_name) is None]
    present.sort(key=lambda d: lookup(d, field_name), reverse=descending)
    return present + missing


def apply_query(docs: Iterable[dict[str, Any]], spec: QuerySpec) -> list[dict[str, Any]]:
    result = [d for d in docs if matches(d, spec.filters)]
    if spec.order_by is not None:
        result = sort_documents(result, spec.order_by.field, spec.order_by.descending)
    if spec.limit is not None and spec.limit > 0:
        result = result[: spec.limit]
    return result


def apply_update(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with ``fields`` merged in.

    Dotted keys update one nested key without replacing its siblings, so
    ``{"stats.ratingAvg": 7.5}`` leaves the other counters untouched.
    """
    updated = dict(data)
    for key, value in fields.items():
        if key == "id":
            continue
        parts = key.split(".")
        if len(parts) == 1:
            updated[key] = value
            continue
        target = updated
        for part in parts[:-1]:
            child = target.get(part)
            child = dict(child) if isinstance(child, dict) else {}
            target[part] = child
            target = child
        target[parts[-1]] = value
    return updated
