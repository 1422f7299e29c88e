"""Fold flat join rows into nested entities.

A join of parents LEFT JOIN children yields one row per (parent, child) pair,
or a single row with a null child key for a parent without children.
"""
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional

Row = Mapping[str, Any]


def _order_key(field: str):
    def key(entity: Dict[str, Any]):
        value = entity.get(field)
        return (value is None, value if value is not None else 0)
    return key


def group_rows(
    rows: Iterable[Row],
    parent_key: str,
    build_parent: Callable[[Row], Dict[str, Any]],
    child_key: Optional[str] = None,
    build_child: Optional[Callable[[Row], Dict[str, Any]]] = None,
    children_field: str = "children",
    parent_order: Optional[str] = "position",
    child_order: Optional[str] = "position",
) -> List[Dict[str, Any]]:
    """Group rows by ``parent_key`` keeping first-seen order, then sort.

    Children are appended for every row whose ``child_key`` is not null;
    repeated child keys are kept as they arrive. Parents are sorted by
    ``parent_order`` and each child list by ``child_order``; both sorts are
    stable and put null orderings last.
    """
    parents: Dict[Hashable, Dict[str, Any]] = {}

    for row in rows:
        key = row[parent_key]
        parent = parents.get(key)
        if parent is None:
            parent = build_parent(row)
            parent[children_field] = []
            parents[key] = parent

        if child_key is not None and row[child_key] is not None:
            parent[children_field].append(build_child(row))

    grouped = list(parents.values())
    if child_order:
        for parent in grouped:
            parent[children_field].sort(key=_order_key(child_order))
    if parent_order:
        grouped.sort(key=_order_key(parent_order))
    return grouped
