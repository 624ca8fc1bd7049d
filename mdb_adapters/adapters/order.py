"""
Sort option builders.

Turns the order specs callers send ("name,-age", ["name", "-age"],
{"name": 1}) into the canonical ``{field: direction}`` mapping MongoDB
expects.
"""

from collections.abc import Mapping
from typing import Any

from pymongo import ASCENDING, DESCENDING

SortSpec = dict[str, int]


def _build_from_tokens(tokens: Any) -> SortSpec:
    results: SortSpec = {}
    for token in tokens:
        token = str(token).strip()
        if not token:
            continue
        if token.startswith("-"):
            results[token[1:]] = DESCENDING
        else:
            results[token] = ASCENDING
    return results


def build_order(order: Any) -> SortSpec | Mapping | None:
    """
    Generate a sort spec from an order spec of unknown shape.

    Args:
        order: None, a mapping, a sequence of field tokens or a
               comma-separated string. A leading ``-`` sorts descending.

    Returns:
        The sort mapping, the input itself when it already is a mapping,
        or None when no order was given

    Example:
        build_order("name,-age")       # {"name": 1, "age": -1}
        build_order(["name", "-age"])  # {"name": 1, "age": -1}
        build_order({"x": -1})         # returned unchanged
    """
    if isinstance(order, Mapping):
        return order

    if not order:
        return None

    if isinstance(order, str):
        return _build_from_tokens(order.split(","))

    if isinstance(order, (list, tuple)):
        return _build_from_tokens(order)

    raise TypeError(f"Unsupported order spec type: {type(order).__name__}")


def build_sort_options(model: Any, opts: dict[str, Any] | None) -> SortSpec | Mapping | None:
    """
    Resolve the effective sort of a query.

    Precedence: ``order`` option (removed from ``opts`` once used), then
    ``sort`` option, then the model's ``default_order``.

    Args:
        model: Model class or instance
        opts: Mutable option dict

    Returns:
        Sort mapping or None
    """
    if opts is None:
        opts = {}

    if opts.get("order"):
        return build_order(opts.pop("order"))
    if opts.get("sort"):
        return build_order(opts["sort"])
    default_order = getattr(model, "default_order", None)
    if default_order:
        return build_order(default_order)

    return None


def build_find_options(model: Any, opts: dict[str, Any] | None) -> dict[str, Any]:
    """
    Fill ``opts["sort"]`` from ``build_sort_options`` and return ``opts``.

    A None ``opts`` becomes a new dict.
    """
    if opts is None:
        opts = {}

    opts["sort"] = build_sort_options(model, opts)
    return opts


def to_sort_list(sort: Mapping | None) -> list[tuple[str, Any]] | None:
    """Convert a sort mapping into the (field, direction) list cursors accept."""
    if not sort:
        return None
    return list(sort.items())
