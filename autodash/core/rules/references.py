from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from .errors import UnresolvedReferenceError
from .schema import Rule
from .types import is_sequence

DIMENSION_MARKER = "dimension"


def identifiers(entries: Optional[Iterable[Mapping[str, Any]]]) -> Set[str]:
    """Names defined by a section; duplicates collapse."""
    return {name for entry in entries or () for name in entry}


def is_dimension_form(form: Any) -> bool:
    """Does ``form`` denote a dimension reference, e.g. ``["dimension", "Revenue"]``?"""
    return (
        is_sequence(form)
        and len(form) > 0
        and isinstance(form[0], str)
        and form[0].lower() == DIMENSION_MARKER
    )


def _walk(form: Any) -> Iterator[Any]:
    """
    Every node of ``form``, depth first. A mapping is visited as its
    ``(key, value)`` entries, so ``{"dimension": "X"}`` reads like
    ``["dimension", "X"]``. Containers already seen are not entered again
    (YAML aliases can make a document cyclic).
    """
    # id -> node; holding the node keeps its id from being reused.
    seen: Dict[int, Any] = {}
    stack: List[Any] = [form]
    while stack:
        node = stack.pop()
        if isinstance(node, Mapping):
            children: List[Any] = list(node.items())
        elif is_sequence(node):
            children = list(node)
        else:
            yield node
            continue
        if id(node) in seen:
            continue
        seen[id(node)] = node
        yield node
        stack.extend(reversed(children))


def collect_dimensions(form: Any) -> List[Any]:
    """Return all dimension references in ``form``, distinct, in first-seen order."""
    found: List[Any] = []
    for node in _walk(form):
        if is_dimension_form(node):
            name = node[1] if len(node) > 1 else None
            if name not in found:
                found.append(name)
    return found


def check_references(rule: Rule) -> bool:
    """
    Every name a card, an order-by key or a metric/filter expression uses
    must be defined in the matching section of the same rule.

    Raises UnresolvedReferenceError listing every unresolved name.
    """
    defined_dimensions = identifiers(rule.dimensions)
    defined_metrics = identifiers(rule.metrics)
    defined_filters = identifiers(rule.filters)
    sortable = defined_dimensions | defined_metrics

    unresolved: List[Dict[str, Any]] = []

    def _require(name: Any, defined: Set[str], section: str, referrer: str) -> None:
        if not (isinstance(name, str) and name in defined):
            unresolved.append({"section": section, "name": name, "referrer": referrer})

    for entry in rule.cards:
        for card_id, card in entry.items():
            where = f"cards.{card_id}"
            for name in card.dimensions or ():
                _require(name, defined_dimensions, "dimensions", f"{where}.dimensions")
            for name in card.metrics or ():
                _require(name, defined_metrics, "metrics", f"{where}.metrics")
            for name in card.filters or ():
                _require(name, defined_filters, "filters", f"{where}.filters")
            for pair in card.order_by or ():
                for name in pair:
                    _require(name, sortable, "dimensions or metrics", f"{where}.order_by")

    for entry in rule.metrics or ():
        for metric_id, definition in entry.items():
            for name in collect_dimensions(definition.metric):
                _require(name, defined_dimensions, "dimensions", f"metrics.{metric_id}")

    for entry in rule.filters or ():
        for filter_id, definition in entry.items():
            for name in collect_dimensions(definition.filter):
                _require(name, defined_dimensions, "dimensions", f"filters.{filter_id}")

    if unresolved:
        raise UnresolvedReferenceError(unresolved)
    return True
