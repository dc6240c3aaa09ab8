"""Type tags and the scalar coercers used while normalizing rule documents.

Rule documents spell types as bare words (``Category``), qualified tags
(``type/Category``), Google Analytics dimensions (``ga:city``) or a
``Table.Field`` pair. The functions here turn those spellings into
``TypeTag`` values and the other small typed values a ``Rule`` holds.

Coercers never raise on input they do not recognize: they hand it back
unchanged and leave the rejection to the schema layer, which knows the
expected shape and reports it.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

TYPE_NAMESPACE = "type"
GA_PREFIX = "ga:"

FIELD_ROOT = "type/Field"
TABLE_ROOT = "type/Table"

ASCENDING = "ascending"


class TypeTag(str):
    """Namespace-qualified type tag, e.g. ``type/Category``."""

    __slots__ = ()

    @classmethod
    def of(cls, name: str, namespace: str = TYPE_NAMESPACE) -> "TypeTag":
        return cls(f"{namespace}/{name}")

    @property
    def namespace(self) -> str:
        return self.partition("/")[0]

    @property
    def name(self) -> str:
        return self.partition("/")[2]

    def __repr__(self) -> str:
        return f"TypeTag({str.__repr__(self)})"


class TypeHierarchy(Protocol):
    def isa(self, tag: str, ancestor: str) -> bool:
        ...


def is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def is_ga_dimension(x: Any) -> bool:
    """Does ``x`` denote a Google Analytics dimension?"""
    return isinstance(x, str) and x.startswith(GA_PREFIX)


def is_type_tag(x: Any) -> bool:
    return isinstance(x, TypeTag) or (isinstance(x, str) and "/" in x and not is_ga_dimension(x))


def to_type_tag(x: Any) -> Any:
    if isinstance(x, TypeTag):
        return x
    if is_type_tag(x):
        return TypeTag(x)
    if is_ga_dimension(x):
        return x
    if isinstance(x, str):
        return TypeTag.of(x)
    return x


def is_field_type(tag: Any, hierarchy: TypeHierarchy) -> bool:
    return is_type_tag(tag) and hierarchy.isa(tag, FIELD_ROOT)


def is_table_type(tag: Any, hierarchy: TypeHierarchy) -> bool:
    return is_type_tag(tag) and hierarchy.isa(tag, TABLE_ROOT)


def coerce_field_spec(x: Any) -> Any:
    """``"UserTable.Latitude"`` -> ``(type/UserTable, type/Latitude)``; ``"Category"`` -> ``(type/Category,)``."""
    if isinstance(x, TypeTag) or is_ga_dimension(x):
        return (x,)
    if isinstance(x, str):
        return tuple(to_type_tag(part) for part in x.split("."))
    if is_sequence(x):
        return tuple(to_type_tag(part) for part in x)
    return x


def coerce_order_by(x: Any) -> Any:
    if isinstance(x, str):
        return {x: ASCENDING}
    return x


def coerce_visualization(x: Any) -> Any:
    """
    Accepts:
      - "bar"                    -> ("bar", {})
      - {"bar": {"stacked": 1}}  -> ("bar", {"stacked": 1})
      - ["bar", {"stacked": 1}]  -> ("bar", {"stacked": 1})

    Null options become {} in both the mapping and the pair form.
    """
    if isinstance(x, str):
        return (x, {})
    if isinstance(x, Mapping) and len(x) == 1:
        ((display, options),) = x.items()
        return (display, {} if options is None else options)
    if is_sequence(x) and len(x) == 2:
        display, options = x
        return (display, {} if options is None else options)
    return x


def ensure_seq(x: Any) -> Any:
    if x is None or is_sequence(x):
        return x
    return [x]
