"""Declarative shapes for heuristic rule documents.

Each shape below is a pydantic ``Annotated`` alias or a frozen model: the
alias states the expected type and constraints, and its Before validator
is the coercer or shorthand expander for that node. Every alias can be
exercised alone with ``pydantic.TypeAdapter``.

The type hierarchy used to classify field and table types is taken from
the validation context (``{"hierarchy": ...}``) and defaults to the
built-in taxonomy.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    StringConstraints,
    ValidationError,
    ValidationInfo,
)

from .errors import StructuralError
from .shorthand import MAX_SCORE, defaulter, expander
from .taxonomy import default_taxonomy
from .types import (
    FIELD_ROOT,
    TABLE_ROOT,
    TypeHierarchy,
    TypeTag,
    coerce_field_spec,
    coerce_order_by,
    coerce_visualization,
    ensure_seq,
    is_field_type,
    is_ga_dimension,
    is_table_type,
    to_type_tag,
)


def _hierarchy(info: ValidationInfo) -> TypeHierarchy:
    ctx = info.context or {}
    return ctx.get("hierarchy") or default_taxonomy()


def _check_field_type(value: str, info: ValidationInfo) -> str:
    if is_ga_dimension(value):
        return value
    if is_field_type(value, _hierarchy(info)):
        return TypeTag(value)
    raise ValueError(f"{value} is not a field type (expected a ga: dimension or a descendant of {FIELD_ROOT})")


def _check_table_type(value: str, info: ValidationInfo) -> str:
    if is_table_type(value, _hierarchy(info)):
        return TypeTag(value)
    raise ValueError(f"{value} is not a table type (expected a descendant of {TABLE_ROOT})")


def _one_entry(value: Dict[str, Any]) -> Dict[str, Any]:
    if len(value) != 1:
        raise ValueError(f"expected exactly one {{identifier: definition}} entry, got {len(value)}")
    return value


# --- scalars ---

Identifier = Annotated[str, StringConstraints(strict=True, min_length=1)]
Score = Annotated[StrictInt, Field(ge=0, le=MAX_SCORE)]
Limit = Annotated[StrictInt, Field(gt=0)]
Direction = Literal["ascending", "descending"]

# Query fragment; only dimension references inside it are inspected.
Expression = Tuple[Any, ...]

TableType = Annotated[str, BeforeValidator(to_type_tag), AfterValidator(_check_table_type)]
FieldType = Annotated[str, BeforeValidator(to_type_tag), AfterValidator(_check_field_type)]

FieldSpec = Annotated[
    Union[Tuple[FieldType], Tuple[TableType, FieldType]],
    BeforeValidator(coerce_field_spec),
]

Visualization = Annotated[Tuple[Identifier, Dict[Any, Any]], BeforeValidator(coerce_visualization)]

OrderBy = Annotated[Dict[Identifier, Direction], AfterValidator(_one_entry), BeforeValidator(coerce_order_by)]

NameList = Annotated[Tuple[Identifier, ...], BeforeValidator(ensure_seq)]
OrderByList = Annotated[Tuple[OrderBy, ...], BeforeValidator(ensure_seq)]


# --- definitions ---

class _Definition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class DimensionDef(_Definition):
    field_type: FieldSpec
    score: Score


class MetricDef(_Definition):
    metric: Expression
    score: Score


class FilterDef(_Definition):
    filter: Expression
    score: Score


class CardDef(_Definition):
    title: StrictStr
    visualization: Visualization
    score: Score
    dimensions: Optional[NameList] = None
    filters: Optional[NameList] = None
    metrics: Optional[NameList] = None
    limit: Optional[Limit] = None
    order_by: Optional[OrderByList] = None
    description: Optional[StrictStr] = None


DimensionEntry = Annotated[
    Dict[Identifier, DimensionDef], AfterValidator(_one_entry), BeforeValidator(expander("field_type"))
]
MetricEntry = Annotated[Dict[Identifier, MetricDef], AfterValidator(_one_entry), BeforeValidator(expander("metric"))]
FilterEntry = Annotated[Dict[Identifier, FilterDef], AfterValidator(_one_entry), BeforeValidator(expander("filter"))]
CardEntry = Annotated[Dict[Identifier, CardDef], AfterValidator(_one_entry), BeforeValidator(defaulter())]

Dimensions = Annotated[Tuple[DimensionEntry, ...], BeforeValidator(ensure_seq)]
Metrics = Annotated[Tuple[MetricEntry, ...], BeforeValidator(ensure_seq)]
Filters = Annotated[Tuple[FilterEntry, ...], BeforeValidator(ensure_seq)]
Cards = Annotated[Tuple[CardEntry, ...], BeforeValidator(ensure_seq)]


class Rule(_Definition):
    """Canonical heuristic rule: how to build a dashboard for one class of tables."""

    table_type: TableType
    title: StrictStr
    dimensions: Dimensions
    cards: Cards
    description: Optional[StrictStr] = None
    metrics: Optional[Metrics] = None
    filters: Optional[Filters] = None


def validate_rule(raw: Any, *, hierarchy: Optional[TypeHierarchy] = None) -> Rule:
    """Coerce a decoded document into a ``Rule``; raises ``StructuralError``."""
    context = {"hierarchy": hierarchy or default_taxonomy()}
    try:
        return Rule.model_validate(raw, context=context)
    except ValidationError as exc:
        raise StructuralError.from_validation_error(exc) from exc
