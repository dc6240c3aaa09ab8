from .errors import DecodeError, RuleError, StructuralError, UnresolvedReferenceError
from .types import TypeTag, TypeHierarchy, to_type_tag, is_ga_dimension, is_field_type, is_table_type
from .taxonomy import Taxonomy, default_taxonomy, load_taxonomy
from .shorthand import MAX_SCORE, expand, with_defaults
from .schema import Rule, CardDef, DimensionDef, FilterDef, MetricDef, validate_rule
from .references import check_references, collect_dimensions, is_dimension_form
from .compiler import compile_rule
from .loader import LoadFailure, LoadReport, load_rule_file, load_rules, load_rules_report
from .registry import RuleRegistry

__all__ = [
    "DecodeError",
    "RuleError",
    "StructuralError",
    "UnresolvedReferenceError",
    "TypeTag",
    "TypeHierarchy",
    "to_type_tag",
    "is_ga_dimension",
    "is_field_type",
    "is_table_type",
    "Taxonomy",
    "default_taxonomy",
    "load_taxonomy",
    "MAX_SCORE",
    "expand",
    "with_defaults",
    "Rule",
    "CardDef",
    "DimensionDef",
    "FilterDef",
    "MetricDef",
    "validate_rule",
    "check_references",
    "collect_dimensions",
    "is_dimension_form",
    "compile_rule",
    "LoadFailure",
    "LoadReport",
    "load_rule_file",
    "load_rules",
    "load_rules_report",
    "RuleRegistry",
]
