from autodash.core.rules.types import (
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
from autodash.core.rules.taxonomy import Taxonomy, builtin_derivations


def test_bare_word_is_qualified_into_type_namespace():
    tag = to_type_tag("Table")
    assert isinstance(tag, TypeTag)
    assert tag == "type/Table"
    assert tag.namespace == "type"
    assert tag.name == "Table"


def test_qualified_tag_passes_through():
    tag = TypeTag("type/Category")
    assert to_type_tag(tag) is tag
    assert to_type_tag("type/Category") == tag


def test_ga_dimension_passes_through_untouched():
    assert is_ga_dimension("ga:city")
    assert not is_ga_dimension("city")
    out = to_type_tag("ga:city")
    assert out == "ga:city"
    assert not isinstance(out, TypeTag)


def test_non_string_is_left_for_the_validator():
    assert to_type_tag(42) == 42
    assert coerce_field_spec(None) is None


def test_compound_field_type_splits_into_table_field_pair():
    assert coerce_field_spec("Category.Latitude") == (TypeTag("type/Category"), TypeTag("type/Latitude"))
    assert coerce_field_spec("Category") == (TypeTag("type/Category"),)
    assert coerce_field_spec(["UserTable", "type/Country"]) == (TypeTag("type/UserTable"), TypeTag("type/Country"))
    assert coerce_field_spec("ga:browser") == ("ga:browser",)


def test_field_and_table_predicates_use_the_hierarchy():
    taxonomy = Taxonomy(builtin_derivations())
    assert is_field_type("type/Latitude", taxonomy)
    assert is_field_type("type/Field", taxonomy)
    assert not is_field_type("type/UserTable", taxonomy)
    assert is_table_type("type/UserTable", taxonomy)
    assert not is_table_type("type/Category", taxonomy)
    assert not is_field_type("ga:city", taxonomy)


def test_order_by_shorthand_is_ascending():
    assert coerce_order_by("Revenue") == {"Revenue": "ascending"}
    assert coerce_order_by({"Revenue": "descending"}) == {"Revenue": "descending"}


def test_visualization_forms():
    assert coerce_visualization("bar") == ("bar", {})
    assert coerce_visualization({"map": {"map.type": "pin"}}) == ("map", {"map.type": "pin"})
    assert coerce_visualization({"scalar": None}) == ("scalar", {})
    assert coerce_visualization(["bar", {"stacked": True}]) == ("bar", {"stacked": True})
    assert coerce_visualization(["bar", None]) == ("bar", {})
    assert coerce_visualization(["bar"]) == ["bar"]


def test_ensure_seq():
    assert ensure_seq("x") == ["x"]
    assert ensure_seq({"a": 1}) == [{"a": 1}]
    assert ensure_seq(["x", "y"]) == ["x", "y"]
    assert ensure_seq(None) is None
