import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from autodash.core.rules.taxonomy import Taxonomy, default_taxonomy, load_taxonomy


def test_isa_is_reflexive_and_transitive():
    t = Taxonomy([("Number", "Field"), ("Float", "Number"), ("Coordinate", "Float")])
    assert t.isa("type/Coordinate", "type/Coordinate")
    assert t.isa("type/Coordinate", "type/Field")
    assert not t.isa("type/Field", "type/Coordinate")
    assert t.ancestors("type/Coordinate") == {"type/Float", "type/Number", "type/Field"}


def test_multiple_parents():
    t = default_taxonomy()
    assert t.isa("type/City", "type/Address")
    assert t.isa("type/City", "type/Category")
    assert t.isa("type/UserTable", "type/Table")
    assert not t.isa("type/Unknown", "type/Field")


def test_cyclic_derivation_is_rejected():
    t = Taxonomy([("B", "A")])
    with pytest.raises(ValueError):
        t.derive("A", "B")
    with pytest.raises(ValueError):
        t.derive("A", "A")


def test_load_extra_derivations_from_yaml(tmp_path):
    f = tmp_path / "types.yaml"
    f.write_text("Currency: Number\nPercentage: [Float, Score]\n", encoding="utf-8")
    t = load_taxonomy(f)
    assert t.isa("type/Currency", "type/Field")
    assert t.isa("type/Percentage", "type/Score")


def test_load_extra_derivations_from_env(tmp_path, monkeypatch):
    f = tmp_path / "types.json"
    f.write_text(json.dumps({"type/Currency": "type/Number"}), encoding="utf-8")
    monkeypatch.setenv("AUTODASH_TYPES_FILE", str(f))
    assert default_taxonomy().isa("type/Currency", "type/Number")


def test_malformed_types_file_keeps_builtins(tmp_path, caplog):
    f = tmp_path / "bad.yaml"
    f.write_text("- just\n- a list\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="autodash.taxonomy"):
        t = load_taxonomy(f)
    assert t.isa("type/Category", "type/Field")
    assert "must be a mapping" in caplog.text


def test_cyclic_entry_in_types_file_is_skipped(tmp_path, caplog):
    f = tmp_path / "cycle.yaml"
    f.write_text("Field: Category\nCurrency: Number\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="autodash.taxonomy"):
        t = load_taxonomy(f)
    assert t.isa("type/Currency", "type/Number")
    assert not t.isa("type/Field", "type/Category")
    assert "Cyclic derivation" in caplog.text


def test_concurrent_opposite_derivations_cannot_form_a_cycle():
    for _ in range(50):
        t = Taxonomy([("A", "Field"), ("B", "Field")])
        start = threading.Barrier(2)

        def _derive(child, parent):
            start.wait()
            try:
                t.derive(child, parent)
                return True
            except ValueError:
                return False

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(_derive, ["A", "B"], ["B", "A"]))

        assert results.count(True) == 1
        assert not (t.isa("type/A", "type/B") and t.isa("type/B", "type/A"))
