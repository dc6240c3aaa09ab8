import copy
from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient

from autodash.api.endpoints.rules import get_registry
from autodash.api.main import app
from autodash.core.observability.metrics import reset_metrics
from autodash.core.rules.registry import RuleRegistry
from autodash.core.rules.taxonomy import reset_default_taxonomy

_SALES_RULE = {
    "table_type": "TransactionTable",
    "title": "Sales overview",
    "description": "Revenue and volume",
    "metrics": [
        {"Count": ["count"]},
        {"Revenue": ["sum", ["dimension", "Income"]]},
    ],
    "dimensions": [
        {"Timestamp": "CreationTimestamp"},
        {"Income": {"field_type": "Income", "score": 90}},
        {"Product": "Product"},
    ],
    "filters": [
        {"Large": [">", ["dimension", "Income"], 100]},
    ],
    "cards": [
        {
            "RevenueOverTime": {
                "title": "Revenue over time",
                "visualization": "line",
                "dimensions": "Timestamp",
                "metrics": "Revenue",
            }
        },
        {
            "TopProducts": {
                "title": "Top products",
                "visualization": {"table": {"column_settings": {}}},
                "dimensions": ["Product"],
                "metrics": ["Revenue"],
                "filters": "Large",
                "order_by": [{"Revenue": "descending"}, "Product"],
                "limit": 5,
                "score": 80,
            }
        },
    ],
}


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    # Deterministic config: never pick up the developer's environment.
    for key in ("AUTODASH_RULES_DIR", "AUTODASH_TYPES_FILE", "AUTODASH_LOADER_WORKERS"):
        monkeypatch.delenv(key, raising=False)
    reset_default_taxonomy()
    reset_metrics()
    yield
    reset_default_taxonomy()


@pytest.fixture()
def rule_doc():
    """A valid raw rule document (fresh copy per test)."""
    return copy.deepcopy(_SALES_RULE)


def _write_rule(directory: Path, name: str, doc) -> Path:
    path = directory / name
    text = doc if isinstance(doc, str) else yaml.safe_dump(doc, sort_keys=False)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture()
def rules_dir(tmp_path: Path, rule_doc):
    """
    Provides a rules directory with two valid documents and one invalid one.
    """
    d = tmp_path / "rules"
    d.mkdir()
    _write_rule(d, "TransactionTable.yaml", rule_doc)

    user = copy.deepcopy(rule_doc)
    del user["table_type"]
    user["title"] = "Users"
    _write_rule(d, "UserTable.yaml", user)

    broken = copy.deepcopy(rule_doc)
    broken["table_type"] = "EventTable"
    broken["cards"][0]["RevenueOverTime"]["dimensions"] = "Nope"
    _write_rule(d, "EventTable.yaml", broken)
    return d


@pytest.fixture()
def registry(rules_dir):
    return RuleRegistry(rules_dir)


@pytest.fixture()
def client(registry):
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_registry, None)
