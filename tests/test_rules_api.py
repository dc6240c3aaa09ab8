import yaml
from fastapi.testclient import TestClient

from autodash.api.endpoints.rules import get_registry
from autodash.api.main import app
from autodash.core.observability.metrics import snapshot_named
from autodash.core.rules.registry import RuleRegistry


def test_list_rules_reports_accepted_and_failed(client):
    r = client.get("/api/v1/rules")
    assert r.status_code == 200
    data = r.json()
    assert [x["table_type"] for x in data["rules"]] == ["type/TransactionTable", "type/UserTable"]
    assert data["rules"][0]["cards"] == ["RevenueOverTime", "TopProducts"]
    (failure,) = data["failures"]
    assert failure["kind"] == "reference"
    assert failure["path"].endswith("EventTable.yaml")


def test_get_rule_by_bare_or_qualified_name(client):
    bare = client.get("/api/v1/rules/UserTable")
    qualified = client.get("/api/v1/rules/type/UserTable")
    assert bare.status_code == 200
    assert bare.json() == qualified.json()
    body = bare.json()
    assert body["table_type"] == "type/UserTable"
    assert body["dimensions"][1]["Income"] == {"field_type": ["type/Income"], "score": 90}


def test_unknown_rule_is_404(client):
    r = client.get("/api/v1/rules/EventTable")
    assert r.status_code == 404


def test_validate_accepts_valid_document(client, rule_doc):
    r = client.post("/api/v1/rules/validate", json=rule_doc)
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["rule"]["cards"][0]["RevenueOverTime"]["score"] == 100
    assert snapshot_named()["rules_validate"] == 1


def test_validate_uses_query_table_type(client, rule_doc):
    del rule_doc["table_type"]
    assert client.post("/api/v1/rules/validate", json=rule_doc).status_code == 422
    r = client.post("/api/v1/rules/validate", params={"table_type": "UserTable"}, json=rule_doc)
    assert r.status_code == 200
    assert r.json()["rule"]["table_type"] == "type/UserTable"


def test_validate_reports_structural_errors(client, rule_doc):
    rule_doc["dimensions"][1]["Income"]["score"] = 101
    r = client.post("/api/v1/rules/validate", json=rule_doc)
    assert r.status_code == 422
    body = r.json()
    assert body["valid"] is False
    assert body["kind"] == "structural"
    assert body["errors"][0]["loc"] == "dimensions.1.Income.score"
    assert body["errors"][0]["value"] == 101


def test_validate_reports_unresolved_references(client, rule_doc):
    rule_doc["cards"][0]["RevenueOverTime"]["metrics"] = "Profit"
    r = client.post("/api/v1/rules/validate", json=rule_doc)
    assert r.status_code == 422
    body = r.json()
    assert body["kind"] == "reference"
    assert body["errors"] == [
        {"loc": "cards.RevenueOverTime.metrics", "value": "Profit", "error": "not defined in metrics"}
    ]


def test_reload_picks_up_new_files(client, rules_dir, rule_doc):
    rule_doc["table_type"] = "EventTable"
    (rules_dir / "EventTable.yaml").write_text(yaml.safe_dump(rule_doc), encoding="utf-8")

    r = client.post("/api/v1/rules/reload")
    assert r.status_code == 200
    assert r.json() == {"rules": 3, "failures": 0}
    assert client.get("/api/v1/rules/EventTable").status_code == 200


def test_health_endpoints(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/health/live").json() == {"status": "ok"}
    ready = client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json() == {"status": "ready", "rules": 2, "failures": 1}
    assert snapshot_named()["health_live"] == 1


def test_not_ready_without_rules_dir(tmp_path):
    registry = RuleRegistry(tmp_path / "absent")
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        r = TestClient(app).get("/health/ready")
    finally:
        app.dependency_overrides.pop(get_registry, None)
    assert r.status_code == 503
    assert r.json()["status"] == "not_ready"
