from __future__ import annotations

import threading
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse

from autodash.core.observability.metrics import inc_named
from autodash.core.rules.compiler import compile_rule
from autodash.core.rules.errors import RuleError
from autodash.core.rules.loader import LoadFailure, with_table_type
from autodash.core.rules.registry import RuleRegistry
from autodash.core.rules.schema import Rule

router = APIRouter(prefix="/api/v1/rules", tags=["rules"])

_REGISTRY: Optional[RuleRegistry] = None
_REGISTRY_LOCK = threading.Lock()


def get_registry() -> RuleRegistry:
    global _REGISTRY
    with _REGISTRY_LOCK:
        if _REGISTRY is None:
            _REGISTRY = RuleRegistry()
        return _REGISTRY


def _rule_summary(rule: Rule) -> dict:
    return {
        "table_type": str(rule.table_type),
        "title": rule.title,
        "cards": [name for card in rule.cards for name in card],
    }


def _failure_summary(failure: LoadFailure) -> dict:
    return {"path": failure.path, "kind": failure.kind, "message": failure.message}


@router.get("")
def list_rules(registry: RuleRegistry = Depends(get_registry)):
    return {
        "rules": [_rule_summary(r) for r in registry.rules()],
        "failures": [_failure_summary(f) for f in registry.failures],
    }


@router.post("/validate")
def validate_document(
    request: Request,
    document: Any = Body(...),
    table_type: Optional[str] = Query(None, description="Used when the document has no table_type"),
    registry: RuleRegistry = Depends(get_registry),
):
    inc_named("rules_validate")
    raw = with_table_type(document, table_type) if table_type else document
    if isinstance(raw, dict) and raw.get("table_type") is not None:
        request.state.table_type = str(raw["table_type"])
    try:
        rule = compile_rule(raw, hierarchy=registry.hierarchy)
    except RuleError as exc:
        request.state.rule_outcome = exc.kind
        return JSONResponse(status_code=422, content=jsonable_encoder(exc.payload()))
    request.state.rule_outcome = "accepted"
    request.state.table_type = str(rule.table_type)
    return {"valid": True, "rule": rule.model_dump(mode="json")}


@router.post("/reload")
def reload_rules(registry: RuleRegistry = Depends(get_registry)):
    registry.reload()
    return {
        "rules": len(registry.list_table_types()),
        "failures": len(registry.failures),
    }


@router.get("/{table_type:path}")
def get_rule(table_type: str, request: Request, registry: RuleRegistry = Depends(get_registry)):
    request.state.table_type = table_type
    rule = registry.get(table_type)
    if rule is None:
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule.model_dump(mode="json")
