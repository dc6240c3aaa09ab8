from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from autodash.api.endpoints.rules import get_registry
from autodash.core.observability.metrics import inc_named
from autodash.core.rules.registry import RuleRegistry

router = APIRouter()


@router.get("/health/live")
async def live():
    inc_named("health_live")
    return {"status": "ok"}


@router.get("/health/ready")
def ready(registry: RuleRegistry = Depends(get_registry)):
    """
    Ready once the rules directory exists and has been loaded.
    Individual invalid documents do not make the service unready.
    """
    inc_named("health_ready")

    problems: list[str] = []
    if not registry.rules_dir.is_dir():
        problems.append(f"missing_rules_dir:{registry.rules_dir}")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )

    return {
        "status": "ready",
        "rules": len(registry.list_table_types()),
        "failures": len(registry.failures),
    }
