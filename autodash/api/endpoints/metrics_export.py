"""Prometheus metrics scrape endpoint.

Registry gauges (accepted rules, rejected documents) are refreshed from
the live registry on every scrape; loader and HTTP counters accumulate
as they happen.
"""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from autodash.api.endpoints.rules import get_registry
from autodash.core.observability.metrics import observe_registry
from autodash.core.rules.registry import RuleRegistry

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def prometheus_metrics(registry: RuleRegistry = Depends(get_registry)) -> Response:
    observe_registry(len(registry.list_table_types()), len(registry.failures))
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
