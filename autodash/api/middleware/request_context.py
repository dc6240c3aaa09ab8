from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from autodash.api.observability.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    RULE_VALIDATIONS_TOTAL,
    normalize_path,
)

log = logging.getLogger("autodash.request")


def _json_log(event: str, **fields):
    # Structured log in a single line; unset fields are dropped.
    msg = {"event": event, **{k: v for k, v in fields.items() if v is not None}}
    log.info("%s", msg)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request ID + request metrics.

    Adds:
      request.state.request_id
      response header: X-Request-Id

    Rule endpoints may set request.state.table_type and
    request.state.rule_outcome (accepted | structural | reference); both
    are carried into the request log line, and the outcome is counted.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = rid

        start = time.time()
        resp = await call_next(request)
        dur_ms = int((time.time() - start) * 1000)

        resp.headers["X-Request-Id"] = rid

        # Prometheus metrics (low-cardinality path)
        p = normalize_path(request.url.path)
        m = request.method.upper()
        s = str(getattr(resp, "status_code", 0))
        HTTP_REQUESTS_TOTAL.labels(method=m, path=p, status=s).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=m, path=p).observe(dur_ms / 1000.0)

        outcome = getattr(request.state, "rule_outcome", None)
        if outcome:
            RULE_VALIDATIONS_TOTAL.labels(outcome=outcome).inc()

        if request.url.path.startswith("/api/"):
            _json_log(
                "request",
                request_id=rid,
                method=request.method,
                path=request.url.path,
                status_code=resp.status_code,
                duration_ms=dur_ms,
                table_type=getattr(request.state, "table_type", None),
                rule_outcome=outcome,
            )
        return resp
