from __future__ import annotations

import logging
import traceback
from typing import Callable, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from autodash.core.rules.errors import RuleError

log = logging.getLogger("autodash.errors")


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


def _shaped(status_code: int, payload: dict, rid: Optional[str]) -> JSONResponse:
    headers = {}
    if rid:
        payload["request_id"] = rid
        headers["X-Request-Id"] = rid
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    - A rule error that escapes a handler becomes a 422 with its kind and details
    - Anything else becomes a 500 without a stack trace
    - The request id is echoed in both cases
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except RuleError as e:
            rid = _request_id(request)
            log.warning(
                "Rejected rule document (%s) rid=%s path=%s: %s",
                e.kind,
                rid,
                request.url.path,
                e,
            )
            return _shaped(422, e.payload(), rid)
        except Exception as e:
            rid = _request_id(request)
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                rid,
                request.url.path,
                traceback.format_exc(),
            )
            return _shaped(500, {"detail": "Internal Server Error"}, rid)
