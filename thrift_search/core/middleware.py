from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from thrift_search.core.context import (
    REQUEST_ID_HEADER,
    get_request_id,
    reset_request_id,
    reset_request_path,
    set_request_id,
    set_request_path,
)

logger = logging.getLogger("thrift_search.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id and path for logging and echoes the id back to the caller."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        id_token = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        path_token = set_request_path(request.url.path)
        request_id = get_request_id() or ""

        start_time = time.perf_counter()
        extra = {
            "method": request.method,
            "contentLength": request.headers.get("content-length"),
        }
        logger.info("request.start", extra=extra)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            extra.update({"duration_ms": round(duration_ms, 2), "status_code": status_code})
            log = logger.warning if status_code >= 500 else logger.info
            log("request.end", extra=extra)
            reset_request_path(path_token)
            reset_request_id(id_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
