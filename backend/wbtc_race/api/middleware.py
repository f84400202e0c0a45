"""
FastAPI middleware: request logging, response headers and the generic 500
"""
import time
import uuid
from typing import Callable
from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def logging_middleware(request: Request, call_next: Callable):
    """
    One log line per request with status, timing and cache outcome

    Reuses the caller's X-Request-ID when present so a request can be traced
    across proxies.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    start = time.perf_counter()

    response = await call_next(request)

    cache = response.headers.get("X-Cache")
    logger.info(
        f"{request.method} {request.url.path} {response.status_code}" + (f" cache={cache}" if cache else ""),
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "cache": cache
        }
    )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def security_headers_middleware(request: Request, call_next: Callable):
    """Browser hardening headers; the dashboard is never framed"""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"

    return response


async def error_handling_middleware(request: Request, call_next: Callable):
    """Turn any escaped exception into the public 500 body"""
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(
            f"Unhandled exception serving {request.url.path}: {str(e)}",
            extra={"request_id": getattr(request.state, "request_id", None), "path": request.url.path},
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
            headers={"Access-Control-Allow-Origin": "*"}
        )
