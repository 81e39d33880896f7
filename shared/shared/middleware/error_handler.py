import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _error_body(request: Request, code: str, message: str) -> dict:
    return {
        "error": {"code": code, "message": message},
        "request_id": getattr(request.state, "request_id", None),
    }


def _split_detail(detail: object) -> tuple[str, str]:
    # Controllers raise {"code": ..., "message": ...}; framework errors raise plain strings
    if isinstance(detail, dict):
        return str(detail.get("code", "http_error")), str(detail.get("message", ""))
    return "http_error", str(detail)


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Last-resort handler: anything that escapes the routers becomes a JSON envelope."""
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        code, message = _split_detail(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=_error_body(request, code, message))
    except Exception:
        logger.exception(
            "Unhandled exception on %s %s (request_id=%s)",
            request.method,
            request.url.path,
            getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "internal_error", "An unexpected error occurred"),
        )
