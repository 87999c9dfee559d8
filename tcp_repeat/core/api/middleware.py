"""
API Middleware - Error handling and request logging for the REST API.

Provides:
- Unified error response formatting, including the catalog error taxonomy
- Request logging
- Debug mode with verbose errors
"""

import time
import traceback
from typing import Any, Callable, Dict, Optional

from aiohttp import web

from tcp_repeat.core.errors import CatalogError
from tcp_repeat.core.logging_utils import get_module_logger


logger = get_module_logger("APIMiddleware")

# Debug mode flag - set via APIServer
_debug_mode: bool = False


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable debug mode for verbose error responses."""
    global _debug_mode
    _debug_mode = enabled
    logger.info("API debug mode %s", "enabled" if enabled else "disabled")


def is_debug_mode() -> bool:
    return _debug_mode


def _peer(request: web.Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded
    return request.remote or "unknown"


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Log method, path, peer, status and timing of every request."""
    start_time = time.perf_counter()
    response = await handler(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        "%s %s from %s -> %s (%.1f ms)",
        request.method,
        request.path_qs,
        _peer(request),
        response.status,
        elapsed_ms,
    )
    return response


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """
    Middleware to catch and format all errors as JSON responses.

    Provides unified error response format:
    {
        "success": false,
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "details": { ... }  # Optional
        },
        "status": 409
    }
    """
    try:
        return await handler(request)
    except CatalogError as e:
        logger.warning("%s %s rejected: %s (%s)", request.method, request.path, e.message, e.code)
        return web.json_response(
            {"success": False, "error": e.to_dict(), "status": e.status},
            status=e.status,
        )
    except web.HTTPException as e:
        # aiohttp HTTP exceptions (404, 405, 413, ...)
        return create_error_response(
            e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
            e.text or str(e),
            status=e.status,
        )
    except ValueError as e:
        logger.warning("Validation error: %s", e)
        return create_error_response("VALIDATION_ERROR", str(e), status=400)
    except KeyError as e:
        logger.warning("Missing field: %s", e)
        return create_error_response("MISSING_FIELD", f"Missing required field: {e}", status=400)
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unexpected error: %s\n%s", e, tb)

        details: Dict[str, Any] = {"type": type(e).__name__, "message": str(e)}
        if _debug_mode:
            details["traceback"] = tb.split("\n")
            details["request"] = {"method": request.method, "path": request.path}
        return create_error_response("INTERNAL_ERROR", "An unexpected error occurred", status=500, details=details)


def create_error_response(code: str, message: str, status: int = 400, details: Optional[dict] = None) -> web.Response:
    """Create standardized error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return web.json_response({"success": False, "error": error, "status": status}, status=status)


async def parse_json_body(request: web.Request, required: bool = True):
    """Parse JSON body with error handling. Returns (body, error_response)."""
    try:
        body = await request.json()
    except ValueError:
        if required:
            return None, create_error_response("INVALID_BODY", "Request body must be valid JSON", status=400)
        return {}, None
    if required and body is None:
        return None, create_error_response("EMPTY_BODY", "Request body must contain data", status=400)
    return body, None
