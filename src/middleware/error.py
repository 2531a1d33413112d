from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.utils import get_logger

logger = get_logger(__name__)


async def http_exception_handler(request: Request, exc: Exception):
    """Global exception handler rendering every error as {"error": detail}."""
    if isinstance(exc, (HTTPException, StarletteHTTPException)):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
