import time

from fastapi import Request

from src.middleware.rate_limit import get_client_ip
from src.shared.utils import get_logger

logger = get_logger(__name__)

# Gateways time out slow webhook responses and redeliver
SLOW_REQUEST_SECONDS = 2.0


async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time and log each request with the caller's IP."""
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = time.perf_counter() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.4f}"

    message = (
        f"Request: {request.method} {request.url.path} from {get_client_ip(request)} "
        f"- Status: {response.status_code} - Process Time: {process_time:.4f}s"
    )
    if process_time > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow {message}")
    else:
        logger.info(message)
    return response
