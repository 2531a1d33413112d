from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse


def success_response(
    data: Any,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
):
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "message": message, "data": data},
        headers=headers,
    )


def no_store_response(data: Any, message: str = "Success"):
    """Envelope for polled state; intermediaries must not serve it stale."""
    return success_response(data, message, headers={"Cache-Control": "no-store"})
