from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config.settings import settings


def get_client_ip(request: Request) -> Optional[str]:
    """
    Resolve the calling IP, honouring the proxy headers set by the load balancer.
    Order: first X-Forwarded-For hop, X-Real-IP, then the socket peer.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_ip_key(request: Request) -> Optional[str]:
    """
    Key function for rate limiting.
    Returns None if the IP is exempt; slowapi skips limits with an empty key.
    """
    # Bypass if in development mode
    if settings.ENVIRONMENT == "development":
        return None

    remote_addr = get_client_ip(request)
    if remote_addr and remote_addr in settings.RATE_LIMIT_EXEMPT_IPS:
        return None

    return remote_addr


def get_webhook_rate_limit() -> str:
    return settings.WEBHOOK_RATE_LIMIT


# Storage is pluggable: memory:// is process-local, redis://host:port is shared
# across instances.
limiter = Limiter(
    key_func=get_ip_key,  # type: ignore
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="moving-window",
)
