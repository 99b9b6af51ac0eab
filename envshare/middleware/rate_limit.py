from slowapi import Limiter
from starlette.requests import Request

from envshare.config import settings


def get_client_ip(request: Request) -> str:
    """Key rate limits by client IP.

    X-Forwarded-For is only honoured when the service is configured to sit
    behind a trusted reverse proxy; otherwise any client could pick its own
    bucket. The first entry is the original client.
    """
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_ip)
