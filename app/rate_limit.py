"""Request rate limiting."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.config import get_settings


def get_client_ip(request: Request) -> str:
    """Client address used as the rate limit key.

    The first hop of X-Forwarded-For is used only when TRUST_PROXY_HEADERS is
    set, since clients can put anything in that header.
    """
    if get_settings().TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=get_client_ip, enabled=get_settings().RATE_LIMIT_ENABLED)
