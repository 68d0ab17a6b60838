"""
Rate limiting configuration and setup.

Uses slowapi to enforce a per-client rate limit on every route.
Routes opt in with ``limit_route``, which applies the limit where the
endpoint runs; exceeded limits are reported through the centralized
error handlers.
"""

from typing import Any, Callable, Optional, TypeVar

from slowapi import Limiter
from slowapi.util import get_remote_address

from recordapi.core.config import Settings

DEFAULT_RATE_LIMIT = "60/minute"

Endpoint = TypeVar("Endpoint", bound=Callable[..., Any])


def build_limiter(settings: Settings) -> Limiter:
    """Build the limiter for one application instance.

    Args:
        settings: Application settings (default limit and on/off switch).

    Returns:
        A limiter keyed on the client address with in-memory storage.
    """
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit_default],
        enabled=settings.rate_limit_enabled,
    )


def limit_route(
    limiter: Optional[Limiter], limit: str, scope: str
) -> Callable[[Endpoint], Endpoint]:
    """Decorate an endpoint with ``limit``.

    slowapi counts hits per endpoint name, so the name is prefixed with
    ``scope`` to keep routes built by the same factory in separate buckets.
    The endpoint must accept a ``request: Request`` argument.

    Args:
        limiter: The application limiter. ``None`` leaves the route unlimited.
        limit: Limit string such as ``"60/minute"``.
        scope: Prefix for the endpoint name, e.g. the collection name.
    """

    def decorator(func: Endpoint) -> Endpoint:
        if limiter is None:
            return func
        func.__name__ = f"{scope}_{func.__name__}"
        return limiter.limit(limit)(func)

    return decorator
