"""
Cache-Defeat Middleware for FastAPI

Makes sure the admin views and the status controls always see a fresh render:
- GET requests without a `_t` marker are rewritten to carry `_t=<epoch-ms>`
- Every covered response gets no-store headers (Cache-Control, Pragma, Expires)
Static assets, the image optimizer and the favicon are left alone.
"""

import logging
import time
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import CACHE_BUST_PARAM

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATHS = ["/static", "/_next/static", "/_next/image", "/favicon.ico", "/public"]

MIDDLEWARE_CACHE_CONTROL = "no-store, max-age=0, must-revalidate"

# Stronger variant used by the JSON API routes themselves
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


def add_cache_bust_marker(query_string: bytes, now_ms: Optional[int] = None) -> tuple[bytes, bool]:
    """
    Append `_t=<epoch-ms>` to a raw query string unless it already has one.
    Returns (query_string, rewritten).
    """
    params = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    if any(name == CACHE_BUST_PARAM for name, _ in params):
        return query_string, False

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    params.append((CACHE_BUST_PARAM, str(stamp)))
    return urlencode(params).encode("latin-1"), True


class CacheDefeatMiddleware(BaseHTTPMiddleware):
    """Rewrites unmarked GETs with a timestamp marker and forbids caching"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = DEFAULT_EXCLUDE_PATHS if exclude_paths is None else exclude_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return await call_next(request)

        if request.method == "GET":
            query_string, rewritten = add_cache_bust_marker(request.scope.get("query_string", b""))
            if rewritten:
                # call_next forwards this same scope downstream
                request.scope["query_string"] = query_string
                logger.debug(f"🔁 Cache-bust rewrite: {path}?{query_string.decode('latin-1')}")

        response = await call_next(request)

        # Routes that already set a stricter Cache-Control keep theirs
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = MIDDLEWARE_CACHE_CONTROL
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"

        return response
