"""
On-demand render cache revalidation.

External callers (CMS hooks, admin scripts) hit this after a mutation made
outside the API so the next read renders fresh data.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..cache import RenderCache, get_render_cache
from ..config import REVALIDATION_SECRET
from ..exceptions import UnauthorizedError
from ..status_updates import json_response, now_ms
from ..webhooks import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Cache"])


def get_revalidation_secret() -> Optional[str]:
    return REVALIDATION_SECRET


@router.get("/revalidate-cache")
async def revalidate_cache(
    path: str = Query("/"),
    tag: Optional[str] = Query(None),
    secret: Optional[str] = Query(None),
    cache: RenderCache = Depends(get_render_cache),
    expected_secret: Optional[str] = Depends(get_revalidation_secret),
):
    """Invalidate a tag if given, otherwise a path (defaults to '/')"""
    if expected_secret and not constant_time_compare(secret or "", expected_secret):
        logger.warning(f"🚫 Revalidation rejected: bad secret (path={path}, tag={tag})")
        return json_response(
            {"revalidated": False, "error": UnauthorizedError().message},
            status_code=UnauthorizedError.status_code,
        )

    try:
        now = datetime.now(timezone.utc).isoformat()
        if tag:
            cache.invalidate_tag(tag)
            message = f"Tag {tag} revalidated at {now}"
        else:
            cache.invalidate_path(path)
            message = f"Path {path} revalidated at {now}"
        return json_response({"revalidated": True, "message": message, "timestamp": now_ms()})
    except Exception as e:
        logger.error(f"❌ Error revalidating: {e}")
        return json_response(
            {
                "revalidated": False,
                "error": "Failed to revalidate",
                "message": str(e),
                "timestamp": now_ms(),
            },
            status_code=500,
        )
