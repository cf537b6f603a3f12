"""Newsletter signup and Instagram feed endpoints."""

import logging
from functools import lru_cache
from typing import Optional

import anyio
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storefront.api.v1.products import TimedCache
from storefront.core.dependencies import get_http_session, get_settings
from storefront.core.instagram import InstagramPost, get_instagram_posts_with_fallback
from storefront.core.newsletter import subscribe_to_newsletter
from storefront.core.settings import EtsySettings

logger = logging.getLogger("api")

INSTAGRAM_CACHE_SECONDS = 60 * 60
INSTAGRAM_POST_LIMIT = 8

router = APIRouter(tags=["social"])


class NewsletterSignup(BaseModel):
    email: Optional[str] = None


@lru_cache()
def get_instagram_cache() -> TimedCache[list[InstagramPost]]:
    return TimedCache(INSTAGRAM_CACHE_SECONDS)


@router.post("/api/newsletter")
async def newsletter_signup(
    signup: NewsletterSignup,
    settings: EtsySettings = Depends(get_settings),
) -> JSONResponse:
    """Subscribe a visitor to the newsletter (double opt-in)."""
    if not signup.email:
        return JSONResponse(
            {"success": False, "message": "Email address is required."}, status_code=400
        )
    try:
        result = await anyio.to_thread.run_sync(
            subscribe_to_newsletter, settings, signup.email, get_http_session()
        )
    except Exception as e:
        logger.error("Newsletter signup failed: %s", e)
        return JSONResponse(
            {"success": False, "message": "Something went wrong. Please try again later."},
            status_code=500,
        )
    return JSONResponse(
        result.model_dump(exclude_none=True), status_code=200 if result.success else 400
    )


@router.get("/api/instagram")
async def instagram_feed(
    settings: EtsySettings = Depends(get_settings),
    cache: TimedCache[list[InstagramPost]] = Depends(get_instagram_cache),
) -> dict:
    """Latest Instagram posts, placeholder posts when the feed is unavailable."""

    def load() -> list[InstagramPost]:
        return get_instagram_posts_with_fallback(
            settings, INSTAGRAM_POST_LIMIT, session=get_http_session()
        )

    try:
        posts = await anyio.to_thread.run_sync(cache.get, load)
    except Exception as e:
        logger.error("Instagram posts temporarily unavailable: %s", e)
        return {"success": False, "error": "Instagram posts temporarily unavailable", "posts": []}
    return {"success": True, "count": len(posts), "posts": [p.model_dump() for p in posts]}
