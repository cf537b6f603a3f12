"""Recent posts from the shop's Instagram account, with placeholder posts as fallback."""

import logging
from typing import List, Optional

import requests
from pydantic import BaseModel, ValidationError

from storefront.core.settings import INSTAGRAM_API_BASE_URL, EtsySettings

logger = logging.getLogger("instagram")

REQUEST_TIMEOUT = 15
MEDIA_FIELDS = "id,media_type,media_url,permalink,caption,timestamp,thumbnail_url"


class InstagramPost(BaseModel):
    id: str
    media_type: str
    media_url: str
    permalink: str
    caption: Optional[str] = None
    timestamp: str = ""
    thumbnail_url: Optional[str] = None


FALLBACK_POSTS = [
    InstagramPost(
        id="1",
        media_type="IMAGE",
        media_url="https://images.unsplash.com/photo-1611591437281-460bfbe1220a?q=80&w=400&auto=format&fit=crop",
        permalink="https://instagram.com/laninabracelets",
        caption="New gold bracelet collection! #LaNinaBracelets #handmade",
    ),
    InstagramPost(
        id="2",
        media_type="IMAGE",
        media_url="https://images.unsplash.com/photo-1535632066927-ab7c9ab60908?q=80&w=400&auto=format&fit=crop",
        permalink="https://instagram.com/laninabracelets",
        caption="Behind the scenes: handmade in Amsterdam",
    ),
]


def get_instagram_posts(
    settings: EtsySettings,
    limit: int = 12,
    session: Optional[requests.Session] = None,
) -> List[InstagramPost]:
    """
    Fetch the latest media of the account behind the access token.

    Returns:
        list[InstagramPost]: The posts, empty when not configured or on any failure.
    """
    if not settings.instagram_access_token:
        logger.warning("Instagram access token not configured")
        return []

    http = session or requests
    try:
        response = http.get(
            f"{INSTAGRAM_API_BASE_URL}/me/media",
            params={
                "fields": MEDIA_FIELDS,
                "limit": limit,
                "access_token": settings.instagram_access_token,
            },
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning("Instagram request failed: %s", e)
        return []
    if not response.ok:
        logger.warning("Instagram API error: %s", response.status_code)
        return []

    try:
        data = response.json()
        return [InstagramPost.model_validate(raw) for raw in data.get("data") or []]
    except (ValueError, AttributeError, ValidationError) as e:
        logger.warning("Unexpected Instagram payload: %s", e)
        return []


def get_instagram_posts_with_fallback(
    settings: EtsySettings,
    limit: int = 8,
    session: Optional[requests.Session] = None,
) -> List[InstagramPost]:
    """Live posts when there are any, the placeholder posts otherwise."""
    posts = get_instagram_posts(settings, limit, session)
    return posts or FALLBACK_POSTS[:limit]
