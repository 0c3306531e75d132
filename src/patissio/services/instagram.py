"""Instagram Graph API feed for storefronts."""

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from patissio.core.logging import log_external_call

logger = structlog.get_logger()

GRAPH_API_VERSION = "v21.0"
MEDIA_FIELDS = "id,caption,media_type,media_url,thumbnail_url,permalink,timestamp"
FETCH_LIMIT = 12
MAX_POSTS = 9
CAPTION_LENGTH = 100
TOKEN_EXPIRED_CODE = 190

_DISPLAYED_MEDIA_TYPES = frozenset({"IMAGE", "CAROUSEL_ALBUM"})


@dataclass
class InstagramFeed:
    """Recent posts, or an empty list with an optional error code."""

    posts: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


class InstagramService:
    """Read a tenant's recent Instagram media.

    Failures never propagate: the storefront shows an empty feed instead.
    """

    def __init__(self, graph_url: str, client: httpx.AsyncClient | None = None):
        self._graph_url = graph_url.rstrip("/")
        self._client = client

    async def fetch_feed(self, access_token: str | None) -> InstagramFeed:
        """Fetch up to nine image posts for an access token."""
        if not access_token:
            return InstagramFeed()

        url = f"{self._graph_url}/{GRAPH_API_VERSION}/me/media"
        params = {"fields": MEDIA_FIELDS, "limit": FETCH_LIMIT, "access_token": access_token}
        start = time.perf_counter()
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            log_external_call(
                logger,
                "instagram",
                "fetch_feed",
                (time.perf_counter() - start) * 1000,
                success=False,
                error=str(exc),
            )
            return InstagramFeed()

        log_external_call(
            logger,
            "instagram",
            "fetch_feed",
            (time.perf_counter() - start) * 1000,
            success=response.is_success,
            status_code=response.status_code,
        )

        try:
            body = response.json()
        except ValueError:
            return InstagramFeed()
        if not isinstance(body, dict):
            return InstagramFeed()

        if not response.is_success:
            error = body.get("error")
            if isinstance(error, dict) and error.get("code") == TOKEN_EXPIRED_CODE:
                return InstagramFeed(error="token_expired")
            return InstagramFeed()

        return InstagramFeed(posts=_to_posts(body.get("data") or []))


def _to_posts(media: Any) -> list[dict[str, Any]]:
    """Displayable posts of a media listing; malformed entries are skipped."""
    if not isinstance(media, list):
        return []
    posts = []
    for item in media:
        if not isinstance(item, dict) or item.get("media_type") not in _DISPLAYED_MEDIA_TYPES:
            continue
        caption = item.get("caption")
        posts.append(
            {
                "id": item.get("id"),
                "media_url": item.get("media_url"),
                "thumbnail_url": item.get("thumbnail_url") or item.get("media_url"),
                "permalink": item.get("permalink"),
                "caption": caption[:CAPTION_LENGTH] if isinstance(caption, str) else "",
                "media_type": item.get("media_type"),
            }
        )
        if len(posts) == MAX_POSTS:
            break
    return posts
