"""API schemas for the public storefront."""

from typing import Any

from pydantic import BaseModel, Field


class SlugCheckResponse(BaseModel):
    """Whether a slug can be registered, and why not."""

    available: bool
    reason: str | None = Field(
        default=None, description="too_short, invalid, reserved or taken"
    )

    model_config = {"json_schema_extra": {"example": {"available": False, "reason": "reserved"}}}


class InstagramFeedResponse(BaseModel):
    posts: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None
