# =============================================================================
# core/models/post.py - Listing Schemas
# =============================================================================
# These models define the API contract for listings ("posts"):
# - PostCreate: validated input for a new listing
# - PostUpdate: partial update by the owner
# - AnalyticsAction: the {"action": "view" | "click"} PATCH body
# - ShareInfo: canonical URL and WhatsApp share link
#
# Tier limits (image counts, gallery types) depend on the owner and are
# enforced by PostService, not here.
# =============================================================================

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lib.text import normalize_whatsapp_number, strip_dangerous_html

URL_PATTERN = r"^https?://\S+$"

VIDEO_EXTENSIONS = (".mp4", ".webm")


class DisplayType(str, Enum):
    """Gallery layout of a listing."""
    HOVER = "hover"
    SLIDER = "slider"
    VERTICAL = "vertical"
    GALLERY = "gallery"
    BEFORE_AFTER = "before_after"
    COMPARISON = "comparison"
    EXPANDING = "expanding"
    VIDEO = "video"


class MediaItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., pattern=URL_PATTERN)
    description: str | None = Field(default=None, max_length=100)


class _PostFields(BaseModel):
    """Field rules shared by create and update."""

    @field_validator("whatsapp_number", check_fields=False)
    @classmethod
    def normalize_number(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return normalize_whatsapp_number(value)

    @field_validator("description", check_fields=False)
    @classmethod
    def sanitize_description(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return strip_dangerous_html(value)

    @field_validator("media_urls", check_fields=False)
    @classmethod
    def urls_are_http(cls, value: list[str] | None) -> list[str] | None:
        for url in value or []:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Invalid media URL: {url}")
        return value


class PostCreate(_PostFields):
    """
    Input for creating a listing.

    Example:
        {
            "title": "Vintage Oak Chair",
            "price_cents": 45000,
            "description": "Solid oak, lightly used, collection in Cape Town.",
            "emoji_tags": ["🪑", "🏠"],
            "whatsapp_number": "071 234 5678",
            "location": "Cape Town",
            "media_urls": ["https://cdn.example.com/posts/abc.jpg"]
        }
    """
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=3, max_length=80)
    price_cents: int = Field(..., ge=0)
    currency: str = Field(default="ZAR", min_length=3, max_length=3)
    description: str = Field(..., min_length=10, max_length=600)
    emoji_tags: list[str] = Field(..., min_length=1, max_length=4)
    whatsapp_number: str = Field(..., min_length=1)
    location: str = Field(..., min_length=3)
    display_type: DisplayType = DisplayType.HOVER
    media_urls: list[str] = Field(..., min_length=1)
    media_items: list[MediaItem] | None = None


class PostUpdate(_PostFields):
    """Partial update; only fields sent are written."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str | None = Field(default=None, min_length=3, max_length=80)
    price_cents: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    description: str | None = Field(default=None, min_length=10, max_length=600)
    emoji_tags: list[str] | None = Field(default=None, min_length=1, max_length=4)
    whatsapp_number: str | None = None
    location: str | None = Field(default=None, min_length=3)
    display_type: DisplayType | None = None
    media_urls: list[str] | None = None
    media_items: list[MediaItem] | None = None
    is_active: bool | None = None


class AnalyticsAction(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    action: Literal["view", "click"]


class ShareInfo(BaseModel):
    public_url: str
    message: str
    whatsapp_url: str
