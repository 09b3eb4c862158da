# =============================================================================
# lib/text.py - Listing Text Helpers
# =============================================================================
# Small string utilities shared by the posts and share endpoints:
# - slugify / unique_slug: URL-friendly listing slugs
# - normalize_whatsapp_number: South-African contact numbers to +27XXXXXXXXX
# - strip_dangerous_html: removes script/style/iframe tags from descriptions
# - format_price / share_message / whatsapp_url: WhatsApp sharing
#
# Usage:
#   from lib.text import slugify, unique_slug
#   slug = unique_slug("Vintage Chair!", existing={"vintage-chair"})  # "vintage-chair-1"
# =============================================================================

import re
from collections.abc import Iterable
from urllib.parse import quote

WHATSAPP_NUMBER_PATTERN = re.compile(r"^\+27\d{9}$")

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")
_DANGEROUS_TAGS = re.compile(r"</?(script|style|iframe)[^>]*>", re.IGNORECASE)


# =============================================================================
# Slugs
# =============================================================================

def slugify(text: str) -> str:
    """
    Generate a URL-friendly slug from a title.

    Example:
        slugify("  Brand New iPhone 13!! ")  # "brand-new-iphone-13"
    """
    slug = _NON_WORD.sub("", text.lower())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


def unique_slug(title: str, existing: Iterable[str] = ()) -> str:
    """
    Slugify a title, appending -1, -2, ... until it is not in `existing`.

    Args:
        title: Listing title
        existing: Slugs already taken by the same owner

    Returns:
        A slug not present in `existing`
    """
    taken = set(existing)
    base = slugify(title) or "listing"
    slug = base
    counter = 1
    while slug in taken:
        slug = f"{base}-{counter}"
        counter += 1
    return slug


# =============================================================================
# Contact Numbers
# =============================================================================

def normalize_whatsapp_number(value: str) -> str:
    """
    Normalize a South-African phone number to international form.

    Rules:
    - leading 0 is replaced by +27 ("0712345678" -> "+27712345678")
    - leading 27 gets a plus ("27712345678" -> "+27712345678")
    - a value already starting with + is kept as typed
    - anything else is assumed local and prefixed with +27

    Raises:
        ValueError: If the result is not a valid +27 number
    """
    digits = re.sub(r"\D", "", value or "")
    if digits.startswith("0"):
        normalized = "+27" + digits[1:]
    elif digits.startswith("27"):
        normalized = "+" + digits
    elif value.startswith("+"):
        normalized = value
    else:
        normalized = "+27" + digits

    if not WHATSAPP_NUMBER_PATTERN.match(normalized):
        raise ValueError("Invalid SA phone number (use format: 0712345678 or +27712345678)")
    return normalized


# =============================================================================
# Descriptions
# =============================================================================

def strip_dangerous_html(html: str) -> str:
    """Drop <script>, <style> and <iframe> tags, keeping their inner text."""
    if not html or not html.strip():
        return ""
    return _DANGEROUS_TAGS.sub("", html)


# =============================================================================
# Sharing
# =============================================================================

def format_price(cents: int, currency: str = "ZAR") -> str:
    """
    Format a price in cents for display.

    Example:
        format_price(4900)          # "R 49.00"
        format_price(1000, "USD")   # "USD 10.00"
    """
    amount = cents / 100
    if currency == "ZAR":
        return f"R {amount:.2f}"
    return f"{currency} {amount:.2f}"


def share_message(title: str, price: str, public_url: str) -> str:
    return f"\U0001F525 {title} — {price}\n\U0001F449 {public_url}\n\U0001F4AC Chat on WhatsApp"


def whatsapp_url(phone_number: str | None, message: str) -> str:
    """Build a wa.me link, addressed to a number when one is given."""
    encoded = quote(message, safe="")
    if phone_number:
        digits = re.sub(r"\D", "", phone_number)
        return f"https://wa.me/{digits}?text={encoded}"
    return f"https://wa.me/?text={encoded}"
