"""
Image classification for promotional emails.

Every <img> in the HTML body is sorted into one of two buckets:

  logo_images:  alt text mentions "logo", or either dimension is under
                 LOGO_MAX_DIMENSION pixels
  deal_images:  everything else (hero/food shots)

Inline image attachments have no URL yet; they are appended to deal_images
as attachment-only candidates.

Restaurant templates mark their logos consistently (small, alt="... logo"),
so a size threshold plus an alt-text match is enough here. When an email has
no logo image, DEFAULT_LOGOS supplies a known one for the big chains.
"""

import logging
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from app.models.email import EmailImages, FlatPart, ImageCandidate

logger = logging.getLogger(__name__)

LOGO_MAX_DIMENSION = 150

PLACEHOLDER_LOGO_URL = "https://via.placeholder.com/200x200?text=Logo"

DEFAULT_LOGOS = {
    "McDonald's": "https://upload.wikimedia.org/wikipedia/commons/thumb/3/36/McDonald%27s_Golden_Arches.svg/200px-McDonald%27s_Golden_Arches.svg.png",
    "Subway": "https://upload.wikimedia.org/wikipedia/commons/thumb/5/5c/Subway_2016_logo.svg/200px-Subway_2016_logo.svg.png",
    "Domino's": "https://upload.wikimedia.org/wikipedia/commons/thumb/7/74/Dominos_pizza_logo.svg/200px-Dominos_pizza_logo.svg.png",
    "Pizza Hut": "https://upload.wikimedia.org/wikipedia/en/thumb/d/d2/Pizza_Hut_logo.svg/200px-Pizza_Hut_logo.svg.png",
    "Taco Bell": "https://upload.wikimedia.org/wikipedia/en/thumb/b/b3/Taco_Bell_2016.svg/200px-Taco_Bell_2016.svg.png",
    "Chipotle": "https://upload.wikimedia.org/wikipedia/en/thumb/3/3b/Chipotle_Mexican_Grill_logo.svg/200px-Chipotle_Mexican_Grill_logo.svg.png",
    "KFC": "https://upload.wikimedia.org/wikipedia/en/thumb/b/bf/KFC_logo.svg/200px-KFC_logo.svg.png",
    "Wendy's": "https://upload.wikimedia.org/wikipedia/en/thumb/5/57/Wendy%27s_full_logo_2013.svg/200px-Wendy%27s_full_logo_2013.svg.png",
}

# Inline (cid:) and embedded (data:) sources are not fetchable links; cid
# images reach deal_images through their attachment part instead.
_UNLINKABLE_PREFIXES = ("cid:", "data:")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_dimension(value) -> int:
    """
    Parse a width/height attribute the way browsers read legacy HTML:
    the leading integer wins ("300px" -> 300), anything else is 0.
    """
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return int(match.group(1))


def resolve_image_url(src: str) -> str:
    """Make protocol-relative sources absolute against https:."""
    src = src.strip()
    if src.startswith("http"):
        return src
    return f"https:{src}"


def is_logo(alt: str, width: int, height: int) -> bool:
    return (
        "logo" in (alt or "").lower()
        or width < LOGO_MAX_DIMENSION
        or height < LOGO_MAX_DIMENSION
    )


def classify_images(html: str, inline_images: Iterable[FlatPart] = ()) -> EmailImages:
    """
    Split the images of an email into logo and deal candidates.

    Args:
        html: Concatenated text/html body (may be empty)
        inline_images: image/* leaf parts that carry an attachment id

    Returns:
        EmailImages with both lists in document order, attachments last.
    """
    images = EmailImages()

    if html:
        try:
            soup = BeautifulSoup(html, "html.parser")
            for img in soup.find_all("img"):
                src = (img.get("src") or "").strip()
                if not src or src.lower().startswith(_UNLINKABLE_PREFIXES):
                    continue

                alt = img.get("alt") or ""
                width = parse_dimension(img.get("width"))
                height = parse_dimension(img.get("height"))

                candidate = ImageCandidate(
                    url=resolve_image_url(src),
                    alt=alt,
                    width=width,
                    height=height,
                )
                if is_logo(alt, width, height):
                    images.logo_images.append(candidate)
                else:
                    images.deal_images.append(candidate)
        except Exception as e:
            logger.warning(f"Image extraction from HTML failed: {e}")

    for part in inline_images:
        if (part.mime_type or "").lower().startswith("image/") and part.attachment_id:
            images.deal_images.append(
                ImageCandidate(
                    attachment_id=part.attachment_id,
                    mime_type=part.mime_type,
                )
            )

    return images


def best_deal_image(candidates: List[ImageCandidate]) -> Optional[ImageCandidate]:
    """Largest width*height wins; the first one seen wins a tie."""
    best: Optional[ImageCandidate] = None
    for candidate in candidates:
        if best is None or candidate.area > best.area:
            best = candidate
    return best


def select_best_deal_image(images: EmailImages) -> Optional[str]:
    """URL of the best deal image, or None if there is none."""
    best = best_deal_image(images.deal_images)
    return best.url if best else None


def default_logo_url(restaurant_name: Optional[str]) -> str:
    """Known logo for an exact restaurant name, else the placeholder."""
    if restaurant_name and restaurant_name in DEFAULT_LOGOS:
        return DEFAULT_LOGOS[restaurant_name]
    return PLACEHOLDER_LOGO_URL


def select_best_logo_image(images: EmailImages, restaurant_name: Optional[str]) -> str:
    """First logo image in the email, falling back to DEFAULT_LOGOS."""
    for candidate in images.logo_images:
        if candidate.url:
            return candidate.url
    return default_logo_url(restaurant_name)
