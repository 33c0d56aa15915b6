"""
MIME part helpers for Gmail messages.

Gmail returns a message as a tree of parts. The deal pipeline only cares
about the leaves: text/plain for extraction, text/html for images, and
image/* attachments that have no inline data.
"""

import base64
import binascii
import logging
from typing import Iterable, List, Optional

from app.models.email import EmailContent, FlatPart, MessagePart, RawEmail

logger = logging.getLogger(__name__)


def decode_body_data(data: Optional[str]) -> Optional[bytes]:
    """
    Decode Gmail's base64url body data. Missing padding is tolerated.

    Returns None when there is no data or it cannot be decoded.
    """
    if not data:
        return None
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        logger.warning(f"Could not decode MIME body data ({len(data)} chars)")
        return None


def _walk(part: MessagePart, out: List[FlatPart]) -> None:
    if part.parts:
        for child in part.parts:
            _walk(child, out)
        return
    out.append(
        FlatPart(
            mime_type=part.mime_type or "",
            data=decode_body_data(part.body.data),
            attachment_id=part.body.attachment_id,
        )
    )


def flatten_parts(payload: Optional[MessagePart]) -> List[FlatPart]:
    """
    Flatten a MIME tree into its leaf parts, depth-first, left to right.

    A node with children contributes only its descendants' leaves; a node
    without children is emitted once.
    """
    if payload is None:
        return []
    leaves: List[FlatPart] = []
    _walk(payload, leaves)
    return leaves


def _decode_text(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def extract_content(parts: Iterable[FlatPart]) -> EmailContent:
    """
    Concatenate text/plain and text/html bodies in traversal order and
    collect inline image attachments.
    """
    text_chunks: List[str] = []
    html_chunks: List[str] = []
    inline_images: List[FlatPart] = []

    for part in parts:
        mime = (part.mime_type or "").lower()
        if mime == "text/plain" and part.data:
            text_chunks.append(_decode_text(part.data))
        elif mime == "text/html" and part.data:
            html_chunks.append(_decode_text(part.data))
        elif mime.startswith("image/") and part.attachment_id:
            inline_images.append(part)

    return EmailContent(
        text="".join(text_chunks),
        html="".join(html_chunks),
        inline_images=inline_images,
    )


def extract_email_content(email: RawEmail) -> EmailContent:
    """Flatten ``email`` and pull out its text, HTML and inline images."""
    return extract_content(flatten_parts(email.payload))
