"""
Pydantic models for Gmail messages and the pieces derived from them.

RawEmail mirrors the Gmail API ``format=full`` message: a tree of MIME parts
rooted at ``payload``. Everything downstream (flattening, content extraction,
image classification) works on these models rather than raw dicts.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class Header(BaseModel):
    name: str
    value: str = ""


class PartBody(BaseModel):
    """Body of a MIME node. Gmail sends inline data base64url-encoded."""
    data: Optional[str] = None
    attachment_id: Optional[str] = Field(default=None, alias="attachmentId")
    size: int = 0

    model_config = {"populate_by_name": True, "extra": "ignore"}


class MessagePart(BaseModel):
    """A single node of the MIME tree (may have child parts)."""
    part_id: Optional[str] = Field(default=None, alias="partId")
    mime_type: str = Field(default="", alias="mimeType")
    filename: Optional[str] = None
    headers: List[Header] = []
    body: PartBody = PartBody()
    parts: List["MessagePart"] = []

    model_config = {"populate_by_name": True, "extra": "ignore"}


MessagePart.model_rebuild()


class RawEmail(BaseModel):
    """A fetched Gmail message. Treated as immutable once fetched."""
    id: str
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    snippet: Optional[str] = None
    payload: Optional[MessagePart] = None

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    def header(self, name: str) -> str:
        """Return the first header value matching ``name`` (case-insensitive)."""
        if self.payload is None:
            return ""
        wanted = name.lower()
        for h in self.payload.headers:
            if h.name.lower() == wanted:
                return h.value
        return ""

    @property
    def subject(self) -> str:
        return self.header("Subject")

    @property
    def sender(self) -> str:
        return self.header("From")


class FlatPart(BaseModel):
    """A leaf MIME part with its body already decoded to bytes."""
    mime_type: str = ""
    data: Optional[bytes] = None
    attachment_id: Optional[str] = None


class EmailContent(BaseModel):
    """Text, HTML and inline image parts pulled out of one email."""
    text: str = ""
    html: str = ""
    inline_images: List[FlatPart] = []


class ImageCandidate(BaseModel):
    """
    An image found in an email.

    HTML images carry an absolute ``url``. Inline attachments carry only an
    ``attachment_id`` (fetching the bytes is a separate Gmail call).
    """
    url: Optional[str] = None
    alt: str = ""
    width: int = 0
    height: int = 0
    attachment_id: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def area(self) -> int:
        return (self.width or 0) * (self.height or 0)


class EmailImages(BaseModel):
    logo_images: List[ImageCandidate] = []
    deal_images: List[ImageCandidate] = []
