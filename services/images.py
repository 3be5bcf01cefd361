# services/images.py
"""
Typed views of provider response parts plus data-URL helpers.

A provider reply is a list of parts; each part is either text or an inline
image. Images travel through the API and the gallery as data URLs.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, Optional, Union

from PIL import Image, UnidentifiedImageError

from services.errors import InvalidImage, ProviderError

_DATA_URL = re.compile(r"^data:([\w.+/-]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"


Part = Union[TextPart, ImagePart]


def parse_data_url(value: Optional[str]) -> ImagePart:
    """Accepts `data:<mime>;base64,<payload>` or bare base64 (assumed PNG)."""
    raw = (value or "").strip()
    if not raw:
        raise InvalidImage("empty image payload")
    m = _DATA_URL.match(raw)
    if m:
        mime, payload = m.group(1), m.group(2)
    elif raw.startswith("data:"):
        raise InvalidImage("malformed data URL")
    else:
        mime, payload = "image/png", raw
    if not mime.startswith("image/"):
        raise InvalidImage(f"not an image: {mime}")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImage(f"bad base64: {e}") from e
    if not data:
        raise InvalidImage("empty image payload")
    return ImagePart(data=data, mime_type=mime)


def to_png(part: ImagePart) -> bytes:
    """Re-encode any Pillow-readable image as PNG (the edit endpoint wants one format)."""
    try:
        with Image.open(BytesIO(part.data)) as img:
            if part.mime_type == "image/png" and img.format == "PNG":
                return part.data
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")
            out = BytesIO()
            img.save(out, format="PNG")
            return out.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImage(f"unreadable image: {e}") from e


def first_image(parts: Iterable[Part]) -> ImagePart:
    for part in parts:
        if isinstance(part, ImagePart):
            return part
    raise ProviderError("provider returned no image")


def joined_text(parts: Iterable[Part]) -> str:
    text = "".join(p.text for p in parts if isinstance(p, TextPart)).strip()
    if not text:
        raise ProviderError("provider returned an empty reply")
    return text
