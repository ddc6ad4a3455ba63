"""
Image input for LinkMap.

- decode_image: validate raw bytes with Pillow and read the natural size
- data URLs: self-contained transportable encoding used by session records
- render_frame: letterboxed canvas frame for the interactive image
- fetch_default_image: optional best-effort download of a default image
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

from linkmap.geometry import ContainTransform

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = (15, 23, 42)  # slate-900, matches the page


class ImageDecodeError(ValueError):
    """Raised when image bytes cannot be decoded."""


@dataclass
class LoadedImage:
    """A fully decoded image: raw bytes plus metadata."""
    name: str
    mime: str
    data: bytes = field(repr=False)
    width: int
    height: int

    @property
    def data_url(self) -> str:
        return encode_data_url(self.data, self.mime)

    def open(self) -> Image.Image:
        """Open a fresh PIL image from the stored bytes."""
        return Image.open(io.BytesIO(self.data))


def decode_image(data: bytes, name: str = "image") -> LoadedImage:
    """
    Decode image bytes.

    Args:
        data: Encoded image (PNG, JPEG, ...)
        name: Identifier kept with the image (filename or URL)

    Returns:
        LoadedImage with natural width/height

    Raises:
        ImageDecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise ImageDecodeError("empty image data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            mime = Image.MIME.get(img.format or "", "application/octet-stream")
    except (UnidentifiedImageError, OSError, EOFError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"cannot decode {name}: {e}") from e
    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"cannot decode {name}: empty image")
    return LoadedImage(name=name, mime=mime, data=bytes(data), width=width, height=height)


def encode_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """
    Split a base64 data URL into (bytes, mime).

    Raises:
        ImageDecodeError: If the string is not a base64 data URL
    """
    if not isinstance(url, str) or not url.startswith("data:"):
        raise ImageDecodeError("image payload is not a data URL")
    header, sep, payload = url.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ImageDecodeError("image payload is not base64 encoded")
    mime = header[len("data:"):-len(";base64")] or "application/octet-stream"
    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"invalid base64 image payload: {e}") from e


def render_frame(image: Image.Image, transform: ContainTransform,
                 container_width: int, container_height: int) -> Image.Image:
    """
    Render the image letterboxed into a container-sized RGB frame.

    The frame is what the interactive image displays, so pointer events arrive
    in container coordinates.
    """
    frame = Image.new("RGB", (int(container_width), int(container_height)), BACKGROUND_COLOR)
    left, top, width, height = transform.drawn_rect
    size = (max(1, round(width)), max(1, round(height)))
    scaled = image.convert("RGB").resize(size, Image.BILINEAR)
    frame.paste(scaled, (round(left), round(top)))
    return frame


def fetch_default_image(url: str, timeout: float = 10.0) -> Optional[bytes]:
    """
    Download the default image.

    Best effort: any network error or non-success response returns None.
    """
    if not url:
        return None
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"Default image fetch failed for {url}: {e}")
        return None
    if not response.ok:
        logger.warning(f"Default image fetch returned HTTP {response.status_code} for {url}")
        return None
    logger.info(f"Fetched default image from {url} ({len(response.content)} bytes)")
    return response.content
