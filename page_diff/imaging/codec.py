"""PNG codec — converts between encoded screenshots and raw RGBA buffers."""

from __future__ import annotations

import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from page_diff.errors import DecodeError

from .raw_image import RawImage

logger = logging.getLogger(__name__)


class PngCodec:
    """Decodes any Pillow-readable image to RGBA and encodes RGBA to PNG."""

    def decode(self, data: bytes) -> RawImage:
        if not data:
            raise DecodeError("Empty image data")
        try:
            with Image.open(io.BytesIO(data)) as img:
                rgba = img.convert("RGBA")
                width, height = rgba.size
                pixels = rgba.tobytes()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e
        logger.debug("Decoded %dx%d image (%d bytes)", width, height, len(data))
        return RawImage(width=width, height=height, pixels=pixels).validate()

    def encode(self, image: RawImage) -> bytes:
        image.validate()
        img = Image.frombytes("RGBA", (image.width, image.height), image.pixels)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


def to_data_url(png_bytes: bytes) -> str:
    """Wrap PNG bytes in a data URL suitable for an <img src>."""
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
