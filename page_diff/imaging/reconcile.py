"""Dimension reconciliation — crops two images to their common top-left region."""

from __future__ import annotations

from page_diff.errors import EmptyImage

from .raw_image import RawImage


def crop_top_left(image: RawImage, width: int, height: int) -> RawImage:
    """Return the top-left width x height rectangle of an image.

    The image itself is returned when it already has the requested size.
    """
    if image.width == width and image.height == height:
        return image
    src_stride = image.stride
    row_bytes = width * 4
    src = image.pixels
    out = bytearray(row_bytes * height)
    for y in range(height):
        start = y * src_stride
        out[y * row_bytes:(y + 1) * row_bytes] = src[start:start + row_bytes]
    return RawImage(width=width, height=height, pixels=bytes(out))


def reconcile(image_a: RawImage, image_b: RawImage) -> tuple[RawImage, RawImage]:
    """Align two images to min(width) x min(height), anchored at the origin."""
    for label, img in (("A", image_a), ("B", image_b)):
        if img.width <= 0 or img.height <= 0:
            raise EmptyImage(f"Image {label} has no pixels ({img.width}x{img.height})")
    width = min(image_a.width, image_b.width)
    height = min(image_a.height, image_b.height)
    return crop_top_left(image_a, width, height), crop_top_left(image_b, width, height)
