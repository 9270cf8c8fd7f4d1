"""Pixel diff engine — perceptual per-pixel comparison with anti-aliasing detection.

Colors are compared in YIQ space, weighting luma most heavily. A pixel is
flagged when its squared YIQ distance exceeds ``MAX_YIQ_DELTA * threshold**2``.
Optionally, flagged pixels that look like anti-aliased edges in either image
are treated as matches.
"""

from __future__ import annotations

import logging

from page_diff.errors import BufferMismatch
from page_diff.models.comparison import DiffResult
from page_diff.models.config import DiffOptions

from .raw_image import RawImage

logger = logging.getLogger(__name__)

# Largest possible YIQ distance between two 8-bit RGBA pixels.
MAX_YIQ_DELTA = 35215.0

HIGHLIGHT_COLOR = (255, 0, 0)

# Opacity of the original image in the faded backdrop of matched pixels.
MATCHED_OPACITY = 0.1


def _blend(c: float, a: float) -> float:
    """Blend a channel value toward white by opacity a."""
    return 255 + (c - 255) * a


def _rgb2y(r: float, g: float, b: float) -> float:
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _rgb2i(r: float, g: float, b: float) -> float:
    return r * 0.59597799 - g * 0.27417610 - b * 0.32180189


def _rgb2q(r: float, g: float, b: float) -> float:
    return r * 0.21147017 - g * 0.52261711 + b * 0.31114694


def color_delta(img1: bytes, img2: bytes, k: int, m: int, y_only: bool = False) -> float:
    """Squared YIQ distance between pixel k of img1 and pixel m of img2.

    The sign is negative when the first pixel is brighter. With ``y_only``
    only the signed luma difference is returned.
    """
    r1, g1, b1, a1 = img1[k], img1[k + 1], img1[k + 2], img1[k + 3]
    r2, g2, b2, a2 = img2[m], img2[m + 1], img2[m + 2], img2[m + 3]

    if a1 == a2 and r1 == r2 and g1 == g2 and b1 == b2:
        return 0.0

    if not y_only and ((a1 == 0 and a2 == 255) or (a1 == 255 and a2 == 0)):
        return MAX_YIQ_DELTA

    if a1 < 255:
        alpha = a1 / 255
        r1, g1, b1 = _blend(r1, alpha), _blend(g1, alpha), _blend(b1, alpha)
    if a2 < 255:
        alpha = a2 / 255
        r2, g2, b2 = _blend(r2, alpha), _blend(g2, alpha), _blend(b2, alpha)

    y1 = _rgb2y(r1, g1, b1)
    y2 = _rgb2y(r2, g2, b2)
    y = y1 - y2
    if y_only:
        return y

    i = _rgb2i(r1, g1, b1) - _rgb2i(r2, g2, b2)
    q = _rgb2q(r1, g1, b1) - _rgb2q(r2, g2, b2)
    delta = 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q
    return -delta if y1 > y2 else delta


def _has_many_siblings(img: bytes, x1: int, y1: int, width: int, height: int) -> bool:
    """True when at least three neighbours of (x1, y1) are identical to it."""
    x0 = max(x1 - 1, 0)
    y0 = max(y1 - 1, 0)
    x2 = min(x1 + 1, width - 1)
    y2 = min(y1 + 1, height - 1)
    pos = (y1 * width + x1) * 4
    pixel = img[pos:pos + 4]
    # Pixels on the image border count one sibling for free.
    zeroes = 1 if x1 == x0 or x1 == x2 or y1 == y0 or y1 == y2 else 0

    for x in range(x0, x2 + 1):
        for y in range(y0, y2 + 1):
            if x == x1 and y == y1:
                continue
            pos2 = (y * width + x) * 4
            if img[pos2:pos2 + 4] == pixel:
                zeroes += 1
            if zeroes > 2:
                return True
    return False


def is_anti_aliased(
    img: bytes, x1: int, y1: int, width: int, height: int, other: bytes,
) -> bool:
    """Check whether pixel (x1, y1) of img looks like part of an anti-aliased edge.

    The pixel must sit between a darker and a brighter neighbour with at most
    two equal-brightness neighbours, and the darkest or brightest neighbour
    must lie in a flat region in both images.
    """
    x0 = max(x1 - 1, 0)
    y0 = max(y1 - 1, 0)
    x2 = min(x1 + 1, width - 1)
    y2 = min(y1 + 1, height - 1)
    pos = (y1 * width + x1) * 4
    zeroes = 1 if x1 == x0 or x1 == x2 or y1 == y0 or y1 == y2 else 0
    min_delta = 0.0
    max_delta = 0.0
    min_x = min_y = max_x = max_y = 0

    for x in range(x0, x2 + 1):
        for y in range(y0, y2 + 1):
            if x == x1 and y == y1:
                continue
            delta = color_delta(img, img, pos, (y * width + x) * 4, y_only=True)
            if delta == 0:
                zeroes += 1
                if zeroes > 2:
                    return False
            elif delta < min_delta:
                min_delta = delta
                min_x, min_y = x, y
            elif delta > max_delta:
                max_delta = delta
                max_x, max_y = x, y

    if min_delta == 0 or max_delta == 0:
        return False

    return (
        _has_many_siblings(img, min_x, min_y, width, height)
        and _has_many_siblings(other, min_x, min_y, width, height)
    ) or (
        _has_many_siblings(img, max_x, max_y, width, height)
        and _has_many_siblings(other, max_x, max_y, width, height)
    )


def _draw_faded(src: bytes, pos: int, out: bytearray) -> None:
    r, g, b, a = src[pos], src[pos + 1], src[pos + 2], src[pos + 3]
    val = int(_blend(_rgb2y(r, g, b), MATCHED_OPACITY * a / 255))
    out[pos] = val
    out[pos + 1] = val
    out[pos + 2] = val
    out[pos + 3] = 255


def diff_images(image_a: RawImage, image_b: RawImage, options: DiffOptions) -> DiffResult:
    """Compare two equally sized RGBA images and render the diff visualization."""
    image_a.validate()
    image_b.validate()
    if (image_a.width, image_a.height) != (image_b.width, image_b.height):
        raise BufferMismatch(
            f"Image sizes differ: {image_a.width}x{image_a.height} "
            f"vs {image_b.width}x{image_b.height}"
        )

    width, height = image_a.width, image_a.height
    a = image_a.pixels
    b = image_b.pixels
    out = bytearray(len(a))

    if a == b:
        for pos in range(0, len(a), 4):
            _draw_faded(a, pos, out)
        logger.debug("Images are identical (%dx%d)", width, height)
        return DiffResult(pixels=bytes(out), width=width, height=height, differing_pixel_count=0)

    max_delta = MAX_YIQ_DELTA * options.threshold * options.threshold
    check_aa = not options.include_anti_aliased
    highlight = (*HIGHLIGHT_COLOR, options.output_alpha)
    differing = 0
    excluded = 0

    for y in range(height):
        for x in range(width):
            pos = (y * width + x) * 4
            if a[pos:pos + 4] == b[pos:pos + 4]:
                _draw_faded(a, pos, out)
                continue

            delta = color_delta(a, b, pos, pos)
            if abs(delta) > max_delta:
                if check_aa and (
                    is_anti_aliased(a, x, y, width, height, b)
                    or is_anti_aliased(b, x, y, width, height, a)
                ):
                    excluded += 1
                    _draw_faded(a, pos, out)
                else:
                    out[pos:pos + 4] = highlight
                    differing += 1
            else:
                _draw_faded(a, pos, out)

    logger.debug(
        "Pixel diff %dx%d: %d differing, %d anti-aliased excluded (threshold=%.3f)",
        width, height, differing, excluded, options.threshold,
    )
    return DiffResult(
        pixels=bytes(out), width=width, height=height, differing_pixel_count=differing,
    )
