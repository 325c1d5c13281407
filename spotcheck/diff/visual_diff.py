"""Visual diff — pixel comparison of two PNGs plus a side-by-side review image."""

from __future__ import annotations

import io
import logging
from typing import Sequence

from PIL import Image, ImageMath, ImageOps, UnidentifiedImageError

from spotcheck.models.result import DiffResult

logger = logging.getLogger(__name__)

GUTTER = 4
HIGHLIGHT = (255, 0, 0)
# How much of the before image shows through behind highlighted pixels
FADE = 0.1
# Default share of the largest YIQ distance tolerated before a pixel counts as changed
THRESHOLD = 0.1
MAX_YIQ_DELTA = 35215


def decode(buf: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(buf))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Unable to decode image: {e}") from e
    return img.convert("RGBA")


def encode(img: Image.Image) -> bytes:
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def stitch(images: Sequence[Image.Image], gutter: int = GUTTER) -> bytes:
    """Join images left to right on a transparent canvas."""
    width = sum(img.width for img in images) + gutter * (len(images) - 1)
    height = max(img.height for img in images)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    x = 0
    for img in images:
        canvas.paste(img, (x, 0))
        x += img.width + gutter
    return encode(canvas)


def flatten(img: Image.Image) -> Image.Image:
    """Blend onto white, so pixels that differ only where transparent compare equal."""
    white = Image.new("RGBA", img.size, (255, 255, 255, 255))
    return Image.alpha_composite(white, img).convert("RGB")


def diff_mask(before: Image.Image, after: Image.Image,
              threshold: float = THRESHOLD) -> tuple[Image.Image, int]:
    """Binary mask of differing pixels and how many there are.

    Pixels differ when their YIQ colour distance exceeds ``threshold``
    (0 to 1) of the largest possible distance, the same perceptual measure
    pixelmatch uses. ``threshold=0`` flags every changed pixel.
    """
    max_delta = MAX_YIQ_DELTA * threshold * threshold
    r1, g1, b1 = (band.convert("F") for band in flatten(before).split())
    r2, g2, b2 = (band.convert("F") for band in flatten(after).split())

    def expression(args):
        dr = args["r1"] - args["r2"]
        dg = args["g1"] - args["g2"]
        db = args["b1"] - args["b2"]
        y = dr * 0.29889531 + dg * 0.58662247 + db * 0.11448223
        i = dr * 0.59597799 - dg * 0.27417610 - db * 0.32180189
        q = dr * 0.21147017 - dg * 0.52261711 + db * 0.31114694
        delta = y * y * 0.5053 + i * i * 0.299 + q * q * 0.1957
        return args["convert"]((delta > max_delta) * 255, "L")

    mask = ImageMath.lambda_eval(expression, r1=r1, g1=g1, b1=b1, r2=r2, g2=g2, b2=b2)
    mismatch = before.width * before.height - mask.histogram()[0]
    return mask, mismatch


def highlight(before: Image.Image, mask: Image.Image) -> Image.Image:
    gray = ImageOps.grayscale(before.convert("RGB")).convert("RGB")
    white = Image.new("RGB", before.size, (255, 255, 255))
    panel = Image.blend(white, gray, FADE)
    panel.paste(HIGHLIGHT, (0, 0, before.width, before.height), mask)
    return panel.convert("RGBA")


def visual_diff(before: bytes, after: bytes, threshold: float = THRESHOLD) -> DiffResult:
    """Compare two PNGs.

    Images of different sizes are never identical and get a two panel
    composite, there is no meaningful pixel overlay for them. Same sized
    images get a third panel with differing pixels painted red. Small colour
    shifts below ``threshold``, such as anti-aliasing noise, are not differences.
    """
    img1 = decode(before)
    img2 = decode(after)

    if img1.size != img2.size:
        logger.debug("Dimensions differ: %s vs %s", img1.size, img2.size)
        return DiffResult(img=stitch([img1, img2]), identical=False)

    mask, mismatch = diff_mask(img1, img2, threshold)
    logger.debug("Pixel mismatch: %d of %d", mismatch, img1.width * img1.height)
    return DiffResult(
        img=stitch([img1, img2, highlight(img1, mask)]),
        identical=mismatch == 0,
        mismatch=mismatch,
    )
