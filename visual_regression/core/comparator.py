"""Image comparator — perceptual pixel diff between a screenshot and its baseline."""

from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

from visual_regression.errors import DimensionMismatch, ImageDecodeError
from visual_regression.models.screenshot import ComparisonResult

logger = logging.getLogger(__name__)

DIFF_COLOR = (255, 0, 255)

# 8-neighbourhood offsets as (dy, dx)
_NEIGHBOURS = [(dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dy, dx) != (0, 0)]

# Luma weights used for brightness comparisons
_LUMA = np.array([0.29889531, 0.58662247, 0.11448223])


def decode_image(data: bytes, what: str = "image") -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Cannot decode {what}", {"error": e}) from e
    return img.convert("RGBA")


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _shift(arr: np.ndarray, dy: int, dx: int) -> np.ndarray:
    """Value of the (dy, dx) neighbour at every position, edges repeated."""
    h, w = arr.shape[:2]
    pad = ((1, 1), (1, 1)) + ((0, 0),) * (arr.ndim - 2)
    padded = np.pad(arr, pad, mode="edge")
    return padded[1 + dy:1 + dy + h, 1 + dx:1 + dx + w]


def _in_bounds(h: int, w: int, dy: int, dx: int) -> np.ndarray:
    ys = np.arange(h)[:, None] + dy
    xs = np.arange(w)[None, :] + dx
    return (ys >= 0) & (ys < h) & (xs >= 0) & (xs < w)


def _luminance(pixels: np.ndarray) -> np.ndarray:
    # blended over white
    alpha = pixels[..., 3:4] / 255.0
    rgb = 255.0 + (pixels[..., :3] - 255.0) * alpha
    return rgb @ _LUMA


def _many_siblings(pixels: np.ndarray) -> np.ndarray:
    """True where more than two neighbours have exactly the same colour."""
    h, w = pixels.shape[:2]
    count = np.zeros((h, w), dtype=np.int16)
    for dy, dx in _NEIGHBOURS:
        same = (_shift(pixels, dy, dx) == pixels).all(axis=2)
        count += same & _in_bounds(h, w, dy, dx)
    return count > 2


def antialiased(pixels: np.ndarray, other: np.ndarray) -> np.ndarray:
    """Mask of the pixels in ``pixels`` that look like anti-aliasing.

    Such a pixel sits between its neighbours: it has a darker and a brighter
    neighbour, at most two neighbours of equal brightness, and its darkest or
    brightest neighbour lies inside a solid area in both images.
    """
    h, w = pixels.shape[:2]
    luma = _luminance(pixels)
    deltas = np.zeros((len(_NEIGHBOURS), h, w))
    zeroes = np.zeros((h, w), dtype=np.int16)
    for i, (dy, dx) in enumerate(_NEIGHBOURS):
        valid = _in_bounds(h, w, dy, dx)
        deltas[i] = np.where(valid, _shift(luma, dy, dx) - luma, 0.0)
        zeroes += valid & (deltas[i] == 0)

    solid = _many_siblings(pixels) & _many_siblings(other)
    solid_at = np.stack([_shift(solid, dy, dx) for dy, dx in _NEIGHBOURS])
    darkest_solid = np.take_along_axis(solid_at, deltas.argmin(axis=0)[None], axis=0)[0]
    brightest_solid = np.take_along_axis(solid_at, deltas.argmax(axis=0)[None], axis=0)[0]

    between = (deltas.min(axis=0) < 0) & (deltas.max(axis=0) > 0)
    return (zeroes <= 2) & between & (darkest_solid | brightest_solid)


class ImageComparator:
    """Compares two equally sized images and renders a diff image.

    A pixel counts as different when any RGBA channel moves by more than
    ``pixel_tolerance``. With ``ignore_antialiasing`` a different pixel is
    discounted when it is an anti-aliased edge pixel in either image.
    """

    def __init__(self, pixel_tolerance: int = 32, ignore_antialiasing: bool = True):
        self.pixel_tolerance = pixel_tolerance
        self.ignore_antialiasing = ignore_antialiasing

    def compare(self, current: bytes, baseline: bytes) -> ComparisonResult:
        current_img = decode_image(current, "current screenshot")
        baseline_img = decode_image(baseline, "baseline")

        if current_img.size != baseline_img.size:
            raise DimensionMismatch(current_img.size, baseline_img.size)

        width, height = current_img.size
        cur = np.asarray(current_img, dtype=np.int16)
        base = np.asarray(baseline_img, dtype=np.int16)

        mask = self._differing(cur, base)
        if self.ignore_antialiasing and mask.any():
            mask &= ~(antialiased(cur, base) | antialiased(base, cur))

        total = width * height
        differing = int(mask.sum())
        mismatch = 100.0 * differing / total if total else 0.0
        logger.debug("Compared %dx%d images: %d differing pixels (%.2f%%)",
                     width, height, differing, mismatch)

        return ComparisonResult(
            mismatch_percent=round(mismatch, 2),
            diff_image=self._render_diff(current_img, mask),
            width=width,
            height=height,
            differing_pixels=differing,
        )

    def _differing(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.abs(a - b).max(axis=2) > self.pixel_tolerance

    def _render_diff(self, current_img: Image.Image, mask: np.ndarray) -> bytes:
        # Unchanged pixels as faded grayscale, changed pixels highlighted
        gray = np.asarray(current_img.convert("L"), dtype=np.float32)
        faded = (255 - (255 - gray) * 0.3).astype(np.uint8)
        rgb = np.stack([faded, faded, faded], axis=2)
        rgb[mask] = DIFF_COLOR
        return encode_png(Image.fromarray(rgb))
