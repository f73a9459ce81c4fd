"""
Merge engine: stack several images into one continuous vertical strip.

All inputs are scaled to a shared width (by default the widest input) and
drawn top to bottom in the given order.  Between neighbours an optional gap
is synthesized, either as a flat colour or as a cross-fade between blurred
strips taken from the facing edges of the two images.

This module is Qt-free and safe for worker import.
"""

import logging
import math
from dataclasses import dataclass

from PIL import Image

from grid_split_tool.config import (
    BLUR_RADIUS_DIVISOR,
    BLUR_RADIUS_MIN,
    BLUR_STRIP_MAX,
    DEFAULT_SOLID_COLOR,
    GAP_FILL_TYPES,
)
from grid_split_tool.raster import EncodedImage, default_backend, parse_color

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Encoded merged strip and its size."""
    image: EncodedImage
    width: int
    height: int

    @property
    def blob(self) -> bytes:
        return self.image.data

    @property
    def data_uri(self) -> str:
        return self.image.data_uri


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scaled_height(natural_w: int, natural_h: int, output_width: int) -> int:
    """Height of an image scaled to *output_width*, preserving aspect ratio."""
    return _round_half_up(natural_h * output_width / natural_w)


def blur_strip_height(gap_size: int) -> int:
    return min(2 * gap_size, BLUR_STRIP_MAX)


def blur_radius(gap_size: int) -> float:
    return max(BLUR_RADIUS_MIN, gap_size / BLUR_RADIUS_DIVISOR)


def _fade_mask(width: int, gap_size: int) -> Image.Image:
    """Vertical mask: 255 (upper strip) on row 0 falling linearly toward 0."""
    column = Image.new("L", (1, gap_size))
    column.putdata([_round_half_up(255 * (1 - y / gap_size)) for y in range(gap_size)])
    return column.resize((width, gap_size), Image.Resampling.NEAREST)


def _blend_gap(backend, upper: Image.Image, lower: Image.Image, width: int, gap_size: int) -> Image.Image:
    """Cross-fade blurred edge strips of *upper* and *lower* across the gap."""
    strip = blur_strip_height(gap_size)
    radius = blur_radius(gap_size)

    upper_h = min(strip, upper.height)
    lower_h = min(strip, lower.height)
    upper_strip = upper.crop((0, upper.height - upper_h, width, upper.height))
    lower_strip = lower.crop((0, 0, width, lower_h))

    upper_strip = backend.blur(upper_strip, radius)
    lower_strip = backend.blur(lower_strip, radius)

    upper_fill = backend.create_surface(width, gap_size)
    lower_fill = backend.create_surface(width, gap_size)
    backend.blit(upper_strip, (0, 0, width, upper_h), upper_fill, (0, 0, width, gap_size))
    backend.blit(lower_strip, (0, 0, width, lower_h), lower_fill, (0, 0, width, gap_size))

    return Image.composite(upper_fill, lower_fill, _fade_mask(width, gap_size))


def merge_images(
    images: list,
    gap_fill_type: str = "none",
    gap_size: int = 0,
    solid_color=DEFAULT_SOLID_COLOR,
    output_width: int | None = None,
    backend=None,
) -> MergeResult:
    """Merge *images* vertically into one strip.

    ``gap_fill_type`` is one of ``none``, ``blur``, ``solid``; with ``none``
    no gap is inserted whatever *gap_size* says.  Raises ValueError on an
    empty list or invalid options.
    """
    if not images:
        raise ValueError("No images to merge")
    if gap_fill_type not in GAP_FILL_TYPES:
        raise ValueError(f"gap_fill_type must be one of {', '.join(GAP_FILL_TYPES)}, got {gap_fill_type!r}")
    if gap_fill_type == "none":
        gap_size = 0
    gap_size = int(gap_size)
    if gap_size < 0:
        raise ValueError(f"gap_size must not be negative, got {gap_size}")
    if gap_fill_type == "solid":
        fill_color = parse_color(solid_color)

    for img in images:
        if img.width <= 0 or img.height <= 0:
            raise ValueError(f"Cannot merge an empty {img.width}×{img.height} image")

    if output_width is None:
        output_width = max(img.width for img in images)
    output_width = int(output_width)
    if output_width <= 0:
        raise ValueError(f"output_width must be positive, got {output_width}")

    backend = backend or default_backend()

    heights = [scaled_height(img.width, img.height, output_width) for img in images]
    total_height = sum(heights) + gap_size * (len(images) - 1)
    canvas = backend.create_surface(output_width, total_height)

    # Scaled copies are kept so blur gaps can sample their edges
    scaled = []
    for img, h in zip(images, heights):
        surface = backend.create_surface(output_width, h)
        backend.blit(img, (0, 0, img.width, img.height), surface, (0, 0, output_width, h))
        scaled.append(surface)

    current_y = 0
    for i, surface in enumerate(scaled):
        canvas.paste(surface, (0, current_y))
        current_y += surface.height
        if i == len(scaled) - 1 or gap_size == 0:
            continue
        if gap_fill_type == "solid":
            backend.fill(canvas, (0, current_y, output_width, gap_size), fill_color)
        else:
            gap = _blend_gap(backend, surface, scaled[i + 1], output_width, gap_size)
            canvas.paste(gap, (0, current_y))
        current_y += gap_size

    logger.debug(
        "Merged %d image(s) into %d×%d (gap fill %s, %d px)",
        len(images), output_width, total_height, gap_fill_type, gap_size,
    )
    return MergeResult(image=backend.encode(canvas), width=output_width, height=total_height)
