"""
Raster backend: the drawing primitives used by the splitter and merger.

The backend exposes four capabilities: create a surface, blit a (possibly
fractional) source region onto a destination region with scaling, blur an
image, and encode a surface to PNG bytes.  ``PillowBackend`` is the only
implementation; tests substitute their own to simulate an unavailable
rendering environment.

This module is Qt-free and safe for worker import.
"""

import base64
import io
import logging
import math
from dataclasses import dataclass

from PIL import Image, ImageColor, ImageFilter

from grid_split_tool.config import PNG_COMPRESS_LEVEL, RESAMPLE_FILTER

logger = logging.getLogger(__name__)


class RasterBackendError(RuntimeError):
    """A drawing surface could not be created; the operation cannot proceed."""


@dataclass(frozen=True)
class EncodedImage:
    """Encoded raster output: raw bytes plus a data-URI view of them."""
    data: bytes
    mime_type: str = "image/png"

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    def to_image(self) -> Image.Image:
        """Decode back into a PIL image."""
        img = Image.open(io.BytesIO(self.data))
        img.load()
        return img


def parse_color(color) -> tuple[int, int, int, int]:
    """Parse a CSS-style colour (``#ff0000``, ``red``, ``rgb(...)``) or RGB(A) tuple."""
    if isinstance(color, tuple):
        rgba = tuple(int(c) for c in color)
    else:
        try:
            rgba = ImageColor.getrgb(color)
        except (ValueError, AttributeError) as exc:
            raise ValueError(f"Invalid colour {color!r}: {exc}") from exc
    if len(rgba) == 3:
        rgba = rgba + (255,)
    if len(rgba) != 4:
        raise ValueError(f"Invalid colour {color!r}")
    return rgba


class PillowBackend:
    """Raster primitives implemented with Pillow."""

    mode = "RGBA"

    def __init__(self, resample=RESAMPLE_FILTER, compress_level: int = PNG_COMPRESS_LEVEL):
        self._resample = resample
        self._compress_level = compress_level

    def create_surface(self, width: int, height: int, color=(0, 0, 0, 0)) -> Image.Image:
        """Create a blank RGBA surface."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface size must be positive, got {width}×{height}")
        try:
            return Image.new(self.mode, (int(width), int(height)), color)
        except (MemoryError, OSError) as exc:
            raise RasterBackendError(f"Failed to create {width}×{height} surface: {exc}") from exc

    def blit(
        self,
        source: Image.Image,
        src_box: tuple[float, float, float, float],
        surface: Image.Image,
        dest_box: tuple[int, int, int, int],
    ) -> None:
        """Scale ``src_box`` (x, y, w, h; may be fractional) of *source* into ``dest_box`` of *surface*.

        The source is first cut to the whole pixels covering the region, so the
        resampling filter never reads pixels outside it.
        """
        sx, sy, sw, sh = src_box
        dx, dy, dw, dh = dest_box
        if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
            return

        left = max(0, math.floor(sx))
        top = max(0, math.floor(sy))
        right = min(source.width, math.ceil(sx + sw))
        bottom = min(source.height, math.ceil(sy + sh))
        if right <= left or bottom <= top:
            return

        region = source.crop((left, top, right, bottom))
        if region.mode != self.mode:
            region = region.convert(self.mode)
        box = (
            max(0.0, sx - left),
            max(0.0, sy - top),
            min(float(region.width), sx + sw - left),
            min(float(region.height), sy + sh - top),
        )
        scaled = region.resize((int(dw), int(dh)), self._resample, box=box)
        surface.paste(scaled, (int(dx), int(dy)))

    def fill(self, surface: Image.Image, box: tuple[int, int, int, int], color) -> None:
        """Fill ``box`` (x, y, w, h) of *surface* with a flat colour."""
        x, y, w, h = box
        surface.paste(parse_color(color), (int(x), int(y), int(x + w), int(y + h)))

    def blur(self, image: Image.Image, radius: float) -> Image.Image:
        """Return a Gaussian-blurred copy of *image*."""
        return image.filter(ImageFilter.GaussianBlur(radius=radius))

    def encode(self, surface: Image.Image) -> EncodedImage:
        """Encode a surface to PNG."""
        buf = io.BytesIO()
        try:
            surface.save(buf, "PNG", compress_level=self._compress_level)
        except OSError as exc:
            raise RasterBackendError(f"Failed to encode PNG: {exc}") from exc
        return EncodedImage(buf.getvalue())


def default_backend() -> PillowBackend:
    return PillowBackend()
