"""
Segment splitter: cut the cropped virtual canvas into grid tiles.

The crop rectangle covers the whole virtual canvas (segments plus gaps).
Each segment's source band is projected onto a fixed-size output tile, and
the source rows that fall where the host platform will draw a gap are
skipped, so the tiles line up once the gaps are reinserted.

This module is Qt-free and safe for worker import.
"""

import logging
from dataclasses import dataclass

from PIL import Image

from grid_split_tool.models import (
    DimensionConfig,
    NormalizedRect,
    TargetDimensions,
    calculate_fit_crop,
    compute_target_dimensions,
)
from grid_split_tool.raster import EncodedImage, default_backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    """Encoded tiles in top-to-bottom order."""
    segments: tuple
    segment_width: int
    segment_heights: tuple

    @property
    def blobs(self) -> list[bytes]:
        return [seg.data for seg in self.segments]

    @property
    def data_uris(self) -> list[str]:
        return [seg.data_uri for seg in self.segments]


def split_image(
    image: Image.Image,
    segment_count: int,
    target: TargetDimensions,
    crop: NormalizedRect,
    backend=None,
) -> SplitResult:
    """Split the *crop* region of *image* into *segment_count* tiles.

    Raises ValueError if *target* was computed for a different segment count.
    Backend failures propagate; no partial result is ever returned.
    """
    if target.segment_count != segment_count:
        raise ValueError(
            f"Target has {target.segment_count} segment heights, expected {segment_count}"
        )
    backend = backend or default_backend()

    src_w, src_h = image.size
    crop_x, crop_y, crop_w, crop_h = crop.to_pixels(src_w, src_h)
    if crop_w <= 0 or crop_h <= 0:
        raise ValueError(f"Crop covers no pixels of the {src_w}×{src_h} source")

    # Source pixels per target pixel (same on both axes: crop matches the target ratio)
    scale = crop_h / target.total_height
    source_gap_height = target.gap * scale
    output_width = int(round(target.width))

    segments: list[EncodedImage] = []
    source_y = float(crop_y)
    for i, segment_height in enumerate(target.segment_heights):
        output_height = int(round(segment_height))
        source_segment_height = segment_height * scale

        surface = backend.create_surface(output_width, output_height)
        backend.blit(
            image,
            (crop_x, source_y, crop_w, source_segment_height),
            surface,
            (0, 0, output_width, output_height),
        )
        segments.append(backend.encode(surface))

        source_y += source_segment_height
        if i < segment_count - 1:
            source_y += source_gap_height

    logger.debug(
        "Split %d×%d source into %d segment(s) of width %d (crop %d,%d %d×%d)",
        src_w, src_h, segment_count, output_width, crop_x, crop_y, crop_w, crop_h,
    )
    return SplitResult(
        segments=tuple(segments),
        segment_width=output_width,
        segment_heights=tuple(int(round(h)) for h in target.segment_heights),
    )


def split_with_config(
    image: Image.Image,
    segment_count: int,
    config: DimensionConfig,
    crop: NormalizedRect | None = None,
    backend=None,
) -> SplitResult:
    """Split using *config*, falling back to the centered fit-crop."""
    target = compute_target_dimensions(segment_count, config)
    if crop is None:
        crop = calculate_fit_crop(image.width, image.height, target.aspect_ratio)
    return split_image(image, segment_count, target, crop, backend=backend)
