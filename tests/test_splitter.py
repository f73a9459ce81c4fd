"""
Splitter tests: segment sizes, gap skipping and failure propagation.
"""
import pytest
from PIL import Image, ImageStat

from conftest import BLUE, GREEN, RED, WHITE
from grid_split_tool.models import (
    CustomDimensions,
    DimensionConfig,
    NormalizedRect,
    calculate_fit_crop,
    compute_target_dimensions,
)
from grid_split_tool.raster import RasterBackendError
from grid_split_tool.splitter import split_image, split_with_config

BANDED = DimensionConfig(preset="custom", custom=CustomDimensions(100, (50,), 10))
FULL = NormalizedRect(0.0, 0.0, 1.0, 1.0)


def _pixels(encoded):
    img = encoded.to_image().convert("RGBA")
    return {img.getpixel((x, y)) for x in range(img.width) for y in range(img.height)}


class TestSplitImage:
    def test_segment_sizes(self, banded_image):
        target = compute_target_dimensions(3, BANDED)
        result = split_image(banded_image, 3, target, FULL)
        assert len(result.segments) == 3
        assert result.segment_width == 100
        assert result.segment_heights == (50, 50, 50)
        for segment in result.segments:
            assert segment.to_image().size == (100, 50)

    def test_gap_rows_are_skipped(self, banded_image):
        target = compute_target_dimensions(3, BANDED)
        result = split_image(banded_image, 3, target, FULL)
        assert [_pixels(s) for s in result.segments] == [{BLUE}, {GREEN}, {WHITE}]
        for segment in result.segments:
            assert RED not in _pixels(segment)

    def test_output_is_png(self, banded_image):
        target = compute_target_dimensions(3, BANDED)
        result = split_image(banded_image, 3, target, FULL)
        assert all(blob.startswith(b"\x89PNG") for blob in result.blobs)
        assert all(uri.startswith("data:image/png;base64,") for uri in result.data_uris)

    def test_twitter_segment_size(self):
        img = Image.new("RGB", (1112, 2120), (10, 20, 30))
        result = split_with_config(img, 4, DimensionConfig("twitter", "mobile"))
        assert len(result.segments) == 4
        for segment in result.segments:
            assert segment.to_image().size == (556, 253)

    def test_uses_fit_crop_by_default(self):
        # Wide source: the centered fit keeps only the middle column
        img = Image.new("RGBA", (400, 100), RED)
        img.paste(BLUE, (100, 0, 300, 100))
        config = DimensionConfig(preset="custom", custom=CustomDimensions(200, (100,), 0))
        result = split_with_config(img, 1, config)
        assert _pixels(result.segments[0]) == {BLUE}

    def test_segment_count_mismatch(self, banded_image):
        target = compute_target_dimensions(2, BANDED)
        with pytest.raises(ValueError):
            split_image(banded_image, 3, target, FULL)

    def test_empty_crop_rejected(self, banded_image):
        target = compute_target_dimensions(3, BANDED)
        with pytest.raises(ValueError):
            split_image(banded_image, 3, target, NormalizedRect(0.0, 0.0, 0.0, 0.0))

    def test_backend_failure_propagates(self, banded_image, failing_backend):
        target = compute_target_dimensions(3, BANDED)
        with pytest.raises(RasterBackendError):
            split_image(banded_image, 3, target, FULL, backend=failing_backend)

    def test_split_is_deterministic(self):
        img = Image.linear_gradient("L").resize((300, 700)).convert("RGBA")
        config = DimensionConfig(preset="twitter", mode="desktop")
        first = split_with_config(img, 4, config)
        second = split_with_config(img, 4, config)
        assert first.blobs == second.blobs

    def test_gap_skip_with_offset_crop(self):
        # 100-wide canvas (40px segments, 20px gaps) laid out at 1.5× and
        # padded so the fit crop starts 30 rows below the top edge
        img = Image.new("RGBA", (150, 300), RED)
        img.paste(BLUE, (0, 0, 150, 90))
        img.paste(GREEN, (0, 120, 150, 180))
        img.paste(WHITE, (0, 210, 150, 300))
        config = DimensionConfig(preset="custom", custom=CustomDimensions(100, (40,), 20))
        target = compute_target_dimensions(3, config)
        crop = calculate_fit_crop(150, 300, target.aspect_ratio)
        assert crop.y > 0

        result = split_image(img, 3, target, crop)
        for segment, band in zip(result.segments, (BLUE, GREEN, WHITE)):
            tile = segment.to_image().convert("RGBA")
            assert tile.size == (100, 40)
            assert RED not in _pixels(segment)
            mean = ImageStat.Stat(tile).mean
            assert all(abs(m - c) < 16 for m, c in zip(mean, band))
