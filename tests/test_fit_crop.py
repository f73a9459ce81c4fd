"""
Fit-crop tests: centered crop matching the virtual canvas aspect ratio.
"""
import pytest

from grid_split_tool.models import DimensionConfig, calculate_fit_crop, get_preview_info


class TestCalculateFitCrop:
    def test_wide_source_crops_width(self):
        crop = calculate_fit_crop(2000, 500, 0.5)
        assert crop.width == pytest.approx(0.125)
        assert crop.x == pytest.approx(0.4375)
        assert crop.y == 0.0
        assert crop.height == 1.0

    def test_tall_source_crops_height(self):
        crop = calculate_fit_crop(100, 1000, 1.0)
        assert crop.height == pytest.approx(0.1)
        assert crop.y == pytest.approx(0.45)
        assert crop.x == 0.0
        assert crop.width == 1.0

    def test_matching_ratio_keeps_everything(self):
        crop = calculate_fit_crop(556, 1060, 556 / 1060)
        assert crop.width == 1.0
        assert crop.height == pytest.approx(1.0)
        assert crop.y == pytest.approx(0.0)

    @pytest.mark.parametrize("size", [(1, 10000), (10000, 1), (1234, 567), (3, 7)])
    def test_crop_stays_inside_source(self, size):
        crop = calculate_fit_crop(size[0], size[1], 556 / 1060)
        assert 0.0 <= crop.x and crop.x + crop.width <= 1.0 + 1e-9
        assert 0.0 <= crop.y and crop.y + crop.height <= 1.0 + 1e-9

    def test_crop_has_target_ratio(self):
        src_w, src_h = 1920, 1080
        target_ratio = 556 / 1060
        crop = calculate_fit_crop(src_w, src_h, target_ratio)
        assert (crop.width * src_w) / (crop.height * src_h) == pytest.approx(target_ratio)


class TestPreviewInfo:
    def test_landscape_source(self):
        info = get_preview_info(1920, 1080, 4, DimensionConfig("twitter", "mobile"))
        assert info["will_crop_width"] is True
        assert info["will_crop_height"] is False
        assert info["target"].total_height == 1060
        assert info["target_aspect_ratio"] == pytest.approx(556 / 1060)

    def test_portrait_source(self):
        info = get_preview_info(500, 5000, 2, DimensionConfig("twitter", "desktop"))
        assert info["will_crop_height"] is True
        assert info["will_crop_width"] is False
        assert info["crop"].width == 1.0
