"""
Pan/zoom crop state tests.
"""
import pytest

from grid_split_tool.config import MAX_ZOOM, MIN_ZOOM
from grid_split_tool.crop_state import (
    IDENTITY,
    CropControls,
    CropSession,
    PanZoom,
    apply_pan_zoom,
    clamp_pan,
    pan_bounds,
)
from grid_split_tool.models import DimensionConfig, NormalizedRect

MOBILE = DimensionConfig("twitter", "mobile")
DESKTOP = DimensionConfig("twitter", "desktop")


@pytest.fixture
def controls():
    """Square 1000×1000 source, one mobile segment (crop is full width, partial height)."""
    c = CropControls()
    c.set_source("img-a", 1000, 1000, 1, MOBILE)
    return c


class TestPureHelpers:
    def test_identity_is_base(self):
        base = NormalizedRect(0.1, 0.2, 0.5, 0.4)
        assert apply_pan_zoom(base, IDENTITY) == base

    def test_zoom_shrinks_around_center(self):
        base = NormalizedRect(0.0, 0.25, 1.0, 0.5)
        crop = apply_pan_zoom(base, PanZoom(zoom=2.0))
        assert crop.width == pytest.approx(0.5)
        assert crop.height == pytest.approx(0.25)
        assert crop.x == pytest.approx(0.25)
        assert crop.y == pytest.approx(0.375)

    def test_bounds_widen_with_zoom(self):
        base = NormalizedRect(0.0, 0.25, 1.0, 0.5)
        min_x1, max_x1, min_y1, max_y1 = pan_bounds(base, 1.0)
        min_x2, max_x2, min_y2, max_y2 = pan_bounds(base, 2.0)
        assert (min_x1, max_x1) == pytest.approx((0.0, 0.0))
        assert min_x2 < min_x1 and max_x2 > max_x1
        assert min_y2 < min_y1 and max_y2 > max_y1

    def test_is_modified_epsilon(self):
        assert not PanZoom(0.0005, 0.0, 1.0).is_modified()
        assert PanZoom(0.01, 0.0, 1.0).is_modified()
        assert PanZoom(0.0, 0.0, 1.5).is_modified()


class TestCropSession:
    def test_resolve_same_key(self):
        session = CropSession()
        session.commit("k", PanZoom(0.1, 0.0, 2.0))
        assert session.resolve("k") == PanZoom(0.1, 0.0, 2.0)

    def test_resolve_other_key_is_identity(self):
        session = CropSession()
        session.commit("k", PanZoom(0.1, 0.0, 2.0))
        assert session.resolve("other") == IDENTITY


class TestCropControls:
    def test_initial_state_is_base(self, controls):
        assert controls.crop == controls.base_crop
        assert controls.zoom == 1.0
        assert not controls.is_modified()
        assert controls.can_zoom_in
        assert not controls.can_zoom_out

    def test_no_source(self):
        c = CropControls()
        assert c.crop is None
        c.pan(0.1, 0.1)
        c.zoom_by(1.0)
        assert c.crop is None

    def test_pan_down_clamps_to_bottom_edge(self, controls):
        controls.pan(0.0, 5.0)
        crop = controls.crop
        assert crop.y + crop.height == pytest.approx(1.0)
        assert controls.is_modified()

    def test_pan_horizontal_blocked_at_full_width(self, controls):
        controls.pan(0.3, 0.0)
        assert controls.crop.x == pytest.approx(0.0)
        assert controls.pan_offset[0] == pytest.approx(0.0)

    def test_zoom_is_clamped(self, controls):
        controls.zoom_to(50.0)
        assert controls.zoom == MAX_ZOOM
        assert not controls.can_zoom_in
        controls.zoom_to(0.1)
        assert controls.zoom == MIN_ZOOM

    def test_zoom_by_is_multiplicative(self, controls):
        controls.zoom_by(1.0)
        assert controls.zoom == pytest.approx(2.0)
        assert controls.crop.width == pytest.approx(0.5)
        controls.zoom_by(-0.5)
        assert controls.zoom == pytest.approx(1.0)

    def test_zoom_out_reclamps_pan(self, controls):
        controls.zoom_to(2.0)
        controls.pan(1.0, 0.0)
        assert controls.pan_offset[0] > 0
        controls.zoom_to(1.0)
        assert controls.pan_offset[0] == pytest.approx(0.0)
        crop = controls.crop
        assert crop.x + crop.width <= 1.0 + 1e-9

    def test_crop_stays_inside_source(self, controls):
        controls.zoom_to(3.0)
        for dx, dy in [(1, 1), (-2, -2), (0.7, -0.3)]:
            controls.pan(dx, dy)
            crop = controls.crop
            assert crop.x >= -1e-9 and crop.x + crop.width <= 1.0 + 1e-9
            assert crop.y >= -1e-9 and crop.y + crop.height <= 1.0 + 1e-9

    def test_reset(self, controls):
        controls.zoom_to(2.0)
        controls.pan(0.1, 0.1)
        controls.reset()
        assert controls.crop == controls.base_crop
        assert not controls.is_modified()

    def test_config_change_resets_pan_zoom(self, controls):
        controls.zoom_to(2.0)
        controls.set_source("img-a", 1000, 1000, 2, MOBILE)
        assert controls.zoom == 1.0
        assert controls.crop == controls.base_crop

    def test_reset_after_config_change_is_persisted(self, controls):
        controls.zoom_to(2.0)
        controls.set_source("img-a", 1000, 1000, 1, DESKTOP)
        assert controls.zoom == 1.0
        # Switching back does not resurrect the old zoom
        controls.set_source("img-a", 1000, 1000, 1, MOBILE)
        assert controls.zoom == 1.0

    def test_new_image_resets(self, controls):
        controls.zoom_to(2.0)
        controls.set_source("img-b", 1000, 1000, 1, MOBILE)
        assert not controls.is_modified()

    def test_same_config_keeps_pan_zoom(self, controls):
        controls.zoom_to(2.0)
        controls.set_source("img-a", 1000, 1000, 1, MOBILE)
        assert controls.zoom == pytest.approx(2.0)


class TestScenarios:
    def test_extreme_pan_clamps_to_edge(self):
        base = NormalizedRect(0.2, 0.0, 0.6, 1.0)
        pan_x, pan_y = clamp_pan(base, 10.0, 0.0, 1.0)
        crop = apply_pan_zoom(base, PanZoom(pan_x, pan_y, 1.0))
        assert crop.x == pytest.approx(1.0 - crop.width)
        assert crop.x + crop.width <= 1.0 + 1e-9

    def test_segment_count_change_returns_new_base(self):
        c = CropControls()
        c.set_source("img", 4000, 3000, 3, MOBILE)
        c.zoom_to(2.0)
        c.pan(0.05, 0.0)
        assert c.is_modified()
        c.set_source("img", 4000, 3000, 4, MOBILE)
        assert not c.is_modified()
        assert c.crop == c.base_crop
