"""
Interactive crop state: pan and zoom layered on top of the fit-crop.

The effective crop is a pure function of the base crop (see
``models.calculate_fit_crop``) and a PanZoom value.  PanZoom is stored in a
CropSession together with the config key it was made under; whenever the
key changes (different image, segment count, or dimension config) the
stored pan/zoom is treated as identity and the reset is persisted on the
same read, so reads and later commits never disagree.

This module is Qt-free.
"""

import logging
from dataclasses import dataclass

from grid_split_tool.config import MAX_ZOOM, MIN_ZOOM, MODIFIED_EPSILON
from grid_split_tool.models import (
    DimensionConfig,
    NormalizedRect,
    calculate_fit_crop,
    compute_target_dimensions,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Pan/zoom value and pure helpers
# =============================================================================
@dataclass(frozen=True)
class PanZoom:
    """Pan offset of the crop center (fractions of the source) and zoom factor."""
    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = 1.0

    def is_modified(self) -> bool:
        return (
            abs(self.pan_x) > MODIFIED_EPSILON
            or abs(self.pan_y) > MODIFIED_EPSILON
            or abs(self.zoom - 1.0) > MODIFIED_EPSILON
        )


IDENTITY = PanZoom()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_zoom(zoom: float) -> float:
    return _clamp(zoom, MIN_ZOOM, MAX_ZOOM)


def pan_bounds(base: NormalizedRect, zoom: float) -> tuple[float, float, float, float]:
    """Return ``(min_x, max_x, min_y, max_y)`` pan limits at *zoom*.

    The limits keep the zoomed window inside [0, 1] on both axes.  They grow
    as the zoom increases and collapse toward the base crop's own slack at
    zoom 1.
    """
    width = base.width / zoom
    height = base.height / zoom
    center_x = base.x + base.width / 2
    center_y = base.y + base.height / 2
    return (
        width / 2 - center_x,
        1 - width / 2 - center_x,
        height / 2 - center_y,
        1 - height / 2 - center_y,
    )


def clamp_pan(base: NormalizedRect, pan_x: float, pan_y: float, zoom: float) -> tuple[float, float]:
    min_x, max_x, min_y, max_y = pan_bounds(base, zoom)
    return _clamp(pan_x, min_x, max_x), _clamp(pan_y, min_y, max_y)


def apply_pan_zoom(base: NormalizedRect, pan_zoom: PanZoom) -> NormalizedRect:
    """Derive the effective crop rectangle from the base crop and pan/zoom."""
    width = base.width / pan_zoom.zoom
    height = base.height / pan_zoom.zoom
    center_x = base.x + base.width / 2 + pan_zoom.pan_x
    center_y = base.y + base.height / 2 + pan_zoom.pan_y
    x = _clamp(center_x - width / 2, 0.0, 1.0 - width)
    y = _clamp(center_y - height / 2, 0.0, 1.0 - height)
    return NormalizedRect(x=x, y=y, width=width, height=height)


def config_key(image_id: str, img_w: int, img_h: int, segment_count: int, config: DimensionConfig) -> str:
    """Key identifying the configuration a pan/zoom state belongs to."""
    return f"{image_id}-{img_w}-{img_h}-{segment_count}-{config.key()}"


# =============================================================================
# Session state
# =============================================================================
class CropSession:
    """Pan/zoom state tagged with the config key it was committed under."""

    def __init__(self):
        self.key: str | None = None
        self.pan_zoom: PanZoom = IDENTITY

    def resolve(self, key: str) -> PanZoom:
        """Return the pan/zoom valid under *key* (identity if the key changed)."""
        if key != self.key:
            return IDENTITY
        return self.pan_zoom

    def commit(self, key: str, pan_zoom: PanZoom) -> None:
        self.key = key
        self.pan_zoom = pan_zoom


class CropControls:
    """Pan/zoom/reset controller for one source image and grid configuration.

    ``set_source`` only recomputes the base crop and the config key; stored
    pan/zoom is reconciled lazily on the next read or mutation.
    """

    def __init__(self):
        self._session = CropSession()
        self._base: NormalizedRect | None = None
        self._key: str | None = None

    # --- Configuration ---

    def set_source(self, image_id: str, img_w: int, img_h: int, segment_count: int, config: DimensionConfig):
        """Point the controller at an image and grid configuration."""
        target = compute_target_dimensions(segment_count, config)
        self._base = calculate_fit_crop(img_w, img_h, target.aspect_ratio)
        self._key = config_key(image_id, img_w, img_h, segment_count, config)

    def clear(self):
        self._base = None
        self._key = None

    @property
    def base_crop(self) -> NormalizedRect | None:
        return self._base

    # --- Reads ---

    def _resolve(self) -> PanZoom:
        """Resolve pan/zoom for the current key, persisting a reset if it changed."""
        pan_zoom = self._session.resolve(self._key)
        if self._session.key != self._key:
            logger.debug("Crop config changed (%s), resetting pan/zoom", self._key)
            self._session.commit(self._key, pan_zoom)
        return pan_zoom

    @property
    def crop(self) -> NormalizedRect | None:
        if self._base is None:
            return None
        return apply_pan_zoom(self._base, self._resolve())

    @property
    def zoom(self) -> float:
        return self._resolve().zoom

    @property
    def pan_offset(self) -> tuple[float, float]:
        pan_zoom = self._resolve()
        return pan_zoom.pan_x, pan_zoom.pan_y

    @property
    def can_zoom_in(self) -> bool:
        return self._resolve().zoom < MAX_ZOOM

    @property
    def can_zoom_out(self) -> bool:
        return self._resolve().zoom > MIN_ZOOM

    def is_modified(self) -> bool:
        return self._resolve().is_modified()

    # --- Mutations ---

    def pan(self, delta_x: float, delta_y: float) -> None:
        """Shift the crop center by fractional deltas, clamped at the current zoom."""
        if self._base is None:
            return
        current = self._resolve()
        pan_x, pan_y = clamp_pan(
            self._base, current.pan_x + delta_x, current.pan_y + delta_y, current.zoom,
        )
        self._session.commit(self._key, PanZoom(pan_x, pan_y, current.zoom))

    def zoom_to(self, new_zoom: float) -> None:
        """Set the zoom factor (clamped), keeping the pan center where possible."""
        if self._base is None:
            return
        current = self._resolve()
        zoom = clamp_zoom(new_zoom)
        pan_x, pan_y = clamp_pan(self._base, current.pan_x, current.pan_y, zoom)
        self._session.commit(self._key, PanZoom(pan_x, pan_y, zoom))

    def zoom_by(self, delta: float) -> None:
        """Multiplicative zoom step (positive delta zooms in)."""
        if self._base is None:
            return
        self.zoom_to(self._resolve().zoom * (1 + delta))

    def reset(self) -> None:
        """Return to the base crop (zoom 1, no pan)."""
        self._session.commit(self._key, IDENTITY)
