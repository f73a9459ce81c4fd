"""
Data models and grid-geometry utilities.

TargetDimensions describes the "virtual canvas": the segment content plus
the gaps the host platform inserts between grid tiles.  NormalizedRect is a
crop window in fractional source coordinates.  ``compute_target_dimensions``
and ``calculate_fit_crop`` are pure and safe to call on every repaint.
"""

import math
from dataclasses import dataclass, field

from grid_split_tool.config import (
    DEFAULT_CUSTOM_GAP,
    DEFAULT_CUSTOM_WIDTH,
    DEFAULT_DISPLAY_MODE,
    DEFAULT_PRESET,
    DEFAULT_SEGMENT_HEIGHT,
    DIMENSION_PRESETS,
    DISPLAY_MODE_ALIASES,
    DISPLAY_PRESETS,
)


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class NormalizedRect:
    """Crop rectangle in fractional (0-1) source coordinates."""
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def to_pixels(self, src_w: int, src_h: int) -> tuple[int, int, int, int]:
        """Return ``(x, y, w, h)`` in integer source pixels (floored)."""
        return (
            math.floor(self.x * src_w),
            math.floor(self.y * src_h),
            math.floor(self.width * src_w),
            math.floor(self.height * src_h),
        )

    def as_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedRect":
        return cls(float(data["x"]), float(data["y"]), float(data["width"]), float(data["height"]))


@dataclass(frozen=True)
class CustomDimensions:
    """User-editable grid geometry."""
    width: float = DEFAULT_CUSTOM_WIDTH
    segment_heights: tuple = (DEFAULT_SEGMENT_HEIGHT,)
    gap: float = DEFAULT_CUSTOM_GAP

    def __post_init__(self):
        # Accept any sequence from callers; store a hashable tuple
        object.__setattr__(self, "segment_heights", tuple(self.segment_heights))


@dataclass(frozen=True)
class DimensionConfig:
    """Tagged choice between the platform preset and custom geometry.

    Serialized form (shared with settings.json)::

        {"preset": "twitter", "mode": "mobile"}
        {"preset": "custom", "custom": {"width": 556, "segmentHeights": [253], "gap": 16}}
    """
    preset: str = DEFAULT_PRESET
    mode: str = DEFAULT_DISPLAY_MODE
    custom: CustomDimensions | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "DimensionConfig":
        preset = data.get("preset", DEFAULT_PRESET)
        mode = data.get("mode") or DEFAULT_DISPLAY_MODE
        custom = None
        raw_custom = data.get("custom")
        if isinstance(raw_custom, dict):
            custom = CustomDimensions(
                width=raw_custom.get("width", DEFAULT_CUSTOM_WIDTH),
                segment_heights=raw_custom.get("segmentHeights", ()),
                gap=raw_custom.get("gap", DEFAULT_CUSTOM_GAP),
            )
        return cls(preset=preset, mode=mode, custom=custom)

    def to_dict(self) -> dict:
        data = {"preset": self.preset, "mode": self.mode}
        if self.custom is not None:
            data["custom"] = {
                "width": self.custom.width,
                "segmentHeights": list(self.custom.segment_heights),
                "gap": self.custom.gap,
            }
        return data

    def key(self) -> str:
        """Stable serialization used to detect config changes."""
        if self.preset == "custom":
            custom = self.custom or CustomDimensions()
            heights = ",".join(str(h) for h in custom.segment_heights)
            return f"custom-{custom.width}-{heights}-{custom.gap}"
        return f"{self.preset}-{self.mode}"


@dataclass(frozen=True)
class TargetDimensions:
    """Virtual canvas: segments plus the gaps inserted between them."""
    width: float
    total_height: float
    content_height: float
    segment_heights: tuple = field(default_factory=tuple)
    gap: float = 0
    gap_count: int = 0
    aspect_ratio: float = 1.0

    @property
    def segment_count(self) -> int:
        return len(self.segment_heights)


# =============================================================================
# Dimension model
# =============================================================================
def resolve_display_mode(mode: str) -> str:
    """Map a display-mode tag (``mobile``/``desktop`` or an alias) to a preset key."""
    mode = DISPLAY_MODE_ALIASES.get(mode, mode)
    if mode not in DISPLAY_PRESETS:
        raise ValueError(f"Unknown display mode {mode!r}; expected one of {', '.join(DISPLAY_PRESETS)}")
    return mode


def reconcile_segment_heights(heights, segment_count: int) -> tuple:
    """Return exactly *segment_count* heights.

    Shorter lists are padded by repeating the last height (or
    DEFAULT_SEGMENT_HEIGHT when empty); longer lists are truncated.
    """
    heights = list(heights or ())
    if len(heights) >= segment_count:
        return tuple(heights[:segment_count])
    filler = heights[-1] if heights else DEFAULT_SEGMENT_HEIGHT
    return tuple(heights + [filler] * (segment_count - len(heights)))


def compute_target_dimensions(segment_count: int, config: DimensionConfig) -> TargetDimensions:
    """Compute the virtual canvas for *segment_count* tiles under *config*."""
    if not isinstance(segment_count, int) or segment_count < 1:
        raise ValueError(f"segment_count must be a positive integer, got {segment_count!r}")
    if config.preset not in DIMENSION_PRESETS:
        raise ValueError(f"Unknown dimension preset {config.preset!r}")

    if config.preset == "custom":
        custom = config.custom or CustomDimensions()
        width = custom.width
        gap = custom.gap
        heights = reconcile_segment_heights(custom.segment_heights, segment_count)
    else:
        preset = DISPLAY_PRESETS[resolve_display_mode(config.mode)]
        width = preset["width"]
        gap = preset["gap"]
        heights = (preset["segment_height"],) * segment_count

    if width <= 0:
        raise ValueError(f"width must be positive, got {width!r}")
    if gap < 0:
        raise ValueError(f"gap must not be negative, got {gap!r}")
    for h in heights:
        if h <= 0:
            raise ValueError(f"segment heights must be positive, got {h!r}")

    gap_count = segment_count - 1
    content_height = sum(heights)
    total_height = content_height + gap * gap_count

    return TargetDimensions(
        width=width,
        total_height=total_height,
        content_height=content_height,
        segment_heights=heights,
        gap=gap,
        gap_count=gap_count,
        aspect_ratio=width / total_height,
    )


def gap_bands(target: TargetDimensions) -> list[tuple[float, float]]:
    """Return ``(top, bottom)`` fractions of each gap within the virtual canvas."""
    bands = []
    cursor = 0.0
    for i, h in enumerate(target.segment_heights):
        cursor += h
        if i < target.gap_count:
            top = cursor / target.total_height
            cursor += target.gap
            bands.append((top, cursor / target.total_height))
    return bands


# =============================================================================
# Fit-crop math
# =============================================================================
def calculate_fit_crop(source_width: float, source_height: float, target_aspect_ratio: float) -> NormalizedRect:
    """Center-crop the source to *target_aspect_ratio*, keeping the other axis whole."""
    source_aspect_ratio = source_width / source_height

    if source_aspect_ratio > target_aspect_ratio:
        # Source is relatively wider: crop width
        crop_width = min(1.0, (source_height * target_aspect_ratio) / source_width)
        return NormalizedRect(x=(1 - crop_width) / 2, y=0.0, width=crop_width, height=1.0)

    # Source is relatively taller (or equal): crop height
    crop_height = min(1.0, (source_width / target_aspect_ratio) / source_height)
    return NormalizedRect(x=0.0, y=(1 - crop_height) / 2, width=1.0, height=crop_height)


def get_preview_info(source_width: int, source_height: int, segment_count: int, config: DimensionConfig) -> dict:
    """Summarize how a source image will be fitted to the virtual canvas."""
    target = compute_target_dimensions(segment_count, config)
    crop = calculate_fit_crop(source_width, source_height, target.aspect_ratio)
    source_aspect_ratio = source_width / source_height
    return {
        "target": target,
        "crop": crop,
        "source_aspect_ratio": source_aspect_ratio,
        "target_aspect_ratio": target.aspect_ratio,
        "will_crop_width": source_aspect_ratio > target.aspect_ratio,
        "will_crop_height": source_aspect_ratio < target.aspect_ratio,
    }
