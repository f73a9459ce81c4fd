"""
Settings persistence: load, save, and validate the last-used options.

Settings are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  If the file is missing, corrupt,
or invalid, the defaults are returned (and written back).  This module is
Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {
        "segments": 4,
        "dimensions": {"preset": "twitter", "mode": "mobile"},
        "merge": {"gap_fill": "none", "gap_size": 20, "solid_color": "#000000"}
    }}
"""

import json
import logging
from copy import deepcopy
from pathlib import Path

from PIL import ImageColor

from grid_split_tool.config import (
    DEFAULT_DISPLAY_MODE,
    DEFAULT_GAP_FILL,
    DEFAULT_MERGE_GAP,
    DEFAULT_PRESET,
    DEFAULT_SEGMENT_COUNT,
    DEFAULT_SOLID_COLOR,
    DIMENSION_PRESETS,
    DISPLAY_PRESETS,
    GAP_FILL_TYPES,
    MAX_MERGE_GAP,
    SEGMENT_COUNT_OPTIONS,
    config_dir,
)

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

DEFAULT_SETTINGS = {
    "segments": DEFAULT_SEGMENT_COUNT,
    "dimensions": {"preset": DEFAULT_PRESET, "mode": DEFAULT_DISPLAY_MODE},
    "merge": {
        "gap_fill": DEFAULT_GAP_FILL,
        "gap_size": DEFAULT_MERGE_GAP,
        "solid_color": DEFAULT_SOLID_COLOR,
    },
}


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Validation
# =============================================================================
def validate_dimensions(data: object) -> list[str]:
    """Validate a serialized DimensionConfig.  Returns a list of error strings."""
    if not isinstance(data, dict):
        return ["dimensions must be a dict"]

    errors: list[str] = []
    preset = data.get("preset")
    if preset not in DIMENSION_PRESETS:
        errors.append(f"dimensions: preset must be one of {', '.join(DIMENSION_PRESETS)}, got {preset!r}")
        return errors

    if preset == "twitter":
        mode = data.get("mode")
        if mode not in DISPLAY_PRESETS:
            errors.append(f"dimensions: mode must be one of {', '.join(DISPLAY_PRESETS)}, got {mode!r}")
        return errors

    custom = data.get("custom")
    if not isinstance(custom, dict):
        errors.append("dimensions: custom preset requires a 'custom' dict")
        return errors

    width = custom.get("width")
    if not _is_number(width) or width <= 0:
        errors.append(f"dimensions.custom: width must be a positive number, got {width!r}")

    gap = custom.get("gap")
    if not _is_number(gap) or gap < 0:
        errors.append(f"dimensions.custom: gap must be a non-negative number, got {gap!r}")

    heights = custom.get("segmentHeights")
    if not isinstance(heights, list):
        errors.append("dimensions.custom: segmentHeights must be a list")
    else:
        for i, h in enumerate(heights):
            if not _is_number(h) or h <= 0:
                errors.append(f"dimensions.custom: segmentHeights[{i}] must be a positive number, got {h!r}")

    return errors


def validate_merge(data: object) -> list[str]:
    """Validate merge options.  Returns a list of error strings."""
    if not isinstance(data, dict):
        return ["merge must be a dict"]

    errors: list[str] = []
    gap_fill = data.get("gap_fill")
    if gap_fill not in GAP_FILL_TYPES:
        errors.append(f"merge: gap_fill must be one of {', '.join(GAP_FILL_TYPES)}, got {gap_fill!r}")

    gap_size = data.get("gap_size")
    if not isinstance(gap_size, int) or isinstance(gap_size, bool) or not 0 <= gap_size <= MAX_MERGE_GAP:
        errors.append(f"merge: gap_size must be an integer in 0..{MAX_MERGE_GAP}, got {gap_size!r}")

    color = data.get("solid_color")
    try:
        ImageColor.getrgb(color)
    except (ValueError, AttributeError, TypeError):
        errors.append(f"merge: solid_color is not a valid colour: {color!r}")

    return errors


def validate_settings(data: object) -> list[str]:
    """
    Validate a settings data structure.

    Returns a list of error strings (empty means valid).
    """
    if not isinstance(data, dict):
        return ["Settings data must be a dict"]

    errors: list[str] = []
    segments = data.get("segments")
    if segments not in SEGMENT_COUNT_OPTIONS or isinstance(segments, bool):
        errors.append(
            f"segments must be one of {', '.join(str(n) for n in SEGMENT_COUNT_OPTIONS)}, got {segments!r}"
        )
    errors.extend(validate_dimensions(data.get("dimensions")))
    errors.extend(validate_merge(data.get("merge")))
    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> dict:
    """
    Load settings from settings.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _settings_path()

    if not path.exists():
        logger.info("settings.json not found, creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s), restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "settings" not in raw:
        logger.warning("settings.json missing version envelope, restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    return data


def save_settings(settings: dict) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": settings}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_SETTINGS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "settings": deepcopy(DEFAULT_SETTINGS)}
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write default settings to %s: %s", path, exc)
