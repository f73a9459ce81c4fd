"""
Application constants and configuration.

DISPLAY_PRESETS holds the platform-measured grid geometry used by the
"twitter" dimension preset.  All other constants control crop-editor
behaviour, merge gap filling, image handling, and the tweet image lookup.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path
from types import MappingProxyType

from PIL import Image

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "grid-split-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# DISPLAY PRESETS: measured from the platform's multi-image grid
# =============================================================================
DISPLAY_PRESETS = MappingProxyType({
    "mobile": MappingProxyType({"width": 556, "segment_height": 253, "gap": 16}),
    "desktop": MappingProxyType({"width": 556, "segment_height": 253, "gap": 57}),
})

# Descriptive names for the two grid layouts
DISPLAY_MODE_ALIASES = MappingProxyType({"compact": "mobile", "wide": "desktop"})

DIMENSION_PRESETS = ("twitter", "custom")
DEFAULT_PRESET = "twitter"
DEFAULT_DISPLAY_MODE = "mobile"

DEFAULT_SEGMENT_HEIGHT = 253
DEFAULT_CUSTOM_WIDTH = 556
DEFAULT_CUSTOM_GAP = 16

SEGMENT_COUNT_OPTIONS = (2, 3, 4)
DEFAULT_SEGMENT_COUNT = 4

# =============================================================================
# CROP INTERACTION
# =============================================================================
MIN_ZOOM = 1.0
MAX_ZOOM = 5.0

# Pan/zoom deltas below this count as "unmodified"
MODIFIED_EPSILON = 1e-3

# Relative zoom change per wheel notch (positive = zoom in)
WHEEL_ZOOM_STEP = 0.1

# Keyboard nudge amounts (fraction of the source image)
NUDGE_SMALL = 0.002
NUDGE_LARGE = 0.02

# Zoom step for the toolbar buttons
ZOOM_BUTTON_STEP = 0.25

# =============================================================================
# MERGE
# =============================================================================
GAP_FILL_TYPES = ("none", "blur", "solid")
DEFAULT_GAP_FILL = "none"
DEFAULT_MERGE_GAP = 20
MAX_MERGE_GAP = 200
DEFAULT_SOLID_COLOR = "#000000"

# Blur gap fill: sampled strip height is min(2 * gap, BLUR_STRIP_MAX) and the
# blur radius is max(BLUR_RADIUS_MIN, gap / BLUR_RADIUS_DIVISOR).
BLUR_STRIP_MAX = 40
BLUR_RADIUS_MIN = 8
BLUR_RADIUS_DIVISOR = 3

# =============================================================================
# RASTER OUTPUT
# =============================================================================
RESAMPLE_FILTER = Image.Resampling.LANCZOS

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 6

SPLIT_FILENAME_PREFIX = "split"
ZIP_FILENAME = "x-split-images.zip"
MERGE_FILENAME = "merged.png"

# Supported input image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".gif", ".psd"}

# =============================================================================
# UI
# =============================================================================
# Delay before re-rendering after crop drags and config edits
RENDER_DEBOUNCE_MS = 50

# Handle size for crop corner marks (pixels in screen coordinates)
HANDLE_SIZE = 10

# =============================================================================
# TWEET IMAGE LOOKUP
# =============================================================================
TWEET_SYNDICATION_URL = "https://cdn.syndication.twimg.com/tweet-result"
TWEET_IMAGE_PREFIX = "https://pbs.twimg.com/"
TWEET_IMAGE_SUFFIX = "?format=jpg&name=large"
HTTP_TIMEOUT = 15.0
HTTP_USER_AGENT = "Mozilla/5.0 (compatible; grid-split-tool/1.0)"
