"""
Background render jobs (Qt-free).

``render_split`` and ``render_merge`` are run off the UI thread.  Each job
carries a request token issued by ``RequestTracker``; when a newer request
has been issued by the time a job finishes, its result is discarded rather
than replacing the newer one.  Jobs never raise: failures are reported in
the result dict so the caller can keep showing the previous valid output.
"""

import logging
import threading

from grid_split_tool.merger import merge_images
from grid_split_tool.models import compute_target_dimensions
from grid_split_tool.splitter import split_image

logger = logging.getLogger(__name__)


class RequestTracker:
    """Issues monotonically increasing request tokens."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest


def render_split(args: dict) -> dict:
    """Split job.

    ``args`` keys: ``token``, ``image`` (PIL image), ``segments``,
    ``config`` (DimensionConfig), ``crop`` (NormalizedRect).
    """
    token = args["token"]
    try:
        target = compute_target_dimensions(args["segments"], args["config"])
        result = split_image(args["image"], args["segments"], target, args["crop"])
        return {"token": token, "success": True, "result": result}
    except Exception as e:
        logger.error("Split render %d failed: %s", token, e)
        return {"token": token, "success": False, "error": str(e)}


def render_merge(args: dict) -> dict:
    """Merge job.

    ``args`` keys: ``token``, ``images`` (list of PIL images), ``gap_fill``,
    ``gap_size``, ``solid_color``, optional ``output_width``.
    """
    token = args["token"]
    try:
        result = merge_images(
            args["images"],
            gap_fill_type=args.get("gap_fill", "none"),
            gap_size=args.get("gap_size", 0),
            solid_color=args.get("solid_color", "#000000"),
            output_width=args.get("output_width"),
        )
        return {"token": token, "success": True, "result": result}
    except Exception as e:
        logger.error("Merge render %d failed: %s", token, e)
        return {"token": token, "success": False, "error": str(e)}
