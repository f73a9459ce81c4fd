"""
Writing split and merge results to disk, singly or as a ZIP archive.

This module is Qt-free and safe for worker import.
"""

import io
import logging
import zipfile
from pathlib import Path

from grid_split_tool.config import SPLIT_FILENAME_PREFIX
from grid_split_tool.image_io import unique_path
from grid_split_tool.merger import MergeResult
from grid_split_tool.splitter import SplitResult

logger = logging.getLogger(__name__)


def segment_filenames(count: int, stem: str = SPLIT_FILENAME_PREFIX) -> list[str]:
    """``split-1.png`` … ``split-N.png`` in grid order."""
    return [f"{stem}-{i + 1}.png" for i in range(count)]


def write_split(result: SplitResult, out_dir: Path, stem: str = SPLIT_FILENAME_PREFIX) -> list[Path]:
    """Write each segment as its own PNG in *out_dir*; returns the written paths."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, segment in zip(segment_filenames(len(result.segments), stem), result.segments):
        out_path = unique_path(out_dir / name)
        out_path.write_bytes(segment.data)
        written.append(out_path)
    logger.info("Wrote %d segment(s) to %s", len(written), out_dir)
    return written


def build_zip(result: SplitResult, stem: str = SPLIT_FILENAME_PREFIX) -> bytes:
    """Bundle all segments into one ZIP archive (returned as bytes)."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, segment in zip(segment_filenames(len(result.segments), stem), result.segments):
            zf.writestr(name, segment.data)
    return buf.getvalue()


def save_zip(result: SplitResult, out_path: Path, stem: str = SPLIT_FILENAME_PREFIX) -> Path:
    """Write the segment archive to *out_path* (made unique if it exists)."""
    out_path = unique_path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(build_zip(result, stem))
    logger.info("Wrote segment archive %s", out_path)
    return out_path


def write_merge(result: MergeResult, out_path: Path) -> Path:
    """Write the merged PNG to *out_path* (made unique if it exists)."""
    out_path = unique_path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.blob)
    logger.info("Wrote merged image %s (%d×%d)", out_path, result.width, result.height)
    return out_path
