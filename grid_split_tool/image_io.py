"""
Reading source images and naming output files (no Qt imports).

Images are opened from disk (layered PSDs via psd-tools) or from downloaded
bytes and normalized to upright RGBA.  Sizes can be read from headers,
fingerprints identify a source across reloads, and output paths never
overwrite existing files.
"""

import hashlib
import io
from pathlib import Path

from PIL import Image, ImageOps
from psd_tools import PSDImage

# Sources can exceed Pillow's decompression-bomb limit
Image.MAX_IMAGE_PIXELS = None

# Fingerprint prefix length
_FINGERPRINT_READ_SIZE = 65_536

_EXIF_ORIENTATION = 0x0112


def compute_fingerprint(path: Path) -> str:
    """
    Cheap identity for an image file: ``"{size_hex}_{hash16}"``.

    Only the first 64 KB are hashed (SHA-256, truncated), together with the
    file size, so large PSDs fingerprint instantly.

    The fingerprint is the image identity in crop config keys, so reopening
    the same file keeps its pan/zoom while a different file resets it.
    """
    size = path.stat().st_size
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        sha.update(f.read(_FINGERPRINT_READ_SIZE))
    return f"{size:x}_{sha.hexdigest()[:16]}"


def fingerprint_bytes(data: bytes) -> str:
    """Fingerprint in-memory image data (same format as ``compute_fingerprint``)."""
    sha = hashlib.sha256(data[:_FINGERPRINT_READ_SIZE])
    return f"{len(data):x}_{sha.hexdigest()[:16]}"


def _normalize(img: Image.Image) -> Image.Image:
    """Apply EXIF orientation and convert to RGBA."""
    img = ImageOps.exif_transpose(img)
    return img.convert("RGBA")


def open_image(path: Path) -> Image.Image:
    """Open an image file as RGBA, using psd-tools for PSD and Pillow for the rest."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.composite().convert("RGBA")
    with Image.open(path) as img:
        img.load()
        return _normalize(img)


def open_image_bytes(data: bytes) -> Image.Image:
    """Decode image bytes (e.g. a downloaded tweet photo) as RGBA."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return _normalize(img)


def get_image_size(path: Path) -> tuple[int, int]:
    """Return the display size of *path*, reading headers only."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        w, h = img.size
        # EXIF orientations 5-8 are rotated by 90°
        if img.getexif().get(_EXIF_ORIENTATION, 1) in (5, 6, 7, 8):
            return h, w
        return w, h


def unique_path(out_path: Path) -> Path:
    """Return *out_path*, or the first free ``name-01.ext``, ``name-02.ext``, ... variant."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
