"""
Image I/O tests: opening, orientation, fingerprints and output paths.
"""
import io

from PIL import Image

from grid_split_tool.image_io import (
    compute_fingerprint,
    fingerprint_bytes,
    get_image_size,
    open_image,
    open_image_bytes,
    unique_path,
)


def _rotated_jpeg(path):
    """Save a 40×20 JPEG tagged with EXIF orientation 6 (rotate 90° CW)."""
    img = Image.new("RGB", (40, 20), (200, 10, 10))
    exif = img.getexif()
    exif[0x0112] = 6
    img.save(path, "JPEG", exif=exif)


class TestOpen:
    def test_open_converts_to_rgba(self, tmp_path):
        path = tmp_path / "a.png"
        Image.new("RGB", (12, 8), (1, 2, 3)).save(path)
        img = open_image(path)
        assert img.mode == "RGBA"
        assert img.size == (12, 8)

    def test_open_bytes(self):
        buf = io.BytesIO()
        Image.new("L", (5, 6), 128).save(buf, "PNG")
        img = open_image_bytes(buf.getvalue())
        assert img.mode == "RGBA"
        assert img.size == (5, 6)

    def test_exif_orientation_applied(self, tmp_path):
        path = tmp_path / "rotated.jpg"
        _rotated_jpeg(path)
        assert open_image(path).size == (20, 40)
        assert get_image_size(path) == (20, 40)

    def test_size_without_orientation(self, tmp_path):
        path = tmp_path / "plain.png"
        Image.new("RGB", (30, 10)).save(path)
        assert get_image_size(path) == (30, 10)


class TestFingerprint:
    def test_same_content_same_fingerprint(self, tmp_path):
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(b"x" * 1000)
        b.write_bytes(b"x" * 1000)
        assert compute_fingerprint(a) == compute_fingerprint(b)

    def test_different_content(self, tmp_path):
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(b"x" * 1000)
        b.write_bytes(b"y" * 1000)
        assert compute_fingerprint(a) != compute_fingerprint(b)

    def test_bytes_match_file(self, tmp_path):
        data = bytes(range(256)) * 400
        path = tmp_path / "c.bin"
        path.write_bytes(data)
        assert fingerprint_bytes(data) == compute_fingerprint(path)


class TestUniquePath:
    def test_free_path_unchanged(self, tmp_path):
        assert unique_path(tmp_path / "out.png") == tmp_path / "out.png"

    def test_counter_appended(self, tmp_path):
        (tmp_path / "out.png").touch()
        (tmp_path / "out-01.png").touch()
        assert unique_path(tmp_path / "out.png") == tmp_path / "out-02.png"
