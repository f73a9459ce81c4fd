"""
Shared fixtures: synthetic images and failing raster backends.
"""
import pytest
from PIL import Image

from grid_split_tool.raster import PillowBackend, RasterBackendError

BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)
WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)


class FailingBackend(PillowBackend):
    """Backend whose surfaces can never be allocated."""

    def create_surface(self, width, height, color=(0, 0, 0, 0)):
        raise RasterBackendError("no drawing surface available")


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def banded_image():
    """200×340 source laid out as three 100px segments with 20px red gap bands.

    Matches a 100-wide canvas with three 50px segments and 10px gaps at 2×.
    """
    img = Image.new("RGBA", (200, 340), RED)
    img.paste(BLUE, (0, 0, 200, 100))
    img.paste(GREEN, (0, 120, 200, 220))
    img.paste(WHITE, (0, 240, 200, 340))
    return img
