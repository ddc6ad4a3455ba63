import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Ensure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from linkmap.annotation_manager import AnnotationManager
from linkmap.imaging import LoadedImage, decode_image


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


def make_png(width: int = 200, height: int = 100, color=(40, 120, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def manager(png_bytes):
    """AnnotationManager with a decoded 200x100 image loaded."""
    m = AnnotationManager()
    m.load_image(decode_image(png_bytes, name="field.png"))
    return m


@pytest.fixture
def plain_image():
    """Image metadata without real bytes, for geometry-only tests."""
    return LoadedImage(name="plain", mime="image/png", data=b"", width=200, height=100)
