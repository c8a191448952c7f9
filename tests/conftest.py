import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage")


def solid_rgb(w: int, h: int, color=(200, 150, 100)):
    from src.domain.entities.raster_image import RasterImage

    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    return RasterImage(arr)


def gradient_rgba(w: int, h: int):
    """Deterministic RGBA test card with a varied alpha channel."""
    from src.domain.entities.raster_image import RasterImage

    ys, xs = np.mgrid[0:h, 0:w]
    r = (xs * 255 // max(w - 1, 1)).astype(np.uint8)
    g = (ys * 255 // max(h - 1, 1)).astype(np.uint8)
    b = ((xs + ys) * 7 % 256).astype(np.uint8)
    a = ((xs * 3 + ys * 5) % 256).astype(np.uint8)
    return RasterImage(np.dstack([r, g, b, a]))


def encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class CircleCutoutRemover:
    """Returns the input with a circular alpha mask of the given radius fraction."""

    def __init__(self, radius_fraction: float = 0.3) -> None:
        self.radius_fraction = radius_fraction
        self.calls = 0

    def remove(self, image_bytes: bytes) -> bytes:
        self.calls += 1
        img = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        w, h = img.size
        ys, xs = np.mgrid[0:h, 0:w]
        r = min(w, h) * self.radius_fraction
        inside = (xs + 0.5 - w / 2) ** 2 + (ys + 0.5 - h / 2) ** 2 <= r**2
        alpha = np.where(inside, 255, 0).astype(np.uint8)
        rgba = np.dstack([np.asarray(img), alpha])
        return encode(Image.fromarray(rgba))


class DictSourceLoader:
    """In-memory source loader keyed by reference."""

    def __init__(self, sources: dict[str, bytes]) -> None:
        self.sources = sources

    def load(self, reference: str) -> bytes:
        from src.domain.errors import SourceUnavailable

        if reference not in self.sources:
            raise SourceUnavailable(f"No such source: {reference}")
        return self.sources[reference]


@pytest.fixture()
def codec():
    from src.infrastructure.codec.pillow_codec import PillowCodec

    return PillowCodec()


@pytest.fixture()
def remover() -> CircleCutoutRemover:
    return CircleCutoutRemover()


@pytest.fixture()
def portrait_jpeg() -> bytes:
    arr = np.zeros((600, 800, 3), dtype=np.uint8)
    arr[:, :] = (200, 150, 100)
    return encode(Image.fromarray(arr), "JPEG")


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def make_solid():
    return solid_rgb


@pytest.fixture()
def make_rgba():
    return gradient_rgba


@pytest.fixture()
def sources():
    return DictSourceLoader
