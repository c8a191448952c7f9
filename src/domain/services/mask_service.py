from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw

from src.domain.entities.operations import SHAPES
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import InvalidInput, InvalidShape

# Masks are rasterised at SUPERSAMPLE x resolution and box-reduced for anti-aliased edges.
SUPERSAMPLE = 4
BEZIER_STEPS = 32

# Outlines in a normalized 100x100 box.
HEART_START = (50.0, 25.0)
HEART_CURVES = (
    ((50.0, 15.0), (30.0, 5.0), (20.0, 25.0)),
    ((10.0, 45.0), (50.0, 85.0), (50.0, 85.0)),
    ((50.0, 85.0), (90.0, 45.0), (80.0, 25.0)),
    ((70.0, 5.0), (50.0, 15.0), (50.0, 25.0)),
)
STAR_POINTS = (
    (50, 5), (61, 35), (95, 35), (68, 57), (79, 91),
    (50, 70), (21, 91), (32, 57), (5, 35), (39, 35),
)


def _flatten_cubic(p0, p1, p2, p3, steps: int = BEZIER_STEPS) -> list[tuple[float, float]]:
    t = np.linspace(0.0, 1.0, steps + 1)[1:, None]
    pts = (
        (1 - t) ** 3 * np.asarray(p0)
        + 3 * (1 - t) ** 2 * t * np.asarray(p1)
        + 3 * (1 - t) * t**2 * np.asarray(p2)
        + t**3 * np.asarray(p3)
    )
    return [tuple(p) for p in pts]


def heart_outline() -> list[tuple[float, float]]:
    points = [HEART_START]
    current = HEART_START
    for c1, c2, end in HEART_CURVES:
        points.extend(_flatten_cubic(current, c1, c2, end))
        current = end
    return points


class MaskService:
    @staticmethod
    def generate_mask(shape: str, size: int) -> RasterImage:
        """White RGBA mask of ``size`` x ``size``, opaque inside ``shape``."""
        if shape not in SHAPES:
            raise InvalidShape(f"Invalid shape: {shape!r}")
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise InvalidInput(f"size must be a positive integer, got {size!r}")

        alpha = MaskService._rasterise(shape, size)
        white = np.full((size, size, 3), 255, dtype=np.uint8)
        return RasterImage(np.dstack([white, alpha]))

    @staticmethod
    def _rasterise(shape: str, size: int) -> np.ndarray:
        if shape == "square":
            return np.full((size, size), 255, dtype=np.uint8)

        big = size * SUPERSAMPLE
        canvas = Image.new("L", (big, big), 0)
        draw = ImageDraw.Draw(canvas)
        scale = big / 100.0
        if shape == "circle":
            draw.ellipse((0, 0, big - 1, big - 1), fill=255)
        elif shape == "rounded-square":
            radius = int(round(0.1 * big))
            draw.rounded_rectangle((0, 0, big - 1, big - 1), radius=radius, fill=255)
        elif shape == "heart":
            draw.polygon([(x * scale, y * scale) for x, y in heart_outline()], fill=255)
        elif shape == "star":
            draw.polygon([(x * scale, y * scale) for x, y in STAR_POINTS], fill=255)
        return np.asarray(canvas.reduce(SUPERSAMPLE), dtype=np.uint8)
