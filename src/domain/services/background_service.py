from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from src.domain.entities.operations import BackgroundSpec, BackgroundType
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import DecodeFailure, ImageLoadFailure, InvalidBackgroundType
from src.domain.ports import ImageCodec, SourceLoader
from src.domain.services.color_parser import parse_color, parse_gradient_stops
from src.domain.services.geometry import cover_fit

logger = logging.getLogger(__name__)

PATTERN_CELL = 20
PATTERN_INK = 224  # #e0e0e0
DOT_RADIUS = 2
LINE_ROW = 10


@dataclass
class BackgroundService:
    """Renders a background layer and composites a foreground over it."""

    source_loader: SourceLoader | None = None
    codec: ImageCodec | None = None

    def compose(
        self, foreground: RasterImage, spec: BackgroundSpec, width: int, height: int
    ) -> RasterImage:
        layer = self.render_layer(spec, width, height)
        return self.composite_over(foreground, layer)

    def render_layer(self, spec: BackgroundSpec, width: int, height: int) -> np.ndarray:
        """Background as float32 RGBA in [0, 1], shaped (height, width, 4)."""
        if spec.type is BackgroundType.COLOR:
            return self.solid(parse_color(spec.value), width, height)
        if spec.type is BackgroundType.GRADIENT:
            return self.linear_gradient(parse_gradient_stops(spec.value), width, height)
        if spec.type is BackgroundType.PATTERN:
            return self.pattern(spec.value, width, height)
        if spec.type is BackgroundType.IMAGE:
            return self.image_layer(spec.value, width, height, spec.blur or 0.0)
        raise InvalidBackgroundType(f"Invalid background type: {spec.type!r}")

    @staticmethod
    def solid(rgba: tuple[float, float, float, float], width: int, height: int) -> np.ndarray:
        return np.broadcast_to(np.asarray(rgba, dtype=np.float32), (height, width, 4)).copy()

    # Diagonal gradient, objectBoundingBox from (0%, 0%) to (100%, 100%)
    @staticmethod
    def linear_gradient(stops, width: int, height: int) -> np.ndarray:
        xs = (np.arange(width, dtype=np.float32) + 0.5) / width
        ys = (np.arange(height, dtype=np.float32) + 0.5) / height
        t = (xs[None, :] + ys[:, None]) / 2.0

        offsets = [stops[0][0]]
        for offset, _ in stops[1:]:
            # hard stops: keep xp strictly increasing for np.interp
            offsets.append(max(offset, offsets[-1] + 1e-6))
        offsets = np.asarray(offsets, dtype=np.float64)
        colors = np.asarray([c for _, c in stops], dtype=np.float64)
        out = np.empty((height, width, 4), dtype=np.float32)
        for ch in range(4):
            out[..., ch] = np.interp(t, offsets, colors[:, ch])
        return out

    @staticmethod
    def pattern(name: str, width: int, height: int) -> np.ndarray:
        tile = np.full((PATTERN_CELL, PATTERN_CELL), 255.0, dtype=np.float32)
        if name == "dots":
            big = PATTERN_CELL * 4
            cover = Image.new("L", (big, big), 0)
            centre, r = big / 2.0, DOT_RADIUS * 4
            ImageDraw.Draw(cover).ellipse((centre - r, centre - r, centre + r, centre + r), fill=255)
            coverage = np.asarray(cover.reduce(4), dtype=np.float32) / 255.0
            tile = 255.0 - coverage * (255.0 - PATTERN_INK)
        elif name == "lines":
            tile[LINE_ROW, :] = PATTERN_INK
        else:
            logger.warning("Unknown background pattern %r; using plain white", name)

        reps_y = -(-height // PATTERN_CELL)
        reps_x = -(-width // PATTERN_CELL)
        gray = np.tile(tile, (reps_y, reps_x))[:height, :width] / 255.0
        alpha = np.ones_like(gray)
        return np.dstack([gray, gray, gray, alpha]).astype(np.float32)

    def image_layer(self, reference: str, width: int, height: int, blur: float) -> np.ndarray:
        if self.source_loader is None or self.codec is None:
            raise ImageLoadFailure("Image backgrounds are not available without a source loader")
        data = self.source_loader.load(reference)
        try:
            loaded = self.codec.decode(data)
        except DecodeFailure as exc:
            raise ImageLoadFailure(f"Could not decode background image: {exc.message}") from exc
        fitted = cover_fit(loaded, width, height).to_rgba()
        if blur > 0:
            fitted = RasterImage.from_pil(fitted.to_pil().filter(ImageFilter.GaussianBlur(radius=blur)))
        return fitted.pixels.astype(np.float32) / 255.0

    # Porter-Duff over: a = fa + ba(1 - fa); c = (fc*fa + bc*ba*(1 - fa)) / a
    @staticmethod
    def composite_over(foreground: RasterImage, background: np.ndarray) -> RasterImage:
        height, width = background.shape[:2]
        fg = BackgroundService._place_centered(foreground.to_rgba(), width, height)
        fc, fa = fg[..., :3], fg[..., 3:4]
        bc, ba = background[..., :3], background[..., 3:4]

        out_a = fa + ba * (1.0 - fa)
        premult = fc * fa + bc * ba * (1.0 - fa)
        out_c = np.divide(premult, out_a, out=np.zeros_like(premult), where=out_a > 0)
        out = np.concatenate([out_c, out_a], axis=2)
        pixels = np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)
        return RasterImage(pixels, foreground.icc_profile)

    @staticmethod
    def _place_centered(image: RasterImage, width: int, height: int) -> np.ndarray:
        src = image.pixels.astype(np.float32) / 255.0
        if image.size == (width, height):
            return src
        out = np.zeros((height, width, 4), dtype=np.float32)
        dx = (width - image.width) // 2
        dy = (height - image.height) // 2
        x_dst, y_dst = max(0, dx), max(0, dy)
        x_src, y_src = max(0, -dx), max(0, -dy)
        w = min(image.width - x_src, width - x_dst)
        h = min(image.height - y_src, height - y_dst)
        out[y_dst : y_dst + h, x_dst : x_dst + w] = src[y_src : y_src + h, x_src : x_src + w]
        return out
