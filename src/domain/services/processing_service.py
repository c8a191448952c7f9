from __future__ import annotations

import math

import numpy as np
from PIL import Image, ImageFilter

from src.domain.entities.operations import Adjustment
from src.domain.entities.raster_image import RasterImage

# sharp-compatible unsharp mask strength
UNSHARP_PERCENT = 150
UNSHARP_THRESHOLD = 3

TINT_WEIGHT = 0.5
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


class ProcessingService:
    """Colour adjustment stage.

    Primitives take float32 RGB arrays normalized to [0, 1], shaped (H, W, 3),
    and return new arrays. ``adjust`` works on a RasterImage and never touches
    its alpha channel.
    """

    @staticmethod
    def adjust(image: RasterImage, adjustment: Adjustment) -> RasterImage:
        """Apply every present field in the order brightness, contrast,
        saturation, hue, gamma, blur, sharpen."""
        if adjustment.is_empty():
            return image
        rgb = image.rgb_float()
        if adjustment.brightness is not None:
            rgb = ProcessingService.modulate(rgb, brightness=1.0 + adjustment.brightness / 100.0)
        if adjustment.contrast is not None:
            rgb = ProcessingService.adjust_contrast(rgb, adjustment.contrast)
        if adjustment.saturation is not None:
            rgb = ProcessingService.modulate(rgb, saturation=1.0 + adjustment.saturation / 100.0)
        if adjustment.hue is not None:
            rgb = ProcessingService.modulate(rgb, hue=adjustment.hue)
        if adjustment.gamma is not None:
            rgb = ProcessingService.apply_gamma(rgb, adjustment.gamma)
        if adjustment.blur:
            rgb = ProcessingService.gaussian_blur(rgb, adjustment.blur)
        if adjustment.sharpening:
            rgb = ProcessingService.sharpen(rgb, adjustment.sharpening / 2.0)
        return image.with_rgb(rgb)

    # Modulate in HSL: L *= brightness, S *= saturation, H += hue (degrees)
    @staticmethod
    def modulate(
        matrix: np.ndarray,
        brightness: float = 1.0,
        saturation: float = 1.0,
        hue: float = 0.0,
    ) -> np.ndarray:
        h, s, l = ProcessingService.rgb_to_hsl(matrix)
        if brightness != 1.0:
            l = np.clip(l * np.float32(brightness), 0.0, 1.0)
        if saturation != 1.0:
            s = np.clip(s * np.float32(saturation), 0.0, 1.0)
        hue = math.fmod(hue, 360.0)
        if hue:
            h = np.mod(h + np.float32(hue), 360.0)
        return ProcessingService.hsl_to_rgb(h, s, l)

    # Linear contrast: f = 259(c + 255) / (255(259 - c)); I_out = f(I_in - 128) + 128
    @staticmethod
    def adjust_contrast(matrix: np.ndarray, contrast: float) -> np.ndarray:
        factor = (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))
        return ProcessingService.linear(matrix, factor, -(128.0 * factor) + 128.0)

    # Linear: I_out = a * I_in + b, with b expressed on the 0..255 scale
    @staticmethod
    def linear(matrix: np.ndarray, a: float, b: float) -> np.ndarray:
        out = matrix.astype(np.float32) * np.float32(a) + np.float32(b / 255.0)
        return np.clip(out, 0.0, 1.0).astype(np.float32)

    # Gamma: I_out = I_in ^ (1 / gamma)
    @staticmethod
    def apply_gamma(matrix: np.ndarray, gamma: float) -> np.ndarray:
        if gamma <= 0:
            raise ValueError("gamma must be > 0")
        mat = np.clip(matrix.astype(np.float32), 0.0, 1.0)
        return np.power(mat, np.float32(1.0 / gamma)).astype(np.float32)

    # Grayscale (Luminosity): 0.299*R + 0.587*G + 0.114*B, replicated to 3 channels
    @staticmethod
    def grayscale_luminosity(matrix: np.ndarray) -> np.ndarray:
        gray = np.dot(matrix[..., :3].astype(np.float32), LUMA_WEIGHTS)
        return np.repeat(gray[..., None], 3, axis=2).astype(np.float32)

    # Tint: multiply towards the colour, restore per-pixel luminance, blend by weight
    @staticmethod
    def tint(
        matrix: np.ndarray, color: tuple[int, int, int], weight: float = TINT_WEIGHT
    ) -> np.ndarray:
        mat = matrix.astype(np.float32)
        target = np.array(color, dtype=np.float32) / 255.0
        multiplied = mat * target
        luma_in = np.dot(mat, LUMA_WEIGHTS)
        luma_out = np.dot(multiplied, LUMA_WEIGHTS)
        scale = np.divide(
            luma_in, luma_out, out=np.ones_like(luma_in), where=luma_out > 1e-6
        )
        tinted = np.clip(multiplied * scale[..., None], 0.0, 1.0)
        out = (1.0 - weight) * mat + weight * tinted
        return np.clip(out, 0.0, 1.0).astype(np.float32)

    @staticmethod
    def gaussian_blur(matrix: np.ndarray, sigma: float) -> np.ndarray:
        if sigma <= 0:
            return matrix
        return ProcessingService._pil_filter(matrix, ImageFilter.GaussianBlur(radius=sigma))

    # Unsharp mask with the given sigma
    @staticmethod
    def sharpen(matrix: np.ndarray, sigma: float) -> np.ndarray:
        if sigma <= 0:
            return matrix
        return ProcessingService._pil_filter(
            matrix,
            ImageFilter.UnsharpMask(
                radius=sigma, percent=UNSHARP_PERCENT, threshold=UNSHARP_THRESHOLD
            ),
        )

    # --------- colour space helpers ---------
    @staticmethod
    def rgb_to_hsl(matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return hue in degrees [0, 360), saturation and lightness in [0, 1]."""
        mat = np.clip(matrix.astype(np.float32), 0.0, 1.0)
        r, g, b = mat[..., 0], mat[..., 1], mat[..., 2]
        mx = np.max(mat, axis=2)
        mn = np.min(mat, axis=2)
        delta = mx - mn
        light = (mx + mn) / 2.0
        chromatic = delta > 0

        denom = 1.0 - np.abs(2.0 * light - 1.0)
        sat = np.divide(delta, denom, out=np.zeros_like(delta), where=chromatic & (denom > 0))
        sat = np.clip(sat, 0.0, 1.0)

        safe = np.where(chromatic, delta, 1.0)
        hue = np.where(
            mx == r,
            np.mod((g - b) / safe, 6.0),
            np.where(mx == g, (b - r) / safe + 2.0, (r - g) / safe + 4.0),
        )
        hue = np.where(chromatic, hue * 60.0, 0.0)
        return hue.astype(np.float32), sat.astype(np.float32), light.astype(np.float32)

    @staticmethod
    def hsl_to_rgb(hue: np.ndarray, sat: np.ndarray, light: np.ndarray) -> np.ndarray:
        a = sat * np.minimum(light, 1.0 - light)
        channels = []
        for n in (0.0, 8.0, 4.0):
            k = np.mod(n + hue / 30.0, 12.0)
            channels.append(light - a * np.clip(np.minimum(k - 3.0, 9.0 - k), -1.0, 1.0))
        return np.clip(np.stack(channels, axis=-1), 0.0, 1.0).astype(np.float32)

    @staticmethod
    def _pil_filter(matrix: np.ndarray, pil_filter: ImageFilter.Filter) -> np.ndarray:
        arr = np.clip(np.rint(matrix * 255.0), 0, 255).astype(np.uint8)
        filtered = Image.fromarray(arr).filter(pil_filter)
        return np.asarray(filtered).astype(np.float32) / 255.0
