import numpy as np
import pytest

from src.domain.entities.operations import Adjustment
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import InvalidAdjustment, InvalidInput
from src.domain.services.processing_service import ProcessingService as PS


def test_contrast_formula_matches_linear_contrast():
    img = np.array([[[0.0, 128 / 255, 1.0]]], dtype=np.float32)
    out = PS.adjust_contrast(img, 50)
    factor = 259 * (50 + 255) / (255 * (259 - 50))
    expected_low = max(0.0, factor * (0 - 128) + 128) / 255
    assert np.isclose(out[0, 0, 0], expected_low, atol=1e-5)
    assert np.isclose(out[0, 0, 1], 128 / 255, atol=1e-5)
    assert np.isclose(out[0, 0, 2], 1.0)


def test_zero_contrast_is_identity():
    img = np.random.default_rng(1).random((4, 4, 3), dtype=np.float32)
    assert np.allclose(PS.adjust_contrast(img, 0), img, atol=1e-6)


def test_hsl_round_trip():
    img = np.random.default_rng(2).random((8, 8, 3), dtype=np.float32)
    h, s, l = PS.rgb_to_hsl(img)
    assert np.allclose(PS.hsl_to_rgb(h, s, l), img, atol=1e-5)


def test_brightness_scales_lightness_not_hue():
    img = np.array([[[0.6, 0.3, 0.2]]], dtype=np.float32)
    out = PS.modulate(img, brightness=0.5)
    h0, _, l0 = PS.rgb_to_hsl(img)
    h1, _, l1 = PS.rgb_to_hsl(out)
    assert np.isclose(l1[0, 0], l0[0, 0] * 0.5, atol=1e-5)
    assert np.isclose(h1[0, 0], h0[0, 0], atol=1e-3)


def test_hue_wraps_modulo_360():
    red = np.array([[[1.0, 0.0, 0.0]]], dtype=np.float32)
    out = PS.modulate(red, hue=480)  # == 120 degrees -> green
    assert np.allclose(out[0, 0], [0.0, 1.0, 0.0], atol=1e-5)


def test_full_desaturation():
    img = np.array([[[0.8, 0.2, 0.4]]], dtype=np.float32)
    out = PS.modulate(img, saturation=0.0)
    assert np.isclose(out[0, 0, 0], out[0, 0, 1]) and np.isclose(out[0, 0, 1], out[0, 0, 2])


def test_gamma_round_trip_on_floats():
    img = np.linspace(0, 1, 256, dtype=np.float32).reshape(16, 16, 1).repeat(3, axis=2)
    there = PS.apply_gamma(img, 2.2)
    back = PS.apply_gamma(there, 1 / 2.2)
    assert np.allclose(back, img, atol=1e-4)


def test_gamma_round_trip_on_raster(make_rgba):
    src = make_rgba(32, 32)
    there = PS.adjust(src, Adjustment(gamma=2.2))
    back = PS.adjust(there, Adjustment(gamma=1 / 2.2))
    diff = np.abs(back.pixels[..., :3].astype(int) - src.pixels[..., :3].astype(int))
    assert diff.max() <= 2


def test_gamma_one_is_identity(make_rgba):
    src = make_rgba(16, 16)
    assert np.array_equal(PS.adjust(src, Adjustment(gamma=1.0)).pixels, src.pixels)


@pytest.mark.parametrize(
    "adjustment",
    [
        Adjustment(brightness=20),
        Adjustment(contrast=-40),
        Adjustment(saturation=60),
        Adjustment(hue=90),
        Adjustment(gamma=0.7),
        Adjustment(brightness=-10, contrast=30, saturation=-50, hue=200, gamma=1.8),
    ],
)
def test_alpha_is_preserved(make_rgba, adjustment):
    src = make_rgba(24, 18)
    out = PS.adjust(src, adjustment)
    assert out.size == src.size
    assert np.array_equal(out.alpha, src.alpha)


def test_blur_and_sharpen_keep_alpha_and_shape(make_rgba):
    src = make_rgba(20, 20)
    out = PS.adjust(src, Adjustment(blur=1.5, sharpening=2))
    assert out.pixels.shape == src.pixels.shape
    assert np.array_equal(out.alpha, src.alpha)


def test_blur_zero_is_noop(make_rgba):
    src = make_rgba(10, 10)
    assert np.array_equal(PS.adjust(src, Adjustment(blur=0, sharpening=0)).pixels, src.pixels)


def test_adjust_does_not_mutate_input(make_rgba):
    src = make_rgba(12, 12)
    before = src.pixels.copy()
    PS.adjust(src, Adjustment(brightness=50, contrast=50))
    assert np.array_equal(src.pixels, before)


def test_blur_smooths_an_edge(make_solid):
    img = make_solid(10, 10, (0, 0, 0))
    arr = img.pixels.copy()
    arr[:, 5:] = 255
    out = PS.adjust(RasterImage(arr), Adjustment(blur=2))
    assert 0 < out.pixels[5, 4, 0] < 255


@pytest.mark.parametrize(
    "kwargs",
    [
        {"contrast": 500},
        {"brightness": -101},
        {"saturation": 100.5},
        {"blur": -1},
        {"sharpening": -0.1},
        {"gamma": 0},
        {"hue": float("nan")},
        {"brightness": "bright"},
    ],
)
def test_out_of_domain_adjustments_are_rejected(kwargs):
    with pytest.raises(InvalidAdjustment):
        Adjustment(**kwargs)


def test_invalid_adjustment_is_invalid_input():
    with pytest.raises(InvalidInput):
        Adjustment.from_dict({"exposure": 3})


def test_large_hue_matches_its_remainder():
    img = np.array([[[0.8, 0.2, 0.4], [0.1, 0.6, 0.3]]], dtype=np.float32)
    assert np.array_equal(PS.modulate(img, hue=1e9 + 10), PS.modulate(img, hue=290))
    assert np.allclose(PS.modulate(img, hue=-70), PS.modulate(img, hue=290), atol=1e-5)


@pytest.mark.filterwarnings("error")
def test_huge_hue_stays_finite(make_solid):
    out = PS.adjust(make_solid(4, 4, (200, 50, 100)), Adjustment(hue=1e39))
    assert out.pixels.dtype == np.uint8
    assert np.isfinite(PS.modulate(np.full((1, 1, 3), 0.5, dtype=np.float32), hue=1e39)).all()
