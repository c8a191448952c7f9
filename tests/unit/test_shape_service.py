import numpy as np
import pytest

from src.domain.entities.operations import ShapeSpec
from src.domain.entities.raster_image import RasterImage
from src.domain.errors import InvalidShape
from src.domain.services.shape_service import ShapeService


def test_size_is_clamped_to_the_source(make_solid):
    out = ShapeService.crop_to_shape(make_solid(50, 50), ShapeSpec("circle", 200))
    assert out.size == (50, 50)


def test_crop_uses_requested_size_when_smaller(make_solid):
    out = ShapeService.crop_to_shape(make_solid(800, 600), ShapeSpec("circle", 400))
    assert out.size == (400, 400)
    assert out.mode == "RGBA"


def test_non_square_source_uses_shorter_edge(make_solid):
    out = ShapeService.crop_to_shape(make_solid(300, 120), ShapeSpec("square", 500))
    assert out.size == (120, 120)


def test_outside_the_shape_is_transparent(make_solid):
    out = ShapeService.crop_to_shape(make_solid(200, 200), ShapeSpec("circle", 100))
    assert out.alpha[0, 0] == 0
    assert (out.pixels[0, 0] == 0).all()
    assert out.alpha[50, 50] == 255
    assert np.allclose(out.pixels[50, 50, :3], (200, 150, 100), atol=1)


def test_existing_alpha_is_multiplied(make_solid):
    src = make_solid(40, 40).to_rgba()
    pixels = src.pixels.copy()
    pixels[..., 3] = 128
    out = ShapeService.crop_to_shape(RasterImage(pixels), ShapeSpec("square", 40))
    assert (out.alpha == 128).all()


def test_crop_is_centred(make_solid):
    src = make_solid(300, 100, (0, 0, 0))
    pixels = src.pixels.copy()
    pixels[:, 100:200] = (255, 255, 255)
    out = ShapeService.crop_to_shape(RasterImage(pixels), ShapeSpec("square", 100))
    assert np.all(out.pixels[50, 10:90, :3] >= 250)


def test_invalid_shape_is_rejected():
    with pytest.raises(InvalidShape):
        ShapeSpec("triangle", 200)
