import io
import threading

import numpy as np
import pytest
from PIL import Image

from src.application.use_cases.run_pipeline import RunPipelineUseCase
from src.domain.entities.operations import ShapeSpec
from src.domain.errors import ErrorKind, PipelineError
from src.domain.services.shape_service import ShapeService

SCENARIO = [
    {"operation": "removeBackground", "params": {}},
    {"operation": "adjustments", "params": {"brightness": 10, "contrast": 5}},
    {"operation": "filter", "params": {"name": "warm"}},
    {"operation": "addBackground", "params": {"type": "color", "value": "#336699"}},
    {"operation": "cropToShape", "params": {"shape": "circle", "size": 400}},
]


class SlowRemover:
    def __init__(self) -> None:
        self.release = threading.Event()

    def remove(self, image_bytes: bytes) -> bytes:
        self.release.wait(5)
        return image_bytes


class BrokenRemover:
    def remove(self, image_bytes: bytes) -> bytes:
        raise RuntimeError("model crashed")


class OpaqueRemover:
    def remove(self, image_bytes: bytes) -> bytes:
        img = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


@pytest.fixture()
def pipeline(codec, remover):
    return RunPipelineUseCase(codec=codec, background_remover=remover)


def test_profile_picture_scenario(pipeline, codec, portrait_jpeg):
    source = codec.decode(portrait_jpeg)
    out = pipeline.execute(source, SCENARIO)

    assert out.size == (400, 400)
    assert out.mode == "RGBA"
    png = codec.encode(out, "png")
    assert png.startswith(b"\x89PNG")

    # inside the subject, inside the background ring, outside the circle
    assert out.alpha[200, 200] == 255
    assert out.alpha[200, 30] == 255
    assert out.alpha[0, 0] == 0
    assert out.alpha[399, 399] == 0

    plain = ShapeService.crop_to_shape(source, ShapeSpec("circle", 400))
    assert int(out.pixels[200, 30, 2]) > int(plain.pixels[200, 30, 2])
    assert np.allclose(out.pixels[200, 30, :3], (0x33, 0x66, 0x99), atol=1)


def test_pipeline_is_deterministic(pipeline, codec, portrait_jpeg):
    source = codec.decode(portrait_jpeg)
    first = pipeline.execute(source, SCENARIO)
    second = pipeline.execute(source, SCENARIO)
    assert np.array_equal(first.pixels, second.pixels)


def test_operations_run_in_order(pipeline, make_solid):
    source = make_solid(300, 200)
    crop_then_template = pipeline.execute(
        source,
        [
            {"operation": "cropToShape", "params": {"shape": "square", "size": 100}},
            {"operation": "applyTemplate", "params": {"platform": "facebook"}},
        ],
    )
    template_then_crop = pipeline.execute(
        source,
        [
            {"operation": "applyTemplate", "params": {"platform": "facebook"}},
            {"operation": "cropToShape", "params": {"shape": "square", "size": 100}},
        ],
    )
    assert crop_then_template.size == (170, 170)
    assert template_then_crop.size == (100, 100)


def test_empty_pipeline_returns_source(pipeline, make_solid):
    source = make_solid(10, 10)
    assert pipeline.execute(source, []) is source


def test_source_is_not_mutated(pipeline, codec, portrait_jpeg):
    source = codec.decode(portrait_jpeg)
    before = source.pixels.copy()
    pipeline.execute(source, SCENARIO)
    assert np.array_equal(source.pixels, before)


def test_invalid_adjustment_reports_its_index(pipeline, make_solid):
    with pytest.raises(PipelineError) as info:
        pipeline.execute(
            make_solid(10, 10), [{"operation": "adjustments", "params": {"contrast": 500}}]
        )
    err = info.value
    assert err.kind is ErrorKind.INVALID_INPUT
    assert err.index == 0
    assert err.operation == "adjustments"
    assert err.is_validation_error


def test_validation_happens_before_any_stage_runs(pipeline, remover, make_solid):
    with pytest.raises(PipelineError) as info:
        pipeline.execute(
            make_solid(10, 10),
            [
                {"operation": "removeBackground", "params": {}},
                {"operation": "filter", "params": {"name": "rainbow"}},
            ],
        )
    assert info.value.kind is ErrorKind.UNKNOWN_FILTER
    assert info.value.index == 1
    assert remover.calls == 0


def test_unknown_operation(pipeline, make_solid):
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(10, 10), [{"operation": "sparkle"}])
    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert info.value.to_dict() == {
        "error": "Unsupported operation: 'sparkle'",
        "kind": "InvalidInput",
        "operationIndex": 0,
        "operation": "sparkle",
    }


def test_background_removal_timeout(codec, make_solid):
    remover = SlowRemover()
    pipeline = RunPipelineUseCase(codec=codec, background_remover=remover, removal_timeout=0.05)
    try:
        with pytest.raises(PipelineError) as info:
            pipeline.execute(make_solid(10, 10), [{"operation": "removeBackground"}])
    finally:
        remover.release.set()
    assert info.value.kind is ErrorKind.EXTERNAL_SERVICE_TIMEOUT
    assert info.value.index == 0


def test_background_removal_failure(codec, make_solid):
    pipeline = RunPipelineUseCase(codec=codec, background_remover=BrokenRemover())
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(10, 10), [{"operation": "removeBackground"}])
    assert info.value.kind is ErrorKind.EXTERNAL_SERVICE_FAILURE
    assert "model crashed" in info.value.message


def test_background_removal_without_alpha(codec, make_solid):
    pipeline = RunPipelineUseCase(codec=codec, background_remover=OpaqueRemover())
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(10, 10), [{"operation": "removeBackground"}])
    assert info.value.kind is ErrorKind.EXTERNAL_SERVICE_FAILURE


def test_no_remover_configured(codec, make_solid):
    pipeline = RunPipelineUseCase(codec=codec)
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(10, 10), [{"operation": "removeBackground"}])
    assert info.value.kind is ErrorKind.EXTERNAL_SERVICE_FAILURE


def test_cancelled_before_first_stage(pipeline, remover, make_solid):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(10, 10), SCENARIO, cancel_event=cancel)
    assert info.value.kind is ErrorKind.CANCELLED
    assert info.value.index == 0
    assert remover.calls == 0


def test_missing_background_image_fails_at_its_index(codec, sources, make_solid):
    pipeline = RunPipelineUseCase(codec=codec, source_loader=sources({}))
    with pytest.raises(PipelineError) as info:
        pipeline.execute(
            make_solid(10, 10),
            [
                {"operation": "filter", "params": {"name": "cool"}},
                {"operation": "addBackground", "params": {"type": "image", "value": "https://x/bg.png"}},
            ],
        )
    assert info.value.kind is ErrorKind.SOURCE_UNAVAILABLE
    assert info.value.index == 1
    assert info.value.operation == "addBackground"


def test_unexpected_errors_become_internal_failures(codec, make_solid, monkeypatch):
    pipeline = RunPipelineUseCase(codec=codec)

    def boom(*args, **kwargs):
        raise ZeroDivisionError("boom")

    monkeypatch.setattr(pipeline.processing, "adjust", boom)
    with pytest.raises(PipelineError) as info:
        pipeline.execute(make_solid(4, 4), [{"operation": "adjustments", "params": {"gamma": 2}}])
    assert info.value.kind is ErrorKind.INTERNAL_FAILURE


@pytest.mark.parametrize(
    "background",
    [
        {"type": "color", "value": "not-a-colour"},
        {"type": "gradient", "value": "linear-gradient(red, blue)"},
    ],
)
def test_bad_background_values_fail_before_removal(pipeline, remover, make_solid, background):
    with pytest.raises(PipelineError) as info:
        pipeline.execute(
            make_solid(10, 10),
            [
                {"operation": "removeBackground", "params": {}},
                {"operation": "addBackground", "params": background},
            ],
        )
    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert info.value.index == 1
    assert remover.calls == 0
