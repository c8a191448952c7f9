"""Typed pipeline operations.

The wire form of an operation is ``{"operation": "<tag>", "params": {...}}``.
``parse_operation`` turns one of those into the matching frozen dataclass and
rejects anything outside the documented domains, so a pipeline never starts
with an operation it cannot run.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Union

from src.domain.errors import (
    InvalidAdjustment,
    InvalidBackgroundType,
    InvalidInput,
    InvalidShape,
    UnknownFilter,
    UnknownPlatform,
)
from src.domain.services.color_parser import parse_color, parse_gradient_stops


def _number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAdjustment(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidAdjustment(f"{name} must be finite")
    return value


@dataclass(frozen=True)
class Adjustment:
    brightness: float | None = None
    contrast: float | None = None
    saturation: float | None = None
    hue: float | None = None
    sharpening: float | None = None
    blur: float | None = None
    gamma: float | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                object.__setattr__(self, f.name, _number(f.name, value))
        for name in ("brightness", "contrast", "saturation"):
            value = getattr(self, name)
            if value is not None and not -100.0 <= value <= 100.0:
                raise InvalidAdjustment(f"{name} must be within [-100, 100], got {value:g}")
        for name in ("sharpening", "blur"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidAdjustment(f"{name} must be >= 0, got {value:g}")
        if self.gamma is not None and self.gamma <= 0:
            raise InvalidAdjustment(f"gamma must be > 0, got {self.gamma:g}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> Adjustment:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise InvalidAdjustment(f"Unknown adjustment field(s): {', '.join(unknown)}")
        return cls(**{k: v for k, v in params.items() if v is not None})

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


class FilterPreset(str, Enum):
    NONE = "none"
    PROFESSIONAL = "professional"
    VINTAGE = "vintage"
    DRAMATIC = "dramatic"
    SOFT = "soft"
    BLACKWHITE = "blackwhite"
    WARM = "warm"
    COOL = "cool"

    @classmethod
    def parse(cls, name: Any) -> FilterPreset:
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            raise UnknownFilter(f"Unknown filter: {name!r}")
        try:
            return cls(name.lower())
        except ValueError:
            raise UnknownFilter(f"Unknown filter: {name!r}") from None


class BackgroundType(str, Enum):
    COLOR = "color"
    GRADIENT = "gradient"
    PATTERN = "pattern"
    IMAGE = "image"


@dataclass(frozen=True)
class BackgroundSpec:
    type: BackgroundType
    value: str
    blur: float | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "type", BackgroundType(self.type))
        except ValueError:
            raise InvalidBackgroundType(f"Invalid background type: {self.type!r}") from None
        if not isinstance(self.value, str) or not self.value.strip():
            raise InvalidInput(f"{self.type.value} background requires a non-empty value")
        if self.type is BackgroundType.COLOR:
            parse_color(self.value)
        elif self.type is BackgroundType.GRADIENT:
            parse_gradient_stops(self.value)
        if self.blur is not None:
            if self.type is not BackgroundType.IMAGE:
                raise InvalidInput("blur is only supported for image backgrounds")
            if isinstance(self.blur, bool) or not isinstance(self.blur, (int, float)):
                raise InvalidInput(f"blur must be a number, got {self.blur!r}")
            if not math.isfinite(self.blur) or self.blur < 0:
                raise InvalidInput(f"blur must be >= 0, got {self.blur!r}")
            object.__setattr__(self, "blur", float(self.blur))

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> BackgroundSpec:
        if "type" not in params:
            raise InvalidBackgroundType("Background is missing its type")
        return cls(type=params["type"], value=params.get("value", ""), blur=params.get("blur"))


SHAPES = ("circle", "square", "rounded-square", "heart", "star")


@dataclass(frozen=True)
class ShapeSpec:
    shape: str
    size: int

    def __post_init__(self) -> None:
        if self.shape not in SHAPES:
            raise InvalidShape(f"Invalid shape: {self.shape!r}")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size <= 0:
            raise InvalidInput(f"size must be a positive integer, got {self.size!r}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> ShapeSpec:
        size = params.get("size")
        if isinstance(size, float) and size.is_integer():
            size = int(size)
        return cls(shape=params.get("shape"), size=size)


PLATFORMS = ("linkedin", "instagram", "twitter", "facebook", "tiktok")


@dataclass(frozen=True)
class SocialTarget:
    platform: str

    def __post_init__(self) -> None:
        if self.platform not in PLATFORMS:
            raise UnknownPlatform(f"Unknown platform: {self.platform!r}")


# Operation variants


@dataclass(frozen=True)
class RemoveBackgroundOp:
    tag = "removeBackground"


@dataclass(frozen=True)
class AdjustmentsOp:
    adjustment: Adjustment
    tag = "adjustments"


@dataclass(frozen=True)
class FilterOp:
    preset: FilterPreset
    tag = "filter"


@dataclass(frozen=True)
class AddBackgroundOp:
    background: BackgroundSpec
    tag = "addBackground"


@dataclass(frozen=True)
class CropToShapeOp:
    shape: ShapeSpec
    tag = "cropToShape"


@dataclass(frozen=True)
class ApplyTemplateOp:
    target: SocialTarget
    tag = "applyTemplate"


Operation = Union[
    RemoveBackgroundOp, AdjustmentsOp, FilterOp, AddBackgroundOp, CropToShapeOp, ApplyTemplateOp
]

OPERATION_TAGS = (
    RemoveBackgroundOp.tag,
    AdjustmentsOp.tag,
    FilterOp.tag,
    AddBackgroundOp.tag,
    CropToShapeOp.tag,
    ApplyTemplateOp.tag,
)


def parse_operation(data: Mapping[str, Any] | Operation) -> Operation:
    """Build a typed operation from its wire form.

    Raises the specific ``ImageProcessingError`` for the first problem found.
    """
    if isinstance(
        data,
        (RemoveBackgroundOp, AdjustmentsOp, FilterOp, AddBackgroundOp, CropToShapeOp, ApplyTemplateOp),
    ):
        return data
    if not isinstance(data, Mapping):
        raise InvalidInput(f"Operation must be an object, got {type(data).__name__}")
    tag = data.get("operation")
    params = data.get("params") or {}
    if not isinstance(params, Mapping):
        raise InvalidInput("Operation params must be an object")

    if tag == RemoveBackgroundOp.tag:
        return RemoveBackgroundOp()
    if tag == AdjustmentsOp.tag:
        return AdjustmentsOp(Adjustment.from_dict(params))
    if tag == FilterOp.tag:
        return FilterOp(FilterPreset.parse(params.get("name")))
    if tag == AddBackgroundOp.tag:
        return AddBackgroundOp(BackgroundSpec.from_dict(params))
    if tag == CropToShapeOp.tag:
        return CropToShapeOp(ShapeSpec.from_dict(params))
    if tag == ApplyTemplateOp.tag:
        return ApplyTemplateOp(SocialTarget(params.get("platform")))
    raise InvalidInput(f"Unsupported operation: {tag!r}")
