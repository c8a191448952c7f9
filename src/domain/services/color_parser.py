"""CSS colour and SVG ``<stop>`` parsing for background values."""
from __future__ import annotations

import re

from PIL import ImageColor

from src.domain.errors import InvalidInput

_STOP_RE = re.compile(r"<stop\b([^>]*?)/?>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")

RGBA = tuple[float, float, float, float]


def parse_color(value: str) -> RGBA:
    """CSS colour string as RGBA floats in [0, 1]."""
    try:
        rgba = ImageColor.getrgb(value.strip())
    except ValueError:
        raise InvalidInput(f"Invalid colour: {value!r}") from None
    if len(rgba) == 3:
        rgba = (*rgba, 255)
    return tuple(c / 255.0 for c in rgba)  # type: ignore[return-value]


def _parse_offset(raw: str | None) -> float:
    if raw is None or not raw.strip():
        return 0.0
    raw = raw.strip()
    try:
        value = float(raw[:-1]) / 100.0 if raw.endswith("%") else float(raw)
    except ValueError:
        raise InvalidInput(f"Invalid gradient stop offset: {raw!r}") from None
    return min(max(value, 0.0), 1.0)


def parse_gradient_stops(descriptor: str) -> list[tuple[float, RGBA]]:
    """Parse SVG ``<stop>`` elements into (offset, rgba) pairs.

    Offsets are clamped to [0, 1] and made non-decreasing as SVG requires.
    """
    stops = []
    previous = 0.0
    for match in _STOP_RE.finditer(descriptor):
        attrs = {m.group(1).lower(): m.group(2) if m.group(2) is not None else m.group(3)
                 for m in _ATTR_RE.finditer(match.group(1))}
        for decl in (attrs.get("style") or "").split(";"):
            if ":" in decl:
                key, val = decl.split(":", 1)
                attrs.setdefault(key.strip().lower(), val.strip())
        offset = max(_parse_offset(attrs.get("offset")), previous)
        previous = offset
        r, g, b, a = parse_color(attrs.get("stop-color", "black"))
        try:
            opacity = float(attrs.get("stop-opacity", "1"))
        except ValueError:
            raise InvalidInput(f"Invalid stop-opacity: {attrs.get('stop-opacity')!r}") from None
        stops.append((offset, (r, g, b, a * min(max(opacity, 0.0), 1.0))))
    if not stops:
        raise InvalidInput("Gradient background requires at least one <stop> element")
    return stops
