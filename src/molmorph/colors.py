"""Element colours, display radii and depth fog."""

from __future__ import annotations

import numpy as np

from molmorph.types import Color, Element

# Jmol/CPK palette
ELEMENT_COLORS: dict[Element, str] = {
    Element.H: "#ffffff",
    Element.C: "#909090",
    Element.N: "#3050f8",
    Element.O: "#ff0d0d",
    Element.F: "#90e050",
    Element.P: "#ff8000",
    Element.S: "#ffff30",
    Element.CL: "#1ff01f",
    Element.BR: "#a62929",
    Element.I: "#940094",
    Element.UNKNOWN: "#ff1493",
}

# Display radii in normalised scene units (molecules fit a unit box)
BASE_RADIUS = 0.05
_RELATIVE_SIZE: dict[Element, float] = {
    Element.H: 0.6,
    Element.C: 1.0,
    Element.N: 0.95,
    Element.O: 0.9,
    Element.F: 0.85,
    Element.P: 1.2,
    Element.S: 1.2,
    Element.CL: 1.15,
    Element.BR: 1.3,
    Element.I: 1.45,
    Element.UNKNOWN: 1.0,
}

_MAX_FOG = 0.7  # atoms never fully vanish into the background


def get_color(element: Element, overrides: dict[str, str] | None = None) -> str:
    """Hex colour for an element, honouring per-symbol overrides."""
    if overrides and element.value in overrides:
        return overrides[element.value]
    return ELEMENT_COLORS[element]


def get_radius(element: Element, scale: float = 1.0) -> float:
    return BASE_RADIUS * _RELATIVE_SIZE[element] * scale


def blend_fog(color: str, fog_rgb: np.ndarray, depth: float) -> str:
    """Blend *color* toward *fog_rgb* by ``|depth|`` (0-1), capped at 70%."""
    t = min(abs(depth), 1.0) * _MAX_FOG
    if t <= 0.0:
        return color
    fog = Color(int(fog_rgb[0]), int(fog_rgb[1]), int(fog_rgb[2]))
    return Color.from_hex(color).blend(fog, t).hex
