"""Tests for element colours, radii and fog blending."""

import numpy as np

from molmorph.colors import BASE_RADIUS, ELEMENT_COLORS, blend_fog, get_color, get_radius
from molmorph.types import Element

WHITE = np.array([255, 255, 255])


def test_fog_preserves_at_zero():
    assert blend_fog("#abcdef", WHITE, 0.0) == "#abcdef"


def test_fog_full_strength():
    # Fog is capped at 70% to prevent atoms disappearing into the background
    assert blend_fog("#000000", WHITE, -1.0) == "#b2b2b2"


def test_fog_clamped_beyond_unit_depth():
    assert blend_fog("#000000", WHITE, 3.0) == blend_fog("#000000", WHITE, 1.0)


def test_fog_sign_irrelevant():
    assert blend_fog("#000000", WHITE, 0.5) == blend_fog("#000000", WHITE, -0.5)


def test_every_element_has_a_colour():
    for element in Element:
        assert ELEMENT_COLORS[element].startswith("#")


def test_colour_override_by_symbol():
    overrides = {"C": "#123456", "Cl": "#00ff00"}
    assert get_color(Element.C, overrides) == "#123456"
    assert get_color(Element.CL, overrides) == "#00ff00"
    assert get_color(Element.O, overrides) == ELEMENT_COLORS[Element.O]
    assert get_color(Element.O) == "#ff0d0d"


def test_radius_scaling():
    assert get_radius(Element.C) == BASE_RADIUS
    assert get_radius(Element.C, 2.0) == 2 * BASE_RADIUS
    assert get_radius(Element.H) < get_radius(Element.C) < get_radius(Element.I)
