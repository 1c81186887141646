"""Reference SVG renderer for :class:`~molmorph.types.SceneUpdate` frames.

Orthographic projection onto the xy plane, viewer on +z.  Atoms and bonds
are painter-sorted by depth.  The viewport is fixed (not fitted per frame)
so morphing structures do not appear to zoom.
"""

from __future__ import annotations

import logging

import numpy as np

from molmorph.colors import blend_fog
from molmorph.types import Color, RenderConfig, SceneUpdate

logger = logging.getLogger(__name__)

_MIN_OPACITY = 0.005


def render_svg(scene: SceneUpdate, config: RenderConfig | None = None) -> str:
    """Render one frame to an SVG string.

    ``config.span`` is the scene width mapped onto the canvas; keep it a little
    above the normalisation scale cap so atom radii stay in view.
    """
    cfg = config or RenderConfig()
    span = cfg.span
    size = cfg.canvas_size
    scale = (size - 2 * cfg.padding) / span
    half = size / 2

    def project(p: tuple[float, float, float]) -> tuple[float, float]:
        return half + p[0] * scale, half - p[1] * scale

    bg = Color.from_hex(cfg.background)
    fog_rgb = np.array([bg.r, bg.g, bg.b])

    visible_z = [a.position[2] for a in scene.atoms if a.opacity > _MIN_OPACITY]
    z_front = max(visible_z) if visible_z else 0.0

    def shade(color: str, z: float) -> str:
        if not cfg.fog:
            return color
        return blend_fog(color, fog_rgb, (z_front - z) / span * cfg.fog_strength)

    items: list[tuple[float, str]] = []
    for bond in scene.bonds:
        if bond.opacity <= _MIN_OPACITY:
            continue
        x1, y1 = project(bond.start)
        x2, y2 = project(bond.end)
        items.append(
            (
                bond.midpoint[2],
                f'<line x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" '
                f'stroke="{shade(cfg.bond_color, bond.midpoint[2])}" stroke-width="{cfg.bond_width:.1f}" '
                f'stroke-linecap="round" opacity="{bond.opacity:.3f}"/>',
            )
        )
    for atom in scene.atoms:
        if atom.opacity <= _MIN_OPACITY:
            continue
        cx, cy = project(atom.position)
        items.append(
            (
                atom.position[2],
                f'<circle cx="{cx:.1f}" cy="{cy:.1f}" r="{atom.radius * scale:.1f}" '
                f'fill="{shade(atom.color, atom.position[2])}" stroke="#000000" stroke-width="1.0" '
                f'opacity="{atom.opacity:.3f}"/>',
            )
        )

    items.sort(key=lambda item: item[0])
    logger.debug("Rendered %d primitives at progress %.2f", len(items), scene.progress)

    body = "\n".join(svg for _, svg in items)
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">\n'
        f'<rect width="100%" height="100%" fill="{cfg.background}"/>\n'
        f"{body}\n"
        "</svg>"
    )
