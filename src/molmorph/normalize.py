"""Centre and scale molecules into a common viewing box."""

from __future__ import annotations

import logging

import numpy as np

from molmorph.types import Molecule

logger = logging.getLogger(__name__)


def bounding_box(positions: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Axis-aligned ``(min, max)`` corners of an ``(N, 3)`` array."""
    pos = np.asarray(positions, dtype=float).reshape(-1, 3)
    if len(pos) == 0:
        return np.zeros(3), np.zeros(3)
    return pos.min(axis=0), pos.max(axis=0)


def normalize(molecule: Molecule, scale_cap: float = 1.0) -> Molecule:
    """Centre on the bounding-box midpoint and shrink so no edge exceeds *scale_cap*.

    One scale factor for all three axes; molecules already small enough are
    only translated, never enlarged.
    """
    lo, hi = bounding_box(molecule.positions)
    center = (lo + hi) / 2
    max_dim = float((hi - lo).max())
    scale = scale_cap / max_dim if max_dim > scale_cap else 1.0
    logger.debug("Normalising %r: extent %.3f, scale %.4f", molecule.name, max_dim, scale)
    return molecule.with_positions((molecule.positions - center) * scale)
