"""Shared utilities for molmorph."""

from __future__ import annotations

import numpy as np

from molmorph.types import Molecule


def pca_matrix(pos: np.ndarray) -> np.ndarray:
    """Compute PCA rotation matrix (Vt) without applying it."""
    c = pos - pos.mean(axis=0)
    # Full matrices so two-atom inputs still give a 3x3 basis
    _, _, vt = np.linalg.svd(c, full_matrices=True)
    return vt


def pca_orient(molecule: Molecule) -> Molecule:
    """Centre and rotate: largest variance along x, then y, smallest along z (depth)."""
    pos = molecule.positions
    centered = pos - pos.mean(axis=0)
    if len(pos) < 2:
        return molecule.with_positions(centered)
    vt = pca_matrix(pos)
    if np.linalg.det(vt) < 0:
        vt = vt.copy()
        vt[2] *= -1.0  # proper rotation only, chiral centres must not flip
    return molecule.with_positions(centered @ vt.T)
