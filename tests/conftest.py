"""Shared fixtures: synthetic molfile records and small molecules."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from molmorph.types import Bond, Element, Molecule

EXAMPLES = Path(__file__).parent.parent / "examples" / "structures"


def sdf_record(symbols, positions, bonds=(), name="test") -> str:
    """Format a V2000 molfile record; *bonds* are 1-based ``(a, b[, order])`` tuples."""
    lines = [name, "  molmorph          3D", ""]
    lines.append(f"{len(symbols):3d}{len(bonds):3d}  0  0  0  0  0  0  0  0999 V2000")
    for sym, (x, y, z) in zip(symbols, positions, strict=True):
        lines.append(f"{x:10.4f}{y:10.4f}{z:10.4f} {sym:<3} 0  0  0  0  0  0  0  0  0  0  0  0")
    for bond in bonds:
        a, b, order = (*bond, 1) if len(bond) == 2 else bond
        lines.append(f"{a:3d}{b:3d}{order:3d}  0")
    lines.append("M  END")
    return "\n".join(lines)


def triangle(positions=((0, 0, 0), (1, 0, 0), (0, 1, 0))) -> Molecule:
    return Molecule(
        positions=np.array(positions, dtype=float),
        elements=(Element.C,) * 3,
        bonds=(Bond(0, 1), Bond(1, 2)),
        name="triangle",
    )


def rot_z(degrees: float) -> np.ndarray:
    a = np.radians(degrees)
    return np.array([[np.cos(a), -np.sin(a), 0.0], [np.sin(a), np.cos(a), 0.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def examples_dir() -> Path:
    return EXAMPLES
