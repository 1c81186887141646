"""Core types for molmorph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import networkx as nx


class Element(Enum):
    """Closed set of element tags understood by the parser and resolver."""

    H = "H"
    C = "C"
    N = "N"
    O = "O"  # noqa: E741
    F = "F"
    P = "P"
    S = "S"
    CL = "Cl"
    BR = "Br"
    I = "I"  # noqa: E741
    UNKNOWN = "Unknown"

    @classmethod
    def from_symbol(cls, symbol: str) -> Element:
        """Map a structure-file symbol to a tag; anything unrecognised is ``UNKNOWN``.

        Examples
        --------
        >>> Element.from_symbol("Cl")
        <Element.CL: 'Cl'>
        >>> Element.from_symbol("Fe")
        <Element.UNKNOWN: 'Unknown'>
        """
        try:
            return cls(symbol.strip())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Color:
    """RGB color (0-255).

    Examples
    --------
    >>> Color(255, 0, 0).hex
    '#ff0000'
    >>> Color(100, 100, 100).blend(Color(200, 200, 200), 0.5)
    Color(r=150, g=150, b=150)
    """

    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        """CSS hex string."""
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def blend(self, other: Color, t: float) -> Color:
        """Lerp toward ``other`` by ``t`` (0=self, 1=other), clamped to 0-255."""
        return Color(
            min(255, max(0, int(self.r + t * (other.r - self.r)))),
            min(255, max(0, int(self.g + t * (other.g - self.g)))),
            min(255, max(0, int(self.b + t * (other.b - self.b)))),
        )

    @classmethod
    def from_hex(cls, hex_str: str) -> Color:
        """From ``'#ff0000'`` or ``'ff0000'``.

        Examples
        --------
        >>> Color.from_hex("#ff0000")
        Color(r=255, g=0, b=0)
        """
        h = hex_str.lstrip("#")
        return cls(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))


# ---------------------------------------------------------------------------
# Molecular data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Bond:
    """Undirected bond between two 0-indexed atoms."""

    start: int
    end: int
    order: int = 1


@dataclass(frozen=True, eq=False)
class Molecule:
    """Atoms, element tags and bonds of a single structure.

    ``positions`` is stored as a read-only ``(N, 3)`` float array; every
    transformation returns a new ``Molecule`` via :meth:`with_positions`.
    """

    positions: np.ndarray
    elements: tuple[Element, ...]
    bonds: tuple[Bond, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        pos = np.array(self.positions, dtype=float).reshape(-1, 3)
        pos.setflags(write=False)
        object.__setattr__(self, "positions", pos)
        object.__setattr__(self, "elements", tuple(self.elements))
        object.__setattr__(self, "bonds", tuple(self.bonds))

        n = len(pos)
        if len(self.elements) != n:
            msg = f"{n} positions but {len(self.elements)} element tags"
            raise ValueError(msg)
        for bond in self.bonds:
            if bond.start == bond.end:
                msg = f"Bond {bond.start}-{bond.end} joins an atom to itself"
                raise ValueError(msg)
            if not (0 <= bond.start < n and 0 <= bond.end < n):
                msg = f"Bond {bond.start}-{bond.end} out of range for {n} atoms"
                raise ValueError(msg)

    def __len__(self) -> int:
        return len(self.positions)

    def with_positions(self, positions: np.ndarray) -> Molecule:
        """Copy with new coordinates; topology and tags are shared."""
        return Molecule(positions=positions, elements=self.elements, bonds=self.bonds, name=self.name)

    def to_graph(self) -> nx.Graph:
        """Bond graph with ``element``/``position`` node data and ``order`` edge data."""
        import networkx as nx

        graph = nx.Graph()
        for i, (element, pos) in enumerate(zip(self.elements, self.positions, strict=True)):
            graph.add_node(i, element=element, position=tuple(pos.tolist()))
        for bond in self.bonds:
            graph.add_edge(bond.start, bond.end, order=bond.order)
        return graph


@dataclass(frozen=True, eq=False)
class AlignmentTransform:
    """Rigid transform ``p' = R @ p + t``."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        rot = np.array(self.rotation, dtype=float).reshape(3, 3)
        trans = np.array(self.translation, dtype=float).reshape(3)
        rot.setflags(write=False)
        trans.setflags(write=False)
        object.__setattr__(self, "rotation", rot)
        object.__setattr__(self, "translation", trans)

    @classmethod
    def identity(cls) -> AlignmentTransform:
        return cls()

    @property
    def is_identity(self) -> bool:
        return bool(np.array_equal(self.rotation, np.eye(3)) and not self.translation.any())

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform an ``(N, 3)`` array (or a single point)."""
        pts = np.asarray(points, dtype=float)
        return pts @ self.rotation.T + self.translation


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class SequenceConfig:
    """Settings for building an aligned, normalised sequence."""

    scale_cap: float = 1.0  # largest bounding-box edge after normalisation
    min_pairs: int = 3  # matched pairs needed before alignment is attempted
    eigen_method: str = "eigh"  # "eigh" or "power"
    power_iterations: int = 50
    seed: int | None = 0  # start vectors for power iteration
    auto_orient: bool = False  # PCA-orient the first entry


@dataclass
class RenderConfig:
    """Animation and rendering settings."""

    canvas_size: int = 600
    padding: float = 20.0
    atom_scale: float = 1.0
    bond_width: float = 4.0
    bond_color: str = "#555555"
    background: str = "#ffffff"
    fog: bool = False
    fog_strength: float = 0.8
    step: float = 0.02  # progress increment per tick
    min_bond_length: float = 0.01
    max_slots: int = 150
    color_overrides: dict[str, str] | None = None  # element symbol → hex color
    span: float = 1.25  # scene width drawn across the canvas, in normalised units


# ---------------------------------------------------------------------------
# Renderer hand-off
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AtomState:
    """One atom slot as it should be drawn this frame."""

    position: tuple[float, float, float]
    radius: float
    color: str
    opacity: float
    element: Element

    @property
    def visible(self) -> bool:
        return self.opacity > 0.0


@dataclass(frozen=True)
class BondState:
    """One bond slot as a cylinder: shortened endpoints plus centre/axis/length."""

    start: tuple[float, float, float]
    end: tuple[float, float, float]
    midpoint: tuple[float, float, float]
    direction: tuple[float, float, float]
    length: float
    rotation: tuple[float, float, float, float]  # quaternion (w, x, y, z) taking +y onto direction
    opacity: float
    order: int = 1


@dataclass(frozen=True)
class SceneUpdate:
    """Everything a renderer needs for one frame."""

    atoms: tuple[AtomState, ...]
    bonds: tuple[BondState, ...]
    progress: float
    playing: bool
    from_index: int
    to_index: int
