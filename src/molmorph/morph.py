"""Per-frame morphing between consecutive structures of a sequence.

A :class:`MorphController` owns a fixed pool of atom slots and a growable
pool of bond slots.  :meth:`~MorphController.begin_transition` retargets the
slots at another sequence entry; :meth:`~MorphController.tick` advances the
interpolation by one fixed step and returns the :class:`SceneUpdate` to draw.
There is no internal clock: call ``tick`` once per rendered frame, and layer
timed cycling on top with :class:`AutoAdvance`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from molmorph.colors import get_color, get_radius
from molmorph.errors import InvalidIndex
from molmorph.types import AtomState, BondState, Element, RenderConfig, SceneUpdate

if TYPE_CHECKING:
    from molmorph.sequence import SequenceEntry

logger = logging.getLogger(__name__)

_Y_AXIS = np.array([0.0, 1.0, 0.0])
_EPS = 1e-12


def ease_in_out(p: float) -> float:
    """Symmetric quadratic ease: slow, fast, slow.

    Examples
    --------
    >>> ease_in_out(0.0), ease_in_out(0.5), ease_in_out(1.0)
    (0.0, 0.5, 1.0)
    """
    if p < 0.5:
        return 2.0 * p * p
    return 1.0 - 2.0 * (1.0 - p) ** 2


def _y_to_direction(d: np.ndarray) -> tuple[float, float, float, float]:
    """Unit quaternion (w, x, y, z) rotating +y onto unit vector *d*."""
    c = float(d @ _Y_AXIS)
    if c < -1.0 + 1e-9:
        return (0.0, 1.0, 0.0, 0.0)
    axis = np.cross(_Y_AXIS, d)
    q = np.array([1.0 + c, axis[0], axis[1], axis[2]])
    q /= np.linalg.norm(q)
    return (float(q[0]), float(q[1]), float(q[2]), float(q[3]))


def bond_transform(
    start: np.ndarray,
    end: np.ndarray,
    r_start: float,
    r_end: float,
    *,
    min_length: float = 0.01,
    opacity: float = 1.0,
    order: int = 1,
) -> BondState:
    """Cylinder placement for a bond between two atom centres.

    The visible segment runs from the surface of the first sphere to the
    surface of the second.  When atoms overlap or coincide the segment is
    clamped to *min_length*, centred between the surfaces; coincident centres
    fall back to the +y axis.
    """
    a = np.asarray(start, dtype=float)
    b = np.asarray(end, dtype=float)
    vec = b - a
    dist = float(np.linalg.norm(vec))
    direction = vec / dist if dist > _EPS else _Y_AXIS.copy()

    p0 = a + direction * r_start
    p1 = b - direction * r_end
    length = dist - r_start - r_end
    mid = (p0 + p1) / 2
    if length < min_length:
        length = min_length
        p0 = mid - direction * (length / 2)
        p1 = mid + direction * (length / 2)

    return BondState(
        start=tuple(p0.tolist()),
        end=tuple(p1.tolist()),
        midpoint=tuple(mid.tolist()),
        direction=tuple(direction.tolist()),
        length=float(length),
        rotation=_y_to_direction(direction),
        opacity=float(opacity),
        order=order,
    )


# ---------------------------------------------------------------------------
# Controller state
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class _BondSlot:
    atoms: tuple[int, int]  # atom slots, lower first
    order: int
    start: np.ndarray  # (2, 3) endpoints when the transition began
    target: np.ndarray  # (2, 3)
    endpoints: np.ndarray  # (2, 3) current
    start_opacity: float = 0.0
    target_opacity: float = 0.0
    opacity: float = 0.0

    @property
    def free(self) -> bool:
        return self.opacity <= 0.0 and self.target_opacity <= 0.0


@dataclass(frozen=True, eq=False)
class MorphState:
    """Snapshot of the controller's interpolation state."""

    from_index: int
    to_index: int
    progress: float
    playing: bool
    start_positions: np.ndarray  # (slots, 3)
    target_positions: np.ndarray
    start_opacity: np.ndarray  # (slots,)
    target_opacity: np.ndarray
    bond_start_endpoints: np.ndarray  # (bond slots, 2, 3)
    bond_target_endpoints: np.ndarray


class MorphController:
    """Interpolates slot positions, opacities and bonds between sequence entries.

    Parameters
    ----------
    sequence:
        Entries to animate (e.g. a :class:`~molmorph.sequence.SequenceBuilder`).
        May grow while animating; published entries must not change.
    config:
        Step size, slot pool size, radii and colours.
    fade_in:
        Start with every slot transparent and immediately fade entry 0 in,
        instead of starting idle with entry 0 fully shown.
    """

    def __init__(
        self,
        sequence: Sequence[SequenceEntry],
        config: RenderConfig | None = None,
        *,
        fade_in: bool = False,
    ) -> None:
        if len(sequence) == 0:
            msg = "Cannot animate an empty sequence"
            raise InvalidIndex(msg)
        self.sequence = sequence
        self.config = config or RenderConfig()

        n = self.config.max_slots
        first = sequence[0].molecule
        self._slot_atom: list[int | None] = [i if i < len(first) else None for i in range(n)]
        if len(first) > n:
            logger.warning("%d atoms exceed the %d-slot pool; extra atoms are not drawn", len(first), n)
        self._elements = [Element.UNKNOWN] * n
        self._pos = np.zeros((n, 3))
        self._opacity = np.zeros(n)
        for slot, atom in enumerate(self._slot_atom):
            if atom is not None:
                self._pos[slot] = first.positions[atom]
                self._elements[slot] = first.elements[atom]
                self._opacity[slot] = 0.0 if fade_in else 1.0
        self._radii = np.zeros(n)
        self._colors = [""] * n
        self._refresh_style()

        self._start_pos = self._pos.copy()
        self._target_pos = self._pos.copy()
        self._start_opacity = self._opacity.copy()
        self._target_opacity = self._opacity.copy()

        self._bonds: list[_BondSlot] = []
        self._index = 0
        self._from_index = 0
        self._progress = 1.0
        self._playing = False
        self._retarget_bonds(first.bonds, {atom: slot for slot, atom in enumerate(self._slot_atom) if atom is not None})
        for bond in self._bonds:
            bond.opacity = bond.start_opacity = bond.target_opacity = 0.0 if fade_in else 1.0

        if fade_in:
            self.begin_transition(0)

    # -- read-only views ---------------------------------------------------

    @property
    def index(self) -> int:
        """Sequence index currently targeted."""
        return self._index

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def positions(self) -> np.ndarray:
        return self._pos.copy()

    @property
    def opacity(self) -> np.ndarray:
        return self._opacity.copy()

    @property
    def state(self) -> MorphState:
        return MorphState(
            from_index=self._from_index,
            to_index=self._index,
            progress=self._progress,
            playing=self._playing,
            start_positions=self._start_pos.copy(),
            target_positions=self._target_pos.copy(),
            start_opacity=self._start_opacity.copy(),
            target_opacity=self._target_opacity.copy(),
            bond_start_endpoints=np.array([b.start for b in self._bonds]).reshape(-1, 2, 3),
            bond_target_endpoints=np.array([b.target for b in self._bonds]).reshape(-1, 2, 3),
        )

    # -- transitions -------------------------------------------------------

    def _refresh_style(self) -> None:
        cfg = self.config
        for slot, element in enumerate(self._elements):
            self._radii[slot] = get_radius(element, cfg.atom_scale)
            self._colors[slot] = get_color(element, cfg.color_overrides)

    def _assign_slots(self, to_index: int) -> list[int | None]:
        """Decide which atom of entry *to_index* each slot will show."""
        entry = self.sequence[to_index]
        n_atoms = len(entry.molecule)
        n_slots = len(self._slot_atom)
        assignment: list[int | None] = [None] * n_slots
        placed = [False] * n_atoms

        if to_index == self._index:
            for slot, atom in enumerate(self._slot_atom):
                if atom is not None and atom < n_atoms:
                    assignment[slot] = atom
                    placed[atom] = True
        elif to_index == self._index + 1:
            # Mapping points back at the entry the slots currently show
            slot_of = {atom: slot for slot, atom in enumerate(self._slot_atom) if atom is not None}
            for atom, prev_atom in enumerate(entry.mapping):
                slot = slot_of.get(prev_atom) if prev_atom is not None else None
                if slot is not None:
                    assignment[slot] = atom
                    placed[atom] = True

        # Raw index fallback for anything the correspondence did not place
        leftover = []
        for atom in range(n_atoms):
            if placed[atom]:
                continue
            if atom < n_slots and assignment[atom] is None:
                assignment[atom] = atom
            else:
                leftover.append(atom)
        free = iter([slot for slot in range(n_slots) if assignment[slot] is None])
        dropped = 0
        for atom in leftover:
            slot = next(free, None)
            if slot is None:
                dropped += 1
                continue
            assignment[slot] = atom
        if dropped:
            logger.warning("%d atoms of entry %d do not fit the %d-slot pool", dropped, to_index, n_slots)
        return assignment

    def _retarget_bonds(self, bonds, slot_of_atom: dict[int, int]) -> None:
        wanted: dict[tuple[int, int], int] = {}
        for bond in bonds:
            sa = slot_of_atom.get(bond.start)
            sb = slot_of_atom.get(bond.end)
            if sa is None or sb is None:
                continue
            wanted[(min(sa, sb), max(sa, sb))] = bond.order

        for slot in self._bonds:
            slot.start = slot.endpoints.copy()
            slot.target = self._target_pos[list(slot.atoms)]
            slot.start_opacity = slot.opacity
            order = wanted.pop(slot.atoms, None)
            if order is None:
                slot.target_opacity = 0.0
            else:
                slot.order = order
                slot.target_opacity = 1.0

        free = iter([slot for slot in self._bonds if slot.free])
        for pair, order in wanted.items():
            start = self._start_pos[list(pair)]
            target = self._target_pos[list(pair)]
            slot = next(free, None)
            if slot is None:
                slot = _BondSlot(pair, order, start, target, start.copy())
                self._bonds.append(slot)
            else:
                slot.atoms, slot.order = pair, order
                slot.start, slot.target, slot.endpoints = start, target, start.copy()
                slot.start_opacity = slot.opacity = 0.0
            slot.target_opacity = 1.0

    def begin_transition(self, to_index: int) -> None:
        """Start morphing from the current (possibly mid-flight) frame toward entry *to_index*."""
        if not 0 <= to_index < len(self.sequence):
            msg = f"Transition target {to_index} outside sequence of length {len(self.sequence)}"
            raise InvalidIndex(msg)

        target = self.sequence[to_index].molecule
        assignment = self._assign_slots(to_index)

        self._start_pos = self._pos.copy()
        self._start_opacity = self._opacity.copy()
        self._target_pos = self._start_pos.copy()
        self._target_opacity = np.zeros(len(assignment))
        slot_of_atom = {}
        for slot, atom in enumerate(assignment):
            if atom is None:
                continue
            slot_of_atom[atom] = slot
            self._target_pos[slot] = target.positions[atom]
            self._target_opacity[slot] = 1.0
            self._elements[slot] = target.elements[atom]
        self._slot_atom = assignment
        self._refresh_style()
        self._retarget_bonds(target.bonds, slot_of_atom)

        logger.debug(
            "Transition %d -> %d (progress was %.2f): %d atoms shown",
            self._index,
            to_index,
            self._progress,
            len(slot_of_atom),
        )
        self._from_index = self._index
        self._index = to_index
        self._progress = 0.0
        self._playing = True

    def tick(self) -> SceneUpdate:
        """Advance one frame and return the scene to draw."""
        if self._playing:
            p = min(self._progress + self.config.step, 1.0)
            if p >= 1.0 - 1e-9:
                p = 1.0
            self._progress = p
            t = ease_in_out(p)

            self._pos = self._start_pos + (self._target_pos - self._start_pos) * t
            self._opacity = self._start_opacity + (self._target_opacity - self._start_opacity) * t
            for bond in self._bonds:
                bond.endpoints = bond.start + (bond.target - bond.start) * t
                bond.opacity = bond.start_opacity + (bond.target_opacity - bond.start_opacity) * t

            if p >= 1.0:
                self._playing = False
                logger.debug("Transition to %d finished", self._index)
        return self.scene()

    def scene(self) -> SceneUpdate:
        """Current frame, without advancing."""
        atoms = tuple(
            AtomState(
                position=tuple(self._pos[slot].tolist()),
                radius=float(self._radii[slot]),
                color=self._colors[slot],
                opacity=float(self._opacity[slot]),
                element=self._elements[slot],
            )
            for slot in range(len(self._slot_atom))
        )
        bonds = tuple(
            bond_transform(
                bond.endpoints[0],
                bond.endpoints[1],
                float(self._radii[bond.atoms[0]]),
                float(self._radii[bond.atoms[1]]),
                min_length=self.config.min_bond_length,
                opacity=bond.opacity,
                order=bond.order,
            )
            for bond in self._bonds
        )
        return SceneUpdate(
            atoms=atoms,
            bonds=bonds,
            progress=self._progress,
            playing=self._playing,
            from_index=self._from_index,
            to_index=self._index,
        )


class AutoAdvance:
    """Cycle a controller through its sequence every *interval* seconds.

    *clock* returns seconds; pass a frame counter divided by fps to drive
    offline rendering deterministically.
    """

    def __init__(
        self,
        controller: MorphController,
        interval: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.controller = controller
        self.interval = interval
        self.clock = clock
        self._last = clock()

    def poll(self) -> bool:
        """Begin the next transition if the interval has elapsed; return whether it did."""
        now = self.clock()
        if now - self._last < self.interval - 1e-9:
            return False
        self._last = now
        nxt = (self.controller.index + 1) % len(self.controller.sequence)
        self.controller.begin_transition(nxt)
        return True
