"""MDL molfile / SDF (V2000) parsing."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np

from molmorph.errors import ParseError
from molmorph.types import Bond, Element, Molecule

logger = logging.getLogger(__name__)

_HEADER_LINES = 3  # name, program, comment
_RECORD_END = "$$$$"


def split_records(text: str) -> list[str]:
    """Split a multi-record SDF into individual molfile records."""
    records = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip() == _RECORD_END:
            records.append("\n".join(current))
            current = []
        else:
            current.append(line)
    if any(line.strip() for line in current):
        records.append("\n".join(current))
    return records


def _parse_int(field: str, what: str) -> int:
    try:
        return int(field)
    except ValueError:
        msg = f"Invalid {what}: {field!r}"
        raise ParseError(msg) from None


def _parse_coord(field: str) -> float:
    try:
        return float(field)
    except ValueError:
        return math.nan


def parse_sdf(text: str, *, name: str | None = None) -> Molecule:
    """Parse a single V2000 molfile record.

    Coordinates come from the fixed columns 0-10, 10-20, 20-30 and the element
    symbol from columns 31-34.  Atoms whose coordinates are not finite numbers
    are dropped (bonds touching them go too); anything else that is malformed
    raises :class:`~molmorph.errors.ParseError`.
    """
    lines = text.splitlines()
    if len(lines) < _HEADER_LINES + 1:
        msg = f"Record too short: {len(lines)} lines"
        raise ParseError(msg)

    counts = lines[_HEADER_LINES]
    n_atoms = _parse_int(counts[0:3], "atom count")
    n_bonds = _parse_int(counts[3:6], "bond count")
    if n_atoms < 0 or n_bonds < 0:
        msg = f"Negative counts in {counts!r}"
        raise ParseError(msg)

    atom_start = _HEADER_LINES + 1
    bond_start = atom_start + n_atoms
    if len(lines) < bond_start + n_bonds:
        msg = f"Counts line declares {n_atoms} atoms and {n_bonds} bonds but only {len(lines) - atom_start} lines follow"
        raise ParseError(msg)

    positions = []
    elements = []
    # Raw atom number -> index in the kept atoms (None when dropped)
    kept: list[int | None] = []
    for line in lines[atom_start:bond_start]:
        xyz = [_parse_coord(line[k : k + 10]) for k in (0, 10, 20)]
        if not all(math.isfinite(c) for c in xyz):
            logger.debug("Dropping atom line with non-finite coordinates: %r", line)
            kept.append(None)
            continue
        kept.append(len(positions))
        positions.append(xyz)
        elements.append(Element.from_symbol(line[31:34]))

    if not positions:
        msg = "Parsed zero atoms"
        raise ParseError(msg)

    bonds = []
    for line in lines[bond_start : bond_start + n_bonds]:
        a = _parse_int(line[0:3], "bond atom") - 1
        b = _parse_int(line[3:6], "bond atom") - 1
        order = _parse_int(line[6:9], "bond order") if line[6:9].strip() else 1
        if not (0 <= a < n_atoms and 0 <= b < n_atoms) or a == b:
            msg = f"Bond {a + 1}-{b + 1} is invalid for {n_atoms} atoms"
            raise ParseError(msg)
        ka, kb = kept[a], kept[b]
        if ka is None or kb is None:
            continue
        bonds.append(Bond(ka, kb, order))

    title = lines[0].strip()
    mol = Molecule(
        positions=np.array(positions),
        elements=tuple(elements),
        bonds=tuple(bonds),
        name=name if name is not None else title,
    )
    logger.debug("Parsed %r: %d atoms, %d bonds", mol.name, len(mol), len(mol.bonds))
    return mol


def load_sdf(path: str | Path) -> list[Molecule]:
    """Parse every record in an SDF/molfile on disk."""
    path = Path(path)
    records = split_records(path.read_text())
    return [parse_sdf(record, name=path.stem if len(records) == 1 else None) for record in records]
