"""Tests for the greedy atom correspondence."""

from __future__ import annotations

import numpy as np
from conftest import rot_z, triangle

from molmorph.mapping import compute_atom_mapping, matched_pairs
from molmorph.sdf import load_sdf
from molmorph.types import Bond, Element, Molecule


def _mol(symbols, bonds=()):
    elements = tuple(Element.from_symbol(s) for s in symbols)
    positions = np.arange(len(symbols) * 3, dtype=float).reshape(-1, 3)
    return Molecule(positions=positions, elements=elements, bonds=tuple(Bond(a, b) for a, b in bonds))


def test_identical_triangles_map_in_order():
    a = triangle()
    b = a.with_positions(a.positions @ rot_z(90).T + [5.0, 5.0, 0.0])
    assert compute_atom_mapping(a, b) == [0, 1, 2]


def test_topology_beats_index_order():
    # The carbon bonded to oxygen in the reference is index 1, not 0
    new = _mol(["O", "C"], [(0, 1)])
    ref = _mol(["C", "C", "O"], [(1, 2)])
    assert compute_atom_mapping(new, ref) == [2, 1]


def test_ties_go_to_lowest_reference_index():
    new = _mol(["C"])
    ref = _mol(["N", "C", "C"])
    assert compute_atom_mapping(new, ref) == [1]


def test_unmatched_when_no_element_left():
    new = _mol(["C", "C", "S"], [(0, 1), (1, 2)])
    ref = _mol(["C", "O"], [(0, 1)])
    mapping = compute_atom_mapping(new, ref)
    assert mapping[0] == 0
    assert mapping[1] is None  # only one carbon in the reference
    assert mapping[2] is None  # no sulfur at all


def test_greedy_does_not_backtrack():
    # Atom 0 grabs reference 0 on the index tie-break; atom 1 then cannot get
    # the carbon bonded to reference 2 even though a better global mapping exists.
    new = _mol(["C", "C", "O"], [(1, 2)])
    ref = _mol(["C", "C", "O"], [(0, 2)])
    assert compute_atom_mapping(new, ref) == [0, 1, 2]


def test_mapping_length_matches_new_molecule():
    new = _mol(["C"] * 5)
    ref = _mol(["C"] * 2)
    mapping = compute_atom_mapping(new, ref)
    assert len(mapping) == 5
    assert mapping == [0, 1, None, None, None]


def test_injective_and_element_preserving(examples_dir):
    (ethanol,) = load_sdf(examples_dir / "ethanol.sdf")
    (propanol,) = load_sdf(examples_dir / "propanol.sdf")
    for new, ref in ((propanol, ethanol), (ethanol, propanol)):
        mapping = compute_atom_mapping(new, ref)
        assigned = [j for j in mapping if j is not None]
        assert len(assigned) == len(set(assigned))
        for i, j in enumerate(mapping):
            if j is not None:
                assert new.elements[i] is ref.elements[j]


def test_propanol_onto_ethanol_keeps_backbone(examples_dir):
    (ethanol,) = load_sdf(examples_dir / "ethanol.sdf")
    (propanol,) = load_sdf(examples_dir / "propanol.sdf")
    mapping = compute_atom_mapping(propanol, ethanol)
    # C1 -> C1, C2 -> C2 (bonded to C1), C3 left over, O -> O
    assert mapping[:4] == [0, 1, None, 2]


def test_matched_pairs():
    new = _mol(["C", "O", "N"])
    ref = _mol(["O", "C"])
    p_new, p_ref = matched_pairs(new, ref, [1, 0, None])
    assert p_new.shape == (2, 3)
    assert np.array_equal(p_new, new.positions[[0, 1]])
    assert np.array_equal(p_ref, ref.positions[[1, 0]])


def test_matched_pairs_empty():
    p_new, p_ref = matched_pairs(_mol(["C"]), _mol(["O"]), [None])
    assert p_new.shape == (0, 3)
    assert p_ref.shape == (0, 3)
