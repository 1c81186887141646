"""Greedy atom correspondence between two structures."""

from __future__ import annotations

import logging
from collections import defaultdict

import numpy as np

from molmorph.types import Element, Molecule

logger = logging.getLogger(__name__)

AtomMapping = list[int | None]


def compute_atom_mapping(new: Molecule, ref: Molecule) -> AtomMapping:
    """Map atoms of *new* onto atoms of *ref*.

    Atoms of *new* are visited in index order.  Each takes the unused *ref*
    atom with the same element that agrees with the most already-mapped,
    lower-indexed neighbours (a neighbour ``k`` of ``i`` agrees with candidate
    ``j`` when ``mapping[k]`` is bonded to ``j`` in *ref*).  Ties go to the
    lowest *ref* index.  Single pass, no backtracking, so symmetric
    substructures can come out suboptimal.

    Returns a list of length ``len(new)``; ``None`` marks an unmatched atom.
    """
    g_new = new.to_graph()
    g_ref = ref.to_graph()

    candidates: dict[Element, list[int]] = defaultdict(list)
    for j, element in enumerate(ref.elements):
        candidates[element].append(j)

    mapping: AtomMapping = [None] * len(new)
    used = [False] * len(ref)

    for i, element in enumerate(new.elements):
        mapped_neighbours = [mapping[k] for k in g_new.adj[i] if k < i and mapping[k] is not None]
        best_j = None
        best_score = -1
        for j in candidates[element]:
            if used[j]:
                continue
            score = sum(1 for m in mapped_neighbours if g_ref.has_edge(j, m))
            if score > best_score:
                best_score = score
                best_j = j
        if best_j is not None:
            mapping[i] = best_j
            used[best_j] = True

    n_matched = sum(1 for j in mapping if j is not None)
    logger.debug("Matched %d/%d atoms against %d reference atoms", n_matched, len(new), len(ref))
    return mapping


def matched_pairs(new: Molecule, ref: Molecule, mapping: AtomMapping) -> tuple[np.ndarray, np.ndarray]:
    """Coordinates of matched atoms as two aligned ``(K, 3)`` arrays (new, ref)."""
    idx_new = [i for i, j in enumerate(mapping) if j is not None]
    idx_ref = [j for j in mapping if j is not None]
    return new.positions[idx_new].reshape(-1, 3), ref.positions[idx_ref].reshape(-1, 3)
