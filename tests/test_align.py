"""Tests for the Kabsch superposition and its 3x3 eigen/SVD helpers."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import rot_z, triangle

from molmorph.align import kabsch, power_iteration_eigen, rmsd, svd3x3, symmetric_eigen
from molmorph.mapping import compute_atom_mapping, matched_pairs


def _random_rotation(rng: np.random.Generator) -> np.ndarray:
    q, _ = np.linalg.qr(rng.normal(size=(3, 3)))
    if np.linalg.det(q) < 0:
        q[:, 0] *= -1.0
    return q


# ---------------------------------------------------------------------------
# Eigen-decomposition
# ---------------------------------------------------------------------------


def test_power_iteration_diagonal():
    values, vectors = power_iteration_eigen(np.diag([3.0, 2.0, 1.0]))
    assert np.allclose(values, [3.0, 2.0, 1.0], atol=1e-6)
    assert np.allclose(np.abs(vectors), np.eye(3), atol=1e-4)


def test_power_iteration_orthonormal_on_rank_deficient():
    m = np.outer([1.0, 2.0, 2.0], [1.0, 2.0, 2.0])
    _, vectors = power_iteration_eigen(m)
    assert np.allclose(vectors.T @ vectors, np.eye(3), atol=1e-9)


@pytest.mark.parametrize("method", ["eigh", "power"])
def test_symmetric_eigen_sorted_descending(method):
    m = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 0.5]])
    values, vectors = symmetric_eigen(m, method=method)
    assert np.allclose(values, [3.0, 1.0, 0.5], atol=1e-6)
    for k in range(3):
        assert np.allclose(m @ vectors[:, k], values[k] * vectors[:, k], atol=1e-5)


def test_symmetric_eigen_unknown_method():
    with pytest.raises(ValueError, match="Unknown eigen method"):
        symmetric_eigen(np.eye(3), method="jacobi")


def test_svd3x3_reconstructs():
    h = np.random.default_rng(7).normal(size=(3, 3))
    u, s, v = svd3x3(h)
    assert np.allclose(u @ np.diag(s) @ v.T, h, atol=1e-9)
    assert np.allclose(u.T @ u, np.eye(3), atol=1e-9)
    assert np.all(np.diff(s) <= 0)


def test_svd3x3_rank_deficient_keeps_u_orthonormal():
    h = np.outer([1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
    u, s, _ = svd3x3(h)
    assert np.allclose(s, [1.0, 0.0, 0.0], atol=1e-6)
    assert np.allclose(u.T @ u, np.eye(3), atol=1e-9)


# ---------------------------------------------------------------------------
# Kabsch
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 2])
def test_too_few_pairs_is_exact_identity(n):
    pts = np.arange(n * 3, dtype=float).reshape(-1, 3)
    tf = kabsch(pts, pts + 10.0)
    assert tf.is_identity
    assert np.array_equal(tf.rotation, np.eye(3))
    assert np.array_equal(tf.translation, np.zeros(3))


def test_min_pairs_threshold_configurable():
    pts = np.random.default_rng(1).normal(size=(4, 3))
    assert kabsch(pts, pts + 1.0, min_pairs=5).is_identity
    assert np.allclose(kabsch(pts, pts + 1.0, min_pairs=4).translation, [1.0, 1.0, 1.0])


def test_mismatched_shapes():
    with pytest.raises(ValueError, match="matched point lists"):
        kabsch(np.zeros((4, 3)), np.zeros((3, 3)))


@pytest.mark.parametrize("method", ["eigh", "power"])
def test_self_alignment_is_identity(method):
    pts = np.random.default_rng(3).normal(size=(10, 3)) * [4.0, 2.0, 0.5]
    tf = kabsch(pts, pts, eigen_method=method)
    assert np.allclose(tf.rotation, np.eye(3), atol=1e-6)
    assert np.allclose(tf.translation, np.zeros(3), atol=1e-6)


@pytest.mark.parametrize("method", ["eigh", "power"])
def test_rotated_triangle_recovered(method):
    a = triangle()
    b = a.with_positions(a.positions @ rot_z(90).T + [5.0, 5.0, 0.0])

    mapping = compute_atom_mapping(a, b)
    assert mapping == [0, 1, 2]

    pa, pb = matched_pairs(a, b, mapping)
    tf = kabsch(pa, pb, eigen_method=method)
    assert np.allclose(tf.apply(a.positions), b.positions, atol=1e-3)
    assert np.linalg.det(tf.rotation) == pytest.approx(1.0, abs=1e-6)


def test_random_rigid_motion_recovered():
    rng = np.random.default_rng(11)
    pts = rng.normal(size=(15, 3))
    rot = _random_rotation(rng)
    moved = pts @ rot.T + [1.0, -2.0, 3.0]
    tf = kabsch(pts, moved)
    assert np.allclose(tf.rotation, rot, atol=1e-8)
    assert rmsd(tf.apply(pts), moved) < 1e-8


def test_power_method_on_anisotropic_cloud():
    rng = np.random.default_rng(5)
    pts = rng.normal(size=(20, 3)) * [5.0, 2.0, 0.5]
    rot = _random_rotation(rng)
    moved = pts @ rot.T - [0.5, 0.5, 0.5]
    tf = kabsch(pts, moved, eigen_method="power")
    assert rmsd(tf.apply(pts), moved) < 1e-3


@pytest.mark.parametrize("method", ["eigh", "power"])
def test_mirror_image_gives_proper_rotation(method):
    pts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 2.0, 0.0], [0.0, 0.0, 3.0], [1.0, 1.0, 1.0]])
    mirrored = pts * [1.0, 1.0, -1.0]
    tf = kabsch(pts, mirrored, eigen_method=method)
    assert np.linalg.det(tf.rotation) == pytest.approx(1.0, abs=1e-6)
    assert np.allclose(tf.rotation @ tf.rotation.T, np.eye(3), atol=1e-6)


def test_collinear_points_give_proper_rotation():
    pts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    target = pts[:, [1, 0, 2]]  # line along y
    tf = kabsch(pts, target)
    assert np.linalg.det(tf.rotation) == pytest.approx(1.0)
    assert np.allclose(tf.apply(pts), target, atol=1e-9)


def test_rmsd():
    a = np.zeros((2, 3))
    b = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    assert rmsd(a, b) == pytest.approx(1.0)
    assert rmsd(np.zeros((0, 3)), np.zeros((0, 3))) == 0.0
