"""Least-squares rigid superposition (Kabsch) of matched point pairs.

The rotation is recovered from an SVD of the 3x3 cross-covariance built from
an eigen-decomposition of ``H^T H``.  Two eigensolvers are available:

* ``"eigh"`` -- LAPACK symmetric solver via :func:`numpy.linalg.eigh`.
* ``"power"`` -- power iteration with deflation: three dominant-eigenvector
  extractions from random start vectors, each followed by subtracting
  ``lambda * v v^T``.  Approximate, but adequate for visualisation.
"""

from __future__ import annotations

import logging

import numpy as np

from molmorph.types import AlignmentTransform

logger = logging.getLogger(__name__)

EIGEN_METHODS = ("eigh", "power")

_RANK_TOL = 1e-6  # singular values below this fraction of the largest are treated as zero


# ---------------------------------------------------------------------------
# 3x3 linear algebra
# ---------------------------------------------------------------------------


def power_iteration_eigen(
    m: np.ndarray,
    *,
    iterations: int = 50,
    seed: int | None = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Eigenpairs of a symmetric 3x3 matrix by power iteration and deflation.

    Each iterate is kept orthogonal to the vectors already found, so the
    returned eigenvectors (columns) form an orthonormal basis even when the
    deflated matrix has collapsed to zero.
    """
    rng = np.random.default_rng(seed)
    work = np.array(m, dtype=float)
    n = work.shape[0]
    values = np.zeros(n)
    vectors = np.zeros((n, n))

    for k in range(n):
        found = vectors[:, :k]
        v = rng.random(n) + 0.1
        v -= found @ (found.T @ v)
        v /= np.linalg.norm(v)
        for _ in range(iterations):
            w = work @ v
            w -= found @ (found.T @ w)
            norm = np.linalg.norm(w)
            if norm < 1e-300:
                break
            v = w / norm
        lam = float(v @ work @ v)
        values[k] = lam
        vectors[:, k] = v
        work -= lam * np.outer(v, v)

    return values, vectors


def symmetric_eigen(
    m: np.ndarray,
    *,
    method: str = "eigh",
    iterations: int = 50,
    seed: int | None = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Eigenvalues (descending) and matching eigenvector columns of a symmetric matrix."""
    if method == "eigh":
        values, vectors = np.linalg.eigh(m)
    elif method == "power":
        values, vectors = power_iteration_eigen(m, iterations=iterations, seed=seed)
    else:
        msg = f"Unknown eigen method {method!r} (expected one of {', '.join(EIGEN_METHODS)})"
        raise ValueError(msg)
    order = np.argsort(values)[::-1]
    return values[order], vectors[:, order]


def _orthonormal_to(u: np.ndarray) -> np.ndarray:
    """Any unit vector perpendicular to unit vector *u*."""
    axis = np.zeros(3)
    axis[np.argmin(np.abs(u))] = 1.0
    w = np.cross(u, axis)
    return w / np.linalg.norm(w)


def svd3x3(h: np.ndarray, **eigen_kwargs) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(U, S, V)`` with ``h = U @ diag(S) @ V.T`` and S descending.

    ``V`` comes from the eigenvectors of ``h.T @ h`` and ``U = h V S^-1``.
    Left singular vectors for zero singular values are completed with cross
    products so ``U`` stays orthonormal for rank-deficient (planar or
    collinear) inputs.
    """
    h = np.asarray(h, dtype=float)
    values, v = symmetric_eigen(h.T @ h, **eigen_kwargs)
    s = np.sqrt(np.clip(values, 0.0, None))

    if s[0] <= 0.0:
        return np.eye(3), s, v

    rank = int(np.sum(s > _RANK_TOL * s[0]))
    u = np.zeros((3, 3))
    for k in range(rank):
        u[:, k] = h @ v[:, k] / s[k]
    if rank < 2:
        u[:, 1] = _orthonormal_to(u[:, 0])
    if rank < 3:
        u[:, 2] = np.cross(u[:, 0], u[:, 1])
    return u, s, v


# ---------------------------------------------------------------------------
# Kabsch
# ---------------------------------------------------------------------------


def kabsch(
    points_a: np.ndarray,
    points_b: np.ndarray,
    *,
    min_pairs: int = 3,
    eigen_method: str = "eigh",
    iterations: int = 50,
    seed: int | None = 0,
) -> AlignmentTransform:
    """Rigid transform that best maps *points_a* onto *points_b*.

    Returns the identity when fewer than *min_pairs* pairs are given.  The
    rotation is always proper: if ``V U^T`` is a reflection, the right
    singular vector of the smallest singular value is negated.
    """
    a = np.asarray(points_a, dtype=float).reshape(-1, 3)
    b = np.asarray(points_b, dtype=float).reshape(-1, 3)
    if a.shape != b.shape:
        msg = f"Kabsch expects matched point lists, got {a.shape} and {b.shape}"
        raise ValueError(msg)

    if len(a) < min_pairs:
        logger.debug("Only %d matched pairs (need %d); using identity transform", len(a), min_pairs)
        return AlignmentTransform.identity()

    ca = a.mean(axis=0)
    cb = b.mean(axis=0)
    h = (a - ca).T @ (b - cb)

    u, _, v = svd3x3(h, method=eigen_method, iterations=iterations, seed=seed)
    rot = v @ u.T
    if np.linalg.det(rot) < 0:
        v = v.copy()
        v[:, 2] *= -1.0
        rot = v @ u.T

    trans = cb - rot @ ca
    transform = AlignmentTransform(rotation=rot, translation=trans)
    logger.debug("Kabsch fit over %d pairs: RMSD %.4f", len(a), rmsd(transform.apply(a), b))
    return transform


def rmsd(a: np.ndarray, b: np.ndarray) -> float:
    """Root-mean-square distance between two matched point lists."""
    a = np.asarray(a, dtype=float).reshape(-1, 3)
    b = np.asarray(b, dtype=float).reshape(-1, 3)
    if len(a) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.sum((a - b) ** 2, axis=1))))
