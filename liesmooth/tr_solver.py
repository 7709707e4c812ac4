"""Trust-region step determination for least-squares problems."""

from __future__ import annotations

import numpy as np


def _validate(J, d, r) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    J = np.atleast_2d(np.asarray(J, dtype=float))
    d = np.asarray(d, dtype=float).reshape(-1)
    r = np.asarray(r, dtype=float).reshape(-1)
    if J.ndim != 2:
        raise ValueError(f"J must be a matrix, got shape {J.shape}")
    m, n = J.shape
    if d.size != n:
        raise ValueError(f"d must have {n} elements, got {d.size}")
    if r.size != m:
        raise ValueError(f"r must have {m} elements, got {r.size}")
    return J, d, r


def solve_linear_ldlt(J, d, r, lambda_: float, with_dphi: bool = False):
    """Least-squares solution ``dx`` of ``[J; sqrt(lambda) D] dx = [-r; 0]``.

    Solves the normal equations ``(J'J + lambda D'D) dx = -J'r`` where ``D`` is
    the diagonal matrix with diagonal ``d``.  With ``with_dphi`` the pair
    ``(dx, dphi)`` is returned, where ``dphi`` is the derivative with respect to
    ``lambda`` of ``phi(lambda) = ||D dx||``.
    """
    J, d, r = _validate(J, d, r)
    if lambda_ == 0:
        raise ValueError("lambda must be non-zero")

    H = J.T @ J + lambda_ * np.diag(d * d)
    x = np.linalg.solve(H, -J.T @ r)
    if not with_dphi:
        return x

    Dx = -d * x
    norm = np.linalg.norm(Dx)
    unit = Dx / norm if norm > 0 else np.zeros_like(Dx)
    y = np.linalg.solve(H, d * Dx)
    dphi = float(-(d * unit) @ y)
    return x, dphi


def solve_trust_region(J, d, r, delta: float) -> tuple[np.ndarray, float]:
    """Approximately solve ``min 0.5 ||J dx + r||^2  s.t.  ||D dx|| <= delta``.

    Returns ``(dx, lambda)`` where ``lambda`` is the Lagrange multiplier of the
    constraint, currently set to ``1 / delta``.
    """
    if not delta > 0:
        raise ValueError(f"trust region size must be positive, got {delta}")
    lambda_ = 1.0 / delta
    return solve_linear_ldlt(J, d, r, lambda_), lambda_