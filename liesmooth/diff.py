"""Differentiation of functions between manifolds, in tangent space."""

from __future__ import annotations

import math
import numbers
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np

from .lie_group import LieGroup

_EPS = float(np.finfo(float).eps)
# Forward-difference step for first derivatives.
_STEP1 = math.sqrt(_EPS)
# Central-difference step for second derivatives.
_STEP2 = _EPS**0.25


class DiffType(Enum):
    """Available differentiation methods."""

    NUMERICAL = "numerical"
    """Numerical derivatives (forward differences for first order)."""
    ANALYTIC = "analytic"
    """Hand-coded derivatives: the function has ``jacobian`` (and ``hessian``) methods."""
    DEFAULT = "default"
    """Analytic when the function provides derivatives, numerical otherwise."""


def _is_scalar(x: Any) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, (bool, np.bool_))


def dof(x: Any) -> int:
    """Degrees of freedom of a manifold element (scalar, vector or Lie group)."""
    if isinstance(x, LieGroup):
        return x.dof()
    if isinstance(x, np.ndarray):
        return int(x.size)
    if _is_scalar(x):
        return 1
    raise TypeError(f"{type(x).__name__} is not a manifold type")


def _tangent(a: Any, n: int) -> np.ndarray:
    arr = np.asarray(a, dtype=float).reshape(-1)
    if arr.size != n:
        raise ValueError(f"tangent must have {n} elements, got {arr.size}")
    return arr


def rplus(x: Any, a: Any) -> Any:
    """Right-plus ``x ⊕ a``: move ``x`` along the tangent vector ``a``."""
    if isinstance(x, LieGroup):
        return x + _tangent(a, x.dof())
    if isinstance(x, np.ndarray):
        return x.astype(float) + _tangent(a, x.size).reshape(x.shape)
    if _is_scalar(x):
        return float(x) + float(_tangent(a, 1)[0])
    raise TypeError(f"{type(x).__name__} is not a manifold type")


def rminus(x: Any, y: Any) -> np.ndarray:
    """Right-minus ``x ⊖ y``: the tangent vector ``a`` with ``y ⊕ a = x``."""
    if isinstance(x, LieGroup):
        if type(x) is not type(y):
            raise TypeError(f"cannot subtract {type(y).__name__} from {type(x).__name__}")
        return x - y
    if isinstance(x, np.ndarray):
        other = np.asarray(y, dtype=float)
        if other.size != x.size:
            raise ValueError(f"size mismatch: {x.size} and {other.size}")
        return (x.astype(float).reshape(-1) - other.reshape(-1)).astype(float)
    if _is_scalar(x):
        if not _is_scalar(y):
            raise TypeError(f"cannot subtract {type(y).__name__} from a scalar")
        return np.array([float(x) - float(y)])
    raise TypeError(f"{type(x).__name__} is not a manifold type")


def _perturb(args: list, selected: Sequence[int], sizes: Sequence[int], a: np.ndarray) -> list:
    out = list(args)
    start = 0
    for i, n in zip(selected, sizes):
        out[i] = rplus(out[i], a[start : start + n])
        start += n
    return out


def _dense(m: Any) -> np.ndarray:
    if hasattr(m, "toarray"):
        m = m.toarray()
    return np.atleast_2d(np.asarray(m, dtype=float))


def _numerical(f: Callable, args: list, order: int, selected: list[int]) -> tuple:
    F = f(*args)
    if order == 0:
        return (F,)

    sizes = [dof(args[i]) for i in selected]
    nx = sum(sizes)
    ny = dof(F)
    basis = np.eye(nx)

    def g(a: np.ndarray) -> np.ndarray:
        return rminus(f(*_perturb(args, selected, sizes, a)), F).reshape(ny)

    J = np.empty((ny, nx))
    for i, e in enumerate(basis):
        J[:, i] = g(_STEP1 * e) / _STEP1
    if order == 1:
        return F, J

    def g2(a1: np.ndarray, a2: np.ndarray) -> np.ndarray:
        inner = _perturb(args, selected, sizes, a1)
        return rminus(f(*_perturb(inner, selected, sizes, a2)), F).reshape(ny)

    h = _STEP2
    H = np.empty((nx, nx * ny))
    block_cols = np.arange(ny) * nx
    for i, ei in enumerate(basis):
        di = h * ei
        for j, ej in enumerate(basis):
            dj = h * ej
            val = (g2(di, dj) - g2(di, -dj) - g2(-di, dj) + g2(-di, -dj)) / (4.0 * h * h)
            H[j, block_cols + i] = val
    return F, J, H


def _analytic(f: Callable, args: list, order: int, selected: list[int]) -> tuple:
    F = f(*args)
    if order == 0:
        return (F,)

    jacobian = getattr(f, "jacobian", None)
    if not callable(jacobian):
        raise TypeError("analytic differentiation requires a 'jacobian' method")

    offsets = [0]
    for arg in args:
        offsets.append(offsets[-1] + dof(arg))
    nx_all = offsets[-1]
    ny = dof(F)
    cols = [c for i in selected for c in range(offsets[i], offsets[i + 1])]

    J = _dense(jacobian(*args))
    if J.shape != (ny, nx_all):
        raise ValueError(f"jacobian must have shape {(ny, nx_all)}, got {J.shape}")
    J = J[:, cols]
    if order == 1:
        return F, J

    hessian = getattr(f, "hessian", None)
    if not callable(hessian):
        raise TypeError("second order analytic differentiation requires a 'hessian' method")
    H = _dense(hessian(*args))
    if H.shape != (nx_all, nx_all * ny):
        raise ValueError(f"hessian must have shape {(nx_all, nx_all * ny)}, got {H.shape}")
    hcols = [k * nx_all + c for k in range(ny) for c in cols]
    return F, J, H[np.ix_(cols, hcols)]


def dr(
    f: Callable,
    x: Any,
    order: int = 1,
    method: DiffType | str = DiffType.DEFAULT,
    idx: Sequence[int] | None = None,
) -> tuple:
    """Differentiate ``f`` in tangent space at the arguments ``x``.

    ``x`` is a tuple of arguments (any other value is taken as a single
    argument).  Returns ``(f(x),)`` for order 0, ``(f(x), J)`` for order 1 and
    ``(f(x), J, H)`` for order 2.  ``J[i, j]`` is the derivative of the i:th
    degree of freedom of ``f`` with respect to the j:th degree of freedom of the
    arguments; ``H`` horizontally stacks one Hessian per output degree of
    freedom.  ``idx`` restricts differentiation to the arguments at those
    positions.
    """
    if order not in (0, 1, 2):
        raise ValueError(f"differentiation order must be 0, 1 or 2, got {order}")
    method = DiffType(method)
    args = list(x) if isinstance(x, tuple) else [x]

    if idx is None:
        selected = list(range(len(args)))
    else:
        selected = [range(len(args))[i] for i in _checked_indices(idx, len(args))]

    if method is DiffType.DEFAULT:
        has_jac = callable(getattr(f, "jacobian", None))
        has_hess = callable(getattr(f, "hessian", None))
        if order >= 1 and has_jac and (order == 1 or has_hess):
            method = DiffType.ANALYTIC
        else:
            method = DiffType.NUMERICAL

    if method is DiffType.ANALYTIC:
        return _analytic(f, args, order, selected)
    return _numerical(f, args, order, selected)


def _checked_indices(idx: Sequence[int], n: int) -> list[int]:
    out = []
    for i in idx:
        if not -n <= i < n:
            raise ValueError(f"argument index {i} out of range for {n} arguments")
        out.append(i)
    if len({i % n for i in out}) != len(out):
        raise ValueError("argument indices must be distinct")
    return out