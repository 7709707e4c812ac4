"""Base class for Lie groups with a vector of coefficients as storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, TypeVar

import numpy as np

_G = TypeVar("_G", bound="LieGroup")

DEFAULT_PRECISION = 1e-12
_SERIES_MAX_TERMS = 400
_SERIES_TOL = 1e-17


class LieGroup(ABC):
    """Immutable element of a Lie group.

    Subclasses set ``REP_SIZE``, ``DOF``, ``DIM`` and ``IS_COMMUTATIVE`` and
    implement the coefficient-level operations.  Jacobians of the exponential
    map have generic implementations that subclasses may override with closed
    forms.

    Hessians of tangent maps ``J(a)`` are stored horizontally stacked, so that
    ``H[k, DOF * j + i]`` is the derivative of ``J[j, k]`` with respect to ``a[i]``.
    """

    REP_SIZE: ClassVar[int]
    DOF: ClassVar[int]
    DIM: ClassVar[int]
    IS_COMMUTATIVE: ClassVar[bool] = False

    __slots__ = ("_coeffs",)

    def __init__(self, coeffs) -> None:
        arr = np.array(coeffs, dtype=float).reshape(-1)
        if arr.shape != (self.REP_SIZE,):
            raise ValueError(
                f"{type(self).__name__} expects {self.REP_SIZE} coefficients, got {arr.size}"
            )
        arr.flags.writeable = False
        self._coeffs = arr

    # ------------------------------------------------------------------
    # Coefficient-level operations provided by each group

    @classmethod
    @abstractmethod
    def _identity_coeffs(cls) -> np.ndarray:
        """Coefficients of the identity element."""

    @classmethod
    @abstractmethod
    def _random_coeffs(cls, rng: np.random.Generator) -> np.ndarray:
        """Coefficients of a random element."""

    @classmethod
    @abstractmethod
    def _matrix_of(cls, coeffs: np.ndarray) -> np.ndarray:
        """Matrix form of the element with the given coefficients."""

    @classmethod
    @abstractmethod
    def _compose(cls, c1: np.ndarray, c2: np.ndarray) -> np.ndarray:
        """Coefficients of the composition of two elements."""

    @classmethod
    @abstractmethod
    def _invert(cls, coeffs: np.ndarray) -> np.ndarray:
        """Coefficients of the inverse element."""

    @classmethod
    @abstractmethod
    def _log_of(cls, coeffs: np.ndarray) -> np.ndarray:
        """Tangent logarithm of an element."""

    @classmethod
    @abstractmethod
    def _exp_of(cls, a: np.ndarray) -> np.ndarray:
        """Coefficients of the exponential of a tangent element."""

    @classmethod
    @abstractmethod
    def _hat_of(cls, a: np.ndarray) -> np.ndarray:
        """Matrix Lie algebra element of a tangent vector."""

    @classmethod
    @abstractmethod
    def _vee_of(cls, A: np.ndarray) -> np.ndarray:
        """Tangent vector of a matrix Lie algebra element."""

    # ------------------------------------------------------------------
    # Generic implementations, overridable with closed forms

    @classmethod
    def _Ad_of(cls, coeffs: np.ndarray) -> np.ndarray:
        X = cls._matrix_of(coeffs)
        X_inv = np.linalg.inv(X)
        columns = [cls._vee_of(X @ cls._hat_of(e) @ X_inv) for e in np.eye(cls.DOF)]
        return np.column_stack(columns)

    @classmethod
    def _ad_of(cls, a: np.ndarray) -> np.ndarray:
        A = cls._hat_of(a)
        columns = []
        for e in np.eye(cls.DOF):
            E = cls._hat_of(e)
            columns.append(cls._vee_of(A @ E - E @ A))
        return np.column_stack(columns)

    @classmethod
    def _exp_series(cls, a: np.ndarray) -> tuple[np.ndarray, list[np.ndarray]]:
        """Return dr_exp(a) = sum_k (-ad_a)^k / (k+1)! and its partial derivatives."""
        n = cls.DOF
        eye = np.eye(n)
        M = -cls._ad_of(a)
        dM = [-cls._ad_of(e) for e in eye]

        term = eye.copy()
        dterm = [np.zeros((n, n)) for _ in range(n)]
        total = eye.copy()
        dtotal = [np.zeros((n, n)) for _ in range(n)]

        for k in range(1, _SERIES_MAX_TERMS):
            dterm = [(dt @ M + term @ dm) / (k + 1) for dt, dm in zip(dterm, dM)]
            term = term @ M / (k + 1)
            total += term
            for acc, dt in zip(dtotal, dterm):
                acc += dt
            size = np.linalg.norm(term) + sum(np.linalg.norm(dt) for dt in dterm)
            if size <= _SERIES_TOL * (1.0 + np.linalg.norm(total)):
                break
        return total, dtotal

    @classmethod
    def _dr_exp_of(cls, a: np.ndarray) -> np.ndarray:
        return cls._exp_series(a)[0]

    @classmethod
    def _dr_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        return np.linalg.inv(cls._dr_exp_of(a))

    @classmethod
    def _d2r_exp_of(cls, a: np.ndarray) -> np.ndarray:
        return _stack_hessian(cls._exp_series(a)[1])

    @classmethod
    def _d2r_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        J, dJ = cls._exp_series(a)
        J_inv = np.linalg.inv(J)
        return _stack_hessian([-J_inv @ dj @ J_inv for dj in dJ])

    # ------------------------------------------------------------------
    # Input validation

    @classmethod
    def _as_tangent(cls, a) -> np.ndarray:
        arr = np.asarray(a, dtype=float).reshape(-1)
        if arr.size != cls.DOF:
            raise ValueError(f"{cls.__name__} tangent must have {cls.DOF} elements, got {arr.size}")
        return arr

    @classmethod
    def _as_algebra(cls, A) -> np.ndarray:
        arr = np.asarray(A, dtype=float)
        if arr.shape != (cls.DIM, cls.DIM):
            raise ValueError(f"{cls.__name__} algebra element must be {cls.DIM}x{cls.DIM}, got {arr.shape}")
        return arr

    # ------------------------------------------------------------------
    # Group API

    @property
    def coeffs(self) -> np.ndarray:
        """Read-only view of the internal coefficients."""
        return self._coeffs

    @classmethod
    def identity(cls: type[_G]) -> _G:
        """The group identity element."""
        return cls(cls._identity_coeffs())

    @classmethod
    def random(cls: type[_G], rng: np.random.Generator | None = None) -> _G:
        """A random element drawn with ``rng`` (a fresh generator if omitted)."""
        if rng is None:
            rng = np.random.default_rng()
        return cls(cls._random_coeffs(rng))

    def dof(self) -> int:
        """Degrees of freedom (tangent space dimension)."""
        return self.DOF

    def matrix(self) -> np.ndarray:
        """Matrix Lie group form of the element."""
        return np.asarray(self._matrix_of(self._coeffs), dtype=float)

    def is_approx(self, other: LieGroup, eps: float = DEFAULT_PRECISION) -> bool:
        """True if coefficients are approximately equal, relative to their size."""
        if type(other) is not type(self):
            raise TypeError(f"cannot compare {type(self).__name__} with {type(other).__name__}")
        diff = np.linalg.norm(self._coeffs - other._coeffs)
        scale = min(np.linalg.norm(self._coeffs), np.linalg.norm(other._coeffs))
        return bool(diff <= eps * scale)

    def __mul__(self: _G, other: _G) -> _G:
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self._compose(self._coeffs, other._coeffs))

    def inverse(self: _G) -> _G:
        """Group inverse."""
        return type(self)(self._invert(self._coeffs))

    def log(self) -> np.ndarray:
        """Tangent logarithm of the element."""
        return np.asarray(self._log_of(self._coeffs), dtype=float).reshape(self.DOF)

    def Ad(self) -> np.ndarray:
        """Group adjoint: ``Ad_X a = (X a^ X^-1)^v``."""
        if self.IS_COMMUTATIVE:
            return np.eye(self.DOF)
        return np.asarray(self._Ad_of(self._coeffs), dtype=float)

    def __add__(self: _G, a) -> _G:
        if isinstance(a, LieGroup):
            return NotImplemented
        return self * self.exp(a)

    def __sub__(self, other: LieGroup) -> np.ndarray:
        if type(other) is not type(self):
            return NotImplemented
        return (other.inverse() * self).log()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return bool(np.array_equal(self._coeffs, other._coeffs))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._coeffs.tolist()})"

    # ------------------------------------------------------------------
    # Tangent API

    @classmethod
    def exp(cls: type[_G], a) -> _G:
        """Exponential map."""
        return cls(cls._exp_of(cls._as_tangent(a)))

    @classmethod
    def hat(cls, a) -> np.ndarray:
        """Map a tangent vector to the matrix Lie algebra."""
        return np.asarray(cls._hat_of(cls._as_tangent(a)), dtype=float)

    @classmethod
    def vee(cls, A) -> np.ndarray:
        """Map a matrix Lie algebra element to a tangent vector."""
        return np.asarray(cls._vee_of(cls._as_algebra(A)), dtype=float).reshape(cls.DOF)

    @classmethod
    def ad(cls, a) -> np.ndarray:
        """Algebra adjoint: ``ad_a b = [a, b]``."""
        a = cls._as_tangent(a)
        if cls.IS_COMMUTATIVE:
            return np.zeros((cls.DOF, cls.DOF))
        return np.asarray(cls._ad_of(a), dtype=float)

    @classmethod
    def lie_bracket(cls, a, b) -> np.ndarray:
        """Lie bracket ``[a, b]``."""
        a = cls._as_tangent(a)
        b = cls._as_tangent(b)
        if cls.IS_COMMUTATIVE:
            return np.zeros(cls.DOF)
        return cls.ad(a) @ b

    @classmethod
    def dr_exp(cls, a) -> np.ndarray:
        """Right Jacobian of the exponential map."""
        a = cls._as_tangent(a)
        if cls.IS_COMMUTATIVE:
            return np.eye(cls.DOF)
        return np.asarray(cls._dr_exp_of(a), dtype=float)

    @classmethod
    def dr_expinv(cls, a) -> np.ndarray:
        """Inverse of the right Jacobian of the exponential map."""
        a = cls._as_tangent(a)
        if cls.IS_COMMUTATIVE:
            return np.eye(cls.DOF)
        return np.asarray(cls._dr_expinv_of(a), dtype=float)

    @classmethod
    def dl_exp(cls, a) -> np.ndarray:
        """Left Jacobian of the exponential map."""
        return cls.dr_exp(-cls._as_tangent(a))

    @classmethod
    def dl_expinv(cls, a) -> np.ndarray:
        """Inverse of the left Jacobian of the exponential map."""
        return cls.dr_expinv(-cls._as_tangent(a))

    @classmethod
    def d2r_exp(cls, a) -> np.ndarray:
        """Right Hessian of the exponential map, horizontally stacked."""
        a = cls._as_tangent(a)
        if cls.IS_COMMUTATIVE:
            return np.zeros((cls.DOF, cls.DOF * cls.DOF))
        return np.asarray(cls._d2r_exp_of(a), dtype=float)

    @classmethod
    def d2r_expinv(cls, a) -> np.ndarray:
        """Right Hessian of the inverse right Jacobian, horizontally stacked."""
        a = cls._as_tangent(a)
        if cls.IS_COMMUTATIVE:
            return np.zeros((cls.DOF, cls.DOF * cls.DOF))
        return np.asarray(cls._d2r_expinv_of(a), dtype=float)

    @classmethod
    def d2l_exp(cls, a) -> np.ndarray:
        """Left Hessian of the exponential map, horizontally stacked."""
        return -cls.d2r_exp(-cls._as_tangent(a))

    @classmethod
    def d2l_expinv(cls, a) -> np.ndarray:
        """Left Hessian of the inverse left Jacobian, horizontally stacked."""
        return -cls.d2r_expinv(-cls._as_tangent(a))


def _stack_hessian(partials: list[np.ndarray]) -> np.ndarray:
    """Stack partials dJ/da_i into H with H[k, n*j + i] = dJ_i[j, k]."""
    n = len(partials)
    stacked = np.stack(partials, axis=-1)  # [j, k, i]
    return stacked.transpose(1, 0, 2).reshape(n, n * n)