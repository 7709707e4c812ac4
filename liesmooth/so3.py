"""The group of 3D rotations, stored as a unit quaternion."""

from __future__ import annotations

import math
from fractions import Fraction

import numpy as np

from .lie_group import LieGroup, _stack_hessian
from .so2 import SO2

# Below these squared angles closed forms are replaced by power series.
_EPS2 = 1e-12
_SERIES_BOUND = 1.0
_SERIES_TERMS = 12

# Bernoulli numbers B_2, B_4, ..., B_20.
_BERNOULLI = (
    Fraction(1, 6),
    Fraction(-1, 30),
    Fraction(1, 42),
    Fraction(-1, 30),
    Fraction(5, 66),
    Fraction(-691, 2730),
    Fraction(7, 6),
    Fraction(-3617, 510),
    Fraction(43867, 798),
    Fraction(-174611, 330),
)


def _factorial_series(offset: int) -> tuple[float, ...]:
    """Coefficients c_n = (-1)^n / (2n + offset)! of a series in th^2."""
    return tuple((-1) ** n / math.factorial(2 * n + offset) for n in range(_SERIES_TERMS))


def _derivative_over_th(coeffs: tuple[float, ...]) -> tuple[float, ...]:
    """Coefficients of (df/dth) / th for f = sum c_n th^(2n)."""
    return tuple(2 * n * c for n, c in enumerate(coeffs) if n > 0)


def _poly(coeffs: tuple[float, ...], x: float) -> float:
    result = 0.0
    for c in reversed(coeffs):
        result = result * x + c
    return result


# (1 - cos th) / th^2
_ONE_MINUS_COS = _factorial_series(2)
# (th - sin th) / th^3
_TH_MINUS_SIN = _factorial_series(3)
# (cos th - 1 + th^2 / 2) / th^4
_COS_REMAINDER = _factorial_series(4)
# 1 / th^2 - (1 + cos th) / (2 th sin th)
_EXPINV = tuple(float(abs(b) / math.factorial(2 * m + 2)) for m, b in enumerate(_BERNOULLI))

_D_ONE_MINUS_COS = _derivative_over_th(_ONE_MINUS_COS)
_D_TH_MINUS_SIN = _derivative_over_th(_TH_MINUS_SIN)
_D_EXPINV = _derivative_over_th(_EXPINV)


def _exp_jac_coeffs(th2: float) -> tuple[float, float]:
    """(1 - cos th) / th^2 and (th - sin th) / th^3."""
    if th2 < _SERIES_BOUND:
        return _poly(_ONE_MINUS_COS, th2), _poly(_TH_MINUS_SIN, th2)
    th = math.sqrt(th2)
    return (1.0 - math.cos(th)) / th2, (th - math.sin(th)) / (th2 * th)


def _exp_jac_derivs(th2: float) -> tuple[float, float]:
    """Derivatives of the coefficients in ``_exp_jac_coeffs`` divided by th."""
    if th2 < _SERIES_BOUND:
        return _poly(_D_ONE_MINUS_COS, th2), _poly(_D_TH_MINUS_SIN, th2)
    th = math.sqrt(th2)
    s, c = math.sin(th), math.cos(th)
    th3, th4 = th2 * th, th2 * th2
    th5 = th3 * th2
    return s / th3 + 2 * c / th4 - 2 / th4, -c / th4 - 2 / th4 + 3 * s / th5


def _cos_remainder(th2: float) -> float:
    if th2 < _SERIES_BOUND:
        return _poly(_COS_REMAINDER, th2)
    return (math.cos(math.sqrt(th2)) - 1.0 + th2 / 2.0) / (th2 * th2)


def _expinv_coeff(th2: float) -> float:
    if th2 < _SERIES_BOUND:
        return _poly(_EXPINV, th2)
    th = math.sqrt(th2)
    return 1.0 / th2 - (1.0 + math.cos(th)) / (2.0 * th * math.sin(th))


def _expinv_deriv(th2: float) -> float:
    if th2 < _SERIES_BOUND:
        return _poly(_D_EXPINV, th2)
    th = math.sqrt(th2)
    s, c = math.sin(th), math.cos(th)
    th3, th4 = th2 * th, th2 * th2
    return (
        1 / (2 * th2)
        + c * c / (2 * th2 * s * s)
        + c / (2 * th2 * s * s)
        + c / (2 * th3 * s)
        + 1 / (2 * th3 * s)
        - 2 / th4
    )


def _hat3(a: np.ndarray) -> np.ndarray:
    x, y, z = a
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def _positive_w(q: np.ndarray) -> np.ndarray:
    return -q if q[3] < 0 else q


class SO3(LieGroup):
    """3D rotation with quaternion coefficients ``[qx, qy, qz, qw]``.

    Elements built by this class have unit norm and ``qw >= 0``.  The tangent is
    the rotation vector ``[wx, wy, wz]``.
    """

    REP_SIZE = 4
    DOF = 3
    DIM = 3
    IS_COMMUTATIVE = False

    __slots__ = ()

    # ------------------------------------------------------------------
    # Constructors

    @classmethod
    def from_quaternion(cls, quat) -> SO3:
        """Rotation from a quaternion ``[x, y, z, w]``; the input is normalized."""
        q = np.asarray(quat, dtype=float).reshape(-1)
        if q.size != 4:
            raise ValueError(f"quaternion must have 4 elements, got {q.size}")
        norm = np.linalg.norm(q)
        if norm == 0.0:
            raise ValueError("cannot build a rotation from a zero quaternion")
        return cls(_positive_w(q / norm))

    @classmethod
    def _axis_rotation(cls, axis: int, angle: float) -> SO3:
        q = np.zeros(4)
        q[axis] = math.sin(angle / 2)
        q[3] = math.cos(angle / 2)
        return cls(_positive_w(q))

    @classmethod
    def rot_x(cls, angle: float) -> SO3:
        """Rotation by ``angle`` radians around the x axis."""
        return cls._axis_rotation(0, angle)

    @classmethod
    def rot_y(cls, angle: float) -> SO3:
        """Rotation by ``angle`` radians around the y axis."""
        return cls._axis_rotation(1, angle)

    @classmethod
    def rot_z(cls, angle: float) -> SO3:
        """Rotation by ``angle`` radians around the z axis."""
        return cls._axis_rotation(2, angle)

    # ------------------------------------------------------------------
    # Rotation-specific API

    def quat(self) -> np.ndarray:
        """Quaternion coefficients ``[x, y, z, w]``."""
        return self.coeffs.copy()

    def euler_angles(self, i1: int = 2, i2: int = 1, i3: int = 0) -> np.ndarray:
        """Angles ``a`` such that the rotation is ``Rot_i1(a0) Rot_i2(a1) Rot_i3(a2)``.

        Axes are numbered 0 = x, 1 = y, 2 = z; the default is the ZYX convention.
        """
        for idx in (i1, i2, i3):
            if idx not in (0, 1, 2):
                raise ValueError(f"axis index must be 0, 1 or 2, got {idx}")
        if i1 == i2 or i2 == i3:
            raise ValueError("consecutive euler axes must differ")

        m = self.matrix()
        odd = 0 if (i1 + 1) % 3 == i2 else 1
        i = i1
        j = (i1 + 1 + odd) % 3
        k = (i1 + 2 - odd) % 3

        res0 = math.atan2(m[j, i], m[k, i]) if i1 == i3 else math.atan2(m[j, k], m[k, k])
        flip = (odd and res0 < 0) or ((not odd) and res0 > 0)
        if flip:
            res0 += -math.pi if res0 > 0 else math.pi

        s1, c1 = math.sin(res0), math.cos(res0)
        if i1 == i3:
            s2 = math.hypot(m[j, i], m[k, i])
            res1 = -math.atan2(s2, m[i, i]) if flip else math.atan2(s2, m[i, i])
            res2 = math.atan2(c1 * m[j, k] - s1 * m[k, k], c1 * m[j, j] - s1 * m[k, j])
        else:
            c2 = math.hypot(m[i, i], m[i, j])
            res1 = math.atan2(-m[i, k], -c2) if flip else math.atan2(-m[i, k], c2)
            res2 = math.atan2(s1 * m[k, i] - c1 * m[j, i], c1 * m[j, j] - s1 * m[k, j])

        res = np.array([res0, res1, res2])
        return res if odd else -res

    def act(self, v) -> np.ndarray:
        """Rotate the 3D vector ``v``."""
        vec = np.asarray(v, dtype=float).reshape(-1)
        if vec.size != 3:
            raise ValueError(f"vector must have 3 elements, got {vec.size}")
        return self.matrix() @ vec

    def dr_action(self, v) -> np.ndarray:
        """Right Jacobian of ``X v`` with respect to the rotation ``X``."""
        return -self.matrix() @ self.hat(v)

    def project_so2(self) -> SO2:
        """Planar rotation keeping the yaw (z axis) component."""
        x, y, z, w = self.coeffs
        yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
        return SO2.from_angle(yaw)

    def __format__(self, spec: str) -> str:
        x, y, z, w = self.coeffs
        return "[" + ", ".join(format(float(c), spec) for c in (w, x, y, z)) + "]"

    # ------------------------------------------------------------------
    # Series sums of the hat matrix

    @classmethod
    def calc_s1(cls, a) -> np.ndarray:
        """Sum of ``hat(a)^k / (k+1)!`` over ``k >= 0``."""
        return cls._s1(cls._as_tangent(a))

    @classmethod
    def calc_s2(cls, a) -> np.ndarray:
        """Sum of ``hat(a)^k / (k+2)!`` over ``k >= 0``."""
        a = cls._as_tangent(a)
        th2 = float(a @ a)
        M = _hat3(a)
        _, B = _exp_jac_coeffs(th2)
        return np.eye(3) / 2.0 + B * M + _cos_remainder(th2) * (M @ M)

    @classmethod
    def calc_s1inv(cls, a) -> np.ndarray:
        """Matrix inverse of ``calc_s1(a)``."""
        return cls._s1inv(cls._as_tangent(a))

    @staticmethod
    def _s1(a: np.ndarray) -> np.ndarray:
        A, B = _exp_jac_coeffs(float(a @ a))
        M = _hat3(a)
        return np.eye(3) + A * M + B * (M @ M)

    @staticmethod
    def _s1inv(a: np.ndarray) -> np.ndarray:
        M = _hat3(a)
        return np.eye(3) - M / 2.0 + _expinv_coeff(float(a @ a)) * (M @ M)

    # ------------------------------------------------------------------
    # Coefficient-level operations

    @classmethod
    def _identity_coeffs(cls) -> np.ndarray:
        return np.array([0.0, 0.0, 0.0, 1.0])

    @classmethod
    def _random_coeffs(cls, rng: np.random.Generator) -> np.ndarray:
        q = rng.standard_normal(4)
        return _positive_w(q / np.linalg.norm(q))

    @classmethod
    def _matrix_of(cls, coeffs: np.ndarray) -> np.ndarray:
        x, y, z, w = coeffs
        return np.array(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
                [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
                [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
            ]
        )

    @classmethod
    def _compose(cls, c1: np.ndarray, c2: np.ndarray) -> np.ndarray:
        v1, w1 = c1[:3], c1[3]
        v2, w2 = c2[:3], c2[3]
        v = w1 * v2 + w2 * v1 + np.cross(v1, v2)
        w = w1 * w2 - v1 @ v2
        return _positive_w(np.append(v, w))

    @classmethod
    def _invert(cls, coeffs: np.ndarray) -> np.ndarray:
        conj = np.array([-coeffs[0], -coeffs[1], -coeffs[2], coeffs[3]])
        return conj / (coeffs @ coeffs)

    @classmethod
    def _log_of(cls, coeffs: np.ndarray) -> np.ndarray:
        v, w = coeffs[:3], coeffs[3]
        xyz2 = float(v @ v)
        if xyz2 < _EPS2:
            phi = 2.0 / w - 2.0 * xyz2 / (3.0 * w * w * w)
        else:
            xyz = math.sqrt(xyz2)
            phi = 2.0 * math.atan2(xyz, w) / xyz
        return phi * v

    @classmethod
    def _exp_of(cls, a: np.ndarray) -> np.ndarray:
        th2 = float(a @ a)
        if th2 < _EPS2:
            A = 0.5 - th2 / 48.0
            B = 1.0 - th2 / 8.0
        else:
            th = math.sqrt(th2)
            A = math.sin(th / 2.0) / th
            B = math.cos(th / 2.0)
        return _positive_w(np.append(A * a, B))

    @classmethod
    def _hat_of(cls, a: np.ndarray) -> np.ndarray:
        return _hat3(a)

    @classmethod
    def _vee_of(cls, A: np.ndarray) -> np.ndarray:
        return np.array(
            [
                (A[2, 1] - A[1, 2]) / 2.0,
                (A[0, 2] - A[2, 0]) / 2.0,
                (A[1, 0] - A[0, 1]) / 2.0,
            ]
        )

    @classmethod
    def _Ad_of(cls, coeffs: np.ndarray) -> np.ndarray:
        return cls._matrix_of(coeffs)

    @classmethod
    def _ad_of(cls, a: np.ndarray) -> np.ndarray:
        return _hat3(a)

    @classmethod
    def _dr_exp_of(cls, a: np.ndarray) -> np.ndarray:
        return cls._s1(-a)

    @classmethod
    def _dr_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        return cls._s1inv(a) + _hat3(a)

    @classmethod
    def _d2r_exp_of(cls, a: np.ndarray) -> np.ndarray:
        th2 = float(a @ a)
        A, B = _exp_jac_coeffs(th2)
        dA, dB = _exp_jac_derivs(th2)
        ad = _hat3(a)
        ad2 = ad @ ad
        partials = []
        for ai, e in zip(a, np.eye(3)):
            E = _hat3(e)
            partials.append(-A * E + B * (E @ ad + ad @ E) - dA * ai * ad + dB * ai * ad2)
        return _stack_hessian(partials)

    @classmethod
    def _d2r_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        th2 = float(a @ a)
        A = _expinv_coeff(th2)
        dA = _expinv_deriv(th2)
        ad = _hat3(a)
        ad2 = ad @ ad
        partials = []
        for ai, e in zip(a, np.eye(3)):
            E = _hat3(e)
            partials.append(E / 2.0 + A * (E @ ad + ad @ E) + dA * ai * ad2)
        return _stack_hessian(partials)