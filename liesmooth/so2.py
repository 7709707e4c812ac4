"""The group of planar rotations, stored as a unit complex number."""

from __future__ import annotations

import math

import numpy as np

from .lie_group import LieGroup


class SO2(LieGroup):
    """Planar rotation with coefficients ``[qz, qw]`` (``qz**2 + qw**2 == 1``).

    The tangent is the rotation angle, in ``(-pi, pi]`` when produced by ``log``.
    """

    REP_SIZE = 2
    DOF = 1
    DIM = 2
    IS_COMMUTATIVE = True

    __slots__ = ()

    @classmethod
    def from_angle(cls, angle: float) -> SO2:
        """Rotation by ``angle`` radians."""
        return cls.exp([angle])

    def angle(self) -> float:
        """Rotation angle in radians."""
        return float(self.log()[0])

    @classmethod
    def _identity_coeffs(cls) -> np.ndarray:
        return np.array([0.0, 1.0])

    @classmethod
    def _random_coeffs(cls, rng: np.random.Generator) -> np.ndarray:
        u = rng.uniform(0.0, 2.0 * math.pi)
        return np.array([math.sin(u), math.cos(u)])

    @classmethod
    def _matrix_of(cls, coeffs: np.ndarray) -> np.ndarray:
        qz, qw = coeffs
        return np.array([[qw, -qz], [qz, qw]])

    @classmethod
    def _compose(cls, c1: np.ndarray, c2: np.ndarray) -> np.ndarray:
        z1, w1 = c1
        z2, w2 = c2
        return np.array([z1 * w2 + w1 * z2, w1 * w2 - z1 * z2])

    @classmethod
    def _invert(cls, coeffs: np.ndarray) -> np.ndarray:
        return np.array([-coeffs[0], coeffs[1]])

    @classmethod
    def _log_of(cls, coeffs: np.ndarray) -> np.ndarray:
        return np.array([math.atan2(coeffs[0], coeffs[1])])

    @classmethod
    def _exp_of(cls, a: np.ndarray) -> np.ndarray:
        return np.array([math.sin(a[0]), math.cos(a[0])])

    @classmethod
    def _hat_of(cls, a: np.ndarray) -> np.ndarray:
        return np.array([[0.0, -a[0]], [a[0], 0.0]])

    @classmethod
    def _vee_of(cls, A: np.ndarray) -> np.ndarray:
        return np.array([(A[1, 0] - A[0, 1]) / 2.0])