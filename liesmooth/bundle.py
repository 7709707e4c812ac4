"""Direct products of Lie groups."""

from __future__ import annotations

import functools
from itertools import accumulate
from typing import ClassVar

import numpy as np

from .lie_group import LieGroup


def _offsets(sizes: tuple[int, ...]) -> tuple[int, ...]:
    """Start offset of each block followed by the total size."""
    return tuple(accumulate(sizes, initial=0))


def _block_diag(blocks: list[np.ndarray]) -> np.ndarray:
    rows = sum(b.shape[0] for b in blocks)
    cols = sum(b.shape[1] for b in blocks)
    out = np.zeros((rows, cols))
    r = c = 0
    for b in blocks:
        out[r : r + b.shape[0], c : c + b.shape[1]] = b
        r += b.shape[0]
        c += b.shape[1]
    return out


class Bundle(LieGroup):
    """Direct product ``G1 x G2 x ... x Gk`` of Lie groups.

    Concrete bundle types are made with :func:`bundle`.  Coefficients, tangents
    and matrices are the concatenations (respectively block diagonals) of those
    of the parts, in order.
    """

    PARTS: ClassVar[tuple[type[LieGroup], ...]] = ()
    REP_SIZE = 0
    DOF = 0
    DIM = 0
    IS_COMMUTATIVE = True

    _REP_OFFSETS: ClassVar[tuple[int, ...]] = (0,)
    _DOF_OFFSETS: ClassVar[tuple[int, ...]] = (0,)
    _DIM_OFFSETS: ClassVar[tuple[int, ...]] = (0,)

    __slots__ = ()

    def __init__(self, coeffs) -> None:
        if not self.PARTS:
            raise TypeError("Bundle has no parts; create a bundle type with bundle(...)")
        super().__init__(coeffs)

    # ------------------------------------------------------------------
    # Parts

    @classmethod
    def _rep_slice(cls, i: int) -> slice:
        return slice(cls._REP_OFFSETS[i], cls._REP_OFFSETS[i + 1])

    @classmethod
    def _dof_slice(cls, i: int) -> slice:
        return slice(cls._DOF_OFFSETS[i], cls._DOF_OFFSETS[i + 1])

    @classmethod
    def _dim_slice(cls, i: int) -> slice:
        return slice(cls._DIM_OFFSETS[i], cls._DIM_OFFSETS[i + 1])

    def part(self, index: int) -> LieGroup:
        """The element of the part at ``index``."""
        i = range(len(self.PARTS))[index]
        return self.PARTS[i](self.coeffs[self._rep_slice(i)])

    @classmethod
    def from_parts(cls, *args: LieGroup) -> Bundle:
        """Bundle element made of the given part elements.

        Called on :class:`Bundle` itself, the bundle type is inferred from the
        types of the arguments.
        """
        target = cls if cls.PARTS else bundle(*(type(p) for p in args))
        if len(args) != len(target.PARTS):
            raise ValueError(f"{target.__name__} expects {len(target.PARTS)} parts, got {len(args)}")
        for p, group in zip(args, target.PARTS):
            if type(p) is not group:
                raise TypeError(f"expected {group.__name__}, got {type(p).__name__}")
        return target(np.concatenate([p.coeffs for p in args]))

    # ------------------------------------------------------------------
    # Helpers iterating over parts

    @classmethod
    def _elements(cls, coeffs: np.ndarray):
        return [g(coeffs[cls._rep_slice(i)]) for i, g in enumerate(cls.PARTS)]

    @classmethod
    def _tangents(cls, a: np.ndarray):
        return [a[cls._dof_slice(i)] for i in range(len(cls.PARTS))]

    # ------------------------------------------------------------------
    # Coefficient-level operations

    @classmethod
    def _identity_coeffs(cls) -> np.ndarray:
        return np.concatenate([g._identity_coeffs() for g in cls.PARTS])

    @classmethod
    def _random_coeffs(cls, rng: np.random.Generator) -> np.ndarray:
        return np.concatenate([g._random_coeffs(rng) for g in cls.PARTS])

    @classmethod
    def _matrix_of(cls, coeffs: np.ndarray) -> np.ndarray:
        return _block_diag([x.matrix() for x in cls._elements(coeffs)])

    @classmethod
    def _compose(cls, c1: np.ndarray, c2: np.ndarray) -> np.ndarray:
        return np.concatenate(
            [(x * y).coeffs for x, y in zip(cls._elements(c1), cls._elements(c2))]
        )

    @classmethod
    def _invert(cls, coeffs: np.ndarray) -> np.ndarray:
        return np.concatenate([x.inverse().coeffs for x in cls._elements(coeffs)])

    @classmethod
    def _log_of(cls, coeffs: np.ndarray) -> np.ndarray:
        return np.concatenate([x.log() for x in cls._elements(coeffs)])

    @classmethod
    def _exp_of(cls, a: np.ndarray) -> np.ndarray:
        return np.concatenate([g.exp(ai).coeffs for g, ai in zip(cls.PARTS, cls._tangents(a))])

    @classmethod
    def _hat_of(cls, a: np.ndarray) -> np.ndarray:
        return _block_diag([g.hat(ai) for g, ai in zip(cls.PARTS, cls._tangents(a))])

    @classmethod
    def _vee_of(cls, A: np.ndarray) -> np.ndarray:
        return np.concatenate(
            [g.vee(A[cls._dim_slice(i), cls._dim_slice(i)]) for i, g in enumerate(cls.PARTS)]
        )

    @classmethod
    def _Ad_of(cls, coeffs: np.ndarray) -> np.ndarray:
        return _block_diag([x.Ad() for x in cls._elements(coeffs)])

    @classmethod
    def _ad_of(cls, a: np.ndarray) -> np.ndarray:
        return _block_diag([g.ad(ai) for g, ai in zip(cls.PARTS, cls._tangents(a))])

    @classmethod
    def _dr_exp_of(cls, a: np.ndarray) -> np.ndarray:
        return _block_diag([g.dr_exp(ai) for g, ai in zip(cls.PARTS, cls._tangents(a))])

    @classmethod
    def _dr_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        return _block_diag([g.dr_expinv(ai) for g, ai in zip(cls.PARTS, cls._tangents(a))])

    @classmethod
    def _stack_part_hessians(cls, a: np.ndarray, inverse: bool) -> np.ndarray:
        n = cls.DOF
        H = np.zeros((n, n * n))
        for i, (g, ai) in enumerate(zip(cls.PARTS, cls._tangents(a))):
            if g.IS_COMMUTATIVE:
                continue
            Hi = g.d2r_expinv(ai) if inverse else g.d2r_exp(ai)
            start, size = cls._DOF_OFFSETS[i], g.DOF
            for j in range(size):
                col = n * (start + j) + start
                H[start : start + size, col : col + size] = Hi[:, size * j : size * (j + 1)]
        return H

    @classmethod
    def _d2r_exp_of(cls, a: np.ndarray) -> np.ndarray:
        return cls._stack_part_hessians(a, inverse=False)

    @classmethod
    def _d2r_expinv_of(cls, a: np.ndarray) -> np.ndarray:
        return cls._stack_part_hessians(a, inverse=True)


@functools.cache
def bundle(*args: type[LieGroup]) -> type[Bundle]:
    """The bundle type of the given Lie group types (the same type for equal arguments)."""
    if not args:
        raise ValueError("a bundle needs at least one part")
    for g in args:
        if not (isinstance(g, type) and issubclass(g, LieGroup)) or (
            issubclass(g, Bundle) and not g.PARTS
        ):
            raise TypeError(f"bundle parts must be Lie group types, got {g!r}")
        if getattr(g, "__abstractmethods__", None):
            raise TypeError(f"bundle part {g.__name__} is abstract")

    rep = tuple(g.REP_SIZE for g in args)
    dofs = tuple(g.DOF for g in args)
    dims = tuple(g.DIM for g in args)
    rep_off, dof_off, dim_off = _offsets(rep), _offsets(dofs), _offsets(dims)
    name = "Bundle[" + ", ".join(g.__name__ for g in args) + "]"
    namespace = {
        "__slots__": (),
        "__module__": __name__,
        "PARTS": tuple(args),
        "REP_SIZE": rep_off[-1],
        "DOF": dof_off[-1],
        "DIM": dim_off[-1],
        "IS_COMMUTATIVE": all(g.IS_COMMUTATIVE for g in args),
        "_REP_OFFSETS": rep_off,
        "_DOF_OFFSETS": dof_off,
        "_DIM_OFFSETS": dim_off,
    }
    return type(name, (Bundle,), namespace)