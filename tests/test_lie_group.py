import math

import numpy as np
import pytest

from liesmooth.lie_group import LieGroup


def _phi(u):
    return math.expm1(u) / u if abs(u) > 1e-9 else 1.0 + u / 2.0


class AffineLine(LieGroup):
    """Group of maps x -> exp(s) x + t, matrix [[exp(s), t], [0, 1]]."""

    REP_SIZE = 2
    DOF = 2
    DIM = 2

    @classmethod
    def _identity_coeffs(cls):
        return np.zeros(2)

    @classmethod
    def _random_coeffs(cls, rng):
        return rng.uniform(-1.0, 1.0, 2)

    @classmethod
    def _matrix_of(cls, coeffs):
        s, t = coeffs
        return np.array([[math.exp(s), t], [0.0, 1.0]])

    @classmethod
    def _compose(cls, c1, c2):
        return np.array([c1[0] + c2[0], c1[1] + math.exp(c1[0]) * c2[1]])

    @classmethod
    def _invert(cls, coeffs):
        s, t = coeffs
        return np.array([-s, -math.exp(-s) * t])

    @classmethod
    def _log_of(cls, coeffs):
        s, t = coeffs
        return np.array([s, t / _phi(s)])

    @classmethod
    def _exp_of(cls, a):
        u, v = a
        return np.array([u, v * _phi(u)])

    @classmethod
    def _hat_of(cls, a):
        return np.array([[a[0], a[1]], [0.0, 0.0]])

    @classmethod
    def _vee_of(cls, A):
        return np.array([A[0, 0], A[0, 1]])


@pytest.fixture
def rng():
    return np.random.default_rng(5)


def _finite_diff(fun, a, h=1e-6):
    n = len(a)
    out = []
    for i in range(n):
        e = np.zeros(n)
        e[i] = h
        out.append((fun(a + e) - fun(a - e)) / (2 * h))
    return out


def _expected_hessian(fun, a):
    partials = _finite_diff(fun, a)
    n = len(a)
    return np.stack(partials, axis=-1).transpose(1, 0, 2).reshape(n, n * n)


def test_abstract_base_cannot_be_built():
    with pytest.raises(TypeError):
        LieGroup.identity()


def test_identity_is_neutral(rng):
    g = AffineLine.random(rng)
    e = AffineLine.identity()
    assert LieGroup.is_approx(LieGroup.__mul__(g, e), g)
    assert LieGroup.is_approx(LieGroup.__mul__(e, g), g)
    assert np.allclose(LieGroup.matrix(e), np.eye(2))


def test_wrong_coefficient_count():
    with pytest.raises(ValueError):
        AffineLine([1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        LieGroup.__init__(AffineLine.identity(), [1.0])


def test_coeffs_are_read_only(rng):
    g = LieGroup.inverse(AffineLine.random(rng))
    before = np.array(g.coeffs, copy=True)
    with pytest.raises(ValueError):
        g.coeffs[0] = 3.0
    assert np.array_equal(g.coeffs, before)
    assert g.coeffs[0] != 3.0


def test_dof(rng):
    assert LieGroup.dof(AffineLine.random(rng)) == 2


def test_inverse(rng):
    g = AffineLine.random(rng)
    g_inv = LieGroup.inverse(g)
    assert LieGroup.log(LieGroup.__mul__(g, g_inv)) == pytest.approx([0.0, 0.0], abs=1e-12)
    assert np.allclose(LieGroup.matrix(g_inv), np.linalg.inv(LieGroup.matrix(g)))


def test_matrix_homomorphism(rng):
    g, h = AffineLine.random(rng), AffineLine.random(rng)
    assert np.allclose(LieGroup.matrix(LieGroup.__mul__(g, h)), LieGroup.matrix(g) @ LieGroup.matrix(h))


def test_exp_log_round_trip(rng):
    a = rng.uniform(-1, 1, 2)
    assert np.allclose(LieGroup.log(AffineLine.exp(a)), a)
    g = AffineLine.random(rng)
    assert LieGroup.is_approx(AffineLine.exp(LieGroup.log(g)), g, 1e-10)


def test_plus_minus_round_trip(rng):
    g, h = AffineLine.random(rng), AffineLine.random(rng)
    d = LieGroup.__sub__(h, g)
    assert LieGroup.is_approx(LieGroup.__add__(g, d), h, 1e-10)
    a = rng.uniform(-1, 1, 2)
    assert np.allclose(LieGroup.__sub__(LieGroup.__add__(g, a), g), a)


def test_wrong_tangent_size():
    g = AffineLine.identity()
    with pytest.raises(ValueError):
        LieGroup.__add__(g, [1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        AffineLine.exp([1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        AffineLine.vee(np.eye(3))


def test_mixing_with_non_group_raises(rng):
    g = AffineLine.random(rng)
    with pytest.raises(TypeError):
        g * 3
    with pytest.raises(TypeError):
        g - 3
    with pytest.raises(TypeError):
        LieGroup.is_approx(g, 3)


def test_equality_and_repr():
    g = AffineLine([0.5, 0.25])
    assert LieGroup.__eq__(g, AffineLine([0.5, 0.25])) is True
    assert LieGroup.__eq__(g, AffineLine([0.5, 0.3])) is False
    assert g == AffineLine([0.5, 0.25])
    assert LieGroup.__repr__(g) == "AffineLine([0.5, 0.25])"
    assert repr(g) == "AffineLine([0.5, 0.25])"


def test_is_approx_tolerance(rng):
    g = AffineLine.random(rng)
    h = LieGroup.__add__(g, np.array([1e-4, 1e-4]))
    assert not LieGroup.is_approx(g, h)
    assert LieGroup.is_approx(g, h, 1e-2)


def test_hat_vee_round_trip(rng):
    a = rng.uniform(-1, 1, 2)
    A = AffineLine.hat(a)
    assert np.allclose(AffineLine.vee(A), a)
    h = 1e-6
    derivative = (LieGroup.matrix(AffineLine.exp(h * a)) - LieGroup.matrix(AffineLine.exp(-h * a))) / (2 * h)
    assert np.allclose(derivative, A, atol=1e-6)


def test_adjoint_moves_exponential(rng):
    g = AffineLine.random(rng)
    a = rng.uniform(-1, 1, 2)
    lhs = LieGroup.__mul__(g, AffineLine.exp(a))
    rhs = LieGroup.__mul__(AffineLine.exp(LieGroup.Ad(g) @ a), g)
    assert LieGroup.is_approx(lhs, rhs, 1e-10)


def test_bracket_antisymmetry_and_jacobi(rng):
    a, b, c = (rng.uniform(-1, 1, 2) for _ in range(3))
    br = AffineLine.lie_bracket
    assert np.allclose(br(a, b), -br(b, a))
    assert np.allclose(AffineLine.ad(a) @ b, br(a, b))
    jacobi = br(a, br(b, c)) + br(b, br(c, a)) + br(c, br(a, b))
    assert np.allclose(jacobi, 0.0)
    h = 1e-6
    d_ad = (LieGroup.Ad(AffineLine.exp(h * a)) - LieGroup.Ad(AffineLine.exp(-h * a))) / (2 * h)
    assert np.allclose(d_ad @ b, br(a, b), atol=1e-6)


def test_dr_exp_matches_finite_difference(rng):
    a = rng.uniform(-1, 1, 2)
    g = AffineLine.exp(a)
    fd = _finite_diff(lambda x: LieGroup.__sub__(AffineLine.exp(x), g), a)
    assert np.allclose(AffineLine.dr_exp(a), np.column_stack(fd), atol=1e-6)


def test_dl_exp_matches_finite_difference(rng):
    a = rng.uniform(-1, 1, 2)
    g_inv = LieGroup.inverse(AffineLine.exp(a))
    fd = _finite_diff(lambda x: LieGroup.log(LieGroup.__mul__(AffineLine.exp(x), g_inv)), a)
    assert np.allclose(AffineLine.dl_exp(a), np.column_stack(fd), atol=1e-6)


def test_expinv_inverts_exp(rng):
    a = rng.uniform(-2, 2, 2)
    assert np.allclose(AffineLine.dr_expinv(a) @ AffineLine.dr_exp(a), np.eye(2))
    assert np.allclose(AffineLine.dl_expinv(a) @ AffineLine.dl_exp(a), np.eye(2))
    # left and right jacobians are related through the adjoint of exp(a)
    assert np.allclose(AffineLine.dl_exp(a), LieGroup.Ad(AffineLine.exp(a)) @ AffineLine.dr_exp(a))


def test_dr_exp_at_zero_is_identity():
    zero = LieGroup.log(AffineLine.identity())
    assert np.allclose(zero, np.zeros(2))
    assert np.allclose(AffineLine.dr_exp(zero), np.eye(2))
    assert np.allclose(AffineLine.dr_expinv(zero), np.eye(2))


def test_d2r_exp_matches_finite_difference(rng):
    a = LieGroup.log(AffineLine.random(rng))
    expected = _expected_hessian(AffineLine.dr_exp, a)
    assert AffineLine.d2r_exp(a).shape == (2, 4)
    assert np.allclose(AffineLine.d2r_exp(a), expected, atol=1e-6)


def test_d2r_expinv_matches_finite_difference(rng):
    a = LieGroup.log(AffineLine.random(rng))
    expected = _expected_hessian(AffineLine.dr_expinv, a)
    assert np.allclose(AffineLine.d2r_expinv(a), expected, atol=1e-6)


def test_left_hessians_match_finite_difference(rng):
    a = LieGroup.log(AffineLine.random(rng))
    assert np.allclose(AffineLine.d2l_exp(a), _expected_hessian(AffineLine.dl_exp, a), atol=1e-6)
    assert np.allclose(AffineLine.d2l_expinv(a), _expected_hessian(AffineLine.dl_expinv, a), atol=1e-6)


def test_random_uses_generator():
    g1 = AffineLine.random(np.random.default_rng(3))
    g2 = AffineLine.random(np.random.default_rng(3))
    g3 = AffineLine.random(np.random.default_rng(4))
    assert LieGroup.__eq__(g1, g2) is True
    assert LieGroup.__eq__(g1, g3) is False