import numpy as np
import pytest

from liesmooth.bundle import Bundle, bundle
from liesmooth.so2 import SO2
from liesmooth.so3 import SO3


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def G():
    return bundle(SO3, SO2, SO3)


def _random_tangent(rng, G, scale=0.8):
    return scale * rng.uniform(-1.0, 1.0, G.DOF)


def test_sizes_sum_parts(G):
    assert G.REP_SIZE == 2 * SO3.REP_SIZE + SO2.REP_SIZE
    assert G.DOF == 2 * SO3.DOF + SO2.DOF
    assert G.DIM == 2 * SO3.DIM + SO2.DIM
    assert G.IS_COMMUTATIVE is False
    assert bundle(SO2, SO2).IS_COMMUTATIVE is True


def test_bundle_type_is_cached():
    assert bundle(SO3, SO2) is bundle(SO3, SO2)
    assert bundle(SO3, SO2) is not bundle(SO2, SO3)


def test_parts_and_from_parts(rng, G):
    x, y, z = SO3.random(rng), SO2.random(rng), SO3.random(rng)
    g = G.from_parts(x, y, z)
    assert g.part(0) == x
    assert g.part(1) == y
    assert g.part(-1) == z
    with pytest.raises(IndexError):
        g.part(3)


def test_from_parts_infers_type(rng):
    g = Bundle.from_parts(SO3.random(rng), SO2.random(rng))
    assert type(g) is bundle(SO3, SO2)


def test_from_parts_errors(rng, G):
    with pytest.raises(TypeError):
        G.from_parts(SO2.random(rng), SO2.random(rng), SO3.random(rng))
    with pytest.raises(ValueError):
        G.from_parts(SO3.random(rng), SO2.random(rng))


def test_invalid_bundles():
    with pytest.raises(ValueError):
        bundle()
    with pytest.raises(TypeError):
        bundle(int)
    with pytest.raises(TypeError):
        Bundle([])


def test_composition_is_partwise(rng, G):
    g1, g2 = G.random(rng), G.random(rng)
    prod = g1 * g2
    for i in range(3):
        assert prod.part(i).is_approx(g1.part(i) * g2.part(i), 1e-12)


def test_identity_and_inverse(rng, G):
    g = G.random(rng)
    assert (G.identity() * g).is_approx(g, 1e-12)
    assert (g * g.inverse()).is_approx(G.identity(), 1e-10)


def test_exp_log_round_trip(rng, G):
    a = _random_tangent(rng, G)
    assert np.allclose(G.exp(a).log(), a, atol=1e-10)
    g = G.random(rng)
    assert G.exp(g.log()).is_approx(g, 1e-10)


def test_matrix_is_block_diagonal(rng, G):
    g = G.random(rng)
    M = g.matrix()
    assert M.shape == (G.DIM, G.DIM)
    assert np.allclose(M[:3, :3], g.part(0).matrix())
    assert np.allclose(M[3:5, 3:5], g.part(1).matrix())
    assert np.allclose(M[5:, 5:], g.part(2).matrix())
    assert np.allclose(M[:3, 3:], 0.0)
    assert np.allclose((g.inverse()).matrix() @ M, np.eye(G.DIM), atol=1e-10)


def test_hat_vee_round_trip(rng, G):
    a = _random_tangent(rng, G)
    assert np.allclose(G.vee(G.hat(a)), a)


def test_adjoint_identity(rng, G):
    g = G.random(rng)
    a = _random_tangent(rng, G, 0.3)
    lhs = g * G.exp(a)
    rhs = G.exp(g.Ad() @ a) * g
    assert lhs.is_approx(rhs, 1e-10)


def test_lie_bracket_antisymmetric(rng, G):
    a, b = _random_tangent(rng, G), _random_tangent(rng, G)
    assert np.allclose(G.lie_bracket(a, b), -G.lie_bracket(b, a))
    assert np.allclose(G.ad(a)[3, :], 0.0)


def test_dr_exp_blocks(rng, G):
    a = _random_tangent(rng, G)
    J = G.dr_exp(a)
    assert np.allclose(J[:3, :3], SO3.dr_exp(a[:3]))
    assert np.allclose(J[3, 3], 1.0)
    assert np.allclose(J[4:, 4:], SO3.dr_exp(a[4:]))
    assert np.allclose(J[:3, 3:], 0.0)
    assert np.allclose(G.dr_expinv(a) @ J, np.eye(G.DOF), atol=1e-10)


def test_dr_exp_matches_finite_difference(rng, G):
    a = _random_tangent(rng, G, 0.4)
    da = 1e-6 * _random_tangent(rng, G, 1.0)
    step = G.exp(a + da) - G.exp(a)
    assert np.allclose(step, G.dr_exp(a) @ da, atol=1e-10)


def _fd_hessian(jac, a, h=1e-6):
    n = a.size
    partials = []
    for i in range(n):
        e = np.zeros(n)
        e[i] = h
        partials.append((jac(a + e) - jac(a - e)) / (2 * h))
    H = np.zeros((n, n * n))
    for i, P in enumerate(partials):
        for j in range(n):
            for k in range(n):
                H[k, n * j + i] = P[j, k]
    return H


@pytest.mark.parametrize("name", ["d2r_exp", "d2r_expinv"])
def test_hessians_match_finite_difference(rng, G, name):
    a = _random_tangent(rng, G, 0.5)
    jac = G.dr_exp if name == "d2r_exp" else G.dr_expinv
    H = getattr(G, name)(a)
    assert H.shape == (G.DOF, G.DOF * G.DOF)
    assert np.allclose(H, _fd_hessian(jac, a), atol=1e-6)


def test_commutative_bundle_jacobians(rng):
    C = bundle(SO2, SO2)
    a = rng.uniform(-1, 1, 2)
    assert np.array_equal(C.dr_exp(a), np.eye(2))
    assert np.array_equal(C.d2r_exp(a), np.zeros((2, 4)))
    g1, g2 = C.random(rng), C.random(rng)
    assert (g1 * g2).is_approx(g2 * g1, 1e-12)


def test_mixed_bundle_types_do_not_compose(rng):
    A = bundle(SO3, SO2)
    g1 = A.random(rng)
    g2 = bundle(SO2, SO3).random(rng)
    assert (g1 * g1.inverse()).is_approx(A.identity(), 1e-10)
    with pytest.raises(TypeError):
        g1 * g2