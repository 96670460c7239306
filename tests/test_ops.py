import numpy as np
import pytest

from edgwas.exceptions import InvalidArgument, SingularFit
from edgwas.ops import (
    conditional_adjustment,
    conditional_weights,
    matrix_sqrt,
    partition_covariance,
    spd_inverse,
    symmetrize,
)


def _random_spd(rng, Q):
    A = rng.standard_normal((Q, Q))
    return A @ A.T + Q * np.eye(Q)


def test_symmetrize_is_exact():
    rng = np.random.default_rng(0)
    A = rng.standard_normal((6, 6))
    S = symmetrize(A)
    assert np.array_equal(S, S.T)
    assert np.allclose(S, 0.5 * (A + A.T))


def test_spd_inverse_matches_dense_inverse():
    rng = np.random.default_rng(1)
    A = _random_spd(rng, 5)
    Ainv = spd_inverse(A)
    assert np.array_equal(Ainv, Ainv.T)
    assert np.allclose(Ainv, np.linalg.inv(A), atol=1e-12, rtol=1e-10)


def test_spd_inverse_raises_on_indefinite():
    A = np.array([[1.0, 2.0], [2.0, 1.0]])
    with pytest.raises(SingularFit, match="positive definite"):
        spd_inverse(A)


def test_matrix_sqrt_squares_back():
    rng = np.random.default_rng(2)
    P = _random_spd(rng, 7)
    W = matrix_sqrt(P)
    assert np.array_equal(W, W.T)
    assert np.allclose(W @ W, P, atol=1e-10)
    # principal root: positive definite itself
    assert np.linalg.eigvalsh(W).min() > 0


def test_matrix_sqrt_whitens_covariance():
    rng = np.random.default_rng(3)
    Sigma = _random_spd(rng, 4)
    W = matrix_sqrt(np.linalg.inv(Sigma))
    assert np.allclose(W @ Sigma @ W, np.eye(4), atol=1e-10)


def test_matrix_sqrt_inverse_from_same_decomposition():
    rng = np.random.default_rng(4)
    P = _random_spd(rng, 5)
    W, W_inv = matrix_sqrt(P, return_inverse=True)
    assert np.array_equal(W, matrix_sqrt(P))
    assert np.array_equal(W_inv, W_inv.T)
    assert np.allclose(W @ W_inv, np.eye(5), atol=1e-10)
    assert np.allclose(W_inv @ W_inv, np.linalg.inv(P), atol=1e-10)


@pytest.mark.parametrize(
    "P",
    [
        np.array([[1.0, 1.0], [1.0, 1.0]]),
        np.array([[1.0, 0.0], [0.0, -2.0]]),
        np.zeros((3, 3)),
    ],
)
def test_matrix_sqrt_rejects_non_pd(P):
    with pytest.raises(SingularFit):
        matrix_sqrt(P)


def test_matrix_sqrt_rejects_non_square():
    with pytest.raises(InvalidArgument):
        matrix_sqrt(np.ones((2, 3)))


def test_partition_covariance_blocks():
    Sigma = np.arange(16, dtype=float).reshape(4, 4)
    Sigma = symmetrize(Sigma)
    s11, s12, s22 = partition_covariance(Sigma, 2)
    others = [0, 1, 3]
    assert s11 == Sigma[2, 2]
    assert np.array_equal(s12, Sigma[2, others])
    assert np.array_equal(s22, Sigma[np.ix_(others, others)])


def test_conditional_adjustment_matches_explicit_formula():
    rng = np.random.default_rng(4)
    Q, N = 5, 30
    Sigma = _random_spd(rng, Q)
    M = rng.standard_normal((N, Q))
    for target in range(Q):
        others = [q for q in range(Q) if q != target]
        s12 = Sigma[target, others]
        s22_inv = np.linalg.inv(Sigma[np.ix_(others, others)])
        expected = M[:, target] + (s12 @ s22_inv @ M[:, others].T)
        got = conditional_adjustment(Sigma, target, M)
        assert got.shape == (N,)
        assert np.allclose(got, expected, atol=1e-10)


def test_conditional_adjustment_is_identity_for_diagonal_covariance():
    rng = np.random.default_rng(5)
    Sigma = np.diag([1.0, 2.0, 3.0])
    M = rng.standard_normal((10, 3))
    assert np.allclose(conditional_adjustment(Sigma, 1, M), M[:, 1])


def test_conditional_adjustment_single_trait_is_invalid():
    with pytest.raises(InvalidArgument, match="Q=1"):
        conditional_adjustment(np.array([[2.0]]), 0, np.ones((4, 1)))


def test_conditional_weights_reports_trait_on_singular_block():
    Sigma = np.array(
        [
            [1.0, 0.1, 0.1],
            [0.1, 1.0, 2.0],
            [0.1, 2.0, 1.0],
        ]
    )
    with pytest.raises(SingularFit) as info:
        conditional_weights(Sigma, 0)
    assert info.value.trait == 0
    assert "trait=0" in str(info.value)


def test_conditional_adjustment_checks_columns():
    with pytest.raises(InvalidArgument, match="columns"):
        conditional_adjustment(np.eye(3), 0, np.ones((4, 2)))
