import numpy as np
import pytest

from edgwas.exceptions import InvalidArgument
from edgwas.prs import marginal_effects, polygenic_scores
from edgwas.sim import (
    shared_signal_effects,
    simulate_genotypes,
    simulate_prs_study,
    simulate_traits,
)


def test_marginal_effects_match_univariate_fits():
    rng = np.random.default_rng(0)
    G = simulate_genotypes(80, 6, seed=1)
    Y = rng.standard_normal((80, 3)) + G[:, [0]]
    beta = marginal_effects(G, Y)
    assert beta.shape == (6, 3)
    for p in range(6):
        for q in range(3):
            slope, _ = np.polyfit(G[:, p], Y[:, q], 1)
            assert np.isclose(beta[p, q], slope)


def test_monomorphic_marker_has_zero_effect():
    G = simulate_genotypes(50, 4, seed=2)
    G[:, 2] = 1.0
    Y = np.random.default_rng(3).standard_normal((50, 2))
    beta = marginal_effects(G, Y)
    assert np.all(beta[2] == 0.0)


def test_polygenic_scores():
    G = simulate_genotypes(10, 5, seed=4)
    beta = np.arange(10.0).reshape(5, 2)
    assert np.allclose(polygenic_scores(G, beta), G @ beta)
    with pytest.raises(InvalidArgument, match="markers"):
        polygenic_scores(G, beta[:4])


def test_marginal_effects_row_mismatch():
    with pytest.raises(InvalidArgument, match="rows"):
        marginal_effects(np.ones((5, 2)), np.ones((4, 2)))


def test_simulators():
    G = simulate_genotypes(200, 30, maf=0.3, seed=5)
    assert set(np.unique(G)) <= {0.0, 1.0, 2.0}
    B = shared_signal_effects(30, 6, loaded_traits=2, effect=2.5)
    assert np.count_nonzero(B) == 2
    Y = simulate_traits(G, B, seed=6)
    assert Y.shape == (200, 6)

    prs, Y2, beta = simulate_prs_study(200, 30, B, seed=7)
    assert prs.shape == Y2.shape == (200, 6)
    assert beta.shape == (30, 6)
    # the loaded marker dominates the estimated effects of loaded traits
    assert np.argmax(np.abs(beta[:, 0])) == 0
