import numpy as np

from .prs import marginal_effects, polygenic_scores


def simulate_genotypes(N, P, maf=0.3, seed=0):
    rng = np.random.default_rng(seed)
    return rng.binomial(2, maf, size=(N, P)).astype(np.float64)


def simulate_traits(G, B, noise=1.0, seed=0):
    rng = np.random.default_rng(seed)
    N = G.shape[0]
    Q = B.shape[1]
    return G @ B + noise * rng.standard_normal((N, Q))


def shared_signal_effects(P, Q, loaded_traits=5, effect=2.5, marker=0):
    """P × Q effect matrix where one marker loads on the first traits."""
    B = np.zeros((P, Q))
    B[marker, :loaded_traits] = effect
    return B


def simulate_prs_study(N, P, B, maf=0.3, noise=1.0, seed=0):
    """Discovery sample for the effects, target sample for the scores.

    Returns the target PRS (N × Q), target traits (N × Q) and the estimated
    marker effects (P × Q).
    """
    rng = np.random.default_rng(seed)
    s_geno0, s_trait0, s_geno, s_trait = rng.integers(0, 2**31, size=4)
    G0 = simulate_genotypes(N, P, maf, seed=s_geno0)
    Y0 = simulate_traits(G0, B, noise, seed=s_trait0)
    beta = marginal_effects(G0, Y0)

    G = simulate_genotypes(N, P, maf, seed=s_geno)
    Y = simulate_traits(G, B, noise, seed=s_trait)
    return polygenic_scores(G, beta), Y, beta
