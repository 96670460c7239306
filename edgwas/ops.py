from __future__ import annotations

import numpy as np

from .exceptions import InvalidArgument, SingularFit


def symmetrize(A: np.ndarray) -> np.ndarray:
    """Return (A + A^T) / 2, exactly symmetric."""
    A = np.asarray(A, dtype=np.float64)
    return 0.5 * (A + A.T)


def spd_inverse(A: np.ndarray) -> np.ndarray:
    """
    Inverse of a symmetric positive-definite matrix via its Cholesky factor.

    Raises ``SingularFit`` when ``A`` is not positive definite. The result is
    exactly symmetric.
    """
    A = np.asarray(A, dtype=np.float64)
    try:
        L = np.linalg.cholesky(A)
    except np.linalg.LinAlgError as exc:
        raise SingularFit(
            "Matrix is not positive definite and cannot be inverted. "
            "Try a larger rho or check for collinear traits."
        ) from exc
    I = np.eye(A.shape[0])
    Linv = np.linalg.solve(L, I)  # L Linv = I
    return symmetrize(Linv.T @ Linv)


def matrix_sqrt(
    P: np.ndarray, *, rtol: float = 1e-12, return_inverse: bool = False
) -> np.ndarray | tuple[np.ndarray, np.ndarray]:
    """
    Symmetric square root W of an SPD matrix, with W @ W = P.

    Computed from the eigendecomposition P = V diag(w) V^T as
    W = V diag(sqrt(w)) V^T. This is the only place the positive-definiteness
    precondition of the whitening transform is checked.

    Parameters
    ----------
    P : (Q × Q) array
        Symmetric matrix, typically a fitted precision matrix.
    rtol : float
        Eigenvalues at or below ``rtol * max(|w|)`` count as zero.
    return_inverse : bool
        Also return W^{-1} = V diag(1/sqrt(w)) V^T from the same
        decomposition.

    Returns
    -------
    W : (Q × Q) array, exactly symmetric.
    W_inv : (Q × Q) array
        Only when ``return_inverse`` is true.
    """
    P = np.asarray(P, dtype=np.float64)
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise InvalidArgument(f"Expected a square matrix, got shape {P.shape}")
    w, V = np.linalg.eigh(symmetrize(P))
    scale = max(float(np.max(np.abs(w))), np.finfo(float).tiny)
    if not np.all(np.isfinite(w)) or w[0] <= rtol * scale:
        raise SingularFit(
            f"Matrix is not positive definite (smallest eigenvalue {w[0]:.3e}); "
            f"its square root cannot be used for whitening."
        )
    root = np.sqrt(w)
    W = symmetrize((V * root[None, :]) @ V.T)
    if not return_inverse:
        return W
    return W, symmetrize((V / root[None, :]) @ V.T)


def partition_covariance(
    Sigma: np.ndarray, target: int
) -> tuple[float, np.ndarray, np.ndarray]:
    """
    Split Sigma around trait ``target``.

    Returns
    -------
    sigma11 : float
        Variance of the target trait.
    sigma12 : (Q-1,) array
        Covariances of the target with the other traits.
    sigma22 : (Q-1 × Q-1) array
        Covariance among the other traits.
    """
    Sigma = np.asarray(Sigma, dtype=np.float64)
    Q = Sigma.shape[0]
    if Sigma.ndim != 2 or Sigma.shape[1] != Q:
        raise InvalidArgument(f"Sigma must be square, got shape {Sigma.shape}")
    if Q < 2:
        raise InvalidArgument(
            "Conditioning needs at least two traits; there are no other traits "
            "to condition on when Q=1."
        )
    if not (0 <= target < Q):
        raise InvalidArgument(f"target must be in [0, {Q}), got {target}")
    others = np.delete(np.arange(Q), target)
    sigma11 = float(Sigma[target, target])
    sigma12 = Sigma[target, others]
    sigma22 = Sigma[np.ix_(others, others)]
    return sigma11, sigma12, sigma22


def conditional_weights(Sigma: np.ndarray, target: int) -> np.ndarray:
    """
    Regression weights Σ22^{-1} Σ21 of trait ``target`` on the other traits.

    Raises ``SingularFit`` (with ``trait`` set) if Σ22 is not invertible.
    """
    _, sigma12, sigma22 = partition_covariance(Sigma, target)
    try:
        sigma22_inv = spd_inverse(sigma22)
    except SingularFit as exc:
        raise exc.located(trait=target) from exc
    return sigma22_inv @ sigma12


def conditional_adjustment(
    Sigma: np.ndarray, target: int, M: np.ndarray
) -> np.ndarray:
    """
    Adjusted series for trait ``target`` given the other traits' values.

        adjusted = M[:, target] + M[:, others] @ Σ22^{-1} Σ21

    which is the row-wise form of M_target + Σ12 Σ22^{-1} M_others^T.

    Parameters
    ----------
    Sigma : (Q × Q) array
        Covariance matrix among the traits.
    target : int
        Column index of the target trait.
    M : (N × Q) array
        Values for all traits (e.g. polygenic scores).

    Returns
    -------
    adjusted : (N,) array
    """
    M = np.asarray(M, dtype=np.float64)
    Q = np.asarray(Sigma).shape[0]
    if M.ndim != 2 or M.shape[1] != Q:
        raise InvalidArgument(
            f"M must have {Q} columns to match Sigma, got shape {M.shape}"
        )
    weights = conditional_weights(Sigma, target)
    others = np.delete(np.arange(Q), target)
    return M[:, target] + M[:, others] @ weights
