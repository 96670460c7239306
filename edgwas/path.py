"""Graphical lasso path over a sequence of penalties.

For every penalty ``rho_j`` the trait covariance is estimated with the
graphical lasso, the responses are whitened by the square root of the fitted
precision matrix, and each whitened trait is regressed on its polygenic score
adjusted for the scores of the other traits (conditioning on the fitted
covariance). The fit is deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from sklearn.covariance import graphical_lasso

from ._validation import (
    _as_matrix,
    _validate_path_params,
    _validate_prs_and_traits,
    _validate_rho,
    _validate_solver_params,
)
from .exceptions import InvalidArgument, NumericDivergence, SingularFit
from .ops import conditional_adjustment, matrix_sqrt, spd_inverse, symmetrize

logger = logging.getLogger(__name__)


def empirical_covariance(Y: np.ndarray) -> np.ndarray:
    """Maximum-likelihood covariance of the columns of Y (divides by N)."""
    Y = np.asarray(Y, dtype=np.float64)
    Yc = Y - Y.mean(axis=0, keepdims=True)
    return symmetrize(Yc.T @ Yc / Y.shape[0])


def rho_max(S: np.ndarray) -> float:
    """
    Smallest penalty at which the graphical lasso precision is diagonal.

    With an unpenalized diagonal this is max |S_ij| over i != j. Exactly
    uncorrelated traits give a tiny positive floor so that the generated
    sequence stays strictly decreasing.
    """
    S = np.asarray(S, dtype=np.float64)
    off = np.abs(S - np.diag(np.diag(S)))
    top = float(off.max()) if off.size else 0.0
    floor = np.finfo(float).eps * max(float(np.max(np.diag(S))), 1.0)
    return max(top, floor)


def rho_sequence(
    S: np.ndarray,
    nrho: int = 40,
    rho_min_ratio: float = 1e-3,
    log_spacing: bool = False,
) -> np.ndarray:
    """
    Default decreasing penalty sequence for a covariance matrix.

    Parameters
    ----------
    S : (Q × Q) array
        Empirical covariance of the responses.
    nrho : int
        Number of values, at least 2.
    rho_min_ratio : float
        Smallest value as a fraction of ``rho_max(S)``; in (0, 1).
    log_spacing : bool
        Space the values evenly on the log scale instead of linearly.

    Returns
    -------
    rho : (nrho,) array, strictly decreasing, rho[0] == rho_max(S).
    """
    nrho, ratio = _validate_path_params(nrho, rho_min_ratio)
    top = rho_max(S)
    bottom = top * ratio
    if log_spacing:
        rho = np.exp(np.linspace(np.log(top), np.log(bottom), nrho))
    else:
        rho = np.linspace(top, bottom, nrho)
    rho[0] = top
    return rho


def _glasso(
    S: np.ndarray, rho: float, *, tol: float, max_iter: int, rho_index: int
) -> tuple[np.ndarray, int]:
    """Precision matrix from the graphical lasso, exactly symmetric."""
    try:
        _, precision, n_iter = graphical_lasso(
            S, alpha=float(rho), tol=tol, max_iter=max_iter, return_n_iter=True
        )
    except FloatingPointError as exc:
        raise NumericDivergence(
            f"Graphical lasso failed at rho={rho:.6g}: {exc}. "
            f"Try a larger rho_min_ratio.",
            rho_index=rho_index,
        ) from exc
    precision = symmetrize(precision)
    if not np.all(np.isfinite(precision)) or np.any(np.diag(precision) <= 0):
        raise SingularFit(
            f"Graphical lasso returned a precision matrix with a non-positive "
            f"or non-finite diagonal at rho={rho:.6g}",
            rho_index=rho_index,
        )
    return precision, int(n_iter)


def adjusted_scores(Sigma: np.ndarray, prs: np.ndarray) -> np.ndarray:
    """N × Q matrix whose column l is ``conditional_adjustment(Sigma, l, prs)``."""
    prs = np.asarray(prs, dtype=np.float64)
    return np.column_stack(
        [conditional_adjustment(Sigma, l, prs) for l in range(prs.shape[1])]
    )


def _whitened_coefficients(
    Z: np.ndarray, Y_white: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Per-trait least squares of Y_white[:, l] on [1, Z[:, l]]."""
    N, Q = Y_white.shape
    intercept = np.empty(Q)
    slope = np.empty(Q)
    ones = np.ones(N)
    for l in range(Q):
        design = np.column_stack([ones, Z[:, l]])
        coef, *_ = np.linalg.lstsq(design, Y_white[:, l], rcond=None)
        intercept[l], slope[l] = coef
    return intercept, slope


@dataclass(frozen=True)
class EdGwasPath:
    """Result of :func:`fit_path`; arrays are read-only."""

    rho: np.ndarray
    prs: np.ndarray
    precision: list[np.ndarray]
    covariance: list[np.ndarray]
    intercept: np.ndarray
    slope: np.ndarray
    n_iter: list[int] = field(default_factory=list)
    log_spacing: bool = False
    rho_min_ratio: float | None = None

    def __post_init__(self) -> None:
        arrays = (self.rho, self.prs, self.intercept, self.slope)
        for arr in (*arrays, *self.precision, *self.covariance):
            arr.setflags(write=False)

    @property
    def nrho(self) -> int:
        return int(self.rho.shape[0])

    @property
    def nobs(self) -> int:
        return int(self.prs.shape[0])

    @property
    def n_traits(self) -> int:
        return int(self.prs.shape[1])

    def predict(self, new_prs: Any, type: str = "link") -> list[np.ndarray]:
        return predict(self, new_prs, type=type)


def fit_path(
    X: Any,
    Y: Any,
    rho: Any = None,
    nrho: int = 40,
    log_spacing: bool = False,
    rho_min_ratio: float = 1e-3,
    *,
    solver_tol: float = 1e-4,
    solver_max_iter: int = 100,
) -> EdGwasPath:
    """
    Fit sparse precision matrices of the traits over a path of penalties.

    Parameters
    ----------
    X : (N × Q) array-like
        Polygenic scores, one column per trait.
    Y : (N × Q) array-like
        Quantitative traits.
    rho : array-like, optional
        Strictly decreasing, non-negative penalties (at least two). When
        ``None`` a sequence is derived from the data with :func:`rho_sequence`.
    nrho : int
        Length of the generated sequence; ignored when ``rho`` is given.
    log_spacing : bool
        Log-spaced generated sequence.
    rho_min_ratio : float
        Smallest generated value as a fraction of the largest.
    solver_tol, solver_max_iter :
        Passed to ``sklearn.covariance.graphical_lasso``.

    Returns
    -------
    EdGwasPath
        ``precision[j]`` and ``covariance[j]`` correspond to ``rho[j]``.

    Raises
    ------
    InvalidArgument
        Malformed inputs; raised before any numeric work.
    SingularFit
        A fitted precision (or a conditioning block of its inverse) is not
        invertible; ``rho_index`` and, where relevant, ``trait`` are set.
    NumericDivergence
        The graphical lasso solver failed.
    """
    X_arr, Y_arr = _validate_prs_and_traits(X, Y)
    tol, max_iter = _validate_solver_params(solver_tol, solver_max_iter)
    if rho is not None:
        rho_arr = _validate_rho(rho)
    else:
        _validate_path_params(nrho, rho_min_ratio)
        rho_arr = None

    S = empirical_covariance(Y_arr)
    if rho_arr is None:
        rho_arr = rho_sequence(S, nrho, rho_min_ratio, log_spacing)

    N, Q = Y_arr.shape
    nr = rho_arr.shape[0]
    logger.debug("fit_path: N=%d Q=%d nrho=%d rho=[%.4g, %.4g]", N, Q, nr, rho_arr[0], rho_arr[-1])

    precisions: list[np.ndarray] = []
    covariances: list[np.ndarray] = []
    n_iters: list[int] = []
    intercept = np.empty((nr, Q))
    slope = np.empty((nr, Q))

    for j, rho_j in enumerate(rho_arr):
        P, n_iter = _glasso(S, rho_j, tol=tol, max_iter=max_iter, rho_index=j)
        try:
            C = spd_inverse(P)
            W = matrix_sqrt(P)
            Z = adjusted_scores(C, X_arr)
        except SingularFit as exc:
            raise exc.located(rho_index=j) from exc
        intercept[j], slope[j] = _whitened_coefficients(Z, Y_arr @ W)
        precisions.append(P)
        covariances.append(C)
        n_iters.append(n_iter)

    return EdGwasPath(
        rho=rho_arr.copy(),
        prs=X_arr.copy(),
        precision=precisions,
        covariance=covariances,
        intercept=intercept,
        slope=slope,
        n_iter=n_iters,
        log_spacing=bool(log_spacing),
        rho_min_ratio=float(rho_min_ratio) if rho is None else None,
    )


def predict(fit: EdGwasPath, new_prs: Any, type: str = "link") -> list[np.ndarray]:
    """
    Predict whitened responses for new polygenic scores.

    Returns one ``(n_new × Q)`` matrix per rho value, in path order. Entry
    ``[i, l]`` is ``intercept[j, l] + slope[j, l] * z_l`` where ``z_l`` is
    the score of trait ``l`` adjusted for the other traits under
    ``covariance[j]``. Only the linear predictor (``type="link"``) exists for
    Gaussian traits.
    """
    if type != "link":
        raise InvalidArgument(f"Unsupported prediction type {type!r}; only 'link' is available")
    M = _as_matrix(new_prs, name="new_prs")
    if M.shape[1] != fit.n_traits:
        raise InvalidArgument(
            f"new_prs has {M.shape[1]} columns but the model was fitted on "
            f"{fit.n_traits} traits"
        )
    preds = []
    for j, C in enumerate(fit.covariance):
        try:
            Z = adjusted_scores(C, M)
        except SingularFit as exc:
            raise exc.located(rho_index=j) from exc
        preds.append(fit.intercept[j][None, :] + fit.slope[j][None, :] * Z)
    return preds
