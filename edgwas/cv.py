"""K-fold cross-validation of the graphical lasso path.

The full data fixes the rho sequence and the polygenic scores. Each fold then
refits the whole path on its training rows with that frozen sequence, whitens
its held-out traits with the square root of each fitted precision matrix and
scores the fold model's predictions against them, by default after rotating
the residual back to trait units. Folds are independent and return owned
partial results; a single reduction step merges them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
from joblib import Parallel, delayed

from ._validation import (
    _validate_error_scale,
    _validate_fold_splits,
    _validate_nfolds,
    _validate_path_params,
    _validate_prs_and_traits,
    _validate_rho,
    _validate_solver_params,
)
from .exceptions import InvalidArgument, NumericDivergence, SingularFit
from .folds import make_folds
from .metrics import Loss
from .ops import matrix_sqrt
from .path import EdGwasPath, fit_path, predict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoldErrors:
    """Errors of one held-out fold across the rho path.

    ``errors`` has shape ``(nrho, n_test, Q)`` and ``fold_means`` (the
    per-trait mean error within the fold) has shape ``(nrho, Q)``.
    """

    fold: int
    test_index: np.ndarray
    errors: np.ndarray
    fold_means: np.ndarray


def evaluate_fold(
    fold: int,
    foldid: np.ndarray,
    prs: np.ndarray,
    Y: np.ndarray,
    rho: np.ndarray,
    loss: Loss,
    *,
    error_scale: str = "trait",
    solver_tol: float = 1e-4,
    solver_max_iter: int = 100,
) -> FoldErrors:
    """
    Refit on the rows outside ``fold`` and score the rows inside it.

    With ``error_scale="whitened"`` the error compares the prediction with the
    held-out traits rotated by ``W_j = sqrtm(P_j)``. The expected size of that
    rotated target grows as the fold's precision estimate loosens, so with
    ``error_scale="trait"`` the residual is rotated back by ``W_j^{-1}``
    before scoring, keeping every rho on the units of the traits.
    """
    test = foldid == fold
    test_index = np.flatnonzero(test)
    nrho = rho.shape[0]

    try:
        fit = fit_path(
            prs[~test],
            Y[~test],
            rho=rho,
            solver_tol=solver_tol,
            solver_max_iter=solver_max_iter,
        )
        preds = predict(fit, prs[test], type="link")

        errors = np.empty((nrho, test_index.size, Y.shape[1]))
        Y_test = Y[test]
        for j in range(nrho):
            try:
                W, W_inv = matrix_sqrt(fit.precision[j], return_inverse=True)
            except SingularFit as exc:
                raise exc.located(rho_index=j) from exc
            if error_scale == "whitened":
                # Rotate held-out traits so they are independent under the fold model
                errors[j] = loss.elementwise(preds[j], Y_test @ W)
            else:
                # (pred - Y W) W^{-1}
                errors[j] = loss.elementwise(preds[j] @ W_inv, Y_test)
    except (InvalidArgument, SingularFit, NumericDivergence) as exc:
        if exc.fold is None:
            exc.fold = fold
        raise

    fold_means = np.nanmean(errors, axis=1)
    logger.debug("fold %d: n_test=%d mean error range [%.4g, %.4g]",
                 fold, test_index.size, fold_means.mean(axis=1).min(),
                 fold_means.mean(axis=1).max())
    return FoldErrors(
        fold=int(fold), test_index=test_index, errors=errors, fold_means=fold_means
    )


def reduce_folds(
    parts: list[FoldErrors], N: int, Q: int, nrho: int, nfolds: int
) -> tuple[np.ndarray, np.ndarray]:
    """
    Merge fold results into the mean error curve and its standard error.

    mean_error[j] averages every held-out entry (all folds, all traits) at
    rho_j. The standard error pools the squared deviations of the per-fold,
    per-trait means from mean_error[j] over Q * N - 1 degrees of freedom.
    """
    cvraw = np.full((nrho, N, Q), np.nan)
    fold_means = np.full((nrho, nfolds, Q), np.nan)
    for part in parts:
        cvraw[:, part.test_index, :] = part.errors
        fold_means[:, part.fold - 1, :] = part.fold_means

    mean_error = np.nanmean(cvraw.reshape(nrho, -1), axis=1)
    dev = fold_means - mean_error[:, None, None]
    std_error = np.sqrt(np.nansum(dev**2, axis=(1, 2)) / (Q * N - 1))
    return mean_error, std_error


def select_rho(mean_error: np.ndarray, std_error: np.ndarray) -> tuple[int, int]:
    """
    Indices of the minimum-error rho and of the one-standard-error rho.

    The rho sequence is decreasing, so smaller indices are more regularized.
    Starting at the minimum, walk toward index 0 while the next value stays
    strictly below ``mean_error[min] + std_error[min]``; the last index
    reached is the one-standard-error choice.
    """
    mean_error = np.asarray(mean_error, dtype=np.float64)
    std_error = np.asarray(std_error, dtype=np.float64)
    if mean_error.shape != std_error.shape or mean_error.ndim != 1:
        raise InvalidArgument("mean_error and std_error must be 1D of equal length")
    if not np.any(np.isfinite(mean_error)):
        raise InvalidArgument("mean_error has no finite values")

    i_min = int(np.nanargmin(mean_error))
    threshold = mean_error[i_min] + std_error[i_min]
    i_1se = i_min
    while i_1se > 0 and mean_error[i_1se - 1] < threshold:
        i_1se -= 1
    return i_min, i_1se


@dataclass(frozen=True)
class CrossValidationResult:
    """Outcome of :func:`cross_validate`; arrays are read-only."""

    rho: np.ndarray
    mean_error: np.ndarray
    std_error: np.ndarray
    measure: Loss
    index_min: int
    index_1se: int
    full_fit: EdGwasPath
    foldid: np.ndarray
    nfolds: int
    error_scale: str = "trait"

    def __post_init__(self) -> None:
        for arr in (self.rho, self.mean_error, self.std_error, self.foldid):
            arr.setflags(write=False)

    @property
    def rho_min(self) -> float:
        return float(self.rho[self.index_min])

    @property
    def rho_1se(self) -> float:
        return float(self.rho[self.index_1se])

    @property
    def upper(self) -> np.ndarray:
        return self.mean_error + self.std_error

    @property
    def lower(self) -> np.ndarray:
        return self.mean_error - self.std_error

    @property
    def name(self) -> str:
        return self.measure.label

    def index_of(self, which: str) -> int:
        if which == "rho_min":
            return self.index_min
        if which == "rho_1se":
            return self.index_1se
        raise InvalidArgument(f"which must be 'rho_min' or 'rho_1se', got {which!r}")

    def precision_at(self, which: str = "rho_1se") -> np.ndarray:
        """Full-data precision matrix at the selected rho."""
        return self.full_fit.precision[self.index_of(which)]

    def covariance_at(self, which: str = "rho_1se") -> np.ndarray:
        return self.full_fit.covariance[self.index_of(which)]

    def summary_dict(self) -> dict[str, Any]:
        return {
            "measure": self.measure.value,
            "error_scale": self.error_scale,
            "nfolds": self.nfolds,
            "nrho": int(self.rho.shape[0]),
            "nobs": self.full_fit.nobs,
            "n_traits": self.full_fit.n_traits,
            "rho_min": self.rho_min,
            "rho_1se": self.rho_1se,
            "cvm_min": float(self.mean_error[self.index_min]),
            "cvm_1se": float(self.mean_error[self.index_1se]),
        }

    def as_frame(self):
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for as_frame()") from exc

        return pd.DataFrame(
            {
                "rho": self.rho,
                "cvm": self.mean_error,
                "cvsd": self.std_error,
                "cvup": self.upper,
                "cvlo": self.lower,
            }
        )


def cross_validate(
    X: Any,
    Y: Any,
    rho: Any = None,
    nfolds: int = 10,
    loss: Loss | str = "mse",
    nrho: int = 40,
    log_spacing: bool = False,
    rho_min_ratio: float = 1e-3,
    *,
    error_scale: str = "trait",
    n_jobs: int | None = 1,
    random_state: int | np.random.Generator | None = None,
    solver_tol: float = 1e-4,
    solver_max_iter: int = 100,
) -> CrossValidationResult:
    """
    K-fold cross-validation of the penalty of the graphical lasso path.

    Runs ``nfolds + 1`` path fits: one on the full data to fix the rho
    sequence, then one per fold with that fold's rows held out. Results are
    random through the fold assignment; pass ``random_state`` for a
    reproducible partition.

    Parameters
    ----------
    X : (N × Q) array-like
        Polygenic scores, one column per trait.
    Y : (N × Q) array-like
        Quantitative traits.
    rho : array-like, optional
        User-supplied strictly decreasing penalties (at least two values).
    nfolds : int
        Number of folds, at least 3.
    loss : {"mse", "mae"}
        Squared or absolute error of the held-out traits.
    nrho, log_spacing, rho_min_ratio :
        Generated rho sequence, see :func:`edgwas.path.rho_sequence`.
    error_scale : {"trait", "whitened"}
        ``"whitened"`` scores predictions against the held-out traits rotated
        by each fold's ``sqrtm(P_j)``; ``"trait"`` rotates that residual back
        so that errors at different rho share one scale. See
        :func:`evaluate_fold`.
    n_jobs : int, optional
        Workers for the per-fold refits (joblib semantics; 1 runs serially).
    random_state : int or Generator, optional
        Seed for the fold assignment.
    solver_tol, solver_max_iter :
        Passed to the graphical lasso solver.

    Returns
    -------
    CrossValidationResult

    Raises
    ------
    InvalidArgument
        Raised before any fitting for bad folds, loss, rho or dimensions, and
        for a fold whose training rows leave a trait constant (``fold`` set).
    SingularFit, NumericDivergence
        Any fold failure aborts the call; ``fold`` and ``rho_index`` are set.
    """
    measure = Loss.coerce(loss)
    scale = _validate_error_scale(error_scale)
    X_arr, Y_arr = _validate_prs_and_traits(X, Y)
    N, Q = Y_arr.shape
    k = _validate_nfolds(nfolds, N)
    if rho is not None:
        rho = _validate_rho(rho)
    else:
        _validate_path_params(nrho, rho_min_ratio)
    _validate_solver_params(solver_tol, solver_max_iter)

    foldid = make_folds(N, k, random_state)
    _validate_fold_splits(Y_arr, foldid, k)

    full_fit = fit_path(
        X_arr,
        Y_arr,
        rho=rho,
        nrho=nrho,
        log_spacing=log_spacing,
        rho_min_ratio=rho_min_ratio,
        solver_tol=solver_tol,
        solver_max_iter=solver_max_iter,
    )
    rho_path = full_fit.rho
    prs = np.asarray(full_fit.prs)

    logger.debug("cross_validate: N=%d Q=%d nfolds=%d nrho=%d n_jobs=%s scale=%s",
                 N, Q, k, rho_path.shape[0], n_jobs, scale)

    parts = Parallel(n_jobs=n_jobs)(
        delayed(evaluate_fold)(
            fold,
            foldid,
            prs,
            Y_arr,
            np.asarray(rho_path),
            measure,
            error_scale=scale,
            solver_tol=solver_tol,
            solver_max_iter=solver_max_iter,
        )
        for fold in range(1, k + 1)
    )

    mean_error, std_error = reduce_folds(parts, N, Q, rho_path.shape[0], k)
    index_min, index_1se = select_rho(mean_error, std_error)
    logger.info(
        "cross_validate: rho_min=%.4g (index %d), rho_1se=%.4g (index %d)",
        rho_path[index_min], index_min, rho_path[index_1se], index_1se,
    )

    return CrossValidationResult(
        rho=np.array(rho_path),
        mean_error=mean_error,
        std_error=std_error,
        measure=measure,
        index_min=index_min,
        index_1se=index_1se,
        full_fit=full_fit,
        foldid=foldid,
        nfolds=k,
        error_scale=scale,
    )
