"""Input validation and sanitization helpers for edgwas.

This module provides standardized validation functions so that every public
entry point rejects malformed input with the same messages, before any
numeric work starts.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .exceptions import InvalidArgument


def _as_matrix(A: Any, *, name: str) -> np.ndarray:
    """Validate and convert an array-like to a finite 2D float array.

    Parameters
    ----------
    A : array-like
        Matrix, or a 1D vector treated as a single column.
    name : str
        Variable name for error messages.

    Returns
    -------
    np.ndarray
        Validated 2D numpy array.

    Raises
    ------
    InvalidArgument
        If A cannot be converted, is not 1D/2D, is empty or not finite.
    """
    if hasattr(A, "to_numpy"):
        A = A.to_numpy()
    try:
        arr = np.asarray(A, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"{name} cannot be converted to numeric array: {e}") from e

    if arr.ndim == 1:
        arr = arr[:, None]
    elif arr.ndim != 2:
        raise InvalidArgument(
            f"{name} must be 1D or 2D, got {arr.ndim}D with shape {arr.shape}."
        )

    if arr.size == 0:
        raise InvalidArgument(f"{name} is empty (shape {arr.shape}).")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgument(
            f"{name} contains NaN or infinite values. "
            f"Impute or drop incomplete rows before fitting."
        )
    return arr


def _validate_prs_and_traits(X: Any, Y: Any) -> tuple[np.ndarray, np.ndarray]:
    """Validate a PRS matrix and a trait matrix for a path fit.

    The PRS matrix carries one score per trait, so both inputs must be N x Q
    with the same N and Q >= 2.
    """
    X_arr = _as_matrix(X, name="X")
    Y_arr = _as_matrix(Y, name="Y")
    N, Q = Y_arr.shape

    if X_arr.shape[0] != N:
        raise InvalidArgument(
            f"X has {X_arr.shape[0]} rows but Y has {N}. "
            f"All inputs must have the same number of samples."
        )
    if X_arr.shape[1] != Q:
        raise InvalidArgument(
            f"X has {X_arr.shape[1]} columns but Y has {Q} traits. "
            f"X must hold one polygenic score per trait; build it with "
            f"edgwas.prs.polygenic_scores for a marker matrix."
        )
    if Q < 2:
        raise InvalidArgument(
            "At least two traits are required: conditioning a trait on the "
            "others is undefined for a single trait."
        )
    if N < 2:
        raise InvalidArgument(f"At least two observations are required, got N={N}.")

    var = Y_arr.var(axis=0)
    flat = np.flatnonzero(var <= 0.0)
    if flat.size:
        raise InvalidArgument(
            f"Traits {flat.tolist()} have zero variance. Drop constant columns of Y."
        )
    return X_arr, Y_arr


def _validate_rho(rho: Any) -> np.ndarray:
    """Validate a user-supplied rho sequence.

    Returns
    -------
    np.ndarray
        1D float array, strictly decreasing, non-negative, length >= 2.
    """
    try:
        arr = np.asarray(rho, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"rho cannot be converted to numeric array: {e}") from e

    if arr.size < 2:
        raise InvalidArgument(
            f"Need more than one value of rho, got {arr.size}. "
            f"Pass rho=None to let edgwas choose its own sequence."
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidArgument("rho contains NaN or infinite values.")
    if np.any(arr < 0):
        raise InvalidArgument(f"rho must be non-negative, got min(rho)={arr.min()}.")
    if np.any(np.diff(arr) >= 0):
        raise InvalidArgument(
            "rho must be strictly decreasing (most regularized first). "
            "Try np.sort(np.unique(rho))[::-1]."
        )
    return arr


def _validate_path_params(nrho: Any, rho_min_ratio: Any) -> tuple[int, float]:
    """Validate the parameters of a generated rho sequence."""
    if isinstance(nrho, bool) or not isinstance(nrho, (int, np.integer)):
        raise InvalidArgument(f"nrho must be an integer, got {type(nrho).__name__}")
    if nrho < 2:
        raise InvalidArgument(
            f"nrho must be at least 2, got {nrho}. Try nrho=40."
        )
    try:
        ratio = float(rho_min_ratio)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"rho_min_ratio must be a number: {e}") from e
    if not np.isfinite(ratio) or ratio <= 0:
        raise InvalidArgument(
            f"rho_min_ratio must be positive, got {rho_min_ratio}. Try 1e-3."
        )
    if ratio >= 1:
        raise InvalidArgument(
            f"rho_min_ratio must be below 1 for a decreasing sequence, got {ratio}."
        )
    return int(nrho), ratio


def _validate_nfolds(nfolds: Any, N: int | None = None) -> int:
    """Validate the number of cross-validation folds."""
    if isinstance(nfolds, bool) or not isinstance(nfolds, (int, np.integer)):
        raise InvalidArgument(
            f"nfolds must be an integer, got {type(nfolds).__name__}"
        )
    if nfolds < 3:
        raise InvalidArgument(
            f"nfolds must be at least 3, got {nfolds}; nfolds=10 recommended."
        )
    if N is not None and nfolds > N:
        raise InvalidArgument(
            f"nfolds={nfolds} exceeds the number of observations N={N}."
        )
    return int(nfolds)


def _validate_fold_splits(Y: np.ndarray, foldid: np.ndarray, nfolds: int) -> None:
    """Check that every fold leaves a usable training subset.

    Each training subset (rows outside the fold) needs at least two rows and
    a non-constant column for every trait.

    Raises
    ------
    InvalidArgument
        With ``fold`` set to the first offending fold.
    """
    for fold in range(1, nfolds + 1):
        train = Y[foldid != fold]
        if train.shape[0] < 2:
            raise InvalidArgument(
                f"Holding out fold {fold} leaves {train.shape[0]} training rows; "
                f"at least two are required. Use fewer folds.",
                fold=fold,
            )
        flat = np.flatnonzero(train.var(axis=0) <= 0.0)
        if flat.size:
            raise InvalidArgument(
                f"Traits {flat.tolist()} are constant once fold {fold} is held "
                f"out. Use fewer folds or drop near-constant traits.",
                fold=fold,
            )


def _validate_error_scale(error_scale: Any) -> str:
    """Validate the scale on which held-out errors are measured."""
    if error_scale not in ("trait", "whitened"):
        raise InvalidArgument(
            f"error_scale must be 'trait' or 'whitened', got {error_scale!r}"
        )
    return error_scale


def _validate_solver_params(tol: Any, max_iter: Any) -> tuple[float, int]:
    """Validate graphical lasso convergence parameters."""
    if (
        isinstance(tol, bool)
        or not isinstance(tol, (int, float, np.integer, np.floating))
        or not np.isfinite(tol)
        or tol <= 0
    ):
        raise InvalidArgument(
            f"solver_tol must be a positive number, got {tol!r}. Try solver_tol=1e-4."
        )
    if (
        isinstance(max_iter, bool)
        or not isinstance(max_iter, (int, np.integer))
        or max_iter < 1
    ):
        raise InvalidArgument(
            f"solver_max_iter must be a positive integer, got {max_iter!r}. "
            f"Try solver_max_iter=100."
        )
    return float(tol), int(max_iter)
