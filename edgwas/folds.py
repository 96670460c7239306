from __future__ import annotations

import numpy as np

from ._validation import _validate_nfolds
from .exceptions import InvalidArgument


def make_folds(
    N: int,
    nfolds: int,
    random_state: int | np.random.Generator | None = None,
) -> np.ndarray:
    """
    Random fold ids in ``1..nfolds`` for ``N`` observations.

    The cycle ``1..nfolds`` is repeated to length ``N`` and permuted, so fold
    sizes differ by at most one. Each call draws from its own generator.
    """
    if isinstance(N, bool) or not isinstance(N, (int, np.integer)) or N < 1:
        raise InvalidArgument(f"N must be a positive integer, got {N!r}")
    k = _validate_nfolds(nfolds, int(N))
    rng = np.random.default_rng(random_state)
    cycle = np.resize(np.arange(1, k + 1), int(N))
    return rng.permutation(cycle)


def fold_sizes(foldid: np.ndarray, nfolds: int) -> np.ndarray:
    """Number of observations in each fold, indexed 0..nfolds-1 for folds 1..nfolds."""
    return np.bincount(np.asarray(foldid, dtype=int), minlength=nfolds + 1)[1:]
