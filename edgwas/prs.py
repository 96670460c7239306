"""Polygenic scores from marker dosages.

Effects are estimated in a discovery sample and applied to a target sample;
the target scores are the ``X`` consumed by :func:`edgwas.fit_path`.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ._validation import _as_matrix
from .exceptions import InvalidArgument


def marginal_effects(G: Any, Y: Any) -> np.ndarray:
    """
    Per-marker, per-trait univariate regression slopes.

    Parameters
    ----------
    G : (N × P) array-like
        Marker dosages.
    Y : (N × Q) array-like
        Traits.

    Returns
    -------
    beta : (P × Q) array
        ``beta[p, q]`` is the slope of ``Y[:, q]`` on ``G[:, p]`` (with an
        intercept). Monomorphic markers get a zero effect.
    """
    G_arr = _as_matrix(G, name="G")
    Y_arr = _as_matrix(Y, name="Y")
    if G_arr.shape[0] != Y_arr.shape[0]:
        raise InvalidArgument(
            f"G has {G_arr.shape[0]} rows but Y has {Y_arr.shape[0]}."
        )
    Gc = G_arr - G_arr.mean(axis=0, keepdims=True)
    Yc = Y_arr - Y_arr.mean(axis=0, keepdims=True)
    ss = np.sum(Gc * Gc, axis=0)  # (P,)
    cross = Gc.T @ Yc  # (P × Q)
    beta = np.zeros_like(cross)
    poly = ss > 0
    beta[poly] = cross[poly] / ss[poly, None]
    return beta


def polygenic_scores(G: Any, beta: Any) -> np.ndarray:
    """Return the N × Q matrix of scores ``G @ beta``."""
    G_arr = _as_matrix(G, name="G")
    beta_arr = _as_matrix(beta, name="beta")
    if G_arr.shape[1] != beta_arr.shape[0]:
        raise InvalidArgument(
            f"G has {G_arr.shape[1]} markers but beta has {beta_arr.shape[0]} rows."
        )
    return G_arr @ beta_arr
