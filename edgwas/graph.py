"""Trait graph read off a fitted precision matrix."""

from __future__ import annotations

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from .exceptions import InvalidArgument


def _square(P: np.ndarray) -> np.ndarray:
    P = np.asarray(P, dtype=np.float64)
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise InvalidArgument(f"Expected a square matrix, got shape {P.shape}")
    return P


def partial_correlations(precision: np.ndarray) -> np.ndarray:
    """Partial correlations -P_ij / sqrt(P_ii P_jj), with a unit diagonal."""
    P = _square(precision)
    d = np.diag(P)
    if np.any(d <= 0):
        raise InvalidArgument("Precision matrix must have a strictly positive diagonal")
    s = 1.0 / np.sqrt(d)
    R = -P * s[:, None] * s[None, :]
    np.fill_diagonal(R, 1.0)
    return R


def edge_matrix(precision: np.ndarray, tol: float = 1e-8) -> np.ndarray:
    """Boolean adjacency: True where an off-diagonal entry exceeds ``tol`` in magnitude."""
    P = _square(precision)
    A = np.abs(P) > tol
    np.fill_diagonal(A, False)
    return A


def trait_clusters(precision: np.ndarray, tol: float = 1e-8) -> np.ndarray:
    """
    Cluster labels of the traits: connected components of the edge graph.

    Traits with no edge form singleton clusters. Labels are integers
    ``0..n_clusters-1`` in order of first appearance.
    """
    A = edge_matrix(precision, tol)
    _, labels = connected_components(csr_matrix(A), directed=False)
    return labels
