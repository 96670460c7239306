"""High-level estimator APIs for graphical-lasso trait graphs."""

from __future__ import annotations

from typing import Any

import numpy as np

from ._validation import _as_matrix
from .cv import cross_validate
from .exceptions import InvalidArgument
from .graph import partial_correlations, trait_clusters
from .metrics import Loss
from .ops import matrix_sqrt
from .path import EdGwasPath, fit_path


def _column_names(obj: Any, size: int) -> list[str]:
    if hasattr(obj, "columns"):
        return [str(c) for c in obj.columns]
    return [f"y{i}" for i in range(size)]


class _ParamsMixin:
    _param_names: tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Scikit-learn estimator protocol
    # ------------------------------------------------------------------
    def get_params(self, deep: bool = True) -> dict[str, Any]:  # noqa: D401 - sklearn API
        return {name: getattr(self, name) for name in self._param_names}

    def set_params(self, **params: Any):  # noqa: D401 - sklearn API
        for key, value in params.items():
            if key not in self._param_names:
                raise ValueError(f"Unknown parameter {key!r}")
            setattr(self, key, value)
        return self

    def _ensure_fitted(self) -> None:
        if not getattr(self, "is_fitted_", False):
            raise RuntimeError("The estimator has not been fitted yet")


class EdGwas(_ParamsMixin):
    """Scikit-learn style estimator for the graphical lasso path."""

    _param_names = (
        "rho",
        "nrho",
        "log_spacing",
        "rho_min_ratio",
        "solver_tol",
        "solver_max_iter",
    )

    def __init__(
        self,
        *,
        rho: Any = None,
        nrho: int = 40,
        log_spacing: bool = False,
        rho_min_ratio: float = 1e-3,
        solver_tol: float = 1e-4,
        solver_max_iter: int = 100,
    ) -> None:
        self.rho = rho
        self.nrho = nrho
        self.log_spacing = log_spacing
        self.rho_min_ratio = rho_min_ratio
        self.solver_tol = solver_tol
        self.solver_max_iter = solver_max_iter

    def fit(self, X: Any, Y: Any) -> EdGwas:
        path = fit_path(
            X,
            Y,
            rho=self.rho,
            nrho=self.nrho,
            log_spacing=self.log_spacing,
            rho_min_ratio=self.rho_min_ratio,
            solver_tol=self.solver_tol,
            solver_max_iter=self.solver_max_iter,
        )
        self.path_ = path
        self.rho_ = path.rho
        self.precision_ = path.precision
        self.covariance_ = path.covariance
        self.n_traits_ = path.n_traits
        self.n_obs_ = path.nobs
        self.trait_names_ = _column_names(Y, path.n_traits)
        self.is_fitted_ = True
        return self

    def predict(self, X: Any) -> list[np.ndarray]:
        """One prediction matrix per rho value."""
        self._ensure_fitted()
        return self.path_.predict(X, type="link")


class EdGwasCV(_ParamsMixin):
    """Cross-validated choice of rho; exposes the full-data fit at that rho."""

    _param_names = (
        "rho",
        "nfolds",
        "loss",
        "error_scale",
        "nrho",
        "log_spacing",
        "rho_min_ratio",
        "select",
        "n_jobs",
        "random_state",
        "edge_tol",
        "solver_tol",
        "solver_max_iter",
    )

    def __init__(
        self,
        *,
        rho: Any = None,
        nfolds: int = 10,
        loss: str = "mse",
        error_scale: str = "trait",
        nrho: int = 40,
        log_spacing: bool = False,
        rho_min_ratio: float = 1e-3,
        select: str = "rho_1se",
        n_jobs: int | None = 1,
        random_state: int | None = None,
        edge_tol: float = 1e-8,
        solver_tol: float = 1e-4,
        solver_max_iter: int = 100,
    ) -> None:
        self.rho = rho
        self.nfolds = nfolds
        self.loss = loss
        self.error_scale = error_scale
        self.nrho = nrho
        self.log_spacing = log_spacing
        self.rho_min_ratio = rho_min_ratio
        self.select = select
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.edge_tol = edge_tol
        self.solver_tol = solver_tol
        self.solver_max_iter = solver_max_iter

    def fit(self, X: Any, Y: Any) -> EdGwasCV:
        if self.select not in ("rho_min", "rho_1se"):
            raise InvalidArgument(
                f"select must be 'rho_min' or 'rho_1se', got {self.select!r}"
            )
        result = cross_validate(
            X,
            Y,
            rho=self.rho,
            nfolds=self.nfolds,
            loss=self.loss,
            error_scale=self.error_scale,
            nrho=self.nrho,
            log_spacing=self.log_spacing,
            rho_min_ratio=self.rho_min_ratio,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
            solver_tol=self.solver_tol,
            solver_max_iter=self.solver_max_iter,
        )
        index = result.index_of(self.select)

        self.cv_result_ = result
        self.rho_ = result.rho
        self.rho_min_ = result.rho_min
        self.rho_1se_ = result.rho_1se
        self.index_ = index
        self.alpha_ = float(result.rho[index])
        self.precision_ = result.full_fit.precision[index]
        self.covariance_ = result.full_fit.covariance[index]
        self.partial_correlation_ = partial_correlations(self.precision_)
        self.clusters_ = trait_clusters(self.precision_, tol=self.edge_tol)
        self.n_traits_ = result.full_fit.n_traits
        self.trait_names_ = _column_names(Y, self.n_traits_)
        self.is_fitted_ = True
        return self

    @property
    def path_(self) -> EdGwasPath:
        self._ensure_fitted()
        return self.cv_result_.full_fit

    def predict(self, X: Any) -> np.ndarray:
        """Whitened-trait predictions at the selected rho."""
        self._ensure_fitted()
        return self.path_.predict(X, type="link")[self.index_]

    def score(self, X: Any, Y: Any) -> float:
        """Negative loss at the selected rho, on the ``error_scale`` of the fit."""
        self._ensure_fitted()
        Y_arr = _as_matrix(Y, name="Y")
        if Y_arr.shape[1] != self.n_traits_:
            raise InvalidArgument("Y has incompatible number of traits")
        preds = self.predict(X)
        if preds.shape != Y_arr.shape:
            raise InvalidArgument("Predictions and Y have incompatible shapes")
        W, W_inv = matrix_sqrt(self.precision_, return_inverse=True)
        if self.cv_result_.error_scale == "whitened":
            pred, target = preds, Y_arr @ W
        else:
            pred, target = preds @ W_inv, Y_arr
        return -float(np.mean(Loss.coerce(self.loss).elementwise(pred, target)))

    def clusters_as_series(self):
        self._ensure_fitted()
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for clusters_as_series()") from exc

        return pd.Series(self.clusters_, index=self.trait_names_, name="cluster")

    def summary_dict(self) -> dict[str, Any]:
        self._ensure_fitted()
        out = self.cv_result_.summary_dict()
        out["select"] = self.select
        out["n_clusters"] = int(self.clusters_.max()) + 1
        return out
