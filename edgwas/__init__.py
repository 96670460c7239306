import logging

from .api import EdGwas, EdGwasCV
from .cv import CrossValidationResult, cross_validate, select_rho
from .exceptions import EdGwasError, InvalidArgument, NumericDivergence, SingularFit
from .folds import make_folds
from .graph import edge_matrix, partial_correlations, trait_clusters
from .metrics import Loss, mae, mse
from .ops import conditional_adjustment, matrix_sqrt
from .path import EdGwasPath, fit_path, predict, rho_sequence
from .prs import marginal_effects, polygenic_scores
from .sim import simulate_genotypes, simulate_prs_study, simulate_traits

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CrossValidationResult",
    "EdGwas",
    "EdGwasCV",
    "EdGwasError",
    "EdGwasPath",
    "InvalidArgument",
    "Loss",
    "NumericDivergence",
    "SingularFit",
    "conditional_adjustment",
    "cross_validate",
    "edge_matrix",
    "fit_path",
    "mae",
    "make_folds",
    "marginal_effects",
    "matrix_sqrt",
    "mse",
    "partial_correlations",
    "polygenic_scores",
    "predict",
    "rho_sequence",
    "select_rho",
    "simulate_genotypes",
    "simulate_prs_study",
    "simulate_traits",
    "trait_clusters",
]
