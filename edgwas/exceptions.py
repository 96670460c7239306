"""Error types raised by edgwas."""

from __future__ import annotations

import numpy as np


def _where(**coords: int | None) -> str:
    parts = [f"{key}={value}" for key, value in coords.items() if value is not None]
    return f" ({', '.join(parts)})" if parts else ""


class EdGwasError(Exception):
    """Base class for all edgwas errors."""


class InvalidArgument(EdGwasError, ValueError):
    """Bad argument detected before any numeric work starts.

    ``fold`` is set when the argument is only bad for one fold's training
    rows.
    """

    def __init__(self, message: str, *, fold: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.fold = fold

    def __str__(self) -> str:
        return self.message + _where(fold=self.fold)


class SingularFit(EdGwasError, np.linalg.LinAlgError):
    """A matrix required to be invertible (or positive definite) is not.

    ``fold`` is 1-based; ``rho_index`` and ``trait`` are 0-based positions in
    the rho sequence and the trait columns.
    """

    def __init__(
        self,
        message: str,
        *,
        fold: int | None = None,
        rho_index: int | None = None,
        trait: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.fold = fold
        self.rho_index = rho_index
        self.trait = trait

    def __str__(self) -> str:
        return self.message + _where(
            fold=self.fold, rho_index=self.rho_index, trait=self.trait
        )

    def located(
        self,
        *,
        fold: int | None = None,
        rho_index: int | None = None,
        trait: int | None = None,
    ) -> SingularFit:
        """Copy of this error with missing coordinates filled in."""
        return SingularFit(
            self.message,
            fold=self.fold if self.fold is not None else fold,
            rho_index=self.rho_index if self.rho_index is not None else rho_index,
            trait=self.trait if self.trait is not None else trait,
        )


class NumericDivergence(EdGwasError, FloatingPointError):
    """The graphical lasso solver failed to produce a usable estimate."""

    def __init__(
        self,
        message: str,
        *,
        fold: int | None = None,
        rho_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.fold = fold
        self.rho_index = rho_index

    def __str__(self) -> str:
        return self.message + _where(fold=self.fold, rho_index=self.rho_index)
