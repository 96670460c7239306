from __future__ import annotations

from enum import Enum

import numpy as np

from .exceptions import InvalidArgument


def mse(Y: np.ndarray, Yhat: np.ndarray) -> float:
    """Mean squared error between two matrices."""
    return float(np.mean((Y - Yhat) ** 2))


def mae(Y: np.ndarray, Yhat: np.ndarray) -> float:
    """Mean absolute error between two matrices."""
    return float(np.mean(np.abs(Y - Yhat)))


class Loss(str, Enum):
    """Cross-validation loss, resolved once per call."""

    MSE = "mse"
    MAE = "mae"

    @classmethod
    def coerce(cls, value: Loss | str) -> Loss:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            choices = ", ".join(repr(m.value) for m in cls)
            raise InvalidArgument(
                f"Unknown loss {value!r}; expected one of {choices}"
            ) from exc

    @property
    def label(self) -> str:
        return {
            Loss.MSE: "Mean-Squared Error",
            Loss.MAE: "Mean Absolute Error",
        }[self]

    def elementwise(self, pred: np.ndarray, target: np.ndarray) -> np.ndarray:
        """Per-entry error, same shape as the inputs."""
        diff = np.asarray(pred) - np.asarray(target)
        if self is Loss.MSE:
            return diff**2
        return np.abs(diff)
