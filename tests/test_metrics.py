import numpy as np
import pytest

from edgwas.exceptions import InvalidArgument
from edgwas.metrics import Loss, mae, mse


def test_loss_coerce_accepts_names_and_members():
    assert Loss.coerce("mse") is Loss.MSE
    assert Loss.coerce("MAE") is Loss.MAE
    assert Loss.coerce(Loss.MAE) is Loss.MAE


def test_loss_coerce_rejects_unknown():
    with pytest.raises(InvalidArgument, match="huber"):
        Loss.coerce("huber")


def test_elementwise_matches_scalar_helpers():
    rng = np.random.default_rng(0)
    Y = rng.standard_normal((8, 3))
    Yhat = rng.standard_normal((8, 3))
    assert np.isclose(Loss.MSE.elementwise(Yhat, Y).mean(), mse(Y, Yhat))
    assert np.isclose(Loss.MAE.elementwise(Yhat, Y).mean(), mae(Y, Yhat))
    assert Loss.MSE.elementwise(Yhat, Y).shape == (8, 3)


def test_labels():
    assert Loss.MSE.label == "Mean-Squared Error"
    assert Loss.MAE.label == "Mean Absolute Error"
