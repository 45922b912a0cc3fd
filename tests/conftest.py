import numpy as np
import pandas as pd
import pytest


class LinearModel:
    """Fixed linear model exposing predict(), counting its calls."""

    def __init__(self, coef, intercept=0.0):
        self.coef = np.asarray(coef, dtype=float)
        self.intercept = intercept
        self.n_calls = 0

    def predict(self, X):
        self.n_calls += 1
        return np.asarray(X, dtype=float) @ self.coef + self.intercept


@pytest.fixture
def linear_data():
    """y depends on x0 strongly, x1 weakly, and not at all on x2."""
    rng = np.random.default_rng(0)
    X = rng.normal(size=(200, 3))
    y = 3.0 * X[:, 0] + 0.5 * X[:, 1] + 0.1 * rng.normal(size=200)
    return X, y


@pytest.fixture
def linear_model():
    return LinearModel([3.0, 0.5, 0.0])


@pytest.fixture
def linear_frame(linear_data):
    X, y = linear_data
    return pd.DataFrame(X, columns=['strong', 'weak', 'unused']), pd.Series(y)
