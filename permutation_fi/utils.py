"""
Utility functions for permutation feature importance.

This module provides helper functions for:
- Coercing feature matrices and targets into a validated form
- Resolving random sources into independent per-feature streams
- Generating the Friedman benchmark data used in examples and tests
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence, Tuple, Union

from .exceptions import DimensionMismatchError

FeatureMatrix = Union[np.ndarray, pd.DataFrame]
RandomSource = Union[None, int, np.random.Generator, np.random.SeedSequence]


def as_feature_matrix(
    X,
    feature_names: Optional[Sequence] = None
) -> Tuple[FeatureMatrix, List]:
    """
    Validate a feature matrix and resolve its feature names.

    Parameters
    ----------
    X : pd.DataFrame or array-like of shape (n_samples, n_features)
        Feature matrix. DataFrames are kept as DataFrames so the model
        receives the type it was trained on; anything else becomes an
        ndarray.
    feature_names : sequence, optional
        Names for the columns. Defaults to the DataFrame's columns, or
        ``x0, x1, ...`` for arrays.

    Returns
    -------
    X : np.ndarray or pd.DataFrame
        The validated matrix (not copied).
    feature_names : list
        One unique name per column.

    Raises
    ------
    DimensionMismatchError
        If X is not 2-D or feature_names has the wrong length.
    ValueError
        If feature names are not unique.
    """
    if not isinstance(X, pd.DataFrame):
        X = np.asarray(X)
        if X.ndim != 2:
            raise DimensionMismatchError(f"X must be 2D, got shape {X.shape}")

    n_features = X.shape[1]

    if feature_names is None:
        if isinstance(X, pd.DataFrame):
            feature_names = list(X.columns)
        else:
            feature_names = [f"x{j}" for j in range(n_features)]
    else:
        feature_names = list(feature_names)
        if len(feature_names) != n_features:
            raise DimensionMismatchError(
                f"Got {len(feature_names)} feature names for {n_features} columns"
            )

    if len(set(feature_names)) != len(feature_names):
        duplicates = sorted({str(f) for f in feature_names if feature_names.count(f) > 1})
        raise ValueError(f"Feature names must be unique, duplicated: {duplicates}")

    return X, feature_names


def as_target(y, n_samples: int) -> np.ndarray:
    """
    Convert a target to a 1-D array and check it matches the matrix rows.

    Raises
    ------
    DimensionMismatchError
        If y is not 1-D or its length differs from ``n_samples``.
    """
    y = y.to_numpy() if isinstance(y, (pd.Series, pd.DataFrame)) else np.asarray(y)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise DimensionMismatchError(f"y must be 1D, got shape {y.shape}")
    if len(y) != n_samples:
        raise DimensionMismatchError(
            f"y has {len(y)} values but X has {n_samples} rows"
        )
    return y


def spawn_generators(random_state: RandomSource, n: int) -> List[np.random.Generator]:
    """
    Derive ``n`` independent generators from one random source.

    The same ``random_state`` always yields the same streams, so feature j
    sees identical permutations whether features run in order, in a subset
    or on parallel workers.

    Parameters
    ----------
    random_state : None, int, np.random.Generator or np.random.SeedSequence
        Root of the random streams. ``None`` draws fresh OS entropy.
    n : int
        Number of streams.

    Returns
    -------
    generators : list of np.random.Generator
    """
    if isinstance(random_state, np.random.Generator):
        seed_seq = np.random.SeedSequence(random_state.integers(0, 2**63 - 1))
    elif isinstance(random_state, np.random.SeedSequence):
        # Copy so the caller's spawn counter is left untouched
        seed_seq = np.random.SeedSequence(
            random_state.entropy,
            spawn_key=random_state.spawn_key,
            pool_size=random_state.pool_size
        )
    elif random_state is None or isinstance(random_state, (int, np.integer)):
        seed_seq = np.random.SeedSequence(random_state)
    else:
        raise ValueError(
            f"random_state must be None, an int, a Generator or a SeedSequence, "
            f"got {type(random_state).__name__}"
        )
    return [np.random.default_rng(child) for child in seed_seq.spawn(n)]


def friedman_function(X: np.ndarray) -> np.ndarray:
    """
    Compute the Friedman benchmark function.

    The function is: y = 10*sin(π*x1*x2) + 20*(x3 - 0.5)^2 + 10*x4 + 5*x5

    Only the first 5 features are used; remaining features are noise, which
    makes it a convenient check that unused features score ~1 (ratio) or
    ~0 (difference).

    Parameters
    ----------
    X : np.ndarray of shape (n_samples, n_features)
        Feature matrix with features in [0, 1]
        Must have at least 5 columns

    Returns
    -------
    y : np.ndarray of shape (n_samples,)
        Target values

    References
    ----------
    Friedman, J. H. (1991). "Multivariate adaptive regression splines."
    The Annals of Statistics, 19(1), 1-67.
    """
    if X.shape[1] < 5:
        raise ValueError("X must have at least 5 features for Friedman function")

    x1, x2, x3, x4, x5 = X[:, 0], X[:, 1], X[:, 2], X[:, 3], X[:, 4]

    return (
        10 * np.sin(np.pi * x1 * x2) +
        20 * (x3 - 0.5) ** 2 +
        10 * x4 +
        5 * x5
    )


def make_friedman_frame(
    n_samples: int = 500,
    n_features: int = 7,
    noise: float = 1.0,
    random_state: int = 42
) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Sample a Friedman regression problem as a DataFrame and target Series.

    Columns are named ``x1 ... x5`` for the informative features and
    ``noise1, noise2, ...`` for the rest.
    """
    if n_features < 5:
        raise ValueError("n_features must be at least 5")
    rng = np.random.default_rng(random_state)
    X = rng.uniform(0, 1, size=(n_samples, n_features))
    y = friedman_function(X) + noise * rng.standard_normal(n_samples)

    columns = [f"x{j + 1}" for j in range(5)]
    columns += [f"noise{j + 1}" for j in range(n_features - 5)]
    return pd.DataFrame(X, columns=columns), pd.Series(y, name='y')
