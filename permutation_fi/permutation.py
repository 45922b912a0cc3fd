"""
Permutation engine: builds the perturbed feature matrices.

Two strategies break the association between one feature and the target:

- ``permute_column``: replace the column by a uniformly random permutation
  of its own values (Breiman-style, O(n) per draw).
- ``pairwise_exchange``: pair every observation i with every other
  observation k and give row (i, k) the feature value of k. The n(n-1)
  rows enumerate every possible substitution, so no random draw is needed,
  at quadratic memory cost.

Both return new objects; the input matrix is never modified.
"""

import logging
import warnings

import numpy as np
import pandas as pd
from typing import Optional, Tuple

from .exceptions import InsufficientDataError, ResourceLimitExceededError

logger = logging.getLogger(__name__)

# n(n-1) ~ 4e6 rows at the default
DEFAULT_MAX_PAIRWISE_N = 2000

# Expanded matrices above this many rows trigger a warning
PAIRWISE_WARN_ROWS = 1_000_000


def permute_column(X, j: int, rng: np.random.Generator):
    """
    Copy ``X`` with column ``j`` randomly permuted.

    Fixed points are allowed: this is a uniform draw over all n!
    permutations, not a derangement.

    Parameters
    ----------
    X : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
        Feature matrix
    j : int
        Position of the column to permute
    rng : np.random.Generator
        Source of randomness

    Returns
    -------
    X_permuted : same type as X
        Copy of X; column j holds the same multiset of values in a new order.

    Examples
    --------
    >>> rng = np.random.default_rng(0)
    >>> X = np.arange(12).reshape(4, 3)
    >>> X_perm = permute_column(X, 1, rng)
    >>> sorted(X_perm[:, 1]) == sorted(X[:, 1])
    True
    """
    order = rng.permutation(X.shape[0])
    if isinstance(X, pd.DataFrame):
        X_perm = X.copy()
        X_perm.isetitem(j, X.iloc[:, j].array.take(order))
        return X_perm

    X_perm = X.copy()
    X_perm[:, j] = X[order, j]
    return X_perm


def pairwise_indices(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Enumerate all ordered pairs (i, k) with i != k.

    Pairs are in row-major order: i is the outer index, k the inner one.

    Returns
    -------
    i : np.ndarray of shape (n*(n-1),)
        Observation supplying the untouched columns and the target.
    k : np.ndarray of shape (n*(n-1),)
        Observation supplying the exchanged feature value.

    Examples
    --------
    >>> i, k = pairwise_indices(3)
    >>> list(zip(i.tolist(), k.tolist()))
    [(0, 1), (0, 2), (1, 0), (1, 2), (2, 0), (2, 1)]
    """
    i = np.repeat(np.arange(n), n)
    k = np.tile(np.arange(n), n)
    keep = i != k
    return i[keep], k[keep]


def check_pairwise_size(n: int, max_n: Optional[int] = DEFAULT_MAX_PAIRWISE_N) -> None:
    """
    Fail fast if exact pairwise exchange cannot run on ``n`` observations.

    Raises
    ------
    InsufficientDataError
        If n < 2 (no pair with i != k exists).
    ResourceLimitExceededError
        If n exceeds ``max_n``. Pass ``max_n=None`` to disable the limit.
    """
    if n < 2:
        raise InsufficientDataError(
            f"Exact pairwise mode needs at least 2 observations, got {n}"
        )
    if max_n is not None and n > max_n:
        raise ResourceLimitExceededError(n, max_n)

    n_rows = n * (n - 1)
    if n_rows > PAIRWISE_WARN_ROWS:
        warnings.warn(
            f"Exact pairwise mode will materialise {n_rows} rows per feature",
            UserWarning,
            stacklevel=3
        )


def pairwise_exchange(
    X,
    y,
    j: int,
    max_n: Optional[int] = DEFAULT_MAX_PAIRWISE_N
):
    """
    Expand ``X`` into all n(n-1) single-feature exchanges for column ``j``.

    Row (i, k) of the result takes column j from observation k and every
    other column from observation i; its target is ``y[i]``.

    Parameters
    ----------
    X : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
        Feature matrix
    y : np.ndarray of shape (n_samples,)
        Target values
    j : int
        Position of the column to exchange
    max_n : int or None, default=DEFAULT_MAX_PAIRWISE_N
        Largest n accepted before raising ResourceLimitExceededError

    Returns
    -------
    X_pairs : same type as X, shape (n*(n-1), n_features)
    y_pairs : np.ndarray of shape (n*(n-1),)

    Notes
    -----
    Averaging a loss over these rows gives the exact expectation over
    every possible substitution, the quantity a random permutation only
    estimates.
    """
    n = X.shape[0]
    check_pairwise_size(n, max_n)

    i, k = pairwise_indices(n)
    return exchange_rows(X, y, j, i, k)


def exchange_rows(X, y, j: int, i: np.ndarray, k: np.ndarray):
    """
    Build rows that take column ``j`` from observations ``k`` and the rest,
    including the target, from observations ``i``.

    No size checks are made; see :func:`pairwise_exchange`.
    """
    logger.debug("Exchanging column %d over %d rows", j, len(i))

    if isinstance(X, pd.DataFrame):
        X_pairs = X.iloc[i].reset_index(drop=True)
        X_pairs.isetitem(j, X.iloc[:, j].array.take(k))
    else:
        X_pairs = X[i]
        X_pairs[:, j] = X[k, j]

    y_pairs = np.asarray(y)[i]
    return X_pairs, y_pairs
