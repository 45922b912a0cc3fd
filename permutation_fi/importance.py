"""
Permutation Feature Importance (PFI) for any fitted model.

The importance of a feature is the degradation of a loss when the
feature's link to the target is broken, either by randomly permuting the
column (``mode='simple'``) or by exhaustively exchanging its values between
all pairs of observations (``mode='exact-pairwise'``). The model is only
ever asked for predictions, so any estimator with ``predict()`` or any
callable ``X -> predictions`` works.
"""

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed

from .exceptions import EstimationCancelledError, ZeroBaselineError
from .losses import Loss, get_loss
from .options import ImportanceOptions, Mode, Scoring
from .permutation import (
    DEFAULT_MAX_PAIRWISE_N,
    check_pairwise_size,
    exchange_rows,
    pairwise_indices,
    permute_column
)
from .ranking import rank, to_frame
from .utils import as_feature_matrix, as_target, spawn_generators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureScore:
    """
    Importance of a single feature.

    Attributes
    ----------
    permuted_error : float
        Loss after permutation, averaged over repetitions.
    importance : float
        ``permuted_error`` compared with the baseline error (ratio or
        difference).
    repetitions : int
        Number of permuted errors averaged.
    permuted_errors : tuple of float
        The individual permuted errors, one per repetition.
    importance_05, importance_95 : float
        5% and 95% quantiles of the per-repetition importance. Equal to
        ``importance`` when there is a single repetition.
    """

    permuted_error: float
    importance: float
    repetitions: int
    permuted_errors: Tuple[float, ...] = ()
    importance_05: float = np.nan
    importance_95: float = np.nan


class ImportanceResult(Mapping):
    """
    Read-only mapping from feature name to :class:`FeatureScore`.

    Iteration follows the column order of the feature matrix. Use
    :meth:`rank` for features sorted by importance and :meth:`to_frame`
    for a table.
    """

    def __init__(
        self,
        scores: Dict,
        baseline_error: float,
        loss_name: str,
        mode: Mode,
        scoring: Scoring
    ):
        self._scores = dict(scores)
        self._baseline_error = baseline_error
        self._loss_name = loss_name
        self._mode = mode
        self._scoring = scoring

    def __getitem__(self, feature):
        return self._scores[feature]

    def __iter__(self):
        return iter(self._scores)

    def __len__(self) -> int:
        return len(self._scores)

    @property
    def baseline_error(self) -> float:
        """Loss of the model on the unpermuted data."""
        return self._baseline_error

    @property
    def loss_name(self) -> str:
        return self._loss_name

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def scoring(self) -> Scoring:
        return self._scoring

    @property
    def feature_names(self) -> list:
        return list(self._scores)

    @property
    def importances(self) -> np.ndarray:
        """Importance scores in column order."""
        return np.array([s.importance for s in self._scores.values()], dtype=float)

    def rank(self) -> List[Tuple[object, float]]:
        """(feature, importance) pairs by descending importance, ties in column order."""
        return rank(self)

    def to_frame(self, sort: bool = True):
        """Tabular export, see :func:`permutation_fi.ranking.to_frame`."""
        return to_frame(self, sort=sort)

    def __repr__(self) -> str:
        return (
            f"ImportanceResult(n_features={len(self)}, loss='{self._loss_name}', "
            f"baseline_error={self._baseline_error:.6g}, "
            f"mode='{self._mode.value}', scoring='{self._scoring.value}')"
        )


def _predict(model, X, predict_method: str = 'predict') -> np.ndarray:
    """Call the model and flatten single-column output."""
    method = getattr(model, predict_method, None)
    if method is not None:
        out = method(X)
    elif callable(model):
        out = model(X)
    else:
        raise ValueError(
            f"model must have a {predict_method}() method or be callable, "
            f"got {type(model).__name__}"
        )
    out = np.asarray(out)
    if out.ndim == 2 and out.shape[1] == 1:
        out = out[:, 0]
    return out


def _resolve_features(features, feature_names: list) -> List[int]:
    """Map a subset of feature names or positions to column positions, in column order."""
    if features is None:
        return list(range(len(feature_names)))

    positions = []
    for feature in features:
        if feature in feature_names:
            positions.append(feature_names.index(feature))
        elif isinstance(feature, (int, np.integer)) and 0 <= feature < len(feature_names):
            positions.append(int(feature))
        else:
            raise ValueError(f"Unknown feature {feature!r}")
    if len(set(positions)) != len(positions):
        raise ValueError("features must not contain duplicates")
    return sorted(positions)


def _score_feature(
    model,
    X,
    y: np.ndarray,
    j: int,
    name,
    loss: Loss,
    options: ImportanceOptions,
    baseline_error: float,
    rng: np.random.Generator,
    pairs: Optional[Tuple[np.ndarray, np.ndarray]],
    predict_method: str
) -> FeatureScore:
    """Permute one feature, re-predict and score it against the baseline."""
    logger.debug("Permuting feature %r", name)
    try:
        if options.mode is Mode.EXACT_PAIRWISE:
            X_pairs, y_pairs = exchange_rows(X, y, j, *pairs)
            errors = [loss.evaluate(y_pairs, _predict(model, X_pairs, predict_method))]
        else:
            errors = [
                loss.evaluate(y, _predict(model, permute_column(X, j, rng), predict_method))
                for _ in range(options.repetitions)
            ]
    except Exception as err:
        logger.error("Importance computation failed on feature %r: %s", name, err)
        err.feature_name = name
        raise

    errors = np.asarray(errors, dtype=float)
    permuted_error = float(errors.mean())
    per_repetition = options.scoring.compare(errors, baseline_error)
    q05, q95 = np.quantile(per_repetition, [0.05, 0.95])

    return FeatureScore(
        permuted_error=permuted_error,
        importance=float(options.scoring.compare(permuted_error, baseline_error)),
        repetitions=len(errors),
        permuted_errors=tuple(errors.tolist()),
        importance_05=float(q05),
        importance_95=float(q95)
    )


def estimate(
    model,
    X,
    y,
    loss: Union[str, Loss, Callable] = 'mae',
    options: Optional[ImportanceOptions] = None,
    *,
    feature_names: Optional[Sequence] = None,
    features: Optional[Sequence] = None,
    cancel=None,
    predict_method: str = 'predict',
    **option_kwargs
) -> ImportanceResult:
    """
    Compute permutation feature importance.

    Parameters
    ----------
    model : estimator or callable
        Fitted model with ``predict()`` (or the method named by
        ``predict_method``), or a callable ``X -> predictions``. Never
        modified.
    X : pd.DataFrame or array-like of shape (n_samples, n_features)
        Feature matrix (typically held-out data). Never modified.
    y : array-like of shape (n_samples,)
        Target values
    loss : str, Loss or callable, default='mae'
        Error measure, see :func:`permutation_fi.losses.get_loss`.
    options : ImportanceOptions, optional
        Run configuration. Alternatively pass its fields as keyword
        arguments (``repetitions=10, scoring='difference'``, ...).
    feature_names : sequence, optional
        Column names for array input.
    features : sequence, optional
        Subset of feature names (or positions) to score. Default: all.
    cancel : object with ``is_set()``, optional
        Checked before each feature, e.g. a ``threading.Event``. When set,
        the run stops with EstimationCancelledError.
    predict_method : str, default='predict'
        Model method to call, e.g. ``'predict_proba'`` with ``loss='1-auc'``.

    Returns
    -------
    result : ImportanceResult

    Raises
    ------
    DimensionMismatchError
        If X, y and the predictions disagree in length.
    InvalidDomainError
        If the loss receives values outside its domain.
    ZeroBaselineError
        If ``scoring='ratio'`` and the baseline error is 0.
    InsufficientDataError, ResourceLimitExceededError
        If exact-pairwise mode is requested with n < 2 or n too large.
        Raised before the model is called.

    Notes
    -----
    For each feature j with baseline error e_orig:

        permuted_error_j = mean_r loss(y, f(X with column j permuted, draw r))
        importance_j = permuted_error_j / e_orig      (ratio)
        importance_j = permuted_error_j - e_orig      (difference)

    Exceptions raised by the model propagate unchanged, with a
    ``feature_name`` attribute naming the feature being processed.

    Examples
    --------
    >>> from sklearn.ensemble import RandomForestRegressor
    >>> from permutation_fi.utils import make_friedman_frame
    >>> X, y = make_friedman_frame(n_samples=300)
    >>> model = RandomForestRegressor(random_state=0).fit(X, y)
    >>> result = estimate(model, X, y, loss='mae', repetitions=5, random_state=0)
    >>> result.rank()[0][0] in {'x1', 'x2', 'x4'}
    True
    """
    if options is None:
        options = ImportanceOptions(**option_kwargs)
    elif option_kwargs:
        raise ValueError(
            f"Pass either options or keyword options, not both: {sorted(option_kwargs)}"
        )

    loss = get_loss(loss)
    X, names = as_feature_matrix(X, feature_names)
    y = as_target(y, X.shape[0])
    positions = _resolve_features(features, names)
    n_samples = X.shape[0]

    if not positions:
        logger.info("No features to permute, returning an empty result")
        return ImportanceResult({}, np.nan, loss.name, options.mode, options.scoring)

    pairs = None
    if options.mode is Mode.EXACT_PAIRWISE:
        if options.repetitions > 1:
            warnings.warn(
                f"repetitions={options.repetitions} is ignored in exact-pairwise mode, "
                f"which makes a single exhaustive pass",
                UserWarning,
                stacklevel=2
            )
        check_pairwise_size(n_samples, options.max_pairwise_n)
        pairs = pairwise_indices(n_samples)

    baseline_error = loss.evaluate(y, _predict(model, X, predict_method))
    if options.scoring is Scoring.RATIO and baseline_error == 0:
        raise ZeroBaselineError(loss.name)

    logger.info(
        "Baseline %s = %.6g; permuting %d features (mode=%s, repetitions=%d)",
        loss.name, baseline_error, len(positions),
        options.mode.value, options.effective_repetitions
    )

    # One stream per column, whichever subset runs
    generators = spawn_generators(options.random_state, len(names))

    def run(j):
        if cancel is not None and cancel.is_set():
            raise EstimationCancelledError(f"Cancelled before feature {names[j]!r}")
        return _score_feature(
            model, X, y, j, names[j], loss, options,
            baseline_error, generators[j], pairs, predict_method
        )

    if options.n_jobs == 1:
        scores = [run(j) for j in positions]
    else:
        # Workers return their own scores; merged below in column order
        scores = Parallel(n_jobs=options.n_jobs, prefer='threads')(
            delayed(run)(j) for j in positions
        )

    return ImportanceResult(
        {names[j]: score for j, score in zip(positions, scores)},
        baseline_error,
        loss.name,
        options.mode,
        options.scoring
    )


class PermutationImportance:
    """
    Permutation feature importance estimator.

    Parameters
    ----------
    loss : str, Loss or callable, default='mae'
        Error measure. Built-ins: 'mae', 'mse', 'rmse', 'mdae', 'mape',
        '1-auc', 'logloss', 'ce'.

    repetitions : int, default=1
        Random permutations averaged per feature. More repetitions reduce the
        variance of the estimate. Ignored in exact-pairwise mode.

    mode : {'simple', 'exact-pairwise'}, default='simple'
        - 'simple': permute the column at random (O(n) per repetition)
        - 'exact-pairwise': evaluate all n(n-1) pairwise exchanges
          (O(n^2) memory, deterministic)

    scoring : {'ratio', 'difference'}, default='ratio'
        - 'ratio': permuted_error / baseline_error (1 means unused)
        - 'difference': permuted_error - baseline_error (0 means unused)

    random_state : int, np.random.Generator, np.random.SeedSequence or None
        Seed for the permutations. Set it for reproducible scores.

    n_jobs : int, default=1
        Number of joblib workers across features.

    max_pairwise_n : int or None, default=2000
        Largest sample size accepted by exact-pairwise mode.

    predict_method : str, default='predict'
        Name of the model method producing predictions.

    Attributes
    ----------
    result_ : ImportanceResult
        Full result after calling fit()

    importances_ : np.ndarray of shape (n_features,)
        Importance scores in column order

    baseline_error_ : float
        Loss on the unpermuted data

    feature_names_ : list
        Names of the scored features

    Examples
    --------
    >>> from sklearn.ensemble import RandomForestRegressor
    >>> from permutation_fi.utils import make_friedman_frame
    >>> X, y = make_friedman_frame(n_samples=300)
    >>> model = RandomForestRegressor(random_state=42).fit(X, y)
    >>> pfi = PermutationImportance(loss='mae', repetitions=10, random_state=0)
    >>> result = pfi.fit(model, X, y)
    >>> pfi.get_top_features(3)  # doctest: +SKIP
    """

    def __init__(
        self,
        loss: Union[str, Loss, Callable] = 'mae',
        repetitions: int = 1,
        mode: Union[Mode, str] = 'simple',
        scoring: Union[Scoring, str] = 'ratio',
        random_state=None,
        n_jobs: int = 1,
        max_pairwise_n: Optional[int] = DEFAULT_MAX_PAIRWISE_N,
        predict_method: str = 'predict'
    ):
        self.loss = get_loss(loss)
        self.options = ImportanceOptions(
            repetitions=repetitions,
            mode=mode,
            scoring=scoring,
            random_state=random_state,
            n_jobs=n_jobs,
            max_pairwise_n=max_pairwise_n
        )
        self.predict_method = predict_method

        # To be set during fit()
        self.result_ = None
        self.importances_ = None
        self.baseline_error_ = None
        self.feature_names_ = None

    def fit(
        self,
        model,
        X,
        y,
        feature_names: Optional[Sequence] = None,
        features: Optional[Sequence] = None,
        cancel=None
    ) -> ImportanceResult:
        """
        Compute permutation importance scores.

        Parameters
        ----------
        model : estimator or callable
            Fitted model, used read-only
        X : pd.DataFrame or np.ndarray of shape (n_samples, n_features)
            Feature matrix
        y : array-like of shape (n_samples,)
            Target values
        feature_names : list of str, optional
            Feature names for array input
        features : list, optional
            Subset of features to score
        cancel : object with ``is_set()``, optional
            Cancellation token checked between features

        Returns
        -------
        result : ImportanceResult
        """
        result = estimate(
            model, X, y,
            loss=self.loss,
            options=self.options,
            feature_names=feature_names,
            features=features,
            cancel=cancel,
            predict_method=self.predict_method
        )

        self.result_ = result
        self.importances_ = result.importances
        self.baseline_error_ = result.baseline_error
        self.feature_names_ = result.feature_names
        return result

    def get_feature_importance(self, feature) -> float:
        """
        Get importance score for a specific feature.

        Parameters
        ----------
        feature : str or int
            Feature name, or position among the scored features

        Returns
        -------
        importance : float
        """
        if self.result_ is None:
            raise ValueError("Call fit() before accessing importances")
        if feature in self.result_:
            return self.result_[feature].importance
        return float(self.importances_[feature])

    def get_top_features(self, n: int = 5) -> list:
        """
        Get the n most important features.

        Returns
        -------
        top_features : list of tuple
            (feature_name, importance) pairs, sorted by importance
        """
        if self.result_ is None:
            raise ValueError("Call fit() before accessing importances")
        return self.result_.rank()[:n]

    def __repr__(self) -> str:
        parts = [
            f"loss='{self.loss.name}'",
            f"mode='{self.options.mode.value}'",
            f"scoring='{self.options.scoring.value}'"
        ]
        if self.options.mode is Mode.SIMPLE:
            parts.append(f"repetitions={self.options.repetitions}")
            parts.append(f"random_state={self.options.random_state}")
        return f"PermutationImportance({', '.join(parts)})"
