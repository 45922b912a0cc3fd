"""
Loss functions used to score predictions before and after permutation.

A loss maps ``(y_true, y_pred)`` to a single non-negative float where lower
is better. The built-ins delegate the arithmetic to ``sklearn.metrics`` and
add the input checks that make permutation importance well defined:
equal non-zero lengths, finite predictions and, for the probability losses,
a binary target with predictions in [0, 1].
"""

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    log_loss,
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    median_absolute_error,
    roc_auc_score
)
from typing import Callable, Dict, List, Optional, Union

from .exceptions import DimensionMismatchError, InvalidDomainError


def _as_vector(values, what: str, positive_column: bool = False) -> np.ndarray:
    """Flatten targets/predictions to 1-D, keeping the positive class of a proba matrix."""
    arr = np.asarray(values)
    if arr.ndim == 0:
        raise DimensionMismatchError(f"{what} must be 1-D, got a scalar")
    if arr.ndim == 2:
        if arr.shape[1] == 1:
            arr = arr[:, 0]
        elif positive_column and arr.shape[1] == 2:
            arr = arr[:, 1]
        else:
            raise DimensionMismatchError(
                f"{what} must be 1-D, got shape {arr.shape}"
            )
    elif arr.ndim > 2:
        raise DimensionMismatchError(f"{what} must be 1-D, got shape {arr.shape}")
    return arr


def _check_binary_target(y_true: np.ndarray, loss_name: str) -> None:
    classes = np.unique(y_true)
    if not np.isin(classes, [0, 1]).all():
        raise InvalidDomainError(
            f"{loss_name} needs a binary target in {{0, 1}}, got classes {classes.tolist()}"
        )
    if len(classes) < 2:
        # Single-class AUC is undefined; refuse rather than guess 0.5.
        raise InvalidDomainError(
            f"{loss_name} is undefined when the target contains a single class "
            f"({classes.tolist()})"
        )


def _check_probabilities(y_pred: np.ndarray, loss_name: str) -> None:
    if y_pred.min() < 0 or y_pred.max() > 1:
        raise InvalidDomainError(
            f"{loss_name} needs predictions in [0, 1], got range "
            f"[{y_pred.min():.4g}, {y_pred.max():.4g}]"
        )


class Loss:
    """
    Scalar error function comparing targets with predictions.

    Parameters
    ----------
    func : callable
        ``func(y_true, y_pred) -> float``. Receives 1-D numpy arrays of equal
        length.
    name : str, optional
        Display name. Defaults to ``func.__name__``.
    probabilistic : bool, default=False
        If True, a two-column prediction matrix is reduced to its positive
        class column before ``func`` is called.
    check : callable, optional
        ``check(y_true, y_pred)`` run before ``func``; raises
        :class:`InvalidDomainError` for values outside the loss's domain.

    Examples
    --------
    >>> loss = Loss(lambda y, p: float(np.max(np.abs(y - p))), name='max_error')
    >>> loss.evaluate([1, 2, 3], [1, 2, 5])
    2.0
    """

    def __init__(
        self,
        func: Callable[[np.ndarray, np.ndarray], float],
        name: Optional[str] = None,
        probabilistic: bool = False,
        check: Optional[Callable[[np.ndarray, np.ndarray], None]] = None
    ):
        if not callable(func):
            raise ValueError(f"func must be callable, got {type(func).__name__}")
        self.func = func
        self.name = name or getattr(func, '__name__', 'loss')
        self.probabilistic = probabilistic
        self.check = check

    def evaluate(self, y_true, y_pred) -> float:
        """
        Compute the error of ``y_pred`` against ``y_true``.

        Raises
        ------
        DimensionMismatchError
            If the two inputs differ in length or are empty.
        InvalidDomainError
            If the inputs fall outside the loss's valid range, or the loss
            returns a negative or non-finite value.
        """
        y_true = _as_vector(y_true, 'target')
        y_pred = _as_vector(y_pred, 'predictions', positive_column=self.probabilistic)

        if len(y_true) != len(y_pred):
            raise DimensionMismatchError(
                f"target has {len(y_true)} values but predictions have {len(y_pred)}"
            )
        if len(y_true) == 0:
            raise DimensionMismatchError("cannot evaluate a loss on zero observations")

        if np.issubdtype(y_pred.dtype, np.number) and not np.isfinite(y_pred).all():
            raise InvalidDomainError(f"{self.name} received non-finite predictions")

        if self.check is not None:
            self.check(y_true, y_pred)

        value = float(self.func(y_true, y_pred))
        if not np.isfinite(value) or value < 0:
            raise InvalidDomainError(
                f"{self.name} must return a finite non-negative error, got {value}"
            )
        return value

    __call__ = evaluate

    def __repr__(self) -> str:
        return f"Loss(name='{self.name}')"


def _rmse(y_true, y_pred):
    return np.sqrt(mean_squared_error(y_true, y_pred))


def _one_minus_auc(y_true, y_pred):
    return 1.0 - roc_auc_score(y_true, y_pred)


def _log_loss(y_true, y_pred):
    return log_loss(y_true, y_pred, labels=[0, 1])


def _classification_error(y_true, y_pred):
    return 1.0 - accuracy_score(y_true, y_pred)


def _check_auc(y_true, y_pred):
    _check_binary_target(y_true, '1-auc')
    _check_probabilities(y_pred, '1-auc')


def _check_log_loss(y_true, y_pred):
    classes = np.unique(y_true)
    if not np.isin(classes, [0, 1]).all():
        raise InvalidDomainError(
            f"logloss needs a binary target in {{0, 1}}, got classes {classes.tolist()}"
        )
    _check_probabilities(y_pred, 'logloss')


def _check_labels(y_true, y_pred):
    if np.issubdtype(y_pred.dtype, np.floating) and np.any(y_pred != np.round(y_pred)):
        raise InvalidDomainError(
            "ce compares class labels; got continuous predictions. "
            "Use 1-auc or logloss for probabilities"
        )


def _check_mape(y_true, y_pred):
    if np.any(y_true == 0):
        raise InvalidDomainError("mape is undefined for targets equal to 0")


_BUILTIN_LOSSES: Dict[str, Loss] = {
    'mae': Loss(mean_absolute_error, name='mae'),
    'mse': Loss(mean_squared_error, name='mse'),
    'rmse': Loss(_rmse, name='rmse'),
    'mdae': Loss(median_absolute_error, name='mdae'),
    'mape': Loss(mean_absolute_percentage_error, name='mape', check=_check_mape),
    '1-auc': Loss(_one_minus_auc, name='1-auc', probabilistic=True, check=_check_auc),
    'logloss': Loss(_log_loss, name='logloss', probabilistic=True, check=_check_log_loss),
    'ce': Loss(_classification_error, name='ce', check=_check_labels),
}

_ALIASES = {
    'auc': '1-auc',
    'one_minus_auc': '1-auc',
    'log_loss': 'logloss',
    'classification_error': 'ce',
}


def available_losses() -> List[str]:
    """Names of the built-in losses accepted by :func:`get_loss`."""
    return sorted(_BUILTIN_LOSSES)


def get_loss(loss: Union[str, Loss, Callable]) -> Loss:
    """
    Resolve a loss specification to a :class:`Loss`.

    Parameters
    ----------
    loss : str, Loss or callable
        A built-in name (see :func:`available_losses`), an existing
        :class:`Loss`, or a callable ``(y_true, y_pred) -> float``.

    Returns
    -------
    loss : Loss
    """
    if isinstance(loss, Loss):
        return loss
    if isinstance(loss, str):
        key = loss.strip().lower()
        key = _ALIASES.get(key, key)
        if key not in _BUILTIN_LOSSES:
            raise ValueError(
                f"Unknown loss '{loss}'. Available: {', '.join(available_losses())}"
            )
        return _BUILTIN_LOSSES[key]
    if callable(loss):
        return Loss(loss)
    raise ValueError(f"loss must be a name, a Loss or a callable, got {type(loss).__name__}")
