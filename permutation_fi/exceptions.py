"""
Exception types raised by permutation feature importance.

Every error derives from :class:`PermutationImportanceError`. Input errors
also subclass the builtin the rest of the package used to raise
(``ValueError`` and friends), so ``except ValueError`` keeps working.
"""


class PermutationImportanceError(Exception):
    """Base class for all errors raised by this package."""


class DimensionMismatchError(PermutationImportanceError, ValueError):
    """Target, predictions and feature matrix disagree on the number of rows."""


class InvalidDomainError(PermutationImportanceError, ValueError):
    """A loss function received values outside its valid range."""


class ZeroBaselineError(PermutationImportanceError, ZeroDivisionError):
    """Ratio scoring was requested but the baseline error is zero."""

    def __init__(self, loss_name: str = 'loss'):
        super().__init__(
            f"Baseline {loss_name} is 0, so ratio importance is undefined. "
            f"Use scoring='difference' for models that fit the data perfectly."
        )
        self.loss_name = loss_name


class ResourceLimitExceededError(PermutationImportanceError, MemoryError):
    """Exact pairwise exchange would materialise too many rows."""

    def __init__(self, n_samples: int, max_n: int):
        n_rows = n_samples * (n_samples - 1)
        super().__init__(
            f"Exact pairwise mode needs n(n-1) = {n_rows} rows for n = {n_samples}, "
            f"above the limit of n <= {max_n}. Subsample the data, raise "
            f"max_pairwise_n, or use mode='simple'."
        )
        self.n_samples = n_samples
        self.max_n = max_n


class InsufficientDataError(PermutationImportanceError, ValueError):
    """Too few observations for the requested computation."""


class EstimationCancelledError(PermutationImportanceError):
    """The caller's cancel token was set between two features."""
