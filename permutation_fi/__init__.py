"""
Permutation Feature Importance

A model-agnostic implementation of permutation feature importance: the
importance of a feature is how much a model's loss degrades when the
feature's values are shuffled across observations.

This package provides:
- estimate / PermutationImportance: repeated random permutation or the
  exact n(n-1) pairwise-exchange variant, with ratio or difference scoring
- Loss: built-in and custom error functions (mae, mse, 1-auc, ...)
- rank / to_frame: ranked and tabular views of the result
- plot_importance: a ranked dot plot of the scores
"""

import logging

from .exceptions import (
    DimensionMismatchError,
    EstimationCancelledError,
    InsufficientDataError,
    InvalidDomainError,
    PermutationImportanceError,
    ResourceLimitExceededError,
    ZeroBaselineError
)
from .importance import FeatureScore, ImportanceResult, PermutationImportance, estimate
from .losses import Loss, available_losses, get_loss
from .options import ImportanceOptions, Mode, Scoring
from .permutation import pairwise_exchange, permute_column
from .ranking import format_table, rank, to_frame, top_features

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "estimate",
    "PermutationImportance",
    "ImportanceResult",
    "FeatureScore",
    "ImportanceOptions",
    "Mode",
    "Scoring",
    "Loss",
    "get_loss",
    "available_losses",
    "permute_column",
    "pairwise_exchange",
    "rank",
    "top_features",
    "to_frame",
    "format_table",
    "PermutationImportanceError",
    "DimensionMismatchError",
    "InvalidDomainError",
    "ZeroBaselineError",
    "ResourceLimitExceededError",
    "InsufficientDataError",
    "EstimationCancelledError"
]
