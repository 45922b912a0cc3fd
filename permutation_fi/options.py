"""
Configuration for the permutation importance estimator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from .permutation import DEFAULT_MAX_PAIRWISE_N
from .utils import RandomSource


class Mode(str, Enum):
    """How a feature's association with the target is broken."""

    SIMPLE = 'simple'
    EXACT_PAIRWISE = 'exact-pairwise'


class Scoring(str, Enum):
    """How the permuted error is compared with the baseline error."""

    RATIO = 'ratio'
    DIFFERENCE = 'difference'

    def compare(self, permuted_error, baseline_error):
        """Score ``permuted_error`` against ``baseline_error`` (scalars or arrays)."""
        if self is Scoring.RATIO:
            return np.divide(permuted_error, baseline_error)
        return np.subtract(permuted_error, baseline_error)


def _coerce_enum(enum_cls, value, option: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(f"'{m.value}'" for m in enum_cls)
        raise ValueError(f"{option} must be one of {allowed}, got {value!r}") from None


@dataclass(frozen=True)
class ImportanceOptions:
    """
    Options for one importance run.

    Parameters
    ----------
    repetitions : int, default=1
        Independent permutation draws averaged per feature (simple mode only;
        exact-pairwise mode always makes a single exhaustive pass).
    mode : {'simple', 'exact-pairwise'} or Mode, default='simple'
        Random permutation or exhaustive pairwise exchange.
    scoring : {'ratio', 'difference'} or Scoring, default='ratio'
        ``permuted_error / baseline`` or ``permuted_error - baseline``.
    random_state : None, int, np.random.Generator or np.random.SeedSequence
        Root of all randomness. Fix it for reproducible results.
    n_jobs : int, default=1
        joblib workers across features. ``-1`` uses all cores.
    max_pairwise_n : int or None, default=2000
        Largest n allowed in exact-pairwise mode. None disables the limit.
    """

    repetitions: int = 1
    mode: Union[Mode, str] = Mode.SIMPLE
    scoring: Union[Scoring, str] = Scoring.RATIO
    random_state: RandomSource = None
    n_jobs: int = 1
    max_pairwise_n: Optional[int] = DEFAULT_MAX_PAIRWISE_N

    def __post_init__(self):
        # frozen: assign coerced values through object.__setattr__
        object.__setattr__(self, 'mode', _coerce_enum(Mode, self.mode, 'mode'))
        object.__setattr__(self, 'scoring', _coerce_enum(Scoring, self.scoring, 'scoring'))

        if isinstance(self.repetitions, bool) or not isinstance(self.repetitions, (int, np.integer)):
            raise ValueError(f"repetitions must be a positive integer, got {self.repetitions!r}")
        if self.repetitions < 1:
            raise ValueError(f"repetitions must be a positive integer, got {self.repetitions}")
        if not isinstance(self.n_jobs, (int, np.integer)) or self.n_jobs == 0:
            raise ValueError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")
        if self.max_pairwise_n is not None and self.max_pairwise_n < 2:
            raise ValueError(f"max_pairwise_n must be at least 2, got {self.max_pairwise_n}")

    @property
    def effective_repetitions(self) -> int:
        """Repetitions actually performed per feature."""
        return 1 if self.mode is Mode.EXACT_PAIRWISE else int(self.repetitions)
