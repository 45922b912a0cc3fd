"""
Ranking and tabular export of importance results.

These functions accept any mapping of feature name to a score record with
``importance``, ``permuted_error`` and ``repetitions`` attributes, which is
what :class:`permutation_fi.importance.ImportanceResult` provides.
"""

import pandas as pd
from typing import List, Optional, Tuple


def rank(result) -> List[Tuple[object, float]]:
    """
    Sort features by descending importance.

    Ties keep the column order of the feature matrix, so the output is
    reproducible.

    Parameters
    ----------
    result : ImportanceResult
        Output of :func:`permutation_fi.estimate`

    Returns
    -------
    ranking : list of tuple
        (feature_name, importance) pairs, most important first

    Examples
    --------
    >>> from permutation_fi.importance import FeatureScore
    >>> scores = {'a': FeatureScore(1.0, 1.0, 1), 'b': FeatureScore(2.0, 2.0, 1),
    ...           'c': FeatureScore(1.0, 1.0, 1)}
    >>> rank(scores)
    [('b', 2.0), ('a', 1.0), ('c', 1.0)]
    """
    # sorted() is stable
    ordered = sorted(result.items(), key=lambda item: -item[1].importance)
    return [(name, score.importance) for name, score in ordered]


def top_features(result, n: int = 5) -> List[Tuple[object, float]]:
    """The ``n`` most important (feature_name, importance) pairs."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return rank(result)[:n]


def to_frame(result, sort: bool = True) -> pd.DataFrame:
    """
    Export a result as one row per feature.

    Parameters
    ----------
    result : ImportanceResult
        Output of :func:`permutation_fi.estimate`
    sort : bool, default=True
        If True, rows follow :func:`rank`; otherwise column order.

    Returns
    -------
    df : pd.DataFrame
        Columns: ``feature``, ``permutation.error``, ``importance``,
        ``importance.05``, ``importance.95``, ``repetitions``.
    """
    names = [name for name, _ in rank(result)] if sort else list(result)
    rows = []
    for name in names:
        score = result[name]
        rows.append({
            'feature': name,
            'permutation.error': score.permuted_error,
            'importance': score.importance,
            'importance.05': score.importance_05,
            'importance.95': score.importance_95,
            'repetitions': score.repetitions,
        })
    columns = [
        'feature', 'permutation.error', 'importance',
        'importance.05', 'importance.95', 'repetitions'
    ]
    return pd.DataFrame(rows, columns=columns)


def format_table(result, save_path: Optional[str] = None, precision: int = 4) -> str:
    """
    Format a result as a fixed-width text table, ranked by importance.

    Parameters
    ----------
    result : ImportanceResult
        Output of :func:`permutation_fi.estimate`
    save_path : str or None, default=None
        If provided, also write the table to this file
    precision : int, default=4
        Decimal places for errors and scores

    Returns
    -------
    table_str : str
    """
    fmt = f"{{:<20.{precision}f}}"
    lines = []
    lines.append("=" * 80)
    header = "Permutation Feature Importance"
    baseline = getattr(result, 'baseline_error', None)
    if baseline is not None:
        header += f" (baseline {getattr(result, 'loss_name', 'loss')} = {baseline:.{precision}f})"
    lines.append(header)
    lines.append("=" * 80)
    lines.append(f"{'Feature':<20}{'Permutation error':<20}{'Importance':<20}{'5% - 95%':<20}")
    lines.append("-" * 80)

    for name, _ in rank(result):
        score = result[name]
        band = f"{score.importance_05:.{precision}f} - {score.importance_95:.{precision}f}"
        lines.append(
            f"{str(name):<20}" +
            fmt.format(score.permuted_error) +
            fmt.format(score.importance) +
            f"{band:<20}"
        )

    lines.append("=" * 80)
    table_str = "\n".join(lines)

    if save_path:
        with open(save_path, 'w') as f:
            f.write(table_str)

    return table_str
