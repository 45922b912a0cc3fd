"""
Visualization of permutation importance results.

Draws the ranked importance of each feature as a point with its 5%-95%
band across repetitions.
"""

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .options import Scoring
from .ranking import rank

logger = logging.getLogger(__name__)


def plot_importance(
    result,
    ax=None,
    top_n: Optional[int] = None,
    save_path: Optional[str] = None,
    title: str = "Permutation Feature Importance",
    figsize: tuple = (8, 6)
):
    """
    Plot features ranked by importance, most important on top.

    Parameters
    ----------
    result : ImportanceResult
        Output of :func:`permutation_fi.estimate`
    ax : matplotlib.axes.Axes, optional
        Axes to draw on. If given, the figure is left open for the caller.
    top_n : int, optional
        Only plot the ``top_n`` most important features
    save_path : str, optional
        Path to save the figure (only used when ``ax`` is None; if None the
        figure is shown)
    title : str, default="Permutation Feature Importance"
        Figure title
    figsize : tuple, default=(8, 6)
        Figure size in inches

    Returns
    -------
    ax : matplotlib.axes.Axes

    Notes
    -----
    A dashed reference line marks "no importance": 1 for ratio scoring,
    0 for difference scoring.
    """
    ranking = rank(result)
    if top_n is not None:
        ranking = ranking[:top_n]

    names = [str(name) for name, _ in ranking]
    importance = np.array([score for _, score in ranking], dtype=float)
    low = np.array([result[name].importance_05 for name, _ in ranking], dtype=float)
    high = np.array([result[name].importance_95 for name, _ in ranking], dtype=float)

    owns_figure = ax is None
    if owns_figure:
        sns.set_style('whitegrid')
        fig, ax = plt.subplots(figsize=figsize)

    y = np.arange(len(names))[::-1]
    ax.hlines(y, low, high, color='gray', linewidth=2, alpha=0.7)
    ax.scatter(importance, y, color=sns.color_palette()[0], zorder=3)

    reference = 1.0 if getattr(result, 'scoring', None) == Scoring.RATIO else 0.0
    ax.axvline(reference, color='black', linestyle='--', linewidth=1, alpha=0.6)

    ax.set_yticks(y)
    ax.set_yticklabels(names)
    loss_name = getattr(result, 'loss_name', 'loss')
    ax.set_xlabel(f"Feature importance (loss: {loss_name})", fontsize=12)
    ax.set_title(title, fontsize=14)
    sns.despine(ax=ax, left=True)

    if owns_figure:
        plt.tight_layout()
        if save_path:
            Path(save_path).parent.mkdir(parents=True, exist_ok=True)
            plt.savefig(save_path, dpi=300, bbox_inches='tight')
            logger.info("Saved importance plot to %s", save_path)
        else:
            plt.show()
        plt.close(fig)

    return ax
