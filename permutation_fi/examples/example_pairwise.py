"""
Example: Exact pairwise exchange vs. random permutation

The exact mode evaluates every one of the n(n-1) single-feature
exchanges, so it has no sampling noise. Random permutation approaches the
same value as the number of repetitions grows.
"""

import time

from sklearn.ensemble import GradientBoostingRegressor

from permutation_fi import estimate, rank
from permutation_fi.plotting import plot_importance
from permutation_fi.utils import make_friedman_frame


def compare_modes(n_samples: int = 200):
    """Compare simple and exact-pairwise importance on the same model."""
    print("=" * 60)
    print(f"Exact pairwise vs. random permutation (n = {n_samples})")
    print("=" * 60)

    X, y = make_friedman_frame(n_samples=n_samples, n_features=7, random_state=7)
    model = GradientBoostingRegressor(random_state=0).fit(X, y)

    start = time.time()
    exact = estimate(model, X, y, loss='mse', mode='exact-pairwise')
    exact_time = time.time() - start
    print(f"\nExact pairwise: {n_samples * (n_samples - 1)} rows per feature, "
          f"{exact_time:.2f}s")

    runs = {}
    for repetitions in [1, 10, 100]:
        start = time.time()
        runs[repetitions] = estimate(
            model, X, y, loss='mse', repetitions=repetitions, random_state=0
        )
        print(f"Simple (repetitions={repetitions:<3}): {time.time() - start:.2f}s")

    print(f"\n{'Feature':<10} {'Exact':<10} {'R=1':<10} {'R=10':<10} {'R=100':<10}")
    print("-" * 50)
    for name, score in rank(exact):
        row = f"{name:<10} {score:<10.4f}"
        for repetitions in [1, 10, 100]:
            row += f" {runs[repetitions][name].importance:<9.4f}"
        print(row)

    return exact


if __name__ == "__main__":
    exact = compare_modes()
    plot_importance(exact, save_path="results/pairwise_importance.png",
                    title="Exact pairwise importance (MSE ratio)")
