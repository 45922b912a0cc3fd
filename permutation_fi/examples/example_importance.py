"""
Example: Permutation Feature Importance

This example demonstrates the basic usage of PermutationImportance on
synthetic regression and classification tasks.
"""

import numpy as np
from sklearn.datasets import make_classification
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.model_selection import train_test_split

from permutation_fi import PermutationImportance, format_table
from permutation_fi.utils import make_friedman_frame


def example_regression():
    """Demonstrate PFI on the Friedman regression problem."""
    print("=" * 60)
    print("Example 1: Regression Task")
    print("=" * 60)

    # x1..x5 are informative, noise1..noise3 are ignored by the truth
    X, y = make_friedman_frame(n_samples=1000, n_features=8, random_state=42)

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.3, random_state=42
    )

    print("\nTraining Random Forest Regressor...")
    model = RandomForestRegressor(n_estimators=100, random_state=42)
    model.fit(X_train, y_train)
    print(f"Train R²: {model.score(X_train, y_train):.4f}")
    print(f"Test R²:  {model.score(X_test, y_test):.4f}")

    print("\nComputing permutation importance (ratio, 10 repetitions)...")
    pfi = PermutationImportance(loss='mae', repetitions=10, scoring='ratio', random_state=0)
    result = pfi.fit(model, X_test, y_test)
    print(format_table(result))

    print("\nTop 3 Features:")
    for name, score in pfi.get_top_features(n=3):
        print(f"  {name}: {score:.4f}")

    print("\nSame run with difference scoring:")
    pfi_diff = PermutationImportance(
        loss='mae', repetitions=10, scoring='difference', random_state=0
    )
    print(pfi_diff.fit(model, X_test, y_test).to_frame().round(4).to_string(index=False))


def example_classification():
    """Demonstrate PFI with 1-AUC on a classification task."""
    print("\n\n")
    print("=" * 60)
    print("Example 2: Classification Task (loss = 1 - AUC)")
    print("=" * 60)

    X, y = make_classification(
        n_samples=1000,
        n_features=10,
        n_informative=4,
        n_redundant=0,
        n_classes=2,
        random_state=42
    )

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.3, random_state=42
    )

    print("\nTraining Random Forest Classifier...")
    model = RandomForestClassifier(n_estimators=100, random_state=42)
    model.fit(X_train, y_train)
    print(f"Test Accuracy:  {model.score(X_test, y_test):.4f}")

    pfi = PermutationImportance(
        loss='1-auc',
        repetitions=5,
        scoring='difference',
        random_state=0,
        predict_method='predict_proba'
    )
    result = pfi.fit(model, X_test, y_test)

    print(f"\nBaseline 1-AUC: {result.baseline_error:.4f}")
    print("\nTop 5 Features:")
    for name, score in pfi.get_top_features(n=5):
        print(f"  {name}: {score:+.4f}")

    # Same seed, same permutations
    print("\nVerifying reproducibility (running fit() again)...")
    again = pfi.fit(model, X_test, y_test)
    max_diff = np.max(np.abs(result.importances - again.importances))
    print(f"Maximum difference: {max_diff:.10f}")


def example_repetitions():
    """Show how repetitions reduce the spread of the estimate."""
    print("\n\n")
    print("=" * 60)
    print("Example 3: Effect of Repetitions")
    print("=" * 60)

    X, y = make_friedman_frame(n_samples=300, n_features=6, random_state=1)
    model = RandomForestRegressor(n_estimators=50, random_state=42).fit(X, y)

    print(f"\n{'Repetitions':<14} {'mean(x4)':<12} {'std(x4) over 20 seeds':<12}")
    print("-" * 50)
    for repetitions in [1, 10, 50]:
        scores = [
            PermutationImportance(loss='mae', repetitions=repetitions, random_state=seed)
            .fit(model, X, y)['x4'].importance
            for seed in range(20)
        ]
        print(f"{repetitions:<14} {np.mean(scores):<12.4f} {np.std(scores):<12.4f}")


if __name__ == "__main__":
    example_regression()
    example_classification()
    example_repetitions()

    print("\n\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
