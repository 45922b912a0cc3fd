import threading

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression, LogisticRegression

from permutation_fi import (
    DimensionMismatchError,
    EstimationCancelledError,
    ImportanceOptions,
    InsufficientDataError,
    Mode,
    PermutationImportance,
    ResourceLimitExceededError,
    Scoring,
    ZeroBaselineError,
    estimate
)


def identity_model(X):
    return np.asarray(X, dtype=float)[:, 0]


def test_identity_model_zero_baseline_ratio_fails():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([1.0, 2.0, 3.0, 4.0])

    with pytest.raises(ZeroBaselineError, match="difference"):
        estimate(identity_model, X, y, loss='mae', scoring='ratio', random_state=0)

    # also catchable as the builtin
    with pytest.raises(ZeroDivisionError):
        estimate(identity_model, X, y, loss='mae', scoring='ratio', random_state=0)


def test_identity_model_difference_is_positive():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([1.0, 2.0, 3.0, 4.0])

    result = estimate(
        identity_model, X, y, loss='mae', scoring='difference',
        repetitions=20, random_state=0
    )
    assert result.baseline_error == 0
    assert result['x0'].importance > 0

    # mean |x_k - x_i| over the 12 ordered pairs of 1..4
    exact = estimate(identity_model, X, y, loss='mae', scoring='difference', mode='exact-pairwise')
    assert exact['x0'].importance == pytest.approx(20 / 12)
    assert exact['x0'].repetitions == 1


def test_scoring_identities(linear_data, linear_model):
    X, y = linear_data
    ratio = estimate(linear_model, X, y, loss='mse', scoring='ratio', repetitions=5, random_state=1)
    diff = estimate(linear_model, X, y, loss='mse', scoring='difference', repetitions=5, random_state=1)

    assert ratio.baseline_error == pytest.approx(diff.baseline_error)
    for name in ratio:
        assert ratio[name].permuted_error == pytest.approx(diff[name].permuted_error)
        assert ratio[name].importance == pytest.approx(
            ratio[name].permuted_error / ratio.baseline_error
        )
        assert diff[name].importance == pytest.approx(
            diff[name].permuted_error - diff.baseline_error
        )
        assert ratio[name].permuted_error == pytest.approx(np.mean(ratio[name].permuted_errors))


def test_unused_feature_has_neutral_importance(linear_data, linear_model):
    X, y = linear_data
    ratio = estimate(linear_model, X, y, repetitions=10, random_state=0)
    diff = estimate(linear_model, X, y, repetitions=10, scoring='difference', random_state=0)

    assert ratio['x2'].importance == pytest.approx(1.0)
    assert diff['x2'].importance == pytest.approx(0.0, abs=1e-12)
    assert ratio['x0'].importance > ratio['x1'].importance > 1.0


def test_constant_model_importance_is_zero():
    rng = np.random.default_rng(5)
    X = pd.DataFrame({'signal': rng.normal(size=60), 'noise': rng.normal(size=60)})
    y = X['signal'] * 2

    def constant(X):
        return np.full(len(X), 0.5)

    result = estimate(constant, X, y, scoring='difference', repetitions=100, random_state=0)
    assert abs(result['noise'].importance) < 1e-6
    assert abs(result['signal'].importance) < 1e-6
    assert result['noise'].repetitions == 100


def test_more_repetitions_reduce_variance():
    rng = np.random.default_rng(11)
    X = rng.normal(size=(50, 2))
    y = X[:, 0] + 0.5 * rng.normal(size=50)

    def estimates(repetitions):
        return [
            estimate(identity_model, X, y, repetitions=repetitions, random_state=seed)['x0'].importance
            for seed in range(30)
        ]

    assert np.var(estimates(100)) < np.var(estimates(1))


def test_fitted_model_ranks_informative_feature_first(linear_frame):
    X, y = linear_frame
    model = LinearRegression().fit(X, y)

    result = estimate(model, X, y, loss='mae', repetitions=5, random_state=0)
    assert [name for name, _ in result.rank()] == ['strong', 'weak', 'unused']


def test_same_seed_same_result_and_parallel_matches(linear_data, linear_model):
    X, y = linear_data
    a = estimate(linear_model, X, y, repetitions=3, random_state=42)
    b = estimate(linear_model, X, y, repetitions=3, random_state=42)
    c = estimate(linear_model, X, y, repetitions=3, random_state=42, n_jobs=2)

    np.testing.assert_array_equal(a.importances, b.importances)
    np.testing.assert_allclose(a.importances, c.importances)
    assert list(c) == ['x0', 'x1', 'x2']


def test_feature_subset_matches_full_run(linear_data, linear_model):
    X, y = linear_data
    full = estimate(linear_model, X, y, repetitions=3, random_state=7)
    subset = estimate(linear_model, X, y, repetitions=3, random_state=7, features=['x2', 'x0'])

    assert list(subset) == ['x0', 'x2']
    assert subset['x0'] == full['x0']
    assert subset['x2'] == full['x2']

    with pytest.raises(ValueError, match="Unknown feature"):
        estimate(linear_model, X, y, features=['nope'])


def test_inputs_are_not_modified(linear_frame):
    X, y = linear_frame
    X_before, y_before = X.copy(), y.copy()

    def model(frame):
        assert isinstance(frame, pd.DataFrame)
        return 3.0 * frame['strong'].to_numpy()

    estimate(model, X, y, repetitions=2, random_state=0)
    estimate(model, X, y, mode='exact-pairwise', max_pairwise_n=None)

    pd.testing.assert_frame_equal(X, X_before)
    pd.testing.assert_series_equal(y, y_before)


def test_zero_columns_gives_empty_result():
    model_calls = []

    def model(X):
        model_calls.append(X)
        return np.zeros(len(X))

    result = estimate(model, np.empty((5, 0)), np.arange(5.0))
    assert len(result) == 0
    assert result.rank() == []
    assert model_calls == []


def test_exact_pairwise_fails_fast():
    def model(X):
        raise AssertionError("model must not be called")

    with pytest.raises(InsufficientDataError):
        estimate(model, np.array([[1.0]]), np.array([1.0]), mode='exact-pairwise')

    X = np.zeros((30, 2))
    with pytest.raises(ResourceLimitExceededError):
        estimate(model, X, np.zeros(30), mode='exact-pairwise', max_pairwise_n=20)


def test_exact_pairwise_ignores_repetitions():
    X = np.array([[1.0], [2.0], [3.0]])
    y = np.array([1.0, 2.5, 2.0])

    with pytest.warns(UserWarning, match="ignored"):
        result = estimate(identity_model, X, y, mode='exact-pairwise', repetitions=5)
    assert result['x0'].repetitions == 1
    assert result.mode is Mode.EXACT_PAIRWISE


def test_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        estimate(identity_model, np.zeros((5, 2)), np.zeros(4))
    with pytest.raises(DimensionMismatchError):
        estimate(identity_model, np.zeros(5), np.zeros(5))


def test_prediction_length_mismatch():
    def short_model(X):
        return np.zeros(len(X) - 1)

    with pytest.raises(DimensionMismatchError):
        estimate(short_model, np.ones((5, 2)), np.arange(5.0))


def test_model_failure_is_tagged_with_feature(linear_data):
    X, y = linear_data

    class FlakyModel:
        calls = 0

        def predict(self, X):
            self.calls += 1
            if self.calls > 1:
                raise RuntimeError("backend unavailable")
            return X[:, 0]

    with pytest.raises(RuntimeError, match="backend unavailable") as excinfo:
        estimate(FlakyModel(), X, y, random_state=0)
    assert excinfo.value.feature_name == 'x0'


def test_cancellation_between_features(linear_data, linear_model):
    X, y = linear_data

    cancelled = threading.Event()
    cancelled.set()
    with pytest.raises(EstimationCancelledError):
        estimate(linear_model, X, y, cancel=cancelled)

    class CancelAfterFirst:
        checks = 0

        def is_set(self):
            self.checks += 1
            return self.checks > 1

    with pytest.raises(EstimationCancelledError, match="x1"):
        estimate(linear_model, X, y, cancel=CancelAfterFirst())


def test_predict_proba_with_auc():
    rng = np.random.default_rng(2)
    X = rng.normal(size=(300, 2))
    y = (X[:, 0] + 0.3 * rng.normal(size=300) > 0).astype(int)
    model = LogisticRegression().fit(X, y)

    result = estimate(
        model, X, y, loss='1-auc', scoring='difference',
        repetitions=5, random_state=0, predict_method='predict_proba'
    )
    assert result.loss_name == '1-auc'
    assert result['x0'].importance > 0.2
    assert abs(result['x1'].importance) < 0.05


def test_single_repetition_quantiles_equal_importance(linear_data, linear_model):
    X, y = linear_data
    result = estimate(linear_model, X, y, random_state=0)
    score = result['x0']
    assert score.importance_05 == pytest.approx(score.importance)
    assert score.importance_95 == pytest.approx(score.importance)


def test_options_validation():
    with pytest.raises(ValueError):
        ImportanceOptions(repetitions=0)
    with pytest.raises(ValueError):
        ImportanceOptions(repetitions=2.5)
    with pytest.raises(ValueError, match="mode"):
        ImportanceOptions(mode='shuffle')
    with pytest.raises(ValueError, match="scoring"):
        ImportanceOptions(scoring='log-ratio')
    with pytest.raises(ValueError):
        ImportanceOptions(n_jobs=0)

    options = ImportanceOptions(mode='exact-pairwise', scoring='difference', repetitions=4)
    assert options.mode is Mode.EXACT_PAIRWISE
    assert options.scoring is Scoring.DIFFERENCE
    assert options.effective_repetitions == 1

    with pytest.raises(ValueError, match="not both"):
        estimate(identity_model, np.ones((3, 1)), np.ones(3), options=options, repetitions=2)


def test_estimator_interface(linear_frame):
    X, y = linear_frame
    model = LinearRegression().fit(X, y)
    pfi = PermutationImportance(loss='rmse', repetitions=4, scoring='difference', random_state=3)

    with pytest.raises(ValueError, match="fit"):
        pfi.get_top_features()

    result = pfi.fit(model, X, y)

    assert pfi.result_ is result
    assert pfi.feature_names_ == ['strong', 'weak', 'unused']
    assert pfi.baseline_error_ == pytest.approx(result.baseline_error)
    np.testing.assert_array_equal(pfi.importances_, result.importances)
    assert pfi.get_top_features(1)[0][0] == 'strong'
    assert pfi.get_feature_importance('weak') == pfi.get_feature_importance(1)
    assert "repetitions=4" in repr(pfi)
    assert "scoring='difference'" in repr(pfi)


def test_feature_subset_ties_follow_column_order():
    def constant(X):
        return np.full(len(X), 1.0)

    result = estimate(
        constant, np.zeros((5, 3)), np.arange(5.0),
        scoring='difference', features=['x2', 'x0']
    )
    assert result.rank() == [('x0', 0.0), ('x2', 0.0)]


def test_seed_sequence_reused_across_fits(linear_data, linear_model):
    X, y = linear_data
    seed = np.random.SeedSequence(5)
    pfi = PermutationImportance(scoring='difference', random_state=seed)

    first = pfi.fit(linear_model, X, y).importances
    second = pfi.fit(linear_model, X, y).importances

    np.testing.assert_array_equal(first, second)
    assert seed.n_children_spawned == 0


def test_parallel_run_checks_cancel_token(linear_data, linear_model):
    X, y = linear_data

    class CancelAfterFirst:
        def __init__(self):
            self.checks = 0
            self.lock = threading.Lock()

        def is_set(self):
            with self.lock:
                self.checks += 1
                return self.checks > 1

    with pytest.raises(EstimationCancelledError):
        estimate(linear_model, X, y, n_jobs=2, cancel=CancelAfterFirst())
