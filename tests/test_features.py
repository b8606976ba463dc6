import numpy as np
import pytest
from dtreepy import InvalidDatasetError, TreeClassifier


def test_sample_weights():
    X = np.array([[1, 1], [1, 1], [2, 2]])
    y = np.array([0, 0, 1])
    w = np.array([1, 2, 1])

    clf = TreeClassifier(min_leaf_size=1)
    clf.fit(X, y, sample_weight=w)

    assert clf.predict([[1, 1]])[0] == 0
    assert clf.predict([[2, 2]])[0] == 1
    assert np.allclose(clf.tree_.class_probabilities, [0.75, 0.25])


def test_sample_weights_shift_leaf_distribution():
    X = np.zeros((4, 1))
    y = np.array([0, 0, 1, 1])
    clf = TreeClassifier(min_leaf_size=1).fit(X, y, sample_weight=[1, 1, 1, 5])
    assert np.allclose(clf.predict_proba([[0.0]]), [[0.25, 0.75]])
    assert clf.predict([[0.0]])[0] == 1


def test_unit_weights_match_unweighted():
    rng = np.random.default_rng(1)
    X = rng.random((200, 3))
    y = (X[:, 0] + 0.2 * rng.random(200) > 0.6).astype(int)
    plain = TreeClassifier(min_leaf_size=5).fit(X, y)
    weighted = TreeClassifier(min_leaf_size=5).fit(X, y, sample_weight=np.ones(200))
    assert np.array_equal(plain.predict_proba(X), weighted.predict_proba(X))


def test_mixed_features():
    rng = np.random.default_rng(2)
    n = 400
    city = rng.choice(['north', 'south', 'east', 'west'], size=n)
    age = rng.integers(18, 70, size=n)
    y = np.where(np.isin(city, ['north', 'east']), 1, 0)
    y = np.where(age > 60, 1 - y, y)
    X = np.column_stack([city.astype(object), age.astype(object)])

    clf = TreeClassifier(min_leaf_size=5, feature_names=['city', 'age'],
                         categorical_features=['city'])
    clf.fit(X, y)
    assert clf.score(X, y) == 1.0
    assert clf.dataset_info_.num_mappings(0) == 4


def test_missing_numeric_values_rejected_at_fit():
    X = np.array([[2.0], [3.0], [np.nan], [6.0]])
    y = np.array([0, 0, 1, 1])
    with pytest.raises(InvalidDatasetError):
        TreeClassifier(min_leaf_size=1).fit(X, y)


def test_mismatched_lengths_rejected():
    X = np.zeros((4, 2))
    with pytest.raises(ValueError):
        TreeClassifier().fit(X, [0, 1, 0])
    with pytest.raises(ValueError):
        TreeClassifier().fit(X, [0, 1, 0, 1], sample_weight=[1.0, 1.0])


def test_missing_categorical_values_form_one_branch():
    X = np.array([[0.0], [0.0], [np.nan], [np.nan], [1.0], [1.0], [np.nan], [np.nan]])
    y = np.array([0, 0, 1, 1, 2, 2, 1, 1])

    clf = TreeClassifier(min_leaf_size=2, categorical_features=[0]).fit(X, y)

    assert clf.dataset_info_.num_mappings(0) == 3
    assert clf.get_n_leaves() == 3
    assert clf.predict([[np.nan], [0.0], [1.0]]).tolist() == [1, 0, 2]
