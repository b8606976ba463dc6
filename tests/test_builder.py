import pickle

import numpy as np
import pytest
from dtreepy import (CategoricalSplitInfo, DatasetInfo, InvalidDatasetError,
                     NumericSplitInfo, TreeBuilder, TreeNode, build_tree,
                     classify, classify_batch)
from dtreepy.builder import partition_indices


def _random_dataset(n_dims=10, n_points=1000, seed=0):
    rng = np.random.default_rng(seed)
    data = rng.random((n_dims, n_points))
    labels = np.arange(n_points) % 3
    return data, labels


def _blobs(n_per_class, seed):
    """Three well separated gaussian blobs in 2-D, as (data, labels)."""
    rng = np.random.default_rng(seed)
    centers = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]])
    points = np.vstack([rng.normal(c, 1.0, size=(n_per_class, 2)) for c in centers])
    labels = np.repeat(np.arange(3), n_per_class)
    return points.T, labels


def _categorical_dataset(n_points, seed):
    """Two noise dimensions plus a categorical dimension that decides the label."""
    rng = np.random.default_rng(seed)
    codes = rng.integers(0, 4, size=n_points)
    data = np.vstack([rng.random(n_points), rng.random(n_points), codes.astype(float)])
    labels = np.array([0, 2, 1, 2])[codes]
    info = DatasetInfo.from_categorical_dimensions(3, [2], [4])
    return data, labels, info


def _assert_same_tree(a: TreeNode, b: TreeNode):
    assert a.split == b.split
    assert np.array_equal(a.class_probabilities, b.class_probabilities)
    assert a.num_children == b.num_children
    for ca, cb in zip(a.children, b.children):
        _assert_same_tree(ca, cb)


def _accuracy(tree, data, labels):
    predictions, _ = classify_batch(tree, data)
    return float(np.mean(predictions == labels))


def test_basic_construction_splits():
    data, labels = _random_dataset()
    tree = build_tree(data, labels, 3, min_leaf_size=50)
    assert tree.num_children > 0


def test_unit_weights_build_the_same_tree():
    data, labels = _random_dataset()
    unweighted = build_tree(data, labels, 3, min_leaf_size=50)
    weighted = build_tree(data, labels, 3, np.ones(labels.shape[0]), min_leaf_size=50)
    assert weighted.num_children == unweighted.num_children
    _assert_same_tree(weighted, unweighted)


@pytest.mark.parametrize("use_weights", [False, True])
def test_perfect_training_set(use_weights):
    data, labels = _random_dataset(n_points=300, seed=1)
    weights = np.ones(300) if use_weights else None
    tree = build_tree(data, labels, 3, weights, min_leaf_size=1)

    for i in range(300):
        prediction, probabilities = classify(tree, data[:, i])
        assert prediction == labels[i]
        assert probabilities.shape == (3,)
        expected = np.zeros(3)
        expected[labels[i]] = 1.0
        assert np.allclose(probabilities, expected)


def test_class_probabilities_of_unsplit_root():
    rng = np.random.default_rng(2)
    data = rng.random((5, 100))
    labels = np.tile([0, 1], 50)
    tree = build_tree(data, labels, 2, min_leaf_size=1000)

    assert tree.num_children == 0
    assert tree.is_leaf
    prediction, probabilities = classify(tree, data[:, 0])
    assert np.allclose(probabilities, [0.5, 0.5])
    assert prediction == 0


def test_leaf_only_tree_answers_with_its_distribution():
    data, labels = _random_dataset(n_points=60, seed=4)
    tree = build_tree(data, labels, 3, min_leaf_size=60)
    assert tree.is_leaf
    _, probabilities = classify_batch(tree, data)
    assert np.allclose(probabilities, tree.class_probabilities[:, None])


def test_leaf_distribution_is_weighted():
    data = np.full((1, 4), 2.0)
    labels = np.array([0, 0, 1, 1])
    tree = build_tree(data, labels, 2, [1.0, 1.0, 1.0, 3.0], min_leaf_size=1)
    assert tree.is_leaf
    assert np.allclose(tree.class_probabilities, [2.0 / 6.0, 4.0 / 6.0])


def test_zero_total_weight_gives_uniform_leaf():
    data, labels = _random_dataset(n_points=30, seed=5)
    tree = build_tree(data, labels, 3, np.zeros(30), min_leaf_size=1)
    assert tree.is_leaf
    assert np.allclose(tree.class_probabilities, [1 / 3, 1 / 3, 1 / 3])


def test_decision_stump():
    data, labels = _random_dataset()
    stump = build_tree(data, labels, 3, min_leaf_size=1, no_recursion=True)
    assert stump.num_children == 2
    assert stump.child(0).num_children == 0
    assert stump.child(1).num_children == 0


def test_children_partition_the_points():
    data, labels = _random_dataset(n_points=400, seed=6)
    tree = build_tree(data, labels, 3, min_leaf_size=100)
    assert tree.num_children == 2
    split = tree.split
    left = data[split.dimension] <= split.threshold
    assert 100 <= left.sum() <= 300


def test_ties_between_dimensions_go_to_lowest_index():
    values = np.linspace(0.0, 1.0, 20)
    data = np.vstack([values, values, values])
    labels = (values > 0.5).astype(int)
    tree = build_tree(data, labels, 2, min_leaf_size=1)
    assert tree.split.dimension == 0


def test_generalization_on_blobs():
    train, train_labels = _blobs(100, seed=7)
    test, test_labels = _blobs(100, seed=8)
    for fitness in ("gini", "information"):
        tree = build_tree(train, train_labels, 3, min_leaf_size=10, fitness=fitness)
        assert _accuracy(tree, test, test_labels) > 0.85


@pytest.mark.parametrize("fitness", ["gini", "information"])
def test_low_weight_noise_is_ignored(fitness):
    train, train_labels = _blobs(100, seed=9)
    rng = np.random.default_rng(10)
    noise = rng.uniform(-3.0, 7.0, size=(2, 300))
    noise_labels = rng.integers(0, 3, size=300)
    data = np.hstack([train, noise])
    labels = np.concatenate([train_labels, noise_labels])
    weights = np.concatenate([rng.uniform(0.9, 1.0, 300), rng.uniform(0.0, 0.001, 300)])

    tree = build_tree(data, labels, 3, weights, min_leaf_size=10, fitness=fitness)
    test, test_labels = _blobs(100, seed=11)
    assert _accuracy(tree, test, test_labels) > 0.8


def test_categorical_build():
    data, labels, info = _categorical_dataset(200, seed=12)
    tree = build_tree(data, labels, 3, min_leaf_size=5, dataset_info=info)

    assert isinstance(tree.split, CategoricalSplitInfo)
    assert tree.split.dimension == 2
    assert tree.num_children == 4
    assert all(child.is_leaf for child in tree.children)
    assert _accuracy(tree, data, labels) == 1.0

    test, test_labels, _ = _categorical_dataset(200, seed=13)
    assert _accuracy(tree, test, test_labels) == 1.0


def test_categorical_build_with_weights():
    data, labels, info = _categorical_dataset(200, seed=14)
    weighted = build_tree(data, labels, 3, np.ones(200), min_leaf_size=5, dataset_info=info)
    unweighted = build_tree(data, labels, 3, min_leaf_size=5, dataset_info=info)
    _assert_same_tree(weighted, unweighted)


def test_out_of_range_category_falls_back_to_node_distribution():
    data, labels, info = _categorical_dataset(200, seed=15)
    tree = build_tree(data, labels, 3, min_leaf_size=5, dataset_info=info)

    point = np.array([0.5, 0.5, 7.0])
    prediction, probabilities = classify(tree, point)
    assert np.allclose(probabilities, tree.class_probabilities)
    assert prediction == int(np.argmax(tree.class_probabilities))

    _, batch = classify_batch(tree, np.column_stack([point, [0.5, 0.5, -1.0]]))
    assert np.allclose(batch, tree.class_probabilities[:, None])


def test_missing_numeric_value_falls_back_to_node_distribution():
    values = np.linspace(0.0, 1.0, 20)
    labels = (values > 0.5).astype(int)
    tree = build_tree(values[None, :], labels, 2, min_leaf_size=1)
    _, probabilities = classify(tree, [np.nan])
    assert np.allclose(probabilities, [0.5, 0.5])


def test_classification_is_idempotent():
    data, labels = _random_dataset(n_points=200, seed=16)
    tree = build_tree(data, labels, 3, min_leaf_size=5)
    first = classify(tree, data[:, 3])
    second = classify(tree, data[:, 3])
    assert first[0] == second[0]
    assert np.array_equal(first[1], second[1])

    labels_a, probs_a = classify_batch(tree, data)
    labels_b, probs_b = classify_batch(tree, data)
    assert np.array_equal(labels_a, labels_b)
    assert np.array_equal(probs_a, probs_b)


def test_batch_matches_single_point_classification():
    data, labels = _random_dataset(n_points=200, seed=17)
    tree = build_tree(data, labels, 3, min_leaf_size=5)
    batch_labels, batch_probs = classify_batch(tree, data)
    assert batch_probs.shape == (3, 200)
    for i in range(200):
        label, probs = classify(tree, data[:, i])
        assert label == batch_labels[i]
        assert np.array_equal(probs, batch_probs[:, i])


def test_tree_is_immutable():
    data, labels = _random_dataset(n_points=100, seed=18)
    tree = build_tree(data, labels, 3, min_leaf_size=10)
    with pytest.raises(ValueError):
        tree.class_probabilities[0] = 1.0
    assert isinstance(tree.children, tuple)
    # the caller's copy of the probabilities can be modified freely
    _, probabilities = classify(tree, data[:, 0])
    probabilities[0] = 42.0
    assert classify(tree, data[:, 0])[1][0] != 42.0


def test_child_access_is_bounds_checked():
    data, labels = _random_dataset(n_points=200, seed=19)
    tree = build_tree(data, labels, 3, min_leaf_size=10)
    assert isinstance(tree.split, NumericSplitInfo)
    assert tree.child(1) is tree.children[1]
    with pytest.raises(IndexError):
        tree.child(2)
    with pytest.raises(IndexError):
        tree.child(-1)


def test_tree_statistics():
    data, labels = _random_dataset(n_points=200, seed=20)
    tree = build_tree(data, labels, 3, min_leaf_size=10)
    leaves = list(tree.iter_leaves())
    assert tree.num_leaves() == len(leaves)
    assert tree.num_nodes() > tree.num_leaves()
    assert tree.depth() >= 1
    assert all(leaf.is_leaf for leaf in leaves)


def test_tree_pickles():
    data, labels = _random_dataset(n_points=200, seed=21)
    tree = build_tree(data, labels, 3, min_leaf_size=10)
    restored = pickle.loads(pickle.dumps(tree))
    _assert_same_tree(tree, restored)
    assert not restored.class_probabilities.flags.writeable


def test_builder_reuses_one_permutation():
    data, labels = _random_dataset(n_points=200, seed=22)
    builder = TreeBuilder(data, labels, 3, min_leaf_size=10)
    builder.build()
    assert sorted(builder.order.tolist()) == list(range(200))


def test_partition_indices_is_stable():
    indices = np.array([10, 11, 12, 13, 14, 15])
    directions = np.array([1, 0, 2, 0, 1, 0])
    ordered, ranges = partition_indices(indices, directions, 4)
    assert ordered.tolist() == [11, 13, 15, 10, 14, 12]
    assert ranges == [(0, 3), (3, 2), (5, 1), (6, 0)]


@pytest.mark.parametrize("kwargs", [
    dict(data=np.zeros((2, 0)), labels=np.zeros(0, dtype=int), num_classes=2),
    dict(data=np.zeros(5), labels=np.zeros(5, dtype=int), num_classes=2),
    dict(data=np.zeros((2, 5)), labels=np.zeros(4, dtype=int), num_classes=2),
    dict(data=np.zeros((2, 5)), labels=np.array([0, 1, 2, 0, 1]), num_classes=2),
    dict(data=np.zeros((2, 5)), labels=np.array([0, -1, 0, 0, 1]), num_classes=2),
    dict(data=np.zeros((2, 5)), labels=np.zeros(5, dtype=int), num_classes=0),
    dict(data=np.zeros((2, 5)), labels=np.zeros(5, dtype=int), num_classes=2,
         weights=np.ones(4)),
    dict(data=np.zeros((2, 5)), labels=np.zeros(5, dtype=int), num_classes=2,
         weights=np.array([1.0, -1.0, 1.0, 1.0, 1.0])),
    dict(data=np.zeros((2, 5)), labels=np.zeros(5, dtype=int), num_classes=2,
         min_leaf_size=0),
    dict(data=np.array([[0.0, np.nan, 1.0]]), labels=np.zeros(3, dtype=int), num_classes=1),
    dict(data=np.array([[0.0, 1.0, 4.0]]), labels=np.zeros(3, dtype=int), num_classes=1,
         dataset_info=DatasetInfo.from_categorical_dimensions(1, [0], [3])),
    dict(data=np.array([[0.0, 0.5, 1.0]]), labels=np.zeros(3, dtype=int), num_classes=1,
         dataset_info=DatasetInfo.from_categorical_dimensions(1, [0], [3])),
    dict(data=np.zeros((2, 5)), labels=np.zeros(5, dtype=int), num_classes=1,
         dataset_info=DatasetInfo(3)),
])
def test_precondition_violations(kwargs):
    with pytest.raises(InvalidDatasetError):
        build_tree(**kwargs)


def test_precondition_errors_are_value_errors():
    with pytest.raises(ValueError) as excinfo:
        build_tree(np.zeros((1, 3)), [0, 1, 5], 2)
    assert "labels" in excinfo.value.reason
