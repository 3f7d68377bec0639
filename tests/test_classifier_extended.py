import numpy as np
import pytest
from sklearn.base import clone
from hoeffpy import HoeffdingTreeClassifier, HoeffdingTreeRegressor


def _tiny_dataset():
    """Return a small classification dataset with a numeric and categorical feature."""
    X = np.array([[1, 'A'], [2, 'A'], [3, 'B'], [4, 'B']], dtype=object)
    y = np.array([0, 0, 1, 1])
    return X, y


def _stream(n, seed=0):
    """Label is 1 iff x1 > 0.5; x2 and color are noise."""
    rng = np.random.RandomState(seed)
    x1 = rng.rand(n)
    x2 = rng.rand(n)
    color = rng.choice(['red', 'green', 'blue'], size=n)
    X = np.empty((n, 3), dtype=object)
    X[:, 0] = x1
    X[:, 1] = x2
    X[:, 2] = color
    y = (x1 > 0.5).astype(int)
    return X, y


def test_classifier_proba_sums_to_one():
    X, y = _tiny_dataset()
    clf = HoeffdingTreeClassifier(feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    proba = clf.predict_proba(X)
    # probabilities for each row should sum to 1
    assert proba.shape == (4, 2)
    assert np.allclose(proba.sum(axis=1), 1.0)


def test_classifier_rule_export():
    X, y = _tiny_dataset()
    clf = HoeffdingTreeClassifier(feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    tree_rules = clf.export_rules()
    # an unsplit tree is a single rule for the root
    assert tree_rules == ['<root> => 0 (N=4.00)']


def test_classifier_learns_threshold():
    X, y = _stream(3000)
    clf = HoeffdingTreeClassifier(grace_period=50, feature_names=['x1', 'x2', 'color'],
                                  categorical_features=['color'])
    clf.fit(X[:2000], y[:2000])
    assert clf.score(X[2000:], y[2000:]) > 0.9
    info = clf.info()
    assert info.node_count > 1
    rules = clf.export_rules()
    assert len(rules) == info.active_leaf_count + info.inactive_leaf_count
    assert all('=>' in r for r in rules)
    assert all(r.startswith('x1 ') for r in rules)


def test_partial_fit_matches_fit():
    X, y = _stream(1200, seed=5)
    a = HoeffdingTreeClassifier(grace_period=50, categorical_features=[2]).fit(X, y)
    b = HoeffdingTreeClassifier(grace_period=50, categorical_features=[2])
    for start in range(0, 1200, 300):
        b.partial_fit(X[start:start + 300], y[start:start + 300])
    assert a.info() == b.info()
    assert np.array_equal(a.predict_proba(X[:100]), b.predict_proba(X[:100]))


def test_fit_resets_the_tree():
    X, y = _stream(1000, seed=1)
    clf = HoeffdingTreeClassifier(grace_period=50, categorical_features=[2]).fit(X, y)
    assert clf.info().node_count > 1
    clf.fit(X[:10], y[:10])
    assert clf.info().node_count == 1


def test_partial_fit_classes():
    X, y = _tiny_dataset()
    clf = HoeffdingTreeClassifier(categorical_features=[1])
    clf.partial_fit(X[:2], y[:2], classes=[0, 1, 2])
    clf.partial_fit(X[2:], y[2:])
    assert list(clf.classes_) == [0, 1, 2]
    assert clf.predict_proba(X).shape == (4, 3)
    with pytest.raises(ValueError):
        clf.partial_fit(X[:1], np.array([7]))


def test_string_labels():
    X, y = _tiny_dataset()
    labels = np.array(['no', 'no', 'yes', 'yes'])
    clf = HoeffdingTreeClassifier(categorical_features=[1]).fit(X, labels)
    assert set(clf.predict(X)) <= {'no', 'yes'}


def test_classifier_not_fitted_raises():
    clf = HoeffdingTreeClassifier()
    with pytest.raises(ValueError):
        clf.predict([[1, 'A']])
    with pytest.raises(ValueError):
        clf.export_rules()


def test_classifier_feature_count_mismatch():
    X, y = _tiny_dataset()
    clf = HoeffdingTreeClassifier(categorical_features=[1]).fit(X, y)
    with pytest.raises(ValueError):
        clf.predict([[1, 'A', 3]])


def test_classifier_with_missing_values():
    # dataset containing missing values (None)
    X = np.array([[1, 'A'], [2, None], [3, 'B'], [None, 'A']], dtype=object)
    y = np.array([0, 0, 1, 1])
    clf = HoeffdingTreeClassifier(grace_period=2, feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    preds = clf.predict(X)
    # predictions should be of correct length
    assert len(preds) == len(y)


def test_memory_limit_marks_inactive_rules():
    X, y = _stream(200)
    clf = HoeffdingTreeClassifier(memory_limit=1, memory_estimate_period=1,
                                  categorical_features=[2]).fit(X, y)
    assert clf.info().inactive_leaf_count == 1
    assert clf.export_rules()[0].endswith('[inactive]')


def test_clone_keeps_params():
    clf = HoeffdingTreeClassifier(grace_period=25, promise_metric='weight')
    params = clone(clf).get_params()
    assert params['grace_period'] == 25
    assert params['promise_metric'] == 'weight'


def test_sketch_size_is_a_regressor_parameter():
    assert 'max_numeric_entries' not in HoeffdingTreeClassifier().get_params()
    assert HoeffdingTreeRegressor(max_numeric_entries=50).get_params()['max_numeric_entries'] == 50
    X, y = _stream(300)
    clf = HoeffdingTreeClassifier(categorical_features=[2]).fit(X, y)
    assert clf.tree_.config.max_numeric_entries == 500
