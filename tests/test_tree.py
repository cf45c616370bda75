import numpy as np
import pytest
from scipy.sparse import issparse
from sklearn.base import clone

from dtree_python import DecisionTreeClassifier, DecisionTreeRegressor, ShapeError
from dtree_python.debug_utils import compare_tree_structures, export_text, tree_signature


class TestDecisionTreeClassifier:

    def test_fully_grown_fits_training_set(self, classification_data):
        X, y = classification_data
        clf = DecisionTreeClassifier(random_state=0).fit(X, y)

        assert clf.score(X, y) == 1.0
        np.testing.assert_array_equal(clf.classes_, [0.0, 1.0])
        assert clf.n_classes_ == 2
        assert clf.n_features_in_ == 4

    def test_string_labels(self):
        X = [[1.0], [2.0], [3.0], [10.0]]
        y = ["no", "no", "yes", "yes"]
        clf = DecisionTreeClassifier(random_state=0).fit(X, y)

        np.testing.assert_array_equal(clf.predict([[0.0], [20.0]]), ["no", "yes"])

    def test_predict_proba(self, classification_data):
        X, y = classification_data
        clf = DecisionTreeClassifier(max_depth=2, random_state=0).fit(X, y)
        proba = clf.predict_proba(X)

        assert proba.shape == (X.shape[0], 2)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)
        np.testing.assert_array_equal(clf.predict(X), clf.classes_[np.argmax(proba, axis=1)])

    def test_multi_output(self, classification_data):
        X, y = classification_data
        Y = np.column_stack([y, (X[:, 1] > 0.5).astype(int)])
        clf = DecisionTreeClassifier(random_state=0).fit(X, Y)

        assert clf.n_outputs_ == 2
        np.testing.assert_array_equal(clf.predict(X), Y)
        assert len(clf.predict_proba(X)) == 2

    @pytest.mark.parametrize("criterion", ["gini", "entropy"])
    @pytest.mark.parametrize("splitter", ["best", "random", "presort"])
    def test_criteria_and_splitters(self, classification_data, criterion, splitter):
        X, y = classification_data
        clf = DecisionTreeClassifier(criterion=criterion, splitter=splitter,
                                     random_state=0).fit(X, y)
        assert clf.score(X, y) > 0.95

    def test_presort_grows_same_tree_as_best(self, classification_data):
        X, y = classification_data
        best = DecisionTreeClassifier(splitter="best", random_state=1).fit(X, y)
        presort = DecisionTreeClassifier(splitter="presort", random_state=1).fit(X, y)

        assert tree_signature(presort.tree_) == tree_signature(best.tree_)

    def test_max_depth(self, classification_data):
        X, y = classification_data
        clf = DecisionTreeClassifier(max_depth=2, random_state=0).fit(X, y)
        assert clf.get_depth() <= 2
        assert clf.get_n_leaves() <= 4

    @pytest.mark.parametrize("max_leaf_nodes", [2, 4, 7])
    def test_max_leaf_nodes(self, classification_data, max_leaf_nodes):
        X, y = classification_data
        clf = DecisionTreeClassifier(max_leaf_nodes=max_leaf_nodes, random_state=0).fit(X, y)
        assert clf.get_n_leaves() <= max_leaf_nodes

    def test_feature_importances(self):
        rng = np.random.RandomState(4)
        X = rng.normal(size=(40, 3))
        y = (X[:, 0] > 0).astype(int)
        clf = DecisionTreeClassifier(random_state=0).fit(X, y)

        importances = clf.feature_importances_
        assert importances.sum() == pytest.approx(1.0)
        assert importances[0] == pytest.approx(1.0)

    def test_zero_weight_samples_are_ignored(self, classification_data):
        X, y = classification_data
        sample_weight = np.ones(X.shape[0])
        sample_weight[:5] = 0.0
        clf = DecisionTreeClassifier(random_state=0).fit(X, y, sample_weight=sample_weight)

        assert clf.tree_.n_node_samples[0] == X.shape[0] - 5
        assert clf.tree_.weighted_n_node_samples[0] == X.shape[0] - 5

    def test_apply_and_decision_path(self, classification_data):
        X, y = classification_data
        clf = DecisionTreeClassifier(max_depth=3, random_state=0).fit(X, y)

        leaves = clf.apply(X)
        paths = clf.decision_path(X)
        assert issparse(paths)
        assert paths.shape == (X.shape[0], clf.tree_.node_count)
        for i, leaf in enumerate(leaves):
            assert leaf in paths[i].indices
            assert 0 in paths[i].indices

    def test_same_random_state_same_tree(self, classification_data):
        X, y = classification_data
        clf1 = DecisionTreeClassifier(splitter="random", max_features="sqrt",
                                      random_state=0).fit(X, y)
        clf2 = DecisionTreeClassifier(splitter="random", max_features="sqrt",
                                      random_state=0).fit(X, y)
        assert compare_tree_structures(clf1.tree_, clf2.tree_) == []

    def test_clone(self):
        clf = DecisionTreeClassifier(max_depth=3, splitter="presort", random_state=2)
        cloned = clone(clf)
        assert cloned.get_params() == clf.get_params()

    def test_export_text(self):
        X = [[1.0], [2.0], [3.0], [10.0]]
        clf = DecisionTreeClassifier(random_state=0).fit(X, [0, 0, 1, 1])
        text = export_text(clf.tree_, feature_names=["height"])

        assert text.splitlines()[0].startswith("Node 0: height <= 2.5000")
        assert "Leaf 1: samples=2" in text
        assert "Leaf 2: samples=2" in text


class TestDecisionTreeRegressor:

    def test_fully_grown_fits_training_set(self, regression_data):
        X, y = regression_data
        reg = DecisionTreeRegressor(random_state=0).fit(X, y)
        np.testing.assert_allclose(reg.predict(X), y, atol=1e-3)

    def test_leaf_value_is_mean(self):
        X = [[1.0], [2.0], [3.0], [4.0]]
        y = [1.0, 3.0, 10.0, 12.0]
        reg = DecisionTreeRegressor(max_depth=1, random_state=0).fit(X, y)

        np.testing.assert_allclose(reg.predict([[0.0], [5.0]]), [2.0, 11.0])
        assert reg.tree_.threshold[0] == pytest.approx(2.5)

    def test_multi_output(self, regression_data):
        X, y = regression_data
        Y = np.column_stack([y, -y])
        reg = DecisionTreeRegressor(max_depth=3, random_state=0).fit(X, Y)
        prediction = reg.predict(X)

        assert prediction.shape == (X.shape[0], 2)
        np.testing.assert_allclose(prediction[:, 0], -prediction[:, 1])

    @pytest.mark.parametrize("splitter", ["best", "random", "presort"])
    def test_max_leaf_nodes(self, regression_data, splitter):
        X, y = regression_data
        reg = DecisionTreeRegressor(splitter=splitter, max_leaf_nodes=6,
                                    random_state=0).fit(X, y)
        assert reg.get_n_leaves() <= 6
        assert reg.score(X, y) > 0.2


class TestValidation:

    def test_y_length_mismatch(self, classification_data):
        X, y = classification_data
        with pytest.raises(ShapeError):
            DecisionTreeClassifier().fit(X, y[:-1])

    def test_sample_weight_length_mismatch(self, classification_data):
        X, y = classification_data
        with pytest.raises(ShapeError):
            DecisionTreeClassifier().fit(X, y, sample_weight=np.ones(X.shape[0] - 1))

    @pytest.mark.parametrize("params", [
        {"max_features": 0},
        {"max_features": 5},
        {"max_features": "half"},
        {"splitter": "bogus"},
        {"criterion": "mae"},
        {"max_leaf_nodes": 1},
        {"max_depth": -1},
        {"min_samples_leaf": 0},
        {"min_samples_split": 1},
        {"min_weight_fraction_leaf": 0.7},
    ])
    def test_invalid_params(self, classification_data, params):
        X, y = classification_data
        with pytest.raises(ValueError):
            DecisionTreeClassifier(**params).fit(X, y)

    def test_negative_sample_weight(self, classification_data):
        X, y = classification_data
        sample_weight = np.ones(X.shape[0])
        sample_weight[0] = -1.0
        with pytest.raises(ValueError):
            DecisionTreeClassifier().fit(X, y, sample_weight=sample_weight)

    def test_predict_wrong_number_of_features(self, classification_data):
        X, y = classification_data
        clf = DecisionTreeClassifier(random_state=0).fit(X, y)
        with pytest.raises(ValueError):
            clf.predict(X[:, :2])
