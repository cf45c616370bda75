import numpy as np
import pytest

from dtree_python import MSE, CriterionError, Entropy, Gini


def init_criterion(criterion, y, sample_weight=None, start=0, end=None,
                   weighted_n_samples=None):
    y = np.asarray(y, dtype=np.float64).reshape(-1, 1)
    samples = np.arange(y.shape[0], dtype=np.intp)
    end = y.shape[0] if end is None else end
    if weighted_n_samples is None:
        weighted_n_samples = (float(y.shape[0]) if sample_weight is None
                              else float(np.sum(sample_weight)))
    if sample_weight is not None:
        sample_weight = np.asarray(sample_weight, dtype=np.float64)
    criterion.init(y, sample_weight, weighted_n_samples, samples, start, end)
    return criterion


class TestClassificationCriterion:

    def test_gini_node_and_children_impurity(self):
        criterion = init_criterion(Gini(1, 4, np.array([2])), [0, 0, 1, 1])
        assert criterion.node_impurity() == pytest.approx(0.5)

        criterion.update(2)
        assert criterion.weighted_n_left == 2.0
        assert criterion.weighted_n_right == 2.0
        assert criterion.children_impurity() == (pytest.approx(0.0), pytest.approx(0.0))
        assert criterion.impurity_improvement(0.5, 0.0, 0.0) == pytest.approx(0.5)

    def test_entropy_impurity(self):
        criterion = init_criterion(Entropy(1, 4, np.array([2])), [0, 0, 1, 1])
        assert criterion.node_impurity() == pytest.approx(1.0)

        criterion = init_criterion(Entropy(1, 4, np.array([2])), [0, 0, 0, 1])
        assert criterion.node_impurity() == pytest.approx(
            -(0.75 * np.log2(0.75) + 0.25 * np.log2(0.25)))

    def test_pure_node_has_zero_impurity(self):
        criterion = init_criterion(Gini(1, 3, np.array([3])), [2, 2, 2])
        assert criterion.node_impurity() == 0.0

    def test_node_value_is_weighted_class_count(self):
        criterion = init_criterion(Gini(1, 4, np.array([2])), [0, 0, 1, 1],
                                   sample_weight=[1.0, 2.0, 3.0, 4.0])
        dest = np.zeros(2)
        criterion.node_value(dest)
        np.testing.assert_array_equal(dest, [3.0, 7.0])
        assert criterion.weighted_n_node_samples == 10.0

    def test_proxy_prefers_the_better_split(self):
        criterion = init_criterion(Gini(1, 4, np.array([2])), [0, 0, 1, 1])
        criterion.update(1)
        proxy_1 = criterion.proxy_impurity_improvement()
        criterion.update(2)
        proxy_2 = criterion.proxy_impurity_improvement()
        assert proxy_1 == pytest.approx(-4.0 / 3.0)
        assert proxy_2 > proxy_1

    def test_update_backwards_matches_fresh_update(self):
        criterion = init_criterion(Gini(1, 4, np.array([2])), [0, 0, 1, 1])
        criterion.update(3)
        criterion.update(1)
        assert criterion.pos == 1
        assert criterion.weighted_n_left == 1.0
        np.testing.assert_array_equal(criterion.sum_left, [[1.0, 0.0]])
        np.testing.assert_array_equal(criterion.sum_right, [[1.0, 2.0]])

    def test_improvement_is_scaled_by_node_weight_fraction(self):
        y = [0, 0, 1, 1, 0, 1, 0, 1]
        criterion = init_criterion(Gini(1, 8, np.array([2])), y, end=4,
                                   weighted_n_samples=8.0)
        criterion.update(2)
        left, right = criterion.children_impurity()
        improvement = criterion.impurity_improvement(criterion.node_impurity(), left, right)
        assert improvement == pytest.approx(0.25)

    def test_multi_output_impurity_is_averaged(self):
        y = np.array([[0, 0], [0, 1], [1, 0], [1, 1]], dtype=np.float64)
        criterion = Gini(2, 4, np.array([2, 2]))
        criterion.init(y, None, 4.0, np.arange(4, dtype=np.intp), 0, 4)
        assert criterion.node_impurity() == pytest.approx(0.5)

        criterion.update(2)
        left, right = criterion.children_impurity()
        # First output is pure on both sides, the second is not
        assert left == pytest.approx(0.25)
        assert right == pytest.approx(0.25)

    def test_label_out_of_range_raises(self):
        with pytest.raises(CriterionError):
            init_criterion(Gini(1, 2, np.array([2])), [0, 2])

    def test_zero_weight_node_raises(self):
        with pytest.raises(CriterionError):
            init_criterion(Gini(1, 3, np.array([2])), [0, 1, 0],
                           sample_weight=[0.0, 0.0, 0.0], weighted_n_samples=1.0)


class TestMSE:

    def test_node_and_children_impurity(self):
        criterion = init_criterion(MSE(1, 4), [1.0, 2.0, 3.0, 4.0])
        assert criterion.node_impurity() == pytest.approx(1.25)

        criterion.update(2)
        left, right = criterion.children_impurity()
        assert left == pytest.approx(0.25)
        assert right == pytest.approx(0.25)
        assert criterion.impurity_improvement(1.25, left, right) == pytest.approx(1.0)

    def test_node_value_is_weighted_mean(self):
        criterion = init_criterion(MSE(1, 4), [1.0, 2.0, 3.0, 4.0])
        dest = np.zeros(1)
        criterion.node_value(dest)
        assert dest[0] == pytest.approx(2.5)

    def test_weighted_variance(self):
        criterion = init_criterion(MSE(1, 2), [0.0, 10.0], sample_weight=[3.0, 1.0])
        assert criterion.node_impurity() == pytest.approx(18.75)

        dest = np.zeros(1)
        criterion.node_value(dest)
        assert dest[0] == pytest.approx(2.5)

    def test_reset_clears_left_statistics(self):
        criterion = init_criterion(MSE(1, 4), [1.0, 2.0, 3.0, 4.0])
        criterion.update(3)
        criterion.reset()
        assert criterion.pos == 0
        assert criterion.weighted_n_left == 0.0
        assert criterion.weighted_n_right == 4.0
        assert criterion.sq_sum_left == 0.0
