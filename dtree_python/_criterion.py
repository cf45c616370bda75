# _criterion.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import numpy as np

from .exceptions import CriterionError


class Criterion:
    """Interface for impurity criteria.

    A criterion is bound to the node ``samples[start:end]`` by ``init`` and
    keeps the statistics of the left child ``samples[start:pos]`` and the
    right child ``samples[pos:end]`` while the splitter moves ``pos``.
    """

    def __init__(self, n_outputs, n_samples):
        self.n_outputs = n_outputs
        self.n_samples = n_samples

        # Buffers
        self.y = None
        self.sample_weight = None
        self.sample_indices = None

        # Node state
        self.start = 0
        self.end = 0
        self.pos = 0
        self.n_node_samples = 0
        self.weighted_n_samples = 0.0
        self.weighted_n_node_samples = 0.0
        self.weighted_n_left = 0.0
        self.weighted_n_right = 0.0

    def init(self, y, sample_weight, weighted_n_samples, sample_indices, start, end):
        """Initialize the criterion at node samples[start:end].

        Returns the weighted number of samples in the node.
        """
        self.y = y
        self.sample_weight = sample_weight
        self.sample_indices = sample_indices
        self.start = start
        self.end = end
        self.n_node_samples = end - start
        self.weighted_n_samples = weighted_n_samples

        indices = sample_indices[start:end]
        weights = self._weights(indices)
        self.weighted_n_node_samples = float(weights.sum())
        if not self.weighted_n_node_samples > 0.0:
            raise CriterionError(
                f"node samples[{start}:{end}] has no positive sample weight"
            )

        self._init_sums(indices, weights)
        self.reset()
        return self.weighted_n_node_samples

    def _weights(self, indices):
        if self.sample_weight is None:
            return np.ones(indices.shape[0], dtype=np.float64)
        return self.sample_weight[indices]

    def _init_sums(self, indices, weights):
        raise NotImplementedError()

    def _reset_left(self):
        raise NotImplementedError()

    def _add_left(self, indices, weights):
        raise NotImplementedError()

    def reset(self):
        """Reset the criterion at pos=start."""
        self.pos = self.start
        self.weighted_n_left = 0.0
        self.weighted_n_right = self.weighted_n_node_samples
        self._reset_left()

    def update(self, new_pos):
        """Move samples[pos:new_pos] to the left child.

        Moving backwards rewinds to ``start`` first, so the statistics are
        always those of samples[start:new_pos].
        """
        if new_pos < self.pos:
            self.reset()

        indices = self.sample_indices[self.pos:new_pos]
        weights = self._weights(indices)
        self._add_left(indices, weights)

        self.weighted_n_left += float(weights.sum())
        self.weighted_n_right = self.weighted_n_node_samples - self.weighted_n_left
        self.pos = new_pos

    def node_impurity(self):
        """Evaluate the impurity of the current node samples[start:end]."""
        raise NotImplementedError()

    def children_impurity(self):
        """Evaluate the impurity of samples[start:pos] and samples[pos:end]."""
        raise NotImplementedError()

    def node_value(self, dest):
        """Compute the prediction payload of samples[start:end] into dest."""
        raise NotImplementedError()

    def proxy_impurity_improvement(self):
        """Compute a proxy of the impurity reduction.

        Only meaningful for comparing split positions of the same node: the
        split maximizing the proxy also maximizes ``impurity_improvement``.
        """
        impurity_left, impurity_right = self.children_impurity()
        return (-self.weighted_n_right * impurity_right
                - self.weighted_n_left * impurity_left)

    def impurity_improvement(self, impurity_parent, impurity_left, impurity_right):
        """Compute the weighted impurity decrease of the current split.

        N_t / N * (impurity - N_t_R / N_t * right_impurity
                            - N_t_L / N_t * left_impurity)
        """
        return ((self.weighted_n_node_samples / self.weighted_n_samples) *
                (impurity_parent
                 - (self.weighted_n_right / self.weighted_n_node_samples * impurity_right)
                 - (self.weighted_n_left / self.weighted_n_node_samples * impurity_left)))


class ClassificationCriterion(Criterion):
    """Abstract criterion for classification.

    ``y`` holds class indices (as floats) in ``[0, n_classes[k])`` for each
    output ``k``.
    """

    def __init__(self, n_outputs, n_samples, n_classes):
        super().__init__(n_outputs, n_samples)
        self.n_classes = np.asarray(n_classes, dtype=np.intp).reshape(n_outputs)
        self.max_n_classes = int(np.max(self.n_classes))

        shape = (n_outputs, self.max_n_classes)
        self.sum_total = np.zeros(shape, dtype=np.float64)
        self.sum_left = np.zeros(shape, dtype=np.float64)
        self.sum_right = np.zeros(shape, dtype=np.float64)

    def _labels(self, indices, k):
        return self.y[indices, k].astype(np.intp)

    def _init_sums(self, indices, weights):
        self.sum_total.fill(0.0)
        for k in range(self.n_outputs):
            labels = self._labels(indices, k)
            if labels.min() < 0 or labels.max() >= self.n_classes[k]:
                raise CriterionError(
                    f"class labels of output {k} must lie in [0, {self.n_classes[k]})"
                )
            np.add.at(self.sum_total[k], labels, weights)

    def _reset_left(self):
        self.sum_left.fill(0.0)
        self.sum_right[:] = self.sum_total

    def _add_left(self, indices, weights):
        for k in range(self.n_outputs):
            np.add.at(self.sum_left[k], self._labels(indices, k), weights)
        np.subtract(self.sum_total, self.sum_left, out=self.sum_right)

    def node_value(self, dest):
        """Write the weighted class counts of the node into dest."""
        dest[:] = self.sum_total.ravel()

    def node_impurity(self):
        return self._impurity(self.sum_total, self.weighted_n_node_samples)

    def children_impurity(self):
        return (self._impurity(self.sum_left, self.weighted_n_left),
                self._impurity(self.sum_right, self.weighted_n_right))

    def _impurity(self, sum_count, weighted_n):
        raise NotImplementedError()


class Entropy(ClassificationCriterion):
    r"""Cross Entropy impurity criterion.

        cross-entropy = -\sum_{k=0}^{K-1} count_k log2(count_k)

    averaged over the outputs.
    """

    def _impurity(self, sum_count, weighted_n):
        if weighted_n <= 0.0:
            return 0.0

        entropy = 0.0
        for k in range(self.n_outputs):
            count_k = sum_count[k, :self.n_classes[k]]
            count_k = count_k[count_k > 0.0] / weighted_n
            entropy -= float(np.sum(count_k * np.log2(count_k)))

        return entropy / self.n_outputs


class Gini(ClassificationCriterion):
    r"""Gini Index impurity criterion.

        index = 1 - \sum_{k=0}^{K-1} count_k ** 2

    averaged over the outputs.
    """

    def _impurity(self, sum_count, weighted_n):
        if weighted_n <= 0.0:
            return 0.0

        gini = 0.0
        for k in range(self.n_outputs):
            sq_count = float(np.sum(sum_count[k] ** 2))
            gini += 1.0 - sq_count / (weighted_n * weighted_n)

        return gini / self.n_outputs


class RegressionCriterion(Criterion):
    """Abstract regression criterion keeping weighted sums of y and y**2."""

    def __init__(self, n_outputs, n_samples):
        super().__init__(n_outputs, n_samples)
        self.sq_sum_total = 0.0
        self.sq_sum_left = 0.0
        self.sum_total = np.zeros(n_outputs, dtype=np.float64)
        self.sum_left = np.zeros(n_outputs, dtype=np.float64)
        self.sum_right = np.zeros(n_outputs, dtype=np.float64)

    def _init_sums(self, indices, weights):
        y_node = self.y[indices]
        self.sum_total[:] = weights @ y_node
        self.sq_sum_total = float(weights @ np.sum(y_node * y_node, axis=1))

    def _reset_left(self):
        self.sq_sum_left = 0.0
        self.sum_left.fill(0.0)
        self.sum_right[:] = self.sum_total

    def _add_left(self, indices, weights):
        y_moved = self.y[indices]
        self.sum_left += weights @ y_moved
        self.sq_sum_left += float(weights @ np.sum(y_moved * y_moved, axis=1))
        np.subtract(self.sum_total, self.sum_left, out=self.sum_right)

    def node_value(self, dest):
        """Write the weighted mean of the node into dest."""
        dest[:] = self.sum_total / self.weighted_n_node_samples


class MSE(RegressionCriterion):
    """Mean squared error impurity criterion.

        MSE = var_left + var_right
    """

    def node_impurity(self):
        return self._variance(self.sum_total, self.sq_sum_total,
                              self.weighted_n_node_samples)

    def children_impurity(self):
        sq_sum_right = self.sq_sum_total - self.sq_sum_left
        return (self._variance(self.sum_left, self.sq_sum_left, self.weighted_n_left),
                self._variance(self.sum_right, sq_sum_right, self.weighted_n_right))

    def _variance(self, sum_y, sq_sum, weighted_n):
        if weighted_n <= 0.0:
            return 0.0
        impurity = sq_sum / weighted_n
        impurity -= float(np.sum((sum_y / weighted_n) ** 2))
        return impurity / self.n_outputs
