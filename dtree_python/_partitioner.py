"""Sample partitioning for dense feature matrices.

A partitioner owns no samples of its own: it reorders the node's slice
``samples[start:end]`` of the splitter's permutation in place, together with
the matching ``feature_values`` buffer, so that the left child's samples come
first.
"""
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import numpy as np


# Values closer than this are treated as one value when choosing thresholds
FEATURE_THRESHOLD = 1e-7


class DensePartitioner:
    """Sorts and splits the current node for best and random splitters alike."""

    def __init__(self, X, samples, feature_values):
        self.X = X
        self.samples = samples
        self.feature_values = feature_values
        self.start = 0
        self.end = 0

    def init_node_split(self, start, end):
        """Point the partitioner at samples[start:end]."""
        self.start = start
        self.end = end

    def sort_samples_and_feature_values(self, current_feature):
        """Order the node's samples by current_feature, ascending.

        feature_values[start:end] holds the sorted values afterwards.
        """
        start, end = self.start, self.end
        self.feature_values[start:end] = self.X[self.samples[start:end], current_feature]
        self._sort(self.feature_values, self.samples, start, end - start)

    def find_min_max(self, current_feature):
        """Return the node's (min, max) of current_feature.

        The values are also copied into feature_values[start:end] in sample
        order, which partition_samples relies on.
        """
        start, end = self.start, self.end
        values = self.X[self.samples[start:end], current_feature]
        self.feature_values[start:end] = values
        return values.min(), values.max()

    def next_p(self, p_prev, p):
        """Advance to the next candidate split position.

        Returns ``(p_prev, p)`` where p_prev is the last index of the current run
        of near-equal values and p is either ``end`` or the first index holding
        a strictly larger value.
        """
        feature_values = self.feature_values
        last = self.end - 1

        while p < last and feature_values[p + 1] <= feature_values[p] + FEATURE_THRESHOLD:
            p += 1
        return p, p + 1

    def partition_samples(self, current_threshold):
        """Move samples with feature value <= current_threshold to the front.

        Works on the values loaded by find_min_max. Returns the index of the
        first sample of the right child.
        """
        start, end = self.start, self.end
        goes_left = self.feature_values[start:end] <= current_threshold
        return self._move_left(goes_left, self.feature_values)

    def partition_samples_final(self, best_pos, best_threshold, best_feature):
        """Split the node on ``X[:, best_feature] <= best_threshold``.

        The split must send exactly ``best_pos - start`` samples left; anything
        else means the sample permutation was corrupted.
        """
        start, end = self.start, self.end
        goes_left = self.X[self.samples[start:end], best_feature] <= best_threshold
        pos = self._move_left(goes_left)

        if pos != best_pos:
            raise RuntimeError(
                f"partition of feature {best_feature} at {best_threshold} moved "
                f"{pos - start} samples left, expected {best_pos - start}"
            )

    def _move_left(self, goes_left, feature_values=None):
        """Stable in-place partition of the node slice by a boolean mask."""
        start, end = self.start, self.end
        order = np.concatenate((np.flatnonzero(goes_left), np.flatnonzero(~goes_left)))

        self.samples[start:end] = self.samples[start:end][order]
        if feature_values is not None:
            feature_values[start:end] = feature_values[start:end][order]
        return start + int(np.count_nonzero(goes_left))

    def _sort(self, feature_values, samples, start, n):
        """Sort feature_values[start:start + n], carrying samples along."""
        if n == 0:
            return

        stop = start + n
        # Stable order keeps ties in their current permutation order
        order = np.argsort(feature_values[start:stop], kind="stable")
        feature_values[start:stop] = feature_values[start:stop][order]
        samples[start:stop] = samples[start:stop][order]


class PresortPartitioner(DensePartitioner):
    """Dense partitioner reading node samples through a presorted order.

    ``X_argsorted[:, j]`` is the ascending order of feature ``j`` over the
    whole dataset and ``sample_mask`` flags the samples of the current node.
    Filtering the presorted column through the mask yields the node's
    samples already sorted, without sorting the node subset.
    """
    def __init__(self, X, samples, feature_values, X_argsorted):
        super().__init__(X, samples, feature_values)
        self.X_argsorted = X_argsorted
        self.sample_mask = np.zeros(X.shape[0], dtype=np.bool_)

    def update_sample_mask(self, start, end):
        """Flag exactly samples[start:end] in the sample mask."""
        self.sample_mask.fill(False)
        self.sample_mask[self.samples[start:end]] = True

    def sort_samples_and_feature_values(self, current_feature):
        start = self.start
        end = self.end

        order = self.X_argsorted[:, current_feature]
        node_samples = order[self.sample_mask[order]]
        if node_samples.shape[0] != end - start:
            raise RuntimeError(
                "sample mask is out of sync with the node samples[%d:%d]"
                % (start, end)
            )

        self.samples[start:end] = node_samples
        self.feature_values[start:end] = self.X[node_samples, current_feature]
