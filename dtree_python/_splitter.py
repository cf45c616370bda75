# _splitter.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import numpy as np

from ._partitioner import FEATURE_THRESHOLD, DensePartitioner, PresortPartitioner
from ._utils import new_rand_r_state, rand_int, rand_uniform
from .exceptions import EmptyRangeError, ShapeError

INFINITY = np.inf

# Relative gap below which two proxy improvements count as a tie
TIE_RTOL = 1e-10

DTYPE = np.float32
DOUBLE = np.float64


class SplitRecord:
    """Record of a split for a node.

    ``pos`` is the number of samples going left, offset by ``start``; a record
    with ``pos >= end`` describes a node that should not be split.
    """

    __slots__ = ('feature', 'threshold', 'pos', 'improvement',
                 'impurity_left', 'impurity_right')

    def __init__(self, start_pos=0):
        self.feature = 0
        self.threshold = 0.0
        self.pos = start_pos
        self.improvement = 0.0
        self.impurity_left = 0.0
        self.impurity_right = 0.0

    def __repr__(self):
        return (f"SplitRecord(feature={self.feature}, threshold={self.threshold:.4f}, "
                f"pos={self.pos}, improvement={self.improvement:.4f})")


class Splitter:
    """Abstract splitter class.

    Splitters are called by tree builders to find the best splits, one split
    at a time.

    The ``samples`` array is maintained such that the samples contained in a
    node are contiguous: ``node_split`` reorganizes ``samples[start:end]``
    into ``samples[start:pos]`` and ``samples[pos:end]``.

    The ``features`` array holds the feature indices and allows sampling
    without replacement. ``constant_features[:n_constant_features]`` holds
    the features known to be constant for all samples that reached a node;
    ``n_constant_features`` is handed down from parent to children.
    """

    def __init__(
        self,
        criterion,
        max_features,
        min_samples_leaf,
        min_weight_leaf,
        random_state,
    ):
        self.criterion = criterion
        self.n_samples = 0
        self.n_features = 0
        self.max_features = max_features
        self.min_samples_leaf = min_samples_leaf
        self.min_weight_leaf = min_weight_leaf
        self.random_state = random_state

        # Seeded once; every node_split draws from this state
        self.rand_r_state = new_rand_r_state(random_state)

        # Buffers
        self.samples = None
        self.features = None
        self.feature_values = None
        self.constant_features = None
        self.y = None
        self.sample_weight = None

        # Node state
        self.start = 0
        self.end = 0
        self.weighted_n_samples = 0.0
        self.weighted_n_node_samples = 0.0
        self.partitioner = None

    def init(self, X, y, sample_weight=None):
        """Initialize the splitter on the training set (X, y).

        Raises ShapeError if X, y and sample_weight disagree on the number of
        samples.
        """
        X = np.asarray(X, dtype=DTYPE)
        y = np.asarray(y, dtype=DOUBLE)
        if y.ndim == 1:
            y = y.reshape((-1, 1))

        if X.ndim != 2:
            raise ShapeError(f"X must be 2-dimensional, got {X.ndim} dimension(s)")
        n_samples = X.shape[0]
        if y.shape[0] != n_samples:
            raise ShapeError(
                f"X has {n_samples} samples but y has {y.shape[0]}"
            )
        if sample_weight is not None:
            sample_weight = np.asarray(sample_weight, dtype=DOUBLE)
            if sample_weight.shape != (n_samples,):
                raise ShapeError(
                    f"X has {n_samples} samples but sample_weight has shape "
                    f"{sample_weight.shape}"
                )

        n_features = X.shape[1]
        if not 0 < self.max_features <= n_features:
            raise ValueError(
                f"max_features must be in [1, {n_features}], got {self.max_features}"
            )

        # Only work with positively weighted samples
        if sample_weight is None:
            self.samples = np.arange(n_samples, dtype=np.intp)
            self.weighted_n_samples = float(n_samples)
        else:
            self.samples = np.flatnonzero(sample_weight != 0.0).astype(np.intp)
            self.weighted_n_samples = float(sample_weight.sum())

        # Number of samples is number of positively weighted samples
        self.n_samples = self.samples.shape[0]

        self.features = np.arange(n_features, dtype=np.intp)
        self.n_features = n_features

        self.feature_values = np.empty(n_samples, dtype=DTYPE)
        self.constant_features = np.empty(n_features, dtype=np.intp)

        self.X = X
        self.y = y
        self.sample_weight = sample_weight
        self.start = 0
        self.end = 0

        self.partitioner = self._make_partitioner(X)

    def _make_partitioner(self, X):
        return DensePartitioner(X, self.samples, self.feature_values)

    def node_reset(self, start, end):
        """Reset splitter on node samples[start:end].

        Returns the impurity of the node; its weighted number of samples is
        left in ``weighted_n_node_samples``.
        """
        if end <= start:
            raise EmptyRangeError(f"cannot reset on empty node samples[{start}:{end}]")

        self.start = start
        self.end = end

        self.weighted_n_node_samples = self.criterion.init(
            self.y,
            self.sample_weight,
            self.weighted_n_samples,
            self.samples,
            start,
            end
        )
        return self.criterion.node_impurity()

    def node_split(self, impurity, n_constant_features):
        """Find a split on node samples[start:end].

        Returns the SplitRecord and the updated number of constant features.
        """
        raise NotImplementedError("Subclasses must implement node_split")

    def _check_node(self):
        if self.end <= self.start:
            raise EmptyRangeError(
                f"cannot split empty node samples[{self.start}:{self.end}]"
            )

    def node_value(self, dest):
        """Copy the value of node samples[start:end] into dest."""
        self.criterion.node_value(dest)

    def node_impurity(self):
        """Return the impurity of the current node."""
        return self.criterion.node_impurity()


class FeatureSampler:
    """Draw features without replacement for one node_split.

    Fisher-Yates over ``splitter.features`` laid out as::

        [known constants | found constants | not yet drawn | drawn, non constant]
         0 ............. n_known ........ n_total ....... f_i ......... n_features

    Features already known to be constant are still drawn (and counted as
    visited) but never evaluated. Each yielded feature must be reported back
    with ``mark_constant`` or ``mark_searched`` before the next draw.
    """

    def __init__(self, splitter, n_constant_features):
        self.features = splitter.features
        self.constant_features = splitter.constant_features
        self.max_features = splitter.max_features
        self.rand_r_state = splitter.rand_r_state

        self.f_i = splitter.n_features
        self.f_j = 0
        self.n_visited = 0
        self.n_known_constants = n_constant_features
        self.n_total_constants = n_constant_features
        self.n_found_constants = 0
        self.n_drawn_constants = 0

    def _keep_drawing(self):
        # Stop once only constants remain; keep going past max_features while
        # every visited feature was constant
        return (self.f_i > self.n_total_constants and
                (self.n_visited < self.max_features or
                 self.n_visited <= self.n_found_constants + self.n_drawn_constants))

    def __iter__(self):
        features = self.features
        while self._keep_drawing():
            self.n_visited += 1
            f_j = rand_int(self.n_drawn_constants, self.f_i - self.n_found_constants,
                           self.rand_r_state)

            if f_j < self.n_known_constants:
                # f_j in [n_drawn_constants, n_known_constants)
                d = self.n_drawn_constants
                features[d], features[f_j] = features[f_j], features[d]
                self.n_drawn_constants += 1
                continue

            # f_j in [n_total_constants, f_i)
            self.f_j = f_j + self.n_found_constants
            yield features[self.f_j]

    def mark_constant(self):
        features = self.features
        f_j, t = self.f_j, self.n_total_constants
        features[f_j], features[t] = features[t], features[f_j]
        self.n_found_constants += 1
        self.n_total_constants += 1

    def mark_searched(self):
        features = self.features
        self.f_i -= 1
        f_i, f_j = self.f_i, self.f_j
        features[f_i], features[f_j] = features[f_j], features[f_i]

    def finish(self):
        """Record newly found constants; return the count to hand to children."""
        n_known = self.n_known_constants
        n_total = self.n_total_constants

        # Siblings and children expect known constants in their original order
        self.features[:n_known] = self.constant_features[:n_known]
        self.constant_features[n_known:n_total] = self.features[n_known:n_total]
        return n_total


def node_split_best(splitter, partitioner, criterion, impurity, n_constant_features):
    """Find the best split on node samples[start:end].

    Every boundary between distinct sorted values of every sampled feature is
    a candidate; the highest proxy improvement wins. Ties go to the lowest
    feature index, then to the lowest threshold.
    """
    start = splitter.start
    end = splitter.end
    feature_values = splitter.feature_values
    min_samples_leaf = splitter.min_samples_leaf
    min_weight_leaf = splitter.min_weight_leaf

    best = SplitRecord(end)
    best_proxy_improvement = -INFINITY
    sampler = FeatureSampler(splitter, n_constant_features)
    partitioner.init_node_split(start, end)

    for feature in sampler:
        partitioner.sort_samples_and_feature_values(feature)

        if feature_values[end - 1] <= feature_values[start] + FEATURE_THRESHOLD:
            sampler.mark_constant()
            continue
        sampler.mark_searched()

        criterion.reset()
        p_prev = p = start
        while p < end:
            p_prev, p = partitioner.next_p(p_prev, p)
            if p >= end:
                break

            if (p - start) < min_samples_leaf or (end - p) < min_samples_leaf:
                continue

            criterion.update(p)
            if (criterion.weighted_n_left < min_weight_leaf or
                    criterion.weighted_n_right < min_weight_leaf):
                continue

            proxy_improvement = criterion.proxy_impurity_improvement()
            if _is_better(proxy_improvement, feature, best_proxy_improvement, best.feature):
                best_proxy_improvement = proxy_improvement
                best.feature = feature
                best.pos = p
                best.threshold = _midpoint(feature_values[p_prev], feature_values[p])

    if best.pos < end:
        partitioner.partition_samples_final(best.pos, best.threshold, best.feature)
        _evaluate_children(criterion, best, impurity)

    return best, sampler.finish()


def _is_better(proxy_improvement, feature, best_proxy_improvement, best_feature):
    """Whether a candidate beats the current best split.

    Proxies within TIE_RTOL of each other tie, and a tie goes to the lower
    feature index. The outcome does not depend on the order features were
    drawn in.
    """
    if best_proxy_improvement == -INFINITY:
        return proxy_improvement > -INFINITY

    tolerance = TIE_RTOL * max(abs(proxy_improvement), abs(best_proxy_improvement), 1.0)
    if proxy_improvement > best_proxy_improvement + tolerance:
        return True
    return (feature < best_feature and
            proxy_improvement >= best_proxy_improvement - tolerance)


def _midpoint(lower, upper):
    """Threshold between two adjacent sorted values, halves summed to stay finite.

    Falls back to ``lower`` when rounding lands on ``upper``, so ``upper``
    always goes right.
    """
    lower = float(lower)
    upper = float(upper)
    threshold = lower / 2.0 + upper / 2.0
    if threshold == upper or threshold in (INFINITY, -INFINITY):
        threshold = lower
    return threshold


def node_split_random(splitter, partitioner, criterion, impurity, n_constant_features):
    """Find the best of one random threshold per sampled feature.

    Thresholds are drawn uniformly in [min, max) of the node's values.
    """
    start = splitter.start
    end = splitter.end
    min_samples_leaf = splitter.min_samples_leaf
    min_weight_leaf = splitter.min_weight_leaf
    rand_r_state = splitter.rand_r_state

    best = SplitRecord(end)
    best_proxy_improvement = -INFINITY
    # Feature the samples are currently partitioned by
    partitioned_by = None
    sampler = FeatureSampler(splitter, n_constant_features)
    partitioner.init_node_split(start, end)

    for feature in sampler:
        min_value, max_value = partitioner.find_min_max(feature)

        if max_value <= min_value + FEATURE_THRESHOLD:
            sampler.mark_constant()
            continue
        sampler.mark_searched()

        threshold = rand_uniform(min_value, max_value, rand_r_state)
        if threshold == max_value:
            threshold = float(min_value)

        pos = partitioner.partition_samples(threshold)
        partitioned_by = feature

        if (pos - start) < min_samples_leaf or (end - pos) < min_samples_leaf:
            continue

        criterion.reset()
        criterion.update(pos)
        if (criterion.weighted_n_left < min_weight_leaf or
                criterion.weighted_n_right < min_weight_leaf):
            continue

        proxy_improvement = criterion.proxy_impurity_improvement()
        if _is_better(proxy_improvement, feature, best_proxy_improvement, best.feature):
            best_proxy_improvement = proxy_improvement
            best.feature = feature
            best.threshold = threshold
            best.pos = pos

    if best.pos < end:
        if partitioned_by != best.feature:
            partitioner.partition_samples_final(best.pos, best.threshold, best.feature)
        _evaluate_children(criterion, best, impurity)

    return best, sampler.finish()


def _evaluate_children(criterion, split, impurity):
    """Fill the impurities and improvement of an accepted split."""
    criterion.reset()
    criterion.update(split.pos)
    split.impurity_left, split.impurity_right = criterion.children_impurity()
    split.improvement = criterion.impurity_improvement(
        impurity, split.impurity_left, split.impurity_right)


class BestSplitter(Splitter):
    """Splitter for finding the best split on dense data."""

    def node_split(self, impurity, n_constant_features):
        self._check_node()
        return node_split_best(
            self,
            self.partitioner,
            self.criterion,
            impurity,
            n_constant_features,
        )


class RandomSplitter(Splitter):
    """Splitter for finding the best random split on dense data."""

    def node_split(self, impurity, n_constant_features):
        self._check_node()
        return node_split_random(
            self,
            self.partitioner,
            self.criterion,
            impurity,
            n_constant_features,
        )


class PresortBestSplitter(Splitter):
    """Splitter for finding the best split, using presorting.

    The ascending order of every feature over the whole dataset is computed
    once in ``init``; each node then reads its samples in sorted order by
    masking that order, instead of sorting its own subset per feature.
    """

    def init(self, X, y, sample_weight=None):
        super().init(X, y, sample_weight)
        self.X_argsorted = self.partitioner.X_argsorted

    def _make_partitioner(self, X):
        X_argsorted = np.asfortranarray(
            np.argsort(X, axis=0, kind="stable").astype(np.intp)
        )
        return PresortPartitioner(X, self.samples, self.feature_values, X_argsorted)

    def node_reset(self, start, end):
        impurity = super().node_reset(start, end)
        # The mask must describe exactly this node before any split search
        self.partitioner.update_sample_mask(start, end)
        return impurity

    def node_split(self, impurity, n_constant_features):
        self._check_node()
        return node_split_best(
            self,
            self.partitioner,
            self.criterion,
            impurity,
            n_constant_features,
        )
