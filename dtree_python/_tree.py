# dtree_python/_tree.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import heapq
import logging

import numpy as np
from scipy.sparse import csr_matrix, issparse

logger = logging.getLogger(__name__)

INFINITY = np.inf
EPSILON = np.finfo('double').eps

# Impurity at or below which a node is considered pure
MIN_IMPURITY_SPLIT = 1e-7

TREE_LEAF = -1
TREE_UNDEFINED = -2

DTYPE = np.float32
DOUBLE = np.float64


class Node:
    """Node structure for tree."""

    __slots__ = ('left_child', 'right_child', 'feature', 'threshold',
                 'impurity', 'n_node_samples', 'weighted_n_node_samples')

    def __init__(self):
        self.left_child = TREE_UNDEFINED
        self.right_child = TREE_UNDEFINED
        self.feature = TREE_UNDEFINED
        self.threshold = TREE_UNDEFINED
        self.impurity = INFINITY
        self.n_node_samples = 0
        self.weighted_n_node_samples = 0.0

    def __repr__(self):
        return (f"Node(left={self.left_child}, right={self.right_child}, "
                f"feature={self.feature}, threshold={self.threshold:.4f}, "
                f"impurity={self.impurity:.4f}, samples={self.n_node_samples})")


class TreeBuilder:
    """Interface for different tree building strategies.

    Subclasses hold the splitter and the stopping parameters
    ``min_samples_split``, ``min_samples_leaf`` and ``min_weight_leaf``.
    """

    def build(self, tree, X, y, sample_weight=None):
        """Build a decision tree from the training set (X, y)."""
        raise NotImplementedError()

    def _check_input(self, X, y, sample_weight):
        """Check input dtype, layout and format"""
        if issparse(X):
            raise ValueError("Sparse input is not supported, pass a dense array")

        X = np.asarray(X)
        if X.dtype != DTYPE or not X.flags.f_contiguous:
            # Column access dominates split search
            X = np.asfortranarray(X, dtype=DTYPE)

        y = np.asarray(y)
        if y.ndim == 1:
            y = y.reshape((-1, 1))
        if y.dtype != DOUBLE or not y.flags.c_contiguous:
            y = np.ascontiguousarray(y, dtype=DOUBLE)

        if sample_weight is not None:
            sample_weight = np.ascontiguousarray(sample_weight, dtype=DOUBLE)

        return X, y, sample_weight

    def _is_leaf(self, n_node_samples, weighted_n_node_samples, impurity):
        """Leaf rules decided before any split search."""
        return (n_node_samples < self.min_samples_split or
                n_node_samples < 2 * self.min_samples_leaf or
                weighted_n_node_samples < 2 * self.min_weight_leaf or
                impurity <= MIN_IMPURITY_SPLIT)

    def _search_split(self, end, impurity, n_constant_features):
        """Run the splitter on the current node.

        Returns the split, or None when no split improves the impurity, and the
        constant-feature count for the children.
        """
        split, n_constant_features = self.splitter.node_split(impurity, n_constant_features)
        if split.pos >= end or split.improvement <= EPSILON:
            split = None
        return split, n_constant_features

    def _append_node(self, tree, parent, is_left, split, impurity, n_node_samples,
                     weighted_n_node_samples):
        """Add the current node to the tree, a leaf if split is None.

        The node value is stored for split nodes as well.
        """
        if split is None:
            node_id = tree._add_node(parent, is_left, True, TREE_UNDEFINED,
                                     TREE_UNDEFINED, impurity, n_node_samples,
                                     weighted_n_node_samples)
        else:
            node_id = tree._add_node(parent, is_left, False, split.feature,
                                     split.threshold, impurity, n_node_samples,
                                     weighted_n_node_samples)

        value_start = node_id * tree.value_stride
        self.splitter.node_value(tree.value[value_start:value_start + tree.value_stride])
        return node_id


class StackRecord:
    """Record on stack for depth-first tree growing."""

    __slots__ = ('start', 'end', 'depth', 'parent', 'is_left', 'impurity',
                 'n_constant_features')

    def __init__(self, start, end, depth, parent, is_left, impurity,
                 n_constant_features):
        self.start = start
        self.end = end
        self.depth = depth
        self.parent = parent
        self.is_left = is_left
        self.impurity = impurity
        self.n_constant_features = n_constant_features


class DepthFirstTreeBuilder(TreeBuilder):
    """Build a decision tree in depth-first fashion.

    Nodes are numbered in preorder: a node, its whole left subtree, then its
    right subtree.
    """

    def __init__(self, splitter, min_samples_split, min_samples_leaf,
                 min_weight_leaf, max_depth):
        self.splitter = splitter
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.min_weight_leaf = min_weight_leaf
        self.max_depth = max_depth

    def build(self, tree, X, y, sample_weight=None):
        """Build a decision tree from the training set (X, y)."""
        X, y, sample_weight = self._check_input(X, y, sample_weight)

        max_depth = self.max_depth
        # A full tree of depth 10 at most, grown by doubling afterwards
        tree._resize(2 ** (min(max_depth, 10) + 1) - 1)

        splitter = self.splitter
        splitter.init(X, y, sample_weight)
        logger.debug("Depth-first build on %d samples, %d features, max_depth=%d",
                     splitter.n_samples, splitter.n_features, max_depth)

        max_depth_seen = -1
        stack = [StackRecord(0, splitter.n_samples, 0, TREE_UNDEFINED, False,
                             INFINITY, 0)]

        while stack:
            record = stack.pop()
            start, end, depth = record.start, record.end, record.depth
            n_node_samples = end - start

            node_impurity = splitter.node_reset(start, end)
            weighted_n_node_samples = splitter.weighted_n_node_samples
            # Only the root has no impurity from its parent's split
            impurity = node_impurity if record.parent == TREE_UNDEFINED else record.impurity

            split = None
            n_constant_features = record.n_constant_features
            if not (depth >= max_depth or
                    self._is_leaf(n_node_samples, weighted_n_node_samples, impurity)):
                split, n_constant_features = self._search_split(
                    end, impurity, n_constant_features)

            node_id = self._append_node(tree, record.parent, record.is_left, split,
                                        impurity, n_node_samples,
                                        weighted_n_node_samples)

            if split is not None:
                # Right first so that the left child is popped next
                stack.append(StackRecord(split.pos, end, depth + 1, node_id, False,
                                         split.impurity_right, n_constant_features))
                stack.append(StackRecord(start, split.pos, depth + 1, node_id, True,
                                         split.impurity_left, n_constant_features))

            max_depth_seen = max(max_depth_seen, depth)

        tree._resize(tree.node_count)
        tree.max_depth = max_depth_seen
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Depth-first build done: %d nodes, %d leaves, depth %d",
                         tree.node_count, tree.n_leaves, max_depth_seen)


class FrontierRecord:
    """Record for frontier in best-first tree building.

    Records compare so that ``heapq`` pops the highest improvement first;
    equal improvements pop in node creation order.
    """

    __slots__ = ('node_id', 'start', 'end', 'pos', 'depth', 'is_leaf',
                 'impurity', 'impurity_left', 'impurity_right', 'improvement')

    def __init__(self, node_id=0, start=0, end=0, pos=0, depth=0, is_leaf=False,
                 impurity=INFINITY, impurity_left=INFINITY,
                 impurity_right=INFINITY, improvement=-INFINITY):
        self.node_id = node_id
        self.start = start
        self.end = end
        self.pos = pos
        self.depth = depth
        self.is_leaf = is_leaf
        self.impurity = impurity
        self.impurity_left = impurity_left
        self.impurity_right = impurity_right
        self.improvement = improvement

    def __lt__(self, other):
        if self.improvement != other.improvement:
            return self.improvement > other.improvement
        return self.node_id < other.node_id

    def __repr__(self):
        return (f"FrontierRecord(node_id={self.node_id}, start={self.start}, "
                f"end={self.end}, pos={self.pos}, is_leaf={self.is_leaf}, "
                f"improvement={self.improvement:.4f})")


class BestFirstTreeBuilder(TreeBuilder):
    """Build a decision tree in best-first fashion.

    Every node is split-searched as soon as it is created. The frontier node
    with the highest impurity improvement is expanded next, until
    ``max_leaf_nodes - 1`` splits were made; the tree has no depth limit.
    """

    def __init__(self, splitter, min_samples_split, min_samples_leaf,
                 min_weight_leaf, max_leaf_nodes):
        self.splitter = splitter
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.min_weight_leaf = min_weight_leaf
        self.max_leaf_nodes = max_leaf_nodes

    def build(self, tree, X, y, sample_weight=None):
        """Build a decision tree from the training set (X, y)."""
        X, y, sample_weight = self._check_input(X, y, sample_weight)

        splitter = self.splitter
        splitter.init(X, y, sample_weight)
        logger.debug("Best-first build on %d samples, %d features, max_leaf_nodes=%d",
                     splitter.n_samples, splitter.n_features, self.max_leaf_nodes)

        splits_left = self.max_leaf_nodes - 1
        # A binary tree over n samples has at most 2n - 1 nodes
        tree._resize(min(2 * self.max_leaf_nodes - 1, 2 * splitter.n_samples - 1))
        max_depth_seen = -1

        frontier = []
        heapq.heappush(frontier, self._add_split_node(
            tree, 0, splitter.n_samples, INFINITY, TREE_UNDEFINED, False, 0))

        while frontier:
            record = heapq.heappop(frontier)

            if record.is_leaf or splits_left <= 0:
                # Split found but budget spent: turn the node into a leaf
                node = tree.nodes[record.node_id]
                node.left_child = TREE_LEAF
                node.right_child = TREE_LEAF
                node.feature = TREE_UNDEFINED
                node.threshold = TREE_UNDEFINED
            else:
                splits_left -= 1
                left = self._add_split_node(
                    tree, record.start, record.pos, record.impurity_left,
                    record.node_id, True, record.depth + 1)
                right = self._add_split_node(
                    tree, record.pos, record.end, record.impurity_right,
                    record.node_id, False, record.depth + 1)
                heapq.heappush(frontier, left)
                heapq.heappush(frontier, right)

            max_depth_seen = max(max_depth_seen, record.depth)

        tree._resize(tree.node_count)
        tree.max_depth = max_depth_seen
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Best-first build done: %d nodes, %d leaves, depth %d",
                         tree.node_count, tree.n_leaves, max_depth_seen)

    def _add_split_node(self, tree, start, end, impurity, parent, is_left, depth):
        """Add the node samples[start:end] to the tree and return its frontier record."""
        n_node_samples = end - start
        node_impurity = self.splitter.node_reset(start, end)
        weighted_n_node_samples = self.splitter.weighted_n_node_samples
        if parent == TREE_UNDEFINED:
            impurity = node_impurity

        split = None
        if not self._is_leaf(n_node_samples, weighted_n_node_samples, impurity):
            # Constant features are rediscovered in every node
            split, _ = self._search_split(end, impurity, 0)

        node_id = self._append_node(tree, parent, is_left, split, impurity,
                                    n_node_samples, weighted_n_node_samples)

        if split is None:
            return FrontierRecord(
                node_id=node_id, start=start, end=end, pos=end, depth=depth,
                is_leaf=True, impurity=impurity, impurity_left=impurity,
                impurity_right=impurity, improvement=0.0,
            )
        return FrontierRecord(
            node_id=node_id, start=start, end=end, pos=split.pos, depth=depth,
            is_leaf=False, impurity=impurity, impurity_left=split.impurity_left,
            impurity_right=split.impurity_right, improvement=split.improvement,
        )


NODE_DTYPE = np.dtype([
    ('left_child', np.intp),
    ('right_child', np.intp),
    ('feature', np.intp),
    ('threshold', np.float64),
    ('impurity', np.float64),
    ('n_node_samples', np.intp),
    ('weighted_n_node_samples', np.float64),
])


class Tree:
    """Array-based representation of a binary decision tree.

    Node ``i`` is ``nodes[i]``; node 0 is the root and children always have a
    larger id than their parent. ``value`` stores ``value_stride`` floats per
    node: the class counts for classification, the mean target for regression.

    The array properties below are snapshots built from the node list, so
    writing into them does not change the tree.
    """

    def __init__(self, n_features, n_classes, n_outputs):
        self.n_features = n_features
        self.n_outputs = n_outputs
        self.n_classes = np.asarray(n_classes, dtype=np.intp)

        self.max_n_classes = int(np.max(self.n_classes))
        self.value_stride = n_outputs * self.max_n_classes

        self.max_depth = 0
        self.node_count = 0
        self.capacity = 0
        self.value = None
        self.nodes = None

        self._resize(3)

    def _field(self, name, dtype):
        return np.fromiter((getattr(node, name) for node in self.nodes[:self.node_count]),
                           dtype=dtype, count=self.node_count)

    @property
    def children_left(self):
        return self._field('left_child', np.intp)

    @property
    def children_right(self):
        return self._field('right_child', np.intp)

    @property
    def feature(self):
        return self._field('feature', np.intp)

    @property
    def threshold(self):
        return self._field('threshold', np.float64)

    @property
    def impurity(self):
        return self._field('impurity', np.float64)

    @property
    def n_node_samples(self):
        return self._field('n_node_samples', np.intp)

    @property
    def weighted_n_node_samples(self):
        return self._field('weighted_n_node_samples', np.float64)

    @property
    def n_leaves(self):
        return int(np.count_nonzero(self.children_left == TREE_LEAF))

    @property
    def value_array(self):
        """Node values with shape (node_count, n_outputs, max_n_classes)."""
        return self.value[:self.node_count * self.value_stride].reshape(
            (self.node_count, self.n_outputs, self.max_n_classes))

    def __reduce__(self):
        return (Tree, (self.n_features, self.n_classes, self.n_outputs),
                self.__getstate__())

    def __getstate__(self):
        return {
            "max_depth": self.max_depth,
            "node_count": self.node_count,
            "nodes": self._node_records(),
            "values": self.value_array.copy(),
        }

    def __setstate__(self, state):
        if "nodes" not in state or "values" not in state:
            raise ValueError("Tree state is missing its node or value arrays")

        nodes = np.ascontiguousarray(state["nodes"])
        values = np.ascontiguousarray(state["values"])
        n_nodes = nodes.shape[0]

        if nodes.ndim != 1 or nodes.dtype != NODE_DTYPE:
            raise ValueError(
                f"node array must be 1-dimensional with dtype {NODE_DTYPE}, got "
                f"shape {nodes.shape} and dtype {nodes.dtype}"
            )
        expected_shape = (n_nodes, self.n_outputs, self.max_n_classes)
        if values.shape != expected_shape:
            raise ValueError(
                f"value array must have shape {expected_shape}, got {values.shape}"
            )

        self.node_count = 0
        self._resize(max(n_nodes, 1))
        for node, row in zip(self.nodes, nodes):
            node.left_child = int(row['left_child'])
            node.right_child = int(row['right_child'])
            node.feature = int(row['feature'])
            node.threshold = float(row['threshold'])
            node.impurity = float(row['impurity'])
            node.n_node_samples = int(row['n_node_samples'])
            node.weighted_n_node_samples = float(row['weighted_n_node_samples'])

        self.node_count = n_nodes
        self.max_depth = state["max_depth"]
        self.value[:values.size] = values.ravel()

    def _node_records(self):
        """Return the nodes as a structured array of NODE_DTYPE."""
        records = np.zeros(self.node_count, dtype=NODE_DTYPE)
        for name in NODE_DTYPE.names:
            records[name] = self._field(name, NODE_DTYPE[name])
        return records

    def _resize(self, capacity=None):
        """Grow or shrink storage to ``capacity`` nodes; doubles when None.

        Nodes beyond ``capacity`` are dropped.
        """
        if capacity is None:
            capacity = 2 * self.capacity if self.capacity else 3
        if capacity == self.capacity:
            return

        kept = min(capacity, self.node_count)
        old_nodes = self.nodes or []
        self.nodes = old_nodes[:kept] + [Node() for _ in range(capacity - kept)]

        value = np.zeros(capacity * self.value_stride, dtype=np.float64)
        if self.value is not None:
            n_kept = kept * self.value_stride
            value[:n_kept] = self.value[:n_kept]
        self.value = value

        self.node_count = kept
        self.capacity = capacity

    def _add_node(self, parent, is_left, is_leaf, feature, threshold, impurity,
                  n_node_samples, weighted_n_node_samples):
        """Append a node and link it as the left or right child of ``parent``.

        Returns the id of the new node.
        """
        node_id = self.node_count
        if node_id >= self.capacity:
            self._resize()

        node = self.nodes[node_id]
        node.impurity = impurity
        node.n_node_samples = n_node_samples
        node.weighted_n_node_samples = weighted_n_node_samples

        if parent != TREE_UNDEFINED:
            if is_left:
                self.nodes[parent].left_child = node_id
            else:
                self.nodes[parent].right_child = node_id

        if is_leaf:
            node.left_child = TREE_LEAF
            node.right_child = TREE_LEAF
            node.feature = TREE_UNDEFINED
            node.threshold = TREE_UNDEFINED
        else:
            # Children link themselves when they are added
            node.feature = int(feature)
            node.threshold = float(threshold)

        self.node_count += 1
        return node_id

    def _check_apply_input(self, X):
        if not isinstance(X, np.ndarray):
            raise ValueError(f"X should be a numpy array, got {type(X)}")
        if X.dtype != DTYPE:
            raise ValueError(f"X.dtype should be np.float32, got {X.dtype}")
        if X.ndim != 2 or X.shape[1] != self.n_features:
            raise ValueError(
                f"X should have shape (n_samples, {self.n_features}), got {X.shape}"
            )
        return X

    def _descend(self, X):
        """Yield (rows, nodes) one level at a time, from the root to the leaves.

        ``nodes[k]`` is the node row ``rows[k]`` of X has reached at that level.
        """
        left = self.children_left
        right = self.children_right
        feature = self.feature
        threshold = self.threshold

        rows = np.arange(X.shape[0])
        nodes = np.zeros(X.shape[0], dtype=np.intp)
        while rows.shape[0]:
            yield rows, nodes

            internal = left[nodes] != TREE_LEAF
            rows = rows[internal]
            nodes = nodes[internal]
            goes_left = X[rows, feature[nodes]] <= threshold[nodes]
            nodes = np.where(goes_left, left[nodes], right[nodes])

    def apply(self, X):
        """Return the id of the leaf each row of X falls into."""
        X = self._check_apply_input(X)
        out = np.zeros(X.shape[0], dtype=np.intp)
        for rows, nodes in self._descend(X):
            out[rows] = nodes
        return out

    def predict(self, X):
        """Return the stored value of the leaf each row of X falls into."""
        return self.value_array.take(self.apply(X), axis=0, mode='clip')

    def decision_path(self, X):
        """Return a CSR indicator of shape (n_samples, node_count).

        Entry (i, j) is 1 when row i of X goes through node j.
        """
        X = self._check_apply_input(X)
        levels = list(self._descend(X))
        if levels:
            rows = np.concatenate([rows for rows, _ in levels])
            nodes = np.concatenate([nodes for _, nodes in levels])
        else:
            rows = nodes = np.zeros(0, dtype=np.intp)

        data = np.ones(rows.shape[0], dtype=np.intp)
        out = csr_matrix((data, (rows, nodes)), shape=(X.shape[0], self.node_count))
        out.sort_indices()
        return out

    def compute_node_depths(self):
        """Return the depth of every node, counting the root as depth 1."""
        left = self.children_left
        right = self.children_right
        depths = np.ones(self.node_count, dtype=np.int64)
        for node_id in np.flatnonzero(left != TREE_LEAF):
            depths[left[node_id]] = depths[node_id] + 1
            depths[right[node_id]] = depths[node_id] + 1
        return depths

    def compute_feature_importances(self, normalize=True):
        """Return the total weighted impurity decrease brought by each feature."""
        left = self.children_left
        right = self.children_right
        internal = np.flatnonzero(left != TREE_LEAF)

        weighted_impurity = self.weighted_n_node_samples * self.impurity
        decrease = (weighted_impurity[internal]
                    - weighted_impurity[left[internal]]
                    - weighted_impurity[right[internal]])
        importances = np.bincount(self.feature[internal], weights=decrease,
                                  minlength=self.n_features).astype(np.float64)

        if self.node_count > 0 and self.nodes[0].weighted_n_node_samples > 0:
            importances /= self.nodes[0].weighted_n_node_samples

        if normalize:
            normalizer = importances.sum()
            # A pure root has no split to credit
            if normalizer > 0.0:
                importances /= normalizer

        return importances
