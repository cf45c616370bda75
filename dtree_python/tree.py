# dtree_python/tree.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

"""Decision tree estimators on top of the splitters and tree builders."""

import logging
import numbers

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.utils import check_random_state
from sklearn.utils.validation import check_array, check_is_fitted

from ._criterion import MSE, Entropy, Gini
from ._splitter import BestSplitter, PresortBestSplitter, RandomSplitter
from ._tree import DTYPE, BestFirstTreeBuilder, DepthFirstTreeBuilder, Tree

logger = logging.getLogger(__name__)

CRITERIA_CLF = {"gini": Gini, "entropy": Entropy}
CRITERIA_REG = {"squared_error": MSE}

DENSE_SPLITTERS = {
    "best": BestSplitter,
    "random": RandomSplitter,
    "presort": PresortBestSplitter,
}

# Depth used when max_depth is None
MAX_INT = np.iinfo(np.int32).max


class BaseDecisionTree(BaseEstimator):
    """Base class for decision trees.

    Warning: This class should not be used directly.
    Use derived classes instead.
    """

    def __init__(
        self,
        *,
        criterion,
        splitter,
        max_depth,
        min_samples_split,
        min_samples_leaf,
        min_weight_fraction_leaf,
        max_features,
        max_leaf_nodes,
        random_state,
    ):
        self.criterion = criterion
        self.splitter = splitter
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.min_weight_fraction_leaf = min_weight_fraction_leaf
        self.max_features = max_features
        self.max_leaf_nodes = max_leaf_nodes
        self.random_state = random_state

    def _encode_y(self, y):
        return y

    def _make_criterion(self, n_samples):
        raise NotImplementedError()

    def fit(self, X, y, sample_weight=None):
        """Build a decision tree from the training set (X, y).

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            The training input samples. Converted to ``np.float32``.

        y : array-like of shape (n_samples,) or (n_samples, n_outputs)
            The target values.

        sample_weight : array-like of shape (n_samples,), default=None
            Non-negative sample weights. If None, samples are equally weighted.
            Samples with zero weight are ignored while searching for splits.

        Returns
        -------
        self : object
        """
        random_state = check_random_state(self.random_state)

        X = check_array(X, dtype=DTYPE, order="F")
        y = np.atleast_1d(np.asarray(y))
        if y.ndim == 1:
            # reshape is necessary to preserve the data contiguity against vs
            # [:, np.newaxis] that does not.
            y = np.reshape(y, (-1, 1))

        n_samples, self.n_features_in_ = X.shape
        self.n_outputs_ = y.shape[1]
        y = self._encode_y(y)

        if sample_weight is not None:
            sample_weight = np.asarray(sample_weight, dtype=np.float64)
            if np.any(sample_weight < 0):
                raise ValueError("sample_weight must be non-negative")
            if not np.sum(sample_weight) > 0:
                raise ValueError("sample_weight must have a positive sum")

        max_depth = MAX_INT if self.max_depth is None else self.max_depth
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")

        min_samples_leaf = self._check_min_samples(
            "min_samples_leaf", self.min_samples_leaf, n_samples, lower=1)
        min_samples_split = self._check_min_samples(
            "min_samples_split", self.min_samples_split, n_samples, lower=2)
        min_samples_split = max(min_samples_split, 2 * min_samples_leaf)

        if not 0.0 <= self.min_weight_fraction_leaf <= 0.5:
            raise ValueError("min_weight_fraction_leaf must be in [0, 0.5]")
        if sample_weight is None:
            min_weight_leaf = self.min_weight_fraction_leaf * n_samples
        else:
            min_weight_leaf = self.min_weight_fraction_leaf * np.sum(sample_weight)

        max_features = self._resolve_max_features(self.n_features_in_)
        self.max_features_ = max_features

        max_leaf_nodes = self.max_leaf_nodes
        if max_leaf_nodes is not None and (
                not isinstance(max_leaf_nodes, numbers.Integral) or max_leaf_nodes < 2):
            raise ValueError(
                f"max_leaf_nodes must be an integer >= 2 or None, got {max_leaf_nodes}"
            )

        if self.splitter not in DENSE_SPLITTERS:
            raise ValueError(
                f"splitter must be one of {sorted(DENSE_SPLITTERS)}, got {self.splitter!r}"
            )

        criterion = self._make_criterion(n_samples)
        splitter = DENSE_SPLITTERS[self.splitter](
            criterion,
            max_features,
            min_samples_leaf,
            min_weight_leaf,
            random_state,
        )

        self.tree_ = Tree(self.n_features_in_, self._tree_n_classes(), self.n_outputs_)

        # Use BestFirst if max_leaf_nodes given; use DepthFirst otherwise
        if max_leaf_nodes is None:
            builder = DepthFirstTreeBuilder(
                splitter,
                min_samples_split,
                min_samples_leaf,
                min_weight_leaf,
                max_depth,
            )
        else:
            builder = BestFirstTreeBuilder(
                splitter,
                min_samples_split,
                min_samples_leaf,
                min_weight_leaf,
                max_leaf_nodes,
            )

        logger.debug("Fitting %s with %s and %s", type(self).__name__,
                     type(splitter).__name__, type(builder).__name__)
        builder.build(self.tree_, X, y, sample_weight)

        return self

    def _check_min_samples(self, name, value, n_samples, lower):
        if isinstance(value, numbers.Integral):
            if value < lower:
                raise ValueError(f"{name} must be >= {lower}, got {value}")
            return int(value)
        if isinstance(value, numbers.Real) and 0.0 < value <= 1.0:
            return max(lower, int(np.ceil(value * n_samples)))
        raise ValueError(
            f"{name} must be an integer >= {lower} or a float in (0, 1], got {value}"
        )

    def _resolve_max_features(self, n_features):
        max_features = self.max_features
        if max_features is None:
            return n_features
        if isinstance(max_features, str):
            if max_features == "sqrt":
                return max(1, int(np.sqrt(n_features)))
            if max_features == "log2":
                return max(1, int(np.log2(n_features)))
            raise ValueError(
                f"max_features must be 'sqrt', 'log2', an int or a float, "
                f"got {max_features!r}"
            )
        if isinstance(max_features, numbers.Integral):
            if not 0 < max_features <= n_features:
                raise ValueError(
                    f"max_features must be in [1, {n_features}], got {max_features}"
                )
            return int(max_features)
        if isinstance(max_features, numbers.Real) and 0.0 < max_features <= 1.0:
            return max(1, int(max_features * n_features))
        raise ValueError(f"max_features must be in (0, 1] as a float, got {max_features}")

    def _validate_X_predict(self, X):
        """Validate X on predict, apply and decision_path."""
        check_is_fitted(self, "tree_")
        X = check_array(X, dtype=DTYPE)
        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X.shape[1]} features, but {type(self).__name__} is "
                f"expecting {self.n_features_in_} features as input"
            )
        return X

    def get_depth(self):
        """Return the depth of the decision tree (root has depth 0)."""
        check_is_fitted(self, "tree_")
        return self.tree_.max_depth

    def get_n_leaves(self):
        """Return the number of leaves of the decision tree."""
        check_is_fitted(self, "tree_")
        return self.tree_.n_leaves

    def apply(self, X):
        """Return the index of the leaf that each sample is predicted as."""
        X = self._validate_X_predict(X)
        return self.tree_.apply(X)

    def decision_path(self, X):
        """Return the decision path in the tree as a CSR indicator matrix."""
        X = self._validate_X_predict(X)
        return self.tree_.decision_path(X)

    @property
    def feature_importances_(self):
        """Return the normalized total impurity decrease brought by each feature."""
        check_is_fitted(self, "tree_")
        return self.tree_.compute_feature_importances()


class DecisionTreeClassifier(ClassifierMixin, BaseDecisionTree):
    """A decision tree classifier.

    Parameters
    ----------
    criterion : {"gini", "entropy"}, default="gini"
        The function to measure the quality of a split.

    splitter : {"best", "random", "presort"}, default="best"
        The strategy used to choose the split at each node. "presort" finds
        the same splits as "best" using a per-feature sort order computed once.

    max_depth : int, default=None
        The maximum depth of the tree. Ignored when ``max_leaf_nodes`` is set.

    min_samples_split : int or float, default=2
        The minimum number of samples required to split an internal node.

    min_samples_leaf : int or float, default=1
        The minimum number of samples required on each side of a split.

    min_weight_fraction_leaf : float, default=0.0
        The minimum weighted fraction of the total sample weight required on
        each side of a split.

    max_features : int, float, {"sqrt", "log2"} or None, default=None
        The number of features to consider when looking for the best split.

    max_leaf_nodes : int, default=None
        Grow a tree with at most ``max_leaf_nodes`` leaves in best-first
        fashion.

    random_state : int, RandomState instance or None, default=None
        Controls the feature permutation and the random thresholds.

    Attributes
    ----------
    classes_ : ndarray of shape (n_classes,) or list of ndarray
    n_classes_ : int or list of int
    tree_ : Tree
    """

    def __init__(
        self,
        *,
        criterion="gini",
        splitter="best",
        max_depth=None,
        min_samples_split=2,
        min_samples_leaf=1,
        min_weight_fraction_leaf=0.0,
        max_features=None,
        max_leaf_nodes=None,
        random_state=None,
    ):
        super().__init__(
            criterion=criterion,
            splitter=splitter,
            max_depth=max_depth,
            min_samples_split=min_samples_split,
            min_samples_leaf=min_samples_leaf,
            min_weight_fraction_leaf=min_weight_fraction_leaf,
            max_features=max_features,
            max_leaf_nodes=max_leaf_nodes,
            random_state=random_state,
        )

    def _encode_y(self, y):
        y_encoded = np.zeros(y.shape, dtype=np.float64)
        classes = []
        n_classes = []
        for k in range(self.n_outputs_):
            classes_k, y_encoded[:, k] = np.unique(y[:, k], return_inverse=True)
            classes.append(classes_k)
            n_classes.append(classes_k.shape[0])

        if self.n_outputs_ == 1:
            self.classes_ = classes[0]
            self.n_classes_ = n_classes[0]
        else:
            self.classes_ = classes
            self.n_classes_ = n_classes
        self._n_classes = np.asarray(n_classes, dtype=np.intp)
        return y_encoded

    def _tree_n_classes(self):
        return self._n_classes

    def _make_criterion(self, n_samples):
        if self.criterion not in CRITERIA_CLF:
            raise ValueError(
                f"criterion must be one of {sorted(CRITERIA_CLF)}, got {self.criterion!r}"
            )
        return CRITERIA_CLF[self.criterion](self.n_outputs_, n_samples, self._n_classes)

    def predict_proba(self, X):
        """Predict class probabilities of the input samples X.

        The probability of a class is the weighted fraction of training
        samples of that class in the leaf.
        """
        X = self._validate_X_predict(X)
        proba = self.tree_.predict(X)

        all_proba = []
        for k in range(self.n_outputs_):
            proba_k = proba[:, k, :self._n_classes[k]]
            normalizer = proba_k.sum(axis=1)[:, np.newaxis]
            normalizer[normalizer == 0.0] = 1.0
            all_proba.append(proba_k / normalizer)

        if self.n_outputs_ == 1:
            return all_proba[0]
        return all_proba

    def predict(self, X):
        """Predict class for X."""
        X = self._validate_X_predict(X)
        proba = self.tree_.predict(X)

        if self.n_outputs_ == 1:
            return self.classes_.take(np.argmax(proba[:, 0, :self._n_classes[0]], axis=1),
                                      axis=0)

        predictions = np.zeros((X.shape[0], self.n_outputs_), dtype=self.classes_[0].dtype)
        for k in range(self.n_outputs_):
            predictions[:, k] = self.classes_[k].take(
                np.argmax(proba[:, k, :self._n_classes[k]], axis=1), axis=0)
        return predictions


class DecisionTreeRegressor(RegressorMixin, BaseDecisionTree):
    """A decision tree regressor.

    Parameters
    ----------
    criterion : {"squared_error"}, default="squared_error"
        The function to measure the quality of a split.

    splitter : {"best", "random", "presort"}, default="best"
        The strategy used to choose the split at each node.

    max_depth, min_samples_split, min_samples_leaf, min_weight_fraction_leaf,
    max_features, max_leaf_nodes, random_state
        See :class:`DecisionTreeClassifier`.
    """

    def __init__(
        self,
        *,
        criterion="squared_error",
        splitter="best",
        max_depth=None,
        min_samples_split=2,
        min_samples_leaf=1,
        min_weight_fraction_leaf=0.0,
        max_features=None,
        max_leaf_nodes=None,
        random_state=None,
    ):
        super().__init__(
            criterion=criterion,
            splitter=splitter,
            max_depth=max_depth,
            min_samples_split=min_samples_split,
            min_samples_leaf=min_samples_leaf,
            min_weight_fraction_leaf=min_weight_fraction_leaf,
            max_features=max_features,
            max_leaf_nodes=max_leaf_nodes,
            random_state=random_state,
        )

    def _encode_y(self, y):
        return np.ascontiguousarray(y, dtype=np.float64)

    def _tree_n_classes(self):
        return np.ones(self.n_outputs_, dtype=np.intp)

    def _make_criterion(self, n_samples):
        if self.criterion not in CRITERIA_REG:
            raise ValueError(
                f"criterion must be one of {sorted(CRITERIA_REG)}, got {self.criterion!r}"
            )
        return CRITERIA_REG[self.criterion](self.n_outputs_, n_samples)

    def predict(self, X):
        """Predict regression target for X."""
        X = self._validate_X_predict(X)
        proba = self.tree_.predict(X)

        if self.n_outputs_ == 1:
            return proba[:, 0, 0]
        return proba[:, :, 0]
