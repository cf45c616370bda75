import numpy as np
import pytest

from dtree_python import BestSplitter, Gini


@pytest.fixture
def classification_data():
    rng = np.random.RandomState(0)
    X = rng.normal(size=(60, 4)).astype(np.float32)
    y = (X[:, 0] + 0.5 * X[:, 2] > 0).astype(np.float64)
    return X, y


@pytest.fixture
def regression_data():
    rng = np.random.RandomState(1)
    X = rng.uniform(-1.0, 1.0, size=(50, 3)).astype(np.float32)
    y = 3.0 * X[:, 0] - 2.0 * X[:, 1] + 0.1 * rng.normal(size=50)
    return X, y.astype(np.float64)


def make_gini_splitter(X, y, n_classes=2, splitter_cls=BestSplitter, max_features=None,
                       min_samples_leaf=1, min_weight_leaf=0.0, random_state=0,
                       sample_weight=None):
    X = np.asarray(X, dtype=np.float32)
    y = np.asarray(y, dtype=np.float64).reshape(-1, 1)
    criterion = Gini(1, X.shape[0], np.array([n_classes]))
    splitter = splitter_cls(criterion,
                            X.shape[1] if max_features is None else max_features,
                            min_samples_leaf, min_weight_leaf, random_state)
    splitter.init(X, y, sample_weight)
    return splitter
