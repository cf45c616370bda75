"""
Decision tree growth - splitters and tree builders for binary decision trees
"""

import logging

from ._criterion import MSE, Criterion, Entropy, Gini
from ._splitter import (
    BestSplitter, PresortBestSplitter, RandomSplitter, SplitRecord, Splitter
)
from ._tree import BestFirstTreeBuilder, DepthFirstTreeBuilder, Tree
from .exceptions import CriterionError, EmptyRangeError, ShapeError, TreeBuildError
from .tree import DecisionTreeClassifier, DecisionTreeRegressor

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'DecisionTreeClassifier',
    'DecisionTreeRegressor',
    'Splitter',
    'BestSplitter',
    'RandomSplitter',
    'PresortBestSplitter',
    'SplitRecord',
    'DepthFirstTreeBuilder',
    'BestFirstTreeBuilder',
    'Tree',
    'Criterion',
    'Gini',
    'Entropy',
    'MSE',
    'TreeBuildError',
    'ShapeError',
    'EmptyRangeError',
    'CriterionError',
]
