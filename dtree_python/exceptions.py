# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

"""Errors raised while building a tree.

None of these are recoverable mid-build: node ids and child links written so
far would be inconsistent, so the build is aborted and must be restarted.
"""


class TreeBuildError(Exception):
    """Base class for all tree building errors."""


class ShapeError(TreeBuildError, ValueError):
    """Input arrays disagree on their number of samples."""


class EmptyRangeError(TreeBuildError, RuntimeError):
    """A node with no samples reached the splitter."""


class CriterionError(TreeBuildError, RuntimeError):
    """The impurity criterion could not evaluate a node."""
