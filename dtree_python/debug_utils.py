# dtree_python/debug_utils.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import logging

from ._tree import TREE_LEAF

logger = logging.getLogger(__name__)


def _preorder(tree):
    """Yield (node_id, depth) from the root, left subtree before right."""
    stack = [(0, 0)]
    while stack:
        node_id, depth = stack.pop()
        yield node_id, depth

        node = tree.nodes[node_id]
        if node.left_child != TREE_LEAF:
            stack.append((node.right_child, depth + 1))
            stack.append((node.left_child, depth + 1))


def export_text(tree, feature_names=None):
    """Render the structure of a built Tree as indented text."""
    lines = []
    for node_id, depth in _preorder(tree):
        node = tree.nodes[node_id]
        indent = "  " * depth

        if node.left_child == TREE_LEAF:
            value = tree.value_array[node_id].ravel()
            lines.append(f"{indent}Leaf {node_id}: samples={node.n_node_samples}, "
                         f"impurity={node.impurity:.4f}, value={value.round(4).tolist()}")
            continue

        if feature_names is None:
            name = f"feature_{node.feature}"
        else:
            name = feature_names[node.feature]
        lines.append(f"{indent}Node {node_id}: {name} <= {node.threshold:.4f}, "
                     f"samples={node.n_node_samples}, impurity={node.impurity:.4f}")

    return "\n".join(lines) + "\n"


def tree_signature(tree):
    """Preorder list of (feature, threshold, n_node_samples), one per node.

    Leaves report feature -1 and threshold None. Two trees with the same
    splits have the same signature whatever order their nodes were created in.
    """
    signature = []
    for node_id, _ in _preorder(tree):
        node = tree.nodes[node_id]
        if node.left_child == TREE_LEAF:
            signature.append((-1, None, node.n_node_samples))
        else:
            signature.append((node.feature, node.threshold, node.n_node_samples))
    return signature


def compare_tree_structures(tree1, tree2):
    """Return the preorder positions where two trees differ."""
    signature1 = tree_signature(tree1)
    signature2 = tree_signature(tree2)

    mismatches = [i for i, (a, b) in enumerate(zip(signature1, signature2)) if a != b]
    if len(signature1) != len(signature2):
        mismatches.extend(range(min(len(signature1), len(signature2)),
                                max(len(signature1), len(signature2))))

    logger.info("Compared trees with %d and %d nodes: %d mismatching positions",
                tree1.node_count, tree2.node_count, len(mismatches))
    return mismatches
