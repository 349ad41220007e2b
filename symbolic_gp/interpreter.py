"""
symbolic_gp/interpreter.py - Tree-walking evaluation of expression trees
"""
from typing import Mapping, Sequence

import numpy as np

from .errors import EvaluationError
from .tree import SymbolicExpressionTree, TreeNode


def evaluate_rowwise(node: TreeNode, child_values: Sequence, variables: Mapping) -> np.ndarray:
    """Evaluate a node whose symbol only handles scalars.

    With column inputs the node is called once per row; with scalar inputs
    this is a plain ``node.evaluate``.
    """
    if not any(np.ndim(value) for value in child_values):
        return node.evaluate(child_values, variables)
    columns = np.broadcast_arrays(*[np.asarray(value, dtype=float) for value in child_values])
    return np.array([node.evaluate([float(column[i]) for column in columns], variables)
                     for i in range(columns[0].shape[0])], dtype=float)


class ExpressionInterpreter:
    """Evaluates a tree by recursive descent, children before parents"""

    def evaluate(self, tree: SymbolicExpressionTree, variables: Mapping[str, float]) -> float:
        if tree is None or tree.root is None:
            raise EvaluationError("Tree has no root node")
        with np.errstate(all='ignore'):
            return float(self.evaluate_node(tree.root, variables))

    def evaluate_node(self, node: TreeNode, variables: Mapping[str, float]) -> float:
        child_values = [self.evaluate_node(child, variables) for child in node.subtrees]
        return node.evaluate(child_values, variables)

    def evaluate_columns(self, tree: SymbolicExpressionTree, columns: Mapping[str, np.ndarray],
                         rows: int) -> np.ndarray:
        """One prediction per row, with every variable bound to a whole column"""
        if tree is None or tree.root is None:
            raise EvaluationError("Tree has no root node")
        with np.errstate(all='ignore'):
            values = np.array(self.evaluate_node_columns(tree.root, columns), dtype=float)
        if values.ndim == 0:
            return np.full(rows, float(values))
        return values

    def evaluate_node_columns(self, node: TreeNode, columns: Mapping[str, np.ndarray]):
        child_values = [self.evaluate_node_columns(child, columns) for child in node.subtrees]
        if node.is_leaf or node.symbol.is_compilable:
            return node.evaluate(child_values, columns)
        return evaluate_rowwise(node, child_values, columns)
