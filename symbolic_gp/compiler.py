"""
symbolic_gp/compiler.py - Ahead-of-time compilation of expression trees

A tree is rendered once into a single Python expression and compiled with
the builtin ``compile``. Compilable symbols contribute their template and
reach the numba-compiled primitives through ``COMPILE_NAMESPACE``, so the
same code runs on one row of scalars or on whole numpy columns. Every other
node is called back through its own ``evaluate`` method, row by row.
"""
import logging
import math
from typing import Any, Dict, List, Mapping

import numpy as np

from .errors import EvaluationError
from .interpreter import ExpressionInterpreter, evaluate_rowwise
from .symbols import COMPILE_NAMESPACE
from .tree import ConstantTreeNode, SymbolicExpressionTree, TreeNode

logger = logging.getLogger(__name__)


class CompiledExpression:
    """Callable wrapper around one compiled tree"""

    def __init__(self, source: str, code, namespace: Dict[str, Any]):
        self.source = source
        self._code = code
        self._namespace = namespace

    def __call__(self, variables: Mapping[str, float]) -> float:
        return float(self._run(variables))

    def evaluate_columns(self, columns: Mapping[str, np.ndarray], rows: int) -> np.ndarray:
        """One prediction per row, with every variable bound to a whole column"""
        values = np.array(self._run(columns), dtype=float)
        if values.ndim == 0:
            return np.full(rows, float(values))
        return values

    def _run(self, variables):
        try:
            with np.errstate(all='ignore'):
                return eval(self._code, self._namespace, {'variables': variables})
        except KeyError as e:
            raise EvaluationError(f"Variable {e.args[0]!r} not provided.", str(e.args[0])) from None

    def __repr__(self):
        return f"CompiledExpression({self.source!r})"


class InterpretedExpression:
    """Stands in for a compiled tree the parser cannot take; same interface"""

    def __init__(self, tree: SymbolicExpressionTree, interpreter: ExpressionInterpreter = None):
        self.source = None
        self._tree = tree
        self._interpreter = interpreter or ExpressionInterpreter()

    def __call__(self, variables: Mapping[str, float]) -> float:
        return self._interpreter.evaluate(self._tree, variables)

    def evaluate_columns(self, columns: Mapping[str, np.ndarray], rows: int) -> np.ndarray:
        return self._interpreter.evaluate_columns(self._tree, columns, rows)


class TreeCompiler:

    def compile(self, tree: SymbolicExpressionTree):
        if tree is None or tree.root is None:
            raise EvaluationError("Tree has no root node")

        fallback_nodes: List[TreeNode] = []
        try:
            source = self._emit(tree.root, fallback_nodes)
            code = compile(source, '<symbolic_gp>', 'eval')
        except (SyntaxError, RecursionError, MemoryError) as e:
            # Nesting limits of the parser; depth alone triggers them
            logger.debug("Tree not compiled (%s), interpreting instead", e)
            return InterpretedExpression(tree)

        namespace: Dict[str, Any] = dict(COMPILE_NAMESPACE)
        namespace['_nodes'] = fallback_nodes
        namespace['_rowwise'] = evaluate_rowwise
        namespace['__builtins__'] = {}
        return CompiledExpression(source, code, namespace)

    def _emit(self, node: TreeNode, fallback_nodes: List[TreeNode]) -> str:
        if isinstance(node, ConstantTreeNode) and math.isfinite(node.value):
            return f"({node.value!r})"

        child_expressions = [self._emit(child, fallback_nodes) for child in node.subtrees]
        if node.symbol.is_compilable:
            return node.symbol.emit(child_expressions)

        # Not compilable: call the node itself with its children's values
        fallback_nodes.append(node)
        index = len(fallback_nodes) - 1
        return f"_rowwise(_nodes[{index}], [{', '.join(child_expressions)}], variables)"
