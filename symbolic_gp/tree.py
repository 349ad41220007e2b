"""
symbolic_gp/tree.py - Expression tree nodes, the tree wrapper and JSON serialization
"""
import json
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .cloner import Cloner, DeepCloneable
from .errors import (EvaluationError, InvalidArityError, MaximumArityExceededError,
                     MinimumArityViolatedError)
from .symbols import Symbol


class TreeNode(DeepCloneable):
    """A node bound to one symbol with an ordered list of subtrees"""

    def __init__(self, symbol: Symbol):
        if symbol is None:
            raise ValueError("A tree node needs a symbol")
        self._symbol = symbol
        self._subtrees: List['TreeNode'] = []
        self.parent: Optional['TreeNode'] = None
        self._length: Optional[int] = None
        self._depth: Optional[int] = None

    @property
    def symbol(self) -> Symbol:
        return self._symbol

    @property
    def subtrees(self) -> Sequence['TreeNode']:
        return tuple(self._subtrees)

    @property
    def subtree_count(self) -> int:
        return len(self._subtrees)

    @property
    def is_leaf(self) -> bool:
        return not self._subtrees

    # Structure queries

    def get_length(self) -> int:
        if self._length is None:
            self._length = 1 + sum(child.get_length() for child in self._subtrees)
        return self._length

    def get_depth(self) -> int:
        if self._depth is None:
            self._depth = 1 + max((child.get_depth() for child in self._subtrees), default=0)
        return self._depth

    def get_level(self) -> int:
        """Number of edges between this node and the top of its tree"""
        level = 0
        node = self.parent
        while node is not None:
            level += 1
            node = node.parent
        return level

    def get_subtree(self, index: int) -> 'TreeNode':
        return self._subtrees[index]

    def index_of_subtree(self, node: 'TreeNode') -> int:
        for i, child in enumerate(self._subtrees):
            if child is node:
                return i
        return -1

    # Arity-checked mutation

    def add_subtree(self, node: 'TreeNode') -> None:
        self.insert_subtree(len(self._subtrees), node)

    def insert_subtree(self, index: int, node: 'TreeNode') -> None:
        if node is None:
            raise ValueError("Cannot add a missing subtree")
        count = len(self._subtrees)
        if count + 1 > self._symbol.max_arity:
            raise MaximumArityExceededError(self._symbol.name, count, count + 1,
                                            self._symbol.min_arity, self._symbol.max_arity)
        self._subtrees.insert(index, node)
        node.parent = self
        self._reset_cached_values()

    def remove_subtree(self, index: int) -> 'TreeNode':
        count = len(self._subtrees)
        if not 0 <= index < count:
            raise IndexError(f"Subtree index {index} out of range for '{self._symbol.name}'")
        if count - 1 < self._symbol.min_arity:
            raise MinimumArityViolatedError(self._symbol.name, count, count - 1,
                                            self._symbol.min_arity, self._symbol.max_arity)
        removed = self._subtrees.pop(index)
        removed.parent = None
        self._reset_cached_values()
        return removed

    def replace_subtree(self, index: int, node: 'TreeNode') -> 'TreeNode':
        if node is None:
            raise ValueError("Cannot replace with a missing subtree")
        if not 0 <= index < len(self._subtrees):
            raise IndexError(f"Subtree index {index} out of range for '{self._symbol.name}'")
        old = self._subtrees[index]
        old.parent = None
        self._subtrees[index] = node
        node.parent = self
        self._reset_cached_values()
        return old

    def change_symbol(self, symbol: Symbol) -> None:
        """Rebind this node to another symbol that accepts its current children"""
        if not symbol.accepts_arity(len(self._subtrees)):
            raise InvalidArityError(symbol.name, len(self._subtrees),
                                    symbol.min_arity, symbol.max_arity)
        self._symbol = symbol

    def validate(self) -> None:
        """Raise InvalidArityError for the first node whose child count is out of bounds"""
        for node in self.iterate_nodes_prefix():
            if not node.symbol.accepts_arity(node.subtree_count):
                raise InvalidArityError(node.symbol.name, node.subtree_count,
                                        node.symbol.min_arity, node.symbol.max_arity)

    def _reset_cached_values(self) -> None:
        node = self
        while node is not None:
            node._length = None
            node._depth = None
            node = node.parent

    # Traversal

    def iterate_nodes_prefix(self) -> Iterator['TreeNode']:
        yield self
        for child in self._subtrees:
            yield from child.iterate_nodes_prefix()

    def iterate_nodes_postfix(self) -> Iterator['TreeNode']:
        for child in self._subtrees:
            yield from child.iterate_nodes_postfix()
        yield self

    # Evaluation

    def evaluate(self, child_values: Sequence[float], variables: Mapping[str, float]) -> float:
        """Value of this node given its children's values already computed"""
        if not self._symbol.is_functional:
            raise EvaluationError(
                f"Symbol '{self._symbol.name}' not supported in interpreter.", self._symbol.name)
        return self._symbol.evaluate(child_values)

    # Cloning

    def _clone_shell(self, cloner: Cloner) -> 'TreeNode':
        shell = self.__class__.__new__(self.__class__)
        cloner.register(self, shell)
        shell._symbol = self._symbol
        shell.parent = None
        shell._length = self._length
        shell._depth = self._depth
        shell._subtrees = []
        return shell

    def clone(self, cloner: Cloner) -> 'TreeNode':
        shell = self._clone_shell(cloner)
        for child in self._subtrees:
            child_clone = cloner.clone(child)
            shell._subtrees.append(child_clone)
            child_clone.parent = shell
        return shell

    # Formatting and serialization

    def to_infix(self) -> str:
        args = ', '.join(child.to_infix() for child in self._subtrees)
        return f"{self._symbol.name}({args})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self._symbol.name,
            'subtrees': [child.to_dict() for child in self._subtrees],
        }

    def __str__(self):
        return self.to_infix()

    def __repr__(self):
        return f"{self.__class__.__name__}({self._symbol.name!r})"


class ConstantTreeNode(TreeNode):
    """Leaf carrying a numeric constant"""

    def __init__(self, symbol: Symbol, value: float = 0.0):
        if not symbol.is_constant:
            raise ValueError(f"Symbol '{symbol.name}' is not a constant symbol")
        super().__init__(symbol)
        self.value = float(value)

    def reset_value(self, random) -> None:
        low, high = self.symbol.value_range
        self.value = random.uniform(low, high)

    def shake(self, random, shaking_factor: float) -> None:
        self.value += random.uniform(-shaking_factor, shaking_factor)

    def evaluate(self, child_values: Sequence[float], variables: Mapping[str, float]) -> float:
        return self.value

    def clone(self, cloner: Cloner) -> 'ConstantTreeNode':
        shell = self._clone_shell(cloner)
        shell.value = self.value
        return shell

    def to_infix(self) -> str:
        return format(self.value, '.6g')

    def to_dict(self) -> Dict[str, Any]:
        return {'symbol': self.symbol.name, 'value': self.value}


class VariableTreeNode(TreeNode):
    """Leaf reading one input variable; the variable name is the symbol's name"""

    def __init__(self, symbol: Symbol):
        if not symbol.is_variable:
            raise ValueError(f"Symbol '{symbol.name}' is not a variable symbol")
        super().__init__(symbol)

    @property
    def variable_name(self) -> str:
        return self.symbol.name

    def evaluate(self, child_values: Sequence[float], variables: Mapping[str, float]) -> float:
        try:
            return variables[self.symbol.name]
        except KeyError:
            raise EvaluationError(f"Variable '{self.symbol.name}' not provided.",
                                  self.symbol.name) from None

    def clone(self, cloner: Cloner) -> 'VariableTreeNode':
        return self._clone_shell(cloner)

    def to_infix(self) -> str:
        return self.variable_name

    def to_dict(self) -> Dict[str, Any]:
        return {'symbol': self.symbol.name}


def create_node(symbol: Symbol, random=None) -> TreeNode:
    """Create the node type matching a symbol's capabilities"""
    if symbol.is_constant:
        node = ConstantTreeNode(symbol)
        if random is not None:
            node.reset_value(random)
        return node
    if symbol.is_variable:
        return VariableTreeNode(symbol)
    return TreeNode(symbol)


def node_from_dict(data: Dict[str, Any], grammar) -> TreeNode:
    """Rebuild a node from its dictionary form, resolving symbols in a grammar"""
    symbol = grammar.get_symbol(data['symbol'])
    if symbol is None:
        raise ValueError(f"Unknown symbol: {data['symbol']}")
    node = create_node(symbol)
    if isinstance(node, ConstantTreeNode):
        node.value = float(data['value'])
    for child_data in data.get('subtrees', []):
        node.add_subtree(node_from_dict(child_data, grammar))
    node.validate()
    return node


class SymbolicExpressionTree(DeepCloneable):
    """Owns a single root node"""

    def __init__(self, root: Optional[TreeNode] = None):
        self._root: Optional[TreeNode] = None
        if root is not None:
            self.root = root

    @property
    def root(self) -> Optional[TreeNode]:
        return self._root

    @root.setter
    def root(self, node: TreeNode) -> None:
        if node is None:
            raise ValueError("Root node cannot be None")
        node.parent = None
        self._root = node

    @property
    def length(self) -> int:
        return self._root.get_length() if self._root is not None else 0

    @property
    def depth(self) -> int:
        return self._root.get_depth() if self._root is not None else 0

    def iterate_nodes_postfix(self) -> Iterator[TreeNode]:
        if self._root is None:
            return iter(())
        return self._root.iterate_nodes_postfix()

    def iterate_nodes_prefix(self) -> Iterator[TreeNode]:
        if self._root is None:
            return iter(())
        return self._root.iterate_nodes_prefix()

    def replace_node(self, old: TreeNode, new: TreeNode) -> None:
        """Put ``new`` where ``old`` sits, at the root or under its parent"""
        if old is self._root:
            self.root = new
            return
        parent = old.parent
        index = parent.index_of_subtree(old) if parent is not None else -1
        if index < 0:
            raise ValueError("Node is not part of this tree")
        parent.replace_subtree(index, new)

    def validate(self) -> None:
        if self._root is not None:
            self._root.validate()

    def clone(self, cloner: Cloner) -> 'SymbolicExpressionTree':
        shell = SymbolicExpressionTree.__new__(SymbolicExpressionTree)
        cloner.register(self, shell)
        shell._root = cloner.clone(self._root)
        return shell

    def to_dict(self) -> Dict[str, Any]:
        return {
            'root': self._root.to_dict() if self._root is not None else None,
            'length': self.length,
            'depth': self.depth,
            'expression': str(self),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], grammar) -> 'SymbolicExpressionTree':
        if data.get('root') is None:
            return cls()
        return cls(node_from_dict(data['root'], grammar))

    def to_json(self, filename: str = None) -> str:
        """Serialize to JSON string or file"""
        json_str = json.dumps(self.to_dict(), indent=2)
        if filename:
            with open(filename, 'w') as f:
                f.write(json_str)
        return json_str

    @classmethod
    def from_json(cls, grammar, json_data: str = None,
                  filename: str = None) -> 'SymbolicExpressionTree':
        """Deserialize from JSON string or file"""
        if filename:
            with open(filename, 'r') as f:
                json_data = f.read()
        return cls.from_dict(json.loads(json_data), grammar)

    def __str__(self):
        if self._root is None:
            return "<empty>"
        return self._root.to_infix()

    def __repr__(self):
        return f"SymbolicExpressionTree(length={self.length}, depth={self.depth})"
