"""
symbolic_gp/creators.py - Grow and Full tree creation within length/depth budgets
"""
from typing import List, Sequence

from .errors import ConfigurationError
from .grammar import Grammar
from .symbols import Symbol
from .tree import SymbolicExpressionTree, TreeNode, create_node

# Variadic symbols get at most this many children at creation time
MAX_CREATED_ARITY = 5


def select_symbol_by_frequency(random, symbols: Sequence[Symbol]) -> Symbol:
    """Roulette-wheel choice weighted by each symbol's initial frequency"""
    if not symbols:
        raise ValueError("Symbol list cannot be empty")
    if len(symbols) == 1:
        return symbols[0]

    total = sum(s.initial_frequency for s in symbols)
    if total <= 0:
        return symbols[random.next_int(len(symbols))]

    pick = random.next_double() * total
    current = 0.0
    for symbol in symbols:
        current += symbol.initial_frequency
        if pick < current:
            return symbol
    return symbols[-1]


class TreeCreator:
    """Shared budget bookkeeping for the Grow and Full strategies"""

    def create_tree(self, random, grammar: Grammar, max_length: int,
                    max_depth: int) -> SymbolicExpressionTree:
        if random is None:
            raise ValueError("A random source is required")
        if grammar is None:
            raise ValueError("A grammar is required")
        if max_length < 1:
            raise ValueError("Maximum tree length must be at least 1")
        if max_depth < 1:
            raise ValueError("Maximum tree depth must be at least 1")
        if not grammar.terminal_symbols():
            raise ConfigurationError(
                f"Grammar '{grammar.name}' has no enabled terminal symbols; trees cannot terminate")

        return SymbolicExpressionTree(self.create_node(random, grammar, max_length, max_depth))

    def create_node(self, random, grammar: Grammar, max_length: int, max_depth: int) -> TreeNode:
        raise NotImplementedError

    def _create_terminal(self, random, grammar: Grammar) -> TreeNode:
        terminals = grammar.terminal_symbols()
        if not terminals:
            raise ConfigurationError(f"Grammar '{grammar.name}' has no enabled terminal symbols")
        return create_node(select_symbol_by_frequency(random, terminals), random)

    @staticmethod
    def _fits(symbol: Symbol, max_length: int) -> bool:
        # The node itself plus one leaf per mandatory child
        return symbol.is_terminal or 1 + symbol.min_arity <= max_length

    def _add_children(self, random, grammar: Grammar, node: TreeNode, arity: int,
                      max_length: int, max_depth: int) -> TreeNode:
        remaining = max_length - 1
        for i in range(arity):
            slots_left = arity - i
            child_budget = max(1, remaining // slots_left)
            child = self.create_node(random, grammar, child_budget, max_depth - 1)
            node.add_subtree(child)
            remaining -= child.get_length()
        return node


class GrowTreeCreator(TreeCreator):
    """Picks among all fitting symbols at every slot, terminals included"""

    def create_node(self, random, grammar: Grammar, max_length: int, max_depth: int) -> TreeNode:
        if max_depth <= 1 or max_length <= 1:
            return self._create_terminal(random, grammar)

        candidates = [s for s in grammar.enabled_symbols() if self._fits(s, max_length)]
        if not candidates:
            return self._create_terminal(random, grammar)
        symbol = select_symbol_by_frequency(random, candidates)
        node = create_node(symbol, random)
        if symbol.is_terminal:
            return node

        upper = min(symbol.max_arity, MAX_CREATED_ARITY, max_length - 1)
        if symbol.min_arity >= upper:
            arity = symbol.min_arity
        else:
            arity = random.next_range(symbol.min_arity, upper + 1)
        return self._add_children(random, grammar, node, arity, max_length, max_depth)


class FullTreeCreator(TreeCreator):
    """Uses only functions until the depth budget runs out, then terminals"""

    def create_node(self, random, grammar: Grammar, max_length: int, max_depth: int) -> TreeNode:
        if max_depth <= 1 or max_length <= 1:
            return self._create_terminal(random, grammar)

        functions: List[Symbol] = [s for s in grammar.function_symbols() if self._fits(s, max_length)]
        if not functions:
            return self._create_terminal(random, grammar)

        symbol = select_symbol_by_frequency(random, functions)
        node = create_node(symbol, random)
        arity = max(symbol.min_arity, min(symbol.max_arity, MAX_CREATED_ARITY, max_length - 1))
        return self._add_children(random, grammar, node, arity, max_length, max_depth)


CREATORS = {
    'grow': GrowTreeCreator,
    'full': FullTreeCreator,
}
