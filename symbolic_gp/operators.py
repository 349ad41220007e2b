"""
symbolic_gp/operators.py - Crossover, mutation and selection operators

Every structural operator works on a clone made with a fresh Cloner and
never touches its input tree.
"""
import logging
from typing import Callable, List, Optional, Sequence

from .cloner import Cloner
from .creators import MAX_CREATED_ARITY, GrowTreeCreator, TreeCreator
from .errors import ConfigurationError
from .grammar import Grammar
from .population import Individual, fitness_key
from .tree import ConstantTreeNode, SymbolicExpressionTree, TreeNode, VariableTreeNode, create_node

logger = logging.getLogger(__name__)


def _clone_tree(tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
    if tree is None or tree.root is None:
        raise ValueError("Tree must have a valid root node")
    return Cloner().clone(tree)


class TreeOperator:
    """Base for operators; the driver hands them its grammar before a run"""

    def __init__(self, grammar: Optional[Grammar] = None):
        self.grammar = grammar

    def _require_grammar(self) -> Grammar:
        if self.grammar is None:
            raise ConfigurationError(f"{type(self).__name__} needs a grammar before it can run")
        return self.grammar


class SubtreeCrossover(TreeOperator):
    """Replace a random subtree of a clone of the first parent with one from the second.

    Donor nodes are drawn at random up to ``max_attempts`` times; the first one
    that keeps the offspring within ``max_length``/``max_depth`` is spliced in.
    When none fits, the unmodified clone of the first parent is returned.
    """

    def __init__(self, max_length: int = 25, max_depth: int = 10,
                 internal_node_probability: float = 0.9, max_attempts: int = 10,
                 grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_length = max_length
        self.max_depth = max_depth
        self.internal_node_probability = min(1.0, max(0.0, internal_node_probability))
        self.max_attempts = max(1, max_attempts)

    def crossover(self, random, parent0: SymbolicExpressionTree,
                  parent1: SymbolicExpressionTree) -> SymbolicExpressionTree:
        if parent1 is None or parent1.root is None:
            raise ValueError("Parent trees must have valid root nodes")
        offspring = _clone_tree(parent0)

        point = self._select_crossover_point(random, list(offspring.iterate_nodes_postfix()))
        donors = list(parent1.iterate_nodes_postfix())

        level = point.get_level()
        kept_length = offspring.length - point.get_length()
        for _ in range(self.max_attempts):
            donor = donors[random.next_int(len(donors))]
            if (kept_length + donor.get_length() <= self.max_length
                    and level + donor.get_depth() <= self.max_depth):
                offspring.replace_node(point, Cloner().clone(donor))
                return offspring

        logger.debug("No donor fitted within %d attempts; returning recipient clone",
                     self.max_attempts)
        return offspring

    def _select_crossover_point(self, random, nodes: List[TreeNode]) -> TreeNode:
        if random.next_double() < self.internal_node_probability:
            internal = [n for n in nodes if n.subtree_count > 0]
            if internal:
                return internal[random.next_int(len(internal))]
        return nodes[random.next_int(len(nodes))]


def _nodes_at_level(root: TreeNode, level: int) -> List[TreeNode]:
    frontier = [root]
    for _ in range(level):
        frontier = [child for node in frontier for child in node.subtrees]
    return frontier


class OnePointCrossover(TreeOperator):
    """Swap subtrees found at the same level of both parents.

    A level is drawn below the root of the shallower parent, then one node at
    that level of a clone of the first parent is replaced by one from the
    second. An exchange that would break the budgets is skipped and the
    unmodified clone is returned.
    """

    def __init__(self, max_length: int = 25, max_depth: int = 10,
                 grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_length = max_length
        self.max_depth = max_depth

    def crossover(self, random, parent0: SymbolicExpressionTree,
                  parent1: SymbolicExpressionTree) -> SymbolicExpressionTree:
        if parent1 is None or parent1.root is None:
            raise ValueError("Parent trees must have valid root nodes")
        offspring = _clone_tree(parent0)

        common_depth = min(offspring.depth, parent1.depth)
        if common_depth <= 1:
            return offspring

        level = random.next_range(1, common_depth)
        points = _nodes_at_level(offspring.root, level)
        donors = _nodes_at_level(parent1.root, level)
        point = points[random.next_int(len(points))]
        donor = donors[random.next_int(len(donors))]

        if (offspring.length - point.get_length() + donor.get_length() <= self.max_length
                and level + donor.get_depth() <= self.max_depth):
            offspring.replace_node(point, Cloner().clone(donor))
        else:
            logger.debug("One-point exchange at level %d would exceed the budgets", level)
        return offspring


class UniformCrossover(TreeOperator):
    """Visit every node of a clone of the first parent and, with
    ``swap_probability``, replace it by a random subtree of the second parent.

    Nodes are visited in postfix order, so a replaced subtree is never
    revisited. Swaps that would break the budgets are skipped.
    """

    def __init__(self, max_length: int = 25, max_depth: int = 10,
                 swap_probability: float = 0.5, grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_length = max_length
        self.max_depth = max_depth
        self.swap_probability = min(1.0, max(0.0, swap_probability))

    def crossover(self, random, parent0: SymbolicExpressionTree,
                  parent1: SymbolicExpressionTree) -> SymbolicExpressionTree:
        if parent1 is None or parent1.root is None:
            raise ValueError("Parent trees must have valid root nodes")
        offspring = _clone_tree(parent0)
        donors = list(parent1.iterate_nodes_postfix())

        for node in list(offspring.iterate_nodes_postfix()):
            if random.next_double() >= self.swap_probability:
                continue
            donor = donors[random.next_int(len(donors))]
            if (offspring.length - node.get_length() + donor.get_length() <= self.max_length
                    and node.get_level() + donor.get_depth() <= self.max_depth):
                offspring.replace_node(node, Cloner().clone(donor))
        return offspring


class Mutator(TreeOperator):

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        raise NotImplementedError


class SubtreeMutator(Mutator):
    """Replace a random node and its subtree with a freshly created one"""

    def __init__(self, max_length: int = 25, max_depth: int = 10,
                 creator: Optional[TreeCreator] = None, grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_length = max(1, max_length)
        self.max_depth = max(1, max_depth)
        self.creator = creator or GrowTreeCreator()

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        grammar = self._require_grammar()
        result = _clone_tree(tree)

        nodes = list(result.iterate_nodes_postfix())
        point = nodes[random.next_int(len(nodes))]

        length_budget = max(1, self.max_length - (result.length - point.get_length()))
        depth_budget = max(1, self.max_depth - point.get_level())
        replacement = self.creator.create_tree(random, grammar, length_budget, depth_budget).root
        result.replace_node(point, replacement)
        return result


class ChangeNodeTypeMutator(Mutator):
    """Swap an internal node's symbol for another one accepting the same children"""

    def __init__(self, max_attempts: int = 10, grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_attempts = max(1, max_attempts)

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        grammar = self._require_grammar()
        result = _clone_tree(tree)

        candidates = [n for n in result.iterate_nodes_postfix() if n.subtree_count > 0]
        for _ in range(min(self.max_attempts, len(candidates))):
            node = candidates.pop(random.next_int(len(candidates)))
            alternatives = [s for s in grammar.function_symbols()
                            if s.name != node.symbol.name and s.accepts_arity(node.subtree_count)]
            if alternatives:
                node.change_symbol(alternatives[random.next_int(len(alternatives))])
                return result

        return result


class ChangeTerminalMutator(Mutator):
    """Nudge a constant by a bounded delta or point a variable at another input"""

    def __init__(self, constant_range: float = 1.0, grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.constant_range = max(0.0, constant_range)

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        result = _clone_tree(tree)

        leaves = [n for n in result.iterate_nodes_postfix() if n.subtree_count == 0]
        node = leaves[random.next_int(len(leaves))]

        if isinstance(node, ConstantTreeNode):
            node.shake(random, self.constant_range)
        elif isinstance(node, VariableTreeNode):
            others = [s for s in self._require_grammar().variable_symbols()
                      if s.name != node.variable_name]
            if others:
                node.change_symbol(others[random.next_int(len(others))])
        return result


class NodeInsertionMutator(Mutator):
    """Wrap a random node in a new function node.

    The wrapped node becomes the first child; any further children the new
    symbol needs are freshly created subtrees. Nothing is inserted when the
    tree is already at its length or depth budget.
    """

    def __init__(self, max_length: int = 25, max_depth: int = 10,
                 creator: Optional[TreeCreator] = None, grammar: Optional[Grammar] = None):
        super().__init__(grammar)
        self.max_length = max(1, max_length)
        self.max_depth = max(1, max_depth)
        self.creator = creator or GrowTreeCreator()

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        grammar = self._require_grammar()
        result = _clone_tree(tree)

        nodes = list(result.iterate_nodes_postfix())
        target = nodes[random.next_int(len(nodes))]
        level = target.get_level()
        child_depth = self.max_depth - level - 1
        spare_length = self.max_length - result.length - 1
        if spare_length < 0 or target.get_depth() > child_depth:
            logger.debug("No room to insert a node above level %d", level)
            return result

        candidates = [s for s in grammar.function_symbols() if s.min_arity - 1 <= spare_length]
        if not candidates:
            return result
        symbol = candidates[random.next_int(len(candidates))]

        lower = max(1, symbol.min_arity)
        upper = min(symbol.max_arity, MAX_CREATED_ARITY, spare_length + 1)
        arity = lower if lower >= upper else random.next_range(lower, upper + 1)

        wrapper = create_node(symbol, random)
        result.replace_node(target, wrapper)
        wrapper.add_subtree(target)

        remaining = spare_length
        for i in range(1, arity):
            budget = max(1, remaining // (arity - i))
            sibling = self.creator.create_tree(random, grammar, budget, child_depth).root
            wrapper.add_subtree(sibling)
            remaining -= sibling.get_length()
        return result


class NodeRemovalMutator(Mutator):
    """Delete a random non-root subtree.

    Only nodes whose parent stays at or above its minimum arity can go. When
    no such node exists, a random internal node is replaced by one of its own
    children instead. Either way the tree shrinks unless it is a single leaf.
    """

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        result = _clone_tree(tree)

        removable = [n for n in result.iterate_nodes_postfix()
                     if n.parent is not None and n.parent.subtree_count > n.parent.symbol.min_arity]
        if removable:
            node = removable[random.next_int(len(removable))]
            node.parent.remove_subtree(node.parent.index_of_subtree(node))
            return result

        internal = [n for n in result.iterate_nodes_postfix() if n.subtree_count > 0]
        if internal:
            node = internal[random.next_int(len(internal))]
            result.replace_node(node, node.get_subtree(random.next_int(node.subtree_count)))
        return result


class CombinedMutator(Mutator):
    """Delegate each call to one of several mutators chosen uniformly"""

    def __init__(self, mutators: Sequence[Mutator], grammar: Optional[Grammar] = None):
        if not mutators:
            raise ValueError("CombinedMutator needs at least one mutator")
        self.mutators = list(mutators)
        super().__init__(grammar)

    @property
    def grammar(self) -> Optional[Grammar]:
        return self._grammar

    @grammar.setter
    def grammar(self, value: Optional[Grammar]) -> None:
        self._grammar = value
        if value is not None:
            for mutator in self.mutators:
                mutator.grammar = value

    def mutate(self, random, tree: SymbolicExpressionTree) -> SymbolicExpressionTree:
        return self.mutators[random.next_int(len(self.mutators))].mutate(random, tree)


class TournamentSelector:
    """Fittest of ``tournament_size`` individuals drawn with replacement.

    Ties go to the first one drawn. The winner is returned as-is; callers
    clone it before changing it.
    """

    def __init__(self, tournament_size: int = 3):
        self.tournament_size = max(1, tournament_size)

    def select(self, random, population: Sequence[Individual],
               fitness: Optional[Callable[[Individual], float]] = None) -> Individual:
        if not population:
            raise ValueError("Population cannot be empty")
        if random is None:
            raise ValueError("A random source is required")
        fitness = fitness or (lambda individual: individual.fitness)

        best = population[random.next_int(len(population))]
        best_fitness = fitness_key(fitness(best))
        for _ in range(self.tournament_size - 1):
            candidate = population[random.next_int(len(population))]
            candidate_fitness = fitness_key(fitness(candidate))
            if candidate_fitness > best_fitness:
                best, best_fitness = candidate, candidate_fitness
        return best


MUTATORS = {
    'subtree': SubtreeMutator,
    'change_node_type': ChangeNodeTypeMutator,
    'change_terminal': ChangeTerminalMutator,
    'node_insertion': NodeInsertionMutator,
    'node_removal': NodeRemovalMutator,
}

CROSSOVERS = {
    'subtree': SubtreeCrossover,
    'one_point': OnePointCrossover,
    'uniform': UniformCrossover,
}
