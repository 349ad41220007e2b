import pytest

from symbolic_gp.creators import GrowTreeCreator
from symbolic_gp.errors import ConfigurationError
from symbolic_gp.grammar import Grammar
from symbolic_gp.operators import (ChangeNodeTypeMutator, ChangeTerminalMutator, CombinedMutator,
                                   NodeInsertionMutator, NodeRemovalMutator, OnePointCrossover,
                                   SubtreeCrossover, SubtreeMutator, TournamentSelector,
                                   UniformCrossover)
from symbolic_gp.population import Individual
from symbolic_gp.random_source import MersenneTwister
from symbolic_gp.symbols import basic_math_symbols, bounding_symbols, statistics_symbols
from symbolic_gp.tree import ConstantTreeNode, SymbolicExpressionTree, TreeNode, VariableTreeNode


@pytest.fixture
def grammar():
    return Grammar.for_regression(['x0', 'x1'], basic_math_symbols())


def _sum_tree(grammar):
    root = TreeNode(grammar.get_symbol('Addition'))
    root.add_subtree(VariableTreeNode(grammar.get_symbol('x0')))
    root.add_subtree(VariableTreeNode(grammar.get_symbol('x1')))
    return SymbolicExpressionTree(root)


def test_crossover_respects_budgets_and_leaves_parents_alone(grammar):
    creator = GrowTreeCreator()
    crossover = SubtreeCrossover(max_length=20, max_depth=6, grammar=grammar)

    for seed in range(40):
        rng = MersenneTwister(seed)
        parent0 = creator.create_tree(rng, grammar, 20, 6)
        parent1 = creator.create_tree(rng, grammar, 20, 6)
        before = (str(parent0), str(parent1))

        child = crossover.crossover(rng, parent0, parent1)

        assert child.length <= 20
        assert child.depth <= 6
        child.validate()
        assert (str(parent0), str(parent1)) == before
        assert child.root is not parent0.root


def test_crossover_falls_back_to_recipient_clone(grammar):
    parent0 = _sum_tree(grammar)
    parent1 = _sum_tree(grammar)
    # Nothing fits a zero budget
    crossover = SubtreeCrossover(max_length=0, max_depth=0)

    child = crossover.crossover(MersenneTwister(1), parent0, parent1)

    assert str(child) == str(parent0)
    assert child is not parent0
    assert child.root is not parent0.root


def test_crossover_shares_no_nodes_with_donor(grammar):
    creator = GrowTreeCreator()
    rng = MersenneTwister(4)
    parent0 = creator.create_tree(rng, grammar, 15, 5)
    parent1 = creator.create_tree(rng, grammar, 15, 5)
    donor_nodes = {id(n) for n in parent1.iterate_nodes_prefix()}

    child = SubtreeCrossover(30, 10).crossover(rng, parent0, parent1)

    assert not donor_nodes & {id(n) for n in child.iterate_nodes_prefix()}


def test_one_point_crossover_respects_budgets(grammar):
    creator = GrowTreeCreator()
    crossover = OnePointCrossover(max_length=20, max_depth=6)

    for seed in range(40):
        rng = MersenneTwister(seed)
        parent0 = creator.create_tree(rng, grammar, 20, 6)
        parent1 = creator.create_tree(rng, grammar, 20, 6)
        before = (str(parent0), str(parent1))

        child = crossover.crossover(rng, parent0, parent1)

        assert child.length <= 20
        assert child.depth <= 6
        child.validate()
        assert (str(parent0), str(parent1)) == before
        assert child.root is not parent0.root


def test_one_point_crossover_swaps_at_matching_level(grammar):
    parent0 = _sum_tree(grammar)
    parent1 = SymbolicExpressionTree(TreeNode(grammar.get_symbol('Multiplication')))
    parent1.root.add_subtree(ConstantTreeNode(grammar.get_symbol('Constant'), 2.0))
    parent1.root.add_subtree(ConstantTreeNode(grammar.get_symbol('Constant'), 2.0))

    child = OnePointCrossover(max_length=20, max_depth=6).crossover(MersenneTwister(2), parent0, parent1)

    # Only level 1 is shared, so exactly one input becomes the constant
    assert str(child) in {'Addition(2, x1)', 'Addition(x0, 2)'}


def test_one_point_crossover_with_single_node_parent_returns_clone(grammar):
    parent0 = SymbolicExpressionTree(VariableTreeNode(grammar.get_symbol('x0')))

    child = OnePointCrossover().crossover(MersenneTwister(1), parent0, _sum_tree(grammar))

    assert str(child) == 'x0'
    assert child.root is not parent0.root


def test_uniform_crossover_respects_budgets(grammar):
    creator = GrowTreeCreator()
    crossover = UniformCrossover(max_length=20, max_depth=6, swap_probability=0.5)

    for seed in range(40):
        rng = MersenneTwister(seed)
        parent0 = creator.create_tree(rng, grammar, 20, 6)
        parent1 = creator.create_tree(rng, grammar, 20, 6)
        before = (str(parent0), str(parent1))

        child = crossover.crossover(rng, parent0, parent1)

        assert child.length <= 20
        assert child.depth <= 6
        child.validate()
        assert (str(parent0), str(parent1)) == before


def test_uniform_crossover_swap_probability_extremes(grammar):
    parent0 = _sum_tree(grammar)
    parent1 = SymbolicExpressionTree(ConstantTreeNode(grammar.get_symbol('Constant'), 4.0))

    unchanged = UniformCrossover(swap_probability=0.0).crossover(MersenneTwister(3), parent0, parent1)
    replaced = UniformCrossover(swap_probability=1.0).crossover(MersenneTwister(3), parent0, parent1)

    assert str(unchanged) == 'Addition(x0, x1)'
    # The root is visited last and swapped too
    assert str(replaced) == '4'


def test_uniform_crossover_clamps_swap_probability():
    assert UniformCrossover(swap_probability=3.0).swap_probability == 1.0
    assert UniformCrossover(swap_probability=-1.0).swap_probability == 0.0


def test_subtree_mutation_replaces_single_node_tree(grammar):
    leaf = VariableTreeNode(grammar.get_symbol('x0'))
    tree = SymbolicExpressionTree(leaf)

    mutated = SubtreeMutator(max_length=10, max_depth=4, grammar=grammar).mutate(
        MersenneTwister(3), tree)

    assert mutated.root is not leaf
    assert mutated.length <= 10
    assert mutated.depth <= 4
    assert str(tree) == 'x0'


def test_subtree_mutation_respects_budgets(grammar):
    creator = GrowTreeCreator()
    mutator = SubtreeMutator(max_length=25, max_depth=7, grammar=grammar)

    for seed in range(40):
        rng = MersenneTwister(seed)
        tree = creator.create_tree(rng, grammar, 25, 7)
        mutated = mutator.mutate(rng, tree)
        assert mutated.length <= 25
        assert mutated.depth <= 7
        mutated.validate()


def test_mutator_needs_grammar():
    with pytest.raises(ConfigurationError):
        SubtreeMutator().mutate(MersenneTwister(1), SymbolicExpressionTree(
            VariableTreeNode(Grammar.for_regression(['x0'], basic_math_symbols()).get_symbol('x0'))))


def test_change_node_type_keeps_children(grammar):
    tree = _sum_tree(grammar)

    mutated = ChangeNodeTypeMutator(grammar=grammar).mutate(MersenneTwister(5), tree)

    assert mutated.root.symbol.name in {'Subtraction', 'Multiplication', 'ProtectedDivision'}
    assert [c.symbol.name for c in mutated.root.subtrees] == ['x0', 'x1']
    assert str(tree) == 'Addition(x0, x1)'


def test_change_node_type_without_alternative_returns_clone():
    grammar = Grammar.for_regression(['x0', 'x1'], basic_math_symbols()[:1])
    tree = _sum_tree(grammar)

    mutated = ChangeNodeTypeMutator(grammar=grammar).mutate(MersenneTwister(5), tree)

    assert str(mutated) == str(tree)
    assert mutated.root is not tree.root


def test_change_terminal_shakes_constant_within_range(grammar):
    for seed in range(20):
        tree = SymbolicExpressionTree(ConstantTreeNode(grammar.get_symbol('Constant'), 1.0))

        mutated = ChangeTerminalMutator(constant_range=0.5, grammar=grammar).mutate(
            MersenneTwister(seed), tree)

        assert 0.5 <= mutated.root.value <= 1.5
        assert tree.root.value == 1.0


def test_change_terminal_switches_variable(grammar):
    tree = SymbolicExpressionTree(VariableTreeNode(grammar.get_symbol('x0')))

    mutated = ChangeTerminalMutator(grammar=grammar).mutate(MersenneTwister(9), tree)

    assert str(mutated) == 'x1'
    assert str(tree) == 'x0'


def test_combined_mutator_hands_grammar_to_members(grammar):
    members = [SubtreeMutator(), ChangeNodeTypeMutator(), ChangeTerminalMutator()]
    combined = CombinedMutator(members)

    combined.grammar = grammar

    assert all(m.grammar is grammar for m in members)
    for seed in range(10):
        combined.mutate(MersenneTwister(seed), _sum_tree(grammar)).validate()


def _population(grammar, fitnesses):
    return [Individual(_sum_tree(grammar), f) for f in fitnesses]


def test_tournament_returns_a_population_member(grammar):
    population = _population(grammar, [1.0, 2.0, 3.0, 4.0])
    selector = TournamentSelector(tournament_size=2)
    rng = MersenneTwister(12)

    for _ in range(50):
        winner = selector.select(rng, population)
        assert any(winner is member for member in population)


def test_tournament_ties_go_to_first_drawn(grammar):
    population = _population(grammar, [5.0, 5.0, 5.0, 5.0])
    first_index = MersenneTwister(21).next_int(len(population))

    winner = TournamentSelector(tournament_size=3).select(MersenneTwister(21), population)

    assert winner is population[first_index]


def test_tournament_never_prefers_unscored_or_nan(grammar):
    population = _population(grammar, [float('nan'), None, 0.5])
    selector = TournamentSelector(tournament_size=40)

    for seed in range(10):
        assert selector.select(MersenneTwister(seed), population) is population[2]


def test_tournament_uses_custom_fitness(grammar):
    population = _population(grammar, [1.0, 2.0])
    selector = TournamentSelector(tournament_size=40)

    winner = selector.select(MersenneTwister(0), population, fitness=lambda ind: -ind.fitness)

    assert winner is population[0]


def test_tournament_rejects_empty_population():
    with pytest.raises(ValueError):
        TournamentSelector().select(MersenneTwister(0), [])


def test_node_insertion_grows_within_budgets(grammar):
    creator = GrowTreeCreator()
    mutator = NodeInsertionMutator(max_length=25, max_depth=7, grammar=grammar)

    for seed in range(40):
        rng = MersenneTwister(seed)
        tree = creator.create_tree(rng, grammar, 15, 5)
        before = str(tree)

        mutated = mutator.mutate(rng, tree)

        assert mutated.length <= 25
        assert mutated.depth <= 7
        mutated.validate()
        assert str(tree) == before
        assert mutated.length > tree.length


def test_node_insertion_wraps_a_leaf(grammar):
    tree = SymbolicExpressionTree(VariableTreeNode(grammar.get_symbol('x0')))

    mutated = NodeInsertionMutator(max_length=10, max_depth=4, grammar=grammar).mutate(
        MersenneTwister(7), tree)

    assert mutated.root.symbol.name in {'Addition', 'Subtraction', 'Multiplication',
                                        'ProtectedDivision'}
    assert str(mutated.root.get_subtree(0)) == 'x0'
    assert mutated.root.get_subtree(0).parent is mutated.root


def test_node_insertion_without_room_returns_clone(grammar):
    tree = _sum_tree(grammar)

    mutated = NodeInsertionMutator(max_length=3, max_depth=10, grammar=grammar).mutate(
        MersenneTwister(1), tree)

    assert str(mutated) == str(tree)
    assert mutated.root is not tree.root


def test_node_insertion_needs_grammar(grammar):
    with pytest.raises(ConfigurationError):
        NodeInsertionMutator().mutate(MersenneTwister(1), _sum_tree(grammar))


def test_node_removal_drops_a_variadic_child():
    grammar = Grammar.for_regression(['x0', 'x1'], statistics_symbols())
    root = TreeNode(grammar.get_symbol('Mean'))
    for name in ('x0', 'x1', 'x0'):
        root.add_subtree(VariableTreeNode(grammar.get_symbol(name)))
    tree = SymbolicExpressionTree(root)

    mutated = NodeRemovalMutator().mutate(MersenneTwister(4), tree)

    assert mutated.root.symbol.name == 'Mean'
    assert mutated.root.subtree_count == 2
    assert tree.root.subtree_count == 3


def test_node_removal_hoists_a_child_of_fixed_arity_nodes(grammar):
    tree = _sum_tree(grammar)

    mutated = NodeRemovalMutator().mutate(MersenneTwister(4), tree)

    assert str(mutated) in {'x0', 'x1'}
    assert mutated.root.parent is None
    assert str(tree) == 'Addition(x0, x1)'


def test_node_removal_shrinks_trees_and_keeps_arity():
    grammar = Grammar.for_regression(['x0', 'x1'], basic_math_symbols() + statistics_symbols()
                                     + bounding_symbols())
    creator = GrowTreeCreator()
    mutator = NodeRemovalMutator()

    for seed in range(40):
        rng = MersenneTwister(seed)
        tree = creator.create_tree(rng, grammar, 20, 6)

        mutated = mutator.mutate(rng, tree)

        mutated.validate()
        if tree.length > 1:
            assert mutated.length < tree.length
        else:
            assert str(mutated) == str(tree)
