import pytest

from symbolic_gp.creators import FullTreeCreator, GrowTreeCreator, select_symbol_by_frequency
from symbolic_gp.errors import ConfigurationError
from symbolic_gp.grammar import Grammar
from symbolic_gp.interpreter import ExpressionInterpreter
from symbolic_gp.random_source import MersenneTwister
from symbolic_gp.symbols import (Symbol, basic_math_symbols, constant_symbol,
                                 statistics_symbols, variable_symbol)


def _grammar(functions=None, variables=('x0', 'x1')):
    return Grammar.for_regression(list(variables), functions or basic_math_symbols())


def test_grammar_rejects_duplicate_names():
    grammar = _grammar()
    with pytest.raises(ValueError):
        grammar.add_symbol(variable_symbol('x0'))


def test_regression_grammar_contents():
    grammar = _grammar()

    assert grammar.name == 'SymbolicRegressionGrammar'
    assert 'x0' in grammar and 'x1' in grammar and 'Constant' in grammar
    assert [s.name for s in grammar.variable_symbols()] == ['x0', 'x1']
    assert {s.name for s in grammar.function_symbols()} == {
        'Addition', 'Subtraction', 'Multiplication', 'ProtectedDivision'}
    assert grammar.get_symbol('Tangent') is None


def test_removed_symbol_is_gone_from_the_grammar():
    grammar = _grammar()

    removed = grammar.remove_symbol('Subtraction')

    assert removed.name == 'Subtraction'
    assert 'Subtraction' not in grammar
    assert grammar.remove_symbol('Subtraction') is None
    for seed in range(10):
        tree = GrowTreeCreator().create_tree(MersenneTwister(seed), grammar, 20, 6)
        assert 'Subtraction' not in {n.symbol.name for n in tree.iterate_nodes_prefix()}


def test_regression_grammar_requires_variables_and_functions():
    with pytest.raises(ValueError):
        Grammar.for_regression([], basic_math_symbols())
    with pytest.raises(ValueError):
        Grammar.for_regression(['x0'], [])


def test_disabled_symbol_leaves_existing_trees_usable():
    grammar = _grammar()
    tree = GrowTreeCreator().create_tree(MersenneTwister(3), grammar, 15, 5)

    grammar.enable_only(['Addition', 'x0'])

    assert [s.name for s in grammar.enabled_symbols()] == ['Addition', 'x0']
    tree.validate()
    ExpressionInterpreter().evaluate(tree, {'x0': 1.0, 'x1': 2.0})


def test_restricted_grammar_only_creates_enabled_symbols():
    grammar = _grammar()
    grammar.enable_only(['Multiplication', 'x1'])

    for seed in range(10):
        tree = GrowTreeCreator().create_tree(MersenneTwister(seed), grammar, 20, 6)
        assert {n.symbol.name for n in tree.iterate_nodes_prefix()} <= {'Multiplication', 'x1'}


def test_enable_only_rejects_unknown_names():
    with pytest.raises(KeyError):
        _grammar().enable_only(['Tangent'])


@pytest.mark.parametrize('creator', [GrowTreeCreator(), FullTreeCreator()])
def test_created_trees_respect_budgets(creator):
    grammar = _grammar()
    for seed in range(30):
        for max_length, max_depth in [(1, 5), (4, 3), (15, 5), (40, 8)]:
            tree = creator.create_tree(MersenneTwister(seed), grammar, max_length, max_depth)
            assert 1 <= tree.length <= max_length
            assert 1 <= tree.depth <= max_depth
            tree.validate()


def test_full_creator_fills_every_branch_to_depth():
    grammar = _grammar()
    tree = FullTreeCreator().create_tree(MersenneTwister(11), grammar, 100, 4)

    leaves = [n for n in tree.iterate_nodes_postfix() if n.is_leaf]
    assert all(leaf.get_level() == 3 for leaf in leaves)
    assert tree.length == 15


def test_variadic_symbols_are_capped_at_creation():
    grammar = _grammar(statistics_symbols())
    for seed in range(20):
        tree = GrowTreeCreator().create_tree(MersenneTwister(seed), grammar, 60, 4)
        assert all(n.subtree_count <= 5 for n in tree.iterate_nodes_prefix())
        tree.validate()


def test_creation_without_terminals_fails():
    grammar = Grammar('FunctionsOnly', basic_math_symbols())

    with pytest.raises(ConfigurationError):
        GrowTreeCreator().create_tree(MersenneTwister(1), grammar, 10, 4)


def test_creation_with_all_terminals_disabled_fails():
    grammar = _grammar()
    grammar.set_enabled('x0', False)
    grammar.set_enabled('x1', False)
    grammar.set_enabled('Constant', False)

    with pytest.raises(ConfigurationError):
        FullTreeCreator().create_tree(MersenneTwister(1), grammar, 10, 4)


def test_same_seed_creates_same_tree():
    grammar = _grammar()
    first = GrowTreeCreator().create_tree(MersenneTwister(8), grammar, 25, 6)
    second = GrowTreeCreator().create_tree(MersenneTwister(8), grammar, 25, 6)

    assert str(first) == str(second)


def test_zero_frequency_symbol_is_never_chosen():
    never = Symbol('Never', 2, 2, operation=lambda args: 0.0, initial_frequency=0.0)
    always = constant_symbol()
    rng = MersenneTwister(2)

    for _ in range(200):
        assert select_symbol_by_frequency(rng, [never, always]) is always


def test_constants_start_inside_their_range():
    grammar = _grammar()
    grammar.enable_only(['Constant'])

    for seed in range(20):
        tree = GrowTreeCreator().create_tree(MersenneTwister(seed), grammar, 1, 1)
        assert -10.0 <= tree.root.value <= 10.0
