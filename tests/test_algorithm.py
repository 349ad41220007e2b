import threading

import numpy as np
import pytest

from symbolic_gp.algorithm import AlgorithmState, GeneticProgrammingAlgorithm
from symbolic_gp.creators import GrowTreeCreator
from symbolic_gp.errors import ConfigurationError
from symbolic_gp.fitness import RegressionFitnessEvaluator
from symbolic_gp.grammar import Grammar
from symbolic_gp.operators import SubtreeCrossover, SubtreeMutator, TournamentSelector
from symbolic_gp.random_source import MersenneTwister
from symbolic_gp.symbols import basic_math_symbols


def _make_algorithm(seed=42, **options):
    xs = np.linspace(-2.0, 2.0, 15)
    grammar = Grammar.for_regression(['x0'], basic_math_symbols())
    settings = dict(population_size=20, max_generations=5, max_tree_length=20, max_tree_depth=6)
    settings.update(options)
    return GeneticProgrammingAlgorithm(
        grammar=grammar,
        tree_creator=GrowTreeCreator(),
        crossover=SubtreeCrossover(20, 6),
        mutator=SubtreeMutator(20, 6),
        selector=TournamentSelector(3),
        random=MersenneTwister(seed),
        fitness_evaluator=RegressionFitnessEvaluator(xs.reshape(-1, 1), xs ** 2 + xs, ['x0']),
        **settings)


def test_same_seed_gives_identical_runs():
    first = _make_algorithm(seed=7)
    second = _make_algorithm(seed=7)

    best_first = first.run()
    best_second = second.run()

    assert first.best_fitness_history == second.best_fitness_history
    assert str(best_first.tree) == str(best_second.tree)
    assert best_first.fitness == best_second.fitness


def test_parallel_population_evaluation_does_not_change_results():
    sequential = _make_algorithm(seed=3)
    parallel = _make_algorithm(seed=3, parallel_population_evaluation=True)

    sequential.run()
    parallel.run()

    assert sequential.best_fitness_history == parallel.best_fitness_history
    assert str(sequential.best_tree) == str(parallel.best_tree)


@pytest.mark.parametrize('component', [
    'grammar', 'tree_creator', 'crossover', 'mutator', 'selector', 'random', 'fitness_evaluator',
])
def test_missing_component_fails_before_any_work(component):
    algorithm = _make_algorithm()
    setattr(algorithm, component, None)

    with pytest.raises(ConfigurationError):
        algorithm.run()

    assert algorithm.state is AlgorithmState.UNCONFIGURED
    assert len(algorithm.population) == 0


def test_invalid_settings_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        _make_algorithm(crossover_probability=1.5).run()
    with pytest.raises(ConfigurationError):
        _make_algorithm(elite_count=21).run()
    with pytest.raises(ConfigurationError):
        _make_algorithm(population_size=0).run()


def test_run_reaches_max_generations_and_notifies_each_generation():
    algorithm = _make_algorithm(max_generations=4)
    events = []
    algorithm.add_generation_callback(events.append)

    algorithm.run()

    assert algorithm.state is AlgorithmState.MAX_GENERATIONS_REACHED
    assert algorithm.generation == 4
    assert [e.generation for e in events] == [1, 2, 3, 4]
    assert all(len(e.population) == 20 for e in events)
    assert events[-1].best_fitness == algorithm.best_fitness


def test_best_fitness_never_gets_worse():
    algorithm = _make_algorithm(max_generations=8)
    algorithm.run()

    history = algorithm.best_fitness_history
    assert len(history) == 9
    assert all(later >= earlier for earlier, later in zip(history, history[1:]))


def test_stop_requested_from_callback_halts_at_boundary():
    algorithm = _make_algorithm(max_generations=10)

    def stop_after_two(event):
        if event.generation == 2:
            algorithm.stop()

    algorithm.add_generation_callback(stop_after_two)
    algorithm.run()

    assert algorithm.state is AlgorithmState.STOPPED
    assert algorithm.generation == 2


def test_stop_before_run_halts_after_initialization():
    algorithm = _make_algorithm(max_generations=4)

    algorithm.stop()
    best = algorithm.run()

    assert algorithm.state is AlgorithmState.STOPPED
    assert algorithm.generation == 0
    assert best is not None

    # The request was used up; the next run goes the distance
    algorithm.run()
    assert algorithm.state is AlgorithmState.MAX_GENERATIONS_REACHED
    assert algorithm.generation == 4


def test_removed_callback_is_no_longer_notified():
    algorithm = _make_algorithm(max_generations=3)
    kept, dropped = [], []
    algorithm.add_generation_callback(kept.append)

    def record(event):
        dropped.append(event)

    algorithm.add_generation_callback(record)
    algorithm.remove_generation_callback(record)
    algorithm.run()

    assert len(kept) == 3
    assert dropped == []


def test_external_stop_signal_is_honored():
    signal = threading.Event()
    signal.set()
    algorithm = _make_algorithm(stop_signal=signal)

    algorithm.run()

    assert algorithm.state is AlgorithmState.STOPPED
    assert algorithm.generation == 0
    assert algorithm.best_individual is not None


def test_target_fitness_converges():
    algorithm = _make_algorithm(target_fitness=-1e6)

    algorithm.run()

    assert algorithm.state is AlgorithmState.CONVERGED
    assert algorithm.best_fitness >= -1e6


def test_elites_keep_population_best_from_getting_worse():
    algorithm = _make_algorithm(max_generations=6, elite_count=2, mutation_probability=0.5)
    population_best = []
    algorithm.add_generation_callback(
        lambda event: population_best.append(event.population.get_best(1)[0].fitness))

    algorithm.initialize()
    population_best.append(algorithm.population.get_best(1)[0].fitness)
    for _ in range(6):
        algorithm.step()

    assert all(later >= earlier for earlier, later in zip(population_best, population_best[1:]))


def test_best_individual_is_a_private_copy():
    algorithm = _make_algorithm()
    algorithm.run()

    population_trees = [ind.tree for ind in algorithm.population]
    assert all(algorithm.best_tree is not tree for tree in population_trees)
