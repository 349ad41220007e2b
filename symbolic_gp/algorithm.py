"""
symbolic_gp/algorithm.py - The generational genetic programming loop
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .cloner import Cloner
from .errors import ConfigurationError
from .population import Individual, Population, fitness_key
from .tree import SymbolicExpressionTree

logger = logging.getLogger(__name__)


class AlgorithmState(Enum):
    UNCONFIGURED = 'unconfigured'
    INITIALIZED = 'initialized'
    RUNNING = 'running'
    CONVERGED = 'converged'
    STOPPED = 'stopped'
    MAX_GENERATIONS_REACHED = 'max_generations_reached'


@dataclass
class GenerationEvent:
    """Snapshot passed to generation callbacks once a generation is complete"""
    generation: int
    best_fitness: float
    average_fitness: float
    best_tree: SymbolicExpressionTree
    population: Optional[Population] = None


GenerationCallback = Callable[[GenerationEvent], None]


class GeneticProgrammingAlgorithm:
    """Generational GP driver.

    Components are plain attributes and can be set after construction;
    ``run()`` checks that all of them are present before doing any work.
    Each generation selects two parents per offspring, applies crossover with
    ``crossover_probability`` (otherwise clones the first parent), mutates
    with ``mutation_probability`` and scores the offspring. The new
    generation replaces the old one wholesale, after ``elite_count`` of the
    best individuals have been carried over.

    Stop requests, through ``stop()`` or an injected ``stop_signal`` with an
    ``is_set()`` method, are honored between generations only.
    """

    def __init__(self, grammar=None, tree_creator=None, crossover=None, mutator=None,
                 selector=None, random=None, fitness_evaluator=None,
                 population_size: int = 100, max_generations: int = 50,
                 max_tree_length: int = 25, max_tree_depth: int = 10,
                 crossover_probability: float = 0.9, mutation_probability: float = 0.1,
                 elite_count: int = 0, target_fitness: Optional[float] = None,
                 parallel_population_evaluation: bool = False,
                 stop_signal=None):
        self.grammar = grammar
        self.tree_creator = tree_creator
        self.crossover = crossover
        self.mutator = mutator
        self.selector = selector
        self.random = random
        self.fitness_evaluator = fitness_evaluator

        self.population_size = population_size
        self.max_generations = max_generations
        self.max_tree_length = max_tree_length
        self.max_tree_depth = max_tree_depth
        self.crossover_probability = crossover_probability
        self.mutation_probability = mutation_probability
        self.elite_count = elite_count
        self.target_fitness = target_fitness
        self.parallel_population_evaluation = parallel_population_evaluation
        self.stop_signal = stop_signal

        self.state = AlgorithmState.UNCONFIGURED
        self.generation = 0
        self.population = Population()
        self.best_individual: Optional[Individual] = None
        self.best_fitness_history: List[float] = []
        self._callbacks: List[GenerationCallback] = []
        self._stop_event = threading.Event()

    # Notification and cancellation

    def add_generation_callback(self, callback: GenerationCallback) -> None:
        self._callbacks.append(callback)

    def remove_generation_callback(self, callback: GenerationCallback) -> None:
        self._callbacks.remove(callback)

    def stop(self) -> None:
        """Ask the run to halt at the next generation boundary.

        A request made before ``run()`` stops it right after initialization;
        the request is consumed when the run ends.
        """
        self._stop_event.set()

    def _stop_requested(self) -> bool:
        if self._stop_event.is_set():
            return True
        return self.stop_signal is not None and self.stop_signal.is_set()

    # Results

    @property
    def best_fitness(self) -> Optional[float]:
        return self.best_individual.fitness if self.best_individual is not None else None

    @property
    def best_tree(self) -> Optional[SymbolicExpressionTree]:
        return self.best_individual.tree if self.best_individual is not None else None

    # Lifecycle

    def validate(self) -> None:
        required = [
            ('grammar', self.grammar),
            ('tree creator', self.tree_creator),
            ('crossover', self.crossover),
            ('mutator', self.mutator),
            ('selector', self.selector),
            ('random source', self.random),
            ('fitness evaluator', self.fitness_evaluator),
        ]
        for name, component in required:
            if component is None:
                raise ConfigurationError(f"The {name} must be set before running")

        if self.population_size < 1:
            raise ConfigurationError("Population size must be at least 1")
        if self.max_generations < 0:
            raise ConfigurationError("Maximum generations cannot be negative")
        if self.max_tree_length < 1 or self.max_tree_depth < 1:
            raise ConfigurationError("Tree length and depth limits must be at least 1")
        for name, p in (('Crossover', self.crossover_probability),
                        ('Mutation', self.mutation_probability)):
            if not 0.0 <= p <= 1.0:
                raise ConfigurationError(f"{name} probability must be within [0, 1], got {p}")
        if not 0 <= self.elite_count <= self.population_size:
            raise ConfigurationError(
                f"Elite count must be within [0, {self.population_size}], got {self.elite_count}")

    def initialize(self) -> None:
        """Create and score generation 0"""
        self.validate()
        self.crossover.grammar = self.grammar
        self.mutator.grammar = self.grammar

        self.generation = 0
        self.best_individual = None
        self.best_fitness_history = []

        trees = [self.tree_creator.create_tree(self.random, self.grammar,
                                               self.max_tree_length, self.max_tree_depth)
                 for _ in range(self.population_size)]
        self.population = Population([Individual(tree) for tree in trees])
        self._evaluate(self.population.individuals)
        self._update_best()
        self.state = AlgorithmState.INITIALIZED
        logger.info("Initialized population of %d, best fitness %.6g",
                    self.population_size, self.best_fitness)

    def run(self) -> Optional[Individual]:
        """Evolve until converged, stopped or out of generations; returns the best individual"""
        self.initialize()
        self.state = AlgorithmState.RUNNING

        while True:
            if self._target_reached():
                self.state = AlgorithmState.CONVERGED
                break
            if self._stop_requested():
                self.state = AlgorithmState.STOPPED
                break
            if self.generation >= self.max_generations:
                self.state = AlgorithmState.MAX_GENERATIONS_REACHED
                break
            self.step()

        self._stop_event.clear()
        logger.info("Run finished in state %s after %d generations, best fitness %.6g",
                    self.state.value, self.generation, self.best_fitness)
        return self.best_individual

    def step(self) -> None:
        """Breed, score and install one generation, then notify callbacks"""
        elites = [ind.copy() for ind in self.population.get_best(self.elite_count)]

        offspring: List[Individual] = []
        while len(elites) + len(offspring) < self.population_size:
            offspring.append(Individual(self._breed()))

        self._evaluate(offspring)
        self.population = Population(elites + offspring)
        self._update_best()
        self.generation += 1

        event = GenerationEvent(
            generation=self.generation,
            best_fitness=self.best_fitness,
            average_fitness=self.population.average_fitness(),
            best_tree=self.best_tree,
            population=self.population,
        )
        logger.debug("Generation %d: best %.6g, average %.6g",
                     event.generation, event.best_fitness, event.average_fitness)
        for callback in list(self._callbacks):
            callback(event)

    def _breed(self) -> SymbolicExpressionTree:
        parent0 = self.selector.select(self.random, self.population.individuals)
        parent1 = self.selector.select(self.random, self.population.individuals)

        if self.random.next_double() < self.crossover_probability:
            child = self.crossover.crossover(self.random, parent0.tree, parent1.tree)
        else:
            child = Cloner().clone(parent0.tree)

        if self.random.next_double() < self.mutation_probability:
            child = self.mutator.mutate(self.random, child)
        return child

    def _evaluate(self, individuals: List[Individual]) -> None:
        if self.parallel_population_evaluation and len(individuals) > 1:
            with ThreadPoolExecutor() as executor:
                scores = list(executor.map(self.fitness_evaluator.evaluate,
                                           [ind.tree for ind in individuals]))
            for individual, score in zip(individuals, scores):
                individual.fitness = score
        else:
            for individual in individuals:
                individual.fitness = self.fitness_evaluator.evaluate(individual.tree)

    def _update_best(self) -> None:
        candidates = self.population.get_best(1)
        if candidates:
            candidate = candidates[0]
            if (self.best_individual is None
                    or fitness_key(candidate.fitness) > fitness_key(self.best_individual.fitness)):
                self.best_individual = candidate.copy()
        self.best_fitness_history.append(self.best_fitness)

    def _target_reached(self) -> bool:
        if self.target_fitness is None or self.best_individual is None:
            return False
        return fitness_key(self.best_individual.fitness) >= self.target_fitness
