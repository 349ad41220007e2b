"""
symbolic_gp/config.py - Experiment settings and the factories that wire a run
"""
import json
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional, Sequence

from .algorithm import GeneticProgrammingAlgorithm
from .creators import CREATORS
from .errors import ConfigurationError
from .fitness import (ClassificationFitnessEvaluator, FitnessEvaluator,
                      RegressionFitnessEvaluator, SmoothClassificationFitnessEvaluator)
from .grammar import Grammar
from .operators import (CROSSOVERS, MUTATORS, CombinedMutator, Mutator, TournamentSelector,
                        TreeOperator)
from .random_source import MersenneTwister
from .symbols import SYMBOL_SETS, Symbol

logger = logging.getLogger(__name__)

PROBLEM_TYPES = ('regression', 'classification')
FITNESS_TYPES = ('standard', 'smooth')
MUTATION_TYPES = tuple(MUTATORS) + ('combined',)

# Configuration toggle -> symbol set
SYMBOL_TOGGLES = {
    'use_basic_math': 'basic',
    'use_extended_math': 'extended',
    'use_advanced_math': 'advanced',
    'use_trigonometric': 'trigonometric',
    'use_comparison': 'comparison',
    'use_bounding': 'bounding',
    'use_ratio': 'ratio',
    'use_statistics': 'statistics',
}


@dataclass
class ExperimentConfiguration:
    """Everything needed to reproduce one run"""
    population_size: int = 50
    max_generations: int = 25
    random_seed: int = 42
    max_tree_depth: int = 12
    max_tree_length: int = 100
    crossover_probability: float = 0.9
    mutation_probability: float = 0.1
    tournament_size: int = 3
    elite_count: int = 1
    target_fitness: Optional[float] = None

    # Symbol toggles
    use_basic_math: bool = True
    use_extended_math: bool = False
    use_advanced_math: bool = False
    use_trigonometric: bool = False
    use_comparison: bool = False
    use_bounding: bool = False
    use_ratio: bool = False
    use_statistics: bool = False
    allow_constants: bool = True

    problem_type: str = 'regression'
    fitness_type: str = 'standard'
    parsimony_pressure: float = 0.001
    creation_method: str = 'grow'
    crossover_type: str = 'subtree'
    mutation_type: str = 'subtree'

    # Evaluation
    use_compilation: bool = True
    enable_parallel_evaluation: bool = True
    parallel_threshold: int = 100

    def validate(self) -> None:
        if self.population_size < 1:
            raise ConfigurationError("population_size must be at least 1")
        if self.max_generations < 0:
            raise ConfigurationError("max_generations cannot be negative")
        if self.max_tree_depth < 1 or self.max_tree_length < 1:
            raise ConfigurationError("max_tree_depth and max_tree_length must be at least 1")
        for name in ('crossover_probability', 'mutation_probability'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.tournament_size < 1:
            raise ConfigurationError("tournament_size must be at least 1")
        if not 0 <= self.elite_count <= self.population_size:
            raise ConfigurationError("elite_count must be within [0, population_size]")
        if self.parsimony_pressure < 0:
            raise ConfigurationError("parsimony_pressure cannot be negative")
        if self.parallel_threshold < 1:
            raise ConfigurationError("parallel_threshold must be at least 1")
        if not any(getattr(self, toggle) for toggle in SYMBOL_TOGGLES):
            raise ConfigurationError("At least one symbol set must be enabled")

        choices = [
            ('problem_type', PROBLEM_TYPES),
            ('fitness_type', FITNESS_TYPES),
            ('creation_method', tuple(CREATORS)),
            ('crossover_type', tuple(CROSSOVERS)),
            ('mutation_type', MUTATION_TYPES),
        ]
        for name, allowed in choices:
            if getattr(self, name) not in allowed:
                raise ConfigurationError(f"{name} must be one of {allowed}, got {getattr(self, name)!r}")
        if self.fitness_type == 'smooth' and self.problem_type != 'classification':
            raise ConfigurationError("Smooth fitness is only defined for classification")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExperimentConfiguration':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def to_json(self, filename: str = None) -> str:
        """Serialize to JSON string or file"""
        json_str = json.dumps(self.to_dict(), indent=2)
        if filename:
            with open(filename, 'w') as f:
                f.write(json_str)
        return json_str

    @classmethod
    def from_json(cls, json_data: str = None, filename: str = None) -> 'ExperimentConfiguration':
        """Deserialize from JSON string or file"""
        if filename:
            with open(filename, 'r') as f:
                json_data = f.read()
        return cls.from_dict(json.loads(json_data))


def build_grammar(config: ExperimentConfiguration, variable_names: Sequence[str]) -> Grammar:
    """Regression grammar over the enabled symbol sets"""
    functions: List[Symbol] = []
    for toggle, set_name in SYMBOL_TOGGLES.items():
        if getattr(config, toggle):
            functions.extend(SYMBOL_SETS[set_name]())
    if not functions:
        raise ConfigurationError("At least one symbol set must be enabled")
    return Grammar.for_regression(variable_names, functions, config.allow_constants)


def build_evaluator(config: ExperimentConfiguration, dataset) -> FitnessEvaluator:
    options = dict(
        use_compilation=config.use_compilation,
        enable_parallel_evaluation=config.enable_parallel_evaluation,
        parallel_threshold=config.parallel_threshold,
    )
    if config.problem_type == 'regression':
        return RegressionFitnessEvaluator.from_dataset(dataset, **options)
    if config.fitness_type == 'smooth':
        return SmoothClassificationFitnessEvaluator.from_dataset(
            dataset, parsimony_pressure=config.parsimony_pressure, **options)
    return ClassificationFitnessEvaluator.from_dataset(dataset, **options)


def build_crossover(config: ExperimentConfiguration) -> TreeOperator:
    return CROSSOVERS[config.crossover_type](config.max_tree_length, config.max_tree_depth)


def build_mutator(config: ExperimentConfiguration) -> Mutator:
    def make(kind: str) -> Mutator:
        if kind in ('subtree', 'node_insertion'):
            return MUTATORS[kind](config.max_tree_length, config.max_tree_depth,
                                  CREATORS[config.creation_method]())
        return MUTATORS[kind]()

    if config.mutation_type == 'combined':
        return CombinedMutator([make(kind) for kind in MUTATORS])
    return make(config.mutation_type)


def build_algorithm(config: ExperimentConfiguration, dataset,
                    grammar: Optional[Grammar] = None) -> GeneticProgrammingAlgorithm:
    """A fully wired, not yet initialized driver for the configuration"""
    config.validate()
    grammar = grammar or build_grammar(config, dataset.variable_names)
    logger.info("Building %s run: population %d, generations %d, seed %d",
                config.problem_type, config.population_size, config.max_generations,
                config.random_seed)

    return GeneticProgrammingAlgorithm(
        grammar=grammar,
        tree_creator=CREATORS[config.creation_method](),
        crossover=build_crossover(config),
        mutator=build_mutator(config),
        selector=TournamentSelector(config.tournament_size),
        random=MersenneTwister(config.random_seed),
        fitness_evaluator=build_evaluator(config, dataset),
        population_size=config.population_size,
        max_generations=config.max_generations,
        max_tree_length=config.max_tree_length,
        max_tree_depth=config.max_tree_depth,
        crossover_probability=config.crossover_probability,
        mutation_probability=config.mutation_probability,
        elite_count=config.elite_count,
        target_fitness=config.target_fitness,
    )
