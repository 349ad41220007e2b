"""
symbolic_gp - Tree-based genetic programming for symbolic regression and classification

Populations of expression trees built from a grammar of symbols are evolved
with crossover, mutation and tournament selection. Trees are scored over
whole numpy columns, either by a tree-walking interpreter or by compiling
them to Python code that calls numba-compiled primitives.
"""

__version__ = "0.1.0"
__author__ = "Symbolic GP Project"

from .errors import (
    GPError, ConfigurationError, ArityViolationError, MaximumArityExceededError,
    MinimumArityViolatedError, InvalidArityError, CloneUnsupportedError,
    EvaluationError, DatasetShapeError
)
from .random_source import MersenneTwister
from .cloner import Cloner, DeepCloneable
from .symbols import (
    Symbol, binary, unary, ternary, variadic, variable_symbol, constant_symbol,
    basic_math_symbols, extended_math_symbols, advanced_math_symbols, trigonometric_symbols,
    comparison_symbols, bounding_symbols, ratio_symbols, statistics_symbols, SYMBOL_SETS
)
from .tree import TreeNode, ConstantTreeNode, VariableTreeNode, SymbolicExpressionTree
from .grammar import Grammar
from .creators import GrowTreeCreator, FullTreeCreator
from .population import Individual, Population
from .operators import (
    SubtreeCrossover, OnePointCrossover, UniformCrossover, SubtreeMutator,
    ChangeNodeTypeMutator, ChangeTerminalMutator, NodeInsertionMutator, NodeRemovalMutator,
    CombinedMutator, TournamentSelector
)
from .interpreter import ExpressionInterpreter
from .compiler import TreeCompiler
from .pools import DictionaryPool
from .fitness import (
    FitnessEvaluator, RegressionFitnessEvaluator, ClassificationFitnessEvaluator,
    SmoothClassificationFitnessEvaluator
)
from .algorithm import GeneticProgrammingAlgorithm, AlgorithmState, GenerationEvent
from .dataset import Dataset
from .config import ExperimentConfiguration, build_grammar, build_evaluator, build_algorithm
from .archive import EvolutionArchive

__all__ = [
    'GPError', 'ConfigurationError', 'ArityViolationError', 'MaximumArityExceededError',
    'MinimumArityViolatedError', 'InvalidArityError', 'CloneUnsupportedError',
    'EvaluationError', 'DatasetShapeError',
    'MersenneTwister', 'Cloner', 'DeepCloneable',
    'Symbol', 'binary', 'unary', 'ternary', 'variadic', 'variable_symbol', 'constant_symbol',
    'basic_math_symbols', 'extended_math_symbols', 'advanced_math_symbols',
    'trigonometric_symbols', 'comparison_symbols', 'bounding_symbols', 'ratio_symbols',
    'statistics_symbols', 'SYMBOL_SETS',
    'TreeNode', 'ConstantTreeNode', 'VariableTreeNode', 'SymbolicExpressionTree',
    'Grammar', 'GrowTreeCreator', 'FullTreeCreator',
    'Individual', 'Population',
    'SubtreeCrossover', 'OnePointCrossover', 'UniformCrossover', 'SubtreeMutator',
    'ChangeNodeTypeMutator', 'ChangeTerminalMutator', 'NodeInsertionMutator',
    'NodeRemovalMutator', 'CombinedMutator', 'TournamentSelector',
    'ExpressionInterpreter', 'TreeCompiler', 'DictionaryPool',
    'FitnessEvaluator', 'RegressionFitnessEvaluator', 'ClassificationFitnessEvaluator',
    'SmoothClassificationFitnessEvaluator',
    'GeneticProgrammingAlgorithm', 'AlgorithmState', 'GenerationEvent',
    'Dataset', 'ExperimentConfiguration', 'build_grammar', 'build_evaluator', 'build_algorithm',
    'EvolutionArchive'
]
