"""
symbolic_gp/population.py - Individuals, populations and population statistics
"""
import math
from typing import Any, Dict, Iterator, List, Optional

import numpy as np

from .tree import SymbolicExpressionTree


def fitness_key(value: Optional[float]) -> float:
    """Sort key for fitness values; unscored and NaN lose every comparison"""
    if value is None or math.isnan(value):
        return float('-inf')
    return value


class Individual:
    """A candidate solution: one tree plus its fitness (higher is better)"""

    def __init__(self, tree: SymbolicExpressionTree, fitness: Optional[float] = None):
        self.tree = tree
        self.fitness = fitness

    def copy(self) -> 'Individual':
        """Independent copy with a cloned tree"""
        return Individual(self.tree.deep_copy(), self.fitness)

    def __repr__(self):
        return f"Individual(fitness={self.fitness}, tree={self.tree})"


class Population:
    """Ordered individuals of one generation.

    The order is stable so that selection replays identically for a given
    random sequence. A new generation replaces the list wholesale.
    """

    def __init__(self, individuals: Optional[List[Individual]] = None):
        self.individuals: List[Individual] = list(individuals or [])

    def __len__(self):
        return len(self.individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self.individuals)

    def __getitem__(self, index):
        return self.individuals[index]

    def fitnesses(self) -> List[float]:
        return [ind.fitness for ind in self.individuals if ind.fitness is not None]

    def get_best(self, n: int = 1) -> List[Individual]:
        """Get the best n individuals; unscored and NaN fitness sort last"""
        return sorted(self.individuals, key=lambda ind: fitness_key(ind.fitness), reverse=True)[:n]

    def average_fitness(self) -> float:
        finite = [f for f in self.fitnesses() if math.isfinite(f)]
        if not finite:
            return float('nan')
        return float(np.mean(finite))

    def get_stats(self) -> Dict[str, Any]:
        """Summary statistics over fitness, tree length and tree depth"""
        if not self.individuals:
            return {}

        fitnesses = [f for f in self.fitnesses() if math.isfinite(f)]
        lengths = [ind.tree.length for ind in self.individuals]
        depths = [ind.tree.depth for ind in self.individuals]

        def summarize(values):
            if not values:
                return {'min': None, 'max': None, 'mean': None, 'std': None}
            return {
                'min': float(np.min(values)),
                'max': float(np.max(values)),
                'mean': float(np.mean(values)),
                'std': float(np.std(values)),
            }

        return {
            'population_size': len(self.individuals),
            'fitness': summarize(fitnesses),
            'length': summarize(lengths),
            'depth': summarize(depths),
        }

    def diversity_stats(self) -> Dict[str, float]:
        """Share of structurally distinct trees"""
        if len(self.individuals) < 2:
            return {'structural_diversity': 0.0, 'unique_structures': len(self.individuals)}

        unique_structures = len({str(ind.tree) for ind in self.individuals})
        return {
            'structural_diversity': unique_structures / len(self.individuals),
            'unique_structures': unique_structures,
        }
