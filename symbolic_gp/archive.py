"""
symbolic_gp/archive.py - Run archive: generation logs, best trees and summary report
"""
import json
import logging
import math
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .algorithm import GenerationEvent
from .tree import SymbolicExpressionTree

logger = logging.getLogger(__name__)


def _json_number(value: Optional[float]) -> Optional[float]:
    # JSON has no infinities or NaN
    if value is None or not math.isfinite(value):
        return None
    return value


class EvolutionArchive:
    """Persist a run by subscribing ``on_generation`` to the driver"""

    def __init__(self, base_path: str, save_every: int = 10):
        self.base_path = base_path
        self.save_every = max(1, save_every)
        self.evolution_log: List[Dict[str, Any]] = []

        self.dirs = {
            'logs': os.path.join(base_path, 'logs'),
            'trees': os.path.join(base_path, 'trees'),
        }
        for dir_path in self.dirs.values():
            os.makedirs(dir_path, exist_ok=True)

    @property
    def log_file(self) -> str:
        return os.path.join(self.dirs['logs'], 'evolution_log.json')

    def on_generation(self, event: GenerationEvent) -> None:
        """Record one generation; the best tree is saved every ``save_every`` generations"""
        timestamp = time.time()
        tree_file = None
        if event.generation % self.save_every == 0 and event.best_tree is not None:
            tree_file = self.save_tree(event.best_tree, f"gen_{event.generation:04d}_best.json")

        generation_data = {
            'generation': event.generation,
            'timestamp': timestamp,
            'datetime': datetime.fromtimestamp(timestamp).isoformat(),
            'best_fitness': _json_number(event.best_fitness),
            'average_fitness': _json_number(event.average_fitness),
            'best_expression': str(event.best_tree),
            'best_length': event.best_tree.length if event.best_tree is not None else 0,
            'best_tree_file': tree_file,
        }
        if event.population is not None:
            generation_data['stats'] = event.population.get_stats()
            generation_data['population_diversity'] = event.population.diversity_stats()

        self.evolution_log.append(generation_data)
        with open(self.log_file, 'w') as f:
            json.dump(self.evolution_log, f, indent=2)

    def save_tree(self, tree: SymbolicExpressionTree, filename: str) -> str:
        tree.to_json(os.path.join(self.dirs['trees'], filename))
        return filename

    def load_tree(self, filename: str, grammar) -> SymbolicExpressionTree:
        if not os.path.isabs(filename):
            filename = os.path.join(self.dirs['trees'], filename)
        return SymbolicExpressionTree.from_json(grammar, filename=filename)

    def load_log(self) -> List[Dict[str, Any]]:
        with open(self.log_file, 'r') as f:
            self.evolution_log = json.load(f)
        return self.evolution_log

    def list_saved_trees(self) -> List[str]:
        return sorted(f for f in os.listdir(self.dirs['trees']) if f.endswith('.json'))

    def export_summary_report(self) -> str:
        """Generate and save a summary report of the evolution run"""
        if not self.evolution_log:
            return "No evolution data to summarize"

        def fmt(value):
            return f"{value:.6g}" if value is not None else "n/a"

        first_gen = self.evolution_log[0]
        last_gen = self.evolution_log[-1]

        report_lines = []
        report_lines.append("=" * 60)
        report_lines.append("EVOLUTION SUMMARY REPORT")
        report_lines.append("=" * 60)

        report_lines.append(f"Generations: {len(self.evolution_log)}")
        report_lines.append(f"Start time: {first_gen['datetime']}")
        report_lines.append(f"End time: {last_gen['datetime']}")
        duration = last_gen['timestamp'] - first_gen['timestamp']
        report_lines.append(f"Duration: {duration:.1f} seconds")
        population_size = first_gen.get('stats', {}).get('population_size')
        if population_size is not None:
            report_lines.append(f"Population size: {population_size}")

        report_lines.append("\n" + "-" * 40)
        report_lines.append("FITNESS EVOLUTION")
        report_lines.append("-" * 40)
        report_lines.append(f"Initial best fitness: {fmt(first_gen['best_fitness'])}")
        report_lines.append(f"Final best fitness: {fmt(last_gen['best_fitness'])}")
        report_lines.append(f"Initial avg fitness: {fmt(first_gen['average_fitness'])}")
        report_lines.append(f"Final avg fitness: {fmt(last_gen['average_fitness'])}")

        if 'stats' in last_gen:
            report_lines.append("\n" + "-" * 40)
            report_lines.append("COMPLEXITY EVOLUTION")
            report_lines.append("-" * 40)
            for label, key in (('length', 'length'), ('depth', 'depth')):
                initial = first_gen['stats'].get(key, {})
                final = last_gen['stats'].get(key, {})
                report_lines.append(f"Initial avg {label}: {fmt(initial.get('mean'))}")
                report_lines.append(f"Final avg {label}: {fmt(final.get('mean'))}")
            diversity = last_gen.get('population_diversity', {})
            report_lines.append(
                f"Final structural diversity: {diversity.get('structural_diversity', 0):.3f}")

        report_lines.append("\n" + "-" * 40)
        report_lines.append("BEST BY GENERATION")
        report_lines.append("-" * 40)
        sample_gens = self.evolution_log[::max(1, len(self.evolution_log) // 10)]
        for gen_data in sample_gens[-10:]:
            report_lines.append(f"Gen {gen_data['generation']:3d}: "
                                f"Best={fmt(gen_data['best_fitness'])}, "
                                f"Avg={fmt(gen_data['average_fitness'])}")

        report_lines.append("\n" + "-" * 40)
        report_lines.append("FINAL BEST EXPRESSION")
        report_lines.append("-" * 40)
        report_lines.append(last_gen['best_expression'])
        report_lines.append(f"Length: {last_gen['best_length']}")

        report_text = "\n".join(report_lines)
        report_file = os.path.join(self.base_path, 'summary.txt')
        with open(report_file, 'w') as f:
            f.write(report_text)
        logger.info("Summary report written to %s", report_file)
        return report_text
