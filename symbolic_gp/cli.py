"""
symbolic_gp/cli.py - Command-line interface
"""
import dataclasses
import logging
import os
import sys
import time

import click

from .archive import EvolutionArchive
from .config import (MUTATION_TYPES, SYMBOL_TOGGLES, ExperimentConfiguration, build_algorithm,
                     build_evaluator, build_grammar)
from .creators import CREATORS
from .dataset import Dataset
from .errors import GPError
from .operators import CROSSOVERS
from .random_source import MersenneTwister
from .tree import SymbolicExpressionTree

# CLI option name -> configuration field
OVERRIDES = {
    'generations': 'max_generations',
    'population': 'population_size',
    'seed': 'random_seed',
    'max_depth': 'max_tree_depth',
    'max_length': 'max_tree_length',
    'crossover_rate': 'crossover_probability',
    'mutation_rate': 'mutation_probability',
    'elite_size': 'elite_count',
    'problem_type': 'problem_type',
    'fitness_type': 'fitness_type',
    'creation_method': 'creation_method',
    'crossover_type': 'crossover_type',
    'mutation_type': 'mutation_type',
    'extended': 'use_extended_math',
    'advanced': 'use_advanced_math',
    'trigonometric': 'use_trigonometric',
    'comparison': 'use_comparison',
    'bounding': 'use_bounding',
    'ratio': 'use_ratio',
    'statistics': 'use_statistics',
    'constants': 'allow_constants',
    'target_fitness': 'target_fitness',
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s')


@click.group()
def cli():
    """Symbolic GP - evolve symbolic regression and classification models"""
    pass


@cli.command()
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False))
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='Experiment configuration JSON file')
@click.option('--generations', '-g', type=int, help='Number of generations to evolve')
@click.option('--population', '-p', type=int, help='Population size')
@click.option('--seed', type=int, help='Random seed')
@click.option('--max-depth', type=int, help='Maximum tree depth')
@click.option('--max-length', type=int, help='Maximum tree length')
@click.option('--crossover-rate', type=float, help='Crossover probability (0.0-1.0)')
@click.option('--mutation-rate', type=float, help='Mutation probability (0.0-1.0)')
@click.option('--elite-size', type=int, help='Number of elite individuals to preserve')
@click.option('--problem-type', type=click.Choice(['regression', 'classification']))
@click.option('--fitness-type', type=click.Choice(['standard', 'smooth']))
@click.option('--creation-method', type=click.Choice(sorted(CREATORS)))
@click.option('--crossover-type', type=click.Choice(sorted(CROSSOVERS)))
@click.option('--mutation-type', type=click.Choice(MUTATION_TYPES))
@click.option('--extended/--no-extended', default=None,
              help='Use abs, square, square root and safe division')
@click.option('--advanced/--no-advanced', default=None, help='Use sin, cos, exp and log')
@click.option('--trigonometric/--no-trigonometric', default=None,
              help='Use tan, the hyperbolic functions and sigmoid')
@click.option('--comparison/--no-comparison', default=None,
              help='Use greater-than, less-than and sign')
@click.option('--bounding/--no-bounding', default=None, help='Use clip and soft clip')
@click.option('--ratio/--no-ratio', default=None,
              help='Use percent change, min-max normalization and z-score')
@click.option('--statistics/--no-statistics', default=None, help='Use mean, variance and median')
@click.option('--constants/--no-constants', default=None, help='Allow numeric constants')
@click.option('--target-fitness', type=float, help='Stop once the best fitness reaches this')
@click.option('--test-fraction', default=0.0, help='Hold out this share of rows for testing')
@click.option('--out', '-o', default='out/', help='Output directory')
@click.option('--save-every', default=10, help='Save the best tree every N generations')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def evolve(dataset, config_file, test_fraction, out, save_every, verbose, **options):
    """Evolve an expression for the last column of DATASET from the others"""
    _setup_logging(verbose)
    try:
        config = (ExperimentConfiguration.from_json(filename=config_file)
                  if config_file else ExperimentConfiguration())
        overrides = {OVERRIDES[name]: value for name, value in options.items() if value is not None}
        config = dataclasses.replace(config, **overrides)
        config.validate()

        data = Dataset.from_csv(dataset)
        test_data = None
        if test_fraction > 0:
            data, test_data = data.split(1.0 - test_fraction, MersenneTwister(config.random_seed))

        os.makedirs(out, exist_ok=True)
        config.to_json(os.path.join(out, 'config.json'))

        click.echo(f"Starting evolution: {config.max_generations} generations, "
                   f"population {config.population_size}")
        click.echo(f"Dataset: {dataset} ({len(data)} rows, variables {', '.join(data.variable_names)})")

        algorithm = build_algorithm(config, data)
        archive = EvolutionArchive(os.path.join(out, 'archive'), save_every=save_every)
        algorithm.add_generation_callback(archive.on_generation)

        def report(event):
            if verbose or event.generation % 10 == 0 or event.generation == config.max_generations:
                click.echo(f"Gen {event.generation:3d}/{config.max_generations}: "
                           f"Best={event.best_fitness:.6g} Avg={event.average_fitness:.6g}")
        algorithm.add_generation_callback(report)

        start_time = time.time()
        best = algorithm.run()
        total_time = time.time() - start_time

        best.tree.to_json(os.path.join(out, 'best_tree.json'))
        archive.export_summary_report()

        click.echo(f"\nEvolution finished ({algorithm.state.value}) in {total_time:.1f}s")
        click.echo(f"Best fitness: {best.fitness:.6g}")
        click.echo(f"Best expression: {best.tree}")
        if test_data is not None:
            test_fitness = build_evaluator(config, test_data).evaluate(best.tree)
            click.echo(f"Test fitness: {test_fitness:.6g}")
        click.echo(f"Best tree saved to {os.path.join(out, 'best_tree.json')}")
    except (GPError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('tree_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('dataset', type=click.Path(exists=True, dir_okay=False))
@click.option('--problem-type', type=click.Choice(['regression', 'classification']),
              default='regression')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def evaluate(tree_file, dataset, problem_type, verbose):
    """Score a saved tree against DATASET"""
    _setup_logging(verbose)
    try:
        data = Dataset.from_csv(dataset)
        # Every symbol set, so any saved tree resolves
        config = ExperimentConfiguration(problem_type=problem_type, allow_constants=True,
                                         **{toggle: True for toggle in SYMBOL_TOGGLES})
        grammar = build_grammar(config, data.variable_names)
        tree = SymbolicExpressionTree.from_json(grammar, filename=tree_file)
        fitness = build_evaluator(config, data).evaluate(tree)
    except (GPError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Expression: {tree}")
    click.echo(f"Length: {tree.length}, Depth: {tree.depth}")
    click.echo(f"Fitness ({problem_type}): {fitness:.6g}")


if __name__ == '__main__':
    cli()
