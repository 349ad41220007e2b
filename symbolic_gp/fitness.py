"""
symbolic_gp/fitness.py - Regression and classification fitness over a dataset

All evaluators follow one convention: higher fitness is better. Regression
therefore reports the negated mean squared error.
"""
import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import numpy as np
from scipy.special import expit

from .compiler import InterpretedExpression, TreeCompiler
from .errors import DatasetShapeError, GPError
from .interpreter import ExpressionInterpreter
from .pools import DictionaryPool
from .tree import SymbolicExpressionTree

logger = logging.getLogger(__name__)

# Failures the lenient path turns into a 0.0 prediction
LENIENT_ERRORS = (GPError, ArithmeticError, ValueError, TypeError)

# Predictions are squashed through a sigmoid clipped to this range
SIGMOID_CLIP = 10.0


class FitnessEvaluator:
    """Column-wise prediction shared by every evaluator.

    A tree is evaluated over whole input columns at once. The columns of a
    chunk of rows are bound into a scratch dictionary rented from a
    ``DictionaryPool``; with ``enable_parallel_evaluation`` and at least
    ``parallel_threshold`` rows, chunks run on a thread pool sized to the
    machine. Strict evaluation propagates the first failure. With
    ``lenient=True`` a failing chunk is retried row by row and failing or
    non-finite rows predict ``0.0`` instead.
    """

    def __init__(self, inputs, targets, variable_names: Sequence[str],
                 use_compilation: bool = True,
                 enable_parallel_evaluation: bool = True,
                 parallel_threshold: int = 100,
                 lenient: bool = False,
                 pool: Optional[DictionaryPool] = None):
        inputs = np.asarray(inputs, dtype=float)
        targets = np.asarray(targets, dtype=float)
        variable_names = list(variable_names)

        if inputs.ndim == 1:
            inputs = inputs.reshape(-1, 1)
        if inputs.ndim != 2:
            raise DatasetShapeError(f"Inputs must be a 2-D array, got shape {inputs.shape}")
        if targets.ndim != 1:
            raise DatasetShapeError(f"Targets must be a 1-D array, got shape {targets.shape}")
        if inputs.shape[0] != targets.shape[0]:
            raise DatasetShapeError(
                f"Inputs have {inputs.shape[0]} rows but targets have {targets.shape[0]}")
        if inputs.shape[0] == 0:
            raise DatasetShapeError("Dataset must contain at least one row")
        if inputs.shape[1] != len(variable_names):
            raise DatasetShapeError(
                f"Inputs have {inputs.shape[1]} columns but {len(variable_names)} variable names were given")

        self.inputs = inputs
        self.targets = targets
        self.variable_names = variable_names
        self.use_compilation = use_compilation
        self.enable_parallel_evaluation = enable_parallel_evaluation
        self.parallel_threshold = max(1, int(parallel_threshold))
        self.lenient = lenient
        self.pool = pool or DictionaryPool()

        self._columns = [np.ascontiguousarray(inputs[:, j]) for j in range(inputs.shape[1])]
        self._rows: List[List[float]] = inputs.tolist()
        self._interpreter = ExpressionInterpreter()
        self._compiler = TreeCompiler()

    @classmethod
    def from_dataset(cls, dataset, **options) -> 'FitnessEvaluator':
        return cls(dataset.inputs, dataset.targets, dataset.variable_names, **options)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def evaluate(self, tree: SymbolicExpressionTree) -> float:
        raise NotImplementedError

    # Prediction

    def predict(self, tree: SymbolicExpressionTree) -> np.ndarray:
        """Model output for every row, in row order"""
        expression = self._expression(tree)
        n = self.row_count

        if not self.enable_parallel_evaluation or n < self.parallel_threshold:
            return self._predict_chunk(expression, 0, n)

        workers = os.cpu_count() or 1
        chunk_size = max(1, math.ceil(n / workers))
        logger.debug("Evaluating %d rows in chunks of %d on %d workers", n, chunk_size, workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._predict_chunk, expression, start,
                                       min(start + chunk_size, n))
                       for start in range(0, n, chunk_size)]
            chunks = [future.result() for future in futures]
        return np.concatenate(chunks)

    def _expression(self, tree: SymbolicExpressionTree):
        if self.use_compilation:
            return self._compiler.compile(tree)
        return InterpretedExpression(tree, self._interpreter)

    def _predict_chunk(self, expression, start: int, stop: int) -> np.ndarray:
        if self.lenient:
            return self._predict_lenient(expression, start, stop)
        return self._predict_strict(expression, start, stop)

    def _predict_strict(self, expression, start: int, stop: int) -> np.ndarray:
        with self.pool.rented() as columns:
            for name, column in zip(self.variable_names, self._columns):
                columns[name] = column[start:stop]
            return expression.evaluate_columns(columns, stop - start)

    def _predict_lenient(self, expression, start: int, stop: int) -> np.ndarray:
        """Diagnostic path: failures and non-finite values become 0.0"""
        try:
            predictions = self._predict_strict(expression, start, stop)
        except LENIENT_ERRORS as e:
            logger.debug("Rows %d-%d failed together (%s), retrying one by one", start, stop, e)
            predictions = self._predict_rows_lenient(expression, start, stop)
        finite = np.isfinite(predictions)
        if not finite.all():
            logger.debug("%d non-finite predictions replaced by 0.0", int((~finite).sum()))
        return np.where(finite, predictions, 0.0)

    def _predict_rows_lenient(self, expression, start: int, stop: int) -> np.ndarray:
        predictions = np.empty(stop - start, dtype=float)
        with self.pool.rented() as variables:
            for i in range(start, stop):
                for name, value in zip(self.variable_names, self._rows[i]):
                    variables[name] = value
                try:
                    predictions[i - start] = expression(variables)
                except LENIENT_ERRORS as e:
                    logger.debug("Row %d evaluation failed, using 0.0: %s", i, e)
                    predictions[i - start] = 0.0
        return predictions


class RegressionFitnessEvaluator(FitnessEvaluator):
    """Fitness is the negated mean squared error"""

    def mean_squared_error(self, tree: SymbolicExpressionTree) -> float:
        predictions = self.predict(tree)
        with np.errstate(over='ignore', invalid='ignore'):
            return float(np.mean((predictions - self.targets) ** 2))

    def evaluate(self, tree: SymbolicExpressionTree) -> float:
        mse = self.mean_squared_error(tree)
        if not math.isfinite(mse):
            return float('-inf')
        return -mse


class ClassificationFitnessEvaluator(FitnessEvaluator):
    """Accuracy of thresholded predictions against 0/1 labels"""

    threshold = 0.5

    def classify(self, tree: SymbolicExpressionTree) -> np.ndarray:
        return (self.predict(tree) >= self.threshold).astype(float)

    def evaluate(self, tree: SymbolicExpressionTree) -> float:
        return float(np.mean(self.classify(tree) == self.targets))


class SmoothClassificationFitnessEvaluator(FitnessEvaluator):
    """Mean sigmoid agreement with the labels, minus a size penalty.

    Unlike plain accuracy this rewards predictions moving toward the right
    side of the boundary, which gives selection a gradient to follow.
    """

    def __init__(self, inputs, targets, variable_names: Sequence[str],
                 parsimony_pressure: float = 0.001, **options):
        super().__init__(inputs, targets, variable_names, **options)
        self.parsimony_pressure = parsimony_pressure

    def evaluate(self, tree: SymbolicExpressionTree) -> float:
        predictions = self.predict(tree)
        if not np.all(np.isfinite(predictions)):
            return float('-inf')
        probabilities = expit(np.clip(predictions, -SIGMOID_CLIP, SIGMOID_CLIP))
        agreement = np.where(self.targets >= 0.5, probabilities, 1.0 - probabilities)
        return float(np.mean(agreement)) - self.parsimony_pressure * tree.length


EVALUATORS = {
    'regression': RegressionFitnessEvaluator,
    'classification': ClassificationFitnessEvaluator,
    'smooth_classification': SmoothClassificationFitnessEvaluator,
}
