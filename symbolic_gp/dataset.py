"""
symbolic_gp/dataset.py - Tabular input/target data for fitness evaluation
"""
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import DatasetShapeError

logger = logging.getLogger(__name__)


class Dataset:
    """Input matrix, target vector and the variable name of each input column"""

    def __init__(self, inputs, targets, variable_names: Optional[Sequence[str]] = None):
        inputs = np.asarray(inputs, dtype=float)
        targets = np.asarray(targets, dtype=float)
        if inputs.ndim == 1:
            inputs = inputs.reshape(-1, 1)
        if inputs.ndim != 2 or targets.ndim != 1:
            raise DatasetShapeError(
                f"Expected 2-D inputs and 1-D targets, got {inputs.shape} and {targets.shape}")
        if inputs.shape[0] != targets.shape[0]:
            raise DatasetShapeError(
                f"Inputs have {inputs.shape[0]} rows but targets have {targets.shape[0]}")

        if variable_names is None:
            variable_names = [f"x{i}" for i in range(inputs.shape[1])]
        variable_names = list(variable_names)
        if len(variable_names) != inputs.shape[1]:
            raise DatasetShapeError(
                f"{len(variable_names)} variable names given for {inputs.shape[1]} input columns")
        if len(set(variable_names)) != len(variable_names):
            raise DatasetShapeError(f"Variable names must be unique: {variable_names}")

        self.inputs = inputs
        self.targets = targets
        self.variable_names: List[str] = variable_names

    @classmethod
    def from_csv(cls, path: str, target_column: int = -1, delimiter: str = ',') -> 'Dataset':
        """Load a CSV file whose first line holds the column names"""
        with open(path, 'r') as f:
            header = [name.strip() for name in f.readline().strip().split(delimiter)]
        if len(header) < 2:
            raise DatasetShapeError(f"{path}: need at least one input column and one target column")

        data = np.atleast_2d(np.genfromtxt(path, delimiter=delimiter, skip_header=1, dtype=float))
        if data.shape[1] != len(header):
            raise DatasetShapeError(
                f"{path}: header has {len(header)} columns but rows have {data.shape[1]}")
        if np.isnan(data).any():
            raise DatasetShapeError(f"{path}: missing or non-numeric values")

        target_index = target_column % len(header)
        input_indices = [i for i in range(len(header)) if i != target_index]
        logger.info("Loaded %d rows from %s, target column '%s'",
                    data.shape[0], path, header[target_index])
        return cls(data[:, input_indices], data[:, target_index],
                   [header[i] for i in input_indices])

    def split(self, fraction: float, random) -> Tuple['Dataset', 'Dataset']:
        """Shuffle rows with the given random source and cut them into train/test sets"""
        if not 0.0 < fraction < 1.0:
            raise ValueError(f"Split fraction must be within (0, 1), got {fraction}")
        if len(self) < 2:
            raise ValueError("Need at least two rows to split")
        indices = list(range(len(self)))
        for i in range(len(indices) - 1, 0, -1):
            j = random.next_int(i + 1)
            indices[i], indices[j] = indices[j], indices[i]

        cut = min(max(1, int(round(len(indices) * fraction))), len(indices) - 1)
        train, test = indices[:cut], indices[cut:]
        return (Dataset(self.inputs[train], self.targets[train], self.variable_names),
                Dataset(self.inputs[test], self.targets[test], self.variable_names))

    def __len__(self):
        return self.targets.shape[0]

    def __repr__(self):
        return f"Dataset(rows={len(self)}, variables={self.variable_names})"
