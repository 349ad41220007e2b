"""
symbolic_gp/errors.py - Exception taxonomy shared by the engine
"""
from typing import Optional


class GPError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(GPError):
    """A required component or setting is missing or out of range"""


class ArityViolationError(GPError):
    """A tree operation would break a symbol's declared arity bounds"""

    def __init__(self, message: str, symbol_name: str, current_count: int,
                 minimum_arity: int, maximum_arity: int):
        super().__init__(message)
        self.symbol_name = symbol_name
        self.current_count = current_count
        self.minimum_arity = minimum_arity
        self.maximum_arity = maximum_arity


class MaximumArityExceededError(ArityViolationError):

    def __init__(self, symbol_name: str, current_count: int, attempted_count: int,
                 minimum_arity: int, maximum_arity: int):
        super().__init__(
            f"Cannot add more subtrees to '{symbol_name}'. Maximum arity is "
            f"{maximum_arity}, but would have {attempted_count} subtrees.",
            symbol_name, current_count, minimum_arity, maximum_arity)
        self.attempted_count = attempted_count


class MinimumArityViolatedError(ArityViolationError):

    def __init__(self, symbol_name: str, current_count: int, attempted_count: int,
                 minimum_arity: int, maximum_arity: int):
        super().__init__(
            f"Cannot remove subtrees from '{symbol_name}'. Minimum arity is "
            f"{minimum_arity}, but would have {attempted_count} subtrees.",
            symbol_name, current_count, minimum_arity, maximum_arity)
        self.attempted_count = attempted_count


class InvalidArityError(ArityViolationError):

    def __init__(self, symbol_name: str, current_count: int,
                 minimum_arity: int, maximum_arity: int):
        super().__init__(
            f"Symbol '{symbol_name}' has invalid arity. Current: {current_count}, "
            f"Expected: {minimum_arity}-{maximum_arity}.",
            symbol_name, current_count, minimum_arity, maximum_arity)


class CloneUnsupportedError(GPError, TypeError):
    """Raised when the cloner meets an object that cannot deep-clone itself"""

    def __init__(self, obj_type: type):
        self.obj_type = obj_type
        super().__init__(
            f"Type {obj_type.__module__}.{obj_type.__qualname__} does not support "
            f"deep cloning (it is not a DeepCloneable)")


class EvaluationError(GPError):
    """Raised by the interpreter on a node it cannot evaluate"""

    def __init__(self, message: str, symbol_name: Optional[str] = None):
        super().__init__(message)
        self.symbol_name = symbol_name


class DatasetShapeError(GPError, ValueError):
    """Inputs, targets and variable names disagree in length"""
